import pytest
from stepguard.diagnostics import DEFAULT_DIAGNOSTICS, DEFAULT_TABLE, DiagnosticTable, describe


@pytest.mark.parametrize("code, message", [
    (6, "Error: Could not resolve host (exit code 6)"),
    (7, "Error: Failed to connect to host (exit code 7)"),
    (22, "Error: HTTP page not retrieved (exit code 22)"),
    (28, "Error: Operation timeout (exit code 28)"),
])
def test_known_codes(code, message):
    assert describe(code) == message


@pytest.mark.parametrize("code", [1, 2, 100, 127, 255])
def test_unknown_code_falls_back(code):
    assert describe(code) == f"Error: Unknown error (exit code {code})"


def test_default_table_has_only_documented_codes():
    assert set(DEFAULT_TABLE.entries) == {6, 7, 22, 28}
    assert len(DEFAULT_TABLE) == 4


def test_table_is_immutable():
    with pytest.raises(TypeError):
        DEFAULT_TABLE.entries[6] = "changed"
    with pytest.raises(TypeError):
        DEFAULT_DIAGNOSTICS[1] = "changed"


def test_overrides_return_new_table():
    table = DEFAULT_TABLE.with_overrides({100: "apt could not complete the request", 6: "DNS failure"})
    assert table.describe(100) == "Error: apt could not complete the request (exit code 100)"
    assert table.describe(6) == "Error: DNS failure (exit code 6)"
    assert table.describe(7) == "Error: Failed to connect to host (exit code 7)"
    assert DEFAULT_TABLE.describe(6) == "Error: Could not resolve host (exit code 6)"
    assert 100 not in DEFAULT_TABLE


def test_empty_overrides_keep_table():
    assert DEFAULT_TABLE.with_overrides({}) is DEFAULT_TABLE


def test_custom_table_without_defaults():
    table = DiagnosticTable({1: "generic"})
    assert table.explain(1) == "generic"
    assert table.explain(6) == "Unknown error"
