"""Human-readable explanations for the exit codes of external commands.

The default entries cover the curl failures a download step is most likely
to hit. Plans may add their own codes on top of them.
"""

from types import MappingProxyType
from typing import Mapping

DEFAULT_DIAGNOSTICS = MappingProxyType({
    6: "Could not resolve host",
    7: "Failed to connect to host",
    22: "HTTP page not retrieved",
    28: "Operation timeout",
})

UNKNOWN_ERROR = "Unknown error"


class DiagnosticTable:
    """Immutable code -> explanation lookup with a generic fallback."""

    def __init__(self, entries: Mapping[int, str] | None = None) -> None:
        merged = dict(DEFAULT_DIAGNOSTICS if entries is None else entries)
        self._entries = MappingProxyType(merged)

    @property
    def entries(self) -> Mapping[int, str]:
        return self._entries

    def __contains__(self, code: object) -> bool:
        return code in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def explain(self, code: int) -> str:
        return self._entries.get(code, UNKNOWN_ERROR)

    def describe(self, code: int) -> str:
        return f"Error: {self.explain(code)} (exit code {code})"

    def with_overrides(self, overrides: Mapping[int, str]) -> "DiagnosticTable":
        if not overrides:
            return self
        return DiagnosticTable({**self._entries, **overrides})


DEFAULT_TABLE = DiagnosticTable()


def describe(code: int) -> str:
    return DEFAULT_TABLE.describe(code)
