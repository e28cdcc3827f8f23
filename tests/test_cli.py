import os

import pytest
from stepguard import __version__
from stepguard.cli import main


def _exit_code(argv):
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


def test_version(capsys):
    assert _exit_code(["--version"]) == 0
    assert capsys.readouterr().out.strip() == f"stepguard {__version__}"


def test_help(capsys):
    assert _exit_code(["--help"]) == 0
    assert "Usage:" in capsys.readouterr().out


def test_no_arguments_prints_help_and_fails(capsys):
    assert _exit_code([]) == 1
    assert "Usage:" in capsys.readouterr().out


def test_unknown_command():
    assert _exit_code(["frobnicate"]) == 1


class TestExplain:
    def test_known_code(self, capsys):
        main(["explain", "28"])
        assert capsys.readouterr().out.strip() == "Error: Operation timeout (exit code 28)"

    def test_unknown_code(self, capsys):
        main(["explain", "99"])
        assert capsys.readouterr().out.strip() == "Error: Unknown error (exit code 99)"

    @pytest.mark.parametrize("code", ["-5", "300"])
    def test_out_of_range(self, code, capsys):
        assert _exit_code(["explain", code]) == 1
        assert "out of range 0-255" in capsys.readouterr().out

    def test_not_a_number(self, capsys):
        assert _exit_code(["explain", "abc"]) == 1
        assert "Not an exit code: abc" in capsys.readouterr().out


class TestRun:
    def test_failing_plan_exits_with_step_code(self, fixtures_dir, tmp_path, capsys):
        plan = os.path.join(fixtures_dir, "failing_plan.yml")

        assert _exit_code(["run", plan, "--workdir", str(tmp_path)]) == 22

        out = capsys.readouterr().out
        assert "Downloading file..." in out
        assert "Error: HTTP page not retrieved (exit code 22)" in out
        assert "Installation completed successfully" not in out
        assert not (tmp_path / "installed.marker").exists()

    def test_successful_plan(self, tmp_path, capsys):
        plan = tmp_path / "plan.yml"
        plan.write_text(
            "name: ok\n"
            "steps:\n"
            "  - name: Write marker\n"
            "    run: echo \"$GREETING\" > marker.txt\n"
            "    env:\n"
            "      GREETING: default\n"
        )

        main(["run", str(plan), "--workdir", str(tmp_path), "--set", "GREETING=hi"])

        assert (tmp_path / "marker.txt").read_text().strip() == "hi"
        out = capsys.readouterr().out
        assert out.strip().splitlines()[-1] == "Installation completed successfully"
        assert "Error:" not in out

    def test_missing_dependency_exits_1(self, tmp_path, capsys):
        plan = tmp_path / "plan.yml"
        plan.write_text(
            "requires: [definitely-not-a-real-command-xyz]\n"
            "steps:\n"
            "  - run: touch ran.txt\n"
        )

        assert _exit_code(["run", str(plan), "--workdir", str(tmp_path)]) == 1
        assert "Error: definitely-not-a-real-command-xyz could not be found" in capsys.readouterr().out
        assert not (tmp_path / "ran.txt").exists()

    def test_working_directory_that_is_a_file(self, tmp_path, capsys):
        (tmp_path / "f").write_text("not a dir")
        plan = tmp_path / "plan.yml"
        plan.write_text(
            "steps:\n"
            "  - name: In a file\n"
            "    run: \"true\"\n"
            "    working-directory: f\n"
            "  - run: touch after.txt\n"
            "cleanup:\n"
            "  - \"true\"\n"
        )

        assert _exit_code(["run", str(plan), "--workdir", str(tmp_path)]) == 126

        out = capsys.readouterr().out
        assert "Step 1 failed: In a file" in out
        assert "Error: Unknown error (exit code 126)" in out
        assert not (tmp_path / "after.txt").exists()

    def test_missing_file(self, tmp_path, capsys):
        assert _exit_code(["run", str(tmp_path / "nope.yml")]) == 1
        assert "File not found" in capsys.readouterr().out

    def test_directory_is_not_a_plan(self, tmp_path, capsys):
        assert _exit_code(["run", str(tmp_path)]) == 1
        assert "Not a file" in capsys.readouterr().out

    def test_invalid_yaml(self, tmp_path, capsys):
        plan = tmp_path / "plan.yml"
        plan.write_text("steps: [unclosed\n")
        assert _exit_code(["run", str(plan)]) == 1
        assert "Invalid YAML syntax" in capsys.readouterr().out

    def test_plan_without_steps(self, fixtures_dir, capsys):
        assert _exit_code(["run", os.path.join(fixtures_dir, "no_steps.yml")]) == 1
        assert "no 'steps' list" in capsys.readouterr().out

    def test_option_without_value(self, fixtures_dir, capsys):
        assert _exit_code(["run", os.path.join(fixtures_dir, "failing_plan.yml"), "--workdir"]) == 1
        assert "--workdir requires an argument" in capsys.readouterr().out

    def test_unknown_option(self, fixtures_dir, capsys):
        assert _exit_code(["run", os.path.join(fixtures_dir, "failing_plan.yml"), "--bogus"]) == 1
        assert "Unknown option: --bogus" in capsys.readouterr().out


class TestInstall:
    def test_requires_url(self, capsys):
        assert _exit_code(["install"]) == 1
        assert "install requires a download URL" in capsys.readouterr().out
