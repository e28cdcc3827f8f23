import yaml
from stepguard.models import DEFAULT_SUCCESS_MESSAGE, Plan, Step


def parse_plan(path: str, overrides: dict | None = None) -> Plan:
    with open(path) as f:
        raw = yaml.safe_load(f)
    return build_plan(raw, overrides=overrides)


def build_plan(raw, overrides: dict | None = None) -> Plan:
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid plan file: expected YAML mapping, got {type(raw).__name__}")

    if not isinstance(raw.get("steps"), list):
        raise ValueError("Invalid plan file: no 'steps' list found")

    plan_env = {**_str_dict(raw.get("env") or {}), **_str_dict(overrides or {})}

    steps = []
    for position, step_raw in enumerate(raw["steps"], start=1):
        if isinstance(step_raw, str):
            step_raw = {"run": step_raw}
        if not isinstance(step_raw, dict) or "run" not in step_raw:
            raise ValueError(f"Invalid plan file: step {position} has no 'run' command")

        command = str(step_raw["run"]).strip()
        if not command:
            raise ValueError(f"Invalid plan file: step {position} has an empty 'run' command")
        step_name = step_raw.get("name", command.split("\n")[0])
        step_env = {**plan_env, **_str_dict(step_raw.get("env") or {}), **_str_dict(overrides or {})}

        steps.append(Step(
            name=str(step_name),
            command=command,
            env=step_env,
            working_directory=step_raw.get("working-directory") or "",
            on_success=str(step_raw.get("on-success", "")),
        ))

    return Plan(
        name=str(raw.get("name", "Unnamed Plan")),
        steps=steps,
        env=plan_env,
        requires=[str(r) for r in _as_list(raw.get("requires"), "requires")],
        cleanup=[str(c).strip() for c in _as_list(raw.get("cleanup"), "cleanup")],
        success_message=str(raw.get("success_message", DEFAULT_SUCCESS_MESSAGE)),
        diagnostics=_diagnostics(raw.get("diagnostics") or {}),
    )


def parse_assignments(pairs: list[str]) -> dict:
    result = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected KEY=VALUE, got '{pair}'")
        result[key] = value
    return result


def _as_list(value, key: str) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ValueError(f"Invalid plan file: '{key}' must be a list")
    return value


def _diagnostics(raw) -> dict[int, str]:
    if not isinstance(raw, dict):
        raise ValueError("Invalid plan file: 'diagnostics' must be a mapping of exit codes to messages")
    result = {}
    for code, message in raw.items():
        try:
            code = int(code)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid plan file: diagnostic code '{code}' is not an integer")
        if not 0 <= code <= 255:
            raise ValueError(f"Invalid plan file: diagnostic code {code} is outside 0-255")
        result[code] = str(message)
    return result


def _str_dict(d: dict) -> dict:
    result = {}
    for k, v in d.items():
        if v is None:
            result[str(k)] = ""
        elif isinstance(v, bool):
            result[str(k)] = str(v).lower()
        else:
            result[str(k)] = str(v)
    return result
