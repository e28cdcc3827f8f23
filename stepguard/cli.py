import logging
import os
import sys

import yaml
from stepguard import __version__
from stepguard.config import RunnerConfig
from stepguard.diagnostics import DEFAULT_TABLE
from stepguard.engine import create_engine
from stepguard.errors import ExternalCommandFailed, MissingDependencyError
from stepguard.parser import parse_assignments, parse_plan
from stepguard.plans import package_install_plan
from stepguard.runner import GuardedRunner


def main(argv: list[str] | None = None):
    argv = sys.argv[1:] if argv is None else argv
    try:
        _run(argv)
    except KeyboardInterrupt:
        print()
        sys.exit(130)
    except ExternalCommandFailed as e:
        sys.exit(e.exit_code)
    except MissingDependencyError as e:
        sys.exit(e.exit_code)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except yaml.YAMLError as e:
        print(f"Error: Invalid YAML syntax")
        print(f"  {e}")
        sys.exit(1)


def _run(argv: list[str]) -> None:
    if len(argv) == 1 and argv[0] in ("--version", "-V"):
        print(f"stepguard {__version__}")
        sys.exit(0)

    if not argv or argv[0] in ("--help", "-h"):
        _print_help()
        sys.exit(0 if argv else 1)

    command, args = argv[0], argv[1:]
    if "--help" in args or "-h" in args:
        _print_help()
        sys.exit(0)

    if command == "explain":
        _explain(args)
    elif command == "run":
        _run_plan_file(args)
    elif command == "install":
        _install(args)
    else:
        _print_help()
        sys.exit(1)


def _explain(args: list[str]) -> None:
    if len(args) != 1:
        raise ValueError("explain requires exactly one exit code")
    try:
        code = int(args[0])
    except ValueError:
        raise ValueError(f"Not an exit code: {args[0]}")
    if not 0 <= code <= 255:
        raise ValueError(f"Exit code out of range 0-255: {code}")
    print(DEFAULT_TABLE.describe(code))


def _run_plan_file(args: list[str]) -> None:
    positional, options = _split_args(args)
    if len(positional) != 1:
        raise ValueError("run requires a plan file")

    plan_path = positional[0]
    if not os.path.exists(plan_path):
        raise ValueError(f"File not found: {plan_path}")
    if not os.path.isfile(plan_path):
        raise ValueError(f"Not a file: {plan_path}")

    config = _config_from_options(options)
    plan = parse_plan(plan_path, overrides=config.env)
    if not plan.steps:
        raise ValueError("No steps found in plan.")

    print(f"Plan:  {plan.name}")
    print(f"Steps: {len(plan.steps)}")
    print()
    _execute(plan, config, tui=options["tui"])


def _install(args: list[str]) -> None:
    positional, options = _split_args(args)
    if len(positional) != 1:
        raise ValueError("install requires a download URL")

    config = _config_from_options(options, url=positional[0])
    plan = package_install_plan(config)
    _execute(plan, config, tui=options["tui"])


def _execute(plan, config: RunnerConfig, tui: bool = False) -> None:
    engine = create_engine(
        image=config.image,
        workdir=config.workdir,
        env=config.env,
        capture=tui,
    )

    if tui:
        from stepguard.tui import StepGuardApp
        app = StepGuardApp(plan=plan, engine=engine, config=config)
        app.run()
        sys.exit(app.return_code or 0)

    GuardedRunner(plan, engine, config=config).run()


_VALUE_OPTIONS = {
    "--workdir": "workdir",
    "--image": "image",
    "--output": "output",
    "--version": "version",
}


def _split_args(args: list[str]) -> tuple[list[str], dict]:
    positional = []
    options = {"tui": False, "verbose": False, "set": []}
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in _VALUE_OPTIONS or arg == "--set":
            if i + 1 >= len(args):
                raise ValueError(f"{arg} requires an argument")
            if arg == "--set":
                options["set"].append(args[i + 1])
            else:
                options[_VALUE_OPTIONS[arg]] = args[i + 1]
            i += 2
            continue
        if arg == "--tui":
            options["tui"] = True
        elif arg in ("--verbose", "-v"):
            options["verbose"] = True
        elif arg.startswith("-"):
            raise ValueError(f"Unknown option: {arg}")
        else:
            positional.append(arg)
        i += 1
    return positional, options


def _config_from_options(options: dict, url: str = "") -> RunnerConfig:
    config = RunnerConfig(
        url=url,
        workdir=os.path.abspath(options.get("workdir", ".")),
        image=options.get("image"),
        env=parse_assignments(options["set"]),
        verbose=options["verbose"],
    )
    _configure_logging(config)
    if "version" in options:
        config.version = options["version"]
    if "output" in options:
        config.output = options["output"]
    return config


def _configure_logging(config: RunnerConfig) -> None:
    logging.basicConfig(
        level=logging.DEBUG if config.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _print_help():
    print(f"stepguard {__version__} — Fail-fast runner for provisioning steps")
    print()
    print("Usage:")
    print("  stepguard run <plan.yml> [options]")
    print("  stepguard install <url> [options]")
    print("  stepguard explain <exit-code>")
    print()
    print("Options:")
    print("  --workdir <path>   Directory steps run in (default: .)")
    print("  --image <image>    Run steps inside a Docker container from this image")
    print("  --set KEY=VALUE    Override an environment variable for every step")
    print("  --output <path>    Where 'install' saves the download")
    print("  --version <ver>    Fills {version} in the 'install' URL (default: latest)")
    print("  --tui              Show progress in a terminal UI")
    print("  --verbose, -v      Debug logging")
    print("  -V                 Show stepguard version")
    print("  --help, -h         Show this help")
    print()
    print("Example:")
    print("  stepguard run provision.yml --image ubuntu:22.04")
    print("  stepguard install https://example.com/tool_{version}_amd64.deb --version 2.40.0")


if __name__ == "__main__":
    main()
