#!/usr/bin/env python3
"""Configure a CMake project on the command line using .vscode/settings.json."""

import os
import subprocess
import sys
from pathlib import Path
from typing import Mapping, Optional, Sequence, TypedDict

from vcc.settings import Settings, SettingsError, collect_cli_args, read_settings


DEFAULT_SETTINGS_PATH = Path(".vscode") / "settings.json"
DEFAULT_CMAKE_EXECUTABLE = "cmake"
SETTINGS_PATH_ENV = "VCC_VSCODE_SETTINGS"
DRY_RUN_ENV = "VCC_DRY_RUN"
FALSE_VALUES = ("0", "false")
HELP_FLAGS = ("-h", "--help")
EXIT_NOT_FOUND = 127
EXIT_CANNOT_EXECUTE = 126
EXIT_SIGNAL_BASE = 128


class RunConfigDict(TypedDict):
    settings_path: Path
    dry_run: bool
    cmake: str


def info(message: str) -> None:
    """Print a standard informational message."""
    print(f"[vcc] {message}")


def error(message: str) -> None:
    """Print a standardized error message to stderr."""
    print(f"error: {message}", file=sys.stderr)


def env_or_default(
    key: str, fallback: str, environ: Optional[Mapping[str, str]] = None
) -> str:
    """Return the environment variable ``key``, or ``fallback`` if unset or empty."""
    env = os.environ if environ is None else environ
    value = env.get(key)
    if value:
        return value
    return fallback


def env_as_bool(key: str, environ: Optional[Mapping[str, str]] = None) -> bool:
    """Return the environment variable ``key`` as a boolean.

    False when the variable is unset or holds "0" or "false" in any
    capitalization, true otherwise (including the empty string).
    """
    env = os.environ if environ is None else environ
    value = env.get(key)
    return value is not None and value.lower() not in FALSE_VALUES


class RunConfig:
    def __init__(
        self,
        settings_path: Path = DEFAULT_SETTINGS_PATH,
        dry_run: bool = False,
        cmake: str = DEFAULT_CMAKE_EXECUTABLE,
    ):
        self._settings_path = Path(settings_path)
        self._dry_run = dry_run
        self._cmake = cmake

    @property
    def settings_path(self) -> Path:
        return self._settings_path

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    @property
    def cmake(self) -> str:
        return self._cmake

    def to_dict(self) -> RunConfigDict:
        data: RunConfigDict = {
            "settings_path": self._settings_path,
            "dry_run": self._dry_run,
            "cmake": self._cmake,
        }
        return data

    @classmethod
    def from_dict(cls, config: RunConfigDict) -> "RunConfig":
        return cls(
            settings_path=config["settings_path"],
            dry_run=config["dry_run"],
            cmake=config["cmake"],
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RunConfig":
        return cls(
            settings_path=Path(
                env_or_default(SETTINGS_PATH_ENV, str(DEFAULT_SETTINGS_PATH), environ)
            ),
            dry_run=env_as_bool(DRY_RUN_ENV, environ),
        )


def run_cmake_configure(
    settings: Settings, argv: Sequence[str], config: RunConfig
) -> int:
    """Run CMake configuration using the given settings and return its exit code."""
    command = [config.cmake, *collect_cli_args(settings, argv)]

    # The -D values are already shell quoted; print the tokens as they are.
    print(f"Running command:\n\t{' '.join(command)}\n", flush=True)

    if config.dry_run:
        info("dry run, cmake was not started")
        return 0

    try:
        result = subprocess.run(command, check=False)
    except FileNotFoundError as exc:
        error(f"{config.cmake}: {exc.strerror or exc}")
        return EXIT_NOT_FOUND
    except OSError as exc:
        error(f"{config.cmake}: {exc.strerror or exc}")
        return EXIT_CANNOT_EXECUTE
    if result.returncode < 0:
        # Killed by a signal; report it the way a shell does.
        return EXIT_SIGNAL_BASE - result.returncode
    return result.returncode


def usage(prog: str = "vcc") -> None:
    print("==========")
    print("")
    print(f"{prog}:")
    print(
        "  A tool for configuring a CMake project on the command line, using"
        " Visual Studio Code settings file '.vscode/settings.json'."
    )
    print("")
    print(
        "  Most of the time you'll call it once for configuring the project,"
        " and then resume with normal CMake:"
    )
    print("")
    print(f"    $ {prog} -B mybuild .")
    print("    $ cmake --build mybuild")
    print("")
    print(
        f"  You may also perform a dry-run by setting {DRY_RUN_ENV}"
        ' (any value except "0" or "false"):'
    )
    print("")
    print(f"    $ env {DRY_RUN_ENV}=1 {prog} -B mybuild .")
    print("")
    print("  ...and then run the shown command manually in a terminal.")
    print("")
    print(
        f"  The settings file is looked up at $PWD/{DEFAULT_SETTINGS_PATH.as_posix()},"
        " but you may specify an alternative path via"
    )
    print("")
    print(f"    $ env {SETTINGS_PATH_ENV}=path/to/mysettings.json {prog} -B mybuild .")
    print("")
    print("  All arguments are passed on to cmake after the settings from the file.")
    print("")
    print("==========")


def main(argv: Optional[Sequence[str]] = None) -> int:
    if argv is None:
        argv = sys.argv
    prog = Path(argv[0]).name if argv else "vcc"
    args = list(argv[1:])

    if args and args[0] in HELP_FLAGS:
        usage(prog)
        return 0

    config = RunConfig.from_env()

    try:
        settings = read_settings(config.settings_path)
    except SettingsError as exc:
        error(str(exc))
        return 1

    return run_cmake_configure(settings, args, config)


if __name__ == "__main__":
    raise SystemExit(main())
