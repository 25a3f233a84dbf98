"""CMake settings read from a VS Code workspace settings file."""

import shlex
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Sequence, TypedDict

import json5  # type: ignore[import-untyped]


CONFIGURE_SETTINGS_KEY = "cmake.configureSettings"
CONFIGURE_ARGS_KEY = "cmake.configureArgs"


SettingsDocument = TypedDict(
    "SettingsDocument",
    {
        "cmake.configureSettings": dict[str, str],
        "cmake.configureArgs": list[str],
    },
)


class SettingsError(Exception):
    """Base class for errors raised while loading settings."""


class SettingsParseError(SettingsError):
    """The settings document is malformed or has fields of the wrong shape."""


class SettingsReadError(SettingsError):
    """The settings file could not be read."""


def quote(value: str) -> str:
    """Quote a value so a POSIX shell splits it back into the same string.

    Values made only of shell-safe characters are returned untouched, the
    empty string becomes ``''``.
    """
    return shlex.quote(value)


def format_configure_settings(configure_settings: Mapping[str, str]) -> list[str]:
    """Produce sorted ``-DKEY=VALUE`` arguments suitable for passing to CMake."""
    args = [f"-D{key}={quote(value)}" for key, value in configure_settings.items()]
    # Mapping order carries no meaning in the document; sort for stable output.
    args.sort()
    return args


def collect_cli_args(settings: "Settings", argv: Iterable[str] = ()) -> list[str]:
    """Build the complete CMake argument list.

    The ``-D`` flags come first, then ``cmake.configureArgs`` in document
    order, then ``argv`` as given. CMake lets later arguments override earlier
    ones, so anything on the command line wins over the settings file.
    """
    all_args: list[str] = []
    all_args.extend(format_configure_settings(settings.configure_settings))
    all_args.extend(settings.configure_args)
    all_args.extend(argv)
    return all_args


class Settings:
    def __init__(
        self,
        configure_settings: Optional[Mapping[str, str]] = None,
        configure_args: Optional[Sequence[str]] = None,
    ):
        self._configure_settings = MappingProxyType(dict(configure_settings or {}))
        self._configure_args = tuple(configure_args or ())

    @property
    def configure_settings(self) -> Mapping[str, str]:
        return self._configure_settings

    @property
    def configure_args(self) -> tuple[str, ...]:
        return self._configure_args

    def format_configure_settings(self) -> list[str]:
        return format_configure_settings(self._configure_settings)

    def collect_cli_args(self, *argv: str) -> list[str]:
        return collect_cli_args(self, argv)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Settings):
            return NotImplemented
        return (
            dict(self._configure_settings) == dict(other._configure_settings)
            and self._configure_args == other._configure_args
        )

    def __hash__(self) -> int:
        return hash(
            (frozenset(self._configure_settings.items()), self._configure_args)
        )

    def __repr__(self) -> str:
        return (
            f"Settings(configure_settings={dict(self._configure_settings)!r}, "
            f"configure_args={list(self._configure_args)!r})"
        )

    def to_dict(self) -> SettingsDocument:
        data: SettingsDocument = {
            CONFIGURE_SETTINGS_KEY: dict(self._configure_settings),
            CONFIGURE_ARGS_KEY: list(self._configure_args),
        }
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Settings":
        return cls(
            configure_settings=_validate_string_map(
                data.get(CONFIGURE_SETTINGS_KEY), CONFIGURE_SETTINGS_KEY
            ),
            configure_args=_validate_string_list(
                data.get(CONFIGURE_ARGS_KEY), CONFIGURE_ARGS_KEY
            ),
        )


def _check_encodable(value: str, field_name: str) -> None:
    # Lone surrogate escapes such as "\ud800" decode fine but cannot be
    # written out or passed to a process.
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise SettingsParseError(
            f"{field_name} is not valid UTF-8 text: {exc.reason}"
        ) from exc


def _validate_string_map(value: Any, field_name: str) -> dict[str, str]:
    """Validate value is an object of string values.

    ``None`` (field missing or null) yields an empty dict.
    """
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise SettingsParseError(f"{field_name} must be an object of strings")
    for key, entry in value.items():
        _check_encodable(key, f"{field_name} key {key!r}")
        if not isinstance(entry, str):
            raise SettingsParseError(
                f"{field_name}.{key} must be a string, "
                f"got {type(entry).__name__}"
            )
        _check_encodable(entry, f"{field_name}.{key}")
    return dict(value)


def _validate_string_list(value: Any, field_name: str) -> list[str]:
    """Validate value is a list of strings.

    ``None`` (field missing or null) yields an empty list. Entries are not
    stripped or otherwise touched.
    """
    if value is None:
        return []
    if not isinstance(value, list):
        raise SettingsParseError(f"{field_name} must be a list of strings")
    for index, entry in enumerate(value):
        if not isinstance(entry, str):
            raise SettingsParseError(
                f"{field_name}[{index}] must be a string, "
                f"got {type(entry).__name__}"
            )
        _check_encodable(entry, f"{field_name}[{index}]")
    return list(value)


def parse_settings(document: bytes | str) -> Settings:
    """Extract CMake settings from a settings.json document.

    The document may contain comments and trailing commas, which makes it
    invalid plain JSON, so it is decoded with json5.
    """
    if isinstance(document, bytes):
        try:
            document = document.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise SettingsParseError(f"settings are not valid UTF-8: {exc}") from exc
    try:
        data = json5.loads(document)
    except (ValueError, RecursionError) as exc:
        raise SettingsParseError(f"invalid JSON: {exc}") from exc
    if data is None:
        return Settings()
    if not isinstance(data, dict):
        raise SettingsParseError("settings must contain a JSON object")
    return Settings.from_dict(data)


def read_settings(path: Path | str) -> Settings:
    """Read and parse the settings file at ``path``."""
    try:
        contents = Path(path).read_bytes()
    except OSError as exc:
        raise SettingsReadError(f"failed to read settings file {path}: {exc}") from exc
    try:
        return parse_settings(contents)
    except SettingsParseError as exc:
        raise SettingsParseError(f"{path}: {exc}") from exc
