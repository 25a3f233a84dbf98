import sys
from pathlib import Path

import pytest  # type: ignore[import-not-found]

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from vcc import cli  # noqa: E402


@pytest.fixture(autouse=True)
def clear_vcc_env(monkeypatch):
    monkeypatch.delenv(cli.SETTINGS_PATH_ENV, raising=False)
    monkeypatch.delenv(cli.DRY_RUN_ENV, raising=False)


@pytest.fixture
def example_settings_json() -> str:
    # Not valid plain JSON: VS Code allows comments in settings.json.
    return """
{
    "editor.formatOnSave": true,
    "cmake.configureOnOpen": true,
    "cmake.configureArgs": [
        "-GNinja"
    ],
    // A comment here
    "cmake.configureSettings": {
        "CMAKE_CXX_COMPILER": "clang++",
        "CMAKE_CXX_FLAGS_INIT": "-fdiagnostics-color=always -O3",
        "CMAKE_CXX_STANDARD_REQUIRED": "ON", // no -std= flag with GCC otherwise
        "CMAKE_CXX_STANDARD": "17"
    },
    "cmake.ctestArgs": []
    /* and rest of your settings.json */
}
"""


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--type",
        action="store",
        default="all",
        choices=("unit", "integration", "all"),
        help="Select which tests to run: unit, integration, or all.",
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    selected = config.getoption("--type")
    if selected == "all":
        return

    skip_integration = pytest.mark.skip(reason="skipped by --type unit")
    skip_unit = pytest.mark.skip(reason="skipped by --type integration")

    for item in items:
        is_integration = item.get_closest_marker("integration") is not None
        if selected == "unit" and is_integration:
            item.add_marker(skip_integration)
        elif selected == "integration" and not is_integration:
            item.add_marker(skip_unit)
