import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1].parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from thai_tariff_calculator.tariffs import build_default_catalog  # noqa: E402


@pytest.fixture(scope="session")
def default_catalog():
    return build_default_catalog()


@pytest.fixture
def write_definition(tmp_path):
    """Write a YAML rate definition into tmp_path/<name> and return the directory."""

    def _write(text: str, name: str = "rates.yaml") -> Path:
        target = tmp_path / "definitions"
        target.mkdir(exist_ok=True)
        (target / name).write_text(text, encoding="utf-8")
        return target

    return _write
