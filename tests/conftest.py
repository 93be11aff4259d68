import logging
import sys
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from savelink.core.models import Game, SavePath  # noqa: E402


@pytest.fixture
def storage(tmp_path: Path) -> Path:
    path = tmp_path / "storage"
    path.mkdir()
    return path


@pytest.fixture
def make_game():
    """Build a Game whose saves point at concrete paths (no variables)."""

    def _make(game_id: str, saves: dict[str, Path], title: str | None = None, custom: bool = False) -> Game:
        return Game(
            title=title or game_id.title(),
            id=game_id,
            custom=custom,
            saves=[SavePath(id=sid, template=str(p), path=p) for sid, p in saves.items()],
        )

    return _make


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Undo setup_logging() from CLI runs so caplog sees package records."""
    yield
    logger = logging.getLogger("savelink")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
