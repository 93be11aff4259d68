"""The game catalog: which games exist and where they keep their saves.

The catalog lives at ``<storage path>/catalog.json``. A fresh storage path
is seeded with the catalog bundled with savelink; after that the user's copy
is authoritative and collects their custom entries.

Format:
    {
      "version": 1,
      "games": [
        {"title": "Hollow Knight", "id": "hollow-knight",
         "saves": [{"id": "saves", "path": "$USERPROFILE/AppData/..."}]},
        {"title": "My Game", "id": "my-game", "custom": true, "saves": [...]}
      ]
    }
"""

from __future__ import annotations

import logging
from importlib.resources import files
from pathlib import Path

import orjson

from savelink.core.errors import LoadError, LoadKind, ValidationError
from savelink.core.models import Game, SavePath

logger = logging.getLogger(__name__)

CATALOG_VERSION = 1
CATALOG_FILENAME = "catalog.json"


def bundled_catalog() -> bytes:
    """Raw bytes of the catalog shipped with savelink."""
    return (files("savelink") / "data" / CATALOG_FILENAME).read_bytes()


def is_valid_id(name: str) -> bool:
    """Whether *name* can be used as a single folder name inside the storage path."""
    if not name or name in (".", "..", CATALOG_FILENAME):
        return False
    return not any(c in name for c in "/\\")


def _require(raw: dict, key: str, kind: type, where: str):
    value = raw.get(key)
    if not isinstance(value, kind):
        raise LoadError(
            LoadKind.MALFORMED,
            f"Expected {where} to have a {kind.__name__} {key!r}, got {value!r}",
        )
    return value


def _parse_game(raw: object) -> Game:
    """Build a Game from its persisted shape, resolving every save path."""
    if not isinstance(raw, dict):
        raise LoadError(LoadKind.MALFORMED, f"Expected a game object, got {raw!r}")

    game_id = _require(raw, "id", str, "a game")
    if not is_valid_id(game_id):
        raise LoadError(LoadKind.MALFORMED, f"Invalid game id: {game_id!r}")
    title = _require(raw, "title", str, f"game {game_id!r}")
    custom = raw.get("custom", False)
    if not isinstance(custom, bool):
        raise LoadError(LoadKind.MALFORMED, f"'custom' of game {game_id!r} must be a boolean")

    saves = []
    for raw_save in _require(raw, "saves", list, f"game {game_id!r}"):
        if not isinstance(raw_save, dict):
            raise LoadError(LoadKind.MALFORMED, f"Expected a save object in game {game_id!r}")
        save_id = _require(raw_save, "id", str, f"a save of {game_id!r}")
        if not is_valid_id(save_id):
            raise LoadError(LoadKind.MALFORMED, f"Invalid save id {save_id!r} in game {game_id!r}")
        template = _require(raw_save, "path", str, f"save {save_id!r} of {game_id!r}")
        try:
            saves.append(SavePath.from_template(save_id, template))
        except ValidationError as e:
            raise LoadError(
                LoadKind.INVALID_PATH,
                f"Game {game_id!r} has an invalid save path: {e}",
            ) from e

    return Game(title=title, id=game_id, custom=custom, saves=saves)


def merge_games(games: list[Game]) -> tuple[list[Game], list[Game]]:
    """Sort games and split off duplicate ids, keeping custom entries over bundled ones.

    Returns the merged games and the entries they shadow.
    """
    merged: list[Game] = []
    shadowed: list[Game] = []
    seen: set[str] = set()
    for game in sorted(games):
        if game.id in seen:
            logger.debug("%s (%s) is shadowed by another entry", game.title, game.id)
            shadowed.append(game)
            continue
        seen.add(game.id)
        merged.append(game)
    return merged, shadowed


class Catalog:
    """In-memory catalog bound to the file it was loaded from."""

    def __init__(
        self,
        games: list[Game] | None = None,
        version: int = CATALOG_VERSION,
        path: Path | None = None,
        shadowed: list[Game] | None = None,
    ):
        self.games: list[Game] = games if games is not None else []
        # Bundled entries overridden by custom ones; kept so the file retains them
        self.shadowed: list[Game] = shadowed if shadowed is not None else []
        self.version = version
        self.path = path

    def __len__(self) -> int:
        return len(self.games)

    @classmethod
    def open(cls, storage_path: Path) -> Catalog:
        """Load the catalog under *storage_path*, seeding it on first use."""
        catalog_path = storage_path / CATALOG_FILENAME
        if catalog_path.exists():
            return cls.load_from(catalog_path)

        logger.info("No catalog at %s, creating it from the bundled one", catalog_path)
        catalog = cls.load(bundled_catalog(), path=catalog_path)
        catalog.persist()
        return catalog

    @classmethod
    def load_from(cls, path: Path) -> Catalog:
        catalog = cls.load(path.read_bytes(), path=path)
        logger.info("Loaded %d game entries from %s", len(catalog), path)
        return catalog

    @classmethod
    def load(cls, data: bytes | str, path: Path | None = None) -> Catalog:
        """Parse and validate a catalog document.

        Loading is all or nothing: one bad entry fails the whole catalog.

        Raises:
            LoadError: If the document is malformed, too new, or contains a
                save path that doesn't expand to an absolute path.
        """
        try:
            raw = orjson.loads(data)
        except orjson.JSONDecodeError as e:
            raise LoadError(LoadKind.MALFORMED, f"The catalog is not valid JSON: {e}") from e

        if not isinstance(raw, dict):
            raise LoadError(LoadKind.MALFORMED, "The catalog must be a JSON object")

        version = raw.get("version")
        if not isinstance(version, int) or isinstance(version, bool) or version < 0:
            raise LoadError(LoadKind.MALFORMED, f"Invalid catalog version: {version!r}")
        if version > CATALOG_VERSION:
            raise LoadError.too_new(version, CATALOG_VERSION)

        raw_games = raw.get("games")
        if not isinstance(raw_games, list):
            raise LoadError(LoadKind.MALFORMED, "The catalog has no 'games' list")

        games, shadowed = merge_games([_parse_game(g) for g in raw_games])
        return cls(games=games, version=version, path=path, shadowed=shadowed)

    def to_bytes(self) -> bytes:
        document = {
            "version": CATALOG_VERSION,
            "games": [g.to_dict() for g in sorted(self.games + self.shadowed)],
        }
        return orjson.dumps(document, option=orjson.OPT_INDENT_2)

    def persist(self) -> None:
        """Write the catalog back to the file it is bound to."""
        if self.path is None:
            raise ValueError("The catalog isn't bound to a file")

        logger.info("Saving %s", self.path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(self.to_bytes())
        self.version = CATALOG_VERSION

    def find_by_id(self, game_id: str) -> Game | None:
        matches = [g for g in self.games if g.id == game_id]
        return min(matches) if matches else None

    def search(self, keyword: str) -> list[Game]:
        """Case-sensitive substring search over ids and titles."""
        if not keyword:
            raise ValueError("The keyword must not be empty")
        return [g for g in self.games if keyword in g.id or keyword in g.title]

    def add(self, game: Game) -> None:
        """Add or replace a custom entry and save the catalog.

        Only an existing custom entry with the same id is replaced; the
        bundled entry stays in the file as a fallback.
        """
        game.custom = True
        kept = [g for g in self.games + self.shadowed if not (g == game and g.custom)]
        self.games, self.shadowed = merge_games(kept + [game])
        self.persist()
