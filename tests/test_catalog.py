import orjson
import pytest

from savelink.core.catalog import CATALOG_FILENAME, CATALOG_VERSION, Catalog, bundled_catalog
from savelink.core.errors import LoadError, LoadKind, ValidationError
from savelink.core.models import Game, SavePath


def _doc(games=None, version=CATALOG_VERSION) -> bytes:
    return orjson.dumps({"version": version, "games": games or []})


def _game(game_id, title=None, custom=None, path="$TESTVAR/save"):
    game = {"title": title or game_id, "id": game_id, "saves": [{"id": "s1", "path": path}]}
    if custom is not None:
        game["custom"] = custom
    return game


@pytest.fixture(autouse=True)
def _testvar(monkeypatch, tmp_path):
    monkeypatch.setenv("TESTVAR", str(tmp_path / "home"))


def test_load_older_version_succeeds():
    assert Catalog.load(_doc(version=CATALOG_VERSION - 1)).version == CATALOG_VERSION - 1


def test_load_current_version_succeeds():
    Catalog.load(_doc(version=CATALOG_VERSION))


def test_load_newer_version_fails():
    with pytest.raises(LoadError) as exc_info:
        Catalog.load(_doc(version=CATALOG_VERSION + 1))
    err = exc_info.value
    assert err.kind is LoadKind.TOO_NEW
    assert err.version == CATALOG_VERSION + 1
    assert err.supported == CATALOG_VERSION


def test_load_empty_catalog():
    catalog = Catalog.load('{"version":1,"games":[]}')
    assert catalog.games == []


def test_load_resolves_save_paths(tmp_path):
    catalog = Catalog.load(_doc([_game("g1")]))
    save = catalog.games[0].saves[0]
    assert save.id == "s1"
    assert save.template == "$TESTVAR/save"
    assert save.path == tmp_path / "home" / "save"


def test_custom_entry_wins_over_bundled_entry():
    catalog = Catalog.load(_doc([
        _game("g1", title="Bundled"),
        _game("g1", title="Mine", custom=True),
    ]))
    assert len(catalog.games) == 1
    assert catalog.games[0].custom is True
    assert catalog.games[0].title == "Mine"


def test_games_are_sorted_by_id():
    catalog = Catalog.load(_doc([_game("zelda"), _game("celeste"), _game("metroid")]))
    assert [g.id for g in catalog.games] == ["celeste", "metroid", "zelda"]


def test_relative_save_path_fails_whole_load(monkeypatch):
    monkeypatch.delenv("TESTVAR")
    with pytest.raises(LoadError) as exc_info:
        Catalog.load(_doc([_game("good", path="/abs/save"), _game("bad", path="$TESTVAR")]))
    assert exc_info.value.kind is LoadKind.INVALID_PATH
    assert isinstance(exc_info.value.__cause__, ValidationError)


@pytest.mark.parametrize("data", [b"not json", b"[]", b'{"games": []}', b'{"version": 1}'])
def test_malformed_documents_are_rejected(data):
    with pytest.raises(LoadError) as exc_info:
        Catalog.load(data)
    assert exc_info.value.kind is LoadKind.MALFORMED


def test_game_missing_saves_is_malformed():
    with pytest.raises(LoadError) as exc_info:
        Catalog.load(_doc([{"title": "t", "id": "g"}]))
    assert exc_info.value.kind is LoadKind.MALFORMED


def test_persist_omits_custom_when_false(tmp_path):
    catalog = Catalog.load(_doc([_game("a"), _game("b", custom=True)]), path=tmp_path / "c.json")
    catalog.persist()

    raw = orjson.loads((tmp_path / "c.json").read_bytes())
    assert raw["version"] == CATALOG_VERSION
    a, b = raw["games"]
    assert "custom" not in a
    assert b["custom"] is True
    assert a["saves"] == [{"id": "s1", "path": "$TESTVAR/save"}]


def test_persist_requires_a_path():
    with pytest.raises(ValueError):
        Catalog().persist()


def test_open_seeds_storage_with_bundled_catalog(tmp_path):
    catalog = Catalog.open(tmp_path)

    assert (tmp_path / CATALOG_FILENAME).exists()
    assert catalog.path == tmp_path / CATALOG_FILENAME
    assert len(catalog) > 0
    assert len(catalog) == len(orjson.loads(bundled_catalog())["games"])


def test_open_loads_existing_catalog(tmp_path):
    (tmp_path / CATALOG_FILENAME).write_bytes(_doc([_game("only")]))
    catalog = Catalog.open(tmp_path)
    assert [g.id for g in catalog.games] == ["only"]


def test_open_rejects_too_new_catalog(tmp_path):
    (tmp_path / CATALOG_FILENAME).write_bytes(_doc(version=CATALOG_VERSION + 1))
    with pytest.raises(LoadError):
        Catalog.open(tmp_path)


def test_add_twice_keeps_one_custom_entry(tmp_path):
    catalog = Catalog.load(_doc([_game("g1", title="Bundled")]), path=tmp_path / "c.json")

    first = Game(title="First", id="g1", saves=[SavePath.from_template("s", "$TESTVAR/a")])
    second = Game(title="Second", id="g1", saves=[SavePath.from_template("s", "$TESTVAR/b")])
    catalog.add(first)
    catalog.add(second)

    custom = [g for g in catalog.games if g.id == "g1" and g.custom]
    assert [g.title for g in custom] == ["Second"]
    # The bundled entry stays as a fallback
    assert [g.title for g in catalog.shadowed] == ["Bundled"]

    reloaded = Catalog.load_from(tmp_path / "c.json")
    assert len(reloaded.games) == 1
    assert reloaded.games[0].title == "Second"
    assert [g.title for g in reloaded.shadowed] == ["Bundled"]


def test_find_by_id_prefers_custom(tmp_path):
    catalog = Catalog.load(_doc([_game("g1", title="Bundled")]), path=tmp_path / "c.json")
    catalog.add(Game(title="Mine", id="g1", saves=[]))

    assert catalog.find_by_id("g1").title == "Mine"
    assert catalog.find_by_id("nope") is None


def test_search_matches_id_or_title_case_sensitively():
    catalog = Catalog.load(_doc([
        _game("hollow-knight", title="Hollow Knight"),
        _game("celeste", title="Celeste"),
    ]))

    assert [g.id for g in catalog.search("Knight")] == ["hollow-knight"]
    assert [g.id for g in catalog.search("celes")] == ["celeste"]
    assert catalog.search("knight") == [g for g in catalog.games if g.id == "hollow-knight"]
    assert catalog.search("CELESTE") == []


def test_search_rejects_empty_keyword():
    with pytest.raises(ValueError):
        Catalog.load(_doc()).search("")


@pytest.mark.parametrize("game_id", ["", ".", "..", "../x", "a/b", "a\\b", CATALOG_FILENAME])
def test_game_ids_must_be_plain_folder_names(game_id):
    with pytest.raises(LoadError) as exc_info:
        Catalog.load(_doc([_game(game_id)]))
    assert exc_info.value.kind is LoadKind.MALFORMED


@pytest.mark.parametrize("save_id", ["", "..", "../../etc"])
def test_save_ids_must_be_plain_folder_names(save_id):
    game = _game("g1")
    game["saves"][0]["id"] = save_id
    with pytest.raises(LoadError) as exc_info:
        Catalog.load(_doc([game]))
    assert exc_info.value.kind is LoadKind.MALFORMED


def test_ids_with_dots_and_spaces_are_fine():
    catalog = Catalog.load(_doc([_game("the.witcher 3")]))
    assert catalog.games[0].id == "the.witcher 3"
