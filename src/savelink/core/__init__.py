from savelink.core.catalog import CATALOG_VERSION, Catalog
from savelink.core.models import BatchReport, EntryOutcome, Game, SaveOutcome, SavePath
from savelink.core.orchestrator import link_all, restore_all, unlink_all

__all__ = [
    "CATALOG_VERSION",
    "Catalog",
    "BatchReport",
    "EntryOutcome",
    "Game",
    "SaveOutcome",
    "SavePath",
    "link_all",
    "restore_all",
    "unlink_all",
]
