"""Batch link, restore and unlink over the games in the catalog.

Each save of a game lives at ``<storage path>/<game id>/<save id>`` once it
has been relocated. A failure on one save or one game is recorded in the
returned BatchReport and the batch carries on with the next one.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable
from pathlib import Path

from savelink.core import linker
from savelink.core.errors import (
    LinkError,
    MoveError,
    RelocateError,
    RelocateKind,
    UnlinkError,
    UnlinkKind,
)
from savelink.core.models import (
    BatchReport,
    EntryOutcome,
    Game,
    SaveOutcome,
    SavePath,
    SaveStatus,
)

logger = logging.getLogger(__name__)

IgnorePredicate = Callable[[str], bool]


def _never_ignored(game_id: str) -> bool:
    return False


def has_movable_saves(game: Game) -> bool:
    """Whether any save of *game* is real data sitting at its original path."""
    return any(s.path.exists() and not s.path.is_symlink() for s in game.saves)


def movable_entries(games: Iterable[Game]) -> list[Game]:
    return [g for g in games if has_movable_saves(g)]


def relocated_entries(games: Iterable[Game], storage_path: Path) -> list[Game]:
    """Games which already have saves in the storage path."""
    return [g for g in games if g.id and (storage_path / g.id).exists()]


def _stored_path(storage_path: Path, game: Game, save: SavePath) -> Path:
    return storage_path / game.id / save.id


def _run_batch(
    action: str,
    games: list[Game],
    handler: Callable[[Game], EntryOutcome],
    is_ignored: IgnorePredicate,
    dry_run: bool,
) -> BatchReport:
    if not dry_run:
        linker.verify_link_capability()

    report = BatchReport(action=action, dry_run=dry_run)
    for game in games:
        if is_ignored(game.id):
            logger.info("%s is ignored, skipping", game.title)
            report.outcomes.append(EntryOutcome(game.id, game.title, ignored=True))
            continue
        report.outcomes.append(handler(game))
    return report


# link


def _link_save(game: Game, save: SavePath, storage_path: Path, dry_run: bool) -> SaveOutcome:
    dest = _stored_path(storage_path, game, save)
    logger.info("Linking %s's %s to %s", game.title, save.path, dest)

    if dry_run:
        status = SaveStatus.SIMULATED if save.path.exists() else SaveStatus.SKIPPED
        return SaveOutcome(save.id, save.path, dest, status)

    try:
        linker.relocate_and_link(save.path, dest)
    except RelocateError as e:
        if e.kind is RelocateKind.SOURCE_NOT_FOUND:
            logger.info("Nothing to move at %s", save.path)
            return SaveOutcome(save.id, save.path, dest, SaveStatus.SKIPPED)
        logger.warning("%s", e)
        return SaveOutcome(save.id, save.path, dest, SaveStatus.FAILED, e)
    return SaveOutcome(save.id, save.path, dest, SaveStatus.DONE)


def link_entry(game: Game, storage_path: Path, dry_run: bool = False) -> EntryOutcome:
    """Relocate every save of *game* into the storage path."""
    outcome = EntryOutcome(game.id, game.title)
    game_storage = storage_path / game.id

    if not dry_run:
        try:
            game_storage.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("Could not create %s: %s", game_storage, e)
            outcome.error = e
            return outcome

    for save in game.saves:
        outcome.saves.append(_link_save(game, save, storage_path, dry_run))
    return outcome


def link_all(
    games: Iterable[Game],
    storage_path: Path,
    is_ignored: IgnorePredicate = _never_ignored,
    dry_run: bool = False,
) -> BatchReport:
    """Move saves found in their standard locations and link them back."""
    movable = movable_entries(games)
    logger.info("Found %d games with saves in their standard locations", len(movable))
    return _run_batch(
        "link",
        movable,
        lambda g: link_entry(g, storage_path, dry_run),
        is_ignored,
        dry_run,
    )


# restore


def _restore_save(game: Game, save: SavePath, storage_path: Path, dry_run: bool) -> SaveOutcome:
    dest = _stored_path(storage_path, game, save)
    logger.info("Restoring %s's %s from %s", game.title, save.path, dest)

    if not dest.exists():
        logger.info("No stored copy of %s at %s", save.id, dest)
        return SaveOutcome(save.id, save.path, dest, SaveStatus.SKIPPED)
    if dry_run:
        return SaveOutcome(save.id, save.path, dest, SaveStatus.SIMULATED)

    try:
        linker.create_link(save.path, dest)
    except LinkError as e:
        logger.warning("%s", e)
        return SaveOutcome(save.id, save.path, dest, SaveStatus.FAILED, e)
    return SaveOutcome(save.id, save.path, dest, SaveStatus.DONE)


def restore_entry(game: Game, storage_path: Path, dry_run: bool = False) -> EntryOutcome:
    """Link every stored save of *game* back into place without moving data."""
    outcome = EntryOutcome(game.id, game.title)
    for save in game.saves:
        outcome.saves.append(_restore_save(game, save, storage_path, dry_run))
    return outcome


def restore_all(
    games: Iterable[Game],
    storage_path: Path,
    is_ignored: IgnorePredicate = _never_ignored,
    dry_run: bool = False,
) -> BatchReport:
    """Recreate links for saves already in the storage path, e.g. after a reinstall."""
    restorable = relocated_entries(games, storage_path)
    logger.info("Found %d games with saves moved to %s", len(restorable), storage_path)
    return _run_batch(
        "restore",
        restorable,
        lambda g: restore_entry(g, storage_path, dry_run),
        is_ignored,
        dry_run,
    )


# unlink


def move_back(original: Path, stored: Path) -> None:
    """Replace the link at *original* with the data stored at *stored*.

    Only a link is ever removed from *original*. If moving the data back
    fails the link is put back, so the save stays usable from storage.

    Raises:
        UnlinkError: If *original* holds real data or links elsewhere, or
            the data couldn't be moved back.
    """
    existing = linker.read_link(original)
    if existing is not None:
        if not linker.points_at(existing, stored):
            raise UnlinkError(
                UnlinkKind.LINKED_ELSEWHERE, original, stored, link_target=existing
            )
        logger.info("Removing %s", original)
        linker.remove_link(original)
    elif os.path.lexists(original):
        raise UnlinkError(UnlinkKind.NOT_LINKED, original, stored)

    logger.info("Moving %s to %s", stored, original)
    try:
        linker.move_item(stored, original)
    except MoveError as e:
        if existing is not None:
            try:
                linker.create_link(original, stored)
            except LinkError as link_error:
                logger.error("Could not relink %s: %s", original, link_error)
        raise UnlinkError(UnlinkKind.MOVE_FAILED, original, stored) from e


def _unlink_save(game: Game, save: SavePath, storage_path: Path, dry_run: bool) -> SaveOutcome:
    dest = _stored_path(storage_path, game, save)
    logger.info("Unlinking %s's %s from %s", game.title, save.path, dest)

    if not os.path.lexists(dest):
        logger.info("No stored copy of %s at %s", save.id, dest)
        return SaveOutcome(save.id, save.path, dest, SaveStatus.SKIPPED)
    if dry_run:
        return SaveOutcome(save.id, save.path, dest, SaveStatus.SIMULATED)

    try:
        move_back(save.path, dest)
    except (UnlinkError, LinkError, OSError) as e:
        logger.warning("%s", e)
        return SaveOutcome(save.id, save.path, dest, SaveStatus.FAILED, e)
    return SaveOutcome(save.id, save.path, dest, SaveStatus.DONE)


def unlink_entry(game: Game, storage_path: Path, dry_run: bool = False) -> EntryOutcome:
    """The inverse of link_entry."""
    outcome = EntryOutcome(game.id, game.title)
    for save in game.saves:
        outcome.saves.append(_unlink_save(game, save, storage_path, dry_run))

    if dry_run:
        return outcome

    game_storage = storage_path / game.id
    try:
        game_storage.rmdir()
        logger.info("Removed %s", game_storage)
    except OSError as e:
        # Leftovers are either failed saves or files savelink doesn't know about
        logger.warning("Keeping %s: %s", game_storage, e.strerror or e)
    return outcome


def unlink_all(
    games: Iterable[Game],
    storage_path: Path,
    is_ignored: IgnorePredicate = _never_ignored,
    dry_run: bool = False,
) -> BatchReport:
    """Move relocated saves back to their original locations."""
    restorable = relocated_entries(games, storage_path)
    logger.info("Found %d games with moved saves", len(restorable))
    return _run_batch(
        "unlink",
        restorable,
        lambda g: unlink_entry(g, storage_path, dry_run),
        is_ignored,
        dry_run,
    )
