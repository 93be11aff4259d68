"""Filesystem primitives: linking, moving, and moving-then-linking saves.

Only ``_os_symlink`` differs between platforms. Windows needs to know whether
the target is a directory and needs the symlink privilege (administrator or
developer mode); everything else here is platform neutral.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

from savelink.core.errors import (
    LinkCapabilityError,
    LinkError,
    LinkKind,
    MoveError,
    MoveKind,
    RelocateError,
    RelocateKind,
)

logger = logging.getLogger(__name__)

_WIN_LONG_PATH_PREFIX = "\\\\?\\"


def _os_symlink(source: Path, target: Path) -> None:
    """Create the link ``source`` -> ``target``."""
    if os.name == "nt":
        os.symlink(target, source, target_is_directory=target.is_dir())
    else:
        os.symlink(target, source)


def read_link(path: Path) -> Path | None:
    """Return where *path* points if it is a link, otherwise None."""
    try:
        if not path.is_symlink():
            return None
        return Path(os.readlink(path))
    except OSError:
        return None


def points_at(link_target: Path, target: Path) -> bool:
    """Whether a link target read back from disk names *target*."""
    actual = str(link_target)
    if actual.startswith(_WIN_LONG_PATH_PREFIX):
        actual = actual[len(_WIN_LONG_PATH_PREFIX):]
    return _normalize(actual) == _normalize(str(target))


def _normalize(path: str) -> str:
    return os.path.normcase(os.path.normpath(path))


def is_link_to(source: Path, target: Path) -> bool:
    link_target = read_link(source)
    return link_target is not None and points_at(link_target, target)


def create_link(source: Path, target: Path) -> None:
    """Create a link at *source* pointing to *target*.

    *target* must exist. Calling this again for a link that is already in
    place succeeds without doing anything.

    Raises:
        LinkError: DESTINATION_MISSING if *target* doesn't exist,
            ALREADY_LINKED if *source* links somewhere else, SOURCE_EXISTS if
            *source* is a real file or directory, OS_FAILURE otherwise.
    """
    if not target.exists():
        raise LinkError(LinkKind.DESTINATION_MISSING, source, target)

    try:
        _os_symlink(source, target)
    except OSError as e:
        # Windows reports a clash with an existing directory as a permission
        # error, so look at what's at source instead of trusting the errno.
        existing = read_link(source)
        if existing is not None:
            if points_at(existing, target):
                logger.debug("%s already links to %s", source, target)
                return
            raise LinkError(LinkKind.ALREADY_LINKED, source, existing) from e
        if source.is_dir() or source.is_file():
            raise LinkError(LinkKind.SOURCE_EXISTS, source, target) from e
        raise LinkError(LinkKind.OS_FAILURE, source, target) from e


def remove_link(path: Path) -> None:
    """Remove the link at *path*, leaving whatever it points at untouched.

    Raises:
        LinkError: NOT_A_LINK if *path* is real data or missing.
    """
    if not path.is_symlink():
        raise LinkError(LinkKind.NOT_A_LINK, path)

    try:
        os.unlink(path)
    except (IsADirectoryError, PermissionError):
        # Directory links on Windows are removed like directories
        os.rmdir(path)


def _discard(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path, ignore_errors=True)
    elif os.path.lexists(path):
        try:
            os.remove(path)
        except OSError:
            logger.warning("Could not remove the partial copy at %s", path)


def move_item(source: Path, destination: Path) -> None:
    """Move a file or directory, copying when a rename isn't possible.

    A rename fails across devices, in which case the item is copied and the
    source deleted once the copy is complete. A failed copy is cleaned up so
    the source stays the only copy of the data.

    Raises:
        MoveError: If both the rename and the copy fallback fail.
    """
    try:
        os.rename(source, destination)
        return
    except OSError as e:
        logger.debug("Renaming %s failed (%s), copying instead", source, e)

    existed = os.path.lexists(destination)
    is_dir = source.is_dir() and not source.is_symlink()

    try:
        if is_dir:
            shutil.copytree(source, destination, symlinks=True)
        else:
            shutil.copy2(source, destination, follow_symlinks=False)
    except OSError as e:
        if not existed:
            _discard(destination)
        raise MoveError(MoveKind.FAILED, source, destination) from e

    try:
        if is_dir:
            shutil.rmtree(source)
        else:
            os.remove(source)
    except OSError as e:
        raise MoveError(MoveKind.FAILED, source, destination) from e


def relocate_and_link(source: Path, destination: Path) -> None:
    """Move *source* to *destination*, then link *source* to *destination*.

    Already relocated saves are left alone. Existing data at *destination*
    is never overwritten, which also rules out relocating a path onto itself.

    Raises:
        RelocateError: See RelocateKind for the failure cases.
    """
    if not source.exists():
        raise RelocateError(RelocateKind.SOURCE_NOT_FOUND, source, destination)

    if os.path.lexists(destination):
        existing = read_link(source)
        if existing is not None:
            if points_at(existing, destination):
                logger.debug("%s is already relocated to %s", source, destination)
                return
            raise RelocateError(
                RelocateKind.ALREADY_LINKED, source, destination, link_target=existing
            )
        raise RelocateError(RelocateKind.DESTINATION_EXISTS, source, destination)

    logger.info("Moving %s to %s", source, destination)
    try:
        move_item(source, destination)
    except MoveError as e:
        raise RelocateError(RelocateKind.MOVE_FAILED, source, destination) from e

    logger.info("Creating a link from %s to %s", source, destination)
    try:
        create_link(source, destination)
    except LinkError as e:
        logger.warning("Linking %s failed, moving it back", source)
        try:
            move_item(destination, source)
        except MoveError:
            logger.error("Could not move %s back to %s", destination, source)
        raise RelocateError(RelocateKind.LINK_FAILED, source, destination) from e


def verify_link_capability() -> None:
    """Check that this process may create links by making a throwaway one.

    Raises:
        LinkCapabilityError: If the link can't be created.
    """
    with tempfile.TemporaryDirectory(prefix="savelink-") as tmp:
        target = Path(tmp) / "target"
        target.mkdir()
        try:
            _os_symlink(Path(tmp) / "link", target)
        except OSError as e:
            raise LinkCapabilityError(str(e)) from e
