"""Error types raised by the catalog and the link engine.

Every family carries an enum ``kind`` so callers can branch on the failure
without inspecting message text.
"""

from __future__ import annotations

import enum
from pathlib import Path


class SavelinkError(Exception):
    """Base class for all savelink failures."""


class ValidationKind(enum.Enum):
    RELATIVE_PATH = "relative_path"


class ValidationError(SavelinkError):
    """A save path template did not expand to a usable path."""

    def __init__(self, kind: ValidationKind, template: str, expanded: str):
        self.kind = kind
        self.template = template
        self.expanded = expanded
        super().__init__(f"Found relative path: {expanded!r} (from {template!r})")


class LoadKind(enum.Enum):
    MALFORMED = "malformed"
    TOO_NEW = "too_new"
    INVALID_PATH = "invalid_path"


class LoadError(SavelinkError):
    """The catalog document could not be turned into a valid catalog."""

    def __init__(
        self,
        kind: LoadKind,
        message: str,
        *,
        version: int | None = None,
        supported: int | None = None,
    ):
        self.kind = kind
        self.version = version
        self.supported = supported
        super().__init__(message)

    @classmethod
    def too_new(cls, version: int, supported: int) -> LoadError:
        return cls(
            LoadKind.TOO_NEW,
            f"The database version ({version}) is too new, "
            f"up to version {supported} is supported",
            version=version,
            supported=supported,
        )


class LinkKind(enum.Enum):
    DESTINATION_MISSING = "destination_missing"
    ALREADY_LINKED = "already_linked"
    SOURCE_EXISTS = "source_exists"
    NOT_A_LINK = "not_a_link"
    OS_FAILURE = "os_failure"


_LINK_MESSAGES = {
    LinkKind.DESTINATION_MISSING: "No file or directory exists at {target}",
    LinkKind.ALREADY_LINKED: "{source} is already a link to {target}",
    LinkKind.SOURCE_EXISTS: "A file or directory already exists at {source}",
    LinkKind.NOT_A_LINK: "{source} is not a link",
    LinkKind.OS_FAILURE: "Failed to link {source} to {target}",
}


class LinkError(SavelinkError):
    """Creating or removing a link failed.

    ``target`` is the requested target, except for ``ALREADY_LINKED`` where
    it is the target the existing link actually points at.
    """

    def __init__(self, kind: LinkKind, source: Path, target: Path | None = None):
        self.kind = kind
        self.source = source
        self.target = target
        message = _LINK_MESSAGES[kind].format(source=source, target=target)
        super().__init__(message)


class MoveKind(enum.Enum):
    FAILED = "failed"


class MoveError(SavelinkError):
    def __init__(self, kind: MoveKind, source: Path, destination: Path):
        self.kind = kind
        self.source = source
        self.destination = destination
        super().__init__(f"Failed to move {source} to {destination}")


class RelocateKind(enum.Enum):
    SOURCE_NOT_FOUND = "source_not_found"
    DESTINATION_EXISTS = "destination_exists"
    ALREADY_LINKED = "already_linked"
    MOVE_FAILED = "move_failed"
    LINK_FAILED = "link_failed"


class RelocateError(SavelinkError):
    """Moving a save into storage and linking it back failed."""

    def __init__(
        self,
        kind: RelocateKind,
        source: Path,
        destination: Path,
        *,
        link_target: Path | None = None,
    ):
        self.kind = kind
        self.source = source
        self.destination = destination
        self.link_target = link_target

        if kind is RelocateKind.SOURCE_NOT_FOUND:
            message = f"No file or directory exists at {source}"
        elif kind is RelocateKind.DESTINATION_EXISTS:
            message = f"A file or directory already exists at {destination}"
        elif kind is RelocateKind.ALREADY_LINKED:
            message = f"{source} is already a link to {link_target}"
        elif kind is RelocateKind.MOVE_FAILED:
            message = f"Failed to move {source} to {destination}"
        else:
            message = f"Moved {source} to {destination} but could not link it back"
        super().__init__(message)


class UnlinkKind(enum.Enum):
    NOT_LINKED = "not_linked"
    LINKED_ELSEWHERE = "linked_elsewhere"
    MOVE_FAILED = "move_failed"


class UnlinkError(SavelinkError):
    """Moving a save back from storage to its original location failed."""

    def __init__(
        self,
        kind: UnlinkKind,
        original: Path,
        stored: Path,
        *,
        link_target: Path | None = None,
    ):
        self.kind = kind
        self.original = original
        self.stored = stored
        self.link_target = link_target

        if kind is UnlinkKind.NOT_LINKED:
            message = f"{original} holds real data, refusing to replace it with {stored}"
        elif kind is UnlinkKind.LINKED_ELSEWHERE:
            message = f"{original} is a link to {link_target}, not {stored}"
        else:
            message = f"Failed to move {stored} back to {original}"
        super().__init__(message)


class LinkCapabilityError(SavelinkError):
    """The running process is not allowed to create links."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(
            "Unable to create links. On Windows this needs administrator rights "
            f"or developer mode ({reason})"
        )


class SettingsError(SavelinkError):
    """The settings file is unusable or lacks something a command needs."""
