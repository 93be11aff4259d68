from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path

from savelink.core.paths import resolve_template


@dataclass
class SavePath:
    """One save location of a game.

    ``template`` is what the catalog stores; ``path`` is its expansion for
    the current environment and is never persisted.
    """

    id: str
    template: str
    path: Path

    @classmethod
    def from_template(cls, save_id: str, template: str) -> SavePath:
        trimmed = template.strip()
        return cls(id=save_id, template=trimmed, path=resolve_template(trimmed))

    def to_dict(self) -> dict:
        return {"id": self.id, "path": self.template}


@dataclass(eq=False)
class Game:
    """A catalog entry. Two games are the same game when their ids match."""

    title: str
    id: str
    custom: bool = False
    saves: list[SavePath] = field(default_factory=list)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Game):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __lt__(self, other: Game) -> bool:
        return self.sort_key < other.sort_key

    @property
    def sort_key(self) -> tuple[str, bool, str]:
        # Custom entries sort ahead of bundled ones with the same id
        return (self.id, not self.custom, self.title)

    def to_dict(self) -> dict:
        data: dict = {"title": self.title, "id": self.id}
        if self.custom:
            data["custom"] = True
        data["saves"] = [s.to_dict() for s in self.saves]
        return data


class SaveStatus(str, enum.Enum):
    DONE = "done"
    SKIPPED = "skipped"
    SIMULATED = "simulated"
    FAILED = "failed"


class EntryStatus(str, enum.Enum):
    DONE = "done"
    PARTIAL = "partial"
    FAILED = "failed"
    SIMULATED = "simulated"
    IGNORED = "ignored"


@dataclass
class SaveOutcome:
    """What happened to a single save path during a batch operation."""

    save_id: str
    source: Path
    destination: Path
    status: SaveStatus
    error: Exception | None = None

    @property
    def detail(self) -> str:
        if self.error is not None:
            return str(self.error)
        return f"{self.source} -> {self.destination}"


@dataclass
class EntryOutcome:
    entry_id: str
    title: str
    saves: list[SaveOutcome] = field(default_factory=list)
    error: Exception | None = None
    ignored: bool = False

    @property
    def status(self) -> EntryStatus:
        if self.ignored:
            return EntryStatus.IGNORED
        if self.error is not None:
            return EntryStatus.FAILED

        statuses = {s.status for s in self.saves}
        if SaveStatus.FAILED in statuses:
            if SaveStatus.DONE in statuses:
                return EntryStatus.PARTIAL
            return EntryStatus.FAILED
        if SaveStatus.SIMULATED in statuses:
            return EntryStatus.SIMULATED
        return EntryStatus.DONE


@dataclass
class BatchReport:
    """Per-entry results of a link, restore or unlink run."""

    action: str
    dry_run: bool = False
    outcomes: list[EntryOutcome] = field(default_factory=list)

    def count(self, status: EntryStatus) -> int:
        return sum(1 for o in self.outcomes if o.status is status)

    @property
    def failed(self) -> list[EntryOutcome]:
        return [
            o for o in self.outcomes
            if o.status in (EntryStatus.FAILED, EntryStatus.PARTIAL)
        ]
