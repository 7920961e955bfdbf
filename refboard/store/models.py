"""
Data models for the kanban store.

Models are plain dataclasses with snake_case fields. Documents on disk keep
camelCase keys (boardId, lastUpdated, addedToColumn, ...), converted by
to_dict/from_dict.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from refboard.lib.constants import DEFAULT_ADDED_BY, DEFAULT_PRIORITY, DEFAULT_STATUS


def now_iso() -> str:
    """Current timestamp in ISO 8601 format."""
    return datetime.now().isoformat()


@dataclass
class ItemReference:
    """Placement of an external work item in one column of one board.

    The store never reads the referenced item itself; (type, id) is opaque.
    """
    type: str                                   # epic, requirement, sub-requirement, task
    id: str
    added_to_column: str                        # ISO timestamp, reset on every move
    added_by: str = DEFAULT_ADDED_BY
    priority: str = DEFAULT_PRIORITY            # high, medium, low
    assignee: Optional[str] = None
    status: str = DEFAULT_STATUS
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> tuple[str, str]:
        return (self.type, self.id)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "id": self.id,
            "addedToColumn": self.added_to_column,
            "addedBy": self.added_by,
            "priority": self.priority,
            "assignee": self.assignee,
            "status": self.status,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ItemReference":
        # Lenient: missing id/type stay None so validate_references can report them
        return cls(
            type=data.get("type"),
            id=data.get("id"),
            added_to_column=data.get("addedToColumn", ""),
            added_by=data.get("addedBy", DEFAULT_ADDED_BY),
            priority=data.get("priority", DEFAULT_PRIORITY),
            assignee=data.get("assignee"),
            status=data.get("status", DEFAULT_STATUS),
            metadata=data.get("metadata") or {},
        )


@dataclass
class Column:
    """An ordered slot within a board."""
    id: str
    name: str
    items: list[ItemReference] = field(default_factory=list)

    def find(self, item_type: Optional[str], item_id: str) -> Optional[ItemReference]:
        """Return the first item matching item_id (and item_type, if given)."""
        for item in self.items:
            if item.id == item_id and (item_type is None or item.type == item_type):
                return item
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Column":
        return cls(
            id=data.get("id"),
            name=data.get("name", data.get("id")),
            items=[ItemReference.from_dict(i) for i in data.get("items", [])],
        )


@dataclass
class Board:
    """A named, typed container of columns."""
    board_id: str
    name: str
    type: str                                   # project, sprint, team, epic, business-plan
    created: str
    last_updated: str
    metadata: dict[str, Any] = field(default_factory=dict)
    columns: list[Column] = field(default_factory=list)

    def get_column(self, column_id: str) -> Optional[Column]:
        for column in self.columns:
            if column.id == column_id:
                return column
        return None

    def touch(self) -> None:
        """Stamp lastUpdated; every mutation must call this before saving."""
        self.last_updated = now_iso()

    def item_count(self) -> int:
        return sum(len(c.items) for c in self.columns)

    def to_dict(self) -> dict:
        return {
            "boardId": self.board_id,
            "name": self.name,
            "type": self.type,
            "created": self.created,
            "lastUpdated": self.last_updated,
            "metadata": self.metadata,
            "columns": [c.to_dict() for c in self.columns],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Board":
        return cls(
            board_id=data["boardId"],
            name=data.get("name", data["boardId"]),
            type=data.get("type", "project"),
            created=data.get("created", ""),
            last_updated=data.get("lastUpdated", ""),
            metadata=data.get("metadata") or {},
            columns=[Column.from_dict(c) for c in data.get("columns", [])],
        )


@dataclass
class IndexEntry:
    """One location (board, column) where an item is referenced."""
    board_id: str
    column_id: str
    added_at: str
    updated_at: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "boardId": self.board_id,
            "columnId": self.column_id,
            "addedAt": self.added_at,
        }
        if self.updated_at:
            data["updatedAt"] = self.updated_at
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "IndexEntry":
        return cls(
            board_id=data["boardId"],
            column_id=data["columnId"],
            added_at=data.get("addedAt", ""),
            updated_at=data.get("updatedAt"),
        )


@dataclass
class BoardItem:
    """An item as seen from a board listing: the reference plus its column."""
    reference: ItemReference
    column: str
    column_name: str

    def to_dict(self) -> dict:
        data = self.reference.to_dict()
        data["column"] = self.column
        data["columnName"] = self.column_name
        return data


@dataclass
class ReferenceIssue:
    """A structural defect found by validate_references (an InvalidReference)."""
    board: str
    column: str
    item: Optional[str]
    issue: str
    kind: str = "invalid_reference"


@dataclass
class IndexDrift:
    """A disagreement between the boards and a reference index."""
    item_type: str
    item_id: str
    board_id: str
    column_id: str


@dataclass
class ReconcileReport:
    """Result of comparing every index document against the boards.

    missing: board holds the item, index has no entry for it
    stale: index entry points at a board/column that no longer holds the item
    unreadable_types: item types whose index document could not be read
    """
    missing: list[IndexDrift] = field(default_factory=list)
    stale: list[IndexDrift] = field(default_factory=list)
    unreadable_types: list[str] = field(default_factory=list)
    repaired: bool = False

    @property
    def consistent(self) -> bool:
        return not self.missing and not self.stale and not self.unreadable_types


@dataclass
class RebuildReport:
    """Result of rebuilding the index from the boards."""
    types: list[str] = field(default_factory=list)
    entries: int = 0
    removed_types: list[str] = field(default_factory=list)


@dataclass
class BoardSummary:
    """Per-column item counts for one board."""
    board_id: str
    name: str
    type: str
    column_counts: list[tuple[str, int]]
    total: int
