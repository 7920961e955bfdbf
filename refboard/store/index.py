"""
Reference Index: reverse lookup from an item to the boards that hold it.

One document per item type:
  <kanban_dir>/references/<type>-references.json

Each document maps an item id to its list of locations:
  {"REQ-1": [{"boardId": "demo", "columnId": "planning", "addedAt": "..."}]}

The index is derived data. It can always be rebuilt from the boards, and an
item id with no remaining locations is removed from the document.
"""

import logging
from pathlib import Path

from refboard.lib.constants import ITEM_TYPES, REFERENCES_SUBDIR, REFERENCES_SUFFIX
from refboard.lib.fs import write_json
from refboard.lib.validate import ValidationError, load_json, validate_before_write
from refboard.store.errors import InvalidItemType
from refboard.store.models import IndexEntry, now_iso

logger = logging.getLogger(__name__)

IndexDocument = dict[str, list[IndexEntry]]


def validate_item_type(item_type: str) -> None:
    if item_type not in ITEM_TYPES:
        raise InvalidItemType(
            f"Invalid item type '{item_type}'. Valid: {', '.join(ITEM_TYPES)}"
        )


class ReferenceIndex:
    """Per-type reverse mapping of item id -> [(board, column)] locations."""

    def __init__(self, kanban_dir: Path):
        self.kanban_dir = Path(kanban_dir)
        self.references_dir = self.kanban_dir / REFERENCES_SUBDIR

    def path_for(self, item_type: str) -> Path:
        validate_item_type(item_type)
        return self.references_dir / f"{item_type}{REFERENCES_SUFFIX}"

    def item_types(self) -> list[str]:
        """Item types that currently have an index document."""
        if not self.references_dir.exists():
            return []
        types = []
        for f in sorted(self.references_dir.glob(f"*{REFERENCES_SUFFIX}")):
            item_type = f.name[: -len(REFERENCES_SUFFIX)]
            if item_type in ITEM_TYPES:
                types.append(item_type)
            else:
                logger.warning(f"Ignoring index document for unknown item type: {f.name}")
        return types

    def load(self, item_type: str) -> IndexDocument:
        """Read the whole document for a type; empty if it does not exist.

        Raises:
            ValidationError: If the document is unreadable (rebuild the index)
        """
        path = self.path_for(item_type)
        if not path.exists():
            return {}
        logger.debug(f"Reading index {path}")
        data = load_json(path, "references")
        try:
            return {
                item_id: [IndexEntry.from_dict(e) for e in entries]
                for item_id, entries in data.items()
            }
        except (KeyError, TypeError, AttributeError) as e:
            raise ValidationError(
                "references", f"Malformed index {path} ({e}); run a rebuild"
            ) from None

    def replace(self, item_type: str, document: IndexDocument) -> None:
        """Write the whole document for a type, pruning ids with no entries."""
        path = self.path_for(item_type)
        data = {
            item_id: [e.to_dict() for e in entries]
            for item_id, entries in document.items()
            if entries
        }
        validate_before_write(data, "references", path)
        write_json(path, data)

    def remove_document(self, item_type: str) -> bool:
        path = self.path_for(item_type)
        if not path.exists():
            return False
        path.unlink()
        logger.debug(f"Removed {path}")
        return True

    def record_reference(self, item_type: str, item_id: str, board_id: str, column_id: str) -> IndexEntry:
        """Append a location for item_id. Does not deduplicate."""
        document = self.load(item_type)
        entry = IndexEntry(board_id=board_id, column_id=column_id, added_at=now_iso())
        document.setdefault(item_id, []).append(entry)
        self.replace(item_type, document)
        return entry

    def clear_reference(
        self,
        item_type: str,
        item_id: str,
        board_id: str,
        column_id: str | None = None,
    ) -> int:
        """Drop locations of item_id on board_id (in column_id only, if given).

        Returns the number of entries removed.
        """
        document = self.load(item_type)
        entries = document.get(item_id)
        if not entries:
            return 0

        kept = [
            e for e in entries
            if not (e.board_id == board_id and (column_id is None or e.column_id == column_id))
        ]
        removed = len(entries) - len(kept)
        if not removed:
            return 0

        if kept:
            document[item_id] = kept
        else:
            del document[item_id]
        self.replace(item_type, document)
        return removed

    def retarget(
        self,
        item_type: str,
        item_id: str,
        board_id: str,
        new_column_id: str,
        from_column_id: str | None = None,
    ) -> bool:
        """Point an existing location of item_id on board_id at new_column_id.

        from_column_id narrows the match when the item sits in several
        columns of the same board. Returns False if no entry matched.
        """
        document = self.load(item_type)
        candidates = [e for e in document.get(item_id, []) if e.board_id == board_id]
        if from_column_id is not None:
            exact = [e for e in candidates if e.column_id == from_column_id]
            candidates = exact or candidates
        if not candidates:
            return False

        entry = candidates[0]
        entry.column_id = new_column_id
        entry.updated_at = now_iso()
        self.replace(item_type, document)
        return True

    def lookup(self, item_type: str, item_id: str) -> list[IndexEntry]:
        """Every location that references item_id; empty if none."""
        return list(self.load(item_type).get(item_id, []))
