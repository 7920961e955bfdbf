"""
Reference Engine: keeps boards and the reference index consistent.

Every mutation commits the board document first and the index second. The
board is the source of truth; if a process dies between the two writes the
index is stale, never the board. There is no rollback: cleanup_orphaned_references,
reconcile_references and rebuild_index are the recovery path.
"""

import logging
from contextlib import contextmanager, nullcontext
from pathlib import Path
from typing import Iterable, Optional

from refboard.lib.config import KanbanConfig
from refboard.lib.constants import (
    DEFAULT_ADDED_BY,
    DEFAULT_PRIORITY,
    DEFAULT_STATUS,
    ITEM_TYPES,
    PRIORITIES,
)
from refboard.lib.locking import store_lock
from refboard.lib.validate import ValidationError
from refboard.store.boards import BoardStore, ColumnSpec
from refboard.store.errors import ColumnNotFound, DuplicateReference, NotFound
from refboard.store.index import IndexDocument, ReferenceIndex, validate_item_type
from refboard.store.models import (
    Board,
    BoardItem,
    BoardSummary,
    IndexDrift,
    IndexEntry,
    ItemReference,
    ReconcileReport,
    RebuildReport,
    ReferenceIssue,
    now_iso,
)

logger = logging.getLogger(__name__)


class ReferenceEngine:
    """The API callers use for boards and item references."""

    def __init__(
        self,
        kanban_dir: Path,
        column_presets: Optional[dict[str, list[dict]]] = None,
        lock: bool = False,
        lock_timeout: float = 30,
    ):
        self.kanban_dir = Path(kanban_dir)
        self.boards = BoardStore(self.kanban_dir, column_presets)
        self.index = ReferenceIndex(self.kanban_dir)
        self.lock = lock
        self.lock_timeout = lock_timeout

    @classmethod
    def from_config(cls, config: KanbanConfig, lock: bool = True) -> "ReferenceEngine":
        return cls(
            config.kanban_dir,
            column_presets=config.board_types,
            lock=lock,
            lock_timeout=config.lock_timeout,
        )

    @contextmanager
    def _mutation(self):
        guard = store_lock(self.kanban_dir, self.lock_timeout) if self.lock else nullcontext()
        with guard:
            yield

    def _save(self, board: Board) -> None:
        """Save a board, naming any malformed item that blocks the write."""
        for column in board.columns:
            for item in column.items:
                if _malformed(item):
                    raise ValidationError(
                        "board",
                        f"Board {board.board_id} holds a malformed item in column {column.id} "
                        f"(type={item.type!r}, id={item.id!r}); fix or remove it by hand "
                        "before changing this board",
                    )
        self.boards.save_board(board)

    # ------------------------------------------------------------------
    # Boards
    # ------------------------------------------------------------------

    def create_board(
        self,
        board_id: str,
        name: str,
        board_type: str = "project",
        columns: Optional[Iterable[ColumnSpec]] = None,
        metadata: Optional[dict] = None,
    ) -> Board:
        with self._mutation():
            return self.boards.create_board(board_id, name, board_type, columns, metadata)

    def get_board(self, board_id: str) -> Board:
        return self.boards.get_board(board_id)

    def get_all_boards(self) -> list[Board]:
        return self.boards.get_all_boards()

    def get_board_summary(self, board_id: str) -> BoardSummary:
        board = self.boards.get_board(board_id)
        return _summarize(board)

    def get_board_summaries(self) -> list[BoardSummary]:
        return [_summarize(b) for b in self.boards.get_all_boards()]

    def delete_board(self, board_id: str) -> int:
        """Delete a board and every index entry pointing at it.

        Index entries are cleared before the board file is removed. A crash
        in between leaves a board whose items are missing from the index,
        which reconcile_references reports and rebuild_index repairs.

        Every entry naming this board is cleared for each item it holds,
        whatever column the entry points at.

        Returns the number of index entries removed.
        """
        with self._mutation():
            board = self.boards.get_board(board_id)
            cleared = 0
            for column in board.columns:
                for item in column.items:
                    if _malformed(item):
                        logger.warning(
                            f"Skipping malformed item in {board_id}/{column.id} during delete: {item}"
                        )
                        continue
                    cleared += self.index.clear_reference(item.type, item.id, board_id)
            self.boards.delete_board(board_id)
        logger.info(f"Deleted board {board_id} ({cleared} index entries cleared)")
        return cleared

    # ------------------------------------------------------------------
    # References
    # ------------------------------------------------------------------

    def add_reference(
        self,
        item_type: str,
        item_id: str,
        board_id: str,
        column_id: str,
        metadata: Optional[dict] = None,
    ) -> ItemReference:
        """Place (item_type, item_id) at the end of a column.

        metadata keys: added_by, priority, assignee, status, custom_data.

        Raises:
            NotFound: If the board does not exist
            ColumnNotFound: If the column does not exist
            DuplicateReference: If the column already holds this item
        """
        validate_item_type(item_type)
        if not item_id:
            raise ValueError("Item ID is required")
        metadata = metadata or {}
        priority = metadata.get("priority") or DEFAULT_PRIORITY
        if priority not in PRIORITIES:
            raise ValueError(f"Invalid priority '{priority}'. Valid: {', '.join(PRIORITIES)}")

        with self._mutation():
            board = self.boards.get_board(board_id)
            column = board.get_column(column_id)
            if column is None:
                raise ColumnNotFound(board_id, column_id)
            if column.find(item_type, item_id) is not None:
                raise DuplicateReference(item_type, item_id, board_id, column_id)

            item = ItemReference(
                type=item_type,
                id=item_id,
                added_to_column=now_iso(),
                added_by=metadata.get("added_by") or DEFAULT_ADDED_BY,
                priority=priority,
                assignee=metadata.get("assignee"),
                status=metadata.get("status") or DEFAULT_STATUS,
                metadata=dict(metadata.get("custom_data") or {}),
            )
            column.items.append(item)
            board.touch()
            self._save(board)

            self.index.record_reference(item_type, item_id, board_id, column_id)

        logger.info(f"Added {item_type} {item_id} to {board_id}/{column_id}")
        return item

    def remove_reference(
        self,
        item_type: str,
        item_id: str,
        board_id: str,
        column_id: Optional[str] = None,
    ) -> list[str]:
        """Remove an item from one column, or from every column if column_id is None.

        Returns the ids of the columns it was removed from.

        Raises:
            NotFound: If the board does not exist or holds no such item
            ColumnNotFound: If column_id is given and does not exist
        """
        validate_item_type(item_type)
        with self._mutation():
            board = self.boards.get_board(board_id)
            if column_id is not None:
                column = board.get_column(column_id)
                if column is None:
                    raise ColumnNotFound(board_id, column_id)
                columns = [column]
            else:
                columns = board.columns

            removed_from = []
            for column in columns:
                kept = [i for i in column.items if i.key != (item_type, item_id)]
                if len(kept) < len(column.items):
                    column.items = kept
                    removed_from.append(column.id)

            if not removed_from:
                where = f"column {column_id} of board {board_id}" if column_id else f"board {board_id}"
                raise NotFound(
                    f"Item {item_type} {item_id} not found in {where}",
                    board_id=board_id,
                    column_id=column_id,
                    item_type=item_type,
                    item_id=item_id,
                )

            board.touch()
            self._save(board)

            self.index.clear_reference(item_type, item_id, board_id, column_id)

        logger.info(f"Removed {item_type} {item_id} from {board_id} ({', '.join(removed_from)})")
        return removed_from

    def move_reference(
        self,
        item_id: str,
        board_id: str,
        from_column_id: str,
        to_column_id: str,
    ) -> ItemReference:
        """Move an item to the end of another column of the same board.

        The first item with item_id in the source column is moved, whatever
        its type. Its addedToColumn timestamp is reset.

        Raises:
            NotFound: If the board, or the item in from_column_id, is absent
            ColumnNotFound: If either column does not exist
            DuplicateReference: If the destination already holds this item
        """
        with self._mutation():
            board = self.boards.get_board(board_id)
            from_column = board.get_column(from_column_id)
            if from_column is None:
                raise ColumnNotFound(board_id, from_column_id)

            item = from_column.find(None, item_id)
            if item is None:
                raise NotFound(
                    f"Item {item_id} not found in column {from_column_id} of board {board_id}",
                    board_id=board_id,
                    column_id=from_column_id,
                    item_id=item_id,
                )

            to_column = board.get_column(to_column_id)
            if to_column is None:
                raise ColumnNotFound(board_id, to_column_id)
            if to_column is not from_column and to_column.find(item.type, item_id) is not None:
                raise DuplicateReference(item.type, item_id, board_id, to_column_id)

            from_column.items.remove(item)
            item.added_to_column = now_iso()
            to_column.items.append(item)
            board.touch()
            self._save(board)

            if not self.index.retarget(item.type, item_id, board_id, to_column_id, from_column_id):
                logger.warning(
                    f"No index entry for {item.type} {item_id} on {board_id}; "
                    "index is stale, run reconcile"
                )

        logger.info(f"Moved {item.type} {item_id} in {board_id}: {from_column_id} -> {to_column_id}")
        return item

    def get_referencing_boards(self, item_type: str, item_id: str) -> list[IndexEntry]:
        """Where is this item referenced? Served from the index."""
        return self.index.lookup(item_type, item_id)

    def get_board_references(self, board_id: str) -> list[BoardItem]:
        """Every item on a board, in column order, annotated with its column."""
        board = self.boards.get_board(board_id)
        return [
            BoardItem(reference=item, column=column.id, column_name=column.name)
            for column in board.columns
            for item in column.items
        ]

    # ------------------------------------------------------------------
    # Integrity
    # ------------------------------------------------------------------

    def _load_index_documents(self) -> tuple[dict[str, IndexDocument], list[str]]:
        """Every index document that can be read, plus the types that cannot.

        An unreadable type maps to an empty document.
        """
        documents = {}
        unreadable = []
        for item_type in self.index.item_types():
            try:
                documents[item_type] = self.index.load(item_type)
            except ValidationError as e:
                logger.warning(f"Treating unreadable {item_type} index as empty: {e}")
                documents[item_type] = {}
                unreadable.append(item_type)
        return documents, unreadable

    def validate_references(self) -> list[ReferenceIssue]:
        """Structural check of every item on every board (missing id or type).

        A board holding such an item refuses every later write, including
        adds and removes of valid items, until the item is fixed by hand.
        """
        issues = []
        for board in self.boards.get_all_boards():
            for column in board.columns:
                for item in column.items:
                    if not item.id or not item.type:
                        issues.append(ReferenceIssue(
                            board=board.board_id,
                            column=column.id,
                            item=item.id,
                            issue="Missing id or type",
                        ))
        return issues

    def cleanup_orphaned_references(self) -> int:
        """Drop index entries whose board no longer exists.

        Returns the number of entries removed.
        """
        cleaned = 0
        with self._mutation():
            existing = set(self.boards.list_ids())
            for item_type in self.index.item_types():
                document = self.index.load(item_type)
                removed = 0
                for item_id in list(document):
                    valid = [e for e in document[item_id] if e.board_id in existing]
                    removed += len(document[item_id]) - len(valid)
                    if valid:
                        document[item_id] = valid
                    else:
                        del document[item_id]
                if removed:
                    self.index.replace(item_type, document)
                    cleaned += removed
        logger.info(f"Cleaned up {cleaned} orphaned references")
        return cleaned

    def rebuild_index(self) -> RebuildReport:
        """Rewrite every index document from the boards.

        Existing addedAt/updatedAt stamps are kept for locations that survive.
        Entries for boards that exist but cannot be read are preserved as is.
        An index document that cannot be read is rewritten from the boards.
        """
        report = RebuildReport()
        with self._mutation():
            boards = self.boards.get_all_boards()
            unreadable = set(self.boards.list_ids()) - {b.board_id for b in boards}
            previous, _ = self._load_index_documents()

            rebuilt: dict[str, IndexDocument] = {}
            for board in boards:
                for column in board.columns:
                    for item in column.items:
                        if _malformed(item):
                            logger.warning(
                                f"Skipping malformed item in {board.board_id}/{column.id} during rebuild"
                            )
                            continue
                        entry = _carry_over(previous, item, board.board_id, column.id)
                        rebuilt.setdefault(item.type, {}).setdefault(item.id, []).append(entry)

            for item_type, document in previous.items():
                for item_id, entries in document.items():
                    for entry in entries:
                        if entry.board_id in unreadable:
                            rebuilt.setdefault(item_type, {}).setdefault(item_id, []).append(entry)

            for item_type, document in sorted(rebuilt.items()):
                self.index.replace(item_type, document)
                report.types.append(item_type)
                report.entries += sum(len(v) for v in document.values())

            for item_type in previous:
                if item_type not in rebuilt and self.index.remove_document(item_type):
                    report.removed_types.append(item_type)

        logger.info(
            f"Rebuilt index: {report.entries} entries across {len(report.types)} type(s)"
        )
        return report

    def reconcile_references(self, repair: bool = False) -> ReconcileReport:
        """Compare the index with the boards in both directions.

        An index document that cannot be read counts as empty and is listed
        in unreadable_types. With repair=True, any drift found is fixed by
        rebuild_index().
        """
        boards = self.boards.get_all_boards()
        unreadable = set(self.boards.list_ids()) - {b.board_id for b in boards}

        expected = set()
        for board in boards:
            for column in board.columns:
                for item in column.items:
                    if not _malformed(item):
                        expected.add((item.type, item.id, board.board_id, column.id))

        documents, unreadable_types = self._load_index_documents()
        actual = set()
        for item_type, document in documents.items():
            for item_id, entries in document.items():
                for e in entries:
                    if e.board_id not in unreadable:
                        actual.add((item_type, item_id, e.board_id, e.column_id))

        report = ReconcileReport(
            missing=[IndexDrift(*k) for k in sorted(expected - actual)],
            stale=[IndexDrift(*k) for k in sorted(actual - expected)],
            unreadable_types=unreadable_types,
        )
        if not report.consistent:
            logger.warning(
                f"Index drift: {len(report.missing)} missing, {len(report.stale)} stale entries, "
                f"{len(unreadable_types)} unreadable index document(s)"
            )
            if repair:
                self.rebuild_index()
                report.repaired = True
        return report


def _malformed(item: ItemReference) -> bool:
    return item.type not in ITEM_TYPES or not item.id


def _summarize(board: Board) -> BoardSummary:
    return BoardSummary(
        board_id=board.board_id,
        name=board.name,
        type=board.type,
        column_counts=[(c.name, len(c.items)) for c in board.columns],
        total=board.item_count(),
    )


def _carry_over(
    previous: dict[str, IndexDocument],
    item: ItemReference,
    board_id: str,
    column_id: str,
) -> IndexEntry:
    for entry in previous.get(item.type, {}).get(item.id, []):
        if entry.board_id == board_id and entry.column_id == column_id:
            return IndexEntry(board_id, column_id, entry.added_at, entry.updated_at)
    return IndexEntry(board_id, column_id, item.added_to_column or now_iso())
