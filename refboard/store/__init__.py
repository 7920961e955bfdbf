"""
Board and reference store.

Boards live as JSON documents under <kanban_dir>/boards/. A per-type reverse
index under <kanban_dir>/references/ answers "which boards reference item X".
ReferenceEngine is the entry point; it keeps the two consistent.
"""

from refboard.store.models import (
    Board,
    BoardItem,
    Column,
    IndexEntry,
    ItemReference,
    ReconcileReport,
    RebuildReport,
    ReferenceIssue,
)
from refboard.store.errors import (
    AlreadyExists,
    ColumnNotFound,
    DuplicateReference,
    InvalidBoardId,
    InvalidItemType,
    KanbanError,
    NotFound,
)
from refboard.store.boards import BoardStore
from refboard.store.index import ReferenceIndex
from refboard.store.engine import ReferenceEngine
from refboard.store.defaults import get_default_columns

__all__ = [
    "Board",
    "BoardItem",
    "Column",
    "IndexEntry",
    "ItemReference",
    "ReconcileReport",
    "RebuildReport",
    "ReferenceIssue",
    "AlreadyExists",
    "ColumnNotFound",
    "DuplicateReference",
    "InvalidBoardId",
    "InvalidItemType",
    "KanbanError",
    "NotFound",
    "BoardStore",
    "ReferenceIndex",
    "ReferenceEngine",
    "get_default_columns",
]
