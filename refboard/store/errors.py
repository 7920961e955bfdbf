"""Error kinds raised by the kanban store.

Every error carries the identifiers involved so callers can render them.
"""

from typing import Optional


class KanbanError(Exception):
    """Base class for store errors."""


class AlreadyExists(KanbanError):
    """A board with this ID already exists."""

    def __init__(self, board_id: str):
        self.board_id = board_id
        super().__init__(f"Board {board_id} already exists")


class NotFound(KanbanError):
    """A board, column or item reference is absent."""

    def __init__(
        self,
        message: str,
        board_id: Optional[str] = None,
        column_id: Optional[str] = None,
        item_type: Optional[str] = None,
        item_id: Optional[str] = None,
    ):
        self.board_id = board_id
        self.column_id = column_id
        self.item_type = item_type
        self.item_id = item_id
        super().__init__(message)

    @classmethod
    def board(cls, board_id: str) -> "NotFound":
        return cls(f"Board {board_id} not found", board_id=board_id)


class ColumnNotFound(NotFound):
    """The column is not present on an otherwise valid board."""

    def __init__(self, board_id: str, column_id: str):
        super().__init__(
            f"Column {column_id} not found in board {board_id}",
            board_id=board_id,
            column_id=column_id,
        )


class DuplicateReference(KanbanError):
    """The (type, id) pair is already in the target column."""

    def __init__(self, item_type: str, item_id: str, board_id: str, column_id: str):
        self.item_type = item_type
        self.item_id = item_id
        self.board_id = board_id
        self.column_id = column_id
        super().__init__(
            f"Item {item_type} {item_id} already exists in column {column_id} of board {board_id}"
        )


class InvalidBoardId(ValueError):
    """Board ID is not a safe file name slug."""


class InvalidItemType(ValueError):
    """Item type is not one of the known reference types."""
