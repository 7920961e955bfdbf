"""
Board Store: one JSON document per board.

Boards are stored in:
  <kanban_dir>/boards/<boardId>.json

The board documents are the source of truth; the reference index is derived
from them.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional, Union

from refboard.lib.constants import BOARD_ID_PATTERN, BOARDS_SUBDIR, MAX_BOARD_ID_LEN
from refboard.lib.fs import write_json
from refboard.lib.validate import ValidationError, load_json, validate_before_write
from refboard.store.defaults import get_default_columns
from refboard.store.errors import AlreadyExists, InvalidBoardId, NotFound
from refboard.store.models import Board, Column, now_iso

logger = logging.getLogger(__name__)

ColumnSpec = Union[Column, dict]


def validate_board_id(board_id: str) -> None:
    """Raise InvalidBoardId unless board_id is a safe file name slug."""
    if not isinstance(board_id, str) or not BOARD_ID_PATTERN.match(board_id):
        raise InvalidBoardId(
            f"Invalid board ID '{board_id}': use letters, digits, '.', '_' or '-', "
            "starting with a letter or digit"
        )
    if len(board_id) > MAX_BOARD_ID_LEN:
        raise InvalidBoardId(f"Board ID '{board_id}' is longer than {MAX_BOARD_ID_LEN} characters")


def normalize_columns(columns: Iterable[ColumnSpec]) -> list[Column]:
    """Turn caller-supplied column specs into fresh, empty columns.

    Accepts Column objects or {"id", "name"} dicts. Items in a column dict are
    dropped: a new board never starts with references it has not indexed.
    """
    result = []
    seen = set()
    for entry in columns:
        if isinstance(entry, Column):
            column_id, name = entry.id, entry.name
        else:
            column_id, name = entry.get("id"), entry.get("name")
        if not column_id:
            raise ValueError("Every column needs a non-empty id")
        if column_id in seen:
            raise ValueError(f"Duplicate column id '{column_id}'")
        seen.add(column_id)
        result.append(Column(id=column_id, name=name or column_id))
    return result


class BoardStore:
    """Create/read/update/delete of whole board documents, keyed by boardId."""

    def __init__(self, kanban_dir: Path, column_presets: Optional[dict[str, list[dict]]] = None):
        self.kanban_dir = Path(kanban_dir)
        self.boards_dir = self.kanban_dir / BOARDS_SUBDIR
        self.column_presets = column_presets or {}

    def path_for(self, board_id: str) -> Path:
        validate_board_id(board_id)
        return self.boards_dir / f"{board_id}.json"

    def list_ids(self) -> list[str]:
        """IDs of every persisted board, sorted."""
        if not self.boards_dir.exists():
            return []
        return sorted(p.stem for p in self.boards_dir.glob("*.json"))

    def exists(self, board_id: str) -> bool:
        return self.path_for(board_id).exists()

    def create_board(
        self,
        board_id: str,
        name: str,
        board_type: str = "project",
        columns: Optional[Iterable[ColumnSpec]] = None,
        metadata: Optional[dict] = None,
    ) -> Board:
        """Create and persist a new board.

        Args:
            board_id: Unique slug, also the file name
            name: Display name
            board_type: project, sprint, team, epic or business-plan
            columns: Explicit columns; defaults to the preset for board_type
            metadata: Opaque caller data

        Raises:
            AlreadyExists: If board_id is taken
        """
        if self.exists(board_id):
            raise AlreadyExists(board_id)

        if columns is not None:
            board_columns = normalize_columns(columns)
        else:
            board_columns = get_default_columns(board_type, self.column_presets)

        now = now_iso()
        board = Board(
            board_id=board_id,
            name=name,
            type=board_type,
            created=now,
            last_updated=now,
            metadata=dict(metadata or {}),
            columns=board_columns,
        )
        self._write(board)
        logger.info(f"Created board {board_id} ({board_type}) with {len(board_columns)} columns")
        return board

    def get_board(self, board_id: str) -> Board:
        """Load a board.

        Raises:
            NotFound: If the board does not exist
            ValidationError: If the document is not valid JSON or not board-shaped
        """
        path = self.path_for(board_id)
        if not path.exists():
            raise NotFound.board(board_id)
        logger.debug(f"Reading board {path}")
        data = load_json(path, "board")
        try:
            return Board.from_dict(data)
        except KeyError as e:
            raise ValidationError("board", f"Missing field {e} in {path}") from None
        except (TypeError, AttributeError) as e:
            raise ValidationError("board", f"Malformed board {path} ({e})") from None

    def get_all_boards(self) -> list[Board]:
        """Every readable board, in list_ids order. Corrupt documents are skipped."""
        boards = []
        for board_id in self.list_ids():
            try:
                boards.append(self.get_board(board_id))
            except (ValidationError, ValueError) as e:
                logger.warning(f"Skipping unreadable board {board_id}: {e}")
        return boards

    def save_board(self, board: Board) -> None:
        """Overwrite the board document. Caller must have stamped last_updated."""
        self._write(board)

    def delete_board(self, board_id: str) -> None:
        """Remove the board document. Does not touch the reference index.

        Raises:
            NotFound: If the board does not exist
        """
        path = self.path_for(board_id)
        if not path.exists():
            raise NotFound.board(board_id)
        path.unlink()
        logger.debug(f"Removed {path}")

    def _write(self, board: Board) -> None:
        path = self.path_for(board.board_id)
        data = board.to_dict()
        validate_before_write(data, "board", path)
        write_json(path, data)
