"""
kanban create-board / list-boards / show-board / delete-board
"""

from refboard.lib.config import KanbanConfig
from refboard.store import ReferenceEngine

PRIORITY_MARKS = {"high": "!!", "medium": "! ", "low": ". "}


def _parse_meta(pairs: list[str] | None) -> dict:
    meta = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Metadata must be key=value, got '{pair}'")
        meta[key] = value
    return meta


def cmd_create_board(args, engine: ReferenceEngine, config: KanbanConfig) -> int:
    """Create a new board."""
    board = engine.create_board(
        args.id,
        args.name,
        args.type or config.default_board_type,
        metadata=_parse_meta(args.meta),
    )
    print(f"Created board: {board.board_id}")
    print(f"  Name:    {board.name}")
    print(f"  Type:    {board.type}")
    print(f"  Columns: {', '.join(c.id for c in board.columns)}")
    return 0


def cmd_list_boards(args, engine: ReferenceEngine, config: KanbanConfig) -> int:
    """List all boards."""
    summaries = engine.get_board_summaries()
    if not summaries:
        print("No boards found")
        print("Create a board with: kanban create-board <id> <name>")
        return 0

    print(f"{'ID':<24} {'TYPE':<14} {'ITEMS':>5}  NAME")
    print("-" * 70)
    for s in summaries:
        print(f"{s.board_id:<24} {s.type:<14} {s.total:>5}  {s.name}")
        print(f"{'':<24} columns: {', '.join(f'{name} ({n})' for name, n in s.column_counts)}")
    print("-" * 70)
    print(f"{len(summaries)} board(s)")
    return 0


def cmd_show_board(args, engine: ReferenceEngine, config: KanbanConfig) -> int:
    """Show a board column by column."""
    board = engine.get_board(args.id)

    print(f"Board: {board.name} ({board.board_id})")
    print(f"Type: {board.type}")
    print(f"Created: {board.created}")
    print(f"Last Updated: {board.last_updated}")

    for column in board.columns:
        print()
        print(f"  {column.name} ({len(column.items)})")
        print(f"  {'-' * 50}")
        if not column.items:
            print("    (empty)")
            continue
        for item in column.items:
            mark = PRIORITY_MARKS.get(item.priority, "  ")
            assignee = f" ({item.assignee})" if item.assignee else ""
            print(f"    {mark} {item.type:<16} {item.id}{assignee}  [{item.status}]")
    return 0


def cmd_delete_board(args, engine: ReferenceEngine, config: KanbanConfig) -> int:
    """Delete a board and its index entries."""
    cleared = engine.delete_board(args.id)
    print(f"Deleted board: {args.id} ({cleared} reference(s) cleared)")
    return 0
