"""
kanban add / remove / move / references
"""

from refboard.lib.config import KanbanConfig
from refboard.store import ReferenceEngine


def cmd_add(args, engine: ReferenceEngine, config: KanbanConfig) -> int:
    """Add an item reference to a board column."""
    column_id = args.column or config.default_column
    metadata = {
        "added_by": args.added_by,
        "priority": args.priority,
        "assignee": args.assignee,
        "status": args.status,
    }
    item = engine.add_reference(args.item_type, args.item_id, args.board, column_id, metadata)
    print(f"Added {item.type} {item.id} to board {args.board}")
    print(f"  Column:   {column_id}")
    print(f"  Priority: {item.priority}")
    return 0


def cmd_remove(args, engine: ReferenceEngine, config: KanbanConfig) -> int:
    """Remove an item reference from a board."""
    columns = engine.remove_reference(args.item_type, args.item_id, args.board, args.column)
    print(f"Removed {args.item_type} {args.item_id} from board {args.board} ({', '.join(columns)})")
    return 0


def cmd_move(args, engine: ReferenceEngine, config: KanbanConfig) -> int:
    """Move an item between columns of one board."""
    item = engine.move_reference(args.item_id, args.board, args.from_column, args.to_column)
    print(f"Moved {item.type} {item.id} in board {args.board}")
    print(f"  From: {args.from_column} -> To: {args.to_column}")
    return 0


def cmd_references(args, engine: ReferenceEngine, config: KanbanConfig) -> int:
    """Show every board/column that references an item."""
    entries = engine.get_referencing_boards(args.item_type, args.item_id)
    if not entries:
        print(f"No boards reference {args.item_type} {args.item_id}")
        return 0

    print(f"Boards referencing {args.item_type} {args.item_id}:")
    for entry in entries:
        print(f"  {entry.board_id}")
        print(f"    Column: {entry.column_id}")
        print(f"    Added:  {entry.added_at}")
        if entry.updated_at:
            print(f"    Moved:  {entry.updated_at}")
    return 0
