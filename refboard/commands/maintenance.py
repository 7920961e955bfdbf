"""
kanban validate / cleanup / rebuild / reconcile - index integrity commands.
"""

from refboard.lib.config import KanbanConfig
from refboard.store import ReferenceEngine


def cmd_validate(args, engine: ReferenceEngine, config: KanbanConfig) -> int:
    """Report structurally malformed item references."""
    issues = engine.validate_references()
    if not issues:
        print("All references are valid")
        return 0

    print(f"Found {len(issues)} issue(s):")
    for issue in issues:
        print(f"  Board {issue.board}, Column {issue.column}: {issue.issue}")
    return 1


def cmd_cleanup(args, engine: ReferenceEngine, config: KanbanConfig) -> int:
    """Drop index entries pointing at deleted boards."""
    cleaned = engine.cleanup_orphaned_references()
    print(f"Cleaned up {cleaned} orphaned reference(s)")
    return 0


def cmd_rebuild(args, engine: ReferenceEngine, config: KanbanConfig) -> int:
    """Rebuild the reference index from the boards."""
    report = engine.rebuild_index()
    types = ", ".join(report.types) or "none"
    print(f"Rebuilt index: {report.entries} entr(ies) for {types}")
    if report.removed_types:
        print(f"  Removed empty index: {', '.join(report.removed_types)}")
    return 0


def cmd_reconcile(args, engine: ReferenceEngine, config: KanbanConfig) -> int:
    """Compare boards and index in both directions."""
    report = engine.reconcile_references(repair=args.repair)
    if report.consistent:
        print("Index is consistent with boards")
        return 0

    for drift in report.missing:
        print(f"  MISSING  {drift.item_type} {drift.item_id} at {drift.board_id}/{drift.column_id}")
    for drift in report.stale:
        print(f"  STALE    {drift.item_type} {drift.item_id} at {drift.board_id}/{drift.column_id}")
    for item_type in report.unreadable_types:
        print(f"  UNREADABLE  {item_type} index")
    print(f"{len(report.missing)} missing, {len(report.stale)} stale")

    if report.repaired:
        print("Index rebuilt from boards")
        return 0
    print("Run 'kanban reconcile --repair' to rebuild the index")
    return 1
