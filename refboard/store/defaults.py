"""Default column presets per board type."""

from typing import Optional

from refboard.store.models import Column

# Ordered by workflow sequence.
DEFAULT_COLUMNS: dict[str, list[tuple[str, str]]] = {
    "project": [
        ("planning", "Planning"),
        ("in-progress", "In Progress"),
        ("testing", "Testing"),
        ("done", "Done"),
    ],
    "sprint": [
        ("todo", "To Do"),
        ("doing", "Doing"),
        ("done", "Done"),
    ],
    "team": [
        ("backlog", "Backlog"),
        ("assigned", "Assigned"),
        ("in-review", "In Review"),
        ("completed", "Completed"),
    ],
    "epic": [
        ("requirements-planning", "Requirements Planning"),
        ("in-development", "In Development"),
        ("testing", "Testing"),
        ("complete", "Complete"),
    ],
    "business-plan": [
        ("planning", "Planning"),
        ("in-progress", "In Progress"),
        ("demo-ready", "Demo Ready"),
        ("validated", "Validated"),
    ],
}


def get_default_columns(
    board_type: str,
    overrides: Optional[dict[str, list[dict]]] = None,
) -> list[Column]:
    """Fresh, empty columns for a board type.

    Unknown types fall back to the project preset. overrides (from
    kanban.yaml board_types) replaces the built-in preset for a type.
    """
    if overrides and board_type in overrides:
        return [Column(id=c["id"], name=c.get("name", c["id"])) for c in overrides[board_type]]

    preset = DEFAULT_COLUMNS.get(board_type, DEFAULT_COLUMNS["project"])
    return [Column(id=column_id, name=name) for column_id, name in preset]
