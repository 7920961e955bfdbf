"""Shared constants for the kanban store."""

import re

# Board ID validation (board IDs are used as file names)
BOARD_ID_PATTERN = re.compile(r'^[A-Za-z0-9][A-Za-z0-9._-]*$')
MAX_BOARD_ID_LEN = 64

BOARD_TYPES = ("project", "sprint", "team", "epic", "business-plan")
ITEM_TYPES = ("epic", "requirement", "sub-requirement", "task")
PRIORITIES = ("high", "medium", "low")

DEFAULT_ADDED_BY = "system"
DEFAULT_PRIORITY = "medium"
DEFAULT_STATUS = "pending"

BOARDS_SUBDIR = "boards"
REFERENCES_SUBDIR = "references"
REFERENCES_SUFFIX = "-references.json"
