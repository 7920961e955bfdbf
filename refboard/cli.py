#!/usr/bin/env python3
"""kanban CLI entrypoint."""

import argparse
import logging
import sys
from pathlib import Path

from refboard.lib.config import ConfigError, find_project_root, load_config
from refboard.lib.constants import BOARD_TYPES, ITEM_TYPES, PRIORITIES
from refboard.lib.locking import LockTimeout
from refboard.lib.validate import ValidationError
from refboard.store import KanbanError, ReferenceEngine
from refboard.commands import boards as cmd_boards_module
from refboard.commands import refs as cmd_refs_module
from refboard.commands import maintenance as cmd_maintenance_module

logger = logging.getLogger(__name__)


def get_config(args):
    """Load kanban.yaml from --root, or from the nearest project root."""
    project_root = Path(args.root).resolve() if args.root else find_project_root()
    return load_config(project_root)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='kanban', description='Reference-based kanban boards')
    parser.add_argument('--root', '-r', help='Project root (default: nearest dir with kanban.yaml)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # kanban create-board
    p_create = subparsers.add_parser('create-board', aliases=['new-board'], help='Create a new board')
    p_create.add_argument('id', help='Board ID (e.g., demo-backend)')
    p_create.add_argument('name', help='Board display name')
    p_create.add_argument('--type', '-t', choices=BOARD_TYPES, help='Board type (default from kanban.yaml)')
    p_create.add_argument('--meta', '-m', action='append', metavar='KEY=VALUE', help='Board metadata')
    p_create.set_defaults(func=cmd_boards_module.cmd_create_board)

    # kanban list-boards
    p_list = subparsers.add_parser('list-boards', aliases=['boards'], help='List all boards')
    p_list.set_defaults(func=cmd_boards_module.cmd_list_boards)

    # kanban show-board
    p_show = subparsers.add_parser('show-board', aliases=['show'], help='Show board details')
    p_show.add_argument('id', help='Board ID')
    p_show.set_defaults(func=cmd_boards_module.cmd_show_board)

    # kanban delete-board
    p_delete = subparsers.add_parser('delete-board', help='Delete a board')
    p_delete.add_argument('id', help='Board ID')
    p_delete.set_defaults(func=cmd_boards_module.cmd_delete_board)

    # kanban add
    p_add = subparsers.add_parser('add', aliases=['add-item'], help='Add item to board')
    p_add.add_argument('item_type', choices=ITEM_TYPES, help='Item type')
    p_add.add_argument('item_id', help='Item ID (e.g., REQ-AUTH-001)')
    p_add.add_argument('board', help='Board ID')
    p_add.add_argument('--column', '-c', help='Column ID (default from kanban.yaml)')
    p_add.add_argument('--priority', choices=PRIORITIES, help='Priority (default: medium)')
    p_add.add_argument('--assignee', '-a', help='Assignee')
    p_add.add_argument('--status', '-s', help='Status (default: pending)')
    p_add.add_argument('--added-by', help='Attribution (default: system)')
    p_add.set_defaults(func=cmd_refs_module.cmd_add)

    # kanban remove
    p_remove = subparsers.add_parser('remove', aliases=['remove-item'], help='Remove item from board')
    p_remove.add_argument('item_type', choices=ITEM_TYPES, help='Item type')
    p_remove.add_argument('item_id', help='Item ID')
    p_remove.add_argument('board', help='Board ID')
    p_remove.add_argument('--column', '-c', help='Only remove from this column')
    p_remove.set_defaults(func=cmd_refs_module.cmd_remove)

    # kanban move
    p_move = subparsers.add_parser('move', help='Move item between columns')
    p_move.add_argument('item_id', help='Item ID')
    p_move.add_argument('board', help='Board ID')
    p_move.add_argument('from_column', help='Source column ID')
    p_move.add_argument('to_column', help='Destination column ID')
    p_move.set_defaults(func=cmd_refs_module.cmd_move)

    # kanban references
    p_refs = subparsers.add_parser('references', aliases=['where'], help='Show where item is referenced')
    p_refs.add_argument('item_type', choices=ITEM_TYPES, help='Item type')
    p_refs.add_argument('item_id', help='Item ID')
    p_refs.set_defaults(func=cmd_refs_module.cmd_references)

    # kanban validate
    p_validate = subparsers.add_parser('validate', help='Validate all references')
    p_validate.set_defaults(func=cmd_maintenance_module.cmd_validate)

    # kanban cleanup
    p_cleanup = subparsers.add_parser('cleanup', help='Clean up orphaned references')
    p_cleanup.set_defaults(func=cmd_maintenance_module.cmd_cleanup)

    # kanban rebuild
    p_rebuild = subparsers.add_parser('rebuild', help='Rebuild reference index from boards')
    p_rebuild.set_defaults(func=cmd_maintenance_module.cmd_rebuild)

    # kanban reconcile
    p_reconcile = subparsers.add_parser('reconcile', help='Check index against boards')
    p_reconcile.add_argument('--repair', action='store_true', help='Rebuild the index if drift is found')
    p_reconcile.set_defaults(func=cmd_maintenance_module.cmd_reconcile)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = get_config(args)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    engine = ReferenceEngine.from_config(config, lock=True)

    try:
        return args.func(args, engine, config)
    except (KanbanError, ValidationError, ValueError, LockTimeout) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
