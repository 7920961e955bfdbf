"""Tests for refboard.store.boards module."""

import json
import logging

import pytest

from refboard.lib.validate import ValidationError
from refboard.store.boards import BoardStore, normalize_columns, validate_board_id
from refboard.store.errors import AlreadyExists, InvalidBoardId, NotFound
from refboard.store.models import Column


@pytest.fixture
def store(tmp_path):
    return BoardStore(tmp_path / "kanban")


class TestCreateBoard:
    """Test BoardStore.create_board."""

    def test_creates_document_with_default_columns(self, store):
        """Should persist a board using the type's preset columns."""
        board = store.create_board("demo", "Demo", "project")

        path = store.boards_dir / "demo.json"
        assert path.exists()
        data = json.loads(path.read_text())
        assert data["boardId"] == "demo"
        assert data["name"] == "Demo"
        assert data["type"] == "project"
        assert data["metadata"] == {}
        assert [c["id"] for c in data["columns"]] == ["planning", "in-progress", "testing", "done"]
        assert all(c["items"] == [] for c in data["columns"])
        assert board.created == board.last_updated

    def test_explicit_columns_override_preset(self, store):
        """Should use caller columns in the given order."""
        board = store.create_board(
            "custom", "Custom", "sprint",
            columns=[{"id": "b", "name": "Bee"}, Column(id="a", name="Ay")],
        )
        assert [(c.id, c.name) for c in board.columns] == [("b", "Bee"), ("a", "Ay")]

    def test_metadata_is_stored(self, store):
        store.create_board("meta", "Meta", metadata={"owner": "platform"})
        assert store.get_board("meta").metadata == {"owner": "platform"}

    def test_duplicate_id_raises_already_exists(self, store):
        """Should refuse to overwrite an existing board."""
        store.create_board("demo", "Demo")
        with pytest.raises(AlreadyExists) as exc:
            store.create_board("demo", "Other")
        assert exc.value.board_id == "demo"
        assert store.get_board("demo").name == "Demo"

    def test_invalid_board_id_rejected(self, store):
        with pytest.raises(InvalidBoardId):
            store.create_board("../escape", "Nope")

    def test_unknown_board_type_rejected_by_schema(self, store):
        """Board type is part of the schema; nothing is written."""
        with pytest.raises(ValidationError):
            store.create_board("odd", "Odd", "roadmap")
        assert not (store.boards_dir / "odd.json").exists()

    def test_preset_overrides_from_config(self, tmp_path):
        store = BoardStore(tmp_path, column_presets={"team": [{"id": "inbox", "name": "Inbox"}]})
        board = store.create_board("t", "Team", "team")
        assert [c.id for c in board.columns] == ["inbox"]


class TestGetBoard:
    """Test BoardStore.get_board."""

    def test_missing_board_raises_not_found(self, store):
        with pytest.raises(NotFound) as exc:
            store.get_board("ghost")
        assert exc.value.board_id == "ghost"

    def test_column_order_preserved(self, store):
        store.create_board("s", "Sprint", "sprint")
        assert [c.id for c in store.get_board("s").columns] == ["todo", "doing", "done"]

    def test_invalid_json_raises_validation_error(self, store):
        store.boards_dir.mkdir(parents=True)
        (store.boards_dir / "broken.json").write_text("{not json")
        with pytest.raises(ValidationError):
            store.get_board("broken")

    def test_malformed_items_still_load(self, store):
        """Items missing id/type are loaded so they can be reported."""
        store.create_board("demo", "Demo")
        path = store.boards_dir / "demo.json"
        data = json.loads(path.read_text())
        data["columns"][0]["items"].append({"type": "task"})
        path.write_text(json.dumps(data))

        board = store.get_board("demo")
        item = board.columns[0].items[0]
        assert item.type == "task"
        assert item.id is None


class TestListAndGetAll:
    """Test BoardStore.list_ids and get_all_boards."""

    def test_empty_store(self, store):
        assert store.list_ids() == []
        assert store.get_all_boards() == []

    def test_list_ids_sorted(self, store):
        for board_id in ("zeta", "alpha", "mid"):
            store.create_board(board_id, board_id)
        assert store.list_ids() == ["alpha", "mid", "zeta"]
        assert [b.board_id for b in store.get_all_boards()] == ["alpha", "mid", "zeta"]

    def test_corrupt_board_skipped_with_warning(self, store, caplog):
        caplog.set_level(logging.WARNING)
        store.create_board("good", "Good")
        (store.boards_dir / "bad.json").write_text("[]")

        boards = store.get_all_boards()

        assert [b.board_id for b in boards] == ["good"]
        assert "Skipping unreadable board bad" in caplog.text

    @pytest.mark.parametrize("document", [
        {"boardId": "bad", "columns": [1]},
        {"boardId": "bad", "columns": None},
        {"boardId": "bad", "columns": [{"id": "c", "items": ["T-1"]}]},
    ])
    def test_misshapen_board_skipped_with_warning(self, store, caplog, document):
        """Valid JSON with the wrong structure is skipped, not raised."""
        caplog.set_level(logging.WARNING)
        store.create_board("good", "Good")
        (store.boards_dir / "bad.json").write_text(json.dumps(document))

        boards = store.get_all_boards()

        assert [b.board_id for b in boards] == ["good"]
        assert "Skipping unreadable board bad" in caplog.text

    def test_get_misshapen_board_raises_validation_error(self, store):
        store.boards_dir.mkdir(parents=True)
        (store.boards_dir / "bad.json").write_text(json.dumps({"boardId": "bad", "columns": [1]}))

        with pytest.raises(ValidationError, match="Malformed board"):
            store.get_board("bad")


class TestSaveAndDelete:
    """Test BoardStore.save_board and delete_board."""

    def test_save_overwrites(self, store):
        board = store.create_board("demo", "Demo")
        board.name = "Renamed"
        board.touch()
        store.save_board(board)
        assert store.get_board("demo").name == "Renamed"

    def test_save_leaves_no_temp_files(self, store):
        board = store.create_board("demo", "Demo")
        store.save_board(board)
        assert [p.name for p in store.boards_dir.iterdir()] == ["demo.json"]

    def test_delete_removes_document(self, store):
        store.create_board("demo", "Demo")
        store.delete_board("demo")
        assert not store.exists("demo")
        assert store.list_ids() == []

    def test_delete_missing_raises_not_found(self, store):
        with pytest.raises(NotFound):
            store.delete_board("ghost")


class TestHelpers:
    """Test validate_board_id and normalize_columns."""

    @pytest.mark.parametrize("board_id", ["demo", "sprint-1", "Q3.plan", "a_b"])
    def test_valid_ids(self, board_id):
        validate_board_id(board_id)

    @pytest.mark.parametrize("board_id", ["", "-lead", "has space", "a/b", "x" * 65])
    def test_invalid_ids(self, board_id):
        with pytest.raises(InvalidBoardId):
            validate_board_id(board_id)

    def test_normalize_drops_items(self):
        columns = normalize_columns([{"id": "a", "name": "A", "items": [{"id": "x"}]}])
        assert columns[0].items == []

    def test_normalize_rejects_duplicate_ids(self):
        with pytest.raises(ValueError, match="Duplicate column id 'a'"):
            normalize_columns([{"id": "a"}, {"id": "a"}])

    def test_normalize_rejects_missing_id(self):
        with pytest.raises(ValueError):
            normalize_columns([{"name": "No id"}])
