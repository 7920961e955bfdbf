"""Tests for index integrity: validate, cleanup, rebuild and reconcile."""

import json
import logging

import pytest

from refboard.lib.validate import ValidationError
from refboard.store import ReferenceEngine


@pytest.fixture
def engine(tmp_path):
    return ReferenceEngine(tmp_path / "kanban")


def _edit_board(engine, board_id, fn):
    """Hand-edit a board document behind the engine's back."""
    path = engine.boards.path_for(board_id)
    data = json.loads(path.read_text())
    fn(data)
    path.write_text(json.dumps(data))


def _locations(engine, item_type, item_id):
    return sorted((e.board_id, e.column_id) for e in engine.get_referencing_boards(item_type, item_id))


class TestValidateReferences:
    """Test ReferenceEngine.validate_references."""

    def test_clean_store(self, engine):
        engine.create_board("demo", "Demo")
        engine.add_reference("task", "T-1", "demo", "planning")
        assert engine.validate_references() == []

    def test_reports_missing_id_and_type(self, engine):
        engine.create_board("demo", "Demo")
        _edit_board(engine, "demo", lambda d: d["columns"][1]["items"].extend([
            {"type": "task"},
            {"id": "T-2"},
        ]))

        issues = engine.validate_references()

        assert [(i.board, i.column, i.item, i.issue) for i in issues] == [
            ("demo", "in-progress", None, "Missing id or type"),
            ("demo", "in-progress", "T-2", "Missing id or type"),
        ]
        assert all(i.kind == "invalid_reference" for i in issues)


class TestCleanupOrphanedReferences:
    """Test ReferenceEngine.cleanup_orphaned_references."""

    def test_removes_entries_for_missing_boards(self, engine):
        engine.create_board("keep", "Keep")
        engine.create_board("gone", "Gone")
        engine.add_reference("task", "T-1", "keep", "planning")
        engine.add_reference("task", "T-1", "gone", "planning")
        engine.add_reference("epic", "E-1", "gone", "done")
        # Simulate a crash mid-delete: board file removed, index untouched
        engine.boards.delete_board("gone")

        assert engine.cleanup_orphaned_references() == 2

        assert _locations(engine, "task", "T-1") == [("keep", "planning")]
        assert engine.get_referencing_boards("epic", "E-1") == []
        assert "E-1" not in json.loads(engine.index.path_for("epic").read_text())

    def test_idempotent(self, engine):
        engine.create_board("gone", "Gone")
        engine.add_reference("task", "T-1", "gone", "planning")
        engine.boards.delete_board("gone")

        assert engine.cleanup_orphaned_references() == 1
        assert engine.cleanup_orphaned_references() == 0

    def test_empty_store(self, engine):
        assert engine.cleanup_orphaned_references() == 0

    def test_does_not_repair_missing_entries(self, engine):
        """Only the index -> board direction is repaired."""
        engine.create_board("demo", "Demo")
        engine.add_reference("task", "T-1", "demo", "planning")
        engine.index.remove_document("task")

        assert engine.cleanup_orphaned_references() == 0
        assert engine.get_referencing_boards("task", "T-1") == []


class TestRebuildIndex:
    """Test ReferenceEngine.rebuild_index."""

    def test_rebuilds_missing_documents(self, engine):
        engine.create_board("a", "A")
        engine.create_board("b", "B", "sprint")
        engine.add_reference("task", "T-1", "a", "planning")
        engine.add_reference("task", "T-1", "b", "todo")
        engine.add_reference("requirement", "REQ-1", "a", "done")
        for item_type in engine.index.item_types():
            engine.index.remove_document(item_type)

        report = engine.rebuild_index()

        assert report.types == ["requirement", "task"]
        assert report.entries == 3
        assert _locations(engine, "task", "T-1") == [("a", "planning"), ("b", "todo")]
        assert _locations(engine, "requirement", "REQ-1") == [("a", "done")]

    def test_drops_stale_entries_and_empty_types(self, engine):
        engine.create_board("a", "A")
        engine.add_reference("task", "T-1", "a", "planning")
        engine.index.record_reference("epic", "E-9", "a", "done")
        engine.index.record_reference("task", "T-1", "deleted", "planning")

        report = engine.rebuild_index()

        assert report.removed_types == ["epic"]
        assert not engine.index.path_for("epic").exists()
        assert _locations(engine, "task", "T-1") == [("a", "planning")]

    def test_keeps_existing_timestamps(self, engine):
        engine.create_board("a", "A")
        engine.add_reference("task", "T-1", "a", "planning")
        engine.move_reference("T-1", "a", "planning", "done")
        before = engine.get_referencing_boards("task", "T-1")[0]

        engine.rebuild_index()

        after = engine.get_referencing_boards("task", "T-1")[0]
        assert after == before

    def test_preserves_entries_of_unreadable_boards(self, engine, caplog):
        caplog.set_level(logging.WARNING)
        engine.create_board("a", "A")
        engine.create_board("b", "B")
        engine.add_reference("task", "T-1", "a", "planning")
        engine.add_reference("task", "T-1", "b", "planning")
        engine.boards.path_for("b").write_text("{broken")

        engine.rebuild_index()

        assert _locations(engine, "task", "T-1") == [("a", "planning"), ("b", "planning")]
        assert "Skipping unreadable board b" in caplog.text

    def test_skips_malformed_items(self, engine):
        engine.create_board("a", "A")
        _edit_board(engine, "a", lambda d: d["columns"][0]["items"].append({"type": "task"}))

        report = engine.rebuild_index()

        assert report.entries == 0
        assert report.types == []

    @pytest.mark.parametrize("content", [
        "{not json",
        json.dumps({"REQ-1": [{"x": 1}]}),
        json.dumps({"REQ-1": "a"}),
    ])
    def test_rewrites_unreadable_index_document(self, engine, caplog, content):
        caplog.set_level(logging.WARNING)
        engine.create_board("a", "A")
        engine.add_reference("requirement", "REQ-1", "a", "planning")
        engine.index.path_for("requirement").write_text(content)

        report = engine.rebuild_index()

        assert report.types == ["requirement"]
        assert _locations(engine, "requirement", "REQ-1") == [("a", "planning")]
        assert "Treating unreadable requirement index as empty" in caplog.text

    def test_removes_unreadable_index_with_no_items(self, engine):
        engine.create_board("a", "A")
        engine.index.references_dir.mkdir(parents=True)
        engine.index.path_for("epic").write_text("{not json")

        report = engine.rebuild_index()

        assert report.removed_types == ["epic"]
        assert not engine.index.path_for("epic").exists()


class TestReconcileReferences:
    """Test ReferenceEngine.reconcile_references."""

    def test_consistent_store(self, engine):
        engine.create_board("a", "A")
        engine.add_reference("task", "T-1", "a", "planning")
        engine.move_reference("T-1", "a", "planning", "done")

        report = engine.reconcile_references()

        assert report.consistent
        assert not report.repaired

    def test_reports_missing_and_stale(self, engine, caplog):
        caplog.set_level(logging.WARNING)
        engine.create_board("a", "A")
        engine.add_reference("task", "T-1", "a", "planning")
        # Board gains an item the index never heard of
        _edit_board(engine, "a", lambda d: d["columns"][3]["items"].append({
            "type": "epic", "id": "E-1", "addedToColumn": "2026-01-01T00:00:00",
        }))
        # Index points at a column that no longer holds the item
        engine.index.record_reference("task", "T-1", "a", "testing")

        report = engine.reconcile_references()

        assert [(d.item_type, d.item_id, d.board_id, d.column_id) for d in report.missing] == [
            ("epic", "E-1", "a", "done"),
        ]
        assert [(d.item_type, d.item_id, d.board_id, d.column_id) for d in report.stale] == [
            ("task", "T-1", "a", "testing"),
        ]
        assert not report.repaired
        assert "Index drift: 1 missing, 1 stale" in caplog.text
        # Report only: nothing was rewritten
        assert engine.get_referencing_boards("epic", "E-1") == []

    def test_stale_entries_for_deleted_board(self, engine):
        engine.create_board("gone", "Gone")
        engine.add_reference("task", "T-1", "gone", "planning")
        engine.boards.delete_board("gone")

        report = engine.reconcile_references()

        assert [d.board_id for d in report.stale] == ["gone"]

    def test_repair_rebuilds(self, engine):
        engine.create_board("a", "A")
        engine.add_reference("task", "T-1", "a", "planning")
        engine.index.remove_document("task")

        report = engine.reconcile_references(repair=True)

        assert report.repaired
        assert _locations(engine, "task", "T-1") == [("a", "planning")]
        assert engine.reconcile_references().consistent

    def test_reports_and_repairs_unreadable_index(self, engine):
        engine.create_board("a", "A")
        engine.add_reference("task", "T-1", "a", "planning")
        engine.index.path_for("task").write_text("{not json")

        report = engine.reconcile_references(repair=True)

        assert report.unreadable_types == ["task"]
        assert [(d.item_id, d.column_id) for d in report.missing] == [("T-1", "planning")]
        assert report.repaired
        assert engine.reconcile_references().consistent


class TestMalformedItemBlocksWrites:
    """A board holding a malformed item cannot be changed until it is fixed."""

    def test_error_names_the_malformed_item(self, engine):
        engine.create_board("demo", "Demo")
        _edit_board(engine, "demo", lambda d: d["columns"][1]["items"].append({"id": "T-2"}))

        with pytest.raises(ValidationError, match="malformed item in column in-progress") as exc:
            engine.add_reference("task", "T-1", "demo", "planning")

        assert "id='T-2'" in str(exc.value)
        assert engine.get_referencing_boards("task", "T-1") == []

    def test_writes_resume_once_fixed(self, engine):
        engine.create_board("demo", "Demo")
        _edit_board(engine, "demo", lambda d: d["columns"][1]["items"].append({"id": "T-2"}))
        _edit_board(engine, "demo", lambda d: d["columns"][1]["items"].clear())

        engine.add_reference("task", "T-1", "demo", "planning")

        assert _locations(engine, "task", "T-1") == [("demo", "planning")]
