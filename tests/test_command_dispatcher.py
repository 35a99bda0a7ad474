"""
Tests for CommandDispatcher: the command API end to end.
"""

import json

import pytest

from inkreel.core.annotations import AnnotationType, Point
from inkreel.core.errors import NotFoundError, PayloadImportError, ValidationError


def draw(dispatcher, points, t=1.0, **kwargs):
    dispatcher.begin_stroke(points[0], t, **kwargs)
    for p in points[1:]:
        dispatcher.extend_stroke(p)
    return dispatcher.commit_stroke()


class TestStrokes:

    def test_commit_simplifies(self, dispatcher):
        stroke_id = draw(dispatcher, [(0.1, 0.1), (0.2, 0.1), (0.3, 0.1), (0.3, 0.2), (0.3, 0.3)])
        (stroke,) = dispatcher.list_all()
        assert stroke.id == stroke_id
        assert stroke.points == [Point(0.1, 0.1), Point(0.3, 0.1), Point(0.3, 0.3)]

    def test_defaults_applied(self, dispatcher):
        draw(dispatcher, [(0.1, 0.1), (0.2, 0.2)], t=4.0)
        (stroke,) = dispatcher.list_all()
        assert stroke.timestamp == 4.0
        assert stroke.duration == 2.0
        assert stroke.color == "#ffdd00"
        assert stroke.width == 3.0

    def test_points_clamped(self, dispatcher):
        dispatcher.begin_stroke((-0.5, 0.5), 0)
        dispatcher.extend_stroke((1.7, 0.5))
        dispatcher.commit_stroke()
        assert dispatcher.list_all()[0].points == [Point(0.0, 0.5), Point(1.0, 0.5)]

    def test_extend_keeps_arrival_order(self, dispatcher):
        dispatcher.begin_stroke((0.1, 0.1), 0)
        for p in [(0.5, 0.9), (0.9, 0.1), (0.2, 0.6)]:
            dispatcher.extend_stroke(p)
        pending = dispatcher.pending_stroke()
        assert pending.points == [Point(0.1, 0.1), Point(0.5, 0.9), Point(0.9, 0.1), Point(0.2, 0.6)]
        assert dispatcher.list_all() == []

    def test_long_zigzag_commits(self, dispatcher):
        pts = [(i / 2000, 0.5 + (0.01 if i % 2 else 0.0)) for i in range(2001)]
        stroke_id = draw(dispatcher, pts)
        (stroke,) = dispatcher.list_all()
        assert stroke.id == stroke_id
        assert stroke.points[0] == Point(0.0, 0.5)
        assert stroke.points[-1] == Point(1.0, 0.5)
        assert dispatcher.pending_stroke() is None

        dispatcher.begin_stroke((0.2, 0.2), 5)
        assert dispatcher.commit_stroke() is not None
        assert len(dispatcher.list_all()) == 2

    def test_single_point_stroke(self, dispatcher):
        dispatcher.begin_stroke((0.4, 0.4), 0)
        dispatcher.commit_stroke()
        assert dispatcher.list_all()[0].points == [Point(0.4, 0.4)]

    def test_cancel_commits(self, dispatcher):
        dispatcher.begin_stroke((0.1, 0.1), 0)
        dispatcher.extend_stroke((0.5, 0.5))
        stroke_id = dispatcher.cancel_stroke()
        assert [a.id for a in dispatcher.list_all()] == [stroke_id]
        assert dispatcher.pending_stroke() is None

    def test_begin_while_pending_commits_previous(self, dispatcher):
        first = dispatcher.begin_stroke((0.1, 0.1), 0)
        second = dispatcher.begin_stroke((0.6, 0.6), 1)
        assert [a.id for a in dispatcher.list_all()] == [first]
        assert dispatcher.pending_stroke().id == second

    def test_noops_without_pending(self, dispatcher):
        assert dispatcher.extend_stroke((0.1, 0.1)) is False
        assert dispatcher.commit_stroke() is None
        assert not dispatcher.can_undo()

    def test_invalid_begin_leaves_no_pending(self, dispatcher):
        with pytest.raises(ValidationError):
            dispatcher.begin_stroke((0.1, 0.1), 0, width=0)
        assert dispatcher.pending_stroke() is None

    def test_pending_copy_is_detached(self, dispatcher):
        dispatcher.begin_stroke((0.1, 0.1), 0)
        dispatcher.pending_stroke().points.append(Point(0.9, 0.9))
        assert len(dispatcher.pending_stroke().points) == 1


class TestText:

    def test_add_text_defaults(self, dispatcher):
        note_id = dispatcher.add_text("Look here", 3.0)
        (note,) = dispatcher.list_all()
        assert note.id == note_id
        assert note.annotation_type is AnnotationType.TEXT
        assert (note.x, note.y) == (0.5, 0.1)
        assert note.font_size is None

    def test_empty_text_refused_without_snapshot(self, dispatcher):
        with pytest.raises(ValidationError):
            dispatcher.add_text("", 0)
        assert dispatcher.list_all() == []
        assert not dispatcher.can_undo()

    def test_edit_text_and_font_size_on_primary(self, dispatcher):
        note_id = dispatcher.add_text("Hello", 0, position=(0.5, 0.5))
        assert dispatcher.select_at((0.53, 0.48), 1.0) == note_id
        dispatcher.edit_text("Changed")
        dispatcher.set_font_size(32)
        (note,) = dispatcher.list_all()
        assert note.text == "Changed"
        assert note.font_size == 32

    def test_edit_without_primary_is_noop(self, dispatcher):
        dispatcher.add_text("Hello", 0)
        assert dispatcher.edit_text("x") is None
        assert dispatcher.set_font_size(40) is None


class TestUpdate:

    def test_update_snapshots_once(self, dispatcher):
        note_id = dispatcher.add_text("Hello", 0)
        before = dispatcher.list_all()
        dispatcher.update_annotation(note_id, {"duration": 6})
        assert dispatcher.list_all()[0].duration == 6
        dispatcher.undo()
        assert dispatcher.list_all() == before

    def test_unchanged_update_records_no_history(self, dispatcher, signals):
        note_id = dispatcher.add_text("Hello", 0)
        signals.clear()
        dispatcher.update_annotation(note_id, {})
        dispatcher.update_annotation(note_id, {"text": "Hello"})
        assert len(dispatcher.session.history.undo_stack) == 1
        assert signals == []

    def test_update_missing(self, dispatcher):
        with pytest.raises(NotFoundError):
            dispatcher.update_annotation("nope", {"duration": 1})
        assert not dispatcher.can_undo()

    def test_invalid_update_changes_nothing(self, dispatcher):
        note_id = dispatcher.add_text("Hello", 0)
        undo_depth = len(dispatcher.session.history.undo_stack)
        with pytest.raises(ValidationError):
            dispatcher.update_annotation(note_id, {"duration": -1})
        assert len(dispatcher.session.history.undo_stack) == undo_depth
        assert dispatcher.list_all()[0].duration == 2.0


class TestSelectionCommands:

    def test_select_all_scenario(self, dispatcher):
        first = dispatcher.add_text("early", 0, duration=3)
        dispatcher.add_text("late", 4, duration=2)
        assert dispatcher.select_all(2) == frozenset({first})
        assert dispatcher.primary_selection() == first

    def test_select_at_miss_clears(self, dispatcher):
        dispatcher.add_text("Hello", 0, position=(0.5, 0.5))
        dispatcher.select_all(1)
        assert dispatcher.select_at((0.1, 0.9), 1) is None
        assert dispatcher.current_selection() == frozenset()

    def test_select_at_uses_frame_size(self, dispatcher):
        note_id = dispatcher.add_text("Hello", 0, position=(0.5, 0.5))
        # On a 100px-wide frame the 60px label spans most of the width
        dispatcher.set_frame_size(100, 500)
        assert dispatcher.select_at((0.9, 0.48), 1) == note_id

    def test_invalid_frame_size(self, dispatcher):
        with pytest.raises(ValueError):
            dispatcher.set_frame_size(0, 100)

    def test_drag_text_and_stroke(self, dispatcher):
        note_id = dispatcher.add_text("Hello", 0, position=(0.5, 0.5))
        stroke_id = draw(dispatcher, [(0.1, 0.1), (0.3, 0.3)], t=0)
        dispatcher.select_all(1)

        assert dispatcher.drag_selected((0.1, -0.05)) == 2
        moved = {a.id: a for a in dispatcher.list_all()}
        assert moved[note_id].x == pytest.approx(0.6)
        assert moved[note_id].y == pytest.approx(0.45)
        assert moved[stroke_id].points == [Point(pytest.approx(0.2), pytest.approx(0.05)),
                                           Point(pytest.approx(0.4), pytest.approx(0.25))]

    def test_drag_is_one_undo_step(self, dispatcher):
        dispatcher.add_text("Hello", 0, position=(0.5, 0.5))
        draw(dispatcher, [(0.1, 0.1), (0.3, 0.3)], t=0)
        dispatcher.select_all(1)
        before = dispatcher.list_all()

        dispatcher.drag_selected((0.1, 0.1))
        after = dispatcher.list_all()
        assert dispatcher.undo() is True
        assert dispatcher.list_all() == before
        assert dispatcher.redo() is True
        assert dispatcher.list_all() == after

    def test_drag_pinned_at_edge_records_no_history(self, dispatcher):
        dispatcher.add_text("Hello", 0, position=(1.0, 0.5))
        draw(dispatcher, [(0.8, 0.2), (1.0, 0.4)], t=0)
        dispatcher.select_all(1)
        undo_depth = len(dispatcher.session.history.undo_stack)
        before = dispatcher.list_all()

        assert dispatcher.drag_selected((0.2, 0.0)) == 0
        assert len(dispatcher.session.history.undo_stack) == undo_depth
        assert dispatcher.list_all() == before

    def test_drag_keeps_stroke_shape_at_edge(self, dispatcher):
        stroke_id = draw(dispatcher, [(0.7, 0.5), (0.9, 0.5)], t=0)
        dispatcher.select_all(1)
        dispatcher.drag_selected((0.5, 0.0))
        (stroke,) = dispatcher.list_all()
        assert stroke.id == stroke_id
        assert stroke.points == [Point(pytest.approx(0.8), 0.5), Point(pytest.approx(1.0), 0.5)]

    def test_drag_without_selection(self, dispatcher):
        dispatcher.add_text("Hello", 0)
        assert dispatcher.drag_selected((0.1, 0.1)) == 0
        assert len(dispatcher.session.history.undo_stack) == 1


class TestDelete:

    def test_delete_empty_is_noop(self, dispatcher):
        dispatcher.add_text("Hello", 0)
        before = dispatcher.list_all()
        assert dispatcher.delete_annotations([]) == 0
        assert dispatcher.delete_annotations() == 0
        assert dispatcher.delete_annotations(["unknown"]) == 0
        assert dispatcher.list_all() == before
        assert len(dispatcher.session.history.undo_stack) == 1

    def test_delete_selection(self, dispatcher):
        keep = dispatcher.add_text("keep", 10)
        dispatcher.add_text("drop", 0)
        dispatcher.select_all(1)
        assert dispatcher.delete_annotations() == 1
        assert [a.id for a in dispatcher.list_all()] == [keep]
        assert dispatcher.current_selection() == frozenset()

    def test_clear_all_is_undoable(self, dispatcher):
        dispatcher.add_text("a", 0)
        dispatcher.add_text("b", 0)
        before = dispatcher.list_all()
        assert dispatcher.clear_all() is True
        assert dispatcher.list_all() == []
        dispatcher.undo()
        assert dispatcher.list_all() == before

    def test_clear_all_empty(self, dispatcher):
        assert dispatcher.clear_all() is False
        assert not dispatcher.can_undo()


class TestDuplicateAndClipboard:

    def test_duplicate_overlaps_original(self, dispatcher):
        original = dispatcher.add_text("Hello", 1, position=(0.3, 0.3))
        copy_id = dispatcher.duplicate(original, 7)
        notes = {a.id: a for a in dispatcher.list_all()}
        assert copy_id != original
        assert notes[copy_id].timestamp == 7
        assert (notes[copy_id].x, notes[copy_id].y) == (0.3, 0.3)
        assert dispatcher.primary_selection() == copy_id

    def test_duplicate_is_one_undo_step(self, dispatcher):
        original = dispatcher.add_text("Hello", 1)
        before = dispatcher.list_all()

        dispatcher.duplicate(original, 7)
        after = dispatcher.list_all()
        assert dispatcher.undo() is True
        assert dispatcher.list_all() == before
        assert dispatcher.redo() is True
        assert dispatcher.list_all() == after

    def test_duplicate_without_selection(self, dispatcher):
        dispatcher.add_text("Hello", 0)
        assert dispatcher.duplicate(None, 5) is None
        assert dispatcher.duplicate("missing", 5) is None
        assert len(dispatcher.list_all()) == 1

    def test_copy_paste(self, dispatcher):
        dispatcher.add_text("Hello", 0)
        dispatcher.select_all(1)
        assert dispatcher.copy() == 1
        pasted = dispatcher.paste(12)
        again = dispatcher.paste(12)
        ids = [a.id for a in dispatcher.list_all()]
        assert len(ids) == len(set(ids)) == 3
        assert pasted != again
        assert dispatcher.current_selection() == frozenset(again)

    def test_cut_is_one_undo_step(self, dispatcher):
        dispatcher.add_text("Hello", 0)
        before = dispatcher.list_all()
        dispatcher.select_all(1)
        assert dispatcher.cut() == 1
        assert dispatcher.list_all() == []

        pasted = dispatcher.paste(3)
        assert dispatcher.list_all()[0].id == pasted[0]
        dispatcher.undo()
        dispatcher.undo()
        assert dispatcher.list_all() == before

    def test_copy_and_paste_noops(self, dispatcher):
        assert dispatcher.copy() == 0
        assert dispatcher.cut() == 0
        assert dispatcher.paste(1) == []
        assert not dispatcher.can_undo()


class TestHistory:

    def test_undo_on_fresh_session(self, dispatcher):
        assert dispatcher.undo() is False
        assert dispatcher.redo() is False
        assert dispatcher.list_all() == []

    def test_undo_redo_commit(self, dispatcher):
        draw(dispatcher, [(0.1, 0.1), (0.5, 0.5)])
        before = dispatcher.list_all()
        draw(dispatcher, [(0.2, 0.8), (0.8, 0.2)])
        after = dispatcher.list_all()

        assert dispatcher.undo() is True
        assert dispatcher.list_all() == before
        assert dispatcher.redo() is True
        assert dispatcher.list_all() == after

    def test_new_action_clears_redo(self, dispatcher):
        dispatcher.add_text("a", 0)
        dispatcher.undo()
        assert dispatcher.can_redo()
        dispatcher.add_text("b", 0)
        assert not dispatcher.can_redo()

    def test_undo_clears_selection(self, dispatcher):
        dispatcher.add_text("a", 0)
        dispatcher.add_text("b", 0)
        dispatcher.select_all(1)
        dispatcher.undo()
        assert dispatcher.current_selection() == frozenset()

    def test_history_limit_from_settings(self, dispatcher):
        for i in range(25):
            dispatcher.add_text(f"note {i}", i)
        undone = 0
        while dispatcher.undo():
            undone += 1
        assert undone == 20
        assert len(dispatcher.list_all()) == 5


class TestImportExport:

    def test_round_trip(self, dispatcher):
        draw(dispatcher, [(0.1, 0.1), (0.4, 0.7), (0.9, 0.2)], t=2.5, color="#00ffff", width=5)
        dispatcher.add_text("Hi", 3, position=(0.25, 0.75), font_size=30)
        before = dispatcher.list_all()

        text = dispatcher.export_json()
        assert dispatcher.import_payload(text) == 2
        assert dispatcher.list_all() == before

    def test_payload_is_detached_from_store(self, dispatcher):
        note_id = dispatcher.add_text("Hi", 0)
        payload = dispatcher.export_payload()
        dispatcher.update_annotation(note_id, {"text": "Changed"})
        dispatcher.add_text("Another", 0)
        assert len(payload.annotations) == 1
        assert payload.annotations[0].text == "Hi"

    def test_export_uses_media_url(self, dispatcher):
        dispatcher.load_media("file:///clip.mp4")
        data = json.loads(dispatcher.export_json())
        assert data["videoUrl"] == "file:///clip.mp4"
        assert data["createdAt"].endswith("Z")
        assert data["annotations"] == []

    def test_import_replaces_and_is_undoable(self, dispatcher):
        dispatcher.add_text("old", 0)
        before = dispatcher.list_all()
        payload = {
            "createdAt": "2024-01-01T00:00:00.000Z",
            "videoUrl": None,
            "annotations": [{"id": "t-x", "type": "text", "timestamp": 1, "duration": 2,
                             "color": "#fff", "x": 0.1, "y": 0.2, "text": "new"}],
        }
        assert dispatcher.import_payload(json.dumps(payload)) == 1
        assert [a.id for a in dispatcher.list_all()] == ["t-x"]
        dispatcher.undo()
        assert dispatcher.list_all() == before

    @pytest.mark.parametrize("bad", ["{", "{}", '{"createdAt": "x", "annotations": [1]}'])
    def test_failed_import_changes_nothing(self, dispatcher, bad):
        dispatcher.add_text("old", 0)
        before = dispatcher.list_all()
        undo_depth = len(dispatcher.session.history.undo_stack)
        with pytest.raises(PayloadImportError):
            dispatcher.import_payload(bad)
        assert dispatcher.list_all() == before
        assert len(dispatcher.session.history.undo_stack) == undo_depth

    def test_file_round_trip(self, dispatcher, tmp_path):
        dispatcher.add_text("saved", 0)
        before = dispatcher.list_all()
        path = dispatcher.export_to_file(str(tmp_path / "out.json"))
        dispatcher.clear_all()
        assert dispatcher.import_from_file(path) == 1
        assert dispatcher.list_all() == before

    def test_default_export_location(self, dispatcher, tmp_path, monkeypatch):
        monkeypatch.setattr("inkreel.controllers.command_dispatcher.get_export_dir",
                            lambda: tmp_path)
        path = dispatcher.export_to_file()
        assert path == str(tmp_path / "annotations.json")


class TestSession:

    def test_load_media_resets_everything(self, dispatcher):
        dispatcher.add_text("a", 0)
        dispatcher.select_all(1)
        dispatcher.copy()
        dispatcher.undo()
        dispatcher.redo()
        dispatcher.begin_stroke((0.1, 0.1), 0)

        dispatcher.load_media("file:///next.mp4")
        assert dispatcher.list_all() == []
        assert dispatcher.current_selection() == frozenset()
        assert dispatcher.pending_stroke() is None
        assert not dispatcher.can_undo()
        assert not dispatcher.can_redo()
        assert dispatcher.paste(0) == []
        assert dispatcher.session.video_url == "file:///next.mp4"

    def test_timeline_spans(self, dispatcher):
        dispatcher.add_text("a", 10, duration=5)
        (span,) = dispatcher.timeline_spans(100)
        assert span.start_pct == pytest.approx(10)
        assert span.width_pct == pytest.approx(5)

    def test_query_active(self, dispatcher):
        dispatcher.add_text("a", 2, duration=3)
        assert len(dispatcher.query_active(2)) == 1
        assert len(dispatcher.query_active(5)) == 1
        assert dispatcher.query_active(1.999) == []
        assert dispatcher.query_active(5.001) == []


class TestSignals:

    def test_mutation_signals(self, dispatcher, signals):
        dispatcher.add_text("a", 0)
        assert signals == ["annotations", ("history", True, False)]

    def test_undo_signals(self, dispatcher, signals):
        dispatcher.add_text("a", 0)
        signals.clear()
        dispatcher.undo()
        assert signals == ["annotations", ("history", False, True)]

    def test_selection_signal(self, dispatcher, signals):
        dispatcher.add_text("a", 0)
        signals.clear()
        dispatcher.select_all(1)
        assert signals == ["selection"]

    def test_noops_stay_quiet(self, dispatcher, signals):
        dispatcher.undo()
        dispatcher.delete_annotations([])
        dispatcher.clear_selection()
        assert signals == []
