"""
Shared fixtures for annotation engine tests.
"""

import os

import pytest

from inkreel.config import Settings
from inkreel.controllers import CommandDispatcher
from inkreel.core.annotations import AnnotationStore, Point, Stroke, TextNote
from inkreel.core.session import AnnotationSession


def make_stroke(annotation_id="s-1", timestamp=0.0, duration=2.0,
                points=((0.1, 0.1), (0.2, 0.2)), color="#ff0000", width=3.0):
    return Stroke(
        id=annotation_id,
        timestamp=timestamp,
        duration=duration,
        color=color,
        points=[Point(*p) for p in points],
        width=width,
    )


def make_note(annotation_id="t-1", timestamp=0.0, duration=2.0, x=0.5, y=0.5,
              text="Hello", color="#00ff00", font_size=None):
    return TextNote(
        id=annotation_id,
        timestamp=timestamp,
        duration=duration,
        color=color,
        x=x,
        y=y,
        text=text,
        font_size=font_size,
    )


@pytest.fixture
def settings():
    """Settings with a round frame size so pixel math stays readable."""
    return Settings(frame_width=1000.0, frame_height=500.0, default_font_size=20.0)


@pytest.fixture
def session(settings):
    return AnnotationSession(settings)


@pytest.fixture
def dispatcher(session):
    return CommandDispatcher(session)


@pytest.fixture
def store():
    return AnnotationStore()


@pytest.fixture
def signals(dispatcher):
    """Record every signal the dispatcher emits."""
    emitted = []
    dispatcher.annotations_changed.connect(lambda: emitted.append("annotations"))
    dispatcher.selection_changed.connect(lambda: emitted.append("selection"))
    dispatcher.history_changed.connect(
        lambda can_undo, can_redo: emitted.append(("history", can_undo, can_redo)))
    return emitted


@pytest.fixture(scope="session")
def gui_app():
    """
    QGuiApplication on the offscreen platform.

    Only built when INKREEL_GUI_TESTS=1, since a missing platform plugin
    aborts the interpreter instead of raising.
    """
    if os.environ.get("INKREEL_GUI_TESTS") != "1":
        pytest.skip("set INKREEL_GUI_TESTS=1 to run Qt GUI tests")
    QtGui = pytest.importorskip("PyQt5.QtGui")
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    app = QtGui.QGuiApplication.instance() or QtGui.QGuiApplication([])
    return app
