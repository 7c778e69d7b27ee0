#
# test_roi_editor.py: unit tests for interactive ROI editor in test mode
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#

from types import SimpleNamespace
import cv2
import numpy as np
import pytest
from roi_tools.detection_client import DetectionClient
from roi_tools.roi_editor import RoiEditor
from roi_tools.roi_session import RoiEditingSession
from roi_tools.status_sink import StatusKind
from roi_tools.zone_drawing import DrawingState
from roi_tools.zone_model import FrameDimensions


def ev(x, y):
    return SimpleNamespace(x=x, y=y)


@pytest.fixture
def editor(temp_dir):
    img_path = str(temp_dir / "frame.png")
    cv2.imwrite(img_path, np.full((100, 200, 3), 50, dtype=np.uint8))

    client = DetectionClient("http://127.0.0.1:1/device-detection", "dev1", token="t")
    session = RoiEditingSession(client, None)
    editor = RoiEditor(session, image_path=img_path, test_mode=True)
    yield editor
    editor.on_close()
    client.close()


def test_editor_drawing(editor):
    """Test drawing regions with the mouse on scaled display"""

    session = editor.session
    assert session.surface.native_dimensions() == FrameDimensions(200, 100)

    # canvas is square: frame is fitted to its width
    editor.on_resize(SimpleNamespace(width=400, height=400))
    assert editor.display_size() == (400, 200)

    editor.on_press(ev(20, 20))
    editor.on_motion(ev(100, 60))
    editor.on_release(ev(100, 60))
    assert session.drawing.state == DrawingState.IDLE
    assert [z.geometry() for z in session.store] == [(40, 20, 30, 20)]

    # pointer outside the frame is ignored
    editor.on_press(ev(20, 300))
    assert session.drawing.state == DrawingState.IDLE

    # declined confirmation
    editor.auto_confirm = False
    editor.on_press(ev(200, 100))
    editor.on_release(ev(300, 180))
    assert session.drawing.state == DrawingState.IDLE
    assert len(session.store) == 1

    # pointer released beyond the frame is clamped
    editor.auto_confirm = True
    editor.on_press(ev(300, 100))
    editor.on_release(ev(500, 250))
    assert session.store[1].geometry() == (50, 50, 175, 75)

    frame = editor.render_frame()
    assert frame is not None and frame.shape == (200, 400, 3)
    editor.tick()


def test_editor_region_management(editor):
    """Test deleting regions"""

    editor.on_resize(SimpleNamespace(width=200, height=100))
    for x in [10, 100]:
        editor.on_press(ev(x, 10))
        editor.on_release(ev(x + 50, 60))
    assert len(editor.session.store) == 2

    editor.delete_zone(0)
    assert [z.geometry() for z in editor.session.store] == [(50, 50, 125, 35)]

    editor.delete_zone(3)
    last = editor.status.last()
    assert last is not None and last.kind == StatusKind.ERROR

    editor.clear_all()
    assert len(editor.session.store) == 0

    editor.tick()
    assert editor.status.events == []


def test_editor_bad_image(temp_dir):
    """Test editor with unreadable image file"""

    client = DetectionClient("http://127.0.0.1:1/device-detection", "dev1", token="t")
    session = RoiEditingSession(client, None)
    editor = RoiEditor(session, image_path=str(temp_dir / "missing.png"), test_mode=True)
    assert not session.surface.is_ready
    last = editor.status.last()
    assert last is not None and last.message.startswith("Cannot read image file")

    # no frame: drawing cannot start
    editor.on_resize(SimpleNamespace(width=100, height=100))
    editor.display_width, editor.display_height = 100, 100
    editor.on_press(ev(10, 10))
    assert session.drawing.state == DrawingState.IDLE
    assert editor.status.last().message == "Frame is not loaded yet"

    editor.on_close()
    assert session.closed
    client.close()
