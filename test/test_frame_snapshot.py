#
# test_frame_snapshot.py: unit tests for single frame acquisition
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#

import numpy as np
import pytest
import roi_tools
from roi_tools.detection_client import DetectionClient
from roi_tools.frame_snapshot import FrameSnapshotFetcher
from roi_tools.frame_surface import FrameSurface
from roi_tools.image_tools import decode_base64_image, encode_base64_image
from roi_tools.zone_model import FrameDimensions

frame_path = "frame/dev1/net-42"


def test_base64_image():
    """Test base64 image encoding and decoding"""

    img = np.zeros((48, 64, 3), dtype=np.uint8)
    img[:, :32] = (0, 0, 255)
    payload = encode_base64_image(img, ".png")

    decoded = decode_base64_image(payload)
    assert decoded.shape == (48, 64, 3)
    assert np.array_equal(decoded, img)

    decoded = decode_base64_image("data:image/png;base64," + payload)
    assert np.array_equal(decoded, img)

    with pytest.raises(ValueError):
        decode_base64_image("%%% not base64 %%%")
    with pytest.raises(ValueError):
        decode_base64_image("aGVsbG8=")  # valid base64, not an image


def test_remote_snapshot(detection_service, client):
    """Test fetching frame from the service"""

    img = np.full((48, 64, 3), 200, dtype=np.uint8)
    detection_service.respond("GET", frame_path, (200, {"image_data": encode_base64_image(img, ".png")}))

    surface = FrameSurface()
    surface.acquire(np.zeros((10, 10, 3), dtype=np.uint8))
    fetcher = FrameSnapshotFetcher(client, surface)
    snapshot = fetcher.capture_frame("net-42")
    assert snapshot.source == "remote"
    assert snapshot.dimensions == FrameDimensions(64, 48)
    assert fetcher.snapshot is snapshot

    fetcher.release()
    assert fetcher.snapshot is None


def test_snapshot_fallback(detection_service, client):
    """Test falling back to the live frame when the service cannot deliver a frame"""

    live = np.full((30, 40, 3), 77, dtype=np.uint8)
    surface = FrameSurface()
    surface.acquire(live, live=True)
    fetcher = FrameSnapshotFetcher(client, surface)

    test_cases = [
        (500, "boom"),  # retries exhausted
        (404, "no such camera"),  # rejected
        (200, {"image_data": "aGVsbG8="}),  # not an image
        (200, {"other": 1}),  # no image data
    ]
    for response in test_cases:
        detection_service.respond("GET", frame_path, response)
        snapshot = fetcher.capture_frame("net-42")
        assert snapshot.source == "local", str(response)
        assert np.array_equal(snapshot.image, live)

    # no live frame: errors propagate
    fetcher = FrameSnapshotFetcher(client, FrameSurface())
    detection_service.respond("GET", frame_path, (404, "no such camera"))
    with pytest.raises(roi_tools.RequestRejectedError):
        fetcher.capture_frame("net-42")
    detection_service.respond("GET", frame_path, (200, {"image_data": "aGVsbG8="}))
    with pytest.raises(roi_tools.ResponseFormatError):
        fetcher.capture_frame("net-42")
    assert fetcher.snapshot is None

    with pytest.raises(roi_tools.FrameNotReadyError):
        fetcher.capture_local()


def test_snapshot_no_fallback_to_still_frame(detection_service, client):
    """Test that still frames, e.g. earlier remote captures, are never reported as live"""

    img = np.full((48, 64, 3), 200, dtype=np.uint8)
    detection_service.respond("GET", frame_path, (200, {"image_data": encode_base64_image(img, ".png")}))

    surface = FrameSurface()
    fetcher = FrameSnapshotFetcher(client, surface)
    surface.acquire(fetcher.capture_frame("net-42").image)
    assert surface.is_ready and not surface.is_live

    detection_service.respond("GET", frame_path, (404, "no such camera"))
    with pytest.raises(roi_tools.RequestRejectedError):
        fetcher.capture_frame("net-42")
    with pytest.raises(roi_tools.FrameNotReadyError):
        fetcher.capture_local()

    # live video frame replaces the still one
    live = np.full((30, 40, 3), 77, dtype=np.uint8)
    surface.acquire(live, live=True)
    snapshot = fetcher.capture_frame("net-42")
    assert snapshot.source == "local"
    assert np.array_equal(snapshot.image, live)


def test_snapshot_preconditions(detection_service):
    """Test that missing inputs are reported even when live frame is available"""

    surface = FrameSurface()
    surface.acquire(np.zeros((30, 40, 3), dtype=np.uint8), live=True)

    with DetectionClient(detection_service.url, "dev1", token=lambda: None) as client:
        fetcher = FrameSnapshotFetcher(client, surface)
        with pytest.raises(roi_tools.MissingCredentialError):
            fetcher.capture_frame("net-42")
        with pytest.raises(roi_tools.MissingNetworkIdError):
            fetcher.capture_frame("")

        assert fetcher.capture_local().source == "local"

    assert detection_service.requests == []
