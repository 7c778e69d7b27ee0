#
# test_detection_client.py: unit tests for motion detection service client
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements unit tests of the detection service client against
# a fake detection service running on a local port
#

import json
import socket
import pytest
import roi_tools
from roi_tools.detection_client import DetectionClient, DetectionStatus
from roi_tools.retry_support import RetryPolicy
from roi_tools.zone_model import SENTINEL_ROI

config_path = "config/dev1/net-42"
status_path = "status/dev1/net-42"


def test_save_config(detection_service, client):
    """Test saving ROI configuration"""

    detection_service.respond("PUT", config_path, (200, {"message": "ok"}))

    rois = [[400, 300, [400, 350], 1920, 1080]]
    assert client.save_config("net-42", rois, 900, 15, 10) == {"message": "ok"}

    calls = detection_service.calls("PUT", config_path)
    assert len(calls) == 1
    assert calls[0]["body"] == {
        "rois": rois,
        "sensitivity": 900,
        "blur": 15,
        "morphology": 10,
    }
    assert calls[0]["headers"]["Authorization"] == "Bearer secret-token"

    # empty ROI list clears configuration with the sentinel
    client.save_config("net-42", [])
    calls = detection_service.calls("PUT", config_path)
    assert len(calls) == 2
    assert calls[1]["body"] == {
        "rois": [SENTINEL_ROI],
        "sensitivity": 1000,
        "blur": 20,
        "morphology": 20,
    }


def test_get_status(detection_service, client, status_response):
    """Test parsing of detection status responses"""

    rois = [[400, 300, [400, 350], 1920, 1080]]
    detection_service.respond(
        "GET", status_path, (200, status_response(True, rois, sensitivity=500))
    )
    status = client.get_status("net-42")
    assert status.enabled
    assert status.has_roi
    assert status.network_id == "net-42"
    assert status.config.sensitivity == 500
    assert status.config.blur == 20
    assert [z.geometry() for z in status.config.zones()] == [(400, 300, 400, 350)]

    # sentinel configuration means no ROIs
    detection_service.respond(
        "GET", status_path, (200, status_response(False, [SENTINEL_ROI]))
    )
    status = client.get_status("net-42")
    assert not status.enabled
    assert not status.has_roi
    assert status.config.zones() == []

    # flat response form
    detection_service.respond(
        "GET",
        status_path,
        (200, {"enabled": True, "hasRoi": False, "config": None}),
    )
    status = client.get_status("net-42")
    assert status.enabled and not status.has_roi
    assert status.config.rois == []

    # malformed responses
    for body in [{"config": {}}, [1, 2], {"enabled": "yes"}, "not json"]:
        detection_service.respond("GET", status_path, (200, body))
        with pytest.raises(roi_tools.ResponseFormatError):
            client.get_status("net-42")


def test_detection_status_from_json():
    status = DetectionStatus.from_json(
        {"enabled": False, "config": {"rois": [[20, 20, [50, 50], 100, 100]]}}
    )
    assert status.has_roi
    with pytest.raises(roi_tools.ResponseFormatError):
        DetectionStatus.from_json({"enabled": True, "config": {"blur": "x"}})
    with pytest.raises(roi_tools.ResponseFormatError):
        DetectionStatus.from_json({"enabled": True, "config": {"rois": 5}})


def test_enable_disable_detection(detection_service, client, status_response):
    """Test idempotent detection enabling and disabling"""

    detection_service.respond("POST", "enable/dev1/net-42", (200, {"message": "enabled"}))
    detection_service.respond("POST", "disable/dev1/net-42", (200, {"message": "disabled"}))

    # already enabled: no mutating request
    detection_service.respond("GET", status_path, (200, status_response(True)))
    result = client.enable_detection("net-42")
    assert result["message"] == "Detection already enabled"
    assert detection_service.calls("POST") == []

    # enabled: disabling sends request
    assert client.disable_detection("net-42") == {"message": "disabled"}
    assert len(detection_service.calls("POST", "disable/dev1/net-42")) == 1

    # disabled: enabling sends request
    detection_service.respond("GET", status_path, (200, status_response(False)))
    assert client.enable_detection("net-42") == {"message": "enabled"}
    assert len(detection_service.calls("POST", "enable/dev1/net-42")) == 1

    result = client.disable_detection("net-42")
    assert result["message"] == "Detection already disabled"
    assert len(detection_service.calls("POST")) == 2


def test_enable_with_failed_status_check(detection_service, client):
    """Test that failing status check does not prevent enabling"""

    detection_service.respond("GET", status_path, (500, "boom"))
    detection_service.respond("POST", "enable/dev1/net-42", (200, {"message": "enabled"}))

    assert client.enable_detection("net-42") == {"message": "enabled"}
    assert len(detection_service.calls("GET", status_path)) == 4
    assert len(detection_service.calls("POST", "enable/dev1/net-42")) == 1


def test_retries(detection_service, client):
    """Test retrying of server errors and non-retrying of client errors"""

    # transient failures followed by success
    detection_service.respond("PUT", config_path, (500, "boom"), (502, ""), (200, {}))
    assert client.save_config("net-42", []) == {}
    assert len(detection_service.calls("PUT")) == 3

    # persistent server error
    detection_service.requests.clear()
    detection_service.respond("PUT", config_path, (500, "boom"))
    with pytest.raises(roi_tools.TransientTransportError) as excinfo:
        client.save_config("net-42", [])
    assert excinfo.value.attempts == 4
    assert len(detection_service.calls("PUT")) == 4

    # client error is not retried
    detection_service.requests.clear()
    detection_service.respond("PUT", config_path, (400, "bad ROI"))
    with pytest.raises(roi_tools.RequestRejectedError) as excinfo2:
        client.save_config("net-42", [])
    assert excinfo2.value.status_code == 400
    assert "400 - bad ROI" in str(excinfo2.value)
    assert len(detection_service.calls("PUT")) == 1


def test_connection_refused():
    """Test exhausting retries on unreachable service"""

    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        port = s.getsockname()[1]

    with DetectionClient(
        f"http://127.0.0.1:{port}/device-detection",
        "dev1",
        token="t",
        retry_policy=RetryPolicy(max_retries=2, delay_s=0),
    ) as client:
        with pytest.raises(roi_tools.TransientTransportError) as excinfo:
            client.get_status("net-42")
        assert excinfo.value.attempts == 3


def test_preconditions(detection_service):
    """Test that missing token or network ID never reaches the network"""

    tokens = []

    def no_token():
        tokens.append(1)
        return None

    with DetectionClient(detection_service.url, "dev1", token=no_token) as client:
        with pytest.raises(roi_tools.MissingCredentialError):
            client.save_config("net-42", [])
        with pytest.raises(roi_tools.MissingCredentialError):
            client.get_status("net-42")
        with pytest.raises(roi_tools.MissingCredentialError):
            client.enable_detection("net-42")
        with pytest.raises(roi_tools.MissingCredentialError):
            client.get_all_cameras()
        assert len(tokens) == 4

    with DetectionClient(detection_service.url, "dev1", token="t") as client:
        for op in [
            lambda: client.save_config("", []),
            lambda: client.get_status(""),
            lambda: client.disable_detection(""),
            lambda: client.get_frame(None),  # type: ignore[arg-type]
        ]:
            with pytest.raises(roi_tools.MissingNetworkIdError):
                op()

    assert detection_service.requests == []


def test_get_frame(detection_service, client):
    """Test fetching camera frame"""

    path = "frame/dev1/net-42"
    test_cases = [
        json.dumps("aGVsbG8="),
        {"image_data": "aGVsbG8="},
        {"data": {"data": {"image_data": "aGVsbG8="}}},
        {"data": {"data": "aGVsbG8="}},
    ]
    for body in test_cases:
        detection_service.respond("GET", path, (200, body))
        assert client.get_frame("net-42") == "aGVsbG8=", str(body)

    for body in [{"image_data": ""}, {"other": 1}, [1]]:
        detection_service.respond("GET", path, (200, body))
        with pytest.raises(roi_tools.ResponseFormatError):
            client.get_frame("net-42")


def test_device_queries(detection_service, client):
    """Test queries of all cameras and active detections"""

    detection_service.respond(
        "GET",
        "cameras/dev1",
        (
            200,
            {
                "data": {
                    "data": [
                        {"networkId": "n1", "name": "Door", "detectionEnabled": True},
                        {"networkId": "n2", "detectionEnabled": False, "isActive": True},
                    ]
                }
            },
        ),
    )
    cameras = client.get_all_cameras()
    assert [c.network_id for c in cameras] == ["n1", "n2"]
    assert cameras[0].enabled and cameras[0].name == "Door"
    assert not cameras[1].enabled and cameras[1].is_active

    detection_service.respond(
        "GET", "active-detections/dev1", (200, {"data": {"data": [{"networkId": "n1"}]}})
    )
    assert client.get_active_detections() == [{"networkId": "n1"}]

    detection_service.respond("GET", "active-detections/dev1", (200, {"error": "x"}))
    with pytest.raises(roi_tools.ResponseFormatError):
        client.get_active_detections()


def test_path_quoting(detection_service, client):
    """Test that path keys are URL-quoted"""

    detection_service.respond("GET", "status/dev1/net%2F42", (200, {"enabled": True}))
    assert client.get_status("net/42").enabled
