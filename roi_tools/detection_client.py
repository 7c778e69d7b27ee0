#
# detection_client.py: motion detection service client
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements client of the remote motion detection service: saving ROI configuration,
# querying detection status, enabling/disabling detection, and fetching camera frames.
#

"""
Detection Client Module Overview
================================

`DetectionClient` talks to the remote motion detection service over HTTP using `requests`.
All operations are keyed by the camera *network ID* and the device ID the camera belongs to.

Wire contract (paths are relative to the service base URL):

    PUT  config/{device}/{network_id}     body {rois, sensitivity, blur, morphology}
    GET  status/{device}/{network_id}     -> {enabled, hasRoi, config}
    POST enable/{device}/{network_id}
    POST disable/{device}/{network_id}
    GET  frame/{device}/{network_id}      -> base64-encoded image
    GET  cameras/{device}                 -> list of camera detection states
    GET  active-detections/{device}       -> list of active detections

Responses may come wrapped into the service envelope `{"data": {"data": ...}}`;
the client unwraps it.

Error handling:
    - Missing token or network ID raise `PreconditionError` subclasses before any request.
    - Network failures and HTTP 5xx are retried according to `RetryPolicy`
      (3 retries with 1 s delay by default); `TransientTransportError` is raised when
      retries are exhausted.
    - HTTP 4xx raise `RequestRejectedError` immediately; malformed responses raise
      `ResponseFormatError`.

Idempotency:
    `enable_detection()` and `disable_detection()` first query detection status and skip the
    mutating request when detection is already in the desired state. If the status query
    fails, the mutating request is still attempted.

    Toggling is check-then-act over two round trips: two overlapping toggle calls for the
    same camera may both observe the stale state and both send mutating requests, so the
    final state depends on request arrival order. Calls are not serialized per camera.
"""

import copy, threading
import requests
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Union
from urllib.parse import quote
from . import logger_get
from . import environment as env
from .exceptions import (
    MissingCredentialError,
    MissingNetworkIdError,
    RequestRejectedError,
    ResponseFormatError,
    RoiToolsError,
    ValidationError,
)
from .retry_support import RetryPolicy, with_retry
from .zone_model import SENTINEL_ROI, ROITuple, Zone, from_wire

TokenSource = Union[str, Callable[[], Optional[str]], None]


def _unwrap(result: Any) -> Any:
    """Extract payload from the service `{"data": {"data": ...}}` envelope, if present"""
    if isinstance(result, dict):
        outer = result.get("data")
        if isinstance(outer, dict) and outer.get("data") is not None:
            return outer["data"]
    return result


def _int_param(config: dict, key: str, default: int) -> int:
    value = config.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ResponseFormatError(f"Detection config parameter '{key}' is not a number: {value!r}")
    return int(value)


@dataclass
class DetectionConfig:
    """
    Motion detection configuration of a camera.

    Attributes:
        sensitivity: detection sensitivity
        blur: blur kernel parameter
        morphology: morphology kernel parameter
        rois: regions of interest in wire format
    """

    sensitivity: int = env.DEFAULT_SENSITIVITY
    blur: int = env.DEFAULT_BLUR
    morphology: int = env.DEFAULT_MORPHOLOGY
    rois: List[ROITuple] = field(default_factory=list)

    @staticmethod
    def from_json(config: Optional[dict]) -> "DetectionConfig":
        if config is None:
            return DetectionConfig()
        if not isinstance(config, dict):
            raise ResponseFormatError(f"Detection config must be an object: {config!r}")
        rois = config.get("rois") or []
        if not isinstance(rois, list):
            raise ResponseFormatError(f"Detection config ROIs must be a list: {rois!r}")
        return DetectionConfig(
            sensitivity=_int_param(config, "sensitivity", env.DEFAULT_SENSITIVITY),
            blur=_int_param(config, "blur", env.DEFAULT_BLUR),
            morphology=_int_param(config, "morphology", env.DEFAULT_MORPHOLOGY),
            rois=rois,
        )

    def zones(self) -> List[Zone]:
        """Decode ROIs into zones; "no configuration" sentinel gives empty list"""
        return from_wire(self.rois)


@dataclass
class DetectionStatus:
    """
    Detection status of a camera.

    Attributes:
        enabled: True if motion detection is enabled
        has_roi: True if the camera has ROI configuration
        config: detection configuration
        network_id, camera_id, name, is_active: camera description, when reported by the service
    """

    enabled: bool
    has_roi: bool
    config: DetectionConfig = field(default_factory=DetectionConfig)
    network_id: Optional[str] = None
    camera_id: Optional[str] = None
    name: Optional[str] = None
    is_active: Optional[bool] = None

    @staticmethod
    def from_json(result: Any) -> "DetectionStatus":
        """
        Parse detection status response. Both the flat `{enabled, hasRoi, config}` form
        and the enveloped `{data: {data: {detectionEnabled, config, ...}}}` form are accepted.

        Raises:
            ResponseFormatError: if the response has unexpected structure
        """
        data = _unwrap(result)
        if not isinstance(data, dict):
            raise ResponseFormatError(f"Unexpected detection status response: {result!r}")

        enabled = data.get("enabled", data.get("detectionEnabled"))
        if not isinstance(enabled, bool):
            raise ResponseFormatError(
                f"Detection status response has no valid enabled flag: {result!r}"
            )
        config = DetectionConfig.from_json(data.get("config"))

        has_roi = data.get("hasRoi", data.get("has_roi"))
        if has_roi is None:
            has_roi = len(config.zones()) > 0

        def opt_str(key: str) -> Optional[str]:
            value = data.get(key)
            return None if value is None else str(value)

        return DetectionStatus(
            enabled=enabled,
            has_roi=bool(has_roi),
            config=config,
            network_id=opt_str("networkId"),
            camera_id=opt_str("cameraId"),
            name=opt_str("name"),
            is_active=data.get("isActive"),
        )


class DetectionClient:
    """
    Motion detection service client.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        device_id: Optional[str] = None,
        token: TokenSource = None,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        timeout_s: float = env.REQUEST_TIMEOUT_S,
        session: Optional[requests.Session] = None,
        abort_event: Optional[threading.Event] = None,
    ):
        """
        Constructor.

        Args:
            base_url: detection service base URL; taken from environment if None
            device_id: device ID; taken from environment if None
            token: bearer token or callable returning token for each request;
                taken from environment if None
            retry_policy: retry policy; default policy if None
            timeout_s: HTTP request timeout, seconds
            session: requests session to use; new session if None
            abort_event: when set, pending retries are abandoned
        """
        self.base_url = (base_url or env.get_api_url()).rstrip("/")
        self.device_id = device_id if device_id is not None else env.get_device_id()
        self._token: TokenSource = token if token is not None else env.get_token
        self.retry_policy = retry_policy if retry_policy is not None else RetryPolicy()
        self.timeout_s = timeout_s
        self._session = session if session is not None else requests.Session()
        self.abort_event = abort_event

    def with_abort_event(self, abort_event: Optional[threading.Event]) -> "DetectionClient":
        """
        Return a client which shares this client's HTTP session and settings,
        but abandons pending retries when given event is set.
        This client is not modified.

        Args:
            abort_event: abort event of the returned client
        """
        clone = copy.copy(self)
        clone.abort_event = abort_event
        return clone

    def close(self):
        """Close underlying HTTP session"""
        self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _credential(self) -> str:
        token = self._token() if callable(self._token) else self._token
        if not token:
            raise MissingCredentialError()
        return token

    @staticmethod
    def _check_network_id(network_id: Optional[str]) -> str:
        if not network_id:
            raise MissingNetworkIdError()
        return network_id

    def _url(self, endpoint: str, *keys: str) -> str:
        return "/".join([self.base_url, endpoint] + [quote(str(k), safe="") for k in keys])

    def _request(
        self,
        method: str,
        endpoint: str,
        *keys: str,
        body: Optional[dict] = None,
        description: str = "",
    ) -> Any:
        """
        Perform HTTP request with retries and return parsed JSON response.
        """
        token = self._credential()
        url = self._url(endpoint, *keys)
        description = description or f"{method} {endpoint}"
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        }

        def attempt() -> requests.Response:
            logger_get().debug(f"{method} {url}")
            response = self._session.request(
                method, url, headers=headers, json=body, timeout=self.timeout_s
            )
            if response.status_code >= 500:
                raise requests.HTTPError(
                    f"API request failed: {response.status_code} - {response.text or 'Unknown error'}",
                    response=response,
                )
            if response.status_code >= 400:
                raise RequestRejectedError(response.status_code, response.text)
            return response

        try:
            response = with_retry(
                attempt,
                self.retry_policy,
                description=description,
                abort_event=self.abort_event,
            )
        except requests.RequestException as e:
            # non-retryable request errors: invalid URL, too many redirects, etc.
            raise ValidationError(f"{description} failed: {e}") from e

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ResponseFormatError(
                f"{description}: response is not valid JSON: {response.text[:200]!r}"
            ) from e

    def save_config(
        self,
        network_id: str,
        rois: Sequence[ROITuple],
        sensitivity: int = env.DEFAULT_SENSITIVITY,
        blur: int = env.DEFAULT_BLUR,
        morphology: int = env.DEFAULT_MORPHOLOGY,
    ) -> Any:
        """
        Save ROI configuration and detection parameters of a camera.

        Empty ROI list is a request to clear the configuration; it is transmitted as the
        "no configuration" sentinel `[[0, 0, [0, 0], 0, 0]]`.

        Args:
            network_id: camera network ID
            rois: ROI tuples, see `zone_model.to_wire()`
            sensitivity, blur, morphology: detection parameters

        Returns:
            Service acknowledgement.
        """
        self._check_network_id(network_id)
        body = {
            "rois": list(rois) if rois else [SENTINEL_ROI],
            "sensitivity": sensitivity,
            "blur": blur,
            "morphology": morphology,
        }
        logger_get().info(f"Saving ROI for network_id {network_id}: {body}")
        result = self._request(
            "PUT",
            "config",
            self.device_id,
            network_id,
            body=body,
            description=f"Saving ROI for network_id {network_id}",
        )
        logger_get().debug(f"ROI save response: {result}")
        return result

    def get_status(self, network_id: str) -> DetectionStatus:
        """
        Get detection status and configuration of a camera.
        """
        self._check_network_id(network_id)
        result = self._request(
            "GET",
            "status",
            self.device_id,
            network_id,
            description=f"Fetching detection status for network_id {network_id}",
        )
        return DetectionStatus.from_json(result)

    def _set_detection(self, network_id: str, enable: bool) -> Any:
        self._check_network_id(network_id)
        self._credential()
        action = "enable" if enable else "disable"

        try:
            status = self.get_status(network_id)
            if status.enabled == enable:
                logger_get().info(f"Detection already {action}d for network_id {network_id}")
                return {"message": f"Detection already {action}d", "data": {"status": 200}}
        except RoiToolsError as e:
            logger_get().warning(f"Could not check current detection status: {e}")

        result = self._request(
            "POST",
            action,
            self.device_id,
            network_id,
            description=f"{action.capitalize()} detection for network_id {network_id}",
        )
        logger_get().info(f"Detection {action}d for network_id {network_id}")
        return result

    def enable_detection(self, network_id: str) -> Any:
        """Enable motion detection of a camera; no-op if already enabled"""
        return self._set_detection(network_id, True)

    def disable_detection(self, network_id: str) -> Any:
        """Disable motion detection of a camera; no-op if already disabled"""
        return self._set_detection(network_id, False)

    def get_frame(self, network_id: str) -> str:
        """
        Get single camera frame.

        Returns:
            Base64-encoded image.
        """
        self._check_network_id(network_id)
        result = _unwrap(
            self._request(
                "GET",
                "frame",
                self.device_id,
                network_id,
                description=f"Fetching frame for network_id {network_id}",
            )
        )
        if isinstance(result, dict):
            result = result.get("image_data")
        if not isinstance(result, str) or not result:
            raise ResponseFormatError("Failed to get frame data")
        return result

    def get_all_cameras(self) -> List[DetectionStatus]:
        """Get detection status of all cameras of the device"""
        result = _unwrap(
            self._request(
                "GET",
                "cameras",
                self.device_id,
                description="Fetching all cameras with detection status",
            )
        )
        if not isinstance(result, list):
            raise ResponseFormatError(f"Unexpected camera list response: {result!r}")
        return [DetectionStatus.from_json(camera) for camera in result]

    def get_active_detections(self) -> List[Dict[str, Any]]:
        """Get all active detections of the device"""
        result = _unwrap(
            self._request(
                "GET",
                "active-detections",
                self.device_id,
                description="Fetching all active detections",
            )
        )
        if not isinstance(result, list):
            raise ResponseFormatError(f"Unexpected active detections response: {result!r}")
        return result
