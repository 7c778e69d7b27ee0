#
# roi_session.py: ROI editing session of a single camera
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements the per-camera editing session which ties together the frame surface,
# zone drawing state machine, zone store, detection service client, and status reporting.
#

"""
ROI Editing Session Module Overview
===================================

`RoiEditingSession` is the controller of a single camera ROI editing session:

    - `load()` reads detection status and existing ROI configuration from the service
      and fills the zone store
    - `save()` converts zones to ROI tuples, saves them with detection parameters, and
      enables detection when zones were defined and detection was off
    - `toggle_detection()` flips detection on/off
    - `capture_frame()` fetches a still frame, used as the frame source when there is
      no live stream

Session methods report outcomes to a `StatusSink` and do not raise on service errors.
Use `submit()` to run any of them on a background thread so the drawing surface is never
blocked by network I/O. After `close()`, pending retries are abandoned and late results
are discarded: they never mutate the zone store of a closed session.

Saving while a previous save is in flight is allowed and not coalesced; the service keeps
the configuration of whichever request it processes last.
"""

import threading
from enum import Enum
from typing import Any, Callable, List, Optional
from . import logger_get
from . import environment as env
from .detection_client import DetectionClient, DetectionStatus
from .exceptions import PreconditionError, RoiToolsError
from .frame_snapshot import FrameSnapshotFetcher, Snapshot
from .frame_surface import FrameSurface
from .status_sink import LoggingStatusSink, StatusSink
from .zone_drawing import ZoneDrawing
from .zone_model import ZoneStore, to_wire


class SaveResult(Enum):
    """Outcome of saving zones"""

    FAILED = 0
    SAVED = 1  # saved; detection state untouched
    SAVED_AND_ENABLED = 2  # saved, and detection was enabled automatically
    SAVED_NOT_ENABLED = 3  # saved, but automatic detection enabling failed


class RoiEditingSession:
    """
    ROI editing session of a single camera.
    """

    def __init__(
        self,
        client: DetectionClient,
        network_id: Optional[str],
        *,
        surface: Optional[FrameSurface] = None,
        sink: Optional[StatusSink] = None,
        on_change: Optional[Callable[[], None]] = None,
    ):
        """
        Constructor.

        Args:
            client: detection service client, possibly shared by sessions of other cameras;
                the session works through its own view of the client, so closing the session
                abandons pending retries of this session only
            network_id: camera network ID
            surface: frame surface; new one if None
            sink: status sink; logging sink if None
            on_change: callback invoked on zone store or drawing state changes
        """
        self._closed = threading.Event()
        self.client = client.with_abort_event(self._closed)
        self.network_id = network_id
        self.surface = surface if surface is not None else FrameSurface()
        self.sink = sink if sink is not None else LoggingStatusSink()
        self.store = ZoneStore()
        self.drawing = ZoneDrawing(self.surface, self.store, on_change=on_change)
        self.fetcher = FrameSnapshotFetcher(self.client, self.surface)

        self.sensitivity = env.DEFAULT_SENSITIVITY
        self.blur = env.DEFAULT_BLUR
        self.morphology = env.DEFAULT_MORPHOLOGY
        self.detection_enabled = False

        self._lock = threading.Lock()
        self._threads: List[threading.Thread] = []

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def _check_network_id(self, action: str) -> bool:
        if not self.network_id:
            self.sink.error(f"Cannot {action}: Network ID is missing for this camera")
            return False
        return True

    def load(self) -> Optional[DetectionStatus]:
        """
        Load detection status, detection parameters and existing zones from the service.

        Returns:
            Detection status or None on failure.
        """
        if not self._check_network_id("load ROIs"):
            return None
        assert self.network_id is not None
        try:
            status = self.client.get_status(self.network_id)
            zones = status.config.zones()
        except RoiToolsError as e:
            logger_get().warning(f"Couldn't load existing ROIs: {e}")
            self.sink.error(f"Couldn't load existing ROIs: {e}")
            return None

        with self._lock:
            if self.closed:
                return None
            self.detection_enabled = status.enabled
            self.sensitivity = status.config.sensitivity
            self.blur = status.config.blur
            self.morphology = status.config.morphology
            self.store.replace_all(zones)
        logger_get().info(f"Loaded {len(zones)} zones for network_id {self.network_id}")
        return status

    def save(self) -> SaveResult:
        """
        Save all zones and detection parameters to the service.
        An empty zone store clears the ROI configuration.

        When zones are defined and detection is disabled, detection is enabled after
        saving. Failure to enable is reported as degraded success: the saved
        configuration is kept.
        """
        if not self._check_network_id("save"):
            return SaveResult.FAILED
        assert self.network_id is not None

        zones = self.store.zones
        try:
            dims = self.surface.native_dimensions() if self.surface.is_ready else None
            rois = to_wire(zones, dims)
        except ValueError as e:
            self.sink.error(f"Failed to save zones: {e}")
            return SaveResult.FAILED

        logger_get().info(f"Saving normalized zones for network_id {self.network_id}: {rois}")
        try:
            self.client.save_config(
                self.network_id, rois, self.sensitivity, self.blur, self.morphology
            )
        except RoiToolsError as e:
            self.sink.error(f"Failed to save zones: {e}")
            return SaveResult.FAILED

        if self.detection_enabled or not zones:
            self.sink.success("Regions of Interest saved successfully!")
            return SaveResult.SAVED

        try:
            self.client.enable_detection(self.network_id)
        except RoiToolsError as e:
            logger_get().warning(f"Could not automatically enable detection: {e}")
            self.sink.info(f"Regions saved, but detection could not be enabled: {e}")
            return SaveResult.SAVED_NOT_ENABLED

        with self._lock:
            if not self.closed:
                self.detection_enabled = True
        self.sink.success("ROIs saved and detection enabled!")
        return SaveResult.SAVED_AND_ENABLED

    def toggle_detection(self) -> bool:
        """
        Enable detection if it is disabled, disable otherwise.

        Returns:
            True on success.
        """
        if not self._check_network_id("toggle detection"):
            return False
        assert self.network_id is not None

        enable = not self.detection_enabled
        action = "enable" if enable else "disable"
        try:
            if enable:
                self.client.enable_detection(self.network_id)
            else:
                self.client.disable_detection(self.network_id)
        except RoiToolsError as e:
            self.sink.error(f"Failed to {action} detection: {e}")
            return False

        with self._lock:
            if not self.closed:
                self.detection_enabled = enable
        self.sink.success(f"Detection {action}d")
        return True

    def capture_frame(self) -> Optional[Snapshot]:
        """
        Capture single camera frame. When there is no live frame in the frame surface,
        the captured frame becomes the frame surface source.

        Returns:
            Captured snapshot or None on failure.
        """
        if not self._check_network_id("capture frame"):
            return None
        assert self.network_id is not None
        try:
            snapshot = self.fetcher.capture_frame(self.network_id)
        except PreconditionError as e:
            self.sink.error(f"Cannot capture frame: {e}")
            return None
        except RoiToolsError as e:
            self.sink.error(f"Failed to capture frame: {e}")
            return None

        with self._lock:
            if self.closed:
                self.fetcher.release()
                return None
            if not self.surface.is_ready:
                self.surface.acquire(snapshot.image)

        if snapshot.source == "remote":
            self.sink.success("Frame captured successfully")
        else:
            self.sink.info("Frame captured from stream")
        return snapshot

    def submit(
        self,
        operation: Callable[[], Any],
        callback: Optional[Callable[[Any], None]] = None,
    ) -> threading.Thread:
        """
        Run session operation on a background thread.

        Args:
            operation: session method to run, e.g. `session.save`
            callback: optional callable receiving the operation result;
                not invoked if the session is closed by the time the operation completes

        Returns:
            Started thread.
        """

        def run():
            if self.closed:
                return
            result = operation()
            if callback is not None and not self.closed:
                callback(result)

        name = getattr(operation, "__name__", "operation")
        t = threading.Thread(target=run, name=f"roi-{self.network_id}-{name}", daemon=True)
        with self._lock:
            self._threads = [th for th in self._threads if th.is_alive()]
            self._threads.append(t)
        t.start()
        return t

    def join(self, timeout: Optional[float] = None):
        """Wait for completion of all submitted operations"""
        with self._lock:
            threads = list(self._threads)
        for t in threads:
            t.join(timeout)

    def close(self):
        """
        End the editing session: abandon pending retries, drop zones,
        release frame buffers. Running operations are not waited for.
        """
        with self._lock:
            self._closed.set()
            self.drawing.cancel()
            self.store.clear()
        self.fetcher.release()
        self.surface.release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
