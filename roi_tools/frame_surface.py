#
# frame_surface.py: frame surface adapter
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements the adapter between the drawing surface (display coordinates)
# and the frame source (native frame pixels).
#

import threading
import numpy as np
from typing import Callable, Optional, Tuple
from .exceptions import FrameNotReadyError
from .image_tools import ImageType, image_size, to_opencv
from .zone_model import FrameDimensions


class FrameSurface:
    """
    Frame surface adapter.

    Owns the current frame of the frame source (live video frame or captured still image)
    and maps pointer coordinates from display space to frame-pixel space.

    The frame is acquired when the source reports usable pixel data and released on
    session teardown. Until a frame is acquired, the surface is not ready and
    `native_dimensions()` raises `FrameNotReadyError`.

    The display rectangle may differ from the native frame size (window scaling). It is
    either queried on every mapping via `display_size` callable, or set explicitly by
    `on_resize()`; if none is known, the display is assumed to be unscaled.
    """

    def __init__(
        self, display_size: Optional[Callable[[], Tuple[float, float]]] = None
    ):
        """
        Constructor.

        Args:
            display_size: optional callable returning current (width, height)
                of the display element
        """
        self._display_size_query = display_size
        self._display_size: Optional[Tuple[float, float]] = None
        self._frame: Optional[np.ndarray] = None
        self._dims: Optional[FrameDimensions] = None
        self._live = False
        self._lock = threading.Lock()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()

    @property
    def is_ready(self) -> bool:
        with self._lock:
            return self._dims is not None

    @property
    def is_live(self) -> bool:
        """True if the current frame comes from a live video source"""
        with self._lock:
            return self._live

    def acquire(self, frame: ImageType, *, live: bool = False):
        """
        Take new frame from the frame source. Frames with zero size are ignored,
        so the surface stays not ready until the source delivers real pixel data.

        Args:
            frame: OpenCV (BGR) or PIL image
            live: True for frames of a live video source, False for still images
        """
        w, h = image_size(frame)
        if w <= 0 or h <= 0:
            return
        img = to_opencv(frame)
        with self._lock:
            self._frame = img
            self._dims = FrameDimensions(int(w), int(h))
            self._live = live

    def release(self):
        """Release current frame; surface becomes not ready"""
        with self._lock:
            self._frame = None
            self._dims = None
            self._live = False

    def native_dimensions(self) -> FrameDimensions:
        """
        Get native pixel dimensions of the current frame.

        Raises:
            FrameNotReadyError: if no frame is acquired
        """
        with self._lock:
            if self._dims is None:
                raise FrameNotReadyError()
            return self._dims

    def current_frame(self) -> Optional[np.ndarray]:
        """Return a copy of the current frame or None if not ready"""
        with self._lock:
            return None if self._frame is None else self._frame.copy()

    def live_frame(self) -> Optional[np.ndarray]:
        """Return a copy of the current frame if it comes from a live video source, None otherwise"""
        with self._lock:
            return self._frame.copy() if self._live and self._frame is not None else None

    def set_display_size_query(
        self, display_size: Optional[Callable[[], Tuple[float, float]]]
    ):
        """Set callable returning current (width, height) of the display element"""
        self._display_size_query = display_size

    def on_resize(self, display_width: float, display_height: float):
        """Record new size of the display element"""
        self._display_size = (display_width, display_height)

    def display_size(self) -> Tuple[float, float]:
        """Current display element size; native frame size if the display size is unknown"""
        if self._display_size_query is not None:
            size = self._display_size_query()
            if size and size[0] > 0 and size[1] > 0:
                return size
        if self._display_size is not None:
            return self._display_size
        dims = self.native_dimensions()
        return (dims.width, dims.height)

    def to_frame_pixels(self, display_x: float, display_y: float) -> Tuple[float, float]:
        """
        Map display point to frame pixels.

        Args:
            display_x, display_y: point coordinates relative to the display element origin

        Returns:
            (x, y) in native frame pixels
        """
        dims = self.native_dimensions()
        display_w, display_h = self.display_size()
        return (
            display_x * dims.width / display_w,
            display_y * dims.height / display_h,
        )

    def to_display_pixels(self, x: float, y: float) -> Tuple[float, float]:
        """Map frame pixel coordinates to display coordinates"""
        dims = self.native_dimensions()
        display_w, display_h = self.display_size()
        return (x * display_w / dims.width, y * display_h / dims.height)
