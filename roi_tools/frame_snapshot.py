#
# frame_snapshot.py: single frame acquisition
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements fetching of a still camera frame from the detection service
# with fallback to local capture from the live frame source.
#

import numpy as np
from dataclasses import dataclass
from typing import Optional
from . import logger_get
from .detection_client import DetectionClient
from .exceptions import FrameNotReadyError, PreconditionError, ResponseFormatError, RoiToolsError
from .frame_surface import FrameSurface
from .image_tools import decode_base64_image
from .zone_model import FrameDimensions


@dataclass
class Snapshot:
    """
    Captured still frame.

    Attributes:
        image: OpenCV (BGR) image
        source: "remote" for frames fetched from the service, "local" for frames
            copied from the live frame source
    """

    image: np.ndarray
    source: str

    @property
    def dimensions(self) -> FrameDimensions:
        return FrameDimensions(self.image.shape[1], self.image.shape[0])


class FrameSnapshotFetcher:
    """
    Still frame fetcher.

    Remote frames are preferred; when the service call or image decoding fails and a live
    frame source is available, the currently displayed live frame is copied instead.
    The fetcher owns the last captured snapshot buffer and drops it when superseded
    by a new capture or on `release()`.
    """

    def __init__(self, client: DetectionClient, surface: Optional[FrameSurface] = None):
        """
        Constructor.

        Args:
            client: detection service client
            surface: frame surface to fall back to; only frames of a live video source
                are used, still images are not; no fallback if None
        """
        self.client = client
        self.surface = surface
        self._snapshot: Optional[Snapshot] = None

    @property
    def snapshot(self) -> Optional[Snapshot]:
        """Last captured snapshot"""
        return self._snapshot

    def capture_frame(self, network_id: str) -> Snapshot:
        """
        Capture single frame of the camera.

        Args:
            network_id: camera network ID

        Returns:
            Captured snapshot.

        Raises:
            PreconditionError: if network ID or access token is missing
            RoiToolsError: if the remote frame cannot be obtained and no live frame is available
        """
        try:
            image = decode_base64_image(self.client.get_frame(network_id))
            snapshot = Snapshot(image, "remote")
        except PreconditionError:
            raise
        except (RoiToolsError, ValueError) as e:
            local = self.surface.live_frame() if self.surface is not None else None
            if local is None:
                if isinstance(e, ValueError):
                    raise ResponseFormatError(str(e)) from e
                raise
            logger_get().warning(
                f"Failed to fetch frame for network_id {network_id}: {e}; using live frame"
            )
            snapshot = Snapshot(local, "local")

        self.release()
        self._snapshot = snapshot
        return snapshot

    def capture_local(self) -> Snapshot:
        """
        Capture the currently displayed live frame.

        Raises:
            FrameNotReadyError: if no live frame is available
        """
        local = self.surface.live_frame() if self.surface is not None else None
        if local is None:
            raise FrameNotReadyError()
        self.release()
        self._snapshot = Snapshot(local, "local")
        return self._snapshot

    def release(self):
        """Drop the last snapshot buffer"""
        self._snapshot = None
