#
# zone_drawing.py: pointer-driven zone drawing state machine
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements the state machine which turns pointer gestures into zones,
# and rendering of zones on frame images.
#

"""
Zone Drawing Module Overview
============================

`ZoneDrawing` consumes pointer-down/move/up events in display coordinates, maps them
to frame pixels through a `FrameSurface`, and maintains a candidate zone which the user
confirms or cancels. Confirmed zones are appended to a `ZoneStore`.

States:

    IDLE --pointer_down--> DRAWING --pointer_up (big enough)--> PENDING_CONFIRMATION
    DRAWING --pointer_up (too small)--> IDLE
    PENDING_CONFIRMATION --confirm/cancel--> IDLE

The rectangle always spans from the anchor point (recorded on pointer-down) to the current
pointer position, regardless of drag direction. Zones not larger than 10 frame pixels in
both directions are silently discarded on pointer-up.

Zone deletion and clearing are allowed in IDLE state only.

All transitions are synchronous; no method of this class performs any I/O.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional
import numpy as np
from . import logger_get
from .exceptions import DrawingStateError
from .frame_surface import FrameSurface
from .ui_support import deduce_text_color, draw_rectangle, put_text
from .zone_model import (
    MIN_ZONE_SIZE,
    FrameDimensions,
    Zone,
    ZoneStore,
    zone_color,
    zone_label,
)

# candidate zone drawing style
drawing_line_color = (255, 255, 255)
drawing_fill_alpha = 0.2
# confirmed zone fill opacity
zone_fill_alpha = 0.125


class DrawingState(Enum):
    """Zone drawing states"""

    IDLE = 0
    DRAWING = 1
    PENDING_CONFIRMATION = 2


@dataclass
class ZoneCandidate:
    """Zone being drawn; all coordinates are in frame pixels"""

    anchor_x: float
    anchor_y: float
    center_x: float
    center_y: float
    frame: FrameDimensions
    color_index: int = 0
    width: float = 0.0
    height: float = 0.0

    def update(self, x: float, y: float):
        """Stretch the rectangle from the anchor to given point"""
        self.width = abs(x - self.anchor_x)
        self.height = abs(y - self.anchor_y)
        self.center_x = min(x, self.anchor_x) + self.width / 2
        self.center_y = min(y, self.anchor_y) + self.height / 2

    def large_enough(self) -> bool:
        return self.width > MIN_ZONE_SIZE and self.height > MIN_ZONE_SIZE

    def to_zone(self) -> Zone:
        return Zone(
            width=self.width,
            height=self.height,
            center_x=self.center_x,
            center_y=self.center_y,
            frame=self.frame,
        )


class ZoneDrawing:
    """
    Zone drawing state machine.
    """

    def __init__(
        self,
        surface: FrameSurface,
        store: Optional[ZoneStore] = None,
        *,
        on_change: Optional[Callable[[], None]] = None,
    ):
        """
        Constructor.

        Args:
            surface: frame surface adapter to map pointer coordinates
            store: zone store to append confirmed zones to; new empty store if None
            on_change: optional callback invoked after each state or zone store change
        """
        self.surface = surface
        self.store = store if store is not None else ZoneStore()
        self._on_change = on_change
        self._state = DrawingState.IDLE
        self._candidate: Optional[ZoneCandidate] = None

    @property
    def state(self) -> DrawingState:
        return self._state

    @property
    def candidate(self) -> Optional[ZoneCandidate]:
        return self._candidate

    def _set_state(self, state: DrawingState):
        if state == DrawingState.IDLE:
            self._candidate = None
        self._state = state
        if self._on_change is not None:
            self._on_change()

    def pointer_down(self, display_x: float, display_y: float) -> DrawingState:
        """
        Start drawing new zone at given display point.
        Ignored unless the state machine is idle.

        Raises:
            FrameNotReadyError: if frame surface has no frame yet
        """
        if self._state != DrawingState.IDLE:
            return self._state

        dims = self.surface.native_dimensions()
        x, y = self.surface.to_frame_pixels(display_x, display_y)
        self._candidate = ZoneCandidate(
            anchor_x=x,
            anchor_y=y,
            center_x=x,
            center_y=y,
            frame=dims,
            color_index=len(self.store),
        )
        self._set_state(DrawingState.DRAWING)
        return self._state

    def pointer_move(self, display_x: float, display_y: float) -> DrawingState:
        """Update zone being drawn with current pointer position"""
        if self._state == DrawingState.DRAWING and self._candidate is not None:
            x, y = self.surface.to_frame_pixels(display_x, display_y)
            self._candidate.update(x, y)
            if self._on_change is not None:
                self._on_change()
        return self._state

    def pointer_up(
        self, display_x: Optional[float] = None, display_y: Optional[float] = None
    ) -> DrawingState:
        """
        Finish the drawing gesture.

        Args:
            display_x, display_y: optional final pointer position

        Returns:
            PENDING_CONFIRMATION if the zone is big enough, IDLE otherwise.
        """
        if self._state != DrawingState.DRAWING or self._candidate is None:
            return self._state

        if display_x is not None and display_y is not None:
            x, y = self.surface.to_frame_pixels(display_x, display_y)
            self._candidate.update(x, y)

        if self._candidate.large_enough():
            logger_get().debug(f"Zone drawing completed: {self._candidate}")
            self._set_state(DrawingState.PENDING_CONFIRMATION)
        else:
            logger_get().debug("Zone too small, canceling")
            self._set_state(DrawingState.IDLE)
        return self._state

    def confirm(self) -> Zone:
        """
        Confirm the zone pending confirmation and append it to zone store.

        Returns:
            Confirmed zone.

        Raises:
            DrawingStateError: if no zone is pending confirmation,
                or zone center is outside the frame
        """
        candidate = self._candidate
        if self._state != DrawingState.PENDING_CONFIRMATION or candidate is None:
            raise DrawingStateError(
                f"No zone is pending confirmation (state {self._state.name})"
            )
        zone = candidate.to_zone()
        if not candidate.large_enough() or not zone.center_inside(candidate.frame):
            raise DrawingStateError(f"Zone {zone} does not fit frame {candidate.frame}")

        self.store.append(zone)
        logger_get().debug(f"Zone confirmed: {zone}")
        self._set_state(DrawingState.IDLE)
        return zone

    def cancel(self):
        """Discard the zone being drawn or pending confirmation"""
        if self._state != DrawingState.IDLE:
            self._set_state(DrawingState.IDLE)

    def _check_idle(self, action: str):
        if self._state != DrawingState.IDLE:
            raise DrawingStateError(
                f"Cannot {action} while zone drawing is in progress (state {self._state.name})"
            )

    def delete_zone(self, index: int) -> Zone:
        """Delete zone with given index from zone store"""
        self._check_idle("delete zone")
        zone = self.store.delete(index)
        logger_get().debug(f"Deleted zone {index}. Remaining zones: {len(self.store)}")
        if self._on_change is not None:
            self._on_change()
        return zone

    def clear_all(self):
        """Delete all zones from zone store"""
        self._check_idle("clear zones")
        self.store.clear()
        if self._on_change is not None:
            self._on_change()

    def render(
        self, image: np.ndarray, *, line_width: int = 2, font_scale: float = 1
    ) -> np.ndarray:
        """
        Draw all confirmed zones and the zone being drawn on given frame image.

        Zones drawn on frames of other resolution are scaled to the image size.

        Args:
            image: OpenCV image of the current frame (modified in place)
            line_width: zone border width
            font_scale: zone label font scale

        Returns:
            Annotated image.
        """
        im_h, im_w = image.shape[:2]

        def scaled_bbox(zone: Zone) -> list:
            frame = zone.frame
            if frame is None or (frame.width == im_w and frame.height == im_h):
                return zone.bbox()
            sx, sy = im_w / frame.width, im_h / frame.height
            x0, y0, x1, y1 = zone.bbox()
            return [x0 * sx, y0 * sy, x1 * sx, y1 * sy]

        for index, zone in enumerate(self.store):
            color = zone_color(index)
            bbox = scaled_bbox(zone)
            draw_rectangle(
                image,
                bbox,
                line_color=color,
                fill_color=color,
                fill_alpha=zone_fill_alpha,
                line_width=line_width,
            )
            put_text(
                image,
                zone_label(index),
                (bbox[0], bbox[1]),
                font_color=deduce_text_color(color),
                bg_color=color,
                font_scale=font_scale,
            )

        candidate = self._candidate
        if self._state != DrawingState.IDLE and candidate is not None:
            draw_rectangle(
                image,
                scaled_bbox(candidate.to_zone()),
                line_color=drawing_line_color,
                fill_color=drawing_line_color,
                fill_alpha=drawing_fill_alpha,
                line_width=line_width,
            )
        return image
