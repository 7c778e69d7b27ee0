#
# zone_model.py: zone data model and ROI wire format codec
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements rectangular zone entity, ordered zone store, color palette rules,
# and conversion between zone lists and the ROI tuple list understood by
# the remote motion detection service.
#

"""
Zone Model Module Overview
==========================

Zones are axis-aligned rectangles defined in frame-pixel units of the frame they were
drawn on. The remote motion detection service expects zones as a list of *ROI tuples*:

    [width, height, [center_x, center_y], frame_width, frame_height]

where all values are integers. Trailing frame dimensions tell the service which frame
resolution the zone geometry refers to, so every zone carries the dimensions of the frame
which was shown when the zone was confirmed.

The service reports "no configuration" by the degenerate sentinel list
`[[0, 0, [0, 0], 0, 0]]`. The pure codec functions of this module never produce the
sentinel: `to_wire([])` returns an empty list. Sentinel substitution on save is done by
`DetectionClient.save_config()`. On decode, the sentinel yields an empty zone list.

Key Classes:
    - `FrameDimensions`: native pixel size of a frame source
    - `Zone`: confirmed rectangular zone
    - `ZoneStore`: ordered list of confirmed zones of one camera editing session

Key Functions:
    - `to_wire()`, `from_wire()`: ROI tuple codec
    - `zone_color()`: palette color of the zone at given index
    - `save_zones_json()`, `load_zones_json()`: local JSON export/import
"""

import json, math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence, Union
from .exceptions import ResponseFormatError

# ROI tuple in wire format: [width, height, [center_x, center_y], frame_width, frame_height]
ROITuple = List[Any]

# server-side "no configuration" marker
SENTINEL_ROI: ROITuple = [0, 0, [0, 0], 0, 0]

# zone colors in RGB, assigned round-robin by zone index
PALETTE = [
    (255, 0, 0),  # red
    (0, 255, 0),  # green
    (0, 0, 255),  # blue
    (255, 255, 0),  # yellow
    (255, 0, 255),  # magenta
    (0, 255, 255),  # cyan
]

# minimal zone size in frame pixels: zones must be strictly larger in both directions
MIN_ZONE_SIZE = 10

# zone file format version
zone_file_version = 1


@dataclass(frozen=True)
class FrameDimensions:
    """Native pixel dimensions of a frame source"""

    width: int
    height: int

    def __iter__(self):
        return iter((self.width, self.height))


@dataclass
class Zone:
    """
    Rectangular zone in frame-pixel units.

    Attributes:
        width: zone width
        height: zone height
        center_x: X coordinate of zone center
        center_y: Y coordinate of zone center
        frame: dimensions of the frame the zone was confirmed on; None if unknown
    """

    width: float
    height: float
    center_x: float
    center_y: float
    frame: Optional[FrameDimensions] = None

    @property
    def left(self) -> float:
        return self.center_x - self.width / 2

    @property
    def top(self) -> float:
        return self.center_y - self.height / 2

    @property
    def right(self) -> float:
        return self.center_x + self.width / 2

    @property
    def bottom(self) -> float:
        return self.center_y + self.height / 2

    def bbox(self) -> List[float]:
        """Zone bounding box in [x0, y0, x1, y1] format"""
        return [self.left, self.top, self.right, self.bottom]

    def center_inside(self, dims: FrameDimensions) -> bool:
        """Check if zone center lies within frame of given dimensions"""
        return 0 <= self.center_x <= dims.width and 0 <= self.center_y <= dims.height

    def geometry(self) -> tuple:
        return (self.width, self.height, self.center_x, self.center_y)


def zone_color(index: int) -> tuple:
    """Return RGB palette color of the zone with given index in the zone store"""
    return PALETTE[index % len(PALETTE)]


def zone_label(index: int) -> str:
    """Return display label of the zone with given index in the zone store"""
    return f"Region {index + 1}"


class ZoneStore:
    """
    Ordered sequence of confirmed zones of one camera editing session.

    Insertion order defines zone colors and labels, which are always derived from the
    current zone index, so they follow deletions automatically.
    """

    def __init__(self, zones: Optional[Sequence[Zone]] = None):
        self._zones: List[Zone] = list(zones) if zones else []

    def __len__(self) -> int:
        return len(self._zones)

    def __iter__(self) -> Iterator[Zone]:
        return iter(list(self._zones))

    def __getitem__(self, index: int) -> Zone:
        return self._zones[index]

    @property
    def zones(self) -> List[Zone]:
        """Copy of the zone list"""
        return list(self._zones)

    def append(self, zone: Zone):
        self._zones.append(zone)

    def delete(self, index: int) -> Zone:
        """Remove zone at given index and return it"""
        if not 0 <= index < len(self._zones):
            raise IndexError(f"Zone index {index} is out of range [0, {len(self._zones)})")
        return self._zones.pop(index)

    def clear(self):
        self._zones.clear()

    def replace_all(self, zones: Sequence[Zone]):
        """Replace store contents, e.g. with zones loaded from the service"""
        self._zones[:] = list(zones)

    def color(self, index: int) -> tuple:
        return zone_color(index)

    def label(self, index: int) -> str:
        return zone_label(index)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties up, the way the detection service web UI does"""
    return int(math.floor(value + 0.5))


def to_wire(
    zones: Sequence[Zone], dims: Optional[FrameDimensions] = None
) -> List[ROITuple]:
    """
    Convert zones into ROI tuple list.

    Args:
        zones: zones to convert
        dims: frame dimensions to use for zones which do not carry their own

    Returns:
        List of `[width, height, [center_x, center_y], frame_width, frame_height]` tuples;
        empty list for empty zone list.
    """
    ret: List[ROITuple] = []
    for i, zone in enumerate(zones):
        frame = zone.frame if zone.frame is not None else dims
        if frame is None:
            raise ValueError(f"Frame dimensions are not known for zone #{i}")
        ret.append(
            [
                round_half_up(zone.width),
                round_half_up(zone.height),
                [round_half_up(zone.center_x), round_half_up(zone.center_y)],
                int(frame.width),
                int(frame.height),
            ]
        )
    return ret


def is_sentinel(rois: Sequence) -> bool:
    """Check if ROI list is the service "no configuration" marker"""
    if not rois:
        return False
    first = rois[0]
    return isinstance(first, (list, tuple)) and len(first) > 0 and first[0] == 0


def _number(value: Any, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ResponseFormatError(f"ROI {what} is not a number: {value!r}")
    return float(value)


def from_wire(rois: Optional[Sequence]) -> List[Zone]:
    """
    Convert ROI tuple list into zones.

    Args:
        rois: list of `[width, height, [center_x, center_y], frame_width, frame_height]` tuples

    Returns:
        List of zones; empty for None, empty list or "no configuration" sentinel.

    Raises:
        ResponseFormatError: if ROI tuples are malformed
    """
    if rois is None:
        return []
    if not isinstance(rois, (list, tuple)):
        raise ResponseFormatError(f"ROI list expected, got {type(rois).__name__}")
    if not rois or is_sentinel(rois):
        return []

    zones: List[Zone] = []
    for roi in rois:
        if not isinstance(roi, (list, tuple)) or len(roi) != 5:
            raise ResponseFormatError(f"Malformed ROI tuple: {roi!r}")
        width, height, center, frame_width, frame_height = roi
        if not isinstance(center, (list, tuple)) or len(center) != 2:
            raise ResponseFormatError(f"Malformed ROI center: {center!r}")
        fw = _number(frame_width, "frame width")
        fh = _number(frame_height, "frame height")
        zones.append(
            Zone(
                width=_number(width, "width"),
                height=_number(height, "height"),
                center_x=_number(center[0], "center X"),
                center_y=_number(center[1], "center Y"),
                frame=FrameDimensions(int(fw), int(fh)) if fw > 0 and fh > 0 else None,
            )
        )
    return zones


def save_zones_json(
    path: Union[str, Path],
    zones: Sequence[Zone],
    dims: Optional[FrameDimensions] = None,
):
    """
    Save zones to JSON file in ROI wire format.

    Args:
        path: file path
        zones: zones to save
        dims: frame dimensions for zones which do not carry their own
    """
    out_json = {
        "version": zone_file_version,
        "type": "roi",
        "rois": to_wire(zones, dims),
    }
    with open(path, "w") as f:
        json.dump(out_json, f, indent=4)


def load_zones_json(path: Union[str, Path]) -> List[Zone]:
    """
    Load zones from JSON file saved by `save_zones_json()`.
    Bare ROI tuple lists are accepted as well.
    """
    with open(path, "r") as f:
        data = json.load(f)
    if isinstance(data, dict):
        if data.get("type", "roi") != "roi":
            raise ResponseFormatError(f"File {path} does not contain ROI data")
        data = data.get("rois", [])
    return from_wire(data)
