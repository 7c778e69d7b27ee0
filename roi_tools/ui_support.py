#
# ui_support.py: UI support functions
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements functions to draw zone overlays and text labels on OpenCV images.
#

import cv2, numpy as np
from typing import Optional
from .image_tools import luminance


def deduce_text_color(bg_color: tuple):
    """Return a readable text color.

    Chooses black or white based on the luminance of ``bg_color`` so that text
    remains legible.

    Args:
        bg_color (tuple): Background color as an ``(R, G, B)`` tuple.

    Returns:
        (Tuple[int, int, int]): ``(R, G, B)`` value for black or white text.
    """
    return (0, 0, 0) if luminance(bg_color) > 180 else (255, 255, 255)


def rgb_to_bgr(color):
    """Convert an RGB color tuple to BGR.

    Args:
        color (tuple): Color in ``(R, G, B)`` format.

    Returns:
        (Tuple[int, int, int]): Color in ``(B, G, R)`` order for OpenCV functions.
    """
    return tuple(color[::-1])


def rgb_to_hex(color) -> str:
    """Convert an RGB color tuple to ``#RRGGBB`` string used by tkinter"""
    return "#{:02X}{:02X}{:02X}".format(*color)


def draw_rectangle(
    image: np.ndarray,
    bbox: list,
    *,
    line_color: tuple,
    fill_color: Optional[tuple] = None,
    fill_alpha: float = 0.125,
    line_width: int = 2,
) -> np.ndarray:
    """Draw rectangle with optional translucent fill.

    Args:
        image: OpenCV image to draw on (modified in place)
        bbox: rectangle in [x0, y0, x1, y1] format
        line_color: border color in RGB format
        fill_color: fill color in RGB format; no fill if None
        fill_alpha: fill opacity in [0, 1]
        line_width: border width in pixels

    Returns:
        Image with rectangle drawn on it.
    """
    im_h, im_w = image.shape[:2]
    x0, y0, x1, y1 = (int(round(v)) for v in bbox)

    if fill_color is not None and fill_alpha > 0:
        cx0, cy0 = max(0, min(x0, x1)), max(0, min(y0, y1))
        cx1, cy1 = min(im_w, max(x0, x1)), min(im_h, max(y0, y1))
        if cx1 > cx0 and cy1 > cy0:
            roi = image[cy0:cy1, cx0:cx1]
            overlay = np.full_like(roi, rgb_to_bgr(fill_color))
            image[cy0:cy1, cx0:cx1] = cv2.addWeighted(
                overlay, fill_alpha, roi, 1 - fill_alpha, 0
            )

    cv2.rectangle(image, (x0, y0), (x1, y1), rgb_to_bgr(line_color), line_width)
    return image


def put_text(
    image: np.ndarray,
    label: str,
    corner_xy: tuple,
    *,
    font_color: tuple,
    bg_color: Optional[tuple] = None,
    font_face: int = cv2.FONT_HERSHEY_PLAIN,
    font_scale: float = 1,
    font_thickness: int = 1,
) -> np.ndarray:
    """Draw single-line text label with its bottom-left corner at given point.

    The label is shifted to stay within image boundaries.

    Args:
        image (np.ndarray): Input image in OpenCV format (BGR).
        label (str): Text to draw.
        corner_xy (tuple): (x, y) of the bottom-left corner of the label box.
        font_color (tuple): Text color in RGB format.
        bg_color (Optional[tuple], optional): Background color in RGB format.
            If None, no background is drawn. Defaults to None.
        font_face (int, optional): OpenCV font face. Defaults to FONT_HERSHEY_PLAIN.
        font_scale (float, optional): Font size multiplier. Defaults to 1.
        font_thickness (int, optional): Font thickness in pixels. Defaults to 1.

    Returns:
        Image with text drawn on it.
    """

    if not label:
        return image

    im_h, im_w = image.shape[:2]
    margin = 6

    (text_w, text_h), baseline = cv2.getTextSize(
        label, font_face, font_scale, font_thickness
    )
    box_w = text_w + margin
    box_h = text_h + baseline + margin

    # fit to image
    x0 = int(min(max(0, corner_xy[0]), max(0, im_w - box_w)))
    y0 = int(min(max(0, corner_xy[1] - box_h), max(0, im_h - box_h)))

    if bg_color is not None:
        x1, y1 = min(im_w, x0 + box_w), min(im_h, y0 + box_h)
        if x1 > x0 and y1 > y0:
            image[y0:y1, x0:x1] = np.full(
                (y1 - y0, x1 - x0, 3), rgb_to_bgr(bg_color), dtype=image.dtype
            )

    return cv2.putText(
        image,
        label,
        (x0 + margin // 2, y0 + text_h + margin // 2),
        font_face,
        font_scale,
        rgb_to_bgr(font_color),
        font_thickness,
        cv2.LINE_AA,
    )
