#
# image_tools.py: image processing functions
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements miscellaneous functions for frame image handling
#

import base64, binascii
import cv2, numpy as np
import PIL.Image
from typing import Union


ImageType = Union[np.ndarray, PIL.Image.Image]
PILImage = PIL.Image.Image


def luminance(color: tuple) -> float:
    """Calculate luminance from RGB color

    Args:
        color (tuple): RGB color
    """
    return 0.2126 * color[0] + 0.7152 * color[1] + 0.0722 * color[2]


def image_size(img: ImageType) -> tuple:
    """Get image size as (width, height)

    Args:
        img: OpenCV or PIL image
    """
    if isinstance(img, PILImage):
        return img.size
    else:
        return (img.shape[1], img.shape[0])


def to_opencv(img: ImageType) -> np.ndarray:
    """Convert any image to OpenCV image"""

    if isinstance(img, PILImage):
        return cv2.cvtColor(np.array(img.convert("RGB")), cv2.COLOR_RGB2BGR)
    return img


def to_pil(img: ImageType) -> PILImage:
    """Convert any image to PIL image"""

    if isinstance(img, np.ndarray):
        return PIL.Image.fromarray(cv2.cvtColor(img, cv2.COLOR_BGR2RGB))
    return img


def decode_base64_image(payload: str) -> np.ndarray:
    """Decode base64-encoded JPEG/PNG image into OpenCV image

    Args:
        payload: base64 string; `data:image/...;base64,` prefix is allowed

    Returns:
        Decoded BGR image

    Raises:
        ValueError: if payload cannot be decoded into image
    """
    if payload.startswith("data:"):
        payload = payload.split(",", 1)[-1]
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Frame payload is not valid base64: {e}") from e

    img = cv2.imdecode(np.frombuffer(raw, dtype=np.uint8), cv2.IMREAD_COLOR)
    if img is None:
        raise ValueError("Frame payload is not a decodable image")
    return img


def encode_base64_image(img: ImageType, ext: str = ".jpg") -> str:
    """Encode image into base64 string of given image format"""
    ok, buf = cv2.imencode(ext, to_opencv(img))
    if not ok:
        raise ValueError(f"Image cannot be encoded as {ext}")
    return base64.b64encode(buf.tobytes()).decode("ascii")
