"""处理器包。

image 处理器及其动作：format、resize、rotate、watermark。
"""

from .base import ImageAction, ImageContext, ProcessContext
from .format import FormatAction
from .image_processor import ImageProcessor, get_processor
from .resize import ResizeAction
from .rotate import RotateAction
from .watermark import WatermarkAction


__all__ = [
    "FormatAction",
    "ImageAction",
    "ImageContext",
    "ImageProcessor",
    "ProcessContext",
    "ResizeAction",
    "RotateAction",
    "WatermarkAction",
    "get_processor",
]
