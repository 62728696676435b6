"""数据模型包。

定义请求、动作参数与图像元数据等数据结构。
"""

from .constants import (
    Features,
    Gravity,
    ImageFormats,
    get_format_alias,
    get_mime_type,
    supports_animation,
)
from .image_metadata import ImageMetadata
from .options import (
    ActionOptions,
    FormatOptions,
    GravityPosition,
    MixedGravityPlan,
    ResizeOptions,
    RotateOptions,
    TextMetrics,
    WatermarkOptions,
)
from .request import ParsedRequest, ProcessedImage, StoredBuffer


__all__ = [
    "ActionOptions",
    "Features",
    "FormatOptions",
    "Gravity",
    "GravityPosition",
    "ImageFormats",
    "ImageMetadata",
    "MixedGravityPlan",
    "ParsedRequest",
    "ProcessedImage",
    "ResizeOptions",
    "RotateOptions",
    "StoredBuffer",
    "TextMetrics",
    "WatermarkOptions",
    "get_format_alias",
    "get_mime_type",
    "supports_animation",
]
