"""图像处理相关常量定义。

格式、特性开关与水印方位等常量。
"""

from enum import Enum
from typing import Final


class Features(str, Enum):
    """处理特性开关，在取图前由各动作的 before_fetch 计算"""

    # 读取动图的全部帧
    READ_ALL_ANIMATED_FRAMES = "read-all-animated-frames"
    # 根据 Accept 头自动输出 WebP
    AUTO_WEBP = "auto-webp"


class ImageFormats:
    """输出格式管理"""

    # format 动作支持的目标格式（顺序即错误消息中的顺序）
    SUPPORTED: Final[tuple[str, ...]] = ("jpg", "jpeg", "png", "webp", "gif")

    # 支持动图的格式
    ANIMATED: Final[frozenset[str]] = frozenset({"webp", "gif"})

    # 名称别名到 Pillow 格式名
    PILLOW_NAMES: Final[dict[str, str]] = {
        "jpg": "JPEG",
        "jpeg": "JPEG",
        "png": "PNG",
        "webp": "WEBP",
        "gif": "GIF",
    }

    # 只定义 Pillow 未提供的特殊 MIME 类型
    SPECIAL_MIME_TYPES: Final[dict[str, str]] = {
        "ICO": "image/x-icon",
        "SVG": "image/svg+xml",
    }


class Gravity:
    """水印方位"""

    LONG_FORMS: Final[tuple[str, ...]] = (
        "north",
        "west",
        "east",
        "south",
        "center",
        "centre",
        "southeast",
        "southwest",
        "northwest",
        "northeast",
    )

    ALIASES: Final[dict[str, str]] = {
        "se": "southeast",
        "sw": "southwest",
        "nw": "northwest",
        "ne": "northeast",
    }


def get_format_alias(format_str: str) -> str:
    """获取格式的标准名称（Pillow 格式名）"""
    lower = format_str.lower()
    return ImageFormats.PILLOW_NAMES.get(lower, format_str.upper())


def get_mime_type(format_str: str) -> str:
    """获取格式的 MIME 类型"""
    standard_format = get_format_alias(format_str)
    if standard_format in ImageFormats.SPECIAL_MIME_TYPES:
        return ImageFormats.SPECIAL_MIME_TYPES[standard_format]
    return f"image/{standard_format.lower()}"


def supports_animation(format_str: str) -> bool:
    """检查格式是否支持动图"""
    return format_str.lower() in ImageFormats.ANIMATED
