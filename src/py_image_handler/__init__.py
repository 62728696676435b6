"""图片处理网关。

按 URL 中的处理指令对存储中的图片做格式转换、缩放、旋转与水印处理。
"""

__version__ = "0.1.0"
__description__ = "图片处理网关，基于 Pillow"

# 核心功能导出
from .gateway import handle_request
from .models.request import ParsedRequest, ProcessedImage
from .request import parse_request


__all__ = [
    "ParsedRequest",
    "ProcessedImage",
    "get_version",
    "handle_request",
    "parse_request",
]


def get_version() -> str:
    """获取版本号。"""
    return __version__
