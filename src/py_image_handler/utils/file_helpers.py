"""工具函数模块。

提供存储层使用的路径与 MIME 类型工具函数。
"""

import mimetypes
from io import BytesIO
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from ..models.constants import get_mime_type
from .logging_helpers import get_logger
from .message_formatter import MessageFormatter


logger = get_logger()


def resolve_under_root(root: Path, uri: str) -> Path | None:
    """把 URI 解析为 root 下的路径，越出 root 时返回 None"""
    root = root.resolve()
    candidate = (root / uri.lstrip("/")).resolve()
    if candidate == root or not candidate.is_relative_to(root):
        return None
    return candidate


def guess_content_type(data: bytes, uri: str = "") -> str:
    """获取字节内容的 MIME 类型

    优先用 Pillow 识别图片格式，识别失败时按扩展名推断。

    Args:
        data: 文件内容
        uri: 对象 URI，用于按扩展名推断

    Returns:
        str: MIME 类型，如 'image/jpeg'
    """
    try:
        with Image.open(BytesIO(data)) as img:
            if img.format:
                return get_mime_type(img.format)
    except (UnidentifiedImageError, OSError) as e:
        logger.debug(MessageFormatter.operation_failed("识别图片格式", uri, e))

    guessed, _ = mimetypes.guess_type(uri)
    return guessed or "application/octet-stream"
