"""工具模块包。

提供纯工具函数，不包含业务逻辑。
"""

from .file_helpers import guess_content_type, resolve_under_root
from .logging_helpers import configure_logging, get_logger
from .message_formatter import MessageFormatter


__all__ = [
    "MessageFormatter",
    "configure_logging",
    "get_logger",
    "guess_content_type",
    "resolve_under_root",
]
