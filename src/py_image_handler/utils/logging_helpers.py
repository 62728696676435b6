"""日志工具模块。

提供统一的日志记录功能，标准化日志格式和配置。
"""

import inspect
import logging
from logging.handlers import RotatingFileHandler

from ..config import LoggingDefaults


def get_logger(name: str | None = None) -> logging.Logger:
    """获取标准化配置的日志记录器。

    Args:
        name: 日志记录器名称，默认使用调用模块的 __name__

    Returns:
        logging.Logger: 配置好的日志记录器
    """
    if name is None:
        # 获取调用者的模块名
        frame = inspect.currentframe()
        if frame and frame.f_back:
            name = frame.f_back.f_globals.get("__name__", "unknown")
        else:
            name = "unknown"

    return logging.getLogger(name)


def configure_logging(settings: LoggingDefaults) -> None:
    """按配置初始化根日志记录器，重复调用只会替换本模块安装的处理器"""
    root = logging.getLogger()
    root.setLevel(settings.LOG_LEVEL)

    for handler in list(root.handlers):
        if getattr(handler, "_py_image_handler", False):
            root.removeHandler(handler)

    formatter = logging.Formatter(settings.LOG_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.ENABLE_FILE_LOGGING:
        handlers.append(
            RotatingFileHandler(
                settings.LOG_FILE_PATH,
                maxBytes=settings.LOG_FILE_MAX_SIZE,
                backupCount=settings.LOG_FILE_BACKUP_COUNT,
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setFormatter(formatter)
        handler._py_image_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)
