"""图像网关异常处理模块。

定义统一的异常类和错误处理机制，包含异常处理装饰器。
所有异常最终以 {status, name, message} 的结构返回给调用方。
"""

from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar

from PIL.Image import DecompressionBombError, UnidentifiedImageError
from pydantic import ValidationError as PydanticValidationError

from .utils.logging_helpers import get_logger


logger = get_logger()
T = TypeVar("T")


# 统一的异常类型
class ImageHandlerError(Exception):
    """网关错误基类"""

    status: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def name(self) -> str:
        return type(self).__name__


class InvalidArgument(ImageHandlerError):
    """参数错误 - 请求参数格式错误或越界"""

    status = 400


class Forbidden(ImageHandlerError):
    """拒绝访问"""

    status = 403


class NotFound(ImageHandlerError):
    """源对象不存在"""

    status = 404

    def __init__(self, message: str = "NotFound"):
        super().__init__(message)


class ProcessingError(ImageHandlerError):
    """图像处理过程错误"""

    pass


def invalid_argument_from(error: PydanticValidationError) -> InvalidArgument:
    """将 pydantic 校验错误转换为 InvalidArgument"""
    messages = []
    for item in error.errors():
        field = ".".join(str(loc) for loc in item.get("loc", ()))
        msg = item.get("msg", "invalid").removeprefix("Value error, ")
        messages.append(f"'{field}' {msg}" if field else msg)
    return InvalidArgument("; ".join(messages) or str(error))


def handle_image_errors(operation_name: str = "图像处理"):
    """统一的图像处理异常处理装饰器，用于异步函数

    网关自身的异常原样抛出，Pillow 的异常转换为网关异常。

    Args:
        operation_name: 操作名称，用于日志记录
    """

    def decorator(
        func: Callable[..., Awaitable[T]],
    ) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except ImageHandlerError:
                raise
            except UnidentifiedImageError as e:
                logger.warning(f"{operation_name} - 无法识别图像格式: {e}")
                raise InvalidArgument(f"Unsupported image format: {e}") from e
            except DecompressionBombError as e:
                logger.error(f"{operation_name} - 图像过大: {e}")
                raise ProcessingError(f"Image too large: {e}") from e
            except FileNotFoundError as e:
                raise NotFound() from e
            except OSError as e:
                logger.error(f"{operation_name} - 图像编解码失败: {e}")
                raise ProcessingError(f"{operation_name} failed: {e}") from e

        return wrapper

    return decorator


class ErrorHandler:
    """统一错误处理器

    把任意异常转换为对外的错误结构。
    """

    @staticmethod
    def to_body(error: Exception) -> dict[str, Any]:
        """构建 {status, name, message} 错误结构"""
        match error:
            case ImageHandlerError() as he:
                return {"status": he.status, "name": he.name, "message": he.message}
            case FileNotFoundError():
                return {"status": 404, "name": "NotFound", "message": "NotFound"}
            case _:
                return {
                    "status": 500,
                    "name": type(error).__name__,
                    "message": str(error),
                }

    @staticmethod
    def log(error: Exception, target: str) -> None:
        """按错误类型选择日志级别"""
        body = ErrorHandler.to_body(error)
        if body["status"] >= 500:
            logger.error(f"请求处理失败 [{target}]: {error}", exc_info=error)
        else:
            logger.warning(f"请求被拒绝 [{target}]: {body['name']} - {body['message']}")
