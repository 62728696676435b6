"""消息格式化工具模块。

提供统一的参数错误、操作失败消息格式化功能。
"""

from typing import Any


class MessageFormatter:
    """统一的消息格式化器"""

    @staticmethod
    def out_of_range(action: str, field: str, low: int, high: int) -> str:
        """数值越界错误消息"""
        return f"{action} param '{field}' must be between {low} and {high}"

    @staticmethod
    def not_integer(action: str, field: str, value: Any) -> str:
        """非整数参数错误消息"""
        return f"{action} param '{field}' must be an integer, got: {value!r}"

    @staticmethod
    def one_of(action: str, field: str, choices: list[str] | tuple[str, ...]) -> str:
        """枚举参数错误消息"""
        return f"{action} param '{field}' must be one of {','.join(choices)}"

    @staticmethod
    def unknown_param(key: str) -> str:
        """未知参数错误消息"""
        return f'Unknown param: "{key}"'

    @staticmethod
    def operation_failed(
        operation: str, target: str, error: Exception | None = None
    ) -> str:
        """操作失败消息"""
        msg = f"{operation}失败: {target}"
        if error:
            msg += f" - {error}"
        return msg
