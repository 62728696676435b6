"""处理器与动作的基础定义。

动作统一实现 validate / before_fetch / process 三段契约：
validate 只做参数校验，不做任何 I/O；before_fetch 在取图前修改特性开关；
process 读写上下文中的图像句柄。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from pydantic import ValidationError as PydanticValidationError

from ..engine import ImageHandle
from ..exceptions import InvalidArgument, ProcessingError, invalid_argument_from
from ..models.constants import Features
from ..models.options import ActionOptions
from ..store import BufferStore
from ..utils.message_formatter import MessageFormatter


OptionsT = TypeVar("OptionsT", bound=ActionOptions)


@dataclass
class ProcessContext:
    """取图前的处理上下文"""

    uri: str
    actions: list[list[str]]
    buffer_store: BufferStore
    features: dict[Features, bool] = field(default_factory=dict)


@dataclass
class ImageContext(ProcessContext):
    """取图后的处理上下文，image 在管线中独占传递"""

    image: ImageHandle | None = None

    @property
    def handle(self) -> ImageHandle:
        if self.image is None:
            raise ProcessingError("Image context has no image")
        return self.image


class ImageAction(ABC, Generic[OptionsT]):
    """图像动作基类"""

    name: str = ""

    @abstractmethod
    def validate(self, params: list[str]) -> OptionsT:
        """校验参数并返回参数模型"""

    def before_fetch(self, ctx: ProcessContext, params: list[str]) -> None:
        """取图前的钩子，默认不做任何事"""
        del ctx, params

    @abstractmethod
    async def process(self, ctx: ImageContext, params: list[str]) -> None:
        """执行动作"""

    def build_options(self, model: type[OptionsT], **values) -> OptionsT:
        """构建参数模型，pydantic 校验错误转换为 InvalidArgument"""
        try:
            return model(**values)
        except PydanticValidationError as e:
            raise invalid_argument_from(e) from e


def parse_int(action: str, key: str, value: str) -> int:
    """解析整数参数"""
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise InvalidArgument(MessageFormatter.not_integer(action, key, value)) from e
