"""图像处理器：校验、取图、按顺序执行动作、编码。

一次请求的执行顺序严格串行：
全部动作校验 -> 取图前钩子 -> 取图 -> 按声明顺序执行 -> 编码。
任何一步失败都会中止整个请求，不返回部分结果。
解码、图像变换与编码在工作线程中执行，不阻塞事件循环。
"""

import asyncio

from ..config import get_config
from ..engine import ImageHandle
from ..exceptions import InvalidArgument, handle_image_errors
from ..models.constants import Features, get_mime_type
from ..models.request import ProcessedImage
from ..store import BufferStore
from ..utils.logging_helpers import get_logger
from .base import ImageAction, ImageContext, ProcessContext
from .format import FormatAction
from .resize import ResizeAction
from .rotate import RotateAction
from .watermark import WatermarkAction


logger = get_logger()

_FORMAT = FormatAction()
_RESIZE = ResizeAction()
_ROTATE = RotateAction()
_WATERMARK = WatermarkAction()

Step = tuple[ImageAction, list[str]]


class ImageProcessor:
    """image 处理器"""

    name = "image"

    def action(self, name: str) -> ImageAction:
        """按名称获取动作"""
        match name:
            case "format":
                return _FORMAT
            case "resize":
                return _RESIZE
            case "rotate":
                return _ROTATE
            case "watermark":
                return _WATERMARK
            case _:
                raise InvalidArgument(f'Unknown action: "{name}"')

    def steps(self, actions: list[list[str]]) -> list[Step]:
        """把动作分组映射为 (动作, 参数)，跳过处理器自身的分组"""
        result: list[Step] = []
        for params in actions:
            if not params or params[0] == self.name:
                continue
            result.append((self.action(params[0]), params))
        return result

    @handle_image_errors("创建处理上下文")
    async def new_context(
        self,
        uri: str,
        actions: list[list[str]],
        buffer_store: BufferStore,
        features: dict[Features, bool] | None = None,
    ) -> ImageContext:
        """校验全部动作、执行取图前钩子并取图

        Args:
            uri: 源对象 URI
            actions: 动作分组
            buffer_store: 原图存储
            features: 调用方给出的特性开关

        Returns:
            ImageContext: 图像上下文
        """
        steps = self.steps(actions)

        # 先校验全部动作，参数错误时不做任何 I/O
        for action, params in steps:
            action.validate(params)

        ctx = ProcessContext(
            uri=uri,
            actions=actions,
            buffer_store=buffer_store,
            features={
                Features.READ_ALL_ANIMATED_FRAMES: True,
                Features.AUTO_WEBP: False,
                **(features or {}),
            },
        )
        for action, params in steps:
            action.before_fetch(ctx, params)

        stored = await buffer_store.get(uri)
        image = await asyncio.to_thread(
            ImageHandle.decode,
            stored.data,
            animated=ctx.features[Features.READ_ALL_ANIMATED_FRAMES],
        )
        return ImageContext(
            uri=ctx.uri,
            actions=ctx.actions,
            buffer_store=ctx.buffer_store,
            features=ctx.features,
            image=image,
        )

    @handle_image_errors("图像处理")
    async def process(self, ctx: ImageContext) -> ProcessedImage:
        """按顺序执行动作并编码"""
        for action, params in self.steps(ctx.actions):
            logger.debug(f"执行动作: {','.join(params)}")
            await action.process(ctx, params)

        if ctx.features.get(Features.AUTO_WEBP):
            options = get_config().processing.get_encoder_options("webp")
            ctx.handle.set_encoder("webp", **options)

        data, format_name = await asyncio.to_thread(ctx.handle.to_bytes_with_metadata)
        result = ProcessedImage(
            data=data, format=format_name, content_type=get_mime_type(format_name)
        )
        logger.info(f"处理完成 {ctx.uri} -> {format_name} ({result.get_size_human()})")
        return result


_IMAGE_PROCESSOR = ImageProcessor()


def get_processor(name: str) -> ImageProcessor:
    """按名称获取处理器"""
    match name:
        case "image":
            return _IMAGE_PROCESSOR
        case _:
            raise InvalidArgument(f'Unknown processor: "{name}"')
