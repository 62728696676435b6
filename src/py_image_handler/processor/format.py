"""format 动作：转换输出格式。"""

import asyncio

from ..config import get_config
from ..exceptions import InvalidArgument
from ..models.constants import Features, ImageFormats, supports_animation
from ..models.options import FormatOptions
from ..utils.logging_helpers import get_logger
from .base import ImageAction, ImageContext, ProcessContext


logger = get_logger()

_SUPPORTED = ",".join(ImageFormats.SUPPORTED)


class FormatAction(ImageAction[FormatOptions]):
    """format,<jpg|jpeg|png|webp|gif>"""

    name = "format"

    def before_fetch(self, ctx: ProcessContext, params: list[str]) -> None:
        opt = self.validate(params)
        # 目标格式支持动图时才需要读取全部帧
        ctx.features[Features.READ_ALL_ANIMATED_FRAMES] = supports_animation(opt.format)

    def validate(self, params: list[str]) -> FormatOptions:
        if len(params) != 2:
            raise InvalidArgument(f"Format param error, e.g: format,jpg ({_SUPPORTED})")

        target = params[1]
        if target not in ImageFormats.SUPPORTED:
            raise InvalidArgument(f"Format must be one of {_SUPPORTED}")

        return self.build_options(FormatOptions, format=target)

    async def process(self, ctx: ImageContext, params: list[str]) -> None:
        # 显式指定格式时覆盖自动 WebP
        if ctx.features.get(Features.AUTO_WEBP):
            ctx.features[Features.AUTO_WEBP] = False

        opt = self.validate(params)
        if opt.format == "gif":
            return

        metadata = ctx.handle.metadata()
        if metadata.is_animated and not supports_animation(opt.format):
            logger.debug(f"动图转为 {opt.format}，只保留第一帧")
            ctx.image = await asyncio.to_thread(ctx.handle.first_frame)

        encoder_options = get_config().processing.get_encoder_options
        match opt.format:
            case "jpeg" | "jpg":
                ctx.handle.set_encoder("jpeg")
            case "png":
                ctx.handle.set_encoder("png", **encoder_options("png"))
            case "webp":
                ctx.handle.set_encoder("webp", **encoder_options("webp"))
