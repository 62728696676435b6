"""resize 动作：按宽高缩放。"""

import asyncio

from ..exceptions import InvalidArgument
from ..models.options import ResizeOptions
from ..utils.message_formatter import MessageFormatter
from .base import ImageAction, ImageContext, parse_int


class ResizeAction(ImageAction[ResizeOptions]):
    """resize,w_<宽>,h_<高>,m_<lfit|mfit|fixed>"""

    name = "resize"

    def validate(self, params: list[str]) -> ResizeOptions:
        values: dict[str, object] = {}
        for param in params[1:]:
            if not param:
                continue
            key, _, value = param.partition("_")
            match key:
                case "w" | "h":
                    values[key] = parse_int("Resize", key, value)
                case "m":
                    values["m"] = value
                case _:
                    raise InvalidArgument(MessageFormatter.unknown_param(key))
        return self.build_options(ResizeOptions, **values)

    async def process(self, ctx: ImageContext, params: list[str]) -> None:
        opt = self.validate(params)
        width, height = ctx.handle.size
        await asyncio.to_thread(ctx.handle.resize, *self.target_size(opt, width, height))

    @staticmethod
    def target_size(opt: ResizeOptions, width: int, height: int) -> tuple[int, int]:
        """计算缩放后的尺寸"""
        if opt.m == "fixed":
            return opt.w or width, opt.h or height

        ratios = []
        if opt.w is not None:
            ratios.append(opt.w / width)
        if opt.h is not None:
            ratios.append(opt.h / height)
        # lfit 完整放入目标框，mfit 铺满目标框
        ratio = min(ratios) if opt.m == "lfit" else max(ratios)
        return max(1, round(width * ratio)), max(1, round(height * ratio))
