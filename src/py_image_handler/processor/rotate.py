"""rotate 动作：顺时针旋转。"""

import asyncio

from ..exceptions import InvalidArgument
from ..models.options import RotateOptions
from ..utils.message_formatter import MessageFormatter
from .base import ImageAction, ImageContext, parse_int


class RotateAction(ImageAction[RotateOptions]):
    """rotate,<0-360>"""

    name = "rotate"

    def validate(self, params: list[str]) -> RotateOptions:
        if len(params) != 2:
            raise InvalidArgument("Rotate param error, e.g: rotate,90")

        degrees = parse_int("Rotate", "rotate", params[1])
        if degrees < 0 or degrees > 360:
            raise InvalidArgument(MessageFormatter.out_of_range("Rotate", "rotate", 0, 360))

        return self.build_options(RotateOptions, degrees=0 if degrees == 360 else degrees)

    async def process(self, ctx: ImageContext, params: list[str]) -> None:
        opt = self.validate(params)
        if opt.degrees > 0:
            await asyncio.to_thread(ctx.handle.rotate, opt.degrees, background="#ffffff")
