"""watermark 动作：文字水印、图片水印与图文混排水印。

参数形如 watermark,text_<base64>,g_se,t_80。text 与 image 的值为 base64
编码，二者至少给出一个；同时给出时按图文混排处理。
"""

import asyncio
import base64
import binascii
import math
from typing import Final

from PIL import ImageColor

from ..config import get_config
from ..engine import ImageHandle, Overlay, draw_text
from ..exceptions import InvalidArgument
from ..models.constants import Gravity
from ..models.image_metadata import ImageMetadata
from ..models.options import (
    GravityPosition,
    MixedGravityPlan,
    TextMetrics,
    WatermarkOptions,
)
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter
from .base import ImageAction, ImageContext, parse_int


logger = get_logger()

# 文字宽度估算的边距，同时也是文字栅格化画布的留白
MARGIN: Final[int] = 5

# (order, align) -> (图片锚点, 文字锚点)
MIXED_GRAVITY_TABLE: Final[dict[tuple[int, int], tuple[str, str]]] = {
    (0, 0): ("northwest", "northeast"),
    (0, 1): ("west", "east"),
    (0, 2): ("southwest", "southeast"),
    (1, 0): ("northeast", "northwest"),
    (1, 1): ("east", "west"),
    (1, 2): ("southeast", "southwest"),
}

# 整数参数的取值范围
_BOUNDS: Final[dict[str, tuple[int, int]]] = {
    "t": (0, 100),
    "x": (0, 4096),
    "y": (0, 4096),
    "voffset": (-1000, 1000),
    "order": (0, 1),
    "interval": (0, 1000),
    "align": (0, 2),
    "size": (0, 1000),
    "rotate": (0, 360),
}


def round_half_up(value: float) -> int:
    """四舍五入，.5 向正无穷方向取整"""
    return math.floor(value + 0.5)


def decode_base64_param(key: str, value: str) -> str:
    """解码 base64 参数值，兼容 URL 安全字符与省略的补位"""
    normalized = value.replace("-", "+").replace("_", "/")
    normalized += "=" * (-len(normalized) % 4)
    try:
        return base64.b64decode(normalized, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise InvalidArgument(
            f"Watermark param '{key}' must be base64 encoded utf-8"
        ) from e


class WatermarkAction(ImageAction[WatermarkOptions]):
    """watermark 动作"""

    name = "watermark"

    def validate(self, params: list[str]) -> WatermarkOptions:
        values: dict[str, object] = {}

        for param in params:
            if param == self.name or not param:
                continue
            key, _, value = param.partition("_")
            match key:
                case "text" | "image":
                    if value:
                        values[key] = decode_base64_param(key, value)
                case "g":
                    values["g"] = self.gravity_convert(value)
                case "fill" | "auto":
                    if value not in ("0", "1"):
                        raise InvalidArgument(f"Watermark param '{key}' must be 0 or 1")
                    values[key] = value == "1"
                case "rotate":
                    rotate = self._bounded(key, value)
                    values["rotate"] = 0 if rotate == 360 else rotate
                case "color":
                    values["color"] = value
                case _ if key in _BOUNDS:
                    values[key] = self._bounded(key, value)
                case _:
                    raise InvalidArgument(MessageFormatter.unknown_param(key))

        return self.build_options(WatermarkOptions, **values)

    def _bounded(self, key: str, value: str) -> int:
        number = parse_int("Watermark", key, value)
        low, high = _BOUNDS[key]
        if number < low or number > high:
            raise InvalidArgument(
                MessageFormatter.out_of_range("Watermark", key, low, high)
            )
        return number

    async def process(self, ctx: ImageContext, params: list[str]) -> None:
        opt = self.validate(params)
        if opt.text and opt.image:
            await self.mixed_watermark(ctx, opt)
        elif opt.text:
            await self.text_watermark(ctx, opt)
        else:
            await self.img_watermark(ctx, opt)

    # ------------------------------------------------------------------
    # 文字水印
    # ------------------------------------------------------------------

    async def text_watermark(self, ctx: ImageContext, opt: WatermarkOptions) -> None:
        await asyncio.to_thread(self._compose_text, ctx, opt)

    def _compose_text(self, ctx: ImageContext, opt: WatermarkOptions) -> None:
        metrics = self.calculate_text_size(opt.text, opt.size)

        if opt.rotate > 0:
            # 先栅格化再旋转，旋转露出的角落保持透明
            overlay = self.text_layer(opt, metrics, padding=MARGIN)
            overlay.rotate(opt.rotate, background="#00000000")
            overlay = self.auto_resize_img(overlay, ctx, opt, metrics)
        else:
            overlay = self.auto_resize_text(ctx, opt, metrics)

        ctx.handle.composite([Overlay(overlay, tile=opt.fill, gravity=opt.g)])

    def calculate_text_size(self, text: str, font_size: int) -> TextMetrics:
        """按字符编码估算文字的像素尺寸

        全角字符（编码大于 256）占一个字号宽，编码大于 97 的占半个，
        其余占 0.8 个字号宽。
        """
        width = 0.0
        for char in text:
            code = ord(char)
            if code > 256:
                width += font_size
            elif code > 97:
                width += font_size / 2
            else:
                width += font_size * 0.8
        return TextMetrics(
            width=round_half_up(width + MARGIN),
            height=round_half_up(font_size * 1.2),
        )

    def text_layer(
        self,
        opt: WatermarkOptions,
        metrics: TextMetrics,
        apply_opacity: bool = True,
        padding: int = 0,
    ) -> ImageHandle:
        """把文字绘制到透明图层上

        图层尺寸为文字尺寸加 padding，文字在图层内居中。
        """
        red, green, blue = ImageColor.getrgb(f"#{opt.color}")[:3]
        opacity = opt.t / 100 if apply_opacity else 1
        anchor = (
            round_half_up(metrics.width / 2) + padding // 2,
            round_half_up(metrics.height * 0.8) + padding // 2,
        )
        return draw_text(
            (metrics.width + padding, metrics.height + padding),
            opt.text,
            font_size=opt.size,
            fill=(red, green, blue, round_half_up(255 * opacity)),
            anchor_point=anchor,
            font_path=get_config().processing.WATERMARK_FONT,
        )

    def auto_resize_img(
        self,
        source: ImageHandle,
        ctx: ImageContext,
        opt: WatermarkOptions,
        metrics: TextMetrics,
    ) -> ImageHandle:
        """栅格水印超出背景时缩小到背景尺寸减 10 像素，宽高各自独立"""
        if not opt.auto:
            return source

        width, height = metrics.width, metrics.height
        overlay_w, overlay_h = source.size
        background = ctx.handle.metadata()
        need_resize = False

        if overlay_w > background.width:
            width = background.width - 10
            need_resize = True
        if overlay_h > background.height:
            height = background.height - 10
            need_resize = True

        if need_resize:
            source.resize(max(1, width), max(1, height))
        return source

    def auto_resize_text(
        self, ctx: ImageContext, opt: WatermarkOptions, metrics: TextMetrics
    ) -> ImageHandle:
        """文字尺寸超出背景时缩小到背景尺寸，宽高各自独立"""
        if opt.auto:
            background = ctx.handle.metadata()
            width, height = metrics.width, metrics.height
            need_resize = False
            if background.width < metrics.width:
                width = background.width
                need_resize = True
            if background.height < metrics.height:
                height = background.height
                need_resize = True
            if need_resize:
                layer = self.text_layer(opt, metrics, padding=MARGIN)
                return layer.resize(width, height)

        return self.text_layer(opt, metrics)

    # ------------------------------------------------------------------
    # 图片水印
    # ------------------------------------------------------------------

    async def img_watermark(self, ctx: ImageContext, opt: WatermarkOptions) -> None:
        mark = await self._fetch_mark(ctx, opt.image)
        await asyncio.to_thread(self._compose_image, ctx, opt, mark)

    def _compose_image(
        self, ctx: ImageContext, opt: WatermarkOptions, mark: ImageHandle
    ) -> None:
        if opt.rotate > 0:
            mark.rotate(opt.rotate, background="#ffffff")

        background = ctx.handle.metadata()
        mark_meta = mark.metadata()
        if opt.auto:
            width, height = mark_meta.width, mark_meta.height
            need_resize = False
            if mark_meta.width > background.width:
                width = background.width - 1
                need_resize = True
            if mark_meta.height > background.height:
                height = background.height - 1
                need_resize = True
            if need_resize:
                mark.resize(max(1, width), max(1, height))

        pos = self.calculate_img_pos(opt, background, mark_meta)
        overlay = Overlay(mark, tile=opt.fill, gravity=opt.g, top=pos.y, left=pos.x)
        self.apply_overlay(ctx, overlay, opt.t, mark_meta.has_alpha)

    async def _fetch_mark(self, ctx: ImageContext, uri: str) -> ImageHandle:
        stored = await ctx.buffer_store.get(uri)
        logger.debug(f"读取水印图片: {uri}")
        return await asyncio.to_thread(ImageHandle.decode, stored.data)

    def apply_overlay(
        self, ctx: ImageContext, overlay: Overlay, opacity: int, has_alpha: bool
    ) -> None:
        """合成水印，带透明通道且不透明度小于 100 时两次合成

        先把水印合成到底图副本上，去掉透明通道后整体按不透明度重新加上，
        再把这一层合成回底图。
        """
        if opacity < 100 and has_alpha:
            blended = ctx.handle.clone().composite([overlay])
            blended.with_uniform_alpha(opacity / 100)
            ctx.handle.composite([Overlay(blended)])
        else:
            ctx.handle.composite([overlay])

    def calculate_img_pos(
        self, opt: WatermarkOptions, metadata: ImageMetadata, mark: ImageMetadata
    ) -> GravityPosition:
        """根据方位与边距计算图片水印的绝对位置

        东、西、中三个方位垂直居中并加上 voffset；其他方位使用 y，
        南向方位从底部起算。北、南两个方位水平居中；其他方位使用 x，
        东向方位从右侧起算。未给出的坐标保持 None，由方位锚定。
        """
        x: int | None = None
        y: int | None = None
        gravity = opt.g

        if gravity in ("east", "west", "center"):
            y = round_half_up((metadata.height - mark.height) / 2) + opt.voffset
        elif opt.y is not None:
            if gravity.startswith("south"):
                y = metadata.height - mark.height - opt.y
            else:
                y = opt.y

        if gravity in ("north", "south"):
            x = round_half_up((metadata.width - mark.width) / 2)
            if y is None:
                y = 0 if gravity == "north" else metadata.height - mark.height
        elif opt.x is not None:
            if gravity.endswith("east"):
                x = metadata.width - mark.width - opt.x
            elif gravity == "center":
                x = round_half_up((metadata.width - mark.width) / 2)
            else:
                x = opt.x

        return GravityPosition(x=x, y=y)

    # ------------------------------------------------------------------
    # 图文混排水印
    # ------------------------------------------------------------------

    async def mixed_watermark(self, ctx: ImageContext, opt: WatermarkOptions) -> None:
        mark = await self._fetch_mark(ctx, opt.image)
        await asyncio.to_thread(self._compose_mixed, ctx, opt, mark)

    def _compose_mixed(
        self, ctx: ImageContext, opt: WatermarkOptions, mark: ImageHandle
    ) -> None:
        metrics = self.calculate_text_size(opt.text, opt.size)
        text = self.text_layer(opt, metrics, apply_opacity=False)

        mark_meta = mark.metadata()
        plan = self.calculate_mixed_gravity(opt)
        background = ctx.handle.metadata()

        expected_width = metrics.width + mark_meta.width + opt.interval
        expected_height = max(metrics.height, mark_meta.height)

        canvas = ImageHandle.blank(expected_width, expected_height)
        canvas.composite(
            [
                Overlay(text, gravity=plan.text_gravity),
                Overlay(mark, gravity=plan.image_gravity),
            ]
        )

        width, height = expected_width, expected_height
        need_resize = False
        if expected_width > background.width:
            width = min(expected_width, background.width) - 1
            need_resize = True
        if expected_height > background.height:
            height = min(expected_height, background.height) - 1
            need_resize = True
        if need_resize:
            canvas.resize(max(1, width), max(1, height))

        overlay = Overlay(canvas, tile=opt.fill, gravity=opt.g)
        self.apply_overlay(ctx, overlay, opt.t, mark_meta.has_alpha)

    def calculate_mixed_gravity(self, opt: WatermarkOptions) -> MixedGravityPlan:
        """order 决定图片与文字的先后，align 决定上、中、下对齐"""
        image_gravity, text_gravity = MIXED_GRAVITY_TABLE[(opt.order, opt.align)]
        return MixedGravityPlan(image_gravity=image_gravity, text_gravity=text_gravity)

    @staticmethod
    def gravity_convert(param: str) -> str:
        """方位简写转换为完整名称"""
        if param in Gravity.LONG_FORMS:
            return param
        if param in Gravity.ALIASES:
            return Gravity.ALIASES[param]
        raise InvalidArgument(
            MessageFormatter.one_of(
                "Watermark", "g", Gravity.LONG_FORMS + tuple(Gravity.ALIASES)
            )
        )
