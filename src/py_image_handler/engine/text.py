"""文字渲染模块。

在透明画布上绘制文字，供文字水印使用。
"""

from functools import lru_cache

from PIL import Image, ImageDraw, ImageFont

from .image_handle import ImageHandle


@lru_cache(maxsize=32)
def load_font(
    size: int, font_path: str | None = None
) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """加载字体，未指定字体文件时使用 Pillow 内置字体"""
    if font_path:
        return ImageFont.truetype(font_path, size)
    return ImageFont.load_default(size=size)


def draw_text(
    canvas_size: tuple[int, int],
    text: str,
    font_size: int,
    fill: tuple[int, int, int, int],
    anchor_point: tuple[int, int],
    font_path: str | None = None,
) -> ImageHandle:
    """在透明画布上绘制文字

    文字以 anchor_point 为水平中心、基线位置绘制。

    Args:
        canvas_size: 画布尺寸
        text: 文字内容
        font_size: 字号（像素）
        fill: RGBA 填充色
        anchor_point: 文字水平中心与基线坐标
        font_path: TrueType 字体文件

    Returns:
        ImageHandle: 文字图层
    """
    canvas = Image.new("RGBA", canvas_size, (0, 0, 0, 0))
    if text and font_size > 0:
        font = load_font(font_size, font_path)
        ImageDraw.Draw(canvas).text(anchor_point, text, font=font, fill=fill, anchor="ms")
    return ImageHandle.from_image(canvas)
