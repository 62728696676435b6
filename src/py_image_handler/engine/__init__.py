"""图像引擎包。

基于 Pillow 的图像句柄与文字渲染。
"""

from .image_handle import ImageHandle, Overlay, gravity_offset
from .text import draw_text, load_font


__all__ = [
    "ImageHandle",
    "Overlay",
    "draw_text",
    "gravity_offset",
    "load_font",
]
