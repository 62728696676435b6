"""图像引擎模块。

基于 Pillow 的图像句柄，提供解码、元数据、缩放、旋转、叠加与编码能力。
动图按帧保存，所有变换逐帧执行。
"""

from collections.abc import Iterable
from dataclasses import dataclass
from io import BytesIO
from typing import Any

from PIL import Image, ImageColor, ImageSequence

from ..config import get_config
from ..models.constants import get_format_alias, supports_animation
from ..models.image_metadata import ImageMetadata
from ..utils.logging_helpers import get_logger


logger = get_logger()

# Pillow 识别出的格式名到输出格式名
_FORMAT_NORMALIZE = {
    "jpg": "jpeg",
    "mpo": "jpeg",
}

_ALPHA_MODES = ("RGBA", "LA", "PA", "RGBa", "La")


def _normalize_format(format_name: str) -> str:
    lower = format_name.lower()
    return _FORMAT_NORMALIZE.get(lower, lower)


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in _ALPHA_MODES or "transparency" in img.info


def gravity_offset(
    gravity: str, base_size: tuple[int, int], overlay_size: tuple[int, int]
) -> tuple[int, int]:
    """根据方位计算叠加图左上角坐标

    Args:
        gravity: 方位，如 north、southeast、center
        base_size: 底图尺寸
        overlay_size: 叠加图尺寸

    Returns:
        tuple: (left, top)
    """
    base_w, base_h = base_size
    over_w, over_h = overlay_size

    left = (base_w - over_w) // 2
    top = (base_h - over_h) // 2

    if gravity.endswith("west"):
        left = 0
    elif gravity.endswith("east"):
        left = base_w - over_w

    if gravity.startswith("north"):
        top = 0
    elif gravity.startswith("south"):
        top = base_h - over_h

    return left, top


@dataclass
class Overlay:
    """叠加层描述

    top/left 同时给出时使用绝对位置；只给出其一时只覆盖对应轴，
    另一轴按 gravity 锚定。tile 为 True 时从原点平铺整张图。
    """

    input: "ImageHandle"
    tile: bool = False
    gravity: str = "center"
    top: int | None = None
    left: int | None = None


class ImageHandle:
    """图像句柄

    句柄在处理管线中独占传递。未做任何修改且未指定编码器时，
    编码结果就是源字节。
    """

    def __init__(
        self,
        frames: list[Image.Image],
        source_format: str = "png",
        source: bytes | None = None,
        info: dict[str, Any] | None = None,
    ):
        if not frames:
            raise ValueError("ImageHandle requires at least one frame")
        self._frames = frames
        self._source_format = _normalize_format(source_format)
        self._source = source
        self._info = info or {}
        self._encoder: tuple[str, dict[str, Any]] | None = None

    # ------------------------------------------------------------------
    # 构建
    # ------------------------------------------------------------------

    @classmethod
    def decode(
        cls, data: bytes, animated: bool = False, page: int | None = None
    ) -> "ImageHandle":
        """解码字节为图像句柄

        Args:
            data: 图像字节
            animated: 是否读取动图的全部帧
            page: 只读取指定帧

        Returns:
            ImageHandle: 图像句柄
        """
        with Image.open(BytesIO(data)) as img:
            source_format = img.format or "png"
            frame_count = getattr(img, "n_frames", 1)
            info = {k: img.info[k] for k in ("duration", "loop") if k in img.info}

            if page is not None:
                img.seek(page)
                frames = [img.copy()]
            elif animated and frame_count > 1:
                frames = [frame.copy() for frame in ImageSequence.Iterator(img)]
                info["durations"] = [f.info.get("duration", 100) for f in frames]
            else:
                frames = [img.copy()]

        # 只有完整表示源图时才保留源字节
        keep_source = page is None and (animated or frame_count == 1)
        logger.debug(
            f"解码图像: {source_format} {frames[0].size} 帧数={len(frames)}/{frame_count}"
        )
        return cls(
            frames,
            source_format=source_format,
            source=data if keep_source else None,
            info=info,
        )

    @classmethod
    def from_image(cls, img: Image.Image) -> "ImageHandle":
        """包装一张 Pillow 图片"""
        return cls([img], source_format="png")

    @classmethod
    def blank(cls, width: int, height: int) -> "ImageHandle":
        """创建透明画布"""
        return cls.from_image(Image.new("RGBA", (width, height), (0, 0, 0, 0)))

    def clone(self) -> "ImageHandle":
        """复制句柄，帧数据独立"""
        handle = ImageHandle(
            [frame.copy() for frame in self._frames],
            source_format=self._source_format,
            source=self._source,
            info=dict(self._info),
        )
        handle._encoder = self._encoder
        return handle

    def first_frame(self) -> "ImageHandle":
        """只保留第一帧，返回新句柄"""
        return ImageHandle(
            [self._frames[0].copy()],
            source_format=self._source_format,
            info={k: v for k, v in self._info.items() if k != "durations"},
        )

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    @property
    def size(self) -> tuple[int, int]:
        return self._frames[0].size

    @property
    def image(self) -> Image.Image:
        """第一帧"""
        return self._frames[0]

    def metadata(self) -> ImageMetadata:
        """获取元数据"""
        width, height = self.size
        return ImageMetadata(
            format=self._source_format,
            width=width,
            height=height,
            pages=len(self._frames) if len(self._frames) > 1 else None,
            has_alpha=_has_alpha(self._frames[0]),
        )

    # ------------------------------------------------------------------
    # 变换
    # ------------------------------------------------------------------

    def _modified(self) -> None:
        self._source = None

    def resize(self, width: int, height: int) -> "ImageHandle":
        """缩放到指定尺寸，不保持宽高比"""
        self._frames = [
            frame.resize((width, height), Image.Resampling.LANCZOS)
            for frame in self._frames
        ]
        self._modified()
        return self

    def rotate(self, degrees: int, background: str = "#000000") -> "ImageHandle":
        """顺时针旋转并扩展画布，露出的角落用背景色填充

        Args:
            degrees: 旋转角度
            background: 背景色，支持 #rrggbb 或 #rrggbbaa
        """
        bg = ImageColor.getrgb(background)
        rotated = []
        for frame in self._frames:
            mode = "RGBA" if _has_alpha(frame) or len(bg) == 4 else "RGB"
            source = frame.convert(mode)
            fill = bg if mode == "RGBA" else bg[:3]
            if mode == "RGBA" and len(fill) == 3:
                fill = (*fill, 255)
            rotated.append(
                source.rotate(
                    -degrees,
                    resample=Image.Resampling.BICUBIC,
                    expand=True,
                    fillcolor=fill,
                )
            )
        self._frames = rotated
        self._modified()
        return self

    def composite(self, overlays: Iterable[Overlay]) -> "ImageHandle":
        """把叠加层依次合成到每一帧上"""
        overlays = list(overlays)
        result = []
        for frame in self._frames:
            keep_alpha = _has_alpha(frame)
            base = frame.convert("RGBA")
            for overlay in overlays:
                base = Image.alpha_composite(base, self._overlay_layer(base.size, overlay))
            result.append(base if keep_alpha else base.convert("RGB"))
        self._frames = result
        self._modified()
        return self

    @staticmethod
    def _overlay_layer(base_size: tuple[int, int], overlay: Overlay) -> Image.Image:
        """把叠加图放到与底图同尺寸的透明层上"""
        source = overlay.input.image.convert("RGBA")
        layer = Image.new("RGBA", base_size, (0, 0, 0, 0))

        if overlay.tile:
            step_w, step_h = source.size
            if step_w > 0 and step_h > 0:
                for top in range(0, base_size[1], step_h):
                    for left in range(0, base_size[0], step_w):
                        layer.paste(source, (left, top))
            return layer

        left, top = gravity_offset(overlay.gravity, base_size, source.size)
        if overlay.left is not None:
            left = overlay.left
        if overlay.top is not None:
            top = overlay.top
        layer.paste(source, (left, top))
        return layer

    def with_uniform_alpha(self, opacity: float) -> "ImageHandle":
        """去掉原有透明通道，再加上统一的透明度"""
        alpha = max(0, min(255, int(round(opacity * 255))))
        frames = []
        for frame in self._frames:
            rgb = frame.convert("RGB")
            rgb.putalpha(alpha)
            frames.append(rgb)
        self._frames = frames
        self._modified()
        return self

    # ------------------------------------------------------------------
    # 编码
    # ------------------------------------------------------------------

    def set_encoder(
        self, format_name: str, quality: int | None = None, effort: int | None = None
    ) -> "ImageHandle":
        """指定输出编码器"""
        options: dict[str, Any] = {}
        if quality is not None:
            options["quality"] = quality
        if effort is not None:
            options["effort"] = effort
        self._encoder = (_normalize_format(format_name), options)
        return self

    @property
    def output_format(self) -> str:
        if self._encoder is not None:
            return self._encoder[0]
        return self._source_format

    def to_bytes(self) -> bytes:
        """编码为字节"""
        data, _ = self.to_bytes_with_metadata()
        return data

    def to_bytes_with_metadata(self) -> tuple[bytes, str]:
        """编码为字节，同时返回输出格式"""
        format_name = self.output_format
        if self._source is not None and self._encoder is None:
            return self._source, format_name

        options = dict(self._encoder[1]) if self._encoder else {}
        defaults = get_config().processing.get_encoder_options(format_name)
        for key, value in defaults.items():
            options.setdefault(key, value)

        buffer = BytesIO()
        frames = [self._prepare_frame(f, format_name) for f in self._frames]
        save_params = self._save_parameters(format_name, options)

        if len(frames) > 1 and supports_animation(format_name):
            save_params.update(
                save_all=True,
                append_images=frames[1:],
                duration=self._info.get("durations", self._info.get("duration", 100)),
                loop=self._info.get("loop", 0),
            )

        frames[0].save(buffer, format=get_format_alias(format_name), **save_params)
        return buffer.getvalue(), format_name

    @staticmethod
    def _prepare_frame(frame: Image.Image, format_name: str) -> Image.Image:
        """为目标格式准备单帧"""
        if format_name == "jpeg":
            if _has_alpha(frame):
                rgba = frame.convert("RGBA")
                background = Image.new("RGB", rgba.size, (255, 255, 255))
                background.paste(rgba, mask=rgba.split()[-1])
                return background
            if frame.mode != "RGB":
                return frame.convert("RGB")
            return frame

        if format_name in ("png", "webp") and frame.mode in ("P", "PA", "1", "CMYK"):
            return frame.convert("RGBA" if _has_alpha(frame) else "RGB")

        return frame

    @staticmethod
    def _save_parameters(format_name: str, options: dict[str, Any]) -> dict[str, Any]:
        """编码参数映射到 Pillow 保存参数"""
        match format_name:
            case "jpeg":
                return {"quality": options.get("quality", 80)}
            case "png":
                # PNG 保持无损，effort 对应压缩级别
                return {"compress_level": min(9, max(0, options.get("effort", 6)))}
            case "webp":
                return {
                    "quality": options.get("quality", 80),
                    "method": min(6, max(0, options.get("effort", 4))),
                }
            case _:
                return {}
