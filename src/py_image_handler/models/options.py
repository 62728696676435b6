"""动作参数模型。

每个动作都有独立的参数结构，字段带默认值与范围约束。
解析 token 时先做逐字段校验，模型约束作为最后一道防线。
"""

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


_HEX_COLOR = re.compile(r"^[0-9a-fA-F]{6}$")


class ActionOptions(BaseModel):
    """动作参数基类，不可变"""

    model_config = ConfigDict(frozen=True)


class FormatOptions(ActionOptions):
    """format 动作参数"""

    format: Literal["jpg", "jpeg", "png", "webp", "gif"] = Field(
        description="目标格式"
    )


class ResizeOptions(ActionOptions):
    """resize 动作参数"""

    w: int | None = Field(None, ge=1, le=16384, description="目标宽度")
    h: int | None = Field(None, ge=1, le=16384, description="目标高度")
    m: Literal["lfit", "mfit", "fixed"] = Field("lfit", description="缩放模式")

    @model_validator(mode="after")
    def require_dimension(self) -> "ResizeOptions":
        if self.w is None and self.h is None:
            raise ValueError("resize requires 'w' or 'h'")
        return self


class RotateOptions(ActionOptions):
    """rotate 动作参数"""

    degrees: int = Field(0, ge=0, lt=360, description="顺时针旋转角度")


class WatermarkOptions(ActionOptions):
    """watermark 动作参数"""

    text: str = Field("", description="文字水印内容")
    image: str = Field("", description="图片水印 URI")
    t: int = Field(100, ge=0, le=100, description="不透明度")
    g: str = Field("southeast", description="位置")
    fill: bool = Field(False, description="是否平铺")
    rotate: int = Field(0, ge=0, lt=360, description="旋转角度")
    size: int = Field(40, ge=0, le=1000, description="文字大小")
    color: str = Field("000000", description="文字颜色")
    x: int | None = Field(None, ge=0, le=4096, description="水平边距")
    y: int | None = Field(None, ge=0, le=4096, description="垂直边距")
    voffset: int = Field(0, ge=-1000, le=1000, description="居中时的垂直偏移")
    order: int = Field(0, ge=0, le=1, description="图文混排时图片与文字的先后")
    interval: int = Field(0, ge=0, le=1000, description="图文混排时的间隔")
    align: int = Field(0, ge=0, le=2, description="图文混排时的对齐方式")
    auto: bool = Field(True, description="水印大于背景时自动缩小")

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        if not _HEX_COLOR.match(v):
            raise ValueError(f"color must be a 6-digit hex value, got: {v}")
        return v

    @model_validator(mode="after")
    def require_text_or_image(self) -> "WatermarkOptions":
        if not self.text and not self.image:
            raise ValueError(
                "Watermark param 'text' and 'image' should not be empty at the same time"
            )
        return self


class TextMetrics(BaseModel):
    """文字像素尺寸估算"""

    width: int
    height: int


class GravityPosition(BaseModel):
    """绝对像素位置，None 表示沿用方位锚点"""

    x: int | None = None
    y: int | None = None


class MixedGravityPlan(BaseModel):
    """图文混排时图片与文字的锚点"""

    image_gravity: str
    text_gravity: str
