"""图像元数据模型。"""

from pydantic import BaseModel, Field, computed_field


class ImageMetadata(BaseModel):
    """图像引擎返回的基础元数据"""

    format: str = Field(description="源图片格式，小写，如 jpeg")
    width: int = Field(description="宽度（单帧）")
    height: int = Field(description="高度（单帧）")
    pages: int | None = Field(None, description="动图帧数，非动图为 None")
    has_alpha: bool = Field(False, description="是否有透明通道")

    @computed_field
    def is_animated(self) -> bool:
        """是否为动画图片"""
        return bool(self.pages and self.pages > 0)
