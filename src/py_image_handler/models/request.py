"""请求与结果模型。"""

from humanize import naturalsize
from pydantic import BaseModel, Field


class ParsedRequest(BaseModel):
    """解析后的请求：对象 URI 加有序的动作列表"""

    uri: str = Field(description="源对象 URI")
    actions: list[list[str]] = Field(
        default_factory=list, description="动作分组，每组第一个 token 为动作名"
    )


class StoredBuffer(BaseModel):
    """存储层返回的原始字节"""

    data: bytes
    content_type: str = Field("application/octet-stream", description="MIME 类型")


class ProcessedImage(BaseModel):
    """处理结果"""

    data: bytes
    format: str = Field(description="输出格式，小写")
    content_type: str = Field(description="输出 MIME 类型")

    def get_size_human(self) -> str:
        """人性化显示结果大小"""
        return naturalsize(len(self.data), binary=True)
