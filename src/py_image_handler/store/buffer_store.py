"""原图存储模块。

按 URI 读取原图字节，阻塞 I/O 放在工作线程中执行。
存储层的"对象不存在"统一转换为 NotFound。
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable
from functools import lru_cache
from pathlib import Path
from typing import Any

import boto3
from botocore.exceptions import ClientError

from ..config import AppConfig
from ..exceptions import InvalidArgument, NotFound
from ..models.request import StoredBuffer
from ..utils.file_helpers import guess_content_type, resolve_under_root
from ..utils.logging_helpers import get_logger


logger = get_logger()

InterceptFn = Callable[[], None]


class BufferStore(ABC):
    """原图存储基类"""

    async def get(self, uri: str, intercept: InterceptFn | None = None) -> StoredBuffer:
        """读取对象

        Args:
            uri: 对象 URI
            intercept: 读取前调用，可以抛出异常以中断读取

        Returns:
            StoredBuffer: 字节与 MIME 类型
        """
        if intercept is not None:
            intercept()
        return await asyncio.to_thread(self._read, uri)

    @abstractmethod
    def _read(self, uri: str) -> StoredBuffer:
        """同步读取对象"""


class LocalBufferStore(BufferStore):
    """本地目录存储"""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _read(self, uri: str) -> StoredBuffer:
        path = resolve_under_root(self.root, uri)
        if path is None:
            raise InvalidArgument(f"Invalid object uri: {uri}")
        if not path.is_file():
            logger.debug(f"对象不存在: {path}")
            raise NotFound()

        data = path.read_bytes()
        return StoredBuffer(data=data, content_type=guess_content_type(data, uri))


def is_not_found_client_error(error: ClientError) -> bool:
    """判断 S3 错误是否表示对象不存在"""
    code = error.response.get("Error", {}).get("Code")
    return code in ("404", "NoSuchKey")


class S3BufferStore(BufferStore):
    """S3 存储桶"""

    def __init__(self, bucket: str, client: Any = None, region: str | None = None):
        if not bucket:
            raise InvalidArgument("S3 bucket must not be empty")
        self.bucket = bucket
        self.client = client or boto3.client("s3", region_name=region)

    def _read(self, uri: str) -> StoredBuffer:
        key = uri.lstrip("/")
        try:
            res = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if is_not_found_client_error(e):
                raise NotFound() from e
            raise

        data = res["Body"].read()
        content_type = res.get("ContentType") or guess_content_type(data, key)
        return StoredBuffer(data=data, content_type=content_type)


@lru_cache(maxsize=4)
def _s3_client(region: str | None) -> Any:
    """同一区域复用一个 boto3 客户端"""
    return boto3.client("s3", region_name=region)


@lru_cache(maxsize=4)
def _local_store(root: str) -> LocalBufferStore:
    return LocalBufferStore(root)


def create_buffer_store(settings: AppConfig, bucket: str | None = None) -> BufferStore:
    """按配置创建存储

    本地存储按根目录复用实例；S3 存储按区域复用客户端，
    每次调用只创建轻量的存储桶包装，存储桶名可以来自请求头。

    Args:
        settings: 应用配置
        bucket: 覆盖配置中的 S3 存储桶（仅 S3 后端生效）
    """
    storage = settings.storage
    match storage.BACKEND:
        case "local":
            return _local_store(storage.LOCAL_ROOT)
        case "s3":
            name = bucket or storage.S3_BUCKET
            if not name:
                raise InvalidArgument("S3 bucket must not be empty")
            return S3BufferStore(name, client=_s3_client(storage.REGION))
        case _:
            raise InvalidArgument(f"Unknown storage backend: {storage.BACKEND}")
