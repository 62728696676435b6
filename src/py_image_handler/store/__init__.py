"""原图存储包。"""

from .buffer_store import (
    BufferStore,
    LocalBufferStore,
    S3BufferStore,
    create_buffer_store,
)


__all__ = [
    "BufferStore",
    "LocalBufferStore",
    "S3BufferStore",
    "create_buffer_store",
]
