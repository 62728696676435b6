"""图片处理 MCP 服务器。

把处理管线以 MCP 工具的形式提供：按处理指令处理图片、读取图片信息。
"""

import asyncio
import base64
import logging
from typing import Any

from fastmcp import FastMCP

from .config import get_config
from .engine import ImageHandle
from .exceptions import ErrorHandler
from .gateway import handle_request
from .request import PROCESS_PARAM
from .store import BufferStore, create_buffer_store
from .utils.logging_helpers import configure_logging


# MCP 服务器响应类型定义
MCPProcessResponse = dict[str, Any]
MCPImageInfoResponse = dict[str, Any]


class MCPResponseBuilder:
    """MCP 服务器响应构建器"""

    @staticmethod
    def error(error: Exception) -> dict[str, Any]:
        """构建错误结果

        Args:
            error: 异常对象

        Returns:
            dict: 标准化的错误响应
        """
        body = ErrorHandler.to_body(error)
        return {
            "success": False,
            "error": body["message"],
            "error_type": body["name"],
            "status": body["status"],
        }


logger = logging.getLogger(__name__)

# 创建MCP应用
mcp: FastMCP[Any] = FastMCP("图片处理网关")


async def run_process(
    uri: str, process: str | None, buffer_store: BufferStore
) -> MCPProcessResponse:
    """执行处理指令，返回 base64 编码的结果"""
    query = {PROCESS_PARAM: process} if process else {}
    try:
        result = await handle_request(uri, query, buffer_store)
    except Exception as e:
        ErrorHandler.log(e, uri)
        return MCPResponseBuilder.error(e)

    return {
        "success": True,
        "format": result.format,
        "content_type": result.content_type,
        "size": len(result.data),
        "size_human": result.get_size_human(),
        "data": base64.b64encode(result.data).decode("ascii"),
    }


async def read_image_info(uri: str, buffer_store: BufferStore) -> MCPImageInfoResponse:
    """读取图片元数据"""
    try:
        stored = await buffer_store.get(uri)
        handle = await asyncio.to_thread(ImageHandle.decode, stored.data, animated=True)
        metadata = handle.metadata()
    except Exception as e:
        ErrorHandler.log(e, uri)
        return MCPResponseBuilder.error(e)

    return {
        "success": True,
        "uri": uri,
        "content_type": stored.content_type,
        **metadata.model_dump(),
    }


@mcp.tool()
async def process_image(uri: str, process: str | None = None) -> MCPProcessResponse:
    """按处理指令处理存储中的图片

    Args:
        uri: 对象 URI，如 photos/cat.jpg
        process: 处理指令，如 image/resize,w_200/watermark,text_5L2g5aW9/format,webp；
            为空时返回原图

    Returns:
        dict: 处理结果，data 为 base64 编码的图片
    """
    return await run_process(uri, process, create_buffer_store(get_config()))


@mcp.tool()
async def get_image_info(uri: str) -> MCPImageInfoResponse:
    """获取存储中图片的格式、尺寸、帧数与透明通道信息

    Args:
        uri: 对象 URI

    Returns:
        dict: 图片信息
    """
    return await read_image_info(uri, create_buffer_store(get_config()))


def main() -> None:
    """启动 MCP 服务器"""
    configure_logging(get_config().logging)
    logger.info("启动图片处理 MCP 服务器")
    mcp.run()


if __name__ == "__main__":
    main()
