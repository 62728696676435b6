"""API Gateway (HTTP API v2) Lambda 入口。"""

import asyncio
import base64
import json
from typing import Any

from .config import get_config
from .exceptions import ErrorHandler
from .gateway import bypass, handle_request
from .store import BufferStore, create_buffer_store
from .utils.logging_helpers import get_logger


logger = get_logger()


def resp(code: int, body: Any, content_type: str | None = None) -> dict[str, Any]:
    """构建 Lambda 代理响应，字节内容使用 base64 编码"""
    is_base64 = isinstance(body, bytes)
    if is_base64:
        data = base64.b64encode(body).decode("ascii")
    elif isinstance(body, str) and body:
        data = body
        content_type = "text/plain"
    else:
        data = json.dumps(body)
        content_type = "application/json"

    return {
        "isBase64Encoded": is_base64,
        "statusCode": code,
        "headers": {"Content-Type": content_type or "text/plain"},
        "body": data,
    }


async def handle_event(
    event: dict[str, Any], buffer_store: BufferStore | None = None
) -> dict[str, Any]:
    """处理一次 API Gateway 事件"""
    raw_path = event.get("rawPath") or "/"
    try:
        if raw_path in ("/", "/ping"):
            return resp(200, "ok")

        settings = get_config()
        store = buffer_store or create_buffer_store(settings)
        headers = {k.lower(): v for k, v in (event.get("headers") or {}).items()}
        auto_webp = settings.processing.AUTO_WEBP and "image/webp" in headers.get(
            "accept", ""
        )

        result = await handle_request(
            raw_path,
            event.get("queryStringParameters") or {},
            store,
            auto_webp=auto_webp,
            intercept=bypass if settings.storage.BYPASS_RAW_FETCH else None,
        )
        return resp(200, result.data, result.content_type)
    except Exception as exc:
        ErrorHandler.log(exc, raw_path)
        body = ErrorHandler.to_body(exc)
        return resp(body["status"], body)


def handler(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    """Lambda 处理函数"""
    del context
    logger.debug(f"event: {json.dumps(event, default=str)}")
    return asyncio.run(handle_event(event))
