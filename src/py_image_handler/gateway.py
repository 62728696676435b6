"""网关入口逻辑，供 HTTP、Lambda 与 MCP 入口共用。"""

from collections.abc import Mapping, Sequence

from .exceptions import Forbidden
from .models.constants import Features
from .models.request import ProcessedImage
from .processor import get_processor
from .request import parse_request
from .store import BufferStore
from .store.buffer_store import InterceptFn
from .utils.logging_helpers import get_logger


logger = get_logger()


def bypass() -> None:
    """拒绝直接读取原图，让 CDN 回源到存储"""
    raise Forbidden("Please visit s3 directly")


async def handle_request(
    path: str,
    query: Mapping[str, str | Sequence[str] | None],
    buffer_store: BufferStore,
    auto_webp: bool = False,
    intercept: InterceptFn | None = None,
) -> ProcessedImage:
    """处理一次图片请求

    只有一个动作分组时直接返回原图字节；多于一个时由第一个分组
    选择处理器，按顺序执行全部分组。

    Args:
        path: 请求路径
        query: 查询参数
        buffer_store: 原图存储
        auto_webp: 客户端接受 WebP 且已开启自动 WebP
        intercept: 原图直读前调用的拦截函数

    Returns:
        ProcessedImage: 输出字节与类型
    """
    parsed = parse_request(path, query)

    if len(parsed.actions) > 1:
        processor = get_processor(parsed.actions[0][0])
        ctx = await processor.new_context(
            parsed.uri,
            parsed.actions,
            buffer_store,
            features={Features.AUTO_WEBP: auto_webp},
        )
        return await processor.process(ctx)

    stored = await buffer_store.get(parsed.uri, intercept)
    logger.debug(f"直接返回原图: {parsed.uri}")
    return ProcessedImage(
        data=stored.data,
        format=stored.content_type.rsplit("/", 1)[-1],
        content_type=stored.content_type,
    )
