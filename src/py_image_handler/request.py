"""请求解析模块。

把请求路径与查询参数解析为对象 URI 和有序的动作分组。
处理指令放在 x-oss-process 查询参数中，分组之间用 / 分隔，
组内用 , 分隔，第一个 token 为动作名，例如：

    image/resize,w_200/watermark,text_5L2g5aW9,g_se/format,jpg
"""

from collections.abc import Mapping, Sequence
from typing import Final

from .exceptions import InvalidArgument
from .models.request import ParsedRequest


PROCESS_PARAM: Final[str] = "x-oss-process"


def parse_request(
    path: str, query: Mapping[str, str | Sequence[str] | None]
) -> ParsedRequest:
    """解析请求

    Args:
        path: 请求路径，去掉开头的 / 后即为对象 URI
        query: 查询参数

    Returns:
        ParsedRequest: 解析结果，动作顺序与请求中的顺序一致

    Raises:
        InvalidArgument: URI 为空或动作分组格式错误
    """
    uri = path.removeprefix("/")
    if not uri:
        raise InvalidArgument("Empty object uri")

    raw = query.get(PROCESS_PARAM) or ""
    if not isinstance(raw, str):
        raw = raw[0] if raw else ""

    actions: list[list[str]] = []
    for group in raw.split("/"):
        if not group:
            continue
        tokens = group.split(",")
        if not tokens[0]:
            raise InvalidArgument(f"Invalid action group: {group}")
        actions.append(tokens)

    return ParsedRequest(uri=uri, actions=actions)
