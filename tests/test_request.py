"""请求解析测试。"""

import pytest

from py_image_handler.exceptions import InvalidArgument
from py_image_handler.request import PROCESS_PARAM, parse_request


class TestParseRequest:
    """请求解析测试"""

    def test_parse_actions_in_order(self):
        """测试动作分组保持请求中的顺序"""
        parsed = parse_request(
            "/photos/cat.jpg",
            {PROCESS_PARAM: "image/resize,w_200/watermark,text_5L2g5aW9,g_se/format,jpg"},
        )

        assert parsed.uri == "photos/cat.jpg"
        assert parsed.actions == [
            ["image"],
            ["resize", "w_200"],
            ["watermark", "text_5L2g5aW9", "g_se"],
            ["format", "jpg"],
        ]

    def test_parse_without_process_param(self):
        """测试没有处理参数时动作列表为空"""
        parsed = parse_request("/cat.jpg", {})

        assert parsed.uri == "cat.jpg"
        assert parsed.actions == []

    def test_parse_skips_empty_groups(self):
        """测试跳过空分组"""
        parsed = parse_request("/cat.jpg", {PROCESS_PARAM: "image//rotate,90/"})

        assert parsed.actions == [["image"], ["rotate", "90"]]

    def test_parse_list_value_uses_first(self):
        """测试重复的查询参数取第一个值"""
        parsed = parse_request(
            "/cat.jpg", {PROCESS_PARAM: ["image/rotate,90", "image/format,png"]}
        )

        assert parsed.actions == [["image"], ["rotate", "90"]]

    def test_parse_path_without_leading_slash(self):
        """测试路径不带开头的 /"""
        parsed = parse_request("a/b/c.png", {})

        assert parsed.uri == "a/b/c.png"

    def test_parse_empty_uri(self):
        """测试空 URI"""
        with pytest.raises(InvalidArgument):
            parse_request("/", {PROCESS_PARAM: "image/rotate,90"})

    def test_parse_group_without_name(self):
        """测试动作分组缺少动作名"""
        with pytest.raises(InvalidArgument, match="Invalid action group"):
            parse_request("/cat.jpg", {PROCESS_PARAM: "image/,w_100"})
