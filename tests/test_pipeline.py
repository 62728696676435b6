"""处理管线与网关测试。"""

import asyncio
import threading
from pathlib import Path

import pytest

from py_image_handler import handle_request
from py_image_handler.engine import ImageHandle
from py_image_handler.exceptions import Forbidden, InvalidArgument, NotFound, ProcessingError
from py_image_handler.gateway import bypass
from py_image_handler.models.constants import Features
from py_image_handler.processor import ImageContext, ImageProcessor, get_processor
from py_image_handler.request import PROCESS_PARAM
from py_image_handler.store import LocalBufferStore
from tests.conftest import CountingStore, open_image


def query(process: str) -> dict[str, str]:
    return {PROCESS_PARAM: process}


class TestImageProcessor:
    """image 处理器测试"""

    def test_get_processor(self):
        assert isinstance(get_processor("image"), ImageProcessor)

    def test_unknown_processor(self):
        with pytest.raises(InvalidArgument, match='Unknown processor: "video"'):
            get_processor("video")

    def test_unknown_action(self):
        with pytest.raises(InvalidArgument, match='Unknown action: "blur"'):
            get_processor("image").action("blur")

    def test_validation_failure_skips_fetch(self, counting_store: CountingStore):
        """测试任一动作参数错误时不读取原图"""
        processor = get_processor("image")

        with pytest.raises(InvalidArgument):
            asyncio.run(
                processor.new_context(
                    "photo.png",
                    [["image"], ["resize", "w_100"], ["watermark", "text_5L2g5aW9", "x_5000"]],
                    counting_store,
                )
            )

        assert counting_store.reads == []

    def test_unknown_action_skips_fetch(self, counting_store: CountingStore):
        processor = get_processor("image")

        with pytest.raises(InvalidArgument):
            asyncio.run(
                processor.new_context(
                    "photo.png", [["image"], ["resize", "w_100"], ["blur", "r_3"]], counting_store
                )
            )

        assert counting_store.reads == []

    def test_new_context_features(self, counting_store: CountingStore):
        """测试取图前钩子计算特性开关，且只读取一次原图"""
        processor = get_processor("image")

        ctx = asyncio.run(
            processor.new_context(
                "anim.gif", [["image"], ["format", "jpg"]], counting_store
            )
        )

        assert ctx.features[Features.READ_ALL_ANIMATED_FRAMES] is False
        assert ctx.features[Features.AUTO_WEBP] is False
        assert ctx.handle.metadata().pages is None
        assert counting_store.reads == ["anim.gif"]

    def test_undecodable_source(self, local_store: LocalBufferStore):
        """测试无法识别的源文件"""
        processor = get_processor("image")

        with pytest.raises(InvalidArgument, match="Unsupported image format"):
            asyncio.run(
                processor.new_context(
                    "notes.txt", [["image"], ["resize", "w_10"]], local_store
                )
            )


class TestHandleRequest:
    """网关请求处理测试"""

    def test_raw_passthrough(self, local_store: LocalBufferStore, store_dir: Path):
        """测试没有动作时直接返回原图字节"""
        result = asyncio.run(handle_request("/photo.jpg", {}, local_store))

        assert result.data == (store_dir / "photo.jpg").read_bytes()
        assert result.content_type == "image/jpeg"
        assert result.format == "jpeg"

    def test_single_group_passthrough(self, local_store: LocalBufferStore, store_dir: Path):
        """测试只有处理器分组时也直接返回原图"""
        result = asyncio.run(handle_request("/photo.png", query("image"), local_store))

        assert result.data == (store_dir / "photo.png").read_bytes()

    def test_passthrough_not_found(self, local_store: LocalBufferStore):
        with pytest.raises(NotFound):
            asyncio.run(handle_request("/missing.png", {}, local_store))

    def test_bypass(self, counting_store: CountingStore):
        """测试拦截原图直读"""
        with pytest.raises(Forbidden, match="Please visit s3 directly"):
            asyncio.run(handle_request("/photo.png", {}, counting_store, intercept=bypass))

        assert counting_store.reads == []

    def test_bypass_only_applies_to_raw(self, local_store: LocalBufferStore):
        """测试拦截函数不影响带处理参数的请求"""
        result = asyncio.run(
            handle_request(
                "/photo.png", query("image/resize,w_100"), local_store, intercept=bypass
            )
        )

        assert open_image(result.data).size == (100, 75)

    def test_full_pipeline(self, local_store: LocalBufferStore):
        """测试缩放、水印、格式转换组合"""
        result = asyncio.run(
            handle_request(
                "/photo.png",
                query("image/resize,w_200/watermark,text_5L2g5aW9,g_nw/format,jpg"),
                local_store,
            )
        )

        img = open_image(result.data)
        assert result.format == "jpeg"
        assert result.content_type == "image/jpeg"
        assert img.format == "JPEG"
        assert img.size == (200, 150)

    def test_format_gif_passthrough_bytes(self, local_store: LocalBufferStore, store_dir: Path):
        """测试目标格式为 gif 时输出与源字节一致"""
        result = asyncio.run(handle_request("/photo.png", query("image/format,gif"), local_store))

        assert result.data == (store_dir / "photo.png").read_bytes()
        assert result.content_type == "image/png"

    def test_animated_to_webp(self, local_store: LocalBufferStore):
        """测试动图转 WebP 保留全部帧"""
        result = asyncio.run(
            handle_request("/anim.gif", query("image/resize,w_40/format,webp"), local_store)
        )

        img = open_image(result.data)
        assert result.content_type == "image/webp"
        assert img.size == (40, 30)
        assert getattr(img, "n_frames", 1) == 3

    def test_auto_webp(self, local_store: LocalBufferStore):
        """测试自动 WebP"""
        result = asyncio.run(
            handle_request(
                "/photo.png", query("image/resize,w_100"), local_store, auto_webp=True
            )
        )

        assert result.format == "webp"
        assert result.content_type == "image/webp"
        assert open_image(result.data).format == "WEBP"

    def test_explicit_format_overrides_auto_webp(self, local_store: LocalBufferStore):
        result = asyncio.run(
            handle_request(
                "/photo.png", query("image/resize,w_100/format,png"), local_store, auto_webp=True
            )
        )

        assert result.format == "png"

    def test_unknown_processor(self, local_store: LocalBufferStore):
        with pytest.raises(InvalidArgument, match="Unknown processor"):
            asyncio.run(handle_request("/photo.png", query("video/resize,w_1"), local_store))

    def test_processed_not_found(self, local_store: LocalBufferStore):
        with pytest.raises(NotFound):
            asyncio.run(
                handle_request("/missing.png", query("image/resize,w_100"), local_store)
            )

    def test_context_without_image(self, local_store: LocalBufferStore):
        """测试上下文缺少图像时返回网关错误"""
        ctx = ImageContext(uri="photo.png", actions=[], buffer_store=local_store)

        with pytest.raises(ProcessingError):
            ctx.handle


class TestEventLoop:
    """图像处理不阻塞事件循环"""

    @pytest.mark.parametrize(
        "method", ["decode", "rotate", "composite", "to_bytes_with_metadata"]
    )
    def test_engine_work_runs_off_loop(
        self, method: str, monkeypatch, local_store: LocalBufferStore
    ):
        """测试引擎调用执行期间，其他协程仍能运行"""
        released = threading.Event()
        waits: list[bool] = []
        original = getattr(ImageHandle, method)

        def wait_for_release(*args, **kwargs):
            # 在事件循环线程上执行时，release 协程无法运行，等待会超时
            waits.append(released.wait(timeout=5))
            return original(*args, **kwargs)

        if method == "decode":
            monkeypatch.setattr(ImageHandle, method, staticmethod(wait_for_release))
        else:
            monkeypatch.setattr(ImageHandle, method, wait_for_release)

        async def release():
            await asyncio.sleep(0.01)
            released.set()

        async def run():
            result, _ = await asyncio.gather(
                handle_request(
                    "/photo.png",
                    query("image/rotate,45/watermark,text_YWJj,fill_1/format,png"),
                    local_store,
                ),
                release(),
            )
            return result

        result = asyncio.run(run())

        assert waits
        assert all(waits)
        assert result.format == "png"
