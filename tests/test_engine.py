"""图像引擎测试。"""

import pytest
from PIL import Image

from py_image_handler.engine import ImageHandle, Overlay, draw_text, gravity_offset
from tests.conftest import make_animation, make_image, open_image


class TestGravityOffset:
    """方位偏移测试"""

    @pytest.mark.parametrize(
        "gravity,expected",
        [
            ("southeast", (80, 70)),
            ("northwest", (0, 0)),
            ("north", (40, 0)),
            ("south", (40, 70)),
            ("west", (0, 35)),
            ("east", (80, 35)),
            ("center", (40, 35)),
            ("centre", (40, 35)),
        ],
    )
    def test_gravity_offset(self, gravity: str, expected: tuple[int, int]):
        assert gravity_offset(gravity, (100, 80), (20, 10)) == expected


class TestImageHandle:
    """图像句柄测试"""

    def test_untouched_returns_source(self):
        """测试未修改且未指定编码器时返回源字节"""
        source = make_image(fmt="JPEG")
        handle = ImageHandle.decode(source)

        data, format_name = handle.to_bytes_with_metadata()

        assert data == source
        assert format_name == "jpeg"

    def test_metadata(self):
        handle = ImageHandle.decode(make_image((120, 80), (0, 0, 0, 0), mode="RGBA"))

        metadata = handle.metadata()

        assert (metadata.format, metadata.width, metadata.height) == ("png", 120, 80)
        assert metadata.has_alpha is True
        assert metadata.pages is None
        assert metadata.is_animated is False

    def test_animated_decode(self):
        """测试动图读取全部帧"""
        handle = ImageHandle.decode(make_animation(frames=3), animated=True)

        metadata = handle.metadata()
        assert metadata.pages == 3
        assert metadata.is_animated is True
        assert handle.to_bytes() == make_animation(frames=3)

    def test_animated_first_frame_only(self):
        """测试不读取全部帧时只有第一帧，且不再复用源字节"""
        source = make_animation(frames=3)
        handle = ImageHandle.decode(source, animated=False)

        assert handle.metadata().pages is None
        assert handle.to_bytes() != source

    def test_decode_page(self):
        """测试只读取指定帧"""
        source = make_animation(frames=3)
        handle = ImageHandle.decode(source, page=1)

        assert handle.metadata().pages is None
        assert handle.to_bytes() != source

    def test_first_frame(self):
        handle = ImageHandle.decode(make_animation(frames=3), animated=True)

        first = handle.first_frame()

        assert first.metadata().pages is None
        assert first.size == handle.size

    def test_encode_animation(self):
        """测试动图编码为 WebP 时保留全部帧"""
        handle = ImageHandle.decode(make_animation(frames=3), animated=True)
        handle.set_encoder("webp", quality=80, effort=2)

        data, format_name = handle.to_bytes_with_metadata()

        assert format_name == "webp"
        assert getattr(open_image(data), "n_frames", 1) == 3

    @pytest.mark.parametrize(
        "format_name,pillow_format",
        [("jpeg", "JPEG"), ("jpg", "JPEG"), ("png", "PNG"), ("webp", "WEBP")],
    )
    def test_set_encoder(self, format_name: str, pillow_format: str):
        """测试指定编码器"""
        handle = ImageHandle.decode(make_image(mode="RGBA", color=(255, 0, 0, 128)))
        handle.set_encoder(format_name)

        assert open_image(handle.to_bytes()).format == pillow_format

    def test_jpeg_flattens_alpha_on_white(self):
        """测试 JPEG 输出把透明区域填充为白色"""
        handle = ImageHandle.decode(make_image((20, 20), (0, 0, 0, 0), mode="RGBA"))
        handle.set_encoder("jpeg", quality=90)

        img = open_image(handle.to_bytes())

        assert img.mode == "RGB"
        assert min(img.getpixel((10, 10))) >= 250

    def test_resize(self):
        handle = ImageHandle.decode(make_image((400, 300)))

        handle.resize(100, 50)

        assert handle.size == (100, 50)
        assert open_image(handle.to_bytes()).size == (100, 50)

    def test_rotate_transparent_background(self):
        """测试透明背景旋转"""
        handle = ImageHandle.from_image(Image.new("RGBA", (40, 20), (255, 0, 0, 255)))

        handle.rotate(45, background="#00000000")

        assert handle.image.mode == "RGBA"
        assert handle.image.getpixel((0, 0))[3] == 0

    def test_rotate_clockwise(self):
        """测试顺时针旋转"""
        img = Image.new("RGB", (40, 20), (255, 255, 255))
        img.paste((255, 0, 0), (0, 0, 10, 10))
        handle = ImageHandle.from_image(img)

        handle.rotate(90)

        assert handle.size == (20, 40)
        assert handle.image.getpixel((15, 5)) == (255, 0, 0)

    def test_composite_gravity(self):
        """测试按方位叠加"""
        base = ImageHandle.decode(make_image((100, 80)))
        mark = ImageHandle.from_image(Image.new("RGBA", (20, 10), (0, 0, 255, 255)))

        base.composite([Overlay(mark, gravity="southeast")])

        img = base.image
        assert img.mode == "RGB"
        assert img.getpixel((99, 79)) == (0, 0, 255)
        assert img.getpixel((79, 69)) == (255, 255, 255)

    def test_composite_single_axis_offset(self):
        """测试只给出一个坐标时另一轴按方位锚定"""
        base = ImageHandle.decode(make_image((100, 80)))
        mark = ImageHandle.from_image(Image.new("RGBA", (20, 10), (0, 0, 255, 255)))

        base.composite([Overlay(mark, gravity="southeast", left=5)])

        assert base.image.getpixel((5, 79)) == (0, 0, 255)
        assert base.image.getpixel((99, 79)) == (255, 255, 255)

    def test_composite_tile(self):
        """测试平铺覆盖整张图"""
        base = ImageHandle.decode(make_image((100, 80)))
        mark = ImageHandle.from_image(Image.new("RGBA", (30, 30), (0, 255, 0, 255)))

        base.composite([Overlay(mark, tile=True)])

        assert base.image.getpixel((0, 0)) == (0, 255, 0)
        assert base.image.getpixel((99, 79)) == (0, 255, 0)

    def test_composite_keeps_alpha(self):
        base = ImageHandle.blank(50, 50)
        mark = ImageHandle.from_image(Image.new("RGBA", (10, 10), (0, 0, 255, 255)))

        base.composite([Overlay(mark, gravity="northwest")])

        assert base.image.mode == "RGBA"
        assert base.image.getpixel((0, 0)) == (0, 0, 255, 255)
        assert base.image.getpixel((49, 49))[3] == 0

    def test_with_uniform_alpha(self):
        """测试统一透明度替换原有透明通道"""
        handle = ImageHandle.from_image(Image.new("RGBA", (10, 10), (1, 2, 3, 0)))

        handle.with_uniform_alpha(0.5)

        assert handle.image.getpixel((5, 5)) == (1, 2, 3, 128)

    def test_clone_is_independent(self):
        handle = ImageHandle.decode(make_image((40, 40)))

        copy = handle.clone()
        copy.resize(10, 10)

        assert handle.size == (40, 40)
        assert copy.size == (10, 10)


class TestDrawText:
    """文字绘制测试"""

    def test_draw_text(self):
        layer = draw_text((80, 50), "abc", 30, (255, 0, 0, 255), (40, 40))

        assert layer.size == (80, 50)
        assert layer.image.getextrema()[3][1] > 0

    def test_empty_text(self):
        """测试空文字得到全透明图层"""
        layer = draw_text((20, 20), "", 30, (255, 0, 0, 255), (10, 10))

        assert layer.image.getextrema()[3] == (0, 0)
