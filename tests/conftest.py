"""测试配置文件。

提供测试所需的fixtures和配置：临时存储目录中的测试图片、计数存储等。
"""

from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image, ImageDraw

from py_image_handler.config import reset_config
from py_image_handler.models.request import StoredBuffer
from py_image_handler.store import BufferStore, LocalBufferStore


def make_image(
    size: tuple[int, int] = (400, 300),
    color: tuple[int, ...] | str = "white",
    mode: str = "RGB",
    fmt: str = "PNG",
) -> bytes:
    """生成纯色图片字节"""
    buffer = BytesIO()
    Image.new(mode, size, color).save(buffer, fmt)
    return buffer.getvalue()


def make_animation(size: tuple[int, int] = (80, 60), frames: int = 3) -> bytes:
    """生成多帧 GIF"""
    images = []
    for i in range(frames):
        img = Image.new("RGB", size, (i * 80 % 256, 100, 200))
        draw = ImageDraw.Draw(img)
        draw.rectangle([i * 10, 10, i * 10 + 20, 30], fill=(255, 255, 0))
        images.append(img)

    buffer = BytesIO()
    images[0].save(
        buffer, "GIF", save_all=True, append_images=images[1:], duration=100, loop=0
    )
    return buffer.getvalue()


def open_image(data: bytes) -> Image.Image:
    """解码结果字节"""
    img = Image.open(BytesIO(data))
    img.load()
    return img


class CountingStore(BufferStore):
    """包装真实存储，记录读取次数"""

    def __init__(self, inner: BufferStore):
        self.inner = inner
        self.reads: list[str] = []

    def _read(self, uri: str) -> StoredBuffer:
        self.reads.append(uri)
        return self.inner._read(uri)


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """每个测试使用不受环境变量影响的默认配置"""
    for key in (
        "PIH_STORAGE_BACKEND",
        "PIH_LOCAL_ROOT",
        "PIH_S3_BUCKET",
        "PIH_REGION",
        "PIH_AUTO_WEBP",
        "PIH_BYPASS_RAW_FETCH",
        "PIH_WATERMARK_FONT",
        "PIH_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def store_dir(tmp_path: Path) -> Path:
    """测试图片目录

    photo.png   400x300 白底
    photo.jpg   400x300 红底
    logo.png    60x40 蓝色，带透明通道
    opaque.png  60x40 蓝色，无透明通道
    small.png   50x30 白底
    anim.gif    80x60 三帧
    notes.txt   非图片
    """
    root = tmp_path / "images"
    (root / "marks").mkdir(parents=True)

    (root / "photo.png").write_bytes(make_image())
    (root / "photo.jpg").write_bytes(make_image(color="red", fmt="JPEG"))
    (root / "logo.png").write_bytes(
        make_image((60, 40), (0, 0, 255, 255), mode="RGBA")
    )
    (root / "opaque.png").write_bytes(make_image((60, 40), (0, 0, 255)))
    (root / "marks" / "logo.png").write_bytes(
        make_image((60, 40), (0, 0, 255, 255), mode="RGBA")
    )
    (root / "small.png").write_bytes(make_image((50, 30)))
    (root / "anim.gif").write_bytes(make_animation())
    (root / "notes.txt").write_text("not an image", encoding="utf-8")
    return root


@pytest.fixture
def local_store(store_dir: Path) -> LocalBufferStore:
    """本地目录存储"""
    return LocalBufferStore(store_dir)


@pytest.fixture
def counting_store(local_store: LocalBufferStore) -> CountingStore:
    """记录读取次数的存储"""
    return CountingStore(local_store)
