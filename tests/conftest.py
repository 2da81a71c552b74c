"""测试配置文件。

提供测试所需的图片、上传器替身和配置 fixtures。
"""

import asyncio
import hashlib
import random
from io import BytesIO

import pytest
from PIL import Image, ImageDraw

from review_intake.config import reset_config
from review_intake.engine.concurrent_executor import CompressionExecutor
from review_intake.exceptions import UploadFailure
from review_intake.models.intake import UploadResult
from review_intake.storage.base import StorageUploader


MIB = 1024 * 1024


def encode_image(img: Image.Image, fmt: str = "PNG", **kwargs) -> bytes:
    buffer = BytesIO()
    img.save(buffer, format=fmt, **kwargs)
    return buffer.getvalue()


def solid_png(color: tuple[int, int, int], size: tuple[int, int] = (50, 50)) -> bytes:
    """小尺寸纯色 PNG，远低于任何预算"""
    return encode_image(Image.new("RGB", size, color=color))


def fake_url(folder: str, buffer: bytes) -> str:
    return f"fake://{folder}/{hashlib.sha1(buffer).hexdigest()[:10]}"


class FakeUploader(StorageUploader):
    """可控延迟与失败的上传器替身"""

    def __init__(
        self,
        delays: dict[bytes, float] | None = None,
        failing: set[bytes] | None = None,
    ) -> None:
        self.delays = delays or {}
        self.failing = failing or set()
        self.calls: list[tuple[bytes, str]] = []

    async def upload(self, buffer: bytes, folder: str) -> UploadResult:
        self.calls.append((buffer, folder))
        await asyncio.sleep(self.delays.get(buffer, 0))
        if buffer in self.failing:
            raise UploadFailure("模拟网络错误: connection reset")
        return UploadResult(url=fake_url(folder, buffer), folder=folder, size=len(buffer))


class SequenceRandom(random.Random):
    """按给定顺序返回 randint 结果"""

    def __init__(self, values: list[int]) -> None:
        super().__init__(0)
        self._values = list(values)

    def randint(self, a: int, b: int) -> int:
        return self._values.pop(0)


@pytest.fixture(autouse=True)
def fresh_config():
    """每个测试前后重置全局配置"""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def small_png() -> bytes:
    return solid_png((255, 0, 0))


@pytest.fixture
def oversized_bitmap() -> bytes:
    """1024x1024 的渐变 BMP，未压缩约 3 MiB"""
    img = Image.new("RGB", (1024, 1024), color="white")
    draw = ImageDraw.Draw(img)
    for y in range(0, 1024, 4):
        draw.rectangle([0, y, 1023, y + 3], fill=(y % 256, (y // 4) % 256, 128))
    for i in range(40):
        x, y = (i * 97) % 900, (i * 53) % 900
        draw.ellipse([x, y, x + 120, y + 120], fill=(i * 6 % 256, 200, i * 11 % 256))
    data = encode_image(img, "BMP")
    assert len(data) > 3 * MIB
    return data


@pytest.fixture
def blocky_jpeg() -> bytes:
    """1024x768 随机色块 JPEG，以最高质量保存，体积远大于同内容的 WebP"""
    rng = random.Random(7)
    tiles = Image.frombytes("RGB", (128, 96), rng.randbytes(128 * 96 * 3))
    img = tiles.resize((1024, 768), Image.Resampling.NEAREST)
    return encode_image(img, "JPEG", quality=100, subsampling=0)


@pytest.fixture
def noisy_png() -> bytes:
    """随机噪声图，几乎无法有损压缩到很小的体积"""
    rng = random.Random(42)
    img = Image.frombytes("RGB", (256, 256), rng.randbytes(256 * 256 * 3))
    return encode_image(img, "PNG")


@pytest.fixture
def thread_executor():
    executor = CompressionExecutor(max_workers=2, force_executor_type="thread")
    yield executor
    executor.shutdown()
