"""体积预算压缩引擎测试。"""

from io import BytesIO

import pytest
from PIL import Image

from review_intake.core.compression_engine import CompressionEngine, compress_to_budget
from review_intake.exceptions import CompressionFailure, ValidationError
from tests.conftest import MIB, encode_image


def is_webp(data: bytes) -> bool:
    return data[:4] == b"RIFF" and data[8:12] == b"WEBP"


class TestCompressionEngine:
    """压缩引擎测试"""

    @pytest.fixture
    def engine(self):
        return CompressionEngine()

    def test_default_quality_ladder(self, engine):
        """默认质量阶梯为 90 到 40，步长 10"""
        assert engine.quality_ladder == (90, 80, 70, 60, 50, 40)
        assert engine.output_format == "WEBP"

    def test_under_budget_returns_identical_bytes(self, engine, small_png: bytes):
        """未超预算时原样返回，不重编码"""
        outcome = engine.compress_with_report(small_png, MIB)

        assert outcome.final_bytes == small_png
        assert outcome.passed_through
        assert outcome.attempts == []
        assert outcome.format_used is None
        assert engine.compress(small_png, len(small_png)) == small_png

    def test_under_budget_skips_decoding(self, engine):
        """未超预算的内容不会被解码，即使不是图片"""
        data = b"not really an image"
        assert engine.compress(data, 1024) == data

    def test_oversized_image_fits_budget(self, engine, oversized_bitmap: bytes):
        """3 MiB 图片在 1 MiB 预算下最多尝试 6 次即满足预算"""
        outcome = engine.compress_with_report(oversized_bitmap, MIB)

        assert outcome.met_budget
        assert outcome.final_size <= MIB
        assert 1 <= len(outcome.attempts) <= 6
        assert is_webp(outcome.final_bytes)
        assert outcome.quality_used == outcome.attempts[-1].quality

        with Image.open(BytesIO(outcome.final_bytes)) as img:
            assert img.size == (1024, 1024)

    def test_oversized_jpeg_reencoded_to_webp(self, engine, blocky_jpeg: bytes):
        """超预算的 JPEG 输入重编码为 WebP 后满足预算"""
        assert blocky_jpeg[:2] == b"\xff\xd8"
        budget = len(blocky_jpeg) // 3

        outcome = engine.compress_with_report(blocky_jpeg, budget)

        assert outcome.met_budget
        assert outcome.final_size <= budget
        assert is_webp(outcome.final_bytes)
        assert outcome.attempts[0].quality == 90
        with Image.open(BytesIO(outcome.final_bytes)) as img:
            assert img.size == (1024, 768)

    def test_stops_at_first_attempt_within_budget(self, engine, noisy_png: bytes):
        """找到第一个满足预算的质量后立即停止"""
        full = engine.compress_with_report(noisy_png, 1)
        sizes = [a.result_size for a in full.attempts]
        budget = sizes[2]
        first_fit = next(i for i, size in enumerate(sizes) if size <= budget)

        outcome = engine.compress_with_report(noisy_png, budget)

        assert [a.quality for a in outcome.attempts] == list(
            engine.quality_ladder[: first_fit + 1]
        )
        assert outcome.final_bytes == full.attempts[first_fit].result_bytes
        assert outcome.met_budget

    def test_unreachable_budget_returns_lowest_quality(self, engine, noisy_png: bytes):
        """用尽阶梯仍超预算时返回质量 40 的结果，不抛异常"""
        outcome = engine.compress_with_report(noisy_png, 1000)

        assert [a.quality for a in outcome.attempts] == [90, 80, 70, 60, 50, 40]
        assert outcome.quality_used == 40
        assert outcome.final_bytes == outcome.attempts[-1].result_bytes
        assert not outcome.met_budget
        assert outcome.final_size > 1000

    def test_deterministic_output(self, engine, noisy_png: bytes):
        """相同输入与预算得到相同字节"""
        first = engine.compress(noisy_png, 1000)
        second = CompressionEngine().compress(noisy_png, 1000)
        assert first == second

    def test_transparent_palette_image(self, engine):
        """带透明度的调色板图片可以重编码"""
        img = Image.new("P", (300, 300), color=0)
        img.info["transparency"] = 0
        data = encode_image(img, "GIF")

        outcome = engine.compress_with_report(data, 10)

        assert is_webp(outcome.final_bytes)
        with Image.open(BytesIO(outcome.final_bytes)) as result:
            assert result.mode in ("RGBA", "RGB")

    def test_corrupt_input_raises_compression_failure(self, engine):
        """超预算且无法解码的内容抛出 CompressionFailure"""
        with pytest.raises(CompressionFailure):
            engine.compress(b"\x00garbage" * 200, 100)

    def test_invalid_budget(self, engine, small_png: bytes):
        with pytest.raises(ValidationError):
            engine.compress(small_png, 0)

    def test_invalid_quality_ladder(self):
        with pytest.raises(ValidationError):
            CompressionEngine(quality_ladder=(90, 0))

    def test_compress_to_budget_uses_configured_budget(
        self, monkeypatch, small_png: bytes
    ):
        """环境变量覆盖默认预算"""
        from review_intake.config import reset_config

        monkeypatch.setenv("REVIEW_MAX_IMAGE_BYTES", "10")
        reset_config()

        outcome = compress_to_budget(small_png)

        assert outcome.max_bytes == 10
        assert not outcome.passed_through
