"""集成测试。

通过 MCP 工具函数测试端到端流程。
"""

import hashlib
from pathlib import Path

import pytest

from review_intake import mcp_server
from review_intake.config import reset_config
from tests.conftest import MIB, solid_png


@pytest.fixture
def no_cloud_credentials(monkeypatch):
    for name in ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET"):
        monkeypatch.delenv(name, raising=False)
    reset_config()


class TestMCPServer:
    """MCP 服务器测试"""

    def test_server_initialization(self):
        assert mcp_server.mcp is not None
        assert mcp_server.mcp.name == "评论图片接收服务"

    def test_compress_small_image_is_copied(self, tmp_path: Path, small_png: bytes):
        """未超预算的图片原样写出"""
        source = tmp_path / "small.png"
        source.write_bytes(small_png)

        result = mcp_server.compress_image(str(source))

        assert result["success"]
        assert result["passed_through"]
        assert result["attempts"] == []
        output = Path(result["output_path"])
        assert output.name == "small_compressed.png"
        assert output.read_bytes() == small_png
        assert result["mime_type"] == "image/png"

    def test_compress_oversized_image(self, tmp_path: Path, oversized_bitmap: bytes):
        """超预算的图片重编码为 WebP 并满足预算"""
        source = tmp_path / "large.bmp"
        source.write_bytes(oversized_bitmap)
        target = tmp_path / "out" / "large.webp"

        result = mcp_server.compress_image(str(source), str(target))

        assert result["success"]
        assert result["met_budget"]
        assert result["output_path"] == str(target)
        assert target.stat().st_size <= MIB
        assert result["attempts"][0]["quality"] == 90
        assert result["mime_type"] == "image/webp"

    def test_compress_missing_file(self, tmp_path: Path):
        result = mcp_server.compress_image(str(tmp_path / "missing.png"))

        assert not result["success"]
        assert result["error_type"] == "file"

    def test_compress_corrupt_file(self, tmp_path: Path):
        source = tmp_path / "broken.jpg"
        source.write_bytes(b"\x00broken" * 50)

        result = mcp_server.compress_image(str(source), max_bytes=100)

        assert not result["success"]
        assert result["error_type"] == "processing"

    def test_compress_zero_budget_rejected(self, tmp_path: Path, small_png: bytes):
        """显式传入 0 不会被当作默认预算"""
        source = tmp_path / "small.png"
        source.write_bytes(small_png)

        result = mcp_server.compress_image(str(source), max_bytes=0)

        assert not result["success"]
        assert result["error_type"] == "processing"

    def test_generate_review_token(self):
        result = mcp_server.generate_review_token(["123456"])

        assert result["success"]
        assert len(result["token"]) == 6
        assert result["token"] != "123456"
        assert result["verified_unique"]
        assert result["attempts"] >= 1

    @pytest.mark.asyncio
    async def test_upload_review_images_keeps_order(
        self, tmp_path: Path, no_cloud_credentials
    ):
        """未配置云存储时使用内存上传器，地址按输入顺序返回"""
        paths, contents = [], []
        for i, color in enumerate([(255, 0, 0), (0, 255, 0), (0, 0, 255)]):
            path = tmp_path / f"photo_{i}.png"
            contents.append(solid_png(color))
            path.write_bytes(contents[-1])
            paths.append(str(path))

        result = await mcp_server.upload_review_images(paths)

        assert result["success"]
        urls = result["urls"]["images"]
        assert len(urls) == 3
        assert all(url.startswith("memory://reviews/user-reviews/") for url in urls)
        for url, data in zip(urls, contents):
            assert hashlib.sha256(data).hexdigest()[:12] in url
        assert result["failures"] == []

    @pytest.mark.asyncio
    async def test_upload_review_images_missing_file(self, tmp_path: Path):
        result = await mcp_server.upload_review_images([str(tmp_path / "nope.png")])

        assert not result["success"]
        assert result["error_type"] == "file"
