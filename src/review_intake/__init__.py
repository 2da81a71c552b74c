"""评论图片接收与令牌生成库。

按体积预算压缩用户上传的图片并上传到对象存储，同时为匿名评论生成六位认领令牌。
"""

__version__ = "0.1.0"
__description__ = "评论图片接收流水线，基于 Pillow 与 httpx"

# 核心功能导出
from .core.compression_engine import CompressionEngine, compress_to_budget
from .core.token_generator import TokenGenerator, generate_token
from .engine.pipeline import ImageIntakePipeline
from .models.intake import FieldSpec, ImageAsset, UploadResult
from .models.results import CompressionOutcome, FileOutcome, IntakeResult
from .storage import CloudinaryUploader, InMemoryUploader, StorageUploader


__all__ = [
    "CloudinaryUploader",
    "CompressionEngine",
    "CompressionOutcome",
    "FieldSpec",
    "FileOutcome",
    "ImageAsset",
    "ImageIntakePipeline",
    "InMemoryUploader",
    "IntakeResult",
    "StorageUploader",
    "TokenGenerator",
    "UploadResult",
    "compress_to_budget",
    "generate_token",
    "get_version",
]


def get_version() -> str:
    """获取版本号。"""
    return __version__
