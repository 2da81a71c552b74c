"""核心处理模块。

包含体积预算压缩引擎与评论令牌生成器。
"""

from .compression_engine import CompressionEngine, compress_to_budget
from .token_generator import TokenGenerator, generate_token


__all__ = [
    "CompressionEngine",
    "TokenGenerator",
    "compress_to_budget",
    "generate_token",
]
