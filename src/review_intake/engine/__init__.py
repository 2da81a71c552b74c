"""图片接收处理引擎模块。

包含并发压缩执行器和“压缩 → 上传”流水线。
"""

from .concurrent_executor import CompressionExecutor
from .pipeline import ImageIntakePipeline


__all__ = [
    "CompressionExecutor",
    "ImageIntakePipeline",
]
