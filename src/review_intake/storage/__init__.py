"""对象存储上传器包。"""

from .base import StorageUploader
from .cloudinary import CloudinaryUploader
from .memory import InMemoryUploader


def create_uploader() -> StorageUploader:
    """按全局配置创建上传器：配置了 Cloudinary 时使用它，否则退回内存实现"""
    from ..config import get_config
    from ..utils.logging_helpers import get_logger

    if get_config().storage.is_configured:
        return CloudinaryUploader()
    get_logger().warning("未配置 Cloudinary，使用内存上传器，地址不会对外可用")
    return InMemoryUploader()


__all__ = [
    "CloudinaryUploader",
    "InMemoryUploader",
    "StorageUploader",
    "create_uploader",
]
