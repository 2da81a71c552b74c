"""对象存储上传接口。

上传器只负责单次上传：成功返回可公开访问的引用，失败抛出 UploadFailure，不做重试。
"""

from abc import ABC, abstractmethod

from ..models.intake import UploadResult


class StorageUploader(ABC):
    """远端对象存储上传器"""

    #: 上传的资源类型，固定为图片
    resource_type: str = "image"

    @abstractmethod
    async def upload(self, buffer: bytes, folder: str) -> UploadResult:
        """上传内容到指定逻辑目录。

        Args:
            buffer: 已完成压缩的图片内容
            folder: 逻辑目录，如 user-reviews

        Returns:
            UploadResult: 包含绝对地址的引用

        Raises:
            UploadFailure: 网络、认证、配额或请求体错误
        """
        ...

    async def aclose(self) -> None:
        """释放底层连接，默认无需处理"""
        return None

    async def __aenter__(self) -> "StorageUploader":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
