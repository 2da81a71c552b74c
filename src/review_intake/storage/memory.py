"""内存上传器：用于本地开发与测试。"""

import hashlib
import uuid

from ..exceptions import UploadFailure
from ..models.intake import UploadResult
from .base import StorageUploader


class InMemoryUploader(StorageUploader):
    """把上传内容保存在字典中，返回 memory:// 地址"""

    def __init__(self, base_url: str = "memory://reviews") -> None:
        self.base_url = base_url.rstrip("/")
        self.objects: dict[str, bytes] = {}
        self.upload_count = 0

    async def upload(self, buffer: bytes, folder: str) -> UploadResult:
        if not buffer:
            raise UploadFailure("空内容无法上传")

        digest = hashlib.sha256(buffer).hexdigest()[:12]
        public_id = f"{folder.strip('/')}/{digest}-{uuid.uuid4().hex[:8]}"
        self.objects[public_id] = bytes(buffer)
        self.upload_count += 1

        return UploadResult(
            url=f"{self.base_url}/{public_id}",
            folder=folder,
            public_id=public_id,
            size=len(buffer),
        )

    def get(self, public_id: str) -> bytes:
        return self.objects[public_id]
