"""Cloudinary 上传器。

通过签名的 multipart 请求调用上传接口，返回 secure_url。
"""

import hashlib
import time
from collections.abc import Callable
from typing import Any

import httpx

from ..config import StorageDefaults, get_config
from ..exceptions import UploadFailure, ValidationError
from ..models.intake import UploadResult
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter
from .base import StorageUploader


logger = get_logger()


def sign_params(params: dict[str, Any], api_secret: str) -> str:
    """按字段名排序拼接参数后追加密钥，取 SHA-1 作为签名"""
    payload = "&".join(
        f"{key}={params[key]}" for key in sorted(params) if params[key] not in (None, "")
    )
    return hashlib.sha1(f"{payload}{api_secret}".encode()).hexdigest()


class CloudinaryUploader(StorageUploader):
    """Cloudinary 图片上传器

    Usage:
        async with CloudinaryUploader() as uploader:
            result = await uploader.upload(data, "user-reviews")
    """

    def __init__(
        self,
        settings: StorageDefaults | None = None,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """初始化上传器

        Args:
            settings: 存储配置，默认读取全局配置
            client: 外部传入的 HTTP 客户端，传入时由调用方负责关闭
            clock: 生成签名时间戳的时钟
        """
        self.settings = settings or get_config().storage
        if not self.settings.is_configured:
            raise ValidationError(
                "Cloudinary 未配置，请设置 CLOUDINARY_CLOUD_NAME / "
                "CLOUDINARY_API_KEY / CLOUDINARY_API_SECRET"
            )

        self._owns_client = client is None
        self.http_client = client or httpx.AsyncClient(
            timeout=self.settings.UPLOAD_TIMEOUT
        )
        self._clock = clock

    @property
    def upload_url(self) -> str:
        return (
            f"{self.settings.API_BASE_URL}/{self.settings.CLOUD_NAME}/"
            f"{self.resource_type}/upload"
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()

    def _build_form(self, folder: str) -> dict[str, str]:
        params: dict[str, Any] = {
            "folder": folder,
            "timestamp": int(self._clock()),
        }
        form = {key: str(value) for key, value in params.items()}
        form["api_key"] = self.settings.API_KEY
        form["signature"] = sign_params(params, self.settings.API_SECRET)
        return form

    async def upload(self, buffer: bytes, folder: str) -> UploadResult:
        try:
            response = await self.http_client.post(
                self.upload_url,
                data=self._build_form(folder),
                files={"file": ("upload", buffer, "application/octet-stream")},
            )
        except httpx.TimeoutException as e:
            logger.error(MessageFormatter.operation_failed("Cloudinary 上传", folder, e))
            raise UploadFailure(f"上传超时: {e}") from e
        except httpx.HTTPError as e:
            logger.error(MessageFormatter.operation_failed("Cloudinary 上传", folder, e))
            raise UploadFailure(f"网络错误: {e}") from e

        if response.is_error:
            raise UploadFailure.from_response(response)

        try:
            body = response.json()
        except ValueError as e:
            raise UploadFailure(f"存储端返回了无法解析的响应: {e}") from e

        url = body.get("secure_url") or body.get("url")
        if not url:
            raise UploadFailure("存储端响应缺少 secure_url")

        logger.debug(f"上传成功: {url}")
        return UploadResult(
            url=url,
            folder=folder,
            public_id=body.get("public_id"),
            size=body.get("bytes"),
        )
