"""评论图片接收 MCP 服务器。

把体积预算压缩、图片上传与令牌生成暴露为 MCP 工具。
"""

import logging
from pathlib import Path
from typing import Any

from fastmcp import FastMCP

from .config import get_config
from .core.compression_engine import CompressionEngine
from .core.token_generator import TokenGenerator
from .engine.pipeline import ImageIntakePipeline
from .exceptions import IntakeError
from .models.constants import FieldDefaults, get_mime_type
from .models.intake import FieldSpec, ImageAsset
from .models.results import IntakeResult
from .storage import create_uploader
from .utils.logging_helpers import configure_logging
from .utils.message_formatter import MessageFormatter


MCPResponse = dict[str, Any]


class MCPResponseBuilder:
    """MCP 服务器响应构建器，专门用于构建符合 MCP 协议的响应格式。"""

    @staticmethod
    def error(
        message: str,
        error_type: str = "general",
        details: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """构建错误结果。

        Args:
            message: 错误消息
            error_type: 错误类型
            details: 额外的错误详情

        Returns:
            dict: 标准化的错误响应
        """
        result = {
            "success": False,
            "error": message,
            "error_type": error_type,
        }

        if details:
            result["details"] = details

        return result

    @staticmethod
    def file_error(message: str, file_path: str | None = None) -> dict[str, Any]:
        """构建文件相关错误结果"""
        details = {"file_path": file_path} if file_path else None
        return MCPResponseBuilder.error(message=message, error_type="file", details=details)

    @staticmethod
    def processing_error(message: str, operation: str | None = None) -> dict[str, Any]:
        """构建处理错误结果"""
        details = {"operation": operation} if operation else None
        return MCPResponseBuilder.error(
            message=message, error_type="processing", details=details
        )


configure_logging()
logger = logging.getLogger(__name__)

# 创建MCP应用
mcp: FastMCP[Any] = FastMCP("评论图片接收服务")


def compress_image(
    input_path: str,
    output_path: str | None = None,
    max_bytes: int | None = None,
) -> MCPResponse:
    """把图片压缩到体积预算以内。

    未超出预算的图片原样复制；超出时按质量 90 → 40 逐级重编码为 WebP。

    Args:
        input_path: 输入图片路径
        output_path: 输出路径（可选，默认在原目录生成 *_compressed 文件）
        max_bytes: 体积预算（字节），默认 1 MiB

    Returns:
        dict: 压缩结果，包含各次尝试的质量与大小
    """
    source = Path(input_path)
    if not source.is_file():
        return MCPResponseBuilder.file_error(MessageFormatter.file_not_found(input_path))

    budget = get_config().intake.MAX_IMAGE_BYTES if max_bytes is None else max_bytes
    try:
        outcome = CompressionEngine().compress_with_report(source.read_bytes(), budget)
    except IntakeError as e:
        logger.error(MessageFormatter.operation_failed("图像压缩", input_path, e))
        return MCPResponseBuilder.processing_error(e.message, "图像压缩")

    suffix = source.suffix if outcome.passed_through else ".webp"
    target = Path(output_path) if output_path else source.with_name(
        f"{source.stem}_compressed{suffix}"
    )
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(outcome.final_bytes)

    return {
        "success": True,
        "output_path": str(target),
        "original_size": outcome.original_size,
        "final_size": outcome.final_size,
        "max_bytes": budget,
        "met_budget": outcome.met_budget,
        "passed_through": outcome.passed_through,
        "mime_type": get_mime_type(outcome.format_used or source.suffix.lstrip(".")),
        "quality_used": outcome.quality_used,
        "attempts": [
            {"quality": a.quality, "size": a.result_size} for a in outcome.attempts
        ],
        "summary": outcome.get_summary(),
    }


async def upload_review_images(
    files: list[str] | dict[str, list[str]],
    folder: str | None = None,
    max_count: int = FieldDefaults.IMAGES_MAX_COUNT,
) -> MCPResponse:
    """压缩并上传评论图片。

    Args:
        files: 图片路径列表（归入 images 字段），或字段名到路径列表的映射
        folder: 存储目录，默认 user-reviews
        max_count: 每个字段最多处理的文件数

    Returns:
        dict: 各字段按输入顺序排列的地址与失败明细
    """
    grouped = {FieldDefaults.IMAGES_FIELD: files} if isinstance(files, list) else files

    assets: dict[str, list[ImageAsset]] = {}
    for field_name, paths in grouped.items():
        for path in paths:
            if not Path(path).is_file():
                return MCPResponseBuilder.file_error(MessageFormatter.file_not_found(path), path)
        assets[field_name] = [
            ImageAsset(
                field_name=field_name,
                raw_bytes=Path(p).read_bytes(),
                mime_hint=_mime_from_path(p),
            )
            for p in paths
        ]

    try:
        specs = [
            FieldSpec(
                field_name=field_name,
                folder=folder or get_config().storage.DEFAULT_FOLDER,
                max_count=max_count,
            )
            for field_name in assets
        ]
        async with create_uploader() as uploader:
            async with ImageIntakePipeline(uploader) as pipeline:
                result = await pipeline.process(specs, assets)
    except (IntakeError, ValueError) as e:
        logger.error(MessageFormatter.operation_failed("图片上传", "upload_review_images", e))
        return MCPResponseBuilder.processing_error(str(e), "图片上传")

    return _format_intake_result(result)


def _mime_from_path(path: str) -> str:
    suffix = Path(path).suffix.lstrip(".")
    return get_mime_type(suffix) if suffix else "application/octet-stream"


def _format_intake_result(result: IntakeResult) -> MCPResponse:
    """格式化接收结果为MCP响应格式"""
    return {
        "success": result.success,
        "urls": result.urls,
        "failures": [
            {
                "field_name": f.field_name,
                "index": f.index,
                "error": f.error,
                "error_type": f.error_type,
            }
            for f in result.failures
        ],
        "summary": result.get_summary(),
        "error": result.error,
    }


def generate_review_token(existing_tokens: list[str] | None = None) -> MCPResponse:
    """生成六位评论认领令牌。

    Args:
        existing_tokens: 已被占用的令牌，用于唯一性检查

    Returns:
        dict: 令牌、尝试次数，以及是否经过唯一性校验
    """
    taken = set(existing_tokens or ())
    token = TokenGenerator().generate_token(lambda candidate: candidate in taken)
    return {
        "success": True,
        "token": token.value,
        "attempts": token.attempts,
        "verified_unique": token.is_verified,
    }


# 工具函数保持可直接调用，注册到 MCP 应用
for _tool in (compress_image, upload_review_images, generate_review_token):
    mcp.tool()(_tool)


# ============================================================================
# 应用入口
# ============================================================================


def main() -> None:
    """启动 MCP 服务器"""
    logger.info("启动评论图片接收 MCP 服务器")
    mcp.run()


if __name__ == "__main__":
    main()
