"""图片接收流水线模块。

对一次请求中的所有图片并发执行“压缩 → 上传”，按原始顺序汇总每个字段的结果。
单个文件失败只影响它自己，不会中断同一请求中的其他文件。
"""

import asyncio
from collections.abc import Iterable, Mapping, Sequence

from ..config import get_config
from ..core.compression_engine import CompressionEngine
from ..exceptions import ErrorHandler, ValidationError
from ..models.intake import FieldSpec, ImageAsset
from ..models.results import FileOutcome, IntakeResult
from ..storage.base import StorageUploader
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter
from .concurrent_executor import CompressionExecutor


logger = get_logger()

FileInput = bytes | ImageAsset


class ImageIntakePipeline:
    """图片接收流水线

    Usage:
        async with ImageIntakePipeline(uploader) as pipeline:
            result = await pipeline.process(
                [FieldSpec(field_name="images", folder="user-reviews", max_count=5)],
                {"images": [data_a, data_b]},
            )
            result.urls  # {"images": [url_a, url_b]}
    """

    def __init__(
        self,
        uploader: StorageUploader,
        engine: CompressionEngine | None = None,
        max_bytes: int | None = None,
        upload_timeout: float | None = None,
        executor: CompressionExecutor | None = None,
    ):
        """初始化流水线

        Args:
            uploader: 远端存储上传器
            engine: 压缩引擎，默认按全局配置创建
            max_bytes: 单张图片的体积预算，默认 1 MiB
            upload_timeout: 单次上传超时（秒），None 表示使用配置值
            executor: 压缩执行器
        """
        app_config = get_config()
        self.uploader = uploader
        self.engine = engine or CompressionEngine()
        self.max_bytes = (
            app_config.intake.MAX_IMAGE_BYTES if max_bytes is None else max_bytes
        )
        if self.max_bytes <= 0:
            raise ValidationError(
                MessageFormatter.validation_error("max_bytes", self.max_bytes, "必须大于 0")
            )
        self.upload_timeout = (
            app_config.storage.UPLOAD_TIMEOUT if upload_timeout is None else upload_timeout
        )
        self._owns_executor = executor is None
        self.executor = executor or CompressionExecutor(
            max_workers=app_config.intake.MAX_WORKERS,
            force_executor_type=app_config.intake.EXECUTOR_TYPE,
        )

    async def __aenter__(self) -> "ImageIntakePipeline":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_executor:
            self.executor.shutdown(wait=False)

    async def process(
        self,
        field_specs: Iterable[FieldSpec],
        files_by_field: Mapping[str, Sequence[FileInput]],
    ) -> IntakeResult:
        """处理一次请求的全部图片。

        Args:
            field_specs: 期望的图片字段描述
            files_by_field: 按字段名分组的上传文件

        Returns:
            IntakeResult: 各字段按输入顺序排列的结果
        """
        jobs = self._collect_jobs(field_specs, files_by_field)

        # 预先按字段与位置分配结果槽位
        slots: dict[str, list[FileOutcome | None]] = {
            spec.field_name: [None] * len(assets) for spec, assets in jobs
        }
        if not any(slots.values()):
            return IntakeResult(success=True, outcomes={k: [] for k in slots})

        executor_type = self.executor.choose_executor_type(
            [asset.size for _, assets in jobs for asset in assets]
        )
        tasks = [
            asyncio.create_task(self._process_file(asset, index, spec.folder, executor_type))
            for spec, assets in jobs
            for index, asset in enumerate(assets)
        ]
        try:
            for finished in asyncio.as_completed(tasks):
                outcome = await finished
                slots[outcome.field_name][outcome.index] = outcome
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        outcomes = {
            field_name: [o for o in field_slots if o is not None]
            for field_name, field_slots in slots.items()
        }
        result = IntakeResult(
            success=all(o.success for items in outcomes.values() for o in items),
            outcomes=outcomes,
        )
        if not result.success:
            result.error = f"{result.get_failure_count()} 个文件处理失败"
        logger.info(result.get_summary())
        return result

    def _collect_jobs(
        self,
        field_specs: Iterable[FieldSpec],
        files_by_field: Mapping[str, Sequence[FileInput]],
    ) -> list[tuple[FieldSpec, list[ImageAsset]]]:
        jobs: list[tuple[FieldSpec, list[ImageAsset]]] = []
        seen: set[str] = set()

        for spec in field_specs:
            if spec.field_name in seen:
                raise ValidationError(
                    MessageFormatter.validation_error("field_name", spec.field_name, "重复的字段"),
                    field_name=spec.field_name,
                )
            seen.add(spec.field_name)

            files = list(files_by_field.get(spec.field_name, ()))
            if len(files) > spec.max_count:
                logger.warning(
                    f"字段 {spec.field_name} 收到 {len(files)} 个文件，"
                    f"仅处理前 {spec.max_count} 个"
                )
                files = files[: spec.max_count]

            jobs.append((spec, [self._to_asset(spec.field_name, f) for f in files]))

        unknown = set(files_by_field) - seen
        if unknown:
            logger.warning(f"忽略未声明的字段: {sorted(unknown)}")
        return jobs

    @staticmethod
    def _to_asset(field_name: str, item: FileInput) -> ImageAsset:
        if isinstance(item, ImageAsset):
            if item.field_name != field_name:
                return item.model_copy(update={"field_name": field_name})
            return item
        return ImageAsset(field_name=field_name, raw_bytes=item)

    async def _process_file(
        self, asset: ImageAsset, index: int, folder: str, executor_type: str
    ) -> FileOutcome:
        """压缩并上传单个文件，任何异常都转换为失败结果"""
        try:
            compression = await self.executor.run(
                executor_type, self.engine.compress_with_report, asset.raw_bytes, self.max_bytes
            )
            upload = await asyncio.wait_for(
                self.uploader.upload(compression.final_bytes, folder),
                timeout=self.upload_timeout or None,
            )
        except Exception as e:
            return ErrorHandler.handle_file_error(
                e, asset.field_name, index, original_size=asset.size, folder=folder
            )

        logger.debug(
            f"{MessageFormatter.file_label(asset.field_name, index)} 上传完成: {upload.url}"
        )
        return FileOutcome(
            field_name=asset.field_name,
            index=index,
            success=True,
            url=upload.url,
            folder=upload.folder,
            original_size=compression.original_size,
            final_size=compression.final_size,
            quality_used=compression.quality_used,
        )
