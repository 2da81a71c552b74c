"""按体积预算压缩的引擎模块。

超出预算的图片按质量阶梯逐级有损重编码，直到满足预算或用尽阶梯。
纯 CPU 计算，不做任何网络或磁盘 I/O，可直接提交到进程池。
"""

from io import BytesIO

from PIL import Image, ImageOps

from ..config import get_config
from ..exceptions import ValidationError, handle_image_errors
from ..models.constants import ImageFormats
from ..models.intake import CompressionAttempt
from ..models.results import CompressionOutcome
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter


logger = get_logger()


class CompressionEngine:
    """体积预算压缩引擎

    相同输入与相同质量值总是得到相同的输出字节。
    """

    def __init__(
        self,
        quality_ladder: tuple[int, ...] | None = None,
        output_format: str | None = None,
        method: int | None = None,
    ):
        """初始化压缩引擎

        Args:
            quality_ladder: 依次尝试的质量值，默认 90 到 40，步长 10
            output_format: 重编码格式，默认 WEBP
            method: WebP 编码速度/压缩率权衡 (0-6)
        """
        intake = get_config().intake
        self.quality_ladder = tuple(quality_ladder or intake.quality_ladder)
        self.output_format = (output_format or intake.OUTPUT_FORMAT).upper()
        self.method = intake.WEBP_METHOD if method is None else method

        if not self.quality_ladder:
            raise ValidationError("质量阶梯不能为空")
        if any(not 1 <= q <= 100 for q in self.quality_ladder):
            raise ValidationError(
                MessageFormatter.validation_error(
                    "quality_ladder", self.quality_ladder, "质量值必须在 1-100 之间"
                )
            )

    def compress(self, buffer: bytes, max_bytes: int) -> bytes:
        """返回不超过预算的内容；无法达到预算时返回最小质量的编码结果。"""
        return self.compress_with_report(buffer, max_bytes).final_bytes

    @handle_image_errors("图像压缩")
    def compress_with_report(self, buffer: bytes, max_bytes: int) -> CompressionOutcome:
        """压缩并返回完整的尝试记录。

        Args:
            buffer: 原始图片内容
            max_bytes: 体积预算（字节）

        Returns:
            CompressionOutcome: 最终内容与每次尝试的质量、大小

        Raises:
            CompressionFailure: 输入无法解码或编码失败
        """
        if max_bytes <= 0:
            raise ValidationError(
                MessageFormatter.validation_error("max_bytes", max_bytes, "必须大于 0")
            )

        original_size = len(buffer)
        if original_size <= max_bytes:
            # 未超预算时不重编码，避免无谓的画质损失
            return CompressionOutcome(
                original_size=original_size,
                max_bytes=max_bytes,
                final_bytes=bytes(buffer),
            )

        attempts: list[CompressionAttempt] = []
        with Image.open(BytesIO(buffer)) as img:
            prepared = self._prepare(img)

            for quality in self.quality_ladder:
                attempt = CompressionAttempt.from_bytes(
                    quality, self._encode(prepared, quality)
                )
                attempts.append(attempt)
                logger.debug(
                    f"质量 {quality}: {MessageFormatter.size_change(original_size, attempt.result_size)}"
                )
                if attempt.result_size <= max_bytes:
                    break

        outcome = CompressionOutcome(
            original_size=original_size,
            max_bytes=max_bytes,
            final_bytes=attempts[-1].result_bytes,
            attempts=attempts,
            format_used=self.output_format,
        )
        if not outcome.met_budget:
            logger.warning(f"最低质量仍超出预算，使用最小结果: {outcome.get_summary()}")
        else:
            logger.info(f"压缩完成: {outcome.get_summary()}")
        return outcome

    def _prepare(self, img: Image.Image) -> Image.Image:
        """EXIF 旋转并转换为可有损编码的色彩模式"""
        img = ImageOps.exif_transpose(img)
        img.load()

        if img.mode == "P":
            # 调色板模式，检查是否有透明度
            if "transparency" in img.info:
                return img.convert("RGBA")
            return img.convert("RGB")
        if img.mode in ("LA", "PA"):
            return img.convert("RGBA")
        if img.mode in ImageFormats.FLATTEN_MODES or img.mode.startswith("I;"):
            return img.convert("RGB")
        if img.mode in ("L", "1"):
            return img.convert("RGB")

        # RGB和RGBA保持不变
        return img

    def _encode(self, img: Image.Image, quality: int) -> bytes:
        output = BytesIO()
        save_kwargs: dict[str, int | str] = {"format": self.output_format, "quality": quality}
        if self.output_format == "WEBP":
            save_kwargs["method"] = self.method
        elif self.output_format == "JPEG" and img.mode == "RGBA":
            img = img.convert("RGB")
        img.save(output, **save_kwargs)
        return output.getvalue()


def compress_to_budget(buffer: bytes, max_bytes: int | None = None) -> CompressionOutcome:
    """使用默认配置压缩，供线程池/进程池直接调用。"""
    budget = max_bytes if max_bytes is not None else get_config().intake.MAX_IMAGE_BYTES
    return CompressionEngine().compress_with_report(buffer, budget)
