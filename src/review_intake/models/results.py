"""处理结果模型。

定义压缩、单文件接收和整次请求接收的结果数据结构。
"""

from humanize import naturalsize
from pydantic import BaseModel, Field

from .intake import CompressionAttempt


class BaseResult(BaseModel):
    """结果基类，包含通用字段和方法"""

    success: bool = Field(description="是否成功")
    error: str | None = Field(None, description="错误信息")

    @staticmethod
    def format_size(size_bytes: int) -> str:
        """格式化文件大小为人类可读格式"""
        return naturalsize(size_bytes, binary=True)


class CompressionOutcome(BaseModel):
    """单张图片的压缩过程与最终产物"""

    original_size: int = Field(description="原始大小（字节）")
    max_bytes: int = Field(description="体积预算（字节）")
    final_bytes: bytes = Field(repr=False, description="最终交付的内容")
    attempts: list[CompressionAttempt] = Field(
        default_factory=list, description="按顺序记录的所有尝试"
    )
    format_used: str | None = Field(None, description="重编码格式，原样返回时为 None")

    @property
    def final_size(self) -> int:
        return len(self.final_bytes)

    @property
    def passed_through(self) -> bool:
        """未经重编码，原样返回"""
        return not self.attempts

    @property
    def met_budget(self) -> bool:
        return self.final_size <= self.max_bytes

    @property
    def quality_used(self) -> int | None:
        return self.attempts[-1].quality if self.attempts else None

    def get_summary(self) -> str:
        """压缩结果摘要"""
        if self.passed_through:
            return f"未超出预算，原样保留 ({BaseResult.format_size(self.original_size)})"

        budget_note = "" if self.met_budget else "，仍超出预算"
        return (
            f"{BaseResult.format_size(self.original_size)} → "
            f"{BaseResult.format_size(self.final_size)} "
            f"(质量 {self.quality_used}，尝试 {len(self.attempts)} 次{budget_note})"
        )


class FileOutcome(BaseResult):
    """请求中单个文件的处理结果"""

    field_name: str = Field(description="所属表单字段")
    index: int = Field(ge=0, description="文件在字段内的原始位置")
    url: str | None = Field(None, description="上传成功后的地址")
    folder: str | None = Field(None, description="上传目录")
    original_size: int = Field(0, description="原始大小（字节）")
    final_size: int = Field(0, description="上传内容大小（字节）")
    quality_used: int | None = Field(None, description="最终采用的质量值")
    error_type: str | None = Field(None, description="失败类别")

    def get_summary(self) -> str:
        label = f"{self.field_name}[{self.index}]"
        if not self.success:
            return f"{label} 失败: {self.error}"
        return (
            f"{label} {self.format_size(self.original_size)} → "
            f"{self.format_size(self.final_size)}: {self.url}"
        )


class IntakeResult(BaseResult):
    """一次请求内所有图片字段的处理结果"""

    outcomes: dict[str, list[FileOutcome]] = Field(
        default_factory=dict, description="各字段按原始顺序排列的结果"
    )

    @property
    def urls(self) -> dict[str, list[str]]:
        """字段名到成功地址列表的映射，保持上传顺序"""
        return {
            field_name: [o.url for o in outcomes if o.success and o.url]
            for field_name, outcomes in self.outcomes.items()
        }

    @property
    def failures(self) -> list[FileOutcome]:
        return [
            o for outcomes in self.outcomes.values() for o in outcomes if not o.success
        ]

    def get_total_count(self) -> int:
        return sum(len(outcomes) for outcomes in self.outcomes.values())

    def get_failure_count(self) -> int:
        return len(self.failures)

    def get_success_count(self) -> int:
        return self.get_total_count() - self.get_failure_count()

    def get_total_size_saved(self) -> int:
        return sum(
            max(0, o.original_size - o.final_size)
            for outcomes in self.outcomes.values()
            for o in outcomes
            if o.success
        )

    def raise_for_failures(self) -> None:
        """存在失败文件时抛出 IntakeFailedError，供需要全部成功的调用方使用"""
        failures = self.failures
        if failures:
            from ..exceptions import IntakeFailedError

            raise IntakeFailedError(failures)

    def get_summary(self) -> str:
        total = self.get_total_count()
        return (
            f"上传 {self.get_success_count()}/{total} 个文件，"
            f"失败 {self.get_failure_count()} 个，"
            f"总节省 {self.format_size(self.get_total_size_saved())}"
        )
