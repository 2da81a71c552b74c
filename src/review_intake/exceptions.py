"""图片接收异常处理模块。

定义统一的异常类和错误处理机制，包含编解码异常转换装饰器。
"""

from collections.abc import Callable, Sequence
from functools import wraps
from typing import TYPE_CHECKING, TypeVar

from PIL.Image import DecompressionBombError, UnidentifiedImageError

from .models.results import FileOutcome
from .utils.logging_helpers import get_logger
from .utils.message_formatter import MessageFormatter


if TYPE_CHECKING:
    import httpx


logger = get_logger()
T = TypeVar("T")


class IntakeError(Exception):
    """图片接收相关错误基类"""

    def __init__(self, message: str, field_name: str | None = None):
        super().__init__(message)
        self.message = message
        self.field_name = field_name


class ValidationError(IntakeError):
    """参数验证错误"""

    pass


class CompressionFailure(IntakeError):
    """编解码失败：输入损坏或格式不受支持"""

    pass


class UploadFailure(IntakeError):
    """远端存储上传失败：网络、认证、配额或超时"""

    def __init__(
        self,
        message: str,
        field_name: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, field_name)
        self.status_code = status_code

    @classmethod
    def from_response(cls, response: "httpx.Response") -> "UploadFailure":
        """从存储端的错误响应构建异常"""
        try:
            detail = response.json().get("error", {}).get("message")
        except ValueError:
            detail = None
        return cls(
            f"存储端返回 HTTP {response.status_code}: {detail or response.reason_phrase}",
            status_code=response.status_code,
        )


class TokenExhaustion(IntakeError):
    """随机令牌尝试次数耗尽，仅在内部用于切换到回退路径"""

    def __init__(self, attempts: int):
        super().__init__(f"连续 {attempts} 次随机令牌均已存在")
        self.attempts = attempts


class IntakeFailedError(IntakeError):
    """调用方要求全部成功时，汇总失败文件"""

    def __init__(self, failures: Sequence[FileOutcome]):
        labels = ", ".join(
            MessageFormatter.file_label(f.field_name, f.index) for f in failures
        )
        super().__init__(f"{len(failures)} 个文件处理失败: {labels}")
        self.failures = list(failures)


class ReviewNotFoundError(IntakeError):
    """评论记录不存在"""

    def __init__(self, review_id: int):
        super().__init__(f"评论不存在: {review_id}")
        self.review_id = review_id


def handle_image_errors(operation_name: str = "图像压缩"):
    """统一的编解码异常处理装饰器

    Args:
        operation_name: 操作名称，用于日志记录
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except IntakeError:
                raise
            except UnidentifiedImageError as e:
                logger.warning(f"{operation_name} - 无法识别图像格式: {e}")
                raise CompressionFailure(f"不支持的图像格式: {e}") from e
            except DecompressionBombError as e:
                logger.warning(f"{operation_name} - 图像过大: {e}")
                raise CompressionFailure(f"图像像素过多，可能存在安全风险: {e}") from e
            except (OSError, ValueError, TypeError) as e:
                logger.warning(f"{operation_name} - 编解码失败: {e}")
                raise CompressionFailure(f"图像编解码失败: {e}") from e

        return wrapper

    return decorator


class ErrorHandler:
    """统一错误处理器

    将单个文件的异常转换为失败结果，保证同一请求中的其他文件不受影响。
    """

    @staticmethod
    def _log_error(
        operation: str, target: str, error: Exception, level: str = "error"
    ) -> None:
        """标准化的错误日志记录"""
        log_msg = MessageFormatter.format_error(operation, target, error)
        getattr(logger, level, logger.error)(log_msg)

    @staticmethod
    def _create_failure(
        field_name: str,
        index: int,
        error_msg: str,
        error_type: str,
        original_size: int = 0,
        folder: str | None = None,
    ) -> FileOutcome:
        return FileOutcome(
            field_name=field_name,
            index=index,
            success=False,
            error=error_msg,
            error_type=error_type,
            original_size=original_size,
            folder=folder,
        )

    @staticmethod
    def handle_file_error(
        error: BaseException,
        field_name: str,
        index: int,
        original_size: int = 0,
        folder: str | None = None,
    ) -> FileOutcome:
        """按异常类型分发，生成单文件的失败结果"""
        target = MessageFormatter.file_label(field_name, index)

        match error:
            case CompressionFailure() as cf:
                operation, error_type, level = "图像压缩", "compression", "warning"
                message = cf.message
            case UploadFailure() as uf:
                operation, error_type, level = "图片上传", "upload", "error"
                message = uf.message
            case TimeoutError():
                operation, error_type, level = "图片上传", "timeout", "error"
                message = "上传超时"
            case ValidationError() as ve:
                operation, error_type, level = "参数验证", "validation", "warning"
                message = ve.message
            case _:
                operation, error_type, level = "图片处理", "processing", "error"
                message = str(error) or type(error).__name__

        ErrorHandler._log_error(operation, target, error, level)  # type: ignore[arg-type]
        return ErrorHandler._create_failure(
            field_name=field_name,
            index=index,
            error_msg=f"{operation}: {message}",
            error_type=error_type,
            original_size=original_size,
            folder=folder,
        )
