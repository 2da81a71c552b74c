"""数据模型包。

定义图片接收、结果与评论相关的数据结构。
"""

from .constants import FieldDefaults, ImageFormats, get_mime_type
from .intake import CompressionAttempt, FieldSpec, ImageAsset, UploadResult
from .results import BaseResult, CompressionOutcome, FileOutcome, IntakeResult
from .review import (
    RatingStatistics,
    ReviewFilters,
    ReviewPage,
    ReviewReceipt,
    ReviewRecord,
    ReviewSubmission,
    ReviewToken,
    SortOrder,
    TokenState,
)


__all__ = [
    "BaseResult",
    "CompressionAttempt",
    "CompressionOutcome",
    "FieldDefaults",
    "FieldSpec",
    "FileOutcome",
    "ImageAsset",
    "ImageFormats",
    "IntakeResult",
    "RatingStatistics",
    "ReviewFilters",
    "ReviewPage",
    "ReviewReceipt",
    "ReviewRecord",
    "ReviewSubmission",
    "ReviewToken",
    "SortOrder",
    "TokenState",
    "UploadResult",
    "get_mime_type",
]
