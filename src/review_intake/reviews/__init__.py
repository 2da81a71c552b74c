"""评论服务包。

提供评论提交、联系方式补充、查询与评分统计。
"""

from .repository import InMemoryReviewRepository, ReviewRepository
from .service import ReviewService
from .statistics import compute_rating_statistics


__all__ = [
    "InMemoryReviewRepository",
    "ReviewRepository",
    "ReviewService",
    "compute_rating_statistics",
]
