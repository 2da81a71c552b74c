"""评论数据模型。

定义评论提交、存储记录、查询条件与统计结果。
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from .results import FileOutcome


class SortOrder(str, Enum):
    """排序方向"""

    ASC = "asc"
    DESC = "desc"


class TokenState(str, Enum):
    """令牌生成的结束状态"""

    UNIQUE = "unique"  # 已确认不存在
    FALLBACK = "fallback"  # 随机尝试耗尽，使用时间戳回退，未校验唯一性


class ReviewToken(BaseModel):
    """评论认领令牌"""

    value: str = Field(pattern=r"^\d{6}$", description="六位数字")
    attempts: int = Field(ge=0, description="调用存在性检查的次数")
    state: TokenState = Field(description="结束状态")

    @property
    def is_verified(self) -> bool:
        return self.state == TokenState.UNIQUE


class ReviewSubmission(BaseModel):
    """用户提交的评论内容（不含图片）"""

    rating: float = Field(ge=0, le=5, description="评分")
    reason_ids: list[int] = Field(default_factory=list, description="选择的原因编号")
    latitude: float | None = Field(None, ge=-90, le=90, description="纬度")
    longitude: float | None = Field(None, ge=-180, le=180, description="经度")
    description: str = Field("", description="文字描述")
    location_id: int | None = Field(None, description="地点编号")
    company_id: int | None = Field(None, description="公司编号")

    # 联系方式均为可选
    name: str | None = Field(None, description="姓名")
    email: str | None = Field(None, description="邮箱")
    phone: str | None = Field(None, description="电话")

    @field_validator("name", "email", "phone")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v


class ReviewRecord(ReviewSubmission):
    """已持久化的评论"""

    id: int = Field(description="记录编号")
    token_number: str = Field(description="六位认领令牌")
    images: list[str] = Field(default_factory=list, description="图片地址")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="创建时间"
    )


class ReviewFilters(BaseModel):
    """评论列表的查询条件"""

    location_id: int | None = None
    company_id: int | None = None
    min_rating: float | None = None
    max_rating: float | None = None
    sort_by: str = "created_at"
    order: SortOrder = SortOrder.DESC
    limit: int | None = Field(None, ge=1)
    offset: int | None = Field(None, ge=0)

    @field_validator("sort_by")
    @classmethod
    def validate_sort_by(cls, v: str) -> str:
        allowed = {"created_at", "rating", "id"}
        if v not in allowed:
            raise ValueError(f"不支持的排序字段: {v}，可选: {sorted(allowed)}")
        return v


class ReviewPage(BaseModel):
    """分页查询结果"""

    items: list[ReviewRecord]
    total: int
    limit: int
    offset: int


class ReviewReceipt(BaseModel):
    """评论创建结果，返回给提交者"""

    review: ReviewRecord
    token_number: str
    image_failures: list[FileOutcome] = Field(default_factory=list)

    @property
    def review_id(self) -> str:
        return str(self.review.id)


class RatingStatistics(BaseModel):
    """某地点的评分统计"""

    total_reviews: int
    average_rating: float
    rating_distribution: dict[int, int]
