"""评论提交服务。

串联图片接收流水线、令牌生成器与评论存储：图片部分失败时评论照常创建，
失败明细随回执返回给调用方。
"""

from collections.abc import Mapping, Sequence

from ..core.token_generator import TokenGenerator
from ..engine.pipeline import FileInput, ImageIntakePipeline
from ..exceptions import ValidationError
from ..models.constants import FieldDefaults
from ..models.intake import FieldSpec
from ..models.review import (
    RatingStatistics,
    ReviewFilters,
    ReviewPage,
    ReviewReceipt,
    ReviewRecord,
    ReviewSubmission,
)
from ..utils.logging_helpers import get_logger
from .repository import ReviewRepository
from .statistics import compute_rating_statistics


logger = get_logger()

RECENT_LIMIT = 10

DEFAULT_IMAGE_FIELDS = (
    FieldSpec(
        field_name=FieldDefaults.IMAGES_FIELD,
        folder=FieldDefaults.IMAGES_FOLDER,
        max_count=FieldDefaults.IMAGES_MAX_COUNT,
    ),
)


class ReviewService:
    """评论服务"""

    def __init__(
        self,
        repository: ReviewRepository,
        pipeline: ImageIntakePipeline,
        token_generator: TokenGenerator | None = None,
        image_fields: Sequence[FieldSpec] = DEFAULT_IMAGE_FIELDS,
    ):
        self.repository = repository
        self.pipeline = pipeline
        self.token_generator = token_generator or TokenGenerator()
        self.image_fields = tuple(image_fields)

    async def submit(
        self,
        submission: ReviewSubmission,
        files_by_field: Mapping[str, Sequence[FileInput]] | None = None,
    ) -> ReviewReceipt:
        """创建评论：上传图片、生成令牌并持久化"""
        intake = await self.pipeline.process(self.image_fields, files_by_field or {})
        urls = intake.urls
        images = [url for spec in self.image_fields for url in urls.get(spec.field_name, [])]

        token = await self.token_generator.agenerate(self.repository.token_exists)

        data = submission.model_dump()
        data.update(images=images, token_number=token)
        review = await self.repository.create(data)

        logger.info(
            f"评论 {review.id} 已创建，令牌 {token}，图片 {len(images)} 张，"
            f"失败 {intake.get_failure_count()} 张"
        )
        return ReviewReceipt(
            review=review, token_number=token, image_failures=intake.failures
        )

    async def update_contact(
        self,
        review_id: int,
        name: str | None = None,
        email: str | None = None,
        phone: str | None = None,
    ) -> ReviewRecord:
        """补充联系方式，只写入非空字段"""
        changes = {
            key: value
            for key, value in (("name", name), ("email", email), ("phone", phone))
            if value and value.strip()
        }
        if not changes:
            logger.info(f"评论 {review_id} 没有需要更新的联系方式")
            return await self.repository.get(review_id)

        return await self.repository.update(review_id, changes)

    async def get_review(self, review_id: int) -> ReviewRecord:
        return await self.repository.get(review_id)

    async def list_reviews(self, filters: ReviewFilters | None = None) -> ReviewPage:
        filters = filters or ReviewFilters()
        if (
            filters.min_rating is not None
            and filters.max_rating is not None
            and filters.min_rating > filters.max_rating
        ):
            raise ValidationError("min_rating 不能大于 max_rating")
        return await self.repository.list_page(filters)

    async def recent_reviews(self, limit: int = RECENT_LIMIT) -> list[ReviewRecord]:
        """最新评论，limit 非正数时使用默认条数"""
        page = await self.repository.list_page(
            ReviewFilters(limit=limit if limit > 0 else RECENT_LIMIT)
        )
        return page.items

    async def location_statistics(self, location_id: int) -> RatingStatistics:
        ratings = await self.repository.ratings_for_location(location_id)
        return compute_rating_statistics(ratings)
