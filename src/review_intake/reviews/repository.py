"""评论持久化接口。

服务层只依赖这里的抽象方法；内存实现用于本地运行与测试。
"""

import asyncio
import itertools
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from ..exceptions import ReviewNotFoundError
from ..models.review import ReviewFilters, ReviewPage, ReviewRecord, SortOrder


class ReviewRepository(ABC):
    """评论存储"""

    @abstractmethod
    async def token_exists(self, token: str) -> bool:
        """是否已有评论使用该令牌"""

    @abstractmethod
    async def create(self, data: dict) -> ReviewRecord:
        """写入新评论并返回带编号的记录"""

    @abstractmethod
    async def get(self, review_id: int) -> ReviewRecord:
        """按编号读取，不存在时抛出 ReviewNotFoundError"""

    @abstractmethod
    async def update(self, review_id: int, changes: dict) -> ReviewRecord:
        """更新部分字段并返回最新记录"""

    @abstractmethod
    async def list_page(self, filters: ReviewFilters) -> ReviewPage:
        """按条件分页查询"""

    @abstractmethod
    async def ratings_for_location(self, location_id: int) -> list[float]:
        """某地点所有评论的评分"""


class InMemoryReviewRepository(ReviewRepository):
    """基于字典的评论存储"""

    def __init__(self) -> None:
        self._records: dict[int, ReviewRecord] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def token_exists(self, token: str) -> bool:
        return any(r.token_number == token for r in self._records.values())

    async def create(self, data: dict) -> ReviewRecord:
        async with self._lock:
            record = ReviewRecord(
                id=next(self._ids), created_at=datetime.now(timezone.utc), **data
            )
            self._records[record.id] = record
        return record

    async def get(self, review_id: int) -> ReviewRecord:
        try:
            return self._records[review_id]
        except KeyError:
            raise ReviewNotFoundError(review_id) from None

    async def update(self, review_id: int, changes: dict) -> ReviewRecord:
        record = await self.get(review_id)
        updated = record.model_copy(update=changes)
        self._records[review_id] = updated
        return updated

    async def list_page(self, filters: ReviewFilters) -> ReviewPage:
        matched = [r for r in self._records.values() if self._matches(r, filters)]
        matched.sort(
            key=lambda r: getattr(r, filters.sort_by),
            reverse=filters.order == SortOrder.DESC,
        )

        offset = filters.offset or 0
        end = offset + filters.limit if filters.limit else None
        items = matched[offset:end]
        return ReviewPage(
            items=items,
            total=len(matched),
            limit=filters.limit or len(items),
            offset=offset,
        )

    async def ratings_for_location(self, location_id: int) -> list[float]:
        return [r.rating for r in self._records.values() if r.location_id == location_id]

    @staticmethod
    def _matches(record: ReviewRecord, filters: ReviewFilters) -> bool:
        if filters.location_id is not None and record.location_id != filters.location_id:
            return False
        if filters.company_id is not None and record.company_id != filters.company_id:
            return False
        if filters.min_rating is not None and record.rating < filters.min_rating:
            return False
        if filters.max_rating is not None and record.rating > filters.max_rating:
            return False
        return True
