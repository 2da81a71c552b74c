#!/usr/bin/env python3
"""评论接收演示脚本。

展示 review_intake 库的核心功能，包括：
- 体积预算压缩
- 图片并发上传（内存上传器，顺序保持）
- 评论创建、令牌生成与评分统计
"""

import asyncio
from io import BytesIO

from PIL import Image, ImageDraw

from review_intake import CompressionEngine, ImageIntakePipeline, InMemoryUploader
from review_intake.models import FieldSpec, ReviewSubmission
from review_intake.reviews import InMemoryReviewRepository, ReviewService
from review_intake.utils import configure_logging


def make_image(size: tuple[int, int], fmt: str = "BMP") -> bytes:
    """生成带图案的测试图片"""
    img = Image.new("RGB", size, color="white")
    draw = ImageDraw.Draw(img)
    for i in range(0, size[0], 16):
        draw.line([(i, 0), (size[0] - i, size[1])], fill=(i % 256, 80, 160), width=6)
    buffer = BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


def demo_compression() -> None:
    print("\n📦 体积预算压缩")
    data = make_image((1200, 1000))
    outcome = CompressionEngine().compress_with_report(data, 1024 * 1024)
    print(f"  {outcome.get_summary()}")
    for attempt in outcome.attempts:
        print(f"  - 质量 {attempt.quality}: {attempt.result_size} bytes")


async def demo_pipeline() -> None:
    print("\n🚀 并发上传")
    files = [make_image((600, 400)), make_image((200, 200), "PNG"), b"not an image" * 10]
    spec = FieldSpec(field_name="images", folder="user-reviews", max_count=5)

    async with ImageIntakePipeline(InMemoryUploader(), max_bytes=64 * 1024) as pipeline:
        result = await pipeline.process([spec], {"images": files})

    print(f"  {result.get_summary()}")
    for outcome in result.outcomes["images"]:
        print(f"  - {outcome.get_summary()}")


async def demo_reviews() -> None:
    print("\n📝 评论创建")
    repository = InMemoryReviewRepository()
    async with ImageIntakePipeline(InMemoryUploader()) as pipeline:
        service = ReviewService(repository, pipeline)
        for rating in (5, 4, 2.5):
            receipt = await service.submit(
                ReviewSubmission(rating=rating, location_id=1, description="演示"),
                {"images": [make_image((300, 300), "PNG")]},
            )
            print(f"  评论 {receipt.review_id} 令牌 {receipt.token_number}")

        stats = await service.location_statistics(1)
        print(f"  平均分 {stats.average_rating}，分布 {stats.rating_distribution}")


def main() -> None:
    configure_logging("WARNING")
    demo_compression()
    asyncio.run(demo_pipeline())
    asyncio.run(demo_reviews())


if __name__ == "__main__":
    main()
