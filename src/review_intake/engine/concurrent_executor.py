"""并发执行器模块。

把 CPU 密集的压缩任务交给线程池或进程池执行，避免阻塞事件循环。
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from typing import Any, TypeVar

from ..exceptions import ValidationError


logger = logging.getLogger(__name__)
T = TypeVar("T")


class CompressionExecutor:
    """压缩任务执行器

    池按需创建并在多次请求间复用，调用 shutdown() 释放。
    """

    # 平均体积或任务数超过阈值时改用进程池
    PROCESS_SIZE_THRESHOLD = 5 * 1024 * 1024
    PROCESS_COUNT_THRESHOLD = 20

    def __init__(self, max_workers: int = 4, force_executor_type: str | None = None):
        """初始化执行器

        Args:
            max_workers: 最大并发数
            force_executor_type: 强制指定执行器类型 ('thread'/'process'/None为自动选择)
        """
        if max_workers <= 0:
            raise ValidationError("max_workers 必须大于 0")
        if force_executor_type not in (None, "thread", "process"):
            raise ValidationError(
                "force_executor_type 必须是 'thread', 'process' 或 None"
            )

        self.max_workers = max_workers
        self.force_executor_type = force_executor_type
        self._pools: dict[str, Executor] = {}

    def choose_executor_type(self, buffer_sizes: Sequence[int]) -> str:
        """根据任务特征选择执行器类型

        Args:
            buffer_sizes: 待压缩内容的大小列表

        Returns:
            'thread' 或 'process'
        """
        if self.force_executor_type:
            return self.force_executor_type

        task_count = len(buffer_sizes)
        avg_size = sum(buffer_sizes) / task_count if task_count else 0

        # 大文件或大批量任务使用进程池
        if avg_size > self.PROCESS_SIZE_THRESHOLD or task_count > self.PROCESS_COUNT_THRESHOLD:
            logger.debug(
                f"使用ProcessPoolExecutor: 任务数={task_count}, 平均大小={avg_size / 1024 / 1024:.1f}MB"
            )
            return "process"

        logger.debug(
            f"使用ThreadPoolExecutor: 任务数={task_count}, 平均大小={avg_size / 1024 / 1024:.1f}MB"
        )
        return "thread"

    def _get_pool(self, executor_type: str) -> Executor:
        pool = self._pools.get(executor_type)
        if pool is None:
            executor_class: type[Executor] = (
                ProcessPoolExecutor if executor_type == "process" else ThreadPoolExecutor
            )
            pool = executor_class(max_workers=self.max_workers)
            self._pools[executor_type] = pool
        return pool

    async def run(
        self, executor_type: str, func: Callable[..., T], *args: Any
    ) -> T:
        """在选定的池中执行函数并等待结果"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._get_pool(executor_type), func, *args)

    def shutdown(self, wait: bool = True) -> None:
        for pool in self._pools.values():
            pool.shutdown(wait=wait, cancel_futures=True)
        self._pools.clear()
