"""评论认领令牌生成模块。

生成六位数字令牌，逐个调用存在性检查确认唯一；尝试次数有上限，
耗尽后改用时间戳末六位作为回退值，回退值不再校验唯一性。
"""

import inspect
import random
import time
from collections.abc import Awaitable, Callable

from ..config import get_config
from ..exceptions import TokenExhaustion, ValidationError
from ..models.review import ReviewToken, TokenState
from ..utils.logging_helpers import get_logger


logger = get_logger()

ExistsCheck = Callable[[str], bool]
AsyncExistsCheck = Callable[[str], Awaitable[bool] | bool]


def _wall_clock_ms() -> int:
    return time.time_ns() // 1_000_000


class TokenGenerator:
    """有界重试的令牌生成器

    每次尝试依赖上一次检查的结果，因此尝试之间严格串行。
    """

    def __init__(
        self,
        max_attempts: int | None = None,
        rng: random.Random | None = None,
        clock_ms: Callable[[], int] | None = None,
    ):
        """初始化令牌生成器

        Args:
            max_attempts: 随机尝试上限，默认 100
            rng: 随机数源，默认系统随机源
            clock_ms: 返回毫秒时间戳的函数，用于回退值
        """
        token_config = get_config().token
        self.max_attempts = (
            token_config.MAX_ATTEMPTS if max_attempts is None else max_attempts
        )
        if self.max_attempts < 1:
            raise ValidationError("max_attempts 必须大于 0")

        self.min_value = token_config.MIN_VALUE
        self.max_value = token_config.MAX_VALUE
        self.length = token_config.LENGTH
        self._rng = rng or random.SystemRandom()
        self._clock_ms = clock_ms or _wall_clock_ms

    def generate(self, exists_check: ExistsCheck) -> str:
        """生成令牌字符串"""
        return self.generate_token(exists_check).value

    def generate_token(self, exists_check: ExistsCheck) -> ReviewToken:
        """生成令牌并返回尝试次数与结束状态"""
        attempts = 0
        try:
            while True:
                if attempts >= self.max_attempts:
                    raise TokenExhaustion(attempts)
                candidate = self._draw()
                attempts += 1
                if not exists_check(candidate):
                    return self._accept(candidate, attempts)
        except TokenExhaustion as e:
            return self._fallback(e)

    async def agenerate(self, exists_check: AsyncExistsCheck) -> str:
        """异步版本，存在性检查可以返回协程"""
        return (await self.agenerate_token(exists_check)).value

    async def agenerate_token(self, exists_check: AsyncExistsCheck) -> ReviewToken:
        attempts = 0
        try:
            while True:
                if attempts >= self.max_attempts:
                    raise TokenExhaustion(attempts)
                candidate = self._draw()
                attempts += 1
                exists = exists_check(candidate)
                if inspect.isawaitable(exists):
                    exists = await exists
                if not exists:
                    return self._accept(candidate, attempts)
        except TokenExhaustion as e:
            return self._fallback(e)

    def _draw(self) -> str:
        return str(self._rng.randint(self.min_value, self.max_value))

    def _accept(self, candidate: str, attempts: int) -> ReviewToken:
        logger.info(f"生成唯一令牌: {candidate} (尝试 {attempts} 次)")
        return ReviewToken(value=candidate, attempts=attempts, state=TokenState.UNIQUE)

    def _fallback(self, exhaustion: TokenExhaustion) -> ReviewToken:
        # 回退值不做唯一性检查，理论上可能与已有令牌重复
        value = str(self._clock_ms() % 10**self.length).zfill(self.length)
        logger.warning(f"{exhaustion.message}，使用时间戳回退令牌: {value}")
        return ReviewToken(
            value=value, attempts=exhaustion.attempts, state=TokenState.FALLBACK
        )


def generate_token(exists_check: ExistsCheck) -> str:
    """使用默认配置生成令牌的便捷函数"""
    return TokenGenerator().generate(exists_check)
