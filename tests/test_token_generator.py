"""评论令牌生成测试。"""

import logging
import random

import pytest

from review_intake.config import reset_config
from review_intake.core.token_generator import TokenGenerator
from review_intake.exceptions import ValidationError
from review_intake.models.review import TokenState
from tests.conftest import SequenceRandom


class CountingCheck:
    """记录每次检查的候选值，前 reject_first 次报告已存在"""

    def __init__(self, reject_first: int) -> None:
        self.reject_first = reject_first
        self.candidates: list[str] = []

    def __call__(self, candidate: str) -> bool:
        self.candidates.append(candidate)
        return len(self.candidates) <= self.reject_first


class TestTokenGenerator:
    """令牌生成器测试"""

    def test_tokens_are_six_digit_strings_in_range(self):
        """随机路径的令牌始终在 [100000, 999999] 之间"""
        generator = TokenGenerator(rng=random.Random(7))

        for _ in range(500):
            token = generator.generate(lambda _: False)
            assert len(token) == 6
            assert token.isdigit()
            assert 100000 <= int(token) <= 999999

    def test_first_free_candidate_is_accepted(self):
        """前 5 个候选已存在时，第 6 次检查通过并返回第 6 个候选"""
        check = CountingCheck(reject_first=5)

        token = TokenGenerator(rng=random.Random(1)).generate_token(check)

        assert len(check.candidates) == 6
        assert token.value == check.candidates[5]
        assert token.attempts == 6
        assert token.state == TokenState.UNIQUE
        assert token.is_verified

    def test_exhaustion_falls_back_to_timestamp(self):
        """100 次全部冲突后使用时间戳末六位，且不再检查"""
        check = CountingCheck(reject_first=10**6)
        generator = TokenGenerator(clock_ms=lambda: 1_700_000_123_456)

        token = generator.generate_token(check)

        assert len(check.candidates) == 100
        assert token.value == "123456"
        assert token.attempts == 100
        assert token.state == TokenState.FALLBACK
        assert not token.is_verified

    def test_fallback_is_zero_padded(self):
        generator = TokenGenerator(max_attempts=1, clock_ms=lambda: 1_700_000_001_234)
        assert generator.generate(lambda _: True) == "001234"

    def test_fallback_logs_warning(self, caplog):
        generator = TokenGenerator(max_attempts=2, clock_ms=lambda: 1_000_999_999)

        with caplog.at_level(logging.WARNING):
            token = generator.generate(lambda _: True)

        assert token == "999999"
        assert any("回退令牌" in r.getMessage() for r in caplog.records)

    def test_uses_injected_random_source(self):
        generator = TokenGenerator(rng=SequenceRandom([111111, 222222]))
        taken = {"111111"}

        assert generator.generate(lambda c: c in taken) == "222222"

    def test_invalid_max_attempts(self):
        with pytest.raises(ValidationError):
            TokenGenerator(max_attempts=0)

    def test_max_attempts_from_environment(self, monkeypatch):
        monkeypatch.setenv("REVIEW_TOKEN_MAX_ATTEMPTS", "3")
        reset_config()

        check = CountingCheck(reject_first=10)
        TokenGenerator(clock_ms=lambda: 42).generate(check)

        assert len(check.candidates) == 3


class TestAsyncTokenGenerator:
    """异步存在性检查"""

    @pytest.mark.asyncio
    async def test_awaitable_check(self):
        seen: list[str] = []

        async def exists(candidate: str) -> bool:
            seen.append(candidate)
            return len(seen) < 3

        token = await TokenGenerator(rng=random.Random(3)).agenerate_token(exists)

        assert token.attempts == 3
        assert token.value == seen[-1]
        assert token.state == TokenState.UNIQUE

    @pytest.mark.asyncio
    async def test_plain_callable_is_accepted(self):
        token = await TokenGenerator(rng=random.Random(5)).agenerate(lambda _: False)
        assert 100000 <= int(token) <= 999999

    @pytest.mark.asyncio
    async def test_async_exhaustion_falls_back(self):
        calls = 0

        async def exists(candidate: str) -> bool:
            nonlocal calls
            calls += 1
            return True

        token = await TokenGenerator(clock_ms=lambda: 987_654_321).agenerate_token(exists)

        assert calls == 100
        assert token.value == "654321"
        assert token.state == TokenState.FALLBACK
