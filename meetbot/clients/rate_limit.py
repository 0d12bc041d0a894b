"""Client-side rate limiting and token estimation for provider calls."""

import asyncio
import time

import tiktoken
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from meetbot.utils.logging import get_logger

logger = get_logger(__name__)


class TokenEstimator:
    """Rough token counts for rate limiting.

    Uses a tiktoken encoding as a close approximation for every provider and
    falls back to four characters per token when the encoding is unavailable.
    """

    def __init__(self, encoding_name: str = "cl100k_base", use_tokenizer: bool = True):
        self.encoding_name = encoding_name
        self.use_tokenizer = use_tokenizer
        self._tokenizer: tiktoken.Encoding | None = None
        self._loaded = False

    @property
    def tokenizer(self) -> tiktoken.Encoding | None:
        if self.use_tokenizer and not self._loaded:
            self._loaded = True
            try:
                self._tokenizer = tiktoken.get_encoding(self.encoding_name)
            except Exception as e:
                logger.warning(f"Tokenizer {self.encoding_name} unavailable, estimating by length: {e}")
                self._tokenizer = None
        return self._tokenizer

    def estimate(self, text: str) -> int:
        tokenizer = self.tokenizer
        if tokenizer is None:
            return len(text) // 4
        return len(tokenizer.encode(text))


class ProviderRateLimiter:
    """Moving-window limiter for requests and tokens per minute."""

    def __init__(self, requests_per_minute: int = 50, tokens_per_minute: int = 40_000):
        """Initialize rate limiter.

        Args:
            requests_per_minute: Maximum requests per minute
            tokens_per_minute: Maximum tokens per minute
        """
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)

        self.request_limit = parse(f"{requests_per_minute}/minute")
        self.token_limit = parse(f"{tokens_per_minute}/minute")

    async def check_rate_limit(self, estimated_tokens: int, identifier: str) -> None:
        """Wait until the request fits within both limits."""
        logger.debug(f"Checking rate limit for {estimated_tokens} tokens, identifier: {identifier}")

        if not self.limiter.hit(self.request_limit, identifier):
            await self._wait_for_window(self.request_limit, identifier, "Request")

        token_identifier = f"{identifier}_tokens"
        if not self.limiter.hit(self.token_limit, token_identifier, cost=estimated_tokens):
            await self._wait_for_window(self.token_limit, token_identifier, "Token")

    async def _wait_for_window(self, limit, identifier: str, kind: str) -> None:
        window_stats = self.limiter.get_window_stats(limit, identifier)
        wait_time = max(0.0, window_stats.reset_time - time.time())
        if wait_time > 0:
            logger.warning(f"{kind} rate limit exceeded, waiting {wait_time:.2f}s")
            await asyncio.sleep(wait_time)
