"""Hot-rank fetching with retry and exponential backoff."""

import json
import random
import time
from collections.abc import Callable
from typing import Any

import requests

from .config import FetchConfig, RetryPolicy
from .logging_config import ExecutionLogger, create_execution_logger
from .models import (
    FailureReason,
    FetchFailure,
    FetchResult,
    HotRankResponse,
    RankedItem,
)


class FetchError(RuntimeError):
    """Raised once every fetch attempt has failed."""

    def __init__(self, failure: FetchFailure):
        super().__init__(failure.message)
        self.failure = failure

    @property
    def status_code(self) -> int | None:
        return self.failure.status_code

    @property
    def payload(self) -> dict[str, Any]:
        return self.failure.details()


def backoff_delay_ms(
    attempt: int,
    policy: RetryPolicy,
    rng: Callable[[], float] = random.random,
) -> int:
    """Delay before retrying after ``attempt`` (1-indexed) failed.

    Exponential growth from ``base_delay_ms`` with a multiplicative
    jitter drawn from [0.5, 1.5), clamped to [0, max_delay_ms].
    """
    if policy.base_delay_ms <= 0:
        return 0

    ceiling = max(0, policy.max_delay_ms)
    exponential = policy.base_delay_ms
    for _ in range(attempt - 1):
        if exponential >= 2 * ceiling:
            break
        exponential *= 2

    # Jitter never drops below 0.5, so the cap applies whatever is drawn
    if exponential >= 2 * ceiling:
        return ceiling

    numerator, denominator = (0.5 + rng()).as_integer_ratio()
    return min(ceiling, exponential * numerator // denominator)


def with_retry(
    operation: Callable[[], FetchResult],
    policy: RetryPolicy,
    label: str = "operation",
    logger: ExecutionLogger | None = None,
    sleep: Callable[[float], None] = time.sleep,
    rng: Callable[[], float] = random.random,
) -> list[RankedItem]:
    """Run ``operation`` until it succeeds or the policy is exhausted.

    Raises:
        FetchError: carrying the failure of the last attempt
    """
    logger = logger or create_execution_logger("retry")
    attempts = policy.attempts

    attempt = 1
    while True:
        result = operation()
        if result.ok:
            return result.items

        failure = result.failure
        if attempt >= attempts:
            raise FetchError(failure)

        delay = backoff_delay_ms(attempt, policy, rng)
        logger.log_retry(label, attempt, attempts, delay, failure.message)
        sleep(delay / 1000)
        attempt += 1


class HotRankFetcher:
    """Fetches ``data.hotRankList`` from the 36Kr gateway."""

    def __init__(
        self,
        config: FetchConfig | None = None,
        execution_id: str | None = None,
        session: requests.Session | None = None,
    ):
        """Initialize HotRankFetcher with configuration.

        Args:
            config: API and retry settings
            execution_id: Execution ID for logging context
            session: Optional pre-built HTTP session
        """
        self.config = config or FetchConfig()
        self.logger = create_execution_logger("fetcher", execution_id)
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Content-Type": "application/json",
                "User-Agent": self.config.user_agent,
            }
        )

        self.logger.info(
            "HotRankFetcher initialized",
            api_url=self.config.api_url,
            timeout=self.config.timeout,
            retry_attempts=self.config.retry.attempts,
        )

    def build_payload(self, now: float | None = None) -> dict[str, Any]:
        """Request body for the hot-rank endpoint."""
        timestamp = int(time.time() if now is None else now)
        return {
            "partner_id": self.config.partner_id,
            "timestamp": timestamp,
            "param": {
                "siteId": self.config.site_id,
                "platformId": self.config.platform_id,
            },
        }

    def fetch_once(self) -> FetchResult:
        """Perform a single attempt; never raises for transient problems."""
        url = self.config.api_url
        try:
            response = self.session.post(
                url,
                data=json.dumps(self.build_payload()),
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            return FetchResult.failed(
                FetchFailure(FailureReason.NETWORK, f"请求异常: {e}")
            )

        status = response.status_code
        body = response.text
        if not 200 <= status <= 299:
            return FetchResult.failed(
                FetchFailure(
                    FailureReason.HTTP_STATUS,
                    f"拉取失败: {status}",
                    status_code=status,
                    body=body,
                )
            )

        try:
            parsed = json.loads(response.content)
        except ValueError as e:
            return FetchResult.failed(
                FetchFailure(
                    FailureReason.INVALID_JSON,
                    f"响应不是合法 JSON: {e}",
                    status_code=status,
                    body=body,
                )
            )

        hot_rank = HotRankResponse.from_json(parsed)
        if not hot_rank.ok:
            return FetchResult.failed(
                FetchFailure(
                    FailureReason.API_CODE,
                    f"接口返回 code={hot_rank.code}",
                    status_code=status,
                    payload=parsed,
                )
            )

        if hot_rank.hot_rank_list is None:
            return FetchResult.failed(
                FetchFailure(
                    FailureReason.SCHEMA,
                    "未找到 data.hotRankList，接口结构可能变更",
                    status_code=status,
                    payload=parsed,
                )
            )

        items = [RankedItem.from_dict(raw) for raw in hot_rank.hot_rank_list]
        self.logger.info(
            "Hot rank list downloaded",
            status_code=status,
            items_count=len(items),
        )
        return FetchResult.success(items)

    def fetch_hot_rank(
        self,
        sleep: Callable[[float], None] = time.sleep,
        rng: Callable[[], float] = random.random,
    ) -> list[RankedItem]:
        """Fetch the hot-rank list, retrying transient failures.

        Returns:
            Ranked items in API order

        Raises:
            FetchError: If every attempt failed
        """
        self.logger.log_execution_start(api_url=self.config.api_url)
        try:
            items = with_retry(
                self.fetch_once,
                self.config.retry,
                label=f"fetch {self.config.api_url}",
                logger=self.logger,
                sleep=sleep,
                rng=rng,
            )
        except FetchError as e:
            self.logger.log_execution_end(success=False, error=str(e))
            raise

        self.logger.log_execution_end(success=True, items_count=len(items))
        return items

    def close(self) -> None:
        self.session.close()


def fetch_hot_rank(
    config: FetchConfig | None = None, execution_id: str | None = None
) -> list[RankedItem]:
    """Fetch the hot-rank list with a throwaway session."""
    fetcher = HotRankFetcher(config, execution_id=execution_id)
    try:
        return fetcher.fetch_hot_rank()
    finally:
        fetcher.close()
