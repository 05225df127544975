"""
リトライ処理モジュール

指数バックオフ付きリトライの設定値と汎用実行関数を提供します。
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from .errors import RadikoAPIError
from .logging_config import get_logger


T = TypeVar('T')

logger = get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """リトライ設定

    Attributes:
        max_retries: 初回以降の最大リトライ回数
        initial_delay: 初回リトライまでの待機秒数
        max_delay: 待機秒数の上限
    """
    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 5.0

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError(f"max_retries は0以上である必要があります: {self.max_retries}")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("待機秒数は0以上である必要があります")

    @property
    def max_attempts(self) -> int:
        """初回を含む最大試行回数"""
        return self.max_retries + 1

    def backoff(self, attempt: int) -> float:
        """attempt回目（0始まり）の失敗後に待機する秒数"""
        return min(self.initial_delay * (2 ** attempt), self.max_delay)

    def should_retry(self, error: BaseException, attempt: int) -> bool:
        """リトライ対象かどうかを判定"""
        return (
            isinstance(error, RadikoAPIError)
            and error.retry_recommended
            and attempt < self.max_retries
        )


DEFAULT_RETRY_POLICY = RetryPolicy()


async def with_retry(operation: Callable[[], Awaitable[T]],
                     policy: RetryPolicy = DEFAULT_RETRY_POLICY,
                     sleep: Optional[Callable[[float], Awaitable[None]]] = None,
                     description: str = "API呼び出し") -> T:
    """指数バックオフ付きで非同期処理を実行

    リトライ可能な RadikoAPIError のみ再試行する。中断やその他の例外、
    最終試行のエラーはそのまま送出する。

    Args:
        operation: 引数なしで呼び出せるコルーチン関数
        policy: リトライ設定
        sleep: 待機関数（テスト用に差し替え可能）
        description: ログ出力用の処理名

    Returns:
        operation の戻り値
    """
    if sleep is None:
        sleep = asyncio.sleep

    attempt = 0
    while True:
        try:
            return await operation()
        except RadikoAPIError as e:
            if not policy.should_retry(e, attempt):
                if e.retry_recommended:
                    logger.error(f"{description}失敗 (試行 {attempt + 1}/{policy.max_attempts}): {e.message}")
                else:
                    logger.error(f"{description}失敗 (リトライ不可): {e.message}")
                raise

            delay = policy.backoff(attempt)
            logger.warning(
                f"{description}エラー (試行 {attempt + 1}/{policy.max_attempts}): "
                f"{e.message} - {delay:.1f}秒後にリトライ"
            )
            await sleep(delay)
            attempt += 1
