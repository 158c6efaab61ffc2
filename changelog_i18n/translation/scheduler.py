"""
Batch Scheduling Module

Runs an async worker over a list in fixed-size batches:
- Items inside one batch run concurrently (asyncio.gather)
- Batches run one after another with a fixed delay between them
- A failing batch is reported and later batches still run, unless its
  error type is listed in `reraise`
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, List, Optional, Tuple, Type, TypeVar

from changelog_i18n.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class BatchResult(Generic[T, R]):
    """Outcome of one batch; `results` is empty when `error` is set."""
    index: int
    items: List[T]
    results: List[R] = field(default_factory=list)
    error: Optional[BaseException] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


def make_batches(items: List[T], batch_size: int) -> List[List[T]]:
    """
    Split items into consecutive batches of at most batch_size.

    Example:
        >>> make_batches([1, 2, 3, 4, 5], 2)
        [[1, 2], [3, 4], [5]]
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    return [items[i:i + batch_size] for i in range(0, len(items), batch_size)]


async def run_in_batches(
    items: List[T],
    worker: Callable[[T], Awaitable[R]],
    batch_size: int,
    delay: float = 0.0,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    label: str = "batch",
    reraise: Tuple[Type[BaseException], ...] = (),
) -> List[BatchResult]:
    """
    Run worker over items batch by batch.

    Args:
        items: Work items, in order
        worker: Async callable applied to each item
        batch_size: Maximum concurrent calls per batch
        delay: Seconds to wait between batches (not after the last one)
        sleep: Awaitable sleep used for the delay
        label: Name used in log messages
        reraise: Exception types that abort the whole run instead of failing one batch

    Returns:
        One BatchResult per batch, in order
    """
    batches = make_batches(list(items), batch_size)
    outcomes: List[BatchResult] = []

    for batch_idx, batch in enumerate(batches):
        logger.debug(f"{label} {batch_idx + 1}/{len(batches)}: {len(batch)} items")
        try:
            results = await asyncio.gather(*(worker(item) for item in batch))
            outcomes.append(BatchResult(index=batch_idx, items=batch, results=list(results)))
        except reraise:
            raise
        except Exception as e:
            logger.error(f"{label} {batch_idx + 1}/{len(batches)} failed: {e}")
            outcomes.append(BatchResult(index=batch_idx, items=batch, error=e))

        if delay > 0 and batch_idx < len(batches) - 1:
            await sleep(delay)

    return outcomes
