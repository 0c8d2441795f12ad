# gridiron/services/fanout.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar, Union

from gridiron.core.settings import FANOUT_CONCURRENCY

logger = logging.getLogger("gridiron.fanout")

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class Ok(Generic[R]):
    index: int
    value: R


@dataclass(frozen=True)
class Skip:
    index: int
    reason: str


Outcome = Union[Ok[R], Skip]


@dataclass
class FanOutResult(Generic[R]):
    """Per-item outcomes in completion order (NOT input order)."""

    outcomes: List[Outcome]

    @property
    def values(self) -> List[R]:
        return [o.value for o in self.outcomes if isinstance(o, Ok)]

    @property
    def skipped(self) -> List[Skip]:
        return [o for o in self.outcomes if isinstance(o, Skip)]


async def _run_one(index: int, item: T, fn: Callable[[T], Awaitable[Optional[R]]]) -> Outcome:
    try:
        value = await fn(item)
    except Exception as e:
        logger.debug("fan-out item %d skipped: %r", index, e)
        return Skip(index, repr(e))
    if value is None:
        return Skip(index, "no result")
    return Ok(index, value)


async def fan_out(
    items: Sequence[T],
    fn: Callable[[T], Awaitable[Optional[R]]],
    max_concurrency: int = FANOUT_CONCURRENCY,
) -> FanOutResult[R]:
    """
    Apply `fn` to every item with at most `max_concurrency` workers.

    Workers share one cursor and keep claiming the next unclaimed index until
    none remain. `fn` returning None or raising marks that item as a Skip;
    it never aborts the batch or the other workers.
    """
    n = len(items)
    outcomes: List[Outcome] = []
    if n == 0:
        return FanOutResult(outcomes)

    cursor = 0

    async def worker() -> None:
        nonlocal cursor
        while cursor < n:
            # claim + advance happen with no await in between
            mine = cursor
            cursor += 1
            outcomes.append(await _run_one(mine, items[mine], fn))

    workers = max(1, min(max_concurrency, n))
    await asyncio.gather(*(worker() for _ in range(workers)))
    return FanOutResult(outcomes)


__all__ = ["Ok", "Skip", "FanOutResult", "fan_out"]
