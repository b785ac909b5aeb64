from __future__ import annotations

import asyncio
import random
from typing import Literal

BackoffPolicy = Literal["linear", "exponential"]


def compute_backoff(
    attempt: int,
    base: float = 1.0,
    policy: BackoffPolicy = "linear",
    max_delay: float = 30.0,
    jitter: float = 0.0,
) -> float:
    """Compute the delay in seconds before retry number ``attempt`` (1-indexed).

    ``linear`` waits ``base * attempt``; ``exponential`` waits
    ``base * 2 ** (attempt - 1)`` capped at ``max_delay``.
    """
    if attempt < 1:
        raise ValueError("attempt is 1-indexed")
    if policy == "linear":
        delay = base * attempt
    elif policy == "exponential":
        delay = min(base * 2 ** (attempt - 1), max_delay)
    else:
        raise ValueError(f"Unknown backoff policy: {policy}")
    if jitter:
        delay += random.uniform(0, jitter)
    return delay


async def schedule_retry(delay: float) -> None:
    """Sleep for computed backoff delay before retrying."""
    await asyncio.sleep(delay)
