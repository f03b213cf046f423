from __future__ import annotations

import random
from typing import Optional


def compute_backoff(
    attempt: int,
    interval: float = 1,
    backoff_rate: float = 2.0,
    max_delay: Optional[float] = None,
    jitter: str = "NONE",
) -> float:
    """Compute the delay in seconds before retry ``attempt`` (1-based).

    The delay grows as ``interval * backoff_rate ** (attempt - 1)``, is capped
    by ``max_delay`` and, with ``FULL`` jitter, drawn uniformly below the cap.
    """
    delay = interval * max(backoff_rate, 1.0) ** (attempt - 1)
    if max_delay is not None:
        delay = min(delay, max_delay)
    if jitter == "FULL":
        delay = random.uniform(0, delay)
    return delay
