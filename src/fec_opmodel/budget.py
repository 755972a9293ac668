# FEC OpModel - Operating model reporting from French FEC ledger exports
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Mock budget synthesis for FEC OpModel.

There is no real budgeting logic in this project. To feed a
budget-vs-actual comparison, a plausible budget figure is synthesized for
each (account, month) from the actual amount:

    budget = actual * uniform(1 - variation, 1 + variation)

then rounded the way a human would write a budget line:

    |budget| < 100   → nearest 10
    |budget| < 1000  → nearest 50
    otherwise        → nearest 100

By default the random draw is seeded from (seed, account, month), so the
same account/month always gets the same budget across recomputes (a new
manual mapping does not reshuffle unrelated budget figures). The
non-reproducible behaviour is available with ``deterministic=False``.
"""

import hashlib
import math
import random
from dataclasses import dataclass
from typing import Optional

DEFAULT_VARIATION = 0.15


def _round_half_up(value: float, step: int) -> float:
    return math.floor(value / step + 0.5) * step


def humanize_budget(value: float) -> float:
    """Round a budget figure to 10, 50 or 100 depending on its magnitude."""
    magnitude = abs(value)
    if magnitude < 100:
        return _round_half_up(value, 10)
    if magnitude < 1000:
        return _round_half_up(value, 50)
    return _round_half_up(value, 100)


@dataclass(frozen=True)
class BudgetSynthesizer:
    """Produce mock budget figures from actual monthly amounts.

    Attributes:
        deterministic: Seed each draw from (seed, account, month).
        seed: Global seed mixed into every per-key seed.
        variation: Half-width of the uniform multiplier around 1.0.
    """

    deterministic: bool = True
    seed: int = 0
    variation: float = DEFAULT_VARIATION

    def _rng(self, account: str, month: str) -> random.Random:
        if not self.deterministic:
            return random.Random()
        key = f"{self.seed}:{account}:{month}".encode("utf-8")
        digest = hashlib.sha256(key).digest()
        return random.Random(int.from_bytes(digest[:8], "big"))

    def synthesize(
        self, actual: float, account: str = "", month: Optional[str] = None
    ) -> float:
        """Return a mock budget for one account/month actual amount."""
        if actual == 0:
            return 0.0
        multiplier = self._rng(account, month or "").uniform(
            1 - self.variation, 1 + self.variation
        )
        return float(humanize_budget(actual * multiplier))


def synthesize_budget(actual: float) -> float:
    """Non-reproducible mock budget for a single amount."""
    return BudgetSynthesizer(deterministic=False).synthesize(actual)
