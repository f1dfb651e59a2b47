"""Fisher-Yates shuffle."""

import random
from typing import Sequence, TypeVar

T = TypeVar("T")


def shuffle(items: Sequence[T], rng: random.Random | None = None) -> list[T]:
    """
    Return a uniformly random permutation of ``items``.

    Works on a copy; the input is left untouched.

    Args:
        items: Items to permute
        rng: Random source, inject a seeded one for reproducible order
    """
    rng = rng or random.Random()
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randrange(i + 1)
        result[i], result[j] = result[j], result[i]
    return result
