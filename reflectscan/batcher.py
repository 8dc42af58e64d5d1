from __future__ import annotations

from typing import List, Sequence


def create_batches(parameters: Sequence[str], batch_size: int) -> List[List[str]]:
    """Split parameters into ordered chunks of at most batch_size names.

    A non-positive batch_size yields the whole input as a single batch.
    """
    if batch_size <= 0:
        return [list(parameters)]

    return [list(parameters[i:i + batch_size]) for i in range(0, len(parameters), batch_size)]
