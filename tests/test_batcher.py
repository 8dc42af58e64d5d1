import math

import pytest

from reflectscan.batcher import create_batches

PARAMS = [f"p{i}" for i in range(11)]


@pytest.mark.parametrize("size", [1, 2, 3, 5, 10, 11, 50])
def test_partition(size):
    batches = create_batches(PARAMS, size)

    assert [p for b in batches for p in b] == PARAMS
    assert len(batches) == math.ceil(len(PARAMS) / size)
    assert all(0 < len(b) <= size for b in batches)


def test_last_batch_may_be_shorter():
    assert create_batches(["a", "b", "c"], 2) == [["a", "b"], ["c"]]


@pytest.mark.parametrize("size", [0, -1, -100])
def test_non_positive_size_is_one_batch(size):
    assert create_batches(PARAMS, size) == [PARAMS]


def test_empty_input():
    assert create_batches([], 3) == []
