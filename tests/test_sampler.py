import numpy as np
import pytest

from trigboot.data.sampler import RandomIndexSampler


def test_permutation_covers_range():
    sampler = RandomIndexSampler(1)
    perm = sampler.permutation(50)
    assert sorted(perm.tolist()) == list(range(50))
    assert perm.dtype == np.int64


def test_same_seed_same_sequence():
    a = RandomIndexSampler(12345)
    b = RandomIndexSampler(12345)
    assert np.array_equal(a.permutation(100), b.permutation(100))
    assert np.array_equal(a.uniform_int(0, 9, size=20), b.uniform_int(0, 9, size=20))
    assert a.uniform_int(3, 5) == b.uniform_int(3, 5)


def test_different_seed_different_permutation():
    a = RandomIndexSampler(1).permutation(100)
    b = RandomIndexSampler(2).permutation(100)
    assert not np.array_equal(a, b)


def test_uniform_int_is_inclusive():
    sampler = RandomIndexSampler(0)
    draws = sampler.uniform_int(1, 3, size=2000)
    assert draws.min() == 1
    assert draws.max() == 3
    assert set(draws.tolist()) == {1, 2, 3}


def test_uniform_int_scalar():
    value = RandomIndexSampler(0).uniform_int(4, 4)
    assert isinstance(value, int)
    assert value == 4


def test_call_count_advances():
    sampler = RandomIndexSampler(0)
    sampler.permutation(3)
    sampler.uniform_int(0, 1, size=5)
    assert sampler.n_calls == 2


def test_empty_range_rejected():
    with pytest.raises(ValueError):
        RandomIndexSampler(0).uniform_int(5, 4)
