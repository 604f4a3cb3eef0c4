"""Tests for vaxnet.rng — seeded per-trial RNG streams."""

import numpy as np
import pytest

from vaxnet.rng import create_rng_hierarchy, fresh_seed, network_rng, trial_rng
from vaxnet.types import Policy


class TestCreateRngHierarchy:
    def test_returns_correct_keys(self):
        rngs = create_rng_hierarchy(42, n_trials=3)
        assert 'network' in rngs
        for policy in ("Random", "HighDegree", "HighRiskArea"):
            for t in range(1, 4):
                assert f'{policy}_{t}' in rngs
        assert len(rngs) == 3 * 3 + 1

    def test_policy_subset(self):
        rngs = create_rng_hierarchy(42, n_trials=2, policies=["HighDegree"])
        assert set(rngs) == {'network', 'HighDegree_1', 'HighDegree_2'}

    def test_generators_are_independent(self):
        """Different streams produce different sequences."""
        rngs = create_rng_hierarchy(42, n_trials=4)
        vals = {name: rng.random() for name, rng in rngs.items()}
        assert len(set(vals.values())) == len(vals), "RNG streams produced duplicate values"

    def test_reproducibility(self):
        """Same seed produces identical sequences."""
        rngs1 = create_rng_hierarchy(42, n_trials=3)
        rngs2 = create_rng_hierarchy(42, n_trials=3)
        for name in rngs1:
            np.testing.assert_array_equal(rngs1[name].random(100),
                                          rngs2[name].random(100))

    def test_different_seeds_differ(self):
        rngs1 = create_rng_hierarchy(42, n_trials=2)
        rngs2 = create_rng_hierarchy(43, n_trials=2)
        assert any(
            not np.array_equal(rngs1[k].random(10), rngs2[k].random(10))
            for k in rngs1
        )

    def test_negative_seed(self):
        with pytest.raises(ValueError):
            create_rng_hierarchy(-1, n_trials=1)


class TestTrialRng:
    def test_matches_hierarchy(self):
        """A trial can be replayed without building the whole hierarchy."""
        rngs = create_rng_hierarchy(7, n_trials=5)
        np.testing.assert_array_equal(
            trial_rng(7, "HighRiskArea", 4).random(20),
            rngs['HighRiskArea_4'].random(20),
        )

    def test_independent_of_policy_subset(self):
        full = create_rng_hierarchy(7, n_trials=2)
        subset = create_rng_hierarchy(7, n_trials=2, policies=["HighRiskArea"])
        assert full['HighRiskArea_2'].random() == subset['HighRiskArea_2'].random()

    def test_adding_trials_does_not_shift_streams(self):
        a = create_rng_hierarchy(7, n_trials=2)['Random_2'].random(5)
        b = create_rng_hierarchy(7, n_trials=50)['Random_2'].random(5)
        np.testing.assert_array_equal(a, b)

    def test_accepts_enum(self):
        assert (trial_rng(1, Policy.HIGH_DEGREE, 1).random()
                == trial_rng(1, "HighDegree", 1).random())

    def test_network_stream_distinct_from_trials(self):
        assert network_rng(1).random() != trial_rng(1, "Random", 0).random()

    def test_negative_trial(self):
        with pytest.raises(ValueError):
            trial_rng(1, "Random", -1)

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            trial_rng(1, "Ring", 1)


class TestFreshSeed:
    def test_non_negative_int(self):
        seed = fresh_seed()
        assert isinstance(seed, int)
        assert seed >= 0
        network_rng(seed).random()
