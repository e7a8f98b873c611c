"""Tests for match scores and the dulling model."""

import numpy as np
import pytest

from catalog import Opacity, TintingStrength
from colorspace import compute_chroma, compute_hue
from config import MixingConfig
from scoring import (
    distance_to_match_percent, opacity_score, tinting_strength_value, dulling_rate,
    dulling_factor, apply_dulling, normalize_proportions, mix_lab,
)


def test_match_percent_endpoints():
    assert distance_to_match_percent(0) == 100.0
    assert distance_to_match_percent(2) == pytest.approx(90.0)
    assert distance_to_match_percent(20) == 0.0
    assert distance_to_match_percent(45) == 0.0
    assert distance_to_match_percent(np.nan) == 0.0


def test_match_percent_is_monotonic_and_bounded():
    scores = distance_to_match_percent(np.linspace(0, 40, 81))
    assert np.all(np.diff(scores) <= 0)
    assert scores.min() >= 0.0
    assert scores.max() <= 100.0


def test_property_lookups():
    assert opacity_score(Opacity.OPAQUE) == 1.0
    assert opacity_score('T') == 0.25
    assert opacity_score('??') == 0.5
    assert tinting_strength_value(TintingStrength.HIGH) == 2.0
    assert tinting_strength_value(None) == 1.0


def test_dulling_rate_grows_with_paint_count():
    assert dulling_rate(1) == 0.0
    assert dulling_rate(2) < dulling_rate(3)


def test_dulling_factor_formula():
    # ΔE 100, rate 0.3, both opaque: 1 - 1.0 * 0.3 * 0.5
    factor = dulling_factor([(50, 0, 0), (50, 0, 100)], ['O', 'O'])
    assert factor == pytest.approx(0.85)


def test_dulling_factor_bounds_and_trends():
    near = dulling_factor([(50, 10, 10), (52, 12, 10)], ['O', 'O'])
    far = dulling_factor([(50, 10, 10), (60, -40, 60)], ['O', 'O'])
    transparent = dulling_factor([(50, 10, 10), (60, -40, 60)], ['T', 'T'])
    assert 0 < far < near <= 1.0
    assert transparent < far
    assert dulling_factor([(50, 0, 0)], ['O']) == 1.0
    assert dulling_factor([(50, 0, 0), (50, 0, 0)], ['O', 'T']) == 1.0


def test_dulling_factor_has_floor():
    config = MixingConfig(binary_dulling_rate=50.0)
    assert dulling_factor([(0, -100, -100), (100, 100, 100)], ['T', 'T'], config) == \
        pytest.approx(config.min_dulling_factor)


def test_apply_dulling_keeps_hue():
    lab = np.array([50.0, 30.0, -40.0])
    dulled = apply_dulling(lab, 0.5)
    assert dulled[0] == 50.0
    assert compute_chroma(dulled) == pytest.approx(compute_chroma(lab) * 0.5)
    assert compute_hue(dulled) == pytest.approx(compute_hue(lab))


def test_normalize_proportions():
    assert normalize_proportions([1, 3]) == pytest.approx([0.25, 0.75])
    assert normalize_proportions([0, 0]) == pytest.approx([0.5, 0.5])
    assert normalize_proportions([-1, 0, 0]) == pytest.approx([1 / 3] * 3)


def test_mixed_chroma_never_exceeds_linear_average():
    rng = np.random.default_rng(3)
    for _ in range(50):
        labs = np.column_stack([rng.uniform(10, 90, 3), rng.uniform(-80, 80, 3), rng.uniform(-80, 80, 3)])
        weights = normalize_proportions(rng.uniform(0.1, 1.0, 3))
        mixed = mix_lab(labs, weights, ['SO', 'T', 'O'])
        linear = weights @ labs
        assert compute_chroma(mixed) <= compute_chroma(linear) + 1e-9
        assert mixed[0] == pytest.approx(linear[0])
