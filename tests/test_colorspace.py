"""Tests for color conversions and ΔE."""

import numpy as np
import pytest

from colorspace import (
    MID_GRAY_LAB, rgb_to_lab, lab_to_rgb, lab_to_hex, rgb_to_hex, hex_to_rgb,
    rgb_to_hsl, hsl_to_rgb, rgb_to_hsv, coerce_lab, delta_e_76, delta_e_2000, delta_e,
    compute_chroma, compute_hue, circular_hue_distance, color_temperature, chroma_level,
    value_level, generate_color_name,
)


SAMPLE_LABS = [
    (50.0, 2.6772, -79.7751),
    (50.0, 0.0, -82.7485),
    (73.0, 25.0, -18.0),
    (20.0, 2.0, -3.0),
    (96.0, 0.0, 2.0),
    (50.0, 40.0, 40.0),
]


def test_white_and_black():
    assert rgb_to_lab((255, 255, 255)) == pytest.approx([100.0, 0.0, 0.0], abs=0.1)
    assert rgb_to_lab((0, 0, 0)) == pytest.approx([0.0, 0.0, 0.0], abs=1e-6)


def test_rgb_round_trip_within_one():
    rng = np.random.default_rng(7)
    rgb = rng.integers(0, 256, size=(200, 3))
    back = lab_to_rgb(rgb_to_lab(rgb)).astype(int)
    assert np.abs(back - rgb).max() <= 1


def test_single_color_keeps_shape():
    assert rgb_to_lab((10, 20, 30)).shape == (3,)
    assert lab_to_rgb((50, 10, 10)).shape == (3,)
    assert rgb_to_lab([(10, 20, 30), (1, 2, 3)]).shape == (2, 3)


def test_invalid_rgb_falls_back_to_mid_gray():
    assert rgb_to_lab((np.nan, 0, 0)) == pytest.approx(MID_GRAY_LAB)
    assert rgb_to_lab('not a color') == pytest.approx(MID_GRAY_LAB)


def test_out_of_gamut_lab_is_clamped():
    rgb = lab_to_rgb((50, 200, -200))
    assert rgb.dtype == np.uint8
    assert lab_to_rgb((np.nan, 1, 1)).tolist() == lab_to_rgb(MID_GRAY_LAB).tolist()


def test_hex_helpers():
    assert rgb_to_hex((255, 0, 128)) == '#ff0080'
    assert hex_to_rgb('#FF0080') == (255, 0, 128)
    assert hex_to_rgb('fff') == (255, 255, 255)
    assert hex_to_rgb('#12345') is None
    assert hex_to_rgb('zzzzzz') is None
    assert hex_to_rgb(None) is None
    assert lab_to_hex((100, 0, 0)) == '#ffffff'


def test_hsl_and_hsv():
    assert rgb_to_hsl((255, 0, 0)) == pytest.approx((0.0, 100.0, 50.0))
    assert rgb_to_hsl((128, 128, 128))[:2] == (0.0, 0.0)
    for rgb in [(200, 100, 50), (10, 200, 90), (30, 40, 250)]:
        back = hsl_to_rgb(rgb_to_hsl(rgb))
        assert max(abs(a - b) for a, b in zip(back, rgb)) <= 1
    assert rgb_to_hsv((0, 0, 255)) == pytest.approx((240.0, 1.0, 1.0))


def test_coerce_lab():
    assert coerce_lab({'L': 50, 'a': 1, 'b': 2}) == pytest.approx([50, 1, 2])
    assert coerce_lab((50, 1, 2)) == pytest.approx([50, 1, 2])
    assert coerce_lab([1, 2]) is None
    assert coerce_lab({'L': 50}) is None
    assert coerce_lab((np.nan, 0, 0)) is None
    assert coerce_lab(None) is None


def test_delta_e_identity_and_symmetry():
    for first in SAMPLE_LABS:
        assert delta_e_76(first, first) == 0.0
        assert delta_e_2000(first, first) == pytest.approx(0.0, abs=1e-9)
        for second in SAMPLE_LABS:
            assert delta_e_76(first, second) == pytest.approx(delta_e_76(second, first))
            assert delta_e_2000(first, second) == pytest.approx(delta_e_2000(second, first))


def test_ciede2000_reference_pairs():
    assert delta_e_2000((50.0, 2.6772, -79.7751), (50.0, 0.0, -82.7485)) == pytest.approx(2.0425, abs=1e-3)
    assert delta_e_2000((50.0, 2.5, 0.0), (73.0, 25.0, -18.0)) == pytest.approx(27.1492, abs=1e-3)


def test_delta_e_broadcasts():
    labs = np.array(SAMPLE_LABS)
    distances = delta_e_2000((50.0, 40.0, 40.0), labs)
    assert distances.shape == (len(SAMPLE_LABS),)
    assert distances[-1] == pytest.approx(0.0, abs=1e-9)
    assert delta_e((0, 0, 0), (3, 4, 0), perceptual=False) == pytest.approx(5.0)


def test_hue_helpers():
    assert compute_chroma((50, 3, 4)) == pytest.approx(5.0)
    assert compute_hue((50, 0, 10)) == pytest.approx(90.0)
    assert circular_hue_distance(350, 10) == pytest.approx(20.0)
    assert circular_hue_distance(0, 180) == pytest.approx(180.0)


def test_classifications():
    assert color_temperature((50, 40, 40)) == 'warm'
    assert color_temperature((50, -20, -30)) == 'cool'
    assert color_temperature((50, 2, -3)) == 'neutral'
    assert chroma_level((50, 70, 0)) == 'high'
    assert chroma_level((50, 40, 0)) == 'medium'
    assert chroma_level((50, 5, 5)) == 'low'
    assert value_level(20) == 'dark'
    assert value_level(50) == 'midtone'
    assert value_level(90) == 'light'


def test_generate_color_name():
    assert generate_color_name((10, 0, 0)) == 'Near-Black'
    assert generate_color_name((95, 1, 1)) == 'Near-White'
    assert generate_color_name((50, -10, -40)) == 'Blue'
    assert generate_color_name((30, 60, 20)) == 'Dark Vivid Red'
