"""Tests for the mixture search."""

import time

import numpy as np
import pytest

import mixing
from config import MixingConfig
from mixing import (
    CatalogArrays, find_binary_mixes, find_mixtures, find_mixtures_for_rgb,
    find_single_matches, find_ternary_mixes, mix_candidates,
)
from ranking import recipe_key
from recipes import CHROMATIC_BLACK_TECHNIQUES, MixtureComponent, Recipe, estimate_mixture


def test_empty_inputs_give_empty_results(paints, make_paint):
    assert find_mixtures((50, 0, 0), []) == []
    assert find_mixtures(None, paints) == []
    assert find_mixtures({'L': 50}, paints) == []
    assert find_mixtures((50, 0, 0), [make_paint('unmeasured', ['PR108'], None)]) == []
    assert find_mixtures_for_rgb(None, paints) == []


def test_paints_without_lab_are_skipped(paints, make_paint):
    catalog = paints + [make_paint('unmeasured', ['PR108'], None)]
    recipes = find_mixtures((45, 30, 10), catalog)
    assert recipes
    assert all('unmeasured' not in r.paint_ids for r in recipes)


def test_exact_match_short_circuits_to_single_paints(paints, by_id):
    recipes = find_mixtures(by_id['ultramarine'].lab, paints)
    assert recipes[0].paint_ids == {'ultramarine'}
    assert recipes[0].match_percentage == pytest.approx(100.0)
    assert all(len(r.components) == 1 for r in recipes)


def test_red_orange_target(paints):
    recipes = find_mixtures((50, 40, 40), paints)

    assert recipes[0].paint_ids == {'orange-red'}
    assert recipes[0].match_percentage >= 90

    tints = [r for r in recipes if r.paint_ids == {'orange-red', 'white'}]
    assert tints
    white_share = tints[0].proportion_of('white')
    assert 0.01 - 1e-9 <= white_share <= 0.4 + 1e-9


def test_dark_target_offers_chromatic_black(paints):
    recipes = find_mixtures((20, 2, -3), paints)
    darks = [r for r in recipes if r.technique in CHROMATIC_BLACK_TECHNIQUES]
    assert darks
    for r in darks:
        hued = [p for p in r.paints if not p.is_white]
        assert len(hued) == 2
        assert not any(p.is_black for p in hued)


def test_results_are_ranked_bounded_and_distinct(paints):
    for target in [(70, -20, 30), (30, 10, -30), (85, 5, 10), (55, 60, -10)]:
        recipes = find_mixtures(target, paints)
        assert 1 <= len(recipes) <= 5
        assert len({recipe_key(r) for r in recipes}) == len(recipes)
        scores = [r.match_percentage for r in recipes]
        assert scores == sorted(scores, reverse=True)
        assert all(0.0 <= s <= 100.0 for s in scores)
        for r in recipes:
            assert 1 <= len(r.components) <= 3
            assert sum(c.proportion for c in r.components) == pytest.approx(1.0)


def _fixed_recipe(paints, score):
    components = (MixtureComponent(paints[0], 0.5), MixtureComponent(paints[1], 0.5))
    return Recipe(components=components, match_percentage=score,
                  estimated_lab=np.zeros(3), technique='binary')


@pytest.mark.parametrize('binary_score, ternary_calls', [(95.0, 0), (50.0, 1)])
def test_ternary_pass_only_runs_below_good_enough(monkeypatch, paints, binary_score, ternary_calls):
    calls = []
    monkeypatch.setattr(mixing, 'find_binary_mixes',
                        lambda *args, **kwargs: [_fixed_recipe(paints, binary_score)])
    monkeypatch.setattr(mixing, 'find_ternary_mixes',
                        lambda *args, **kwargs: calls.append(args) or [])

    # Bright green: no single paint comes close
    config = MixingConfig(use_heuristics=False)
    find_mixtures((60, -50, 50), paints, config)
    assert len(calls) == ternary_calls


def test_search_respects_evaluation_budget(paints):
    recipes = find_mixtures((60, -50, 50), paints, MixingConfig(max_evaluations=3))
    assert 1 <= len(recipes) <= len(paints)
    assert all(len(r.components) == 1 for r in recipes)


def test_zero_budget_still_returns_single_paints(paints):
    recipes = find_mixtures((60, -50, 50), paints, MixingConfig(max_evaluations=0))
    assert recipes
    assert all(len(r.components) == 1 for r in recipes)


def test_budget_bounds_work_on_a_large_catalog(monkeypatch, make_paint):
    rng = np.random.default_rng(7)
    labs = rng.uniform((20, -60, -60), (95, 60, 60), size=(3000, 3))
    codes = ['PB29', 'PR83', 'PBr7', 'PG7', 'PY35', 'PO73']
    catalog = [make_paint(f'paint-{i}', [codes[i % len(codes)]], tuple(lab))
               for i, lab in enumerate(labs)]

    scored = []
    original = mixing.mix_candidates

    def counting(arrays, indices, shares, config):
        scored.append(len(indices))
        return original(arrays, indices, shares, config)

    monkeypatch.setattr(mixing, 'mix_candidates', counting)

    # Outside the sampled range so no single paint short-circuits. The single
    # pass takes 3000 of the 5000 evaluations.
    start = time.perf_counter()
    recipes = find_mixtures((60, -70, 70), catalog, MixingConfig(max_evaluations=5000))
    elapsed = time.perf_counter() - start

    assert recipes
    assert 0 < sum(scored) <= 2000
    assert elapsed < 30


def test_max_components_limits_recipes(paints):
    recipes = find_mixtures((60, -50, 50), paints, MixingConfig(max_components=1))
    assert all(len(r.components) == 1 for r in recipes)


def test_single_matches_sorted(paints):
    singles = find_single_matches((50, 40, 40), paints)
    assert len(singles) == len(paints)
    scores = [r.match_percentage for r in singles]
    assert scores == sorted(scores, reverse=True)


def test_binary_mixes_use_white_ladder(paints):
    recipes = find_binary_mixes((70, 25, 25), paints)
    assert all(len(r.components) == 2 for r in recipes)
    assert any(r.paint_ids == {'orange-red', 'white'} for r in recipes)
    assert len({recipe_key(r) for r in recipes}) == len(recipes)


def test_ternary_mixes_have_three_paints(paints):
    recipes = find_ternary_mixes((60, -50, 50), paints)
    assert recipes
    assert all(len(r.paint_ids) == 3 for r in recipes)
    assert len(recipes) <= MixingConfig().ternary_keep


def test_vectorized_mix_matches_recipe_estimate(paints):
    config = MixingConfig()
    arrays = CatalogArrays.build(paints, config)
    indices = [[0, 1], [2, 3], [1, 4], [0, 2, 3], [1, 3, 4]]
    shares = [(0.3, 0.7), (0.5, 0.5), (0.9, 0.1), (0.5, 0.3, 0.2), (1 / 3, 1 / 3, 1 / 3)]
    for idx, share in zip(indices, shares):
        idx = np.array([idx], dtype=int)
        vectorized = mix_candidates(arrays, idx, np.array([share]), config)[0]
        expected = estimate_mixture([paints[i] for i in idx[0]], share, config)
        assert vectorized == pytest.approx(expected)


def test_rgb_entry_point(paints):
    recipes = find_mixtures_for_rgb((250, 250, 245), paints)
    assert recipes
    assert recipes[0].paint_ids == {'white'}
