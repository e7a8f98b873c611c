"""Tests for recipe ranking."""

import numpy as np

from catalog import Paint
from config import MixingConfig
from ranking import deduplicate, rank_recipes, recipe_key, sort_recipes
from recipes import MixtureComponent, Recipe


def recipe(ids, score, technique='binary'):
    ids = ids.split('+')
    components = tuple(MixtureComponent(Paint(id=i, brand='', name=i), 1 / len(ids)) for i in ids)
    return Recipe(components=components, match_percentage=score,
                  estimated_lab=np.zeros(3), technique=technique)


def test_same_paint_set_is_a_duplicate_regardless_of_order():
    assert recipe_key(recipe('a+b', 50)) == recipe_key(recipe('b+a', 70))
    ranked = rank_recipes([recipe('a+b', 50), recipe('b+a', 70), recipe('c', 60)])
    assert [r.match_percentage for r in ranked] == [70, 60]


def test_deduplicate_keeps_first_seen():
    first, second = recipe('a+b', 10), recipe('b+a', 90)
    assert deduplicate([first, second]) == [first]


def test_fewer_components_win_ties():
    pair, single = recipe('a+b', 80), recipe('c', 80)
    assert sort_recipes([pair, single]) == [single, pair]


def test_truncates_to_top_k_with_distinct_sets():
    pool = [recipe(f'p{i}+q{i % 3}', 100 - i) for i in range(12)]
    pool += [recipe(f'q{i % 3}+p{i}', 100 - i) for i in range(12)]
    ranked = rank_recipes(pool)
    assert len(ranked) == 5
    assert len({recipe_key(r) for r in ranked}) == 5
    scores = [r.match_percentage for r in ranked]
    assert scores == sorted(scores, reverse=True)
    assert len(rank_recipes(pool, top_k=2)) == 2
    assert len(rank_recipes(pool, MixingConfig(top_k=3))) == 3


def test_min_match_falls_back_to_best_recipe():
    pool = [recipe('a', 20), recipe('b', 35), recipe('c', 10)]
    ranked = rank_recipes(pool, min_match=50)
    assert [r.match_percentage for r in ranked] == [35]
    assert [r.match_percentage for r in rank_recipes(pool, min_match=15)] == [35, 20]


def test_reserved_technique_takes_last_slot():
    pool = [recipe(f'x{i}', 90 - i) for i in range(6)]
    dark = recipe('umber+blue', 40, technique='chromatic_black')
    ranked = rank_recipes(pool + [dark], reserved_techniques={'chromatic_black'})
    assert len(ranked) == 5
    assert ranked[-1] is dark
    assert [r.match_percentage for r in ranked[:4]] == [90, 89, 88, 87]

    # Already present: nothing changes
    ranked = rank_recipes(pool[:2] + [dark], reserved_techniques={'chromatic_black'})
    assert ranked[-1] is dark and len(ranked) == 3


def test_empty_pool():
    assert rank_recipes([]) == []
