#!/usr/bin/env python3
"""
Mixture search: propose 1-, 2- and 3-paint recipes for a target color.

Pipeline (one call of find_mixtures):
1. Single pass - score every paint with a known LAB directly
2. Binary pass - every pair on a coarse ratio ladder, plus fine ladders
   against the closest white and black
3. Advisor - painting heuristics add value-balanced, chromatic-black and
   complement recipes (see advisor.py)
4. Ternary pass - only when nothing so far is good enough; shortlisted
   paints on a handful of dominant/secondary/accent splits
5. Ranking - dedupe by paint set, sort, top-K

Candidates are generated lazily and pruned in bulk with numpy using
Euclidean ΔE. Only the survivors of each pass become Recipe objects, and
those are scored with CIEDE2000 so every reported percentage is on the same
scale.

All passes share one SearchBudget. A pass pulls at most the remaining
budget from its candidate stream, so neither time nor memory grows with the
number of possible pairs. When the budget runs out the search ranks what it
already has. The single pass is always run in full (it is linear in the
catalog) so a non-empty catalog always yields a recipe.
"""

import logging
from dataclasses import dataclass
from itertools import combinations, islice, permutations
from typing import Iterable, Iterator, Optional, Sequence

import numpy as np

from advisor import advise
from catalog import Paint, usable_paints, closest_white, closest_black
from colorspace import coerce_lab, delta_e_2000, rgb_to_lab
from config import MixingConfig, resolve_config
from ranking import rank_recipes
from recipes import (
    Recipe, SearchBudget, CHROMATIC_BLACK_TECHNIQUES, make_recipe, pair_visual_weights,
)
from scoring import distance_to_match_percent, opacity_score, tinting_strength_value, dulling_rate


logger = logging.getLogger(__name__)


@dataclass
class CatalogArrays:
    """Column view of the usable paints, built once per search."""
    paints: list
    labs: np.ndarray         # (n, 3)
    strengths: np.ndarray    # (n,)
    opacities: np.ndarray    # (n,)

    @classmethod
    def build(cls, paints: Sequence[Paint], config: MixingConfig) -> 'CatalogArrays':
        paints = list(paints)
        return cls(
            paints=paints,
            labs=np.array([p.lab for p in paints], dtype=np.float64).reshape(-1, 3),
            strengths=np.array([tinting_strength_value(p.tinting_strength, config.tinting_strengths)
                                for p in paints], dtype=np.float64),
            opacities=np.array([opacity_score(p.opacity, config.opacity_scores)
                                for p in paints], dtype=np.float64),
        )

    def index_of(self, paint: Optional[Paint]) -> Optional[int]:
        if paint is None:
            return None
        for i, p in enumerate(self.paints):
            if p.id == paint.id:
                return i
        return None


def mix_candidates(arrays: CatalogArrays, indices: np.ndarray, shares: np.ndarray,
                   config: MixingConfig) -> np.ndarray:
    """
    Estimated LAB for a batch of candidate mixes.

    Same model as recipes.estimate_mixture, vectorized over rows.

    Args:
        indices: (N, m) paint indices per candidate, m = 2 or 3
        shares: (N, m) physical proportions per candidate, rows summing to 1

    Returns:
        (N, 3) estimated LAB colors
    """
    count = indices.shape[1]
    strengths = arrays.strengths[indices]
    if count == 2:
        first = pair_visual_weights(shares[:, 0], strengths[:, 0], strengths[:, 1])
        weights = np.column_stack([first, 1.0 - first])
    else:
        weights = shares * strengths
        totals = weights.sum(axis=1, keepdims=True)
        weights = np.divide(weights, totals, out=np.full_like(weights, 1.0 / count), where=totals > 0)

    paint_labs = arrays.labs[indices]
    mixed = np.einsum('nm,nmc->nc', weights, paint_labs)

    # Largest ΔE between any two paints in each row
    max_delta = np.zeros(len(indices))
    for i, j in combinations(range(count), 2):
        max_delta = np.maximum(max_delta, np.linalg.norm(paint_labs[:, i] - paint_labs[:, j], axis=1))
    mean_opacity = arrays.opacities[indices].mean(axis=1)
    reduction = (max_delta / 100.0) * dulling_rate(count, config) * (1 - mean_opacity * 0.5)
    factor = np.clip(1.0 - reduction, config.min_dulling_factor, 1.0)
    mixed[:, 1:] *= factor[:, None]
    return mixed


def _best_per_paint_set(indices: np.ndarray, distances: np.ndarray, keep: int) -> np.ndarray:
    """Row numbers of the closest candidate for each paint set, best `keep` of them."""
    if len(indices) == 0:
        return np.zeros(0, dtype=int)
    order = np.argsort(distances, kind='stable')
    sets = np.sort(indices[order], axis=1)
    _, first = np.unique(sets, axis=0, return_index=True)
    best = order[first]
    best = best[np.argsort(distances[best], kind='stable')]
    return best[:keep]


def _evaluate(target: np.ndarray, arrays: CatalogArrays, candidates: Iterable[tuple],
              config: MixingConfig, budget: SearchBudget, keep: int,
              label: str = 'Mix') -> list[Recipe]:
    """
    Score (indices, shares) candidates in bulk, then turn the best per paint
    set into Recipes.

    Only as many candidates as the budget has left are pulled from the
    stream. One extra is peeked so the budget can tell it was cut short.
    """
    rows = list(islice(candidates, budget.remaining + 1))
    rows = rows[:budget.take(len(rows))]
    if not rows:
        logger.debug("%s pass: no budget left", label)
        return []
    indices = np.array([r[0] for r in rows], dtype=int)
    shares = np.array([r[1] for r in rows], dtype=np.float64)

    labs = mix_candidates(arrays, indices, shares, config)
    distances = np.linalg.norm(labs - target, axis=1)
    recipes = []
    for row in _best_per_paint_set(indices, distances, keep):
        paints = [arrays.paints[i] for i in indices[row]]
        recipes.append(make_recipe(target, paints, shares[row], config, lab=labs[row]))
    logger.debug("%s pass: scored %d candidates, kept %d", label, len(rows), len(recipes))
    return recipes


# =============================================================================
# Passes
# =============================================================================

def find_single_matches(target, paints: Sequence[Paint], config: MixingConfig = None,
                        budget: Optional[SearchBudget] = None) -> list[Recipe]:
    """
    Every usable paint scored on its own, best first.

    The pass is charged to the budget but never cut by it.
    """
    config = resolve_config(config)
    target = coerce_lab(target)
    paints = usable_paints(paints)
    if target is None or not paints:
        return []
    budget = budget or SearchBudget(config.max_evaluations)
    budget.take(len(paints))

    labs = np.array([p.lab for p in paints], dtype=np.float64)
    scores = distance_to_match_percent(delta_e_2000(target, labs), config.match_slope)
    order = np.argsort(-np.atleast_1d(scores), kind='stable')[:config.single_keep]
    return [make_recipe(target, [paints[i]], [1.0], config, lab=labs[i]) for i in order]


def _binary_candidates(target, paints: list[Paint], arrays: CatalogArrays,
                       config: MixingConfig) -> Iterator[tuple]:
    for partner, ladder in ((closest_white(paints, target), config.white_ratios),
                            (closest_black(paints, target), config.black_ratios)):
        p = arrays.index_of(partner)
        if p is None:
            continue
        for i in range(len(paints)):
            if i == p:
                continue
            for ratio in ladder:
                yield (i, p), (1.0 - ratio, ratio)

    for i, j in combinations(range(len(paints)), 2):
        for ratio in config.binary_ratios:
            yield (i, j), (ratio, 1.0 - ratio)


def find_binary_mixes(target, paints: Sequence[Paint], config: MixingConfig = None,
                      budget: Optional[SearchBudget] = None) -> list[Recipe]:
    """
    Two-paint candidates.

    White and black ladders are queued first since tinting and shading are
    the most common adjustments and should survive a tight budget.
    """
    config = resolve_config(config)
    target = coerce_lab(target)
    paints = usable_paints(paints)
    if target is None or len(paints) < 2:
        return []
    budget = budget or SearchBudget(config.max_evaluations)
    arrays = CatalogArrays.build(paints, config)
    candidates = _binary_candidates(target, paints, arrays, config)
    return _evaluate(target, arrays, candidates, config, budget, config.binary_keep, 'Binary')


def _split_orders(splits) -> list[tuple]:
    orders = []
    for split in splits:
        for order in permutations(split):
            if order not in orders:
                orders.append(order)
    return orders


def _ternary_candidates(target, paints: list[Paint], arrays: CatalogArrays,
                        config: MixingConfig) -> Iterator[tuple]:
    nearest = np.argsort(np.linalg.norm(arrays.labs - target, axis=1), kind='stable')
    shortlist = [int(i) for i in nearest[:config.ternary_shortlist]]

    white = arrays.index_of(closest_white(paints, target))
    if white is not None:
        hued = [i for i in shortlist if i != white and not paints[i].is_white]
        for i, j in permutations(hued, 2):
            for split in config.ternary_white_splits:
                yield (i, j, white), split

    orders = _split_orders(config.ternary_splits)
    for triple in combinations(shortlist, 3):
        for split in orders:
            yield triple, split


def find_ternary_mixes(target, paints: Sequence[Paint], config: MixingConfig = None,
                       budget: Optional[SearchBudget] = None) -> list[Recipe]:
    """
    Three-paint candidates from the paints already closest to the target.

    Every ordering of each split is tried. Tint combinations pair two
    shortlisted hue-carrying paints with the closest white, which takes the
    last share of each white split.
    """
    config = resolve_config(config)
    target = coerce_lab(target)
    paints = usable_paints(paints)
    if target is None or len(paints) < 3:
        return []
    budget = budget or SearchBudget(config.max_evaluations)
    arrays = CatalogArrays.build(paints, config)
    candidates = _ternary_candidates(target, paints, arrays, config)
    return _evaluate(target, arrays, candidates, config, budget, config.ternary_keep, 'Ternary')


# =============================================================================
# Search entry points
# =============================================================================

def find_mixtures(target, paints: Sequence[Paint], config: MixingConfig = None) -> list[Recipe]:
    """
    Ranked recipes (at most config.top_k) that reproduce `target`.

    Args:
        target: LAB color as (L, a, b), ndarray or {L, a, b} mapping
        paints: catalog paints; those without LAB are ignored

    Returns:
        Recipes, best first. Empty only when there is no usable target or
        no usable paint.
    """
    config = resolve_config(config)
    target = coerce_lab(target)
    paints = usable_paints(paints)
    if target is None or not paints:
        logger.debug("Nothing to match: target=%s, %d usable paints", target, len(paints))
        return []

    budget = SearchBudget(config.max_evaluations)
    pool = find_single_matches(target, paints, config, budget)
    if pool and pool[0].match_percentage > config.near_perfect_match:
        logger.debug("Single paint %s scores %.1f%%, skipping mixes",
                     pool[0].components[0].paint.id, pool[0].match_percentage)
        return rank_recipes(pool, config)

    if config.max_components >= 2:
        pool.extend(find_binary_mixes(target, paints, config, budget))
        if config.use_heuristics:
            pool.extend(advise(target, paints, pool, config, budget))

    best = max((r.match_percentage for r in pool), default=0.0)
    if config.max_components >= 3 and best < config.good_enough_match:
        pool.extend(find_ternary_mixes(target, paints, config, budget))
    else:
        logger.debug("Best two-paint score %.1f%%, skipping ternary pass", best)

    reserved = CHROMATIC_BLACK_TECHNIQUES if target[0] < config.dark_target_lightness else ()
    logger.debug("Ranking %d recipes (%d evaluations used)", len(pool), budget.used)
    return rank_recipes(pool, config, reserved_techniques=reserved)


def find_mixtures_for_rgb(rgb, paints: Sequence[Paint], config: MixingConfig = None) -> list[Recipe]:
    """find_mixtures for an 8-bit RGB target."""
    if rgb is None:
        return []
    return find_mixtures(rgb_to_lab(rgb), paints, config)
