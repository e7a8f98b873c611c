#!/usr/bin/env python3
"""
Painting-craft heuristics layered on top of the raw mixture search.

Each function returns extra candidate recipes. Nothing here removes a
candidate; ranking decides what surfaces.
"""

import logging
from itertools import combinations, islice
from typing import Sequence

import numpy as np

from catalog import (
    Paint, NEUTRAL_CHROMA, usable_paints, closest_white, closest_black,
    iter_chromatic_black_pairs,
)
from colorspace import (
    coerce_lab, compute_chroma, compute_hue, circular_hue_distance, color_temperature,
)
from config import MixingConfig, resolve_config
from recipes import (
    Recipe, SearchBudget, estimate_mixture, make_recipe, physical_share_for_visual,
)
from scoring import tinting_strength_value


logger = logging.getLogger(__name__)


VALUE_BALANCE_CANDIDATES = 5  # Closest paints by lightness and by chroma plane
CHROMATIC_BLACK_KIND_ORDER = ('neutral', 'warm', 'cool')


def _nearest(paints: list[Paint], distances: np.ndarray, count: int) -> list[Paint]:
    return [paints[i] for i in np.argsort(distances, kind='stable')[:count]]


def value_balanced_mixes(target, paints: Sequence[Paint], config: MixingConfig = None,
                         budget: SearchBudget = None) -> list[Recipe]:
    """
    Pairs whose lightness brackets the target, mixed to land exactly on its L.

    Only pairs more than value_balance_threshold apart in L qualify. The
    visual share comes from linear interpolation of L, is converted back to
    a physical share through the tinting-strength model, and is then kept
    inside value_balance_range.
    """
    config = resolve_config(config)
    target = coerce_lab(target)
    paints = usable_paints(paints)
    if target is None or len(paints) < 2:
        return []
    budget = budget or SearchBudget(config.max_evaluations)

    labs = np.array([p.lab for p in paints], dtype=np.float64)
    by_value = _nearest(paints, np.abs(labs[:, 0] - target[0]), VALUE_BALANCE_CANDIDATES)
    by_hue = _nearest(paints, np.hypot(labs[:, 1] - target[1], labs[:, 2] - target[2]),
                      VALUE_BALANCE_CANDIDATES)
    candidates = {}
    for paint in by_value + by_hue + [closest_white(paints, target), closest_black(paints, target)]:
        if paint is not None:
            candidates.setdefault(paint.id, paint)

    low, high = config.value_balance_range
    recipes = []
    for first, second in combinations(candidates.values(), 2):
        L1, L2 = first.lab[0], second.lab[0]
        if abs(L1 - L2) <= config.value_balance_threshold:
            continue
        if not min(L1, L2) <= target[0] <= max(L1, L2):
            continue
        if not budget.take(1):
            break
        visual = (target[0] - L2) / (L1 - L2)
        share = physical_share_for_visual(
            visual,
            tinting_strength_value(first.tinting_strength, config.tinting_strengths),
            tinting_strength_value(second.tinting_strength, config.tinting_strengths),
        )
        share = float(np.clip(share, low, high))
        recipes.append(make_recipe(target, [first, second], [share, 1.0 - share], config))
    return recipes


def _kind_order(target, config: MixingConfig) -> list[str]:
    preferred = color_temperature(target, config.temperature_margin)
    return [preferred] + [k for k in CHROMATIC_BLACK_KIND_ORDER if k != preferred]


def pick_chromatic_black(target, paints: Sequence[Paint], config: MixingConfig = None,
                         budget: SearchBudget = None):
    """
    (kind, first, second) for the chromatic black suited to the target.

    The target's warmth picks the pairing (warm, cool or neutral), falling
    back to the others when the catalog cannot supply it. Within a pairing
    the pair whose even mix is closest to neutral wins; single-brand pairs
    are preferred. Each pair tried costs one evaluation. None when no
    pairing is available.
    """
    config = resolve_config(config)
    budget = budget or SearchBudget(config.max_evaluations)
    for kind in _kind_order(target, config):
        pairs = list(islice(iter_chromatic_black_pairs(paints, kind), budget.remaining))
        pairs = pairs[:budget.take(len(pairs))]
        if not pairs:
            continue
        first, second = min(
            pairs, key=lambda pair: compute_chroma(estimate_mixture(pair, [0.5, 0.5], config)))
        return kind, first, second
    return None


def chromatic_black_mixes(target, paints: Sequence[Paint], config: MixingConfig = None,
                          budget: SearchBudget = None) -> list[Recipe]:
    """
    Dark targets: a complementary pair instead of a tube black.

    The pair is tried at each split, alone and lightened with the closest
    white in small steps.
    """
    config = resolve_config(config)
    target = coerce_lab(target)
    paints = usable_paints(paints)
    if target is None or target[0] >= config.dark_target_lightness:
        return []
    budget = budget or SearchBudget(config.max_evaluations)

    picked = pick_chromatic_black(target, paints, config, budget)
    if picked is None:
        logger.debug("No chromatic black pairing available")
        return []
    kind, first, second = picked
    white = closest_white(paints, target)
    logger.debug("Chromatic black (%s): %s + %s", kind, first.id, second.id)

    recipes = []
    for split in config.chromatic_black_splits:
        for step in config.chromatic_black_white_steps:
            if step > 0 and white is None:
                continue
            if not budget.take(1):
                return recipes
            if step > 0:
                mix = [first, second, white]
                shares = [(1 - step) * split, (1 - step) * (1 - split), step]
            else:
                mix = [first, second]
                shares = [split, 1 - split]
            recipes.append(make_recipe(target, mix, shares, config))
    return recipes


def find_complement(paint: Paint, paints: Sequence[Paint], config: MixingConfig = None):
    """Same-brand hued paint closest to the opposite hue, within tolerance. None if absent."""
    config = resolve_config(config)
    opposite = (compute_hue(paint.lab) + 180) % 360
    best, best_gap = None, None
    for candidate in usable_paints(paints):
        if candidate.id == paint.id or candidate.brand != paint.brand:
            continue
        if candidate.is_white or candidate.is_black or compute_chroma(candidate.lab) < NEUTRAL_CHROMA:
            continue
        gap = circular_hue_distance(compute_hue(candidate.lab), opposite)
        if gap <= config.complement_hue_tolerance and (best_gap is None or gap < best_gap):
            best, best_gap = candidate, gap
    return best


def complement_mixes(target, paints: Sequence[Paint], pool: Sequence[Recipe],
                     config: MixingConfig = None, budget: SearchBudget = None) -> list[Recipe]:
    """
    Knock back a close single match that is too saturated.

    A small fraction of its complement lowers chroma without moving hue
    much.
    """
    config = resolve_config(config)
    target = coerce_lab(target)
    if target is None:
        return []
    budget = budget or SearchBudget(config.max_evaluations)

    singles = sorted(
        (r for r in pool
         if len(r.components) == 1 and r.match_percentage >= config.complement_min_match),
        key=lambda r: -r.match_percentage,
    )[:config.complement_candidates]

    recipes = []
    for single in singles:
        dominant = single.components[0].paint
        if compute_chroma(dominant.lab) <= compute_chroma(target):
            continue
        complement = find_complement(dominant, paints, config)
        if complement is None:
            continue
        for fraction in config.complement_fractions:
            if not budget.take(1):
                return recipes
            recipes.append(make_recipe(target, [dominant, complement],
                                       [1 - fraction, fraction], config))
    return recipes


def advise(target, paints: Sequence[Paint], pool: Sequence[Recipe],
           config: MixingConfig = None, budget: SearchBudget = None) -> list[Recipe]:
    """All heuristic candidates for the target, to be added to the search pool."""
    config = resolve_config(config)
    budget = budget or SearchBudget(config.max_evaluations)
    extra = value_balanced_mixes(target, paints, config, budget)
    extra += chromatic_black_mixes(target, paints, config, budget)
    extra += complement_mixes(target, paints, pool, config, budget)
    logger.debug("Advisor added %d recipes", len(extra))
    return extra
