#!/usr/bin/env python3
"""
Recipe ranking: dedupe by paint set, sort by match, keep the top K.
"""

import logging
from typing import Iterable, Sequence

from config import MixingConfig, resolve_config


logger = logging.getLogger(__name__)


def recipe_key(recipe) -> frozenset:
    """Paint ids of a recipe. Proportions do not matter for identity."""
    return frozenset(c.paint.id for c in recipe.components)


def sort_recipes(recipes: Iterable) -> list:
    """Best match first; at equal match fewer paints first. Stable otherwise."""
    return sorted(recipes, key=lambda r: (-r.match_percentage, len(r.components)))


def deduplicate(recipes: Iterable) -> list:
    """Keep the first recipe seen for each paint set."""
    seen = set()
    unique = []
    for recipe in recipes:
        key = recipe_key(recipe)
        if key in seen:
            continue
        seen.add(key)
        unique.append(recipe)
    return unique


def rank_recipes(recipes: Iterable, config: MixingConfig = None, top_k: int = None,
                 reserved_techniques: Sequence[str] = (), min_match: float = None) -> list:
    """
    Final ordering of a recipe pool.

    Sorting happens before deduplication so the surviving instance of each
    paint set is its best-scoring one.

    Args:
        top_k: maximum recipes returned (default config.top_k)
        reserved_techniques: if the pool holds a recipe of one of these
            techniques but the top K does not, the best such recipe takes
            the last slot
        min_match: drop recipes below this score, unless that would leave
            nothing, in which case the single best recipe is returned

    Returns:
        At most top_k recipes with distinct paint sets, best first. Empty
        only for an empty pool.
    """
    config = resolve_config(config)
    top_k = config.top_k if top_k is None else top_k
    min_match = config.min_match if min_match is None else min_match

    ranked = deduplicate(sort_recipes(recipes))
    if not ranked or top_k <= 0:
        return []

    passing = [r for r in ranked if r.match_percentage >= min_match]
    if not passing:
        logger.debug("No recipe reaches %.1f%%, returning the best one", min_match)
        return ranked[:1]

    top = passing[:top_k]
    if reserved_techniques and not any(r.technique in reserved_techniques for r in top):
        reserved = next((r for r in passing[top_k:] if r.technique in reserved_techniques), None)
        if reserved is not None:
            top[-1] = reserved
    return top
