#!/usr/bin/env python3
"""
Recipe values and the mixed-color estimate shared by the search and the advisor.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from catalog import Paint, chromatic_black_kind
from colorspace import (
    delta_e_2000, lab_to_hex, compute_chroma, compute_hue, circular_hue_distance,
)
from config import MixingConfig, resolve_config
from scoring import (
    distance_to_match_percent, mix_lab, normalize_proportions, tinting_strength_value,
    opacity_score,
)


logger = logging.getLogger(__name__)


TECHNIQUE_DESCRIPTIONS = {
    'direct': 'Direct match with a single paint',
    'tint': 'Tint mixture (adding white to adjust value)',
    'shade': 'Shade mixture (adding black to lower value)',
    'chromatic_black': 'Chromatic black mixture (richer, more natural darks)',
    'chromatic_black_tint': 'Chromatic black mixture with value adjustment',
    'complement': 'Chroma reduction using complementary colors',
    'binary': 'Traditional binary mixture for hue adjustment',
    'complex': 'Complex mixture for precise color matching',
}
CHROMATIC_BLACK_TECHNIQUES = frozenset({'chromatic_black', 'chromatic_black_tint'})

COMPLEMENT_HUE_GAP = 150.0  # Degrees apart before two paints count as complements
HUED_CHROMA = 10.0  # Below this a paint's hue angle is not meaningful


@dataclass(frozen=True)
class MixtureComponent:
    paint: Paint
    proportion: float


@dataclass(frozen=True, eq=False)
class Recipe:
    """A ranked suggestion. Proportions are physical amounts and sum to 1."""
    components: tuple
    match_percentage: float
    estimated_lab: np.ndarray
    technique: str = ''

    @property
    def paints(self) -> list[Paint]:
        return [c.paint for c in self.components]

    @property
    def paint_ids(self) -> frozenset:
        return frozenset(c.paint.id for c in self.components)

    @property
    def estimated_hex(self) -> str:
        return lab_to_hex(self.estimated_lab)

    @property
    def description(self) -> str:
        return TECHNIQUE_DESCRIPTIONS.get(self.technique, '')

    def proportion_of(self, paint_id: str) -> float:
        return sum(c.proportion for c in self.components if c.paint.id == paint_id)

    def to_dict(self) -> dict:
        L, a, b = (float(v) for v in self.estimated_lab)
        return {
            'components': [
                {'paintId': c.paint.id, 'proportion': round(float(c.proportion), 4)}
                for c in self.components
            ],
            'matchPercentage': round(float(self.match_percentage), 2),
            'estimatedLab': {'L': round(L, 2), 'a': round(a, 2), 'b': round(b, 2)},
            'estimatedHex': self.estimated_hex,
            'technique': self.technique,
            'description': self.description,
        }


# =============================================================================
# Tinting strength
# =============================================================================

def adjust_ratio_for_tinting_strength(ratio, strength1: float, strength2: float):
    """
    Visual weight of a paint added at physical share `ratio` to a second paint.

    adjusted = clamp(ratio * strength1 / (strength1 + strength2) * 2, 0, 1).
    A deliberately simple rescaling: a strong pigment added at 10% reads as
    more than 10% of the blend. Ratio and strengths may be arrays; a
    non-positive strength total gives 0.
    """
    strength1 = np.asarray(strength1, dtype=np.float64)
    total = strength1 + np.asarray(strength2, dtype=np.float64)
    relative = np.divide(strength1, total, out=np.zeros(total.shape), where=total > 0)
    adjusted = np.clip(np.asarray(ratio, dtype=np.float64) * relative * 2, 0.0, 1.0)
    return float(adjusted) if adjusted.ndim == 0 else adjusted


def pair_visual_weights(share, strength1: float, strength2: float):
    """
    Visual weight of the first paint for physical share(s) of the first paint.

    The rescaling is applied to whichever paint is the minority, so the
    result does not depend on the order the pair is listed in.
    """
    share = np.asarray(share, dtype=np.float64)
    as_first = adjust_ratio_for_tinting_strength(share, strength1, strength2)
    as_second = 1.0 - np.asarray(adjust_ratio_for_tinting_strength(1.0 - share, strength2, strength1))
    weights = np.where(share <= 0.5, as_first, as_second)
    return float(weights) if weights.ndim == 0 else weights


def physical_share_for_visual(visual: float, strength1: float, strength2: float) -> float:
    """Inverse of pair_visual_weights: the physical share that reads as `visual`."""
    if strength1 <= 0 or strength2 <= 0:
        return 0.0
    total = strength1 + strength2
    share = visual * total / (2 * strength1)
    if share <= 0.5:
        return float(np.clip(share, 0.0, 1.0))
    other_share = (1.0 - visual) * total / (2 * strength2)
    return float(np.clip(1.0 - other_share, 0.0, 1.0))


def visual_weights(paints: Sequence[Paint], proportions, config: MixingConfig = None) -> np.ndarray:
    """Physical proportions -> visual weights used to estimate the mixed color."""
    config = resolve_config(config)
    shares = normalize_proportions(proportions)
    strengths = np.array([tinting_strength_value(p.tinting_strength, config.tinting_strengths)
                          for p in paints])
    if len(paints) == 1:
        return np.ones(1)
    if len(paints) == 2:
        first = pair_visual_weights(shares[0], strengths[0], strengths[1])
        return np.array([first, 1.0 - first])
    return normalize_proportions(shares * strengths)


def estimate_mixture(paints: Sequence[Paint], proportions, config: MixingConfig = None) -> np.ndarray:
    """Estimated LAB of mixing `paints` at physical `proportions`."""
    config = resolve_config(config)
    labs = np.array([p.lab for p in paints], dtype=np.float64)
    if len(paints) == 1:
        return labs[0].copy()
    weights = visual_weights(paints, proportions, config)
    opacities = [opacity_score(p.opacity, config.opacity_scores) for p in paints]
    return mix_lab(labs, weights, opacities, config)


# =============================================================================
# Recipe construction
# =============================================================================

def classify_technique(paints: Sequence[Paint]) -> str:
    """Name the painting technique a set of paints represents."""
    count = len(paints)
    if count == 1:
        return 'direct'

    whites = [p for p in paints if p.is_white]
    blacks = [p for p in paints if p.is_black]
    hued = [p for p in paints if not p.is_white and not p.is_black]

    if len(hued) == 2 and not blacks and chromatic_black_kind(*hued):
        return 'chromatic_black_tint' if whites else 'chromatic_black'
    if count == 2:
        if whites:
            return 'tint'
        if blacks:
            return 'shade'
        first, second = (p.lab for p in paints)
        if compute_chroma(first) > HUED_CHROMA and compute_chroma(second) > HUED_CHROMA and \
                circular_hue_distance(compute_hue(first), compute_hue(second)) >= COMPLEMENT_HUE_GAP:
            return 'complement'
        return 'binary'
    return 'complex'


def make_recipe(target, paints: Sequence[Paint], proportions,
                config: MixingConfig = None, lab: Optional[np.ndarray] = None) -> Recipe:
    """
    Build a scored Recipe.

    The score always comes from CIEDE2000 so single, binary and ternary
    recipes are comparable. `lab` may be passed when the caller already
    estimated the mix.
    """
    config = resolve_config(config)
    shares = normalize_proportions(proportions)
    if lab is None:
        lab = estimate_mixture(paints, shares, config)
    score = distance_to_match_percent(delta_e_2000(target, lab), config.match_slope)
    components = tuple(MixtureComponent(p, float(s)) for p, s in zip(paints, shares))
    return Recipe(
        components=components,
        match_percentage=score,
        estimated_lab=np.asarray(lab, dtype=np.float64),
        technique=classify_technique(paints),
    )


class SearchBudget:
    """Counts candidate evaluations so a search always stops."""

    def __init__(self, limit: int):
        self.limit = max(0, int(limit))
        self.used = 0
        self._warned = False

    @property
    def remaining(self) -> int:
        return self.limit - self.used

    @property
    def exhausted(self) -> bool:
        return self.used >= self.limit

    def take(self, count: int) -> int:
        """Reserve up to `count` evaluations. Returns how many were granted."""
        granted = max(0, min(int(count), self.remaining))
        self.used += granted
        if granted < count and not self._warned:
            logger.debug("Search budget of %d evaluations exhausted", self.limit)
            self._warned = True
        return granted
