#!/usr/bin/env python3
"""
Tuning constants for the paint-mixture matcher.

The numbers here were picked by eye against real paint-outs, not derived from
a physical model. They are kept as named constants so they can be overridden
per call through MixingConfig rather than edited in place.
"""

from dataclasses import dataclass, field, replace as _replace
from typing import Optional


# =============================================================================
# Match scoring
# =============================================================================

MATCH_SLOPE = 5.0  # Percent lost per ΔE unit (ΔE >= 20 scores 0%)
NEAR_PERFECT_MATCH = 98.0  # Single-paint score that skips mixing entirely
GOOD_ENOUGH_MATCH = 90.0  # Binary score that skips the ternary pass

# =============================================================================
# Paint properties
# =============================================================================

OPACITY_SCORES = {'O': 1.0, 'SO': 0.75, 'ST': 0.5, 'T': 0.25}
DEFAULT_OPACITY_SCORE = 0.5
TINTING_STRENGTHS = {'High': 2.0, 'Medium': 1.0, 'Low': 0.5}
DEFAULT_TINTING_STRENGTH = 1.0

# =============================================================================
# Dulling model
# =============================================================================

BINARY_DULLING_RATE = 0.3  # Chroma loss per 100 ΔE for two-paint mixes
TERNARY_DULLING_RATE = 0.4  # Chroma loss per 100 ΔE for three-paint mixes
MIN_DULLING_FACTOR = 0.05  # Floor so chroma never collapses to exactly zero

# =============================================================================
# Search space
# =============================================================================

MAX_EVALUATIONS = 100_000  # Candidate evaluations across all passes
BINARY_RATIOS = (0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9)
WHITE_RATIOS = (0.01, 0.02, 0.03, 0.05, 0.075, 0.1, 0.15, 0.2, 0.25, 0.3, 0.35, 0.4)
BLACK_RATIOS = (0.02, 0.04, 0.06, 0.08, 0.1, 0.12, 0.14, 0.16, 0.18,
                0.2, 0.22, 0.24, 0.26, 0.28, 0.3)
TERNARY_SHORTLIST = 10  # Closest paints considered for three-paint mixes
TERNARY_SPLITS = (
    (0.7, 0.2, 0.1),
    (0.6, 0.3, 0.1),
    (0.5, 0.3, 0.2),
    (0.4, 0.4, 0.2),
    (1 / 3, 1 / 3, 1 / 3),
)
TERNARY_WHITE_SPLITS = (
    (0.7, 0.2, 0.1),  # Main color dominant
    (0.5, 0.4, 0.1),
    (0.4, 0.3, 0.3),
)
SINGLE_KEEP = 10  # Candidates per pass kept for perceptual rescoring
BINARY_KEEP = 20
TERNARY_KEEP = 15

# =============================================================================
# Painting heuristics
# =============================================================================

VALUE_BALANCE_THRESHOLD = 20.0  # L units between two paints before balancing
VALUE_BALANCE_RANGE = (0.1, 0.9)  # Never suggest 0% or 100% of either paint
DARK_TARGET_LIGHTNESS = 40.0  # Targets below this get chromatic blacks
TEMPERATURE_MARGIN = 15.0  # a+b warmth band treated as neutral
CHROMATIC_BLACK_SPLITS = (0.5, 0.4, 0.6)  # Share of the first pair paint
CHROMATIC_BLACK_WHITE_STEPS = (0.0, 0.05, 0.1, 0.15, 0.2, 0.25, 0.3)
COMPLEMENT_FRACTIONS = (0.05, 0.10, 0.15)
COMPLEMENT_HUE_TOLERANCE = 60.0  # Degrees off the exact complement
COMPLEMENT_MIN_MATCH = 60.0  # Single match needed before desaturating it
COMPLEMENT_CANDIDATES = 3  # Top single matches tried for desaturation

# =============================================================================
# Ranking
# =============================================================================

TOP_K = 5
MIN_MATCH = 0.0

# =============================================================================
# Palette extraction
# =============================================================================

PALETTE_SIZE = 8
MAX_CLUSTER_ITERATIONS = 10
DEFAULT_SAMPLE_COUNT = 5000

# Image size limits (security: prevent decompression bombs)
MAX_IMAGE_PIXELS = 50_000_000  # 50 megapixels
MAX_IMAGE_DIMENSION = 10_000  # 10k pixels per side


@dataclass(frozen=True)
class MixingConfig:
    """Per-call overrides for the mixture search, advisor and ranker."""
    near_perfect_match: float = NEAR_PERFECT_MATCH
    good_enough_match: float = GOOD_ENOUGH_MATCH
    match_slope: float = MATCH_SLOPE
    max_evaluations: int = MAX_EVALUATIONS
    max_components: int = 3

    binary_dulling_rate: float = BINARY_DULLING_RATE
    ternary_dulling_rate: float = TERNARY_DULLING_RATE
    min_dulling_factor: float = MIN_DULLING_FACTOR

    binary_ratios: tuple = BINARY_RATIOS
    white_ratios: tuple = WHITE_RATIOS
    black_ratios: tuple = BLACK_RATIOS
    ternary_shortlist: int = TERNARY_SHORTLIST
    ternary_splits: tuple = TERNARY_SPLITS
    ternary_white_splits: tuple = TERNARY_WHITE_SPLITS
    single_keep: int = SINGLE_KEEP
    binary_keep: int = BINARY_KEEP
    ternary_keep: int = TERNARY_KEEP

    value_balance_threshold: float = VALUE_BALANCE_THRESHOLD
    value_balance_range: tuple = VALUE_BALANCE_RANGE
    dark_target_lightness: float = DARK_TARGET_LIGHTNESS
    temperature_margin: float = TEMPERATURE_MARGIN
    chromatic_black_splits: tuple = CHROMATIC_BLACK_SPLITS
    chromatic_black_white_steps: tuple = CHROMATIC_BLACK_WHITE_STEPS
    complement_fractions: tuple = COMPLEMENT_FRACTIONS
    complement_hue_tolerance: float = COMPLEMENT_HUE_TOLERANCE
    complement_min_match: float = COMPLEMENT_MIN_MATCH
    complement_candidates: int = COMPLEMENT_CANDIDATES

    top_k: int = TOP_K
    min_match: float = MIN_MATCH
    use_heuristics: bool = True
    opacity_scores: dict = field(default_factory=lambda: dict(OPACITY_SCORES))
    tinting_strengths: dict = field(default_factory=lambda: dict(TINTING_STRENGTHS))

    def replace(self, **overrides) -> 'MixingConfig':
        """Return a copy with the given fields changed."""
        return _replace(self, **overrides)


def resolve_config(config: Optional[MixingConfig]) -> MixingConfig:
    """Default to MixingConfig() when no config is passed."""
    return config if config is not None else MixingConfig()
