#!/usr/bin/env python3
"""
Match quality and the chroma-loss ("dulling") model for mixed paints.
"""

import numpy as np
from scipy.spatial.distance import pdist

from config import (
    MATCH_SLOPE, BINARY_DULLING_RATE, TERNARY_DULLING_RATE, MIN_DULLING_FACTOR,
    OPACITY_SCORES, DEFAULT_OPACITY_SCORE, TINTING_STRENGTHS, DEFAULT_TINTING_STRENGTH,
    MixingConfig, resolve_config,
)


def distance_to_match_percent(delta_e, slope: float = MATCH_SLOPE):
    """
    Map ΔE to a 0-100 match score.

    Linear: ΔE 0 is 100%, each ΔE unit costs `slope` percent, so ΔE 2 still
    reads 90% and anything from ΔE 20 up is 0%. Works on scalars and arrays.
    """
    percent = np.clip(100.0 - np.asarray(delta_e, dtype=np.float64) * slope, 0.0, 100.0)
    percent = np.nan_to_num(percent, nan=0.0)
    return float(percent) if percent.ndim == 0 else percent


def opacity_score(opacity, scores: dict = None) -> float:
    """O=1.0, SO=0.75, ST=0.5, T=0.25; unknown classes sit in the middle."""
    scores = OPACITY_SCORES if scores is None else scores
    key = getattr(opacity, 'value', opacity)
    return scores.get(key, DEFAULT_OPACITY_SCORE)


def tinting_strength_value(strength, strengths: dict = None) -> float:
    """High=2.0, Medium=1.0, Low=0.5; missing strength counts as Medium."""
    strengths = TINTING_STRENGTHS if strengths is None else strengths
    key = getattr(strength, 'value', strength)
    return strengths.get(key, DEFAULT_TINTING_STRENGTH)


def dulling_rate(paint_count: int, config: MixingConfig = None) -> float:
    """Base chroma-loss rate. More paints in the mix means a larger rate."""
    config = resolve_config(config)
    if paint_count <= 1:
        return 0.0
    if paint_count == 2:
        return config.binary_dulling_rate
    return config.ternary_dulling_rate


def dulling_factor(labs, opacities, config: MixingConfig = None) -> float:
    """
    Chroma multiplier in (0, 1] for a mix of the given paints.

    The loss grows with the widest pairwise ΔE in the mix and with
    transparency: 1 - (maxΔE/100) * rate * (1 - meanOpacity * 0.5).

    Args:
        labs: (n, 3) LAB colors of the paints in the mix
        opacities: opacity classes (or numeric scores) for the same paints
    """
    config = resolve_config(config)
    labs = np.asarray(labs, dtype=np.float64).reshape(-1, 3)
    if len(labs) < 2:
        return 1.0

    max_delta = float(pdist(labs).max())
    scores = [o if isinstance(o, (int, float)) else opacity_score(o, config.opacity_scores)
              for o in opacities]
    mean_opacity = float(np.mean(scores)) if scores else DEFAULT_OPACITY_SCORE

    reduction = (max_delta / 100.0) * dulling_rate(len(labs), config) * (1 - mean_opacity * 0.5)
    return float(np.clip(1.0 - reduction, config.min_dulling_factor, 1.0))


def apply_dulling(lab, factor):
    """Scale chroma by `factor` keeping hue: a and b move together."""
    lab = np.array(lab, dtype=np.float64)
    factor = np.asarray(factor, dtype=np.float64)
    if lab.ndim == 1:
        lab[1:] *= factor
    else:
        lab[:, 1:] *= factor.reshape(-1, 1) if factor.ndim else factor
    return lab


def normalize_proportions(proportions) -> np.ndarray:
    """Scale to sum 1. All-zero or negative input falls back to equal parts."""
    weights = np.clip(np.asarray(proportions, dtype=np.float64), 0.0, None)
    total = weights.sum()
    if not np.isfinite(total) or total <= 0:
        return np.full(len(weights), 1.0 / max(len(weights), 1))
    return weights / total


def mix_lab(labs, weights, opacities, config: MixingConfig = None) -> np.ndarray:
    """
    Estimate the LAB color of a mix from visual weights.

    Weighted average in LAB, then the dulling factor applied to chroma.
    """
    labs = np.asarray(labs, dtype=np.float64).reshape(-1, 3)
    weights = normalize_proportions(weights)
    mixed = weights @ labs
    return apply_dulling(mixed, dulling_factor(labs, opacities, config))
