#!/usr/bin/env python3
"""
Reduce sampled image pixels to a small palette of dominant colors.

Each palette color becomes a target for the mixture search. The palette as
a whole is summarized into temperature/chroma/value splits, painting advice
and a per-brand shopping list of paints.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np
from PIL import Image
from scipy.spatial.distance import cdist

from catalog import (
    Paint, NEUTRAL_CHROMA, usable_paints, closest_paint, closest_white, closest_black,
)
from colorspace import (
    rgb_to_lab, rgb_to_hex, compute_chroma, color_temperature, chroma_level, value_level,
)
from config import (
    PALETTE_SIZE, MAX_CLUSTER_ITERATIONS, DEFAULT_SAMPLE_COUNT,
    MAX_IMAGE_PIXELS, MAX_IMAGE_DIMENSION,
)


logger = logging.getLogger(__name__)

PURE_WHITE_LAB = (100.0, 0.0, 0.0)
PURE_BLACK_LAB = (0.0, 0.0, 0.0)


@dataclass
class Cluster:
    """A centroid in RGB and how many samples it holds."""
    centroid: np.ndarray
    count: int


@dataclass
class PaletteColor:
    """One dominant image color."""
    rgb: tuple
    lab: np.ndarray
    hex: str
    percentage: float  # Share of sampled pixels, 0-100

    def to_dict(self) -> dict:
        return {
            'centroidRgb': list(self.rgb),
            'percentageOfImage': round(self.percentage, 2),
        }


@dataclass
class PaintSuggestion:
    """A paint to set out on the palette and what it is for."""
    paint: Paint
    purpose: str

    def to_dict(self) -> dict:
        return {
            'paintId': self.paint.id,
            'name': self.paint.name,
            'brand': self.paint.brand,
            'purpose': self.purpose,
        }


@dataclass
class PaletteSummary:
    """Percentage-weighted breakdown of a palette, with painting advice."""
    temperature: dict = field(default_factory=dict)  # warm/cool/neutral -> %
    chroma: dict = field(default_factory=dict)  # high/medium/low -> %
    value: dict = field(default_factory=dict)  # dark/midtone/light -> %
    lightness_range: tuple = (0.0, 0.0)
    contrast: str = 'low'
    approach: str = ''
    mixing_strategy: str = ''
    primary_brand: Optional[str] = None
    paints: list = field(default_factory=list)  # PaintSuggestion

    @property
    def overall_temperature(self) -> str:
        warm = self.temperature.get('warm', 0.0)
        cool = self.temperature.get('cool', 0.0)
        if warm > cool:
            return 'warm'
        if cool > warm:
            return 'cool'
        return 'neutral'

    @property
    def overall_chroma(self) -> str:
        """'high' or 'medium' only when that level outweighs both others."""
        high = self.chroma.get('high', 0.0)
        medium = self.chroma.get('medium', 0.0)
        low = self.chroma.get('low', 0.0)
        if high > medium and high > low:
            return 'high'
        if medium > high and medium > low:
            return 'medium'
        return 'low'


# =============================================================================
# Clustering
# =============================================================================

def _clean_samples(samples) -> np.ndarray:
    samples = np.asarray(samples, dtype=np.float64)
    if samples.size == 0 or samples.shape[-1] != 3:
        return np.zeros((0, 3))
    samples = samples.reshape(-1, 3)
    return samples[np.all(np.isfinite(samples), axis=1)]


def cluster_colors(samples, k: int = PALETTE_SIZE, max_iterations: int = MAX_CLUSTER_ITERATIONS,
                   rng: Optional[np.random.Generator] = None) -> list[Cluster]:
    """
    Lloyd's algorithm over RGB samples.

    Centroids start at k distinct random samples. A centroid that ends an
    iteration with no members is reseeded from a random sample. Stops when
    an assignment pass changes nothing, or after max_iterations.

    Args:
        samples: (n, 3) RGB values
        rng: numpy Generator; pass a seeded one for repeatable output

    Returns:
        Non-empty clusters, largest first
    """
    samples = _clean_samples(samples)
    if len(samples) == 0 or k <= 0:
        return []
    rng = rng if rng is not None else np.random.default_rng()
    k = min(k, len(samples))

    centroids = samples[rng.choice(len(samples), size=k, replace=False)].copy()
    labels = np.full(len(samples), -1)

    for iteration in range(max_iterations):
        assignment = np.argmin(cdist(samples, centroids), axis=1)
        if np.array_equal(assignment, labels):
            logger.debug("Clustering converged after %d iterations", iteration)
            break
        labels = assignment

        for c in range(k):
            members = samples[labels == c]
            if len(members):
                centroids[c] = members.mean(axis=0)
            else:
                centroids[c] = samples[rng.integers(len(samples))]

    counts = np.bincount(labels[labels >= 0], minlength=k)
    clusters = [Cluster(centroid=centroids[c], count=int(counts[c]))
                for c in range(k) if counts[c] > 0]
    return sorted(clusters, key=lambda c: -c.count)


def extract_palette(samples, k: int = PALETTE_SIZE, max_iterations: int = MAX_CLUSTER_ITERATIONS,
                    rng: Optional[np.random.Generator] = None) -> list[PaletteColor]:
    """Dominant colors of the samples with their share of the total, largest first."""
    clusters = cluster_colors(samples, k, max_iterations, rng)
    total = sum(c.count for c in clusters)
    palette = []
    for cluster in clusters:
        rgb = tuple(int(v) for v in np.clip(np.rint(cluster.centroid), 0, 255))
        palette.append(PaletteColor(
            rgb=rgb,
            lab=rgb_to_lab(np.array(rgb)),
            hex=rgb_to_hex(rgb),
            percentage=cluster.count / total * 100,
        ))
    return palette


# =============================================================================
# Image sampling
# =============================================================================

def load_image_samples(image_path, sample_count: int = DEFAULT_SAMPLE_COUNT,
                       rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """
    Load an image and sample about `sample_count` RGB pixels from it.

    Without an rng the samples are a uniform stride over the pixels, so the
    same image always gives the same samples.

    Raises:
        FileNotFoundError: If image file doesn't exist
        ValueError: If file is not a valid image or exceeds size limits
    """
    try:
        img = Image.open(image_path)
    except FileNotFoundError:
        raise FileNotFoundError(f"Image not found: {image_path}")
    except Exception as e:
        raise ValueError(f"Could not open image: {e}")

    # Validate image dimensions (security: prevent decompression bombs)
    width, height = img.size
    if width > MAX_IMAGE_DIMENSION or height > MAX_IMAGE_DIMENSION:
        raise ValueError(
            f"Image dimensions {width}x{height} exceed maximum "
            f"{MAX_IMAGE_DIMENSION}x{MAX_IMAGE_DIMENSION}"
        )
    if width * height > MAX_IMAGE_PIXELS:
        raise ValueError(
            f"Image has {width * height:,} pixels, exceeding maximum {MAX_IMAGE_PIXELS:,}"
        )

    pixels = np.array(img.convert('RGB')).reshape(-1, 3)
    if sample_count <= 0 or len(pixels) <= sample_count:
        return pixels
    if rng is not None:
        return pixels[rng.choice(len(pixels), size=sample_count, replace=False)]
    step = len(pixels) // sample_count
    return pixels[::step][:sample_count]


# =============================================================================
# Summary
# =============================================================================

BASE_COLOR_SHARE = 20.0  # % of the image above which a paint is a base color

# Advice keyed by the palette's overall temperature, contrast and chroma
UNDERPAINTING = {
    'warm': "Start over a warm underpainting to build on the image's warmth.",
    'cool': "Start over a cool-toned underpainting to carry its cool atmosphere.",
    'neutral': "Start over a neutral gray underpainting for a balanced base.",
}
HANDLING = {
    'high': "Strong contrast suits alla prima: bold, direct strokes.",
    'medium': "Moderate contrast suits direct painting with glazes for depth.",
    'low': "Subtle contrast suits a layered approach built up with glazes.",
}
CHROMA_APPROACH = {
    'high': "Use high-chroma tube colors for the most saturated areas and mix neutrals for the rest.",
    'medium': "Desaturate the palette slightly and keep the focal accents vivid.",
    'low': "Work from a muted palette of neutral mixtures and grays with occasional accents.",
}
SHADOW_STRATEGY = {
    'high': "Shadows: mix deep darks from complementary pairs rather than tube black.",
    'medium': "Shadows: darken gently with low-chroma blues or browns rather than black.",
    'low': "Shadows: darken gently with low-chroma blues or browns rather than black.",
}
HIGHLIGHT_STRATEGY = {
    'high': "Highlights: keep the brightest whites clean, adding a touch of the key color to hold chroma.",
    'medium': "Highlights: tint the whites slightly warm or cool to follow the overall temperature.",
    'low': "Highlights: tint the whites slightly warm or cool to follow the overall temperature.",
}
GENERAL_STRATEGY = {
    'high': "Mix no more than two or three paints at once to keep colors clean.",
    'medium': "Build harmonious midtones from split-complementary pairs.",
    'low': "Shift colors subtly with related hues, neutralizing with small amounts of complements.",
}


def summarize_palette(colors: Sequence[PaletteColor],
                      paints: Optional[Sequence[Paint]] = None) -> PaletteSummary:
    """
    Temperature, chroma and value splits weighted by coverage, plus contrast
    and painting advice. With a catalog, also the primary brand and a
    shopping list of paints.
    """
    summary = PaletteSummary(
        temperature={'warm': 0.0, 'cool': 0.0, 'neutral': 0.0},
        chroma={'high': 0.0, 'medium': 0.0, 'low': 0.0},
        value={'dark': 0.0, 'midtone': 0.0, 'light': 0.0},
    )
    if not colors:
        return summary

    total = sum(c.percentage for c in colors) or 1.0
    for color in colors:
        share = color.percentage / total * 100
        summary.temperature[color_temperature(color.lab)] += share
        summary.chroma[chroma_level(color.lab)] += share
        summary.value[value_level(color.lab[0])] += share

    lightness = [float(c.lab[0]) for c in colors]
    summary.lightness_range = (min(lightness), max(lightness))
    spread = summary.lightness_range[1] - summary.lightness_range[0]
    if spread > 60:
        summary.contrast = 'high'
    elif spread > 30:
        summary.contrast = 'medium'

    summary.approach = recommended_approach(summary)
    summary.mixing_strategy = mixing_strategy(summary)
    if paints:
        summary.primary_brand = primary_brand(colors, paints)
        summary.paints = recommend_paints(colors, paints, summary.primary_brand)
    return summary


def recommended_approach(summary: PaletteSummary) -> str:
    """Underpainting, handling and chroma advice for the palette as a whole."""
    return ' '.join([
        UNDERPAINTING[summary.overall_temperature],
        HANDLING[summary.contrast],
        CHROMA_APPROACH[summary.overall_chroma],
    ])


def mixing_strategy(summary: PaletteSummary) -> str:
    """How to mix shadows and highlights, and how many paints to mix at once."""
    chroma = summary.overall_chroma
    return ' '.join([
        SHADOW_STRATEGY[summary.contrast],
        HIGHLIGHT_STRATEGY[chroma],
        GENERAL_STRATEGY[chroma],
    ])


# =============================================================================
# Paint recommendations
# =============================================================================

def primary_brand(colors: Sequence[PaletteColor], paints: Sequence[Paint]) -> Optional[str]:
    """
    Brand that supplies the closest paint for the most palette colors.

    Ties go to the brand matched first, i.e. for the larger color.
    """
    counts = Counter()
    for color in colors:
        paint = closest_paint(paints, color.lab)
        if paint is not None:
            counts[paint.brand] += 1
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def paint_purpose(paint: Paint, percentage: float = 0.0) -> str:
    """What a recommended paint is for, from its coverage, role and color."""
    if percentage > BASE_COLOR_SHARE:
        return "Base color"
    if paint.is_white:
        return "For highlights and lightening"
    if paint.is_black:
        return "For shadows and darkening"
    if compute_chroma(paint.lab) < NEUTRAL_CHROMA:
        return "For neutral tones"
    if chroma_level(paint.lab) == 'high':
        return "For vibrant accents"
    temperature = color_temperature(paint.lab)
    if temperature == 'warm':
        return "For warm accents"
    if temperature == 'cool':
        return "For cool accents"
    return "For mid-tone areas"


def recommend_paints(colors: Sequence[PaletteColor], paints: Sequence[Paint],
                     brand: Optional[str] = None) -> list[PaintSuggestion]:
    """
    One brand's paints to set out for this palette.

    The closest paint of the brand for each palette color, largest color
    first and without repeats, then a white and a black of the same brand
    if the list has none.
    """
    brand = brand or primary_brand(colors, paints)
    brand_paints = [p for p in usable_paints(paints) if p.brand == brand]
    if not brand_paints:
        return []

    suggestions = []
    seen = set()
    for color in colors:
        paint = closest_paint(brand_paints, color.lab)
        if paint is None or paint.id in seen:
            continue
        seen.add(paint.id)
        suggestions.append(PaintSuggestion(paint, paint_purpose(paint, color.percentage)))

    if not any(s.paint.is_white for s in suggestions):
        white = closest_white(brand_paints, PURE_WHITE_LAB)
        if white is not None and white.id not in seen:
            suggestions.append(PaintSuggestion(white, "For lightening and highlights"))
    if not any(s.paint.is_black for s in suggestions):
        black = closest_black(brand_paints, PURE_BLACK_LAB)
        if black is not None and black.id not in seen:
            suggestions.append(PaintSuggestion(black, "For darkening and shadows"))

    logger.debug("Recommended %d %s paints", len(suggestions), brand)
    return suggestions
