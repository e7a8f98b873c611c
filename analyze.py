#!/usr/bin/env python3
"""
Paint mixing pipeline.

Extracts the dominant colors of an image and suggests oil-paint recipes for
each one. Three stages: Palette Extraction → Mixture Search → Render
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

import numpy as np
from PIL import Image, ImageDraw

from catalog import Paint, load_catalog, filter_by_brand, usable_paints
from colorspace import (
    coerce_lab, hex_to_rgb, rgb_to_lab, lab_to_hex, lab_to_rgb_tuple, generate_color_name,
)
from config import MixingConfig, PALETTE_SIZE, DEFAULT_SAMPLE_COUNT, resolve_config
from mixing import find_mixtures
from palette import (
    PaletteColor, PaletteSummary, extract_palette, load_image_samples, summarize_palette,
)
from recipes import Recipe


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DEFAULT_CATALOG = Path(__file__).resolve().parent / 'data' / 'paint_catalog.json'

# Swatch sheet layout
SWATCH_SIZE = 80
SWATCH_PADDING = 10
SWATCH_TEXT_HEIGHT = 25
SWATCH_BACKGROUND = (240, 240, 240)


# =============================================================================
# Pipeline
# =============================================================================

@dataclass
class PaletteMatch:
    """A palette color and the recipes suggested for it."""
    color: PaletteColor
    recipes: list = field(default_factory=list)

    @property
    def name(self) -> str:
        return generate_color_name(self.color.lab)

    def to_dict(self) -> dict:
        return {
            **self.color.to_dict(),
            'hex': self.color.hex,
            'name': self.name,
            'recipes': [r.to_dict() for r in self.recipes],
        }


def match_color(target, paints: Sequence[Paint], config: MixingConfig = None) -> list[Recipe]:
    """Ranked recipes for one LAB target."""
    return find_mixtures(target, paints, config)


def color_from_lab(lab, percentage: float = 100.0) -> PaletteColor:
    """Wrap a single target color so it renders like a palette entry."""
    lab = np.asarray(lab, dtype=np.float64)
    return PaletteColor(
        rgb=lab_to_rgb_tuple(lab),
        lab=lab,
        hex=lab_to_hex(lab),
        percentage=percentage,
    )


def run_pipeline(samples, paints: Sequence[Paint], k: int = PALETTE_SIZE,
                 config: MixingConfig = None,
                 rng: Optional[np.random.Generator] = None) -> list[PaletteMatch]:
    """Run palette extraction and the mixture search on sampled RGB pixels.

    Returns:
        One PaletteMatch per dominant color, largest first.
    """
    config = resolve_config(config)
    paints = usable_paints(paints)

    # Stage 1: Palette Extraction
    palette = extract_palette(samples, k, rng=rng)
    logger.debug("Extracted %d palette colors from %d samples", len(palette), len(samples))

    # Stage 2: Mixture Search
    return [PaletteMatch(color=color, recipes=match_color(color.lab, paints, config))
            for color in palette]


def run_image_pipeline(image_path, catalog_path=DEFAULT_CATALOG,
                       brands: Optional[Sequence[str]] = None, k: int = PALETTE_SIZE,
                       config: MixingConfig = None, rng: Optional[np.random.Generator] = None,
                       sample_count: int = DEFAULT_SAMPLE_COUNT,
                       sample_rng: Optional[np.random.Generator] = None,
                       ) -> tuple[list[PaletteMatch], PaletteSummary]:
    """Load an image and a catalog, then run the full pipeline.

    `rng` drives palette clustering only. Pixels are sampled on a fixed
    stride unless `sample_rng` is given.

    Raises:
        FileNotFoundError: If the image or catalog doesn't exist
        ValueError: If the image is unreadable or too large, or the catalog is malformed
    """
    paints = filter_by_brand(load_catalog(catalog_path), brands)
    if not paints:
        logger.warning("No paints left after brand filter %s", brands)
    samples = load_image_samples(image_path, sample_count, sample_rng)
    matches = run_pipeline(samples, paints, k, config, rng)
    return matches, summarize_palette([m.color for m in matches], paints)


# =============================================================================
# Render
# =============================================================================

def format_recipe(recipe: Recipe) -> str:
    """One line: match, then each paint with its share."""
    parts = [f"{c.proportion * 100:.0f}% {c.paint.name}" for c in recipe.components]
    return f"{recipe.match_percentage:.1f}% match: {' + '.join(parts)}"


def _format_split(split: dict) -> str:
    return " / ".join(f"{name} {share:.0f}%" for name, share in split.items())


def render(matches: Sequence[PaletteMatch], summary: Optional[PaletteSummary] = None) -> str:
    """Render matches as a plain-text report."""
    lines = []

    # Header
    if summary is not None:
        low, high = summary.lightness_range
        lines.append(f"PALETTE: {len(matches)} colors | Contrast: {summary.contrast} "
                     f"(L {low:.0f}-{high:.0f})")
        lines.append(f"Temperature: {_format_split(summary.temperature)}")
        lines.append(f"Chroma: {_format_split(summary.chroma)}")
        lines.append(f"Value: {_format_split(summary.value)}")
        lines.append("")
        if summary.approach:
            lines.append(f"APPROACH: {summary.approach}")
            lines.append(f"MIXING: {summary.mixing_strategy}")
            lines.append("")
        if summary.paints:
            lines.append(f"PAINTS ({summary.primary_brand}):")
            for suggestion in summary.paints:
                lines.append(f"  - {suggestion.paint.name}: {suggestion.purpose}")
            lines.append("")

    lines.append("COLORS:")
    lines.append("")

    for i, match in enumerate(matches, 1):
        color = match.color
        lines.append(f"[{i}] {match.name}")
        lines.append(f"  Hex: {color.hex} | RGB: {color.rgb} | "
                     f"LAB: ({color.lab[0]:.0f}, {color.lab[1]:.0f}, {color.lab[2]:.0f})")
        if summary is not None:
            lines.append(f"  Coverage: {color.percentage:.1f}%")

        if not match.recipes:
            lines.append("  No recipe: the catalog has no paints with LAB data")
            lines.append("")
            continue

        lines.append("  Recipes:")
        for j, recipe in enumerate(match.recipes, 1):
            lab = recipe.estimated_lab
            lines.append(f"    {j}. {format_recipe(recipe)}")
            lines.append(f"       {recipe.description} | Estimated: {recipe.estimated_hex} "
                         f"LAB({lab[0]:.0f}, {lab[1]:.0f}, {lab[2]:.0f})")
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"


def render_swatches(matches: Sequence[PaletteMatch], output_path) -> Path:
    """
    Save a swatch sheet: one row per palette color, the target first and its
    recipes' estimated colors after it, each labelled with a percentage.
    """
    output_path = Path(output_path)
    cols = 1 + max((len(m.recipes) for m in matches), default=0)
    rows = max(len(matches), 1)

    img_width = cols * (SWATCH_SIZE + SWATCH_PADDING) + SWATCH_PADDING
    img_height = rows * (SWATCH_SIZE + SWATCH_TEXT_HEIGHT + SWATCH_PADDING) + SWATCH_PADDING

    img = Image.new('RGB', (img_width, img_height), SWATCH_BACKGROUND)
    draw = ImageDraw.Draw(img)

    for row, match in enumerate(matches):
        y = SWATCH_PADDING + row * (SWATCH_SIZE + SWATCH_TEXT_HEIGHT + SWATCH_PADDING)
        cells = [(match.color.rgb, f"{match.color.percentage:.1f}%")]
        cells += [(lab_to_rgb_tuple(r.estimated_lab), f"{r.match_percentage:.0f}%")
                  for r in match.recipes]

        for col, (rgb, text) in enumerate(cells):
            x = SWATCH_PADDING + col * (SWATCH_SIZE + SWATCH_PADDING)
            draw.rectangle([x, y, x + SWATCH_SIZE, y + SWATCH_SIZE], fill=tuple(rgb),
                           outline=(0, 0, 0) if col == 0 else None)

            # Center text under swatch
            bbox = draw.textbbox((0, 0), text)
            text_width = bbox[2] - bbox[0]
            text_x = x + (SWATCH_SIZE - text_width) // 2
            draw.text((text_x, y + SWATCH_SIZE + 4), text, fill=(0, 0, 0))

    img.save(output_path)
    logger.info("Saved swatches to %s", output_path)
    return output_path


# =============================================================================
# CLI
# =============================================================================

def parse_color(text: str) -> Optional[np.ndarray]:
    """LAB from '#rrggbb' / '#rgb' or 'L,a,b'. None if neither."""
    rgb = hex_to_rgb(text)
    if rgb is not None:
        return rgb_to_lab(np.array(rgb))
    try:
        values = [float(v) for v in text.split(',')]
    except ValueError:
        return None
    return coerce_lab(values)


if __name__ == '__main__':
    import argparse
    import json
    import sys

    parser = argparse.ArgumentParser(
        description='Suggest oil-paint mixtures for the colors of an image.'
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        '--input', '-i',
        help='Path to the image file'
    )
    source.add_argument(
        '--color', '-c',
        help='Match a single color instead: hex (#b05a3c) or L,a,b (50,40,40)'
    )
    parser.add_argument(
        '--catalog',
        default=str(DEFAULT_CATALOG),
        help='Paint catalog JSON (default: bundled sample catalog)'
    )
    parser.add_argument(
        '--brand', '-b',
        action='append',
        help='Only use paints from this brand. Repeat for several brands.'
    )
    parser.add_argument(
        '--colors', '-k',
        type=int,
        default=PALETTE_SIZE,
        help=f'Number of palette colors to extract (default: {PALETTE_SIZE})'
    )
    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Random seed for palette clustering'
    )
    parser.add_argument(
        '--swatches', '-s',
        nargs='?',
        const=True,
        default=None,
        help='Write a swatch PNG. Optionally specify path, otherwise auto-names from input.'
    )
    parser.add_argument(
        '--json',
        action='store_true',
        help='Print results as JSON instead of prose'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Log search details'
    )

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.colors < 1:
        parser.error("--colors must be at least 1")

    # Clustering only; pixel sampling stays on its fixed stride
    rng = np.random.default_rng(args.seed)

    try:
        if args.color is not None:
            target = parse_color(args.color)
            if target is None:
                parser.error(f"Could not parse color: {args.color}")
            paints = filter_by_brand(load_catalog(args.catalog), args.brand)
            matches = [PaletteMatch(color=color_from_lab(target),
                                    recipes=match_color(target, paints))]
            summary = None
            default_swatches = Path('color-swatches.png')
        else:
            image_path = Path(args.input)
            matches, summary = run_image_pipeline(image_path, args.catalog, args.brand,
                                                  k=args.colors, rng=rng)
            default_swatches = image_path.with_name(f"{image_path.stem}-swatches.png")
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: could not analyze {args.input or args.color}: {e}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps([m.to_dict() for m in matches], indent=2))
    else:
        print(render(matches, summary))

    if args.swatches:
        output_path = default_swatches if args.swatches is True else Path(args.swatches)
        try:
            render_swatches(matches, output_path)
            print(f"\nWrote: {output_path}", file=sys.stderr if args.json else sys.stdout)
        except OSError as e:
            print(f"Error writing swatches: {e}", file=sys.stderr)
            sys.exit(1)
