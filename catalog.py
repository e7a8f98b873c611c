#!/usr/bin/env python3
"""
Paint catalog records.

The catalog itself is external, read-only data. This module turns raw records
into immutable Paint values and tags each paint with a role (white, black,
earth, blue, ...) once, at load time, from its Colour Index pigment codes so
the search never has to guess from paint names.
"""

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence

import numpy as np

from colorspace import coerce_lab, compute_chroma, delta_e_76


logger = logging.getLogger(__name__)


class Opacity(str, Enum):
    OPAQUE = 'O'
    SEMI_OPAQUE = 'SO'
    SEMI_TRANSPARENT = 'ST'
    TRANSPARENT = 'T'


class TintingStrength(str, Enum):
    HIGH = 'High'
    MEDIUM = 'Medium'
    LOW = 'Low'


class PaintRole(str, Enum):
    WHITE = 'white'
    BLACK = 'black'
    EARTH = 'earth'
    BLUE = 'blue'
    GREEN = 'green'
    RED = 'red'
    VIOLET = 'violet'
    YELLOW = 'yellow'
    ORANGE = 'orange'
    OTHER = 'other'


# Iron oxides and natural earths, matched before the generic hue prefixes
EARTH_PIGMENTS = {'PY42', 'PY43', 'PR101', 'PR102', 'PBR6', 'PBR7'}
# Quinacridone magenta/violet that painters use as a crimson
CRIMSON_PIGMENTS = {'PV19', 'PR83', 'PR177', 'PR264', 'PR122', 'PR202', 'PR206', 'NR9'}

# Colour Index prefix -> role
_PREFIX_ROLES = (
    ('PBK', PaintRole.BLACK),
    ('PBR', PaintRole.EARTH),
    ('PW', PaintRole.WHITE),
    ('PB', PaintRole.BLUE),
    ('PG', PaintRole.GREEN),
    ('PR', PaintRole.RED),
    ('PV', PaintRole.VIOLET),
    ('PY', PaintRole.YELLOW),
    ('PO', PaintRole.ORANGE),
    ('NR', PaintRole.RED),
)

_CODE_PATTERN = re.compile(r'^([A-Z]+)(\d+)')

NEUTRAL_CHROMA = 10.0  # Below this a light/dark paint can stand in for white/black
WHITE_SUBSTITUTE_L = 85.0
BLACK_SUBSTITUTE_L = 30.0


@dataclass(frozen=True)
class Paint:
    """One catalog paint. `lab` is None when the catalog has no measurement."""
    id: str
    brand: str
    name: str
    pigment_codes: tuple = ()
    opacity: Opacity = Opacity.SEMI_OPAQUE
    tinting_strength: TintingStrength = TintingStrength.MEDIUM
    lab: Optional[tuple] = None
    swatch: str = ''
    role: PaintRole = PaintRole.OTHER
    binder: str = ''
    lightfastness: str = ''
    series: str = ''

    @property
    def has_lab(self) -> bool:
        return self.lab is not None

    @property
    def is_white(self) -> bool:
        return self.role is PaintRole.WHITE

    @property
    def is_black(self) -> bool:
        return self.role is PaintRole.BLACK

    @property
    def is_crimson(self) -> bool:
        return any(_normalize_code(c) in CRIMSON_PIGMENTS for c in self.pigment_codes)

    def label(self) -> str:
        return f"{self.name} ({self.brand})" if self.brand else self.name


def _normalize_code(code: str) -> str:
    return code.upper().replace(' ', '').split(':')[0]


def classify_role(pigment_codes: Sequence[str], lab=None) -> PaintRole:
    """
    Role from the first pigment code that identifies one.

    Earth pigments are recognised by exact code (PY43 is an ochre, not a
    yellow). Paints with no usable code fall back to their LAB color: very
    light neutrals count as white, very dark neutrals as black.
    """
    for raw in pigment_codes or ():
        code = _normalize_code(str(raw))
        if code in EARTH_PIGMENTS:
            return PaintRole.EARTH
        match = _CODE_PATTERN.match(code)
        if not match:
            continue
        prefix = match.group(1)
        for candidate, role in _PREFIX_ROLES:
            if prefix == candidate:
                return role

    lab = coerce_lab(lab)
    if lab is not None and compute_chroma(lab) < NEUTRAL_CHROMA:
        if lab[0] >= WHITE_SUBSTITUTE_L:
            return PaintRole.WHITE
        if lab[0] <= BLACK_SUBSTITUTE_L:
            return PaintRole.BLACK
    return PaintRole.OTHER


def _parse_enum(enum_cls, value, default):
    if value is None or value == '':
        return default
    if isinstance(value, enum_cls):
        return value
    for member in enum_cls:
        if str(value).strip().lower() in (member.value.lower(), member.name.lower()):
            return member
    raise ValueError(f"Unknown {enum_cls.__name__}: {value!r}")


def paint_from_record(record: dict) -> Paint:
    """
    Build a Paint from an external catalog record.

    Expected keys: id, brand, name, pigmentCodes, opacity, tintingStrength
    (optional, defaults to Medium), lab {L, a, b} (optional), swatch.

    Raises:
        ValueError: If the record has no id or an unknown opacity/strength class
    """
    paint_id = record.get('id')
    if not paint_id:
        raise ValueError("Paint record has no id")

    codes = record.get('pigmentCodes', record.get('pigment_codes', ())) or ()
    if isinstance(codes, str):
        codes = [codes]
    lab = coerce_lab(record.get('lab'))
    lab_tuple = tuple(float(v) for v in lab) if lab is not None else None

    return Paint(
        id=str(paint_id),
        brand=str(record.get('brand', '')),
        name=str(record.get('name', paint_id)),
        pigment_codes=tuple(str(c) for c in codes),
        opacity=_parse_enum(Opacity, record.get('opacity'), Opacity.SEMI_OPAQUE),
        tinting_strength=_parse_enum(
            TintingStrength,
            record.get('tintingStrength', record.get('tinting_strength')),
            TintingStrength.MEDIUM,
        ),
        lab=lab_tuple,
        swatch=str(record.get('swatch', '')),
        role=classify_role(codes, lab),
        binder=str(record.get('binder', '')),
        lightfastness=str(record.get('lightfastness', '')),
        series=str(record.get('series', '')),
    )


def _iter_records(data) -> Iterable[dict]:
    if isinstance(data, list):
        yield from data
    elif isinstance(data, dict) and 'paints' in data:
        yield from data['paints']
    elif isinstance(data, dict) and isinstance(data.get('brands'), dict):
        for brand_name, brand in data['brands'].items():
            if not isinstance(brand, dict):
                logger.warning("Skipping brand %r: expected an object, got %r", brand_name, brand)
                continue
            for record in brand.get('colors') or []:
                if not isinstance(record, dict):
                    logger.warning("Skipping catalog record %r under brand %r", record, brand_name)
                    continue
                # Copy so the caller's data is left as it was
                yield {'brand': brand.get('name', brand_name), **record}
    else:
        raise ValueError("Catalog must be a list of paints, {'paints': [...]} or {'brands': {...}}")


def parse_catalog(data) -> list[Paint]:
    """Parse already-decoded catalog JSON. Bad records are skipped with a warning."""
    paints = []
    seen = set()
    for record in _iter_records(data):
        try:
            paint = paint_from_record(record)
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning("Skipping catalog record %r: %s", record, e)
            continue
        if paint.id in seen:
            logger.warning("Skipping duplicate paint id %s", paint.id)
            continue
        seen.add(paint.id)
        paints.append(paint)
    logger.debug("Loaded %d paints (%d with LAB)", len(paints), sum(p.has_lab for p in paints))
    return paints


def load_catalog(path) -> list[Paint]:
    """
    Load a paint catalog from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is not valid catalog JSON
    """
    path = Path(path)
    try:
        text = path.read_text(encoding='utf-8')
    except FileNotFoundError:
        raise FileNotFoundError(f"Catalog not found: {path}")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Could not parse catalog {path}: {e}")
    return parse_catalog(data)


# =============================================================================
# Selection helpers
# =============================================================================

def usable_paints(paints: Iterable[Paint]) -> list[Paint]:
    """Paints with a known LAB color. The rest cannot take part in matching."""
    return [p for p in (paints or ()) if p is not None and p.has_lab]


def brands_of(paints: Iterable[Paint]) -> list[str]:
    return sorted({p.brand for p in paints})


def filter_by_brand(paints: Iterable[Paint], brands: Optional[Sequence[str]] = None) -> list[Paint]:
    """Keep paints of the selected brands. None or empty selects everything."""
    paints = list(paints or ())
    if not brands:
        return paints
    wanted = {b.lower() for b in brands}
    return [p for p in paints if p.brand.lower() in wanted]


def _closest(candidates: list[Paint], target) -> Optional[Paint]:
    if not candidates:
        return None
    target = coerce_lab(target)
    if target is None:
        return candidates[0]
    labs = np.array([p.lab for p in candidates])
    return candidates[int(np.argmin(delta_e_76(labs, target)))]


def closest_paint(paints: Sequence[Paint], target) -> Optional[Paint]:
    """The usable paint nearest the target by Euclidean ΔE."""
    return _closest(usable_paints(paints), target)


def closest_white(paints: Sequence[Paint], target=None) -> Optional[Paint]:
    """The white closest to target; failing that the lightest near-neutral paint."""
    paints = usable_paints(paints)
    whites = [p for p in paints if p.is_white]
    if whites:
        return _closest(whites, target)
    substitutes = [p for p in paints
                   if p.lab[0] >= WHITE_SUBSTITUTE_L and compute_chroma(p.lab) < NEUTRAL_CHROMA]
    if not substitutes:
        return None
    return max(substitutes, key=lambda p: p.lab[0])


def closest_black(paints: Sequence[Paint], target=None) -> Optional[Paint]:
    """The black closest to target; failing that the darkest near-neutral paint."""
    paints = usable_paints(paints)
    blacks = [p for p in paints if p.is_black]
    if blacks:
        return _closest(blacks, target)
    substitutes = [p for p in paints
                   if p.lab[0] <= BLACK_SUBSTITUTE_L and compute_chroma(p.lab) < NEUTRAL_CHROMA * 2]
    if not substitutes:
        return None
    return min(substitutes, key=lambda p: p.lab[0])


# =============================================================================
# Chromatic blacks
# =============================================================================

# Complementary role pairs that mix to a near-neutral dark. RED stands for
# crimson pigments only (CRIMSON_PIGMENTS); a cadmium red does not qualify.
CHROMATIC_BLACK_PAIRINGS = {
    'warm': (PaintRole.EARTH, PaintRole.BLUE),    # burnt umber + ultramarine
    'cool': (PaintRole.BLUE, PaintRole.RED),      # phthalo blue + alizarin
    'neutral': (PaintRole.GREEN, PaintRole.RED),  # phthalo green + alizarin
}


def _fills_role(paint: Paint, role: PaintRole) -> bool:
    if role is PaintRole.RED:
        return paint.is_crimson
    return paint.role is role


def chromatic_black_kind(first: Paint, second: Paint) -> Optional[str]:
    """'warm', 'cool' or 'neutral' if the two paints form a chromatic black pairing."""
    for kind, (role_a, role_b) in CHROMATIC_BLACK_PAIRINGS.items():
        if (_fills_role(first, role_a) and _fills_role(second, role_b)) or \
                (_fills_role(first, role_b) and _fills_role(second, role_a)):
            return kind
    return None


def iter_chromatic_black_pairs(paints: Sequence[Paint], kind: str) -> Iterator[tuple[Paint, Paint]]:
    """
    Lazily yield (a, b) pairs of usable paints that fill the roles of a pairing.

    Pairs from a single brand come out first. Mixed-brand pairs follow only
    when no brand can supply both sides.
    """
    role_a, role_b = CHROMATIC_BLACK_PAIRINGS[kind]
    paints = usable_paints(paints)
    side_a = [p for p in paints if _fills_role(p, role_a)]
    side_b = [p for p in paints if _fills_role(p, role_b)]

    found = False
    for a in side_a:
        for b in side_b:
            if a.id != b.id and a.brand == b.brand:
                found = True
                yield a, b
    if found:
        return
    for a in side_a:
        for b in side_b:
            if a.id != b.id:
                yield a, b


def chromatic_black_candidates(paints: Sequence[Paint], kind: str) -> list[tuple[Paint, Paint]]:
    """Every pair iter_chromatic_black_pairs yields, as a list."""
    return list(iter_chromatic_black_pairs(paints, kind))
