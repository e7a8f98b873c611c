"""Shared fixtures: a small in-memory paint catalog."""

import pytest

from catalog import paint_from_record


def _record(paint_id, codes, lab, opacity='O', strength='Medium', brand='Studio'):
    record = {
        'id': paint_id,
        'brand': brand,
        'name': paint_id.replace('-', ' ').title(),
        'pigmentCodes': codes,
        'opacity': opacity,
        'tintingStrength': strength,
    }
    if lab is not None:
        record['lab'] = {'L': lab[0], 'a': lab[1], 'b': lab[2]}
    return record


@pytest.fixture
def make_paint():
    """Factory for one Paint from positional catalog fields."""
    def factory(paint_id, codes, lab, opacity='O', strength='Medium', brand='Studio'):
        return paint_from_record(_record(paint_id, codes, lab, opacity, strength, brand))
    return factory


@pytest.fixture
def paints(make_paint):
    """White, an orange-red, a near-black earth/blue pair and a tube black."""
    return [
        make_paint('white', ['PW6'], (96.0, 0.0, 2.0)),
        make_paint('orange-red', ['PR108'], (49.0, 39.0, 39.0)),
        make_paint('burnt-umber', ['PBr7'], (39.6, 12.4, 23.1), opacity='SO', strength='Low'),
        make_paint('ultramarine', ['PB29'], (39.4, 14.2, -47.3), opacity='SO'),
        make_paint('ivory-black', ['PBk9'], (24.6, -0.7, 0.4), opacity='SO', strength='High'),
    ]


@pytest.fixture
def by_id(paints):
    return {p.id: p for p in paints}
