"""
Tests for the trailer compartment set.
"""

import random

import pytest

from permitbook.app.core.exceptions import ValidationError
from permitbook.app.services.compartments import Compartment, CompartmentSet, coerce_number


def _numbers(comps):
    return [c.comp_number for c in comps]


def _positions(comps):
    return [c.position for c in comps]


def test_total_capacity_and_remove_middle():
    comps = CompartmentSet.from_gallons([2000, 2000, 1000])
    assert comps.total_capacity == 5000

    comps.remove(1)

    assert _numbers(comps) == [1, 2]
    assert [c.max_gallons for c in comps] == [2000, 1000]
    assert comps.total_capacity == 3000


def test_add_appends_at_end():
    comps = CompartmentSet.from_gallons([1500])
    comp = comps.add(800)
    assert comp.comp_number == 2
    assert comp.position == 1
    assert len(comps) == 2


def test_constructor_sorts_by_position_and_renumbers():
    comps = CompartmentSet([
        Compartment(comp_number=7, max_gallons=300, position=5),
        Compartment(comp_number=3, max_gallons=100, position=0),
        Compartment(comp_number=9, max_gallons=200, position=2),
    ])
    assert [c.max_gallons for c in comps] == [100, 200, 300]
    assert _numbers(comps) == [1, 2, 3]
    assert _positions(comps) == [0, 1, 2]


def test_numbering_stays_dense_under_random_edits():
    rng = random.Random(42)
    comps = CompartmentSet()
    for _ in range(200):
        if len(comps) and rng.random() < 0.4:
            comps.remove(rng.randrange(len(comps)))
        else:
            comps.add(rng.randint(1, 4000))
        assert _numbers(comps) == list(range(1, len(comps) + 1))
        assert _positions(comps) == list(range(len(comps)))


@pytest.mark.parametrize("raw, expected", [
    ("1200", 1200.0),
    ("abc", 0.0),
    ("", 0.0),
    (None, 0.0),
    (float("nan"), 0.0),
    (float("inf"), 0.0),
    (True, 0.0),
    (750, 750.0),
])
def test_numeric_coercion(raw, expected):
    assert coerce_number(raw) == expected


def test_update_coerces_invalid_to_zero_and_fails_validation():
    comps = CompartmentSet.from_gallons([2000, 1000])
    comps.update(1, "max_gallons", "lots")

    assert comps.compartments[1].max_gallons == 0
    with pytest.raises(ValidationError) as exc:
        comps.validate()
    assert exc.value.details["comp_numbers"] == [2]


def test_update_rejects_structural_fields():
    comps = CompartmentSet.from_gallons([2000])
    with pytest.raises(ValidationError):
        comps.update(0, "comp_number", 5)


def test_remove_out_of_range():
    comps = CompartmentSet.from_gallons([2000])
    with pytest.raises(ValidationError):
        comps.remove(3)


def test_empty_set_is_valid():
    comps = CompartmentSet()
    comps.validate()
    assert comps.total_capacity == 0
