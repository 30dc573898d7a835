"""
Compartment set for a trailer.

Ordered list of tank compartments. comp_number stays 1..N and position
0..N-1 after every add or remove; capacity is only checked at save time
so a half-edited set can still be held in memory.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

from permitbook.app.core.exceptions import ValidationError

EDITABLE_FIELDS = ("max_gallons",)


@dataclass
class Compartment:
    comp_number: int
    max_gallons: float
    position: int


def coerce_number(value: Union[str, int, float, None]) -> float:
    """Numeric coercion for form input; anything unparseable becomes 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if number != number or number in (float("inf"), float("-inf")):
        return 0.0
    return number


class CompartmentSet:
    """
    Usage:
        comps = CompartmentSet.from_gallons([2000, 2000, 1000])
        comps.remove(1)
        comps.total_capacity  # 3000
        comps.validate()
    """

    def __init__(self, compartments: Optional[Iterable[Compartment]] = None):
        ordered = sorted(compartments or [], key=lambda c: (c.position, c.comp_number))
        self._items: List[Compartment] = list(ordered)
        self._renumber()

    @classmethod
    def from_gallons(cls, gallons: Iterable[Union[str, int, float, None]]) -> "CompartmentSet":
        comps = cls()
        for value in gallons:
            comps.add(value)
        return comps

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    @property
    def compartments(self) -> List[Compartment]:
        return list(self._items)

    @property
    def total_capacity(self) -> float:
        return sum(c.max_gallons for c in self._items)

    def _renumber(self) -> None:
        for index, comp in enumerate(self._items):
            comp.comp_number = index + 1
            comp.position = index

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._items):
            raise ValidationError(f"No compartment at index {index}", field="compartments")

    def add(self, max_gallons: Union[str, int, float, None] = 0) -> Compartment:
        """Append a compartment numbered len+1 at position len."""
        comp = Compartment(
            comp_number=len(self._items) + 1,
            max_gallons=coerce_number(max_gallons),
            position=len(self._items),
        )
        self._items.append(comp)
        return comp

    def remove(self, index: int) -> Compartment:
        """Remove by 0-based index and renumber the rest densely from 1."""
        self._check_index(index)
        removed = self._items.pop(index)
        self._renumber()
        return removed

    def update(self, index: int, field: str, value) -> Compartment:
        if field not in EDITABLE_FIELDS:
            raise ValidationError(f"Compartment field '{field}' cannot be edited", field=field)
        self._check_index(index)
        comp = self._items[index]
        setattr(comp, field, coerce_number(value))
        return comp

    def validate(self) -> None:
        """An empty set is valid; otherwise every compartment needs gallons > 0."""
        bad = [c.comp_number for c in self._items if c.max_gallons <= 0]
        if bad:
            raise ValidationError(
                "All compartments need max gallons > 0",
                field="compartments",
                details={"comp_numbers": bad}
            )
