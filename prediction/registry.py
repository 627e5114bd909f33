"""
Canonical Registry

Fixed catalogue of animals and lottery variants.

Every other component resolves free-form input against this registry.
All types here are immutable.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple
from enum import Enum


# =============================================================================
# ANIMALS
# =============================================================================

@dataclass(frozen=True)
class Animal:
    """A single registry entry. `code` is the two-digit canonical number."""
    id: str
    display_name: str
    code: str
    glyph: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.code} {self.display_name}"


class AnimalRegistry:
    """
    Ordered, immutable catalogue of animals.

    Declaration order is significant: it breaks ties in ranking and
    decides which entry wins an ambiguous fuzzy name match.
    """

    def __init__(self, animals: Tuple[Animal, ...]):
        self._animals = tuple(animals)
        self._by_id: Dict[str, Animal] = {}
        self._by_code: Dict[str, Animal] = {}
        self._order: Dict[str, int] = {}

        for index, animal in enumerate(self._animals):
            if animal.code in self._by_code:
                raise ValueError(f"Duplicate animal code: {animal.code}")
            if animal.id in self._by_id:
                raise ValueError(f"Duplicate animal id: {animal.id}")
            self._by_id[animal.id] = animal
            self._by_code[animal.code] = animal
            self._order[animal.id] = index

    def by_id(self, animal_id: str) -> Optional[Animal]:
        return self._by_id.get(animal_id)

    def by_code(self, code: str) -> Optional[Animal]:
        return self._by_code.get(code)

    def index_of(self, animal: Animal) -> int:
        """Declaration position of an entry."""
        return self._order[animal.id]

    def __iter__(self) -> Iterator[Animal]:
        return iter(self._animals)

    def __len__(self) -> int:
        return len(self._animals)

    def __contains__(self, animal: object) -> bool:
        return isinstance(animal, Animal) and self._by_id.get(animal.id) == animal


def _animal(code: str, name: str, glyph: str) -> Animal:
    return Animal(id=code, display_name=name, code=code, glyph=glyph)


# Lotto Activo catalogue. "0" (Delfín) is stored as "00" so that every
# code is a unique two-digit string; see DESIGN.md.
ANIMALS: Tuple[Animal, ...] = (
    _animal("00", "Delfín", "🐬"),
    _animal("01", "Carnero", "🐏"),
    _animal("02", "Toro", "🐂"),
    _animal("03", "Ciempiés", "🐛"),
    _animal("04", "Alacrán", "🦂"),
    _animal("05", "León", "🦁"),
    _animal("06", "Rana", "🐸"),
    _animal("07", "Perico", "🦜"),
    _animal("08", "Ratón", "🐭"),
    _animal("09", "Águila", "🦅"),
    _animal("10", "Tigre", "🐯"),
    _animal("11", "Gato", "🐱"),
    _animal("12", "Caballo", "🐴"),
    _animal("13", "Mono", "🐒"),
    _animal("14", "Paloma", "🕊️"),
    _animal("15", "Zorro", "🦊"),
    _animal("16", "Oso", "🐻"),
    _animal("17", "Pavo", "🦃"),
    _animal("18", "Burro", "🫏"),
    _animal("19", "Chivo", "🐐"),
    _animal("20", "Cochino", "🐷"),
    _animal("21", "Gallo", "🐓"),
    _animal("22", "Camello", "🐫"),
    _animal("23", "Cebra", "🦓"),
    _animal("24", "Iguana", "🦎"),
    _animal("25", "Gallina", "🐔"),
    _animal("26", "Vaca", "🐄"),
    _animal("27", "Perro", "🐕"),
    _animal("28", "Zamuro", "🐦‍⬛"),
    _animal("29", "Elefante", "🐘"),
    _animal("30", "Caimán", "🐊"),
    _animal("31", "Lapa", "🐹"),
    _animal("32", "Ardilla", "🐿️"),
    _animal("33", "Pescado", "🐟"),
    _animal("34", "Venado", "🦌"),
    _animal("35", "Jirafa", "🦒"),
    _animal("36", "Culebra", "🐍"),
)

DEFAULT_REGISTRY = AnimalRegistry(ANIMALS)


# =============================================================================
# LOTTERY VARIANTS
# =============================================================================

class LotteryId(Enum):
    """Supported lottery variants."""
    LOTTO_ACTIVO = "LOTTO_ACTIVO"
    GUACHARO = "GUACHARO"


@dataclass(frozen=True)
class DrawSlot:
    """A fixed time-of-day in a variant's published schedule."""
    time: str  # "HH:MM"

    @property
    def minutes(self) -> int:
        hours, minutes = self.time.split(':')
        return int(hours) * 60 + int(minutes)

    @property
    def label(self) -> str:
        """12-hour label, e.g. '1:00 PM'."""
        hours, minutes = (int(p) for p in self.time.split(':'))
        suffix = 'PM' if hours >= 12 else 'AM'
        display = hours - 12 if hours > 12 else (12 if hours == 0 else hours)
        return f"{display}:{minutes:02d} {suffix}"


def _slots(*times: str) -> Tuple[DrawSlot, ...]:
    slots = tuple(DrawSlot(t) for t in times)
    for earlier, later in zip(slots, slots[1:]):
        if later.minutes <= earlier.minutes:
            raise ValueError(f"Slots must be strictly increasing: {earlier.time} >= {later.time}")
    return slots


LOTTERY_SCHEDULES: Dict[LotteryId, Tuple[DrawSlot, ...]] = {
    LotteryId.LOTTO_ACTIVO: _slots(
        '08:00', '09:00', '10:00', '11:00', '12:00', '13:00',
        '14:00', '15:00', '16:00', '17:00', '18:00', '19:00',
    ),
    LotteryId.GUACHARO: _slots(
        '09:00', '10:00', '11:00', '12:00', '13:00',
        '16:00', '17:00', '18:00', '19:00',
    ),
}


def parse_lottery_id(value) -> LotteryId:
    """Accept a LotteryId or its string value (case-insensitive)."""
    if isinstance(value, LotteryId):
        return value
    try:
        return LotteryId(str(value).upper())
    except ValueError:
        raise KeyError(f"Unknown lottery: {value}") from None


def slots_for(lottery_id) -> Tuple[DrawSlot, ...]:
    """Published slots of a lottery variant."""
    return LOTTERY_SCHEDULES[parse_lottery_id(lottery_id)]
