"""
HTML Result Extractor

Recovers (slot, animal text) pairs from result pages.

PRINCIPLES:
===========
1. Pattern sets are pure strategies, each tuned to one site's markup
2. First pattern set with a valid match wins
3. Unrecognized markup yields an empty list, never an error
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Pattern, Sequence, Tuple
import html
import re

from prediction.registry import LotteryId
from prediction.resolver import normalize_name

_FLAGS = re.IGNORECASE | re.DOTALL
_SLOT = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')
_WHITESPACE = re.compile(r'\s+')

ExtractedPair = Tuple[str, str]


@dataclass(frozen=True)
class PatternSet:
    """
    Ordered regexes for one markup shape.

    `slot_group` and `animal_group` index the capture groups. When
    `lottery_group` is set, rows naming a different lottery are skipped.
    """
    name: str
    patterns: Tuple[Pattern, ...]
    slot_group: int = 1
    animal_group: int = 2
    lottery_group: Optional[int] = None

    def extract(self, markup: str, lottery_id: Optional[LotteryId] = None) -> List[ExtractedPair]:
        return self.scan(markup, lottery_id)[0]

    def scan(
        self,
        markup: str,
        lottery_id: Optional[LotteryId] = None
    ) -> Tuple[List[ExtractedPair], bool]:
        """
        Returns (pairs, recognized).

        `recognized` is True when rows of this shape were found even if
        every one of them belonged to another lottery.
        """
        pairs = []
        recognized = False
        for pattern in self.patterns:
            for match in pattern.finditer(markup):
                pair = _clean_pair(match.group(self.slot_group), match.group(self.animal_group))
                if not pair:
                    continue
                recognized = True
                if self.lottery_group is not None and lottery_id is not None:
                    if not _matches_lottery(match.group(self.lottery_group), lottery_id):
                        continue
                pairs.append(pair)
        return pairs, recognized


def is_valid_slot(value: Optional[str]) -> bool:
    return bool(value) and bool(_SLOT.match(value))


def _clean_text(value: Optional[str]) -> str:
    if not value:
        return ""
    return _WHITESPACE.sub(' ', html.unescape(value)).strip()


def _clean_pair(slot: Optional[str], animal: Optional[str]) -> Optional[ExtractedPair]:
    slot = _clean_text(slot)
    animal = _clean_text(animal)
    if not _SLOT.match(slot) or not animal:
        return None
    return slot, animal


def _matches_lottery(label: str, lottery_id: LotteryId) -> bool:
    label = normalize_name(label or "")
    if lottery_id == LotteryId.GUACHARO:
        return 'guacharo' in label
    if lottery_id == LotteryId.LOTTO_ACTIVO:
        return 'lotto' in label
    return True


def _compile(*patterns: str) -> Tuple[Pattern, ...]:
    return tuple(re.compile(p, _FLAGS) for p in patterns)


# =============================================================================
# PATTERN SETS (one per known markup shape)
# =============================================================================

LOTERIA_DE_HOY = PatternSet(
    name='loteria_de_hoy',
    patterns=_compile(
        r'<td[^>]*class="[^"]*hora[^"]*"[^>]*>\s*(\d{2}:\d{2})\s*</td>\s*'
        r'<td[^>]*class="[^"]*animal[^"]*"[^>]*>([^<]+)</td>',
        r'<div[^>]*class="[^"]*resultado[^"]*"[^>]*>.*?(\d{2}:\d{2}).*?'
        r'>\s*([A-Za-zÁÉÍÓÚÑáéíóúñ]+|\d{1,2})\s*<.*?</div>',
    ),
)

TRIPLE_CALIENTE = PatternSet(
    name='triple_caliente',
    patterns=_compile(
        r'<span[^>]*class="[^"]*time[^"]*"[^>]*>\s*(\d{2}:\d{2})\s*</span>.*?'
        r'<span[^>]*class="[^"]*animal[^"]*"[^>]*>([^<]+)</span>',
    ),
)

LOTOVEN = PatternSet(
    name='lotoven',
    patterns=_compile(
        r'<tr[^>]*>\s*<td[^>]*>([^<]*(?:Gu[aá]charo|Lotto)[^<]*)</td>\s*'
        r'<td[^>]*>\s*(\d{2}:\d{2})\s*</td>\s*<td[^>]*>([^<]+)</td>\s*'
        r'<td[^>]*>\s*(\d{2})\s*</td>',
    ),
    slot_group=2,
    animal_group=3,
    lottery_group=1,
)

ANIMALITOS_VENEZUELA = PatternSet(
    name='animalitos_venezuela',
    patterns=_compile(
        r'<tr[^>]*>\s*<td[^>]*>\s*(\d{2}:\d{2})\s*</td>\s*<td[^>]*>([^<]+)</td>.*?</tr>',
    ),
)

GENERIC_LAYOUT = PatternSet(
    name='generic',
    patterns=_compile(
        r'<td[^>]*>\s*(\d{2}:\d{2})\s*</td>\s*<td[^>]*>([^<]+)</td>',
        r'<div[^>]*class="[^"]*hour[^"]*"[^>]*>\s*(\d{2}:\d{2})\s*</div>\s*'
        r'<div[^>]*class="[^"]*animal[^"]*"[^>]*>([^<]+)</div>',
    ),
)

EMBEDDED_JSON = PatternSet(
    name='embedded_json',
    patterns=_compile(
        r'\{[^{}]*"hora"\s*:\s*"(\d{2}:\d{2})"[^{}]*"animal"\s*:\s*"([^"]+)"[^{}]*\}',
    ),
)

DEFAULT_PATTERN_SETS: Tuple[PatternSet, ...] = (
    LOTERIA_DE_HOY,
    TRIPLE_CALIENTE,
    LOTOVEN,
    ANIMALITOS_VENEZUELA,
    GENERIC_LAYOUT,
    EMBEDDED_JSON,
)


class HtmlResultExtractor:
    """Applies pattern sets in order; stops at the first that matches."""

    def __init__(self, pattern_sets: Sequence[PatternSet] = DEFAULT_PATTERN_SETS):
        self._pattern_sets = tuple(pattern_sets)

    @property
    def pattern_sets(self) -> Tuple[PatternSet, ...]:
        return self._pattern_sets

    def _ordered_sets(self, preferred: Optional[str]) -> List[PatternSet]:
        sets = list(self._pattern_sets)
        if preferred:
            sets.sort(key=lambda s: s.name != preferred)
        return sets

    def extract(
        self,
        markup: str,
        lottery_id: Optional[LotteryId] = None,
        preferred: Optional[str] = None,
    ) -> List[ExtractedPair]:
        """Sorted, slot-deduplicated pairs; [] for unrecognized markup."""
        if not markup:
            return []

        for pattern_set in self._ordered_sets(preferred):
            pairs, recognized = pattern_set.scan(markup, lottery_id)
            if pairs:
                return _dedupe_and_sort(pairs)
            if recognized and pattern_set.lottery_group is not None:
                # page lists other lotteries only; looser sets would mix them in
                return []
        return []


def _dedupe_and_sort(pairs: List[ExtractedPair]) -> List[ExtractedPair]:
    seen = {}
    for slot, animal in pairs:
        seen.setdefault(slot, animal)
    return sorted(seen.items(), key=lambda pair: pair[0])


def extract(markup: str, lottery_id: Optional[LotteryId] = None) -> List[ExtractedPair]:
    """Module-level shortcut using the default pattern sets."""
    return HtmlResultExtractor().extract(markup, lottery_id)
