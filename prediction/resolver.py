"""
Identifier Resolver

Normalizes free text or numbers coming from heterogeneous sources into a
registry entry.

ORDER (first match wins):
=========================
1. Numeric code (1-2 digits, zero-padded)
2. Accent-insensitive name: exact, or containment in either direction
"""

from __future__ import annotations
from typing import Optional, Tuple
import logging
import re
import unicodedata

from .registry import Animal, AnimalRegistry, DEFAULT_REGISTRY

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 2

_CODE_PATTERN = re.compile(r'(?<!\d)(\d{1,2})(?!\d)')
_NON_LETTER = re.compile(r'[^a-z]')


def strip_accents(text: str) -> str:
    """Decompose and drop combining marks ('Águila' -> 'Aguila')."""
    decomposed = unicodedata.normalize('NFD', text)
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_name(text: str) -> str:
    """Lower-case, accent-free, letters only."""
    return _NON_LETTER.sub('', strip_accents(text.lower()))


class IdentifierResolver:
    """Resolves arbitrary input against an AnimalRegistry."""

    def __init__(self, registry: AnimalRegistry = DEFAULT_REGISTRY):
        self._registry = registry
        self._normalized: Tuple[Tuple[str, Animal], ...] = tuple(
            (normalize_name(animal.display_name), animal) for animal in registry
        )

    @property
    def registry(self) -> AnimalRegistry:
        return self._registry

    def resolve(self, value) -> Optional[Animal]:
        """Return the matching Animal, or None when nothing matches."""
        if value is None or isinstance(value, bool):
            return None
        text = str(value).strip()
        if not text:
            return None

        match = _CODE_PATTERN.search(text)
        if match:
            animal = self._registry.by_code(match.group(1).zfill(2))
            if animal is not None:
                return animal

        needle = normalize_name(text)
        if len(needle) < MIN_NAME_LENGTH:
            logger.debug("Rejected short identifier %r", value)
            return None

        for name, animal in self._normalized:
            if name == needle or needle in name or name in needle:
                return animal

        logger.debug("Unresolved identifier %r", value)
        return None


_default_resolver = IdentifierResolver()


def resolve(value) -> Optional[Animal]:
    """Resolve against the default registry."""
    return _default_resolver.resolve(value)
