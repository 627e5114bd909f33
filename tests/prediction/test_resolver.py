"""
Identifier Resolver Tests

Sources spell animals every possible way: numbers with or without
padding, accents or not, extra words around the name.
"""

import pytest
from hypothesis import given, strategies as st

from prediction.registry import ANIMALS, DEFAULT_REGISTRY
from prediction.resolver import IdentifierResolver, normalize_name, resolve, strip_accents


def by_code(code):
    return DEFAULT_REGISTRY.by_code(code)


class TestNumericResolution:

    @pytest.mark.parametrize("value", ["5", "05", 5, " 05 ", "#05", "Resultado 05"])
    def test_numbers_are_zero_padded(self, value):
        assert resolve(value) == by_code("05")

    def test_zero_is_delfin(self):
        assert resolve("0") == by_code("00")
        assert resolve(0) == by_code("00")

    def test_number_wins_over_name(self):
        # "12 León" names two different animals; the number decides
        assert resolve("12 León") == by_code("12")

    def test_three_digit_runs_are_not_codes(self):
        assert resolve("123") is None

    def test_out_of_range_number_falls_through_to_name(self):
        assert resolve("99 Tigre") == by_code("10")


class TestNameResolution:

    @pytest.mark.parametrize("value,code", [
        ("Águila", "09"),
        ("aguila", "09"),
        ("AGUILA", "09"),
        ("el león", "05"),
        ("Caimán ", "30"),
        ("ciempies", "03"),
    ])
    def test_accent_and_case_insensitive(self, value, code):
        assert resolve(value) == by_code(code)

    def test_containment_either_direction(self):
        assert resolve("Gallina ponedora") == by_code("25")
        assert resolve("Culeb") == by_code("36")

    @pytest.mark.parametrize("value", [None, "", "   ", "x", "Dragón", True])
    def test_no_match_returns_none(self, value):
        assert resolve(value) is None

    def test_normalize_name(self):
        assert strip_accents("Águila") == "Aguila"
        assert normalize_name("  El Ratón! ") == "elraton"


class TestResolverProperties:

    @given(st.sampled_from(ANIMALS))
    def test_code_round_trip(self, animal):
        assert resolve(animal.code) == animal
        assert resolve(int(animal.code)) == animal

    @given(st.sampled_from(ANIMALS))
    def test_accent_stripped_name_round_trip(self, animal):
        assert resolve(strip_accents(animal.display_name)) == animal
        assert resolve(animal.display_name.upper()) == animal

    @given(st.text(max_size=40))
    def test_never_raises(self, text):
        result = resolve(text)
        assert result is None or result in DEFAULT_REGISTRY

    def test_custom_registry(self):
        from prediction.registry import Animal, AnimalRegistry
        registry = AnimalRegistry((Animal(id="x", display_name="Ballena", code="00"),))
        resolver = IdentifierResolver(registry)
        assert resolver.resolve("ballena").id == "x"
        assert resolver.resolve("León") is None
