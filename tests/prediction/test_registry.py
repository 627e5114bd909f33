"""
Registry Tests

The catalogue and lottery schedules are fixed data; these tests pin them.
"""

import pytest

from prediction.registry import (
    ANIMALS, Animal, AnimalRegistry, DEFAULT_REGISTRY, DrawSlot,
    LOTTERY_SCHEDULES, LotteryId, parse_lottery_id, slots_for,
)


class TestAnimalRegistry:

    def test_catalogue_has_unique_two_digit_codes(self):
        codes = [a.code for a in ANIMALS]
        assert len(codes) == 37
        assert len(set(codes)) == 37
        assert all(len(code) == 2 and code.isdigit() for code in codes)
        assert codes == [f"{i:02d}" for i in range(37)]

    def test_lookup_by_code_and_id(self):
        leon = DEFAULT_REGISTRY.by_code("05")
        assert leon.display_name == "León"
        assert DEFAULT_REGISTRY.by_id(leon.id) is leon
        assert DEFAULT_REGISTRY.by_code("37") is None

    def test_declaration_order_is_preserved(self):
        assert [a.code for a in DEFAULT_REGISTRY][:3] == ["00", "01", "02"]
        assert DEFAULT_REGISTRY.index_of(DEFAULT_REGISTRY.by_code("36")) == 36

    def test_duplicate_codes_rejected(self):
        with pytest.raises(ValueError):
            AnimalRegistry((
                Animal(id="a", display_name="A", code="01"),
                Animal(id="b", display_name="B", code="01"),
            ))

    def test_membership(self):
        assert DEFAULT_REGISTRY.by_code("12") in DEFAULT_REGISTRY
        assert Animal(id="99", display_name="Fénix", code="99") not in DEFAULT_REGISTRY
        assert "12" not in DEFAULT_REGISTRY


class TestLotterySchedules:

    def test_slot_counts(self):
        assert len(slots_for(LotteryId.LOTTO_ACTIVO)) == 12
        assert len(slots_for(LotteryId.GUACHARO)) == 9

    def test_slots_strictly_increasing(self):
        for slots in LOTTERY_SCHEDULES.values():
            minutes = [s.minutes for s in slots]
            assert minutes == sorted(set(minutes))

    def test_guacharo_skips_midday_gap(self):
        times = [s.time for s in slots_for(LotteryId.GUACHARO)]
        assert "14:00" not in times and "15:00" not in times
        assert times[0] == "09:00" and times[-1] == "19:00"

    @pytest.mark.parametrize("time,label", [
        ("08:00", "8:00 AM"),
        ("12:00", "12:00 PM"),
        ("13:00", "1:00 PM"),
        ("19:30", "7:30 PM"),
    ])
    def test_slot_labels(self, time, label):
        assert DrawSlot(time).label == label

    def test_parse_lottery_id(self):
        assert parse_lottery_id("guacharo") is LotteryId.GUACHARO
        assert parse_lottery_id(LotteryId.LOTTO_ACTIVO) is LotteryId.LOTTO_ACTIVO
        with pytest.raises(KeyError):
            parse_lottery_id("LA_GRANJITA")
