"""Tests for phone search candidate generation."""

import pytest

from crm_scheduling.phone import digits_only, generate_candidates

US_FORMS = [
    "239-290-1984",
    "(239) 290-1984",
    "239.290.1984",
    "2392901984",
    "12392901984",
    "+12392901984",
    "+1-239-290-1984",
    "290-1984",
    "2901984",
]


class TestDigitsOnly:
    def test_strips_punctuation(self):
        assert digits_only("+1 (239) 290-1984") == "12392901984"

    def test_no_digits(self):
        assert digits_only("call me") == ""


class TestTenDigitNumbers:
    @pytest.mark.parametrize(
        "raw",
        ["239-290-1984", "(239) 290-1984", "2392901984", "+1 239 290 1984", "239.290.1984 "],
    )
    def test_all_us_forms_present(self, raw):
        candidates = generate_candidates(raw)
        for form in US_FORMS:
            assert form in candidates

    def test_raw_and_digits_first(self):
        candidates = generate_candidates("+1 (239) 290-1984")
        assert candidates[0] == "+1 (239) 290-1984"
        assert candidates[1] == "12392901984"

    def test_no_duplicates(self):
        candidates = generate_candidates("239-290-1984")
        assert len(candidates) == len(set(candidates))
        # raw equals one of the fixed forms, digits equal another
        assert len(candidates) == 9

    def test_eleven_distinct_when_raw_and_digits_are_new(self):
        candidates = generate_candidates("44 239 290 1984")
        assert len(candidates) == 11

    def test_uses_last_ten_digits(self):
        candidates = generate_candidates("0044 239 290 1984")
        assert "239-290-1984" in candidates

    def test_candidates_from_a_variant_overlap(self):
        original = set(generate_candidates("(239) 290-1984"))
        for variant in US_FORMS:
            assert original & set(generate_candidates(variant))


class TestSevenDigitNumbers:
    def test_local_forms(self):
        assert generate_candidates("290-1984") == ["290-1984", "2901984", "290.1984"]

    def test_digits_input(self):
        assert generate_candidates("2901984") == ["2901984", "290-1984", "290.1984"]


class TestOtherLengths:
    @pytest.mark.parametrize("raw", ["1234-5678", "123-456-789", "555 12"])
    def test_only_raw_and_digits(self, raw):
        assert generate_candidates(raw) == [raw, digits_only(raw)]

    def test_raw_equal_to_digits_collapses(self):
        assert generate_candidates("12345678") == ["12345678"]

    def test_extension_suffix_uses_trailing_digits(self):
        # Extension digits end up in the last-ten window; coarse by intent
        candidates = generate_candidates("239-290-1984 x12")
        assert candidates[:2] == ["239-290-1984 x12", "239290198412"]
        assert "929-019-8412" in candidates
