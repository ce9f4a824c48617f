"""
Unit tests for value extraction from free-text answers.
"""

from verihub.audit.extractor import (
    ExtractedValues,
    ValueExtractor,
    extract_values,
    find_times,
    normalize_phone,
    pad_time,
    strip_language_suffix,
)


class TestExtractValues:
    """Each extractor runs independently and returns the first match."""

    def test_empty_text_yields_nothing(self):
        assert extract_values("") == ExtractedValues()
        assert extract_values(None) == ExtractedValues()

    def test_phone_is_normalised(self):
        values = extract_values("Appelez le +32 2 123 45 67. Merci")
        assert values.phone == "+3221234567"

    def test_phone_separators_do_not_matter(self):
        assert extract_values("Tel: +32-2-123-45-67").phone == extract_values("Tel: +32 (2) 123.45.67").phone

    def test_phone_stops_at_end_of_number(self):
        assert extract_values("Bel +32 2 123 45 67 (9-17u).").phone == "+3221234567"
        assert extract_values("Tel 02 123 45 67. 1000 Bruxelles").phone == "021234567"

    def test_url_trailing_punctuation_trimmed(self):
        values = extract_values("Prenez rendez-vous sur https://rendezvous.demoville.be/fr.")
        assert values.url == "https://rendezvous.demoville.be/fr"

    def test_url_stops_at_closing_bracket(self):
        values = extract_values("(voir https://x.be/info) [SRC: site]")
        assert values.url == "https://x.be/info"

    def test_email(self):
        assert extract_values("Ecrivez a info@demoville.be pour plus d'infos").email == "info@demoville.be"

    def test_time_range_separators(self):
        assert extract_values("de 09:00 a 17:00").time_range == "09:00-17:00"
        assert extract_values("van 08:30 tot 16:30").time_range == "08:30-16:30"
        assert extract_values("08:30 - 16:30").time_range == "08:30-16:30"
        assert extract_values("de 9:00 à 17:00").time_range == "09:00-17:00"

    def test_time_range_case_insensitive(self):
        assert extract_values("VAN 08:30 TOT 16:30").time_range == "08:30-16:30"

    def test_day_count(self):
        assert extract_values("60 jours avant expiration").day_count == "60"
        assert extract_values("30 dagen voor de vervaldatum").day_count == "30"
        assert extract_values("within 14 days").day_count == "14"

    def test_amount(self):
        assert extract_values("Cela coute 25,00 EUR").amount == "25,00"
        assert extract_values("kost 25.00 eur").amount == "25.00"

    def test_postal_code(self):
        assert extract_values("Grand-Place 1, 1000 Bruxelles").postal_code == "1000"

    def test_missing_values_are_none(self):
        values = extract_values("Aucune information disponible.")
        assert values.phone is None
        assert values.url is None
        assert values.time_range is None
        assert values.day_count is None
        assert values.amount is None

    def test_to_dict(self):
        data = extract_values("1000 Bruxelles").to_dict()
        assert data["postal_code"] == "1000"
        assert set(data) == {"phone", "url", "email", "time_range", "day_count", "amount", "postal_code"}


class TestValueExtractorPatterns:
    """Patterns can be overridden from the rule file."""

    def test_override_single_pattern(self):
        extractor = ValueExtractor({"postal_code": r"\bB-(\d{4})\b"})
        assert extractor.extract("B-1050 Ixelles, 1000 Bruxelles").postal_code == "1050"
        # Untouched patterns keep their defaults
        assert extractor.extract("60 jours").day_count == "60"

    def test_pattern_without_group_returns_whole_match(self):
        extractor = ValueExtractor({"amount": r"\d+ EUR"})
        assert extractor.extract("prix: 25 EUR").amount == "25 EUR"

    def test_extract_url(self):
        extractor = ValueExtractor()
        assert extractor.extract_url("see https://x.be/a;") == "https://x.be/a"
        assert extractor.extract_url("no link") is None


class TestHelpers:

    def test_normalize_phone_keeps_plus(self):
        assert normalize_phone("+32 (0)2 123.45-67") == "+32021234567"

    def test_strip_language_suffix(self):
        assert strip_language_suffix("https://x.be/fr") == "https://x.be"
        assert strip_language_suffix("https://x.be/NL/") == "https://x.be"
        assert strip_language_suffix("https://x.be/book") == "https://x.be/book"

    def test_find_times_and_padding(self):
        assert find_times("Lundi-Vendredi: 8:30-16:30") == ["8:30", "16:30"]
        assert pad_time("8:30") == "08:30"
