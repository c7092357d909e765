"""Tests for the normalizer engine."""

from datetime import date

import pytest

from food_alerts.constants import RASFF_LINK_BASE_URL
from food_alerts.mapping_cache import MappingCache
from food_alerts.models import MappingType, NormalizationMapping, ParsedHazard, RiskLevel
from food_alerts.normalizer import (
    format_country_label,
    normalize_countries,
    normalize_country,
    normalize_date,
    normalize_hazard,
    normalize_hazards,
    normalize_product_category,
    normalize_product_text,
    normalize_record,
    normalize_risk_level,
    split_multi_value,
)


@pytest.fixture
def observed():
    """Collects (value type, raw value, suggestion) reports from the normalizer."""
    calls = []

    def observer(value_type, raw_value, suggestion):
        calls.append((value_type, raw_value, suggestion))

    observer.calls = calls
    return observer


@pytest.fixture
def sample_record():
    """A record shaped like the upstream notification feed."""
    return {
        "notif_id": 654321,
        "notification_reference": "2024.1234",
        "hazards": "Salmonella Enteritidis - {pathogenic micro-organisms}",
        "product_category_desc": "poultry meat and poultry meat products",
        "product_name": "frozen chicken breast",
        "origin_country_desc": "Poland",
        "notifyng_country_desc": "Germany",
        "risk_decision_desc": "serious",
        "notif_date": "15-03-2024 10:20:00",
    }


def make_cache(*mappings):
    cache = MappingCache(lambda: list(mappings))
    cache.refresh(now=1000)
    return cache


class TestSplitMultiValue:
    """Tests for split_multi_value."""

    def test_splits_on_delimiter_ignoring_whitespace(self):
        """Test that whitespace around *** is ignored."""
        assert split_multi_value("a *** b***c  ***   d") == ["a", "b", "c", "d"]

    def test_drops_empty_pieces(self):
        """Test that empty pieces between delimiters are dropped."""
        assert split_multi_value("a *** *** b ***") == ["a", "b"]

    def test_none_gives_empty_list(self):
        """Test that None gives no pieces."""
        assert split_multi_value(None) == []


class TestNormalizeHazard:
    """Tests for normalize_hazard."""

    def test_pattern_rule_wins(self):
        """Test that a named pathogen resolves through the pattern rules."""
        hazard = normalize_hazard("Salmonella spp. - {pathogenic micro-organisms}")
        assert hazard == ParsedHazard("Salmonella", "Pathogen")

    def test_marker_reaches_generic_bucket(self):
        """Test that the pattern rules see the {category} marker and file it in the generic bucket."""
        assert normalize_hazard("acetamiprid - {pesticide residues}") == ParsedHazard("Pesticide Residue", "Pesticide")
        assert normalize_hazard("deoxynivalenol - {mycotoxins}") == ParsedHazard("Mycotoxin", "Mycotoxin")
        assert normalize_hazard("sulphite - {allergens}") == ParsedHazard("Undeclared Allergen", "Allergen")

    def test_heavy_metals_marker_is_not_a_foreign_body(self):
        """Test that "{heavy metals}" does not trip the metal fragment rule."""
        hazard = normalize_hazard("nickel - {heavy metals}")
        assert hazard == ParsedHazard("Nickel", "Heavy Metal")

    def test_named_pesticide_before_generic(self):
        """Test that a named pesticide rule outranks the generic pesticide bucket."""
        hazard = normalize_hazard("chlorpyrifos - {pesticide residues}")
        assert hazard == ParsedHazard("Chlorpyrifos", "Pesticide")

    def test_stec_before_generic_e_coli(self):
        """Test that shigatoxin-producing E. coli is not filed as plain E. coli."""
        hazard = normalize_hazard("shigatoxin-producing Escherichia coli")
        assert hazard.name == "E. coli (STEC)"
        assert hazard.category == "Pathogen"

    def test_specific_allergen_before_generic(self):
        """Test named allergens and the generic allergen bucket."""
        assert normalize_hazard("milk not declared - {allergens}").name == "Undeclared Milk"
        assert normalize_hazard("undeclared sesame").name == "Undeclared Allergen"

    def test_unknown_marker_category_is_title_cased(self):
        """Test that an unrecognised marker category is kept, title-cased."""
        hazard = normalize_hazard("something odd - {weird stuff}")
        assert hazard == ParsedHazard("Something Odd", "Weird Stuff")

    def test_keyword_heuristic(self, observed):
        """Test that generic keywords give a category and the text is the name."""
        hazard = normalize_hazard("visible mould on surface", observer=observed)
        assert hazard == ParsedHazard("Visible Mould on Surface", "Micro-organism")
        assert observed.calls == [(MappingType.HAZARD, "visible mould on surface", "Visible Mould on Surface")]

    def test_unrecognized_falls_back_to_other(self, observed):
        """Test that an unrecognised hazard gets category Other and never raises."""
        hazard = normalize_hazard("Xyzzylin residue", observer=observed)
        assert hazard == ParsedHazard("Xyzzylin Residue", "Other")
        assert observed.calls == [(MappingType.HAZARD, "Xyzzylin residue", "Xyzzylin Residue")]

    def test_fallback_uses_text_before_last_separator(self):
        """Test that the fallback name is the text before the last ' - '."""
        hazard = normalize_hazard("xyzzylin - in dried figs")
        assert hazard == ParsedHazard("Xyzzylin", "Other")

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty_input(self, raw):
        """Test that missing input gives Unknown/Unknown."""
        assert normalize_hazard(raw) == ParsedHazard("Unknown", "Unknown")

    def test_recognized_hazard_is_not_reported(self, observed):
        """Test that rule and marker matches are not reported as unmapped."""
        normalize_hazard("Salmonella", observer=observed)
        normalize_hazard("fipronil - {pesticide residues}", observer=observed)
        assert observed.calls == []

    def test_custom_mapping_overrides_rules(self):
        """Test that a custom mapping gives the name and the category is classified from it."""
        cache = make_cache(NormalizationMapping(MappingType.HAZARD, "weird toxin x", "Salmonella"))
        hazard = normalize_hazard("Weird Toxin X", mappings=cache)
        assert hazard == ParsedHazard("Salmonella", "Pathogen")


class TestNormalizeHazards:
    """Tests for normalize_hazards."""

    def test_multi_hazard_split(self):
        """Test that a multi-hazard field yields one hazard per piece."""
        hazards = normalize_hazards(
            "Salmonella spp. - {pathogenic micro-organisms} *** "
            "Listeria monocytogenes - {pathogenic micro-organisms}"
        )
        assert [h.name for h in hazards] == ["Salmonella", "Listeria"]
        assert all(h.category == "Pathogen" for h in hazards)

    def test_deduplicates_by_canonical_name(self):
        """Test that pieces with the same canonical name collapse to one."""
        hazards = normalize_hazards("Salmonella Enteritidis *** salmonella typhimurium")
        assert hazards == [ParsedHazard("Salmonella", "Pathogen")]

    @pytest.mark.parametrize("raw", [None, "", " *** "])
    def test_empty_gives_unknown(self, raw):
        """Test that an empty field gives a single Unknown hazard."""
        assert normalize_hazards(raw) == [ParsedHazard("Unknown", "Unknown")]


class TestNormalizeCountry:
    """Tests for country normalization."""

    def test_repairs_mis_decoded_text(self):
        """Test that mis-decoded characters are repaired before matching."""
        assert normalize_country("TÃ¼rkiye") == "Turkey"

    @pytest.mark.parametrize("raw,expected", [
        ("United States", "USA"),
        ("Viet Nam", "Vietnam"),
        ("Czech Republic", "Czechia"),
        ("the Netherlands", "Netherlands"),
        ("BELGIUM", "Belgium"),
        ("France", "France"),
        ("", "Unknown"),
        (None, "Unknown"),
    ])
    def test_country_rules(self, raw, expected):
        """Test country canonicalisation."""
        assert normalize_country(raw) == expected

    def test_custom_mapping(self):
        """Test that a custom country mapping is applied first."""
        cache = make_cache(NormalizationMapping(MappingType.COUNTRY, "Holland (NL)", "Netherlands"))
        assert normalize_country("holland (nl)", mappings=cache) == "Netherlands"

    def test_multi_country_deduplicates(self):
        """Test that repeated countries appear once, in first-seen order."""
        assert normalize_countries("Belgium *** Turkey *** Belgium") == ["Belgium", "Turkey"]

    def test_unknown_dropped_when_others_exist(self):
        """Test that Unknown is dropped when a real country is present."""
        assert normalize_countries("Unknown *** France") == ["France"]

    def test_only_unknown(self):
        """Test that an empty field gives just Unknown."""
        assert normalize_countries("") == ["Unknown"]


class TestFormatCountryLabel:
    """Tests for format_country_label."""

    def test_three_or_fewer(self):
        """Test that up to three countries are listed in full."""
        assert format_country_label(["Spain", "Italy", "France"]) == "Spain, Italy, France"

    def test_more_than_three(self):
        """Test that longer lists are shortened."""
        countries = ["Spain", "Italy", "France", "Greece", "Malta"]
        assert format_country_label(countries) == "Spain, Italy + 3 more"

    def test_duplicates_counted_once(self):
        """Test that repeated countries do not inflate the count."""
        assert format_country_label(["Spain", "Spain", "Italy"]) == "Spain, Italy"


class TestNormalizeProductCategory:
    """Tests for normalize_product_category."""

    @pytest.mark.parametrize("raw,expected", [
        ("poultry meat and poultry meat products", "Poultry"),
        ("meat and meat products (other than poultry)", "Meat Products"),
        ("fish and fish products", "Fish & Seafood"),
        ("nuts, nut products and seeds", "Nuts & Seeds"),
        ("herbs and spices", "Herbs & Spices"),
        ("other food product / mixed", "Other"),
        ("live animals", "Live Animals"),
        ("", "Other"),
        (None, "Other"),
    ])
    def test_category_rules(self, raw, expected):
        """Test product category canonicalisation."""
        assert normalize_product_category(raw) == expected

    def test_unrecognized_is_title_cased_and_reported(self, observed):
        """Test that an unknown category is title-cased with & and reported."""
        category = normalize_product_category("novel widgets and gadgets", observer=observed)
        assert category == "Novel Widgets & Gadgets"
        assert observed.calls == [(MappingType.CATEGORY, "novel widgets and gadgets", "Novel Widgets & Gadgets")]


class TestNormalizeProductText:
    """Tests for normalize_product_text."""

    def test_shouting_is_title_cased(self):
        """Test that ALL CAPS product text is title-cased."""
        assert normalize_product_text("FROZEN   SHRIMP") == "Frozen Shrimp"

    def test_normal_text_kept(self):
        """Test that ordinary text is kept apart from whitespace."""
        assert normalize_product_text(" dried figs ") == "dried figs"

    def test_empty(self):
        """Test the placeholder for missing product text."""
        assert normalize_product_text(None) == "Product not specified"


class TestNormalizeRiskLevel:
    """Tests for normalize_risk_level."""

    @pytest.mark.parametrize("raw,expected", [
        ("serious", RiskLevel.SERIOUS),
        ("Serious", RiskLevel.SERIOUS),
        ("not serious", RiskLevel.NOT_SERIOUS),
        ("Not-Serious", RiskLevel.NOT_SERIOUS),
        ("potentially serious", RiskLevel.POTENTIALLY_SERIOUS),
        ("potential risk", RiskLevel.POTENTIALLY_SERIOUS),
        ("no risk", RiskLevel.NO_RISK),
        ("undecided", RiskLevel.UNDECIDED),
        ("risk decision: not serious", RiskLevel.NOT_SERIOUS),
        ("garbled", RiskLevel.UNKNOWN),
        (None, RiskLevel.UNKNOWN),
    ])
    def test_risk_levels(self, raw, expected):
        """Test that 'not serious' is never read as 'serious'."""
        assert normalize_risk_level(raw) == expected

    def test_labels(self):
        """Test display labels."""
        assert RiskLevel.POTENTIALLY_SERIOUS.label == "Potential Risk"
        assert RiskLevel.UNKNOWN.label == "Unknown"


class TestNormalizeDate:
    """Tests for normalize_date."""

    @pytest.mark.parametrize("raw,expected", [
        ("2024-03-15", date(2024, 3, 15)),
        ("2024-03-15T10:20:00Z", date(2024, 3, 15)),
        ("2024-03-15T23:30:00-02:00", date(2024, 3, 16)),
        ("15-03-2024 10:20:00", date(2024, 3, 15)),
        ("15-03-2024", date(2024, 3, 15)),
        ("15/03/2024", date(2024, 3, 15)),
        (date(2024, 3, 15), date(2024, 3, 15)),
    ])
    def test_parses_supported_formats(self, raw, expected):
        """Test the supported date formats."""
        assert normalize_date(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "not a date", "31-02-2024"])
    def test_bad_dates_are_none(self, raw):
        """Test that unparseable dates give None rather than today."""
        assert normalize_date(raw) is None


class TestNormalizeRecord:
    """Tests for normalize_record."""

    def test_full_record(self, sample_record):
        """Test normalizing a complete record."""
        alert = normalize_record(sample_record)

        assert alert.hazard == "Salmonella"
        assert alert.hazard_category == "Pathogen"
        assert alert.product_category == "Poultry"
        assert alert.product_text == "frozen chicken breast"
        assert alert.origin_country == "Poland"
        assert alert.origin_countries == ["Poland"]
        assert alert.notifying_country == "Germany"
        assert alert.risk_level == RiskLevel.SERIOUS
        assert alert.alert_date == date(2024, 3, 15)
        assert alert.link == f"{RASFF_LINK_BASE_URL}2024.1234"

    def test_field_names_are_case_insensitive(self):
        """Test that upper-case field names are found."""
        alert = normalize_record({"HAZARDS": "aflatoxins", "NOTIF_DATE": "2024-01-02"})
        assert alert.hazard == "Aflatoxin"
        assert alert.alert_date == date(2024, 1, 2)

    def test_explicit_link_preferred(self, sample_record):
        """Test that a record's own link wins over the built one."""
        sample_record["link"] = "https://example.com/alert/1"
        assert normalize_record(sample_record).link == "https://example.com/alert/1"

    def test_multi_country_record(self, sample_record):
        """Test that the primary origin is the first distinct country."""
        sample_record["origin_country_desc"] = "Unknown *** Brasil *** Spain"
        alert = normalize_record(sample_record)
        assert alert.origin_countries == ["Brazil", "Spain"]
        assert alert.origin_country == "Brazil"

    def test_empty_record(self):
        """Test that an empty record normalizes to sentinels without raising."""
        alert = normalize_record({})
        assert alert.hazard == "Unknown"
        assert alert.product_category == "Other"
        assert alert.product_text == "Product not specified"
        assert alert.origin_country == "Unknown"
        assert alert.risk_level == RiskLevel.UNKNOWN
        assert alert.alert_date is None
        assert alert.link is None
