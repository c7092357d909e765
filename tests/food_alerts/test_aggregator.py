"""Tests for aggregating facts back into alerts."""

from datetime import date

from food_alerts.aggregator import aggregate
from food_alerts.models import AlertFact, RiskLevel


def make_fact(fact_id, raw_id, hazard, countries=("Turkey",), **kwargs):
    return AlertFact(
        id=fact_id,
        raw_id=raw_id,
        hazard=hazard,
        hazard_category=kwargs.get("hazard_category", "Pathogen"),
        product_text=kwargs.get("product_text", "dried figs"),
        product_category=kwargs.get("product_category", "Nuts & Seeds"),
        origin_country=countries[0],
        notifying_country=kwargs.get("notifying_country", "Germany"),
        risk_level=kwargs.get("risk_level", RiskLevel.SERIOUS),
        alert_date=kwargs.get("alert_date", date(2024, 3, 15)),
        link=kwargs.get("link"),
        origin_countries=list(countries),
    )


class TestAggregate:
    """Tests for aggregate."""

    def test_groups_by_raw_id(self):
        """Test that facts of one record fold into one alert."""
        facts = [
            make_fact("f1", "r1", "Salmonella"),
            make_fact("f2", "r1", "Listeria", hazard_category="Pathogen"),
            make_fact("f3", "r2", "Aflatoxin", hazard_category="Mycotoxin"),
        ]
        alerts = aggregate(facts)

        assert [a.raw_id for a in alerts] == ["r1", "r2"]
        assert alerts[0].hazards == ["Salmonella", "Listeria"]
        assert alerts[0].fact_ids == ["f1", "f2"]
        assert alerts[0].id == "f1"
        assert alerts[1].hazards == ["Aflatoxin"]
        assert alerts[1].hazard_categories == ["Mycotoxin"]

    def test_unknown_dropped_when_real_value_exists(self):
        """Test the sentinel rule for hazards and countries."""
        facts = [
            make_fact("f1", "r1", "Salmonella", countries=("Unknown",)),
            make_fact("f2", "r1", "Unknown", countries=("Turkey",)),
        ]
        alert = aggregate(facts)[0]

        assert alert.hazards == ["Salmonella"]
        assert alert.countries == ["Turkey"]

    def test_only_unknown(self):
        """Test that Unknown stays when nothing else is known."""
        alert = aggregate([make_fact("f1", "r1", "Unknown", countries=("Unknown",))])[0]
        assert alert.hazards == ["Unknown"]
        assert alert.countries == ["Unknown"]

    def test_countries_unioned(self):
        """Test that origin countries of every fact are unioned without repeats."""
        facts = [
            make_fact("f1", "r1", "Salmonella", countries=("France", "Italy")),
            make_fact("f2", "r1", "Listeria", countries=("Italy", "Spain")),
        ]
        assert aggregate(facts)[0].countries == ["France", "Italy", "Spain"]

    def test_singular_fields_from_first_fact(self):
        """Test that product and risk come from the first fact."""
        facts = [
            make_fact("f1", "r1", "Salmonella", product_text="figs", risk_level=RiskLevel.SERIOUS),
            make_fact("f2", "r1", "Listeria", product_text="other", risk_level=RiskLevel.NO_RISK),
        ]
        alert = aggregate(facts)[0]
        assert alert.product_text == "figs"
        assert alert.risk_level == RiskLevel.SERIOUS
        assert alert.notifying_country == "Germany"

    def test_fact_without_raw_id_is_its_own_group(self):
        """Test that a fact with no raw id is grouped by its own id."""
        alerts = aggregate([make_fact("f1", None, "Salmonella"), make_fact("f2", None, "Listeria")])
        assert [a.raw_id for a in alerts] == ["f1", "f2"]

    def test_empty(self):
        """Test that no facts give no alerts."""
        assert aggregate([]) == []
