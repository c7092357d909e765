"""Tests for the normalization mapping cache."""

from unittest.mock import MagicMock

from food_alerts.mapping_cache import MappingCache
from food_alerts.models import MappingType, NormalizationMapping


def mapping(raw, normalized, mapping_type=MappingType.COUNTRY):
    return NormalizationMapping(mapping_type, raw, normalized)


class TestMappingCache:
    """Tests for MappingCache."""

    def test_stale_before_first_refresh(self):
        """Test that a new cache is stale and empty."""
        cache = MappingCache(lambda: [])
        assert cache.is_stale(now=0)
        assert cache.lookup(MappingType.COUNTRY, "Holland") is None

    def test_lookup_is_case_insensitive(self):
        """Test that raw values are matched case-insensitively."""
        cache = MappingCache(lambda: [mapping("Holland", "Netherlands")])
        cache.refresh(now=100)

        assert cache.lookup(MappingType.COUNTRY, "  HOLLAND ") == "Netherlands"
        assert cache.lookup(MappingType.HAZARD, "Holland") is None

    def test_refresh_if_stale_respects_ttl(self):
        """Test that the loader is only called again after the TTL."""
        loader = MagicMock(return_value=[])
        cache = MappingCache(loader, ttl_seconds=300)

        assert cache.refresh_if_stale(now=1000) is True
        assert cache.refresh_if_stale(now=1200) is False
        assert cache.refresh_if_stale(now=1301) is True
        assert loader.call_count == 2
        assert cache.last_refreshed == 1301

    def test_invalidate_forces_reload(self):
        """Test that invalidate makes the next refresh_if_stale reload."""
        loader = MagicMock(return_value=[])
        cache = MappingCache(loader, ttl_seconds=300)
        cache.refresh_if_stale(now=1000)

        cache.invalidate()

        assert cache.refresh_if_stale(now=1001) is True
        assert loader.call_count == 2

    def test_loader_failure_keeps_previous_mappings(self):
        """Test that a failing loader leaves old mappings and the cache stale."""
        loader = MagicMock(return_value=[mapping("Holland", "Netherlands")])
        cache = MappingCache(loader, ttl_seconds=300)
        cache.refresh(now=1000)

        loader.side_effect = RuntimeError("database is locked")
        cache.invalidate()
        cache.refresh_if_stale(now=1001)

        assert cache.lookup(MappingType.COUNTRY, "Holland") == "Netherlands"
        assert cache.is_stale(now=1002)
