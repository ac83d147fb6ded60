"""Tests for DataCache."""

from fsdash.market.cache import CacheSpace, DataCache, historical_key, option_chain_key


class TestDataCache:
    """Unit tests for the DataCache."""

    def test_put_and_get(self):
        """Test writing and reading a value."""
        cache = DataCache()
        entry = cache.put(CacheSpace.MARKET, "NIFTY", {"price": 21725.0})
        assert entry.key == "NIFTY"
        assert cache.get(CacheSpace.MARKET, "NIFTY") == {"price": 21725.0}

    def test_miss_returns_none(self):
        """Test that an unknown key is a miss."""
        cache = DataCache()
        assert cache.get(CacheSpace.MARKET, "NOPE") is None
        assert cache.get_entry(CacheSpace.MARKET, "NOPE") is None

    def test_last_write_wins(self):
        """The most recent write for a key is what get returns."""
        cache = DataCache()
        for price in (3.0, 1.0, 2.0):
            cache.put(CacheSpace.MARKET, "NIFTY", price)
        assert cache.get(CacheSpace.MARKET, "NIFTY") == 2.0

    def test_written_at_uses_clock(self, clock):
        """Test that entries are stamped with the injected clock."""
        cache = DataCache(clock=clock)
        entry = cache.put(CacheSpace.PCR, "NIFTY", 0.9)
        assert entry.written_at == clock.now

    def test_spaces_are_independent(self):
        """Test that the same key in different spaces does not collide."""
        cache = DataCache()
        cache.put(CacheSpace.MARKET, "NIFTY", "quote")
        cache.put(CacheSpace.PCR, "NIFTY", "pcr")
        assert cache.get(CacheSpace.MARKET, "NIFTY") == "quote"
        assert cache.get(CacheSpace.PCR, "NIFTY") == "pcr"
        cache.remove(CacheSpace.MARKET, "NIFTY")
        assert cache.get(CacheSpace.PCR, "NIFTY") == "pcr"

    def test_remove_nonexistent(self):
        """Test removing a key that doesn't exist."""
        cache = DataCache()
        cache.remove(CacheSpace.MARKET, "NIFTY")  # Should not raise

    def test_get_all_is_a_copy(self):
        """Test that get_all returns a snapshot."""
        cache = DataCache()
        cache.put(CacheSpace.MARKET, "NIFTY", 1)
        cache.put(CacheSpace.MARKET, "BANKNIFTY", 2)
        snapshot = cache.get_all(CacheSpace.MARKET)
        assert snapshot == {"NIFTY": 1, "BANKNIFTY": 2}
        snapshot["NIFTY"] = 99
        assert cache.get(CacheSpace.MARKET, "NIFTY") == 1

    def test_sweep_removes_only_stale_entries(self, clock):
        """Test that sweep drops entries older than the TTL."""
        cache = DataCache(clock=clock)
        cache.put(CacheSpace.HISTORICAL, "old", 1)
        clock.advance(100)
        cache.put(CacheSpace.HISTORICAL, "new", 2)
        clock.advance(1)

        removed = cache.sweep(CacheSpace.HISTORICAL, ttl=50)

        assert removed == 1
        assert cache.get(CacheSpace.HISTORICAL, "old") is None
        assert cache.get(CacheSpace.HISTORICAL, "new") == 2

    def test_sweep_keeps_entry_exactly_at_ttl(self, clock):
        """Entries are stale only when strictly older than the TTL."""
        cache = DataCache(clock=clock)
        cache.put(CacheSpace.MARKET, "NIFTY", 1)
        clock.advance(60)
        assert cache.sweep(CacheSpace.MARKET, ttl=60) == 0
        clock.advance(0.001)
        assert cache.sweep(CacheSpace.MARKET, ttl=60) == 1

    def test_sweep_all(self, clock):
        """Test sweeping every space at once."""
        cache = DataCache(clock=clock)
        cache.put(CacheSpace.MARKET, "NIFTY", 1)
        cache.put(CacheSpace.OPTION_CHAIN, "NIFTY_2024-01-04", [])
        clock.advance(25 * 3600)
        assert cache.sweep_all(ttl=24 * 3600) == 2
        assert len(cache) == 0

    def test_overwrite_refreshes_written_at(self, clock):
        """Test that a rewrite resets the entry's age."""
        cache = DataCache(clock=clock)
        cache.put(CacheSpace.MARKET, "NIFTY", 1)
        clock.advance(100)
        cache.put(CacheSpace.MARKET, "NIFTY", 2)
        assert cache.sweep(CacheSpace.MARKET, ttl=50) == 0

    def test_len(self):
        """Test __len__ counts entries across spaces."""
        cache = DataCache()
        assert len(cache) == 0
        cache.put(CacheSpace.MARKET, "NIFTY", 1)
        cache.put(CacheSpace.SENTIMENT, "overall", {})
        assert len(cache) == 2

    def test_composite_keys(self):
        """Test the historical and option-chain key helpers."""
        assert historical_key("NSE", "3045", "ONE_DAY", "2024-01-01 09:15", "2024-01-05 15:30") == (
            "NSE:3045:ONE_DAY:2024-01-01 09:15:2024-01-05 15:30"
        )
        assert option_chain_key("NIFTY", "2024-01-04") == "NIFTY_2024-01-04"
