"""
Tests for LeaseRegistry
"""
from config.settings import settings
from src.auction_ingest.ingestion.lease import LeaseRegistry, default_registry


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestLeaseRegistry:
    """Tests for per-source run leases"""

    def test_second_acquire_blocked(self):
        registry = LeaseRegistry()

        lease = registry.acquire("onbid")

        assert lease is not None
        assert registry.acquire("onbid") is None
        assert registry.is_held("onbid")

    def test_sources_are_independent(self):
        registry = LeaseRegistry()
        registry.acquire("onbid")

        assert registry.acquire("courtauction") is not None

    def test_release_allows_reacquire(self):
        registry = LeaseRegistry()
        lease = registry.acquire("onbid")

        assert registry.release(lease) is True
        assert not registry.is_held("onbid")
        assert registry.acquire("onbid") is not None

    def test_expired_lease_reclaimed(self):
        clock = FakeClock()
        registry = LeaseRegistry(ttl_seconds=60, clock=clock)
        stale = registry.acquire("onbid")

        clock.now += 61
        fresh = registry.acquire("onbid")

        assert fresh is not None
        assert fresh.owner != stale.owner

    def test_stale_owner_cannot_release(self):
        clock = FakeClock()
        registry = LeaseRegistry(ttl_seconds=60, clock=clock)
        stale = registry.acquire("onbid")
        clock.now += 61
        registry.acquire("onbid")

        assert registry.release(stale) is False
        assert registry.is_held("onbid")

    def test_hold_releases_on_exit(self):
        registry = LeaseRegistry()

        with registry.hold("manual") as lease:
            assert lease is not None
            with registry.hold("manual") as second:
                assert second is None
            assert registry.is_held("manual")

        assert not registry.is_held("manual")

    def test_hold_releases_on_error(self):
        registry = LeaseRegistry()

        try:
            with registry.hold("manual"):
                raise RuntimeError("boom")
        except RuntimeError:
            pass

        assert not registry.is_held("manual")

    def test_per_lease_ttl_overrides_registry_default(self):
        clock = FakeClock()
        registry = LeaseRegistry(ttl_seconds=3600, clock=clock)

        with registry.hold("onbid", ttl_seconds=60) as lease:
            assert lease.expires_at == clock.now + 60
            clock.now += 61
            assert not registry.is_held("onbid")

    def test_default_registry_uses_configured_ttl(self):
        assert default_registry.ttl_seconds == settings.lease_ttl_seconds
