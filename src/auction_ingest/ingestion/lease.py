"""
Per-Source Run Lease

Keeps a second run for the same source from starting while one is in
flight. A lease carries an owner token and an expiry so a crashed holder
cannot block its source forever.
"""
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Generator, Optional

from config.settings import settings
from src.auction_ingest.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Lease:
    source_site: str
    owner: str
    expires_at: float


class LeaseRegistry:
    """
    Thread-safe in-process registry of source leases.

    Args:
        ttl_seconds: Lease lifetime
        clock: Monotonic clock (injectable for tests)
    """

    def __init__(self, ttl_seconds: float = 3600, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._leases: Dict[str, Lease] = {}
        self._lock = threading.Lock()

    def acquire(self, source_site: str, ttl_seconds: Optional[float] = None) -> Optional[Lease]:
        """
        Take the lease for a source.

        Args:
            source_site: Source to lease
            ttl_seconds: Lifetime for this lease (defaults to the registry TTL)

        Returns:
            Lease, or None when a live lease is held by someone else
        """
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        now = self._clock()
        with self._lock:
            current = self._leases.get(source_site)
            if current is not None and current.expires_at > now:
                logger.info("lease_held", source_site=source_site, owner=current.owner)
                return None
            if current is not None:
                logger.warning("lease_expired_reclaimed", source_site=source_site, owner=current.owner)

            lease = Lease(source_site=source_site, owner=uuid.uuid4().hex, expires_at=now + ttl)
            self._leases[source_site] = lease

        logger.debug("lease_acquired", source_site=source_site, owner=lease.owner)
        return lease

    def release(self, lease: Lease) -> bool:
        """
        Release a lease. Only the owner's token releases it.

        Returns:
            True if the lease was released
        """
        with self._lock:
            current = self._leases.get(lease.source_site)
            if current is None or current.owner != lease.owner:
                logger.warning("lease_release_ignored", source_site=lease.source_site, owner=lease.owner)
                return False
            del self._leases[lease.source_site]

        logger.debug("lease_released", source_site=lease.source_site, owner=lease.owner)
        return True

    def is_held(self, source_site: str) -> bool:
        with self._lock:
            current = self._leases.get(source_site)
            return current is not None and current.expires_at > self._clock()

    @contextmanager
    def hold(self, source_site: str, ttl_seconds: Optional[float] = None) -> Generator[Optional[Lease], None, None]:
        """
        Hold the lease for the duration of a block.

        Yields None (and holds nothing) when the source is already leased.
        """
        lease = self.acquire(source_site, ttl_seconds=ttl_seconds)
        try:
            yield lease
        finally:
            if lease is not None:
                self.release(lease)


# Process-wide registry shared by run_ingestion callers.
default_registry = LeaseRegistry(ttl_seconds=settings.lease_ttl_seconds)
