"""
Source Adapter Contract

Every source hands the pipeline RawDocuments one cursor at a time and
reports END_OF_STREAM when there is nothing more to fetch. Adapters are
context managers so browser sessions and HTTP connections are released on
every exit path.
"""
import time
from abc import ABC, abstractmethod
from datetime import date
from typing import Callable, Dict, List, Optional, TypeVar, Union

from src.auction_ingest.models.listing import DocumentKind, RawDocument
from src.auction_ingest.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class EndOfStream:
    """Sentinel returned by fetch() when a source is exhausted."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "END_OF_STREAM"

    def __bool__(self) -> bool:
        return False


END_OF_STREAM = EndOfStream()

FetchResult = Union[RawDocument, EndOfStream]


class FetchError(Exception):
    """
    A page could not be fetched.

    Attributes:
        source_site: Adapter that failed
        retryable: Whether another attempt could succeed
        attempts: Attempts made before giving up
    """

    def __init__(self, message: str, source_site: str, retryable: bool = True, attempts: int = 1):
        super().__init__(message)
        self.source_site = source_site
        self.retryable = retryable
        self.attempts = attempts


class SourceAdapter(ABC):
    """
    Base class for all listing sources.

    Subclasses set source_site and implement fetch(); open()/close() are
    optional hooks for resource-owning adapters. target_date is a search
    window hint that adapters may ignore.
    """

    source_site: str = ""
    target_date: Optional[date] = None

    def open(self) -> None:
        """Acquire adapter resources."""

    def close(self) -> None:
        """Release adapter resources."""

    def __enter__(self) -> "SourceAdapter":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @abstractmethod
    def fetch(self, cursor: int) -> FetchResult:
        """
        Fetch the document for a cursor.

        Args:
            cursor: Zero-based page index

        Returns:
            RawDocument, or END_OF_STREAM when the source is exhausted

        Raises:
            FetchError: When the page cannot be fetched within the attempt budget
        """


def retry_fetch(
    operation: Callable[[], T],
    source_site: str,
    max_attempts: int,
    retry_delay: float,
    retry_on: tuple = (Exception,),
    sleep: Callable[[float], None] = time.sleep
) -> T:
    """
    Run a fetch operation with linear backoff.

    Errors listed in retry_on are retried up to max_attempts; a FetchError
    marked non-retryable is raised immediately.

    Args:
        operation: Zero-argument callable performing one attempt
        source_site: Source identifier for logs and errors
        max_attempts: Attempt budget
        retry_delay: Base delay; attempt n waits n * retry_delay
        retry_on: Exception types considered transient
        sleep: Sleep function (injectable for tests)

    Returns:
        Result of the first successful attempt

    Raises:
        FetchError: After the budget is exhausted
    """
    last_error: Optional[BaseException] = None
    for attempt in range(1, max_attempts + 1):
        try:
            return operation()
        except FetchError as e:
            if not e.retryable:
                raise
            last_error = e
        except retry_on as e:
            last_error = e

        logger.warning(
            "fetch_attempt_failed",
            source_site=source_site,
            attempt=attempt,
            max_attempts=max_attempts,
            error=str(last_error),
            error_type=type(last_error).__name__
        )
        if attempt < max_attempts:
            sleep(retry_delay * attempt)

    raise FetchError(
        f"{source_site} fetch failed after {max_attempts} attempts: {last_error}",
        source_site=source_site,
        retryable=True,
        attempts=max_attempts
    ) from last_error


class DegradedSource(SourceAdapter):
    """
    Static dataset standing in for a source that cannot be reached.

    Yields the records as a single RECORDS document, then END_OF_STREAM.
    """

    def __init__(self, source_site: str, records: List[Dict[str, object]], origin_url: Optional[str] = None):
        self.source_site = source_site
        self.records = [dict(record) for record in records]
        self.origin_url = origin_url
        logger.warning("degraded_source_selected", source_site=source_site, records=len(self.records))

    def fetch(self, cursor: int) -> FetchResult:
        if cursor > 0:
            return END_OF_STREAM
        return RawDocument(
            source_site=self.source_site,
            content=[dict(record) for record in self.records],
            kind=DocumentKind.RECORDS,
            page_index=cursor,
            origin_url=self.origin_url,
        )
