"""Lazy page walk over USAspending award search results.

An `AwardSearch` is a finite, restartable iterable: each ``iter()`` returns a
new `AwardCursor` that starts at page 1 and fetches pages only as records are
consumed. The walk ends when the upstream reports no further page, a page
comes back empty, the configured ``max_results`` is reached, or a page request
fails. The cursor's ``outcome`` tells which of these happened and ``error``
carries the failure for aborted walks, so callers never have to catch
transport errors.

Each cursor owns its own state. The search's ``outcome``, ``error`` and
counters mirror the most recently started cursor.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING

from loguru import logger

from ...exceptions import APIError, FailureKind, get_error_code
from ...models.enrichment import SearchOutcome
from ...models.usaspending import AwardSearchFilter, USAspendingAwardRecord


if TYPE_CHECKING:
    from .client import USAspendingAwardClient


_FINISHED = (SearchOutcome.EXHAUSTED, SearchOutcome.LIMIT_REACHED, SearchOutcome.DISABLED)


class AwardCursor:
    """One pass over a search; an iterator of award records."""

    def __init__(self, search: AwardSearch):
        self.search = search
        self.outcome = SearchOutcome.PENDING
        self.error: APIError | None = None
        self.pages_fetched = 0
        self.records_yielded = 0
        self._records = self._walk()

    @property
    def aborted(self) -> bool:
        return self.outcome == SearchOutcome.ABORTED

    @property
    def completed(self) -> bool:
        """True when the walk ended on its own terms (not aborted, not abandoned)."""
        return self.outcome in _FINISHED

    @property
    def failure_kind(self) -> FailureKind | None:
        """Why the walk produced no further data: DISABLED, or the error's kind."""
        if self.outcome == SearchOutcome.DISABLED:
            return FailureKind.DISABLED
        if self.error is not None:
            return self.error.failure_kind
        return None

    def __iter__(self) -> AwardCursor:
        return self

    def __next__(self) -> USAspendingAwardRecord:
        return next(self._records)

    def _finish(self, outcome: SearchOutcome) -> None:
        self.outcome = outcome
        logger.info(
            f"Award search {outcome.value}: {self.records_yielded} records "
            f"from {self.pages_fetched} pages"
        )

    def _walk(self) -> Iterator[USAspendingAwardRecord]:
        client = self.search.client
        max_results = self.search.max_results

        if not client.is_enabled():
            logger.debug("USAspending disabled, award search yields nothing")
            self.outcome = SearchOutcome.DISABLED
            return

        page_number = 1
        while True:
            try:
                page = client.search_page(self.search.search_filter, page_number)
            except APIError as e:
                self.error = e
                logger.warning(
                    f"Award search aborted on page {page_number} "
                    f"({e.failure_kind.value}, code={get_error_code(e)}): {e.message}"
                )
                self._finish(SearchOutcome.ABORTED)
                return

            self.pages_fetched += 1
            awards = page.awards
            if not awards:
                # Zero results is end-of-data even if the page claimed more.
                self._finish(SearchOutcome.EXHAUSTED)
                return

            for record in awards:
                if self.records_yielded >= max_results:
                    self._finish(SearchOutcome.LIMIT_REACHED)
                    return
                self.records_yielded += 1
                yield record

            if not page.has_more():
                self._finish(SearchOutcome.EXHAUSTED)
                return
            if self.records_yielded >= max_results:
                self._finish(SearchOutcome.LIMIT_REACHED)
                return

            page_number += 1


class AwardSearch:
    """Iterable of award records produced by paging through one search."""

    def __init__(
        self,
        client: USAspendingAwardClient,
        search_filter: AwardSearchFilter,
        max_results: int,
    ):
        self.client = client
        self.search_filter = search_filter
        self.max_results = max_results
        self._cursor: AwardCursor | None = None

    def __iter__(self) -> AwardCursor:
        self._cursor = AwardCursor(self)
        return self._cursor

    @property
    def outcome(self) -> SearchOutcome:
        return self._cursor.outcome if self._cursor else SearchOutcome.PENDING

    @property
    def error(self) -> APIError | None:
        return self._cursor.error if self._cursor else None

    @property
    def pages_fetched(self) -> int:
        return self._cursor.pages_fetched if self._cursor else 0

    @property
    def records_yielded(self) -> int:
        return self._cursor.records_yielded if self._cursor else 0

    @property
    def failure_kind(self) -> FailureKind | None:
        return self._cursor.failure_kind if self._cursor else None

    @property
    def aborted(self) -> bool:
        return self.outcome == SearchOutcome.ABORTED

    @property
    def completed(self) -> bool:
        return self.outcome in _FINISHED


__all__ = ["AwardCursor", "AwardSearch"]
