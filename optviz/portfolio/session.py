"""
Portfolio session.

The UI controller that ties the pieces together: it owns the in-memory
portfolio, writes every change through to the local cache, optionally
mirrors it to the backend, and keeps the chart overlay in sync.

Each mutation runs validate -> mutate -> save -> project to completion
under a lock, so concurrent dashboard requests see a consistent list.
"""

from __future__ import annotations
from datetime import date, datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple, TypeVar
import logging
import threading

from optviz.data.provider import DataSource, PriceSeries, PriceSeriesProvider
from optviz.models.option_record import OptionDraft, OptionRecord
from optviz.portfolio.api_client import OptionsApiClient
from optviz.portfolio.cache import PortfolioCache
from optviz.portfolio.form import PortfolioForm, validate_form_values
from optviz.portfolio.portfolio import OptionStatus, Portfolio, PortfolioSummary, option_status
from optviz.utils.error_handling import BackendUnavailableError, OptionValidationError
from optviz.visualization.projector import OverlayProjector
from optviz.visualization.surface import ChartHandle, RenderSurface, mount_chart

logger = logging.getLogger(__name__)

T = TypeVar("T")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _same_option(a: OptionRecord, b: OptionRecord) -> bool:
    return (a.kind, a.strike_price, a.expiry_date, a.size) == (b.kind, b.strike_price, b.expiry_date, b.size)


class PortfolioSession:
    """
    Single-user portfolio controller.

    Usage:
        session = PortfolioSession(cache, provider)
        session.start()                 # load cached portfolio
        session.mount(surface)          # build the chart and draw the overlay
        session.submit(form)            # add from a filled-in form
        session.delete_option(3)
        session.unmount()
    """

    def __init__(
        self,
        cache: PortfolioCache,
        provider: PriceSeriesProvider,
        projector: Optional[OverlayProjector] = None,
        api_client: Optional[OptionsApiClient] = None,
        today_provider: Callable[[], date] = date.today,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.cache = cache
        self.provider = provider
        self.projector = projector or OverlayProjector()
        self.api_client = api_client
        self.today_provider = today_provider
        self.clock = clock

        self.portfolio = Portfolio()
        self.data_source = DataSource.LOADING
        self.price_series: Optional[PriceSeries] = None
        self._chart: Optional[ChartHandle] = None
        self._next_local_id = 1
        # local record id -> backend row id, only for records the backend stored
        self._backend_ids: Dict[int, int] = {}
        self._lock = threading.Lock()

    # ---------- Lifecycle ----------

    @property
    def chart(self) -> Optional[ChartHandle]:
        return self._chart

    def start(self) -> bool:
        """Load the cached portfolio and project it (no-op on the chart until mounted)."""
        with self._lock:
            records = self.cache.load()
            self.portfolio.replace(records)
            self._next_local_id = max(self._next_local_id, self.portfolio.max_id() + 1)
            self._backend_ids = self._match_backend_rows(records)
            logger.info(f"Portfolio session started with {len(records)} cached options")
            return self._refresh()

    def mount(self, surface: RenderSurface) -> ChartHandle:
        """
        Load prices, create the primary series on ``surface`` and draw the overlay.

        Any chart mounted earlier is torn down first.
        """
        with self._lock:
            if self._chart is not None:
                self._teardown()

            self.data_source = DataSource.LOADING
            series = self.provider.load()
            self.price_series = series
            self.data_source = series.source

            self._chart = mount_chart(surface, series.bars, self.projector.config, symbol=series.symbol)
            self._refresh()
            return self._chart

    def unmount(self) -> None:
        with self._lock:
            self._teardown()

    def refresh(self) -> bool:
        with self._lock:
            return self._refresh()

    def _refresh(self) -> bool:
        return self.projector.refresh(self._chart, list(self.portfolio))

    def render_chart(self, render: Callable[[RenderSurface], T]) -> Optional[T]:
        """Run ``render`` against the mounted surface under the session lock (None if unmounted)."""
        with self._lock:
            if self._chart is None or not self._chart.is_ready:
                return None
            return render(self._chart.surface)

    def _teardown(self):
        if self._chart is not None:
            self._chart.teardown()
            self._chart = None

    # ---------- Mutations ----------

    def new_form(self) -> PortfolioForm:
        return PortfolioForm(today_provider=self.today_provider)

    def submit(self, form: PortfolioForm) -> Optional[OptionRecord]:
        """Submit ``form``; returns the new record, or None if the form has errors."""
        draft = form.submit()
        if draft is None:
            return None
        return self.add_option(draft)

    def add_option(self, draft: OptionDraft) -> OptionRecord:
        """
        Add a validated draft to the portfolio.

        Raises:
            OptionValidationError: if the draft breaks the entry rules or the
                backend rejects it
        """
        _, errors = validate_form_values(draft.to_payload(), self.today_provider())
        if errors:
            field, message = next(iter(errors.items()))
            raise OptionValidationError("Invalid option", message, field=field)

        with self._lock:
            record_id, backend_id = self._assign_id(draft)
            if backend_id is not None:
                self._backend_ids[record_id] = backend_id
            record = OptionRecord.from_draft(draft, record_id, self.clock())
            self.portfolio.add(record)
            self._next_local_id = max(self._next_local_id, record_id + 1)
            self.cache.save(list(self.portfolio))
            self._refresh()

        logger.info(f"Added option {record.id}: {record.kind.value} @ {record.strike_price} exp {record.expiry_date}")
        return record

    def _assign_id(self, draft: OptionDraft) -> Tuple[int, Optional[int]]:
        """Pick the record id; the second item is the backend row id when the backend stored it."""
        if self.api_client is not None:
            try:
                backend_id = self.api_client.add_option(draft)
            except BackendUnavailableError as e:
                logger.warning(f"Options API unavailable, using a local id: {e}")
            else:
                if self.portfolio.get(backend_id) is None:
                    return backend_id, backend_id
                logger.warning(f"Backend id {backend_id} already used locally, using a local id")
                return self._next_local_id, backend_id
        return self._next_local_id, None

    def _match_backend_rows(self, records: List[OptionRecord]) -> Dict[int, int]:
        """Map cached records to the backend rows that hold the same id and values."""
        if self.api_client is None or not records:
            return {}
        try:
            rows = {row.id: row for row in self.api_client.list_options()}
        except BackendUnavailableError as e:
            logger.warning(f"Options API unavailable, cached options stay local: {e}")
            return {}
        matched = {}
        for record in records:
            row = rows.get(record.id)
            if row is not None and _same_option(row, record):
                matched[record.id] = row.id
        logger.debug(f"Matched {len(matched)} of {len(records)} cached options to backend rows")
        return matched

    def delete_option(self, option_id: int) -> bool:
        """Remove an option; unknown ids leave everything unchanged."""
        with self._lock:
            if not self.portfolio.remove(option_id):
                logger.debug(f"Delete ignored, unknown option id {option_id}")
                return False
            backend_id = self._backend_ids.pop(option_id, None)
            self.cache.save(list(self.portfolio))
            self._refresh()

        if self.api_client is not None and backend_id is not None:
            try:
                self.api_client.delete_option(backend_id)
            except BackendUnavailableError as e:
                logger.warning(f"Could not delete option {option_id} (backend id {backend_id}) on the backend: {e}")

        logger.info(f"Deleted option {option_id}")
        return True

    def clear_all(self) -> int:
        with self._lock:
            removed = self.portfolio.clear()
            self._backend_ids.clear()
            self.cache.save([])
            self._refresh()
        logger.info(f"Cleared {removed} options")
        return removed

    # ---------- Queries ----------

    @property
    def options(self) -> List[OptionRecord]:
        return list(self.portfolio)

    def summary(self) -> PortfolioSummary:
        return self.portfolio.summary()

    def status(self, record: OptionRecord) -> OptionStatus:
        return option_status(record, self.today_provider())
