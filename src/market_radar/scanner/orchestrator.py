"""Fetch orchestrator: polling lifecycle, cancellation and batched scoring."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set, Tuple

from ..analysis.filters import apply_filters
from ..analysis.ranking import rank
from ..analysis.scoring import score_asset, score_dataset
from ..core.concurrency import CancellationToken, FetchGate
from ..core.enums import FetchState
from ..core.errors import CancellationError, EmptyDatasetError
from ..core.models import Dataset, FilterCriteria, RadarSnapshot, RankedAsset, ScoredAsset
from ..data.connector import ListingsConnector
from ..data.credentials import CredentialProvider
from ..data.normalizer import create_dataset

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[RadarSnapshot], None]


class FetchOrchestrator:
    """
    Owns the fetch-and-score lifecycle.

    States go IDLE -> FETCHING -> IDLE | ERROR, with monitoring as an
    orthogonal on/off flag. At most one cycle is in flight: manual refreshes,
    timer ticks and filter-change refetches arriving meanwhile are dropped.
    Each cycle owns a cancellation token; results are published only if the
    token is still live right before publishing, so a superseded cycle can never
    overwrite newer results.
    """

    def __init__(
        self,
        connector: ListingsConnector,
        credentials: CredentialProvider,
        filters: Optional[FilterCriteria] = None,
        config: Optional[Dict] = None,
    ):
        defaults = self._default_config()
        if config:
            defaults.update(config)
        self.config = defaults
        batch_size = self.config["batch_size"]
        # None or 0 scores the whole dataset as one batch
        valid = batch_size is None or (type(batch_size) is int and batch_size >= 0)
        if not valid:
            raise ValueError(f"batch_size must be a non-negative integer or None, got {batch_size!r}")
        self.connector = connector
        self.credentials = credentials

        self._default_filters = filters if filters is not None else FilterCriteria()
        self._filters = self._default_filters
        self._gate = FetchGate("fetch_cycle")

        self._state = FetchState.IDLE
        self._monitoring = False
        self._token: Optional[CancellationToken] = None
        self._cycle_task: Optional[asyncio.Task] = None
        self._timer_task: Optional[asyncio.Task] = None
        self._trigger_tasks: Set[asyncio.Task] = set()

        # Published state, replaced wholesale
        self._ranked: Tuple[RankedAsset, ...] = ()
        self._dataset: Optional[Dataset] = None
        self._population_size = 0
        self._error: Optional[str] = None
        self._last_update: Optional[datetime] = None
        self._cycle_count = 0

        self._listeners: Dict[int, SnapshotListener] = {}
        self._next_listener_id = 0

        logger.info(
            f"Fetch orchestrator initialized (limit={self.config['limit']}, "
            f"interval={self.config['refresh_interval_minutes']}m, batch={self.config['batch_size']})"
        )

    @staticmethod
    def _default_config() -> Dict:
        return {
            "limit": 500,
            "refresh_interval_minutes": 5,
            "batch_size": 100,
            "convert": "USD",
        }

    # ------------------------------------------------------------------
    # Published state
    # ------------------------------------------------------------------

    @property
    def state(self) -> FetchState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._state == FetchState.FETCHING

    @property
    def monitoring(self) -> bool:
        return self._monitoring

    @property
    def ranked(self) -> Tuple[RankedAsset, ...]:
        return self._ranked

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def last_update(self) -> Optional[datetime]:
        return self._last_update

    @property
    def filters(self) -> FilterCriteria:
        return self._filters

    def snapshot(self) -> RadarSnapshot:
        return RadarSnapshot(
            ranked=self._ranked,
            loading=self.loading,
            error=self._error,
            last_update=self._last_update,
            monitoring=self._monitoring,
            state=self._state,
            filters=self._filters,
            population_size=self._population_size,
            cycle_id=self._cycle_count,
        )

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a listener for state changes; returns an unsubscribe handle."""
        listener_id = self._next_listener_id
        self._next_listener_id += 1
        self._listeners[listener_id] = listener

        def unsubscribe() -> None:
            self._listeners.pop(listener_id, None)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners.values()):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Error in snapshot listener: {e}")

    # ------------------------------------------------------------------
    # Fetch cycle
    # ------------------------------------------------------------------

    async def refetch_once(self) -> bool:
        """
        Run one fetch-and-score cycle.

        Returns False when the request was dropped because another cycle was
        in flight, True otherwise (whatever the outcome of the cycle).
        """
        async with self._gate.try_enter() as entered:
            if not entered:
                logger.debug("Fetch already in flight, refresh request dropped")
                return False

            if self._token is not None:
                self._token.cancel()
            token = CancellationToken()
            self._token = token
            filters = self._filters

            self._state = FetchState.FETCHING
            self._error = None
            self._notify()

            cycle = asyncio.create_task(self._run_cycle(filters))
            self._cycle_task = cycle
            token.add_callback(cycle.cancel)

            try:
                dataset, ranked = await cycle
                token.raise_if_cancelled()
                if self._filters is not filters:
                    # Criteria changed while the fetch was in flight
                    ranked = self._rank_dataset(dataset, self._filters)
                self._publish(dataset, ranked)
            except (CancellationError, asyncio.CancelledError):
                if not token.cancelled:
                    raise
                logger.debug(f"Fetch cycle {token.id} cancelled, results discarded")
            except Exception as e:
                logger.error(f"Fetch cycle {token.id} failed: {e}")
                self._state = FetchState.ERROR
                self._error = str(e) or type(e).__name__
            finally:
                if self._cycle_task is cycle:
                    self._cycle_task = None
                if self._state == FetchState.FETCHING:
                    self._state = FetchState.IDLE
                self._notify()
            return True

    async def _run_cycle(self, filters: FilterCriteria) -> Tuple[Dataset, Tuple[RankedAsset, ...]]:
        # Resolved every cycle so a credential change applies to the next fetch
        api_key = self.credentials.get()
        raw = await self.connector.fetch_listings(self.config["limit"], api_key)

        dataset = create_dataset(raw, self.config["convert"])
        if len(dataset) == 0:
            raise EmptyDatasetError()

        scored = await self._score_in_batches(dataset, filters)
        visible = apply_filters(scored, filters)
        return dataset, tuple(rank(visible))

    async def _score_in_batches(self, dataset: Dataset, filters: FilterCriteria) -> List[ScoredAsset]:
        """Score in fixed-size chunks, yielding to the event loop between chunks."""
        records = dataset.records
        batch_size = self.config["batch_size"] or len(records)
        scored: List[ScoredAsset] = []

        for start in range(0, len(records), batch_size):
            chunk = records[start:start + batch_size]
            scored.extend(
                score_asset(record, dataset.volume_metrics, dataset.price_metrics, filters)
                for record in chunk
            )
            if start + batch_size < len(records):
                await asyncio.sleep(0)

        return scored

    @staticmethod
    def _rank_dataset(dataset: Dataset, filters: FilterCriteria) -> Tuple[RankedAsset, ...]:
        return tuple(rank(apply_filters(score_dataset(dataset, filters), filters)))

    def _publish(self, dataset: Dataset, ranked: Tuple[RankedAsset, ...]) -> None:
        population_size = len(dataset)
        self._dataset = dataset
        self._ranked = ranked
        self._population_size = population_size
        self._last_update = datetime.now(timezone.utc)
        self._state = FetchState.IDLE
        self._cycle_count += 1
        logger.info(f"Published {len(ranked)} ranked assets ({population_size} fetched)")

    # ------------------------------------------------------------------
    # Monitoring lifecycle
    # ------------------------------------------------------------------

    async def start_monitoring(self) -> None:
        """Fetch now, then every refresh interval, until stopped."""
        if self._monitoring:
            return
        self._monitoring = True
        logger.info("Monitoring started")
        self._request_refetch()
        self._timer_task = asyncio.create_task(self._timer_loop())
        self._notify()

    async def stop_monitoring(self) -> None:
        """Disarm the timer; an in-flight fetch and published data are kept."""
        self._monitoring = False
        self._disarm_timer()
        logger.info("Monitoring stopped")
        self._notify()

    async def end_monitoring(self) -> None:
        """Disarm the timer, cancel any in-flight fetch and clear published data."""
        self._monitoring = False
        self._disarm_timer()
        self._cancel_inflight()

        self._dataset = None
        self._ranked = ()
        self._population_size = 0
        self._error = None
        self._last_update = None
        logger.info("Monitoring ended, published data cleared")
        self._notify()

        await self._drain()

    async def close(self) -> None:
        """Teardown: disarm the timer, cancel in-flight work and close the connector."""
        self._monitoring = False
        self._disarm_timer()
        self._cancel_inflight()
        await self._drain()
        await self.connector.close()
        logger.info("Fetch orchestrator closed")

    async def update_filters(self, filters: Optional[FilterCriteria] = None, **changes) -> FilterCriteria:
        """
        Replace the filter criteria.

        The last fetched dataset is re-ranked under the new criteria right
        away; while monitoring, a refetch is also requested. A cycle already
        in flight re-ranks against the new criteria before it publishes.
        """
        new_filters = filters if filters is not None else self._filters.updated(**changes)
        self._filters = new_filters
        logger.info(f"Filters updated: {new_filters.model_dump(exclude_none=True)}")
        if self._dataset is not None:
            self._ranked = self._rank_dataset(self._dataset, new_filters)
        if self._monitoring:
            self._request_refetch()
        self._notify()
        return new_filters

    async def reset_filters(self) -> FilterCriteria:
        return await self.update_filters(self._default_filters)

    def _request_refetch(self) -> Optional[asyncio.Task]:
        """Spawn a refetch unless one is already in flight."""
        if self._gate.busy:
            logger.debug("Fetch in flight, trigger skipped")
            return None
        task = asyncio.create_task(self.refetch_once())
        self._trigger_tasks.add(task)
        task.add_done_callback(self._trigger_tasks.discard)
        return task

    async def _timer_loop(self) -> None:
        interval = self.config["refresh_interval_minutes"] * 60
        while self._monitoring:
            await asyncio.sleep(interval)
            if not self._monitoring:
                break
            self._request_refetch()

    def _disarm_timer(self) -> None:
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None

    def _cancel_inflight(self) -> None:
        if self._token is not None:
            self._token.cancel()
        for task in list(self._trigger_tasks):
            task.cancel()

    async def _drain(self) -> None:
        """Wait for cancelled work to unwind."""
        pending = [t for t in self._trigger_tasks if not t.done()]
        if self._cycle_task is not None and not self._cycle_task.done():
            pending.append(self._cycle_task)
        current = asyncio.current_task()
        pending = [t for t in pending if t is not current]
        if pending:
            await asyncio.wait(pending)
