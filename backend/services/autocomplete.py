"""
Autocomplete request sequencing.

Turns raw keystrokes into a stable prediction list: input is debounced,
every settled query mints a new request token, and a response is applied
only if its token is still the latest one when it arrives. The provider
offers no cancellation, so stale responses are simply dropped.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional, Set

from domain.models import CategorySpec, Coordinate, Prediction
from services.debounce import Debouncer
from services.places_client import PlacesClient
from services.places_types import PredictionResponse, ProviderStatus

logger = logging.getLogger(__name__)

PredictionsListener = Callable[[List[Prediction], bool], None]


class AutocompleteSequencer:
    def __init__(
        self,
        client: PlacesClient,
        *,
        debounce_delay: float = 0.3,
        min_chars: int = 2,
        max_predictions: int = 5,
        bias: Optional[Callable[[], Optional[Coordinate]]] = None,
    ):
        self.client = client
        self.min_chars = min_chars
        self.max_predictions = max_predictions
        self.query: str = ""
        self.predictions: List[Prediction] = []
        self.loading: bool = False
        self.category: Optional[CategorySpec] = None
        self._bias = bias
        self._latest_token = 0
        self._listeners: List[PredictionsListener] = []
        self._tasks: Set[asyncio.Task] = set()
        self._disposed = False
        self._debouncer: Debouncer[str] = Debouncer(debounce_delay, self._on_settled, initial="")

    @property
    def latest_token(self) -> int:
        return self._latest_token

    @property
    def debounced_query(self) -> str:
        return self._debouncer.value or ""

    def add_listener(self, listener: PredictionsListener) -> None:
        """Register a callback invoked with (predictions, loading) on every change."""
        self._listeners.append(listener)

    def set_query(self, text: str) -> None:
        """Record a keystroke-level change of the query."""
        if self._disposed:
            return
        self.query = text
        if not text:
            # Cleared input hides results right away instead of after the delay.
            self._debouncer.reset("")
            self._mint_token()
            self._apply([], loading=False)
            return
        self._debouncer.push(text)

    def replace_query(self, text: str) -> None:
        """Set the query programmatically (selection, clear) without searching."""
        if self._disposed:
            return
        self.query = text
        self._debouncer.reset(text)
        self._mint_token()
        self._apply([], loading=False)

    def set_category(self, category: Optional[CategorySpec]) -> None:
        """Switch the category filter and re-run the current query if it is searchable."""
        if self._disposed:
            return
        self.category = category
        current = self.debounced_query
        if len(current) >= self.min_chars:
            self._spawn(current)

    async def request(self, query: str, token: Optional[int] = None) -> bool:
        """
        Issue one prediction request for a settled query.

        `token` is minted here unless the caller already minted it. Returns
        True when the outcome was applied, False when a newer request
        superseded it while it was in flight.
        """
        if token is None:
            token = self._mint_token()
        elif token != self._latest_token:
            return False
        if not query or len(query) < self.min_chars:
            self._apply([], loading=False)
            return True

        self.loading = True
        self._notify()
        bias = self._bias() if self._bias is not None else None
        logger.debug("Autocomplete request #%d for %r (category=%s)", token, query,
                     self.category.key if self.category else None)
        try:
            response = await self.client.predict_text(query, self.category, bias)
        except Exception:
            logger.warning("Autocomplete request #%d for %r failed", token, query, exc_info=True)
            response = PredictionResponse(status=ProviderStatus.UNKNOWN_ERROR)

        if self._disposed or token != self._latest_token:
            logger.debug(
                "Ignoring outdated autocomplete request #%d for %r (latest is #%d)",
                token,
                query,
                self._latest_token,
            )
            return False

        if response.ok:
            predictions = list(response.predictions[: self.max_predictions])
            logger.debug("Request #%d found %d results for %r", token, len(response.predictions), query)
        else:
            predictions = []
            logger.debug("Request #%d no results or error for %r: %s", token, query, response.status.value)
        self._apply(predictions, loading=False)
        return True

    async def wait_idle(self) -> None:
        """Wait until every request spawned so far has settled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def dispose(self) -> None:
        self._debouncer.dispose()
        self._disposed = True
        self._listeners.clear()

    def _mint_token(self) -> int:
        self._latest_token += 1
        return self._latest_token

    def _on_settled(self, value: str) -> None:
        self._spawn(value)

    def _spawn(self, query: str) -> None:
        task = asyncio.ensure_future(self.request(query, self._mint_token()))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _apply(self, predictions: List[Prediction], loading: bool) -> None:
        self.predictions = predictions
        self.loading = loading
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(list(self.predictions), self.loading)
