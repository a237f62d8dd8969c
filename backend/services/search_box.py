from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from domain.models import CategorySpec, ListState, Place, Prediction, QuickAction, SuggestionItem
from services.autocomplete import AutocompleteSequencer
from services.selection import SelectionResolver
from services.suggestions import SuggestionListController, default_quick_actions

logger = logging.getLogger(__name__)

PlaceListener = Callable[[Place], Any]


class SearchBox:
    """
    Search input wiring: keystrokes feed the sequencer, predictions feed the
    dropdown, and an activated prediction is resolved into a Place.
    """

    def __init__(
        self,
        sequencer: AutocompleteSequencer,
        resolver: SelectionResolver,
        quick_actions: Optional[Sequence[QuickAction]] = None,
        use_location: Optional[Callable[[], Awaitable[Any]]] = None,
        blur_grace: float = 0.2,
    ):
        self.sequencer = sequencer
        self.resolver = resolver
        if quick_actions is None:
            quick_actions = default_quick_actions(self.type, use_location)
        self.suggestions = SuggestionListController(
            quick_actions,
            on_prediction=self.select_prediction,
            blur_grace=blur_grace,
        )
        self._place_listeners: List[PlaceListener] = []
        self.resolving = False
        sequencer.add_listener(self.suggestions.predictions_changed)
        resolver.add_listener(self._on_resolved)

    @property
    def query(self) -> str:
        return self.sequencer.query

    @property
    def loading(self) -> bool:
        """True while predictions or the details of a chosen place are loading."""
        return self.sequencer.loading or self.resolving

    @property
    def state(self) -> ListState:
        return self.suggestions.state

    @property
    def items(self) -> List[SuggestionItem]:
        return self.suggestions.items

    def add_place_listener(self, listener: PlaceListener) -> None:
        self._place_listeners.append(listener)

    def type(self, text: str) -> None:
        self.sequencer.set_query(text)
        self.suggestions.query_changed(text)

    def clear(self) -> None:
        self.sequencer.replace_query("")
        self.suggestions.query_changed("")

    def set_category(self, category: Optional[CategorySpec]) -> None:
        self.sequencer.set_category(category)

    def focus(self) -> None:
        self.suggestions.focus()

    def blur(self) -> None:
        self.suggestions.blur()

    async def handle_key(self, key: str) -> bool:
        return await self.suggestions.handle_key(key)

    async def select_prediction(self, prediction: Prediction) -> Optional[Place]:
        return await self.select(prediction.id, prediction.display_text)

    async def select(self, place_id: str, description: str) -> Optional[Place]:
        """Resolve an id and, on success, forward the Place to every listener."""
        self.resolving = True
        try:
            place = await self.resolver.resolve(place_id, description)
        finally:
            self.resolving = False
        if place is None:
            return None
        for listener in list(self._place_listeners):
            result = listener(place)
            if inspect.isawaitable(result):
                await result
        return place

    def dispose(self) -> None:
        self.sequencer.dispose()
        self.suggestions.close()

    def _on_resolved(self, place: Place, description: str) -> None:
        logger.debug("Selected %s as %r", place.id, description)
        self.sequencer.replace_query(description)
        self.suggestions.query_changed(description)
        self.suggestions.close()
