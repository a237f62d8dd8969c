"""
Suggestion dropdown state machine.

The dropdown shows quick actions while the query is empty and live
predictions otherwise. Both are exposed as one tagged list of
SuggestionItem so keyboard navigation never has to reconcile two arrays.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from domain.models import (
    ListState,
    Prediction,
    QuickAction,
    SuggestionItem,
    SuggestionKind,
)

logger = logging.getLogger(__name__)

PredictionHandler = Callable[[Prediction], Any]

KEY_NEXT = "ArrowDown"
KEY_PREVIOUS = "ArrowUp"
KEY_ACTIVATE = "Enter"
KEY_CANCEL = "Escape"


class SuggestionListController:
    def __init__(
        self,
        quick_actions: Sequence[QuickAction] = (),
        on_prediction: Optional[PredictionHandler] = None,
        blur_grace: float = 0.2,
    ):
        self.quick_actions: List[QuickAction] = list(quick_actions)
        self.on_prediction = on_prediction
        self.blur_grace = blur_grace
        self.focused = False
        self.query = ""
        self.predictions: List[Prediction] = []
        self.state = ListState.CLOSED
        self.index = -1
        self._blur_handle: Optional[asyncio.TimerHandle] = None

    @property
    def items(self) -> List[SuggestionItem]:
        """Currently visible entries, in display order."""
        if self.state is ListState.SHOWING_QUICK_ACTIONS:
            return [SuggestionItem(SuggestionKind.QUICK_ACTION, a) for a in self.quick_actions]
        if self.state is ListState.SHOWING_PREDICTIONS:
            return [SuggestionItem(SuggestionKind.PREDICTION, p) for p in self.predictions]
        return []

    @property
    def active_item(self) -> Optional[SuggestionItem]:
        items = self.items
        if 0 <= self.index < len(items):
            return items[self.index]
        return None

    # -- input events -------------------------------------------------

    def focus(self) -> None:
        self._cancel_blur()
        self.focused = True
        self.index = -1
        self._recompute()

    def blur(self) -> None:
        """Close after a short grace period so a pending click can still land."""
        self._cancel_blur()
        loop = asyncio.get_running_loop()
        self._blur_handle = loop.call_later(self.blur_grace, self._blur_now)

    def cancel(self) -> None:
        self.close()

    def close(self) -> None:
        self._cancel_blur()
        self.focused = False
        self.index = -1
        self._recompute()

    def query_changed(self, text: str) -> None:
        self.query = text
        self.index = -1
        self._recompute()

    def predictions_changed(self, predictions: Sequence[Prediction], loading: bool = False) -> None:
        self.predictions = list(predictions)
        self._recompute()
        if self.index >= len(self.items):
            self.index = -1

    # -- navigation ---------------------------------------------------

    def next(self) -> int:
        total = len(self.items)
        if total:
            self.index = self.index + 1 if self.index < total - 1 else 0
        return self.index

    def previous(self) -> int:
        total = len(self.items)
        if total:
            self.index = self.index - 1 if self.index > 0 else total - 1
        return self.index

    async def activate(self) -> bool:
        return await self.activate_index(self.index)

    async def activate_index(self, index: int) -> bool:
        """Run the entry at `index`; returns False when there is nothing to run."""
        items = self.items
        if index < 0 or index >= len(items):
            return False
        item = items[index]
        if item.kind is SuggestionKind.QUICK_ACTION:
            action: QuickAction = item.payload  # type: ignore[assignment]
            logger.debug("Quick action selected: %s", action.id)
            result = action.effect() if action.effect else None
            self.close()
            if inspect.isawaitable(result):
                await result
            return True

        prediction: Prediction = item.payload  # type: ignore[assignment]
        if self.on_prediction is None:
            return False
        result = self.on_prediction(prediction)
        if inspect.isawaitable(result):
            await result
        return True

    async def handle_key(self, key: str) -> bool:
        """Keyboard entry point; returns True when the key was consumed."""
        if key == KEY_CANCEL:
            self.cancel()
            return True
        if not self.focused or not self.items:
            return False
        if key == KEY_NEXT:
            self.next()
        elif key == KEY_PREVIOUS:
            self.previous()
        elif key == KEY_ACTIVATE:
            await self.activate()
        else:
            return False
        return True

    # -- internals ----------------------------------------------------

    def _blur_now(self) -> None:
        self._blur_handle = None
        self.close()

    def _cancel_blur(self) -> None:
        if self._blur_handle is not None:
            self._blur_handle.cancel()
            self._blur_handle = None

    def _recompute(self) -> None:
        if not self.focused:
            state = ListState.CLOSED
        elif not self.query:
            state = ListState.SHOWING_QUICK_ACTIONS if self.quick_actions else ListState.CLOSED
        elif self.predictions:
            state = ListState.SHOWING_PREDICTIONS
        else:
            state = ListState.CLOSED
        if state is not self.state:
            logger.debug("Suggestion list %s -> %s", self.state.value, state.value)
            self.state = state
            self.index = -1


def default_quick_actions(
    set_query: Callable[[str], None],
    use_location: Optional[Callable[[], Awaitable[Any]]] = None,
) -> List[QuickAction]:
    """Shortcuts offered on an empty query: locate the user, or search a category nearby."""
    actions: List[QuickAction] = [
        QuickAction(
            id="use-location",
            label="Use my location",
            description="Current position",
            shortcut="⌘ L",
            badge="Location",
            effect=use_location,
        ),
    ]
    categories = [
        ("restaurants", "Find restaurants", "dining", "Nearby dining", "⌘ R", "restaurants near me"),
        ("universities", "Find universities", "education", "Education", "⌘ U", "universities near me"),
        ("shopping", "Find shopping", "retail", "Retail stores", "⌘ S", "shopping malls near me"),
        ("hospitals", "Find hospitals", "healthcare", "Healthcare", "⌘ H", "hospitals near me"),
        ("gas-stations", "Find gas stations", "fuel", "Fuel stations", "⌘ G", "gas stations near me"),
    ]
    for action_id, label, hint, description, shortcut, text in categories:
        actions.append(
            QuickAction(
                id=action_id,
                label=label,
                category_hint=hint,
                description=description,
                shortcut=shortcut,
                badge="Category",
                effect=(lambda text=text: set_query(text)),
            )
        )
    return actions
