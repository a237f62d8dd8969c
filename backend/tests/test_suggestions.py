import asyncio

import pytest

from conftest import make_prediction
from domain.models import ListState, QuickAction, SuggestionKind
from services.suggestions import SuggestionListController, default_quick_actions


def _actions(log=None):
    log = log if log is not None else []
    return [
        QuickAction(id="one", label="One", effect=lambda: log.append("one")),
        QuickAction(id="two", label="Two", effect=lambda: log.append("two")),
        QuickAction(id="three", label="Three", effect=lambda: log.append("three")),
    ]


class TestStates:
    def test_focus_with_empty_query_shows_quick_actions(self):
        controller = SuggestionListController(_actions())
        controller.focus()
        assert controller.state is ListState.SHOWING_QUICK_ACTIONS
        assert controller.index == -1
        assert [i.kind for i in controller.items] == [SuggestionKind.QUICK_ACTION] * 3

    def test_predictions_replace_quick_actions_once_query_is_typed(self):
        controller = SuggestionListController(_actions())
        controller.focus()
        controller.query_changed("ca")
        assert controller.state is ListState.CLOSED
        controller.predictions_changed([make_prediction("a", "Cafe A"), make_prediction("b", "Cafe B")])
        assert controller.state is ListState.SHOWING_PREDICTIONS
        assert [i.payload.id for i in controller.items] == ["a", "b"]

    def test_emptying_query_goes_back_to_quick_actions_or_closed(self):
        controller = SuggestionListController(_actions())
        controller.focus()
        controller.query_changed("ca")
        controller.predictions_changed([make_prediction("a", "Cafe A")])
        controller.query_changed("")
        assert controller.state is ListState.SHOWING_QUICK_ACTIONS

        controller.close()
        controller.query_changed("")
        assert controller.state is ListState.CLOSED

    def test_escape_closes_and_resets_index(self):
        controller = SuggestionListController(_actions())
        controller.focus()
        controller.next()
        asyncio.run(controller.handle_key("Escape"))
        assert controller.state is ListState.CLOSED
        assert controller.index == -1

    def test_blur_closes_after_grace_period(self):
        async def scenario():
            controller = SuggestionListController(_actions(), blur_grace=0.05)
            controller.focus()
            controller.blur()
            still_open = controller.state
            await asyncio.sleep(0.15)
            return still_open, controller.state

        still_open, after = asyncio.run(scenario())
        assert still_open is ListState.SHOWING_QUICK_ACTIONS
        assert after is ListState.CLOSED

    def test_refocus_within_grace_keeps_list_open(self):
        async def scenario():
            controller = SuggestionListController(_actions(), blur_grace=0.05)
            controller.focus()
            controller.blur()
            controller.focus()
            await asyncio.sleep(0.15)
            return controller.state

        assert asyncio.run(scenario()) is ListState.SHOWING_QUICK_ACTIONS


class TestNavigation:
    def test_next_from_last_index_wraps_to_zero(self):
        controller = SuggestionListController(_actions())
        controller.focus()
        assert [controller.next() for _ in range(4)] == [0, 1, 2, 0]

    def test_previous_from_no_selection_wraps_to_last(self):
        controller = SuggestionListController(_actions())
        controller.focus()
        assert controller.previous() == 2
        assert controller.previous() == 1

    def test_navigation_on_closed_list_is_a_no_op(self):
        controller = SuggestionListController(_actions())
        assert controller.next() == -1
        assert controller.previous() == -1

    def test_typing_resets_index(self):
        controller = SuggestionListController(_actions())
        controller.focus()
        controller.query_changed("ab")
        controller.predictions_changed([make_prediction("a", "A"), make_prediction("b", "B")])
        controller.next()
        controller.next()
        controller.query_changed("abc")
        assert controller.index == -1


class TestActivation:
    def test_activate_without_selection_does_nothing(self):
        log = []
        controller = SuggestionListController(_actions(log))
        controller.focus()
        assert asyncio.run(controller.activate()) is False
        assert log == []
        assert controller.state is ListState.SHOWING_QUICK_ACTIONS

    def test_activate_quick_action_runs_effect_and_closes(self):
        log = []
        controller = SuggestionListController(_actions(log))
        controller.focus()
        controller.next()
        controller.next()
        asyncio.run(controller.handle_key("Enter"))
        assert log == ["two"]
        assert controller.state is ListState.CLOSED

    def test_async_quick_action_effect_is_awaited(self):
        log = []

        async def effect():
            log.append("located")

        controller = SuggestionListController([QuickAction(id="loc", label="Loc", effect=effect)])
        controller.focus()
        controller.next()
        asyncio.run(controller.activate())
        assert log == ["located"]

    def test_activate_prediction_hands_it_to_handler(self):
        picked = []

        async def on_prediction(prediction):
            picked.append(prediction.id)

        controller = SuggestionListController(_actions(), on_prediction=on_prediction)
        controller.focus()
        controller.query_changed("mu")
        controller.predictions_changed([make_prediction("m1", "Museum"), make_prediction("m2", "Mughal")])
        controller.previous()
        assert asyncio.run(controller.activate()) is True
        assert picked == ["m2"]

    @pytest.mark.parametrize("key", ["ArrowDown", "ArrowUp", "Enter"])
    def test_keys_ignored_when_unfocused(self, key):
        controller = SuggestionListController(_actions())
        assert asyncio.run(controller.handle_key(key)) is False


def test_default_quick_actions_fill_category_queries():
    typed = []
    actions = default_quick_actions(typed.append)

    assert [a.id for a in actions] == [
        "use-location",
        "restaurants",
        "universities",
        "shopping",
        "hospitals",
        "gas-stations",
    ]
    actions[1].effect()
    actions[5].effect()
    assert typed == ["restaurants near me", "gas stations near me"]
    assert actions[0].effect is None
