import asyncio

from conftest import make_place, make_prediction
from domain.models import ListState
from services.autocomplete import AutocompleteSequencer
from services.search_box import SearchBox
from services.selection import SelectionResolver

DELAY = 0.05


def _search_box(client, **kwargs):
    sequencer = AutocompleteSequencer(client, debounce_delay=DELAY)
    return SearchBox(sequencer, SelectionResolver(client), blur_grace=0.05, **kwargs)


def test_selecting_prediction_replaces_query_and_closes_list(client):
    prediction = make_prediction("p1", "Badshahi Mosque")
    client.predictions["badsh"] = [prediction, make_prediction("p2", "Badshahi Masjid Road")]
    client.details["p1"] = make_place("p1")
    chosen = []

    async def on_place(place):
        chosen.append(place)

    async def scenario():
        box = _search_box(client)
        box.add_place_listener(on_place)
        box.focus()
        box.type("badsh")
        await asyncio.sleep(DELAY * 3)
        await box.sequencer.wait_idle()
        shown = box.state
        await box.handle_key("ArrowDown")
        await box.handle_key("Enter")
        await asyncio.sleep(DELAY * 3)
        await box.sequencer.wait_idle()
        return box, shown

    box, shown = asyncio.run(scenario())
    assert shown is ListState.SHOWING_PREDICTIONS
    assert box.query == "Badshahi Mosque, Lahore, Pakistan"
    assert box.state is ListState.CLOSED
    assert box.suggestions.index == -1
    assert chosen == [client.details["p1"]]
    # Replacing the query after selection does not trigger another search
    assert [call[0] for call in client.predict_calls] == ["badsh"]


def test_failed_selection_leaves_search_state_alone(client):
    client.predictions["liberty"] = [make_prediction("gone", "Liberty Market")]
    chosen = []

    async def scenario():
        box = _search_box(client)
        box.add_place_listener(chosen.append)
        box.focus()
        box.type("liberty")
        await asyncio.sleep(DELAY * 3)
        await box.sequencer.wait_idle()
        await box.suggestions.activate_index(0)
        return box

    box = asyncio.run(scenario())
    assert box.query == "liberty"
    assert box.state is ListState.SHOWING_PREDICTIONS
    assert chosen == []


def test_quick_action_fills_query_and_searches(client):
    client.predictions["restaurants near me"] = [make_prediction("r1", "Cooco's Den")]

    async def scenario():
        box = _search_box(client)
        box.focus()
        assert box.state is ListState.SHOWING_QUICK_ACTIONS
        await box.suggestions.activate_index(1)
        await asyncio.sleep(DELAY * 3)
        await box.sequencer.wait_idle()
        return box

    box = asyncio.run(scenario())
    assert box.query == "restaurants near me"
    assert box.state is ListState.CLOSED
    assert [p.id for p in box.sequencer.predictions] == ["r1"]


def test_clear_resets_query_and_shows_quick_actions(client):
    client.predictions["gulberg"] = [make_prediction("g1", "Gulberg III")]

    async def scenario():
        box = _search_box(client)
        box.focus()
        box.type("gulberg")
        await asyncio.sleep(DELAY * 3)
        await box.sequencer.wait_idle()
        box.clear()
        return box

    box = asyncio.run(scenario())
    assert box.query == ""
    assert box.sequencer.predictions == []
    assert box.state is ListState.SHOWING_QUICK_ACTIONS


def test_use_location_quick_action_is_wired(client):
    located = []

    async def use_location():
        located.append(True)

    async def scenario():
        box = _search_box(client, use_location=use_location)
        box.focus()
        box.suggestions.next()
        await box.handle_key("Enter")
        return box

    box = asyncio.run(scenario())
    assert located == [True]
    assert box.state is ListState.CLOSED


def test_loading_while_place_details_are_fetched(client):
    client.details["p1"] = make_place("p1")
    gate = asyncio.Event()
    original = client.get_details

    async def gated_details(place_id, fields):
        await gate.wait()
        return await original(place_id, fields)

    client.get_details = gated_details

    async def scenario():
        box = _search_box(client)
        task = asyncio.ensure_future(box.select("p1", "Badshahi Mosque"))
        await asyncio.sleep(0)
        during = box.loading
        gate.set()
        place = await task
        return box, during, place

    box, during, place = asyncio.run(scenario())
    assert during is True
    assert box.loading is False
    assert place == client.details["p1"]
