"""
Tests for the debounced place search suggester.
"""
import asyncio
import pytest

from nirapod_map.errors import TransportError
from nirapod_map.notifications import NotificationKind
from nirapod_map.place_search import PlaceSearchSuggester
from nirapod_map.schemas import BoundingBox, GeoPoint, SearchSuggestion

from conftest import DHAKA_BOX, FakePlaceService, wait_for_calls

HINT_BOX = BoundingBox.from_corners(20.59, 88.01, 26.63, 92.68)


def make_suggester(service, notifications, debounce=0.05):
    return PlaceSearchSuggester(service, notifications, hint_box=HINT_BOX, debounce_seconds=debounce)


class TestPlaceSearchSuggester:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "D", " D ", "   "])
    async def test_short_input_makes_no_call(self, notifications, text):
        service = FakePlaceService()
        suggester = make_suggester(service, notifications)

        result = await suggester.suggest(text)

        assert result == ()
        assert service.calls == []
        assert suggester.requests_sent == 0

    @pytest.mark.asyncio
    async def test_scenario_d_typing_burst_sends_one_request(self, notifications):
        """'Dha', 'Dhak', 'Dhaka' inside the window -> one request for 'Dhaka'."""
        service = FakePlaceService()
        suggester = make_suggester(service, notifications, debounce=0.3)

        suggester.input_changed("Dha")
        await asyncio.sleep(0.03)
        suggester.input_changed("Dhak")
        await asyncio.sleep(0.03)
        suggester.input_changed("Dhaka")
        await suggester.settle()

        assert service.calls == ["Dhaka"]
        assert [s.label for s in suggester.suggestions] == ["Dhaka"]

    @pytest.mark.asyncio
    async def test_concurrent_suggest_calls_share_one_dispatch(self, notifications):
        service = FakePlaceService()
        suggester = make_suggester(service, notifications)

        results = await asyncio.gather(
            suggester.suggest("Dha"), suggester.suggest("Dhak"), suggester.suggest("Dhaka"),
        )

        assert service.calls == ["Dhaka"]
        assert all([s.label for s in r] == ["Dhaka"] for r in results)

    @pytest.mark.asyncio
    async def test_stale_generation_is_discarded(self, notifications):
        """A slow older query never overwrites a newer one."""
        service = FakePlaceService(gated=True)
        suggester = make_suggester(service, notifications, debounce=0.01)

        suggester.input_changed("Gulshan")
        await wait_for_calls(service, 1)
        suggester.input_changed("Banani")
        await wait_for_calls(service, 2)

        service.gates[1].set_result([SearchSuggestion(label="Banani", location=GeoPoint(lat=23.79, lng=90.40))])
        await asyncio.sleep(0)
        service.gates[0].set_result([SearchSuggestion(label="Gulshan", location=GeoPoint(lat=23.78, lng=90.41))])
        await suggester.settle()

        assert [s.label for s in suggester.suggestions] == ["Banani"]
        assert suggester.state.generation == 2

    @pytest.mark.asyncio
    async def test_clearing_input_discards_in_flight_query(self, notifications):
        service = FakePlaceService(gated=True)
        suggester = make_suggester(service, notifications, debounce=0.01)

        suggester.input_changed("Mirpur")
        await wait_for_calls(service, 1)
        suggester.input_changed("")
        service.gates[0].set_result([SearchSuggestion(label="Mirpur", location=GeoPoint(lat=23.8, lng=90.36))])
        await suggester.settle()

        assert suggester.suggestions == ()

    @pytest.mark.asyncio
    async def test_failure_empties_list_with_error(self, notifications):
        service = FakePlaceService(error=TransportError("Failed to fetch place suggestions: request timed out"))
        suggester = make_suggester(service, notifications)

        result = await suggester.suggest("Uttara")

        assert result == ()
        assert suggester.state.error.endswith("request timed out")
        assert len(notifications.of_kind(NotificationKind.SEARCH_ERROR)) == 1

    @pytest.mark.asyncio
    async def test_select_emits_center_command_and_clears(self, notifications):
        suggester = make_suggester(FakePlaceService(), notifications)
        suggestions = await suggester.suggest("Dhaka")

        location = suggester.select(suggestions[0])

        assert location == suggestions[0].location
        assert suggester.suggestions == ()
        commands = notifications.of_kind(NotificationKind.CENTER_MAP)
        assert len(commands) == 1
        assert commands[0].payload == {"lat": location.lat, "lng": location.lng, "zoom": 14}

    @pytest.mark.asyncio
    async def test_select_without_location_is_rejected(self, notifications):
        suggester = make_suggester(FakePlaceService(), notifications)
        await suggester.suggest("Dhaka")
        before = suggester.suggestions

        result = suggester.select(SearchSuggestion(label="Somewhere vague"))

        assert result is None
        assert suggester.suggestions == before
        assert len(notifications.of_kind(NotificationKind.REJECTED)) == 1
        assert notifications.of_kind(NotificationKind.CENTER_MAP) == []

    @pytest.mark.asyncio
    async def test_hint_box_is_passed_through(self, notifications):
        seen = []

        class RecordingService(FakePlaceService):
            async def search(self, text, hint_box):
                seen.append(hint_box)
                return await super().search(text, hint_box)

        suggester = make_suggester(RecordingService(), notifications)
        await suggester.suggest("Sylhet")
        assert seen == [HINT_BOX]
        assert seen[0] != DHAKA_BOX
