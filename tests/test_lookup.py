"""
Tests for SubstanceLookup source priority.
"""

from substance_lookup.datasource.lookup import SubstanceLookup
from substance_lookup.datasource.psychonaut import PsychonautClient
from substance_lookup.datasource.tripsit import TripSitClient
from substance_lookup.services.transport import TransportResponse
from tests.test_tripsit import tripsit_handler

PW_URL = "https://api.psychonautwiki.org"


def combined_handler(pw_substances, pw_up=True):
    tripsit = tripsit_handler()

    def handler(url, method, body):
        if url == PW_URL:
            if not pw_up:
                return TransportResponse(ok=False, status=503)
            return {"data": {"substances": pw_substances}}
        return tripsit(url, method, body)

    return handler


class TestPriority:
    async def test_first_source_wins_and_later_sources_fill_gaps(self, make_client):
        client, transport = make_client(
            combined_handler([{"name": "LSD", "commonNames": ["Acid"]}])
        )

        async with SubstanceLookup(client=client) as lookup:
            results = await lookup.lookup(["LSD", "Molly"])

        assert results["LSD"].source == "PsychonautWiki"
        assert results["Molly"].source == "TripSit"
        # TripSit only asked about what PsychonautWiki missed
        assert "getDrug?name=lsd" not in " ".join(transport.urls())

    async def test_fallback_when_first_source_is_down(self, make_client):
        client, _ = make_client(combined_handler([], pw_up=False))

        results = await SubstanceLookup(client=client).lookup(["LSD"])

        assert results["LSD"].source == "TripSit"

    async def test_custom_order(self, make_client):
        client, _ = make_client(combined_handler([{"name": "MDMA"}]))
        lookup = SubstanceLookup(
            client=client,
            sources=[TripSitClient(client), PsychonautClient(client)],
        )

        results = await lookup.lookup(["MDMA"])

        assert results["MDMA"].source == "TripSit"

    async def test_disabled_sources_are_skipped(self, make_client, settings):
        settings.enable_psychonautwiki = False
        client, transport = make_client(combined_handler([{"name": "LSD"}]))
        lookup = SubstanceLookup(client=client)

        results = await lookup.lookup(["LSD"])

        assert results["LSD"].source == "TripSit"
        assert PW_URL not in transport.urls()
        assert lookup.get_health_status()["sources"] == ["tripsit"]

    async def test_nothing_found(self, make_client):
        client, _ = make_client(combined_handler([]))
        assert await SubstanceLookup(client=client).lookup(["Unobtainium"]) == {}

    async def test_invalid_input(self, make_client):
        client, transport = make_client(combined_handler([]))
        assert await SubstanceLookup(client=client).lookup(None) == {}
        assert transport.calls == []
