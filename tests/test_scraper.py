import pytest
import requests

from src.hctb_relay.models import AlertKind, Location
from src.hctb_relay.scraper import RiderScraper, ScrapeOutcome
from src.hctb_relay.session import SessionManager

from conftest import NOW, REFRESH_URL, FakeResponse, add_login, refresh_reply


@pytest.fixture
def manager(config, http):
    return SessionManager(config, http=http)


@pytest.fixture
def session(manager, http):
    add_login(http)
    return manager.ensure_session("A1", NOW)


@pytest.fixture
def scraper(config, manager, http):
    return RiderScraper(config, manager, http=http)


def test_located_reply_updates_current_and_previous(scraper, session, http, config):
    http.add("POST", REFRESH_URL, refresh_reply("SetBusPushPin(34.05, -118.25, 'Bus 7');"))
    alice = session.riders[0]

    assert scraper.scrape(alice, session) is ScrapeOutcome.LOCATED

    assert alice.current == Location(lat="34.05", lon="-118.25")
    assert alice.previous == config.default_location


def test_refresh_request_body(scraper, session, http):
    http.add("POST", REFRESH_URL, refresh_reply(""))
    scraper.scrape(session.riders[1], session)

    (call,) = http.calls_to("POST", REFRESH_URL)
    assert call["json"] == {
        "legacyID": "222",
        "name": "Bob Jones",
        "timeSpanId": "6E7A050E-PM",
        "wait": "true",
    }
    assert call["headers"]["Cookie"] == session.cookies
    assert call["timeout"] == 5.0


def test_previous_is_one_cycle_old(scraper, session, http):
    http.add(
        "POST",
        REFRESH_URL,
        refresh_reply("SetBusPushPin(1.1, 2.2);"),
        refresh_reply("SetBusPushPin(3.3, 4.4);"),
    )
    alice = session.riders[0]
    scraper.scrape(alice, session)
    scraper.scrape(alice, session)

    assert alice.previous == Location(lat="1.1", lon="2.2")
    assert alice.current == Location(lat="3.3", lon="4.4")


def test_not_in_service_deactivates_and_next_scrape_skips_network(scraper, session, http, config):
    http.add("POST", REFRESH_URL, refresh_reply("ShowMessage('Vehicle Not In Service');"))
    bob = session.riders[1]

    assert scraper.scrape(bob, session) is ScrapeOutcome.INACTIVE
    assert bob.active is False
    assert bob.current == config.default_location

    assert scraper.scrape(bob, session) is ScrapeOutcome.SKIPPED
    assert len(http.calls_to("POST", REFRESH_URL)) == 1
    assert bob.current == config.default_location
    assert bob.active is False


def test_inactive_reply_holds_last_live_location_until_next_scrape(scraper, session, http, config):
    http.add(
        "POST",
        REFRESH_URL,
        refresh_reply("SetBusPushPin(1.5, 2.5);"),
        refresh_reply("ShowMessage('Vehicle Not In Service');"),
    )
    bob = session.riders[1]
    live = Location(lat="1.5", lon="2.5")
    scraper.scrape(bob, session)

    assert scraper.scrape(bob, session) is ScrapeOutcome.INACTIVE
    assert bob.current == live
    assert bob.previous == live

    assert scraper.scrape(bob, session) is ScrapeOutcome.SKIPPED
    assert bob.current == config.default_location
    assert bob.previous == live
    assert len(http.calls_to("POST", REFRESH_URL)) == 2


def test_inactive_is_sticky(scraper, session, http):
    http.add(
        "POST",
        REFRESH_URL,
        refresh_reply("No stops found for student"),
        refresh_reply("SetBusPushPin(5.0, 6.0);"),
    )
    alice = session.riders[0]
    scraper.scrape(alice, session)
    scraper.scrape(alice, session)
    assert alice.active is False


def test_alerts_replaced_each_scrape(scraper, session, http):
    http.add(
        "POST",
        REFRESH_URL,
        refresh_reply("ShowMapAlerts(true, false);"),
        refresh_reply("SetBusPushPin(5.0, 6.0);"),
    )
    alice = session.riders[0]

    scraper.scrape(alice, session)
    assert alice.alerts == [AlertKind.SUBSTITUTION]

    scraper.scrape(alice, session)
    assert alice.alerts == []


@pytest.mark.parametrize("status", [401, 403])
def test_unauthorized_discards_session_without_raising(scraper, session, manager, http, status):
    http.add("POST", REFRESH_URL, FakeResponse(status))
    alice = session.riders[0]
    before = (alice.current, alice.previous)

    assert scraper.scrape(alice, session) is ScrapeOutcome.UNAUTHORIZED

    assert manager.get("A1") is None
    assert (alice.current, alice.previous) == before


@pytest.mark.parametrize(
    "response",
    [
        FakeResponse(500),
        requests.Timeout("read timed out"),
        requests.ConnectionError("connection reset"),
        FakeResponse(200, text="<html>"),
        FakeResponse(200, payload={"unexpected": 1}),
    ],
)
def test_transient_failure_falls_back_to_default_and_keeps_session(
    scraper, session, manager, http, config, response
):
    http.add(
        "POST",
        REFRESH_URL,
        refresh_reply("SetBusPushPin(1.1, 2.2);"),
        response,
    )
    alice = session.riders[0]
    scraper.scrape(alice, session)

    assert scraper.scrape(alice, session) is ScrapeOutcome.FAILED

    assert alice.current == config.default_location
    assert alice.previous == Location(lat="1.1", lon="2.2")
    assert alice.active is True
    assert manager.get("A1") is session
