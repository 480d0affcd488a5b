from src.hctb_relay.models import Location
from src.hctb_relay.pages import LoginForm, MapPage

from conftest import LOGIN_HTML, MAP_HTML, MAP_HTML_NO_RIDERS

DEFAULT = Location(lat="40.0", lon="-75.0", default=True)


class TestLoginForm:
    def test_tokens_extracted_by_id(self):
        form = LoginForm(LOGIN_HTML)
        assert form.viewstate == "vs-token"
        assert form.viewstate_generator == "gen-token"
        assert form.event_validation == "ev-token"

    def test_form_data_carries_tokens_and_credentials(self):
        data = LoginForm(LOGIN_HTML).form_data("user", "pass", "A1")
        assert data["__VIEWSTATE"] == "vs-token"
        assert data["__EVENTVALIDATION"] == "ev-token"
        assert data["ctl00$ctl00$cphWrapper$cphContent$tbxUserName"] == "user"
        assert data["ctl00$ctl00$cphWrapper$cphContent$tbxPassword"] == "pass"
        assert data["ctl00$ctl00$cphWrapper$cphContent$tbxAccountNumber"] == "A1"
        assert data["ctl00$ctl00$cphWrapper$cphContent$btnAuthenticate"] == "Log In"

    def test_missing_tokens_are_empty_not_fatal(self):
        form = LoginForm("<html><body>maintenance</body></html>")
        assert form.viewstate == ""
        assert form.form_data("u", "p", "s")["__VIEWSTATEGENERATOR"] == ""


class TestMapPage:
    def test_riders_start_active_at_default(self):
        riders = MapPage(MAP_HTML).riders(DEFAULT)
        assert [(r.id, r.name) for r in riders] == [("111", "Alice Smith"), ("222", "Bob Jones")]
        assert all(r.active for r in riders)
        assert all(r.current == DEFAULT and r.previous == DEFAULT for r in riders)

    def test_selected_time_window(self):
        window = MapPage(MAP_HTML).time_window()
        assert window.id == "6E7A050E-PM"
        assert window.label == "PM"

    def test_no_riders(self):
        assert MapPage(MAP_HTML_NO_RIDERS).riders(DEFAULT) == []

    def test_no_selected_time_window(self):
        html = MAP_HTML.replace(' selected="selected"', "")
        assert MapPage(html).time_window() is None

    def test_option_without_value_skipped(self):
        html = MAP_HTML.replace('<option value="222">', '<option value="">')
        assert [r.name for r in MapPage(html).riders(DEFAULT)] == ["Alice Smith"]
