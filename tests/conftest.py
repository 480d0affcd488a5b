from datetime import datetime

import pytest

from src.hctb_relay.config import RelayConfig

BASE_URL = "https://hctb.test"
HA_URL = "http://ha.test"
LOGIN_URL = f"{BASE_URL}/authenticate.aspx"
MAP_URL = f"{BASE_URL}/map.aspx"
REFRESH_URL = f"{BASE_URL}/map.aspx/refreshmap"
SEE_URL = f"{HA_URL}/api/services/device_tracker/see"
NOTIFY_URL = f"{HA_URL}/api/services/persistent_notification/create"

NOW = datetime(2026, 10, 19, 8, 0, 0)

LOGIN_HTML = """
<html><body><form id="aspnetForm" method="post" action="./authenticate.aspx">
<input type="hidden" name="__VIEWSTATE" id="__VIEWSTATE" value="vs-token" />
<input type="hidden" name="__VIEWSTATEGENERATOR" id="__VIEWSTATEGENERATOR" value="gen-token" />
<input type="hidden" name="__EVENTVALIDATION" id="__EVENTVALIDATION" value="ev-token" />
<input name="ctl00$ctl00$cphWrapper$cphContent$tbxUserName" type="text" id="ctl00_ctl00_cphWrapper_cphContent_tbxUserName" />
</form></body></html>
"""

MAP_HTML = """
<html><body>
<select name="ctl00$ctl00$cphWrapper$cphControlPanel$ddlSelectPassenger" id="ctl00_ctl00_cphWrapper_cphControlPanel_ddlSelectPassenger">
  <option value="111">Alice Smith</option>
  <option value="222">Bob Jones</option>
</select>
<select name="ctl00$ctl00$cphWrapper$cphControlPanel$ddlSelectTimeOfDay" id="ctl00_ctl00_cphWrapper_cphControlPanel_ddlSelectTimeOfDay">
  <option value="55632D1B-AM">AM</option>
  <option selected="selected" value="6E7A050E-PM">PM</option>
</select>
</body></html>
"""

MAP_HTML_NO_RIDERS = """
<html><body>
<select id="ctl00_ctl00_cphWrapper_cphControlPanel_ddlSelectPassenger"></select>
<select id="ctl00_ctl00_cphWrapper_cphControlPanel_ddlSelectTimeOfDay">
  <option selected="selected" value="6E7A050E-PM">PM</option>
</select>
</body></html>
"""


class FakeResponse:
    def __init__(self, status_code=200, text="", payload=None, cookies=None):
        self.status_code = status_code
        self.text = text
        self._payload = payload
        self.cookies = cookies or {}

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


def refresh_reply(d):
    return FakeResponse(200, payload={"d": d})


class FakeHttp:
    """requests-style get/post backed by per-URL response queues.

    The last queued response repeats. A queued exception is raised, a queued
    callable is called with the request kwargs.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, method, url, *responses):
        self.routes.setdefault((method, url), []).extend(responses)
        return self

    def get(self, url, **kwargs):
        return self._dispatch("GET", url, kwargs)

    def post(self, url, **kwargs):
        return self._dispatch("POST", url, kwargs)

    def _dispatch(self, method, url, kwargs):
        self.calls.append((method, url, kwargs))
        queue = self.routes.get((method, url))
        if not queue:
            raise AssertionError(f"Unexpected request {method} {url}")
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(**kwargs)
        return response

    def calls_to(self, method, url):
        return [kwargs for m, u, kwargs in self.calls if m == method and u == url]


def add_login(http, map_html=MAP_HTML):
    http.add("GET", LOGIN_URL, FakeResponse(200, LOGIN_HTML, cookies={"ASP.NET_SessionId": "sid1"}))
    http.add("POST", LOGIN_URL, FakeResponse(302, cookies={".ASPXFORMSAUTH": "auth1"}))
    http.add("GET", MAP_URL, FakeResponse(200, map_html))
    return http


@pytest.fixture
def config():
    return RelayConfig(
        _env_file=None,
        hctb_url=BASE_URL,
        hctb_username="parent@example.com",
        hctb_password="secret",
        hctb_schoolcode="A1",
        default_lat="40.0",
        default_lon="-75.0",
        supervisor_uri=HA_URL,
        supervisor_token="ha-token",
    )


@pytest.fixture
def http():
    return FakeHttp()
