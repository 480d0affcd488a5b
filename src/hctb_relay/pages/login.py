"""LoginForm - the portal's ASP.NET WebForms sign-in page.

DOM structure:
  form#aspnetForm
    input#__VIEWSTATE, input#__VIEWSTATEGENERATOR, input#__EVENTVALIDATION
      (hidden anti-forgery fields, must be echoed back on POST)
    input#ctl00_ctl00_cphWrapper_cphContent_tbxUserName
    input#ctl00_ctl00_cphWrapper_cphContent_tbxPassword
    input#ctl00_ctl00_cphWrapper_cphContent_tbxAccountNumber
    input#ctl00_ctl00_cphWrapper_cphContent_btnAuthenticate

Field names in the POST use the ``$``-separated control path, not the element id.
"""

from bs4 import BeautifulSoup

from src.hctb_relay.logging import get_logger

log = get_logger(__name__)


class LoginForm:
    """Hidden tokens of the sign-in form and the POST body built from them."""

    URL_PATH = "/authenticate.aspx"

    VIEWSTATE = "#__VIEWSTATE"
    VIEWSTATE_GENERATOR = "#__VIEWSTATEGENERATOR"
    EVENT_VALIDATION = "#__EVENTVALIDATION"

    USERNAME_FIELD = "ctl00$ctl00$cphWrapper$cphContent$tbxUserName"
    PASSWORD_FIELD = "ctl00$ctl00$cphWrapper$cphContent$tbxPassword"
    ACCOUNT_FIELD = "ctl00$ctl00$cphWrapper$cphContent$tbxAccountNumber"
    SUBMIT_FIELD = "ctl00$ctl00$cphWrapper$cphContent$btnAuthenticate"
    LANGUAGE_FIELD = "ctl00$ctl00$ddlLanguage"

    def __init__(self, html: str) -> None:
        self.soup = BeautifulSoup(html, "lxml")
        self.viewstate = self._value(self.VIEWSTATE)
        self.viewstate_generator = self._value(self.VIEWSTATE_GENERATOR)
        self.event_validation = self._value(self.EVENT_VALIDATION)

        # Missing tokens are not fatal here; the POST will be rejected instead
        missing = [
            name
            for name, value in (
                ("viewstate", self.viewstate),
                ("viewstate_generator", self.viewstate_generator),
                ("event_validation", self.event_validation),
            )
            if not value
        ]
        if missing:
            log.warning("login_form_tokens_missing", missing=missing)

    def _value(self, selector: str) -> str:
        element = self.soup.select_one(selector)
        if element is None:
            return ""
        return element.get("value", "")

    def form_data(self, username: str, password: str, school: str) -> dict[str, str]:
        """Form-encoded body for the credential POST."""
        return {
            "__EVENTTARGET": "",
            "__EVENTARGUMENT": "",
            "__VIEWSTATE": self.viewstate,
            "__VIEWSTATEENCRYPTED": "",
            "__VIEWSTATEGENERATOR": self.viewstate_generator,
            "__EVENTVALIDATION": self.event_validation,
            self.LANGUAGE_FIELD: "en",
            self.USERNAME_FIELD: username,
            self.PASSWORD_FIELD: password,
            self.ACCOUNT_FIELD: school,
            self.SUBMIT_FIELD: "Log In",
        }
