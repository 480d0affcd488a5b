"""MapPage - rider selection page shown after login.

Two dropdowns drive the refresh endpoint:
  select#ctl00_ctl00_cphWrapper_cphControlPanel_ddlSelectPassenger
    option[value=<legacyID>] -> rider display name
  select#ctl00_ctl00_cphWrapper_cphControlPanel_ddlSelectTimeOfDay
    option[selected] -> current time window (AM / Mid-Day / PM)
"""

from bs4 import BeautifulSoup

from src.hctb_relay.logging import get_logger
from src.hctb_relay.models import Location, Rider, TimeWindow

log = get_logger(__name__)


class MapPage:
    """Riders and the selected time window on /map.aspx."""

    URL_PATH = "/map.aspx"
    REFRESH_PATH = "/map.aspx/refreshmap"

    PASSENGER_OPTIONS = "#ctl00_ctl00_cphWrapper_cphControlPanel_ddlSelectPassenger option"
    TIME_OF_DAY_SELECTED = (
        "#ctl00_ctl00_cphWrapper_cphControlPanel_ddlSelectTimeOfDay option[selected]"
    )

    def __init__(self, html: str) -> None:
        self.soup = BeautifulSoup(html, "lxml")

    def riders(self, default_location: Location) -> list[Rider]:
        """One active Rider per passenger option, starting at the default location."""
        riders = []
        for option in self.soup.select(self.PASSENGER_OPTIONS):
            legacy_id = option.get("value", "").strip()
            name = option.get_text(strip=True)
            if not legacy_id:
                log.debug("passenger_option_skipped", name=name, reason="no_value")
                continue
            riders.append(
                Rider(
                    id=legacy_id,
                    name=name,
                    current=default_location,
                    previous=default_location,
                )
            )
        return riders

    def time_window(self) -> TimeWindow | None:
        option = self.soup.select_one(self.TIME_OF_DAY_SELECTED)
        if option is None:
            return None
        value = option.get("value", "").strip()
        if not value:
            return None
        return TimeWindow(id=value, label=option.get_text(strip=True))
