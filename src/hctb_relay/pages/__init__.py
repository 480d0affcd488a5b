from src.hctb_relay.pages.login import LoginForm
from src.hctb_relay.pages.map import MapPage

__all__ = ["LoginForm", "MapPage"]
