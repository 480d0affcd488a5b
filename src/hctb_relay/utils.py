"""Shared HTTP helpers: Cookie header rendering and request headers."""

from requests.cookies import RequestsCookieJar

JSON_CONTENT_TYPE = "application/json; charset=UTF-8"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def cookie_header(jar: RequestsCookieJar) -> str:
    """Render a cookie jar as a ``name=value; name=value`` Cookie header."""
    return "; ".join(f"{cookie.name}={cookie.value}" for cookie in jar)


def bearer_headers(token: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
    }
