"""Error hierarchy for the login/scrape/sync pipeline.

Each stage of a cycle raises one of these at its boundary. Transient failures
are expected to clear on their own by the next cycle; permanent ones need a
fresh login or a configuration change. Tenacity uses the classes to decide what
the orchestrator may retry within a cycle:

    Retrying(retry=retry_if_exception_type(SessionExpiredError), stop=stop_after_attempt(2))
"""


class ScrapingError(Exception):
    """Base exception for all relay errors."""

    pass


class TransientError(ScrapingError):
    """Temporary failure that may succeed on the next attempt.

    Examples: network timeouts, 5xx responses, a refresh reply that cannot be decoded.
    """

    pass


class PermanentError(ScrapingError):
    """Failure that won't succeed by repeating the same request."""

    pass


class AuthenticationError(PermanentError):
    """Login failed: form fetch, token extraction, credential post or rider page.

    The account has no session for this cycle; the next cycle logs in from scratch.
    """

    pass


class SessionExpiredError(TransientError):
    """Session dropped by clock expiry or a 401/403 from the refresh endpoint.

    Retried transparently by logging in again.
    """

    pass


class ScrapeError(TransientError):
    """Location refresh for a single rider failed (timeout, bad status, bad body)."""

    pass


class SyncError(TransientError):
    """Downstream tracker or notification call failed. Logged, never retried."""

    pass
