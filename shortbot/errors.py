"""Exception hierarchy shared by the store, tracking and bot layers.

Resolution-path errors (``LinkNotFoundError``, ``StoreError``) are surfaced to
the user as a 404 page, a 500 page or a bot reply. ``TrackingError`` never
leaves the click tracking boundary.
"""


class ShortenerError(Exception):
    """Base class for all application errors."""


class LinkNotFoundError(ShortenerError):
    """No short link exists for the requested alias."""

    def __init__(self, alias: str):
        super().__init__(f"Short link not found: {alias}")
        self.alias = alias


class StoreError(ShortenerError):
    """The persistent store is unreachable or returned an unexpected error."""


class AliasTakenError(ShortenerError):
    """A short link with the requested alias already exists."""

    def __init__(self, alias: str):
        super().__init__(f"Alias already taken: {alias}")
        self.alias = alias


class InvalidURLError(ShortenerError):
    """The submitted text is not a shortenable http(s) URL."""


class InvalidAliasError(ShortenerError):
    """The requested custom alias has a disallowed format."""


class TrackingError(ShortenerError):
    """Recording a click failed."""
