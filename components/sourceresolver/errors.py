class ResolveError(Exception):
    """Base error for the Source Resolver."""


class InvalidReference(ResolveError):
    """Missing id, or a url that is not absolute http(s)/protocol-relative."""


class NotFound(ResolveError):
    """The metadata service has no record for the id."""


class InvalidMetadata(ResolveError):
    """The record exists but lacks bucket or key."""


class FetchFailed(ResolveError):
    """External url unreachable, timed out, or answered non-2xx."""


class FetchTooLarge(FetchFailed):
    """External resource exceeds the configured buffer cap."""
