"""Custom exceptions for the application."""


class ContentApiError(Exception):
    """Base exception for errors returned by the content API."""

    pass


class PostNotFoundError(ContentApiError):
    """The requested post does not exist or is not visible."""

    pass


class ContentRateLimitedError(ContentApiError):
    """The content API throttled the request."""

    pass


class ContentUnauthorizedError(ContentApiError):
    """The content API rejected the credentials or the access policy."""

    pass


class TransportError(Exception):
    """Custom exception for a send rejected by Telegram."""

    pass


class TokenDecodeError(ValueError):
    """Custom exception for a malformed interaction token."""

    pass
