"""
Domain exceptions shared by the matching and attribution services.

Routers translate these into HTTP status codes; background tasks log
them and move on to the next item.
"""


class ChannelServiceError(Exception):
    """Base class for all channel-service errors."""
    pass


class EligibilityError(ChannelServiceError):
    """No channel passes the (asset, region) eligibility filter."""
    pass


class ValidationError(ChannelServiceError):
    """A required request field is missing or malformed."""
    pass


class BackingStoreError(ChannelServiceError):
    """The database or Redis failed during a read or write."""
    pass


class TokenNotFoundError(ChannelServiceError):
    """Redirect token was never issued or has expired."""

    def __init__(self, token: str):
        super().__init__(f"Redirect {token} not found or expired")
        self.token = token
