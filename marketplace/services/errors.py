class MarketplaceError(Exception):
    """Base class for errors raised by the marketplace services."""
    status_code = 500


class AuthenticationRequired(MarketplaceError):
    status_code = 401


class NotAllowed(MarketplaceError):
    status_code = 403


class InvalidRequest(MarketplaceError):
    status_code = 400


class TooManyRequests(MarketplaceError):
    status_code = 429


# PostgREST code for "no rows" on a .single() request
NO_ROWS = "PGRST116"
