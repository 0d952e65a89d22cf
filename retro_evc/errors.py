"""Exception types shared across the backend."""


class RetroEVCError(Exception):
    """Base class for all backend errors."""
    pass


class ConfigError(RetroEVCError):
    """Config file missing, empty or corrupted. Fatal at startup."""
    pass


class FetchError(RetroEVCError):
    """Remote document could not be retrieved."""
    pass


class ParseError(RetroEVCError):
    """Remote document is structurally invalid; the whole batch is dropped."""
    pass


class NotFound(RetroEVCError, KeyError):
    """No data has been recorded yet for the requested key."""
    pass
