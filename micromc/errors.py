"""Exception types."""


class Error(RuntimeError):
    """Base class for errors."""


class ConfigurationError(Error):
    """Error raised when a sampler component is not validly configured."""
