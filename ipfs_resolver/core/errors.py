class ResolverError(Exception):
    """Base exception for the content locator."""
    pass

class ConfigurationError(ResolverError):
    """Raised when gateway or timeout settings are invalid."""
    pass
