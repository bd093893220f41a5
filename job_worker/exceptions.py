class ConfigError(ValueError):
    """Raised when required worker configuration is missing or malformed."""
