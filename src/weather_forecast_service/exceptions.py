"""Application exception classes."""


class ConfigError(Exception):
    """Raised when configuration is invalid or incomplete."""


class WeatherProviderError(Exception):
    """Raised when weather provider requests or normalization fail."""


class ForecastCodecError(Exception):
    """Raised when a forecast payload cannot be encoded or decoded."""


class JournalError(Exception):
    """Raised when writing to journal files fails."""
