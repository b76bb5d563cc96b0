"""Exception hierarchy shared across reviewbot."""


class ReviewBotError(Exception):
    """Base class for reviewbot errors."""


class AuthenticationError(ReviewBotError):
    """Raised when a webhook signature is missing or does not match."""


class ValidationError(ReviewBotError):
    """Raised when a payload is malformed or misses a required field."""


class NotFoundError(ReviewBotError):
    """Raised when a referenced installation or repository is not synchronized yet."""


class ConfigurationError(ReviewBotError):
    """Raised when required configuration (secret, AI credential, model) is missing."""


class ProviderError(ReviewBotError):
    """Raised when the AI provider fails after all attempts."""


class SchemaError(ProviderError):
    """Raised when the AI provider returns an incomplete structured response."""
