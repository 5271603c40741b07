"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class MalformedSignalInputError(DomainException):
    """Cart line or structured attribute cannot be read as a signal"""

    pass


class ConfigFetchError(DomainException):
    """Merchant configuration service returned an error or is unavailable"""

    pass


class MissingConfigurationError(ConfigFetchError):
    """Shop has no merchant configuration"""

    pass


class StorageUnavailableError(DomainException):
    """Dismissal store cannot be read or written"""

    pass
