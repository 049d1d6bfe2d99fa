"""Custom exceptions for podsearch."""


class PodsearchError(Exception):
    """Base exception for all podsearch errors."""

    pass


class ConfigError(PodsearchError):
    """Configuration-related errors."""

    pass


class CatalogError(PodsearchError):
    """Remote catalog is unreachable or returned an error."""

    pass


class InvalidIdentifierError(CatalogError):
    """A feed identifier could not be used for a catalog lookup."""

    pass


class DatasetError(PodsearchError):
    """Local dataset cannot be read or has an invalid shape."""

    pass


class FilterError(PodsearchError, ValueError):
    """A search filter value is invalid."""

    pass
