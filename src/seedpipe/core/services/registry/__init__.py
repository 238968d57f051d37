from .loader import load, parse_document

from .exceptions import (
    RegistryExceptions,
    RegistryFormatError,
    RegistryValidationError,
    ServiceNotFoundError,
)

__all__ = [
    "load",
    "parse_document",
    "RegistryExceptions",
    "RegistryFormatError",
    "RegistryValidationError",
    "ServiceNotFoundError",
]
