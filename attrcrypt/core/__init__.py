"""Core cryptographic modules."""

from .errors import (  # noqa: F401
    AttrCryptError,
    ConfigurationError,
    IdentityMismatchError,
    IntegrityError,
    MissingIdentityError,
    TypeMismatchError,
    UnknownKeyError,
)
