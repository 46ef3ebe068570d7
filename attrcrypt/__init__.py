"""attrcrypt: field-level encryption of record attributes."""

import logging

from .core.codec import EncryptedAttributes, decode, encode  # noqa: F401
from .core.config import EncryptionConfig  # noqa: F401
from .core.errors import (  # noqa: F401
    AttrCryptError,
    ConfigurationError,
    IdentityMismatchError,
    IntegrityError,
    MissingIdentityError,
    TypeMismatchError,
    UnknownKeyError,
)
from .core.formats import ENVELOPE_PREFIX, is_envelope  # noqa: F401

__version__ = "1.0.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
