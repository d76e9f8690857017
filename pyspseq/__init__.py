"""pyspseq, python implementation of structure-preserving signatures on equivalence classes"""

__all__ = [
    "BACKENDS",
    "ChangedRepresentation",
    "DeserializationError",
    "InvalidParameter",
    "InvalidRepresentative",
    "InvalidSignature",
    "PairingGroup",
    "PublicKey",
    "RandomnessError",
    "Representative",
    "Signature",
    "SigningKey",
    "SpsEqError",
    "SystemParameters",
    "change_representative",
    "change_representative_with",
    "is_valid",
    "load_library",
    "pairing_group",
    "randomize",
    "sign",
    "verify",
]

from .definitions import BACKENDS, pairing_group
from .errors import (
    DeserializationError,
    InvalidParameter,
    InvalidRepresentative,
    InvalidSignature,
    RandomnessError,
    SpsEqError,
)
from .interfaces import PairingGroup
from .schemes.fhs19 import (
    ChangedRepresentation,
    PublicKey,
    Representative,
    Signature,
    SigningKey,
    SystemParameters,
    change_representative,
    change_representative_with,
    is_valid,
    randomize,
    sign,
    verify,
)
from .utils.constants import load_library
