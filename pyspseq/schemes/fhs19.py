"""
Structure-preserving signatures on equivalence classes (SPS-EQ) of
Fuchsbauer, Hanser and Slamanig.

A signature on a vector M of G1 elements is valid for every nonzero
multiple of M, and anyone holding (M, sigma) can move to a fresh
representative of the same class together with an adapted signature.
"""

import binascii
import json
import logging
from base64 import b64decode, b64encode
from typing import Any, Iterator, NamedTuple, Sequence

import pyspseq.utils.constants as ct
from pyspseq.definitions import pairing_group
from pyspseq.errors import (
    DeserializationError,
    InvalidParameter,
    InvalidRepresentative,
    InvalidSignature,
    RandomnessError,
)
from pyspseq.interfaces import Container, PairingGroup, RandomSource
from pyspseq.utils.helpers import (
    B64Mixin,
    FrozenMixin,
    InfoMixin,
    MetadataParametersMixin,
    MetadataPublicKeyMixin,
    MetadataRepresentativeMixin,
    MetadataSignatureMixin,
    SCHEME_NAME,
    ReprMixin,
    split_bytes,
)

_logger = logging.getLogger(__name__)


def _nonzero_scalar(group: PairingGroup, k: int, name: str) -> int:
    if not isinstance(k, int) or isinstance(k, bool):
        raise InvalidParameter(f"{name} must be an int")
    k %= group.order
    if k == 0:
        raise InvalidParameter(f"{name} must be nonzero")
    return k


class SystemParameters(
    FrozenMixin, InfoMixin, ReprMixin, MetadataParametersMixin
):
    """Public constants shared by every key: class length and generators"""

    _fields = ("class_length", "group")

    class_length: int
    group: PairingGroup
    P: Any
    P_hat: Any

    def __init__(self, class_length: int, group: PairingGroup) -> None:
        if (
            not isinstance(class_length, int)
            or isinstance(class_length, bool)
            or class_length < 1
        ):
            raise InvalidParameter(
                f"class_length must be a positive int, got {class_length!r}"
            )
        self.class_length = class_length
        self.group = group
        self.P = group.g1()
        self.P_hat = group.g2()
        self._freeze()

    @classmethod
    def generate(
        cls, class_length: int, backend: PairingGroup | str | None = None
    ) -> "SystemParameters":
        if not isinstance(backend, PairingGroup):
            backend = pairing_group(backend)
        return cls(class_length, backend)

    def __eq__(self, y: object) -> bool:
        if not isinstance(y, SystemParameters):
            return NotImplemented
        return (self.group.name, self.class_length) == (
            y.group.name,
            y.class_length,
        )

    def __hash__(self) -> int:
        return hash((self.group.name, self.class_length))

    def to_b64(self) -> str:
        scheme_name, container_name, _ = self.info()
        msg = {
            "scheme": scheme_name,
            "type": container_name,
            "backend": self.group.name,
            "class_length": self.class_length,
        }
        return b64encode(json.dumps(msg).encode()).decode()

    @classmethod
    def from_b64(cls, s: str | bytes) -> "SystemParameters":
        if isinstance(s, str):
            s = s.encode()
        try:
            msg = json.loads(b64decode(s, validate=True))
            scheme_name = msg["scheme"]
            msg_type = msg["type"]
            backend = msg["backend"]
            class_length = msg["class_length"]
        except (
            binascii.Error,
            UnicodeDecodeError,
            json.JSONDecodeError,
            KeyError,
            TypeError,
        ) as e:
            raise DeserializationError(
                f"Malformed parameters export: {e.__class__.__name__}"
            ) from e
        if scheme_name != SCHEME_NAME or msg_type != cls._container_name:
            raise DeserializationError("Not an exported SystemParameters")
        try:
            return cls.generate(class_length, backend)
        except (ValueError, RuntimeError, InvalidParameter) as e:
            raise DeserializationError(str(e)) from e


class SigningKey:
    """
    Secret scalars (x_1, ..., x_l). Use it as a context manager so the
    scalars are overwritten on every exit path:

        with SigningKey.generate(params) as sk:
            sig = sk.sign(representative)
    """

    params: SystemParameters
    _scalars: list[int]
    _erased: bool

    def __init__(self, params: SystemParameters, scalars: Sequence[int]) -> None:
        if not isinstance(scalars, list):
            scalars = list(scalars)
        if len(scalars) != params.class_length:
            _wipe(scalars)
            raise InvalidParameter(
                f"expected {params.class_length} scalars, got {len(scalars)}"
            )
        for i, x in enumerate(scalars):
            if (
                not isinstance(x, int)
                or isinstance(x, bool)
                or not 0 < x < params.group.order
            ):
                _wipe(scalars)
                raise InvalidParameter(
                    f"scalar {i} must be an int in [1, order)"
                )
        self.params = params
        self._scalars = scalars
        self._erased = False

    @classmethod
    def generate(
        cls, params: SystemParameters, rng: RandomSource | None = None
    ) -> "SigningKey":
        scalars: list[int] = []
        try:
            for _ in range(params.class_length):
                scalars.append(params.group.random_scalar(rng))
        except RandomnessError:
            _wipe(scalars)
            _logger.debug("key generation aborted, partial key erased")
            raise
        return cls(params, scalars)

    @classmethod
    def from_scalars(
        cls, params: SystemParameters, scalars: Sequence[int]
    ) -> "SigningKey":
        return cls(params, list(scalars))

    @property
    def class_length(self) -> int:
        return self.params.class_length

    @property
    def erased(self) -> bool:
        return self._erased

    def __len__(self) -> int:
        return self.params.class_length

    def __repr__(self) -> str:
        state = "erased" if self._erased else "live"
        return (
            f"{self.__class__.__name__}(backend={self.params.group.name!r}, "
            f"class_length={self.params.class_length}, {state})"
        )

    def __enter__(self) -> "SigningKey":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.zeroize()

    def __del__(self) -> None:
        if getattr(self, "_scalars", None) is not None:
            self.zeroize()

    def __copy__(self) -> "SigningKey":
        raise TypeError("SigningKey cannot be copied")

    def __deepcopy__(self, memo: dict) -> "SigningKey":
        raise TypeError("SigningKey cannot be copied")

    def __reduce__(self) -> Any:
        raise TypeError("SigningKey cannot be pickled, use to_bytes()")

    def zeroize(self) -> None:
        _wipe(self._scalars)
        self._erased = True

    def scalars(self) -> tuple[int, ...]:
        if self._erased:
            raise InvalidParameter("signing key has been erased")
        return tuple(self._scalars)

    def public_key(self) -> "PublicKey":
        return PublicKey.derive(self)

    def sign(
        self,
        representative: "Representative | Sequence[Any]",
        rng: RandomSource | None = None,
    ) -> "Signature":
        return sign(self, representative, rng)

    def to_bytes(self) -> bytes:
        return b"".join(
            x.to_bytes(ct.SCALAR_SIZE, "big") for x in self.scalars()
        )

    @classmethod
    def from_bytes(cls, params: SystemParameters, data: bytes) -> "SigningKey":
        chunks = split_bytes(
            data, [ct.SCALAR_SIZE] * params.class_length, "SigningKey"
        )
        try:
            return cls.from_scalars(
                params, [int.from_bytes(c, "big") for c in chunks]
            )
        except InvalidParameter as e:
            raise DeserializationError(e.message) from e


def _wipe(scalars: list[int]) -> None:
    for i in range(len(scalars)):
        scalars[i] = 0
    scalars.clear()


class PublicKey(
    FrozenMixin,
    B64Mixin,
    InfoMixin,
    ReprMixin,
    MetadataPublicKeyMixin,
    Container,
):
    """Public elements (X^_1, ..., X^_l), X^_i = x_i * P^"""

    _fields = ("elements",)

    params: SystemParameters
    elements: tuple[Any, ...]

    def __init__(
        self, params: SystemParameters, elements: Sequence[Any]
    ) -> None:
        elements = tuple(elements)
        if len(elements) != params.class_length:
            raise InvalidParameter(
                f"expected {params.class_length} public elements, "
                f"got {len(elements)}"
            )
        self.params = params
        self.elements = elements
        self._freeze()

    @classmethod
    def derive(cls, signing_key: SigningKey) -> "PublicKey":
        params = signing_key.params
        return cls(params, [params.P_hat * x for x in signing_key.scalars()])

    def __len__(self) -> int:
        return len(self.elements)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.elements)

    def __getitem__(self, i: int) -> Any:
        return self.elements[i]

    def __eq__(self, y: object) -> bool:
        if not isinstance(y, PublicKey):
            return NotImplemented
        return self.params == y.params and self.elements == y.elements

    def __hash__(self) -> int:
        return hash(self.to_bytes())

    def verify(
        self,
        representative: "Representative | Sequence[Any]",
        signature: "Signature",
    ) -> None:
        verify(self, representative, signature)

    def is_valid(
        self,
        representative: "Representative | Sequence[Any]",
        signature: "Signature",
    ) -> bool:
        return is_valid(self, representative, signature)

    def to_bytes(self) -> bytes:
        return b"".join(el.to_bytes() for el in self.elements)

    @classmethod
    def from_bytes(cls, params: SystemParameters, data: bytes) -> "PublicKey":
        group = params.group
        chunks = split_bytes(
            data, [group.g2_size()] * params.class_length, "PublicKey"
        )
        elements = [group.g2_from_bytes(c) for c in chunks]
        if any(el.is_zero() for el in elements):
            raise DeserializationError("public key element is the identity")
        return cls(params, elements)


class Representative(
    FrozenMixin,
    B64Mixin,
    InfoMixin,
    ReprMixin,
    MetadataRepresentativeMixin,
    Container,
):
    """One member (M_1, ..., M_l) of an equivalence class over G1"""

    _fields = ("elements",)

    params: SystemParameters
    elements: tuple[Any, ...]

    def __init__(
        self, params: SystemParameters, elements: Sequence[Any]
    ) -> None:
        elements = tuple(elements)
        if len(elements) != params.class_length:
            raise InvalidRepresentative(
                f"expected {params.class_length} elements, got {len(elements)}"
            )
        for i, el in enumerate(elements):
            if el.is_zero():
                raise InvalidRepresentative(f"element {i} is the identity")
        self.params = params
        self.elements = elements
        self._freeze()

    @classmethod
    def random(
        cls, params: SystemParameters, rng: RandomSource | None = None
    ) -> "Representative":
        return cls(
            params,
            [params.group.random_g1(rng) for _ in range(params.class_length)],
        )

    def __len__(self) -> int:
        return len(self.elements)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.elements)

    def __getitem__(self, i: int) -> Any:
        return self.elements[i]

    def __eq__(self, y: object) -> bool:
        if not isinstance(y, Representative):
            return NotImplemented
        return self.params == y.params and self.elements == y.elements

    def __hash__(self) -> int:
        return hash(self.to_bytes())

    def scale(self, mu: int) -> "Representative":
        mu = _nonzero_scalar(self.params.group, mu, "mu")
        return Representative(self.params, [m * mu for m in self.elements])

    def __mul__(self, mu: int) -> "Representative":
        if not isinstance(mu, int):
            return NotImplemented
        return self.scale(mu)

    __rmul__ = __mul__

    def is_scaling_of(self, other: "Representative", mu: int) -> bool:
        """
        True if self_i == mu * other_i for every i
        """
        if len(other) != len(self):
            return False
        try:
            return other.scale(mu) == self
        except InvalidParameter:
            return False

    def to_bytes(self) -> bytes:
        return b"".join(el.to_bytes() for el in self.elements)

    @classmethod
    def from_bytes(
        cls, params: SystemParameters, data: bytes
    ) -> "Representative":
        group = params.group
        chunks = split_bytes(
            data, [group.g1_size()] * params.class_length, "Representative"
        )
        return cls(params, [group.g1_from_bytes(c) for c in chunks])


class Signature(
    FrozenMixin,
    B64Mixin,
    InfoMixin,
    ReprMixin,
    MetadataSignatureMixin,
    Container,
):
    """Triple (Z, Y, Y^) with Z, Y in G1 and Y^ in G2"""

    _fields = ("Z", "Y", "Y_hat")

    params: SystemParameters
    Z: Any
    Y: Any
    Y_hat: Any

    def __init__(self, params: SystemParameters, Z: Any, Y: Any, Y_hat: Any) -> None:
        self.params = params
        self.Z = Z
        self.Y = Y
        self.Y_hat = Y_hat
        self._freeze()

    def __iter__(self) -> Iterator[Any]:
        return iter((self.Z, self.Y, self.Y_hat))

    def __eq__(self, y: object) -> bool:
        if not isinstance(y, Signature):
            return NotImplemented
        return self.params.group == y.params.group and (
            self.Z,
            self.Y,
            self.Y_hat,
        ) == (y.Z, y.Y, y.Y_hat)

    def __hash__(self) -> int:
        return hash(self.to_bytes())

    def to_bytes(self) -> bytes:
        return self.Z.to_bytes() + self.Y.to_bytes() + self.Y_hat.to_bytes()

    @classmethod
    def from_bytes(cls, params: SystemParameters, data: bytes) -> "Signature":
        group = params.group
        z, y, y_hat = split_bytes(
            data,
            [group.g1_size(), group.g1_size(), group.g2_size()],
            "Signature",
        )
        return cls(
            params,
            group.g1_from_bytes(z),
            group.g1_from_bytes(y),
            group.g2_from_bytes(y_hat),
        )


class ChangedRepresentation(NamedTuple):
    representative: Representative
    signature: Signature


def _as_representative(
    params: SystemParameters, representative: Representative | Sequence[Any]
) -> Representative:
    if isinstance(representative, Representative):
        if representative.params.group != params.group:
            raise InvalidRepresentative(
                "representative belongs to a different pairing group"
            )
        if len(representative) != params.class_length:
            raise InvalidRepresentative(
                f"expected {params.class_length} elements, "
                f"got {len(representative)}"
            )
        return representative
    return Representative(params, representative)


def sign(
    signing_key: SigningKey,
    representative: Representative | Sequence[Any],
    rng: RandomSource | None = None,
) -> Signature:
    params = signing_key.params
    group = params.group
    message = _as_representative(params, representative)
    secret = signing_key.scalars()

    ## Blinding scalar y and its inverse
    y = group.random_scalar(rng)
    y_inv = pow(y, -1, group.order)

    ## S = sum_i x_i * M_i
    s = group.g1_multi_mul(message.elements, secret)

    _logger.debug(f"signed representative of length {len(message)}")
    return Signature(params, s * y, params.P * y_inv, params.P_hat * y_inv)


def verify(
    public_key: PublicKey,
    representative: Representative | Sequence[Any],
    signature: Signature,
) -> None:
    """
    Raises InvalidRepresentative on a malformed representative and
    InvalidSignature when the pairing checks do not hold
    """
    params = public_key.params
    group = params.group
    message = _as_representative(params, representative)

    if not isinstance(signature, Signature) or signature.params.group != group:
        raise InvalidSignature("Invalid signature")
    Z, Y, Y_hat = signature
    if Z.is_zero() or Y.is_zero() or Y_hat.is_zero():
        _logger.debug("identity component in signature")
        raise InvalidSignature("Invalid signature")

    # e(Z, Y^) == prod_i e(M_i, X^_i)
    pairs = [(Z, Y_hat)]
    pairs.extend((-m, x) for m, x in zip(message, public_key))
    e1 = group.pairing_product(pairs).is_one()

    # e(Y, P^) == e(P, Y^)
    e2 = group.pairing_product([(Y, params.P_hat), (-params.P, Y_hat)]).is_one()

    if not (e1 and e2):
        _logger.debug(f"pairing checks failed: e1={e1} e2={e2}")
        raise InvalidSignature("Invalid signature")


def is_valid(
    public_key: PublicKey,
    representative: Representative | Sequence[Any],
    signature: Signature,
) -> bool:
    try:
        verify(public_key, representative, signature)
    except (InvalidSignature, InvalidRepresentative):
        return False
    return True


def change_representative_with(
    public_key: PublicKey,
    representative: Representative | Sequence[Any],
    signature: Signature,
    mu: int,
    psi: int,
    verify_input: bool | None = None,
) -> ChangedRepresentation:
    """
    ChgRep with a caller supplied rerandomization scalar psi.

    The new representative is mu * M and the adapted signature is
    ((mu * psi) * Z, psi^-1 * Y, psi^-1 * Y^). The inputs are not modified.

    With verify_input=False the input pair is trusted: a pair that does not
    verify yields a pair that does not verify either, without an error.
    """
    params = public_key.params
    group = params.group
    mu = _nonzero_scalar(group, mu, "mu")
    psi = _nonzero_scalar(group, psi, "psi")
    message = _as_representative(params, representative)

    if verify_input is None:
        try:
            verify_input = ct.chgrep_verify_default()
        except ValueError as e:
            raise InvalidParameter(str(e)) from e
    if verify_input:
        verify(public_key, message, signature)
    elif not isinstance(signature, Signature) or signature.params.group != group:
        raise InvalidSignature("Invalid signature")

    psi_inv = pow(psi, -1, group.order)
    new_signature = Signature(
        params,
        signature.Z * (mu * psi % group.order),
        signature.Y * psi_inv,
        signature.Y_hat * psi_inv,
    )
    return ChangedRepresentation(message.scale(mu), new_signature)


def change_representative(
    public_key: PublicKey,
    representative: Representative | Sequence[Any],
    signature: Signature,
    mu: int,
    rng: RandomSource | None = None,
    verify_input: bool | None = None,
) -> ChangedRepresentation:
    """
    ChgRep drawing the rerandomization scalar psi from rng
    """
    mu = _nonzero_scalar(public_key.params.group, mu, "mu")
    psi = public_key.params.group.random_scalar(rng)
    return change_representative_with(
        public_key, representative, signature, mu, psi, verify_input
    )


def randomize(
    public_key: PublicKey,
    representative: Representative | Sequence[Any],
    signature: Signature,
    rng: RandomSource | None = None,
    verify_input: bool | None = None,
) -> ChangedRepresentation:
    """
    Fresh random representative of the same class with its signature
    """
    group = public_key.params.group
    mu = group.random_scalar(rng)
    psi = group.random_scalar(rng)
    return change_representative_with(
        public_key, representative, signature, mu, psi, verify_input
    )
