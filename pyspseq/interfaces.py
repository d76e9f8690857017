import random
from abc import ABC, abstractmethod
from typing import Any, Iterable, KeysView, Protocol

from typing_extensions import Self

from pyspseq.errors import RandomnessError


class GroupElement(Protocol):
    """Element of one of the two source groups, written additively"""

    def is_zero(self) -> bool: ...

    def __eq__(self, y: object) -> bool: ...

    def __add__(self, y: Self) -> Self: ...

    def __neg__(self) -> Self: ...

    def __mul__(self, k: int) -> Self: ...

    def to_bytes(self) -> bytes: ...


class TargetElement(Protocol):
    """Element of the target group, written multiplicatively"""

    def __eq__(self, y: object) -> bool: ...

    def __mul__(self, y: Self) -> Self: ...

    def is_one(self) -> bool: ...


class RandomSource(Protocol):
    def randrange(self, start: int, stop: int) -> int: ...


class Container(ABC):
    _container_name: str

    @abstractmethod
    def info(self) -> tuple[str, str, KeysView]:
        """
        Listing of internal properties
        """

    @abstractmethod
    def to_bytes(self) -> bytes:
        """
        Canonical fixed-size encoding
        """

    @abstractmethod
    def to_b64(self) -> str:
        """
        Export internal properties to base64
        """


class PairingGroup(ABC):
    """
    Capability set consumed by the protocol: a prime order scalar field,
    two source groups with fixed generators, a target group and a bilinear
    map e: G1 x G2 -> GT.

    Scalars are plain ints; implementations reduce them modulo `order`.
    """

    name: str
    order: int

    @abstractmethod
    def g1(self) -> Any:
        """
        Fixed public generator P of the first source group
        """

    @abstractmethod
    def g2(self) -> Any:
        """
        Fixed public generator P^ of the second source group
        """

    @abstractmethod
    def pairing(self, p: Any, q: Any) -> Any:
        """
        e(p, q) with p in G1 and q in G2
        """

    def pairing_product(self, pairs: Iterable[tuple[Any, Any]]) -> Any:
        """
        Product of e(p_i, q_i) over all pairs
        """
        ret = None
        for p, q in pairs:
            e = self.pairing(p, q)
            ret = e if ret is None else ret * e
        if ret is None:
            raise ValueError("pairing_product: no pairs")
        return ret

    def g1_multi_mul(self, points: Iterable[Any], scalars: Iterable[int]) -> Any:
        """
        Sum of k_i * p_i over G1
        """
        ret = None
        for p, k in zip(points, scalars, strict=True):
            t = p * k
            ret = t if ret is None else ret + t
        if ret is None:
            raise ValueError("g1_multi_mul: no points")
        return ret

    @abstractmethod
    def g1_size(self) -> int:
        """
        Size in bytes of the canonical encoding of a G1 element
        """

    @abstractmethod
    def g2_size(self) -> int:
        """
        Size in bytes of the canonical encoding of a G2 element
        """

    @abstractmethod
    def g1_from_bytes(self, data: bytes) -> Any:
        """
        Decode a G1 element. Raises DeserializationError on malformed input
        """

    @abstractmethod
    def g2_from_bytes(self, data: bytes) -> Any:
        """
        Decode a G2 element. Raises DeserializationError on malformed input
        """

    def random_scalar(self, rng: RandomSource | None = None) -> int:
        """
        Uniform scalar in [1, order)
        """
        if rng is None:
            rng = random.SystemRandom()
        try:
            k = rng.randrange(1, self.order)
        except (OSError, NotImplementedError) as e:
            raise RandomnessError(
                f"randomness source failed: {e.__class__.__name__}"
            ) from e
        if not isinstance(k, int) or not 0 < k < self.order:
            raise RandomnessError("randomness source returned an invalid value")
        return k

    def random_g1(self, rng: RandomSource | None = None) -> Any:
        return self.g1() * self.random_scalar(rng)

    def __eq__(self, y: object) -> bool:
        if not isinstance(y, PairingGroup):
            return NotImplemented
        return self.name == y.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r})"
