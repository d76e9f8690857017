import logging
from typing import Any, Iterable

from py_ecc.bls.point_compression import (
    compress_G1,
    compress_G2,
    decompress_G1,
    decompress_G2,
)
from py_ecc.optimized_bls12_381 import (
    FQ12,
    add,
    curve_order,
    eq,
    final_exponentiate,
    is_inf,
    multiply,
    neg,
    pairing,
)
from py_ecc.optimized_bls12_381 import G1 as _G1
from py_ecc.optimized_bls12_381 import G2 as _G2
from typing_extensions import Self

from pyspseq.errors import DeserializationError
from pyspseq.interfaces import PairingGroup

G1_SIZE: int = 48
G2_SIZE: int = 96


class _Point:
    __slots__ = ("point",)

    def __init__(self, point: Any) -> None:
        self.point = point

    def __repr__(self) -> str:
        if self.is_zero():
            return f"{self.__class__.__name__}(infinity)"
        return f"{self.__class__.__name__}({self.to_bytes().hex()})"

    def is_zero(self) -> bool:
        return is_inf(self.point)

    def __eq__(self, y: object) -> bool:
        if not isinstance(y, self.__class__):
            return NotImplemented
        return eq(self.point, y.point)

    def __hash__(self) -> int:
        return hash((self.__class__.__name__, self.to_bytes()))

    def __add__(self, y: Self) -> Self:
        return self.__class__(add(self.point, y.point))

    def __neg__(self) -> Self:
        return self.__class__(neg(self.point))

    def __mul__(self, k: int) -> Self:
        if not isinstance(k, int):
            return NotImplemented
        return self.__class__(multiply(self.point, k % curve_order))

    __rmul__ = __mul__

    def to_bytes(self) -> bytes:
        raise NotImplementedError


class PointG1(_Point):
    __slots__ = ()

    def to_bytes(self) -> bytes:
        return compress_G1(self.point).to_bytes(G1_SIZE, "big")


class PointG2(_Point):
    __slots__ = ()

    def to_bytes(self) -> bytes:
        z1, z2 = compress_G2(self.point)
        half = G2_SIZE // 2
        return z1.to_bytes(half, "big") + z2.to_bytes(half, "big")


class TargetGT:
    __slots__ = ("value",)

    def __init__(self, value: FQ12) -> None:
        self.value = value

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.value})"

    def __eq__(self, y: object) -> bool:
        if not isinstance(y, TargetGT):
            return NotImplemented
        return self.value == y.value

    def __mul__(self, y: "TargetGT") -> "TargetGT":
        return TargetGT(self.value * y.value)

    def is_one(self) -> bool:
        return self.value == FQ12.one()


class PyEccPairingGroup(PairingGroup):
    """BLS12-381 from py_ecc with zcash style compressed encodings"""

    name = "py_ecc"
    order = curve_order
    _logger = logging.getLogger(__name__)

    def g1(self) -> PointG1:
        return PointG1(_G1)

    def g2(self) -> PointG2:
        return PointG2(_G2)

    def pairing(self, p: PointG1, q: PointG2) -> TargetGT:
        return TargetGT(pairing(q.point, p.point))

    def pairing_product(
        self, pairs: Iterable[tuple[PointG1, PointG2]]
    ) -> TargetGT:
        ## Multiply the Miller loops and share a single final exponentiation
        acc = None
        for p, q in pairs:
            ml = pairing(q.point, p.point, final_exponentiate=False)
            acc = ml if acc is None else acc * ml
        if acc is None:
            raise ValueError("pairing_product: no pairs")
        return TargetGT(final_exponentiate(acc))

    def g1_size(self) -> int:
        return G1_SIZE

    def g2_size(self) -> int:
        return G2_SIZE

    def g1_from_bytes(self, data: bytes) -> PointG1:
        self._check_size(data, G1_SIZE, "G1")
        try:
            point = decompress_G1(int.from_bytes(data, "big"))
        except ValueError as e:
            raise DeserializationError(f"Invalid G1 encoding: {e}") from e
        return self._check_point(PointG1(point), data)

    def g2_from_bytes(self, data: bytes) -> PointG2:
        self._check_size(data, G2_SIZE, "G2")
        half = G2_SIZE // 2
        z1 = int.from_bytes(data[:half], "big")
        z2 = int.from_bytes(data[half:], "big")
        try:
            point = decompress_G2((z1, z2))
        except ValueError as e:
            raise DeserializationError(f"Invalid G2 encoding: {e}") from e
        return self._check_point(PointG2(point), data)

    @staticmethod
    def _check_size(data: bytes, size: int, name: str) -> None:
        if not isinstance(data, (bytes, bytearray)) or len(data) != size:
            raise DeserializationError(f"{name} encoding must be {size} bytes")

    def _check_point(self, ret: _Point, data: bytes) -> Any:
        if not ret.is_zero() and not is_inf(multiply(ret.point, curve_order)):
            self._logger.debug("point outside the prime order subgroup")
            raise DeserializationError("Point not in the prime order subgroup")
        if ret.to_bytes() != bytes(data):
            raise DeserializationError("Non canonical point encoding")
        return ret
