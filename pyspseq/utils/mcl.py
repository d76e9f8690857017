# mypy: disable-error-code="misc,attr-defined,type-var,operator"

import ctypes
from base64 import b64decode, b64encode
from typing import Any, Sequence, Type, TypeVar

from typing_extensions import Self

import pyspseq.utils.constants as ct
from pyspseq.errors import DeserializationError

T = TypeVar("T", bound="Base")


class Base(ctypes.Structure):
    # ffi/go/lib/lib.go
    BUFFER_SZ: int = 2048
    MCL: str = "mclBn{}_{}"

    def __str__(self) -> str:
        return f"{self.__class__} {self.get_str()}"

    def __repr__(self) -> str:
        return str(self)

    def is_zero(self) -> bool:
        return bool(self._call("isZero"))

    def __eq__(self, y: object) -> bool:
        if not isinstance(y, self.__class__):
            return NotImplemented
        return bool(self._call("isEqual", y))

    def __hash__(self) -> int:
        return hash((self.__class__.__name__, self.to_bytes()))

    def __neg__(self) -> Self:
        return self._call("neg", ret=True)

    def __add__(self, y: Self) -> Self:
        return self._call("add", y, ret=True)

    def __sub__(self, y: Self) -> Self:
        return self._call("sub", y, ret=True)

    def to_bytes(self) -> bytes:
        func = self._func(
            "serialize",
            [
                ctypes.c_char_p,
                ctypes.c_size_t,
                ctypes.POINTER(self.__class__),
            ],
            ctypes.c_size_t,
        )
        buffer = ctypes.create_string_buffer(self.BUFFER_SZ)
        sz = func(buffer, self.BUFFER_SZ, self)
        return buffer.raw[:sz]

    def set_bytes(self, buffer: bytes) -> None:
        if not isinstance(buffer, (bytes, bytearray)):
            raise DeserializationError(
                f"Invalid {type(buffer).__name__} type. Expected bytes"
            )
        func = self._func(
            "deserialize",
            [
                ctypes.POINTER(self.__class__),
                ctypes.c_char_p,
                ctypes.c_size_t,
            ],
            ctypes.c_size_t,
        )
        # mcl returns the number of bytes read, 0 on failure
        read = func(self, bytes(buffer), len(buffer))
        if read == 0 or read != len(buffer):
            raise DeserializationError(
                f"Invalid {self.__class__.__name__} encoding"
            )

    @classmethod
    def from_bytes(cls: Type[T], buffer: bytes) -> T:
        ret = cls()
        ret.set_bytes(buffer)
        return ret

    def to_b64(self) -> str:
        return b64encode(self.to_bytes()).decode()

    @classmethod
    def from_b64(cls: Type[T], s: str | bytes) -> T:
        if isinstance(s, str):
            s = s.encode()
        return cls.from_bytes(b64decode(s))

    def set_object(self, y: Self) -> None:
        return self.set_bytes(y.to_bytes())

    @classmethod
    def byte_size(cls: Type[T]) -> int:
        func = getattr(ct.lib, f"mclBn_get{cls.__name__}ByteSize")
        func.restype = ctypes.c_int
        return func()

    def _call(self, fn: str, y: Self | None = None, ret: bool = False) -> Any:
        argtypes = [ctypes.POINTER(self.__class__)] * (1 if y is None else 2)
        restype = None if ret else ctypes.c_int
        if ret:
            argtypes.append(ctypes.POINTER(self.__class__))
        func = self._func(fn, argtypes, restype)
        if ret:
            obj = self.__class__()
            if y is None:
                func(obj, self)
            else:
                func(obj, self, y)
            return obj
        else:
            if y is None:
                return func(self)
            return func(self, y)

    def _func(
        self, fn: str, argtypes: list[Any], restype: Any | None = None
    ) -> Any:
        if ct.lib is None:
            raise RuntimeError("mcl library not loaded, call load_library()")
        func = getattr(ct.lib, self.MCL.format(self.__class__.__name__, fn))
        func.argtypes = argtypes
        func.restype = restype
        return func


# noinspection PyUnresolvedReferences
class StrMixin:
    def set_str(self, s: str | bytes, mode: int = 10) -> None:
        if isinstance(s, str):
            s = s.encode()
        elif not isinstance(s, bytes):
            raise TypeError(f"Invalid {s} type. Expected str/bytes")
        func = self._func(
            "setStr",
            [
                ctypes.POINTER(self.__class__),
                ctypes.c_char_p,
                ctypes.c_size_t,
                ctypes.c_int,
            ],
            ctypes.c_int,
        )
        if func(self, s, len(s), mode):
            raise RuntimeError(
                f"Failed to call {self.__class__.__name__}.setStr()"
            )

    def get_str(self, mode: int = 10) -> str:
        buf = ctypes.create_string_buffer(self.BUFFER_SZ)
        func = self._func(
            "getStr",
            [
                ctypes.c_char_p,
                ctypes.c_size_t,
                ctypes.POINTER(self.__class__),
                ctypes.c_int,
            ],
            ctypes.c_int,
        )
        if not func(buf, self.BUFFER_SZ, self, mode):
            raise RuntimeError(
                f"Failed to call {self.__class__.__name__}.getStr()"
            )
        return buf.value.decode()


# noinspection PyUnresolvedReferences
class IntMixin:
    def set_int(self, i: int) -> None:
        if not isinstance(i, int):
            raise TypeError(f"Invalid {i} type. Expected int")
        self.set_str(format(i % ct.BLS12_381_R, "x"), 16)

    @classmethod
    def from_int(cls: Type[T], i: int) -> T:
        ret = cls()
        ret.set_int(i)
        return ret

    def to_int(self) -> int:
        return int(self.get_str(16), 16)


# noinspection PyUnresolvedReferences
class OneMixin:
    def is_one(self) -> bool:
        return bool(self._call("isOne"))


# noinspection PyUnresolvedReferences
class MulFrMixin:
    def __mul__(self, y: "Fr | int") -> Self:
        if isinstance(y, int):
            y = Fr.from_int(y)
        func = self._func(
            "mul", [ctypes.POINTER(self.__class__)] * 2 + [ctypes.POINTER(Fr)]
        )
        ret = self.__class__()
        func(ret, self, y)
        return ret

    def __rmul__(self, y: "Fr | int") -> Self:
        return self.__mul__(y)


class MulVecMixin:
    @classmethod
    def muln(cls: Type[T], x: Sequence[T], y: Sequence["Fr | int"]) -> T:
        if len(x) != len(y):
            raise ValueError(f"muln: len(x)={len(x)} != len(y)={len(y)}")
        xs = (cls * len(x))(*x)
        ys = (Fr * len(y))(
            *[Fr.from_int(el) if isinstance(el, int) else el for el in y]
        )
        ret = cls()
        func = ret._func(  # noqa
            "mulVec",
            [ctypes.POINTER(cls)] * 2 + [ctypes.POINTER(Fr), ctypes.c_size_t],
        )
        func(ret, xs, ys, len(x))
        return ret


# noinspection PyUnresolvedReferences
class GeneratorMixin:
    def set_generator(self) -> None:
        s = ct.BLS12_381_P
        if isinstance(self, G2):
            s = ct.BLS12_381_Q
        self.set_str(s)

    @classmethod
    def from_generator(cls: Type[T]) -> T:
        ret = cls()
        ret.set_generator()
        return ret


class Fp(Base):
    _fields_ = [("d", ctypes.c_uint64 * ct.MCLBN_FP_UNIT_SIZE)]  # noqa


class Fr(StrMixin, IntMixin, OneMixin, Base):
    _fields_ = [("d", ctypes.c_uint64 * ct.MCLBN_FR_UNIT_SIZE)]  # noqa


class Fp2(Base):
    D: int = 2
    _fields_ = [("d", Fp * D)]


class G1(StrMixin, MulFrMixin, MulVecMixin, GeneratorMixin, Base):
    _fields_ = [("x", Fp), ("y", Fp), ("z", Fp)]


class G2(StrMixin, MulFrMixin, MulVecMixin, GeneratorMixin, Base):
    _fields_ = [("x", Fp2), ("y", Fp2), ("z", Fp2)]


class GT(StrMixin, OneMixin, Base):
    D: int = 12
    _fields_ = [("d", Fp * D)]

    def __mul__(self, y: Self) -> Self:
        return self._call("mul", y, ret=True)

    @classmethod
    def byte_size(cls: Type[T]) -> int:
        return Fp.byte_size() * cls.D

    @classmethod
    def pairing(cls: Type[T], e1: "G1", e2: "G2") -> T:
        func = getattr(ct.lib, "mclBn_pairing")
        func.argtypes = [
            ctypes.POINTER(cls),
            ctypes.POINTER(G1),
            ctypes.POINTER(G2),
        ]
        func.restype = None
        ret = cls()
        func(ret, e1, e2)
        return ret

    @classmethod
    def pairing_product(cls: Type[T], e1: Sequence["G1"], e2: Sequence["G2"]) -> T:
        if len(e1) != len(e2):
            raise ValueError(f"len(e1)={len(e1)} != len(e2)={len(e2)}")
        miller = getattr(ct.lib, "mclBn_millerLoopVec")
        miller.argtypes = [
            ctypes.POINTER(cls),
            ctypes.POINTER(G1),
            ctypes.POINTER(G2),
            ctypes.c_size_t,
        ]
        miller.restype = None
        final_exp = getattr(ct.lib, "mclBn_finalExp")
        final_exp.argtypes = [ctypes.POINTER(cls), ctypes.POINTER(cls)]
        final_exp.restype = None
        ml = cls()
        miller(ml, (G1 * len(e1))(*e1), (G2 * len(e2))(*e2), len(e1))
        ret = cls()
        final_exp(ret, ml)
        return ret
