import binascii
import json
from base64 import b64decode, b64encode
from typing import Any, KeysView

from pyspseq.errors import DeserializationError

SCHEME_NAME = "fhs19"


class ReprMixin:
    _fields: tuple[str, ...]

    def __repr__(self) -> str:
        rep = json.dumps({k: str(getattr(self, k)) for k in self._fields})
        return f"{self.__class__.__name__} {rep}"


class InfoMixin:
    _container_name: str
    _fields: tuple[str, ...]

    def info(self) -> tuple[str, str, KeysView]:
        return SCHEME_NAME, self._container_name, dict.fromkeys(self._fields).keys()


class FrozenMixin:
    """Refuses attribute assignment once `_freeze` has been called"""

    def _freeze(self) -> None:
        object.__setattr__(self, "_frozen", True)

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_frozen", False):
            raise AttributeError(
                f"{self.__class__.__name__} objects are immutable"
            )
        object.__setattr__(self, name, value)

    def __delattr__(self, name: str) -> None:
        if getattr(self, "_frozen", False):
            raise AttributeError(
                f"{self.__class__.__name__} objects are immutable"
            )
        object.__delattr__(self, name)


# noinspection PyUnresolvedReferences
class B64Mixin:
    """
    Base64 export wrapping the canonical byte encoding together with the
    metadata needed to check it is imported under matching parameters.
    """

    def to_b64(self) -> str:
        scheme_name, container_name, _ = self.info()  # type: ignore
        params = self.params  # type: ignore
        msg = {
            "scheme": scheme_name,
            "type": container_name,
            "backend": params.group.name,
            "class_length": params.class_length,
            "data": b64encode(self.to_bytes()).decode(),  # type: ignore
        }
        return b64encode(json.dumps(msg).encode()).decode()

    @classmethod
    def from_b64(cls, params: Any, s: str | bytes) -> Any:
        return cls.from_bytes(params, unpack_b64(s, cls._container_name, params))  # type: ignore


def unpack_b64(s: str | bytes, container_name: str, params: Any) -> bytes:
    if isinstance(s, str):
        s = s.encode()
    elif not isinstance(s, bytes):
        raise DeserializationError(f"Invalid {type(s).__name__} type. Expected str/bytes")
    try:
        msg = json.loads(b64decode(s, validate=True))
        scheme_name = msg["scheme"]
        msg_type = msg["type"]
        backend = msg["backend"]
        class_length = msg["class_length"]
        data = b64decode(msg["data"].encode(), validate=True)
    except (
        binascii.Error,
        UnicodeDecodeError,
        json.JSONDecodeError,
        KeyError,
        TypeError,
        AttributeError,
    ) as e:
        raise DeserializationError(
            f"Malformed {container_name} export: {e.__class__.__name__}"
        ) from e
    if scheme_name != SCHEME_NAME or msg_type != container_name:
        raise DeserializationError(
            f"Expected a {SCHEME_NAME} {container_name}, got {scheme_name} {msg_type}"
        )
    if backend != params.group.name or class_length != params.class_length:
        raise DeserializationError(
            f"{container_name} was exported under different parameters"
        )
    return data


def split_bytes(data: bytes, sizes: list[int], name: str) -> list[bytes]:
    if not isinstance(data, (bytes, bytearray)):
        raise DeserializationError(
            f"Invalid {type(data).__name__} type. Expected bytes"
        )
    if len(data) != sum(sizes):
        raise DeserializationError(
            f"{name} encoding must be {sum(sizes)} bytes, got {len(data)}"
        )
    ret = []
    offset = 0
    for sz in sizes:
        ret.append(bytes(data[offset : offset + sz]))
        offset += sz
    return ret


class MetadataParametersMixin:
    _container_name = "parameters"


class MetadataPublicKeyMixin:
    _container_name = "public"


class MetadataRepresentativeMixin:
    _container_name = "representative"


class MetadataSignatureMixin:
    _container_name = "signature"
