import logging
from typing import Iterable

import pyspseq.utils.constants as ct
from pyspseq.errors import DeserializationError
from pyspseq.interfaces import PairingGroup
from pyspseq.utils.mcl import G1, G2, GT


class MclPairingGroup(PairingGroup):
    """BLS12-381 through the native mcl library"""

    name = "mcl"
    order = ct.BLS12_381_R
    _logger = logging.getLogger(__name__)

    def __init__(self) -> None:
        ct.load_library()
        self._g1 = G1.from_generator()
        self._g2 = G2.from_generator()

    def g1(self) -> G1:
        ret = G1()
        ret.set_object(self._g1)
        return ret

    def g2(self) -> G2:
        ret = G2()
        ret.set_object(self._g2)
        return ret

    def pairing(self, p: G1, q: G2) -> GT:
        return GT.pairing(p, q)

    def pairing_product(self, pairs: Iterable[tuple[G1, G2]]) -> GT:
        pairs = list(pairs)
        if not pairs:
            raise ValueError("pairing_product: no pairs")
        return GT.pairing_product([p for p, _ in pairs], [q for _, q in pairs])

    def g1_multi_mul(self, points: Iterable[G1], scalars: Iterable[int]) -> G1:
        return G1.muln(list(points), list(scalars))

    def g1_size(self) -> int:
        return G1.byte_size()

    def g2_size(self) -> int:
        # two Fp coordinates, mcl only exports the G1 size
        return 2 * G1.byte_size()

    def g1_from_bytes(self, data: bytes) -> G1:
        return self._decode(G1, data, self.g1_size())

    def g2_from_bytes(self, data: bytes) -> G2:
        return self._decode(G2, data, self.g2_size())

    def _decode(self, cls: type, data: bytes, size: int):
        if not isinstance(data, (bytes, bytearray)) or len(data) != size:
            raise DeserializationError(
                f"{cls.__name__} encoding must be {size} bytes"
            )
        ret = cls.from_bytes(bytes(data))
        # encodings must be canonical, mcl accepts some non reduced inputs
        if ret.to_bytes() != bytes(data):
            self._logger.debug(f"non canonical {cls.__name__} encoding")
            raise DeserializationError(f"Invalid {cls.__name__} encoding")
        return ret
