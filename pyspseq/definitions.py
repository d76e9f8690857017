from typing import Callable

import pyspseq.utils.constants as ct
from pyspseq.interfaces import PairingGroup
from pyspseq.pairings.mcl import MclPairingGroup
from pyspseq.pairings.pyecc import PyEccPairingGroup

BACKENDS: dict[str, Callable[[], PairingGroup]] = {
    "py_ecc": PyEccPairingGroup,
    "mcl": MclPairingGroup,
}

_instances: dict[str, PairingGroup] = {}


def pairing_group(backend_name: str | None = None) -> PairingGroup:
    if backend_name is None:
        backend_name = ct.DEFAULT_BACKEND
    try:
        return _instances[backend_name]
    except KeyError:
        pass
    try:
        factory = BACKENDS[backend_name]
    except KeyError:
        raise ValueError(f"Unknown backend: {backend_name}")
    ret = _instances[backend_name] = factory()
    return ret
