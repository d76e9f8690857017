import ctypes
import logging
import os
import sys

_logger = logging.getLogger(__name__)

# src/bn_c384_256.cpp
MCLBN_FP_UNIT_SIZE: int = 6
MCLBN_FR_UNIT_SIZE: int = 4

# include/lib/curve_type.h
MCL_BLS12_381: int = 5

# include/lib/bn.h
MCLBN_COMPILED_TIME_VAR: int = MCLBN_FR_UNIT_SIZE * 10 + MCLBN_FP_UNIT_SIZE

# Generators of G1 and G2 in mcl's base-10 "1 x y" format
BLS12_381_P: str = "1 3685416753713387016781088315183077757961620795782546409894578378688607592378376318836054947676345821548104185464507 1339506544944476473020471379941921221584933875938349620426543736416511423956333506472724655353366534992391756441569"
BLS12_381_Q: str = "1 352701069587466618187139116011060144890029952792775240219908644239793785735715026873347600343865175952761926303160 3059144344244213709971259814753781636986470325476647558659373206291635324768958432433509563104347017837885763365758 1985150602287291935568054521177171638300868978215655730859378665066344726373823718423869104263333984641494340347905 927553665492332455747201965776037880757740193453592970025027978793976877002675564980949289727957565575433344219582"

# Order of the scalar field
BLS12_381_R: int = 0x73EDA753299D7D483339D80809A1D80553BDA402FFFE5BFEFFFFFFFF00000001

SCALAR_SIZE: int = 32

project_root = os.path.dirname(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
)
mcl_build_lib = os.path.join(project_root, "mcl", "build", "lib")

LIB_PATH: str = os.environ.get("MCL_LIB_PATH", mcl_build_lib)
MCL_LIB: str = "libmcl.so"
MCL384_LIB: str = "libmclbn384_256.so"
lib: ctypes.CDLL | None = None

DEFAULT_BACKEND: str = os.environ.get("SPSEQ_BACKEND", "py_ecc")

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    value = value.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"Invalid value for {name}: {value!r}")


def chgrep_verify_default() -> bool:
    """Whether ChgRep re-verifies its input pair when the caller does not say"""
    return env_flag("SPSEQ_CHGREP_VERIFY", True)


def _find_library(name: str) -> str:
    path = os.path.join(LIB_PATH, name)
    if os.path.exists(path):
        return path
    _logger.warning(f"{path} does not exist")
    # Try to find the library in the system
    for p in sys.path:
        potential_path = os.path.join(p, name)
        if os.path.exists(potential_path):
            _logger.info(f"Found {name} at {potential_path}")
            return potential_path
    return path


def load_library() -> None:
    global lib
    if lib is not None:
        return
    if not LIB_PATH:
        raise RuntimeError("Environment variable MCL_LIB_PATH missing.")

    _logger.info(f"Loading MCL libraries from: {LIB_PATH}")
    try:
        ctypes.CDLL(_find_library(MCL_LIB))
        handle = ctypes.CDLL(_find_library(MCL384_LIB))
    except OSError as e:
        raise RuntimeError(f"Error loading MCL libraries: {e}") from e
    if handle.mclBn_init(MCL_BLS12_381, MCLBN_COMPILED_TIME_VAR):
        raise RuntimeError("mcl library could not be initialized")
    # zcash/ETH compressed points, big endian scalars
    handle.mclBn_setETHserialization(1)
    # reject points outside the prime order subgroups on deserialization
    handle.mclBn_verifyOrderG1(1)
    handle.mclBn_verifyOrderG2(1)
    lib = handle
