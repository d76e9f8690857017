import argparse
import logging
import sys

from pyspseq import (
    BACKENDS,
    PairingGroup,
    Representative,
    SigningKey,
    SpsEqError,
    SystemParameters,
    change_representative,
    verify,
)


def run(backend: "str | PairingGroup | None", class_length: int) -> None:
    op = "setup"
    try:
        params = SystemParameters.generate(class_length, backend)
        op = "keygen"
        with SigningKey.generate(params) as sk:
            pk = sk.public_key()
            message = Representative.random(params)
            op = "sign"
            sig = sk.sign(message)
        op = "verify"
        verify(pk, message, sig)
        print("verify: success")
        op = "chgrep"
        new_message, new_sig = change_representative(pk, message, sig, 3)
        if not new_message.is_scaling_of(message, 3):
            raise RuntimeError("representative left its class")
        op = "verify"
        verify(pk, new_message, new_sig)
        print("chgrep verify: success")
    except SpsEqError as e:
        print(f"{op} failed: {e.kind}", file=sys.stderr)
        sys.exit(1)
    except RuntimeError as e:
        print(f"{op} failed: {e.__class__.__name__}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(prog="pyspseq")
    parser.add_argument("--backend", choices=sorted(BACKENDS), default=None)
    parser.add_argument("--length", type=int, default=2)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()
    logging.basicConfig(
        format="%(levelname)s|%(name)s: %(message)s",
        level=logging.DEBUG if args.verbose else logging.ERROR,
    )
    run(args.backend, args.length)
