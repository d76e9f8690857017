class SpsEqError(Exception):
    """Base class of every failure raised by the protocol operations"""

    kind: str = "SpsEqError"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        if self.message:
            return f"{self.kind}: {self.message}"
        return self.kind


class InvalidParameter(SpsEqError):
    kind = "InvalidParameter"


class InvalidRepresentative(SpsEqError):
    kind = "InvalidRepresentative"


class InvalidSignature(SpsEqError):
    kind = "InvalidSignature"


class RandomnessError(SpsEqError):
    kind = "RandomnessError"


class DeserializationError(SpsEqError):
    kind = "DeserializationError"
