# src/hookprobe/core/models.py
from enum import Enum


class BodyKind(str, Enum):
    EMPTY = "EMPTY"
    PRETTY_JSON = "PRETTY_JSON"
    TEXT = "TEXT"
    BINARY = "BINARY"


class VerificationOutcome(str, Enum):
    SKIPPED = "SKIPPED"
    PASSED = "PASSED"
    FAILED_MISMATCH = "FAILED_MISMATCH"
    FAILED_MALFORMED_HEADER = "FAILED_MALFORMED_HEADER"
    FAILED_UNDECODABLE_HEADER = "FAILED_UNDECODABLE_HEADER"

    @property
    def status_code(self) -> int:
        return _OUTCOME_STATUS[self]

    @property
    def label(self) -> str:
        return _OUTCOME_LABEL[self]


_OUTCOME_STATUS = {
    VerificationOutcome.SKIPPED: 200,
    VerificationOutcome.PASSED: 200,
    VerificationOutcome.FAILED_MISMATCH: 401,
    VerificationOutcome.FAILED_MALFORMED_HEADER: 400,
    VerificationOutcome.FAILED_UNDECODABLE_HEADER: 400,
}

_OUTCOME_LABEL = {
    VerificationOutcome.SKIPPED: "verification skipped",
    VerificationOutcome.PASSED: "signature verified",
    VerificationOutcome.FAILED_MISMATCH: "invalid signature",
    VerificationOutcome.FAILED_MALFORMED_HEADER: "malformed signature header",
    VerificationOutcome.FAILED_UNDECODABLE_HEADER: "invalid signature header encoding",
}
