"""Structured error objects for the refinement contract checker.

Every failure the checker can report is a single exception type,
``VerificationError``, tagged with an ``ErrorKind`` and carrying a
free-form diagnostic message plus machine-readable details.  Failures
unwind to the top-level caller; nothing is retried.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    SESSION_ERROR = "session_error"
    SOLVER_ERROR = "solver_error"
    PROOF_FAILED = "proof_failed"
    UNSUPPORTED = "unsupported"
    SIGNATURE_ERROR = "signature_error"
    TYPE_ERROR = "type_error"
    CONFIG_ERROR = "config_error"
    INPUT_ERROR = "input_error"


class VerificationError(Exception):
    """A tagged verification failure."""

    def __init__(self, kind: ErrorKind, message: str, details: Optional[dict[str, Any]] = None):
        self.kind = kind
        self.message = message
        self.details = details or {}
        super().__init__(str(self))

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.message,
        }
        if self.details:
            d["details"] = self.details
        return d

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __str__(self) -> str:
        return f"[{self.kind.value}]: {self.message}"


def session_error(message: str) -> VerificationError:
    return VerificationError(ErrorKind.SESSION_ERROR, message)


def solver_error(message: str, **details: Any) -> VerificationError:
    return VerificationError(ErrorKind.SOLVER_ERROR, message, details)


def proof_error(predicate: str, answer: str) -> VerificationError:
    return VerificationError(
        ErrorKind.PROOF_FAILED,
        f"solver returned {answer}",
        details={
            "predicate": predicate,
            "answer": answer,
        },
    )


def unsupported(what: str) -> VerificationError:
    return VerificationError(ErrorKind.UNSUPPORTED, f"unsupported expression shape: {what}")


def not_a_function(name: str, found: str) -> VerificationError:
    return VerificationError(
        ErrorKind.SIGNATURE_ERROR,
        f"symbol {name} is not a function",
        details={"name": name, "found": found},
    )


def unknown_symbol(name: str) -> VerificationError:
    return VerificationError(
        ErrorKind.SIGNATURE_ERROR,
        f"unknown symbol {name}",
        details={"name": name},
    )


def not_scalar(ty: str) -> VerificationError:
    return VerificationError(
        ErrorKind.TYPE_ERROR,
        f"refinement type is not scalar: {ty}",
        details={"type": ty},
    )


def input_error(message: str) -> VerificationError:
    return VerificationError(ErrorKind.INPUT_ERROR, message)


def config_error(message: str) -> VerificationError:
    return VerificationError(ErrorKind.CONFIG_ERROR, message)
