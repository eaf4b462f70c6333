# moodmeter/errors.py
from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    RATE_LIMITED = "RATE_LIMITED"
    AI_UNAVAILABLE = "AI_UNAVAILABLE"
    INVALID_INPUT = "INVALID_INPUT"
    NETWORK = "NETWORK"
    UNAUTHORIZED = "UNAUTHORIZED"
    UNKNOWN = "UNKNOWN"


# Shown to the user as-is; raw backend text only ever goes to the log.
ERROR_MESSAGES = {
    ErrorCode.RATE_LIMITED: "Taking a breather. Try again in a moment.",
    ErrorCode.AI_UNAVAILABLE: "Our AI is resting. Your entry is saved locally.",
    ErrorCode.INVALID_INPUT: "Something doesn't look right. Try rephrasing.",
    ErrorCode.NETWORK: "Connection lost. We'll sync when you're back online.",
    ErrorCode.UNAUTHORIZED: "Please sign in to continue.",
    ErrorCode.UNKNOWN: "Something unexpected happened. Try again?",
}


def user_message(code) -> str:
    """Gentle message for an error code; unknown codes fall back to UNKNOWN."""
    try:
        return ERROR_MESSAGES[ErrorCode(code)]
    except ValueError:
        return ERROR_MESSAGES[ErrorCode.UNKNOWN]


class ApiError(Exception):
    """Failure raised by the analysis and persistence collaborators."""

    def __init__(self, code: ErrorCode, detail: str = "", retry_after: Optional[int] = None):
        self.code = ErrorCode(code)
        self.detail = detail
        self.retry_after = retry_after
        super().__init__(detail or self.code.value)

    @property
    def message(self) -> str:
        return user_message(self.code)

    def to_dict(self) -> dict:
        out = {"code": self.code.value, "message": self.message}
        if self.retry_after:
            out["retry_after"] = self.retry_after
        return out
