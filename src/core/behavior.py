"""
Behavior Store
===============
The single chaos configuration that decides how every upload is answered.

A Behavior is an immutable snapshot. The store swaps in a new snapshot on every
change, so a request that already took a snapshot keeps seeing the old one.
"""

import logging
import math
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

logger = logging.getLogger("mock_output")


class ChaosMode(str, Enum):
    NORMAL = "normal"
    ERROR = "error"
    TIMEOUT = "timeout"


ERROR_MESSAGES: Dict[int, str] = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    408: "Request Timeout",
    429: "Too Many Requests",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
}

DEFAULT_ERROR_CODE = 500
INVALID_MODE_MESSAGE = "mode must be normal, error, or timeout"


class InvalidBehaviorError(ValueError):
    """Raised when a control payload carries a mode outside ChaosMode."""


class Behavior(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    mode: ChaosMode = ChaosMode.NORMAL
    error_code: int = DEFAULT_ERROR_CODE
    error_message: str = ""   # empty -> derived from error_code
    delay_ms: int = 0

    def resolve_error_message(self) -> str:
        if self.error_message:
            return self.error_message
        return ERROR_MESSAGES.get(self.error_code, f"Error {self.error_code}")

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ── Coercion helpers ──

def _to_number(value: Any) -> Optional[float]:
    """Best-effort numeric conversion; None when the value is not a number."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def coerce_error_code(value: Any) -> int:
    number = _to_number(value)
    if not number:
        return DEFAULT_ERROR_CODE
    code = int(number)
    # 1xx cannot be sent as a final response
    if code < 200 or code > 599:
        return DEFAULT_ERROR_CODE
    return code


def coerce_delay_ms(value: Any) -> int:
    number = _to_number(value)
    if not number:
        return 0
    return max(0, int(number))


def parse_mode(value: Any) -> ChaosMode:
    if isinstance(value, ChaosMode):
        return value
    try:
        return ChaosMode(value)
    except ValueError:
        raise InvalidBehaviorError(INVALID_MODE_MESSAGE) from None


class BehaviorStore:
    """Holds the current Behavior for one application instance."""

    def __init__(self, initial: Optional[Behavior] = None):
        self._behavior = initial or Behavior()

    def get(self) -> Behavior:
        return self._behavior

    def set(self, partial: Dict[str, Any]) -> Behavior:
        """
        Apply a loosely-typed partial update.

        Accepts any subset of ``mode``, ``errorCode``, ``errorMessage`` and
        ``delayMs`` (snake_case names work too). Missing or null fields are
        left alone; an empty or falsy mode (``""``, ``false``, ``0``) is
        ignored. Numeric fields never raise:
        unparseable error codes become 500 and unparseable delays become 0.

        Raises:
            InvalidBehaviorError: mode is not normal, error or timeout. The
                stored behavior is untouched.
        """
        changes: Dict[str, Any] = {}

        mode = _pick(partial, "mode")
        if mode:
            changes["mode"] = parse_mode(mode)

        error_code = _pick(partial, "errorCode", "error_code")
        if error_code is not None:
            changes["error_code"] = coerce_error_code(error_code)

        error_message = _pick(partial, "errorMessage", "error_message")
        if error_message is not None:
            changes["error_message"] = str(error_message)

        delay_ms = _pick(partial, "delayMs", "delay_ms")
        if delay_ms is not None:
            changes["delay_ms"] = coerce_delay_ms(delay_ms)

        if changes:
            self._behavior = self._behavior.model_copy(update=changes)
            logger.info(f"🎛️ Behavior updated: {self._describe(self._behavior)}")
        return self._behavior

    def reset(self) -> Behavior:
        self._behavior = Behavior()
        logger.info("🔄 Behavior reset to defaults")
        return self._behavior

    @staticmethod
    def _describe(behavior: Behavior) -> str:
        label = behavior.mode.value.upper()
        if behavior.mode is ChaosMode.ERROR:
            label += f" {behavior.error_code}"
        if behavior.delay_ms > 0:
            label += f" +{behavior.delay_ms}ms"
        return label


def _pick(partial: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if partial.get(key) is not None:
            return partial[key]
    return None
