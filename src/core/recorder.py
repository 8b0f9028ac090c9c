"""
Request Recorder
=================
Bounded, newest-first log of every upload the mock has seen and what it did
with it. Lives in memory only; a restart starts with an empty inbox.
"""

import datetime
import logging
import random
import string
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from core.behavior import BehaviorStore, ChaosMode

logger = logging.getLogger("mock_output")

MAX_LOG = 200
NO_RESPONSE = 0   # responseStatus when the request was held open

_ID_ALPHABET = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class UploadDescriptor:
    """What the recorder needs to know about one incoming upload."""
    method: str
    path: str
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    has_auth: bool = False


class LogEntry(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    timestamp: datetime.datetime
    method: str
    path: str
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    has_auth: bool = False
    response_status: int
    note: Optional[str] = None
    chaos_mode: ChaosMode

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


def _base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_ID_ALPHABET[rem])
    return "".join(reversed(digits))


def new_entry_id() -> str:
    """Millisecond clock in base36 plus a short random suffix. Not cryptographic."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=4))
    return _base36(int(time.time() * 1000)) + suffix


class RequestRecorder:
    def __init__(self, behavior_store: BehaviorStore, max_entries: int = MAX_LOG):
        self._behavior_store = behavior_store
        # appendleft on a bounded deque drops from the right, i.e. the oldest entry
        self._entries: Deque[LogEntry] = deque(maxlen=max_entries)

    def record(self, descriptor: UploadDescriptor, response_status: int, note: Optional[str] = None) -> LogEntry:
        """
        Prepend an entry for one upload.

        The chaos mode is read from the store at call time, not from the
        snapshot the responder acted on. Entries are ordered by when this is
        called, so a delayed request lands after anything that finished
        while it was waiting.
        """
        entry = LogEntry(
            id=new_entry_id(),
            timestamp=datetime.datetime.now(datetime.timezone.utc),
            method=descriptor.method,
            path=descriptor.path,
            file_name=descriptor.file_name,
            file_size=descriptor.file_size,
            has_auth=descriptor.has_auth,
            response_status=response_status,
            note=note or None,
            chaos_mode=self._behavior_store.get().mode,
        )
        self._entries.appendleft(entry)

        status_label = "TIMEOUT" if response_status == NO_RESPONSE else response_status
        logger.info(
            f"📥 {descriptor.method} {descriptor.path} "
            f"file={descriptor.file_name or '-'} → {status_label}"
        )
        return entry

    def list(self) -> List[LogEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        logger.info("🧹 Request log cleared")

    def __len__(self) -> int:
        return len(self._entries)
