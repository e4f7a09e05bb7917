from __future__ import annotations

import hashlib
import time
from typing import Callable, Protocol

from structlog import get_logger

logger = get_logger(__name__)

PAYLOAD_LIST_KEY = "PurchaseSystem.Payload.list"


class PayloadStorage(Protocol):
    def load(self, key: str) -> list[str]: ...

    def save(self, key: str, value: list[str]) -> None: ...


def _ticks() -> int:
    # 100ns resolution
    return time.time_ns() // 100


def compute_md5(text: str, salt: str) -> str:
    # non-ascii characters hash as "?"
    return hashlib.md5((text + salt).encode("ascii", errors="replace")).hexdigest().upper()


class PayloadRegistry:
    """One-time developer payloads tying a purchase request to its confirmation.

    A payload is the MD5 of the current tick count and a salt. Issued payloads
    are kept as a list in ``storage`` and written back after every change.
    Two payloads generated within the same tick with the same salt collide;
    nothing checks for that.
    """

    def __init__(
        self,
        storage: PayloadStorage,
        *,
        key: str = PAYLOAD_LIST_KEY,
        clock: Callable[[], int] = _ticks,
    ) -> None:
        self._storage = storage
        self._key = key
        self._clock = clock
        self._list: list[str] = list(storage.load(key))

    @property
    def payloads(self) -> list[str]:
        return list(self._list)

    def generate(self, salt: str) -> str:
        res = compute_md5(str(self._clock()), salt)
        self._list.append(res)
        self._save()
        logger.debug("payload_generated", payload=res, count=len(self._list))
        return res

    def is_valid(self, payload: str) -> bool:
        return payload in self._list

    def remove(self, payload: str) -> bool:
        res = self.is_valid(payload)
        if res:
            self._list.remove(payload)
        self._save()
        return res

    def _save(self) -> None:
        self._storage.save(self._key, list(self._list))
