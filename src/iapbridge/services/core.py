from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from iapbridge.purchase.payload import compute_md5
from iapbridge.services.config import CoreOptions


def hardware_device_id() -> str:
    return f"{uuid.getnode():012x}"


@dataclass
class Core:
    """Device identity and the secrets derived from the security options.

    Outside sandbox mode the raw cryptokey and salt are dropped once the
    derived values exist.
    """

    game_id: int
    online_domain: str
    base_device_id: str
    device_id: str
    salt: str
    crypto_key: bytes = field(repr=False)
    raw_cryptokey: str = field(default="", repr=False)
    raw_salt: str = field(default="", repr=False)

    @staticmethod
    def from_options(opts: CoreOptions, *, sandbox: bool, base_device_id: str | None = None) -> "Core":
        sec = opts.security
        if sandbox:
            base = device = opts.test_device_id
        else:
            base = base_device_id if base_device_id is not None else hardware_device_id()
            device = compute_md5(base, sec.salt)
        return Core(
            game_id=opts.game_id,
            online_domain=opts.online_domain,
            base_device_id=base,
            device_id=device,
            salt=compute_md5(sec.salt, sec.salt),
            crypto_key=sec.cryptokey.encode("ascii"),
            raw_cryptokey=sec.cryptokey if sandbox else "",
            raw_salt=sec.salt if sandbox else "",
        )
