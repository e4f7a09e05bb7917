from __future__ import annotations

import webbrowser
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from iapbridge.purchase.interfaces import PurchaseVerifier
from iapbridge.purchase.system import PurchaseSystem
from iapbridge.services.billing import SimulatedBazaarSdk
from iapbridge.services.config import Settings
from iapbridge.services.core import Core
from iapbridge.services.prefs import JsonPrefsStore
from iapbridge.services.verifier import HttpPurchaseVerifier, LoopbackVerifier


@dataclass
class PurchaseServices:
    core: Core
    prefs: JsonPrefsStore
    sdk: SimulatedBazaarSdk
    verifier: PurchaseVerifier
    purchases: PurchaseSystem


def build_purchase_services(
    settings: Settings,
    userdata_dir: Path,
    *,
    base_device_id: str | None = None,
    auto_complete: bool = True,
    open_url: Callable[[str], object] = webbrowser.open,
) -> PurchaseServices:
    """Wire Core, prefs, billing and verification into a PurchaseSystem.

    Without a ``verify_url`` the loopback verifier answers for the simulated
    store, so the whole purchase round trip works offline.
    """
    opts = settings.purchase
    core = Core.from_options(settings.core, sandbox=opts.sandbox, base_device_id=base_device_id)
    prefs = JsonPrefsStore(userdata_dir / "prefs.json")
    sdk = SimulatedBazaarSdk(auto_complete=auto_complete)

    verifier: PurchaseVerifier
    if opts.verify_url:
        verifier = HttpPurchaseVerifier(
            opts.verify_url,
            headers={"X-Game-Id": str(core.game_id), "X-Device-Id": core.device_id},
        )
    else:
        verifier = LoopbackVerifier(sdk.payload_for_token)

    purchases = PurchaseSystem.create(
        prefs,
        core.salt,
        sdk=sdk,
        verifier=verifier,
        sandbox=opts.sandbox,
        open_url=open_url,
    )
    return PurchaseServices(core=core, prefs=prefs, sdk=sdk, verifier=verifier, purchases=purchases)
