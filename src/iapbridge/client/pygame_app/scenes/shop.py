from __future__ import annotations

import pygame  # type: ignore[import-not-found]

from iapbridge.purchase.serialize import purchased_from_json
from iapbridge.purchase.types import PurchaseProvider
from iapbridge.services.telemetry import Operation, PurchaseOutcome

from ..app import HostContext, SceneTransition
from ..ui import Button, draw_text

DEMO_SKUS = ["coins_100", "coins_500", "remove_ads"]
PROVIDERS = [PurchaseProvider.BAZAAR, PurchaseProvider.GATEWAY, PurchaseProvider.NULL]


class ShopScene:
    def __init__(self, ctx: HostContext) -> None:
        self.ctx = ctx
        self._next: SceneTransition | None = None
        self.provider = PurchaseProvider.BAZAAR
        self.selected_sku: str = DEMO_SKUS[0]
        self.busy = False
        self.message: str = ""
        self.owned: list[str] = []

        self._provider_buttons: list[tuple[PurchaseProvider, Button]] = []
        for i, p in enumerate(PROVIDERS):
            self._provider_buttons.append(
                (p, Button(rect=pygame.Rect(20 + i * 160, 80, 150, 36), text=p.label, on_click=lambda p=p: self._set_provider(p)))
            )
        self._sku_buttons: list[tuple[str, Button]] = []
        for i, sku in enumerate(DEMO_SKUS):
            self._sku_buttons.append(
                (sku, Button(rect=pygame.Rect(20, 140 + i * 54, 300, 46), text=sku, on_click=lambda s=sku: self._select(s)))
            )

        self.btn_purchase = Button(rect=pygame.Rect(380, 140, 200, 46), text="Purchase", on_click=self._on_purchase)
        self.btn_restore = Button(rect=pygame.Rect(380, 194, 200, 46), text="Restore Purchases", on_click=self._on_restore)

    def _set_provider(self, provider: PurchaseProvider) -> None:
        self.provider = provider
        self.message = ""

    def _select(self, sku: str) -> None:
        self.selected_sku = sku
        self.message = ""

    # -------- Purchase flow --------
    def _on_purchase(self) -> None:
        purchases = self.ctx.purchases
        if purchases is None:
            return
        sku = self.selected_sku
        self.busy = True
        self.message = f"Purchasing {sku}..."
        purchases.purchase(self.provider, sku, lambda ok, msg: self._on_purchased(sku, ok, msg))

    def _on_purchased(self, sku: str, ok: bool, msg: str) -> None:
        self.ctx.telemetry.record(PurchaseOutcome(Operation.PURCHASE, self.provider, ok, sku=sku, message=msg))
        purchases = self.ctx.purchases
        if not ok or purchases is None:
            self.busy = False
            self.message = f"Purchase failed: {msg}"
            return
        # consumables: grant, then give the item back to the store
        self.message = f"Purchased {sku}, consuming..."
        purchases.consume(sku, lambda cok, cmsg: self._on_consumed(sku, cok, cmsg))

    def _on_consumed(self, sku: str, ok: bool, msg: str) -> None:
        self.busy = False
        self.ctx.telemetry.record(PurchaseOutcome(Operation.CONSUME, self.provider, ok, sku=sku, message=msg))
        self.message = f"Consumed {sku}." if ok else f"Consume failed: {msg}"

    def _on_restore(self) -> None:
        purchases = self.ctx.purchases
        if purchases is None:
            return
        self.busy = True
        self.message = "Querying purchases..."
        purchases.query_purchases(self.provider, self._on_restored)

    def _on_restored(self, ok: bool, msg: str) -> None:
        self.busy = False
        self.ctx.telemetry.record(PurchaseOutcome(Operation.QUERY, self.provider, ok, message="" if ok else msg))
        if not ok:
            self.message = f"Restore failed: {msg}"
            return
        data = purchased_from_json(msg)
        self.owned = [d.sku for d in data.list]
        self.message = f"Restored {len(self.owned)} purchase(s)."

    # -------- Scene --------
    def handle_event(self, event: pygame.event.Event) -> None:
        for _, b in self._provider_buttons:
            b.handle_event(event)
        for _, b in self._sku_buttons:
            b.handle_event(event)
        self.btn_purchase.handle_event(event)
        self.btn_restore.handle_event(event)

    def update(self, dt: float) -> SceneTransition | None:
        ready = self.ctx.purchases is not None and not self.busy
        self.btn_purchase.enabled = ready
        self.btn_restore.enabled = ready
        for p, b in self._provider_buttons:
            b.selected = p == self.provider
        for sku, b in self._sku_buttons:
            b.selected = sku == self.selected_sku
        return self._next

    def render(self, screen: pygame.Surface) -> None:
        screen.fill((12, 12, 18))
        fonts = self.ctx.fonts
        draw_text(screen, fonts.big, "Shop", (20, 20))
        draw_text(screen, fonts.small, self.ctx.billing_status, (620, 30), color=(200, 200, 220))
        if self.ctx.core is not None:
            draw_text(screen, fonts.small, f"Device {self.ctx.core.device_id[:12]}", (620, 50), color=(140, 140, 160))

        for _, b in self._provider_buttons:
            b.draw(screen, fonts.small)
        for _, b in self._sku_buttons:
            b.draw(screen, fonts.ui)
        self.btn_purchase.draw(screen, fonts.ui)
        self.btn_restore.draw(screen, fonts.ui)

        y = 320
        draw_text(screen, fonts.ui, "Owned:", (380, y))
        for sku in self.owned[:10]:
            y += 20
            draw_text(screen, fonts.small, f"- {sku}", (390, y))

        if self.message:
            draw_text(screen, fonts.ui, self.message, (20, 580), color=(240, 200, 120))
