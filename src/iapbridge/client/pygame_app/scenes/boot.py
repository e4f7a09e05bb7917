from __future__ import annotations

import traceback

import pygame  # type: ignore[import-not-found]

from iapbridge.purchase.types import PurchaseProvider
from iapbridge.services.bootstrap import build_purchase_services
from iapbridge.services.observability import setup_logging
from iapbridge.services.telemetry import Operation, PurchaseOutcome

from ..app import HostContext, SceneTransition
from ..ui import Button, draw_text
from .shop import ShopScene


class BootScene:
    def __init__(self, ctx: HostContext) -> None:
        self.ctx = ctx
        self._did_boot = False
        self._error: str | None = None
        self._quit_button: Button | None = None

    def handle_event(self, event: pygame.event.Event) -> None:
        if self._quit_button is not None:
            self._quit_button.handle_event(event)

    def _on_billing_ready(self, supported: bool, message: str) -> None:
        self.ctx.billing_status = "Billing: ready" if supported else f"Billing: unavailable ({message})"
        self.ctx.telemetry.record(
            PurchaseOutcome(Operation.BILLING_INIT, PurchaseProvider.BAZAAR, supported, message=message)
        )

    def update(self, dt: float) -> SceneTransition | None:
        if self._did_boot:
            return None
        self._did_boot = True
        try:
            settings = self.ctx.config.load_settings()
            setup_logging(settings.logging.level, settings.logging.format)

            services = build_purchase_services(settings, self.ctx.paths.userdata_dir)
            self.ctx.core = services.core
            self.ctx.purchases = services.purchases

            opts = settings.purchase
            services.purchases.initialize(opts.version, opts.bazaar_key, opts.store_url, on_init=self._on_billing_ready)
            self.ctx.telemetry.record_boot(True, sandbox=opts.sandbox)
            return SceneTransition(ShopScene(self.ctx))
        except Exception as e:
            tb = traceback.format_exc(limit=8)
            self._error = f"{e}\n\n{tb}"
            self.ctx.telemetry.record_boot(False, error=str(e))
            self._quit_button = Button(
                rect=pygame.Rect(20, 580, 140, 44),
                text="Quit",
                on_click=lambda: pygame.event.post(pygame.event.Event(pygame.QUIT)),
            )
            return None

    def render(self, screen: pygame.Surface) -> None:
        screen.fill((10, 10, 10))
        fonts = self.ctx.fonts
        draw_text(screen, fonts.big, "iapbridge", (20, 20))

        if self._error is None:
            draw_text(screen, fonts.ui, "Booting... loading settings, starting billing.", (20, 80))
        else:
            draw_text(screen, fonts.ui, "BOOT ERROR", (20, 80), color=(240, 80, 80))
            y = 120
            for line in self._error.splitlines()[:22]:
                draw_text(screen, fonts.small, line[:120], (20, y), color=(230, 230, 230))
                y += 18
            if self._quit_button is not None:
                self._quit_button.draw(screen, fonts.ui)
