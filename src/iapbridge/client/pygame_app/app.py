from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

import pygame  # type: ignore[import-not-found]

from iapbridge.paths import Paths
from iapbridge.purchase.system import PurchaseSystem
from iapbridge.services.config import ConfigService
from iapbridge.services.core import Core
from iapbridge.services.telemetry import TelemetryService

from .fonts import Fonts


@dataclass
class SceneTransition:
    next_scene: "Scene"


class Scene(Protocol):
    """A screen of the host. Purchase callbacks reach scenes only from
    ``App.run``, after ``handle_event`` and before ``update``."""

    def handle_event(self, event: pygame.event.Event) -> None: ...
    def update(self, dt: float) -> SceneTransition | None: ...
    def render(self, screen: pygame.Surface) -> None: ...


@dataclass
class HostContext:
    screen: pygame.Surface
    clock: pygame.time.Clock
    paths: Paths
    fonts: Fonts
    config: ConfigService
    telemetry: TelemetryService

    # Loaded at boot
    core: Optional[Core] = None
    purchases: Optional[PurchaseSystem] = None
    billing_status: str = "Billing: starting..."


class App:
    def __init__(self, ctx: HostContext, initial_scene: Scene) -> None:
        self.ctx = ctx
        self.scene: Scene = initial_scene
        self.running = True

    def run(self) -> int:
        while self.running:
            dt = self.ctx.clock.tick(60) / 1000.0
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    self.running = False
                    break
                self.scene.handle_event(event)

            # purchase callbacks only ever run here
            if self.ctx.purchases is not None:
                self.ctx.purchases.drain()

            tr = self.scene.update(dt)
            if tr is not None:
                self.scene = tr.next_scene

            self.scene.render(self.ctx.screen)
            pygame.display.flip()

        if self.ctx.purchases is not None:
            self.ctx.purchases.shutdown()
        return 0
