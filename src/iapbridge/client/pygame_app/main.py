from __future__ import annotations

import argparse

import pygame  # type: ignore[import-not-found]

from iapbridge.paths import get_paths
from iapbridge.services.config import ConfigService
from iapbridge.services.telemetry import TelemetryService

from .app import App, HostContext
from .fonts import load_fonts
from .scenes.boot import BootScene


def main() -> int:
    parser = argparse.ArgumentParser(prog="iapbridge-demo")
    parser.add_argument("--width", type=int, default=1024)
    parser.add_argument("--height", type=int, default=640)
    args = parser.parse_args()

    pygame.init()
    screen = pygame.display.set_mode((args.width, args.height))
    pygame.display.set_caption("iapbridge - purchase demo")

    clock = pygame.time.Clock()
    paths = get_paths()

    ctx = HostContext(
        screen=screen,
        clock=clock,
        paths=paths,
        fonts=load_fonts(),
        config=ConfigService(data_dir=paths.data_dir, schema_dir=paths.schema_dir),
        telemetry=TelemetryService(paths.userdata_dir / "purchases.jsonl"),
    )

    app = App(ctx, BootScene(ctx))
    return app.run()
