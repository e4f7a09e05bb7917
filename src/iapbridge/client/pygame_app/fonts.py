from __future__ import annotations

from dataclasses import dataclass

import pygame  # type: ignore[import-not-found]


@dataclass
class Fonts:
    ui: pygame.font.Font
    small: pygame.font.Font
    big: pygame.font.Font


def load_fonts() -> Fonts:
    pygame.font.init()
    return Fonts(
        ui=pygame.font.SysFont(None, 24),
        small=pygame.font.SysFont(None, 18),
        big=pygame.font.SysFont(None, 34),
    )
