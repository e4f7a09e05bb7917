from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import pygame  # type: ignore[import-not-found]


Color = tuple[int, int, int]


def draw_text(
    screen: pygame.Surface,
    font: pygame.font.Font,
    text: str,
    pos: tuple[int, int],
    color: Color = (240, 240, 240),
) -> None:
    img = font.render(text, True, color)
    screen.blit(img, pos)


@dataclass
class Button:
    rect: pygame.Rect
    text: str
    on_click: Callable[[], None]
    enabled: bool = True
    selected: bool = False

    def handle_event(self, event: pygame.event.Event) -> bool:
        if not self.enabled:
            return False
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            if self.rect.collidepoint(event.pos):
                self.on_click()
                return True
        return False

    def draw(self, screen: pygame.Surface, font: pygame.font.Font) -> None:
        if not self.enabled:
            bg: Color = (30, 30, 30)
        elif self.selected:
            bg = (60, 90, 60)
        else:
            bg = (60, 60, 60)
        pygame.draw.rect(screen, bg, self.rect, border_radius=8)
        pygame.draw.rect(screen, (0, 0, 0), self.rect, width=2, border_radius=8)
        img = font.render(self.text, True, (240, 240, 240))
        r = img.get_rect(center=self.rect.center)
        screen.blit(img, r.topleft)
