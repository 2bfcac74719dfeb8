# kiosk/services/rotation.py
"""Typewriter-style prompt rotation for free-text questions."""
from __future__ import annotations

from typing import Callable, Optional, Sequence

from kiosk.services.scheduler import TimerSlot


class RotatingPrompt:
    """
    Cycles through `texts`, revealing one character every `speed` seconds,
    holding the full prompt for `display_time`, then moving on (wrapping).

    `stop()` cancels the animation outright; `start()` always begins again at
    the first character of the first prompt.
    """

    def __init__(self,
                 typing_slot: TimerSlot,
                 display_slot: TimerSlot,
                 speed: float = 0.05,
                 display_time: float = 4.0,
                 on_change: Optional[Callable[[str], None]] = None):
        self.typing_slot = typing_slot
        self.display_slot = display_slot
        self.speed = speed
        self.display_time = display_time
        self.on_change = on_change
        self.texts: Sequence[str] = ()
        self.index = 0
        self.text = ""
        self.running = False

    def start(self, texts: Sequence[str]) -> None:
        self.stop()
        if not texts:
            return
        self.texts = list(texts)
        self.index = 0
        self.running = True
        self._begin_prompt()

    def stop(self) -> None:
        self.typing_slot.cancel()
        self.display_slot.cancel()
        self.running = False

    @property
    def current_prompt(self) -> str:
        return self.texts[self.index] if self.texts else ""

    def _begin_prompt(self) -> None:
        self._set_text("")
        self.typing_slot.arm(self.speed, lambda: self._type(1))

    def _type(self, count: int) -> None:
        prompt = self.current_prompt
        self._set_text(prompt[:count])
        if count < len(prompt):
            self.typing_slot.arm(self.speed, lambda: self._type(count + 1))
        else:
            self.display_slot.arm(self.display_time, self._next_prompt)

    def _next_prompt(self) -> None:
        self.index = (self.index + 1) % len(self.texts)
        self._begin_prompt()

    def _set_text(self, text: str) -> None:
        self.text = text
        if self.on_change is not None:
            self.on_change(text)
