from __future__ import annotations

from dataclasses import dataclass

KEY_ACTIONS = {
    "s": "save",
    "r": "reset",
    "d": "details",
    "q": "quit",
}


@dataclass(frozen=True)
class InputEvent:
    kind: str  # "save" | "reset" | "details" | "quit"


def event_for_key(ch: str) -> InputEvent | None:
    kind = KEY_ACTIONS.get(ch.lower())
    return InputEvent(kind=kind) if kind else None
