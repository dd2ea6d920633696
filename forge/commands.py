"""Global key-chord commands.

Bindings:

* ``mod+enter``: submit the current configuration (ignored while running)
* ``escape``: close any open overlay
* ``mod+shift+r``: reset the configuration after confirmation
* ``shift+?``: request help

``mod`` is the primary modifier; ``ctrl``, ``cmd`` and ``meta`` all count as
it. The router does no debouncing: repeated chords re-invoke the action and
the orchestrator's admission control absorbs duplicate submissions.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Optional

from forge.orchestrator import GenerationOrchestrator
from forge.store import ConfigurationStore

RESET_PROMPT = "Reset project configuration?"

_PRIMARY_ALIASES = {"mod", "ctrl", "control", "cmd", "command", "meta", "super"}
_KEY_ALIASES = {"return": "enter", "esc": "escape"}


def _noop() -> None:
    return None


@dataclass(frozen=True)
class KeyChord:
    """A key plus the modifiers held with it."""

    key: str
    primary: bool = False
    shift: bool = False
    alt: bool = False

    @classmethod
    def parse(cls, text: str) -> "KeyChord":
        """Parse chords such as ``"ctrl+enter"`` or ``"Cmd+Shift+R"``.

        A trailing ``+`` is the plus key itself (``"shift++"``).
        """
        raw = text.strip().lower()
        if not raw:
            raise ValueError("empty key chord")
        if raw.endswith("++") or raw == "+":
            parts = [p for p in raw[:-1].split("+") if p] + ["+"]
        else:
            parts = [p.strip() for p in raw.split("+") if p.strip()]

        *modifiers, key = parts
        primary = shift = alt = False
        for modifier in modifiers:
            if modifier in _PRIMARY_ALIASES:
                primary = True
            elif modifier == "shift":
                shift = True
            elif modifier in ("alt", "option"):
                alt = True
            else:
                raise ValueError(f"unknown modifier {modifier!r} in {text!r}")
        return cls(key=_KEY_ALIASES.get(key, key), primary=primary, shift=shift, alt=alt)

    def __str__(self) -> str:
        parts = []
        if self.primary:
            parts.append("mod")
        if self.shift:
            parts.append("shift")
        if self.alt:
            parts.append("alt")
        parts.append(self.key)
        return "+".join(parts)


SUBMIT = KeyChord("enter", primary=True)
CLOSE_OVERLAYS = KeyChord("escape")
RESET = KeyChord("r", primary=True, shift=True)
HELP = KeyChord("?", shift=True)


class CommandRouter:
    """Dispatches key chords to orchestrator and UI actions.

    Args:
        orchestrator: Receives submissions.
        store: Target of the reset command.
        confirm: Asked before resetting; returns ``True`` to proceed.
        close_overlays: UI signal fired on ``escape``.
        show_help: UI signal fired on ``shift+?``.
    """

    def __init__(
        self,
        orchestrator: GenerationOrchestrator,
        store: ConfigurationStore,
        confirm: Callable[[str], bool],
        close_overlays: Callable[[], None] = _noop,
        show_help: Callable[[], None] = _noop,
    ) -> None:
        self.orchestrator = orchestrator
        self.store = store
        self.confirm = confirm
        self.close_overlays = close_overlays
        self.show_help = show_help
        self._bindings: dict[KeyChord, Callable[[], Any]] = {
            SUBMIT: self._submit,
            CLOSE_OVERLAYS: self._close_overlays,
            RESET: self.reset,
            HELP: self._help,
        }

    @property
    def bindings(self) -> dict[KeyChord, Callable[[], Any]]:
        return dict(self._bindings)

    def handle(self, chord: KeyChord | str) -> Optional[asyncio.Task[bool]]:
        """Run the action bound to *chord*.

        Returns the scheduled submission task for the submit chord, ``None``
        otherwise (including unbound chords and submits while running).
        Submitting requires a running event loop.
        """
        if isinstance(chord, str):
            chord = KeyChord.parse(chord)
        action = self._bindings.get(chord)
        if action is None:
            return None
        result = action()
        return result if isinstance(result, asyncio.Task) else None

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _submit(self) -> Optional[asyncio.Task[bool]]:
        if self.orchestrator.is_running:
            return None
        return asyncio.get_running_loop().create_task(self.orchestrator.submit())

    def _close_overlays(self) -> None:
        self.close_overlays()

    def reset(self) -> bool:
        """Ask for confirmation and reset the store; returns whether it did."""
        if not self.confirm(RESET_PROMPT):
            return False
        self.store.reset()
        return True

    def _help(self) -> None:
        self.show_help()
