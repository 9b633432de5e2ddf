"""Cooldown gate turning per-frame decisions into discrete blow events."""

from __future__ import annotations

BLOW_COOLDOWN_MS = 1500.0

# Last-blow sentinel for a fresh session, so the first blow always passes
NEVER = float("-inf")


def gate(
    is_blowing: bool,
    now_ms: float,
    last_blow_ms: float,
    cooldown_ms: float = BLOW_COOLDOWN_MS,
) -> tuple[bool, float]:
    """
    Decide whether a blowing frame becomes an event.

    Returns:
        ``(fire, new_last_blow_ms)``; the timestamp only moves when the gate fires.
    """
    fire = bool(is_blowing) and (now_ms - last_blow_ms) > cooldown_ms
    return fire, (now_ms if fire else last_blow_ms)
