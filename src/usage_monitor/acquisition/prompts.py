# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Prompt recognition rules for the interactive CLI.

A fresh config directory walks the CLI through a series of first-run
screens before the main prompt appears. Each screen is described by a
PromptRule: the texts that identify it and the keys that dismiss it.
Rules are evaluated in list order against the whole sanitized buffer,
so when several screens are still visible the earlier rule wins.

When the CLI changes its wording, this module is the only place that
needs updating.
"""

from dataclasses import dataclass
from typing import Tuple

ENTER = "\r"
ARROW_DOWN = "\x1b[B"


def _phrase(text: str) -> Tuple[str, ...]:
    """A phrase as rendered, and with the spaces lost by cursor movement."""
    squashed = text.replace(" ", "")
    if squashed == text:
        return (text,)
    return (squashed, text)


@dataclass(frozen=True)
class PromptRule:
    """
    One recognisable screen and the keys that answer it.

    Attributes:
        name: Identifier used for the fired-once guard and logging
        required: Every group must have at least one substring present
        keys: Keys to send, first after the prompt delay, the rest spaced
            by the key-sequence gap
        forbidden: Substrings that veto the match
    """

    name: str
    required: Tuple[Tuple[str, ...], ...]
    keys: Tuple[str, ...] = (ENTER,)
    forbidden: Tuple[str, ...] = ()

    def matches(self, cleaned: str) -> bool:
        if any(text in cleaned for text in self.forbidden):
            return False
        return all(
            any(text in cleaned for text in group) for group in self.required
        )


# =============================================================================
# SETUP PROMPTS (priority order)
# =============================================================================

SETUP_PROMPT_RULES: Tuple[PromptRule, ...] = (
    PromptRule(
        name="theme",
        required=(_phrase("Dark mode"), _phrase("Light mode")),
        forbidden=("Logged",),
    ),
    # First option is the subscription login
    PromptRule(name="login-method", required=(_phrase("Select login method"),)),
    PromptRule(
        name="login-continue",
        required=(_phrase("Login successful"), ("continue",)),
    ),
    PromptRule(
        name="security",
        required=(_phrase("Security notes"), ("Enter",)),
    ),
    PromptRule(
        name="terminal-setup",
        required=(_phrase("terminal setup"), _phrase("recommended settings")),
    ),
    PromptRule(
        name="trust",
        required=(_phrase("trust this folder"),),
        keys=("1" + ENTER,),
    ),
    # Default selection is "No, exit"; move to "Yes, I accept"
    PromptRule(
        name="bypass",
        required=(
            _phrase("Bypass Permissions mode"),
            ("Yes,Iaccept", "Yes, I accept"),
        ),
        keys=(ARROW_DOWN, ENTER),
    ),
)

# =============================================================================
# MAIN PROMPT AND COMMAND MENU
# =============================================================================

MAIN_PROMPT_MARKERS: Tuple[str, ...] = _phrase("Welcome back") + _phrase(
    "bypass permissions on"
)

# Slash-command autocomplete intercepting the typed command
COMMAND_MENU_RULE = PromptRule(
    name="usage-enter",
    required=(_phrase("Show plan usage limits"),),
)


def has_main_prompt(cleaned: str) -> bool:
    """Check whether the CLI reached its ready state."""
    return any(marker in cleaned for marker in MAIN_PROMPT_MARKERS)
