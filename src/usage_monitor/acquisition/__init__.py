# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""Usage acquisition: terminal automation and the OAuth endpoint."""

from .oauth import OAuthUsageFetcher
from .sanitizer import parse_clean_output, parse_usage_output, strip_ansi
from .session import EngineTimings, UsageSession
from .strategy import FallbackFetcher, UsageFetcher, build_fetcher
from .terminal import TerminalUsageFetcher, check_cli_installed, find_claude_executable

__all__ = [
    "EngineTimings",
    "FallbackFetcher",
    "OAuthUsageFetcher",
    "TerminalUsageFetcher",
    "UsageFetcher",
    "UsageSession",
    "build_fetcher",
    "check_cli_installed",
    "find_claude_executable",
    "parse_clean_output",
    "parse_usage_output",
    "strip_ansi",
]
