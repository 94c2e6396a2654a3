# tests/test_sanitizer.py
from usage_monitor.acquisition.sanitizer import (
    count_used_markers,
    parse_clean_output,
    parse_usage_output,
    strip_ansi,
)

from conftest import USAGE_PANEL

CLEAN_REPORT = (
    "Current session\n"
    "██████████ 42% used\n"
    "Resets 2am (Zone)\n\n"
    "Current week (all models)\n"
    "██ 7% used\n"
    "Resets Mar 4 at 8pm (Zone)\n"
)


def test_extracts_both_windows():
    fields = parse_clean_output(CLEAN_REPORT)
    assert fields is not None
    assert fields.session_pct == 42
    assert fields.weekly_pct == 7
    assert fields.session_reset == "2am (Zone)"
    assert fields.weekly_reset == "Mar 4 at 8pm (Zone)"


def test_no_percentages_means_no_result():
    text = "Do you trust this folder?\n1. Yes, proceed\nWelcome back!\nResets 2am (Zone)"
    assert parse_clean_output(text) is None


def test_single_window_defaults_the_other():
    fields = parse_clean_output("Current week (all models)\n 12% used\n")
    assert fields is not None
    assert fields.weekly_pct == 12
    assert fields.session_pct == 0
    assert fields.session_reset == ""


def test_tolerates_squashed_spaces():
    text = "Currentsession██ 15%used Resets3:30pm (UTC) Currentweek 80%used ResetsMar 4 at 8pm (UTC)"
    fields = parse_clean_output(text)
    assert fields.session_pct == 15
    assert fields.weekly_pct == 80
    assert fields.session_reset == "3:30pm (UTC)"
    assert fields.weekly_reset == "Mar 4 at 8pm (UTC)"


def test_strip_ansi_removes_csi_and_osc():
    raw = "\x1b]0;claude\x07\x1b[1;32mhello\x1b[0m \x1b[2Kworld\x1b[?25h"
    assert strip_ansi(raw) == "hello world"


def test_parse_usage_output_handles_raw_terminal_text():
    fields = parse_usage_output(USAGE_PANEL)
    assert (fields.session_pct, fields.weekly_pct) == (42, 7)
    assert fields.session_reset == "2am (Europe/Berlin)"


def test_count_used_markers():
    assert count_used_markers(CLEAN_REPORT) == 2
    assert count_used_markers("nothing here") == 0
