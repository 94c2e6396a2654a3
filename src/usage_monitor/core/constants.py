# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""Default values shared across the usage monitor."""

# =============================================================================
# SCHEDULER
# =============================================================================

DEFAULT_REFRESH_INTERVAL = 180  # 3 minutes
MIN_REFRESH_INTERVAL = 30
REFRESH_INTERVAL_OPTIONS = (60, 120, 180, 300)

INITIAL_BACKOFF_SECONDS = 5.0
MAX_BACKOFF_SECONDS = 180.0  # 3 minutes

ALERT_THRESHOLDS = (80, 90, 100)

# =============================================================================
# TERMINAL ENGINE
# =============================================================================

DEFAULT_ACQUIRE_TIMEOUT = 60.0

TERMINAL_COLUMNS = 120
TERMINAL_ROWS = 30

PROMPT_KEY_DELAY = 0.3  # before answering a setup prompt
KEY_SEQUENCE_GAP = 0.2  # between keys of a multi-key answer
MAIN_PROMPT_SETTLE = 1.0  # before typing the usage command
COMMAND_SUBMIT_DELAY = 0.5  # between typing the command and Enter
SUCCESS_KILL_GRACE = 0.5  # after Ctrl+C, before terminating
EXIT_WAIT_TIMEOUT = 3.0  # safety timer waiting for the child to exit

READ_CHUNK_SIZE = 4096

USAGE_COMMAND = "/usage"

# Environment variables that make the CLI believe it runs nested inside
# another session and refuse to start.
NESTED_SESSION_ENV_VARS = ("CLAUDECODE", "CLAUDE_CODE_ENTRYPOINT")

# =============================================================================
# OAUTH STRATEGY
# =============================================================================

OAUTH_USAGE_ENDPOINT = "https://api.anthropic.com/api/oauth/usage"
OAUTH_BETA_HEADER = "oauth-2025-04-20"
OAUTH_CREDENTIALS_FILE = ".credentials.json"
KEYCHAIN_SERVICE = "Claude Code-credentials"

# =============================================================================
# RESUME DETECTION
# =============================================================================

DEFAULT_RESUME_CHECK_INTERVAL = 15.0
DEFAULT_RESUME_THRESHOLD = 30.0

# =============================================================================
# LOGGING
# =============================================================================

LOG_FILE_NAME = "monitor.log"
LOG_MAX_BYTES = 5 * 1024 * 1024  # 5MB
LOG_BACKUP_COUNT = 3
