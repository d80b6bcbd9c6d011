# shared/constants.py
from pathlib import Path

# =========================
# GENERAL CONFIGS
# =========================
TIMEZONE = "Europe/London"

# =====================
# PACING RULES
# =====================

# Projected spend beyond budget x (1 +/- tolerance) flips HOT / COLD
PACE_TOLERANCE = 0.05

# Concluded periods landing within this band of budget hit target (percent)
TARGET_BAND_LOW = 95.0
TARGET_BAND_HIGH = 105.0

# Daily budget changes below either threshold count as already optimal
OPTIMAL_CHANGE_ABS = 1.0  # currency units
OPTIMAL_CHANGE_PCT = 5.0  # percent

# Ad platforms carrying spend + daily budgets, in split order
PLATFORMS = ("google", "facebook")

# =====================
# BILLING CYCLES
# =====================

STANDARD_CYCLE = "standard"

# Named custom cycles -> cutoff day-of-month the cycle starts on
CYCLE_CUTOFFS = {
    "apollo": 26,
    "brandon": 21,
    "hc1": 11,
}

# Cutoffs above 28 would not exist in February
MAX_CUTOFF_DAY = 28

# =====================
# SPREADSHEET LAYOUT
# =====================

CONFIG_RANGE = "Config!A:G"

# Range templates per source kind, formatted with the client's source prefix
SOURCE_RANGES = {
    "google": "{prefix} Google!A:F",
    "facebook": "{prefix} FB!A:H",
    "conversions": "{prefix} Google Conversions!A:E",
}

SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"
SHEETS_REQUEST_TIMEOUT = 20  # seconds


# =========================
# PARALLEL EXECUTION CONFIG
# =========================

PARALLEL_MAX_WORKERS = 8

PARALLEL_MAX_RETRIES = 3

PARALLEL_INITIAL_BACKOFF = 1.0  # seconds
PARALLEL_MAX_BACKOFF = 10.0  # seconds

PARALLEL_TASK_TIMEOUT = 60  # seconds per task

PARALLEL_JITTER_MIN = 0.0  # seconds
PARALLEL_JITTER_MAX = 0.2


# =====================
# LOGGING CONFIG
# =====================

# Global switch
LOGGING_ENABLED = True

# Logging level
# DEBUG | INFO | WARNING | ERROR | CRITICAL
LOG_LEVEL = "INFO"

# Directory for all logs (anchored to repo root)
LOG_DIR = str(Path(__file__).resolve().parents[1] / "logs")

# Per-run file rotation (within a single run)
LOG_MAX_BYTES = 10 * 1024 * 1024  # 10 MB per file
LOG_BACKUP_COUNT = 5  # Rotated files per run
