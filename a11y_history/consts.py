import os
from pathlib import Path

DEFAULT_DATA_DIR = Path(
    os.getenv("A11Y_HISTORY_DATA_DIR", "").strip()
    or (Path(__file__).parent.parent.resolve() / "data")
).absolute()

# History blob
STORAGE_KEY = "accessibility_scan_history"
SCHEMA_VERSION = 1  # Bump together with ScanHistoryStore._migrate_schema
MAX_SCANS = 50  # Oldest scans are dropped beyond this

# Quota (mirrors a 5MB browser local-storage budget)
STORAGE_LIMIT_BYTES = 5 * 1024 * 1024
WARNING_RATIO = 0.8
PRUNE_RATIO = 0.95
PRUNE_KEEP_RATIO = 0.5  # Fraction of scans kept when pruning

MAX_LABEL_LENGTH = 100

# External scanning service
SCAN_SERVICE_URL = os.getenv("A11Y_SCAN_SERVICE_URL", "http://localhost:3000").strip()
SCAN_SERVICE_ENDPOINT = "/api/scan"
SCAN_TIMEOUT = int(os.getenv("A11Y_SCAN_TIMEOUT", "300"))  # 5 minutes
SCAN_MAX_RETRIES = 3
SCAN_RETRY_BASE_DELAY = 1.0  # Base delay in seconds for exponential backoff
SCAN_RETRY_MAX_DELAY = 30.0
