"""WebServer Configuration

Centralized configuration for the fingerprint gallery webserver.
All settings can be adjusted here without modifying the source code.
Set FPGALLERY_HOME to relocate the database, key file and logs.

"""

import os
from pathlib import Path

# ============================================================================
# PATHS
# ============================================================================

# Project root and paths
PROJECT_ROOT = Path(__file__).parent.parent.parent
DATA_DIR = Path(os.environ.get("FPGALLERY_HOME", PROJECT_ROOT / "data"))

# Database (key-value blob store)
DB_PATH = DATA_DIR / "fpgallery.db"
DB_KEY_FILE = DATA_DIR / ".db_key"

# Logs
LOG_DIR = DATA_DIR / "logs"
LOG_MAX_BYTES = 10 * 1024 * 1024  # 10MB per file
LOG_BACKUP_COUNT = 5  # Keep 5 backup files

# ============================================================================
# SERVER CONFIGURATION
# ============================================================================

# Network
HOST = "127.0.0.1"
PORT = 8080

# CORS
CORS_ORIGINS = ["*"]  # Browser front-end served from anywhere on the kiosk
CORS_ALLOW_CREDENTIALS = True

# Verbose output
VERBOSE = os.environ.get("FPGALLERY_VERBOSE", "1") == "1"


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def get_db_key() -> str:
    """Get or generate database encryption key."""
    if DB_KEY_FILE.exists():
        return DB_KEY_FILE.read_text().strip()

    # Generate new key
    import secrets
    key = secrets.token_urlsafe(32)

    # Save key
    DB_KEY_FILE.parent.mkdir(parents=True, exist_ok=True)
    DB_KEY_FILE.write_text(key)
    DB_KEY_FILE.chmod(0o600)  # Read/write for owner only

    return key


def ensure_directories():
    """Ensure all required directories exist."""
    for directory in (DATA_DIR, LOG_DIR, DB_PATH.parent):
        directory.mkdir(parents=True, exist_ok=True)
