# config.py
import os

# Compute the project root relative to this file.
PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.abspath(os.path.join(PACKAGE_DIR, ".."))

# Define the storage directory (you can adjust this as needed).
STORAGE_DIR = os.environ.get("JSONCSV_STORAGE_DIR", os.path.join(PROJECT_ROOT, "storage"))

# Uploaded JSON files are kept here while they are open in the converter.
UPLOAD_DIR = os.environ.get("JSONCSV_UPLOAD_DIR", os.path.join(STORAGE_DIR, "uploads"))

# Settings and recent files live in a local SQLite database.
DB_PATH = os.path.join(STORAGE_DIR, "jsoncsv.db")
DATABASE_URL = os.environ.get("JSONCSV_DATABASE_URL", f"sqlite:///{DB_PATH}")

# Web UI assets.
TEMPLATES_DIR = os.path.join(PACKAGE_DIR, "templates")
STATIC_DIR = os.path.join(PACKAGE_DIR, "static")

HOST = os.environ.get("JSONCSV_HOST", "127.0.0.1")
PORT = int(os.environ.get("JSONCSV_PORT", "8000"))
LOG_LEVEL = os.environ.get("JSONCSV_LOG_LEVEL", "INFO").upper()

# Maximum number of recent files to keep in history.
MAX_RECENT_FILES = 5

# Preview grid limits.
DEFAULT_PREVIEW_ROWS = 100
MIN_PREVIEW_ROWS = 10
MAX_PREVIEW_ROWS = 1000

# Delimiters offered in the settings panel, keyed by their display label.
DELIMITER_CHOICES = {
    "Comma (,)": ",",
    "Semicolon (;)": ";",
    "Tab": "\t",
}


def ensure_storage_dirs():
    """Create the storage directories if they don't exist."""
    os.makedirs(STORAGE_DIR, exist_ok=True)
    os.makedirs(UPLOAD_DIR, exist_ok=True)
