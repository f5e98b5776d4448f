"""Environment-driven settings for hyper-notebook."""

import os
import sys
from pathlib import Path


def get_data_dir() -> Path:
    """Return the directory where hyper-notebook keeps its database."""
    env = os.environ.get("HYPER_NOTEBOOK_DATA_DIR")
    if env:
        return Path(env)

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "hyper-notebook"
    elif sys.platform == "win32":
        return Path(os.environ.get("APPDATA", "")) / "hyper-notebook"
    else:  # Linux
        return Path.home() / ".local" / "share" / "hyper-notebook"


def get_db_path() -> Path:
    """Return the path to the SQLite database file."""
    env = os.environ.get("HYPER_NOTEBOOK_DB_PATH")
    if env:
        return Path(env)

    return get_data_dir() / "notebook.db"


def get_openrouter_api_key() -> str | None:
    return os.environ.get("OPENROUTER_API_KEY") or None


def get_openai_api_key() -> str | None:
    return os.environ.get("OPENAI_API_KEY") or None


def get_gemini_api_key() -> str | None:
    return os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY") or None


def get_default_model() -> str:
    """Return the model used when a request does not name one."""
    return os.environ.get("DEFAULT_MODEL", "google/gemini-3-flash-preview")


def get_site_url() -> str:
    return os.environ.get("SITE_URL", "http://localhost:5000")


def get_site_name() -> str:
    return os.environ.get("SITE_NAME", "Hyper-Notebook")


def get_server_url() -> str:
    """Return the base URL the CLI chat client talks to."""
    return os.environ.get("HYPER_NOTEBOOK_URL", "http://127.0.0.1:8080")
