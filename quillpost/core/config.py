import os
from dotenv import load_dotenv

load_dotenv(override=True)

class Config:
    """
    Base configuration for Quillpost.
    Projects should provide database paths via environment variables.
    """
    SECRET_KEY = os.getenv('FLASK_SECRET_KEY')

    # Get DB_DIR from environment, or use a default if not set
    DB_DIR = os.getenv('DB_DIR', os.path.join(os.getcwd(), 'databases'))

    # Database paths - use environment variables or fallback to DB_DIR
    USER_DB = os.getenv('USER_DB', os.path.join(DB_DIR, "users.db"))
    # Persistent app_logs storage is optional; unset means std logging only
    LOG_DB = os.getenv('LOG_DB')

    UPLOAD_FOLDER = os.getenv('UPLOAD_FOLDER', os.path.join(os.getcwd(), 'uploads'))

    # Table names
    SUBSCRIBERS = "subscribers"
    LOGS_TABLE = "app_logs"

    # Subscribers API
    DEFAULT_PAGE_LIMIT = int(os.getenv('DEFAULT_PAGE_LIMIT', '15'))
    IMPORT_MAX_WORKERS = int(os.getenv('IMPORT_MAX_WORKERS', '4'))
    SQLITE_TIMEOUT = float(os.getenv('SQLITE_TIMEOUT', '10'))

    # Comma separated list, '*' allows any origin
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')


def get_setting(name, default=None):
    """Resolve a setting: current_app.config -> Config -> default"""
    try:
        from flask import current_app
        val = current_app.config.get(name)
        if val is not None:
            return val
    except RuntimeError:
        pass  # No app context (worker thread, CLI)
    val = getattr(Config, name, None)
    return val if val is not None else default
