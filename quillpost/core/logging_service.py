"""
Centralized logging service for Quillpost.
Emits to the standard logging module and, when LOG_DB is configured,
stores structured entries in an app_logs table.
"""

import json
import logging
import traceback
from datetime import datetime
from flask import request, has_request_context
from .database import Database
from .config import Config, get_setting

logger = logging.getLogger('quillpost')


class LoggingService:
    """Centralized logging service for application-wide logging"""

    @staticmethod
    def _get_log_db():
        return get_setting('LOG_DB')

    @staticmethod
    def _ensure_logs_table(conn):
        """Ensure the app_logs table exists"""
        cursor = conn.cursor()
        cursor.execute(f"""
            CREATE TABLE IF NOT EXISTS {Config.LOGS_TABLE} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp TEXT NOT NULL,
                level TEXT NOT NULL,
                source TEXT NOT NULL,
                message TEXT NOT NULL,
                details TEXT,
                ip_address TEXT,
                request_path TEXT,
                user_id TEXT
            )
        """)
        cursor.execute(f"""
            CREATE INDEX IF NOT EXISTS idx_logs_timestamp
            ON {Config.LOGS_TABLE}(timestamp DESC)
        """)

    @staticmethod
    def _get_request_context():
        """Extract request context information"""
        if not has_request_context():
            return None, None

        ip_address = request.headers.get('X-Forwarded-For', request.remote_addr)
        if ip_address and ',' in ip_address:
            ip_address = ip_address.split(',')[0].strip()

        return ip_address, request.path

    @staticmethod
    def log(level, source, message, details=None, user_id=None):
        """
        Log a message

        Args:
            level (str): Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            source (str): Source component (subscribers, system, etc.)
            message (str): Main log message
            details (str/dict): Additional details (will be JSON-encoded if dict)
            user_id (str): Optional user identifier
        """
        level = level.upper()
        if isinstance(details, dict):
            details = json.dumps(details, indent=2, default=str)

        logger.log(getattr(logging, level, logging.INFO), "[%s] %s", source, message)

        log_db = LoggingService._get_log_db()
        if not log_db:
            return

        try:
            ip_address, request_path = LoggingService._get_request_context()
            Database.ensure_dir(log_db)
            with Database.session(log_db) as conn:
                LoggingService._ensure_logs_table(conn)
                conn.execute(f"""
                    INSERT INTO {Config.LOGS_TABLE}
                    (timestamp, level, source, message, details, ip_address, request_path, user_id)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    datetime.now().isoformat(), level, source, message, details,
                    ip_address, request_path, user_id
                ))
        except Exception as e:
            # The entry already went to std logging above
            logger.warning(f"Logging service error: {e}")

    @staticmethod
    def error(source, message, details=None, user_id=None):
        """Log error message"""
        LoggingService.log('ERROR', source, message, details, user_id)

    @staticmethod
    def log_error_with_traceback(source, error, details=None):
        """Log error with full traceback"""
        error_details = {
            'error_type': type(error).__name__,
            'error_message': str(error),
            'traceback': traceback.format_exc()
        }
        if details:
            error_details['additional_details'] = details

        LoggingService.error(source, f"Exception occurred: {type(error).__name__}", error_details)

    @staticmethod
    def get_recent_logs(source=None, limit=50):
        """Return recent persisted entries, newest first"""
        log_db = LoggingService._get_log_db()
        if not log_db:
            return []

        with Database.session(log_db) as conn:
            LoggingService._ensure_logs_table(conn)
            if source:
                rows = conn.execute(f"""
                    SELECT * FROM {Config.LOGS_TABLE} WHERE source = ?
                    ORDER BY id DESC LIMIT ?
                """, (source, limit)).fetchall()
            else:
                rows = conn.execute(f"""
                    SELECT * FROM {Config.LOGS_TABLE} ORDER BY id DESC LIMIT ?
                """, (limit,)).fetchall()
        return [dict(row) for row in rows]


def db_log(level, source, message, details=None):
    """Shortcut used by modules: db_log('error', 'subscribers', 'Import failed', {...})"""
    LoggingService.log(level, source, message, details)
