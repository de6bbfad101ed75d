import os
import sqlite3
from contextlib import contextmanager
from .config import Config, get_setting


class Database:

    @staticmethod
    def connect(path, timeout=None):
        if timeout is None:
            timeout = Config.SQLITE_TIMEOUT
        return sqlite3.connect(path, timeout=timeout)

    @staticmethod
    def ensure_dir(path):
        """Create the parent directory of a database file if needed"""
        db_dir = os.path.dirname(path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

    @classmethod
    @contextmanager
    def session(cls, path, timeout=None):
        """
        Open a connection for one unit of work.
        Commits on success, rolls back on error and always closes, so each
        caller (including worker threads) gets its own connection.
        """
        conn = cls.connect(path, timeout)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()


def get_user_db():
    """Get the subscribers database path (3-tier lookup)"""
    return get_setting('USER_DB') or os.getenv('USER_DB', 'users.db')
