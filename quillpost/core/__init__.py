"""
Quillpost Core
==============

Core utilities and shared functionality for Quillpost modules.
"""

from .config import Config
from .database import Database
from .logging_service import LoggingService, db_log
from .pipeline import pipeline

__all__ = ['Config', 'Database', 'LoggingService', 'db_log', 'pipeline']
