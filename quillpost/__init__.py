"""
Quillpost - Content API modules for Flask
=========================================

A modular Flask framework for content-management APIs:
- Subscribers API with CSV import/export
- Task pipelines (validate -> permissions -> query)
- Structured logging with optional database storage

Usage:
    from quillpost import Quillpost

    app = Flask(__name__)
    Quillpost(app)  # registers /api/subscribers
"""

__version__ = '0.1.0'

from .extension import Quillpost

__all__ = ['Quillpost']
