"""
Subscribers Module
==================

Provides:
- Admin JSON API for subscribers (browse, read, add, edit, destroy)
- CSV export and CSV import of subscriber lists
- SubscribersAPI / SubscriberModel for use from other modules

Usage:
    from quillpost.modules.subscribers import subscribers_bp

    app.register_blueprint(subscribers_bp)  # Registers at /api/subscribers
"""

from flask import Blueprint

subscribers_bp = Blueprint(
    'subscribers',
    __name__,
    url_prefix='/api/subscribers'
)

from . import routes
