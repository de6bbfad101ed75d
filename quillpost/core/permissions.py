"""
Permission Steps
================

``handle_permissions(doc_name, method, checker)`` builds the pipeline task
that runs between validation and the query. A checker is any callable
``checker(context, method, doc_name) -> bool``.
"""

from .errors import NoPermissionError
from .i18n import t


def allow_all(context, method, doc_name):
    """No-op capability check"""
    return True


def require_admin_session(context, method, doc_name):
    """Allow internal calls and requests made by a signed in admin"""
    return bool(context.get('internal') or context.get('user'))


def handle_permissions(doc_name, method, checker=None):
    checker = checker or allow_all

    def do_permissions(options):
        context = (options or {}).get('context') or {}
        if not checker(context, method, doc_name):
            raise NoPermissionError(t('errors.api.subscribers.noPermissionToAction',
                                      method=method, doc_name=doc_name))
        return options

    return do_permissions
