"""
Validation Steps
================

``validate(doc_name, ...)`` builds the first task of an API pipeline. It
normalizes the options dict before any query runs:

- strips options the operation does not permit
- fills in default options (paging) when absent
- checks required attributes and option values
- moves the payload (or the required attributes) into ``options['data']``

It never touches the database.
"""

import os
from .config import get_setting
from .errors import ValidationError
from .i18n import t

GLOBAL_DEFAULT_OPTIONS = ['context', 'include']
BROWSE_DEFAULT_OPTIONS = ['context', 'include', 'page', 'limit', 'fields', 'filter', 'order', 'debug']
ID_DEFAULT_OPTIONS = ['id', 'context']

BROWSE_DEFAULTS = {'page': 1, 'limit': lambda: get_setting('DEFAULT_PAGE_LIMIT', 15)}

# sqlite INTEGER is a signed 64-bit value
MAX_INTEGER = 2 ** 63 - 1


def validate(doc_name, attrs=None, opts=None, defaults=None):
    """
    Build a validation task.

    The task accepts either ``(options)`` or ``(object, options)``. With an
    object, the object must be a ``{doc_name: [{...}]}`` envelope and becomes
    ``options['data']``; otherwise the required ``attrs`` are copied there.
    """
    attrs = list(attrs or [])
    permitted = set(GLOBAL_DEFAULT_OPTIONS) | set(opts or []) | set(attrs)

    def do_validate(*args):
        obj = None
        has_object = len(args) >= 2
        if has_object:
            obj, options = args[0], args[1]
        elif args and isinstance(args[0], dict):
            options = args[0]
        else:
            options = None

        options = dict(options or {})

        for attr in attrs:
            if options.get(attr) is None or options.get(attr) == '':
                raise ValidationError(t('errors.api.utils.missingRequiredAttr', attr=attr))

        options = {key: value for key, value in options.items() if key in permitted}
        for key, value in (defaults or {}).items():
            if key not in options:
                options[key] = value() if callable(value) else value

        options = validate_options(options)

        if has_object:
            options['data'] = check_object(obj, doc_name, options.get('id'))
        else:
            options['data'] = {attr: options[attr] for attr in attrs}

        return options

    return do_validate


def check_object(obj, doc_name, object_id=None):
    """Verify the {doc_name: [item, ...]} envelope and return a copy of it"""
    items = obj.get(doc_name) if isinstance(obj, dict) else None
    if not isinstance(items, list) or not items or not isinstance(items[0], dict):
        raise ValidationError(t('errors.api.utils.noRootKeyProvided', doc_name=doc_name))

    item_id = items[0].get('id')
    if object_id is not None and item_id is not None and str(item_id) != str(object_id):
        raise ValidationError(t('errors.api.utils.invalidIdProvided'))

    return {doc_name: [dict(item) for item in items]}


def _positive_int(value):
    """Return value as a positive int sqlite can store, or None if it is not one"""
    if isinstance(value, bool):
        return None
    if isinstance(value, str) and value.strip().isdecimal():
        value = int(value.strip())
    if isinstance(value, int) and 0 < value <= MAX_INTEGER:
        return value
    return None


def validate_options(options):
    """Check and coerce known option values in place"""
    if 'id' in options:
        object_id = _positive_int(options['id'])
        if object_id is None:
            raise ValidationError(t('errors.api.utils.invalidIdProvided'))
        options['id'] = object_id

    if 'page' in options:
        page = _positive_int(options['page'])
        if page is None:
            raise ValidationError(t('errors.api.utils.invalidOption', kind='Numeric', option='page'))
        options['page'] = page

    if 'limit' in options and options['limit'] != 'all':
        limit = _positive_int(options['limit'])
        if limit is None:
            raise ValidationError(t('errors.api.utils.invalidOption', kind='Numeric', option='limit'))
        options['limit'] = limit

    if isinstance(options.get('page'), int) and isinstance(options.get('limit'), int):
        if (options['page'] - 1) * options['limit'] > MAX_INTEGER:
            raise ValidationError(t('errors.api.utils.invalidOption', kind='Numeric', option='page'))

    for name in ('filter', 'order', 'fields'):
        if name in options and not isinstance(options[name], str):
            raise ValidationError(t('errors.api.utils.invalidOption', kind='String', option=name))

    if 'include' in options:
        include = options['include']
        if isinstance(include, str):
            include = [part.strip() for part in include.split(',') if part.strip()]
        if not isinstance(include, (list, tuple)):
            raise ValidationError(t('errors.api.utils.invalidOption', kind='List', option='include'))
        options['include'] = list(include)

    return options


# ===================
# FILE UPLOADS
# ===================

def check_file_exists(file_data):
    """An upload is usable when it has a name and a path that exists on disk"""
    path = file_data.get('path')
    return bool(path and file_data.get('name') and os.path.isfile(path))


def check_file_is_valid(file_data, types, extensions):
    """Check the upload's extension, and its mime type when one was sent"""
    ext = os.path.splitext(file_data.get('name') or '')[1].lower()
    if ext not in extensions:
        return False
    file_type = file_data.get('type')
    return not file_type or file_type in types
