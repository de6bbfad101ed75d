"""
Subscribers Models
==================

sqlite data access for the subscribers table (lives in USER_DB).
Every call opens its own connection so the accessor can be shared by
import worker threads.
"""

import math
import re
import sqlite3
import logging
from quillpost.core.config import Config, get_setting
from quillpost.core.database import Database
from quillpost.core.errors import NotFoundError, ValidationError
from quillpost.core.i18n import t

logger = logging.getLogger(__name__)

# Email validation regex — rejects consecutive dots, leading/trailing dots
EMAIL_REGEX = re.compile(r'^[a-zA-Z0-9_%+-]+(\.[a-zA-Z0-9_%+-]+)*@[a-zA-Z0-9-]+(\.[a-zA-Z0-9-]+)*\.[a-zA-Z]{2,}$')

COLUMNS = ['id', 'name', 'email', 'status', 'source', 'subscribed_url',
           'subscribed_referrer', 'created_at', 'updated_at', 'deleted_at']
EDITABLE_FIELDS = ['name', 'email', 'status', 'subscribed_url', 'subscribed_referrer']
TEXT_FIELDS = ['name', 'status', 'source', 'subscribed_url', 'subscribed_referrer']
FILTER_FIELDS = ['status', 'email', 'source']
ORDER_FIELDS = ['id', 'email', 'created_at', 'updated_at', 'status']
DEFAULT_ORDER = 'created_at DESC, id DESC'


def validate_email(email):
    """Validate email format"""
    if not email or not isinstance(email, str) or len(email) > 255:
        return False
    return EMAIL_REGEX.match(email.lower().strip()) is not None


def check_text_fields(data):
    """Text columns only take strings (or None); sqlite cannot bind dicts or lists"""
    for field in TEXT_FIELDS:
        value = data.get(field)
        if value is not None and not isinstance(value, str):
            raise ValidationError(t('errors.api.utils.invalidOption', kind='String', option=field),
                                  context={'field': field})


class SubscriberModel:
    """Data accessor: find_page, find_one, add, edit, destroy"""

    def __init__(self, db_path, timeout=None):
        self.db_path = db_path
        self.timeout = timeout
        self.init_db()

    def _session(self):
        return Database.session(self.db_path, self.timeout)

    def init_db(self):
        """Initialize the subscribers table in the database"""
        Database.ensure_dir(self.db_path)
        with self._session() as conn:
            conn.execute(f'''
                CREATE TABLE IF NOT EXISTS {Config.SUBSCRIBERS} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT,
                    email TEXT UNIQUE NOT NULL,
                    status TEXT DEFAULT 'subscribed',
                    source TEXT DEFAULT 'admin',
                    subscribed_url TEXT,
                    subscribed_referrer TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    deleted_at TIMESTAMP
                )
            ''')
            conn.execute(f'''
                CREATE INDEX IF NOT EXISTS idx_subscribers_status
                ON {Config.SUBSCRIBERS}(status, created_at)
            ''')

    # ===================
    # QUERY HELPERS
    # ===================

    @staticmethod
    def _parse_filter(filter_str):
        """'status:subscribed+source:import' -> (sql, params)"""
        if not filter_str:
            return '', []

        clauses, params = [], []
        for term in filter_str.split('+'):
            field, sep, value = term.partition(':')
            field = field.strip()
            if not sep or field not in FILTER_FIELDS:
                raise ValidationError(t('errors.models.invalidFilterField', field=field or term))
            clauses.append(f'{field} = ?')
            params.append(value.strip().strip("'\""))
        return 'WHERE ' + ' AND '.join(clauses), params

    @staticmethod
    def _parse_order(order_str):
        """'email asc, created_at desc' -> 'email ASC, created_at DESC'"""
        if not order_str:
            return DEFAULT_ORDER

        parts = []
        for term in order_str.split(','):
            tokens = term.split()
            if not tokens:
                continue
            field = tokens[0]
            direction = tokens[1].upper() if len(tokens) > 1 else 'ASC'
            if field not in ORDER_FIELDS or direction not in ('ASC', 'DESC') or len(tokens) > 2:
                raise ValidationError(t('errors.models.invalidOrderField', field=term.strip()))
            parts.append(f'{field} {direction}')
        return ', '.join(parts) or DEFAULT_ORDER

    @staticmethod
    def _row_to_dict(row):
        return {column: row[column] for column in COLUMNS}

    def _get_by_id(self, conn, subscriber_id):
        row = conn.execute(
            f'SELECT * FROM {Config.SUBSCRIBERS} WHERE id = ?', (subscriber_id,)
        ).fetchone()
        return self._row_to_dict(row) if row else None

    # ===================
    # ACCESSORS
    # ===================

    def find_page(self, options):
        """Return {'subscribers': [...], 'meta': {'pagination': {...}}}"""
        options = options or {}
        page = options.get('page', 1)
        limit = options.get('limit') or get_setting('DEFAULT_PAGE_LIMIT', 15)
        where, params = self._parse_filter(options.get('filter'))
        order = self._parse_order(options.get('order'))

        with self._session() as conn:
            total = conn.execute(
                f'SELECT COUNT(*) FROM {Config.SUBSCRIBERS} {where}', params
            ).fetchone()[0]

            query = f'SELECT * FROM {Config.SUBSCRIBERS} {where} ORDER BY {order}'
            if limit == 'all':
                rows = conn.execute(query, params).fetchall()
            else:
                rows = conn.execute(
                    f'{query} LIMIT ? OFFSET ?', params + [limit, (page - 1) * limit]
                ).fetchall()

        if limit == 'all':
            pages = 1
        else:
            pages = max(1, math.ceil(total / limit))

        return {
            'subscribers': [self._row_to_dict(row) for row in rows],
            'meta': {
                'pagination': {
                    'page': 1 if limit == 'all' else page,
                    'limit': limit,
                    'pages': pages,
                    'total': total,
                    'next': page + 1 if limit != 'all' and page < pages else None,
                    'prev': page - 1 if limit != 'all' and page > 1 else None,
                }
            }
        }

    def find_one(self, data, options=None):
        """Look a subscriber up by id or email; None when there is no match"""
        data = data or {}
        with self._session() as conn:
            if data.get('id') is not None:
                return self._get_by_id(conn, data['id'])
            if data.get('email'):
                row = conn.execute(
                    f'SELECT * FROM {Config.SUBSCRIBERS} WHERE email = ?',
                    (data['email'].lower().strip(),)
                ).fetchone()
                return self._row_to_dict(row) if row else None
        return None

    def add(self, data, options=None):
        """Insert a subscriber and return the stored record"""
        data = data or {}
        email = data.get('email')
        if not validate_email(email):
            raise ValidationError(t('errors.api.subscribers.invalidEmail'), context={'email': email})
        check_text_fields(data)
        email = email.lower().strip()

        try:
            with self._session() as conn:
                cursor = conn.execute(f'''
                    INSERT INTO {Config.SUBSCRIBERS}
                    (name, email, status, source, subscribed_url, subscribed_referrer)
                    VALUES (?, ?, ?, ?, ?, ?)
                ''', (
                    data.get('name'),
                    email,
                    data.get('status') or 'subscribed',
                    data.get('source') or 'admin',
                    data.get('subscribed_url'),
                    data.get('subscribed_referrer'),
                ))
                subscriber = self._get_by_id(conn, cursor.lastrowid)
        except sqlite3.IntegrityError:
            raise ValidationError(t('errors.api.subscribers.subscriberAlreadyExists'),
                                  context={'email': email})

        logger.info(f"New subscriber added: {email}")
        return subscriber

    def edit(self, data, options):
        """Update the subscriber options['id']; None when no row matched"""
        data = data or {}
        subscriber_id = options['id']
        changes = {field: data[field] for field in EDITABLE_FIELDS if field in data}
        check_text_fields(changes)

        if 'email' in changes:
            if not validate_email(changes['email']):
                raise ValidationError(t('errors.api.subscribers.invalidEmail'),
                                      context={'email': changes['email']})
            changes['email'] = changes['email'].lower().strip()

        try:
            with self._session() as conn:
                if changes:
                    set_clauses = [f'{field} = ?' for field in changes]
                    set_clauses.append('updated_at = CURRENT_TIMESTAMP')
                    cursor = conn.execute(
                        f"UPDATE {Config.SUBSCRIBERS} SET {', '.join(set_clauses)} WHERE id = ?",
                        list(changes.values()) + [subscriber_id]
                    )
                    if cursor.rowcount == 0:
                        return None
                return self._get_by_id(conn, subscriber_id)
        except sqlite3.IntegrityError:
            raise ValidationError(t('errors.api.subscribers.subscriberAlreadyExists'),
                                  context={'email': changes.get('email')})

    def destroy(self, options):
        """Delete the subscriber options['id']"""
        with self._session() as conn:
            cursor = conn.execute(
                f'DELETE FROM {Config.SUBSCRIBERS} WHERE id = ?', (options['id'],)
            )
            if cursor.rowcount == 0:
                raise NotFoundError(t('errors.api.subscribers.subscriberNotFound'))
        logger.info(f"Deleted subscriber {options['id']}")
