"""
Subscribers API
===============

CRUD and CSV import/export for subscribers. Every method runs a task
pipeline: validate -> permissions -> model query, then formats the result
as a ``{'subscribers': [...]}`` envelope.

Usage:
    api = SubscribersAPI(SubscriberModel(db_path))
    api.add({'subscribers': [{'email': 'a@example.com'}]}, {'context': {'internal': True}})
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from quillpost.core.config import Config
from quillpost.core.errors import InternalServerError, NotFoundError, ValidationError
from quillpost.core.i18n import t
from quillpost.core.logging_service import db_log
from quillpost.core.permissions import handle_permissions
from quillpost.core.pipeline import pipeline
from quillpost.core.validation import (
    BROWSE_DEFAULT_OPTIONS, BROWSE_DEFAULTS, ID_DEFAULT_OPTIONS,
    check_file_exists, check_file_is_valid, validate,
)

logger = logging.getLogger(__name__)

DOC_NAME = 'subscribers'

CSV_FIELDS = ['id', 'email', 'created_at', 'deleted_at']
CSV_EXTENSIONS = ['.csv']
CSV_TYPES = ['text/csv', 'application/csv', 'application/vnd.ms-excel',
             'application/octet-stream', 'text/plain']


def format_csv(subscribers):
    """Serialize records as header-less CSV rows terminated by CRLF"""
    csv = ''
    for subscriber in subscribers:
        values = []
        for field in CSV_FIELDS:
            value = subscriber.get(field)
            values.append('' if value is None else str(value))
        csv += ','.join(values) + '\r\n'
    return csv


def parse_csv_line(line):
    """The email address is the second column; everything else is ignored"""
    fields = line.split(',')
    return fields[1] if len(fields) > 1 else None


class SubscribersAPI:

    def __init__(self, model, checker=None, import_workers=None):
        self.model = model
        self.checker = checker
        self.import_workers = max(1, import_workers or Config.IMPORT_MAX_WORKERS)

    def _permissions(self, method):
        return handle_permissions(DOC_NAME, method, self.checker)

    # ===================
    # CRUD
    # ===================

    def browse(self, options=None):
        """Return one page of subscribers plus pagination meta"""

        def do_query(options):
            return self.model.find_page(options)

        tasks = [
            validate(DOC_NAME, opts=BROWSE_DEFAULT_OPTIONS, defaults=BROWSE_DEFAULTS),
            self._permissions('browse'),
            do_query,
        ]
        return pipeline(tasks, options or {})

    def read(self, options):
        """Return {'subscribers': [subscriber]} or raise NotFoundError"""

        def do_query(options):
            query_options = {k: v for k, v in options.items() if k != 'data'}
            return self.model.find_one(options['data'], query_options)

        tasks = [
            validate(DOC_NAME, attrs=['id']),
            self._permissions('read'),
            do_query,
        ]
        result = pipeline(tasks, options)
        if not result:
            raise NotFoundError(t('errors.api.subscribers.subscriberNotFound'))
        return {DOC_NAME: [result]}

    def _insert(self, options):
        query_options = {k: v for k, v in options.items() if k != 'data'}
        return self.model.add(options['data'][DOC_NAME][0], query_options)

    def add(self, obj, options=None):
        """Create the first subscriber in the {'subscribers': [...]} envelope"""
        tasks = [
            validate(DOC_NAME),
            self._permissions('add'),
            self._insert,
        ]
        result = pipeline(tasks, obj, options or {})
        return {DOC_NAME: [result]}

    def edit(self, obj, options):
        """Update a subscriber; NotFoundError when the id matches nothing"""

        def do_query(options):
            query_options = {k: v for k, v in options.items() if k != 'data'}
            return self.model.edit(options['data'][DOC_NAME][0], query_options)

        tasks = [
            validate(DOC_NAME, attrs=['id'], opts=ID_DEFAULT_OPTIONS),
            self._permissions('edit'),
            do_query,
        ]
        result = pipeline(tasks, obj, options)
        if not result:
            raise NotFoundError(t('errors.api.subscribers.subscriberNotFound'))
        return {DOC_NAME: [result]}

    def destroy(self, options):

        def do_query(options):
            query_options = {k: v for k, v in options.items() if k != 'data'}
            self.model.destroy(query_options)
            return None

        tasks = [
            validate(DOC_NAME, attrs=['id'], opts=ID_DEFAULT_OPTIONS),
            self._permissions('destroy'),
            do_query,
        ]
        return pipeline(tasks, options)

    # ===================
    # CSV EXPORT / IMPORT
    # ===================

    def export_csv(self, options=None):
        """Fetch one page of subscribers (per options) and return it as CSV text"""
        options = options or {}

        def export_subscribers(options):
            query_options = {k: v for k, v in options.items() if k != 'data'}
            try:
                page = self.model.find_page(query_options)
                csv = format_csv(page[DOC_NAME])
            except Exception as e:
                logger.error(f"Error exporting subscribers: {e}")
                raise InternalServerError(str(e))

            db_log('info', 'subscribers', f"Exported {len(page[DOC_NAME])} subscribers")
            return csv

        tasks = [
            validate(DOC_NAME, opts=BROWSE_DEFAULT_OPTIONS),
            self._permissions('browse'),
            export_subscribers,
        ]
        return pipeline(tasks, options)

    def import_csv(self, options=None):
        """
        Import subscribers from an uploaded CSV file.

        options: {'path', 'originalname', 'mimetype', 'context'}
        Returns {'imported': <lines submitted>}. Lines are added concurrently
        by a bounded pool; rows committed before a failure are kept.
        """
        options = dict(options or {})

        def validate_file(options):
            options['name'] = options.get('originalname')
            options['type'] = options.get('mimetype')

            if not check_file_exists(options):
                raise ValidationError(t('errors.api.db.selectFileToImport'))

            if not check_file_is_valid(options, CSV_TYPES, CSV_EXTENSIONS):
                raise ValidationError(t('errors.api.db.unsupportedFile',
                                        extensions=', '.join(CSV_EXTENSIONS)))
            return options

        def import_subscribers(options):
            context = options.get('context')
            slots = threading.BoundedSemaphore(self.import_workers)
            futures = []

            def add_line(email):
                # Permission to add was checked once for the whole file
                try:
                    return pipeline([validate(DOC_NAME), self._insert],
                                    {DOC_NAME: [{'email': email, 'source': 'import'}]},
                                    {'context': context})
                finally:
                    slots.release()

            with ThreadPoolExecutor(max_workers=self.import_workers) as executor:
                try:
                    with open(options['path'], encoding='utf-8-sig', newline='') as csv_file:
                        for line in csv_file:
                            line = line.rstrip('\r\n')
                            if not line.strip():
                                continue
                            # Blocks while every worker is busy
                            slots.acquire()
                            futures.append(executor.submit(add_line, parse_csv_line(line)))
                except UnicodeDecodeError as e:
                    logger.warning(f"Subscriber import: file is not UTF-8 ({e})")
                    raise ValidationError(t('errors.api.db.invalidFileEncoding'))

            failures = [future.exception() for future in futures if future.exception()]
            if failures:
                logger.warning(f"Subscriber import: {len(failures)} of {len(futures)} lines failed")
                db_log('error', 'subscribers', 'Subscriber import failed',
                       {'lines': len(futures), 'failed': len(failures), 'error': str(failures[0])})
                raise InternalServerError(str(failures[0]))

            db_log('info', 'subscribers', f"Imported {len(futures)} subscribers")
            return {'imported': len(futures)}

        tasks = [
            validate_file,
            self._permissions('add'),
            import_subscribers,
        ]
        return pipeline(tasks, options)
