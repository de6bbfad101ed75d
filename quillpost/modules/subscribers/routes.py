"""
Subscribers Routes
==================

Provides (admin session required unless SUBSCRIBERS_PERMISSION_CHECKER says otherwise):
- GET / -- browse subscribers (page, limit, filter, order)
- POST / -- add a subscriber ({"subscribers": [{"email": ...}]})
- GET /<id> -- read one subscriber
- PUT /<id> -- edit a subscriber
- DELETE /<id> -- delete a subscriber
- GET /csv -- export subscribers as CSV (defaults to all rows)
- POST /csv -- import subscribers from an uploaded CSV (field: subscribersfile)
"""

import os
import uuid
import sqlite3
import logging
from datetime import datetime
from flask import request, jsonify, session, current_app, Response
from werkzeug.utils import secure_filename
from quillpost.core.config import get_setting
from quillpost.core.database import get_user_db
from quillpost.core.errors import QuillpostError
from quillpost.core.logging_service import LoggingService, db_log
from quillpost.core.permissions import require_admin_session
from . import subscribers_bp
from .api import SubscribersAPI
from .models import SubscriberModel

logger = logging.getLogger(__name__)

LIST_OPTIONS = ['page', 'limit', 'filter', 'order', 'include']


def get_subscribers_api():
    """Build the API for the current app's database and permission checker"""
    checker = current_app.config.get('SUBSCRIBERS_PERMISSION_CHECKER') or require_admin_session
    model = SubscriberModel(get_user_db(), timeout=get_setting('SQLITE_TIMEOUT'))
    return SubscribersAPI(model, checker=checker,
                          import_workers=get_setting('IMPORT_MAX_WORKERS'))


def _context():
    return {'user': session.get('admin_id')}


def _list_options(**defaults):
    options = dict(defaults)
    for name in LIST_OPTIONS:
        value = request.args.get(name)
        if value:
            options[name] = value
    options['context'] = _context()
    return options


# ===================
# ERROR HANDLERS
# ===================

@subscribers_bp.errorhandler(QuillpostError)
def handle_api_error(error):
    if error.status_code >= 500:
        LoggingService.log_error_with_traceback('subscribers', error)
    else:
        logger.info(f"{error.error_type} on {request.method} {request.path}: {error.message}")
    return jsonify(error.to_dict()), error.status_code


@subscribers_bp.errorhandler(sqlite3.Error)
def handle_database_error(error):
    logger.error(f"Database error on {request.method} {request.path}: {error}")
    db_log('error', 'subscribers', 'Database error', {'error': str(error), 'path': request.path})
    return jsonify({'error': 'Database error occurred'}), 500


# ===================
# CRUD ROUTES
# ===================

@subscribers_bp.route('', methods=['GET'])
def browse_subscribers():
    """List subscribers"""
    return jsonify(get_subscribers_api().browse(_list_options())), 200


@subscribers_bp.route('', methods=['POST'])
def add_subscriber():
    """Create a subscriber"""
    data = request.get_json(silent=True)
    result = get_subscribers_api().add(data, {'context': _context()})
    return jsonify(result), 201


@subscribers_bp.route('/<int:subscriber_id>', methods=['GET'])
def read_subscriber(subscriber_id):
    result = get_subscribers_api().read({'id': subscriber_id, 'context': _context()})
    return jsonify(result), 200


@subscribers_bp.route('/<int:subscriber_id>', methods=['PUT'])
def edit_subscriber(subscriber_id):
    data = request.get_json(silent=True)
    result = get_subscribers_api().edit(data, {'id': subscriber_id, 'context': _context()})
    return jsonify(result), 200


@subscribers_bp.route('/<int:subscriber_id>', methods=['DELETE'])
def destroy_subscriber(subscriber_id):
    get_subscribers_api().destroy({'id': subscriber_id, 'context': _context()})
    return '', 204


# ===================
# CSV ROUTES
# ===================

@subscribers_bp.route('/csv', methods=['GET'])
def export_subscribers_csv():
    """Download subscribers as CSV"""
    csv = get_subscribers_api().export_csv(_list_options(limit='all'))
    filename = f"subscribers.{datetime.now().strftime('%Y-%m-%d')}.csv"
    return Response(
        csv,
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename="{filename}"'}
    )


@subscribers_bp.route('/csv', methods=['POST'])
def import_subscribers_csv():
    """Import subscribers from an uploaded CSV; the upload is removed afterwards"""
    upload = request.files.get('subscribersfile')
    options = {'context': _context()}
    upload_path = None

    if upload and upload.filename:
        upload_dir = get_setting('UPLOAD_FOLDER')
        os.makedirs(upload_dir, exist_ok=True)
        upload_path = os.path.join(upload_dir, f"{uuid.uuid4().hex}_{secure_filename(upload.filename)}")
        upload.save(upload_path)
        options.update(path=upload_path, originalname=upload.filename, mimetype=upload.mimetype)

    try:
        result = get_subscribers_api().import_csv(options)
    finally:
        if upload_path and os.path.exists(upload_path):
            os.remove(upload_path)

    return jsonify(result), 201
