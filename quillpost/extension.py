"""
Quillpost Flask extension: applies config defaults, prepares the database
directory, enables CORS for the JSON API and registers the enabled modules.
"""

import os
import logging
from flask_cors import CORS
from .core.config import Config

logger = logging.getLogger(__name__)

DEFAULT_FEATURES = {
    'subscribers': True,
}

CONFIG_DEFAULTS = ['DB_DIR', 'USER_DB', 'LOG_DB', 'UPLOAD_FOLDER', 'DEFAULT_PAGE_LIMIT',
                   'IMPORT_MAX_WORKERS', 'SQLITE_TIMEOUT', 'CORS_ORIGINS']


class Quillpost:

    def __init__(self, app=None, config=None):
        self._config = config or {}
        self._registered_modules = []
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        for key in CONFIG_DEFAULTS:
            app.config.setdefault(key, getattr(Config, key))
        if not app.config.get('SECRET_KEY') and Config.SECRET_KEY:
            app.config['SECRET_KEY'] = Config.SECRET_KEY

        self._setup_database_dir(app)

        origins = app.config['CORS_ORIGINS']
        if isinstance(origins, str) and origins != '*':
            origins = [origin.strip() for origin in origins.split(',') if origin.strip()]
        CORS(app, resources={r"/api/*": {"origins": origins}}, supports_credentials=origins != '*')

        self._register_modules(app)

        app.extensions['quillpost'] = self
        logger.info(f"Quillpost initialised with modules: {self._registered_modules}")

    def _features(self):
        features = dict(DEFAULT_FEATURES)
        features.update(self._config.get('features', {}))
        return features

    def _setup_database_dir(self, app):
        db_dir = app.config.get('DB_DIR')
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

    def _register_modules(self, app):
        features = self._features()

        if features.get('subscribers'):
            from .modules.subscribers import subscribers_bp
            app.register_blueprint(subscribers_bp)
            self._registered_modules.append('subscribers')

    def get_registered_modules(self):
        return list(self._registered_modules)
