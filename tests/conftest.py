import os
import shutil
import tempfile

import pytest
from flask import Flask

from quillpost import Quillpost
from quillpost.modules.subscribers.api import SubscribersAPI
from quillpost.modules.subscribers.models import SubscriberModel


@pytest.fixture
def tmp_db_dir():
    """Create a temporary directory for test databases, cleaned up after."""
    d = tempfile.mkdtemp(prefix="quillpost-test-")
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def app(tmp_db_dir):
    """Flask app with Quillpost initialised against temporary databases."""
    app = Flask(__name__)
    app.config["TESTING"] = True
    app.config["SECRET_KEY"] = "test-secret"
    app.config["DB_DIR"] = tmp_db_dir
    app.config["USER_DB"] = os.path.join(tmp_db_dir, "users.db")
    app.config["LOG_DB"] = os.path.join(tmp_db_dir, "logs.db")
    app.config["UPLOAD_FOLDER"] = os.path.join(tmp_db_dir, "uploads")
    Quillpost(app)
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(client):
    """Test client with a signed in admin session."""
    with client.session_transaction() as sess:
        sess["admin_id"] = 1
    return client


@pytest.fixture
def model(tmp_db_dir):
    return SubscriberModel(os.path.join(tmp_db_dir, "subscribers.db"))


@pytest.fixture
def api(model):
    return SubscribersAPI(model)


@pytest.fixture
def write_csv(tmp_db_dir):
    """Write text to a CSV file and return import options pointing at it."""
    def _write(text, name="subscribers.csv", mimetype="text/csv"):
        path = os.path.join(tmp_db_dir, name)
        with open(path, "w", encoding="utf-8", newline="") as fh:
            fh.write(text)
        return {"path": path, "originalname": name, "mimetype": mimetype,
                "context": {"internal": True}}
    return _write
