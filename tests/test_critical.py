"""
Critical Integration Tests for Quillpost
========================================

Focused tests covering the Flask integration points most likely to break.
Run with: pytest tests/test_critical.py -v

NOTE: pytest is listed under extras_require["dev"] in setup.py.
Install with: pip install -e ".[dev]"
"""

import io
import os
import shutil
import tempfile
from collections import defaultdict

from flask import Flask, session

from quillpost import Quillpost
from quillpost.core.logging_service import LoggingService
from quillpost.core.permissions import allow_all


def _add(client, email):
    response = client.post("/api/subscribers", json={"subscribers": [{"email": email}]})
    assert response.status_code == 201, response.get_json()
    return response.get_json()["subscribers"][0]


# ---------------------------------------------------------------------------
# 1. Framework initialisation -- Quillpost(app) registers itself and modules
# ---------------------------------------------------------------------------

def test_framework_initialisation(app):
    quillpost = app.extensions["quillpost"]
    assert isinstance(quillpost, Quillpost)
    assert quillpost.get_registered_modules() == ["subscribers"]


def test_subscribers_feature_can_be_disabled(tmp_db_dir):
    app = Flask(__name__)
    app.config["DB_DIR"] = tmp_db_dir
    quillpost = Quillpost(app, {"features": {"subscribers": False}})

    assert quillpost.get_registered_modules() == []
    rules = [rule.rule for rule in app.url_map.iter_rules()]
    assert "/api/subscribers" not in rules


# ---------------------------------------------------------------------------
# 2. Database directory creation
# ---------------------------------------------------------------------------

def test_database_dir_creation():
    d = tempfile.mkdtemp(prefix="quillpost-dbtest-")
    target = os.path.join(d, "sub", "databases")

    try:
        app = Flask(__name__)
        app.config["DB_DIR"] = target
        Quillpost(app)
        assert os.path.isdir(target), f"DB_DIR was not created at {target}"
    finally:
        shutil.rmtree(d, ignore_errors=True)


# ---------------------------------------------------------------------------
# 3. Routes -- every subscribers endpoint is registered
# ---------------------------------------------------------------------------

def test_subscriber_routes_registered(app):
    rules = defaultdict(set)
    for rule in app.url_map.iter_rules():
        rules[rule.rule] |= rule.methods

    assert {"GET", "POST"} <= rules["/api/subscribers"]
    assert {"GET", "PUT", "DELETE"} <= rules["/api/subscribers/<int:subscriber_id>"]
    assert {"GET", "POST"} <= rules["/api/subscribers/csv"]


# ---------------------------------------------------------------------------
# 4. Admin auth guard
# ---------------------------------------------------------------------------

def test_unauthenticated_requests_are_refused(client):
    response = client.get("/api/subscribers")
    assert response.status_code == 403
    assert response.get_json()["type"] == "NoPermissionError"

    response = client.post("/api/subscribers", json={"subscribers": [{"email": "a@example.com"}]})
    assert response.status_code == 403


def test_permission_checker_is_configurable(app, client):
    app.config["SUBSCRIBERS_PERMISSION_CHECKER"] = allow_all
    response = client.get("/api/subscribers")
    assert response.status_code == 200


# ---------------------------------------------------------------------------
# 5. CRUD over HTTP
# ---------------------------------------------------------------------------

def test_crud_round_trip(admin_client):
    created = _add(admin_client, "reader@example.com")

    response = admin_client.get(f"/api/subscribers/{created['id']}")
    assert response.status_code == 200
    assert response.get_json() == {"subscribers": [created]}

    response = admin_client.put(f"/api/subscribers/{created['id']}",
                                json={"subscribers": [{"name": "Reader"}]})
    assert response.status_code == 200
    assert response.get_json()["subscribers"][0]["name"] == "Reader"

    response = admin_client.get("/api/subscribers?limit=5")
    body = response.get_json()
    assert [s["email"] for s in body["subscribers"]] == ["reader@example.com"]
    assert body["meta"]["pagination"]["limit"] == 5

    response = admin_client.delete(f"/api/subscribers/{created['id']}")
    assert response.status_code == 204

    response = admin_client.get(f"/api/subscribers/{created['id']}")
    assert response.status_code == 404
    assert response.get_json()["type"] == "NotFoundError"


def test_edit_unknown_subscriber_is_404(admin_client):
    response = admin_client.put("/api/subscribers/999", json={"subscribers": [{"name": "X"}]})
    assert response.status_code == 404


def test_invalid_payloads_are_422(admin_client):
    response = admin_client.post("/api/subscribers", json={"email": "a@example.com"})
    assert response.status_code == 422
    assert response.get_json()["type"] == "ValidationError"

    response = admin_client.post("/api/subscribers", json={"subscribers": [{"email": "nope"}]})
    assert response.status_code == 422

    response = admin_client.get("/api/subscribers?limit=zero")
    assert response.status_code == 422


def test_default_page_limit_follows_app_config(app, admin_client):
    app.config["DEFAULT_PAGE_LIMIT"] = 5
    response = admin_client.get("/api/subscribers")
    assert response.status_code == 200
    assert response.get_json()["meta"]["pagination"]["limit"] == 5


def test_out_of_range_paging_is_422(admin_client):
    response = admin_client.get("/api/subscribers?page=99999999999999999999")
    assert response.status_code == 422
    assert response.get_json()["type"] == "ValidationError"


def test_non_string_field_values_are_422(admin_client):
    response = admin_client.post("/api/subscribers",
                                 json={"subscribers": [{"email": "a@example.com", "name": ["A"]}]})
    assert response.status_code == 422

    created = _add(admin_client, "b@example.com")
    response = admin_client.put(f"/api/subscribers/{created['id']}",
                                json={"subscribers": [{"name": {"x": 1}}]})
    assert response.status_code == 422
    assert response.get_json()["type"] == "ValidationError"


# ---------------------------------------------------------------------------
# 6. CSV export and import
# ---------------------------------------------------------------------------

def test_csv_export_download(admin_client):
    created = _add(admin_client, "a@example.com")

    response = admin_client.get("/api/subscribers/csv")

    assert response.status_code == 200
    assert response.mimetype == "text/csv"
    assert "attachment" in response.headers["Content-Disposition"]
    assert response.get_data(as_text=True) == f"{created['id']},a@example.com,{created['created_at']},\r\n"


def test_csv_import_upload(app, admin_client):
    data = {"subscribersfile": (io.BytesIO(b"1,a@x.com\r\n2,b@x.com\r\n"), "subscribers.csv")}

    response = admin_client.post("/api/subscribers/csv", data=data, content_type="multipart/form-data")

    assert response.status_code == 201
    assert response.get_json() == {"imported": 2}

    listing = admin_client.get("/api/subscribers?limit=all").get_json()
    assert sorted(s["email"] for s in listing["subscribers"]) == ["a@x.com", "b@x.com"]

    # The uploaded file is removed once the import is done
    assert os.listdir(app.config["UPLOAD_FOLDER"]) == []


def test_csv_import_failure_is_500_and_upload_removed(app, admin_client):
    _add(admin_client, "a@x.com")
    data = {"subscribersfile": (io.BytesIO(b"1,a@x.com\n"), "subscribers.csv")}

    response = admin_client.post("/api/subscribers/csv", data=data, content_type="multipart/form-data")

    assert response.status_code == 500
    assert response.get_json()["type"] == "InternalServerError"
    assert os.listdir(app.config["UPLOAD_FOLDER"]) == []

    with app.app_context():
        logs = LoggingService.get_recent_logs("subscribers")
    assert any(entry["message"] == "Subscriber import failed" for entry in logs)


def test_csv_import_without_file_is_422(admin_client):
    response = admin_client.post("/api/subscribers/csv", data={}, content_type="multipart/form-data")
    assert response.status_code == 422
    assert response.get_json()["error"] == "Please select a file to import."


def test_csv_import_non_utf8_file_is_422(app, admin_client):
    data = {"subscribersfile": (io.BytesIO(b"2,caf\xe9@x.com\n"), "subscribers.csv")}

    response = admin_client.post("/api/subscribers/csv", data=data, content_type="multipart/form-data")

    assert response.status_code == 422
    assert response.get_json()["type"] == "ValidationError"
    assert os.listdir(app.config["UPLOAD_FOLDER"]) == []


def test_csv_import_with_session_based_checker(app, admin_client):
    app.config["SUBSCRIBERS_PERMISSION_CHECKER"] = (
        lambda context, method, doc_name: "admin_id" in session
    )
    data = {"subscribersfile": (io.BytesIO(b"1,a@x.com\n2,b@x.com\n"), "subscribers.csv")}

    response = admin_client.post("/api/subscribers/csv", data=data, content_type="multipart/form-data")

    assert response.status_code == 201, response.get_json()
    assert response.get_json() == {"imported": 2}


# ---------------------------------------------------------------------------
# 7. CORS on the JSON API
# ---------------------------------------------------------------------------

def test_cors_headers_on_api(admin_client):
    response = admin_client.get("/api/subscribers", headers={"Origin": "http://example.com"})
    assert response.status_code == 200
    assert "Access-Control-Allow-Origin" in response.headers
