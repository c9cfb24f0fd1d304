from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from sharepod.api.deps import ShareServices, get_current_owner, get_db, get_share_services
from sharepod.main import app
from sharepod.services.auth import issue_access_token

API = "/api/v1/shares"


@pytest.fixture()
def owner():
    return {"id": "owner-1"}


@pytest.fixture()
def client(db_session, lifecycle, access, issuer, owner):
    services = ShareServices(lifecycle=lifecycle, access=access, issuer=issuer)

    def _db():
        yield db_session

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_share_services] = lambda: services
    app.dependency_overrides[get_current_owner] = lambda: owner["id"]
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()


def _create(client, **form):
    data = {"title": "Design files"}
    data.update(form)
    return client.post(
        API,
        data=data,
        files=[
            ("files", ("mock.png", b"png-bytes", "image/png")),
            ("files", ("brief.pdf", b"pdf-bytes", "application/pdf")),
        ],
    )


def test_create_share_returns_owner_payload(client):
    resp = _create(client, max_downloads="2", password_protected="true", password="pw")
    assert resp.status_code == 201
    body = resp.json()
    assert body["share_url"] == f"https://share.test/share/{body['share_id']}"
    assert len(body["access_code"]) == 6
    assert body["is_password_protected"] is True
    assert body["max_downloads"] == 2
    assert body["download_count"] == 0
    assert [item["original_name"] for item in body["files"]] == ["mock.png", "brief.pdf"]
    assert body["qr_code"].startswith("data:image/svg+xml;base64,")
    assert body["access_code"] in body["share_text"]
    assert set(body["share_links"]) == {"whatsapp", "email", "twitter", "facebook", "telegram"}
    assert "password_hash" not in body
    assert resp.headers["X-Request-ID"]


def test_create_share_validation_error_payload(client):
    resp = client.post(API, data={"title": "No files"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "validation_error"
    assert body["message"] == "At least one file is required"
    assert "request_id" in body


def test_create_share_rejects_negative_expiry(client):
    resp = _create(client, expiry_days="-1")
    assert resp.status_code == 400


def test_create_share_sets_expiry_from_days(client):
    resp = _create(client, expiry_days="7")
    assert resp.status_code == 201
    assert resp.json()["expires_at"] is not None


def test_view_requires_access_code(client, make_share):
    record = make_share(access_code="ABCD12")
    resp = client.get(f"{API}/{record.share_id}")
    assert resp.status_code == 401
    assert resp.json()["code"] == "access_code_required"

    resp = client.get(f"{API}/{record.share_id}", params={"access_code": "WRONG1"})
    assert resp.status_code == 403
    assert resp.json()["code"] == "access_code_invalid"

    resp = client.get(f"{API}/{record.share_id}", params={"access_code": "abcd12"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["view_count"] == 1
    assert "access_code" not in body
    assert "password_hash" not in body


def test_view_unknown_share(client):
    resp = client.get(f"{API}/does-not-exist")
    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"


def test_view_expired_share(client, clock, make_share):
    record = make_share(access_code_enabled=False, expires_at=clock.now + timedelta(hours=1))
    clock.advance(hours=2)
    resp = client.get(f"{API}/{record.share_id}")
    assert resp.status_code == 410
    assert resp.json()["code"] == "expired"


def test_download_flow_status_codes(client, make_share):
    record = make_share(
        access_code="ABCD12", password_protected=True, password="pw", max_downloads=1
    )
    url = f"{API}/{record.share_id}/download"

    resp = client.post(url, json={"access_code": "ABCD12"})
    assert resp.status_code == 401
    assert resp.json()["code"] == "password_required"

    resp = client.post(url, json={"access_code": "ABCD12", "password": "nope"})
    assert resp.status_code == 401
    assert resp.json()["code"] == "password_invalid"

    resp = client.post(url, json={"access_code": "ABCD12", "password": "pw"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["expires_in"] == 300
    assert body["files"][0]["file_name"] == "report.pdf"
    assert body["files"][0]["url"].startswith("https://s3.test/")

    resp = client.post(url, json={"access_code": "ABCD12", "password": "pw"})
    assert resp.status_code == 410
    assert resp.json()["code"] == "download_limit_reached"


def test_download_presign_failure(client, s3_client, make_share):
    record = make_share(access_code_enabled=False)
    s3_client.fail_presign_keys.add(record.files[0].storage_key)
    resp = client.post(f"{API}/{record.share_id}/download", json={})
    assert resp.status_code == 502
    body = resp.json()
    assert body["code"] == "link_issue_failed"
    assert body["details"]["files"][0]["file_name"] == "report.pdf"


def test_owner_listing_and_public_listing(client, owner, make_share):
    mine = make_share(owner_id="owner-1", is_public=True, access_code="ABCD12")
    make_share(owner_id="owner-2", is_public=False)

    resp = client.get(API)
    assert resp.status_code == 200
    assert [item["share_id"] for item in resp.json()] == [mine.share_id]
    assert resp.json()[0]["access_code"] == "ABCD12"

    resp = client.get(f"{API}/public")
    assert resp.status_code == 200
    items = resp.json()
    assert [item["share_id"] for item in items] == [mine.share_id]
    assert items[0]["requires_access_code"] is True
    assert "access_code" not in items[0]


def test_delete_share(client, owner, s3_client, make_share):
    record = make_share(owner_id="owner-1")
    record_id, share_id = str(record.id), record.share_id

    owner["id"] = "intruder"
    resp = client.delete(f"{API}/{record_id}")
    assert resp.status_code == 403
    assert resp.json()["code"] == "unauthorized"

    owner["id"] = "owner-1"
    resp = client.delete(f"{API}/{record_id}")
    assert resp.status_code == 200
    body = resp.json()
    assert body["share_id"] == share_id
    assert body["deleted_objects"] == 1
    assert body["failed_objects"] == []

    assert client.get(f"{API}/{share_id}").status_code == 404
    assert client.delete(f"{API}/{record_id}").status_code == 404


def test_owner_qr_code(client, make_share):
    record = make_share(owner_id="owner-1")
    resp = client.get(f"{API}/{record.id}/qrcode")
    assert resp.status_code == 200
    body = resp.json()
    assert body["share_url"].endswith(record.share_id)
    assert body["qr_code"].startswith("data:image/svg+xml;base64,")


def test_owner_routes_require_bearer_token(db_session, lifecycle, access, issuer, make_share):
    services = ShareServices(lifecycle=lifecycle, access=access, issuer=issuer)

    def _db():
        yield db_session

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_share_services] = lambda: services
    try:
        client = TestClient(app, raise_server_exceptions=False)
        make_share(owner_id="owner-9")

        resp = client.get(API)
        assert resp.status_code == 401

        resp = client.get(API, headers={"Authorization": "Bearer garbage"})
        assert resp.status_code == 401

        token = issue_access_token("owner-9")
        resp = client.get(API, headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert len(resp.json()) == 1
    finally:
        app.dependency_overrides.clear()


def test_health_and_metrics():
    client = TestClient(app)
    assert client.get("/health").json() == {"status": "ok"}
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "share_gate_decisions" in resp.text


def test_view_and_download_accept_camel_case_access_code(client, make_share):
    record = make_share(access_code="AB12")

    resp = client.get(f"{API}/{record.share_id}", params={"accessCode": "AB12"})
    assert resp.status_code == 200
    assert resp.json()["view_count"] == 1

    resp = client.post(f"{API}/{record.share_id}/download", json={"accessCode": "ab12"})
    assert resp.status_code == 200
    assert len(resp.json()["files"]) == 1


def test_download_without_body_on_open_share(client, make_share):
    record = make_share(access_code_enabled=False)
    resp = client.post(f"{API}/{record.share_id}/download")
    assert resp.status_code == 200
    assert resp.json()["files"][0]["file_name"] == "report.pdf"


def test_download_without_body_on_protected_share(client, make_share):
    record = make_share(access_code="ABCD12")
    resp = client.post(f"{API}/{record.share_id}/download")
    assert resp.status_code == 401
    assert resp.json()["code"] == "access_code_required"


def test_overlong_credentials_are_denied_not_rejected(client, make_share):
    record = make_share(access_code="ABCD12", password_protected=True, password="pw")

    resp = client.get(f"{API}/{record.share_id}", params={"access_code": "A" * 65})
    assert resp.status_code == 403
    assert resp.json()["code"] == "access_code_invalid"

    resp = client.post(
        f"{API}/{record.share_id}/download",
        json={"access_code": "ABCD12", "password": "x" * 300},
    )
    assert resp.status_code == 401
    assert resp.json()["code"] == "password_invalid"


def test_create_share_rejects_oversize_upload(client, s3_client):
    resp = client.post(
        API,
        data={"title": "Too big"},
        files=[("files", ("big.bin", b"x" * 2048, "application/octet-stream"))],
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "validation_error"
    assert s3_client.objects == {}


def test_create_share_keeps_unicode_filename(client, s3_client):
    resp = client.post(
        API,
        data={"title": "CV"},
        files=[("files", ("résumé.pdf", b"pdf-bytes", "application/pdf"))],
    )
    assert resp.status_code == 201
    assert resp.json()["files"][0]["original_name"] == "résumé.pdf"
    assert all(key.endswith("-r_sum_.pdf") for key in s3_client.objects)
