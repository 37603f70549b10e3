# tests/test_main.py
from fastapi.testclient import TestClient

from scandms.errors import NotFoundError, RasterizationError, ScanDMSError
from scandms.main import app


def test_root():
    with TestClient(app) as client:
        response = client.get("/")
        assert response.status_code == 200
        assert response.json() == {"message": "ScanDMS API is running"}


def test_domain_errors_become_json(client):
    response = client.get("/api/search", params={"q": "a"})

    assert response.status_code == 400
    assert response.json() == {"detail": "Search query must be at least 2 characters long"}


def test_error_status_codes():
    assert ScanDMSError().status_code == 500
    assert NotFoundError().status_code == 404
    assert RasterizationError().status_code == 422
    assert RasterizationError().message == "Failed to process PDF"
