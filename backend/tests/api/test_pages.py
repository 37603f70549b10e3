# backend/tests/api/test_pages.py
from fastapi import status

from scandms.config import settings
from scandms.services.ocr import OCRResult
from scandms.utils.files import resolve_storage_path


def test_get_page(client, sample_page):
    response = client.get(f"/api/pages/{sample_page.id}")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["id"] == sample_page.id
    assert data["page_number"] == 1
    assert data["has_ocr"] is True
    assert data["source_type"] == "image"


def test_get_nonexistent_page(client):
    response = client.get("/api/pages/99999")
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_delete_page(client, sample_document, sample_page):
    response = client.delete(f"/api/pages/{sample_page.id}")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "success": True,
        "page_id": sample_page.id,
        "document_id": sample_document.id,
        "remaining_pages": 0
    }
    assert client.get(f"/api/pages/{sample_page.id}").status_code == status.HTTP_404_NOT_FOUND
    # Second delete finds nothing to delete
    assert client.delete(f"/api/pages/{sample_page.id}").status_code == status.HTTP_404_NOT_FOUND


def test_get_page_ocr(client, sample_page):
    response = client.get(f"/api/pages/{sample_page.id}/ocr")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["ocr_text"] == "Quarterly report for the northern region"
    assert data["ocr_processed"] is True
    assert data["word_count"] == 6


def test_process_page_ocr(client, fake_ocr_engine, sample_page):
    fake_ocr_engine.results = [OCRResult(text="Corrected scan", confidence=97.0, word_count=2)]

    response = client.post(f"/api/pages/{sample_page.id}/ocr", json={"language": "deu"})

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["ocr_text"] == "Corrected scan"
    assert data["ocr_language"] == "deu"
    assert fake_ocr_engine.calls[-1][1] == "deu"


def test_process_page_ocr_failure(client, fake_ocr_engine, sample_page):
    fake_ocr_engine.results = [RuntimeError("engine crashed")]

    response = client.post(f"/api/pages/{sample_page.id}/ocr")

    assert response.status_code == status.HTTP_502_BAD_GATEWAY
    assert "engine crashed" in response.json()["detail"]


def test_thumbnail_generated_on_first_access(client, db_session, sample_page):
    response = client.get(f"/api/pages/{sample_page.id}/thumbnail")

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["content-type"] == "image/jpeg"
    db_session.refresh(sample_page)
    assert resolve_storage_path(sample_page.thumbnail_path, settings.STORAGE_PATH).exists()


def test_thumbnail_unavailable_without_source(client, sample_page):
    resolve_storage_path(sample_page.file_path, settings.STORAGE_PATH).unlink()

    response = client.get(f"/api/pages/{sample_page.id}/thumbnail")

    assert response.status_code == status.HTTP_404_NOT_FOUND
