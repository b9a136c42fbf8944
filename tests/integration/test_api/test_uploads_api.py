"""Integration tests for the uploads API endpoints."""

import json
from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from showroom_api.core.config import Settings
from showroom_api.lib.audit.events import AuditEventType
from showroom_api.main import create_app

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
PDF_BYTES = b"%PDF-1.7\n" + b"0" * 64


def _records(settings: Settings) -> list[dict]:
    records: list[dict] = []
    for path in sorted(Path(settings.audit_log_dir).glob("audit-*.log")):
        records.extend(json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line)
    return records


def _event_types(settings: Settings) -> list[str]:
    return [r["eventType"] for r in _records(settings)]


@pytest.fixture
def app(settings: Settings) -> Iterator[FastAPI]:
    application = create_app(settings)
    yield application
    application.state.audit_writer.close()


@pytest.fixture
async def client(app: FastAPI) -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="https://test") as c:
        yield c


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestUpload:
    @pytest.mark.asyncio
    async def test_png_accepted(self, client: AsyncClient, vendeur_token: str, settings: Settings) -> None:
        resp = await client.post(
            "/api/v1/uploads/image",
            files={"file": ("Logo Final.png", PNG_BYTES, "image/png")},
            headers=_auth(vendeur_token),
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["original_name"] == "Logo Final.png"
        assert body["stored_name"].startswith("Logo_Final-")
        assert body["stored_name"].endswith(".png")
        assert body["category"] == "image"
        assert body["size"] == len(PNG_BYTES)
        assert body["validated"] is True
        assert body["status"] == "accepted"
        assert body["download_url"] == f"/api/v1/uploads/image/{body['stored_name']}"

        stored = Path(settings.upload_root) / "image" / body["stored_name"]
        assert stored.read_bytes() == PNG_BYTES

        records = _records(settings)
        assert [r["eventType"] for r in records] == ["FILE_UPLOAD", "FILE_VALIDATION"]
        assert records[0]["actorId"] == "vendeur-1"
        assert records[1]["details"]["status"] == "accepted"

    @pytest.mark.asyncio
    async def test_text_declared_as_png_rejected(
        self, client: AsyncClient, vendeur_token: str, settings: Settings
    ) -> None:
        resp = await client.post(
            "/api/v1/uploads/image",
            files={"file": ("photo.png", b"this is plain text, not an image", "image/png")},
            headers=_auth(vendeur_token),
        )

        assert resp.status_code == 422
        assert resp.json()["detail"] == "File content does not match declared type"
        image_dir = Path(settings.upload_root) / "image"
        assert not image_dir.exists() or list(image_dir.iterdir()) == []

        types = _event_types(settings)
        assert AuditEventType.FILE_UPLOAD in types
        assert AuditEventType.FILE_SIGNATURE_MISMATCH in types
        mismatch = next(r for r in _records(settings) if r["eventType"] == "FILE_SIGNATURE_MISMATCH")
        assert mismatch["severity"] == "high"
        assert mismatch["details"]["declaredMimeType"] == "image/png"

    @pytest.mark.asyncio
    async def test_disallowed_extension_rejected_before_storage(
        self, client: AsyncClient, vendeur_token: str, settings: Settings
    ) -> None:
        resp = await client.post(
            "/api/v1/uploads/document",
            files={"file": ("run.exe", b"MZ\x90\x00", "application/pdf")},
            headers=_auth(vendeur_token),
        )

        assert resp.status_code == 422
        assert not (Path(settings.upload_root) / "document").exists()
        assert "FILE_UPLOAD" not in _event_types(settings)
        validation = next(r for r in _records(settings) if r["eventType"] == "FILE_VALIDATION")
        assert validation["details"]["status"] == "rejected"

    @pytest.mark.asyncio
    async def test_oversize_rejected_with_413(
        self, client: AsyncClient, vendeur_token: str, settings: Settings
    ) -> None:
        content = PNG_BYTES + b"\x00" * (5 * 1024 * 1024)
        resp = await client.post(
            "/api/v1/uploads/image",
            files={"file": ("big.png", content, "image/png")},
            headers=_auth(vendeur_token),
        )

        assert resp.status_code == 413
        assert "5 MB" in resp.json()["detail"]

    @pytest.mark.asyncio
    async def test_unknown_category_rejected(self, client: AsyncClient, vendeur_token: str) -> None:
        resp = await client.post(
            "/api/v1/uploads/video",
            files={"file": ("clip.png", PNG_BYTES, "image/png")},
            headers=_auth(vendeur_token),
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_anonymous_upload_is_401(self, client: AsyncClient, settings: Settings) -> None:
        resp = await client.post(
            "/api/v1/uploads/image",
            files={"file": ("logo.png", PNG_BYTES, "image/png")},
        )

        assert resp.status_code == 401
        api_errors = [r for r in _records(settings) if r["eventType"] == "API_ERROR"]
        assert len(api_errors) == 1
        assert api_errors[0]["details"]["statusCode"] == 401
        assert api_errors[0]["details"]["url"] == "/api/v1/uploads/image"

    @pytest.mark.asyncio
    async def test_invalid_token_is_401_and_recorded(self, client: AsyncClient, settings: Settings) -> None:
        resp = await client.post(
            "/api/v1/uploads/image",
            files={"file": ("logo.png", PNG_BYTES, "image/png")},
            headers=_auth("not-a-jwt"),
        )

        assert resp.status_code == 401
        types = _event_types(settings)
        assert types.count("INVALID_TOKEN") == 1
        assert types.count("API_ERROR") == 1


class TestDownloadAndDelete:
    @pytest.fixture
    async def stored_name(self, client: AsyncClient, vendeur_token: str) -> str:
        resp = await client.post(
            "/api/v1/uploads/document",
            files={"file": ("quote.pdf", PDF_BYTES, "application/pdf")},
            headers=_auth(vendeur_token),
        )
        assert resp.status_code == 201
        return resp.json()["stored_name"]

    @pytest.mark.asyncio
    async def test_download_returns_bytes(self, client: AsyncClient, stored_name: str, settings: Settings) -> None:
        resp = await client.get(f"/api/v1/uploads/document/{stored_name}")

        assert resp.status_code == 200
        assert resp.content == PDF_BYTES
        assert resp.headers["content-type"] == "application/pdf"
        assert stored_name in resp.headers["content-disposition"]

        download = next(r for r in _records(settings) if r["eventType"] == "FILE_DOWNLOAD")
        assert download["actorId"] == "anonymous"
        assert download["details"]["size"] == len(PDF_BYTES)

    @pytest.mark.asyncio
    async def test_download_missing_is_404(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/uploads/document/nothing-here.pdf")
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_delete(
        self, client: AsyncClient, stored_name: str, vendeur_token: str, settings: Settings
    ) -> None:
        resp = await client.delete(f"/api/v1/uploads/document/{stored_name}", headers=_auth(vendeur_token))

        assert resp.status_code == 204
        assert not (Path(settings.upload_root) / "document" / stored_name).exists()
        deletion = next(r for r in _records(settings) if r["eventType"] == "FILE_DELETE")
        assert deletion["actorId"] == "vendeur-1"

        again = await client.delete(f"/api/v1/uploads/document/{stored_name}", headers=_auth(vendeur_token))
        assert again.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_requires_authentication(self, client: AsyncClient, stored_name: str) -> None:
        resp = await client.delete(f"/api/v1/uploads/document/{stored_name}")
        assert resp.status_code == 401


class TestSecurityHeaders:
    @pytest.mark.asyncio
    async def test_headers_on_api_responses(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/uploads/image/missing.png")
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert resp.headers["X-Frame-Options"] == "DENY"
