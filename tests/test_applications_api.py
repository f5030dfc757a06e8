"""HTTP tests for the applications API."""

import io
import json

import pytest
from starlette.datastructures import Headers, UploadFile

from intake_api.config.settings import settings
from intake_api.integrations.s3 import get_storage
from intake_api.endpoints.applications import clip_filename, store_cv
from intake_api.main import app
from intake_api.middleware.error_handler import FileTypeOrSizeError
from intake_api.models.applications import MAX_CV_ORIGINAL_NAME, MAX_USER_AGENT

SUBMIT_URL = "/api/applications/submit"
PDF = ("jane-cv.pdf", b"%PDF-1.4 minimal test file", "application/pdf")


def submit(client, payload, cv=None):
    files = {"cv": cv} if cv else None
    return client.post(SUBMIT_URL, data=payload, files=files)


def error_fields(response):
    return {error["field"]: error["message"] for error in response.json().get("errors", [])}


class TestSubmit:
    def test_multipart_submission_with_cv(self, client, payload, storage):
        response = submit(client, payload, cv=PDF)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Application submitted successfully"
        assert body["data"]["email"] == "jane.doe@example.com"
        assert body["data"]["status"] == "pending"
        assert set(body["data"]) == {"id", "fullName", "email", "submissionDate", "status"}
        assert len(storage.files) == 1

    def test_submission_without_cv(self, client, payload, storage):
        response = submit(client, payload)

        assert response.status_code == 201
        assert storage.files == {}

    def test_json_submission(self, client, payload):
        payload.update(
            skills=["Python", "Python", "SQL"],
            portfolioLinks=[],
            accuracyConsent=True,
            dataConsent=True,
        )

        response = client.post(SUBMIT_URL, json=payload)

        assert response.status_code == 201
        record = client.get(f"/api/applications/{response.json()['data']['id']}").json()["data"]
        assert record["skills"] == ["Python", "SQL"]
        assert record["portfolioLinks"] == []

    def test_repeated_form_fields(self, client, payload):
        payload["skills"] = ["Figma", "Sketch"]
        del payload["portfolioLinks"]
        payload["portfolioLinks[]"] = "https://dribbble.com/jane"

        response = submit(client, payload)

        assert response.status_code == 201
        record = client.get(f"/api/applications/{response.json()['data']['id']}").json()["data"]
        assert record["skills"] == ["Figma", "Sketch"]
        assert record["portfolioLinks"] == ["https://dribbble.com/jane"]

    def test_sends_confirmation_email(self, client, payload, mailer):
        submit(client, payload)

        assert mailer.sent[0]["to"] == "jane.doe@example.com"
        assert mailer.sent[0]["subject"] == "Application Acknowledgment - DesignandBuildHQ"
        assert "Jane Doe" in mailer.sent[0]["html"]

    def test_validation_errors(self, client, payload, storage):
        payload["primaryRole"] = "Other"
        payload["availability"] = "Other"
        payload["ukClients"] = "Yes"

        response = submit(client, payload, cv=PDF)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Validation failed"
        assert set(error_fields(response)) == {"customRole", "availabilityOther", "ukClientsDetails"}
        # The CV stored for the rejected submission is removed again
        assert storage.files == {}
        assert len(storage.deleted) == 1

    def test_duplicate_email(self, client, payload):
        assert submit(client, payload).status_code == 201

        payload["email"] = "JANE.DOE@EXAMPLE.COM"
        response = submit(client, payload)

        assert response.status_code == 400
        assert error_fields(response) == {"email": "An application with this email already exists"}

    def test_rejects_wrong_file_type(self, client, payload, storage):
        response = submit(client, payload, cv=("notes.txt", b"hello", "text/plain"))

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid file type. Only PDF and Word documents are allowed."
        assert set(error_fields(response)) == {"cv"}
        assert storage.files == {}

    def test_rejects_large_file(self, client, payload, monkeypatch):
        monkeypatch.setattr(settings, "CV_MAX_BYTES", 8)

        response = submit(client, payload, cv=PDF)

        assert response.status_code == 400
        assert set(error_fields(response)) == {"cv"}

    def test_long_request_metadata_clipped(self, client, payload):
        long_name = "a" * 300 + ".pdf"

        response = client.post(
            SUBMIT_URL,
            data=payload,
            files={"cv": (long_name, PDF[1], PDF[2])},
            headers={"user-agent": "agent/" + "x" * 600},
        )

        assert response.status_code == 201
        record = client.get(f"/api/applications/{response.json()['data']['id']}").json()["data"]
        assert len(record["userAgent"]) == MAX_USER_AGENT
        assert len(record["cvOriginalName"]) == MAX_CV_ORIGINAL_NAME
        assert record["cvOriginalName"].endswith(".pdf")

    def test_long_phone_and_location_accepted(self, client, payload):
        payload["phone"] = "+44 " + "1" * 60
        payload["location"] = "Somewhere, " * 30

        response = submit(client, payload)

        assert response.status_code == 201

    def test_overlong_skill(self, client, payload):
        payload["skills"] = json.dumps(["Python", "x" * 201])

        response = submit(client, payload)

        assert response.status_code == 400
        assert error_fields(response) == {"skills": "Each skill cannot exceed 200 characters"}

    def test_storage_not_configured(self, client, payload):
        app.dependency_overrides[get_storage] = lambda: None

        response = submit(client, payload, cv=PDF)

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "File storage is not configured"}

    def test_malformed_json(self, client):
        response = client.post(
            SUBMIT_URL,
            content=b"{not json",
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["success"] is False


class TestList:
    @pytest.fixture
    def seeded(self, store, make_draft):
        return [store.create(make_draft(email=f"user{i}@example.com")) for i in range(25)]

    def test_pagination(self, client, seeded):
        response = client.get("/api/applications", params={"page": 2, "limit": 10})

        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 10
        assert body["pagination"] == {
            "currentPage": 2,
            "totalPages": 3,
            "totalItems": 25,
            "hasNext": True,
            "hasPrev": True,
            "limit": 10,
        }
        newest_first = [record.id for record in reversed(seeded)]
        assert [item["id"] for item in body["data"]] == newest_first[10:20]

    def test_ip_address_never_exposed(self, client, seeded):
        item = client.get("/api/applications").json()["data"][0]

        assert "ipAddress" not in item
        assert item["displayRole"] == "Back-End Developer"
        assert item["displayAvailability"] == "2 weeks"

    def test_filter_by_status(self, client, seeded, store):
        store.update_status(seeded[0].id, "shortlisted")

        body = client.get("/api/applications", params={"status": "shortlisted"}).json()

        assert [item["id"] for item in body["data"]] == [seeded[0].id]
        assert body["pagination"]["totalItems"] == 1

    def test_sort_order(self, client, seeded):
        body = client.get(
            "/api/applications", params={"sortBy": "submissionDate", "sortOrder": "asc", "limit": 3}
        ).json()

        assert [item["id"] for item in body["data"]] == [r.id for r in seeded[:3]]

    @pytest.mark.parametrize("params", [{"page": 0}, {"limit": 101}, {"sortOrder": "up"}, {"page": "x"}])
    def test_invalid_query(self, client, params):
        response = client.get("/api/applications", params=params)

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid request"


class TestSingleApplication:
    def test_get(self, client, store, make_draft):
        record = store.create(
            make_draft(
                primary_role="Other",
                custom_role="Prompt Engineer",
                cv_url="https://cdn.example.com/cv-1.pdf",
                cv_public_id="cv-1.pdf",
            )
        )

        response = client.get(f"/api/applications/{record.id}")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["displayRole"] == "Prompt Engineer"
        assert data["cvDownloadUrl"].startswith("https://cdn.example.com/cv-1.pdf?response-content-disposition=")

    def test_get_missing(self, client):
        response = client.get("/api/applications/999")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Application not found"}

    def test_malformed_id(self, client):
        response = client.get("/api/applications/abc")

        assert response.status_code == 400
        assert set(error_fields(response)) == {"application_id"}

    def test_cv_download(self, client, store, make_draft):
        record = store.create(
            make_draft(
                cv_url="https://cdn.example.com/cv-1.pdf",
                cv_public_id="cv-1.pdf",
                cv_original_name="jane.pdf",
            )
        )

        response = client.get(f"/api/applications/{record.id}/cv/download")

        assert response.status_code == 200
        assert response.json()["data"] == {
            "url": "https://signed.example.com/cv-1.pdf?filename=jane.pdf",
            "filename": "jane.pdf",
        }


class TestStatusUpdate:
    def test_update(self, client, store, make_draft, mailer):
        record = store.create(make_draft())

        response = client.patch(f"/api/applications/{record.id}/status", json={"status": "reviewed"})

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Application status updated"
        assert body["data"]["status"] == "reviewed"
        assert mailer.sent[0]["subject"] == "Application Update: Application Reviewed - DesignandBuildHQ"

    @pytest.mark.parametrize(
        "body, message",
        [({}, "Status is required"), ({"status": ""}, "Status is required"), ({"status": "hired"}, "Invalid status")],
    )
    def test_invalid(self, client, store, make_draft, body, message):
        record = store.create(make_draft())

        response = client.patch(f"/api/applications/{record.id}/status", json=body)

        assert response.status_code == 400
        assert error_fields(response) == {"status": message}
        assert store.get(record.id).status == "pending"

    def test_missing(self, client):
        response = client.patch("/api/applications/999/status", json={"status": "reviewed"})

        assert response.status_code == 404


class TestDelete:
    def test_delete_with_cv(self, client, store, make_draft, storage):
        record = store.create(make_draft(cv_url="https://cdn.example.com/cv-7.pdf", cv_public_id="cv-7.pdf"))

        response = client.delete(f"/api/applications/{record.id}")

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Application deleted successfully"}
        assert storage.deleted == ["cv-7.pdf"]
        assert client.get(f"/api/applications/{record.id}").status_code == 404

    def test_delete_missing(self, client, storage):
        response = client.delete("/api/applications/999")

        assert response.status_code == 404
        assert storage.deleted == []


class TestStatistics:
    def test_overview(self, client, store, make_draft):
        store.create(make_draft(email="a@example.com"))
        store.create(make_draft(email="b@example.com", primary_role="Other", custom_role="Prompt Engineer"))
        third = store.create(make_draft(email="c@example.com"))
        store.update_status(third.id, "rejected")

        response = client.get("/api/applications/stats/overview")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total"] == 3
        assert data["status"] == {"pending": 2, "rejected": 1}
        assert data["roles"] == {"Back-End Developer": 2, "Prompt Engineer": 1}
        assert data["experience"] == {"3–5": 3}
        assert sum(day["count"] for day in data["dailySubmissions"]) == 3


class TestRouting:
    def test_unknown_route(self, client):
        response = client.get("/api/nothing-here")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Route not found: /api/nothing-here"}


class TestStoreCv:
    @staticmethod
    def upload(content, filename="cv.pdf", content_type="application/pdf"):
        return UploadFile(
            file=io.BytesIO(content),
            filename=filename,
            headers=Headers({"content-type": content_type}),
        )

    @pytest.mark.anyio
    async def test_reads_at_most_one_byte_past_limit(self, storage, monkeypatch):
        monkeypatch.setattr(settings, "CV_MAX_BYTES", 16)
        upload = self.upload(b"x" * 1000)

        with pytest.raises(FileTypeOrSizeError):
            await store_cv(upload, storage)

        assert upload.file.tell() == 17
        assert storage.files == {}

    @pytest.mark.anyio
    async def test_file_at_limit_is_stored(self, storage, monkeypatch):
        monkeypatch.setattr(settings, "CV_MAX_BYTES", 16)

        stored = await store_cv(self.upload(b"x" * 16), storage)

        assert stored.size == 16

    def test_clip_filename_keeps_extension(self):
        assert clip_filename("cv.pdf") == "cv.pdf"
        assert clip_filename("a" * 20 + ".docx", limit=10) == "aaaaa.docx"
