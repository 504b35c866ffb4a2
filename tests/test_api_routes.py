# Tests for the web app: pages, portfolio API, and AI routes

from dataclasses import replace

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from portfolio_builder.ai.client import LLMClient, LLMError
from portfolio_builder.ai.prompts import EnhanceBioOutput, SuggestProjectDescriptionsOutput
from portfolio_builder.api.dependencies import build_services
from portfolio_builder.main import create_app
from portfolio_builder.services.enhancement_service import BIO_FIELD, PROJECTS_FIELD


@pytest.fixture
def services(settings, fake_llm_client):
    return build_services(settings, llm_client=fake_llm_client)


@pytest.fixture
def client(services):
    return TestClient(create_app(services))


@pytest.fixture
def ada_form():
    return {
        "name": "Ada Lovelace",
        "age": "28",
        "occupation": "Engineer",
        "contactInformation": "ada@example.com",
        "shortBio": "I build things.",
        "skills": "C, Math, Logic",
        "project_name": ["Analytical Engine"],
        "project_description": ["Pioneered computing concepts."],
        "action": "submit",
    }


@pytest.fixture
def ada_json(png_data_uri):
    return {
        "name": "Ada Lovelace",
        "age": 28,
        "occupation": "Engineer",
        "contactInformation": "ada@example.com",
        "shortBio": "I build things.",
        "skills": "C, Math, Logic",
        "projects": [{"name": "Analytical Engine", "description": "Pioneered computing concepts."}],
        "photo": png_data_uri,
    }


class TestPages:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "ai_enabled": True}

    def test_capture_page_starts_with_one_empty_project(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.text.count('name="project_name"') == 1
        assert "Your Name" in response.text

    def test_capture_page_script_ignores_older_suggestions(self, client):
        page = client.get("/").text
        assert "if (token < (shownTokens[target] || 0)) { return; }" in page
        assert "showSuggestion(\"bio-suggestion\", data.enhancedBio, data.requestToken)" in page

    def test_results_redirects_when_nothing_stored(self, client):
        response = client.get("/portfolio", follow_redirects=False)
        assert response.status_code == 307
        assert response.headers["location"] == "/"

    def test_results_redirects_when_stored_data_is_corrupt(self, client, services):
        services.storage.store.set(services.storage.key, "{broken")
        response = client.get("/portfolio", follow_redirects=False)
        assert response.status_code == 307

    def test_add_project_button(self, client, ada_form):
        ada_form["action"] = "add_project"
        response = client.post("/", data=ada_form)
        assert response.status_code == 200
        assert response.text.count('name="project_name"') == 2
        assert 'value="Ada Lovelace"' in response.text

    def test_missing_fields_rerender_form(self, client, ada_form, png_bytes):
        ada_form["occupation"] = ""
        response = client.post(
            "/",
            data=ada_form,
            files={"photo": ("me.png", png_bytes, "image/png")},
            follow_redirects=False,
        )
        assert response.status_code == 422
        assert "occupation is required" in response.text
        assert 'value="Ada Lovelace"' in response.text
        # The uploaded photo is carried forward so it need not be picked again.
        assert 'name="existing_photo"' in response.text

    def test_bad_photo_rerenders_form(self, client, ada_form):
        response = client.post(
            "/",
            data=ada_form,
            files={"photo": ("notes.txt", b"just text", "text/plain")},
        )
        assert response.status_code == 422
        assert "photo" in response.text

    def test_oversized_image_dimensions_rerender_form(self, client, ada_form, png_bytes, monkeypatch):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 4)
        response = client.post(
            "/",
            data=ada_form,
            files={"photo": ("huge.png", png_bytes, "image/png")},
        )
        assert response.status_code == 422
        assert "huge.png is not a readable image" in response.text
        assert 'value="Ada Lovelace"' in response.text


class TestEndToEnd:

    def test_ada_lovelace_scenario(self, client, services, ada_form, png_bytes):
        response = client.post(
            "/",
            data=ada_form,
            files={"photo": ("ada.png", png_bytes, "image/png")},
            follow_redirects=False,
        )
        assert response.status_code == 303
        assert response.headers["location"] == "/portfolio"

        record = services.storage.load()
        assert list(record.skills) == ["C", "Math", "Logic"]
        assert record.photo.startswith("data:image/png;base64,")

        results = client.get("/portfolio")
        assert results.status_code == 200
        assert "Ada Lovelace" in results.text

        export = client.get("/api/portfolio/export/html")
        assert export.status_code == 200
        assert 'filename="portfolio-ada-lovelace.html"' in export.headers["content-disposition"]
        assert "<li>C</li><li>Math</li><li>Logic</li>" in export.text
        assert "<li><h4>Analytical Engine</h4><p>Pioneered computing concepts.</p></li>" in export.text

        pdf = client.get("/api/portfolio/export/pdf")
        assert pdf.status_code == 200
        assert pdf.headers["content-type"] == "application/pdf"
        assert pdf.content.startswith(b"%PDF")

    def test_edit_prefills_from_stored_record(self, client, services, sample_record):
        services.storage.save(sample_record)
        response = client.get("/")
        assert 'value="Ada Lovelace"' in response.text
        assert "Engine Notes" in response.text
        assert 'name="existing_photo"' in response.text


class TestPortfolioApi:

    def test_get_absent(self, client):
        assert client.get("/api/portfolio").status_code == 404

    def test_put_then_get(self, client, ada_json):
        response = client.put("/api/portfolio", json=ada_json)
        assert response.status_code == 200
        body = response.json()
        assert body["skills"] == ["C", "Math", "Logic"]
        assert body["complete"] is True

        fetched = client.get("/api/portfolio").json()
        assert fetched["contactInformation"] == "ada@example.com"
        assert fetched["projects"] == [
            {"name": "Analytical Engine", "description": "Pioneered computing concepts."}
        ]

    def test_put_reports_missing_fields(self, client, ada_json):
        ada_json["shortBio"] = ""
        ada_json["projects"] = []
        response = client.put("/api/portfolio", json=ada_json)
        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "VALIDATION_ERROR"
        assert body["missing_fields"] == ["shortBio", "projects"]

    def test_put_rejects_non_image_photo(self, client, ada_json):
        ada_json["photo"] = "data:image/png;base64,bm90IGFuIGltYWdl"
        response = client.put("/api/portfolio", json=ada_json)
        assert response.status_code == 422
        assert response.json()["error_code"] == "PHOTO_READ_ERROR"

    def test_delete(self, client, services, sample_record):
        services.storage.save(sample_record)
        assert client.delete("/api/portfolio").status_code == 204
        assert services.storage.load() is None

    def test_preview(self, client, services, sample_record):
        services.storage.save(sample_record)
        response = client.get("/api/portfolio/preview")
        assert response.status_code == 200
        assert "About Me" in response.text

    def test_export_without_record(self, client):
        assert client.get("/api/portfolio/export/pdf").status_code == 409

    def test_export_unknown_format(self, client, services, sample_record):
        services.storage.save(sample_record)
        assert client.get("/api/portfolio/export/docx").status_code == 404

    def test_export_failure_is_reported(self, client, services, sample_record):
        services.storage.save(replace(sample_record, photo="data:image/png;base64,bm90IGFuIGltYWdl"))
        response = client.get("/api/portfolio/export/pdf")
        assert response.status_code == 500
        assert "Photo could not be decoded" in response.json()["detail"]


class TestEnhanceApi:

    def test_enhance_stored_bio(self, client, services, sample_record, fake_llm_client):
        services.storage.save(sample_record)
        fake_llm_client.generate.return_value = EnhanceBioOutput(enhanced_bio="A pioneer.")

        response = client.post("/api/ai/enhance-bio")

        assert response.status_code == 200
        assert response.json() == {"enhancedBio": "A pioneer.", "requestToken": 1, "applied": True}
        assert client.get("/api/ai/suggestions").json()["bio"] == "A pioneer."

    def test_enhance_unsaved_form(self, client, fake_llm_client, ada_json):
        fake_llm_client.generate.return_value = EnhanceBioOutput(enhanced_bio="From the form.")
        response = client.post("/api/ai/enhance-bio", json=ada_json)
        assert response.status_code == 200
        prompt = fake_llm_client.generate.call_args.args[0]
        assert "I build things." in prompt

    def test_enhance_without_anything(self, client):
        assert client.post("/api/ai/enhance-bio").status_code == 409

    def test_service_failure_is_502(self, client, services, sample_record, fake_llm_client):
        services.storage.save(sample_record)
        fake_llm_client.generate.side_effect = LLMError("Rate limit exceeded. Please wait a moment.")
        response = client.post("/api/ai/enhance-bio")
        assert response.status_code == 502
        assert "Rate limit" in response.json()["detail"]

    def test_unconfigured_is_503(self, settings, sample_record):
        services = build_services(settings, llm_client=LLMClient())
        services.storage.save(sample_record)
        client = TestClient(create_app(services))
        response = client.post("/api/ai/enhance-bio")
        assert response.status_code == 503
        assert response.json()["error_code"] == "AI_NOT_CONFIGURED"

    def test_suggest_descriptions(self, client, fake_llm_client):
        fake_llm_client.generate.return_value = SuggestProjectDescriptionsOutput(
            improved_project_descriptions=["Better one", "Better two"]
        )
        response = client.post(
            "/api/ai/suggest-project-descriptions",
            json={"projectDescriptions": ["one", "two"]},
        )
        assert response.status_code == 200
        assert response.json()["improvedProjectDescriptions"] == ["Better one", "Better two"]

    def test_suggest_empty_list(self, client, fake_llm_client):
        response = client.post("/api/ai/suggest-project-descriptions", json={"projectDescriptions": []})
        assert response.json()["improvedProjectDescriptions"] == []
        fake_llm_client.generate.assert_not_called()

    def test_accept_and_dismiss(self, client, services, sample_record, fake_llm_client):
        services.storage.save(sample_record)
        fake_llm_client.generate.return_value = SuggestProjectDescriptionsOutput(
            improved_project_descriptions=["New one", "New two"]
        )
        client.post("/api/ai/suggest-project-descriptions")

        response = client.post(f"/api/portfolio/accept/{PROJECTS_FIELD}")
        assert response.status_code == 200
        assert services.storage.load().project_descriptions() == ["New one", "New two"]
        assert client.get("/api/ai/suggestions").json()["projects"] is None

        assert client.post(f"/api/portfolio/accept/{BIO_FIELD}").status_code == 404
        assert client.delete(f"/api/ai/suggestions/{BIO_FIELD}").status_code == 204
        assert client.delete("/api/ai/suggestions/name").status_code == 404
