"""Tests for the portfolio-builder command line."""

import json

import pytest

from portfolio_builder.ai.client import LLMError
from portfolio_builder.ai.prompts import EnhanceBioOutput, SuggestProjectDescriptionsOutput
from portfolio_builder.api.dependencies import build_services
from portfolio_builder.cli import app as cli
from portfolio_builder.config.settings import get_settings


def _error(capsys):
    """The JSON error line the CLI prints last on stderr."""
    return json.loads(capsys.readouterr().err.strip().splitlines()[-1])


@pytest.fixture
def fake_services(monkeypatch, fake_llm_client):
    """Route the CLI through a fake LLM client."""

    def _build(settings, llm_client=None):
        return build_services(settings, llm_client=fake_llm_client)

    monkeypatch.setattr(cli, "build_services", _build)


@pytest.fixture
def saved(sample_record):
    services = build_services(get_settings())
    services.storage.save(sample_record)
    return services


@pytest.fixture
def ada_file(tmp_path, png_data_uri):
    path = tmp_path / "ada.json"
    path.write_text(
        json.dumps(
            {
                "name": "Ada Lovelace",
                "age": 28,
                "occupation": "Engineer",
                "contactInformation": "ada@example.com",
                "shortBio": "I build things.",
                "skills": "C, Math, Logic",
                "projects": [{"name": "Analytical Engine", "description": "Pioneered computing concepts."}],
                "photo": png_data_uri,
            }
        ),
        encoding="utf-8",
    )
    return path


class TestCapture:

    def test_capture_saves_record(self, ada_file, capsys):
        assert cli.main(["capture", str(ada_file)]) == 0
        assert "Saved portfolio for Ada Lovelace" in capsys.readouterr().out
        record = build_services(get_settings()).storage.load()
        assert record.skills == ("C", "Math", "Logic")

    def test_capture_with_photo_file(self, ada_file, tmp_path, png_bytes):
        data = json.loads(ada_file.read_text(encoding="utf-8"))
        del data["photo"]
        ada_file.write_text(json.dumps(data), encoding="utf-8")
        photo = tmp_path / "ada.png"
        photo.write_bytes(png_bytes)

        assert cli.main(["capture", str(ada_file), "--photo", str(photo)]) == 0
        assert build_services(get_settings()).storage.load().photo.startswith("data:image/png")

    def test_capture_reports_missing_fields(self, ada_file, capsys):
        data = json.loads(ada_file.read_text(encoding="utf-8"))
        data["occupation"] = ""
        ada_file.write_text(json.dumps(data), encoding="utf-8")

        assert cli.main(["capture", str(ada_file)]) == 1
        error = _error(capsys)
        assert error["error"] == "VALIDATION_ERROR"
        assert error["missing_fields"] == ["occupation"]

    def test_capture_unreadable_file(self, tmp_path, capsys):
        assert cli.main(["capture", str(tmp_path / "missing.json")]) == 1
        assert _error(capsys)["error"] == "INVALID_INPUT"


class TestShowExportClear:

    def test_show_without_record(self, capsys):
        assert cli.main(["show"]) == 2
        assert "portfolio-builder capture" in capsys.readouterr().err

    def test_show(self, saved, capsys):
        assert cli.main(["show"]) == 0
        out = capsys.readouterr().out
        assert "Ada Lovelace (36)" in out
        assert "Skills: C, Math, Logic" in out

    def test_show_json(self, saved, capsys):
        assert cli.main(["show", "--json"]) == 0
        assert json.loads(capsys.readouterr().out)["shortBio"] == "First programmer."

    @pytest.mark.parametrize(
        "fmt, filename",
        [("html", "portfolio-ada-lovelace.html"), ("pdf", "Ada Lovelace-portfolio.pdf")],
    )
    def test_export(self, saved, tmp_path, fmt, filename):
        out_dir = tmp_path / "out"
        assert cli.main(["export", fmt, "--output-dir", str(out_dir)]) == 0
        assert (out_dir / filename).exists()

    def test_export_without_record(self):
        assert cli.main(["export", "html"]) == 2

    def test_clear(self, saved):
        assert cli.main(["clear"]) == 0
        assert saved.storage.load() is None


class TestEnhancementCommands:

    def test_enhance_bio_prints_suggestion(self, saved, fake_services, fake_llm_client, capsys):
        fake_llm_client.generate.return_value = EnhanceBioOutput(enhanced_bio="A pioneer.")
        assert cli.main(["enhance-bio"]) == 0
        assert "A pioneer." in capsys.readouterr().out
        assert saved.storage.load().short_bio == "First programmer."

    def test_enhance_bio_accept(self, saved, fake_services, fake_llm_client):
        fake_llm_client.generate.return_value = EnhanceBioOutput(enhanced_bio="A pioneer.")
        assert cli.main(["enhance-bio", "--accept"]) == 0
        assert saved.storage.load().short_bio == "A pioneer."

    def test_suggest_projects_accept(self, saved, fake_services, fake_llm_client):
        fake_llm_client.generate.return_value = SuggestProjectDescriptionsOutput(
            improved_project_descriptions=["New one", "New two"]
        )
        assert cli.main(["suggest-projects", "--accept"]) == 0
        assert saved.storage.load().project_descriptions() == ["New one", "New two"]

    def test_service_failure_exit_code(self, saved, fake_services, fake_llm_client, capsys):
        fake_llm_client.generate.side_effect = LLMError("Request timed out.")
        assert cli.main(["enhance-bio"]) == 1
        assert _error(capsys)["error"] == "SERVICE_ERROR"
