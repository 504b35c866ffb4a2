"""
Pytest configuration and fixtures
"""
import base64
import io
import sys
from pathlib import Path
from unittest.mock import Mock

import pytest
from PIL import Image

# Define paths
PROJECT_ROOT = Path(__file__).resolve().parent.parent
BACKEND_ROOT = PROJECT_ROOT / "backend"

if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from portfolio_builder.ai.client import LLMClient
from portfolio_builder.config.settings import Settings, reset_settings
from portfolio_builder.models.portfolio import PortfolioRecord, Project


def make_png_bytes(size=(4, 4), color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_bytes():
    return make_png_bytes()


@pytest.fixture
def png_data_uri(png_bytes):
    """A tiny valid PNG encoded the way the capture form stores photos."""
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")


@pytest.fixture
def sample_record(png_data_uri):
    return PortfolioRecord(
        name="Ada Lovelace",
        age=36,
        occupation="Analyst",
        contact_information="ada@example.com",
        short_bio="First programmer.",
        skills=("C", "Math", "Logic"),
        projects=(
            Project(name="Engine Notes", description="Notes on the Analytical Engine"),
            Project(name="Bernoulli", description="Algorithm for Bernoulli numbers"),
        ),
        photo=png_data_uri,
    )


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a temporary data directory with AI disabled."""
    return Settings(
        openai_api_key=None,
        data_dir=tmp_path / "data",
        export_dir=tmp_path / "exports",
    )


@pytest.fixture
def fake_llm_client():
    """An LLMClient stand-in whose generate() is a Mock."""
    client = Mock(spec=LLMClient)
    client.is_configured.return_value = True
    return client


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch, tmp_path):
    """Keep the process-wide settings cache and env vars out of each test."""
    for name in (
        "OPENAI_API_KEY",
        "PORTFOLIO_LLM_MODEL",
        "PORTFOLIO_LLM_TEMPERATURE",
        "PORTFOLIO_LLM_MAX_TOKENS",
        "PORTFOLIO_LLM_TIMEOUT",
        "PORTFOLIO_EXPORT_DIR",
        "PORTFOLIO_REQUIRE_PHOTO",
        "PORTFOLIO_MAX_PHOTO_MB",
        "PORTFOLIO_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("PORTFOLIO_DATA_DIR", str(tmp_path / "env-data"))
    reset_settings()
    yield
    reset_settings()
