from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from ..ai.client import LLMClient
from ..config.settings import Settings
from ..services.capture_service import CaptureService
from ..services.enhancement_service import EnhancementService, EnhancementSession
from ..services.export_service import ExportService
from ..services.storage_service import LocalStore, PortfolioStorage


@dataclass
class AppServices:
    settings: Settings
    storage: PortfolioStorage
    capture: CaptureService
    enhancement: EnhancementService
    session: EnhancementSession
    exporter: ExportService


def build_services(settings: Settings, llm_client: Optional[LLMClient] = None) -> AppServices:
    """Wire the services for one local user."""
    client = llm_client or LLMClient.from_settings(settings)
    enhancement = EnhancementService(client)
    return AppServices(
        settings=settings,
        storage=PortfolioStorage(LocalStore(settings.data_dir)),
        capture=CaptureService(
            require_photo=settings.require_photo,
            max_photo_bytes=settings.max_photo_bytes,
        ),
        enhancement=enhancement,
        session=EnhancementSession(enhancement),
        exporter=ExportService(),
    )


def get_services(request: Request) -> AppServices:
    return request.app.state.services
