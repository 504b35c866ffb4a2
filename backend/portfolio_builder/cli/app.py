from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from ..api.dependencies import AppServices, build_services
from ..config.logging_config import configure_logging
from ..config.settings import get_settings
from ..models.errors import PortfolioError
from ..models.portfolio import PortfolioRecord
from ..services.capture_service import FormDraft
from ..services.enhancement_service import (
    BIO_FIELD,
    PROJECTS_FIELD,
    accept_suggestion,
    profile_from_record,
)
from ..services.export_service import SUPPORTED_FORMATS

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NO_PORTFOLIO = 2


def main(argv: Optional[list] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.log_level)
    services = build_services(settings)

    try:
        return args.func(args, services)
    except PortfolioError as exc:
        _print_error(exc.code, str(exc), getattr(exc, "missing_fields", None))
        return EXIT_ERROR


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="portfolio-builder",
        description="Build, enhance, and export a personal portfolio.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the web app.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(func=_cmd_serve)

    capture = subparsers.add_parser("capture", help="Validate and save a portfolio from a JSON file.")
    capture.add_argument("source", type=Path, help="JSON file using the stored field names.")
    capture.add_argument("--photo", type=Path, help="Image file to use as the profile photo.")
    capture.set_defaults(func=_cmd_capture)

    show = subparsers.add_parser("show", help="Print the saved portfolio.")
    show.add_argument("--json", action="store_true", help="Print the stored JSON document.")
    show.set_defaults(func=_cmd_show)

    export = subparsers.add_parser("export", help="Write the saved portfolio as HTML or PDF.")
    export.add_argument("format", choices=SUPPORTED_FORMATS)
    export.add_argument(
        "--output-dir",
        type=Path,
        help="Directory for the exported file (default: PORTFOLIO_EXPORT_DIR).",
    )
    export.set_defaults(func=_cmd_export)

    enhance = subparsers.add_parser("enhance-bio", help="Suggest an improved bio.")
    enhance.add_argument("--accept", action="store_true", help="Save the suggestion into the portfolio.")
    enhance.set_defaults(func=_cmd_enhance_bio)

    projects = subparsers.add_parser("suggest-projects", help="Suggest improved project descriptions.")
    projects.add_argument("--accept", action="store_true", help="Save the suggestions into the portfolio.")
    projects.set_defaults(func=_cmd_suggest_projects)

    clear = subparsers.add_parser("clear", help="Delete the saved portfolio.")
    clear.set_defaults(func=_cmd_clear)

    return parser


def _cmd_serve(args, services: AppServices) -> int:
    import uvicorn

    from ..main import create_app

    uvicorn.run(
        create_app(services),
        host=args.host,
        port=args.port,
        log_level=services.settings.log_level.lower(),
    )
    return EXIT_OK


def _cmd_capture(args, services: AppServices) -> int:
    try:
        data = json.loads(args.source.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        _print_error("INVALID_INPUT", f"Could not read {args.source}: {exc}")
        return EXIT_ERROR
    if not isinstance(data, dict):
        _print_error("INVALID_INPUT", f"{args.source} must contain a JSON object")
        return EXIT_ERROR

    record = asyncio.run(_capture(services, FormDraft.from_mapping(data), args.photo))
    services.storage.save(record)
    print(f"Saved portfolio for {record.name}")
    return EXIT_OK


async def _capture(services: AppServices, draft: FormDraft, photo: Optional[Path]) -> PortfolioRecord:
    if photo is None and draft.photo:
        draft = draft.with_photo(await services.capture.read_photo_data_uri(draft.photo))
    return await services.capture.capture_submission(draft, photo)


def _cmd_show(args, services: AppServices) -> int:
    record = _load_or_hint(services)
    if record is None:
        return EXIT_NO_PORTFOLIO
    if args.json:
        print(json.dumps(record.to_dict(), indent=2, ensure_ascii=False))
        return EXIT_OK

    print(f"{record.name} ({record.age})")
    print(record.occupation)
    print(f"Contact: {record.contact_information}")
    print()
    print(record.short_bio)
    print()
    print("Skills: " + ", ".join(record.skills))
    for index, project in enumerate(record.projects, start=1):
        print(f"  {index}. {project.name}: {project.description}")
    print(f"Photo: {'yes' if record.photo else 'no'}")
    return EXIT_OK


def _cmd_export(args, services: AppServices) -> int:
    record = _load_or_hint(services)
    if record is None:
        return EXIT_NO_PORTFOLIO
    output_dir = args.output_dir or services.settings.resolved_export_dir
    result = asyncio.run(services.exporter.export(record, args.format, output_dir))
    if not result.success:
        _print_error("EXPORT_FAILED", result.error or "Export failed")
        return EXIT_ERROR
    print(f"Saved {args.format.upper()} to {result.file_path}")
    return EXIT_OK


def _cmd_enhance_bio(args, services: AppServices) -> int:
    record = _load_or_hint(services)
    if record is None:
        return EXIT_NO_PORTFOLIO
    outcome = asyncio.run(services.session.enhance_bio(profile_from_record(record)))
    print(outcome.value)
    if args.accept:
        services.storage.save(accept_suggestion(record, BIO_FIELD, outcome.value))
        print("Bio updated.")
    return EXIT_OK


def _cmd_suggest_projects(args, services: AppServices) -> int:
    record = _load_or_hint(services)
    if record is None:
        return EXIT_NO_PORTFOLIO
    outcome = asyncio.run(
        services.session.suggest_project_descriptions(record.project_descriptions())
    )
    for project, suggestion in zip(record.projects, outcome.value):
        print(f"{project.name}:")
        print(f"  {suggestion}")
    if args.accept:
        services.storage.save(accept_suggestion(record, PROJECTS_FIELD, outcome.value))
        print("Project descriptions updated.")
    return EXIT_OK


def _cmd_clear(args, services: AppServices) -> int:
    services.storage.clear()
    print("Saved portfolio removed.")
    return EXIT_OK


def _load_or_hint(services: AppServices) -> Optional[PortfolioRecord]:
    record = services.storage.load()
    if record is None:
        print(
            "No saved portfolio. Create one with `portfolio-builder capture <file.json>`.",
            file=sys.stderr,
        )
    return record


def _print_error(code: str, message: str, missing_fields=None) -> None:
    payload = {"error": code, "message": message}
    if missing_fields:
        payload["missing_fields"] = list(missing_fields)
    print(json.dumps(payload), file=sys.stderr)


if __name__ == "__main__":
    sys.exit(main())
