"""
CLI: ProductBoard -> Notion (one-way, incremental).

Uso recomendado:
  - Ejecutar como job (cron / CI), no de forma interactiva.

Variables de entorno requeridas:
  - PRODUCTBOARD_API_TOKEN
  - NOTION_API_KEY
  - NOTION_RELEASES_DB_ID
  - NOTION_FEATURES_DB_ID

Ejecución:
  roadmap-sync
  roadmap-sync --dry-run
  roadmap-sync --export-source --audit-payloads

Códigos de salida: 0 OK, 1 error fatal (o errores por registro con
--fail-on-errors), 2 configuración inválida.
"""

from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv
from loguru import logger

from roadmap_sync.application.sync.orchestrator import build_from_settings
from roadmap_sync.application.sync.report import SyncReport
from roadmap_sync.core.config import Settings
from roadmap_sync.domain.entities import SourceSnapshot
from roadmap_sync.shared.exceptions import ConfigurationError
from roadmap_sync.shared.utils.audit_sink import AuditSink, JsonFileAuditSink, NullAuditSink

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="roadmap-sync",
        description="Sync incremental de releases/features de ProductBoard a Notion.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Lee todo y calcula cambios, pero no crea ni actualiza paginas.",
    )
    parser.add_argument(
        "--profile",
        choices=("incremental", "extended"),
        default=None,
        help="Override de SYNC_FIELD_PROFILE.",
    )
    parser.add_argument(
        "--export-source",
        action="store_true",
        help="Guarda lo leido de ProductBoard en SYNC_EXPORT_DIR (JSON).",
    )
    parser.add_argument(
        "--audit-payloads",
        action="store_true",
        help="Guarda cada payload enviado a Notion en SYNC_AUDIT_DIR (JSON).",
    )
    parser.add_argument(
        "--fail-on-errors",
        action="store_true",
        help="Sale con código 1 si hubo errores por registro.",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Mostrar mensajes de debug",
    )
    return parser


def configure_logging(config: Settings, *, verbose: bool = False) -> None:
    """stderr con color + archivo append-only con timestamp y nivel."""
    log_level = "DEBUG" if verbose else config.LOG_LEVEL
    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
    )
    if config.LOG_FILE:
        Path(config.LOG_FILE).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            config.LOG_FILE,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {message}",
            level=log_level,
            encoding="utf-8",
        )


def export_snapshot(snapshot: SourceSnapshot, directory: Path) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"productboard-features-{int(time.time() * 1000)}.json"
    path.write_text(json.dumps(snapshot.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
    summary = snapshot.summary()
    logger.info(f"Datos de ProductBoard guardados en {path}")
    logger.info(
        f"Features: {summary['totalFeatures']}, con PM: {summary['featuresWithProductManager']}, "
        f"con engineering lead: {summary['featuresWithEngineeringLead']}"
    )
    return path


def run(config: Settings, args: argparse.Namespace) -> int:
    audit: AuditSink = (
        JsonFileAuditSink(Path(config.SYNC_AUDIT_DIR)) if args.audit_payloads else NullAuditSink()
    )

    try:
        service = build_from_settings(config, audit=audit, dry_run=args.dry_run)
    except ConfigurationError as e:
        logger.error(f"Configuración inválida: {e.message}")
        return EXIT_CONFIG

    report: Optional[SyncReport] = None
    try:
        report = service.run_once()
    except Exception as e:
        logger.exception(f"Error fatal: {e}")
        return EXIT_FAILED
    finally:
        if isinstance(audit, JsonFileAuditSink):
            audit.flush(summary=report.to_dict() if report else None)

    if args.export_source and report.snapshot is not None:
        export_snapshot(report.snapshot, Path(config.SYNC_EXPORT_DIR))

    if args.fail_on_errors and report.total_errors:
        logger.error(f"Sync terminado con {report.total_errors} errores por registro")
        return EXIT_FAILED

    logger.success("Sync completo")
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    # Cargar variables desde .env / .env.personal si existen (no pisa el entorno).
    load_dotenv(".env", override=False)
    load_dotenv(".env.personal", override=False)

    config = Settings()
    if args.profile:
        config.SYNC_FIELD_PROFILE = args.profile

    configure_logging(config, verbose=args.verbose)
    return run(config, args)


if __name__ == "__main__":
    sys.exit(main())
