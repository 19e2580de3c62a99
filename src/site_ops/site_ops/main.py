from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_users, list_tables
from .database.connection import DBConfig

from .container import Container, build_container
from .assignments.controller import register as register_assignments
from .attendance.controller import register as register_attendance
from .certificates.controller import register as register_certificates
from .daily_reports.controller import register as register_daily_reports
from .documents.controller import register as register_documents
from .materials.controller import register as register_materials
from .partners.controller import register as register_partners
from .payroll.controller import register as register_payroll
from .sites.controller import register as register_sites
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[3]


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["MAX_CONTENT_LENGTH"] = int(getattr(settings, "MAX_CONTENT_LENGTH", 64 * 1024 * 1024))
    app.config["UPLOAD_FOLDER"] = getattr(settings, "UPLOAD_FOLDER", "uploads")
    app.config["PDF_FONT_PATH"] = getattr(settings, "PDF_FONT_PATH", None)

    if container is None:
        logger.info("settings=%s db=%s", settings_module, DBConfig.from_mapping(db_config).describe())

        if getattr(settings, "AUTO_INIT_DB", False):
            apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))
        if getattr(settings, "AUTO_SEED_DB", False):
            apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
            ensure_demo_users(db_config)
            logger.info("Demo seed ready")

        container = build_container(db_config=db_config, settings=settings)

    register_users(app, container)
    register_sites(app, container)
    register_partners(app, container)
    register_assignments(app, container)
    register_attendance(app, container)
    register_daily_reports(app, container)
    register_payroll(app, container)
    register_materials(app, container)
    register_documents(app, container)
    register_certificates(app, container)

    return app
