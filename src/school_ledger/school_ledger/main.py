from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .container import Container, build_container
from .database.bootstrap import apply_schema, apply_seed_sql, list_tables
from .fees.controller import register as register_fees

logger = logging.getLogger(__name__)

_DATABASE_DIR = Path(__file__).resolve().parents[3] / "database"


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    _configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    if container is None:
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"), db_config.get("host"), db_config.get("port", 3306), db_config.get("database"),
        )

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=_DATABASE_DIR / "schema.sql")
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            apply_seed_sql(db_config, seed_path=_DATABASE_DIR / "seed.sql")
            logger.info("Demo seed ready")

        container = build_container(db_config=db_config, settings=settings)

    register_attendance(app, container)
    register_fees(app, container)
    _register_commands(app, container)

    return app


def _register_commands(app: Flask, container: Container) -> None:
    @app.cli.command("generate-fee-components")
    @click.option("--year", type=int, default=None, help="Target year (default: current).")
    @click.option("--month", type=click.IntRange(1, 12), default=None, help="Target month (default: current).")
    @click.option("--school-id", default=None, help="Restrict to one school.")
    @click.option("--batch-size", type=click.IntRange(min=1), default=None)
    def generate_fee_components(year, month, school_id, batch_size):
        """Generate monthly fee components for all active students."""
        result = container.fee_generation_job.run(
            target_year=year, target_month=month, school_id=school_id, batch_size=batch_size
        )
        click.echo(
            f"Processed {result.processed}/{result.total_students} students: "
            f"generated={result.generated} updated={result.updated} errors={len(result.errors)}"
        )
        for failure in result.errors:
            click.echo(f"  {failure.student_id}: {failure.error}", err=True)
        if result.errors:
            raise SystemExit(1)
