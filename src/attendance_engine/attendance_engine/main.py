from __future__ import annotations

import atexit
import importlib
import json
import logging
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .container import Container, build_container
from .core.exceptions import DomainError
from .database.bootstrap import apply_schema, list_tables
from .sweeper.scheduler import start_scheduler

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parents[3] / "database" / "schema.sql"

_DATE = click.DateTime(formats=["%Y-%m-%d"])


def _configure_logging(level_name: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level_name).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _as_date(value):
    return value.date() if value is not None else None


def _echo_json(payload) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def register_commands(app: Flask, container: Container, db_config: dict) -> None:
    """Register CLI commands (flask --app ... <command>)."""

    @app.cli.command("init-db")
    def init_db():
        """Apply database/schema.sql (idempotent)."""
        count = apply_schema(db_config, schema_path=SCHEMA_PATH)
        click.echo(f"Applied {count} statements (tables={len(list_tables(db_config))})")

    @app.cli.command("sweep-end-of-day")
    @click.option("--date", "sweep_date", type=_DATE, default=None, help="Day to sweep (default: yesterday)")
    def sweep_end_of_day(sweep_date):
        """Backfill ABSENT / leave-derived check-ins for one day."""
        try:
            result = container.sweeper.run_end_of_day_sweep(_as_date(sweep_date))
        except DomainError as exc:
            raise click.ClickException(str(exc))
        _echo_json(result.__dict__)

    @app.cli.command("sweep-leave-expiry")
    @click.option("--today", type=_DATE, default=None, help="Reference date (default: today)")
    def sweep_leave_expiry(today):
        """Reject pending leave requests whose period has elapsed."""
        result = container.sweeper.run_leave_expiry_sweep(_as_date(today))
        _echo_json(result.__dict__)

    @app.cli.command("remind-check-in")
    @click.option("--date", "reminder_date", type=_DATE, default=None, help="Day to check (default: today)")
    def remind_check_in(reminder_date):
        """Notify about active students who have not checked in yet."""
        result = container.sweeper.run_check_in_reminder(_as_date(reminder_date))
        _echo_json(result.__dict__)

    @app.cli.command("summary-weekly")
    @click.option("--start", type=_DATE, default=None)
    @click.option("--end", type=_DATE, default=None)
    def summary_weekly(start, end):
        """Weekly attendance summary (default: current Monday..Sunday)."""
        try:
            summary = container.sweeper.run_weekly_summary(_as_date(start), _as_date(end))
        except DomainError as exc:
            raise click.ClickException(str(exc))
        _echo_json(summary.to_payload())

    @app.cli.command("summary-monthly")
    @click.option("--month", type=int, default=None)
    @click.option("--year", type=int, default=None)
    def summary_monthly(month, year):
        """Monthly attendance summary (default: previous month)."""
        try:
            summary = container.sweeper.run_monthly_summary(month, year)
        except DomainError as exc:
            raise click.ClickException(str(exc))
        _echo_json(summary.to_payload())

    @app.cli.command("report-daily")
    @click.option("--date", "report_date", type=_DATE, default=None, help="Day to report (default: today)")
    def report_daily(report_date):
        """Status counts for one day."""
        report = container.sweeper.run_daily_report(_as_date(report_date))
        _echo_json(report.to_payload())

    @app.cli.command("set-setting")
    @click.argument("key")
    @click.argument("value")
    def set_setting(key, value):
        """Validate and store one attendance setting."""
        try:
            container.settings_service.update(key, value)
        except DomainError as exc:
            raise click.ClickException(str(exc))
        _echo_json(container.settings_service.as_dict())

    @app.cli.command("enroll-face")
    @click.argument("student_id", type=int)
    @click.argument("image_path", type=click.Path(exists=True, dir_okay=False))
    def enroll_face(student_id, image_path):
        """Store a face template extracted from IMAGE_PATH (the photo is deleted)."""
        try:
            size = container.enrollment_service.enroll(student_id, image_path)
        except DomainError as exc:
            raise click.ClickException(str(exc))
        click.echo(f"Enrolled student {student_id} ({size} values)")


def create_app(*, container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["UPLOAD_DIR"] = getattr(settings, "UPLOAD_DIR", None)

    _configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module, db_config.get("user"), db_config.get("host"), db_config.get("port", 3306), db_config.get("database"),
    )

    if container is None:
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=SCHEMA_PATH)
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))
        container = build_container(db_config=db_config, upload_root=app.config["UPLOAD_DIR"])

    app.extensions["attendance_engine"] = container
    register_commands(app, container, db_config)

    if bool(getattr(settings, "SCHEDULER_ENABLED", False)) and not app.config["TESTING"]:
        scheduler = start_scheduler(container.sweeper, timezone=getattr(settings, "SCHEDULER_TIMEZONE", None))
        app.extensions["scheduler"] = scheduler
        atexit.register(lambda: scheduler.shutdown(wait=False))

    atexit.register(container.verifiers.shutdown)
    return app
