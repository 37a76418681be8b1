"""Entry point for the Flask CLI and the background scheduler.

    flask --app app sweep-end-of-day --date 2026-10-16
    flask --app app summary-monthly --month 9 --year 2026
"""

from src.attendance_engine.attendance_engine.main import create_app

app = create_app()
