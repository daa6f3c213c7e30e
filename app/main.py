"""
HTTP server entry point for Expense Tracker.

Run with:
    python -m app.main
or
    uvicorn app.main:app --port 3000

Configuration comes from the environment (or a .env file); see
expense_tracker.config.settings for every variable.
"""

import logging

import structlog
import uvicorn

from expense_tracker.api import create_app
from expense_tracker.config import get_settings, validate_all_settings


logger = structlog.get_logger("expense_tracker.server")


def report_configuration() -> None:
    """Log which settings groups loaded, without stopping on a missing one."""
    status = validate_all_settings()
    for name in ("mongo", "auth", "mail", "cloudinary", "app"):
        if status.get(name, False):
            logger.info("settings_loaded", group=name)
        else:
            logger.warning(
                "settings_not_configured",
                group=name,
                error=status.get(f"{name}_error", "Not configured"),
            )


logging.basicConfig(
    level=logging.DEBUG if get_settings().app.debug_mode else logging.INFO,
    format="%(message)s",
)

app = create_app()


def main():
    """Main application entry point."""
    report_configuration()
    settings = get_settings().app
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
