import logging

import click
from flask import Flask
from flask_migrate import Migrate

from config import Config
from routes import (
    health_bp, auth_bp, provider_bp, public_bp, catalog_bp, availability_bp, booking_bp, ai_bp,
    business_info_bp, faq_bp, review_bp, feedback_bp, inquiry_bp,
)

from models import db
from utils.seed import seed_roles
from utils.auth_context import load_current_user
from security.csrf import csrf_protect
from security.vault import init_vault
from services.notifications import send_due_reminders


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    # Register routes
    for bp in (
        health_bp, auth_bp, provider_bp, public_bp, catalog_bp, availability_bp, booking_bp, ai_bp,
        business_info_bp, faq_bp, review_bp, feedback_bp, inquiry_bp,
    ):
        app.register_blueprint(bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Credential key is derived once here and lives on the vault only
    init_vault(app)

    if app.config.get("SEED_ROLES_ON_STARTUP", True):
        with app.app_context():
            seed_roles()

    # Order matters: CSRF is only enforced once the user is known
    app.before_request(load_current_user)
    app.before_request(csrf_protect)

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app


def register_cli(app):
    @app.cli.command("send-reminders")
    @click.option("--window-hours", type=int, default=None, help="Look-ahead window (default: REMINDER_WINDOW_HOURS).")
    def send_reminders(window_hours):
        """Email customers about bookings starting soon (once per booking)."""
        hours = window_hours or app.config.get("REMINDER_WINDOW_HOURS", 24)
        count = send_due_reminders(hours)
        click.echo(f"Sent {count} reminder(s) for the next {hours} hours")

    @app.cli.command("seed-roles")
    def seed_roles_command():
        """Create the CUSTOMER and PROVIDER roles if missing."""
        created = seed_roles()
        click.echo(f"Created roles: {', '.join(created)}" if created else "Roles already present")


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
