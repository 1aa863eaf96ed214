import logging

import click
from flask import Flask, jsonify
from flask_migrate import Migrate
from sqlalchemy import inspect
from werkzeug.exceptions import HTTPException

from config import Config
from models import db
from routes import ALL_BLUEPRINTS
from security.csrf import protect_request
from utils.auth_context import load_current_user
from utils.errors import ReservationSystemError
from utils.seed import seed_defaults, seed_roles


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Register routes
    for bp in ALL_BLUEPRINTS:
        app.register_blueprint(bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Seed roles and the settings row once the schema exists (idempotent)
    with app.app_context():
        if app.config.get("AUTO_CREATE_TABLES"):
            db.create_all()
        if inspect(db.engine).has_table("roles"):
            seed_defaults()

    @app.before_request
    def _load_user():
        load_current_user()

    @app.before_request
    def _csrf_protect():
        protect_request()

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_error_handlers(app)
    register_cli(app)

    return app


def register_error_handlers(app):
    @app.errorhandler(ReservationSystemError)
    def _domain_error(exc):
        if exc.status_code >= 500:
            app.logger.error("%s: %s", exc.kind, exc.message)
        else:
            app.logger.info("%s %s: %s", exc.status_code, exc.kind, exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def _http_error(exc):
        return jsonify(error=exc.description, kind="http"), exc.code

    @app.errorhandler(Exception)
    def _unexpected(exc):
        db.session.rollback()
        app.logger.exception("Unhandled error")
        return jsonify(error="Internal server error", kind="error"), 500


#-------------------------
from models.facility import Facility
from models.user import User, Role
from services.slots import generate_slots
from utils.audit import log_event


def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to ADMIN by email (bootstrap)."""
        user = User.query.filter(db.func.lower(User.email) == email.strip().lower()).first()
        if not user:
            click.echo("User not found")
            return

        admin_role = Role.query.filter_by(name="ADMIN").first()
        if not admin_role:
            seed_roles()
            admin_role = Role.query.filter_by(name="ADMIN").first()

        user.role = admin_role
        db.session.commit()
        log_event("ROLE_PROMOTE_ADMIN", user_id=user.id, entity="user", entity_id=user.id)
        click.echo(f"{user.email} promoted to ADMIN")

    @app.cli.command("generate-slots")
    @click.option("--facility-id", type=int, default=None, help="Only this facility (default: all active).")
    @click.option("--days", type=int, default=None, help="Days ahead, from today.")
    def generate_slots_command(facility_id, days):
        """Rebuild free time slots for the coming days."""
        q = Facility.query.filter_by(status="ACTIVE")
        if facility_id is not None:
            q = q.filter_by(id=facility_id)

        facilities = q.order_by(Facility.name.asc()).all()
        if not facilities:
            click.echo("No active facilities found")
            return

        for facility in facilities:
            result = generate_slots(facility, days=days)
            log_event("SLOTS_GENERATE", entity="facility", entity_id=facility.id, metadata=result)
            click.echo(
                f"{facility.name}: {result['slots_generated']} generated, "
                f"{result['slots_deleted']} deleted, {result['slots_kept']} kept"
            )


#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
