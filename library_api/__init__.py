import click
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from library_api.config import Config
from library_api.errors import AppError
from library_api.extensions import db, migrate, jwt


def _register_error_handlers(app):
    @app.errorhandler(AppError)
    def handle_app_error(e):
        if e.status_code >= 500:
            app.logger.error(f"[error] {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({"success": False, "message": e.description or e.name}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        # never leak internals to the client
        app.logger.exception(f"[error] unhandled: {e}")
        return jsonify({"success": False, "message": "Something went wrong!"}), 500

    @jwt.unauthorized_loader
    def _missing_token(reason):
        return jsonify({"success": False, "message": "You are not logged in! Please log in to get access."}), 401

    @jwt.invalid_token_loader
    def _invalid_token(reason):
        return jsonify({"success": False, "message": "Invalid token. Please log in again!"}), 401

    @jwt.expired_token_loader
    def _expired_token(jwt_header, jwt_payload):
        return jsonify({"success": False, "message": "Your token has expired! Please log in again!"}), 401

    @jwt.user_lookup_error_loader
    def _unknown_user(jwt_header, jwt_payload):
        return jsonify({"success": False, "message": "The user belonging to this token does no longer exist."}), 401


def _register_user_lookup(app):
    from library_api.repositories.user_repo import UserRepo

    # the role always comes from the stored user, not from the token
    @jwt.user_lookup_loader
    def _load_user(jwt_header, jwt_payload):
        identity = jwt_payload.get(app.config["JWT_IDENTITY_CLAIM"])
        try:
            return UserRepo.get_by_id(int(identity))
        except (TypeError, ValueError):
            return None


def _register_cli(app):
    @app.cli.command("create-admin")
    @click.argument("email")
    @click.argument("name")
    @click.argument("password")
    def create_admin(email, name, password):
        """Create an ADMIN account."""
        from library_api.models.enums import UserRole
        from library_api.services.auth_service import AuthService

        user = AuthService.register(name=name, email=email, password=password, role=UserRole.ADMIN.value)
        click.echo(f"Admin #{user.id} <{user.email}> created")


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    # 1) extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    # models must be imported before create_all / migrations see the metadata
    from library_api.models import book, borrow, user  # noqa: F401

    # 2) API blueprints
    from library_api.controllers.auth_controller import auth_bp
    from library_api.controllers.book_controller import book_bp
    from library_api.controllers.borrow_controller import borrow_bp
    from library_api.controllers.user_controller import user_bp
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(book_bp, url_prefix="/books")
    app.register_blueprint(borrow_bp, url_prefix="/borrows")
    app.register_blueprint(user_bp, url_prefix="/users")

    _register_error_handlers(app)
    _register_user_lookup(app)
    _register_cli(app)

    @app.get("/health")
    def health():
        return jsonify({"ok": True})

    return app
