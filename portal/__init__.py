from flask import Flask, jsonify
from flask_wtf.csrf import CSRFProtect
from config import Config

from portal.errors import (
    AuthenticationError,
    AuthorizationError,
    InactiveAccountError,
    InvalidFieldError,
    MissingFieldError,
    NotFoundError,
    PortalError,
    ProvisioningUnavailable,
    RemoteFailure,
    SelfDeletionError,
)

csrf = CSRFProtect()

ERROR_STATUS = (
    (AuthenticationError, 401),
    (InactiveAccountError, 403),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (SelfDeletionError, 409),
    (InvalidFieldError, 400),
    (MissingFieldError, 400),
    (ProvisioningUnavailable, 501),
    (RemoteFailure, 502),
)


def error_status(exc):
    for error_class, status in ERROR_STATUS:
        if isinstance(exc, error_class):
            return status
    return 500


def create_app(config_class=Config, portal_factory=None):
    app = Flask(__name__)
    app.config.from_object(config_class)

    from portal.log import configure_logging
    configure_logging(app.config.get('LOG_LEVEL', 'INFO'))

    csrf.init_app(app)

    # One portal per browser session
    from portal.context import PortalRegistry, build_firebase_portal
    if portal_factory is None:
        from portal.firebase_init import init_firebase
        init_firebase(app.config)

        def portal_factory(session_cookie):
            return build_firebase_portal(app.config, session_cookie)

    app.extensions['portal_registry'] = PortalRegistry(
        portal_factory,
        recheck_after=app.config.get('PORTAL_SESSION_RECHECK_SECONDS', 60.0),
        idle_timeout=app.config.get('PORTAL_SESSION_IDLE_SECONDS', 3600.0),
    )

    from portal.decorators import load_current_portal

    @app.before_request
    def before_request():
        load_current_portal()

    @app.errorhandler(PortalError)
    def handle_portal_error(exc):
        status = error_status(exc)
        if status >= 500:
            app.logger.warning('Request failed: %s', exc)
        return jsonify({'error': str(exc)}), status

    # Register blueprints
    from portal.routes import auth, main, records
    app.register_blueprint(auth.bp)
    app.register_blueprint(main.bp)
    app.register_blueprint(records.bp)

    return app
