from functools import wraps
from flask import current_app, g, jsonify, session

from portal.errors import AuthorizationError
from portal.permissions import require_admin

SESSION_KEY = 'firebase_session'


def _registry():
    return current_app.extensions['portal_registry']


def load_current_portal():
    """Load the portal for the session cookie into g before each request."""
    if hasattr(g, '_current_portal'):
        return
    session_cookie = session.get(SESSION_KEY)
    portal = _registry().for_cookie(session_cookie) if session_cookie else None
    if session_cookie and portal is None:
        # Expired, revoked or inactive: forget the cookie
        session.pop(SESSION_KEY, None)
    g._current_portal = portal


def get_current_portal():
    if not hasattr(g, '_current_portal'):
        load_current_portal()
    return g._current_portal


def get_current_identity():
    portal = get_current_portal()
    return portal.session.current_identity() if portal is not None else None


def auth_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        portal = get_current_portal()
        if portal is None:
            return jsonify({'error': 'Sign in required'}), 401
        g.portal = portal
        return f(*args, **kwargs)
    return decorated


def admin_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        portal = get_current_portal()
        if portal is None:
            return jsonify({'error': 'Sign in required'}), 401
        try:
            require_admin(portal.session.current_identity())
        except AuthorizationError as exc:
            return jsonify({'error': str(exc)}), 403
        g.portal = portal
        return f(*args, **kwargs)
    return decorated
