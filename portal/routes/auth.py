from flask import Blueprint, current_app, jsonify, session

from portal.decorators import SESSION_KEY, auth_required, get_current_portal
from portal.errors import AuthenticationError, IdentityProviderError, InactiveAccountError
from portal.forms import LoginForm

bp = Blueprint('auth', __name__, url_prefix='/auth')


def _identity_payload(portal):
    identity = portal.session.current_identity()
    return {
        'user': identity.to_dict() if identity else None,
        'is_loading': portal.session.is_loading,
    }


@bp.route('/login', methods=['POST'])
def login():
    portal = get_current_portal()
    if portal is not None:
        return jsonify(_identity_payload(portal))

    form = LoginForm()
    if not form.validate_on_submit():
        return jsonify({'error': 'Invalid login form', 'fields': form.errors}), 400

    registry = current_app.extensions['portal_registry']
    try:
        portal, session_cookie = registry.sign_in(form.email.data, form.password.data)
    except (AuthenticationError, InactiveAccountError) as exc:
        return jsonify({'error': str(exc)}), 401
    except IdentityProviderError as exc:
        current_app.logger.warning('Sign-in unavailable: %s', exc)
        return jsonify({'error': 'Sign-in is temporarily unavailable, please try again.'}), 503

    session[SESSION_KEY] = session_cookie
    return jsonify(_identity_payload(portal))


@bp.route('/logout', methods=['POST'])
@auth_required
def logout():
    registry = current_app.extensions['portal_registry']
    registry.sign_out(session.pop(SESSION_KEY, None))
    return jsonify({'success': True})


@bp.route('/me')
@auth_required
def me():
    return jsonify(_identity_payload(get_current_portal()))
