from flask import Blueprint, current_app, jsonify

bp = Blueprint('main', __name__)


@bp.route('/health')
def health():
    return jsonify({
        'status': 'ok',
        'sessions': len(current_app.extensions['portal_registry']),
    }), 200
