from datetime import datetime

from flask import Blueprint, abort, g, jsonify, request

from portal import queries
from portal.decorators import admin_required, auth_required
from portal.forms import UserForm
from portal.models import Gender, coerce_choice
from portal.permissions import require_admin

bp = Blueprint('records', __name__, url_prefix='/api')


def serialize(record):
    row = record.to_row()
    for key, value in row.items():
        if isinstance(value, datetime):
            row[key] = value.isoformat()
    return row


def _store(kind):
    store = g.portal.stores.get(kind)
    if store is None:
        abort(404)
    return store


def _payload():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400)
    return data


# ---------------------------------------------------------------------------
# Settings and content pages
# ---------------------------------------------------------------------------

@bp.route('/settings', methods=['GET'])
@auth_required
def get_settings():
    return jsonify(g.portal.settings.get_settings().to_dict())


@bp.route('/settings', methods=['PUT'])
@auth_required
def update_settings():
    data = _payload()
    partial = {k: data[k] for k in ('chapter_name', 'logo_url') if k in data}
    settings = g.portal.settings.update_settings(partial)
    return jsonify(settings.to_dict())


@bp.route('/settings/logo', methods=['POST'])
@admin_required
def upload_logo():
    file = request.files.get('logo')
    if file is None or not file.filename:
        return jsonify({'error': 'No logo file uploaded'}), 400
    settings = g.portal.settings.upload_logo(file.filename, file.read(), file.mimetype)
    return jsonify(settings.to_dict())


@bp.route('/pages/<page_id>', methods=['PUT'])
@auth_required
def upsert_page(page_id):
    page = g.portal.content_pages.upsert(page_id, _payload())
    return jsonify(serialize(page))


@bp.route('/dashboard')
@auth_required
def dashboard():
    members = g.portal.members.records
    return jsonify({
        'stats': queries.dashboard_stats(g.portal),
        'members_by_batch': queries.members_by_batch(members),
        'members_by_gender': queries.members_by_gender(members),
        'batches': queries.unique_batches(members),
    })


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

@bp.route('/users', methods=['POST'])
@admin_required
def create_user():
    form = UserForm()
    if not form.validate_on_submit():
        return jsonify({'error': 'Invalid user form', 'fields': form.errors}), 400
    data = _payload()
    attributes = {
        'name': form.name.data,
        'email': form.email.data,
        'role': form.role.data,
        'status': form.status.data,
    }
    if data.get('id'):
        attributes['id'] = data['id']
    profile = g.portal.users.add(attributes, password=form.password.data or None)
    return jsonify(serialize(profile)), 201


# ---------------------------------------------------------------------------
# Generic collections
# ---------------------------------------------------------------------------

@bp.route('/<kind>', methods=['GET'])
@auth_required
def list_records(kind):
    store = _store(kind)
    if kind == 'users':
        require_admin(g.portal.session.current_identity())
    records = store.records
    if kind == 'members' and request.args:
        gender = request.args.get('gender')
        records = queries.filter_members(
            records,
            gender=coerce_choice('gender', gender, Gender) if gender else None,
            batch=request.args.get('batch'),
            search=request.args.get('search', ''),
        )
    return jsonify([serialize(r) for r in records])


@bp.route('/<kind>', methods=['POST'])
@auth_required
def create_record(kind):
    record = _store(kind).add(_payload())
    return jsonify(serialize(record)), 201


@bp.route('/<kind>/<record_id>', methods=['PATCH'])
@auth_required
def update_record(kind, record_id):
    record = _store(kind).update(record_id, _payload())
    return jsonify(serialize(record))


@bp.route('/<kind>/<record_id>', methods=['DELETE'])
@auth_required
def delete_record(kind, record_id):
    _store(kind).delete(record_id)
    return jsonify({'success': True})
