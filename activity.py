from flask import Blueprint, jsonify, request

from auth import current_user, login_required
from errors import BadRequestError
from extensions import db
from models import ActivityLog
from validations import ActivityLogForm, get_json_body, parse_json_form

activity_bp = Blueprint('activity', __name__, url_prefix='/api/activity-logs')


@activity_bp.route('')
@login_required
def list_logs():
    user = current_user()
    limit = max(request.args.get('limit', 20, type=int), 1)
    logs = (ActivityLog.query.filter_by(user_id=user.id)
            .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
            .limit(limit).all())
    return jsonify({'logs': [entry.to_dict() for entry in logs]})


@activity_bp.route('', methods=['POST'])
@login_required
def create_log():
    user = current_user()
    payload = get_json_body()
    form = parse_json_form(ActivityLogForm, payload, detailed=False)

    entry = ActivityLog(
        user_id=user.id,
        action=form.action.data,
        description=form.description.data,
        icon=form.icon.data or 'info',
        details=payload.get('metadata') or None,
    )
    db.session.add(entry)
    db.session.commit()
    return jsonify({'log': entry.to_dict()}), 201


@activity_bp.route('', methods=['DELETE'])
@login_required
def clear_logs():
    user = current_user()
    ActivityLog.query.filter_by(user_id=user.id).delete(synchronize_session=False)
    db.session.commit()
    return jsonify({'message': 'Activity logs cleared'})


@activity_bp.route('/dismiss', methods=['POST'])
@login_required
def dismiss_logs():
    """Hide entries from the notification bell without deleting them"""
    user = current_user()
    ids = get_json_body().get('ids')
    if not isinstance(ids, list) or not ids:
        raise BadRequestError('IDs array is required')

    (ActivityLog.query
     .filter(ActivityLog.user_id == user.id, ActivityLog.id.in_(ids))
     .update({'is_dismissed': True}, synchronize_session=False))
    db.session.commit()
    return jsonify({'message': 'Notifications dismissed'})
