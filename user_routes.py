"""
Profile settings, password change and account deletion for the logged-in user.
"""
import logging

from flask import Blueprint, jsonify, make_response

from activity_logger import ActivityActions, log_activity
from auth import check_password, clear_token_cookie, current_user, hash_password, login_required
from errors import BadRequestError
from extensions import db
from models import User
from validations import ChangePasswordForm, ProfileForm, get_json_body, parse_json_form

logger = logging.getLogger(__name__)

user_bp = Blueprint('user', __name__, url_prefix='/api/user')


@user_bp.route('/profile', methods=['PUT'])
@login_required
def update_profile():
    user = current_user()
    payload = get_json_body()
    form = parse_json_form(ProfileForm, payload, detailed=False)

    if form.email.data:
        email = form.email.data.strip().lower()
        if User.query.filter(User.email == email, User.id != user.id).first():
            raise BadRequestError('Email already in use')
        user.email = email
    if form.fullName.data:
        user.full_name = form.fullName.data.strip()
    # Unchecked BooleanFields read as False, so only touch keys the client sent
    if 'enableBudgetAlerts' in payload:
        user.enable_budget_alerts = form.enableBudgetAlerts.data
    if 'monthlyBudget' in payload:
        user.monthly_budget = form.monthlyBudget.data
    db.session.commit()

    log_activity(user.id, ActivityActions.PROFILE_UPDATED, 'Updated profile settings', 'success',
                 {'fields': sorted(payload)})
    return jsonify({'user': user.to_dict()})


@user_bp.route('/profile', methods=['DELETE'])
@login_required
def delete_account():
    user = current_user()
    user_id = user.id
    db.session.delete(user)
    db.session.commit()
    logger.info('Account %s deleted', user_id)

    response = make_response(jsonify({'message': 'Account deleted successfully'}))
    return clear_token_cookie(response)


@user_bp.route('/password', methods=['PUT'])
@login_required
def change_password():
    user = current_user()
    form = parse_json_form(ChangePasswordForm, detailed=False)
    if not check_password(form.currentPassword.data, user.password_hash):
        raise BadRequestError('Incorrect current password')

    user.password_hash = hash_password(form.newPassword.data)
    db.session.commit()
    return jsonify({'message': 'Password updated successfully'})
