"""
Audit trail helper used by the API handlers to record user actions.

Logging an activity is best effort: a failure is logged and rolled back but
never breaks the request that triggered it.
"""
import logging

from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import ActivityLog

logger = logging.getLogger(__name__)


class ActivityActions:
    TRANSACTION_ADDED = 'transaction_added'
    TRANSACTION_UPDATED = 'transaction_updated'
    TRANSACTION_DELETED = 'transaction_deleted'
    INVESTMENT_TERMINATED = 'investment_terminated'
    BUDGET_SET = 'budget_set'
    BUDGET_UPDATED = 'budget_updated'
    BUDGET_DELETED = 'budget_deleted'
    CATEGORY_ADDED = 'category_added'
    INVESTMENT_ADDED = 'investment_added'
    INVESTMENT_UPDATED = 'investment_updated'
    INVESTMENT_DELETED = 'investment_deleted'
    PROFILE_UPDATED = 'profile_updated'
    LOGIN = 'login'
    LOGOUT = 'logout'


def log_activity(user_id, action, description, icon='info', metadata=None):
    """Create an activity log entry for ``user_id``; returns the row or None on failure"""
    try:
        entry = ActivityLog(
            user_id=user_id,
            action=action,
            description=description,
            icon=icon or 'info',
            details=metadata,
        )
        db.session.add(entry)
        db.session.commit()
        return entry
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error('Failed to log activity %s for user %s: %s', action, user_id, e)
        return None
