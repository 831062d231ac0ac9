from marketplace.extensions import db
from marketplace.models import AuditLog
from flask import has_request_context, request
import logging
import json

logger = logging.getLogger(__name__)
major_logger = logging.getLogger('major_events')

MAJOR_ACTION_PREFIXES = (
    'LOGIN',
    'REGISTER',
    'ORDER_',
    'PAYMENT_',
    'PASSWORD_',
    'USER_DELETE',
)


def _should_log_major(action: str) -> bool:
    if not action:
        return False
    return action.startswith(MAJOR_ACTION_PREFIXES)


def _actor_role(actor):
    if actor is None:
        return 'ANONYMOUS'
    return getattr(actor.role, 'value', str(actor.role)).upper()


def log_audit(
        actor=None,
        action='',
        target_type=None,
        target_id=None,
        payload=None,
        actor_role=None):
    actor_id = getattr(actor, 'id', None)
    actor_role = actor_role or _actor_role(actor)
    path = method = ip = user_agent = None
    if has_request_context():
        path = request.path
        method = request.method
        ip = request.remote_addr
        user_agent = request.headers.get('User-Agent')

    try:
        audit = AuditLog(
            actor_id=actor_id,
            actor_role=actor_role,
            action=action,
            target_type=target_type,
            target_id=target_id,
            ip=ip,
            user_agent=user_agent
        )
        if payload:
            audit.set_payload(payload)

        db.session.add(audit)
        db.session.commit()
    except Exception as e:
        logger.error(f"Failed to log audit: {e}", exc_info=True)
        db.session.rollback()
        return

    payload_brief = None
    if payload is not None:
        payload_brief = json.dumps(
            payload, ensure_ascii=False, separators=(',', ':'), default=str)
        if len(payload_brief) > 600:
            payload_brief = payload_brief[:600] + '...'

    logger.info(
        "AUDIT action=%s actor_role=%s actor_id=%s target_type=%s "
        "target_id=%s method=%s path=%s payload=%s",
        action,
        actor_role,
        actor_id,
        target_type,
        target_id,
        method,
        path,
        payload_brief,
    )

    if _should_log_major(action):
        major_logger.info(
            "action=%s actor_role=%s actor_id=%s target_type=%s "
            "target_id=%s method=%s path=%s payload=%s",
            action,
            actor_role,
            actor_id,
            target_type,
            target_id,
            method,
            path,
            payload_brief,
        )
