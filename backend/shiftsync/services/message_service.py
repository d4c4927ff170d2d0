# Overview: Service-layer operations for messaging; encapsulates business logic and database work.

"""
Direct messages and announcements.

- receiver_id NULL = announcement to every user; needs send_mass_messages
- a user's inbox is everything they sent, received, or that was broadcast
- mark-read: the receiver for direct messages, any user for announcements
"""

from __future__ import annotations

from ..extensions import db
from ..errors import Forbidden, NotFound, ValidationError
from ..models import Message, User
from ..permissions import Permission
from ..validation import parse_int
from . import permission_service
from shiftsync.time_utils import utcnow


MAX_CONTENT_LENGTH = 5000


def get_message(message_id: int) -> Message:
    message = db.session.get(Message, message_id)
    if message is None:
        raise NotFound(f"Message {message_id} not found")
    return message


def send_message(sender, *, content, receiver_id=None) -> Message:
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("content is required")
    content = content.strip()
    if len(content) > MAX_CONTENT_LENGTH:
        raise ValidationError(f"content exceeds max length {MAX_CONTENT_LENGTH}")

    if receiver_id is None:
        permission_service.require_permission(sender, Permission.SEND_MASS_MESSAGES)
    else:
        receiver_id = parse_int(receiver_id, "receiver_id")
        if db.session.get(User, receiver_id) is None:
            raise NotFound(f"User {receiver_id} not found")

    message = Message(
        sender_id=sender.id,
        receiver_id=receiver_id,
        content=content,
        is_read=False,
        sent_at=utcnow(),
    )
    db.session.add(message)
    db.session.commit()
    return message


def _visible_to(user_id: int):
    return db.or_(
        Message.sender_id == user_id,
        Message.receiver_id == user_id,
        Message.receiver_id.is_(None),
    )


def list_messages(user) -> list[Message]:
    return (
        db.session.query(Message)
        .filter(_visible_to(user.id))
        .order_by(Message.sent_at.desc(), Message.id.desc())
        .all()
    )


def list_unread(user) -> list[Message]:
    return (
        db.session.query(Message)
        .filter(
            db.or_(Message.receiver_id == user.id, Message.receiver_id.is_(None)),
            Message.sender_id != user.id,
            Message.is_read.is_(False),
        )
        .order_by(Message.sent_at.desc(), Message.id.desc())
        .all()
    )


def mark_read(user, message_id: int) -> Message:
    message = get_message(message_id)
    if message.receiver_id is not None and message.receiver_id != user.id:
        raise Forbidden("Only the receiver can mark this message as read")

    message.is_read = True
    db.session.commit()
    return message
