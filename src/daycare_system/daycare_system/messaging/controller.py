from __future__ import annotations

from flask import Flask

from ..common.web import current_actor, json_body, login_required, ok, roles_required
from ..container import Container
from ..core.enums import STAFF_ROLES, Role
from ..core.exceptions import ValidationError
from .model import Message


def message_json(m: Message) -> dict:
    return {
        "id": m.message_id,
        "sender_id": m.sender_id,
        "recipient_id": m.recipient_id,
        "child_id": m.child_id,
        "subject": m.subject,
        "content": m.content,
        "is_read": m.is_read,
        "created_at": m.created_at.isoformat() if m.created_at else None,
    }


def register(app: Flask, container: Container) -> None:
    @app.route("/api/messages", endpoint="messages_inbox")
    @login_required
    def messages_inbox():
        actor = current_actor()
        messages = container.message_service.inbox(actor_id=actor.profile_id)
        return ok(
            messages=[message_json(m) for m in messages],
            unread=container.message_service.unread_count(actor_id=actor.profile_id),
        )

    @app.route("/api/messages/sent", endpoint="messages_sent")
    @login_required
    def messages_sent():
        messages = container.message_service.sent(actor_id=current_actor().profile_id)
        return ok(messages=[message_json(m) for m in messages])

    @app.route("/api/messages", methods=["POST"], endpoint="messages_send")
    @login_required
    def messages_send():
        actor = current_actor()
        data = json_body()
        message_id = container.message_service.send(
            actor_id=actor.profile_id,
            actor_role=actor.role,
            recipient_id=data.get("recipient_id", ""),
            content=data.get("content", ""),
            subject=data.get("subject", ""),
            child_id=data.get("child_id"),
        )
        return ok(id=message_id), 201

    @app.route("/api/messages/<message_id>/read", methods=["POST"], endpoint="messages_read")
    @login_required
    def messages_read(message_id: str):
        container.message_service.mark_read(actor_id=current_actor().profile_id, message_id=message_id)
        return ok()

    @app.route("/api/messages/broadcast", methods=["POST"], endpoint="messages_broadcast")
    @roles_required(*STAFF_ROLES)
    def messages_broadcast():
        actor = current_actor()
        data = json_body()
        try:
            recipient_role = Role(data.get("recipient_role", Role.PARENT.value))
        except ValueError:
            raise ValidationError("Rôle destinataire invalide")
        sent = container.message_service.broadcast(
            actor_id=actor.profile_id,
            actor_role=actor.role,
            recipient_role=recipient_role,
            subject=data.get("subject", ""),
            content=data.get("content", ""),
        )
        return ok(sent=sent)
