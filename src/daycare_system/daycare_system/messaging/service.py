from __future__ import annotations

from typing import Optional, Sequence

from ..common.app_logger import get_logger
from ..common.validators import optional_text, require_non_empty
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import STAFF_ROLES, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..profiles.repository import ProfileRepository
from .model import Message
from .repository import MessageRepository

log = get_logger("messaging")


class MessageService:
    """Use case: inbox messages between families and the team."""

    def __init__(self, messages: MessageRepository, profiles: ProfileRepository, *, parent_child_ids=None):
        self._messages = messages
        self._profiles = profiles
        # callable(parent_id) -> ids of the children linked to that parent
        self._parent_child_ids = parent_child_ids

    def send(
        self,
        *,
        actor_id: str,
        actor_role: Role,
        recipient_id: str,
        content: str,
        subject: str = "",
        child_id: Optional[str] = None,
    ) -> str:
        content = require_non_empty(content, "Message")
        recipient = self._profiles.get_by_id(recipient_id)
        if not recipient or not recipient.is_active:
            raise NotFoundError("Destinataire introuvable")
        if recipient.profile_id == actor_id:
            raise ValidationError("Vous ne pouvez pas vous écrire à vous-même")
        if actor_role == Role.PARENT and recipient.role == Role.PARENT:
            raise AuthorizationError("Les parents ne peuvent écrire qu'à l'équipe")
        child_id = child_id or None
        if child_id and actor_role == Role.PARENT:
            own = self._parent_child_ids(actor_id) if self._parent_child_ids is not None else ()
            if child_id not in own:
                raise AuthorizationError("Cet enfant n'est pas rattaché à votre compte")

        message_id = self._messages.create_message(
            sender_id=actor_id,
            recipient_id=recipient_id,
            content=content,
            subject=optional_text(subject),
            child_id=child_id,
        )
        log.info("message %s from %s to %s", message_id, actor_id, recipient_id)
        return message_id

    def broadcast(self, *, actor_id: str, actor_role: Role, recipient_role: Role, subject: str, content: str) -> int:
        if actor_role not in STAFF_ROLES:
            raise AuthorizationError("Action réservée à l'administration")
        content = require_non_empty(content, "Message")
        subject = optional_text(subject)

        sent = 0
        for profile in self._profiles.list_by_role(recipient_role, active_only=True):
            if profile.profile_id == actor_id:
                continue
            self._messages.create_message(
                sender_id=actor_id,
                recipient_id=profile.profile_id,
                content=content,
                subject=subject,
            )
            sent += 1
        log.info("broadcast to %s: %d messages", recipient_role.value, sent)
        return sent

    def inbox(self, *, actor_id: str, limit: int = DEFAULT_LIST_LIMIT) -> Sequence[Message]:
        return self._messages.list_for_recipient(actor_id, limit)

    def sent(self, *, actor_id: str, limit: int = DEFAULT_LIST_LIMIT) -> Sequence[Message]:
        return self._messages.list_sent(actor_id, limit)

    def mark_read(self, *, actor_id: str, message_id: str) -> None:
        message = self._messages.get_by_id(message_id)
        if not message:
            raise NotFoundError("Message introuvable")
        if message.recipient_id != actor_id:
            raise AuthorizationError("Seul le destinataire peut marquer ce message comme lu")
        if not message.is_read:
            self._messages.mark_read(message_id)

    def unread_count(self, *, actor_id: str) -> int:
        return self._messages.count_unread(actor_id)
