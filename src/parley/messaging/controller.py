"""Message lifecycle controller.

Orchestrates send, read, delete and typing operations against the message
store and user directory.  Every public method validates fully before it
writes anything, and returns an :class:`~parley.messaging.events.Outcome`
whose ``events`` the caller dispatches after the write has committed.

One controller is bound to one ``AsyncSession`` (one request).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from parley.db.crud import conversations as conversations_crud
from parley.db.crud import messages as messages_crud
from parley.db.crud.users import get_user_by_id, get_users_by_ids
from parley.db.models import MESSAGE_TYPES
from parley.messaging.attachments import AttachmentStore, IncomingFile
from parley.messaging.errors import (
    ForbiddenError,
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)
from parley.messaging.events import (
    Outcome,
    message_created_events,
    message_deleted_event,
    messages_read_event,
    typing_indicator_event,
)
from parley.messaging.schemas import (
    ConversationPage,
    ConversationSummary,
    MessageView,
    Pagination,
    UserProfile,
)

logger = logging.getLogger(__name__)

MAX_CONTENT_LENGTH = 1000
DEFAULT_PAGE_SIZE = 50

_DELETE_DENIED = "Message not found or you are not authorized to delete this message"


class MessageController:
    """Send/read/delete operations for direct messages.

    Parameters
    ----------
    session:
        The request's database session.
    attachments:
        Store used to stage uploaded files.  ``None`` rejects any send
        that carries attachments.
    """

    def __init__(
        self,
        session: AsyncSession,
        attachments: AttachmentStore | None = None,
        max_content_length: int = MAX_CONTENT_LENGTH,
    ) -> None:
        self._session = session
        self._attachments = attachments
        self._max_content_length = max_content_length

    async def send_message(
        self,
        sender_id: str,
        receiver_id: str | None,
        content: str | None,
        attachments: Sequence[IncomingFile] = (),
        message_type: str | None = "text",
    ) -> Outcome[MessageView]:
        """Persist a new message and emit delivery events.

        ``message_type`` becomes ``"file"`` whenever attachments are
        present, whatever the caller asked for; the requested type is only
        checked when there are none.
        """
        if not receiver_id:
            raise ValidationError("Receiver ID is required")
        if receiver_id == sender_id:
            raise InvalidOperationError("Cannot send message to yourself")

        users = await get_users_by_ids(self._session, {sender_id, receiver_id})
        if receiver_id not in users:
            raise NotFoundError("Receiver not found")

        text = (content or "").strip()
        if not text:
            raise ValidationError("Message content is required")
        if len(text) > self._max_content_length:
            raise ValidationError(
                f"Message content cannot exceed {self._max_content_length} characters"
            )

        staged: list[dict] = []
        if attachments:
            if self._attachments is None:
                raise ValidationError("Attachments are not accepted")
            staged = await self._attachments.stage_all(list(attachments), sender_id)
            message_type = "file"
        else:
            message_type = message_type or "text"
            if message_type not in MESSAGE_TYPES:
                raise ValidationError(f"Invalid message type: {message_type}")

        try:
            message = await messages_crud.create_message(
                self._session,
                sender_id=sender_id,
                receiver_id=receiver_id,
                content=text,
                message_type=message_type,
                attachments=staged,
            )
        except Exception:
            if staged:
                await self._attachments.discard(staged)  # type: ignore[union-attr]
            raise

        logger.info("Message %s created: %s -> %s", message.id, sender_id, receiver_id)
        view = MessageView.build(message, users)
        return Outcome(view, message_created_events(view))

    async def get_conversation(
        self,
        self_id: str,
        peer_id: str,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Outcome[ConversationPage]:
        """Return one page of the conversation and mark the peer's messages read.

        Viewing is acknowledging: every unread message from *peer_id* to
        *self_id* transitions to read in one batch, and the peer receives
        a ``messages_read`` receipt listing them.
        """
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive integers")

        users = await get_users_by_ids(self._session, {self_id, peer_id})
        if peer_id not in users:
            raise NotFoundError("User not found")

        read_ids = await messages_crud.mark_conversation_read(self._session, self_id, peer_id)
        messages = await messages_crud.get_conversation_page(
            self._session, self_id, peer_id, offset=(page - 1) * limit, limit=limit
        )
        total = await messages_crud.count_conversation(self._session, self_id, peer_id)

        result = ConversationPage(
            messages=[MessageView.build(m, users) for m in messages],
            other_user=UserProfile.from_user(users[peer_id], peer_id),
            pagination=Pagination.compute(page, limit, total),
        )
        events = []
        if read_ids:
            logger.debug("%s read %d messages from %s", self_id, len(read_ids), peer_id)
            events.append(messages_read_event(self_id, peer_id, read_ids))
        return Outcome(result, events)

    async def list_conversations(self, self_id: str) -> Outcome[list[ConversationSummary]]:
        """One summary per peer, most recently active first."""
        rows = await conversations_crud.list_conversations(self._session, self_id)
        me = await get_user_by_id(self._session, self_id)
        return Outcome([ConversationSummary.from_row(row, me, self_id) for row in rows])

    async def mark_read(self, self_id: str, message_ids: object) -> Outcome[int]:
        """Mark specific received messages read. Ids that don't qualify are skipped."""
        if (
            not isinstance(message_ids, list)
            or not message_ids
            or not all(isinstance(i, int) and not isinstance(i, bool) for i in message_ids)
        ):
            raise ValidationError("Message IDs array is required")

        count = await messages_crud.mark_read(self._session, self_id, message_ids)
        logger.info("Marked %d messages as read for %s", count, self_id)
        return Outcome(count)

    async def delete_message(self, self_id: str, message_id: int) -> Outcome[MessageView]:
        """Hard-delete a message. Only its sender may do so."""
        message = await messages_crud.get_message_for_sender(self._session, message_id, self_id)
        if message is None:
            if await messages_crud.get_message_by_id(self._session, message_id) is not None:
                raise ForbiddenError(_DELETE_DENIED)
            raise NotFoundError(_DELETE_DENIED)

        users = await get_users_by_ids(self._session, {message.sender_id, message.receiver_id})
        view = MessageView.build(message, users)
        await messages_crud.delete_message(self._session, message_id)
        logger.info("Message %s deleted by %s", message_id, self_id)
        return Outcome(view, [message_deleted_event(message_id, self_id, message.receiver_id)])

    async def get_unread_count(self, self_id: str) -> Outcome[int]:
        return Outcome(await messages_crud.count_unread(self._session, self_id))

    async def send_typing_indicator(
        self,
        self_id: str,
        receiver_id: str | None,
        is_typing: bool,
        user_name: str | None = None,
    ) -> Outcome[None]:
        """Emit an ephemeral typing event. Nothing is persisted."""
        if not receiver_id:
            raise ValidationError("Receiver ID is required")
        if user_name is None:
            me = await get_user_by_id(self._session, self_id)
            user_name = me.name if me is not None else None
        return Outcome(
            None, [typing_indicator_event(self_id, user_name, receiver_id, bool(is_typing))]
        )
