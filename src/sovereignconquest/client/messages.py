"""Direct messages: inbox/sent listing, sending, replies and read-state."""

from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional

from sovereignconquest.client.errors import ApiError
from sovereignconquest.client.models import Message
from sovereignconquest.client.poller import NotificationPoller
from sovereignconquest.client.session import SessionManager
from sovereignconquest.client.transport import Transport


logger = logging.getLogger(__name__)

QUOTE_MARKER = "> "


class MessageError(ValueError):
    """Raised locally when an outgoing message is incomplete."""


@dataclass(frozen=True)
class OutgoingAttachment:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @classmethod
    def from_path(cls, path: Path) -> "OutgoingAttachment":
        path = Path(path)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(filename=path.name, content=path.read_bytes(), content_type=content_type)


@dataclass(frozen=True)
class ReplyDraft:
    to: str
    subject: str
    body: str
    related_message_id: int


def format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.strftime("%Y-%m-%d %H:%M:%S")


def reply_subject(subject: str) -> str:
    if not subject:
        return "Re:"
    if subject.lower().startswith("re:"):
        return subject
    return f"Re: {subject}"


def quote_body(message: Message) -> str:
    """Seed text for a reply: sender/time header plus the quoted original."""
    header = f"On {format_timestamp(message.created_at)}, {message.sender} wrote:"
    quoted = "\n".join(QUOTE_MARKER + line for line in message.body.split("\n"))
    return f"\n\n{header}\n{quoted}"


def _messages(data: Any) -> List[Message]:
    raw = data.get("messages") if isinstance(data, Mapping) else None
    if not isinstance(raw, list):
        return []
    return [Message.from_dict(item) for item in raw if isinstance(item, Mapping)]


class MessageThreadManager:
    """Drives the inbox/sent views and the reply workflow.

    At most one reply context is active; replying again replaces it.
    """

    def __init__(
        self,
        transport: Transport,
        session: SessionManager,
        poller: NotificationPoller,
    ) -> None:
        self._transport = transport
        self._session = session
        self._poller = poller

    @property
    def reply_context(self) -> Optional[Message]:
        return self._session.state.reply_to

    def set_reply_context(self, message: Optional[Message]) -> None:
        self._session.state.reply_to = message

    def cancel_reply(self) -> None:
        self.set_reply_context(None)

    def compose_reply(self, message: Message, draft_body: str = "") -> ReplyDraft:
        self.set_reply_context(message)
        return ReplyDraft(
            to=message.sender,
            subject=reply_subject(message.subject),
            body=draft_body + quote_body(message),
            related_message_id=message.id,
        )

    async def list_inbox(self) -> List[Message]:
        """Fetch the inbox, then acknowledge every unread message in one call.

        Returns the messages with their read state from before the
        acknowledgement; the cached inbox reflects it.
        """
        self._session.require_game()
        state = self._session.state
        epoch = state.epoch
        data = await self._transport.call("messages/inbox")
        if epoch != state.epoch:
            return []
        messages = _messages(data)
        state.inbox = list(messages)
        unread_ids = [m.id for m in messages if not m.is_read]
        if unread_ids:
            await self.mark_read(unread_ids)
        return messages

    async def list_sent(self) -> List[Message]:
        self._session.require_game()
        state = self._session.state
        epoch = state.epoch
        data = await self._transport.call("messages/sent")
        if epoch != state.epoch:
            return []
        state.sent = _messages(data)
        return state.sent

    async def mark_read(self, ids: Iterable[int]) -> List[int]:
        """Mark messages read. Ids already read locally are skipped.

        Returns the ids actually sent to the server.
        """
        self._session.require_game()
        state = self._session.state
        known = {m.id: m for m in state.inbox}
        pending: List[int] = []
        for message_id in ids:
            message = known.get(message_id)
            if message is not None and message.is_read:
                continue
            if message_id not in pending:
                pending.append(message_id)
        if not pending:
            return []

        epoch = state.epoch
        await self._transport.call("messages/mark_read", "POST", {"message_ids": pending})
        if epoch != state.epoch:
            return pending
        now = datetime.now().astimezone()
        marked = set(pending)
        state.inbox = [
            _with_read_at(m, now) if m.id in marked and not m.is_read else m
            for m in state.inbox
        ]
        await self._poller.refresh()
        return pending

    async def send(
        self,
        to: str,
        subject: str,
        body: str,
        attachment: Optional[OutgoingAttachment] = None,
        related_id: Optional[int] = None,
    ) -> Any:
        self._session.require_game()
        to = (to or "").strip()
        subject = (subject or "").strip()
        body = (body or "").strip()
        if not to or not body:
            raise MessageError("To and Body are required.")

        if related_id is None and self.reply_context is not None:
            related_id = self.reply_context.id

        if attachment is not None and attachment.content:
            fields = {"to_username": to, "subject": subject, "body": body}
            if related_id is not None:
                fields["related_message_id"] = str(related_id)
            files = [
                (
                    "attachment",
                    (attachment.filename, attachment.content, attachment.content_type),
                )
            ]
            result = await self._transport.call(
                "messages/send", "POST", data=fields, files=files
            )
        else:
            payload: dict = {"to_username": to, "subject": subject, "body": body}
            if related_id is not None:
                payload["related_message_id"] = int(related_id)
            result = await self._transport.call("messages/send", "POST", payload)

        logger.info("messages.sent to=%s related=%s", to, related_id)
        self.cancel_reply()
        try:
            await self.list_sent()
        except ApiError:
            # The message is delivered; a 401 here has already torn down.
            logger.debug("messages.sent_refresh_failed", exc_info=True)
        await self._poller.refresh()
        return result

    async def delete(self, message_id: int) -> None:
        self._session.require_game()
        await self._transport.call("messages/delete", "POST", {"message_id": message_id})
        state = self._session.state
        state.inbox = [m for m in state.inbox if m.id != message_id]
        state.sent = [m for m in state.sent if m.id != message_id]
        if state.reply_to is not None and state.reply_to.id == message_id:
            state.reply_to = None
        await self._poller.refresh()

    async def report(self, message_id: int) -> None:
        self._session.require_game()
        await self._transport.call("messages/report", "POST", {"message_id": message_id})
        logger.info("messages.reported id=%s", message_id)

    async def download_attachment(self, attachment_id: int) -> bytes:
        self._session.require_game()
        return await self._transport.download(f"messages/attachments/{attachment_id}")


def _with_read_at(message: Message, when: datetime) -> Message:
    return replace(message, read_at=when)
