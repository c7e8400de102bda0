"""Conversation assembly for the messages inbox.

Turns the flat list of direct messages a user took part in into one
conversation per counterpart, then adds an empty conversation for every
user the caller may message but has not talked to yet. Pure functions
only: callers fetch the rows and serialize the result.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from ..models import UserRole
from ..utils import as_utc, utcnow

UNKNOWN_NAME = "Unknown"


@dataclass(frozen=True)
class MessageView:
    id: int
    sender: str
    sender_id: int
    recipient: str
    recipient_id: int
    content: str
    timestamp: datetime


@dataclass(frozen=True)
class Counterpart:
    id: int
    name: str
    role: UserRole


@dataclass
class Conversation:
    id: str
    participant: str
    participant_id: int
    last_message: str
    timestamp: datetime
    messages: List[MessageView] = field(default_factory=list)
    participant_role: Optional[UserRole] = None
    role: Optional[str] = None


def conversation_id(current_user_id: int, counterpart_id: int) -> str:
    return f"{current_user_id}-{counterpart_id}"


def group_messages(messages: Iterable[MessageView], current_user_id: int) -> Dict[int, Conversation]:
    """Group messages by counterpart, oldest first.

    The preview is the last message of the sorted thread, so on equal
    timestamps the higher id wins.
    """
    conversations: Dict[int, Conversation] = {}

    for message in messages:
        sent_by_me = message.sender_id == current_user_id
        other_id = message.recipient_id if sent_by_me else message.sender_id
        if other_id == current_user_id:
            # note to self
            continue

        conversation = conversations.get(other_id)
        if conversation is None:
            other_name = (message.recipient if sent_by_me else message.sender) or UNKNOWN_NAME
            conversation = conversations[other_id] = Conversation(
                id=conversation_id(current_user_id, other_id),
                participant=other_name,
                participant_id=other_id,
                last_message="",
                timestamp=as_utc(message.timestamp),
            )
        conversation.messages.append(message)

    for conversation in conversations.values():
        conversation.messages.sort(key=lambda m: (as_utc(m.timestamp), m.id))
        latest = conversation.messages[-1]
        conversation.last_message = latest.content or ""
        conversation.timestamp = as_utc(latest.timestamp)
        conversation.role = "recipient" if latest.sender_id == current_user_id else "sender"

    return conversations


def build_conversations(
    messages: Iterable[MessageView],
    current_user_id: int,
    eligible: Iterable[Counterpart],
    now: Optional[datetime] = None,
) -> List[Conversation]:
    """Assemble the conversation list shown to ``current_user_id``.

    ``eligible`` holds the users the caller may message (already filtered by
    role visibility). Every one of them without history gets an empty
    conversation stamped with ``now``. The result is sorted newest first,
    then by participant name and id.
    """
    now = as_utc(now) if now is not None else utcnow()
    conversations = group_messages(messages, current_user_id)

    for user in eligible:
        if user.id == current_user_id:
            continue
        existing = conversations.get(user.id)
        if existing is not None:
            existing.participant_role = user.role
            continue
        conversations[user.id] = Conversation(
            id=conversation_id(current_user_id, user.id),
            participant=user.name or UNKNOWN_NAME,
            participant_id=user.id,
            participant_role=user.role,
            last_message="",
            timestamp=now,
        )

    return sorted(
        conversations.values(),
        key=lambda c: (-c.timestamp.timestamp(), c.participant, c.participant_id),
    )
