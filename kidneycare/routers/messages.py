# kidneycare/routers/messages.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from .. import crud, schemas, security, models
from ..database import get_db
from ..exceptions import Conflict, Forbidden, NotFound
from ..identity import Identity, visible_roles
from ..services.conversations import Counterpart, MessageView, UNKNOWN_NAME, build_conversations

import logging

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Messages"],
    responses={401: {"description": "Unauthorized"}},
)


def _display_name(user: models.User) -> str:
    if user is None:
        return UNKNOWN_NAME
    return user.name or UNKNOWN_NAME


def _to_view(message: models.Message) -> MessageView:
    return MessageView(
        id=message.id,
        sender=_display_name(message.sender),
        sender_id=message.sender_id,
        recipient=_display_name(message.recipient),
        recipient_id=message.recipient_id,
        content=message.content or "",
        timestamp=message.timestamp,
    )


@router.post("/messages", response_model=schemas.MessageResponse, status_code=status.HTTP_201_CREATED)
def send_message(
    body: schemas.MessageCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.get_current_identity),
):
    recipient = crud.get_user(db, user_id=body.to)
    if recipient is None:
        raise NotFound("Recipient")
    if recipient.id == identity.user_id:
        raise Conflict("Cannot send a message to yourself")
    if recipient.role not in visible_roles(identity.role):
        raise Forbidden(f"{identity.role.value.capitalize()} users cannot message {recipient.role.value} users")

    message = crud.create_message(db, sender_id=identity.user_id, recipient_id=recipient.id, content=body.content)
    logger.info(f"Message {message.id} sent from user {identity.user_id} to user {recipient.id}")
    return _to_view(message)


@router.get("/messages", response_model=List[schemas.ConversationResponse])
def list_conversations(
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.get_current_identity),
):
    """Conversations of the caller, newest first, including empty ones."""
    messages = [_to_view(m) for m in crud.get_messages_for_user(db, identity.user_id)]
    eligible = [
        Counterpart(id=u.id, name=u.name or UNKNOWN_NAME, role=u.role)
        for u in crud.get_users_by_roles(db, visible_roles(identity.role))
    ]
    return build_conversations(messages, identity.user_id, eligible)
