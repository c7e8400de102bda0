# kidneycare/routers/chatbot.py
from fastapi import APIRouter, Depends

from .. import schemas, security
from ..exceptions import Internal
from ..identity import Identity
from ..services.chatbot import ChatbotService, CompletionError, get_chatbot_service

router = APIRouter(
    tags=["Chatbot"],
)

@router.post("/chatbot", response_model=schemas.ChatbotResponse)
def ask_chatbot(
    body: schemas.ChatbotRequest,
    identity: Identity = Depends(security.get_current_identity),
    chatbot: ChatbotService = Depends(get_chatbot_service),
):
    """Relay the conversation to the completion service and return its answer."""
    history = [turn.model_dump() for turn in body.history]
    try:
        answer = chatbot.reply(history)
    except CompletionError:
        raise Internal("Error generating response")
    return {"response": answer}
