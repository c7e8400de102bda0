"""KidneyCare assistant backed by the OpenAI chat completions API."""
import logging
from typing import List, Optional, Sequence

from openai import OpenAI, OpenAIError

from ..config import Settings, get_settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are KidneyCare AI assistant, an expert in kidney health and patient care. You always respond with accurate, empathetic, and user-friendly information. Here are some sample questions and answers you should be aware of:
1. Q: What should I do if I feel swollen?
   A: Swelling can be a sign of fluid retention, which is common in kidney disease. Contact your healthcare provider if you notice sudden or severe swelling.
2. Q: How can I manage my fluid intake?
   A: Your recommended daily fluid limit is 2 liters. Use smaller cups, suck on ice chips, and spread your intake throughout the day.
3. Q: What foods are high in potassium?
   A: Foods high in potassium include bananas, oranges, potatoes, tomatoes, and avocados. Consider low-potassium options like apples and berries.
4. Q: What are the symptoms of high phosphorus?
   A: Symptoms include itchy skin, bone pain, and muscle cramps. Avoid dairy products, nuts, and processed foods to manage phosphorus levels.
5. Q: When should I contact my doctor?
   A: Contact your doctor for symptoms like shortness of breath, chest pain, severe vomiting, fever above 101°F, or severe swelling.
6. Q: How do I prepare for my next dialysis session?
   A: Take your medications, follow dietary restrictions, and ensure comfortable clothing with access to your dialysis site.
7. Q: What are common side effects of Tacrolimus?
   A: Common side effects include tremors, headache, high blood pressure, and kidney problems. Always consult your healthcare provider.
8. Q: How can I reduce sodium in my diet?
   A: Use fresh ingredients, avoid processed foods, and read food labels for sodium content below 140mg per serving.
Always provide reliable, accurate information, and avoid giving medical advice that should come from a healthcare provider."""


class CompletionError(Exception):
    """The completion service failed or returned nothing usable."""


class ChatbotService:
    def __init__(self, settings: Optional[Settings] = None, client: Optional[OpenAI] = None):
        self.settings = settings or get_settings()
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=self.settings.openai_api_key or None)
        return self._client

    def build_messages(self, history: Sequence[dict]) -> List[dict]:
        """System prompt followed by the most recent turns of ``history``."""
        limit = self.settings.chatbot_history_limit
        recent = list(history)[-limit:]
        return [{"role": "system", "content": SYSTEM_PROMPT}] + [
            {"role": turn["role"], "content": turn["content"]} for turn in recent
        ]

    def reply(self, history: Sequence[dict]) -> str:
        if self._client is None and not self.settings.chatbot_enabled:
            logger.warning("Chatbot request refused: OPENAI_API_KEY is not set")
            raise CompletionError("Chatbot is not configured")
        messages = self.build_messages(history)
        if len(messages) - 1 < len(history):
            logger.debug(f"Chat history truncated from {len(history)} to {len(messages) - 1} turns")
        try:
            response = self.client.chat.completions.create(
                model=self.settings.chatbot_model,
                messages=messages,
                max_tokens=self.settings.chatbot_max_tokens,
                temperature=self.settings.chatbot_temperature,
            )
        except OpenAIError as e:
            logger.error(f"Completion request failed: {e}")
            raise CompletionError(str(e)) from e

        content = response.choices[0].message.content if response.choices else None
        if content is None:
            raise CompletionError("Completion returned no content")
        return content


def get_chatbot_service() -> ChatbotService:
    return ChatbotService()
