from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from ads_ai.errors import InvalidRequestError, PersistenceError
from ads_ai.models import ChatState
from ads_ai.providers.base import ChatTurn, TextProvider
from ads_ai.storage import SupabaseStore

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = """Ти - асистент для створення рекламних креативів. Твої відповіді мають бути:

1. Чистим текстом без markdown форматування (БЕЗ **, ##, ###, _, тощо)
2. Структурованими та легко читаними
3. З використанням простих розділових знаків (-, •, цифри) для списків
4. З порожніми рядками для розділення секцій
5. З emoji лише там де це доречно (✓, ✗, ☑)

Приклад правильного форматування:

Питання користувача:
Як згенерувати банер?

Правильна відповідь:
Для генерації банера потрібно:

1. Обрати проект зі списку
2. Вибрати цільову аудиторію
3. Встановити розмір креативу
4. Натиснути кнопку "Генерувати"

Додаткові можливості:
- Завантаження логотипу
- Додавання фото людини або товару
- Вибір шаблону фону

НЕПРАВИЛЬНО (не використовуй таке форматування):
**Для генерації** банера потрібно:
### Крок 1: **Обрати** проект
**Вибрати** аудиторію

Завжди пиши чистим текстом без зайвого форматування!"""

URL_RE = re.compile(r"https?://[^\s]+")

CONFIRM_URL_TEMPLATE = (
    "Бачу, що ви надіслали посилання на сайт {url}. "
    "Хочете створити новий проект та провести аналіз цього сайту?"
)
START_ANALYSIS_TEMPLATE = "Починаю аналіз сайту {url}. Це може зайняти до хвилини."

AFFIRMATIVE_ANSWERS = frozenset(
    {"так", "да", "yes", "y", "ok", "ок", "okay", "sure", "давай", "давайте", "звісно", "конечно", "авжеж", "ага"}
)

ACTION_ANALYZE_URL = "analyze_url"

_MARKDOWN_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"```[\s\S]*?```"), ""),
    (re.compile(r"\|.*\|"), ""),
    (re.compile(r"[:|\-]{3,}"), ""),
    (re.compile(r"\*\*(.+?)\*\*"), r"\1"),
    (re.compile(r"\*(.+?)\*"), r"\1"),
    (re.compile(r"_(.+?)_"), r"\1"),
    (re.compile(r"^#{1,6}\s+", re.MULTILINE), ""),
    (re.compile(r"`(.+?)`"), r"\1"),
    (re.compile(r"\[([^\]]+)\]\([^)]+\)"), r"\1"),
    (re.compile(r"\n{3,}"), "\n\n"),
]


def clean_markdown(text: str) -> str:
    """Strip markdown the model emits despite being told not to."""
    for pattern, repl in _MARKDOWN_RULES:
        text = pattern.sub(repl, text)
    return text.strip()


def find_url(message: str) -> str | None:
    m = URL_RE.search(message or "")
    return m.group(0).rstrip(".,;:!?)") if m else None


def is_affirmative(message: str) -> bool:
    words = re.findall(r"\w+", (message or "").lower())
    return bool(words) and words[0] in AFFIRMATIVE_ANSWERS and len(words) <= 4


@dataclass
class ChatReply:
    response: str
    state: ChatState
    action: dict[str, Any] | None = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "response": self.response,
            "state": {"awaiting_confirmation_for": self.state.awaiting_confirmation_for},
            "action": self.action,
            "warnings": self.warnings,
        }


class ChatService:
    """
    Assistant chat with explicit per-session state.

    A message containing a URL is answered with a fixed confirmation question
    and the URL is kept in `ChatState.awaiting_confirmation_for`. The client
    sends that state back with the next message; an affirmative answer turns
    into an `analyze_url` action instead of a model call.
    """

    def __init__(self, store: SupabaseStore, text_provider: TextProvider) -> None:
        self.store = store
        self.text = text_provider

    def _save(self, session_id: str, role: str, content: str, warnings: list[str]) -> None:
        try:
            self.store.add_chat_message(session_id, role, content)
        except PersistenceError as exc:
            logger.error("Failed to save %s message: %s", role, exc.message)
            warnings.append(exc.message)

    async def reply(
        self,
        session_id: str,
        message: str,
        history: list[ChatTurn] | None = None,
        state: ChatState | None = None,
    ) -> ChatReply:
        if not session_id or not (message or "").strip():
            raise InvalidRequestError("Session ID and message are required")

        state = state or ChatState()
        warnings: list[str] = []
        self._save(session_id, "user", message, warnings)

        pending = state.awaiting_confirmation_for
        url = find_url(message)
        action: dict[str, Any] | None = None

        if pending and url is None and is_affirmative(message):
            response = START_ANALYSIS_TEMPLATE.format(url=pending)
            action = {"type": ACTION_ANALYZE_URL, "url": pending}
            state = ChatState()
        elif url is not None:
            response = CONFIRM_URL_TEMPLATE.format(url=url)
            state = ChatState(awaiting_confirmation_for=url)
        else:
            raw = await self.text.chat(list(history or []), message, SYSTEM_INSTRUCTION)
            response = clean_markdown(raw)
            state = ChatState()

        self._save(session_id, "assistant", response, warnings)
        return ChatReply(response=response, state=state, action=action, warnings=warnings)

    def history(self, session_id: str) -> list[dict[str, Any]]:
        if not session_id:
            raise InvalidRequestError("Session ID is required")
        return self.store.list_chat_messages(session_id)
