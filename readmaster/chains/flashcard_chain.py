import json
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from langchain_core.prompts import PromptTemplate
from langchain_openai import ChatOpenAI

from readmaster.config import settings
from readmaster.prompts.flashcard_prompt import (
    FLASHCARD_TYPE_DESCRIPTIONS,
    READING_LEVEL_GUIDANCE,
    FlashcardPrompts,
)
from readmaster.utils.logger import logger

VALID_CARD_TYPES = tuple(FLASHCARD_TYPE_DESCRIPTIONS)
MAX_TOKENS = 8192
# only the most recent fronts are shown to the model
EXISTING_CARDS_IN_PROMPT = 20

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


@dataclass
class GeneratedFlashcard:
    type: str
    front: str
    back: str
    tags: List[str] = field(default_factory=list)
    difficulty: int = 3
    context: Optional[str] = None


@dataclass
class ChainResult:
    text: str
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    duration_ms: int = 0


def _extract_json(text: str) -> Any:
    text = (text or "").strip()
    match = _FENCE_RE.search(text)
    if match:
        text = match.group(1).strip()
    else:
        # tolerate chatter around a bare object
        start, end = text.find("{"), text.rfind("}")
        if start != -1 and end > start:
            text = text[start:end + 1]
    return json.loads(text)


def _coerce_difficulty(value) -> int:
    try:
        difficulty = int(value)
    except (TypeError, ValueError):
        return 3
    return max(1, min(5, difficulty))


def parse_flashcards_response(text: str) -> List[GeneratedFlashcard]:
    """
    Parse the model's JSON (raw or fenced) into flashcards.

    Entries without a front/back or with an unknown type are skipped.
    Raises ValueError when the response is not JSON at all.
    """
    try:
        data = _extract_json(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Flashcard response is not valid JSON: {e}") from e

    raw_cards = data.get("flashcards", []) if isinstance(data, dict) else data
    if not isinstance(raw_cards, list):
        return []

    cards = []
    for raw in raw_cards:
        if not isinstance(raw, dict):
            continue
        front = str(raw.get("front") or "").strip()
        back = str(raw.get("back") or "").strip()
        card_type = str(raw.get("type") or "").strip().lower()
        if not front or not back or card_type not in VALID_CARD_TYPES:
            continue

        tags = raw.get("tags") or []
        cards.append(GeneratedFlashcard(
            type=card_type,
            front=front,
            back=back,
            tags=[str(t).strip() for t in tags if str(t).strip()] if isinstance(tags, list) else [],
            difficulty=_coerce_difficulty(raw.get("difficulty")),
            context=(str(raw["context"]).strip() or None) if raw.get("context") else None,
        ))
    return cards


class FlashcardChain:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.model = model or settings.openai_model
        self.temperature = settings.openai_temperature if temperature is None else temperature
        self._llm = None

    def is_available(self) -> bool:
        return bool(self.api_key)

    @property
    def llm(self) -> ChatOpenAI:
        if self._llm is None:
            self._llm = ChatOpenAI(
                model=self.model,
                temperature=self.temperature,
                max_tokens=MAX_TOKENS,
                openai_api_key=self.api_key,
            )
        return self._llm

    def build_messages(
        self,
        book: Dict[str, Any],
        content: str,
        card_types: List[str],
        card_count: int,
        existing_fronts: List[str],
        reading_level: str,
        language: str = "en",
        user_name: Optional[str] = None,
    ) -> list:
        system_prompt = PromptTemplate.from_template(FlashcardPrompts.SYSTEM).format(
            reading_level=reading_level.replace("_", " "),
            level_guidance=READING_LEVEL_GUIDANCE.get(reading_level, READING_LEVEL_GUIDANCE["middle_school"]),
            language=language,
        )

        details = []
        if book.get("genre"):
            details.append(f"Genre: {book['genre']}")
        if book.get("description"):
            details.append(f"About: {book['description']}")

        existing = existing_fronts[:EXISTING_CARDS_IN_PROMPT]
        user_prompt = PromptTemplate.from_template(FlashcardPrompts.GENERATE).format(
            greeting=f"Hi! These cards are for {user_name}. " if user_name else "",
            card_count=card_count,
            title=book.get("title") or "Untitled",
            author=book.get("author") or "Unknown Author",
            book_details="\n".join(details),
            card_types="\n".join(f"- {t}: {FLASHCARD_TYPE_DESCRIPTIONS[t]}" for t in card_types),
            content=content,
            existing_cards="\n".join(f"- {f}" for f in existing) if existing else "(none)",
        )
        return [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)]

    async def generate(self, **kwargs) -> ChainResult:
        messages = self.build_messages(**kwargs)

        start_time = time.time()
        response = await self.llm.ainvoke(messages)
        duration_ms = int((time.time() - start_time) * 1000)

        text = response.content if isinstance(response, AIMessage) else str(response)
        usage = getattr(response, "usage_metadata", None) or {}

        logger.info(f" Flashcard LLM call finished in {duration_ms}ms")
        return ChainResult(
            text=text,
            model=self.model,
            prompt_tokens=usage.get("input_tokens", 0),
            completion_tokens=usage.get("output_tokens", 0),
            total_tokens=usage.get("total_tokens", 0),
            duration_ms=duration_ms,
        )
