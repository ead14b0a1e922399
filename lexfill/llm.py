# llm.py
"""
OpenAI-compatible completion client plus the two prompt contracts it serves:
placeholder detection and conversational value extraction.

The client is built once by the app entry point (see main.create_app) and passed
to whoever needs it; nothing here reads the environment.
"""
import json
import logging
from typing import Any, Dict, List, Optional

from openai import OpenAI, OpenAIError

from .models import ChatResponse, ChatTurn, Placeholder

logger = logging.getLogger(__name__)


class OracleError(Exception):
    """Transport, timeout or API failure talking to the completion service."""


class LLMClient:
    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        client: Any = None,
    ):
        self.model = model
        self._client = client or OpenAI(api_key=api_key, base_url=base_url or None, timeout=timeout)

    def complete(self, messages: List[Dict[str, str]], temperature: float = 0.0) -> str:
        """One blocking chat completion; returns the message text."""
        try:
            resp = self._client.chat.completions.create(
                model=self.model,
                temperature=temperature,
                messages=messages,
            )
            content = resp.choices[0].message.content
        except OpenAIError as e:
            raise OracleError(f"completion failed: {e}") from e
        except (IndexError, AttributeError) as e:
            raise OracleError(f"unexpected completion payload: {e!r}") from e
        return (content or "").strip()


def strip_code_fences(content: str) -> str:
    """Drop an accidental ```json ... ``` wrapper around a model reply."""
    content = content.strip()
    if content.startswith("```"):
        content = content.strip("`")
        if "\n" in content:
            content = content.split("\n", 1)[1]
    return content.strip()


def excerpt(text: str, max_chars: int = 2000) -> str:
    return text if len(text) <= max_chars else text[:max_chars]


# -----------------------
# Placeholder detection
# -----------------------
ENHANCE_SYSTEM_PROMPT = """You are a legal document analyzer. For each placeholder provided (which may be in {tag} or [tag] style), give a clear, helpful description of what information should be filled in.
Return ONLY a valid JSON array with this exact structure, no additional text:
[{"id": "1", "name": "normalized_key", "original": "{tag} or [tag] as found", "description": "what information is needed", "position": 0}]
Return exactly one object per placeholder provided, in the same order, keeping "original" unchanged."""

ENHANCE_USER_TEMPLATE = """Enhance these placeholders with better descriptions. Document context (truncated):

{doc_excerpt}

Placeholders: {placeholders_json}"""

DETECT_SYSTEM_PROMPT = """You are a legal document analyzer. Find every fillable placeholder in the document: bracketed or braced tokens ([Company Name], {date}), blank lines ($[_____]), and bare labels awaiting a value (Name:, By:, Title:).
Return ONLY a valid JSON array, no additional text:
[{"id": "1", "name": "normalized_key", "original": "exact text as it appears", "description": "what information is needed", "position": 0}]
Rules:
- "original" must be copied verbatim from the document.
- "name" is lowercase with underscores.
- "position" is the character offset of that occurrence in the document.
- When the same label appears more than once, emit one object per occurrence, number the names name_1, name_2, ... in document order, and make each description say which occurrence it is (e.g. "First signatory name", "Second signatory name")."""

DETECT_USER_TEMPLATE = """Document (truncated):

{doc_excerpt}"""


def enhance_messages(text: str, candidates: List[Placeholder], max_chars: int) -> List[Dict[str, str]]:
    user = ENHANCE_USER_TEMPLATE.format(
        doc_excerpt=excerpt(text, max_chars),
        placeholders_json=json.dumps([p.model_dump(exclude_none=True) for p in candidates], ensure_ascii=False),
    )
    return [
        {"role": "system", "content": ENHANCE_SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]


def detect_messages(text: str, max_chars: int) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": DETECT_SYSTEM_PROMPT},
        {"role": "user", "content": DETECT_USER_TEMPLATE.format(doc_excerpt=excerpt(text, max_chars))},
    ]


# -----------------------
# Value extraction (chat)
# -----------------------
CHAT_SYSTEM_TEMPLATE = """You are helping fill in a legal document placeholder.
Current placeholder: "{original}"
Description: {description}

Your job:
1. Understand the user's natural language response
2. Extract the exact value to fill in the placeholder
3. Respond conversationally while confirming the value
4. Format the value appropriately (e.g., dates, currency, proper names)
5. Do NOT use asterisks (**) or emojis in your responses
6. For currency amounts, do NOT add dollar signs ($) if the placeholder already contains them
7. Keep responses clean and professional without special formatting and without any emojis.

Respond in this JSON format:
{{
  "message": "your conversational response without asterisks or emojis",
  "extractedValue": "the formatted value to use",
  "needsConfirmation": true/false
}}"""


def parse_extraction(content: str, utterance: str) -> ChatResponse:
    """
    Read the model's JSON reply. Anything that is not a JSON object falls back to
    the raw utterance as the value and the raw reply as the message, flagged for
    confirmation so the client can ask the user to double-check.
    """
    try:
        data = json.loads(strip_code_fences(content))
    except json.JSONDecodeError:
        data = None
    if not isinstance(data, dict):
        logger.warning("Extraction reply was not a JSON object; using raw utterance")
        return ChatResponse(message=content, extractedValue=utterance, needsConfirmation=True)

    value = data.get("extractedValue")
    return ChatResponse(
        message=str(data.get("message") or ""),
        extractedValue=utterance if value is None else str(value),
        needsConfirmation=bool(data.get("needsConfirmation", False)),
    )


def extract_value(
    client: LLMClient,
    placeholder: Placeholder,
    history: List[ChatTurn],
    message: str,
) -> ChatResponse:
    """Ask the model for the value the user meant. OracleError propagates to the caller."""
    system = CHAT_SYSTEM_TEMPLATE.format(original=placeholder.original, description=placeholder.description)
    messages = [{"role": "system", "content": system}]
    messages += [{"role": t.role, "content": t.content} for t in history]
    messages.append({"role": "user", "content": message})
    content = client.complete(messages, temperature=0.7)
    return parse_extraction(content, message)
