# scanner.py
"""
Placeholder detection over the flattened document text.

Two candidate sources share one `scan(text) -> List[Placeholder]` shape:

- RegexScanner: deterministic; finds {braced} and [bracketed] tokens.
- OracleScanner: asks the completion service, either to describe the regex
  candidates ("enhance") or to find every placeholder itself ("full"), which
  also catches bare labels such as "By:" and numbers repeated ones.

OracleScanner raises DetectionError on any failure; `detect_placeholders` owns
the fallback to RegexScanner.
"""
import re
import json
import logging
from typing import List, NamedTuple, Optional

from pydantic import ValidationError

from .llm import LLMClient, OracleError, detect_messages, enhance_messages, strip_code_fences
from .models import Placeholder

logger = logging.getLogger(__name__)

CURLY_RE = re.compile(r"\{[^{}\n]+\}")
BRACKET_RE = re.compile(r"\[[^\[\]\n]+\]")

MODE_ENHANCE = "enhance"
MODE_FULL = "full"


class DetectionError(Exception):
    """The oracle could not produce a usable placeholder list."""


class Detection(NamedTuple):
    placeholders: List[Placeholder]
    method: str  # "regex" | "oracle" | "regex-fallback"


def normalize_name(label: str) -> str:
    """'Company Name!!' -> 'company_name'"""
    return re.sub(r"[^a-z0-9]+", "_", label.strip().lower()).strip("_")


def token_inner(token: str) -> str:
    return token[1:-1].strip()


class RegexScanner:
    def scan(self, text: str) -> List[Placeholder]:
        hits = list(CURLY_RE.finditer(text)) + list(BRACKET_RE.finditer(text))
        hits.sort(key=lambda m: m.start())

        seen = set()
        used_names = set()
        out: List[Placeholder] = []
        for m in hits:
            token = m.group(0)
            if token in seen:
                continue
            seen.add(token)
            inner = token_inner(token)
            name = _unique(normalize_name(inner) or "field", used_names)
            out.append(Placeholder(
                id=str(len(out) + 1),
                name=name,
                original=token,
                description=f"Fill in the {inner or 'blank'} field",
                position=m.start(),
            ))
        return out


def _unique(name: str, used: set) -> str:
    # Distinct literals can normalize alike ("[Name]", "{name}").
    candidate, n = name, 2
    while candidate in used:
        candidate = f"{name}_{n}"
        n += 1
    used.add(candidate)
    return candidate


class OracleScanner:
    def __init__(self, client: LLMClient, mode: str = MODE_ENHANCE, context_chars: int = 2000):
        if mode not in (MODE_ENHANCE, MODE_FULL):
            raise ValueError(f"unknown detection mode: {mode!r}")
        self.client = client
        self.mode = mode
        self.context_chars = context_chars

    def scan(self, text: str, candidates: Optional[List[Placeholder]] = None) -> List[Placeholder]:
        if self.mode == MODE_ENHANCE:
            if candidates is None:
                candidates = RegexScanner().scan(text)
            if not candidates:
                return []
            messages = enhance_messages(text, candidates, self.context_chars)
        else:
            messages = detect_messages(text, self.context_chars)

        try:
            content = self.client.complete(messages, temperature=0)
        except OracleError as e:
            raise DetectionError(str(e)) from e

        items = self._parse(content)
        if self.mode == MODE_ENHANCE and len(items) != len(candidates):
            raise DetectionError(f"expected {len(candidates)} placeholders, oracle returned {len(items)}")
        return self._validate(items, text, candidates if self.mode == MODE_ENHANCE else None)

    @staticmethod
    def _parse(content: str) -> list:
        try:
            data = json.loads(strip_code_fences(content))
        except json.JSONDecodeError as e:
            raise DetectionError(f"oracle reply is not JSON: {e}") from e
        if not isinstance(data, list):
            raise DetectionError(f"oracle reply is a {type(data).__name__}, expected a list")
        return data

    def _validate(
        self, items: list, text: str, candidates: Optional[List[Placeholder]] = None
    ) -> List[Placeholder]:
        out: List[Placeholder] = []
        names = set()
        for i, item in enumerate(items):
            if not isinstance(item, dict):
                raise DetectionError(f"item {i} is not an object")
            item = dict(item)
            item["id"] = str(item.get("id") or i + 1)
            if not isinstance(item.get("position"), int) or item["position"] < 0:
                item["position"] = max(text.find(str(item.get("original", ""))), 0)
            try:
                ph = Placeholder.model_validate(item)
            except ValidationError as e:
                raise DetectionError(f"item {i} is malformed: {e}") from e

            ph.name = normalize_name(ph.name)
            if not ph.name or not ph.original:
                raise DetectionError(f"item {i} has an empty name or original")
            if candidates is not None and ph.original != candidates[i].original:
                raise DetectionError(
                    f"item {i} rewrote {candidates[i].original!r} as {ph.original!r}"
                )
            if ph.name in names:
                raise DetectionError(f"duplicate placeholder name {ph.name!r}")
            if self.mode == MODE_FULL and ph.original not in text:
                logger.warning("Oracle proposed %r which is not in the document; dropping", ph.original)
                continue
            names.add(ph.name)
            out.append(ph)
        return out


def detect_placeholders(text: str, oracle: Optional[OracleScanner] = None) -> Detection:
    """Use the oracle when one is configured, falling back to the regex scan on any DetectionError."""
    if oracle is None:
        return Detection(RegexScanner().scan(text), "regex")
    try:
        return Detection(oracle.scan(text), "oracle")
    except DetectionError as e:
        logger.warning("Oracle detection failed (%s); using regex placeholders", e)
        return Detection(RegexScanner().scan(text), "regex-fallback")
