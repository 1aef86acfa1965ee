from __future__ import annotations
from typing import Any, Dict, List, Optional
import json
import re

from meetai.models import Sentiment, SummaryRecord

# Label prefixes accepted when a model ignores the JSON instruction.
LABELS = {
    "summary": "summary",
    "key points": "key_points",
    "keywords": "key_points",
    "action items": "action_items",
    "sentiment": "sentiment",
    "tone": "sentiment",
    "topics": "topics",
    "participants": "participants",
}

_JSON_OBJ_RE = re.compile(r"\{.*\}", re.DOTALL)
_FENCE_RE = re.compile(r"^```[A-Za-z0-9_-]*\s*|\s*```$")


def try_parse_json(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Best-effort JSON extraction (handles code fences and extra text around JSON).
    Returns None when no object can be recovered.
    """
    if not text:
        return None
    s = _FENCE_RE.sub("", text.strip()).strip()

    if s.startswith("{") and s.endswith("}"):
        try:
            obj = json.loads(s)
            return obj if isinstance(obj, dict) else None
        except json.JSONDecodeError:
            pass

    m = _JSON_OBJ_RE.search(s)
    if m:
        try:
            obj = json.loads(m.group(0))
            return obj if isinstance(obj, dict) else None
        except json.JSONDecodeError:
            return None
    return None


def _split_list(value: str) -> List[str]:
    return [p.strip(" -*\t") for p in re.split(r"[,;]", value) if p.strip(" -*\t")]


def parse_labelled(text: str) -> Optional[Dict[str, Any]]:
    """
    Parse "LABEL: value" lines. Returns None when no known label is found.
    """
    found: Dict[str, Any] = {}
    for line in text.splitlines():
        head, sep, value = line.partition(":")
        if not sep:
            continue
        key = LABELS.get(head.strip(" *#-").lower())
        if key is None:
            continue
        value = value.strip()
        if key in ("summary", "sentiment"):
            found[key] = value
        else:
            found[key] = _split_list(value)
    return found or None


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = _split_list(value)
    if not isinstance(value, list):
        value = [value]
    return [str(x).strip() for x in value if str(x).strip()]


def normalize_summary(obj: Dict[str, Any], provider: str, fallback_text: str = "") -> SummaryRecord:
    """
    Ensure a stable shape so callers never depend on provider-specific formatting.
    """
    summary = str(obj.get("summary", "")).strip() or fallback_text.strip()
    return SummaryRecord(
        summary=summary,
        key_points=_as_list(obj.get("key_points", obj.get("keyPoints"))),
        sentiment=Sentiment.normalize(obj.get("sentiment")),
        action_items=_as_list(obj.get("action_items", obj.get("actionItems"))),
        topics=_as_list(obj.get("topics")),
        participants=_as_list(obj.get("participants")),
        provider=provider,
    )


def parse_summary_response(text: str, provider: str) -> SummaryRecord:
    """
    JSON first, labelled lines second; otherwise the whole reply becomes the
    summary and every other field stays empty.
    """
    text = (text or "").strip()
    parsed = try_parse_json(text)
    if parsed is None:
        parsed = parse_labelled(text)
    if parsed is None:
        parsed = {"summary": text}
    return normalize_summary(parsed, provider=provider, fallback_text=text)
