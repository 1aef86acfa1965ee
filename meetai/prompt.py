from __future__ import annotations
from typing import List, Optional

SUMMARY_SYSTEM_PROMPT = """You are a meeting assistant. You analyse meeting conversations and summarise them.

Your tasks:
1. Summarise the main subjects and the important points
2. Extract key points
3. Judge the overall tone (positive/neutral/negative)
4. Identify action items
5. Identify participants and the main topics"""

QA_SYSTEM_PROMPT = """You are a meeting assistant. You answer questions about the content of a meeting.

Your tasks:
1. Answer the question using the meeting context
2. Stay clear and concise
3. Say so when the context does not contain the answer"""


def build_summary_prompt(text: str, context: Optional[List[str]] = None) -> str:
    """
    Single summary prompt shared by all model-backed providers.
    """
    context_text = "\n\n".join(c for c in (context or []) if c).strip()
    context_block = f"Earlier conversation:\n{context_text}\n\n" if context_text else ""

    return f"""Analyse the following meeting transcript.

{context_block}Latest text:
{text}

Reply in STRICT JSON with exactly these keys:
- summary (string: short summary of the main subjects)
- key_points (array of short strings)
- sentiment (string: "positive", "neutral" or "negative")
- action_items (array of short strings)
- topics (array of short strings)
- participants (array of names or roles, empty if unknown)

Output JSON only. No markdown. No extra keys.
"""


def build_qa_prompt(question: str, context: str, explicit: bool = False) -> str:
    label = "Meeting context" if explicit else "Previous conversation"
    context = context.strip() or "[No conversation yet]"
    return f"{label}: {context}\n\nQuestion: {question}"
