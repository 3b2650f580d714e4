from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Tuple

from songorders.domain.models import Order

DEFAULT_LYRIC_TITLE = "Untitled Song"
TITLE_MAX_LEN = 120
SUMMARY_MAX_WORDS = 50

# a line of three or more dashes, blank lines around it allowed
_DELIMITER_RE = re.compile(r"\n\s*-{3,}\s*\n")
_PARAGRAPH_RE = re.compile(r"(?:\r?\n){2,}")
_LINE_RE = re.compile(r"\r?\n")
# headings, [Section] markers, numbered list items
_NOT_A_TITLE_RE = re.compile(r"^(#|\[|\d+\.)")


def build_messages(order: Order) -> Tuple[List[Dict[str, str]], Dict[str, Any]]:
    """
    Returns (messages, prompt_record). The record is stored with each lyric so
    the exact brief sent to the provider can be audited later.
    """
    target = int(order.duration_target_sec or 120)

    system = "\n".join(
        [
            "You are a professional songwriter.",
            "NEVER repeat the user's instructions in your answer.",
            "Deliver ONLY the final lyrics, with clear verses and choruses.",
            f"Avoid cliches and weak rhymes; keep a consistent meter for about {target} seconds of music.",
            "Keep the language suitable for all ages and never mention real artists, brands or protected works.",
        ]
    )

    user = "\n\n".join(
        [
            "Write TWO complete lyric variations for one song.",
            f"Occasion: {order.occasion or 'a special moment'}.",
            f"Genre/style: {order.style or 'Pop'}. Tone: {order.tone or 'Heartfelt'}.",
            "Story/brief (stay faithful to it):",
            (order.story_raw or "").strip(),
            "Start each variation with its title on the first line.",
            "Separate the two variations with a line containing only:",
            "---",
            "Do not add comments, only the lyrics.",
        ]
    )

    messages = [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]
    return messages, {"system": system, "prompt": user}


def split_two_lyrics(text: str) -> Tuple[str, str]:
    """
    Split one completion into two drafts.

    Prefers an explicit dashed delimiter line; otherwise cuts on a paragraph
    boundary at half the paragraph count (rounded down, at least one
    paragraph on the first side).
    """
    parts = _DELIMITER_RE.split(text or "")
    if len(parts) >= 2:
        return parts[0].strip(), parts[1].strip()

    paras = [p for p in _PARAGRAPH_RE.split((text or "").strip()) if p.strip()]
    mid = max(1, len(paras) // 2)
    return "\n\n".join(paras[:mid]).strip(), "\n\n".join(paras[mid:]).strip()


def extract_title_and_body(raw: str, *, default_title: str = DEFAULT_LYRIC_TITLE) -> Tuple[str, str]:
    lines = [ln.strip() for ln in _LINE_RE.split(raw or "")]

    title_idx: Optional[int] = None
    for i, ln in enumerate(lines):
        if ln and not _NOT_A_TITLE_RE.match(ln):
            title_idx = i
            break

    title = default_title if title_idx is None else lines[title_idx]

    body = "\n".join(ln for i, ln in enumerate(lines) if i != title_idx and ln)
    return title[:TITLE_MAX_LEN], body


def summarize_story(story: str, *, max_words: int = SUMMARY_MAX_WORDS) -> str:
    words = (story or "").split()
    if len(words) <= max_words:
        return " ".join(words)
    return " ".join(words[:max_words]) + "..."
