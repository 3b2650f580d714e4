from __future__ import annotations

import re
import unicodedata
from typing import Iterable, List, Optional, Pattern, Tuple

from songorders.domain.errors import ContentRejected

# Terms that either break the "suitable for all ages" promise or make the
# downstream music providers refuse the lyrics outright.
BLOCKED_TERMS = [
    # Portuguese profanity
    "porra", "caralho", "buceta", "puta", "putaria", "puteiro",
    "foda", "fodase", "foda-se", "fodido", "fodendo",
    "merda", "bosta", "cú", "arrombado", "arrombada",
    "viado", "viada", "vagabunda", "vagabundo",
    "desgraça", "desgraçado", "desgraçada",
    "piranha", "vadia", "vadio",
    "cacete", "pau no cu", "vai se fuder", "vai tomar no cu",
    "filha da puta", "filho da puta", "fdp",
    "pqp", "vsf", "tnc", "krl",
    "cuzão", "cuzao", "corno",
    "xereca", "xoxota", "rola", "pinto", "piroca",
    "punheta", "punheteiro", "brocha",
    # slurs
    "macaco", "macaca",
    "retardado", "retardada",
    # violence
    "matar", "assassinar", "estupro", "estuprar",
    "suicídio", "suicidio", "se matar",
    # drugs
    "cocaína", "cocaina", "crack", "maconha", "droga",
    "cheirar pó", "baseado",
    # English
    "fuck", "fucking", "shit", "bitch", "asshole",
    "motherfucker", "dick", "pussy", "cunt",
    "nigger", "nigga", "faggot",
]


def normalize(text: str) -> str:
    """Lowercase, strip diacritics, turn anything that is not [a-z0-9\\s] into a space."""
    decomposed = unicodedata.normalize("NFD", (text or "").lower())
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return re.sub(r"[^a-z0-9\s]", " ", stripped)


class ContentModerator:
    """Keyword filter applied to free text before it is stored or sent to a provider."""

    def __init__(self, terms: Optional[Iterable[str]] = None, *, extra_terms: Optional[Iterable[str]] = None):
        base = list(terms) if terms is not None else list(BLOCKED_TERMS)
        if extra_terms:
            base.extend(extra_terms)

        self._rules: List[Tuple[str, Optional[Pattern[str]], str]] = []
        seen = set()
        for term in base:
            norm = normalize(term).strip()
            if not norm or term in seen:
                continue
            seen.add(term)
            if " " in norm:
                # phrases match as plain substrings of the normalized text
                self._rules.append((term, None, norm))
            else:
                self._rules.append((term, re.compile(rf"\b{re.escape(norm)}\b"), norm))

    def find_terms(self, text: str) -> List[str]:
        normalized = normalize(text)
        found: List[str] = []
        for term, pattern, norm in self._rules:
            hit = pattern.search(normalized) if pattern is not None else norm in normalized
            if hit and term not in found:
                found.append(term)
        return found

    def check(self, text: str) -> None:
        terms = self.find_terms(text)
        if terms:
            raise ContentRejected(terms)
