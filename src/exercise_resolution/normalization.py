"""Exercise name normalization shared by every matching tier.

normalize() is pure and total: any string maps to a lowercase ASCII phrase of
single-space separated tokens, and applying it twice changes nothing.
"""

from __future__ import annotations

import re
import unicodedata

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")

# Tokens that end in "s" without being plurals.
_PROTECTED_TOKENS = frozenset(
    {
        "abs",
        "biceps",
        "triceps",
        "quadriceps",
        "gluteus",
        "pilates",
        "series",
        "plus",
    }
)

# Compound spellings folded into the catalog's two-word form. Keys are what
# survives singularization, which runs first.
TOKEN_SYNONYMS: dict[str, str] = {
    "pushup": "push up",
    "situp": "sit up",
    "pullup": "pull up",
    "chinup": "chin up",
    "stepup": "step up",
    "pressup": "push up",
    "ups": "up",
    "db": "dumbbell",
    "bb": "barbell",
    "kb": "kettlebell",
    "bodyweight": "body weight",
}

PHRASE_SYNONYMS: dict[str, str] = {
    "press up": "push up",
    "star jump": "jumping jack",
}

_PHRASE_RE = re.compile(
    r"\b(" + "|".join(re.escape(k) for k in sorted(PHRASE_SYNONYMS, key=len, reverse=True)) + r")\b"
)

STOPWORDS = frozenset({"a", "an", "and", "the", "with", "on", "of", "to", "for", "in", "x"})


def _fold(raw: str) -> str:
    decomposed = unicodedata.normalize("NFKD", raw)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _NON_ALNUM_RE.sub(" ", stripped.lower()).strip()


def singularize(token: str) -> str:
    """Strip a trailing plural suffix where it is safe to do so."""
    if len(token) <= 3 or not token.endswith("s") or token in _PROTECTED_TOKENS:
        return token
    if token.endswith("sses"):
        return token[:-2]
    if token.endswith(("ches", "shes", "xes")):
        return token[:-2]
    if token.endswith("ies") and len(token) > 4:
        return token[:-3] + "y"
    if token.endswith(("ss", "us", "is")):
        return token
    return token[:-1]


def normalize(raw: str) -> str:
    """Fold case, separators, plurals and known synonyms into a canonical key."""
    folded = _fold(raw or "")
    if not folded:
        return ""

    tokens: list[str] = []
    for token in folded.split(" "):
        token = singularize(token)
        tokens.extend(TOKEN_SYNONYMS.get(token, token).split(" "))

    phrase = " ".join(tokens)
    return _PHRASE_RE.sub(lambda m: PHRASE_SYNONYMS[m.group(1)], phrase)


def tokenize(text: str) -> tuple[str, ...]:
    """Normalized keyword tokens with stopwords removed, order preserved."""
    seen: list[str] = []
    for token in normalize(text).split(" "):
        if token and token not in STOPWORDS and token not in seen:
            seen.append(token)
    return tuple(seen)


def display_name(raw: str) -> str:
    """Human-readable title for a name that has no catalog record."""
    words = _NON_ALNUM_RE.sub(" ", (raw or "").lower()).split()
    if not words:
        return "Exercise"
    return " ".join(word[:1].upper() + word[1:] for word in words)
