"""
Similarity primitives shared by the profile scoring factors.

Every function is pure and returns a float in [0, 1].
"""
import re
import string
from typing import Dict, Iterable, List, Optional

import numpy as np

TEXT_STOPWORDS = frozenset({
    "the", "and", "for", "are", "but", "not", "you", "all", "can", "had", "her",
    "was", "one", "our", "out", "has", "have", "his", "how", "its", "may", "new",
    "now", "old", "see", "two", "who", "did", "get", "use", "with", "this", "that",
    "from", "they", "been", "were", "said", "each", "which", "their", "will",
    "other", "about", "many", "then", "them", "these", "some", "would", "into",
    "more", "very", "what", "know", "just", "also", "than", "only", "over",
    "such", "using", "used", "built", "project", "projects",
})

MAX_TEXT_TOKENS = 50

# Checked in order; the first vocabulary entry found in the text wins.
EXPERIENCE_LEVELS = (
    (("entry", "junior"), 1),
    (("mid", "intermediate"), 2),
    (("senior",), 3),
    (("lead", "principal", "staff"), 4),
    (("expert",), 5),
)
UNKNOWN_EXPERIENCE = 0
MAX_EXPERIENCE_GAP = 4

_PUNCTUATION = re.compile(f"[{re.escape(string.punctuation)}]")


def _label_set(labels: Optional[Iterable]) -> set:
    if not labels:
        return set()
    out = set()
    for label in labels:
        if label is None:
            continue
        norm = str(label).lower().strip()
        if norm:
            out.add(norm)
    return out


def jaccard_index(a: Optional[Iterable], b: Optional[Iterable]) -> float:
    sa, sb = _label_set(a), _label_set(b)
    if not sa or not sb:
        return 0.0
    return len(sa & sb) / len(sa | sb)


def language_similarity(a: Optional[Dict[str, float]], b: Optional[Dict[str, float]]) -> float:
    """1 minus the normalized L1 distance between two language distributions.

    Missing languages count as 0%. The distance is divided by the combined
    mass of both distributions, so identical stats give 1.0 and stats with
    no language in common give 0.0.
    """
    a = a or {}
    b = b or {}
    languages = sorted(set(a) | set(b))
    if not languages:
        return 0.0
    va = np.array([max(0.0, float(a.get(lang, 0.0))) for lang in languages])
    vb = np.array([max(0.0, float(b.get(lang, 0.0))) for lang in languages])
    total = float(va.sum() + vb.sum())
    if total == 0:
        return 0.0
    difference = float(np.abs(va - vb).sum()) / total
    return float(min(1.0, max(0.0, 1.0 - difference)))


def experience_level(text: Optional[str]) -> int:
    if not text:
        return UNKNOWN_EXPERIENCE
    lowered = str(text).lower()
    for keywords, level in EXPERIENCE_LEVELS:
        if any(k in lowered for k in keywords):
            return level
    return UNKNOWN_EXPERIENCE


def experience_similarity(a: Optional[str], b: Optional[str]) -> float:
    la, lb = experience_level(a), experience_level(b)
    if la == UNKNOWN_EXPERIENCE or lb == UNKNOWN_EXPERIENCE:
        return 0.5
    return 1.0 - abs(la - lb) / MAX_EXPERIENCE_GAP


def repo_activity_similarity(a: Optional[int], b: Optional[int]) -> float:
    a = a or 0
    b = b or 0
    if a == 0 and b == 0:
        return 1.0
    if a == 0 or b == 0:
        return 0.0
    return min(a, b) / max(a, b)


def tokenize_keywords(text: Optional[str]) -> List[str]:
    if not text:
        return []
    cleaned = _PUNCTUATION.sub("", str(text).lower())
    tokens = [t for t in cleaned.split() if len(t) > 2 and t not in TEXT_STOPWORDS]
    return tokens[:MAX_TEXT_TOKENS]


def text_similarity(a: Optional[str], b: Optional[str]) -> float:
    return jaccard_index(tokenize_keywords(a), tokenize_keywords(b))
