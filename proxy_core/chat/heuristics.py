"""训练员消息的启发式分类。

这些规则只用来挑选本地预设回复，不是语法模型，遇到不常见的输入会误判。
"""

import re
from typing import List

from proxy_core.domain.models import ClassificationFlags


ACKNOWLEDGEMENTS = frozenset({"okay", "ok", "k", "kk", "alright", "alrighty", "sure"})
GREETINGS = ("hi", "hello", "hey", "greetings")

# 带长音符的 a/A，以及后接 U+0332 组合下划线的 a/A
TARGET_LANGUAGE_MARKERS = ("\u0101", "\u0100", "a\u0332", "A\u0332")

SENTENCE_STARTERS = ("we", "i", "they", "you", "he", "she", "it", "the", "this", "these", "those")
FILLER_WORDS = ("like", "so", "just", "very", "really", "basically", "actually")
CONTINUATION_WORDS = frozenset(
    SENTENCE_STARTERS
    + FILLER_WORDS
    + ("and", "or", "but", "with", "for", "to", "by", "on", "in", "at", "from", "that", "use")
)
KNOWN_TRUNCATED = frozenset({"we use", "we use.", "we used", "we used."})

_PUNCT = ".,?!;:'\"()"
_TERMINAL_PUNCT_RE = re.compile(r"[.?!]$")


def normalize_text(text: str) -> str:
    return (text or "").strip().lower()


def _words(text: str) -> List[str]:
    return text.split()


def is_acknowledgement(text: str) -> bool:
    return normalize_text(text).rstrip(".!") in ACKNOWLEDGEMENTS


def is_greeting(text: str) -> bool:
    """完全匹配问候词，或问候词后紧跟非字母字符（如 "hello!"、"hi there"）。"""

    norm = normalize_text(text)
    for greeting in GREETINGS:
        if norm == greeting:
            return True
        if norm.startswith(greeting) and not norm[len(greeting)].isalpha():
            return True
    return False


def contains_target_language_markers(text: str) -> bool:
    return any(marker in (text or "") for marker in TARGET_LANGUAGE_MARKERS)


def is_likely_incomplete(text: str) -> bool:
    """消息是否像没说完：以连接词、代词等结尾。"""

    norm = normalize_text(text)
    if norm in KNOWN_TRUNCATED:
        return True
    words = _words(norm)
    if not words:
        return False
    last_word = words[-1].strip(_PUNCT)
    ends_with_continuation = last_word in CONTINUATION_WORDS
    missing_punctuation = not _TERMINAL_PUNCT_RE.search(norm) and len(words) > 1
    return (len(words) <= 3 and ends_with_continuation) or (missing_punctuation and ends_with_continuation)


def classify(text: str) -> ClassificationFlags:
    return ClassificationFlags(
        is_acknowledgement=is_acknowledgement(text),
        is_likely_incomplete=is_likely_incomplete(text),
        is_greeting=is_greeting(text),
        contains_target_language_markers=contains_target_language_markers(text),
    )
