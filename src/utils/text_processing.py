"""
Text helpers shared by the aggregates.

Email normalization, word counting, child-friendliness screening and
simple keyword extraction.
"""

import re
from typing import List

# Words that never belong in content shown to children
INAPPROPRIATE_WORDS = frozenset({
    "kill", "killing", "murder", "blood", "bloody", "gun", "guns", "weapon",
    "drugs", "alcohol", "beer", "cigarette", "hate", "stupid", "idiot",
    "damn", "hell", "sexy", "torture", "suicide",
})

# Same letter five or more times in a row ("aaaaargh")
_REPEATED_LETTERS = re.compile(r"([a-zA-ZäöüÄÖÜß])\1{4,}")

ACTION_VERBS = frozenset({
    "run", "runs", "ran", "jump", "jumps", "jumped", "climb", "climbs", "climbed",
    "fly", "flies", "flew", "swim", "swims", "swam", "explore", "explores", "explored",
    "help", "helps", "helped", "build", "builds", "built", "search", "searches",
    "searched", "discover", "discovers", "discovered", "save", "saves", "saved",
    "open", "opens", "opened", "find", "finds", "found",
})


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def split_words(text: str) -> List[str]:
    """Whitespace split; empty entries dropped"""
    return (text or "").split()


def count_words(text: str) -> int:
    return len(split_words(text))


def _clean_word(word: str) -> str:
    return re.sub(r"[^\wäöüÄÖÜß]", "", word.lower())


def is_child_friendly(text: str) -> bool:
    """
    Screen text for content unsuitable for children.

    Rejects inappropriate words, shouting (long all-caps runs) and
    excessive letter repetition.
    """
    if not text:
        return True

    for word in split_words(text):
        if _clean_word(word) in INAPPROPRIATE_WORDS:
            return False

    if _REPEATED_LETTERS.search(text):
        return False

    letters = [c for c in text if c.isalpha()]
    if len(letters) >= 20 and sum(1 for c in letters if c.isupper()) / len(letters) > 0.7:
        return False

    return True


def extract_key_words(text: str, limit: int = 5) -> List[str]:
    """Words longer than four letters that occur exactly once, in reading order"""
    words = [_clean_word(w) for w in split_words(text)]
    words = [w for w in words if w]
    counts = {}
    for word in words:
        counts[word] = counts.get(word, 0) + 1

    key_words = []
    for word in words:
        if len(word) > 4 and counts[word] == 1:
            key_words.append(word)
        if len(key_words) >= limit:
            break
    return key_words


def contains_action(text: str) -> bool:
    return any(_clean_word(w) in ACTION_VERBS for w in split_words(text))


def truncate(text: str, max_length: int, suffix: str = "...") -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length].rstrip() + suffix
