"""Full-text matching and relevance scoring for catalog search.

SQLite has no built-in equivalent of a stemmed text search vector, so the
ranking is done in Python and registered on every connection as the SQL
function ``search_rank(title, body, query)`` (see ``app.database``).

Matching is AND over query terms: a row ranks above zero only when every
term of the query occurs in its title or body. Title hits weigh twice as much
as body hits and the sum is divided by ``1 + ln(word count)``. A query
whose words are all stop words matches nothing.
"""
import math
import re
from functools import lru_cache

TITLE_WEIGHT = 2.0
BODY_WEIGHT = 1.0

_WORD_RE = re.compile(r"[^\W_]+", re.UNICODE)

STOP_WORDS = frozenset({
    # English
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "how",
    "in", "is", "it", "of", "on", "or", "that", "the", "this", "to", "was",
    "what", "with", "your", "you",
    # Spanish
    "de", "del", "el", "en", "la", "las", "los", "para", "por", "con", "un",
    "una", "y", "o", "su", "tu",
})

# Longest suffix first
_SUFFIXES = (
    ("ations", ""), ("ation", ""), ("ating", ""), ("ated", ""), ("ates", ""),
    ("ate", ""), ("ings", ""), ("ing", ""), ("ments", ""), ("ment", ""),
    ("ness", ""), ("ies", "y"), ("ied", "y"), ("edly", ""), ("ed", ""),
    ("ly", ""),
)


@lru_cache(maxsize=4096)
def stem(word: str) -> str:
    """Reduce a lowercase word to a crude stem."""
    if len(word) <= 3:
        return word

    for suffix, replacement in _SUFFIXES:
        if word.endswith(suffix) and len(word) - len(suffix) >= 3:
            word = word[: -len(suffix)] + replacement
            break
    else:
        if word.endswith("es") and word[:-2].endswith(("s", "x", "z", "ch", "sh")):
            word = word[:-2]
        elif word.endswith("s") and not word.endswith("ss"):
            word = word[:-1]

    if word.endswith("e") and len(word) > 3:
        word = word[:-1]
    return word


def tokenize(text: str | None) -> list[str]:
    """Split text into lowercase stems, stop words removed."""
    if not text:
        return []
    return [
        stem(word)
        for word in _WORD_RE.findall(text.lower())
        if word not in STOP_WORDS
    ]


def query_terms(query: str | None) -> list[str]:
    """Unique stems of a search query, in order of appearance."""
    seen: list[str] = []
    for term in tokenize(query):
        if term not in seen:
            seen.append(term)
    return seen


def search_rank(title: str | None, body: str | None, query: str | None) -> float:
    """Relevance of a document for a query.

    Returns 0.0 when any query term is missing from the document, 1.0 for a
    blank query (every row matches equally) and 0.0 for a query made only of
    stop words.
    """
    terms = query_terms(query)
    if not terms:
        return 0.0 if (query or "").strip() else 1.0

    title_words = tokenize(title)
    body_words = tokenize(body)

    score = 0.0
    for term in terms:
        title_hits = title_words.count(term)
        body_hits = body_words.count(term)
        if not title_hits and not body_hits:
            return 0.0
        score += TITLE_WEIGHT * title_hits + BODY_WEIGHT * body_hits

    # At least one word matched, so the length is never zero
    length = len(title_words) + len(body_words)
    return round(score / (1.0 + math.log(length)), 6)
