"""
Keyword and suggested-action extraction for ticket groups.

Both functions are pure and deterministic: the same tickets in the same
order always give the same keywords and the same suggestion text, so
repeated analysis runs do not rewrite stored alerts for nothing.

Suggestion text is in Polish, the helpdesk's deployment locale. The
stop-word list covers Polish and English because users file in both.
"""

import re
from collections import Counter
from typing import Iterable, Sequence

from recurring_core.alerts.types import GroupKey, GroupType

DEFAULT_KEYWORD_TOP_N = 8
MIN_TOKEN_LENGTH = 3
FAQ_OCCURRENCES = 5

# Runs of Unicode letters/digits; underscore counts as a separator
_TOKEN_RE = re.compile(r"[^\W_]+")

STOP_WORDS = frozenset({
    # Polish
    "jest", "nie", "czy", "dla", "się", "sie", "oraz", "ale", "jak", "już",
    "jeszcze", "tak", "też", "tez", "mam", "mamy", "może", "moze", "przy",
    "przez", "pod", "nad", "lub", "albo", "gdy", "kiedy", "który", "która",
    "które", "ten", "tego", "tej", "tym", "jego", "jej", "ich",
    "bardzo", "proszę", "prosze", "dzień", "dobry", "pozdrawiam", "dziękuję",
    "dziekuje", "witam", "był", "była", "było", "będzie",
    # English
    "the", "and", "for", "that", "this", "with", "from", "have", "has",
    "had", "was", "were", "are", "but", "not", "you", "your", "our", "can",
    "cannot", "will", "would", "should", "could", "there", "their", "they",
    "been", "into", "when", "what", "which", "who", "how", "all", "any",
    "some", "please", "thanks", "thank", "hello", "regards", "its", "also",
})

# Guidance keyed on the exact group. Values are matched case-insensitively.
GROUP_SUGGESTIONS: dict[GroupType, dict[str, str]] = {
    GroupType.CATEGORY: {
        "HARDWARE": "Sprawdź sprzęt - możliwa wymiana/naprawa",
        "SOFTWARE": "Aktualizacja oprogramowania lub reorganizacja licencji",
        "NETWORK": "Sprawdź stabilność sieci w lokalizacjach zgłaszających",
        "ACCOUNT": "Przejrzyj procesy zakładania i odblokowywania kont",
        "OTHER": "Przejrzyj zgłoszenia i przypisz im właściwe kategorie",
    },
    GroupType.PRIORITY: {
        "CRITICAL": "Eskaluj do zespołu odpowiedzialnego i zwołaj analizę incydentu",
        "HIGH": "Zweryfikuj obciążenie zespołu i czasy reakcji SLA",
    },
    GroupType.TAG: {},
}

ACCESS_KEYWORDS = frozenset({
    "login", "logowanie", "hasło", "haslo", "password", "dostęp", "dostep", "access",
})
ACCESS_SUGGESTION = "Rozważ szkolenie użytkowników lub reset haseł masowych"
FAQ_SUGGESTION = "Rozważ stworzenie artykułu FAQ lub procedury"
FALLBACK_TEMPLATE = (
    "Analiza przyczyny źródłowej: {count} podobnych zgłoszeń, "
    "najczęstsze słowo kluczowe: {keyword}"
)
NO_KEYWORD = "brak"


def tokenize(text: str) -> list[str]:
    """Lowercase and split on non-alphanumeric boundaries."""
    return _TOKEN_RE.findall(text.lower())


def extract_keywords(
    texts: Iterable[str],
    top_n: int = DEFAULT_KEYWORD_TOP_N,
) -> list[str]:
    """
    Most frequent meaningful tokens across texts.

    Tokens shorter than MIN_TOKEN_LENGTH and stop words are dropped.
    Ties in frequency keep first-seen order.

    Args:
        texts: Ticket texts in a stable order
        top_n: Maximum number of keywords

    Returns:
        Up to top_n tokens, most frequent first
    """
    counts: Counter[str] = Counter()
    for text in texts:
        for token in tokenize(text):
            if len(token) < MIN_TOKEN_LENGTH or token in STOP_WORDS:
                continue
            counts[token] += 1

    # Counter keeps insertion order and sorted() is stable
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return [token for token, _ in ranked[:top_n]]


def suggest_action(
    group_key: GroupKey,
    occurrence_count: int,
    keywords: Sequence[str],
) -> str:
    """
    Build guidance text for an alert.

    Every matching rule contributes a sentence, in this order: group table,
    access keywords, FAQ for high volume. With no match, a generic
    root-cause template names the count and the top keyword.
    """
    suggestions = []

    group_suggestion = GROUP_SUGGESTIONS[group_key.type].get(group_key.value.upper())
    if group_suggestion:
        suggestions.append(group_suggestion)

    if any(keyword in ACCESS_KEYWORDS for keyword in keywords):
        suggestions.append(ACCESS_SUGGESTION)

    if occurrence_count >= FAQ_OCCURRENCES:
        suggestions.append(FAQ_SUGGESTION)

    if suggestions:
        return "; ".join(suggestions)

    return FALLBACK_TEMPLATE.format(
        count=occurrence_count,
        keyword=keywords[0] if keywords else NO_KEYWORD,
    )
