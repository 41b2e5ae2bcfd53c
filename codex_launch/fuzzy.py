"""
Fuzzy matching for quick launch/resume and the picker's live filter.

Scoring follows the usual subsequence scheme: every matched character is
worth ``SCORE_MATCH``; matches at word boundaries, camelCase humps and in
consecutive runs earn bonuses; gaps between matches cost points. A query
that is not a (case-insensitive) subsequence of the text does not match.
"""

from typing import Callable, Iterable, Optional, Sequence, TypeVar

T = TypeVar("T")

SCORE_MATCH = 16
SCORE_GAP_START = -3
SCORE_GAP_EXTENSION = -1
BONUS_BOUNDARY = 8
BONUS_CAMEL = 7
BONUS_CONSECUTIVE = 4
BONUS_FIRST_CHAR_MULTIPLIER = 2

# Quick actions auto-pick the top match only when it leads by this much
CONFIDENT_MARGIN = 25
TOP_TARGETS = 12
TOP_SESSIONS = 20

_BOUNDARY_CHARS = set(" /\\-_.:,;|()[]{}\"'\t")


def _fold_case(text: str) -> str:
    """Lowercase ``text`` one code point per character, so indices line up."""
    return "".join(c.lower()[0] for c in text)


def _bonus_at(text: str, pos: int) -> int:
    if pos == 0:
        return BONUS_BOUNDARY
    prev, cur = text[pos - 1], text[pos]
    if prev in _BOUNDARY_CHARS:
        return BONUS_BOUNDARY
    if prev.islower() and cur.isupper():
        return BONUS_CAMEL
    if not prev.isdigit() and cur.isdigit():
        return BONUS_CAMEL
    return 0


def _score_positions(text: str, positions: Sequence[int]) -> int:
    score = 0
    prev = None
    for i, pos in enumerate(positions):
        score += SCORE_MATCH
        bonus = _bonus_at(text, pos)
        if i == 0:
            bonus *= BONUS_FIRST_CHAR_MULTIPLIER
        if prev is not None:
            if pos == prev + 1:
                bonus = max(bonus, BONUS_CONSECUTIVE)
            else:
                gap = pos - prev - 1
                score += SCORE_GAP_START + SCORE_GAP_EXTENSION * (gap - 1)
        score += bonus
        prev = pos
    return score


def _subsequence_window(lower_text: str, query: str) -> Optional[list[int]]:
    """
    Find a tight alignment of ``query`` in ``lower_text``.

    Forward pass finds where the earliest full match ends; the backward
    pass from there finds the latest start, giving the shortest window.
    """
    qi = 0
    end = -1
    for ti, ch in enumerate(lower_text):
        if ch == query[qi]:
            qi += 1
            if qi == len(query):
                end = ti
                break
    if end < 0:
        return None

    qi = len(query) - 1
    start = end
    for ti in range(end, -1, -1):
        if lower_text[ti] == query[qi]:
            qi -= 1
            if qi < 0:
                start = ti
                break

    positions = []
    qi = 0
    for ti in range(start, end + 1):
        if qi < len(query) and lower_text[ti] == query[qi]:
            positions.append(ti)
            qi += 1
    return positions


def fuzzy_score(query: str, text: str) -> Optional[int]:
    """
    Score ``text`` against ``query``, case-insensitively.

    Whitespace in the query is ignored. A blank query matches with score 0.

    Args:
        query: What the user typed
        text: Rendered candidate text

    Returns:
        Score (higher is better), or None if the query does not match
    """
    q = "".join(_fold_case(query).split())
    if not q:
        return 0
    lower = _fold_case(text)

    positions = _subsequence_window(lower, q)
    if positions is None:
        return None
    best = _score_positions(text, positions)

    # A contiguous hit can outscore the tightest subsequence window
    idx = lower.find(q)
    while idx >= 0:
        best = max(best, _score_positions(text, range(idx, idx + len(q))))
        idx = lower.find(q, idx + 1)
    return best


def rank(
    query: str, items: Iterable[T], key: Callable[[T], str] = str
) -> list[tuple[int, T]]:
    """
    Score and sort items by match quality, best first.

    Items that do not match are dropped. Ties keep their original order,
    and a blank query returns every item in original order.
    """
    if not query.strip():
        return [(0, item) for item in items]
    scored = []
    for item in items:
        score = fuzzy_score(query, key(item))
        if score is not None:
            scored.append((score, item))
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return scored


def filter_indices(query: str, texts: Sequence[str]) -> list[int]:
    """Indices of ``texts`` that match ``query``, best match first."""
    return [i for _, i in rank(query, range(len(texts)), key=lambda i: texts[i])]


def confident_pick(
    scored: Sequence[tuple[int, T]],
    top_n: int,
    margin: int = CONFIDENT_MARGIN,
) -> tuple[Optional[T], list[T]]:
    """
    Decide whether a ranked result is unambiguous.

    Args:
        scored: Output of :func:`rank`, best first
        top_n: How many candidates to offer when ambiguous
        margin: Lead the top score needs over the runner-up

    Returns:
        ``(item, [])`` when there is a single or clearly leading match,
        otherwise ``(None, first top_n candidates)``
    """
    if not scored:
        return None, []
    if len(scored) == 1:
        return scored[0][1], []
    top_score, top = scored[0]
    second_score = scored[1][0]
    if top_score >= second_score + margin:
        return top, []
    return None, [item for _, item in scored[:top_n]]
