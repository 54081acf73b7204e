"""Fuzzy ranking of sessions for interactive filtering.

Each whitespace-separated query atom must appear in the session's search
text as a case-insensitive subsequence. Among all alignments the best-scoring
one is chosen: matches earn a base score plus bonuses for landing on word
boundaries, camelCase humps and consecutive runs, while gaps between matched
characters are penalized.
"""
from __future__ import annotations

from typing import Optional, Sequence

from agf.models import CanonicalSession, RankedSession, RankOptions

SCORE_MATCH = 16
SCORE_GAP_START = -3
SCORE_GAP_EXTENSION = -1

BONUS_BOUNDARY = 8
BONUS_BOUNDARY_WHITE = 10
BONUS_BOUNDARY_DELIMITER = 9
BONUS_CAMEL123 = 7
BONUS_CONSECUTIVE = 4
BONUS_FIRST_CHAR_MULTIPLIER = 2

_DELIMITERS = frozenset("/,:;|-_.")

_WHITE, _DELIMITER, _NON_WORD, _LOWER, _UPPER, _NUMBER, _LETTER = range(7)
_WORD_CLASSES = (_LOWER, _UPPER, _NUMBER, _LETTER)

_NEG = float("-inf")


def _char_class(char: str) -> int:
    if char.isspace():
        return _WHITE
    if char in _DELIMITERS:
        return _DELIMITER
    if char.isdigit():
        return _NUMBER
    if char.isalpha():
        if char.islower():
            return _LOWER
        if char.isupper():
            return _UPPER
        return _LETTER
    return _NON_WORD


def _bonus(prev_class: int, cls: int) -> int:
    if cls in _WORD_CLASSES:
        if prev_class == _WHITE:
            return BONUS_BOUNDARY_WHITE
        if prev_class == _DELIMITER:
            return BONUS_BOUNDARY_DELIMITER
        if prev_class == _NON_WORD:
            return BONUS_BOUNDARY
    if prev_class == _LOWER and cls == _UPPER:
        return BONUS_CAMEL123
    if prev_class != _NUMBER and cls == _NUMBER:
        return BONUS_CAMEL123
    if cls == _WHITE:
        return BONUS_BOUNDARY_WHITE
    if cls in (_DELIMITER, _NON_WORD):
        return BONUS_BOUNDARY
    return 0


def _fold(char: str) -> str:
    return char.lower()


def _match_atom(
    folded: Sequence[str],
    bonuses: Sequence[int],
    atom: str,
) -> Optional[tuple[int, list[int]]]:
    needle = [_fold(char) for char in atom]
    m = len(needle)
    n = len(folded)
    if m == 0:
        return 0, []
    if m > n:
        return None

    # Narrow the window: the earliest start and latest end any match can use.
    first = -1
    k = 0
    for j in range(n):
        if folded[j] == needle[k]:
            if k == 0:
                first = j
            k += 1
            if k == m:
                break
    if k < m:
        return None
    last = -1
    k = m - 1
    for j in range(n - 1, first - 1, -1):
        if folded[j] == needle[k]:
            if k == m - 1:
                last = j
            k -= 1
            if k < 0:
                break
    window = range(first, last + 1)

    width = last - first + 1
    scores = [[_NEG] * width for _ in range(m)]
    chunk_bonus = [[0] * width for _ in range(m)]
    back = [[-1] * width for _ in range(m)]

    for j in window:
        col = j - first
        if folded[j] == needle[0]:
            scores[0][col] = SCORE_MATCH + bonuses[j] * BONUS_FIRST_CHAR_MULTIPLIER
            chunk_bonus[0][col] = bonuses[j]

    for i in range(1, m):
        prev_row = scores[i - 1]
        best_gap = _NEG
        best_gap_col = -1
        for j in window:
            col = j - first
            if col >= 2:
                if best_gap != _NEG:
                    best_gap += SCORE_GAP_EXTENSION
                candidate = prev_row[col - 2]
                if candidate != _NEG and candidate + SCORE_GAP_START > best_gap:
                    best_gap = candidate + SCORE_GAP_START
                    best_gap_col = col - 2
            if folded[j] != needle[i]:
                continue

            bonus = bonuses[j]
            best = _NEG
            best_chunk = bonus
            best_back = -1
            if col >= 1 and prev_row[col - 1] != _NEG:
                chunk = chunk_bonus[i - 1][col - 1]
                if bonus >= BONUS_BOUNDARY and bonus > chunk:
                    chunk = bonus
                best = prev_row[col - 1] + SCORE_MATCH + max(bonus, chunk, BONUS_CONSECUTIVE)
                best_chunk = chunk
                best_back = col - 1
            if best_gap != _NEG:
                gapped = best_gap + SCORE_MATCH + bonus
                if gapped > best:
                    best = gapped
                    best_chunk = bonus
                    best_back = best_gap_col
            if best != _NEG:
                scores[i][col] = best
                chunk_bonus[i][col] = best_chunk
                back[i][col] = best_back

    final_row = scores[m - 1]
    end_col = -1
    top = _NEG
    for col, value in enumerate(final_row):
        if value > top:
            top = value
            end_col = col
    if end_col < 0:
        return None

    positions = []
    col = end_col
    for i in range(m - 1, -1, -1):
        positions.append(col + first)
        col = back[i][col]
    positions.reverse()
    return int(top), positions


class FuzzyMatcher:
    """Stateless matcher; reusable across keystrokes."""

    def match(self, text: str, query: str) -> Optional[tuple[int, list[int]]]:
        """Score ``text`` against ``query``.

        Returns ``(score, positions)`` with positions ascending and unique,
        or ``None`` when any query atom fails to match.
        """
        atoms = query.split()
        if not atoms:
            return 0, []
        folded = [_fold(char) for char in text]
        classes = [_char_class(char) for char in text]
        bonuses = [
            _bonus(classes[j - 1] if j > 0 else _WHITE, classes[j])
            for j in range(len(text))
        ]

        total = 0
        positions: set[int] = set()
        for atom in atoms:
            result = _match_atom(folded, bonuses, atom)
            if result is None:
                return None
            score, matched = result
            total += score
            positions.update(matched)
        return total, sorted(positions)

    def filter(
        self,
        sessions: Sequence[CanonicalSession],
        query: str,
        options: RankOptions | None = None,
    ) -> list[RankedSession]:
        options = options or RankOptions()
        if not query.strip():
            return [
                RankedSession(index=index, session=session)
                for index, session in enumerate(sessions)
            ]

        results: list[RankedSession] = []
        for index, session in enumerate(sessions):
            text = session.search_text(options.max_summaries, options.include_summaries)
            matched = self.match(text, query)
            if matched is None:
                continue
            score, positions = matched
            results.append(
                RankedSession(index=index, session=session, score=score, positions=positions)
            )

        # Equal scores fall back to recency, then to input order.
        results.sort(key=lambda r: (-r.score, -r.session.timestamp, r.index))
        return results


_default_matcher = FuzzyMatcher()


def rank(
    sessions: Sequence[CanonicalSession],
    query: str,
    options: RankOptions | None = None,
) -> list[RankedSession]:
    return _default_matcher.filter(sessions, query, options)
