"""Query language parsing.

Supports a small boolean syntax on top of plain words:

    "exact phrase"     the phrase must appear in the searched text
    -word              the word must not appear anywhere
    a OR b             either word satisfies the group
    word               every plain word must prefix-match some word

Parsing never fails. Malformed input (an unterminated quote, a dangling ``OR``,
a bare ``-``) degrades to the closest sensible reading.
"""

from __future__ import annotations

import re

from podsearch.core.models import ParsedQuery

OR_OPERATOR = "OR"

# An unterminated quote runs to the end of the string.
_PHRASE_PATTERN = re.compile(r'"([^"]*)"?')

_OR = object()
_BREAK = object()


def parse_query(raw: str) -> ParsedQuery:
    """Parse a raw query string into a ParsedQuery.

    Args:
        raw: Query text as typed by the user.

    Returns:
        ParsedQuery. Empty or whitespace-only input yields an empty
        ParsedQuery, which matches everything.
    """
    if not raw or not raw.strip():
        return ParsedQuery()

    phrases: list[str] = []
    for match in _PHRASE_PATTERN.finditer(raw):
        phrase = match.group(1).strip().lower()
        if phrase and phrase not in phrases:
            phrases.append(phrase)
    remainder = _PHRASE_PATTERN.sub(" ", raw)

    excluded: set[str] = set()
    items: list[object] = []
    for token in remainder.split():
        if token == OR_OPERATOR:
            items.append(_OR)
        elif token.startswith("-"):
            term = token.lstrip("-").lower()
            if term:
                excluded.add(term)
            items.append(_BREAK)
        else:
            items.append(token.lower())

    chains: list[list[str]] = []
    joining = False
    for item in items:
        if item is _OR:
            joining = bool(chains)
        elif item is _BREAK:
            joining = False
        else:
            if joining:
                chains[-1].append(item)  # type: ignore[arg-type]
            else:
                chains.append([item])  # type: ignore[list-item]
            joining = False

    required: set[str] = set()
    groups: list[frozenset[str]] = []
    for chain in chains:
        members = frozenset(chain)
        if len(members) == 1:
            required |= members
        elif members not in groups:
            groups.append(members)

    return ParsedQuery(
        exact_phrases=tuple(phrases),
        must_exclude=frozenset(excluded),
        should_include=tuple(groups),
        required_terms=frozenset(required),
    )


def complete_words(raw: str) -> str:
    """Return the words of a query the user has finished typing.

    A word is complete once whitespace follows it. The word still being typed
    is left out unless it is the only word.

    >>> complete_words("hele hi")
    'hele'
    >>> complete_words("hele historien ")
    'hele historien'
    >>> complete_words("hele")
    'hele'
    """
    trimmed = raw.strip()
    if not trimmed:
        return ""
    if raw[-1].isspace():
        return " ".join(trimmed.split())

    words = trimmed.split()
    if len(words) == 1:
        return trimmed
    return " ".join(words[:-1])


def remote_terms(raw: str) -> str:
    """Return the complete words of a query without query syntax.

    The remote catalog does not understand phrases, exclusions or ``OR``, so
    quotes are dropped and excluded terms and operators are removed. The full
    syntax is applied locally to whatever the catalog returns.
    """
    terms = []
    for token in complete_words(raw).replace('"', " ").split():
        if token == OR_OPERATOR or token.startswith("-"):
            continue
        terms.append(token)
    return " ".join(terms)
