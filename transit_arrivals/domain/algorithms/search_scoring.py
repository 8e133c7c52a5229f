from __future__ import annotations

MAX_SEARCH_RESULTS = 20
MAX_ROUTE_SCORE = 100.0


def normalize_route_number(name: str) -> str:
    """Strip leading zeros from all-digit route names ("002" -> "2")."""

    if name and name.isdigit():
        return str(int(name))
    return name


def route_relevance(short_name: str, long_name: str | None, query: str) -> float:
    """Score a route against an uppercased, trimmed query.

    Ranking: exact 100, starts-with 80, contains 60, long-name-only 40, plus a
    10 point bonus for short names of up to 3 characters. Scores are capped at
    100 so an exact match never ranks below another exact match.
    """

    short = short_name.upper()
    long_ = (long_name or "").upper()
    short_norm = normalize_route_number(short)
    query_norm = normalize_route_number(query)

    if short_norm == query_norm or short == query:
        score = 100.0
    elif short.startswith(query) or short_norm.startswith(query_norm):
        score = 80.0
    elif query in short or query_norm in short_norm:
        score = 60.0
    elif query in long_:
        score = 40.0
    else:
        return 0.0

    if len(short) <= 3:
        score += 10.0
    return min(score, MAX_ROUTE_SCORE)


def stop_relevance(stop_name: str, query: str) -> float:
    """Score a stop name against a lowercased, trimmed query."""

    name = stop_name.lower()
    i = name.find(query)
    if i == -1 or not name:
        return 0.0

    score = 50.0
    if i == 0:
        score += 50.0
    elif i <= 10:
        score += 30.0
    else:
        score += 10.0

    if i == 0 or name[i - 1] == " ":
        score += 20.0

    score += 20.0 * len(query) / len(name)
    return score


def effective_limit(limit: int) -> int:
    return max(0, min(limit, MAX_SEARCH_RESULTS))
