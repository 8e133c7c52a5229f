from __future__ import annotations

import pytest

from transit_arrivals.domain.algorithms.search_scoring import (
    effective_limit,
    normalize_route_number,
    route_relevance,
    stop_relevance,
)


def test_normalize_route_number() -> None:
    assert normalize_route_number("002") == "2"
    assert normalize_route_number("049") == "49"
    assert normalize_route_number("R4") == "R4"
    assert normalize_route_number("") == ""


@pytest.mark.parametrize(
    ("short", "long_", "query", "score"),
    [
        ("002", None, "2", 100.0),
        ("2", None, "2", 100.0),
        ("049", None, "49", 100.0),
        ("R4", None, "R", 90.0),
        ("R4", None, "4", 70.0),
        ("CANADA LINE", None, "CAN", 80.0),
        ("049", "UBC - Metrotown Station", "METRO", 50.0),
        ("R4", "41st Ave", "99", 0.0),
    ],
)
def test_route_relevance(
    short: str, long_: str | None, query: str, score: float
) -> None:
    assert route_relevance(short, long_, query) == score


def test_stop_relevance_prefers_prefix_and_word_start() -> None:
    prefix = stop_relevance("Main St @ 1st Ave", "main")
    word = stop_relevance("Main St @ Broadway", "broadway")
    late_word = stop_relevance("UBC Exchange Bay 7", "bay")
    mid_word = stop_relevance("UBC Exchange Bay 7", "xchange")

    assert prefix == pytest.approx(120.0 + 20.0 * 4 / 17)
    assert word == pytest.approx(100.0 + 20.0 * 8 / 18)
    assert late_word == pytest.approx(80.0 + 20.0 * 3 / 18)
    assert mid_word == pytest.approx(80.0 + 20.0 * 7 / 18)
    assert stop_relevance("Main St", "granville") == 0.0


def test_effective_limit_is_capped() -> None:
    assert effective_limit(10) == 10
    assert effective_limit(50) == 20
    assert effective_limit(-3) == 0
