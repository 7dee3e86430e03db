"""Tier 3: classify the page from its visible text when no data is reachable."""

from __future__ import annotations

import abc

from vizassist.context.host import PageSnapshot
from vizassist.context.models import DashboardInsights

GENERAL_DASHBOARD = "General Financial Dashboard"

# (keyword, dashboard type); first match wins
_TYPE_RULES: tuple[tuple[str, str], ...] = (
    ("nhs", "NHS Healthcare Financial Data"),
    ("margin", "Pharmaceutical Margin Analysis"),
)

_CATEGORY_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("patient",), "Patient Data"),
    (("claimed",), "Claimed Items"),
    (("category",), "Drug Categories"),
    (("procurement",), "Procurement Data"),
)

_METRIC_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("margin",), "Margins"),
    (("revenue", "sales"), "Revenue/Sales"),
    (("cost",), "Costs"),
    (("count",), "Counts"),
)


def looks_like_tableau(page: PageSnapshot) -> bool:
    if page.in_frame or page.has_tableau_marker or page.has_tableau_global:
        return True
    return any("tableau" in s.lower() for s in (page.url, page.referrer, page.title))


class DashboardClassifier(abc.ABC):
    """Infers coarse dashboard insights from what the page shows."""

    @abc.abstractmethod
    def classify(self, page: PageSnapshot) -> DashboardInsights:
        ...


class KeywordClassifier(DashboardClassifier):
    """Case-insensitive keyword match over title, visible text and referrer."""

    def classify(self, page: PageSnapshot) -> DashboardInsights:
        haystack = " ".join((page.title, page.text, page.referrer)).lower()

        dashboard_type = GENERAL_DASHBOARD
        for keyword, label in _TYPE_RULES:
            if keyword in haystack:
                dashboard_type = label
                break

        return DashboardInsights(
            dashboard_type=dashboard_type,
            categories=_matches(haystack, _CATEGORY_RULES),
            metrics=_matches(haystack, _METRIC_RULES),
            tableau_detected=looks_like_tableau(page),
        )


def _matches(haystack: str, rules: tuple[tuple[tuple[str, ...], str], ...]) -> tuple[str, ...]:
    return tuple(label for keywords, label in rules if any(k in haystack for k in keywords))
