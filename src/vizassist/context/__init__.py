"""Dashboard context detection for the embedded assistant widget."""

from vizassist.context.detector import ContextDetector
from vizassist.context.heuristics import DashboardClassifier, KeywordClassifier
from vizassist.context.host import ChangeKind, PageSnapshot
from vizassist.context.models import (
    DashboardContext,
    DashboardInsights,
    FilterInfo,
    ParameterInfo,
    WorksheetInfo,
)
from vizassist.context.notifier import ChangeNotifier, NotifierState
from vizassist.context.probes import ProbeResult, ProbeStatus, first_success
from vizassist.context.session import WidgetSession

__all__ = [
    "ChangeKind",
    "ChangeNotifier",
    "ContextDetector",
    "DashboardClassifier",
    "DashboardContext",
    "DashboardInsights",
    "FilterInfo",
    "KeywordClassifier",
    "NotifierState",
    "PageSnapshot",
    "ParameterInfo",
    "ProbeResult",
    "ProbeStatus",
    "WidgetSession",
    "WorksheetInfo",
    "first_success",
]
