"""
Routing feedback: logging and telemetry for routing decisions.

The feedback system only observes. It records routing decisions in a
bounded history, logs metrics and handle selections, and keeps a set of
short-lived indicator records a host UI can draw (highlighted handles,
path previews, decision badges). Nothing it returns feeds back into
routing.

Usage:
    >>> feedback = RoutingFeedbackSystem()
    >>> engine = OrthogonalRoutingEngine(feedback=feedback)
    >>> engine.calculate_orthogonal_path(source_handle, target_handle)
    >>> print(feedback.summary())
"""

import logging
import time
from collections import deque
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Deque, Dict, List, Optional, Sequence

from .config import RoutingConfig
from .models import HandleInfo, OrthogonalPath, RoutingMetrics

if TYPE_CHECKING:
    from .routing_engine import RoutingComparison


class IndicatorType(Enum):
    HANDLE_HIGHLIGHT = "handle-highlight"
    PATH_PREVIEW = "path-preview"
    ROUTING_DECISION = "routing-decision"


@dataclass
class FeedbackOptions:
    """
    Attributes:
        enable_console_logging: Emit log records for decisions and metrics.
        enable_visual_indicators: Keep indicator records for the host UI.
        log_level: Level used for metric records ("debug" to "error").
        visual_indicator_duration: Indicator lifetime in milliseconds.
    """

    enable_console_logging: bool = True
    enable_visual_indicators: bool = True
    log_level: str = "info"
    visual_indicator_duration: float = 3000


@dataclass
class RoutingDecision:
    """One routing decision kept in the history."""

    selected_path: OrthogonalPath
    alternative_path: OrthogonalPath
    reason: str
    efficiency: float
    timestamp: float = 0.0


@dataclass
class VisualIndicator:
    """A short-lived feedback record for the host UI to draw."""

    id: str
    type: IndicatorType
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = 0.0


class RoutingFeedbackSystem:
    """
    Collects and logs routing feedback.

    Indicators expire after ``visual_indicator_duration``; expiry is
    checked whenever indicators are read or added, against an injectable
    millisecond clock.
    """

    def __init__(
        self,
        options: Optional[FeedbackOptions] = None,
        max_history_size: Optional[int] = None,
        clock: Optional[Callable[[], float]] = None,
        config: Optional[RoutingConfig] = None,
    ):
        """
        Args:
            options: Initial feedback options.
            max_history_size: Decisions retained before the oldest is dropped;
                defaults to the config's ``max_history_size``.
            clock: Returns the current time in milliseconds.
            config: Routing configuration supplying the history bound.
        """
        if max_history_size is None:
            max_history_size = (config or RoutingConfig()).max_history_size
        self.options = options or FeedbackOptions()
        self.history: Deque[RoutingDecision] = deque(maxlen=max_history_size)
        self.indicators: Dict[str, VisualIndicator] = {}
        self._clock = clock or (lambda: time.monotonic() * 1000)
        self._counter = 0
        self.logger = logging.getLogger("orthoflow.feedback")

        # Logger configuration (default)
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.INFO)

    def display_routing_decision(self, decision: RoutingDecision) -> None:
        """Record a decision, log it and show its indicator."""
        if not decision.timestamp:
            decision.timestamp = self._clock()
        self.history.append(decision)

        if self.options.enable_console_logging:
            self.logger.info(
                "Routing decision: %s (%g) over %s (%g), efficiency %.2f: %s",
                decision.selected_path.routing_type.value,
                decision.selected_path.total_length,
                decision.alternative_path.routing_type.value,
                decision.alternative_path.total_length,
                decision.efficiency,
                decision.reason,
            )
        if self.options.enable_visual_indicators:
            self._add_indicator(
                IndicatorType.ROUTING_DECISION, {"decision": decision}
            )

    def show_path_comparison(self, comparison: "RoutingComparison") -> None:
        """Record the outcome of comparing two candidate paths."""
        self.display_routing_decision(
            RoutingDecision(
                selected_path=comparison.selected_path,
                alternative_path=comparison.alternative_path,
                reason=comparison.reason,
                efficiency=comparison.efficiency,
            )
        )
        if self.options.enable_visual_indicators:
            self._add_indicator(IndicatorType.PATH_PREVIEW, {"comparison": comparison})

    def log_routing_metrics(self, metrics: RoutingMetrics) -> None:
        if not self.options.enable_console_logging:
            return
        level = logging.getLevelName(self.options.log_level.upper())
        if not isinstance(level, int):
            level = logging.INFO
        self.logger.log(level, "Routing metrics: %s", metrics.as_dict())

    def highlight_selected_handles(self, handles: Sequence[HandleInfo]) -> None:
        """Replace the handle highlights with the given handles."""
        if self.options.enable_console_logging:
            self.logger.info(
                "Handle selection: %s",
                ", ".join(f"{h.node_id}/{h.id} ({h.side.value})" for h in handles),
            )
        if not self.options.enable_visual_indicators:
            return
        self.clear_indicators_by_type(IndicatorType.HANDLE_HIGHLIGHT)
        for handle in handles:
            self._add_indicator(IndicatorType.HANDLE_HIGHLIGHT, {"handle": handle})

    def clear_all_indicators(self) -> None:
        self.indicators.clear()

    def clear_indicators_by_type(self, indicator_type: IndicatorType) -> None:
        for key in [k for k, v in self.indicators.items() if v.type is indicator_type]:
            del self.indicators[key]

    def get_active_indicators(self) -> List[VisualIndicator]:
        self._expire_indicators()
        return list(self.indicators.values())

    def get_routing_history(self) -> List[RoutingDecision]:
        """Copy of the history, oldest first."""
        return list(self.history)

    def get_options(self) -> FeedbackOptions:
        return FeedbackOptions(**asdict(self.options))

    def update_options(self, **changes: Any) -> None:
        """
        Change some options, keeping the rest.

        Raises:
            TypeError: For an unknown option name.
        """
        merged = asdict(self.options)
        for name, value in changes.items():
            if name not in merged:
                raise TypeError(f"Unknown feedback option: {name}")
            merged[name] = value
        self.options = FeedbackOptions(**merged)

    def get_statistics(self) -> Dict[str, Any]:
        self._expire_indicators()
        indicator_types: Dict[str, int] = {}
        for indicator in self.indicators.values():
            key = indicator.type.value
            indicator_types[key] = indicator_types.get(key, 0) + 1
        return {
            "active_indicators": len(self.indicators),
            "history_size": len(self.history),
            "indicator_types": indicator_types,
        }

    def summary(self) -> str:
        """Human-readable overview of recent routing decisions."""
        stats = self.get_statistics()
        lines = [
            "=" * 60,
            "ROUTING FEEDBACK SUMMARY",
            "=" * 60,
            "",
            f"Decisions recorded: {stats['history_size']}",
            f"Active indicators: {stats['active_indicators']}",
        ]
        for name, count in sorted(stats["indicator_types"].items()):
            lines.append(f"  {name}: {count}")

        recent = list(self.history)[-5:]
        if recent:
            lines.extend(["", "Recent decisions:"])
            for decision in recent:
                lines.append(
                    f"  {decision.selected_path.routing_type.value} "
                    f"({decision.selected_path.total_length:g}): {decision.reason}"
                )
        lines.append("=" * 60)
        return "\n".join(lines)

    def _add_indicator(self, indicator_type: IndicatorType, data: Dict[str, Any]) -> None:
        self._expire_indicators()
        self._counter += 1
        indicator_id = f"{indicator_type.value}-{self._counter}"
        self.indicators[indicator_id] = VisualIndicator(
            id=indicator_id,
            type=indicator_type,
            data=data,
            timestamp=self._clock(),
        )

    def _expire_indicators(self) -> None:
        cutoff = self._clock() - self.options.visual_indicator_duration
        for key in [k for k, v in self.indicators.items() if v.timestamp < cutoff]:
            del self.indicators[key]
