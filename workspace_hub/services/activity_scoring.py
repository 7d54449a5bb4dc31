"""
Activity score strategies for the home dashboard.

The score is a heuristic composite of recent task and report activity.
Strategies register under a name and are picked by the
``ACTIVITY_SCORE_STRATEGY`` setting:

    @ActivityScoring.register("weighted")
    class WeightedActivityScore(ActivityScoreStrategy): ...

    strategy = ActivityScoring.get("weighted", weights={"task": 20})
    strategy.score(signals)  # → int
"""

from __future__ import annotations

import abc
import math
from dataclasses import dataclass

from workspace_hub.core.exceptions import ValidationError
from workspace_hub.services.metric_math import rounded_percentage


@dataclass(frozen=True)
class ActivitySignals:
    """Inputs every strategy may draw on.

    external_activity: folders created this week + team memberships joined this week
    """

    completed_this_week: int = 0
    reports_this_week: int = 0
    external_activity: int = 0
    total_tasks: int = 0
    completed_tasks: int = 0


class ActivityScoreStrategy(abc.ABC):
    """Turns ``ActivitySignals`` into an integer score."""

    name = ""

    def __init__(self, weights: dict | None = None):
        self.weights = weights or {}

    @abc.abstractmethod
    def score(self, signals: ActivitySignals) -> int: ...


# ═════════════════════════════════════════════════════════════════════════════
# STRATEGY REGISTRY
# ═════════════════════════════════════════════════════════════════════════════

class ActivityScoring:
    _STRATEGIES: dict = {}

    @classmethod
    def register(cls, name: str):
        """Decorator to register a strategy class under ``name``."""
        def decorator(strategy_cls):
            strategy_cls.name = name
            cls._STRATEGIES[name] = strategy_cls
            return strategy_cls
        return decorator

    @classmethod
    def get(cls, name: str, weights: dict | None = None) -> ActivityScoreStrategy:
        strategy_cls = cls._STRATEGIES.get(name)
        if strategy_cls is None:
            raise ValidationError(
                f"Unknown activity score strategy: {name}",
                details={"strategy": name, "available": cls.names()},
            )
        return strategy_cls(weights=weights)

    @classmethod
    def names(cls) -> list[str]:
        return sorted(cls._STRATEGIES)


def strategy_from_config(config) -> ActivityScoreStrategy:
    """Build the configured strategy from a Flask config mapping."""
    return ActivityScoring.get(
        config.get("ACTIVITY_SCORE_STRATEGY", "weighted"),
        weights=config.get("ACTIVITY_SCORE_WEIGHTS"),
    )


# ═════════════════════════════════════════════════════════════════════════════
# BUILT-IN STRATEGIES
# ═════════════════════════════════════════════════════════════════════════════

@ActivityScoring.register("weighted")
class WeightedActivityScore(ActivityScoreStrategy):
    """min(cap, completed*task + reports*report + external) + bonus when both > 0."""

    DEFAULT_WEIGHTS = {"task": 15, "report": 10, "cap": 100, "bonus": 10}

    def __init__(self, weights=None):
        super().__init__({**self.DEFAULT_WEIGHTS, **(weights or {})})

    def score(self, signals):
        w = self.weights
        base = min(
            w["cap"],
            signals.completed_this_week * w["task"]
            + signals.reports_this_week * w["report"]
            + signals.external_activity,
        )
        if signals.completed_this_week > 0 and signals.reports_this_week > 0:
            base += w["bonus"]
        return int(math.floor(base + 0.5))


@ActivityScoring.register("completion_ratio")
class CompletionRatioScore(ActivityScoreStrategy):
    """Share of in-scope tasks that are completed, 0-100."""

    def score(self, signals):
        return rounded_percentage(signals.completed_tasks, signals.total_tasks)
