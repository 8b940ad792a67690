"""
Coach Insight Selector

Picks exactly one coaching line for the dashboard from the already computed
DerivedMetrics. The rules form an ordered decision table and the first rule
that applies wins:

    1. no_goal            no active goal
    2. taper              race day within the taper window (beats everything below)
    3. no_runs            nothing logged this week
    4. target_hit         weekly mileage at or above the ramped target
    5. ahead_of_pace      averaging faster than goal pace
    6. behind_pace        averaging well off goal pace
    7. consistent_week    enough runs this week
    8. progress           fallback, always applies

Order is the contract. Numbers in the messages are the DerivedMetrics values
as-is, never re-rounded here.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from schemas import Goal
from services.dashboard_metrics import DerivedMetrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InsightThresholds:
    taper_window_days: int = 14
    faster_than_goal_sec_per_mile: int = -5   # pace diff below this
    off_goal_sec_per_mile: int = 10           # pace diff above this
    consistent_week_runs: int = 3


DEFAULT_THRESHOLDS = InsightThresholds()


@dataclass(frozen=True)
class InsightContext:
    metrics: DerivedMetrics
    goal: Optional[Goal]
    thresholds: InsightThresholds


@dataclass(frozen=True)
class InsightRule:
    id: str
    applies: Callable[[InsightContext], bool]
    build: Callable[[InsightContext], str]


@dataclass(frozen=True)
class CoachInsight:
    rule_id: str
    message: str


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def _race_name(ctx: InsightContext) -> str:
    if ctx.goal is not None and ctx.goal.race_name:
        return ctx.goal.race_name
    return "race day"


def _is_taper(ctx: InsightContext) -> bool:
    days = ctx.metrics.days_to_race
    return days is not None and days <= ctx.thresholds.taper_window_days


def _taper_message(ctx: InsightContext) -> str:
    days = ctx.metrics.days_to_race
    if days == 0:
        return f"It's {_race_name(ctx)}. Trust the work you've banked and run your plan."
    return (
        f"{_plural(days, 'day')} to {_race_name(ctx)}. Taper time: trim the volume, "
        f"keep a little sharpness, and bank as much sleep as you can."
    )


def _pace_diff(ctx: InsightContext) -> Optional[int]:
    return ctx.metrics.pace_diff_sec_per_mile


def _progress_message(ctx: InsightContext) -> str:
    weeks = math.ceil(ctx.metrics.days_to_race / 7)
    return (
        f"{_plural(weeks, 'week')} until {_race_name(ctx)}. You're at "
        f"{ctx.metrics.weekly_mileage_miles} of {ctx.metrics.weekly_mileage_target_miles} miles "
        f"this week. Keep stacking steady days."
    )


INSIGHT_RULES: Sequence[InsightRule] = (
    InsightRule(
        id="no_goal",
        applies=lambda ctx: ctx.goal is None,
        build=lambda ctx: (
            "Set a race goal so your training targets and insights can build toward race day."
        ),
    ),
    InsightRule(
        id="taper",
        applies=_is_taper,
        build=_taper_message,
    ),
    InsightRule(
        id="no_runs",
        applies=lambda ctx: ctx.metrics.runs_this_week == 0 and ctx.metrics.weekly_mileage_miles == 0,
        build=lambda ctx: (
            "No runs logged yet this week. An easy 20 minutes is all it takes to get the week moving."
        ),
    ),
    InsightRule(
        id="target_hit",
        applies=lambda ctx: ctx.metrics.weekly_mileage_miles >= ctx.metrics.weekly_mileage_target_miles,
        build=lambda ctx: (
            f"Weekly target hit: {ctx.metrics.weekly_mileage_miles} of "
            f"{ctx.metrics.weekly_mileage_target_miles} miles. Protect your recovery days."
        ),
    ),
    InsightRule(
        id="ahead_of_pace",
        applies=lambda ctx: (
            _pace_diff(ctx) is not None
            and _pace_diff(ctx) < ctx.thresholds.faster_than_goal_sec_per_mile
        ),
        build=lambda ctx: (
            f"You're averaging {abs(_pace_diff(ctx))}s/mile faster than goal pace. "
            f"Great fitness, just keep your easy days truly easy."
        ),
    ),
    InsightRule(
        id="behind_pace",
        applies=lambda ctx: (
            _pace_diff(ctx) is not None
            and _pace_diff(ctx) > ctx.thresholds.off_goal_sec_per_mile
        ),
        build=lambda ctx: (
            f"Your average pace is {_pace_diff(ctx)}s/mile off goal. Don't stress: most "
            f"miles should be easy, and goal pace comes from the workouts."
        ),
    ),
    InsightRule(
        id="consistent_week",
        applies=lambda ctx: ctx.metrics.runs_this_week >= ctx.thresholds.consistent_week_runs,
        build=lambda ctx: (
            f"{_plural(ctx.metrics.runs_this_week, 'run')} this week. That consistency is "
            f"what builds race fitness."
        ),
    ),
    InsightRule(
        id="progress",
        applies=lambda ctx: True,
        build=_progress_message,
    ),
)


def select_insight(
    metrics: DerivedMetrics,
    goal: Optional[Goal],
    thresholds: Optional[InsightThresholds] = None,
    rules: Sequence[InsightRule] = INSIGHT_RULES,
) -> CoachInsight:
    """Return the message of the first rule that applies."""
    ctx = InsightContext(metrics=metrics, goal=goal, thresholds=thresholds or DEFAULT_THRESHOLDS)
    for rule in rules:
        if rule.applies(ctx):
            logger.debug(f"Coach insight rule matched: {rule.id}")
            return CoachInsight(rule_id=rule.id, message=rule.build(ctx))
    # Only reachable with a custom rule list lacking a catch-all
    raise ValueError("insight rules must end with a rule that always applies")
