"""Alert evaluation and scoring engine."""

from tokenwatch.engine.analysis import TokenAnalyzer
from tokenwatch.engine.breakout import BreakoutDetector, breakout_score
from tokenwatch.engine.conditions import ConditionEvaluator
from tokenwatch.engine.dispatcher import AlertDispatcher, ConfigRepository, install_default_configs
from tokenwatch.engine.kol import KOLSignalScorer, KOLTracker
from tokenwatch.engine.scheduler import PeriodicTask, Scheduler
from tokenwatch.engine.sentiment import SentimentAggregator, SentimentMonitor
from tokenwatch.engine.service import TokenWatchEngine

__all__ = [
    "AlertDispatcher",
    "BreakoutDetector",
    "ConditionEvaluator",
    "ConfigRepository",
    "KOLSignalScorer",
    "KOLTracker",
    "PeriodicTask",
    "Scheduler",
    "SentimentAggregator",
    "SentimentMonitor",
    "TokenAnalyzer",
    "TokenWatchEngine",
    "breakout_score",
    "install_default_configs",
]
