"""Alert config repository and cooldown-based alert dispatch."""

import logging
import sqlite3
import threading
import uuid
from datetime import datetime
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError

from tokenwatch.broadcast import ALERT_NOTIFICATION, BaseBroadcastSink
from tokenwatch.db.store import DataStore
from tokenwatch.engine.conditions import ConditionEvaluator
from tokenwatch.errors import ConfigNotFoundError, ConfigValidationError, PersistenceFailure
from tokenwatch.models import Action, Alert, AlertConfig, Trigger

logger = logging.getLogger(__name__)


PRIORITY_SCORES = {
    "low": 25.0,
    "medium": 50.0,
    "high": 75.0,
    "critical": 100.0,
}

# Fields callers may not change through update()
READONLY_FIELDS = {"id", "created_at", "updated_at", "last_triggered_at"}

ActionHandler = Callable[[Action, AlertConfig, Trigger], None]


def _validate(data: Union[AlertConfig, dict[str, Any]]) -> AlertConfig:
    if isinstance(data, AlertConfig):
        return data
    try:
        return AlertConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(str(e)) from e


class ConfigRepository:
    """Owns the active alert configs and their durable copies.

    The in-memory active set mirrors the store and is only changed through
    the CRUD methods, ``refresh`` and ``mark_triggered``. Readers get
    snapshots, never the live map.
    """

    def __init__(self, data_store: DataStore):
        self._data_store = data_store
        self._active: dict[int, AlertConfig] = {}
        self._lock = threading.RLock()
        self._config_locks: dict[int, threading.Lock] = {}

    def refresh(self) -> int:
        """Reload the active configs from the store.

        Returns:
            Number of active configs.
        """
        configs = self._data_store.get_alert_configs(active_only=True)
        with self._lock:
            self._active = {config.id: config for config in configs}
        logger.info("Loaded %d active alert configs", len(configs))
        return len(configs)

    def snapshot(self) -> list[AlertConfig]:
        """Copy of the active configs, ordered by ID."""
        with self._lock:
            return [self._active[config_id] for config_id in sorted(self._active)]

    def current(self, config_id: int) -> Optional[AlertConfig]:
        """Current in-memory state of an active config."""
        with self._lock:
            return self._active.get(config_id)

    def config_lock(self, config_id: int) -> threading.Lock:
        """Lock serialising the cooldown check, trigger and CRUD writes of one config."""
        with self._lock:
            return self._config_locks.setdefault(config_id, threading.Lock())

    def create(self, data: Union[AlertConfig, dict[str, Any]]) -> AlertConfig:
        """Validate and store a new config.

        Raises:
            ConfigValidationError: If the config is invalid.
            PersistenceFailure: If the write fails.
        """
        config = _validate(data)
        try:
            config_id = self._data_store.save_alert_config(config)
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Failed to create alert config: {e}") from e

        config = config.model_copy(update={"id": config_id})
        if config.is_active:
            with self._lock:
                self._active[config_id] = config
        logger.info("Created alert config %s (ID: %d)", config.name, config_id)
        return config

    def update(self, config_id: int, **changes: Any) -> AlertConfig:
        """Apply changes to a stored config.

        Runs under the config's lock so a concurrent dispatch cannot lose its
        trigger time. ``last_triggered_at`` is owned by the dispatcher and
        carried over from the in-memory copy when there is one.

        Raises:
            ConfigNotFoundError: If the config does not exist.
            ConfigValidationError: If the changes are invalid.
            PersistenceFailure: If the write fails.
        """
        unknown = set(changes) - set(AlertConfig.model_fields)
        if unknown:
            raise ConfigValidationError(f"Unknown config fields: {', '.join(sorted(unknown))}")
        readonly = set(changes) & READONLY_FIELDS
        if readonly:
            raise ConfigValidationError(f"Read-only config fields: {', '.join(sorted(readonly))}")

        with self.config_lock(config_id):
            existing = self.get(config_id)
            if existing is None:
                raise ConfigNotFoundError(config_id)

            merged = existing.model_dump()
            merged.update(changes)
            merged["updated_at"] = datetime.now()
            active = self.current(config_id)
            if active is not None and active.last_triggered_at is not None:
                merged["last_triggered_at"] = active.last_triggered_at
            config = _validate(merged)

            try:
                if not self._data_store.update_alert_config(config):
                    raise ConfigNotFoundError(config_id)
            except sqlite3.Error as e:
                raise PersistenceFailure(f"Failed to update alert config {config_id}: {e}") from e

            with self._lock:
                if config.is_active:
                    self._active[config_id] = config
                else:
                    self._active.pop(config_id, None)
        logger.info("Updated alert config %d", config_id)
        return config

    def delete(self, config_id: int) -> None:
        """Delete a config.

        Raises:
            ConfigNotFoundError: If the config does not exist.
            PersistenceFailure: If the write fails.
        """
        with self.config_lock(config_id):
            try:
                deleted = self._data_store.delete_alert_config(config_id)
            except sqlite3.Error as e:
                raise PersistenceFailure(f"Failed to delete alert config {config_id}: {e}") from e
            if not deleted:
                raise ConfigNotFoundError(config_id)

            with self._lock:
                self._active.pop(config_id, None)
                self._config_locks.pop(config_id, None)
        logger.info("Deleted alert config %d", config_id)

    def get(self, config_id: int) -> Optional[AlertConfig]:
        return self._data_store.get_alert_config(config_id)

    def list(self, owner_id: Optional[str] = None) -> list[AlertConfig]:
        return self._data_store.get_alert_configs(owner_id=owner_id)

    def mark_triggered(self, config_id: int, when: datetime) -> None:
        """Record a trigger time in memory, then in the store.

        Raises:
            PersistenceFailure: If the store write fails. The in-memory
                cooldown is already updated at that point.
        """
        with self._lock:
            config = self._active.get(config_id)
            if config is not None:
                self._active[config_id] = config.model_copy(update={"last_triggered_at": when})
        try:
            self._data_store.update_alert_config_triggered(config_id, when)
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Failed to record trigger of config {config_id}: {e}") from e


def describe_condition(condition) -> str:
    """Short human readable form of a condition."""
    if isinstance(condition.value, tuple):
        value = f"{condition.value[0]:g}..{condition.value[1]:g}"
    else:
        value = f"{condition.value:g}"
    scope = f" on {condition.token_address}" if condition.token_address else ""
    return f"{condition.type} {condition.operator} {value} ({condition.timeframe}){scope}"


def log_external_action(action: Action, config: AlertConfig, trigger: Trigger) -> None:
    """Default handler for actions carried out by external services."""
    logger.info("%s action for %s: %s", action.type, config.name, trigger.message)


class AlertDispatcher:
    """Evaluates active configs each cycle and dispatches triggered alerts.

    A config triggers at most once per cycle and never inside its cooldown.
    Failures are isolated per config.
    """

    def __init__(
        self,
        repository: ConfigRepository,
        evaluator: ConditionEvaluator,
        data_store: DataStore,
        sink: BaseBroadcastSink,
        action_handler: Optional[ActionHandler] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the dispatcher.

        Args:
            repository: Active config repository.
            evaluator: Condition evaluator.
            data_store: Store for produced alerts.
            sink: Broadcast sink for notifications.
            action_handler: Receives email, webhook and auto_trade actions.
            clock: Returns the current time; injectable for tests.
        """
        self._repository = repository
        self._evaluator = evaluator
        self._data_store = data_store
        self._sink = sink
        self._external = action_handler or log_external_action
        self._clock = clock
        self._action_handlers: dict[str, ActionHandler] = {
            "notification": self._notify,
            "email": self._external,
            "webhook": self._external,
            "auto_trade": self._external,
        }

    def run_cycle(self, now: Optional[datetime] = None) -> list[Alert]:
        """Evaluate every active config once.

        Args:
            now: Cycle time. Defaults to the clock.

        Returns:
            Alerts produced in this cycle.
        """
        now = now or self._clock()
        alerts = []
        for config in self._repository.snapshot():
            try:
                alert = self.process_config(config.id, now)
                if alert is not None:
                    alerts.append(alert)
            except Exception:
                logger.exception("Alert config %s failed during evaluation", config.id)

        logger.debug("Alert cycle finished: %d alerts", len(alerts))
        return alerts

    def process_config(self, config_id: int, now: datetime) -> Optional[Alert]:
        """Check cooldown, evaluate conditions and dispatch for one config.

        The cooldown check and the trigger update happen under the config's
        lock so overlapping cycles cannot both trigger it.

        Returns:
            The alert if the config triggered, None otherwise.
        """
        with self._repository.config_lock(config_id):
            config = self._repository.current(config_id)
            if config is None or config.in_cooldown(now):
                return None

            trigger, condition = None, None
            for condition in config.conditions:
                trigger = self._evaluator.evaluate(condition)
                if trigger is not None:
                    break
            if trigger is None:
                return None

            self._run_actions(config, trigger)
            alert = self._persist(self._build_alert(config, condition, trigger, now))

            try:
                self._repository.mark_triggered(config_id, now)
            except PersistenceFailure as e:
                logger.error("%s", e)

        logger.info("Alert triggered: %s - %s", config.name, trigger.message)
        return alert

    def _run_actions(self, config: AlertConfig, trigger: Trigger) -> None:
        for action in config.actions:
            if not action.enabled:
                continue
            try:
                self._action_handlers[action.type](action, config, trigger)
            except Exception:
                logger.exception("Action %s failed for config %s", action.type, config.id)

    def _notify(self, action: Action, config: AlertConfig, trigger: Trigger) -> None:
        self._sink.emit(
            ALERT_NOTIFICATION,
            {
                "id": uuid.uuid4().hex,
                "type": trigger.condition_type,
                "message": trigger.message,
                "token_address": trigger.token_address,
                "token_symbol": trigger.token_symbol,
                "priority": config.priority,
                "timestamp": trigger.timestamp.isoformat(),
                "data": trigger.data,
            },
        )

    def _build_alert(
        self, config: AlertConfig, condition, trigger: Trigger, now: datetime
    ) -> Alert:
        return Alert(
            token_address=trigger.token_address,
            type=trigger.condition_type,
            title=f"{config.name}: {trigger.token_symbol}",
            message=trigger.message,
            score=PRIORITY_SCORES[config.priority],
            conditions=[describe_condition(condition)],
            severity=config.priority,
            config_id=config.id,
            data={
                **trigger.data,
                "token_symbol": trigger.token_symbol,
                "current_value": trigger.current_value,
                "threshold_value": trigger.threshold_value,
            },
            timestamp=now,
        )

    def _persist(self, alert: Alert) -> Alert:
        try:
            alert_id = self._data_store.save_alert(alert)
        except sqlite3.Error as e:
            logger.error("%s", PersistenceFailure(f"Failed to save alert '{alert.title}': {e}"))
            return alert
        return alert.model_copy(update={"id": alert_id})


DEFAULT_CONFIGS = [
    {
        "owner_id": "system",
        "name": "Price surge",
        "description": "Token price rose more than 50% within an hour",
        "conditions": [
            {"type": "price_change", "operator": "greater_than", "value": 50, "timeframe": "1h"}
        ],
        "actions": [{"type": "notification"}],
        "cooldown_minutes": 60,
        "priority": "high",
        "tags": ["price", "pump"],
    },
    {
        "owner_id": "system",
        "name": "Volume spike",
        "description": "Token volume peaked above 5x its hourly average",
        "conditions": [
            {"type": "volume_spike", "operator": "greater_than", "value": 5, "timeframe": "1h"}
        ],
        "actions": [{"type": "notification"}],
        "cooldown_minutes": 30,
        "priority": "medium",
        "tags": ["volume", "activity"],
    },
]


def install_default_configs(repository: ConfigRepository) -> list[AlertConfig]:
    """Create the built-in system configs that do not exist yet.

    Returns:
        Configs created by this call.
    """
    existing = {config.name for config in repository.list(owner_id="system")}
    created = []
    for data in DEFAULT_CONFIGS:
        if data["name"] in existing:
            continue
        created.append(repository.create(data))
    return created
