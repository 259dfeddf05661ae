"""Staged configuration for building a `Subscriber`.

The builder is immutable: each `with_*` call returns a new, validated copy, so
one builder can be reused for several builds without them affecting each
other.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from .config import LogSinkConfig
from .filters import TargetFilter
from .handler import SQLLogHandler
from .models import Level
from .sinks import AdHocLogSink, PreparedLogSink, SchemaVariant, SharedConnection, ensure_schema
from .subscriber import Subscriber

logger = logging.getLogger(__name__)


class Strategy(str, Enum):
    """How inserts are issued."""

    ADHOC = "adhoc"
    PREPARED = "prepared"


class SubscriberBuilder(BaseModel):
    """Accumulates filter, level, schema and strategy choices."""

    model_config = ConfigDict(frozen=True)

    allow: frozenset[str] = frozenset()
    deny: frozenset[str] = frozenset()
    max_level: Level = Level.DEBUG
    schema_variant: SchemaVariant = SchemaVariant.V0
    strategy: Strategy = Strategy.ADHOC
    separator: str = "."

    @field_validator("allow", "deny")
    def validate_prefixes(cls, v: frozenset[str]) -> frozenset[str]:
        """Reject empty prefixes; they would silently match nothing useful."""
        if any(not prefix for prefix in v):
            raise ValueError("path prefixes must be non-empty strings")
        return v

    @field_validator("separator")
    def validate_separator(cls, v: str) -> str:
        """Require a non-empty segment separator."""
        if not v:
            raise ValueError("separator must be a non-empty string")
        return v

    @classmethod
    def from_config(cls, config: LogSinkConfig) -> SubscriberBuilder:
        """Create a builder from loaded configuration."""
        return cls(
            allow=frozenset(config.allow_list),
            deny=frozenset(config.deny_list),
            max_level=config.max_level,
            schema_variant=SchemaVariant(config.schema_variant),
            strategy=Strategy(config.strategy),
            separator=config.separator,
        )

    def _replace(self, **changes: Any) -> SubscriberBuilder:
        # model_copy(update=...) skips validation; rebuild instead.
        return type(self)(**{**self.model_dump(), **changes})

    def with_allow_list(self, prefixes: Iterable[str]) -> SubscriberBuilder:
        """A log may be recorded only if its path matches an allow-list prefix."""
        return self._replace(allow=self.allow | frozenset(prefixes))

    def with_deny_list(self, prefixes: Iterable[str]) -> SubscriberBuilder:
        """A log is never recorded if its path matches a deny-list prefix."""
        return self._replace(deny=self.deny | frozenset(prefixes))

    def with_max_level(self, max_level: Level) -> SubscriberBuilder:
        return self._replace(max_level=max_level)

    def with_schema(self, schema_variant: SchemaVariant) -> SubscriberBuilder:
        return self._replace(schema_variant=schema_variant)

    def with_strategy(self, strategy: Strategy) -> SubscriberBuilder:
        return self._replace(strategy=strategy)

    def with_separator(self, separator: str) -> SubscriberBuilder:
        return self._replace(separator=separator)

    def target_filter(self) -> TargetFilter:
        """The immutable filter this configuration describes."""
        return TargetFilter(allow=self.allow, deny=self.deny, separator=self.separator)

    def build(self, connection: SharedConnection | None) -> Subscriber:
        """Build a subscriber using the configured strategy.

        The ad-hoc strategy does not touch the store; call `ensure_schema`
        separately if the table may be missing.
        """
        _require_connection(connection)
        if self.strategy is Strategy.PREPARED:
            return self.build_prepared(connection)
        sink = AdHocLogSink(connection, self.schema_variant)
        logger.debug("built ad-hoc subscriber for %s", self.schema_variant.table)
        return self._subscriber(sink)

    def build_prepared(self, connection: SharedConnection | None) -> Subscriber:
        """Ensure the schema, then build a subscriber with a prepared insert.

        Raises `SetupError` when the table can not be created.
        """
        _require_connection(connection)
        ensure_schema(connection, self.schema_variant)
        sink = PreparedLogSink(connection, self.schema_variant)
        logger.debug("built prepared subscriber for %s", self.schema_variant.table)
        return self._subscriber(sink)

    def build_handler(self, connection: SharedConnection | None, level: int = logging.NOTSET) -> SQLLogHandler:
        """Build a subscriber and wrap it in a `logging.Handler`."""
        return SQLLogHandler(self.build(connection), level=level)

    def _subscriber(self, sink: AdHocLogSink | PreparedLogSink) -> Subscriber:
        return Subscriber(sink=sink, target_filter=self.target_filter(), max_level=self.max_level)


def _require_connection(connection: SharedConnection | None) -> None:
    if connection is None:
        raise ValueError("a SharedConnection is required to build a subscriber")
    if not isinstance(connection, SharedConnection):
        raise TypeError(
            f"expected a SharedConnection, got {type(connection).__name__}; "
            "wrap the connection once and share the wrapper"
        )
