"""Allow/deny filtering over an event's originating path."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field


def prefix_matches(path: str, prefix: str, separator: str = ".") -> bool:
    """Return True if `prefix` matches `path` on a segment boundary.

    `"app.db"` matches `"app.db"` and `"app.db.pool"` but not `"app.dbx"`.
    """
    if not path.startswith(prefix):
        return False
    return len(path) == len(prefix) or path.startswith(separator, len(prefix))


@dataclass(frozen=True)
class TargetFilter:
    """Immutable allow/deny prefix sets.

    An empty allow set makes every path eligible. A deny match always wins,
    even over an allow match.
    """

    allow: frozenset[str] = field(default_factory=frozenset)
    deny: frozenset[str] = field(default_factory=frozenset)
    separator: str = "."

    @classmethod
    def from_lists(
        cls,
        allow: Iterable[str] = (),
        deny: Iterable[str] = (),
        separator: str = ".",
    ) -> TargetFilter:
        """Build a filter from any iterables of prefixes."""
        return cls(allow=frozenset(allow), deny=frozenset(deny), separator=separator)

    def _matches_any(self, path: str, prefixes: frozenset[str]) -> bool:
        return any(prefix_matches(path, prefix, self.separator) for prefix in prefixes)

    def should_emit(self, path: str) -> bool:
        """Decide whether an event from `path` should be recorded."""
        if self.allow and not self._matches_any(path, self.allow):
            return False
        return not self._matches_any(path, self.deny)
