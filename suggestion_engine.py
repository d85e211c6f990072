from dataclasses import dataclass, field
from typing import List


@dataclass
class CandidatePools:
    """The three suggestion sources, checked in priority order."""
    session: List[str] = field(default_factory=list)
    historical: List[str] = field(default_factory=list)
    static: List[str] = field(default_factory=list)

    def ordered(self):
        return [self.session, self.historical, self.static]

    def record(self, command):
        self.session.append(command)


def _find_last(pool, search):
    for cmd in reversed(pool):
        if cmd.lower().startswith(search):
            return cmd
    return ""


def match(prefix, pools):
    """Return the best completion for `prefix`, or "" when nothing matches.

    Pools are searched session -> historical -> static. Inside a pool the most
    recently added entry wins, so pools are expected oldest-first.
    """
    if not prefix or not prefix.strip():
        return ""
    if isinstance(pools, CandidatePools):
        pools = pools.ordered()
    search = prefix.lower()
    for pool in pools:
        found = _find_last(pool, search)
        if found:
            return found
    return ""


def is_valid(suggestion, text):
    """A suggestion may only be shown while it still extends `text`."""
    return bool(suggestion) and suggestion.lower().startswith(text.lower())
