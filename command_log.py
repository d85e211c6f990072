import os
import sys
import json
import time
import uuid
import getpass
import logging
from datetime import datetime, timezone
from dataclasses import dataclass, field, asdict
from typing import List, Optional

logger = logging.getLogger(__name__)


@dataclass
class CommandInfo:
    raw: str
    executable: str
    arguments: List[str]
    cwd: str


@dataclass
class CommandOutput:
    stderr: str = ""
    exitCode: int = 0
    error: Optional[str] = None


@dataclass
class CommandMetadata:
    user: str
    platform: str
    shell: str


@dataclass
class CommandLogEntry:
    id: str
    timestamp: str
    command: CommandInfo
    output: CommandOutput = field(default_factory=CommandOutput)
    metadata: Optional[CommandMetadata] = None

    def to_dict(self):
        data = asdict(self)
        if data["output"]["error"] is None:
            del data["output"]["error"]
        return data

    @classmethod
    def from_dict(cls, data):
        unknown = set(data) - {"id", "timestamp", "command", "output", "metadata"}
        if unknown:
            raise TypeError(f"unexpected keys {sorted(unknown)}")
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            command=CommandInfo(**data["command"]),
            output=CommandOutput(**data["output"]),
            metadata=CommandMetadata(**data["metadata"]),
        )


def generate_id():
    return f"cmd_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _current_user():
    try:
        return getpass.getuser()
    except (OSError, KeyError) as e:
        logger.warning(f"Could not determine user: {e}")
        return "unknown"


def new_entry(raw, cwd=None):
    """Entry for a command about to be launched; output is filled in as it runs."""
    executable, *arguments = raw.split() or [""]
    return CommandLogEntry(
        id=generate_id(),
        timestamp=datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        command=CommandInfo(raw=raw, executable=executable, arguments=arguments, cwd=cwd or os.getcwd()),
        metadata=CommandMetadata(
            user=_current_user(),
            platform=sys.platform,
            shell=os.environ.get("SHELL", "unknown"),
        ),
    )


def _load_item(item):
    # Records in another shape are kept as-is so a flush writes them back untouched
    try:
        return CommandLogEntry.from_dict(item)
    except (KeyError, TypeError) as e:
        logger.warning(f"Keeping unrecognised command log record as-is: {e!r}")
        return item


def _dump_item(item):
    return item.to_dict() if isinstance(item, CommandLogEntry) else item


class CommandLog:
    """Failed commands, kept in memory and rewritten as one JSON array on every flush."""

    def __init__(self, path):
        self.path = path
        self.entries = []

    def load(self):
        try:
            with open(self.path, "r", encoding="utf8") as f:
                data = json.load(f)
            if not isinstance(data, list):
                raise ValueError(f"expected a JSON array, got {type(data).__name__}")
            self.entries = [_load_item(item) for item in data]
        except FileNotFoundError:
            self.entries = []
        except (OSError, ValueError) as e:
            logger.error(f"Error loading command log {self.path}: {e}")
            self.entries = []
        return self.entries

    def append(self, entry):
        self.entries.append(entry)

    def flush(self):
        try:
            with open(self.path, "w", encoding="utf8") as f:
                json.dump([_dump_item(e) for e in self.entries], f, indent=2, ensure_ascii=False)
            return True
        except (OSError, TypeError) as e:
            logger.error(f"Could not write command log {self.path}: {e}")
            return False

    def persist(self, entry):
        self.append(entry)
        return self.flush()

    def last(self):
        """Most recent entry this shell understands; foreign records are skipped."""
        for entry in reversed(self.entries):
            if isinstance(entry, CommandLogEntry):
                return entry
        return None

    def __len__(self):
        return len(self.entries)
