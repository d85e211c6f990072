import logging

logger = logging.getLogger(__name__)


class HistoryStore:
    """Flat, append-only history: one raw command per line."""

    def __init__(self, path):
        self.path = path

    def load(self):
        try:
            with open(self.path, "r", encoding="utf8") as f:
                return [line for line in f.read().split("\n") if line]
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Error reading history {self.path}: {e}")
            return []

    def append(self, command):
        try:
            with open(self.path, "a", encoding="utf8") as f:
                f.write(command + "\n")
        except OSError as e:
            logger.error(f"Could not append to history {self.path}: {e}")

    def lines(self):
        """Numbered lines for the `history` built-in."""
        return [f"{i:>5}  {cmd}" for i, cmd in enumerate(self.load(), 1)]
