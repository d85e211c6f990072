import os
import logging

# Files under the user's home directory; each can be redirected through the environment.
HISTORY_FILE = os.path.expanduser(os.environ.get("NAASH_HISTORY_FILE", "~/.t_history"))
ERROR_LOG_FILE = os.path.expanduser(os.environ.get("NAASH_ERROR_LOG", "~/.t_error"))
LOG_FILE = os.path.expanduser(os.environ.get("NAASH_LOG_FILE", "~/.naash.log"))
LOG_LEVEL = os.environ.get("NAASH_LOG_LEVEL", "WARNING")

# Assist server (natural language -> command), same line protocol as the suggestion service
ASSIST_HOST = os.environ.get("NAASH_ASSIST_HOST", "127.0.0.1")
ASSIST_PORT = int(os.environ.get("NAASH_ASSIST_PORT", "9999"))
ASSIST_TIMEOUT = float(os.environ.get("NAASH_ASSIST_TIMEOUT", "30.0"))

# Model requested from the assist server; switchAI toggles between the two
MODELS = ("gemini", "openAi")
DEFAULT_MODEL = os.environ.get("NAASH_DEFAULT_MODEL", "gemini")

# Clipboard watcher poll interval (seconds)
CLIPBOARD_POLL = float(os.environ.get("NAASH_CLIPBOARD_POLL", "1.0"))
CLIPBOARD_WATCH = os.environ.get("NAASH_CLIPBOARD_WATCH", "1").lower() not in ("0", "false", "no")

# Returned by the assist server (or the client) when no answer could be produced
FAILURE_SENTINEL = "3d8a19a704"

COMMON_COMMANDS = [
    "git status",
    "git add .",
    "git commit -m",
    "git push origin",
    "npm install",
    "npm run dev",
    "ls -la",
    "cd ..",
    "docker ps",
    "docker-compose up",
    "history",
    "exit",
]


def configure_logging(log_file=None, level=None):
    """Send diagnostics to the log file so they never interleave with the prompt."""
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.WARNING),
        format='%(asctime)s - %(levelname)s - %(message)s',
        filename=log_file or LOG_FILE,
        filemode='a'
    )
