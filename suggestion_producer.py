import logging
import threading
from dataclasses import dataclass

import pyperclip

logger = logging.getLogger(__name__)

# Poll interval (seconds) when none is given
DEFAULT_INTERVAL = 1.0


@dataclass
class ProducerMessage:
    kind: str  # "suggestion", "error" or "exit"
    payload: str = ""


def clipboard_source():
    return pyperclip.paste()


def _usable(text):
    return bool(text) and bool(text.strip()) and "\n" not in text.strip()


class SuggestionProducer:
    """Background worker that watches a text source and posts new values as suggestions.

    `post` is the only link back to the foreground; it must be safe to call
    from this thread (the shell wires it to loop.call_soon_threadsafe).
    """

    def __init__(self, source=clipboard_source, post=None, interval=DEFAULT_INTERVAL):
        self.source = source
        self.post = post or (lambda msg: None)
        self.interval = interval
        self.stop_event = threading.Event()
        self.thread = None
        self._last = None

    def start(self):
        self.thread = threading.Thread(target=self._run, name="suggestion-producer", daemon=True)
        self.thread.start()
        return self.thread

    def stop(self, timeout=0.5):
        self.stop_event.set()
        if self.thread is not None:
            self.thread.join(timeout=timeout)

    def poll_once(self):
        """Read the source once; return the text to suggest or None."""
        text = self.source()
        if text is None:
            return None
        first = self._last is None
        changed = text != self._last
        self._last = text
        # The value present at startup is a baseline, not a fresh copy
        if first or not changed or not _usable(text):
            return None
        return text.strip()

    def _run(self):
        reason = "stopped"
        try:
            while not self.stop_event.is_set():
                try:
                    text = self.poll_once()
                except Exception as e:
                    logger.warning(f"Suggestion source failed: {e}")
                    self.post(ProducerMessage("error", str(e)))
                else:
                    if text:
                        self.post(ProducerMessage("suggestion", text))
                self.stop_event.wait(self.interval)
        except Exception as e:
            logger.exception("Suggestion producer crashed")
            reason = f"crashed: {e}"
        finally:
            self.post(ProducerMessage("exit", reason))
