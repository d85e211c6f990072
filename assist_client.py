import json
import socket
import logging

from settings import ASSIST_HOST, ASSIST_PORT, ASSIST_TIMEOUT, DEFAULT_MODEL, FAILURE_SENTINEL

logger = logging.getLogger(__name__)


class AssistClient:
    """Line-delimited JSON client for the assist server.

    Every call returns either the answer text or FAILURE_SENTINEL; network and
    protocol errors never escape to the caller.
    """

    def __init__(self, host=ASSIST_HOST, port=ASSIST_PORT, timeout=ASSIST_TIMEOUT):
        self.host = host
        self.port = port
        self.timeout = timeout

    def explain_or_translate(self, text, model=DEFAULT_MODEL):
        """Turn a free-form request into a command (`hp`)."""
        return self.ask("translate", text, model=model)

    def generate_from_context(self, context=None, model=DEFAULT_MODEL):
        """Suggest a command from the last failure (`hm`)."""
        return self.ask("generate", "", model=model, context=context)

    def explain_command(self, text, model=DEFAULT_MODEL):
        """Plain-language manual page for a command (`he`)."""
        return self.ask("explain", text, model=model)

    def ask(self, task, prompt, model=DEFAULT_MODEL, context=None):
        payload = {"task": task, "model": model, "prompt": prompt}
        if context is not None:
            payload["context"] = context
        try:
            obj = self._request(payload)
        except (OSError, ValueError) as e:
            logger.warning(f"Assist request '{task}' failed: {e}")
            return FAILURE_SENTINEL

        if not isinstance(obj, dict):
            logger.warning(f"Unexpected assist response: {obj!r}")
            return FAILURE_SENTINEL
        if obj.get("error"):
            logger.warning(f"Assist server error: {obj['error']}")
            return FAILURE_SENTINEL
        answer = obj.get("answer")
        if not isinstance(answer, str):
            return FAILURE_SENTINEL
        return answer

    def _request(self, payload):
        with socket.create_connection((self.host, self.port), timeout=self.timeout) as client:
            client.sendall((json.dumps(payload) + "\n").encode())

            data = b""
            while True:
                chunk = client.recv(4096)
                if not chunk:
                    break
                data += chunk
                if b"\n" in data:
                    break

        if not data:
            raise ValueError("empty response")
        return json.loads(data.decode().split("\n", 1)[0])
