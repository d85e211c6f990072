import os
import re
import sys
import codecs
import signal
import asyncio
import logging
from contextlib import contextmanager

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText

from command_log import new_entry

logger = logging.getLogger(__name__)

ANSI_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)|\x1b[@-Z\\-_]")

# Bytes read from the child's stderr per chunk
CHUNK = 4096


def strip_ansi(text):
    return ANSI_RE.sub("", text)


@contextmanager
def sigint_ignored(loop):
    """Let Ctrl-C reach only the child; the shell keeps waiting for it to close."""
    previous = signal.getsignal(signal.SIGINT)
    try:
        loop.add_signal_handler(signal.SIGINT, lambda: None)
    except (NotImplementedError, RuntimeError, ValueError) as e:
        logger.debug(f"Cannot ignore SIGINT here: {e}")
        yield
        return
    try:
        yield
    finally:
        loop.remove_signal_handler(signal.SIGINT)
        if previous is not None:
            signal.signal(signal.SIGINT, previous)


class Executor:
    """Runs one command at a time as a child process and records how it ended.

    stdin and stdout are inherited so interactive programs behave normally;
    stderr is echoed as it arrives and kept (without colour codes) in the log entry.
    Commands are split on whitespace only; there is no quoting and no timeout.
    """

    def __init__(self, log, history, pools, stderr=None):
        self.log = log
        self.history = history
        self.pools = pools
        self.stderr = stderr or sys.stderr
        self.proc = None

    async def run(self, raw):
        entry = new_entry(raw)
        try:
            proc = await asyncio.create_subprocess_exec(
                entry.command.executable,
                *entry.command.arguments,
                stdin=None,
                stdout=None,
                stderr=asyncio.subprocess.PIPE,
                cwd=entry.command.cwd,
                env=dict(os.environ),
            )
        except (OSError, ValueError) as e:
            self._failed(entry, e, f"Error executing command: {e}")
            return entry

        self.proc = proc
        try:
            with sigint_ignored(asyncio.get_running_loop()):
                await self._pump_stderr(proc, entry)
                code = await proc.wait()
        except OSError as e:
            self._failed(entry, e, str(e))
            return entry
        finally:
            self.proc = None

        self._closed(entry, code)
        return entry

    async def _pump_stderr(self, proc, entry):
        # A multi-byte character may be split across reads
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            chunk = await proc.stderr.read(CHUNK)
            text = decoder.decode(chunk, final=not chunk)
            if text:
                self.stderr.write(text)
                self.stderr.flush()
                entry.output.stderr += strip_ansi(text)
            if not chunk:
                break

    def _failed(self, entry, error, message):
        logger.warning(f"Launch failed for {entry.command.raw!r}: {error}")
        entry.output.error = strip_ansi(str(error))
        entry.output.exitCode = 1
        print_formatted_text(FormattedText([("ansired", message)]))
        self.log.persist(entry)

    def _closed(self, entry, code):
        entry.output.exitCode = code if code is not None else 0
        if entry.output.exitCode != 0:
            logger.info(f"{entry.command.raw!r} exited with {entry.output.exitCode}")
            self.log.persist(entry)
        self.pools.record(entry.command.raw)
        self.history.append(entry.command.raw)
