#!/usr/bin/env python3
import os
import json
import random
import asyncio
import logging
import functools
from enum import Enum

import pyperclip
from prompt_toolkit import PromptSession, print_formatted_text
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.styles import Style

import settings
from assist_client import AssistClient
from command_log import CommandLog
from executor import Executor
from history_store import HistoryStore
from line_editor import LineEditor, GhostTextProcessor, attach, bind_keys
from suggestion_engine import CandidatePools
from suggestion_producer import SuggestionProducer

logger = logging.getLogger(__name__)

STYLE = Style.from_dict({
    "ghost": "#808080",
    "prompt.path": "ansicyan bold",
    "prompt.arrow": "ansigreen",
})

UNABLE_MESSAGE = "Unable to process you request at the moment."
ERROR_FACES = ["⟨ ×︵× ⟩", "⟨ ⊗︵⊗ ⟩", "⟨ ◔︵◔ ⟩", "⟨ ಠ︵ಠ ⟩"]


class State(Enum):
    PROMPTING = "prompting"
    AWAITING_CHILD = "awaiting_child"
    AWAITING_ASSIST = "awaiting_assist"


def say(text, style=""):
    print_formatted_text(FormattedText([(style, text)]))


def error_face():
    return random.choice(ERROR_FACES)


def banner():
    say("")
    say("  Welcome to NAASH (Not Another AI Shell)", "ansicyan bold")
    say("")


class ShellSession:
    """Everything one interactive run owns: pools, history, failure log, editor and model."""

    def __init__(self, history=None, log=None, assist=None, producer=None, model=settings.DEFAULT_MODEL):
        self.history = history if history is not None else HistoryStore(settings.HISTORY_FILE)
        self.log = log if log is not None else CommandLog(settings.ERROR_LOG_FILE)
        self.log.load()
        self.pools = CandidatePools(
            session=[],
            historical=self.history.load(),
            static=list(settings.COMMON_COMMANDS),
        )
        self.editor = LineEditor(self.pools)
        self.executor = Executor(self.log, self.history, self.pools)
        self.assist = assist if assist is not None else AssistClient()
        self.producer = producer
        self.model = model
        self.state = State.PROMPTING
        self.running = True
        self.loop = None
        self.prompt_session = None
        self.builtins = {
            "cd": self.do_cd,
            "cat": self.do_cat,
            "history": self.do_history,
            "exit": self.do_exit,
            "switchAI": self.do_switch_ai,
            "copy": self.do_copy,
            "hm": self.do_hm,
            "hp": self.do_hp,
            "he": self.do_he,
        }

    # --- foreground loop ---

    def prompt_message(self):
        name = os.path.basename(os.getcwd()) or os.sep
        return FormattedText([("class:prompt.path", name), ("class:prompt.arrow", " ❯ ")])

    async def run(self):
        self.loop = asyncio.get_running_loop()
        self.prompt_session = PromptSession(
            key_bindings=bind_keys(self.editor),
            input_processors=[GhostTextProcessor(self.editor)],
            style=STYLE,
        )
        attach(self.editor, self.prompt_session.default_buffer)

        if self.producer is not None:
            self.producer.post = self.post_from_thread
            self.producer.start()

        try:
            while self.running:
                self.state = State.PROMPTING
                self.editor.reset()
                try:
                    with patch_stdout():
                        line = await self.prompt_session.prompt_async(self.prompt_message)
                except KeyboardInterrupt:
                    continue
                except EOFError:
                    break
                await self.dispatch(line)
        finally:
            if self.producer is not None:
                self.producer.stop()

    def post_from_thread(self, msg):
        """Producer thread -> foreground loop; the only way producer messages arrive."""
        loop = self.loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(self.on_producer_message, msg)
        except RuntimeError as e:
            logger.debug(f"Dropped producer message during shutdown: {e}")

    def on_producer_message(self, msg):
        if msg.kind == "suggestion":
            self.editor.push_suggestion(msg.payload)
        elif msg.kind == "error":
            logger.warning(f"Suggestion producer error: {msg.payload}")
        else:
            logger.info(f"Suggestion producer exited: {msg.payload}")

    async def dispatch(self, line):
        parts = line.split()
        if not parts:
            return
        handler = self.builtins.get(parts[0])
        if handler is not None:
            result = handler(line, parts[1:])
            if asyncio.iscoroutine(result):
                await result
            return
        self.state = State.AWAITING_CHILD
        await self.executor.run(line)

    def record(self, line):
        self.pools.record(line)
        self.history.append(line)

    # --- built-ins ---

    def do_cd(self, line, args):
        self.record(line)
        target = os.path.expanduser(args[0] if args else "~")
        try:
            os.chdir(target)
        except OSError as e:
            say(f"cd: {e.strerror}: {target}", "ansired")

    def do_cat(self, line, args):
        self.record(line)
        if not args:
            say("cat: missing file operand", "ansired")
            return
        for path in args:
            try:
                with open(os.path.expanduser(path), "r", encoding="utf8", errors="replace") as f:
                    print(f.read(), end="")
            except OSError as e:
                say(f"cat: {path}: {e.strerror}", "ansired")

    def do_history(self, line, args):
        for entry in self.history.lines():
            print(entry)

    def do_exit(self, line, args):
        self.running = False

    def do_switch_ai(self, line, args):
        if self.model == "openAi":
            self.model = "gemini"
            say("Switched to Gemini model", "ansigreen")
        else:
            self.model = "openAi"
            say("Switched to OpenAI model", "ansigreen")

    def do_copy(self, line, args):
        self.log.flush()
        last = self.log.last()
        if last is None:
            say("No failed commands recorded yet.", "ansiyellow")
            return
        if self.copy_to_clipboard(json.dumps(last.to_dict(), indent=2)):
            say("Copied the last failed command to the clipboard.", "ansigreen")

    async def do_hm(self, line, args):
        last = self.log.last()
        context = last.to_dict() if last is not None else None
        await self.ask_assist(self.assist.generate_from_context, context)

    async def do_hp(self, line, args):
        if not args:
            say("Hey you did not enter a message.")
            return
        await self.ask_assist(self.assist.explain_or_translate, " ".join(args))

    async def do_he(self, line, args):
        await self.ask_assist(self.assist.explain_command, " ".join(args), copy=False)

    async def ask_assist(self, call, argument, copy=True):
        self.state = State.AWAITING_ASSIST
        say("Processing data...", "ansibrightblack")
        loop = asyncio.get_running_loop()
        try:
            answer = await loop.run_in_executor(None, functools.partial(call, argument, model=self.model))
        except Exception:
            logger.exception("Assist call raised")
            answer = settings.FAILURE_SENTINEL
        self.show_answer(answer, copy=copy)

    def show_answer(self, answer, copy=True):
        if answer == settings.FAILURE_SENTINEL:
            say(f"{error_face()} {UNABLE_MESSAGE}")
            return
        print(answer)
        if copy and answer:
            self.copy_to_clipboard(answer)

    def copy_to_clipboard(self, text):
        try:
            pyperclip.copy(text)
            return True
        except pyperclip.PyperclipException as e:
            logger.warning(f"Could not copy to clipboard: {e}")
            say(f"Clipboard unavailable: {e}", "ansired")
            return False


def main():
    settings.configure_logging()
    producer = None
    if settings.CLIPBOARD_WATCH:
        producer = SuggestionProducer(interval=settings.CLIPBOARD_POLL)
    session = ShellSession(producer=producer)
    banner()
    try:
        asyncio.run(session.run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
