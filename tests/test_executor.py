import io
import os
import sys
import signal
import json
import asyncio

from command_log import CommandLog
from executor import Executor, strip_ansi
from history_store import HistoryStore
from suggestion_engine import CandidatePools


def make_executor(tmp_path):
    log = CommandLog(str(tmp_path / "errors.json"))
    history = HistoryStore(str(tmp_path / "history"))
    pools = CandidatePools()
    stderr = io.StringIO()
    return Executor(log, history, pools, stderr=stderr), log, history, pools, stderr


def persisted(tmp_path):
    path = tmp_path / "errors.json"
    if not path.exists():
        return []
    return json.loads(path.read_text(encoding="utf-8"))


def test_strip_ansi():
    assert strip_ansi("\x1b[31merror\x1b[0m: bad") == "error: bad"
    assert strip_ansi("plain") == "plain"


def test_success_is_recorded_in_history_only(tmp_path):
    executor, log, history, pools, _ = make_executor(tmp_path)
    entry = asyncio.run(executor.run("true"))
    assert entry.output.exitCode == 0
    assert persisted(tmp_path) == []
    assert len(log) == 0
    assert history.load() == ["true"]
    assert pools.session == ["true"]


def test_nonzero_exit_is_persisted_once(tmp_path):
    executor, log, history, pools, _ = make_executor(tmp_path)
    asyncio.run(executor.run("false"))
    data = persisted(tmp_path)
    assert len(data) == 1
    assert data[0]["command"]["raw"] == "false"
    assert data[0]["output"]["exitCode"] == 1
    assert "error" not in data[0]["output"]
    assert history.load() == ["false"]
    assert pools.session == ["false"]


def test_stderr_is_echoed_and_captured(tmp_path):
    executor, log, _, _, stderr = make_executor(tmp_path)
    missing = tmp_path / "missing-dir"
    entry = asyncio.run(executor.run(f"ls {missing}"))
    assert entry.output.exitCode != 0
    assert str(missing) in entry.output.stderr
    assert str(missing) in stderr.getvalue()
    assert persisted(tmp_path)[0]["output"]["stderr"] == entry.output.stderr


def test_launch_error_is_persisted(tmp_path):
    executor, log, history, pools, _ = make_executor(tmp_path)
    entry = asyncio.run(executor.run("doesnotexist123"))
    assert entry.output.exitCode == 1
    assert entry.output.error
    data = persisted(tmp_path)
    assert len(data) == 1
    assert data[0]["output"]["exitCode"] == 1
    assert data[0]["output"]["error"]
    assert data[0]["command"]["executable"] == "doesnotexist123"
    # Launch failures are not added to history
    assert history.load() == []
    assert pools.session == []


def test_runs_in_current_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    executor, *_ = make_executor(tmp_path)
    entry = asyncio.run(executor.run("true"))
    assert entry.command.cwd == str(tmp_path)


def test_ctrl_c_reaches_child_not_shell(tmp_path):
    executor, log, history, pools, _ = make_executor(tmp_path)

    async def interrupt_running_child():
        task = asyncio.ensure_future(executor.run("sleep 5"))
        while executor.proc is None:
            await asyncio.sleep(0.01)
        # The terminal sends SIGINT to the whole foreground group: the shell and its child
        os.kill(os.getpid(), signal.SIGINT)
        os.kill(executor.proc.pid, signal.SIGINT)
        return await task

    entry = asyncio.run(interrupt_running_child())
    assert entry.output.exitCode == -signal.SIGINT
    data = persisted(tmp_path)
    assert len(data) == 1
    assert data[0]["command"]["raw"] == "sleep 5"
    assert data[0]["output"]["exitCode"] == -signal.SIGINT
    assert history.load() == ["sleep 5"]


def test_next_command_runs_after_ctrl_c(tmp_path):
    executor, log, history, pools, _ = make_executor(tmp_path)
    prompts = []

    async def loop_twice():
        for line in ("sleep 5", "true"):
            prompts.append(line)
            task = asyncio.ensure_future(executor.run(line))
            if line == "sleep 5":
                while executor.proc is None:
                    await asyncio.sleep(0.01)
                os.kill(os.getpid(), signal.SIGINT)
                os.kill(executor.proc.pid, signal.SIGINT)
            await task

    asyncio.run(loop_twice())
    assert prompts == ["sleep 5", "true"]
    assert history.load() == ["sleep 5", "true"]
    assert len(persisted(tmp_path)) == 1


def test_split_multibyte_stderr_is_decoded_whole(tmp_path):
    script = tmp_path / "emit.py"
    script.write_text(
        "import sys\n"
        "sys.stderr.buffer.write(b'a' * 4095 + 'é'.encode('utf-8'))\n"
        "sys.stderr.flush()\n"
        "sys.exit(3)\n",
        encoding="utf-8",
    )
    executor, log, _, _, stderr = make_executor(tmp_path)
    entry = asyncio.run(executor.run(f"{sys.executable} {script}"))
    assert entry.output.exitCode == 3
    assert entry.output.stderr == "a" * 4095 + "é"
    assert stderr.getvalue() == "a" * 4095 + "é"
    assert "�" not in persisted(tmp_path)[0]["output"]["stderr"]
