import threading

import pytest

import assist_server
from assist_client import AssistClient
from settings import FAILURE_SENTINEL


@pytest.fixture
def server():
    srv = assist_server.make_server("127.0.0.1", 0)
    stop = threading.Event()
    thread = threading.Thread(target=assist_server.serve, args=(srv, stop), daemon=True)
    thread.start()
    yield srv.getsockname()[1]
    stop.set()
    thread.join(timeout=2)
    srv.close()


def test_translate_roundtrip(server):
    client = AssistClient("127.0.0.1", server, timeout=2)
    assert client.explain_or_translate("please list files here") == "ls -la"


def test_generate_uses_failure_context(server):
    client = AssistClient("127.0.0.1", server, timeout=2)
    context = {"command": {"raw": "tar xf"}}
    assert client.generate_from_context(context) == "tar --help"


def test_explain(server):
    client = AssistClient("127.0.0.1", server, timeout=2)
    assert "man grep" in client.explain_command("grep -r")


def test_server_sentinel_is_passed_through(server):
    client = AssistClient("127.0.0.1", server, timeout=2)
    assert client.explain_or_translate("something unknowable") == FAILURE_SENTINEL
    assert client.generate_from_context(None) == FAILURE_SENTINEL


def test_unreachable_server_returns_sentinel():
    srv = assist_server.make_server("127.0.0.1", 0)
    port = srv.getsockname()[1]
    srv.close()
    client = AssistClient("127.0.0.1", port, timeout=0.5)
    assert client.explain_or_translate("list files") == FAILURE_SENTINEL


def test_make_answer_unknown_task():
    assert assist_server.make_answer({"task": "dance"}) == FAILURE_SENTINEL
