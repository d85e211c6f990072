#!/usr/bin/env python3
"""
A tiny TCP assist server for local testing — no AI dependencies.
Listens on 127.0.0.1:9999 and answers one JSON line per connection:
  request:  {"task": "translate" | "generate" | "explain", "model": ..., "prompt": ..., "context": ...}
  response: {"model": ..., "answer": "..."}
Unknown requests get the failure sentinel, the same value a real backend
returns when it cannot help.
"""
import json
import socket
import logging
import threading

from settings import ASSIST_HOST, ASSIST_PORT, DEFAULT_MODEL, FAILURE_SENTINEL

logger = logging.getLogger(__name__)

SAMPLE_TEMPLATES = {
    'list files': 'ls -la',
    'status': 'git status',
    'commit': 'git commit -m "message"',
    'push': 'git push origin',
    'containers': 'docker ps',
    'install': 'npm install',
    'virtualenv': 'python -m venv .venv',
}


def make_answer(request):
    task = request.get('task')
    prompt = (request.get('prompt') or '').strip()
    if task == 'translate':
        ql = prompt.lower()
        for key, cmd in SAMPLE_TEMPLATES.items():
            if key in ql:
                return cmd
        return FAILURE_SENTINEL
    if task == 'generate':
        context = request.get('context') or {}
        raw = context.get('command', {}).get('raw', '') if isinstance(context, dict) else ''
        if not raw:
            return FAILURE_SENTINEL
        return raw.split()[0] + ' --help'
    if task == 'explain':
        if not prompt:
            return FAILURE_SENTINEL
        return f"{prompt}: run `man {prompt.split()[0]}` for the full manual."
    return FAILURE_SENTINEL


def handle_conn(conn, addr):
    try:
        conn.settimeout(1.0)
        data = b''
        try:
            while True:
                chunk = conn.recv(4096)
                if not chunk:
                    break
                data += chunk
                if b"\n" in data:
                    break
        except socket.timeout:
            pass

        if not data:
            logger.info(f"[{addr}] no data received")
            return

        try:
            request = json.loads(data.decode().strip())
        except ValueError as e:
            conn.sendall((json.dumps({'error': f'bad request: {e}'}) + '\n').encode())
            return
        if not isinstance(request, dict):
            request = {}

        model = request.get('model') or DEFAULT_MODEL
        payload = {'model': model, 'answer': make_answer(request)}
        conn.sendall((json.dumps(payload) + '\n').encode())
        logger.info(f"[{addr}] answered task={request.get('task')} (model={model})")
    except OSError as e:
        logger.warning(f"[{addr}] error: {e}")
    finally:
        conn.close()


def serve(server, stop_event=None):
    """Accept connections until `stop_event` is set (or forever)."""
    server.settimeout(0.2)
    while stop_event is None or not stop_event.is_set():
        try:
            conn, addr = server.accept()
        except socket.timeout:
            continue
        except OSError:
            break
        t = threading.Thread(target=handle_conn, args=(conn, addr), daemon=True)
        t.start()


def make_server(host=ASSIST_HOST, port=ASSIST_PORT):
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    server.bind((host, port))
    server.listen(5)
    return server


def run():
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    server = make_server()
    host, port = server.getsockname()[:2]
    print(f"assist_server listening on {host}:{port}")
    try:
        serve(server)
    except KeyboardInterrupt:
        print('shutting down')
    finally:
        server.close()


if __name__ == '__main__':
    run()
