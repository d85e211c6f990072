import pytest
from prompt_toolkit.application import create_app_session


@pytest.fixture(autouse=True)
def _fresh_prompt_toolkit_session():
    # prompt_toolkit caches its output (bound to sys.stdout at first use) in a
    # global app session; give each test its own so capsys sees the output.
    with create_app_session():
        yield
