"""Root conftest — sets env vars BEFORE any agent_context module is imported.

Settings and the auto-target helpers read HOME and AGENT_CONTEXT_DIR, so
both point at throwaway directories to keep tests away from the real home.
"""

import os
import tempfile

# Force-set (not setdefault) to prevent real env vars from leaking into tests
os.environ["HOME"] = tempfile.mkdtemp(prefix="agent-context-home-")
os.environ["AGENT_CONTEXT_DIR"] = tempfile.mkdtemp(prefix="agent-context-test-")
for _key in (
    "AGENT_CONTEXT_BASE_NAME",
    "AGENT_CONTEXT_HIDDEN_PREFIX",
    "AGENT_CONTEXT_EXIT_DELAY",
    "AGENT_CONTEXT_START_DIR",
    "AGENT_CONTEXT_LOG_LEVEL",
):
    os.environ.pop(_key, None)


import pytest


@pytest.fixture(autouse=True)
def _clear_agent_context_env():
    """Clear AGENT_CONTEXT_* overrides before each test so none leak between tests."""
    for key in (
        "AGENT_CONTEXT_BASE_NAME",
        "AGENT_CONTEXT_HIDDEN_PREFIX",
        "AGENT_CONTEXT_EXIT_DELAY",
        "AGENT_CONTEXT_START_DIR",
        "AGENT_CONTEXT_LOG_LEVEL",
    ):
        os.environ.pop(key, None)
    yield
