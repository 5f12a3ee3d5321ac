from __future__ import annotations

import pytest

from mulpersist import runtime


@pytest.fixture(autouse=True)
def workspace(tmp_path, monkeypatch):
    """Private workspace and a clean runtime for every test."""
    monkeypatch.setenv("MULPERSIST_HOME", str(tmp_path))
    runtime.reset()
    return tmp_path
