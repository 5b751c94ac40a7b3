"""Shared fixtures for the leveldag test suite."""

import os

import pytest

from leveldag.config import reset_config


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Give each test a fresh shared configuration without LEVELDAG_* overrides."""
    for key in list(os.environ):
        if key.startswith("LEVELDAG_"):
            monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()
