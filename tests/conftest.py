"""Pytest configuration and fixtures"""

import os
from pathlib import Path
from typing import Generator

import pytest
from typer.testing import CliRunner

from handlekit.core.config import reset_settings
from handlekit.infrastructure.filesystem import DirectoryManager


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch) -> Generator[None, None, None]:
    """Isolate tests from HANDLEKIT_* variables and cached settings"""
    for key in list(os.environ):
        if key.startswith("HANDLEKIT_"):
            monkeypatch.delenv(key)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def configure(monkeypatch):
    """Set HANDLEKIT_* variables and rebuild the settings singleton"""

    def _configure(**values):
        for key, value in values.items():
            monkeypatch.setenv(f"HANDLEKIT_{key.upper()}", str(value))
        reset_settings()

    return _configure


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch) -> Path:
    """Run the test inside a temporary working directory"""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def directories() -> DirectoryManager:
    return DirectoryManager()


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()
