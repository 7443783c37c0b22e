"""
Shared test fixtures for the livepick test suite.

Provides temporary config files, file trees and git repositories that use
real file I/O (no mocking of the filesystem).
"""

import shutil
import subprocess
import threading

import pytest
import toml

from livepick.config import Config
from livepick.dispatcher import Dispatcher
from livepick.registry import Registry


@pytest.fixture
def registry():
    """Empty registry with default config."""
    return Registry(Config())


@pytest.fixture
def dispatcher(registry):
    return Dispatcher(registry)


@pytest.fixture
def gate():
    """Event a blocking producer waits on; released at teardown so threads exit."""
    event = threading.Event()
    yield event
    event.set()


@pytest.fixture
def tmp_config(tmp_path):
    """Create a real config TOML file with picker, theme and cache sections."""
    config_path = tmp_path / "config.toml"
    data = {
        "defaults": {"mode": "fuzzy", "fuzzy_threshold": 60},
        "cache_picker": {"num_pickers": 3},
        "pickers": {
            "find_files": {
                "theme": "dropdown",
                "hidden": True,
                "layout_config": {"width": 120},
                "mappings": {"i": {"<C-x>": "cancel"}},
            },
        },
        "themes": {
            "compact": {"layout_strategy": "vertical", "layout_config": {"height": 10}},
        },
    }
    config_path.write_text(toml.dumps(data))
    return config_path


@pytest.fixture
def file_tree(tmp_path):
    """Small project tree with a few text files."""
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "docs").mkdir()
    (root / "src" / "main.py").write_text("def main():\n    print('hello world')\n")
    (root / "src" / "util.py").write_text("# TODO: tidy\nVALUE = 1\n")
    (root / "docs" / "readme.md").write_text("Hello docs\nTODO write more\n")
    (root / ".hidden").write_text("secret\n")
    return root


@pytest.fixture
def git_repo(file_tree):
    """file_tree turned into a git repository with two commits."""
    if shutil.which("git") is None:
        pytest.skip("git not installed")

    def git(*args):
        subprocess.run(
            ["git", *args],
            cwd=file_tree,
            check=True,
            capture_output=True,
            text=True,
        )

    git("init", "-q")
    git("symbolic-ref", "HEAD", "refs/heads/main")
    git("config", "commit.gpgsign", "false")
    git("config", "user.email", "dev@example.com")
    git("config", "user.name", "Dev")
    git("add", "src")
    git("commit", "-q", "-m", "Add sources")
    git("add", "docs")
    git("commit", "-q", "-m", "Add docs")
    return file_tree


@pytest.fixture
def wait_until():
    """Poll a predicate until it holds or the timeout runs out."""
    import time

    def _wait(predicate, timeout=5.0, interval=0.01):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return predicate()

    return _wait
