"""Shared pytest fixtures: fake clock, fake du tool and a scripted scan runner."""

from __future__ import annotations

import sys
import textwrap
from pathlib import Path
from typing import Callable

import pytest

from duatlas.errors import ScanError
from duatlas.paths import normalize_path


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRunner:
    """Stands in for ScanRunner; returns canned mappings and records every call."""

    def __init__(self, sizes: dict[str, int] | None = None) -> None:
        self.sizes = sizes or {}
        self.calls: list[tuple[str, bool]] = []
        self.failures: list[ScanError] = []

    def run(self, root, include_files=True, on_progress=None):
        self.calls.append((normalize_path(root), include_files))
        if self.failures:
            raise self.failures.pop(0)
        return dict(self.sizes)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def make_fake_du(tmp_path: Path) -> Callable[[str], tuple[str, str]]:
    """Write a Python script that plays the part of du; returns the command prefix.

    The script body sees ``flag`` ("-ak" or "-k"), ``root`` and an ``out(text)``
    helper that writes and flushes raw output.
    """
    counter = {"n": 0}

    def factory(body: str) -> tuple[str, str]:
        counter["n"] += 1
        script = tmp_path / f"fake_du_{counter['n']}.py"
        header = textwrap.dedent(
            """
            import sys, time
            flag, root = sys.argv[-2], sys.argv[-1]
            def out(text):
                sys.stdout.buffer.write(text.encode("utf-8", "surrogateescape"))
                sys.stdout.buffer.flush()
            """
        )
        script.write_text(header + textwrap.dedent(body), encoding="utf-8")
        return (sys.executable, str(script))

    return factory
