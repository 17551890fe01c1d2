"""Shared fixtures for the imgsqueeze test-suite."""

from __future__ import annotations

import subprocess

import pytest

from imgsqueeze.config import RunConfig
from imgsqueeze.models import ContainerRef
from imgsqueeze.optimizers import default_optimizers

from fakes import FakeTools, MemoryStore


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def container():
    return ContainerRef(bucket="assets")


@pytest.fixture
def work_dir(tmp_path):
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def config(work_dir):
    return RunConfig(bucket="assets", confirm=False, work_dir=work_dir)


@pytest.fixture
def fake_tools(monkeypatch):
    tools = FakeTools()
    monkeypatch.setattr(subprocess, "run", tools)
    return tools


@pytest.fixture
def optimizers(config, fake_tools):
    return default_optimizers(config)
