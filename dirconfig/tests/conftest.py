"""Shared fixtures for the dirconfig test suite."""

import json
from pathlib import Path

import pytest

from dirconfig.loader.file import JsonReader, PythonReader
from dirconfig.manager import ConfigService
from dirconfig.storage.cache import ConfigCache


class CountingPythonReader(PythonReader):
    """Python reader that records every file it parses."""

    def __init__(self):
        super().__init__()
        self.calls: list[Path] = []

    def _decode(self, path: Path):
        self.calls.append(path)
        return super()._decode(path)


class CountingJsonReader(JsonReader):
    """JSON reader that records every file it parses."""

    def __init__(self):
        super().__init__()
        self.calls: list[Path] = []

    def _decode(self, path: Path):
        self.calls.append(path)
        return super()._decode(path)


@pytest.fixture()
def config_dir(tmp_path):
    """Config directory with one file per format used by the service tests."""
    directory = tmp_path / "config"
    directory.mkdir()
    (directory / "app.py").write_text('CONFIG = {"name": "MyApp", "debug": False}\n')
    (directory / "database.json").write_text(json.dumps({"host": "127.0.0.1", "port": 3306}))
    (directory / "mail.ini").write_text("server = smtp.example.com\nport = 25\n")
    return directory


@pytest.fixture()
def cache_file(tmp_path):
    return tmp_path / "var" / "cache" / "config.cache"


@pytest.fixture()
def make_cache(cache_file):
    """Build caches under tmp_path; the temp directory check is disabled."""

    def _make(ttl: int = 3600) -> ConfigCache:
        return ConfigCache(cache_file, ttl=ttl, unsafe_roots=())

    return _make


@pytest.fixture()
def make_service(config_dir, make_cache):
    def _make(ttl: int = 3600, **kwargs) -> ConfigService:
        kwargs.setdefault("excluded_files", [])
        return ConfigService(config_dir, make_cache(ttl), **kwargs)

    return _make
