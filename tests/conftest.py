"""
Shared test fixtures and in-memory stand-ins for the Windows adapters.
"""

import hashlib
from pathlib import Path

import pytest

from appdeploy.adapters.windows.registry import (
    InstalledInventory,
    UninstallRecord,
    UninstallStore,
)
from appdeploy.adapters.windows.scheduled_task import RunAsUser, RunResult
from appdeploy.core.models.config import DeployConfig
from appdeploy.core.models.status import ConnectivityStatus, Endpoint


class FakeUninstallStore(UninstallStore):
    def __init__(self, records: list[UninstallRecord] | None = None):
        self._records = records or []

    def records(self) -> list[UninstallRecord]:
        return list(self._records)


class FakeInventory(InstalledInventory):
    def __init__(self, names: list[str] | None = None):
        self._names = list(names or [])

    def names(self) -> list[str]:
        return list(self._names)

    def add(self, name: str) -> None:
        self._names.append(name)


class FakeRunner(RunAsUser):
    """Records scripts instead of running them."""

    def __init__(self, result: RunResult | None = None):
        self.result = result or RunResult(completed=True, exit_code=0)
        self.scripts: list[str] = []

    def run_script(self, script: Path, *, timeout: int) -> RunResult:
        self.scripts.append(script.read_text(encoding="utf-8"))
        return self.result


class FakeDownloader:
    """Serves bytes per URL and counts calls."""

    def __init__(self, payloads: dict[str, bytes] | None = None):
        self.payloads = payloads or {}
        self.calls: list[str] = []

    def __call__(self, url: str, dest: Path, timeout: int = 120) -> dict:
        self.calls.append(url)
        if url not in self.payloads:
            return {"ok": False, "error": f"Download failed for {url}: HTTP Error 404"}
        dest.write_bytes(self.payloads[url])
        return {"ok": True, "path": str(dest), "size_bytes": len(self.payloads[url])}


def sha256_of(data: bytes) -> str:
    return "sha256:" + hashlib.sha256(data).hexdigest()


def connectivity(*unreachable: Endpoint) -> ConnectivityStatus:
    return ConnectivityStatus(frozenset(unreachable))


@pytest.fixture
def config() -> DeployConfig:
    return DeployConfig()


@pytest.fixture
def staging_dir(tmp_path: Path) -> Path:
    return tmp_path / "staging"
