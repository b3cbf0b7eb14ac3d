from __future__ import annotations

import shutil
import sys
import threading
from pathlib import Path

import pytest

# pytest may run without installing the project; ensure repo root is importable.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from miner.core.config import Config  # noqa: E402
from miner.search.candidates import CounterCandidates  # noqa: E402


@pytest.fixture()
def temp_dir(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture()
def config_dir(temp_dir: Path) -> Path:
    """A copy of the repo's config/ tree inside a temp directory."""

    cfg_dst_dir = temp_dir / "config"
    cfg_dst_dir.mkdir(parents=True, exist_ok=True)
    shutil.copy2(REPO_ROOT / "config" / "default.yaml", cfg_dst_dir / "default.yaml")
    shutil.copytree(REPO_ROOT / "config" / "presets", cfg_dst_dir / "presets")
    return cfg_dst_dir


@pytest.fixture()
def test_config(config_dir: Path) -> Config:
    return Config.from_yaml(config_dir / "default.yaml", overrides={"search": {"workers": 2, "batch_size": 64}})


class StubDerivation:
    """Derivation driven by a plain function; counts every call."""

    name = "stub"
    candidate_size = 32

    def __init__(self, fn, *, digest_size: int = 20, on_call=None) -> None:
        self.fn = fn
        self.digest_size = digest_size
        self.on_call = on_call
        self.calls = 0
        self._lock = threading.Lock()

    def derive(self, candidate: bytes) -> bytes:
        with self._lock:
            self.calls += 1
        if self.on_call is not None:
            self.on_call(candidate)
        return self.fn(candidate)

    def format_digest(self, digest: bytes) -> str:
        return digest.hex()

    def default_candidates(self) -> CounterCandidates:
        return CounterCandidates()


@pytest.fixture()
def stub_derivation():
    return StubDerivation


@pytest.fixture(autouse=True)
def _reset_miner_logger():
    """configure_logging() detaches the miner logger from root; undo that so caplog keeps working."""

    yield
    import logging

    lg = logging.getLogger("miner")
    for h in list(lg.handlers):
        lg.removeHandler(h)
    lg.propagate = True
    lg.setLevel(logging.NOTSET)
