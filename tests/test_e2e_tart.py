"""Live end-to-end run of ``devboot test auto`` against a real tart host.

This clones and boots a full macOS guest, so it only runs on Apple Silicon
with tart installed and is guarded by ``DEVBOOT_E2E=1``. The first run pulls
a ~20GB base image.
"""

from __future__ import annotations

import os
import platform
import shutil
import subprocess
import sys
import uuid
from pathlib import Path

import pytest

from devboot.config import DevbootConfig, save


def test_e2e_automated_harness(tmp_path: Path) -> None:
    if os.getenv('DEVBOOT_E2E') != '1':
        pytest.skip('Set DEVBOOT_E2E=1 to run the tart e2e test.')
    if platform.system() != 'Darwin' or platform.machine() != 'arm64':
        pytest.skip('The tart e2e test needs an Apple Silicon Mac.')
    if shutil.which('tart') is None:
        pytest.skip('The tart e2e test needs tart on PATH.')

    repo_root = Path(__file__).resolve().parent.parent
    cfg = DevbootConfig()
    cfg.vm.name = f'devboot-e2e-{uuid.uuid4().hex[:6]}'
    cfg.verbosity = 2
    cfg_path = tmp_path / 'e2e.toml'
    save(cfg_path, cfg)

    proc = subprocess.run(
        [
            sys.executable,
            '-m',
            'devboot',
            'test',
            'auto',
            '--config',
            str(cfg_path),
            '--share_dir',
            str(repo_root),
        ],
        cwd=str(tmp_path),
        text=True,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        timeout=3 * 60 * 60,
    )
    sys.stdout.write(proc.stdout)
    assert proc.returncode == 0, proc.stdout
    assert 'All tests passed!' in proc.stdout

    # The harness deletes its VM on every exit path.
    listing = subprocess.run(
        ['tart', 'list'], check=True, text=True, capture_output=True
    ).stdout
    assert cfg.vm.name not in listing
