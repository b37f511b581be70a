"""Pytest configuration ensuring project root is importable.

Adds repository root (and src/) to sys.path explicitly to avoid
interpreter/path quirks when the package is not installed.
"""
from __future__ import annotations

import sys
from pathlib import Path
import os
import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
SRC = ROOT / "src"
if SRC.exists() and str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture(autouse=True)
def _isolate_kernel_state():  # noqa: D401
    """Ensure global settings/metrics/listener state does not leak.

    - Clear cached kernel settings between tests
    - Restore DEPOT_CONFIG_DIR to its previous value
    - Reset metrics counters and lifecycle listeners
    """
    from kernel import metrics  # local import
    from kernel.config import clear_settings_cache
    from kernel.events import reset_listeners_for_tests

    prev = os.environ.get("DEPOT_CONFIG_DIR")
    clear_settings_cache()
    metrics.reset_for_tests()
    reset_listeners_for_tests()
    try:
        yield
    finally:
        clear_settings_cache()
        reset_listeners_for_tests()
        if prev is None:
            os.environ.pop("DEPOT_CONFIG_DIR", None)
        else:
            os.environ["DEPOT_CONFIG_DIR"] = prev


@pytest.fixture
def settings(tmp_path):
    """Kernel settings writing every artifact under tmp_path."""
    from kernel.config.schemas.kernel import KernelSettings

    return KernelSettings.model_validate(
        {
            "storage": {
                "config_file": str(tmp_path / "config.yaml"),
                "crash_report_file": str(tmp_path / "crash_report.txt"),
            }
        }
    )
