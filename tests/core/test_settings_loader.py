import os

import pytest
from kernel import metrics
from kernel.config import (
    ConfigError,
    as_dict,
    clear_settings_cache,
    get_settings,
)


def _write_config(tmp_path, base: str, overrides: str | None = None):
    (tmp_path / "base.yaml").write_text(base, encoding="utf-8")
    if overrides is not None:
        (tmp_path / "overrides.local.yaml").write_text(
            overrides, encoding="utf-8"
        )
    os.environ["DEPOT_CONFIG_DIR"] = str(tmp_path)
    clear_settings_cache()


def test_defaults_when_no_files(tmp_path):
    os.environ["DEPOT_CONFIG_DIR"] = str(tmp_path / "missing")
    cfg = get_settings()
    assert cfg.schema_version == 1
    assert cfg.modules.sources == []
    assert cfg.scheduler.watchdog_s == 0.0
    assert cfg.storage.config_file == "config.yaml"


def test_overrides_win_over_base(tmp_path):
    _write_config(
        tmp_path,
        "modules:\n  sources: [modules.inventory, modules.tui]\n"
        "storage:\n  config_file: a.yaml\n",
        "storage:\n  config_file: b.yaml\n",
    )
    cfg = get_settings()
    assert cfg.modules.sources == ["modules.inventory", "modules.tui"]
    assert cfg.storage.config_file == "b.yaml"
    assert cfg.storage.crash_report_file == "crash_report.txt"


def test_unknown_key_rejected(tmp_path):
    _write_config(tmp_path, "scheduler:\n  fairness: strict\n")
    with pytest.raises(ConfigError):
        get_settings()
    counters = metrics.snapshot()["counters"]
    assert counters["config_validation_errors_total{code=config-invalid}"] == 1


def test_out_of_range_tick_rejected(tmp_path):
    _write_config(tmp_path, "scheduler:\n  tick_s: 0\n")
    with pytest.raises(ConfigError):
        get_settings()
    counters = metrics.snapshot()["counters"]
    key = "config_validation_errors_total{code=config-out-of-range}"
    assert counters[key] == 1


def test_env_override_metric_and_logging(tmp_path, monkeypatch, capsys):
    _write_config(tmp_path, "scheduler:\n  tick_s: 0.05\n")
    monkeypatch.setenv("DEPOT__SCHEDULER__TICK_S", "0.5")
    monkeypatch.setenv("DEPOT__MODULES__SOURCES", "modules.a,modules.b")
    cfg = as_dict()
    assert cfg["scheduler"]["tick_s"] == 0.5
    assert cfg["modules"]["sources"] == ["modules.a", "modules.b"]
    counters = metrics.snapshot()["counters"]
    assert counters["env_override_total{path=scheduler.tick_s}"] == 1
    out = capsys.readouterr().out
    assert "[config-env-override] path=scheduler.tick_s" in out
