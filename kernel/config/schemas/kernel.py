"""Kernel settings schemas: module list, storage paths, scheduler knobs."""
from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class ModulesSettings(BaseModel):
    # Dotted import paths, loaded in exactly this order.
    sources: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class StorageSettings(BaseModel):
    config_file: str = "config.yaml"
    crash_report_file: str = "crash_report.txt"

    model_config = ConfigDict(extra="forbid")


class SchedulerSettings(BaseModel):
    watchdog_s: float = Field(0.0, ge=0.0)
    tick_s: float = Field(0.05, gt=0.0)

    model_config = ConfigDict(extra="forbid")


class KernelSettings(BaseModel):
    schema_version: int = 1
    modules: ModulesSettings = ModulesSettings()
    storage: StorageSettings = StorageSettings()
    scheduler: SchedulerSettings = SchedulerSettings()

    model_config = ConfigDict(extra="forbid")
