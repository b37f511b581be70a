"""Bootstrap sequencing: load → resolve options → init → run.

``KernelContext`` holds the loaded modules and the option store: one
instance per process, handed to every module's ``init`` and shared with the
scheduler and the HTTP control surface. Everything here runs on the single
scheduling thread.
"""
from __future__ import annotations

import sys
import time
import traceback
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    NoReturn,
    Optional,
    Tuple,
)

from kernel.config import (
    ConfigStore,
    ConsoleInputPort,
    InputPort,
    get_settings,
)
from kernel.config.schemas.kernel import KernelSettings
from kernel.config.schemas.options import ResolvedOption
from kernel.crash import CrashReporter
from kernel.errors import TaskFailedError, validate_error_type
from kernel.events import emit, ModuleInitialized
from kernel.modules import (
    CONFIG_MODULE_ID,
    LoadedModule,
    ModuleDescriptor,
    interface_start,
    load_all,
)
from kernel.scheduler import EventSource, QueueEventSource, Scheduler

KERNEL_VERSION = "1.0.0"


class ConfigInterface:
    """Interface of the synthetic ``config`` module."""

    def __init__(self, store: ConfigStore) -> None:
        self.store = store

    def save(self) -> bool:
        return self.store.save()

    def set(self, setting: ResolvedOption, value: Any) -> bool:
        return self.store.set(setting, value)


class KernelContext:
    def __init__(
        self,
        settings: KernelSettings,
        config: ConfigStore,
        events: EventSource,
    ) -> None:
        self.settings = settings
        self.config = config
        # host event primitives: queue, start_timer, cancel_timer
        self.events = events
        # insertion order == registry order, config pseudo-module last
        self.modules: Dict[str, LoadedModule] = {}

    def interface(self, module_id: str) -> Any:
        return self.modules[module_id].interface

    def module_versions(self) -> List[Tuple[str, str]]:
        return [
            (m.id, m.version)
            for m in self.modules.values()
            if m.id != CONFIG_MODULE_ID
        ]


def _error_text(error: BaseException) -> str:
    return "".join(traceback.format_exception_only(type(error), error)).strip()


class Kernel:
    def __init__(
        self,
        sources: Optional[Iterable[Any]] = None,
        settings: Optional[KernelSettings] = None,
        input_port: Optional[InputPort] = None,
        event_source: Optional[EventSource] = None,
        exit: Callable[[int], NoReturn] = sys.exit,
    ) -> None:
        self.settings = settings or get_settings()
        self._sources = list(
            self.settings.modules.sources if sources is None else sources
        )
        source = event_source or QueueEventSource(
            self.settings.scheduler.tick_s
        )
        self.context = KernelContext(
            self.settings,
            ConfigStore(
                self.settings.storage.config_file,
                input_port or ConsoleInputPort(),
            ),
            source,
        )
        self.scheduler = Scheduler(
            source, watchdog_s=self.settings.scheduler.watchdog_s
        )
        self.reporter = CrashReporter(
            self.settings.storage.crash_report_file,
            self.context.module_versions,
            exit=exit,
        )
        self.order: List[str] = []

    # --- Boot ----------------------------------------------------------------
    def boot(self) -> KernelContext:
        descriptors, self.order = load_all(self._sources)
        store = self.context.config
        store.resolve(descriptors[mid] for mid in self.order)
        store.save()
        for mid in self.order:
            self.context.modules[mid] = LoadedModule(descriptors[mid])
        self.context.modules[CONFIG_MODULE_ID] = LoadedModule(
            ModuleDescriptor(
                id=CONFIG_MODULE_ID,
                version=KERNEL_VERSION,
                source=__name__,
            ),
            interface=ConfigInterface(store),
        )
        for mid in self.order:
            self._init_module(self.context.modules[mid])
        return self.context

    def _init_module(self, slot: LoadedModule) -> None:
        desc = slot.descriptor
        if desc.init is None:
            print(
                f"Failed to initialize {desc.id}, no init function"
            )  # noqa: T201
            return
        t0 = time.perf_counter()
        try:
            interface = desc.init(self.context)
        except Exception as e:  # noqa: BLE001
            validate_error_type("init-failed")
            print(f"[init-failed] module={desc.id} error={e}")  # noqa: T201
            self.reporter.report(
                desc.id, traceback.format_exc(), _error_text(e)
            )
        elapsed = time.perf_counter() - t0
        slot.interface = interface
        slot.initialized = True
        start = interface_start(interface)
        if start is not None:
            self.scheduler.add(desc.id, start)
        print(f"Initialized {desc.id} in {elapsed:.2f} seconds")  # noqa: T201
        emit(
            ModuleInitialized(
                module_id=desc.id,
                init_ms=int(elapsed * 1000),
                has_start=start is not None,
            )
        )

    # --- Run -----------------------------------------------------------------
    def run(self, max_cycles: Optional[int] = None) -> int:
        """Run the scheduler; 0 on terminate, crash report on failure."""
        print("Starting execution...")  # noqa: T201
        try:
            self.scheduler.run(max_cycles)
        except TaskFailedError as e:
            print(
                f"[task-failed] module={e.module_id} error={e.error}"
            )  # noqa: T201
            self.reporter.report(e.module_id, e.trace, _error_text(e.error))
        return 0


def boot_and_run(
    sources: Optional[Iterable[Any]] = None,
    **kwargs: Any,
) -> int:
    kernel = Kernel(sources, **kwargs)
    kernel.boot()
    return kernel.run()


__all__ = [
    "KERNEL_VERSION",
    "ConfigInterface",
    "KernelContext",
    "Kernel",
    "boot_and_run",
]
