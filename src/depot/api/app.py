"""FastAPI control surface over a booted kernel.

Read-only views of modules, tasks and resolved options, plus the one
mutation path modules agree on: ``ConfigStore.set``. Rejected values leave
the option untouched and answer 422.

Handlers run on uvicorn's threads; every read and write of kernel state is
handed to the scheduling thread through ``Scheduler.submit``.
"""
from __future__ import annotations

import copy
import threading
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Callable

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from kernel import metrics
from kernel.bootstrap import KERNEL_VERSION, KernelContext
from kernel.scheduler import Scheduler

# a task hogging the loop longer than this turns requests into 503s
KERNEL_CALL_TIMEOUT_S = 5.0


class OptionUpdate(BaseModel):
    value: Any = None


def create_app(
    context: KernelContext, scheduler: Scheduler | None = None
) -> FastAPI:
    app = FastAPI(
        title="depot kernel",
        version=KERNEL_VERSION,
        docs_url=None,
        redoc_url=None,
    )

    def on_kernel(fn: Callable[..., Any], *args: Any) -> Any:
        if scheduler is None:
            return fn(*args)
        try:
            return scheduler.submit(fn, *args).result(KERNEL_CALL_TIMEOUT_S)
        except FutureTimeout:
            raise HTTPException(status_code=503, detail="kernel busy")

    def module_rows():
        out = []
        for mid, version in context.module_versions():
            slot = context.modules[mid]
            task = scheduler.task(mid) if scheduler is not None else None
            out.append(
                {
                    "id": mid,
                    "version": version,
                    "initialized": slot.initialized,
                    "task": (
                        {"state": task.state.value, "filter": task.filter}
                        if task is not None
                        else None
                    ),
                }
            )
        return out

    def apply_option(module_id: str, name: str, value: Any):
        store = context.config
        if module_id not in store or name not in store[module_id]:
            return None
        setting = store[module_id][name]
        ok = store.set(setting, value)
        return ok, setting.type, copy.deepcopy(setting.value)

    @app.get("/health")
    def health():  # noqa: D401
        return {"status": "ok", "modules": len(context.module_versions())}

    @app.get("/modules")
    def modules():  # noqa: D401
        return {"modules": on_kernel(module_rows)}

    @app.get("/config")
    def config():  # noqa: D401
        snapshot = on_kernel(lambda: copy.deepcopy(context.config.as_dict()))
        return {"config": snapshot}

    @app.get("/metrics")
    def metrics_snapshot():  # noqa: D401
        return metrics.snapshot()

    @app.put("/config/{module_id}/{name}")
    def set_option(module_id: str, name: str, payload: OptionUpdate):
        outcome = on_kernel(apply_option, module_id, name, payload.value)
        if outcome is None:
            raise HTTPException(
                status_code=404, detail=f"unknown option {module_id}.{name}"
            )
        ok, type_, value = outcome
        if not ok:
            return JSONResponse(
                status_code=422,
                content={
                    "ok": False,
                    "error": f"value does not fit type {type_}",
                    "value": value,
                },
            )
        return {"ok": True, "value": value}

    return app


def serve_in_background(
    context: KernelContext,
    scheduler: Scheduler | None = None,
    host: str = "127.0.0.1",
    port: int = 8000,
) -> threading.Thread:  # pragma: no cover
    """Serve the control surface from a daemon thread.

    The scheduler keeps the main thread; handlers reach kernel state only
    through ``Scheduler.submit``.
    """
    import uvicorn

    server = uvicorn.Server(
        uvicorn.Config(
            create_app(context, scheduler),
            host=host,
            port=port,
            log_level="warning",
        )
    )
    # signal handlers belong to the kernel's main thread
    server.install_signal_handlers = lambda: None  # type: ignore
    thread = threading.Thread(target=server.run, name="depot-api", daemon=True)
    thread.start()
    print(f"[api] serving host={host} port={port}")  # noqa: T201
    return thread


__all__ = ["create_app", "serve_in_background", "OptionUpdate"]
