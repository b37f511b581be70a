import threading
import time
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from depot.api.app import create_app
from kernel import metrics
from kernel.bootstrap import Kernel
from kernel.config import ScriptedInputPort
from kernel.events import subscribe
from kernel.scheduler import QueueEventSource, ScriptedEventSource


@pytest.fixture
def booted(settings):
    def start(event):
        while True:
            event = yield "redstone"

    mods = [
        SimpleNamespace(
            id="inventory",
            version="1.4.0",
            config_spec={
                "interval": {"default": 5, "type": "number"},
                "chests": {"default": [], "type": "table"},
            },
            init=lambda context: {"start": start},
        ),
        SimpleNamespace(id="grid", version="0.1"),
    ]
    kernel = Kernel(
        mods,
        settings=settings,
        input_port=ScriptedInputPort([]),
        event_source=ScriptedEventSource(["timer"]),
    )
    context = kernel.boot()
    kernel.scheduler.run(max_cycles=1)
    return kernel, TestClient(create_app(context, kernel.scheduler))


def test_health_counts_real_modules(booted):
    _, client = booted
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "modules": 2}


def test_modules_lists_versions_and_task_state(booted):
    _, client = booted
    data = client.get("/modules").json()["modules"]
    assert [m["id"] for m in data] == ["inventory", "grid"]
    inv, grid = data
    assert inv["initialized"] is True
    assert inv["task"] == {"state": "waiting", "filter": "redstone"}
    assert grid["initialized"] is False
    assert grid["task"] is None


def test_config_view_includes_metadata(booted):
    _, client = booted
    cfg = client.get("/config").json()["config"]
    assert cfg["inventory"]["interval"]["type"] == "number"
    assert cfg["inventory"]["interval"]["value"] == 5


def test_put_coerces_and_persists(booted):
    kernel, client = booted
    r = client.put("/config/inventory/interval", json={"value": "30"})
    assert r.status_code == 200
    assert r.json() == {"ok": True, "value": 30}
    assert kernel.context.config.value("inventory", "interval") == 30


def test_put_rejected_value_leaves_option_unchanged(booted):
    kernel, client = booted
    r = client.put("/config/inventory/chests", json={"value": "42"})
    assert r.status_code == 422
    body = r.json()
    assert body["ok"] is False
    assert body["value"] == []
    assert kernel.context.config.value("inventory", "chests") == []


def test_put_unknown_option_is_404(booted):
    _, client = booted
    for path in ("/config/inventory/nope", "/config/ghost/interval"):
        assert client.put(path, json={"value": 1}).status_code == 404


def test_metrics_snapshot_exposed(booted):
    _, client = booted
    counters = client.get("/metrics").json()["counters"]
    assert counters["modules_loaded_total"] == 2


def test_put_is_applied_on_the_scheduling_thread(settings):
    mod = SimpleNamespace(
        id="inventory",
        version="1.4.0",
        config_spec={"interval": {"default": 5, "type": "number"}},
        init=lambda context: {},
    )
    source = QueueEventSource(tick_s=0.01)
    kernel = Kernel(
        [mod],
        settings=settings,
        input_port=ScriptedInputPort([]),
        event_source=source,
    )
    context = kernel.boot()
    saved_on = []

    def on_saved(name, _payload):
        if name == "ConfigSaved":
            saved_on.append(threading.current_thread().name)

    subscribe(on_saved)
    loop = threading.Thread(
        target=kernel.scheduler.run, name="kernel-loop", daemon=True
    )
    loop.start()
    deadline = time.time() + 2
    while not kernel.scheduler.running and time.time() < deadline:
        time.sleep(0.005)
    assert kernel.scheduler.running

    client = TestClient(create_app(context, kernel.scheduler))
    r = client.put("/config/inventory/interval", json={"value": "12"})
    assert r.json() == {"ok": True, "value": 12}
    cfg = client.get("/config").json()["config"]
    assert cfg["inventory"]["interval"]["value"] == 12

    source.queue("terminate")
    loop.join(timeout=2)
    assert not loop.is_alive()
    assert saved_on == ["kernel-loop"]
    assert metrics.counter("host_calls_total") == 2
