import textwrap
from types import SimpleNamespace

from kernel import metrics
from kernel.modules import (
    Identifiable,
    Initializable,
    describe,
    interface_start,
    load_all,
)


def _mod(mid, **kw):
    kw.setdefault("version", "1.0")
    return SimpleNamespace(id=mid, **kw)


def test_order_is_declaration_order(capsys):
    loaded, order = load_all(
        [_mod("logger"), _mod("inventory"), _mod("crafting")]
    )
    assert order == ["logger", "inventory", "crafting"]
    assert list(loaded) == order
    out = capsys.readouterr().out
    assert "Loaded logger v1.0" in out
    assert metrics.counter("modules_loaded_total") == 3


def test_load_errors_are_skipped_not_fatal(capsys):
    sources = [
        _mod("a"),
        SimpleNamespace(version="1"),  # no id
        SimpleNamespace(id="b"),  # no version
        _mod("a"),  # duplicate
        _mod("config"),  # reserved
        _mod("c", config_spec={"x": {"type": "boolean"}}),  # bad spec
        "depot_tests_no_such_module",
        _mod("d"),
    ]
    loaded, order = load_all(sources)
    assert order == ["a", "d"]
    out = capsys.readouterr().out
    assert out.count("[module-load] skipped") == 6
    counters = metrics.snapshot()["counters"]
    assert counters["module_load_errors_total{reason=module-load}"] == 3
    assert counters["module_load_errors_total{reason=module-duplicate}"] == 1
    assert counters["module_load_errors_total{reason=module-reserved-id}"] == 1
    assert counters["module_load_errors_total{reason=module-invalid-spec}"] == 1


def test_module_without_init_is_still_loaded():
    loaded, order = load_all([_mod("grid", config_spec={})])
    assert order == ["grid"]
    assert loaded["grid"].init is None
    assert loaded["grid"].setup is None


def test_import_by_dotted_path(tmp_path, monkeypatch):
    pkg = tmp_path / "depot_fixture_modules"
    pkg.mkdir()
    (pkg / "__init__.py").write_text("", encoding="utf-8")
    (pkg / "tui.py").write_text(
        textwrap.dedent(
            """
            id = "tui"
            version = "2.0.0"
            config_spec = {
                "monitor": {
                    "default": "top",
                    "type": "string",
                    "description": "Peripheral side of the monitor",
                },
            }

            def init(context):
                return {}
            """
        ),
        encoding="utf-8",
    )
    monkeypatch.syspath_prepend(str(tmp_path))
    desc = describe("depot_fixture_modules.tui")
    assert desc.id == "tui"
    assert desc.source == "depot_fixture_modules.tui"
    assert desc.config_spec["monitor"].type == "string"
    assert desc.init is not None


def test_capability_protocols_and_start_lookup():
    mod = _mod("x", init=lambda ctx: None)
    assert isinstance(mod, Identifiable)
    assert isinstance(mod, Initializable)

    def start(event):
        yield None

    assert interface_start({"start": start}) is start
    assert interface_start(SimpleNamespace(start=start)) is start
    assert interface_start({"start": "not callable"}) is None
    assert interface_start(None) is None
