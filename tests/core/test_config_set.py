from types import SimpleNamespace

import yaml
from kernel.config import ConfigStore, ScriptedInputPort, type_matches
from kernel.modules import describe


def _store(tmp_path):
    mod = SimpleNamespace(
        id="inventory",
        version="2.1",
        config_spec={
            "interval": {"default": 5, "type": "number"},
            "label": {"default": "main", "type": "string"},
            "chests": {"default": [], "type": "table"},
        },
    )
    store = ConfigStore(tmp_path / "config.yaml", ScriptedInputPort([]))
    return store.resolve([describe(mod)], persisted={})


def test_set_accepts_matching_type_as_is(tmp_path):
    store = _store(tmp_path)
    opt = store["inventory"]["label"]
    assert store.set(opt, "north")
    assert opt.value == "north"


def test_set_coerces_numeric_text(tmp_path):
    store = _store(tmp_path)
    opt = store["inventory"]["interval"]
    assert store.set(opt, "12")
    assert opt.value == 12
    assert store.set(opt, "0.5")
    assert opt.value == 0.5


def test_set_coerces_table_literal(tmp_path):
    store = _store(tmp_path)
    opt = store["inventory"]["chests"]
    assert store.set(opt, "[chest_1, chest_2]")
    assert opt.value == ["chest_1", "chest_2"]


def test_set_rejects_and_leaves_value_unchanged(tmp_path):
    store = _store(tmp_path)
    cases = [
        ("interval", "soon"),
        ("interval", True),
        ("interval", None),
        ("chests", ""),
        ("chests", "42"),
        ("chests", 3),
        ("label", 7),
    ]
    for name, value in cases:
        opt = store["inventory"][name]
        before = opt.value
        assert store.set(opt, value) is False, (name, value)
        assert opt.value == before
        assert type_matches(opt.value, opt.type)


def test_successful_set_persists(tmp_path):
    store = _store(tmp_path)
    store.set(store["inventory"]["interval"], "30")
    data = yaml.safe_load((tmp_path / "config.yaml").read_text())
    assert data["inventory"]["interval"]["value"] == 30
