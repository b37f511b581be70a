from pathlib import Path

from kernel.dev.import_graph_ast import (
    build_import_graph_ast,
    detect_cycles,
    forbidden_edges,
)

KERNEL_ROOT = Path(__file__).resolve().parents[2] / "kernel"

# Layering:
#   errors/metrics/events -> foundation
#   config, scheduler, crash -> peers over the foundation
#   modules -> may read option schemas, nothing above
#   bootstrap -> orchestrator; nobody imports it.


def test_kernel_import_graph_has_no_cycles():
    graph = build_import_graph_ast(KERNEL_ROOT, "kernel")
    assert "kernel.bootstrap" in graph
    assert not detect_cycles(graph), detect_cycles(graph)


def test_kernel_layering_rules():
    graph = build_import_graph_ast(KERNEL_ROOT, "kernel")
    rules = [
        ("kernel.config", "kernel.modules"),
        ("kernel.config", "kernel.scheduler"),
        ("kernel.config", "kernel.bootstrap"),
        ("kernel.config", "kernel.crash"),
        ("kernel.scheduler", "kernel.config"),
        ("kernel.scheduler", "kernel.modules"),
        ("kernel.scheduler", "kernel.bootstrap"),
        ("kernel.modules", "kernel.scheduler"),
        ("kernel.modules", "kernel.bootstrap"),
        ("kernel.crash", "kernel.scheduler"),
        ("kernel.crash", "kernel.modules"),
        ("kernel.events", "kernel.config"),
        ("kernel.metrics", "kernel.events"),
    ]
    bad = forbidden_edges(graph, rules)
    assert not bad, f"Forbidden import edges: {bad}"


def test_relative_and_package_imports_are_resolved():
    graph = build_import_graph_ast(KERNEL_ROOT, "kernel")
    # "from .task import ..." inside kernel/scheduler/loop.py
    assert "kernel.scheduler.task" in graph["kernel.scheduler.loop"]
    # "from kernel import metrics"
    assert "kernel.metrics" in graph["kernel.scheduler.loop"]
