"""AST based import graph builder for layering tests.

Collects edges between modules of one internal package (``kernel`` by
default) and reports cycles and forbidden edges.
"""
from __future__ import annotations

import ast
from pathlib import Path
from typing import Dict, List, Set, Tuple


def _module_name(package: str, root: Path, py: Path) -> str:
    rel = py.relative_to(root).with_suffix("")
    parts = [package, *rel.parts]
    if parts[-1] == "__init__":
        parts.pop()
    return ".".join(parts)


def _resolve_relative(mod: str, is_pkg: bool, level: int, target: str) -> str:
    base = mod.split(".")
    if not is_pkg:
        base = base[:-1]
    if level > 1:
        base = base[: -(level - 1)]
    return ".".join([*base, target] if target else base)


def build_import_graph_ast(
    root: str | Path = "kernel", package: str = "kernel"
) -> Dict[str, Set[str]]:
    root_path = Path(root)
    prefix = package + "."
    edges: Dict[str, Set[str]] = {}
    for py in root_path.rglob("*.py"):
        if "__pycache__" in py.parts:
            continue
        src = _module_name(package, root_path, py)
        try:
            tree = ast.parse(py.read_text(encoding="utf-8"))
        except SyntaxError:
            continue
        targets = edges.setdefault(src, set())
        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                for n in node.names:
                    if n.name.startswith(prefix):
                        targets.add(n.name)
            elif isinstance(node, ast.ImportFrom):
                name = node.module or ""
                if node.level:
                    name = _resolve_relative(
                        src, py.name == "__init__.py", node.level, name
                    )
                if name == package:
                    # from kernel import metrics -> kernel.metrics
                    targets.update(f"{package}.{a.name}" for a in node.names)
                elif name.startswith(prefix):
                    targets.add(name)
    for n in list(edges.keys()):
        for dst in edges[n]:
            edges.setdefault(dst, set())
    return edges


def detect_cycles(graph: Dict[str, Set[str]]) -> List[List[str]]:
    visited: Set[str] = set()
    stack: Set[str] = set()
    cycles: List[List[str]] = []

    def dfs(node: str, path: List[str]) -> None:
        if node in stack:
            if node in path:
                idx = path.index(node)
                cycles.append(path[idx:] + [node])
            return
        if node in visited:
            return
        visited.add(node)
        stack.add(node)
        for nxt in sorted(graph.get(node, ())):
            dfs(nxt, path + [nxt])
        stack.remove(node)

    for n in sorted(graph):
        if n not in visited:
            dfs(n, [n])
    return cycles


def forbidden_edges(
    graph: Dict[str, Set[str]], rules: List[Tuple[str, str]]
) -> List[Tuple[str, str]]:
    found: List[Tuple[str, str]] = []
    for src, targets in graph.items():
        for dst in targets:
            for a, b in rules:
                if src.startswith(a) and dst.startswith(b):
                    found.append((src, dst))
    return found


__all__ = ["build_import_graph_ast", "detect_cycles", "forbidden_edges"]
