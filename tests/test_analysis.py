import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from namescope import (
    AllocConfig,
    IdentifierRule,
    allocate_outline,
    build_outline,
    build_scope_graph,
    explain_identifier,
    find_collisions,
    print_scopes,
    scope_to_dict,
)


def test_scope_to_dict_includes_outputs():
    ns = allocate_outline("x { x }")
    data = scope_to_dict(ns.tree)
    assert data["path"] == "root"
    assert data["allocated"] is True
    assert data["declarations"] == [
        {"id": 0, "order": 0, "kind": {"tag": "named", "text": "x"}, "output": "x"}
    ]
    (child,) = data["children"]
    assert child["path"] == "root.0"
    assert child["declarations"][0]["output"] == "x2"


def test_scope_graph_mirrors_tree():
    ns, _ = build_outline("a { b } { c { d } }")
    graph = build_scope_graph(ns.tree)
    assert sorted(graph.nodes) == [0, 1, 2, 3]
    assert sorted(graph.edges) == [(0, 1), (0, 2), (2, 3)]
    assert graph.nodes[3]["path"] == "root.1.0"
    assert graph.nodes[0]["outputs"] == [None]


def test_find_collisions_reports_shadowing_and_duplicates():
    ns = allocate_outline("x y { z } { z }")
    assert find_collisions(ns) == []

    child = ns.tree.children(0)[0]
    ns.tree.declarations_of(child)[0].output = "x"
    ns.tree.declarations_of(0)[1].output = "x"
    collisions = find_collisions(ns)
    identifiers = sorted((c["identifier"], tuple(c["declarations"])) for c in collisions)
    assert identifiers == [("x", (0, 1)), ("x", (0, 2))]
    assert collisions[1]["scopes"] == ["root", "root.0"]


def test_find_collisions_ignores_siblings():
    ns = allocate_outline("{ ? } { ? }")
    outputs = [d.output for d in ns.tree.visible_declarations(1)] + [
        d.output for d in ns.tree.visible_declarations(2)
    ]
    assert outputs == ["a", "a"]
    assert find_collisions(ns) == []


def test_explain_identifier_names_the_blocker():
    ns = allocate_outline("x { x } { y }")
    info = explain_identifier(ns, "x")
    assert info["found"]
    assert info["holders"] == [0]
    assert info["displaced"] == [{"declaration": 1, "blocked_by": 0}]
    assert any("became 'x2'" in line for line in info["lines"])


def test_explain_identifier_reports_rejected_names():
    config = AllocConfig(is_valid_identifier=IdentifierRule(reserved={"tmp"}))
    ns = allocate_outline("tmp*", config)
    info = explain_identifier(ns, "tmp")
    assert info["holders"] == []
    assert info["displaced"] == [{"declaration": 0, "blocked_by": None}]
    assert "rejected as invalid" in info["lines"][0]


def test_explain_identifier_unknown():
    ns = allocate_outline("x")
    assert explain_identifier(ns, "nope")["found"] is False


def test_print_scopes(capsys):
    ns = allocate_outline("x { ? }")
    print_scopes(ns)
    out = capsys.readouterr().out
    assert "scope root [allocated]" in out
    assert "#0 x → x" in out
    assert "  scope root.0 [allocated]" in out
    assert "#1 ? → a" in out


def test_print_scopes_open_tree(capsys):
    ns, _ = build_outline("x")
    print_scopes(ns)
    assert "#0 x → …" in capsys.readouterr().out


def test_build_graphviz_clusters_and_rename_edges():
    pytest.importorskip("pydot")
    from namescope import build_graphviz

    ns = allocate_outline("x { x ? }")
    text = build_graphviz(ns).to_string()
    assert "decl_0" in text
    assert "decl_2" in text
    assert "decl_1 -> decl_0" in text
    assert "dashed" in text


def test_build_graphviz_builds_scope_graph_once(monkeypatch):
    pytest.importorskip("pydot")
    from namescope.runtime import analysis

    calls = []
    real_build = analysis.build_scope_graph

    def counting_build(tree):
        calls.append(tree)
        return real_build(tree)

    monkeypatch.setattr(analysis, "build_scope_graph", counting_build)
    ns = allocate_outline("x y { x y { x } }")
    text = analysis.build_graphviz(ns).to_string()
    assert len(calls) == 1
    assert "decl_2 -> decl_0" in text
    assert "decl_3 -> decl_1" in text
    assert "decl_4 -> decl_0" in text
