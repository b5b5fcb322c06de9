"""Diagnostics for allocated scope trees."""
from __future__ import annotations

from pathlib import Path

import networkx as nx

try:
    import pydot
except ModuleNotFoundError:  # pragma: no cover
    pydot = None

from ..constants import KIND_COLORS


def _decl_label(decl):
    out = decl.output if decl.output is not None else "…"
    return f"{decl.kind} → {out}"


def print_scopes(namespace, scope=None, indent=0):
    tree = namespace.tree
    if scope is None:
        scope = tree.root
        if scope is None:
            print("(empty tree)")
            return
    record = tree.scope(scope)
    pad = "  " * indent
    state = "allocated" if record.allocated else "open"
    print(f"{pad}scope {tree.scope_path(scope)} [{state}]")
    for decl in tree.declarations_of(scope):
        print(f"{pad}  #{decl.id} {_decl_label(decl)}")
    for child in record.children:
        print_scopes(namespace, child, indent + 1)


def scope_to_dict(tree, scope=None):
    """Recursively convert a scope and its declarations to a serializable dict."""
    if scope is None:
        scope = tree.root
    record = tree.scope(scope)
    return {
        "id": record.id,
        "label": record.label,
        "path": tree.scope_path(scope),
        "allocated": record.allocated,
        "declarations": [
            {
                "id": d.id,
                "order": d.order,
                "kind": d.kind.to_dict(),
                "output": d.output,
            }
            for d in tree.declarations_of(scope)
        ],
        "children": [scope_to_dict(tree, child) for child in record.children],
    }


def build_scope_graph(tree):
    """Return a networkx DiGraph with one node per scope and parent→child edges."""

    graph = nx.DiGraph()
    for sid in tree.iter_scopes():
        record = tree.scope(sid)
        graph.add_node(
            sid,
            path=tree.scope_path(sid),
            label=record.label,
            allocated=record.allocated,
            outputs=[d.output for d in tree.declarations_of(sid)],
        )
        if record.parent is not None:
            graph.add_edge(record.parent, sid)
    return graph


def find_collisions(namespace, graph=None):
    """List every pair of simultaneously visible declarations sharing an output.

    An empty list means the tree satisfies the distinctness invariant: no
    identifier is committed twice within a scope, or in a scope and any of
    its descendants.
    """

    tree = namespace.tree
    graph = graph if graph is not None else build_scope_graph(tree)
    collisions = []

    for sid in nx.topological_sort(graph):
        own = {}
        for decl in tree.declarations_of(sid):
            if decl.output is None:
                continue
            if decl.output in own:
                collisions.append(_collision(tree, own[decl.output], decl))
            else:
                own[decl.output] = decl
        if not own:
            continue
        for below in sorted(nx.descendants(graph, sid)):
            for decl in tree.declarations_of(below):
                if decl.output in own:
                    collisions.append(_collision(tree, own[decl.output], decl))
    return collisions


def _collision(tree, first, second):
    return {
        "identifier": first.output,
        "declarations": [first.id, second.id],
        "scopes": [tree.scope_path(first.scope), tree.scope_path(second.scope)],
    }


def explain_identifier(namespace, identifier, graph=None):
    """Explain who holds ``identifier`` and which named inputs it pushed aside.

    ``holders`` are the declarations whose output is ``identifier``.
    ``displaced`` are named (or prefixed) declarations whose input text is
    ``identifier`` but which received another output, each with the visible
    holder that blocked it (None when the identifier was rejected as
    invalid instead).
    """

    tree = namespace.tree
    graph = graph if graph is not None else build_scope_graph(tree)
    holders = []
    displaced = []

    for sid in tree.iter_scopes():
        for decl in tree.declarations_of(sid):
            if decl.output == identifier:
                holders.append(decl)

    for sid in tree.iter_scopes():
        visible = nx.ancestors(graph, sid) | {sid}
        for decl in tree.declarations_of(sid):
            if decl.kind.text != identifier or decl.output in (None, identifier):
                continue
            blocker = None
            for holder in holders:
                if holder.scope not in visible:
                    continue
                if holder.scope == sid and holder.order > decl.order:
                    continue
                blocker = holder
                break
            displaced.append((decl, blocker))

    lines = []
    for decl in holders:
        lines.append(
            f"'{identifier}' is held by #{decl.id} ({decl.kind}) in scope "
            f"{tree.scope_path(decl.scope)}"
        )
    for decl, blocker in displaced:
        if blocker is None:
            reason = "the identifier was rejected as invalid"
        else:
            reason = (
                f"#{blocker.id} in scope {tree.scope_path(blocker.scope)} "
                "already held it"
            )
        lines.append(
            f"#{decl.id} ({decl.kind}) in scope {tree.scope_path(decl.scope)} "
            f"became '{decl.output}' because {reason}"
        )

    return {
        "identifier": identifier,
        "found": bool(holders or displaced),
        "holders": [d.id for d in holders],
        "displaced": [
            {"declaration": d.id, "blocked_by": b.id if b is not None else None}
            for d, b in displaced
        ],
        "lines": lines,
    }


def build_graphviz(namespace):
    """Build a pydot graph with one cluster per scope."""

    if pydot is None:
        raise RuntimeError("Graphviz export requires the optional pydot dependency")

    tree = namespace.tree
    graph = pydot.Dot(
        "namescope_scopes",
        graph_type="digraph",
        rankdir="LR",
        splines="spline",
        fontname="Helvetica",
    )

    def build_cluster(sid):
        path = tree.scope_path(sid)
        cluster = pydot.Cluster(
            f"scope_{sid}",
            label=path,
            color="#7f8c8d",
            fontname="Helvetica",
            fontsize="10",
            style="rounded",
        )
        for decl in tree.declarations_of(sid):
            cluster.add_node(
                pydot.Node(
                    f"decl_{decl.id}",
                    label=_decl_label(decl),
                    shape="box",
                    style="filled",
                    fillcolor=KIND_COLORS.get(decl.kind.tag, "#B0BEC5"),
                    color="#34495e",
                    fontname="Helvetica",
                )
            )
        for child in tree.children(sid):
            cluster.add_subgraph(build_cluster(child))
        return cluster

    if tree.root is None:
        return graph
    graph.add_subgraph(build_cluster(tree.root))

    # Dashed edges point from a renamed named input to whatever held its name.
    scope_graph = build_scope_graph(tree)
    renamed = []
    for sid in tree.iter_scopes():
        for decl in tree.declarations_of(sid):
            if decl.kind.text and decl.output not in (None, decl.kind.text):
                renamed.append(decl.kind.text)
    for text in dict.fromkeys(renamed):
        info = explain_identifier(namespace, text, scope_graph)
        for entry in info["displaced"]:
            if entry["blocked_by"] is None:
                continue
            graph.add_edge(
                pydot.Edge(
                    f"decl_{entry['declaration']}",
                    f"decl_{entry['blocked_by']}",
                    style="dashed",
                    color="#7f8c8d",
                    penwidth="1.2",
                    arrowsize="0.8",
                )
            )
    return graph


def export_graphviz(namespace, output_path):  # pragma: no cover
    """Export a Graphviz SVG with scope clusters and rename edges."""

    graph = build_graphviz(namespace)
    output_path = Path(output_path)
    if output_path.parent and not output_path.parent.exists():
        output_path.parent.mkdir(parents=True, exist_ok=True)

    graph.write_svg(str(output_path))
    print(f"  ✓ Graphviz visualization exported → {output_path}")


__all__ = [
    "build_graphviz",
    "build_scope_graph",
    "explain_identifier",
    "export_graphviz",
    "find_collisions",
    "print_scopes",
    "scope_to_dict",
]
