"""Allocation report serialization helpers."""

from __future__ import annotations

from datetime import datetime, timezone
import difflib
import hashlib
import json
import logging
import sys

from ..constants import LOGBOOK_FILE, LOGBOOK_LIMIT, REPORT_FILE, REPORT_VERSION
from .analysis import scope_to_dict
from .core import AllocConfig, DeclKind
from .namespace import Namespace

logger = logging.getLogger(__name__)


def build_report_document(namespace, config=None):
    """Create an in-memory report of the tree, its outputs and the config used."""

    config = config or namespace.config
    root = namespace.tree.root
    return {
        "namescope_version": REPORT_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "config": config.to_dict(),
        "allow_duplicate_names": namespace.tree.allow_duplicate_names,
        "root_scope": scope_to_dict(namespace.tree, root) if root is not None else None,
    }


def write_report_document(doc, filename):
    """Persist a report document to disk."""

    with open(filename, "w", encoding="utf-8") as f:
        json.dump(doc, f, indent=2)
    print(f"  ✓ Allocation report exported → {filename}")
    return doc


def export_report(namespace, config=None, filename=REPORT_FILE):
    doc = build_report_document(namespace, config)
    return write_report_document(doc, filename)


def load_report(filename, verify=True):
    """Load a report JSON file, re-checking its outputs unless ``verify`` is False."""
    with open(filename, "r", encoding="utf-8") as f:
        doc = json.load(f)
    if verify:
        verify_report_document(doc)
    return doc


def reconstruct_namespace(doc):
    """Re-register the scopes and declarations of a report without allocating.

    Returns ``(namespace, decl_map)`` where ``decl_map`` maps declaration ids
    stored in the document to the ids of the rebuilt namespace.
    """

    config = AllocConfig.from_dict(doc.get("config") or {})
    namespace = Namespace(
        allow_duplicate_names=doc.get("allow_duplicate_names", True), config=config
    )
    decl_map = {}

    def rebuild(scope_dict, parent):
        sid = namespace.create_scope(parent, scope_dict.get("label"))
        for dinfo in sorted(scope_dict.get("declarations", []), key=lambda d: d["order"]):
            new_id = namespace.declare(sid, DeclKind.from_dict(dinfo["kind"]))
            decl_map[dinfo["id"]] = new_id
        for child in scope_dict.get("children", []):
            rebuild(child, sid)

    if doc.get("root_scope") is not None:
        rebuild(doc["root_scope"], None)
    return namespace, decl_map


def _iter_declarations(scope_dict):
    if scope_dict is None:
        return
    for dinfo in scope_dict.get("declarations", []):
        yield scope_dict["path"], dinfo
    for child in scope_dict.get("children", []):
        yield from _iter_declarations(child)


def replay_report(doc):
    """Rebuild a report's namespace and re-allocate the scopes it recorded as allocated.

    Scopes the report left open stay open. Returns ``(namespace, decl_map)``
    like :func:`reconstruct_namespace`.
    """

    if "root_scope" not in doc or "config" not in doc:
        raise ValueError("Report is missing its scope tree or config")

    namespace, decl_map = reconstruct_namespace(doc)
    tree = namespace.tree

    def allocate(scope_dict, sid):
        if not scope_dict.get("allocated"):
            return
        namespace.allocate_scope(sid)
        for child_dict, child in zip(scope_dict.get("children", []), tree.children(sid)):
            allocate(child_dict, child)

    if doc["root_scope"] is not None:
        allocate(doc["root_scope"], tree.root)
    return namespace, decl_map


def verify_report_document(doc):
    """Re-run allocation for a report and ensure it reproduces every output.

    Raises ValueError on the first mismatch.
    """

    namespace, decl_map = replay_report(doc)
    tree = namespace.tree

    for path, dinfo in _iter_declarations(doc["root_scope"]):
        expected = dinfo.get("output")
        actual = tree.declaration(decl_map[dinfo["id"]]).output
        if expected != actual:
            raise ValueError(
                f"Output mismatch for declaration {dinfo['id']} in scope {path}: "
                f"report has {expected!r}, allocation gives {actual!r}"
            )
    return True


def canonicalize_report(doc):
    """
    Normalize a report so equivalent allocations produce identical JSON
    regardless of when they ran or how keys were ordered.
    """

    def sort_dict(d):
        if isinstance(d, dict):
            return {k: sort_dict(v) for k, v in sorted(d.items())}
        elif isinstance(d, list):
            return [sort_dict(x) for x in d]
        else:
            return d

    canon = {k: v for k, v in doc.items() if k != "timestamp"}
    return sort_dict(canon)


def hash_report_document(doc):
    """Compute SHA-256 hash of an in-memory report."""
    canon = canonicalize_report(doc)
    data = json.dumps(canon, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def hash_report(filename):
    """Compute SHA-256 hash of a report file."""
    doc = load_report(filename, verify=False)
    h = hash_report_document(doc)
    print(f"SHA256({filename}) = {h}")
    return h


def diff_report_documents(a, b):
    """Return a list of human-readable differences between two reports."""

    differences = []
    ca, cb = canonicalize_report(a), canonicalize_report(b)
    if ca.get("config") != cb.get("config"):
        differences.append("config differs")

    outs_a = {(path, d["order"]): d for path, d in _iter_declarations(ca.get("root_scope"))}
    outs_b = {(path, d["order"]): d for path, d in _iter_declarations(cb.get("root_scope"))}
    for key in sorted(outs_a.keys() | outs_b.keys()):
        path, order = key
        da, db = outs_a.get(key), outs_b.get(key)
        if da is None or db is None:
            side = "second" if da is None else "first"
            differences.append(f"{path}[{order}] only in {side} report")
        elif da["kind"] != db["kind"]:
            differences.append(
                f"{path}[{order}] kind {DeclKind.from_dict(da['kind'])} vs "
                f"{DeclKind.from_dict(db['kind'])}"
            )
        elif da.get("output") != db.get("output"):
            differences.append(f"{path}[{order}] output {da.get('output')!r} vs {db.get('output')!r}")
    return differences


def diff_reports(file_a, file_b):
    """Compare two report files and print their differences."""
    a = load_report(file_a, verify=False)
    b = load_report(file_b, verify=False)
    ha, hb = hash_report_document(a), hash_report_document(b)
    if ha == hb:
        print(f"✓ Reports are identical ({ha})")
        return []

    print(f"✗ Reports differ\n  {file_a}: {ha}\n  {file_b}: {hb}")
    differences = diff_report_documents(a, b)
    for line in differences:
        print(f"  • {line}")
    if not differences:
        text_a = json.dumps(canonicalize_report(a), indent=2).splitlines()
        text_b = json.dumps(canonicalize_report(b), indent=2).splitlines()
        for line in difflib.unified_diff(text_a, text_b, file_a, file_b, lineterm=""):
            print(line)
    return differences


def _logbook_path():
    return getattr(sys.modules.get("namescope.runtime"), "LOGBOOK_FILE", LOGBOOK_FILE)


def record_run(report_filename, summary=None):
    """Append this run's report hash and summary to the logbook."""
    sha = hash_report(report_filename)
    summary = summary or {}
    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "filename": report_filename,
        "hash": sha,
        "scopes": summary.get("scopes", 0),
        "declarations": summary.get("declarations", 0),
        "outline": summary.get("outline"),
    }

    logbook_path = _logbook_path()
    with open(logbook_path, "a", encoding="utf-8") as f:
        f.write(json.dumps(entry) + "\n")

    logger.debug("recorded run %s in %s", sha, logbook_path)
    print(f"  📜 Recorded run → {logbook_path}")
    return entry


def show_logbook(limit=LOGBOOK_LIMIT):
    """Display recent logbook entries."""
    logbook_path = _logbook_path()

    try:
        with open(logbook_path, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except FileNotFoundError:
        print("No logbook yet.")
        return []

    entries = [json.loads(l) for l in lines[-limit:]]
    print(f"\nnamescope logbook — last {len(entries)} entries:")
    for e in reversed(entries):
        print(
            f"• {e['timestamp']}  {e['filename']}  "
            f"[{e['scopes']} scopes, {e['declarations']} decls]  {e['hash'][:12]}…"
        )
        if e.get("outline"):
            print(f"    outline: {e['outline']}")
    return entries


__all__ = [
    "build_report_document",
    "canonicalize_report",
    "diff_report_documents",
    "diff_reports",
    "export_report",
    "hash_report",
    "hash_report_document",
    "load_report",
    "reconstruct_namespace",
    "record_run",
    "replay_report",
    "show_logbook",
    "verify_report_document",
    "write_report_document",
]
