import json
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

import namescope.runtime as runtime
from namescope import (
    REPORT_VERSION,
    AllocConfig,
    IdentifierRule,
    allocate_outline,
    build_outline,
    build_report_document,
    canonicalize_report,
    diff_report_documents,
    diff_reports,
    export_report,
    format_outline,
    hash_report,
    hash_report_document,
    load_report,
    reconstruct_namespace,
    record_run,
    replay_report,
    show_logbook,
    verify_report_document,
)

SRC = "x x { ? tmp* { x } } { ? }"


@pytest.fixture
def logbook(tmp_path, monkeypatch):
    path = tmp_path / "logbook.jsonl"
    monkeypatch.setattr(runtime, "LOGBOOK_FILE", str(path))
    return path


def test_build_report_document_contents():
    config = AllocConfig(alphabet="abc", max_length=5)
    ns = allocate_outline(SRC, config)
    doc = build_report_document(ns)
    assert doc["namescope_version"] == REPORT_VERSION
    assert doc["timestamp"].endswith("Z")
    assert doc["config"]["alphabet"] == "abc"
    assert doc["config"]["max_length"] == 5
    assert doc["allow_duplicate_names"] is True
    assert doc["root_scope"]["declarations"][1]["output"] == "xa"


def test_report_of_empty_namespace():
    from namescope import Namespace

    doc = build_report_document(Namespace())
    assert doc["root_scope"] is None
    assert verify_report_document(doc)


def test_hash_ignores_timestamp_and_key_order():
    a = build_report_document(allocate_outline(SRC))
    b = build_report_document(allocate_outline(SRC))
    b["timestamp"] = "1970-01-01T00:00:00Z"
    reordered = dict(reversed(list(b.items())))
    assert hash_report_document(a) == hash_report_document(reordered)
    assert "timestamp" not in canonicalize_report(a)

    c = build_report_document(allocate_outline(SRC + " y"))
    assert hash_report_document(a) != hash_report_document(c)


def test_reconstruct_namespace_preserves_structure():
    ns = allocate_outline(SRC)
    doc = build_report_document(ns)
    rebuilt, decl_map = reconstruct_namespace(doc)
    assert format_outline(rebuilt) == format_outline(ns)
    assert not rebuilt.tree.scope(rebuilt.root).allocated
    assert sorted(decl_map) == sorted(decl_map.values())


def test_verify_detects_tampered_output():
    doc = build_report_document(allocate_outline(SRC))
    assert verify_report_document(doc)

    doc["root_scope"]["children"][0]["declarations"][0]["output"] = "zz"
    with pytest.raises(ValueError, match="Output mismatch"):
        verify_report_document(doc)


def test_verify_only_reallocates_allocated_scopes():
    ns, root = build_outline("x { y }")
    ns.allocate_scope(root)
    doc = build_report_document(ns)
    assert doc["root_scope"]["children"][0]["allocated"] is False
    assert verify_report_document(doc)


def test_verify_rejects_custom_predicate_and_incomplete_documents():
    config = AllocConfig(is_valid_identifier=lambda name: True)
    doc = build_report_document(allocate_outline("x", config))
    with pytest.raises(ValueError, match="custom identifier predicate"):
        verify_report_document(doc)
    with pytest.raises(ValueError):
        verify_report_document({"config": {}})


def test_write_and_load_report(tmp_path, capsys):
    path = tmp_path / "out" / "report.json"
    path.parent.mkdir()
    config = AllocConfig(is_valid_identifier=IdentifierRule(reserved={"tmp"}))
    doc = export_report(allocate_outline(SRC, config), filename=str(path))
    assert "Allocation report exported" in capsys.readouterr().out

    loaded = load_report(str(path))
    assert loaded == json.loads(json.dumps(doc))
    assert loaded["config"]["identifier_rule"]["reserved"] == ["tmp"]
    assert hash_report(str(path)) == hash_report_document(doc)


def test_diff_report_documents_lists_changes():
    a = build_report_document(allocate_outline("x { x }"))
    b = build_report_document(allocate_outline("x { y } ?"))
    assert diff_report_documents(a, a) == []
    assert diff_report_documents(a, b) == [
        "root[1] only in second report",
        "root.0[0] kind x vs y",
    ]

    c = build_report_document(allocate_outline("x { x }", AllocConfig(suffix_alphabet="9")))
    assert diff_report_documents(a, c) == ["config differs", "root.0[0] output 'x2' vs 'x9'"]


def test_diff_reports_files(tmp_path, capsys):
    ns = allocate_outline("x { x }")
    first = tmp_path / "a.json"
    second = tmp_path / "b.json"
    export_report(ns, filename=str(first))
    export_report(ns, filename=str(second))
    capsys.readouterr()

    assert diff_reports(str(first), str(second)) == []
    assert "Reports are identical" in capsys.readouterr().out

    export_report(allocate_outline("x { y }"), filename=str(second))
    assert diff_reports(str(first), str(second)) == ["root.0[0] kind x vs y"]
    assert "Reports differ" in capsys.readouterr().out


def test_record_run_and_show_logbook(tmp_path, logbook, capsys):
    assert show_logbook() == []
    assert "No logbook yet." in capsys.readouterr().out

    path = tmp_path / "report.json"
    export_report(allocate_outline(SRC), filename=str(path))
    entry = record_run(str(path), {"scopes": 4, "declarations": 6, "outline": SRC})
    assert entry["hash"] == hash_report(str(path))
    assert json.loads(logbook.read_text(encoding="utf-8").splitlines()[0])["scopes"] == 4

    entries = show_logbook()
    out = capsys.readouterr().out
    assert len(entries) == 1
    assert "4 scopes, 6 decls" in out
    assert f"outline: {SRC}" in out


def test_replay_report_leaves_open_scopes_open():
    ns, root = build_outline("x { x }")
    ns.allocate_scope(root)
    replayed, decl_map = replay_report(build_report_document(ns))
    child = replayed.tree.children(replayed.tree.root)[0]
    assert replayed.allocator.is_allocated(replayed.tree.root)
    assert not replayed.allocator.is_allocated(child)
    assert replayed.tree.declaration(decl_map[1]).output is None
