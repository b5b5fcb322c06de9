"""Command-line interface for namescope."""
from __future__ import annotations

import argparse
import logging
import re
import sys

from ..constants import (
    DEFAULT_ALPHABET,
    DEFAULT_IDENTIFIER_PATTERN,
    DEFAULT_OUTLINE,
)
from ..outline import OutlineSyntaxError, allocate_outline, format_outline
from .analysis import explain_identifier, export_graphviz, find_collisions, print_scopes
from .core import AllocConfig, IdentifierRule
from .errors import NameScopeError
from .report import (
    diff_reports,
    export_report,
    hash_report,
    load_report,
    record_run,
    replay_report,
    show_logbook,
)


def _runtime_callable(name, fallback):
    runtime_mod = sys.modules.get('namescope.runtime')
    if runtime_mod and hasattr(runtime_mod, name):
        return getattr(runtime_mod, name)
    return fallback


def configure_logging(verbose):
    """Install a stderr handler on the root logger."""

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)
    stream = logging.StreamHandler()
    stream.setFormatter(logging.Formatter("%(levelname)s: %(name)s: %(message)s"))
    root.addHandler(stream)


def parse_args(args):
    argp = argparse.ArgumentParser(
        description="Allocate short, collision-free output identifiers for nested scopes"
    )

    argp.add_argument(
        "--src",
        help="Scope outline, e.g. 'x x { x ? tmp* }'",
        default=DEFAULT_OUTLINE,
    )
    argp.add_argument("--alphabet", default=DEFAULT_ALPHABET, help="Symbols for anonymous names")
    argp.add_argument(
        "--suffix-alphabet",
        help=(
            "Symbols for disambiguating suffixes (default: digits 2-9 with the "
            "stock alphabet, otherwise the alphabet itself)"
        ),
    )
    argp.add_argument("--max-length", type=int, help="Longest identifier allowed")
    argp.add_argument(
        "--reserved",
        action="append",
        default=[],
        metavar="WORD",
        help="Reject WORD as an output identifier (repeatable)",
    )
    argp.add_argument(
        "--pattern",
        default=DEFAULT_IDENTIFIER_PATTERN,
        help="Regular expression output identifiers must fully match",
    )
    argp.add_argument(
        "--strict-names",
        action="store_true",
        help="Reject duplicate input names within one scope",
    )
    argp.add_argument("--report", metavar="OUTPUT", help="Write a JSON allocation report")
    argp.add_argument("--hash", help="Compute hash of a report file")
    argp.add_argument(
        "--diff",
        nargs=2,
        metavar=("A", "B"),
        help="Compare two report files",
    )
    argp.add_argument("--load", help="Verify and show a stored report")
    argp.add_argument("--logbook", action="store_true", help="Show the run logbook")
    argp.add_argument(
        "--viz",
        metavar="OUTPUT",
        help="Export a Graphviz scope visualization to an SVG file",
    )
    argp.add_argument(
        "--why",
        metavar="IDENTIFIER",
        help="Explain who holds an output identifier and whom it displaced",
    )
    argp.add_argument("--verbose", action="store_true", help="Enable debug logging")

    return argp.parse_args(args)


def build_config(params):
    return AllocConfig(
        alphabet=params.alphabet,
        is_valid_identifier=IdentifierRule(params.pattern, params.reserved),
        max_length=params.max_length,
        suffix_alphabet=params.suffix_alphabet,
    )


def main(args):
    params = parse_args(args)
    configure_logging(params.verbose)

    if params.diff:
        _runtime_callable('diff_reports', diff_reports)(params.diff[0], params.diff[1])
        return 0
    if params.hash:
        _runtime_callable('hash_report', hash_report)(params.hash)
        return 0
    if params.logbook:
        _runtime_callable('show_logbook', show_logbook)()
        return 0
    if params.load:
        try:
            doc = _runtime_callable('load_report', load_report)(params.load)
            namespace, _ = replay_report(doc)
        except (ValueError, NameScopeError) as exc:
            print(f"✗ {exc}")
            return 1
        except KeyError as exc:
            print(f"✗ Malformed report: missing field {exc}")
            return 1
        print(f"Loaded report v{doc.get('namescope_version', '?')} ({params.load})")
        print("  ✓ Re-allocation reproduces every stored output")
        print_scopes(namespace)
        return 0

    try:
        config = build_config(params)
        namespace = allocate_outline(
            params.src, config, allow_duplicate_names=not params.strict_names
        )
    except (OutlineSyntaxError, NameScopeError, ValueError, re.error) as exc:
        print(f"✗ {exc}")
        return 1

    print("Outline:", params.src)
    print_scopes(namespace)
    print("\nOutput outline:")
    print("  " + format_outline(namespace, outputs=True))

    collisions = find_collisions(namespace)
    print("\nDistinctness check:")
    if not collisions:
        print("  ✓ No visible identifiers collide")
    else:
        for c in collisions:
            print(f"  ✗ '{c['identifier']}' shared by {c['scopes'][0]} and {c['scopes'][1]}")

    if params.why:
        print(f"\nWhy '{params.why}':")
        info = _runtime_callable('explain_identifier', explain_identifier)(namespace, params.why)
        if not info["found"]:
            print("  ✗ Identifier not used or requested in this tree.")
        else:
            for line in info["lines"]:
                print("  " + line)

    if params.report:
        _runtime_callable('export_report', export_report)(namespace, config, params.report)
        _runtime_callable('record_run', record_run)(
            params.report,
            {
                "scopes": len(namespace.tree),
                "declarations": namespace.tree.declaration_count,
                "outline": params.src,
            },
        )
    if params.viz:
        try:
            export_graphviz(namespace, params.viz)
        except RuntimeError as exc:
            print(f"  ✗ {exc}")
            return 1
    return 1 if collisions else 0


__all__ = [
    "build_config",
    "configure_logging",
    "main",
    "parse_args",
]


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main(sys.argv[1:]))
