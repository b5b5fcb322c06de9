"""Shared constant values for namescope."""

import string

DECL_KINDS = ["named", "anonymous", "prefixed"]

DEFAULT_ALPHABET = string.ascii_lowercase + string.ascii_uppercase + "_" + string.digits

# Suffix symbols used with DEFAULT_ALPHABET: digits that cannot be misread
# as the letters l, I or O.
DEFAULT_SUFFIX_ALPHABET = "23456789"

DEFAULT_IDENTIFIER_PATTERN = r"[A-Za-z_][A-Za-z0-9_]*"

# Candidate length ceiling applied when a config sets no max_length.
SEARCH_LENGTH_LIMIT = 32
# Candidates examined for one declaration before the search gives up.
SEARCH_CANDIDATE_LIMIT = 1_000_000

REPORT_VERSION = "0.3"
REPORT_FILE = "namescope.report.json"
LOGBOOK_FILE = "namescope.logbook.jsonl"
LOGBOOK_LIMIT = 10

KIND_COLORS = {
    "named": "#8BC34A",
    "prefixed": "#FFEB3B",
    "anonymous": "#B0BEC5",
}

DEFAULT_OUTLINE = "x x { x ? tmp* } { ? ? { x } }"

__all__ = [
    "DECL_KINDS",
    "DEFAULT_ALPHABET",
    "DEFAULT_SUFFIX_ALPHABET",
    "DEFAULT_IDENTIFIER_PATTERN",
    "SEARCH_LENGTH_LIMIT",
    "SEARCH_CANDIDATE_LIMIT",
    "REPORT_VERSION",
    "REPORT_FILE",
    "LOGBOOK_FILE",
    "LOGBOOK_LIMIT",
    "KIND_COLORS",
    "DEFAULT_OUTLINE",
]
