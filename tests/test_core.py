import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from namescope import (
    DEFAULT_ALPHABET,
    DEFAULT_SUFFIX_ALPHABET,
    AllocConfig,
    DeclKind,
    IdentifierRule,
)


def test_decl_kind_constructors_and_text():
    assert DeclKind.named("x") == DeclKind("named", "x")
    assert DeclKind.anonymous().tag == "anonymous"
    assert DeclKind.prefixed("tmp").text == "tmp"
    assert str(DeclKind.named("x")) == "x"
    assert str(DeclKind.prefixed("tmp")) == "tmp*"
    assert str(DeclKind.prefixed("")) == "?"
    assert str(DeclKind.anonymous()) == "?"


@pytest.mark.parametrize(
    "tag, text",
    [("named", ""), ("anonymous", "x"), ("bogus", "x")],
)
def test_decl_kind_validation(tag, text):
    with pytest.raises(ValueError):
        DeclKind(tag, text)


def test_decl_kind_dict_roundtrip():
    kind = DeclKind.prefixed("tmp")
    assert DeclKind.from_dict(kind.to_dict()) == kind
    with pytest.raises(TypeError):
        DeclKind.from_dict(["named", "x"])


def test_identifier_rule_checks_pattern_and_reserved():
    rule = IdentifierRule(reserved={"if", "for"})
    assert rule("x")
    assert rule("_tmp2")
    assert not rule("2x")
    assert not rule("if")
    assert not rule("")
    assert rule == IdentifierRule(reserved=["for", "if"])


def test_alloc_config_defaults():
    config = AllocConfig()
    assert config.alphabet == DEFAULT_ALPHABET
    assert config.suffix_alphabet == DEFAULT_SUFFIX_ALPHABET
    assert config.max_length is None
    assert config.is_valid_identifier("abc")


def test_suffix_alphabet_follows_a_custom_alphabet():
    assert AllocConfig(alphabet="xyz").suffix_alphabet == "xyz"
    assert AllocConfig(alphabet="xyz", suffix_alphabet="zy").suffix_alphabet == "zy"
    assert AllocConfig.from_dict({"alphabet": "ab"}).suffix_alphabet == "ab"


@pytest.mark.parametrize(
    "kwargs, error",
    [
        ({"alphabet": ""}, ValueError),
        ({"alphabet": "aba"}, ValueError),
        ({"suffix_alphabet": "22"}, ValueError),
        ({"alphabet": "ab", "suffix_alphabet": "a2"}, ValueError),
        ({"max_length": 0}, ValueError),
        ({"max_length": True}, TypeError),
        ({"max_length": 2.5}, TypeError),
        ({"is_valid_identifier": "yes"}, TypeError),
    ],
)
def test_alloc_config_rejects_bad_options(kwargs, error):
    with pytest.raises(error):
        AllocConfig(**kwargs)


def test_alloc_config_dict_roundtrip():
    config = AllocConfig(
        alphabet="abc",
        is_valid_identifier=IdentifierRule(reserved=["do"]),
        max_length=4,
        suffix_alphabet="cb",
    )
    data = config.to_dict()
    assert data["identifier_rule"]["reserved"] == ["do"]
    assert AllocConfig.from_dict(data) == config


def test_custom_predicate_cannot_be_rebuilt():
    def short_only(name):
        return len(name) < 3

    data = AllocConfig(is_valid_identifier=short_only).to_dict()
    assert data["identifier_rule"] == {"kind": "custom", "name": "short_only"}
    with pytest.raises(ValueError):
        AllocConfig.from_dict(data)
