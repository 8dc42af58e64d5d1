import hashlib

import pytest

from reflectscan.payload import Variant, generate_payloads, split_by_variant


def test_two_payloads_per_parameter():
    payloads = generate_payloads(["search"])
    digest = hashlib.md5(b"search").hexdigest()

    assert [p.parameter for p in payloads] == ["search", "search"]
    assert payloads[0].value == digest[:3] + '">' + digest[-2:]
    assert payloads[1].value == digest[:3] + "'>" + digest[-2:]
    assert payloads[0].variant is Variant.DOUBLE_QUOTE
    assert payloads[1].variant is Variant.SINGLE_QUOTE


def test_variants_differ_only_in_delimiter():
    dq, sq = generate_payloads(["id"])
    assert dq.value != sq.value
    assert dq.value.replace('">', "'>") == sq.value


def test_deterministic():
    names = ["q", "redirect", "callback", "ünïcode"]
    assert generate_payloads(names) == generate_payloads(names)


def test_empty_input():
    assert generate_payloads([]) == []


def test_payloads_are_immutable():
    p = generate_payloads(["q"])[0]
    with pytest.raises(AttributeError):
        p.value = "x"


def test_split_by_variant():
    grouped = split_by_variant(generate_payloads(["a", "b", "c"]))
    assert [p.parameter for p in grouped[Variant.DOUBLE_QUOTE]] == ["a", "b", "c"]
    assert [p.parameter for p in grouped[Variant.SINGLE_QUOTE]] == ["a", "b", "c"]
    assert all('">' in p.value for p in grouped[Variant.DOUBLE_QUOTE])
    assert all("'>" in p.value for p in grouped[Variant.SINGLE_QUOTE])
