"""Tests for :mod:`graphstash.codec.reader`."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import pytest

from graphstash.codec.grammar import Symbol
from graphstash.codec.reader import Scanner, read
from graphstash.codec.records import RecordRegistry
from graphstash.codec.writer import write
from graphstash.errors import MalformedArtifactError

REGISTRY = RecordRegistry()


@REGISTRY.register
@dataclass
class Point:
    x: int
    y: int = 0


@REGISTRY.register
@dataclass(frozen=True, eq=False)
class Node:
    name: str
    children: list


@REGISTRY.register
@dataclass(eq=False)
class Holder:
    table: dict = field(default_factory=dict)


def test_atoms_keep_their_types():
    assert read("null") is None
    assert read("true") is True
    assert read("false") is False
    assert read("-12") == -12 and type(read("-12")) is int
    assert read("1.0") == 1.0 and type(read("1.0")) is float
    assert read("1e+16") == 1e16
    assert read("inf") == math.inf
    assert read("-inf") == -math.inf
    assert math.isnan(read("nan"))
    assert read('"a\\nb\\u0000"') == "a\nb\x00"
    assert read("'ready") == Symbol("ready")


def test_self_reference_resolves_to_the_node_itself():
    root = read('@0: [1, "a", *0]')
    assert len(root) == 3
    assert root[:2] == [1, "a"]
    assert root[2] is root


def test_mutual_mappings_reference_each_other():
    a, b = read('[@0: {"value": @1: {"value": *0}}, *1]')
    assert a["value"] is b
    assert b["value"] is a


def test_shared_tuple_is_shared():
    first, second = read("[@0: (1, 2), *0]")
    assert first == (1, 2)
    assert first is second


def test_labelled_atom_binds_its_value():
    assert read("[@0: 5, *0]") == [5, 5]


def test_only_the_first_expression_is_read():
    assert read("[1] [2]") == [1]
    assert read("[1] ))) not even tokens ?!") == [1]


def test_comments_do_not_affect_parsing():
    text = '# [ { @0: *9 (\n# %Nope(\n[1, # inline ]\n 2]'
    assert read(text) == [1, 2]


def test_trailing_commas_are_accepted():
    assert read("[1, 2,]") == [1, 2]
    assert read("(1,)") == (1,)
    assert read("{1: 2,}") == {1: 2}


def test_frozen_record_cycle_is_rebuilt():
    node = Node("root", [])
    node.children.append(node)
    text = write(node, registry=REGISTRY)
    assert text == '@0: %Node(name="root", children=[*0])'

    restored = read(text, registry=REGISTRY)
    assert isinstance(restored, Node)
    assert restored.name == "root"
    assert restored.children[0] is restored


def test_record_missing_fields_take_defaults():
    assert read("%Point(x=1)", registry=REGISTRY) == Point(1, 0)


@pytest.mark.parametrize(
    "text",
    [
        "",
        "   # only a comment\n",
        "*0",
        "[1, 2",
        "[1 2]",
        "{1 2}",
        "{1: }",
        "@0: [*1]",
        "[@0: [], @0: []]",
        "@0: (1, *0)",
        "@0: *0",
        "?",
        "bogus",
        "]",
        '"unterminated',
        "%Missing()",
        "%Point(x=1, z=2)",
        "%Point(x=1, x=2)",
        "%Point(y=2)",
        "%Point x=1",
        "@0: %Holder(table={*0: 1})",
        "{[1]: 2}",
    ],
)
def test_malformed_artifacts_raise(text):
    with pytest.raises(MalformedArtifactError):
        read(text, registry=REGISTRY)


def test_malformed_error_reports_the_offset():
    with pytest.raises(MalformedArtifactError) as excinfo:
        read("[1, *3]")
    assert excinfo.value.position == 4
    assert "offset 4" in str(excinfo.value)


def test_deep_nesting_parses_without_recursion():
    node = read("[" * 5000 + "7" + "]" * 5000)
    for _ in range(4999):
        node = node[0]
    assert node == [7]


def test_nested_labels_do_not_limit_depth():
    text = "".join(f"@{n}: [*{n}, " for n in range(300)) + "null" + "]" * 300
    root = read(text)
    node = root
    for _ in range(300):
        assert node[0] is node
        node = node[1]
    assert node is None


def test_record_field_names_outside_ascii():
    registry = RecordRegistry()

    @registry.register
    @dataclass
    class Menu:
        café: str

    menu = read('%Menu(café="noir")', registry=registry)
    assert menu == Menu("noir")


def test_scanner_stops_at_the_end_of_text():
    scanner = Scanner("  [ # note\n")
    token = scanner.next()
    assert token is not None and token.text == "[" and token.position == 2
    assert scanner.next() is None
    with pytest.raises(MalformedArtifactError):
        scanner.require()
