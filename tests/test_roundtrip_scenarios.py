"""End-to-end save/restore scenarios covering sharing and cycles."""

from __future__ import annotations

from dataclasses import dataclass, field

import networkx as nx

import graphstash
from graphstash import RecordRegistry, Symbol, dumps, loads, restore, save, sharing_topology

REGISTRY = RecordRegistry()


@REGISTRY.register
@dataclass
class Task:
    name: str
    depends_on: list = field(default_factory=list)
    status: Symbol = Symbol("pending")


@REGISTRY.register(name="sched.Queue")
@dataclass(eq=False)
class Queue:
    tasks: list
    owner: object = None


def same_topology(left, right) -> bool:
    first, second = sharing_topology(left), sharing_topology(right)
    return (
        sorted(first.edges()) == sorted(second.edges())
        and dict(first.nodes(data=True)) == dict(second.nodes(data=True))
    )


def build_acyclic_state():
    shared_config = {"retries": 3, "backoff": 0.25}
    build = Task("build")
    test = Task("test", depends_on=[build], status=Symbol("ready"))
    deploy = Task("deploy", depends_on=[build, test])
    return {
        "tasks": [build, test, deploy],
        "configs": (shared_config, shared_config),
        "copies": [[1, 2], [1, 2]],
        (1, "key"): "tuple keys are fine",
        "text": "line\nbreak\ttab \"quoted\" ünïcode \x07",
        "numbers": [0, -1, 10**30, 1.5, -0.0, 1e-300],
        "flags": [True, False, None],
    }


def build_cyclic_state():
    queue = Queue(tasks=[])
    first = {"name": "first", "queue": queue}
    second = {"name": "second", "queue": queue, "peer": first}
    first["peer"] = second
    queue.tasks.extend([first, second])
    queue.owner = queue
    return [queue, first]


def test_acyclic_round_trip_is_equal_and_keeps_sharing(tmp_path):
    state = build_acyclic_state()
    target = tmp_path / "state.gs"
    save(state, target, registry=REGISTRY)
    restored = restore(target, registry=REGISTRY)

    assert restored == state
    assert same_topology(state, restored)
    assert restored["configs"][0] is restored["configs"][1]
    assert restored["copies"][0] is not restored["copies"][1]
    build, test, deploy = restored["tasks"]
    assert test.depends_on[0] is build
    assert deploy.depends_on == [build, test]
    assert deploy.depends_on[1] is test


def test_self_reference_scenario():
    state = [1, "a"]
    state.append(state)

    text = dumps(state)
    assert text.count("@") == 1
    assert text.count("*") == 1

    restored = loads(text)
    assert len(restored) == 3
    assert restored[0] == 1 and restored[1] == "a"
    assert restored[2] is restored


def test_mutual_mapping_scenario():
    a: dict = {"name": "A"}
    b: dict = {"name": "B"}
    a["value"] = b
    b["value"] = a

    text = dumps([a, b])
    assert "@0:" in text and "@1:" in text

    restored_a, restored_b = loads(text)
    assert restored_a["value"] is restored_b
    assert restored_b["value"] is restored_a
    assert restored_a["name"] == "A" and restored_b["name"] == "B"


def test_cyclic_records_round_trip(tmp_path):
    state = build_cyclic_state()
    target = tmp_path / "queue.gs"
    save(state, target, comment="queue snapshot", registry=REGISTRY)
    queue, first = restore(target, registry=REGISTRY)

    assert same_topology(state, [queue, first])
    assert isinstance(queue, Queue)
    assert queue.owner is queue
    assert queue.tasks[0] is first
    second = queue.tasks[1]
    assert first["peer"] is second and second["peer"] is first
    assert first["queue"] is queue and second["queue"] is queue


def test_resave_is_idempotent():
    state = build_cyclic_state()
    first_text = dumps(state, registry=REGISTRY)
    first_restore = loads(first_text, registry=REGISTRY)

    second_text = dumps(first_restore, registry=REGISTRY)
    second_restore = loads(second_text, registry=REGISTRY)

    assert second_text == first_text
    assert same_topology(first_restore, second_restore)


def test_labels_are_stable_across_saves():
    state = build_cyclic_state()
    assert dumps(state, registry=REGISTRY) == dumps(state, registry=REGISTRY)


def test_only_first_expression_is_restored(tmp_path):
    target = tmp_path / "double.gs"
    target.write_text(dumps([1, 2]) + dumps({"second": True}))
    assert restore(target) == [1, 2]


def test_nested_self_references_round_trip(tmp_path):
    root: list = []
    node = root
    for _ in range(150):
        child: list = []
        node.extend([node, child])
        node = child

    target = tmp_path / "nested.gs"
    save(root, target)
    restored = restore(target)

    node = restored
    for _ in range(150):
        assert node[0] is node
        node = node[1]
    assert node == []


def test_record_with_accented_field_round_trip(tmp_path):
    registry = RecordRegistry()

    @registry.register
    @dataclass
    class Dish:
        café: str
        prix: float = 0.0

    target = tmp_path / "menu.gs"
    save([Dish("noir", 2.5)], target, registry=registry)
    assert restore(target, registry=registry) == [Dish("noir", 2.5)]


def test_topology_graph_is_a_networkx_multidigraph():
    shared: list = []
    topology = sharing_topology([shared, shared])
    assert isinstance(topology, nx.MultiDiGraph)
    assert topology.number_of_edges(0, 1) == 2


def test_package_exports_public_entry_points():
    assert graphstash.save is save
    assert graphstash.restore is restore
    assert issubclass(graphstash.MalformedArtifactError, graphstash.GraphStashError)
    assert issubclass(graphstash.EncodingError, ValueError)
