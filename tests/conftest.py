from concurrent.futures import Executor, Future

import pytest

from campusnav.campus import CampusEdge, CampusGraph, CampusNode, NodeCategory
from campusnav.navigation import ArrivalVerdict


# ---------- Graph builders ----------


def make_graph(edges, positions=None, extra_nodes=()):
    """Graph from (a, b, distance) triples; node ids double as names."""
    positions = positions or {}
    ids = []
    for a, b, _ in edges:
        for node_id in (a, b):
            if node_id not in ids:
                ids.append(node_id)
    ids.extend(n for n in extra_nodes if n not in ids)

    nodes = [
        CampusNode(
            id=node_id,
            name=node_id,
            category=NodeCategory.OUTDOOR,
            x=positions.get(node_id, (0.0, 0.0))[0],
            y=positions.get(node_id, (0.0, 0.0))[1],
        )
        for node_id in ids
    ]
    return CampusGraph(nodes, [CampusEdge(a, b, float(d)) for a, b, d in edges])


@pytest.fixture
def campus():
    """Small campus: gate -> admin -> library, with a longer direct gate -> library."""
    nodes = [
        CampusNode("gate", "Main Gate", NodeCategory.ENTRANCE, 50, 90, "The main entrance arch."),
        CampusNode("admin", "Admin Block", NodeCategory.OFFICE, 50, 60, "Red brick building."),
        CampusNode("library", "Central Library", NodeCategory.INDOOR, 20, 60, "Glass front."),
        CampusNode("canteen", "Canteen", NodeCategory.INDOOR, 80, 60),
        CampusNode("island", "Boat House", NodeCategory.OUTDOOR, 90, 10),
    ]
    edges = [
        CampusEdge("gate", "admin", 150, "Walk past the fountain"),
        CampusEdge("admin", "library", 100, "Follow the tree-lined path"),
        CampusEdge("gate", "library", 400),
        CampusEdge("admin", "canteen", 80),
    ]
    return CampusGraph(nodes, edges)


# ---------- Executor the tests drive by hand ----------


class ManualExecutor(Executor):
    """Records submissions; futures complete only when a test says so."""

    def __init__(self):
        self.calls = []

    def submit(self, fn, *args, **kwargs):
        future = Future()
        self.calls.append((fn, args, kwargs, future))
        return future

    def pending_for(self, fn):
        return [c for c in self.calls if c[0] == fn and not c[3].done()]

    def run(self, call):
        """Execute a recorded call and complete its future."""
        fn, args, kwargs, future = call
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)

    def run_all(self, fn):
        for call in self.pending_for(fn):
            self.run(call)


@pytest.fixture
def executor():
    return ManualExecutor()


# ---------- Collaborator fakes ----------


class FakeClassifier:
    def __init__(self):
        self.answers = []

    def classify(self, image_bytes, role):
        return self.answers.pop(0) if self.answers else None


class FakeVerifier:
    def __init__(self, verdict=None):
        self.verdict = verdict or ArrivalVerdict(arrived=True, confidence=0.9)

    def verify_arrival(self, image_bytes, destination_name):
        return self.verdict


class FakeInstructionGenerator:
    def __init__(self, lines=None):
        self.lines = lines if lines is not None else ["Walk north.", "Turn left at the fountain."]
        self.requests = []

    def instructions(self, path_node_names, verbose):
        self.requests.append(list(path_node_names))
        return list(self.lines)


class FakeSynthesizer:
    def __init__(self):
        self.spoken = []

    def speak(self, text):
        self.spoken.append(text)
        return b"audio"


@pytest.fixture
def classifier():
    return FakeClassifier()


@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture
def instruction_generator():
    return FakeInstructionGenerator()
