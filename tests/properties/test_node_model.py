"""Property-based tests for node and taint model validation."""

import datetime

import pytest
from hypothesis import given
from hypothesis import strategies as st
from kubernetes.client import V1Node, V1NodeSpec, V1ObjectMeta, V1Taint

from nodeprep.models.node import TAINT_EFFECTS, Node, NodeTaint


@st.composite
def taint_keys(draw):
    """Generate taint keys with an optional DNS prefix."""
    name = draw(st.from_regex(r"[a-z0-9]([-a-z0-9]{0,8}[a-z0-9])?", fullmatch=True))
    prefix = draw(st.sampled_from(["", "example.com/", "node-role.kubernetes.io/"]))
    return prefix + name


@st.composite
def taints(draw):
    """Generate valid taints, with or without a value."""
    key = draw(taint_keys())
    value = draw(st.one_of(st.just(""), st.from_regex(r"[A-Za-z0-9_.-]{1,10}", fullmatch=True)))
    effect = draw(st.sampled_from(TAINT_EFFECTS))
    return NodeTaint(key=key, value=value, effect=effect)


@given(taint=taints())
def test_taint_string_form_parses_back(taint):
    """The key=value:effect form is the input format accepted by parse."""
    assert NodeTaint.parse(str(taint)) == taint


@given(taint=taints())
def test_taint_kubernetes_conversion(taint):
    """Conversion to the kubernetes client type keeps key, value and effect."""
    converted = NodeTaint.from_kubernetes(taint.to_kubernetes())

    assert converted == taint
    assert hash(converted) == hash(taint)


@given(effect=st.text().filter(lambda x: x not in TAINT_EFFECTS))
def test_invalid_taint_effect_rejected(effect):
    """Invalid taint effects should be rejected."""
    with pytest.raises(ValueError):
        NodeTaint(key="test", value="true", effect=effect)


@pytest.mark.parametrize("text", ["", "no-effect", "k=v", "=v:NoSchedule", "k=v:Sometimes"])
def test_malformed_taint_text_rejected(text):
    """Malformed taint text raises ValueError."""
    with pytest.raises(ValueError):
        NodeTaint.parse(text)


def test_taint_without_value():
    """Taints such as the master taint carry no value."""
    taint = NodeTaint.parse("node-role.kubernetes.io/master:NoSchedule")

    assert taint.key == "node-role.kubernetes.io/master"
    assert taint.value == ""
    assert str(taint) == "node-role.kubernetes.io/master:NoSchedule"
    assert taint.to_kubernetes().value is None


def test_taints_are_immutable():
    """Taints are frozen so they can be used in sets."""
    taint = NodeTaint(key="k", value="v", effect="NoSchedule")

    with pytest.raises(ValueError):
        taint.value = "other"


@given(node_taints=st.lists(taints(), unique_by=lambda t: t.key, max_size=5))
def test_node_kubernetes_conversion(node_taints):
    """Nodes survive conversion to and from the kubernetes client type."""
    node = Node(name="n1", labels={"a": "1"}, taints=node_taints, resource_version="42")

    converted = Node.from_kubernetes(node.to_kubernetes())

    assert converted.name == node.name
    assert converted.labels == node.labels
    assert converted.taints == node.taints
    assert converted.resource_version == "42"


def test_node_rejects_duplicate_taint_keys():
    """A node carries at most one taint per key."""
    with pytest.raises(ValueError):
        Node(
            name="n1",
            taints=[
                NodeTaint(key="k", value="v1", effect="NoSchedule"),
                NodeTaint(key="k", value="v2", effect="NoSchedule"),
            ],
        )


def test_node_rejects_empty_name():
    """Nodes must have a name."""
    with pytest.raises(ValueError):
        Node(name="")


def test_node_from_kubernetes_without_spec():
    """Nodes without spec or labels convert to empty collections."""
    node = Node.from_kubernetes(V1Node(metadata=V1ObjectMeta(name="bare")))

    assert node.labels == {}
    assert node.taints == []


def test_node_from_kubernetes_with_empty_spec():
    """A spec with no taints converts to an empty taint list."""
    node = Node.from_kubernetes(
        V1Node(metadata=V1ObjectMeta(name="n1", labels={"a": "1"}), spec=V1NodeSpec())
    )

    assert node.taints == []
    assert node.labels == {"a": "1"}


def test_node_to_kubernetes_keeps_unchanged_taint_fields():
    """Taints left in place keep time_added; new taints are written without it."""
    added_at = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)
    source = V1Node(
        metadata=V1ObjectMeta(name="n1"),
        spec=V1NodeSpec(
            taints=[
                V1Taint(
                    key="node.kubernetes.io/unreachable", effect="NoExecute", time_added=added_at
                )
            ]
        ),
    )
    node = Node.from_kubernetes(source)
    extra = NodeTaint(key="k", value="v", effect="NoSchedule")

    body = node.model_copy(update={"taints": [*node.taints, extra]}).to_kubernetes()

    kept, new = body.spec.taints
    assert kept.key == "node.kubernetes.io/unreachable"
    assert kept.time_added == added_at
    assert (new.key, new.value, new.effect) == ("k", "v", "NoSchedule")
    assert new.time_added is None


@given(node_taints=st.lists(taints(), unique_by=lambda t: t.key, min_size=1, max_size=5))
def test_node_to_kubernetes_keeps_time_added_of_every_kept_taint(node_taints):
    """Whatever taints a node carries, rewriting them unchanged keeps time_added."""
    added_at = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)
    v1_taints = []
    for t in node_taints:
        v1_taint = t.to_kubernetes()
        v1_taint.time_added = added_at
        v1_taints.append(v1_taint)
    node = Node.from_kubernetes(
        V1Node(metadata=V1ObjectMeta(name="n1"), spec=V1NodeSpec(taints=v1_taints))
    )

    body = node.model_copy(update={"taints": node.taints[1:]}).to_kubernetes()

    assert len(body.spec.taints) == len(node_taints) - 1
    assert all(t.time_added == added_at for t in body.spec.taints)
