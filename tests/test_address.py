"""Tests for hierarchical addresses."""

import pytest

from credgraph.address import EdgeAddress, NodeAddress


class TestAddress:
    """Equality, prefixes and ordering."""

    def test_structural_equality(self):
        assert NodeAddress.from_parts(["a", "b"]) == NodeAddress(("a", "b"))
        assert hash(NodeAddress.from_parts(["a"])) == hash(NodeAddress(("a",)))

    def test_node_and_edge_namespaces_are_disjoint(self):
        assert NodeAddress.from_parts(["a"]) != EdgeAddress.from_parts(["a"])

    def test_prefix(self):
        prefix = NodeAddress.from_parts(["github", "USER"])
        user = prefix.append("decentralion")
        assert prefix.is_prefix_of(user)
        assert user.has_prefix(prefix)
        assert not user.is_prefix_of(prefix)
        assert NodeAddress.empty.is_prefix_of(user)

    def test_prefix_is_component_wise(self):
        assert not NodeAddress.from_parts(["foo"]).is_prefix_of(NodeAddress.from_parts(["foobar"]))

    def test_prefix_across_kinds_rejected(self):
        with pytest.raises(TypeError):
            NodeAddress.empty.is_prefix_of(EdgeAddress.empty)

    def test_ordering_is_component_wise(self):
        addresses = [
            NodeAddress.from_parts(["b"]),
            NodeAddress.from_parts(["a", "z"]),
            NodeAddress.from_parts(["a"]),
        ]
        assert sorted(addresses) == [addresses[2], addresses[1], addresses[0]]

    def test_rejects_nul_and_non_strings(self):
        with pytest.raises(ValueError):
            NodeAddress.from_parts(["a\0b"])
        with pytest.raises(ValueError):
            NodeAddress.from_parts([1])

    def test_to_string(self):
        assert NodeAddress.from_parts(["a", "b"]).to_string() == 'NodeAddress["a","b"]'
