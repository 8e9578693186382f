"""Tests for the kind -> plural mapper and the discovery-backed KindIndex."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from konverge.models.resources import APIResourceType, ResourceIdentity
from konverge.reconcile.plurals import KindIndex, resource_name_for_kind


def _rt(group: str, version: str, name: str, kind: str, namespaced: bool = True) -> APIResourceType:
    return APIResourceType(
        group=group,
        version=version,
        name=name,
        kind=kind,
        namespaced=namespaced,
        verbs=frozenset({"list", "get"}),
    )


class TestResourceNameForKind:
    @pytest.mark.parametrize(
        ("kind", "expected"),
        [
            ("Deployment", "deployments"),
            ("Pod", "pods"),
            ("ConfigMap", "configmaps"),
            ("Ingress", "ingresses"),
            ("CronJob", "cronjobs"),
            ("NetworkPolicy", "networkpolicies"),
            ("StorageClass", "storageclasses"),
        ],
    )
    def test_known_kinds(self, kind: str, expected: str) -> None:
        assert resource_name_for_kind(kind) == expected

    def test_unknown_kind_appends_s(self) -> None:
        assert resource_name_for_kind("Widget") == "widgets"

    def test_unknown_kind_ending_in_s_is_unchanged(self) -> None:
        assert resource_name_for_kind("Status") == "status"

    def test_irregular_plural_is_a_known_limitation(self) -> None:
        assert resource_name_for_kind("Policy") == "policys"

    @given(kind=st.text(alphabet="ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz", min_size=1, max_size=30))
    def test_result_is_lowercase_and_ends_in_s(self, kind: str) -> None:
        name = resource_name_for_kind(kind)
        assert name == name.lower()
        assert name.endswith("s")


class TestKindIndex:
    def test_discovery_wins_over_heuristic(self) -> None:
        index = KindIndex([_rt("policy.example.io", "v1", "policies", "Policy")])
        identity = ResourceIdentity("policy.example.io", "v1", "Policy", "ns", "p")
        assert index.resource_name(identity) == "policies"

    def test_falls_back_to_heuristic_for_unknown_kind(self) -> None:
        index = KindIndex()
        identity = ResourceIdentity("example.io", "v1", "Widget", "ns", "w")
        assert index.resource_name(identity) == "widgets"

    def test_lookup_is_per_group_version(self) -> None:
        index = KindIndex([_rt("a.io", "v1", "things", "Thing")])
        assert index.lookup("a.io", "v1", "Thing") == "things"
        assert index.lookup("b.io", "v1", "Thing") is None

    def test_subresources_are_ignored(self) -> None:
        index = KindIndex(
            [
                _rt("apps", "v1", "deployments/scale", "Scale"),
                _rt("apps", "v1", "deployments", "Deployment"),
            ]
        )
        assert len(index) == 1
        assert index.lookup("apps", "v1", "Scale") is None

    def test_scope_from_discovery(self) -> None:
        index = KindIndex(
            [
                _rt("", "v1", "configmaps", "ConfigMap"),
                _rt("", "v1", "namespaces", "Namespace", namespaced=False),
            ]
        )
        assert index.namespaced("", "v1", "ConfigMap") is True
        assert index.namespaced("", "v1", "Namespace") is False
        assert index.namespaced("example.io", "v1", "Widget") is None

    def test_first_registration_wins(self) -> None:
        index = KindIndex(
            [
                _rt("", "v1", "endpoints", "Endpoints"),
                _rt("", "v1", "endpointsalias", "Endpoints"),
            ]
        )
        assert index.lookup("", "v1", "Endpoints") == "endpoints"
