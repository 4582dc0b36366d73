"""Tests for role classification and topology assembly."""

import pytest
from pydantic import ValidationError

from conftest import VPC_ID, group, network, standard_groups, standard_subnets, subnet
from matomo.discovery import (
    IncompleteTopology,
    NetworkSelector,
    ResolvedTopology,
    Role,
    build_topology,
    classify_security_group,
    classify_subnet,
)


# ──────────────────────────── Subnets ────────────────────────────


class TestClassifySubnet:
    @pytest.mark.parametrize(
        "name, role",
        [
            ("Test-App", Role.APPLICATION),
            ("Test-Web", Role.WEB),
            ("Test-Data", Role.DATA),
            ("prod-app", Role.APPLICATION),
            ("PROD-WEB", Role.WEB),
            ("dev-lza-Data", Role.DATA),
        ],
    )
    def test_suffix_match_ignores_case(self, name, role):
        assert classify_subnet(name) is role

    @pytest.mark.parametrize(
        "name",
        [None, "", "App", "-App", "Test-Apps", "Test-App-1", "Test-Mgmt", "TestApp"],
    )
    def test_unmatched_names_are_ignored(self, name):
        assert classify_subnet(name) is None


# ──────────────────────────── Security groups ────────────────────────────


class TestClassifySecurityGroup:
    @pytest.mark.parametrize(
        "name, role",
        [("App", Role.APPLICATION), ("web", Role.WEB), ("DATA", Role.DATA)],
    )
    def test_exact_name_match(self, name, role):
        assert classify_security_group(name) is role

    @pytest.mark.parametrize("name", [None, "", "default", "Test-App", "AppSG"])
    def test_other_names_are_ignored(self, name):
        assert classify_security_group(name) is None


# ──────────────────────────── build_topology ────────────────────────────


class TestBuildTopology:
    def test_standard_environment(self):
        topology = build_topology(network(), standard_subnets(), standard_groups())

        assert topology.vpc_id == VPC_ID
        assert topology.app_subnet_ids == ("subnet-12345",)
        assert topology.web_subnet_ids == ("subnet-67890",)
        assert topology.data_subnet_ids == ("subnet-abcde",)
        assert topology.app_security_group_id == "sg-12345"
        assert topology.web_security_group_id == "sg-67890"
        assert topology.data_security_group_id == "sg-abcde"

    def test_multi_az_subnets_keep_provider_order(self):
        subnets = [
            subnet("subnet-a2", "Test-App"),
            subnet("subnet-w1", "Test-Web"),
            subnet("subnet-a1", "Test-App"),
            subnet("subnet-d1", "Test-Data"),
            subnet("subnet-w2", "Test-Web"),
        ]
        topology = build_topology(network(), subnets, standard_groups())

        assert topology.app_subnet_ids == ("subnet-a2", "subnet-a1")
        assert topology.web_subnet_ids == ("subnet-w1", "subnet-w2")

    def test_unrelated_records_are_ignored(self):
        subnets = standard_subnets() + [
            subnet("subnet-x", "Shared-Mgmt"),
            subnet("subnet-y", None),
        ]
        groups = standard_groups() + [group("sg-default", "default")]

        topology = build_topology(network(), subnets, groups)

        assert "subnet-x" not in topology.app_subnet_ids + topology.web_subnet_ids
        assert topology.data_subnet_ids == ("subnet-abcde",)

    def test_records_from_other_vpcs_are_ignored(self):
        subnets = standard_subnets() + [subnet("subnet-other", "Test-App", "vpc-other")]
        groups = standard_groups() + [group("sg-other", "App", "vpc-other")]

        topology = build_topology(network(), subnets, groups)

        assert topology.app_subnet_ids == ("subnet-12345",)
        assert topology.app_security_group_id == "sg-12345"

    def test_missing_data_subnet(self):
        subnets = [s for s in standard_subnets() if s.name != "Test-Data"]

        with pytest.raises(IncompleteTopology) as exc_info:
            build_topology(network(), subnets, standard_groups())

        assert exc_info.value.role is Role.DATA
        assert "no subnet" in str(exc_info.value)

    def test_missing_web_security_group(self):
        groups = [g for g in standard_groups() if g.group_name != "Web"]

        with pytest.raises(IncompleteTopology) as exc_info:
            build_topology(network(), standard_subnets(), groups)

        assert exc_info.value.role is Role.WEB
        assert "no security group" in exc_info.value.reason

    def test_duplicate_app_security_group_is_ambiguous(self):
        groups = standard_groups() + [group("sg-dup", "app")]

        with pytest.raises(IncompleteTopology) as exc_info:
            build_topology(network(), standard_subnets(), groups)

        assert exc_info.value.role is Role.APPLICATION
        assert "ambiguous" in exc_info.value.reason
        assert "sg-12345" in exc_info.value.reason
        assert "sg-dup" in exc_info.value.reason

    def test_roles_are_checked_in_order(self):
        with pytest.raises(IncompleteTopology) as exc_info:
            build_topology(network(), [], [])
        assert exc_info.value.role is Role.APPLICATION


# ──────────────────────────── ResolvedTopology ────────────────────────────


class TestResolvedTopology:
    def test_is_immutable(self):
        topology = build_topology(network(), standard_subnets(), standard_groups())
        with pytest.raises(ValidationError):
            topology.app_security_group_id = "sg-other"

    def test_rejects_empty_subnet_list(self):
        with pytest.raises(ValidationError):
            ResolvedTopology(
                network=network(),
                app_subnet_ids=(),
                web_subnet_ids=("subnet-w",),
                data_subnet_ids=("subnet-d",),
                app_security_group_id="sg-a",
                web_security_group_id="sg-w",
                data_security_group_id="sg-d",
            )

    def test_role_accessors(self):
        topology = build_topology(network(), standard_subnets(), standard_groups())

        assert topology.subnet_ids(Role.WEB) == ("subnet-67890",)
        assert topology.security_group_id(Role.DATA) == "sg-abcde"
        assert topology.role_map()[Role.APPLICATION] == (
            frozenset({"subnet-12345"}),
            "sg-12345",
        )


# ──────────────────────────── NetworkSelector ────────────────────────────


class TestNetworkSelector:
    def test_requires_exactly_one_criterion(self):
        with pytest.raises(ValidationError):
            NetworkSelector()
        with pytest.raises(ValidationError):
            NetworkSelector(vpc_id="vpc-1", tags={"Name": "Test_vpc"})

    def test_describe(self):
        assert NetworkSelector(vpc_id="vpc-1").describe() == "vpc-id=vpc-1"
        assert (
            NetworkSelector(tags={"Stage": "Test", "Name": "Test_vpc"}).describe()
            == "tag:Name=Test_vpc,tag:Stage=Test"
        )
