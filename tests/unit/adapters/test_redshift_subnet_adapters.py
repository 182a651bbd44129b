"""Unit tests for the Redshift and EC2 subnet adapters."""

from __future__ import annotations

from unittest.mock import MagicMock, Mock

import boto3
import pytest

from nuker.adapters.base import AdapterError
from nuker.adapters.ec2_subnet import Ec2SubnetAdapter
from nuker.adapters.redshift import RedshiftClusterAdapter
from nuker.models.resource import ResourceState, ResourceType
from tests.fixtures.resources import client_error, create_resource


class TestRedshiftClusterAdapter:
    """Tests for RedshiftClusterAdapter."""

    @pytest.fixture
    def adapter(self) -> RedshiftClusterAdapter:
        """Create a RedshiftClusterAdapter with a mock client."""
        adapter = RedshiftClusterAdapter(session=Mock(spec=boto3.Session), region="eu-west-1")
        adapter._client = MagicMock()
        return adapter

    def test_scan_reads_inline_tags(self, adapter: RedshiftClusterAdapter) -> None:
        """Test that tags and node type come from describe_clusters."""
        adapter._client.get_paginator.return_value.paginate.return_value = [
            {
                "Clusters": [
                    {
                        "ClusterIdentifier": "warehouse",
                        "ClusterStatus": "available",
                        "NodeType": "dc2.large",
                        "Tags": [{"Key": "owner", "Value": "data"}],
                    }
                ]
            }
        ]

        resources = adapter.scan()

        assert resources[0].id == "warehouse"
        assert resources[0].type == ResourceType.RS_CLUSTER
        assert resources[0].state == ResourceState.AVAILABLE
        assert resources[0].resource_types == ["dc2.large"]
        assert resources[0].tag_value("owner") == "data"
        adapter._client.list_tags_for_resource.assert_not_called()

    def test_stop_pauses(self, adapter: RedshiftClusterAdapter) -> None:
        """Test that stopping a cluster pauses it."""
        adapter.stop(create_resource("warehouse", ResourceType.RS_CLUSTER))

        adapter._client.pause_cluster.assert_called_once_with(ClusterIdentifier="warehouse")

    def test_delete_skips_final_snapshot(self, adapter: RedshiftClusterAdapter) -> None:
        """Test deleting a cluster without a final snapshot."""
        adapter.delete(create_resource("warehouse", ResourceType.RS_CLUSTER))

        adapter._client.delete_cluster.assert_called_once_with(
            ClusterIdentifier="warehouse",
            SkipFinalClusterSnapshot=True,
        )

    def test_delete_missing_cluster(self, adapter: RedshiftClusterAdapter) -> None:
        """Test that a cluster that is already gone is not an error."""
        adapter._client.delete_cluster.side_effect = client_error("ClusterNotFound", "DeleteCluster")

        adapter.delete(create_resource("warehouse", ResourceType.RS_CLUSTER))


class TestEc2SubnetAdapter:
    """Tests for Ec2SubnetAdapter."""

    @pytest.fixture
    def adapter(self) -> Ec2SubnetAdapter:
        """Create an Ec2SubnetAdapter with a mock client."""
        adapter = Ec2SubnetAdapter(session=Mock(spec=boto3.Session), region="us-east-1")
        adapter._client = MagicMock()
        return adapter

    def test_scan(self, adapter: Ec2SubnetAdapter) -> None:
        """Test scanning subnets."""
        adapter._client.get_paginator.return_value.paginate.return_value = [
            {"Subnets": [{"SubnetId": "subnet-1", "State": "available", "Tags": [{"Key": "Name", "Value": "a"}]}]},
            {"Subnets": [{"SubnetId": "subnet-2", "State": "pending"}]},
        ]

        resources = adapter.scan()

        assert [r.id for r in resources] == ["subnet-1", "subnet-2"]
        assert resources[0].state == ResourceState.AVAILABLE
        assert resources[1].state == ResourceState.PENDING
        assert resources[0].resource_types is None

    def test_stop_is_noop(self, adapter: Ec2SubnetAdapter) -> None:
        """Test that subnets cannot be stopped."""
        adapter.stop(create_resource("subnet-1", ResourceType.EC2_SUBNET))

        assert adapter._client.method_calls == []

    def test_delete(self, adapter: Ec2SubnetAdapter) -> None:
        """Test deleting a subnet."""
        adapter.delete(create_resource("subnet-1", ResourceType.EC2_SUBNET))

        adapter._client.delete_subnet.assert_called_once_with(SubnetId="subnet-1")

    def test_delete_dependency_violation(self, adapter: Ec2SubnetAdapter) -> None:
        """Test that a subnet still in use raises AdapterError."""
        adapter._client.delete_subnet.side_effect = client_error("DependencyViolation", "DeleteSubnet")

        with pytest.raises(AdapterError, match="DependencyViolation"):
            adapter.delete(create_resource("subnet-1", ResourceType.EC2_SUBNET))

    def test_idle_checks_unsupported(self, adapter: Ec2SubnetAdapter) -> None:
        """Test that subnets have no idle metric."""
        assert not adapter.is_active(create_resource("subnet-1", ResourceType.EC2_SUBNET)).is_present
