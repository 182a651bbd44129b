"""Unit tests for AuroraClusterAdapter."""

from __future__ import annotations

from unittest.mock import MagicMock, Mock

import boto3
import pytest

from nuker.adapters.aurora import AuroraClusterAdapter
from nuker.models.resource import ResourceState, ResourceType
from tests.fixtures.resources import client_error, create_resource

CLUSTER = {
    "DBClusterIdentifier": "cluster-A",
    "DBClusterArn": "arn:aws:rds:us-east-1:123456789012:cluster:cluster-A",
    "Status": "available",
    "DeletionProtection": True,
    "DBClusterMembers": [{"DBInstanceIdentifier": "instance-A1"}, {"DBInstanceIdentifier": "instance-A2"}],
}


def _member(instance_id: str, instance_class: str) -> dict:
    return {
        "DBInstances": [
            {
                "DBInstanceIdentifier": instance_id,
                "DBInstanceArn": f"arn:aws:rds:us-east-1:123456789012:db:{instance_id}",
                "DBInstanceStatus": "available",
                "DBInstanceClass": instance_class,
                "DeletionProtection": False,
            }
        ]
    }


class TestAuroraClusterAdapter:
    """Tests for AuroraClusterAdapter."""

    @pytest.fixture
    def adapter(self) -> AuroraClusterAdapter:
        """Create an AuroraClusterAdapter with a mock client."""
        adapter = AuroraClusterAdapter(session=Mock(spec=boto3.Session), region="us-east-1")
        adapter._client = MagicMock()
        return adapter

    @pytest.fixture
    def scanned(self, adapter: AuroraClusterAdapter):
        """Scan one cluster with two members."""
        client = adapter._client
        client.get_paginator.return_value.paginate.return_value = [{"DBClusters": [CLUSTER]}]
        client.list_tags_for_resource.return_value = {"TagList": []}
        client.describe_db_instances.side_effect = [
            _member("instance-A1", "db.r5.large"),
            _member("instance-A2", "db.r5.xlarge"),
        ]
        return adapter.scan()

    def test_scan(self, adapter: AuroraClusterAdapter, scanned) -> None:
        """Test that the cluster carries its members' instance classes."""
        assert len(scanned) == 1
        cluster = scanned[0]
        assert cluster.id == "cluster-A"
        assert cluster.type == ResourceType.RDS_CLUSTER
        assert cluster.state == ResourceState.AVAILABLE
        assert cluster.resource_types == ["db.r5.large", "db.r5.xlarge"]
        assert cluster.termination_protection is True
        assert adapter.instance_types(cluster).value == ["db.r5.large", "db.r5.xlarge"]

    def test_dependencies_are_members(self, adapter: AuroraClusterAdapter, scanned) -> None:
        """Test that member instances are declared as dependencies."""
        dependencies = adapter.dependencies(scanned[0])

        assert [d.id for d in dependencies] == ["instance-A1", "instance-A2"]
        assert all(d.type == ResourceType.RDS_INSTANCE for d in dependencies)
        assert dependencies[0].resource_types == ["db.r5.large"]

    def test_member_has_no_dependencies(self, adapter: AuroraClusterAdapter, scanned) -> None:
        """Test that dependencies are only declared for clusters."""
        assert adapter.dependencies(create_resource("instance-A1")) is None

    def test_member_describe_failure_fails_type_lookup(self, adapter: AuroraClusterAdapter) -> None:
        """Test that an unknown member class makes the type lookup fail."""
        client = adapter._client
        client.get_paginator.return_value.paginate.return_value = [{"DBClusters": [CLUSTER]}]
        client.list_tags_for_resource.return_value = {"TagList": []}
        client.describe_db_instances.side_effect = client_error("Throttling", "DescribeDBInstances")

        cluster = adapter.scan()[0]

        assert adapter.instance_types(cluster).is_failed

    def test_delete_dispatches_on_type(self, adapter: AuroraClusterAdapter) -> None:
        """Test that members and clusters use their own delete calls."""
        adapter.delete(create_resource("instance-A1", ResourceType.RDS_INSTANCE))
        adapter.delete(create_resource("cluster-A", ResourceType.RDS_CLUSTER))

        adapter._client.delete_db_instance.assert_called_once_with(
            DBInstanceIdentifier="instance-A1",
            SkipFinalSnapshot=True,
        )
        adapter._client.delete_db_cluster.assert_called_once_with(
            DBClusterIdentifier="cluster-A",
            SkipFinalSnapshot=True,
        )

    def test_disable_termination_protection(self, adapter: AuroraClusterAdapter) -> None:
        """Test clearing deletion protection on a cluster."""
        adapter.disable_termination_protection(create_resource("cluster-A", ResourceType.RDS_CLUSTER))

        adapter._client.modify_db_cluster.assert_called_once_with(
            DBClusterIdentifier="cluster-A",
            DeletionProtection=False,
            ApplyImmediately=True,
        )

    def test_stop(self, adapter: AuroraClusterAdapter) -> None:
        """Test stopping a cluster."""
        adapter.stop(create_resource("cluster-A", ResourceType.RDS_CLUSTER))

        adapter._client.stop_db_cluster.assert_called_once_with(DBClusterIdentifier="cluster-A")
