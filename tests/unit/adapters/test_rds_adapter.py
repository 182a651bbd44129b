"""Unit tests for RdsInstanceAdapter."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock, Mock, patch

import boto3
import pytest

from nuker.adapters.base import AdapterError
from nuker.adapters.rds import RdsInstanceAdapter
from nuker.models.resource import ResourceState, ResourceType
from tests.fixtures.resources import client_error, create_resource


class TestRdsInstanceAdapter:
    """Tests for RdsInstanceAdapter."""

    @pytest.fixture
    def mock_session(self) -> Mock:
        """Create a mock boto3 session."""
        return Mock(spec=boto3.Session)

    @pytest.fixture
    def adapter(self, mock_session: Mock) -> RdsInstanceAdapter:
        """Create an RdsInstanceAdapter instance."""
        return RdsInstanceAdapter(session=mock_session, region="us-east-1")

    @pytest.fixture
    def mock_client(self, adapter: RdsInstanceAdapter) -> MagicMock:
        """Attach a mock RDS client to the adapter."""
        client = MagicMock()
        adapter._client = client
        return client

    def test_service_name(self, adapter: RdsInstanceAdapter) -> None:
        """Test that service_name returns 'rds'."""
        assert adapter.service_name == "rds"
        assert adapter.resource_type == ResourceType.RDS_INSTANCE

    def test_scan_packages_instances(self, adapter: RdsInstanceAdapter, mock_client: MagicMock) -> None:
        """Test scanning instances with tags, state and type."""
        created = datetime(2025, 1, 15, 10, 0, 0, tzinfo=timezone.utc)
        mock_client.get_paginator.return_value.paginate.return_value = [
            {
                "DBInstances": [
                    {
                        "DBInstanceIdentifier": "db-1",
                        "DBInstanceArn": "arn:aws:rds:us-east-1:123456789012:db:db-1",
                        "DBInstanceStatus": "available",
                        "DBInstanceClass": "db.t3.micro",
                        "Engine": "postgres",
                        "DeletionProtection": True,
                        "InstanceCreateTime": created,
                    },
                    {
                        "DBInstanceIdentifier": "aurora-member",
                        "DBInstanceStatus": "available",
                        "Engine": "aurora-postgresql",
                    },
                ]
            }
        ]
        mock_client.list_tags_for_resource.return_value = {"TagList": [{"Key": "env", "Value": "dev"}]}

        resources = adapter.scan()

        assert len(resources) == 1
        resource = resources[0]
        assert resource.id == "db-1"
        assert resource.region == "us-east-1"
        assert resource.state == ResourceState.AVAILABLE
        assert resource.resource_types == ["db.t3.micro"]
        assert resource.termination_protection is True
        assert resource.start_time == created
        assert resource.tag_value("env") == "dev"
        mock_client.get_paginator.assert_called_once_with("describe_db_instances")

    def test_tag_failure_is_reported_as_failed_lookup(
        self, adapter: RdsInstanceAdapter, mock_client: MagicMock
    ) -> None:
        """Test that a failed tag query is remembered instead of returning no tags."""
        mock_client.get_paginator.return_value.paginate.return_value = [
            {
                "DBInstances": [
                    {
                        "DBInstanceIdentifier": "db-1",
                        "DBInstanceArn": "arn:aws:rds:us-east-1:123456789012:db:db-1",
                        "DBInstanceStatus": "available",
                        "Engine": "mysql",
                    }
                ]
            }
        ]
        mock_client.list_tags_for_resource.side_effect = client_error("AccessDenied", "ListTagsForResource")

        resource = adapter.scan()[0]

        assert adapter.tags(resource).is_failed
        assert not adapter.tags(create_resource("db-2")).is_failed

    def test_scan_error_raises_adapter_error(self, adapter: RdsInstanceAdapter, mock_client: MagicMock) -> None:
        """Test that a listing failure is raised as AdapterError."""
        mock_client.get_paginator.return_value.paginate.side_effect = client_error("AccessDenied")

        with pytest.raises(AdapterError) as exc_info:
            adapter.scan()

        assert exc_info.value.error_code == "AccessDenied"

    def test_stop(self, adapter: RdsInstanceAdapter, mock_client: MagicMock) -> None:
        """Test stopping an instance."""
        adapter.stop(create_resource("db-1"))

        mock_client.stop_db_instance.assert_called_once_with(DBInstanceIdentifier="db-1")

    def test_delete_skips_final_snapshot(self, adapter: RdsInstanceAdapter, mock_client: MagicMock) -> None:
        """Test deleting an instance without a final snapshot."""
        adapter.delete(create_resource("db-1"))

        mock_client.delete_db_instance.assert_called_once_with(
            DBInstanceIdentifier="db-1",
            SkipFinalSnapshot=True,
            DeleteAutomatedBackups=False,
        )

    def test_delete_already_gone(self, adapter: RdsInstanceAdapter, mock_client: MagicMock) -> None:
        """Test that deleting a missing instance is not an error."""
        mock_client.delete_db_instance.side_effect = client_error("DBInstanceNotFound", "DeleteDBInstance")

        adapter.delete(create_resource("db-1"))

    def test_delete_error(self, adapter: RdsInstanceAdapter, mock_client: MagicMock) -> None:
        """Test that other delete errors raise AdapterError."""
        mock_client.delete_db_instance.side_effect = client_error("InvalidDBInstanceState", "DeleteDBInstance")

        with pytest.raises(AdapterError, match="InvalidDBInstanceState") as exc_info:
            adapter.delete(create_resource("db-1"))

        assert exc_info.value.resource_id == "db-1"

    def test_disable_termination_protection(self, adapter: RdsInstanceAdapter, mock_client: MagicMock) -> None:
        """Test clearing deletion protection."""
        adapter.disable_termination_protection(create_resource("db-1"))

        mock_client.modify_db_instance.assert_called_once_with(
            DBInstanceIdentifier="db-1",
            DeletionProtection=False,
            ApplyImmediately=True,
        )

    @patch("nuker.adapters.base.create_boto_client")
    def test_client_is_created_once(self, mock_create_client: Mock, adapter: RdsInstanceAdapter) -> None:
        """Test that the boto3 client is created lazily and reused."""
        assert adapter.client is adapter.client

        mock_create_client.assert_called_once_with(
            service_name="rds",
            region_name="us-east-1",
            session=adapter.session,
        )
