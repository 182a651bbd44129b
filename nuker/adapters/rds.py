"""RDS DB instance adapter."""

from __future__ import annotations

from typing import Any, Dict, List

from botocore.exceptions import ClientError

from ..models.resource import Resource, ResourceState, ResourceType, Tag
from .base import ResourceAdapter

AURORA_ENGINES = ("aurora", "aurora-mysql", "aurora-postgresql")


def fetch_rds_tags(client: Any, arn: str) -> List[Tag]:
    """List the tags of an RDS resource by ARN.

    Raises:
        ClientError: If the tag query fails
    """
    response = client.list_tags_for_resource(ResourceName=arn)
    return [Tag(key=tag["Key"], value=tag.get("Value")) for tag in response.get("TagList", [])]


class RdsInstanceAdapter(ResourceAdapter):
    """Adapter for standalone RDS DB instances.

    Aurora cluster members are left to the Aurora cluster adapter.
    """

    active_states = frozenset({ResourceState.AVAILABLE})
    metric_namespace = "AWS/RDS"
    metric_dimension = "DBInstanceIdentifier"
    not_found_codes = frozenset({"DBInstanceNotFound", "DBInstanceNotFoundFault"})

    @property
    def resource_type(self) -> ResourceType:
        return ResourceType.RDS_INSTANCE

    @property
    def service_name(self) -> str:
        return "rds"

    def scan(self) -> List[Resource]:
        """Scan RDS DB instances.

        Returns:
            List of DB instance resources
        """
        instances = self._paginate("describe_db_instances", "DBInstances")

        return [
            self._package_instance(instance)
            for instance in instances
            if instance.get("Engine") not in AURORA_ENGINES
        ]

    def stop(self, resource: Resource) -> None:
        self.logger.debug(f"Stopping instance: {resource.id}")
        self._invoke("stop_db_instance", resource.id, DBInstanceIdentifier=resource.id)

    def delete(self, resource: Resource) -> None:
        self.logger.debug(f"Terminating instance: {resource.id}")
        self._invoke(
            "delete_db_instance",
            resource.id,
            DBInstanceIdentifier=resource.id,
            SkipFinalSnapshot=True,
            DeleteAutomatedBackups=False,
        )

    def disable_termination_protection(self, resource: Resource) -> None:
        self.logger.debug(f"Termination protection is enabled for: {resource.id}. Trying to disable it.")
        self._invoke(
            "modify_db_instance",
            resource.id,
            DBInstanceIdentifier=resource.id,
            DeletionProtection=False,
            ApplyImmediately=True,
        )

    def _package_instance(self, instance: Dict[str, Any]) -> Resource:
        instance_id = instance["DBInstanceIdentifier"]
        arn = instance.get("DBInstanceArn")

        return Resource(
            id=instance_id,
            arn=arn,
            type=self.resource_type,
            region=self.region,
            tags=self._list_tags(instance_id, arn),
            state=ResourceState.from_status(instance.get("DBInstanceStatus")),
            termination_protection=instance.get("DeletionProtection"),
            start_time=instance.get("InstanceCreateTime"),
            resource_types=[instance["DBInstanceClass"]] if instance.get("DBInstanceClass") else None,
        )

    def _list_tags(self, instance_id: str, arn: Any) -> List[Tag]:
        if not arn:
            return []

        try:
            return fetch_rds_tags(self.client, arn)
        except ClientError as e:
            self._record_tag_failure(instance_id, e)
            return []
