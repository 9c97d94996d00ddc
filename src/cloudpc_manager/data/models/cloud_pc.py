from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import Field, computed_field, field_validator

from .common import GraphResource


class CloudPCStatus(StrEnum):
    """Known Cloud PC provisioning states; Graph may return others."""

    NOT_PROVISIONED = "notProvisioned"
    PROVISIONING = "provisioning"
    PROVISIONED = "provisioned"
    PROVISIONED_WITH_WARNINGS = "provisionedWithWarnings"
    IN_GRACE_PERIOD = "inGracePeriod"
    DEPROVISIONING = "deprovisioning"
    FAILED = "failed"
    RESTORING = "restoring"
    UPGRADING = "upgrading"
    RESIZING = "resizing"


def _parse_graph_datetime(value: Any) -> Any:
    """Parse ISO timestamps; anything unparsable is kept as its text form."""

    if value is None or isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return str(value)
    text = value.strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return value


class CloudPC(GraphResource):
    managed_device_name: str | None = Field(default=None, alias="managedDeviceName")
    display_name: str | None = Field(default=None, alias="displayName")
    user_principal_name: str | None = Field(default=None, alias="userPrincipalName")
    status: str | None = None
    service_plan_name: str | None = Field(default=None, alias="servicePlanName")
    service_plan_id: str | None = Field(default=None, alias="servicePlanId")
    service_plan_type: str | None = Field(default=None, alias="servicePlanType")
    image_display_name: str | None = Field(default=None, alias="imageDisplayName")
    provisioning_policy_name: str | None = Field(
        default=None, alias="provisioningPolicyName"
    )
    managed_device_id: str | None = Field(default=None, alias="managedDeviceId")
    aad_device_id: str | None = Field(default=None, alias="aadDeviceId")
    grace_period_end_date_time: datetime | str | None = Field(
        default=None, alias="gracePeriodEndDateTime"
    )
    last_modified_date_time: datetime | str | None = Field(
        default=None, alias="lastModifiedDateTime"
    )

    @field_validator(
        "grace_period_end_date_time", "last_modified_date_time", mode="before"
    )
    @classmethod
    def _lenient_datetime(cls, value: Any) -> Any:
        return _parse_graph_datetime(value)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_in_grace_period(self) -> bool:
        return self.status == CloudPCStatus.IN_GRACE_PERIOD.value

    @property
    def name(self) -> str:
        """Best available label for the device."""
        return self.managed_device_name or self.display_name or self.id
