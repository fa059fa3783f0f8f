import json
from typing import Any

from pydantic import BaseModel, ConfigDict


ACTIVE_STATE = "active"

# Printed only when set; id, ip_addresses and volumes always appear.
OMIT_WHEN_EMPTY = (
    "hostname",
    "state",
    "created_at",
    "updated_at",
    "locked",
    "billing_cycle",
    "storage",
    "tags",
    "operating_system",
    "plan",
    "facility",
    "project",
)


class DeviceRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    hostname: str
    plan: str
    facility: list[str]
    operating_system: str
    billing_cycle: str
    project_id: str


class Device(BaseModel):
    # Unknown keys from the API are kept so the printed descriptor is complete.
    model_config = ConfigDict(extra="allow")

    id: str = ""
    hostname: str | None = None
    state: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    locked: bool | None = None
    billing_cycle: str | None = None
    storage: Any = None
    tags: list[str] | None = None
    ip_addresses: Any = None
    volumes: Any = None
    operating_system: Any = None
    plan: Any = None
    facility: Any = None
    project: Any = None

    @property
    def is_active(self) -> bool:
        return self.state == ACTIVE_STATE

    def to_display(self) -> str:
        data = self.model_dump(mode="json")
        for key in OMIT_WHEN_EMPTY:
            if not data.get(key):
                data.pop(key, None)
        return json.dumps(data, indent=2)
