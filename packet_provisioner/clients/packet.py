import logging
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from packet_provisioner.clients.http import (
    ApiError,
    ApiResponse,
    TransportError,
    send_request,
)
from packet_provisioner.config import DEFAULT_API_URL
from packet_provisioner.schemas import Device, DeviceRequest


logger = logging.getLogger(__name__)


class PacketClient:
    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_API_URL,
        *,
        timeout: float = 30.0,
        check_status: bool = False,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/") + "/"
        self.check_status = check_status
        self.client = httpx.Client(
            headers={"X-Auth-Token": token, "Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    def __enter__(self) -> "PacketClient":
        return self

    def __exit__(self, *_exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self.client.close()

    def request(self, path: str, method: str, body: Any = None) -> ApiResponse:
        if isinstance(body, BaseModel):
            body = body.model_dump(mode="json")
        url = f"{self.base_url}{path.lstrip('/')}"
        return send_request(
            self.client,
            method,
            url,
            body=body,
            parse=method.upper() != "DELETE",
            check_status=self.check_status,
        )

    def create_device(self, project_id: str, request: DeviceRequest) -> Device:
        path = f"projects/{project_id}/devices"
        response = self.request(path, "POST", request)
        device = self._device_from(path, "POST", response)
        if not device.id:
            # The API answered with something other than a device, usually an
            # {"errors": [...]} body; there is nothing to poll or delete.
            raise ApiError(
                method="POST",
                url=f"{self.base_url}{path}",
                status_code=response.status_code,
                response_text=response.raw,
            )
        logger.info(
            "device created device_id=%s hostname=%s state=%s",
            device.id,
            device.hostname,
            device.state,
        )
        return device

    def get_device(self, device_id: str) -> Device:
        path = f"devices/{device_id}"
        response = self.request(path, "GET")
        return self._device_from(path, "GET", response)

    def delete_device(self, device_id: str) -> ApiResponse:
        return self.request(f"devices/{device_id}", "DELETE")

    def _device_from(self, path: str, method: str, response: ApiResponse) -> Device:
        try:
            return Device.model_validate(response.data)
        except ValidationError as exc:
            raise TransportError(
                method=method,
                url=f"{self.base_url}{path}",
                error_type=exc.__class__.__name__,
                detail=f"unexpected response shape: {exc.error_count()} errors",
            ) from exc
