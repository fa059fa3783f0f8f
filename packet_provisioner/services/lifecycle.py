import logging
import sys
import time
from dataclasses import dataclass
from typing import TextIO

from packet_provisioner.clients.http import TransportError
from packet_provisioner.clients.packet import PacketClient
from packet_provisioner.config import LifecycleConfig
from packet_provisioner.metrics import metrics
from packet_provisioner.schemas import Device, DeviceRequest
from packet_provisioner.state_machine import ProvisionState, can_transition


logger = logging.getLogger(__name__)

POLL_INTERVAL_SEC = 5
POLL_ATTEMPTS = 300


class ProvisionTimeout(TimeoutError):
    def __init__(self, *, device_id: str, attempts: int):
        self.device_id = device_id
        self.attempts = attempts
        super().__init__(f"device {device_id} is still not provisioned")


@dataclass
class RunResult:
    state: ProvisionState = ProvisionState.REQUESTED
    device_id: str | None = None
    device: Device | None = None
    deleted: bool = False
    error: Exception | None = None

    def advance(self, target: ProvisionState) -> None:
        if not can_transition(self.state.value, target.value):
            raise RuntimeError(
                f"invalid lifecycle transition {self.state.value} -> {target.value}"
            )
        logger.debug(
            "lifecycle transition device_id=%s %s -> %s",
            self.device_id,
            self.state.value,
            target.value,
        )
        self.state = target


def _emit(message: str, out: TextIO | None) -> None:
    print(message, file=out or sys.stdout)


def build_device_request(config: LifecycleConfig) -> DeviceRequest:
    return DeviceRequest(
        hostname=config.hostname,
        plan=config.plan,
        facility=[config.facility],
        operating_system=config.operating_system,
        billing_cycle=config.billing_cycle,
        project_id=config.project_id,
    )


def create_device(
    client: PacketClient, config: LifecycleConfig, *, out: TextIO | None = None
) -> Device:
    request = build_device_request(config)
    logger.info(
        "creating device project_id=%s hostname=%s plan=%s facility=%s",
        config.project_id,
        request.hostname,
        request.plan,
        config.facility,
    )
    device = client.create_device(config.project_id, request)
    metrics.inc("devices_created_total")
    _emit("Provisioning device... please wait", out)
    return device


def wait_until_ready(
    client: PacketClient,
    device_id: str,
    *,
    interval: float = POLL_INTERVAL_SEC,
    attempts: int = POLL_ATTEMPTS,
) -> Device:
    """Poll ``devices/{id}`` at a fixed interval until the state is "active".

    A failing poll is raised straight away. After ``attempts`` non-active
    answers ``ProvisionTimeout`` is raised.
    """
    for attempt in range(1, attempts + 1):
        time.sleep(interval)
        metrics.inc("poll_attempts_total")
        device = client.get_device(device_id)
        if device.id and device.id != device_id:
            logger.warning(
                "poll returned a different id device_id=%s returned_id=%s",
                device_id,
                device.id,
            )
        if device.is_active:
            logger.info("device active device_id=%s attempt=%d", device_id, attempt)
            return device
        logger.debug(
            "device not ready device_id=%s state=%s attempt=%d/%d",
            device_id,
            device.state,
            attempt,
            attempts,
        )
    raise ProvisionTimeout(device_id=device_id, attempts=attempts)


def report_device(device: Device, *, out: TextIO | None = None) -> bool:
    try:
        text = device.to_display()
    except (TypeError, ValueError) as exc:
        logger.warning("device descriptor not printable device_id=%s", device.id)
        _emit(str(exc), out)
        return False
    _emit(text, out)
    return True


def delete_device(
    client: PacketClient, device_id: str, *, out: TextIO | None = None
) -> None:
    client.delete_device(device_id)
    metrics.inc("devices_deleted_total")
    logger.info("device deleted device_id=%s", device_id)
    _emit(f"Device {device_id} successfully deleted", out)


def _abort(
    result: RunResult, target: ProvisionState, exc: Exception, out: TextIO | None
) -> None:
    logger.error(
        "lifecycle aborted device_id=%s state=%s: %s",
        result.device_id,
        result.state.value,
        exc,
    )
    result.error = exc
    result.advance(target)
    _emit(str(exc), out)


def _terminate(client: PacketClient, result: RunResult, out: TextIO | None) -> None:
    try:
        delete_device(client, result.device_id, out=out)
    except TransportError as exc:
        logger.error("delete failed device_id=%s: %s", result.device_id, exc)
        _emit(str(exc), out)
        if result.error is None:
            result.error = exc
        if result.state is ProvisionState.ACTIVE:
            result.advance(ProvisionState.FAILED)
        return
    result.deleted = True
    result.advance(ProvisionState.DELETED)


def run_lifecycle(
    client: PacketClient, config: LifecycleConfig, *, out: TextIO | None = None
) -> RunResult:
    result = RunResult()
    try:
        device = create_device(client, config, out=out)
    except TransportError as exc:
        _abort(result, ProvisionState.FAILED, exc, out)
        return result
    result.device_id = device.id
    result.device = device
    result.advance(ProvisionState.PROVISIONING)

    try:
        result.device = wait_until_ready(
            client,
            device.id,
            interval=config.poll_interval_sec,
            attempts=config.poll_attempts,
        )
        result.advance(ProvisionState.ACTIVE)
    except ProvisionTimeout as exc:
        _abort(result, ProvisionState.TIMED_OUT, exc, out)
    except TransportError as exc:
        _abort(result, ProvisionState.FAILED, exc, out)
    finally:
        if result.state is not ProvisionState.ACTIVE and config.delete_on_failure:
            logger.warning(
                "attempting cleanup of unready device device_id=%s", result.device_id
            )
            _terminate(client, result, out)
    if result.state is not ProvisionState.ACTIVE:
        return result

    try:
        report_device(result.device, out=out)
        _emit(f"Device is ready. Terminating in {config.hold_sec:g}s...", out)
        time.sleep(config.hold_sec)
    finally:
        _terminate(client, result, out)
    return result


def run(
    config: LifecycleConfig,
    client: PacketClient | None = None,
    *,
    out: TextIO | None = None,
) -> RunResult:
    """Create, wait for, report, and delete one device.

    Transport, API, and timeout errors are printed and recorded on the
    returned ``RunResult``; they are never raised.
    """
    if client is not None:
        result = run_lifecycle(client, config, out=out)
    else:
        with PacketClient(
            config.token,
            config.api_url,
            timeout=config.request_timeout_sec,
            check_status=config.check_status,
        ) as owned:
            result = run_lifecycle(owned, config, out=out)
    logger.debug(
        "lifecycle finished state=%s metrics=%s", result.state.value, metrics.snapshot()
    )
    return result
