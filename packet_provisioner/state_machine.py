from enum import Enum


class ProvisionState(str, Enum):
    REQUESTED = "REQUESTED"
    PROVISIONING = "PROVISIONING"
    ACTIVE = "ACTIVE"
    TIMED_OUT = "TIMED_OUT"
    FAILED = "FAILED"
    DELETED = "DELETED"


ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    ProvisionState.REQUESTED.value: {
        ProvisionState.PROVISIONING.value,
        ProvisionState.FAILED.value,
    },
    # DELETED straight from PROVISIONING is the interrupted-run cleanup.
    ProvisionState.PROVISIONING.value: {
        ProvisionState.ACTIVE.value,
        ProvisionState.TIMED_OUT.value,
        ProvisionState.FAILED.value,
        ProvisionState.DELETED.value,
    },
    ProvisionState.ACTIVE.value: {
        ProvisionState.DELETED.value,
        ProvisionState.FAILED.value,
    },
    ProvisionState.TIMED_OUT.value: {ProvisionState.DELETED.value},
    ProvisionState.FAILED.value: {ProvisionState.DELETED.value},
    ProvisionState.DELETED.value: set(),
}


def can_transition(current: str, target: str) -> bool:
    if current == target:
        return True
    return target in ALLOWED_TRANSITIONS.get(current, set())
