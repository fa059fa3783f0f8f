import random
import string
from dataclasses import dataclass, field
from functools import lru_cache

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_API_URL = "https://api.packet.net/"
HOSTNAME_LENGTH = 15

MISSING_TOKEN_MESSAGE = (
    "You must provide Packet API token. "
    "Set PACKET_AUTH_TOKEN env variable or provide --token flag."
)
MISSING_PROJECT_MESSAGE = (
    "You must provide project ID. "
    "Set PACKET_PROJECT_ID env variable or provide --prid flag."
)


class ConfigurationError(ValueError):
    pass


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PACKET_", env_file=".env", extra="ignore"
    )

    auth_token: str = Field(default="")
    project_id: str = Field(default="")
    api_url: str = Field(default=DEFAULT_API_URL)

    facility: str = Field(default="ams1")
    plan: str = Field(default="baremetal_0")
    os: str = Field(default="centos_7")
    billing_cycle: str = Field(default="hourly")

    poll_interval_sec: float = Field(default=5, ge=0)
    poll_attempts: int = Field(default=300, ge=1)
    hold_sec: float = Field(default=10, ge=0)
    request_timeout_sec: float = Field(default=30.0, gt=0)

    check_status: bool = Field(default=False)
    delete_on_failure: bool = Field(default=False)
    log_level: str = Field(default="WARNING")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigurationError(f"invalid PACKET_* settings: {exc}") from exc


@dataclass(frozen=True)
class LifecycleConfig:
    token: str = field(repr=False)
    project_id: str
    hostname: str
    facility: str = "ams1"
    plan: str = "baremetal_0"
    operating_system: str = "centos_7"
    billing_cycle: str = "hourly"
    api_url: str = DEFAULT_API_URL
    poll_interval_sec: float = 5
    poll_attempts: int = 300
    hold_sec: float = 10
    request_timeout_sec: float = 30.0
    check_status: bool = False
    delete_on_failure: bool = False


def random_hostname(length: int = HOSTNAME_LENGTH) -> str:
    return "".join(random.choice(string.ascii_letters) for _ in range(length))


def _pick(value, fallback):
    return fallback if value is None else value


def resolve_config(
    settings: Settings,
    *,
    token: str | None = None,
    project_id: str | None = None,
    hostname: str | None = None,
    facility: str | None = None,
    plan: str | None = None,
    operating_system: str | None = None,
    billing_cycle: str | None = None,
    check_status: bool | None = None,
    delete_on_failure: bool | None = None,
) -> LifecycleConfig:
    """Merge command line values over settings.

    ``None`` or an empty string means the flag was not given and the
    environment value is used. A whitespace-only flag still overrides the
    environment, so it raises ``ConfigurationError`` like a blank setting.
    """
    resolved_token = (token or settings.auth_token).strip()
    if not resolved_token:
        raise ConfigurationError(MISSING_TOKEN_MESSAGE)
    resolved_project = (project_id or settings.project_id).strip()
    if not resolved_project:
        raise ConfigurationError(MISSING_PROJECT_MESSAGE)

    return LifecycleConfig(
        token=resolved_token,
        project_id=resolved_project,
        hostname=hostname or random_hostname(),
        facility=_pick(facility, settings.facility),
        plan=_pick(plan, settings.plan),
        operating_system=_pick(operating_system, settings.os),
        billing_cycle=_pick(billing_cycle, settings.billing_cycle),
        api_url=settings.api_url,
        poll_interval_sec=settings.poll_interval_sec,
        poll_attempts=settings.poll_attempts,
        hold_sec=settings.hold_sec,
        request_timeout_sec=settings.request_timeout_sec,
        check_status=_pick(check_status, settings.check_status),
        delete_on_failure=_pick(delete_on_failure, settings.delete_on_failure),
    )
