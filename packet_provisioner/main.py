import argparse
import logging
from collections.abc import Sequence

from packet_provisioner.config import (
    ConfigurationError,
    Settings,
    get_settings,
    resolve_config,
)
from packet_provisioner.logging_config import configure_logging
from packet_provisioner.services.lifecycle import run


logger = logging.getLogger(__name__)


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="packet-provision",
        description=(
            "Provision a Packet bare-metal device, wait until it is active, "
            "then delete it."
        ),
        allow_abbrev=False,
    )
    parser.add_argument("-token", "--token", help="Packet API key token")
    parser.add_argument("-prid", "--prid", dest="project_id", help="project ID")
    parser.add_argument(
        "-hostname",
        "--hostname",
        help="Hostname of the server to be deployed (default: random)",
    )
    parser.add_argument(
        "-facility",
        "--facility",
        help=f"Datacenter facility code where to deploy device (default: {settings.facility})",
    )
    parser.add_argument(
        "-plan", "--plan", help=f"Server deployment plan (default: {settings.plan})"
    )
    parser.add_argument(
        "-os",
        "--os",
        dest="operating_system",
        help=f"Server OS slug (default: {settings.os})",
    )
    parser.add_argument(
        "-bilcycle",
        "--bilcycle",
        dest="billing_cycle",
        help=f"Billing cycle (default: {settings.billing_cycle})",
    )
    parser.add_argument(
        "-cleanup",
        "--cleanup",
        dest="delete_on_failure",
        action="store_true",
        default=None,
        help="Delete the device even when it never becomes active",
    )
    parser.add_argument(
        "-strict",
        "--strict",
        dest="check_status",
        action="store_true",
        default=None,
        help="Treat HTTP 4xx/5xx responses as errors",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    try:
        settings = get_settings()
    except ConfigurationError as exc:
        print(exc)
        return 0
    args = build_parser(settings).parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else settings.log_level)

    try:
        config = resolve_config(
            settings,
            token=args.token,
            project_id=args.project_id,
            hostname=args.hostname,
            facility=args.facility,
            plan=args.plan,
            operating_system=args.operating_system,
            billing_cycle=args.billing_cycle,
            check_status=args.check_status,
            delete_on_failure=args.delete_on_failure,
        )
    except ConfigurationError as exc:
        print(exc)
        return 0

    logger.info("starting lifecycle config=%s", config)
    result = run(config)
    logger.info("lifecycle complete state=%s deleted=%s", result.state.value, result.deleted)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
