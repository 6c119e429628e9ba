"""
    Main entry point for host-tuner.

    host-tuner apply   - tune NIC, TCP stack, CPU and services, persist and install the boot unit
    host-tuner verify  - re-read every setting, score it and exit 0 when nothing critical failed
"""
import argparse
import logging
import sys

from host_tuner.core.apply import run_apply
from host_tuner.core.config import TOOL_VERSION, TunerConfig
from host_tuner.core.errors import HostTunerError
from host_tuner.core.models import Profile
from host_tuner.core.report import write_json_report
from host_tuner.core.verify import run_verify
from host_tuner.reports.formatter import print_apply_report, print_verify_report
from host_tuner.shared.system import is_linux

logger = logging.getLogger("host_tuner")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="host-tuner", description="Low-latency Linux host tuning for trading hosts.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {TOOL_VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    profiles = [p.value for p in Profile]

    apply_p = sub.add_parser("apply", help="apply optimizations (requires root)")
    apply_p.add_argument("--profile", choices=profiles, help="tunable profile (default: standard or $HOST_TUNER_PROFILE)")
    apply_p.add_argument("--boot", action="store_true", help="re-apply runtime settings only (used by the boot unit)")

    verify_p = sub.add_parser("verify", help="verify optimizations and score them")
    verify_p.add_argument("--profile", choices=profiles, help="tunable profile (default: standard or $HOST_TUNER_PROFILE)")
    verify_p.add_argument("--json", metavar="PATH", help="also write the report as JSON")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    if not is_linux():
        logger.error("host-tuner only supports Linux")
        return 1

    try:
        config = TunerConfig.from_env().with_profile(args.profile)
        if args.command == "apply":
            report = run_apply(config, boot=args.boot)
            print_apply_report(report)
            return 0

        report = run_verify(config)
        print_verify_report(report, config.profile)
        if args.json:
            path = write_json_report(report, args.json)
            logger.info("JSON report written to %s", path)
        return report.exit_code
    except HostTunerError as e:
        logger.error("%s", e)
        return e.exit_code


if __name__ == "__main__":
    sys.exit(main())
