#!/usr/bin/env python3
"""
check_logstash/cli.py — Icinga/Nagios check plugin entry point for Logstash.

Sub-commands:
  health           node status, heap, open file descriptors, CPU
  pipeline         inflight events per pipeline
  pipeline reload  last configuration reload per pipeline
  pipeline flow    queue backpressure per pipeline (Logstash >= 8.5)

Usage:
    check_logstash health --heap-usage-threshold-warn 60
    check_logstash -H logstash.example.com pipeline --inflight-events-warn 5 --inflight-events-crit 10
    check_logstash pipeline flow --warning 5 --critical 10 --pipeline main

Every connection option can also be set through CHECK_LOGSTASH_<NAME>
environment variables (CHECK_LOGSTASH_BEARER, CHECK_LOGSTASH_BASICAUTH, ...).
Exit codes follow the plugin API: 0 OK, 1 WARNING, 2 CRITICAL, 3 UNKNOWN.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import threading
from importlib.metadata import PackageNotFoundError, version

from pydantic import ValidationError

from check_logstash.checks import CheckOutcome
from check_logstash.checks.health import run_health
from check_logstash.checks.pipeline import run_flow, run_inflight, run_reload
from check_logstash.result import Severity, normalize_state
from config.settings import Settings, load_settings

logger = logging.getLogger(__name__)

LICENSE = """
Copyright (C) 2022 NETWAYS GmbH <info@netways.de>

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
GNU General Public License for more details.

You should have received a copy of the GNU General Public License
along with this program. If not, see https://www.gnu.org/licenses/.
"""

ROUTINES = {
    ("health", None): run_health,
    ("pipeline", None): run_inflight,
    ("pipeline", "reload"): run_reload,
    ("pipeline", "flow"): run_flow,
}


def _package_version() -> str:
    try:
        return version("check-logstash")
    except PackageNotFoundError:
        return "development"


class PluginArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports usage errors as UNKNOWN (exit 3) instead of 2."""

    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        print(f"UNKNOWN - {message}")
        sys.exit(int(Severity.UNKNOWN))


def _common_options() -> argparse.ArgumentParser:
    # SUPPRESS keeps unset options out of the namespace, so the options work
    # before and after the sub-command and the environment fills the gaps.
    common = argparse.ArgumentParser(add_help=False, argument_default=argparse.SUPPRESS)
    common.add_argument("-H", "--hostname", dest="HOSTNAME",
                        help="Hostname of the Logstash server (CHECK_LOGSTASH_HOSTNAME, default: localhost)")
    common.add_argument("-p", "--port", dest="PORT", type=int,
                        help="Port of the Logstash server (default: 9600)")
    common.add_argument("-s", "--secure", dest="SECURE", action="store_true",
                        help="Use a HTTPS connection")
    common.add_argument("-i", "--insecure", dest="INSECURE", action="store_true",
                        help="Skip the verification of the server's TLS certificate")
    common.add_argument("-b", "--bearer", dest="BEARER",
                        help="Bearer token for server authentication (CHECK_LOGSTASH_BEARER)")
    common.add_argument("-u", "--user", dest="BASICAUTH", metavar="USER:PASSWORD",
                        help="User name and password for server authentication (CHECK_LOGSTASH_BASICAUTH)")
    common.add_argument("--ca-file", dest="CA_FILE",
                        help="CA file for TLS authentication (CHECK_LOGSTASH_CA_FILE)")
    common.add_argument("--cert-file", dest="CERT_FILE",
                        help="Certificate file for TLS authentication (CHECK_LOGSTASH_CERT_FILE)")
    common.add_argument("--key-file", dest="KEY_FILE",
                        help="Key file for TLS authentication (CHECK_LOGSTASH_KEY_FILE)")
    common.add_argument("-t", "--timeout", dest="TIMEOUT", type=int,
                        help="Timeout in seconds for the check plugin (default: 30)")
    common.add_argument("--unreachable-state", dest="UNREACHABLE_STATE", type=int,
                        help="Exit state when Logstash is unreachable or the timeout is hit, 0-2 (default: 3)")
    common.add_argument("-v", "--verbose", action="store_true",
                        help="Log debug information to stderr")
    return common


def build_parser() -> argparse.ArgumentParser:
    common = _common_options()
    parser = PluginArgumentParser(
        prog="check_logstash",
        description="An Icinga check plugin to check Logstash",
        epilog="Copyright (C) 2022 NETWAYS GmbH <info@netways.de>",
        parents=[common],
    )
    parser.add_argument("-V", "--version", action="version",
                        version=f"%(prog)s {_package_version()}\n{LICENSE}")
    commands = parser.add_subparsers(dest="command", metavar="{health,pipeline}")

    health = commands.add_parser("health", parents=[common], argument_default=argparse.SUPPRESS,
                                 help="Checks the health of the Logstash server")
    health.add_argument("--file-descriptor-threshold-warn", dest="FILE_DESCRIPTOR_THRESHOLD_WARN",
                        help="Open file descriptors in percent of the limit for a warning result (default: 100)")
    health.add_argument("--file-descriptor-threshold-crit", dest="FILE_DESCRIPTOR_THRESHOLD_CRIT",
                        help="Open file descriptors in percent of the limit for a critical result (default: 100)")
    health.add_argument("--heap-usage-threshold-warn", dest="HEAP_USAGE_THRESHOLD_WARN",
                        help="Heap usage in percent of the heap limit for a warning result (default: 70)")
    health.add_argument("--heap-usage-threshold-crit", dest="HEAP_USAGE_THRESHOLD_CRIT",
                        help="Heap usage in percent of the heap limit for a critical result (default: 80)")
    health.add_argument("--cpu-usage-threshold-warn", dest="CPU_USAGE_THRESHOLD_WARN",
                        help="CPU usage in percent for a warning result (default: 100)")
    health.add_argument("--cpu-usage-threshold-crit", dest="CPU_USAGE_THRESHOLD_CRIT",
                        help="CPU usage in percent for a critical result (default: 100)")

    pipeline = commands.add_parser("pipeline", parents=[common], argument_default=argparse.SUPPRESS,
                                   help="Checks the status of the Logstash pipelines")
    pipeline.add_argument("-P", "--pipeline", dest="PIPELINE",
                          help="Pipeline name (default: all pipelines)")
    pipeline.add_argument("--inflight-events-warn", dest="INFLIGHT_EVENTS_WARN",
                          help="Warning threshold for inflight events. Use min:max for a range.")
    pipeline.add_argument("--inflight-events-crit", dest="INFLIGHT_EVENTS_CRIT",
                          help="Critical threshold for inflight events. Use min:max for a range.")

    pipeline_commands = pipeline.add_subparsers(dest="pipeline_command", metavar="{reload,flow}")
    reload_ = pipeline_commands.add_parser(
        "reload", parents=[common], argument_default=argparse.SUPPRESS,
        help="Checks the reload configuration status of the Logstash pipelines",
    )
    reload_.add_argument("-P", "--pipeline", dest="PIPELINE",
                         help="Pipeline name (default: all pipelines)")

    flow = pipeline_commands.add_parser("flow", parents=[common], argument_default=argparse.SUPPRESS,
                                        help="Checks the flow metrics of the Logstash pipelines")
    flow.add_argument("-P", "--pipeline", dest="PIPELINE",
                      help="Pipeline name (default: all pipelines)")
    flow.add_argument("-w", "--warning", dest="FLOW_WARN",
                      help="Warning threshold for queue backpressure")
    flow.add_argument("-c", "--critical", dest="FLOW_CRIT",
                      help="Critical threshold for queue backpressure")
    return parser


def _settings_overrides(args: argparse.Namespace) -> dict[str, object]:
    return {k: v for k, v in vars(args).items() if k in Settings.model_fields}


def _configure_logging(verbose: bool) -> None:
    # stdout is reserved for the plugin output
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def _on_timeout(state: Severity) -> None:
    sys.stdout.write(f"{state.name} - Timeout reached\n")
    sys.stdout.flush()
    os._exit(int(state))


def start_watchdog(seconds: int, state: Severity) -> threading.Timer:
    """Terminate the process with *state* if the check runs longer than *seconds*."""
    timer = threading.Timer(seconds, _on_timeout, args=(state,))
    timer.daemon = True
    timer.start()
    return timer


def run(cfg: Settings, command: str, pipeline_command: str | None = None) -> CheckOutcome:
    """Run one check routine and return its outcome."""
    routine = ROUTINES[(command, pipeline_command)]
    logger.debug("running %s against %s", routine.__name__, cfg.base_url)
    try:
        return routine(cfg)
    except Exception as exc:  # noqa: BLE001
        logger.debug("unexpected error", exc_info=True)
        return CheckOutcome.error(f"unexpected error: {exc}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(getattr(args, "verbose", False))

    if args.command is None:
        parser.print_usage()
        return int(Severity.UNKNOWN)

    try:
        cfg = load_settings(_settings_overrides(args))
    except ValidationError as exc:
        errors = "; ".join(e["msg"] for e in exc.errors())
        print(f"UNKNOWN - invalid configuration: {errors}")
        return int(Severity.UNKNOWN)

    watchdog = start_watchdog(cfg.TIMEOUT, normalize_state(cfg.UNREACHABLE_STATE))
    try:
        outcome = run(cfg, args.command, getattr(args, "pipeline_command", None))
    finally:
        watchdog.cancel()

    print(outcome.render())
    return outcome.exit_code


if __name__ == "__main__":
    sys.exit(main())
