#!/usr/bin/env python3
import argparse
import logging
import os
import sys

from usage_report.apihelper import APIHelper
from usage_report.cf_api import get_client
from usage_report.errors import UsageReportError
from usage_report.report import build_report


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="usage-report",
        description="Report AI and memory usage for orgs and spaces.",
    )
    parser.add_argument(
        "-o",
        dest="org_name",
        metavar="orgName",
        default="",
        help="Only report on this organization",
    )
    parser.add_argument(
        "-f",
        dest="format",
        metavar="format",
        default="text",
        help="Output format, 'csv' or anything else for text (default: text)",
    )
    return parser.parse_args(argv)


def render(report, output_format: str) -> str:
    if output_format == "csv":
        return report.to_csv()
    return report.to_text()


def main(argv=None, cf=None) -> int:
    args = parse_args(argv)
    trace = os.getenv("CF_TRACE", "").lower() == "true"
    logging.basicConfig(level=logging.DEBUG if trace else logging.WARNING)

    try:
        api = APIHelper(cf if cf is not None else get_client())
        report = build_report(api, org_name=args.org_name or None)
    except UsageReportError as err:
        print(f"Error: {err}", file=sys.stderr)
        return 1

    sys.stdout.write(render(report, args.format))
    return 0


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
