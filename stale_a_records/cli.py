#!/usr/bin/env python3
"""
route53-stale-a-records

Purpose:
  Find Route53 A records pointing at public IPs that no Elastic IP or running
  EC2 instance owns any more (dangling DNS, subdomain-takeover risk), and
  report them to AWS Config as evaluations of a custom rule.

Features:
  - Scans every hosted zone (optionally filtered by name) and every enabled region
  - Records previously reported NON_COMPLIANT that are fixed are flipped to COMPLIANT
  - Dry-run by default; --apply submits evaluations (TestMode unless --result-token given)
  - JSON or human readable output

Permissions:
  - route53:ListHostedZones, route53:ListResourceRecordSets
  - ec2:DescribeRegions, ec2:DescribeAddresses, ec2:DescribeInstances
  - config:GetComplianceDetailsByConfigRule, config:PutEvaluations
  - sts:GetCallerIdentity (when --account-id is not given)

Examples:
  route53-stale-a-records --json
  route53-stale-a-records --profile prod --name-filter example.com --fail-on-findings
  route53-stale-a-records --rule-name dangling-dns --result-token <token> --apply

Exit Codes:
  0 success
  1 unexpected error
  2 findings detected with --fail-on-findings
"""
import argparse
import json
import logging
import sys
from typing import List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .config import DEFAULT_RULE_NAME, DEFAULT_WORKERS, AuditConfig
from .job import AuditReport, run_audit, session
from .publisher import TEST_MODE_TOKEN


def parse_args(argv: Optional[List[str]] = None):
    p = argparse.ArgumentParser(description="Audit Route53 A records pointing at unowned public IPs")
    p.add_argument("--profile", help="AWS profile name")
    p.add_argument("--regions", nargs="*", help="Regions to collect addresses from (default: all enabled)")
    p.add_argument("--name-filter", help="Substring filter on hosted zone name")
    p.add_argument("--account-id", help="Account id used in resource ids (default: caller identity)")
    p.add_argument("--rule-name", default=DEFAULT_RULE_NAME, help=f"Config rule name (default: {DEFAULT_RULE_NAME})")
    p.add_argument("--result-token", default=TEST_MODE_TOKEN, help="Config result token (default: TESTMODE)")
    p.add_argument("--apply", action="store_true", help="Submit evaluations to AWS Config")
    p.add_argument("--partial-inventory", action="store_true",
                   help="Skip regions whose address listing fails instead of aborting")
    p.add_argument("--no-instance-ips", action="store_true", help="Only count Elastic IPs as owned addresses")
    p.add_argument("--zone-workers", type=int, default=DEFAULT_WORKERS, help="Concurrent zones")
    p.add_argument("--region-workers", type=int, default=DEFAULT_WORKERS, help="Concurrent regions")
    p.add_argument("--fail-on-findings", action="store_true", help="Exit 2 if any stale records are found")
    p.add_argument("--json", action="store_true", help="JSON output")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return p.parse_args(argv)


def caller_account(sess) -> str:
    return sess.client("sts").get_caller_identity()["Account"]


def print_table(report: AuditReport):
    header = ["ZoneId", "Zone", "Record", "Type", "StaleAddresses"]
    rows = [header]
    for z in report.zones:
        for f in z.findings:
            rows.append([z.zone_id, z.name or "-", f.name, f.type, ",".join(f.addresses)])
    widths = [max(len(str(row[i])) for row in rows) for i in range(len(header))]
    for i, row in enumerate(rows):
        line = "  ".join(str(cell).ljust(widths[j]) for j, cell in enumerate(row))
        if i == 0:
            print(line)
            print("  ".join("-" * w for w in widths))
        else:
            print(line)


def main(argv: Optional[List[str]] = None, sess=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")
    sess = sess or session(args.profile)
    try:
        account_id = args.account_id or caller_account(sess)
    except (BotoCoreError, ClientError) as e:
        print(f"ERROR: cannot resolve account id: {e}", file=sys.stderr)
        return 1

    config = AuditConfig.create(
        account_id=account_id,
        result_token=args.result_token,
        rule_name=args.rule_name,
        profile=args.profile,
        regions=args.regions or None,
        name_filter=args.name_filter,
        zone_workers=args.zone_workers,
        region_workers=args.region_workers,
        include_instance_ips=not args.no_instance_ips,
        strict_regions=not args.partial_inventory,
        dry_run=not args.apply,
    )
    report = run_audit(config, sess=sess)
    exit_code = 2 if (args.fail_on_findings and report.findings) else 0

    if args.json:
        print(json.dumps(report.to_dict(), indent=2, default=str))
        return exit_code

    for zone_id in report.failed_zones:
        print(f"WARN zone {zone_id} was skipped, see log output", file=sys.stderr)
    if not report.findings:
        print(f"No stale A records across {len(report.zones)} zones ({report.inventory_size} owned addresses).")
        return exit_code

    print_table(report)
    flipped = sum(z.flipped for z in report.zones)
    if flipped:
        print(f"\n{flipped} previously reported records are now compliant.")
    if not args.apply:
        print("\nDry-run. Use --apply to submit evaluations to AWS Config.")
    return exit_code


def run():
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    run()
