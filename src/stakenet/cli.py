#!/usr/bin/env python3
"""
StakeNet CLI

Commands:
- Replay a scenario file against a fresh network
- Show the stake-weighted tally of a proposal
- Audit bookkeeping invariants
- Show effective parameters
- Serve the HTTP API
"""

import argparse
import json
import logging
import sys
import time

from stakenet.version import __version__
from stakenet.config import NetworkConfig
from stakenet.core.consensus.engine import normalize_proposal_id
from stakenet.core.errors import StakeNetError
from stakenet.logging_setup import setup_logging
from stakenet.scenario import load_scenario, proposal_id_from_label, replay

logger = logging.getLogger(__name__)


def format_timestamp(ts):
    """Format unix timestamp to readable string."""
    if not ts:
        return "N/A"
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(ts))


def format_state(state):
    """Format proposal state with color codes."""
    colors = {
        'open': '\033[93m',       # Yellow
        'accepted': '\033[92m',   # Green
        'rejected': '\033[91m',   # Red
    }
    reset = '\033[0m'
    return f"{colors.get(state, '')}{state.upper()}{reset}"


def _replay(args):
    scenario = load_scenario(args.scenario)
    report = replay(scenario, keep_going=getattr(args, "keep_going", False))
    for failure in report.failures:
        print(f"❌ Operation #{failure.index} ({failure.op.get('op')}): {failure.error}")
    return report


def cmd_replay(args):
    """Replay a scenario and print a summary."""
    report = _replay(args)
    network = report.network

    if args.json:
        print(json.dumps({
            "applied": report.applied,
            "failures": [f.to_dict() for f in report.failures],
            "stats": network.get_stats(),
            "events": [e.to_dict() for e in network.get_events()],
        }, indent=2, default=str))
        return 0 if report.ok else 1

    print(f"\n{'='*70}")
    print(f"  REPLAY: {args.scenario}")
    print(f"{'='*70}")
    print(f"  Operations applied: {report.applied}")
    print(f"  Failures:           {len(report.failures)}")
    print(f"  Total staked:       {network.total_staked}")
    print(f"  Contract balance:   {network.contract_balance()}")
    print(f"  Threshold:          {network.consensus_threshold}%")
    print()

    print(f"  SUBNETS")
    print(f"  {'-'*60}")
    print(f"  {'ID':<6} {'Name':<20} {'Active':<8} {'Validators':<12} {'Floor':<6}")
    for subnet_id in network.get_all_subnets():
        s = network.get_subnet_info(subnet_id)
        print(f"  {s['subnet_id']:<6} {s['name'][:18]:<20} {str(s['is_active']):<8} "
              f"{s['validator_count']:<12} {s['min_validators']:<6}")
    print()

    print(f"  VALIDATORS")
    print(f"  {'-'*60}")
    print(f"  {'Address':<20} {'Subnet':<8} {'State':<10} {'Stake':>10} {'Delegated':>10}")
    for address in network.validators.roster():
        v = network.get_validator_info(address)
        print(f"  {address[:18]:<20} {v['subnet_id']:<8} {v['state']:<10} "
              f"{v['staked_amount']:>10} {v['delegated_amount']:>10}")
    print()

    if args.events:
        print(f"  EVENTS")
        print(f"  {'-'*60}")
        for event in network.get_events():
            print(f"  {format_timestamp(event.timestamp)}  {event.name:<26} {event.data}")
        print()

    return 0 if report.ok else 1


def cmd_results(args):
    """Replay a scenario and show the tally of one proposal."""
    report = _replay(args)
    network = report.network

    proposal = args.proposal
    try:
        normalize_proposal_id(proposal)
    except StakeNetError:
        proposal = proposal_id_from_label(proposal)

    tally = network.get_proposal_tally(proposal)

    print(f"\n{'='*60}")
    print(f"  VOTING RESULTS: {tally['proposal_id'][:18]}...")
    print(f"{'='*60}")
    print(f"  Status: {format_state(tally['state'])}")
    print()

    total = tally['total_votes']
    print(f"  VOTES ({total} total)")
    print(f"  {'-'*50}")
    if total > 0:
        bar_width = 30
        yes_bar = '█' * (tally['yes_percentage'] * bar_width // 100)
        print(f"  YES: {tally['yes_votes']:4} weight {tally['yes_weight']:>10} "
              f"\033[92m{yes_bar}\033[0m")
        print(f"  NO:  {tally['no_votes']:4} weight {tally['no_weight']:>10}")
    else:
        print(f"  No votes cast yet")
    print()

    print(f"  THRESHOLDS")
    print(f"  {'-'*50}")
    quorum_status = "✅" if tally['quorum_reached'] else "❌"
    print(f"  Quorum:    {tally['total_vote_weight']} of {tally['total_staked']} staked "
          f"{quorum_status}")
    print(f"  Yes share: {tally['yes_percentage']}% (threshold: {network.consensus_threshold}%)")
    if tally['decided_at']:
        print(f"  Decided:   {format_timestamp(tally['decided_at'])}")
    print()

    for vote in network.get_proposal_votes(proposal):
        print(f"  {vote['voter'][:18]:<20} {'YES' if vote['vote'] else 'NO':<4} "
              f"weight={vote['weight']}")

    return 0 if report.ok else 1


def cmd_audit(args):
    """Replay a scenario and check invariants."""
    report = _replay(args)
    problems = report.network.check_invariants()

    if problems:
        print(f"\n❌ {len(problems)} invariant violation(s):")
        for problem in problems:
            print(f"   - {problem}")
        return 1

    print(f"\n✅ Invariants hold after {report.applied} operation(s) "
          f"(total_staked={report.network.total_staked})")
    return 0 if report.ok else 1


def cmd_params(args):
    """Show effective configuration."""
    config = NetworkConfig.from_env()
    print(json.dumps(config.to_dict(), indent=2))
    return 0


def cmd_serve(args):
    """Run the HTTP API."""
    import uvicorn
    from stakenet.api.main import create_app

    config = NetworkConfig.from_env()
    if args.log_level is None or config.log_file:
        setup_logging(args.log_level or config.log_level, config.log_file)
    logger.info(f"Serving StakeNet API on {args.host}:{args.port}")
    uvicorn.run(create_app(config=config), host=args.host, port=args.port,
                log_config=None)
    return 0


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="StakeNet CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Replay a scenario and print subnets/validators
  stakenet replay scenario.json --events

  # Tally a proposal (label or 0x-hex id)
  stakenet results scenario.json upgrade-1

  # Check total_staked and subnet counts
  stakenet audit scenario.json

  # Run the HTTP API
  stakenet serve --port 8000
        """
    )

    parser.add_argument(
        "--version", action="version",
        version=f"StakeNet CLI {__version__}"
    )
    parser.add_argument("--log-level", type=str, default=None,
                        help="DEBUG / INFO / WARNING / ERROR (default: WARNING, STAKENET_LOG_LEVEL for serve)")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    replay_parser = subparsers.add_parser("replay", help="Replay a scenario file")
    replay_parser.add_argument("scenario", type=str, help="Scenario JSON file")
    replay_parser.add_argument("--keep-going", action="store_true",
                               help="Continue after a failing operation")
    replay_parser.add_argument("--events", action="store_true", help="Print the event log")
    replay_parser.add_argument("--json", action="store_true", help="Machine-readable output")

    results_parser = subparsers.add_parser("results", help="Show voting results")
    results_parser.add_argument("scenario", type=str, help="Scenario JSON file")
    results_parser.add_argument("proposal", type=str, help="Proposal label or 0x-hex id")
    results_parser.add_argument("--keep-going", action="store_true")

    audit_parser = subparsers.add_parser("audit", help="Check bookkeeping invariants")
    audit_parser.add_argument("scenario", type=str, help="Scenario JSON file")
    audit_parser.add_argument("--keep-going", action="store_true")

    subparsers.add_parser("params", help="Show effective configuration")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", type=str, default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    level = args.log_level
    if level is None:
        level = "INFO" if args.command == "serve" else "WARNING"
    setup_logging(level)

    commands = {
        'replay': cmd_replay,
        'results': cmd_results,
        'audit': cmd_audit,
        'params': cmd_params,
        'serve': cmd_serve,
    }

    handler = commands.get(args.command)
    try:
        return handler(args)
    except StakeNetError as e:
        print(f"\n❌ Failed: {e}")
        return 1
    except (OSError, json.JSONDecodeError) as e:
        print(f"\n❌ Cannot read scenario: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
