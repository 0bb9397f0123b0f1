"""WealthAggregator CLI -- the `wealth` command.

Usage:
    wealth xirr                      Overall and rolling XIRR of stored holdings
    wealth risk                      Holding verdicts + portfolio verdict
    wealth risk --scenario SILVER_CRASH
    wealth risk --vix 34
    wealth backup export             Save a full JSON snapshot
    wealth backup restore <file>     Wipe and reload everything from a snapshot
    wealth export-holdings           Save holdings as CSV
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from analytics.xirr import portfolio_xirr, rolling_xirr
from backup.csv_export import holdings_filename, holdings_to_csv
from backup.delivery import FileDelivery
from backup.restore import restore_snapshot, tables_without_data
from backup.snapshot import backup_filename, build_snapshot, parse_snapshot
from cli.prompts import QuestionarySavePicker, confirm_restore
from core.config import AppConfig, load_config
from core.data.settings import SettingsStore
from core.data.store import Store
from core.errors import DeliveryError, InvalidSnapshotFormat, RestoreTransactionError
from core.models.holdings import portfolio_total
from core.models.risk import MarketScenario
from risk.context import MarketContextState
from risk.engine import RiskEngine

NO_HISTORY = "not enough history"


def setup_logging(level: str) -> None:
    """Configure logging for the application."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _open(args: argparse.Namespace) -> tuple[AppConfig, Store, SettingsStore]:
    if args.home:
        os.environ["WEALTH_HOME"] = str(Path(args.home).expanduser())
    config = load_config(config_path=args.config)
    setup_logging(args.log_level or config.logging.level)
    return config, Store(config.db_path), SettingsStore(config.settings_path)


def _format_rate(rate: float | None) -> str:
    return NO_HISTORY if rate is None else f"{rate * 100:.2f}%"


def _delivery(config: AppConfig, args: argparse.Namespace) -> FileDelivery:
    picker = None if args.no_prompt else QuestionarySavePicker(config.export_path)
    return FileDelivery(config.export_path, picker=picker)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_xirr(args: argparse.Namespace) -> int:
    _, store, _ = _open(args)
    try:
        holdings = store.list_holdings()
        print(f"  Overall XIRR: {_format_rate(portfolio_xirr(holdings))}")
        print()
        for label, rate in rolling_xirr(holdings).items():
            print(f"  {label:>4}  {_format_rate(rate)}")
    finally:
        store.close()
    return 0


def cmd_risk(args: argparse.Namespace) -> int:
    config, store, _ = _open(args)
    try:
        holdings = store.list_holdings()
    finally:
        store.close()

    state = MarketContextState(config.risk.base_profile(), config.risk.high_volatility_vix)
    if args.vix is not None:
        state.adapt_to_market(args.vix)
    if args.scenario:
        state.set_context(scenario=args.scenario)

    engine = RiskEngine(state)
    context = state.snapshot()
    total = portfolio_total(holdings)

    print(f"  Context: {context.scenario.value}  (vix {context.market.volatility_index:.1f})")
    print()
    for verdict in engine.evaluate_all(holdings, total, context=context):
        print(f"  [{verdict.status.value:<8}] {verdict.name}: {verdict.issue} -> {verdict.action}")

    portfolio = engine.generate_verdict(holdings, total, context=context)
    print()
    print(f"  {portfolio.level.value} ({portfolio.score}/100): {portfolio.title}")
    print(f"  {portfolio.narrative}")
    for step in portfolio.action_plan:
        print(f"    - {step}")
    return 0


def cmd_backup_export(args: argparse.Namespace) -> int:
    config, store, settings = _open(args)
    try:
        document = build_snapshot(
            store,
            settings,
            settings_keys=config.backup.settings_keys,
            app_id=config.backup.app_id,
            version=config.backup.schema_version,
        )
    finally:
        store.close()

    try:
        result = _delivery(config, args).deliver(document.to_json(), backup_filename())
    except DeliveryError as e:
        print(f"  Backup export failed: {e}")
        return 1

    if result.cancelled:
        print("  Export cancelled.")
    else:
        print(f"  Backup saved to {result.path}")
    return 0


def cmd_backup_restore(args: argparse.Namespace) -> int:
    config, store, settings = _open(args)
    path = Path(args.file).expanduser()
    try:
        try:
            document = parse_snapshot(path.read_bytes())
        except OSError as e:
            print(f"  Cannot read {path}: {e}")
            return 1
        except InvalidSnapshotFormat as e:
            print(f"  {e}")
            return 1

        emptied = [name for name in tables_without_data(document, store) if store.count(name)]
        if not args.yes and not confirm_restore(path.name, emptied):
            print("  Restore cancelled. Nothing was changed.")
            return 0

        try:
            report = restore_snapshot(document, store, settings)
        except RestoreTransactionError as e:
            print(f"  Restore failed, original data kept: {e}")
            return 1
    finally:
        store.close()

    print(f"  Restored {report.total_rows} rows into {len(report.rows_restored)} tables.")
    if report.skipped_tables:
        print(f"  Skipped unknown tables: {', '.join(report.skipped_tables)}")
    if report.settings_failed:
        print(f"  Could not restore settings: {', '.join(report.settings_failed)}")
    return 0


def cmd_export_holdings(args: argparse.Namespace) -> int:
    config, store, _ = _open(args)
    try:
        holdings = store.list_holdings()
    finally:
        store.close()

    if not holdings:
        print("  No holdings to export.")
        return 0

    try:
        result = _delivery(config, args).deliver(holdings_to_csv(holdings), holdings_filename())
    except DeliveryError as e:
        print(f"  Holdings export failed: {e}")
        return 1

    if result.cancelled:
        print("  Export cancelled.")
    else:
        print(f"  Holdings saved to {result.path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="wealth",
        description="WealthAggregator -- returns, risk and backups for your holdings",
    )
    parser.add_argument("--home", type=str, default=None, help="Data directory (default: ~/.wealthaggregator)")
    parser.add_argument("--config", "-c", type=str, default=None, help="Path to config.yaml")
    parser.add_argument("--log-level", type=str, default=None, help="Override logging.level")

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("xirr", help="Show overall and rolling XIRR")

    risk_parser = sub.add_parser("risk", help="Run the risk engine")
    risk_parser.add_argument(
        "--scenario",
        choices=[s.value for s in MarketScenario],
        default=None,
        help="Market scenario to evaluate under",
    )
    risk_parser.add_argument("--vix", type=float, default=None, help="Current volatility index")

    backup_parser = sub.add_parser("backup", help="Export or restore a full snapshot")
    backup_sub = backup_parser.add_subparsers(dest="backup_action")
    export_parser = backup_sub.add_parser("export", help="Save a JSON snapshot")
    export_parser.add_argument("--no-prompt", action="store_true", help="Write to the export directory")
    restore_parser = backup_sub.add_parser("restore", help="Restore from a JSON snapshot")
    restore_parser.add_argument("file", type=str, help="Backup file")
    restore_parser.add_argument("--yes", "-y", action="store_true", help="Skip the confirmation prompt")

    holdings_parser = sub.add_parser("export-holdings", help="Save holdings as CSV")
    holdings_parser.add_argument("--no-prompt", action="store_true", help="Write to the export directory")

    return parser


def main() -> None:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "backup":
        handler = {
            "export": cmd_backup_export,
            "restore": cmd_backup_restore,
        }.get(args.backup_action)
    else:
        handler = {
            "xirr": cmd_xirr,
            "risk": cmd_risk,
            "export-holdings": cmd_export_holdings,
        }.get(args.command)

    if handler is None:
        parser.print_help()
        sys.exit(0)

    sys.exit(handler(args))


if __name__ == "__main__":
    main()
