"""CLI utility to run periodic settlement consistency checks."""

from __future__ import annotations

import argparse
import logging
from typing import Optional

from ..database import session_scope
from ..services.settlement_consistency import SettlementConsistencyService

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Checks that every settlement record still matches the orders it "
            "settled. Suitable for cron."
        )
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log each finding instead of only the counts.",
    )
    parser.add_argument(
        "--fail-on-findings",
        action="store_true",
        help="Exit with status 1 when any inconsistency is found.",
    )
    return parser.parse_args(argv)


def _log_findings(label: str, items: list) -> None:
    if not items:
        LOGGER.info("%s: none", label)
        return
    LOGGER.warning("%s: %s found", label, len(items))
    for item in items:
        LOGGER.debug("%s detail: %s", label, item)


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)

    with session_scope() as db:
        snapshot = SettlementConsistencyService.check(db)

    LOGGER.info("Checked %s settlement records", snapshot.checked_records)
    _log_findings("Records whose totals differ from their orders", snapshot.mismatched_records)
    _log_findings("Settled orders without a record", snapshot.settled_orders_without_record)
    _log_findings("Records without orders", snapshot.records_without_orders)

    LOGGER.info("Settlement consistency check finished")
    if args.fail_on_findings and not snapshot.is_consistent:
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
