"""Command line entry point for the reconciliation sweeps.

Exit codes: 0 when the sweep completed (whether or not anything was fixed),
1 when the store could not be reached or the sweep could not start,
2 on usage errors.
"""

import argparse
import logging
import sys
from typing import List, Optional, TextIO

from adapters.db.firestore.service_factory import FirestoreServiceFactory
from app_platform.config.config import ConsoleConfig
from application.reconcile.exceptions import SweepSetupError
from application.reconcile.reconcilers import RECONCILERS, get_reconciler, run_reconciler
from application.reconcile.reporting import JsonLinesReporter, TextReporter

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_SETUP_ERROR = 1


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from None
    if parsed < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {parsed}")
    return parsed


def build_parser(reconciler: Optional[str] = None) -> argparse.ArgumentParser:
    """Argument parser; with a fixed reconciler the positional choice is dropped."""

    if reconciler is not None:
        definition = get_reconciler(reconciler)
        parser = argparse.ArgumentParser(description=definition.description)
    else:
        parser = argparse.ArgumentParser(description='Console referential-integrity sweeps')
        parser.add_argument('reconciler', choices=sorted(RECONCILERS), help='Sweep to run')

    parser.add_argument('--dry-run', action='store_true', help='Report what would change without writing')
    parser.add_argument('--format', choices=['text', 'json'], default='text', help='Progress output format')
    parser.add_argument('--workers', type=_positive_int, default=1, help='Parents processed in parallel')
    parser.add_argument('--project', help='GCP project id (defaults to GOOGLE_CLOUD_PROJECT / ADC)')
    parser.add_argument('--emulator-host', help='Firestore emulator host:port')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging and per-parent progress')

    return parser


def main(
    argv: Optional[List[str]] = None,
    *,
    reconciler: Optional[str] = None,
    factory: Optional[FirestoreServiceFactory] = None,
    stdout: Optional[TextIO] = None,
) -> int:
    parser = build_parser(reconciler)
    args = parser.parse_args(argv)
    name = reconciler or args.reconciler

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )

    config = ConsoleConfig.from_env()
    if args.project:
        config.gcp_project_id = args.project
    if args.emulator_host:
        config.firestore_emulator_host = args.emulator_host

    stream = stdout or sys.stdout
    if args.format == 'json':
        reporter = JsonLinesReporter(stream)
    else:
        reporter = TextReporter(stream, verbose=args.verbose)

    if not args.dry_run:
        logger.warning("Apply mode: this sweep will modify the database; use --dry-run to preview")

    try:
        factory = factory or FirestoreServiceFactory(config=config)
        store = factory.get_document_store()
    except Exception as e:
        logger.error(f"Failed to connect to Firestore: {e}")
        return EXIT_SETUP_ERROR

    try:
        summary = run_reconciler(
            get_reconciler(name),
            store,
            config.collections,
            dry_run=args.dry_run,
            reporter=reporter,
            max_workers=args.workers,
        )
    except SweepSetupError as e:
        logger.error(f"Sweep {name} could not start: {e}")
        return EXIT_SETUP_ERROR

    logger.info(f"Sweep {name} completed ({'dry run' if summary.dry_run else 'applied'})")

    return EXIT_OK
