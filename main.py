"""
Sheet Grader: Batch evaluation of photographed answer sheets

Usage:
  main.py [--config=PATH]
  main.py export-record <record> [--config=PATH]
  main.py (-h | --help)

Options:
  --config=PATH  Path to YAML configuration file [default: sheet_grader.yml].
  -h --help      Show this screen.
"""

import asyncio
import logging
import os
import signal
import sys
import webbrowser
from pathlib import Path

from docopt import docopt

from sheetgrader.aggregator import aggregate
from sheetgrader.config import IMAGE_EXTENSIONS
from sheetgrader.config_loader import GraderConfig, load_config
from sheetgrader.dashboard import create_dashboard, items_from_records
from sheetgrader.errors import ConfigurationError, ExportError
from sheetgrader.item_store import BatchItemStore
from sheetgrader.models import BatchItem
from sheetgrader.oracle_client import OpenAIOracleClient
from sheetgrader.persistence import JsonRecordStore, latest_records, load_record, load_records
from sheetgrader.processor import CancelToken, SequentialBatchProcessor
from sheetgrader.report_builder import export_batch_report, export_evaluation_report


def find_images(images_dir: Path) -> list[Path]:
    """
    Find all answer-sheet images in a directory.

    Args:
        images_dir: Directory containing the uploaded sheets.

    Returns:
        Sorted list of image paths.
    """
    return [
        path
        for path in sorted(images_dir.iterdir())
        if path.is_file() and not path.name.startswith(".") and path.suffix.lower() in IMAGE_EXTENSIONS
    ]


def print_batch_summary(items: tuple[BatchItem, ...]) -> None:
    """
    Print a summary of the batch to console.

    Args:
        items: Batch items after processing.
    """
    stats = aggregate(items)
    print(f"\n  {'='*50}")
    print(f"  Sheets: {len(items)}")
    if stats is None:
        print("  No sheets were evaluated successfully.")
    else:
        print(f"  Average Score: {stats.avg_score:.1f}/{stats.total_questions} ({stats.avg_accuracy:.1f}%)")
        print(f"  Highest: {stats.highest_score.score:g} ({stats.highest_score.roll_number or stats.highest_score.file_name})")
        print(f"  Lowest: {stats.lowest_score.score:g} ({stats.lowest_score.roll_number or stats.lowest_score.file_name})")
        print(f"  Pass Rate: {stats.pass_rate:.1f}%")
    print(f"  {'='*50}")

    for item in items:
        if item.status.value == "completed":
            note = f"  [!] {item.warning}" if item.warning else ""
            print(f"  [+] {item.file_name}: {item.score:g}/{item.total_questions} ({item.accuracy:.1f}%){note}")
        elif item.status.value == "error":
            print(f"  [-] {item.file_name}: {item.error}")
        else:
            print(f"  [ ] {item.file_name}: {item.status.value}")
    print()


def run_batch_pipeline(config: GraderConfig) -> tuple[BatchItem, ...]:
    """
    Run the complete batch pipeline.

    Args:
        config: Loaded configuration.

    Returns:
        Batch items after processing.

    Raises:
        ConfigurationError: If the answer key or images are missing.
    """
    answer_key = config.answer_key_config()
    print(f"Answer key: {answer_key.total_questions} questions")

    if not config.images_dir or not config.images_dir.exists():
        raise ConfigurationError(f"Images directory not found: {config.images_dir}")

    print(f"\nScanning {config.images_dir} for answer sheets...")
    images = find_images(config.images_dir)
    print(f"Found {len(images)} answer sheets")
    if not images:
        print("No answer sheets found!")
        return ()

    if config.expected_count and len(images) < config.expected_count:
        print(f"Warning: expected {config.expected_count} sheets, {config.expected_count - len(images)} missing")

    store = BatchItemStore(expected_count=config.expected_count)
    store.seed(path.name for path in images)
    restored = store.restore(load_records(config.records_dir), answer_key.answers)
    if restored:
        print(f"Resuming: {restored} sheets already evaluated in an earlier run")

    start_index = store.first_pending_index()
    if start_index is None:
        start_index = len(store)

    oracle = OpenAIOracleClient(model=config.oracle_model, base_url=config.oracle_base_url)
    processor = SequentialBatchProcessor(
        oracle=oracle,
        persistence=JsonRecordStore(config.records_dir),
        max_retries=config.max_retries,
        retry_backoff_seconds=config.retry_backoff_seconds,
        on_progress=lambda index: print(f"  Progress: {min(index, len(store))}/{store.progress().total_target}"),
    )

    cancel = CancelToken()

    async def _run():
        # Ctrl+C stops after the sheet currently being evaluated
        try:
            asyncio.get_running_loop().add_signal_handler(signal.SIGINT, cancel.cancel)
        except NotImplementedError:
            pass
        return await processor.process(store, images, answer_key, start_index=start_index, cancel=cancel)

    summary = asyncio.run(_run())
    if summary.cancelled:
        print(f"\nBatch interrupted at sheet {summary.current_index + 1}; rerun to resume the remaining sheets.")

    print(f"\nProcessed {summary.total_attempted} sheets: {summary.success_count} succeeded, {summary.error_count} failed")
    print_batch_summary(store.items)

    try:
        records = latest_records(load_records(config.records_dir), [item.file_name for item in store.items])
        report_path = export_batch_report(
            store.items,
            config.export,
            config.reports_dir,
            answer_key=list(answer_key.answers),
            records=records,
        )
        print(f"Batch report: {report_path}")
    except ExportError as e:
        print(f"Export skipped: {e}")

    return store.items


def launch_dashboard(items, port: int, verbose: bool) -> None:
    # Only open browser on the main process, not the reloader
    if not os.environ.get("WERKZEUG_RUN_MAIN"):
        url = f"http://127.0.0.1:{port}"
        print(f"Opening {url} in browser...")
        webbrowser.open(url)

    app = create_dashboard(items)
    app.run(debug=verbose, port=port)


def main() -> int:
    """
    Main CLI entrypoint.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    arguments = docopt(__doc__)
    config_path = Path(arguments["--config"])

    if not config_path.exists():
        print(f"Error: Configuration file not found at {config_path}")
        return 1

    try:
        config = load_config(config_path)
        print(f"Loaded configuration from {config_path}")
    except Exception as e:
        print(f"Error loading config: {e}")
        return 1

    logging.basicConfig(
        level=logging.DEBUG if config.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if arguments["export-record"]:
        try:
            record = load_record(Path(arguments["<record>"]))
            report_path = export_evaluation_report(record, config.export, config.reports_dir)
        except (OSError, ValueError, ExportError) as e:
            print(f"Error exporting record: {e}")
            return 1
        print(f"Evaluation report: {report_path}")
        return 0

    # Check for only_dashboard mode
    if config.only_dashboard:
        records = load_records(config.records_dir)
        if not records:
            print(f"No evaluation records found in {config.records_dir}")
            return 1
        try:
            launch_dashboard(items_from_records(records), config.dashboard_port, config.verbose)
            return 0
        except Exception as e:
            print(f"Error launching dashboard: {e}")
            return 1

    try:
        items = run_batch_pipeline(config)
    except ConfigurationError as e:
        print(f"Error: {e}")
        return 1
    except ValueError as e:
        # Missing API key
        print(f"Error: {e}")
        return 1
    except Exception as e:
        print(f"\nError: {e}")
        if config.verbose:
            import traceback
            traceback.print_exc()
        return 1

    if items:
        print("\nLaunching Dashboard...")
        print("Press Ctrl+C to stop the server.")
        try:
            launch_dashboard(items, config.dashboard_port, config.verbose)
        except Exception as e:
            print(f"Error launching dashboard: {e}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
