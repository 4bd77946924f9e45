import sys
import logging
import argparse
from pathlib import Path
from typing import BinaryIO, NamedTuple, Optional, Union

from tqdm import tqdm

from atomic_rewrite import AtomicRewrite, DedupeError, OpenError, WriteError
from line_hash_set import (
    DEFAULT_CAPACITY,
    MAX_CAPACITY,
    SATURATION_OVERWRITE,
    SATURATION_POLICIES,
    LineHashSet,
    fingerprint,
)
from output_batch import BATCH_SIZE, OutputBatch

DEFAULT_PATH = "data.txt"
# C-locale isspace(): space, \t, \n, \v, \f, \r
TRAILING_WHITESPACE = b" \t\n\v\f\r"


class DedupeStats(NamedTuple):
    lines_read: int = 0
    lines_written: int = 0
    duplicates: int = 0
    blank_lines: int = 0
    bytes_written: int = 0


def strip_line(raw: bytes) -> bytes:
    """Drops trailing whitespace, including the newline and any carriage return."""
    return raw.rstrip(TRAILING_WHITESPACE)


def dedupe_stream(infile: BinaryIO, outfile: BinaryIO, seen: Optional[LineHashSet] = None,
                  batch_size: int = BATCH_SIZE, progress: Optional[tqdm] = None) -> DedupeStats:
    """
    Copies the first occurrence of every line from infile to outfile.

    Lines are stripped of trailing whitespace, blank lines are dropped and the
    survivors are joined with '\\n' (no trailing newline). Duplicates are
    detected by fingerprint, so two lines with the same first 8 bytes count
    as the same line.
    """
    if seen is None:
        seen = LineHashSet(DEFAULT_CAPACITY)
    batch = OutputBatch(outfile, batch_size)
    lines_read = lines_written = duplicates = blank_lines = 0

    for raw in infile:
        lines_read += 1
        if progress is not None:
            progress.update(len(raw))

        line = strip_line(raw)
        if not line:
            blank_lines += 1
            continue
        if not seen.insert(fingerprint(line)):
            duplicates += 1
            continue

        batch.append(line)
        lines_written += 1

    batch.flush()
    return DedupeStats(lines_read, lines_written, duplicates, blank_lines, batch.bytes_written)


def dedupe_file(path: Union[str, Path], capacity_hint: int = DEFAULT_CAPACITY,
                saturation: str = SATURATION_OVERWRITE, batch_size: int = BATCH_SIZE,
                cleanup_on_failure: bool = False, show_progress: bool = False) -> DedupeStats:
    """
    Removes duplicate lines from a text file in place, keeping first occurrences.

    The new content is built in a sibling temp file which then replaces the
    original in one rename, so readers see either the old or the new file.
    A missing path, a directory or an empty file is left alone.

    Raises OpenError, WriteError or CommitError; the original file is
    unchanged whenever one of them is raised.
    """
    path = Path(path)
    try:
        if not path.exists() or path.is_dir():
            logging.debug(f"Nothing to deduplicate: {path} is missing or a directory")
            return DedupeStats()
        file_size = path.stat().st_size
    except OSError as e:
        raise OpenError(f"Cannot inspect {path}: {e}", path) from e
    if file_size == 0:
        logging.debug(f"Nothing to deduplicate: {path} is empty")
        return DedupeStats()

    # Validate settings before anything touches the filesystem.
    seen = LineHashSet(capacity_hint, saturation)
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")

    logging.info(f"Deduplicating {path}...")
    try:
        infile = open(path, 'rb')
    except OSError as e:
        raise OpenError(f"Cannot open {path} for reading: {e}", path) from e

    with infile, AtomicRewrite(path, cleanup_on_failure=cleanup_on_failure) as rewrite:
        with tqdm(total=file_size, desc=path.name, unit="B", unit_scale=True, disable=not show_progress) as progress:
            try:
                stats = dedupe_stream(infile, rewrite.file, seen, batch_size, progress)
            except OSError as e:
                raise WriteError(f"I/O error while deduplicating {path}: {e}", path) from e
        infile.close() # Release the source before it gets replaced
        rewrite.commit()

    logging.info(f"Finished deduplicating {path}: {stats.lines_read} lines read, "
                 f"{stats.lines_written} unique lines kept, "
                 f"removed {stats.duplicates} duplicate and {stats.blank_lines} blank lines.")
    return stats


def atomic_dedupe(path: Union[str, Path], **kwargs) -> bool:
    """Runs dedupe_file and reports the outcome as True/False. Failures are logged."""
    try:
        dedupe_file(path, **kwargs)
    except DedupeError as e:
        logging.error(f"Error during deduplication of {path}: {e}")
        return False
    return True


# --- Logging Setup ---
def setup_logging(error_log_path: Optional[Path] = None, verbose: bool = False):
    """Configures console logging to stderr and, optionally, WARNING/ERROR to a log file."""
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    # Remove existing handlers to avoid duplicates if main() runs more than once in a process
    if logger.hasHandlers():
        logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
    logger.addHandler(console_handler)

    if error_log_path is not None:
        error_handler = logging.FileHandler(error_log_path, mode='w', encoding='utf-8')
        error_handler.setLevel(logging.WARNING) # Catch WARNING and above
        error_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'))
        logger.addHandler(error_handler)


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return number


def capacity_int(value: str) -> int:
    number = positive_int(value)
    if number > MAX_CAPACITY:
        raise argparse.ArgumentTypeError(f"capacity must be at most {MAX_CAPACITY}, got {value}")
    return number


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Remove duplicate lines from a text file in place, keeping the first occurrence of each line.")
    parser.add_argument("path", nargs="?", default=DEFAULT_PATH, help=f"File to deduplicate (default: {DEFAULT_PATH})")
    parser.add_argument("--capacity", type=capacity_int, default=DEFAULT_CAPACITY, help=f"Slot count hint for the duplicate-detection table (default: {DEFAULT_CAPACITY})")
    parser.add_argument("--batch-size", type=positive_int, default=BATCH_SIZE, help=f"Output batch size in bytes (default: {BATCH_SIZE})")
    parser.add_argument("--saturation", choices=SATURATION_POLICIES, default=SATURATION_OVERWRITE, help="What to do when the table fills up: overwrite old entries or grow the table (default: overwrite)")
    parser.add_argument("--cleanup-temp", action="store_true", help="Delete the temporary file if the rewrite fails instead of leaving it for inspection.")
    parser.add_argument("--progress", action="store_true", help="Show a progress bar.")
    parser.add_argument("--error-log", type=Path, default=None, help="Optional file that receives warnings and errors.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args(argv)

    setup_logging(args.error_log, args.verbose)

    ok = atomic_dedupe(
        args.path,
        capacity_hint=args.capacity,
        saturation=args.saturation,
        batch_size=args.batch_size,
        cleanup_on_failure=args.cleanup_temp,
        show_progress=args.progress,
    )
    if not ok:
        print("Failed to dedupe", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
