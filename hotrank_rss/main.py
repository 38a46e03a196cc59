"""Command-line entry point: fetch the hot-rank list and write the feed."""

import argparse
import os
import sys
from datetime import UTC, datetime
from pathlib import Path

from .config import Config
from .fetch import FetchError, HotRankFetcher
from .logging_config import (
    create_execution_logger,
    describe,
    setup_structured_logging,
)
from .rss import MAX_ITEMS, build_rss


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="hotrank-rss",
        description="Render the 36Kr hot ranking as an RSS 2.0 feed.",
    )
    parser.add_argument(
        "--out",
        default=None,
        help="output path, relative to the project root (default: rss.xml)",
    )
    # Unrecognised arguments are ignored so scheduler wrappers can pass extras
    args, _ = parser.parse_known_args(argv)
    return args


def write_output(path: Path, document: str) -> int:
    """Write ``document`` to ``path`` as UTF-8 and return the byte count.

    The file is replaced in one step; on failure the previous content,
    if any, is left untouched.
    """
    data = document.encode("utf-8")
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp")
    try:
        tmp_path.write_bytes(data)
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise
    return len(data)


def main(
    argv: list[str] | None = None,
    config: Config | None = None,
    fetcher: HotRankFetcher | None = None,
) -> int:
    """Run one fetch-render-write cycle.

    Args:
        argv: Command-line arguments (defaults to ``sys.argv[1:]``)
        config: Pre-loaded configuration
        fetcher: Pre-built fetcher

    Returns:
        Process exit code
    """
    config = config or Config()
    setup_structured_logging(config.log_level)

    execution_id = f"run_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"
    main_logger = create_execution_logger("main", execution_id)
    main_logger.log_execution_start()

    owns_fetcher = fetcher is None
    try:
        args = parse_args(argv)
        output = config.get_output_config(args.out)
        out_path = output.resolve()

        if fetcher is None:
            fetcher = HotRankFetcher(
                config.get_fetch_config(), execution_id=execution_id
            )

        items = fetcher.fetch_hot_rank()
        document = build_rss(items)
        size = write_output(out_path, document)

        main_logger.log_execution_end(
            success=True,
            out_path=str(out_path),
            items_count=min(len(items), MAX_ITEMS),
            bytes_written=size,
        )
        print(f"Wrote {output.path} ({size} bytes)")
        return 0

    except FetchError as e:
        main_logger.error(
            f"Hot rank fetch failed: {e}", error=str(e), error_payload=e.payload
        )
        main_logger.log_execution_end(success=False, error=str(e))
        print(str(e), file=sys.stderr)
        print(describe(e.payload), file=sys.stderr)
        return 1

    except Exception as e:
        error_msg = f"Critical error: {e}"
        main_logger.error(error_msg, error=str(e), error_type=type(e).__name__)
        main_logger.log_execution_end(success=False, error=error_msg)
        print(str(e) or type(e).__name__, file=sys.stderr)
        return 1

    finally:
        if owns_fetcher and fetcher is not None:
            fetcher.close()
