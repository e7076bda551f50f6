"""CLI command for concatenating files through optional gzip stages."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .config import Config, ConfigLoader
from .errors import ConfigurationError
from .logging_config import LogContext, setup_logging
from .pipeline import Stage, pipe_async
from .stages import FileSink, FileSource, GzipCompress, GzipDecompress

APP_NAME = "pipeio"


def progress_callback(logger: logging.Logger, current: int, total: int, name: str) -> None:
    """Log concatenation progress.

    Args:
        logger: Logger instance
        current: Number of sources written so far (1-based)
        total: Total number of sources
        name: Name of the source just written
    """
    percent = (current / total) * 100 if total > 0 else 0
    logger.info(f"Piped source {current}/{total} ({percent:.1f}%): {name}")


def build_stages(
    source: Path,
    sink: FileSink,
    config: Config,
    transform: Optional[str] = None,
) -> List[Stage]:
    """Build ``[file, (gzip|gunzip)?, sink]`` for one source."""
    stages: List[Stage] = [FileSource(source, chunk_size=config.pipe.chunk_size)]
    if transform == "gzip":
        stages.append(GzipCompress(level=config.pipe.compression_level))
    elif transform == "gunzip":
        stages.append(GzipDecompress())
    stages.append(sink)
    return stages


async def concatenate(
    sources: Sequence[Path],
    output: Path,
    config: Config,
    transform: Optional[str] = None,
    append: bool = False,
    progress: Optional[Callable[[int, int, str], None]] = None,
) -> None:
    """Pipe every source into one output file, in order.

    Each source gets its own pipeline; all but the last leave the output
    open so the next one can continue writing.
    """
    sink = FileSink(output, append=append, high_water_mark=config.pipe.high_water_mark)
    total = len(sources)

    for i, source in enumerate(sources, start=1):
        stages = build_stages(source, sink, config, transform)
        await pipe_async(stages, {"end": i == total})
        if progress:
            progress(i, total, source.name)


def pipe_command(
    config: Config,
    sources: Sequence[Path],
    output: Path,
    transform: Optional[str] = None,
    append: bool = False,
) -> int:
    """Concatenate ``sources`` into ``output``.

    Returns:
        Exit code (0 for success)
    """
    logger_name = __package__ or __name__
    logger = logging.getLogger(logger_name)

    with LogContext(logger, output=str(output), transform=transform or "none"):
        logger.info(f"Writing {len(sources)} source(s) to {output}")
        try:
            asyncio.run(
                concatenate(
                    sources,
                    output,
                    config,
                    transform=transform,
                    append=append,
                    progress=lambda c, t, n: progress_callback(logger, c, t, n),
                )
            )
        except Exception as e:
            logger.error(f"Pipe failed: {e}", exc_info=logger.isEnabledFor(logging.DEBUG))
            return 1

    logger.info(f"Pipe complete: {output}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the pipeio command."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Concatenate files into one output, optionally through gzip"
    )
    parser.add_argument(
        "sources",
        type=Path,
        nargs="+",
        help="Files to read, in order"
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        required=True,
        help="File to write"
    )
    transform = parser.add_mutually_exclusive_group()
    transform.add_argument(
        "--gzip",
        dest="transform",
        action="store_const",
        const="gzip",
        help="Compress every source (one gzip member per source)"
    )
    transform.add_argument(
        "--gunzip",
        dest="transform",
        action="store_const",
        const="gunzip",
        help="Decompress every source"
    )
    parser.add_argument(
        "--append",
        action="store_true",
        help="Append to the output instead of truncating it"
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config file (merged over the defaults)"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides config)"
    )

    args = parser.parse_args(argv)

    try:
        config = ConfigLoader(app_name=APP_NAME).load(config_path=args.config)
    except ConfigurationError as e:
        setup_logging()
        logging.getLogger(__package__ or __name__).error(str(e))
        return 2

    setup_logging(
        level=args.log_level or config.logging.level,
        format=config.logging.format,
        log_file=Path(config.logging.file) if config.logging.file else None,
        max_file_size_mb=config.logging.max_file_size_mb,
        backup_count=config.logging.backup_count,
    )

    return pipe_command(
        config=config,
        sources=args.sources,
        output=args.output,
        transform=args.transform,
        append=args.append,
    )


if __name__ == "__main__":
    sys.exit(main())
