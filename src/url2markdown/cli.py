"""Command-line interface for url2markdown."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Optional

import yaml
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from . import __version__
from .core.converter import Url2Markdown
from .exceptions import Url2MarkdownError
from .logging_config import level_for, setup_logging
from .models.config import BatchConfig, ConversionOptions
from .models.events import ConversionEvent, EventType
from .models.result import ConversionResult, ItemResult


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="url2markdown",
        description="Extract the readable article from a web page and convert it to Markdown",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Print an article as Markdown
  url2markdown https://example.com/post

  # Plain text links, images as [Image: alt], YAML frontmatter
  url2markdown https://example.com/post --no-links --images altText --frontmatter

  # Several URLs as JSON, recording failures instead of stopping
  url2markdown https://example.com/a https://example.com/b --continue-on-fail

  # URLs and options from a YAML file
  url2markdown --config batch.yaml --output results.json
        """,
    )

    parser.add_argument(
        "urls",
        nargs="*",
        metavar="URL",
        help="URL(s) of the page(s) to convert",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        metavar="FILE",
        help="YAML batch configuration (urls, options, continue_on_fail)",
    )

    # Conversion options; None means "use the configured default"
    conversion_group = parser.add_argument_group("conversion options")
    conversion_group.add_argument(
        "--timeout",
        "-t",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Fetch timeout in seconds (default: 30)",
    )
    conversion_group.add_argument(
        "--no-links",
        action="store_const",
        const=False,
        dest="include_links",
        default=None,
        help="Render links as plain text",
    )
    conversion_group.add_argument(
        "--images",
        choices=["include", "altText", "remove"],
        default=None,
        dest="image_handling",
        help="How to render images (default: include)",
    )
    conversion_group.add_argument(
        "--heading-style",
        choices=["atx", "setext"],
        default=None,
        help="Heading syntax (default: atx)",
    )
    conversion_group.add_argument(
        "--code-block-style",
        choices=["fenced", "indented"],
        default=None,
        help="Code block syntax (default: fenced)",
    )
    conversion_group.add_argument(
        "--frontmatter",
        action="store_const",
        const=True,
        dest="include_frontmatter",
        default=None,
        help="Prepend YAML frontmatter with article metadata",
    )

    # Network settings
    network_group = parser.add_argument_group("network settings")
    network_group.add_argument(
        "--proxy",
        type=str,
        metavar="URL",
        help="Proxy URL",
    )
    network_group.add_argument(
        "--user-agent",
        type=str,
        help="Custom User-Agent string",
    )

    # Output control
    output_group = parser.add_argument_group("output control")
    output_group.add_argument(
        "--continue-on-fail",
        action="store_true",
        help="Record per-URL errors and keep going",
    )
    output_group.add_argument(
        "--json",
        action="store_true",
        help="Print JSON result records instead of Markdown",
    )
    output_group.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        metavar="FILE",
        help="Write output to FILE instead of stdout",
    )
    output_group.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Verbose output",
    )
    output_group.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress status output",
    )

    return parser


OPTION_ARGS = (
    "timeout",
    "include_links",
    "image_handling",
    "heading_style",
    "code_block_style",
    "include_frontmatter",
)


def build_batch(args: argparse.Namespace) -> BatchConfig:
    """Merge the optional YAML config with command-line URLs and flags."""
    batch = BatchConfig.from_yaml_file(args.config) if args.config else BatchConfig()

    overrides: dict[str, Any] = {
        name: getattr(args, name) for name in OPTION_ARGS if getattr(args, name) is not None
    }
    options = batch.options.model_dump(exclude_none=True)
    if "image_handling" in overrides:
        # An explicit --images wins over a legacy includeImages in the file
        options.pop("include_images", None)
    options.update(overrides)

    return batch.model_copy(
        update={
            "urls": batch.urls + list(args.urls),
            "options": ConversionOptions.model_validate(options),
            "continue_on_fail": batch.continue_on_fail or args.continue_on_fail,
        }
    )


def render_output(results: list[ItemResult], as_json: bool) -> str:
    """Markdown for a single successful result, JSON records otherwise."""
    if not as_json and len(results) == 1 and isinstance(results[0], ConversionResult):
        return results[0].markdown + "\n"

    records = [result.to_dict(verbose=True) if result.is_error else result.to_dict() for result in results]
    payload: Any = records[0] if len(records) == 1 else records
    return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"


def run_converter(args: argparse.Namespace) -> int:
    """Run the converter with given arguments."""
    console = Console(stderr=True)

    if not args.urls and not args.config:
        console.print("[red]Error:[/red] Please provide a URL to convert")
        return 1

    try:
        batch = build_batch(args)
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        return 1

    setup_logging(level_for(args.verbose, args.quiet, batch.log_level), log_file=batch.log_file)

    # Multiple URLs always produce JSON records
    as_json = args.json or len(batch.urls) > 1

    async def run() -> int:
        async with Url2Markdown(user_agent=args.user_agent, proxy=args.proxy) as converter:
            if args.quiet:
                results = await converter.run(batch.requests(), continue_on_fail=batch.continue_on_fail)
            else:
                with Progress(
                    SpinnerColumn(),
                    TextColumn("[progress.description]{task.description}"),
                    console=console,
                    transient=True,
                ) as progress:
                    task = progress.add_task("Starting...", total=None)

                    def on_event(event: ConversionEvent) -> None:
                        if event.type == EventType.FETCH_STARTED:
                            progress.update(task, description=f"[cyan]Fetching {event.url}")
                        elif event.type == EventType.ARTICLE_EXTRACTED:
                            progress.update(task, description=f"[cyan]Converting {event.url}")
                        elif event.type == EventType.FAILED:
                            console.print(f"[red]Failed:[/red] {event.url} - {event.error}")

                    results = await converter.run(
                        batch.requests(),
                        continue_on_fail=batch.continue_on_fail,
                        emit=on_event,
                    )

            output = render_output(results, as_json)
            if args.output:
                args.output.write_text(output, encoding="utf-8")
            else:
                sys.stdout.write(output)

            stats = converter.stats
            if not args.quiet and (args.output or as_json):
                console.print(f"[bold]Done:[/bold] {stats.summary()}")
            return 0 if stats.all_converted else 1

    try:
        return asyncio.run(run())
    except Url2MarkdownError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        if args.verbose:
            console.print_exception()
        return 1


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    return run_converter(args)


if __name__ == "__main__":
    sys.exit(main())
