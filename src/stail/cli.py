import asyncio
import logging
import time
from datetime import timedelta

import click
from botocore.exceptions import BotoCoreError, ClientError
from rich.console import Console
from rich.logging import RichHandler

from stail.api.tail import tail
from stail.core.config import TailConfig
from stail.core.errors import TailError
from stail.orchestration.utils import parse_iso_duration

# records go to stdout; logs and the summary go to stderr
console = Console(stderr=True)

EXIT_INTERRUPTED = 130


def _iso_duration(ctx: click.Context, param: click.Parameter, value: str | None) -> timedelta | None:
    if value is None:
        return None
    try:
        duration = parse_iso_duration(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e
    if duration < timedelta(0):
        raise click.BadParameter("must not be negative")
    return duration


def configure_logging(verbose: bool) -> None:
    """Send the package's logs to stderr through rich."""
    logger = logging.getLogger("stail")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(console=console, show_path=False, log_time_format="[%X]"))
    for noisy in ("botocore", "boto3", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--region", default="us-west-2", show_default=True, help="AWS region to find the stream in")
@click.option("--stream", required=True, help="Kinesis stream name to tail")
@click.option("--role", default=None, help="Role ARN to be assumed to connect to Kinesis")
@click.option("--profile", default=None, help="AWS profile to use for credentials")
@click.option(
    "--duration",
    callback=_iso_duration,
    default=None,
    help="How long the stream should be tailed, ISO-8601 (eg: PT15M is 15mins)",
)
@click.option(
    "--start",
    callback=_iso_duration,
    default=None,
    help="Time to start fetching records from, relative to now (eg: PT15M is 15mins ago)",
)
@click.option("--json", "json_output", is_flag=True, help="Reformat JSON payloads (single payload per line)")
@click.option(
    "--global-cooldown/--shard-cooldown",
    default=False,
    show_default=True,
    help="On a throughput error, pause every shard instead of only the throttled one",
)
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
@click.pass_context
def cli(
    ctx: click.Context,
    region: str,
    stream: str,
    role: str | None,
    profile: str | None,
    duration: timedelta | None,
    start: timedelta | None,
    json_output: bool,
    global_cooldown: bool,
    verbose: bool,
) -> None:
    """stail: tail a Kinesis stream to stdout."""
    configure_logging(verbose)

    config = TailConfig(
        stream=stream,
        region=region,
        role=role,
        profile=profile,
        duration=duration,
        start=start,
        json_output=json_output,
        cooldown_scope="global" if global_cooldown else "shard",
    )

    t0 = time.time()
    try:
        output = asyncio.run(tail(config=config))
    except KeyboardInterrupt:
        console.print("[yellow]interrupted[/]")
        ctx.exit(EXIT_INTERRUPTED)
    except (TailError, BotoCoreError, ClientError) as e:
        raise click.ClickException(str(e)) from e

    elapsed = time.time() - t0
    stats = output.stats
    console.print(f"[bold]done[/]: {stats.records:,} records • {stats.bytes:,} bytes • {elapsed:.2f}s")
    console.print(
        f"[bold]summary[/]: "
        f"shards={output.shards_discovered}  "
        f"cycles={stats.cycles}  "
        f"pulls={stats.pulls}  "
        f"[yellow]throttled[/]={stats.throttled}  "
        f"[yellow]expired[/]={stats.expired}  "
        f"[red]failed[/]={stats.pull_failures + stats.cursor_failures}  "
        f"(closed={stats.shards_closed}, adopted={stats.shards_adopted})"
    )
    if output.interrupted:
        ctx.exit(EXIT_INTERRUPTED)


def main() -> None:
    cli(prog_name="stail")


if __name__ == "__main__":
    main()
