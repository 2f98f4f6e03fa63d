"""CLI handling for subcoord.

This module provides a command-line simulator for the subscription
coordinator. It drives retry loops against a scripted in-memory
transport, printing every subscribe call the coordinator makes, which
is useful for checking backoff and limit handling by eye.

Usage:
    subcoord --entity ID [--entity ID ...] [--failures N | --limit-reason R]
             [--instance N] [--initial-backoff S] [--max-backoff S]
             [--run-for S] [--verbose]
"""

import click

from subcoord.coordinator_constants import INITIAL_BACKOFF, MAX_BACKOFF
from subcoord.errors import RateLimitReason
from subcoord.main_logging import configure_logging
from subcoord.main_options import ExclusiveOption


@click.command()
@click.option(
    "--entity",
    "entities",
    multiple=True,
    required=True,
    help="Entity to subscribe (repeatable)",
)
@click.option(
    "--instance",
    default=0,
    show_default=True,
    type=click.IntRange(min=0),
    help="Instance index to subscribe for each entity",
)
@click.option(
    "--failures",
    default=0,
    type=click.IntRange(min=0),
    cls=ExclusiveOption,
    exclusive_with=["limit_reason"],
    help="Generic failures before each subscribe succeeds",
)
@click.option(
    "--limit-reason",
    type=click.Choice([reason.value for reason in RateLimitReason]),
    cls=ExclusiveOption,
    exclusive_with=["failures"],
    help="Rate limit the first subscribe with this reason",
)
@click.option(
    "--initial-backoff",
    default=INITIAL_BACKOFF,
    show_default=True,
    type=click.FloatRange(min=0, min_open=True),
    help="First delay between attempts in seconds",
)
@click.option(
    "--max-backoff",
    default=MAX_BACKOFF,
    show_default=True,
    type=click.FloatRange(min=0, min_open=True),
    help="Maximum delay between attempts in seconds",
)
@click.option(
    "--run-for",
    default=10.0,
    show_default=True,
    type=click.FloatRange(min=0),
    help="Seconds to run before cancelling everything",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Enable DEBUG-level logging",
)
def main(
    entities: tuple[str, ...],
    instance: int,
    failures: int,
    limit_reason: str | None,
    initial_backoff: float,
    max_backoff: float,
    run_for: float,
    verbose: bool,
) -> None:
    """Simulate subscription retry loops against a scripted transport."""
    if max_backoff < initial_backoff:
        raise click.UsageError("--max-backoff must not be below --initial-backoff")

    configure_logging(verbose)

    _run_simulation(
        list(entities), instance, failures, limit_reason,
        initial_backoff, max_backoff, run_for,
    )


def _run_simulation(
    entities: list[str],
    instance: int,
    failures: int,
    limit_reason: str | None,
    initial_backoff: float,
    max_backoff: float,
    run_for: float,
) -> None:
    """Run the simulation and print its outcome.

    Args:
        entities: Entities to subscribe.
        instance: Instance index for every entity.
        failures: Generic failures scripted ahead of success.
        limit_reason: Rate-limit reason for the first attempt, or None.
        initial_backoff: First delay between attempts.
        max_backoff: Cap on the delay between attempts.
        run_for: Seconds before cancelling everything.
    """
    import asyncio

    from subcoord.simulation import simulate

    result = asyncio.run(
        simulate(
            entities,
            instance_index=instance,
            failures=failures,
            limit_reason=limit_reason,
            initial_backoff=initial_backoff,
            max_backoff=max_backoff,
            run_for=run_for,
        )
    )
    for key in result.calls:
        click.echo(f"subscribe {key}")
    for connection_index, metadata in result.locks:
        click.echo(f"locked connection {connection_index}: {metadata['reason']}")
    retrying = ", ".join(str(key) for key in result.retrying) or "none"
    click.echo(f"retrying at stop: {retrying}")
