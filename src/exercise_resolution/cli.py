"""CLI interface for the exercise resolution engine."""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path

import click

from exercise_resolution.config import EngineConfig
from exercise_resolution.errors import EngineError
from exercise_resolution.filtering import FilterRequest, filter_exercises
from exercise_resolution.logging import setup_logging
from exercise_resolution.pipeline import ExerciseEngine, build_plan_response


def _engine(ctx: click.Context) -> ExerciseEngine:
    return ctx.obj["engine"]


@click.group()
@click.option(
    "--catalog",
    "catalog_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Catalog JSON file (defaults to EXERCISE_CATALOG_PATH or the packaged seed).",
)
@click.option("--log-level", default="WARNING", show_default=True, help="Log level for stderr output.")
@click.pass_context
def main(ctx: click.Context, catalog_path: Path | None, log_level: str):
    """Exercise name resolution and plan validation."""
    config = EngineConfig.from_env()
    if catalog_path:
        config = dataclasses.replace(config, catalog_path=str(catalog_path))
    setup_logging(config.log_format, getattr(logging, log_level.upper(), logging.WARNING))
    try:
        engine = ExerciseEngine.from_config(config)
    except EngineError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(2)
    ctx.obj = {"engine": engine}


@main.command()
@click.argument("names", nargs=-1, required=True)
@click.option("--premium", is_flag=True, help="Caller is entitled to premium media libraries.")
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON.")
@click.pass_context
def resolve(ctx: click.Context, names: tuple[str, ...], premium: bool, as_json: bool):
    """Resolve exercise names or ids to catalog records with media."""
    engine = _engine(ctx)
    results = asyncio.run(engine.resolver.resolve_many(list(names), premium=premium))

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in results], indent=2))
        return
    for r in results:
        click.echo(f"{r.query.raw} -> {r.display_name} [{r.exercise_id or '-'}]")
        click.echo(f"  tier: {r.tier.value}  confidence: {r.confidence:.2f}")
        click.echo(f"  media: {r.media_url} ({r.media_provider})")


@main.command()
@click.argument("plan_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--filtered-ids", help="Comma-separated ids eligible for the plan (default: whole catalog).")
@click.option(
    "--filtered-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON list of eligible ids.",
)
@click.option("--premium", is_flag=True, help="Caller is entitled to premium media libraries.")
@click.pass_context
def validate(
    ctx: click.Context,
    plan_file: Path,
    filtered_ids: str | None,
    filtered_file: Path | None,
    premium: bool,
):
    """Validate a plan file and print the response envelope."""
    if filtered_ids is not None and filtered_file is not None:
        click.echo("Error: Specify either --filtered-ids or --filtered-file, not both.", err=True)
        sys.exit(1)

    engine = _engine(ctx)
    if filtered_file is not None:
        with filtered_file.open() as f:
            eligible = [str(i) for i in json.load(f)]
    elif filtered_ids is not None:
        eligible = [i.strip() for i in filtered_ids.split(",") if i.strip()]
    else:
        eligible = sorted(engine.catalog.ids)

    with plan_file.open() as f:
        plan = json.load(f)

    response = asyncio.run(build_plan_response(plan, eligible, engine=engine, premium=premium))
    click.echo(json.dumps(response, indent=2, ensure_ascii=False))
    if response["metadata"]["errors"]:
        sys.exit(1)


@main.command("filter")
@click.option("--equipment", "-e", multiple=True, default=("body weight",), show_default=True)
@click.option("--body-part", "-b", "body_parts", multiple=True)
@click.option("--workout-type")
@click.option(
    "--level",
    type=click.Choice(["beginner", "intermediate", "advanced"]),
    default="intermediate",
    show_default=True,
)
@click.option(
    "--goal",
    type=click.Choice(["muscle_gain", "weight_loss", "endurance", "strength", "general_fitness"]),
    default="general_fitness",
    show_default=True,
)
@click.option("--focus-muscle", "focus_muscles", multiple=True)
@click.option("--injury", "injuries", multiple=True)
@click.option("--exclude", "exclude_ids", multiple=True)
@click.option("--limit", type=int, default=40, show_default=True)
@click.pass_context
def filter_command(
    ctx: click.Context,
    equipment: tuple[str, ...],
    body_parts: tuple[str, ...],
    workout_type: str | None,
    level: str,
    goal: str,
    focus_muscles: tuple[str, ...],
    injuries: tuple[str, ...],
    exclude_ids: tuple[str, ...],
    limit: int,
):
    """Filter the catalog down to the candidate set for a user."""
    request = FilterRequest(
        available_equipment=list(equipment),
        target_body_parts=list(body_parts),
        workout_type=workout_type,
        experience_level=level,
        fitness_goal=goal,
        focus_muscles=list(focus_muscles),
        injuries=list(injuries),
        exclude_ids=list(exclude_ids),
        target_count=limit,
    )
    result = filter_exercises(_engine(ctx).catalog, request)
    s = result.stats
    click.echo(
        f"Filtered {s.total} -> equipment {s.after_equipment} -> body parts {s.after_body_parts}"
        f" -> experience {s.after_experience} -> final {s.final}"
    )
    for record in result.exercises:
        click.echo(f"  {record.exercise_id}  {record.name}")


@main.command()
@click.option("--premium", is_flag=True, help="Show availability for a premium caller.")
@click.pass_context
def providers(ctx: click.Context, premium: bool):
    """List media libraries in lookup priority order."""
    for lib in _engine(ctx).media.available_libraries(premium):
        status = "available" if lib["available"] else "premium only"
        click.echo(f"{lib['id']}: {lib['name']} (priority {lib['priority']}, {status})")
        click.echo(f"  {lib['description']}")
