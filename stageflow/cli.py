"""Command line interface for resolving stages and submitting transitions."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import List, Optional, Union

import typer
from pydantic import ValidationError

from stageflow.auth import AuthContext, Vehicle
from stageflow.client import ApiResult
from stageflow.config import StageflowConfig, configure_logging, load_config
from stageflow.contracts import FormState, Order, OrderEnvelope, ReasonCode, StageDetails
from stageflow.engine import StageTransitionEngine, TransitionResult, TransitionStatus
from stageflow.errors import StageflowError
from stageflow.gateway import get_gateway
from stageflow.resolver import StageDefinitionResolver, stage_for_status
from stageflow.stages import OrderKind

app = typer.Typer(help="CLI for order stage workflows")

# Command groups
stage_app = typer.Typer(help="Commands for inspecting stage rules")
order_app = typer.Typer(help="Commands for moving orders between stages")

app.add_typer(stage_app, name="stage")
app.add_typer(order_app, name="order")


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="Path to a YAML config file"
    ),
) -> None:
    """Stageflow CLI entry point."""
    try:
        config = load_config(str(config_path) if config_path else None)
    except StageflowError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    configure_logging(config.log_level)
    ctx.obj = config


def _config(ctx: typer.Context) -> StageflowConfig:
    return ctx.obj if isinstance(ctx.obj, StageflowConfig) else load_config()


@stage_app.command("resolve")
def stage_resolve(
    kind: OrderKind,
    stage: str,
    status: str,
    completed: bool = typer.Option(False, help="Treat a task as already completed"),
) -> None:
    """
    Show what the next transition out of a stage requires.

    Example:
        stageflow stage resolve pickup picked REQUESTED
        # Output: Return Confirmation -> CLOSED
        #         required: signature, file_upload, feedback
    """
    try:
        requirement = StageDefinitionResolver().resolve(
            kind, stage, status, is_completed=completed
        )
    except ValueError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.echo(f"{requirement.menu_name} -> {requirement.stage_status}")
    required = [
        name
        for name, flag in (
            ("remarks", requirement.required_remarks),
            ("signature", requirement.required_signature),
            ("file_upload", requirement.required_file_upload),
            ("feedback", requirement.required_feedback),
            ("payment_mode", requirement.required_payment_mode),
            ("line_reason", requirement.required_line_reason),
        )
        if flag
    ]
    typer.echo(f"required: {', '.join(required) or '(none)'}")
    if requirement.line_level_allowed:
        partial = "allowed" if requirement.partial_allowed else "not allowed"
        typer.echo(f"line level: partial quantities {partial}")
    if requirement.was_defaulted:
        typer.secho("No rule matched; showing the initial stage", fg=typer.colors.YELLOW)


@stage_app.command("for-status")
def stage_for_status_cmd(kind: OrderKind, status: str) -> None:
    """Print the stage an order with the given backend status is shown in."""
    typer.echo(stage_for_status(kind, status).value)


@order_app.command("transition")
def order_transition(
    ctx: typer.Context,
    order_file: Path,
    stage: str = typer.Option(..., "--stage", help="Current stage of the order"),
    form_file: Optional[Path] = typer.Option(None, "--form", help="JSON file with form input"),
    token: Optional[str] = typer.Option(None, envvar="STAGEFLOW_TOKEN", help="Bearer token"),
    vehicle_id: Optional[int] = typer.Option(None, envvar="STAGEFLOW_VEHICLE_ID"),
    gateway: Optional[str] = typer.Option(None, help="Gateway backend: http or inmemory"),
    allow_empty: bool = typer.Option(False, help="Proceed when the order has no active lines"),
    fetch_details: bool = typer.Option(
        True, help="Fetch the stage head before submitting"
    ),
) -> None:
    """
    Submit the transition out of ``--stage`` for the order in ORDER_FILE.

    ORDER_FILE holds one order as JSON with a ``kind`` of delivery, pickup or task.

    Example:
        stageflow order transition ./order.json --stage picking --form ./form.json
        # Output: succeeded: picking -> picked (REQUESTED)
    """
    try:
        order = OrderEnvelope.model_validate({"order": json.loads(order_file.read_text())}).order
        form = (
            FormState.model_validate_json(form_file.read_text()) if form_file else FormState()
        )
    except (OSError, ValueError, ValidationError) as exc:
        typer.secho(f"Could not read input: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    config = _config(ctx)
    auth = AuthContext.from_env()
    auth = auth.model_copy(
        update={
            "access_token": token or auth.access_token,
            "vehicle": Vehicle(id=vehicle_id) if vehicle_id is not None else auth.vehicle,
        }
    )
    try:
        order_gateway = get_gateway(gateway, config=config, auth=auth)
    except StageflowError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    engine = StageTransitionEngine(order_gateway, idempotency_keys=config.idempotency_keys)

    async def run() -> TransitionResult:
        try:
            details: Optional[StageDetails] = None
            if fetch_details:
                loaded = await engine.load_stage_details(order, stage, vehicle_id=vehicle_id)
                if isinstance(loaded, StageDetails):
                    details = loaded
                else:
                    typer.secho(
                        f"Stage details unavailable: {loaded.error.message}",
                        fg=typer.colors.YELLOW,
                    )
            return await engine.transition(
                order,
                stage,
                form,
                auth.actor(),
                stage_details=details,
                allow_empty_items=allow_empty,
            )
        finally:
            await order_gateway.close()

    try:
        result = asyncio.run(run())
    except ValueError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    if result.ok:
        typer.echo(f"succeeded: {stage} -> {result.next_stage} ({result.next_status})")
        if result.retry_count:
            typer.echo(f"retries: {result.retry_count}")
        return
    if result.status is TransitionStatus.CONFIRMATION_REQUIRED:
        typer.secho(
            "Order has no active lines; rerun with --allow-empty to proceed",
            fg=typer.colors.YELLOW,
        )
        raise typer.Exit(code=2)

    message = result.error.message if result.error else result.status.value
    typer.secho(f"{result.status.value}: {message}", fg=typer.colors.RED)
    if result.error and result.error.requires_login:
        typer.echo("Log in again and retry with a fresh --token")
    raise typer.Exit(code=1)


@order_app.command("reasons")
def order_reasons(
    ctx: typer.Context,
    order_file: Path,
    stage: str = typer.Option(..., "--stage", help="Current stage of the order"),
    token: Optional[str] = typer.Option(None, envvar="STAGEFLOW_TOKEN", help="Bearer token"),
    gateway: Optional[str] = typer.Option(None, help="Gateway backend: http or inmemory"),
) -> None:
    """List the reason codes a short line can carry in the next transition."""
    order = _read_order(order_file)
    config = _config(ctx)
    auth = AuthContext.from_env()
    auth = auth.model_copy(update={"access_token": token or auth.access_token})
    try:
        order_gateway = get_gateway(gateway, config=config, auth=auth)
    except StageflowError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    async def run() -> Union[List[ReasonCode], ApiResult]:
        try:
            return await StageTransitionEngine(order_gateway).load_reasons(order, stage)
        finally:
            await order_gateway.close()

    try:
        reasons = asyncio.run(run())
    except ValueError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    if isinstance(reasons, ApiResult):
        typer.secho(f"Reasons unavailable: {reasons.error.message}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    if not reasons:
        typer.echo("No reasons defined")
        return
    for reason in reasons:
        typer.echo(f"{reason.id}\t{reason.reason_description}")


def _read_order(order_file: Path) -> Order:
    try:
        return OrderEnvelope.model_validate({"order": json.loads(order_file.read_text())}).order
    except (OSError, ValueError) as exc:
        typer.secho(f"Could not read input: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
