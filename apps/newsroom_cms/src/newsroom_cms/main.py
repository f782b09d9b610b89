"""Command line entry points for cron jobs and the task server."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass

import typer
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from newsroom_cms.config import Settings
from newsroom_cms.db.session import create_session_factory
from newsroom_cms.logging import configure_logging, get_logger, job_context
from newsroom_cms.monitoring import configure_sentry
from newsroom_cms.services.audit import AuditLogService, AuditRecorder
from newsroom_cms.services.health import HealthServer
from newsroom_cms.services.lifecycle import LifecycleRunner, SweepKind, SweepResult
from newsroom_cms.services.lifecycle_config import LifecycleConfigService

app = typer.Typer(
    name="newsroom-cms",
    help="Newsroom CMS maintenance jobs",
    no_args_is_help=True,
)
sweep_app = typer.Typer(help="Run lifecycle sweeps", no_args_is_help=True)
app.add_typer(sweep_app, name="sweep")


@dataclass(slots=True)
class Runtime:
    settings: Settings
    session_factory: async_sessionmaker[AsyncSession]
    audit: AuditRecorder
    lifecycle: LifecycleRunner
    audit_log: AuditLogService


def bootstrap() -> Runtime:
    try:
        settings = Settings()
    except ValidationError as exc:
        typer.echo("Invalid configuration:", err=True)
        typer.echo(str(exc), err=True)
        raise typer.Exit(2) from exc

    configure_logging(settings.log_level, log_format=settings.log_format)
    configure_sentry(dsn=settings.sentry_dsn, environment=settings.sentry_environment)
    get_logger(__name__).info("boot", settings=settings.public_dict())

    session_factory = create_session_factory(settings.database_url)
    audit = AuditRecorder(session_factory)
    config_service = LifecycleConfigService(session_factory, audit=audit)
    return Runtime(
        settings=settings,
        session_factory=session_factory,
        audit=audit,
        lifecycle=LifecycleRunner(
            session_factory,
            config_service=config_service,
            settings=settings.lifecycle,
        ),
        audit_log=AuditLogService(session_factory, settings=settings.audit),
    )


@sweep_app.command("hot-to-archive")
def sweep_hot_to_archive() -> None:
    """Move hot articles past the configured age into the archive stage."""
    _report(asyncio.run(_sweep(bootstrap(), SweepKind.HOT_TO_ARCHIVE)))


@sweep_app.command("archive-to-cold")
def sweep_archive_to_cold() -> None:
    """Move archived articles past the configured age into cold storage."""
    _report(asyncio.run(_sweep(bootstrap(), SweepKind.ARCHIVE_TO_COLD)))


@app.command("purge-audit")
def purge_audit() -> None:
    """Delete audit records older than the retention window."""
    runtime = bootstrap()
    with job_context("purge_audit"):
        removed = asyncio.run(runtime.audit_log.purge_expired())
    typer.echo(json.dumps({"removed": removed}))


@app.command("serve")
def serve() -> None:
    """Run the health, metrics and task endpoints until interrupted."""
    runtime = bootstrap()
    try:
        asyncio.run(_serve(runtime))
    except KeyboardInterrupt:
        get_logger(__name__).info("shutdown")


async def _sweep(runtime: Runtime, kind: SweepKind) -> SweepResult:
    with job_context(kind.value):
        try:
            return await runtime.lifecycle.run(kind)
        finally:
            await runtime.audit.drain()


async def _serve(runtime: Runtime) -> None:
    server = HealthServer(
        runtime.settings.health,
        lifecycle=runtime.lifecycle,
        audit_log=runtime.audit_log,
    )
    await server.start()
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()
        await runtime.audit.drain()


def _report(result: SweepResult) -> None:
    typer.echo(
        json.dumps(
            {
                "kind": result.kind.value,
                "moved": result.moved,
                "skipped": result.skipped,
                "failed": result.failed,
            }
        )
    )
    if result.failed:
        raise typer.Exit(1)


def main() -> None:
    app()
