import sys

import click

from seedpipe import settings
from seedpipe.core.animation import run as run_animation
from seedpipe.core.config import Settings
from seedpipe.core.core import SeedpipeCore
from seedpipe.core.models import RunResult, SeedReport
from seedpipe.core.services.builders.pipeline import summarize_pipeline
from seedpipe.core.services.seeder import FileScheduler, InMemoryScheduler, JenkinsScheduler
from seedpipe.exception import SeedpipeException
from seedpipe.model import PipelineKind
from seedpipe.utils import async_click


def _echo_logs(logs, warnings, verbose: bool) -> None:
    if verbose:
        for line in logs:
            click.echo(line)
    for line in warnings:
        click.echo(f"warning: {line}", err=True)


def _settings(ctx: click.Context, **overrides) -> Settings:
    base: Settings = ctx.obj["settings"]
    update = {k: v for k, v in overrides.items() if v is not None}
    return base.model_copy(update=update) if update else base


@click.group()
@click.option("--no-logo", is_flag=True, help="Do not print the logo")
@click.version_option(settings.VERSION, prog_name="seedpipe")
@click.pass_context
def main(ctx: click.Context, no_logo: bool):
    """Seeds and runs build/deploy pipelines from a service registry."""
    ctx.ensure_object(dict)
    ctx.obj["settings"] = Settings.from_env()
    if not no_logo:
        click.echo(settings.LOGO)


@main.command()
@click.argument("registry")
@click.option(
    "--scheduler",
    type=click.Choice(["file", "memory", "jenkins"]),
    default="file",
    show_default=True,
    help="Where jobs are registered",
)
@click.option("--state", default=".seedpipe-state.json", show_default=True, help="State file of the file scheduler")
@click.option("--jenkins-url", default=None, help="Jenkins base URL (default: $JENKINS_URL)")
@click.option("-v", "--verbose", is_flag=True)
@click.pass_context
@async_click
async def seed(ctx: click.Context, registry: str, scheduler: str, state: str, jenkins_url: str, verbose: bool):
    """Registers build and deploy jobs for every service in REGISTRY."""
    cfg = _settings(ctx, jenkins_url=jenkins_url)
    core = SeedpipeCore(cfg)

    if scheduler == "jenkins" and not cfg.jenkins_url:
        raise click.ClickException("Jenkins URL is not set, use --jenkins-url or $JENKINS_URL")

    target = None
    try:
        if scheduler == "jenkins":
            target = JenkinsScheduler(cfg.jenkins_url, cfg.jenkins_user, cfg.jenkins_token)
        elif scheduler == "memory":
            target = InMemoryScheduler()
        else:
            target = FileScheduler(state)

        report: SeedReport = await run_animation(
            core.seed,
            registry,
            target,
            text=f"Seeding jobs from {registry}",
            enabled=sys.stdout.isatty(),
        )
    except SeedpipeException as e:
        raise click.ClickException(e.description)
    finally:
        if target is not None:
            await target.close()

    _echo_logs(report.logs, report.warnings, verbose)
    for service in report.services:
        line = f"{service.service}: {service.outcome}"
        if service.failed:
            line += f" ({service.error})"
        click.echo(line)
    click.echo(
        f"created {len(report.created)}, updated {len(report.updated)}, "
        f"unchanged {len(report.unchanged)}, failed {len(report.failed)}"
    )

    if report.failed:
        raise click.ClickException(f"Seeding failed for: {', '.join(report.failed)}")


@main.command()
@click.argument("registry")
@click.argument("service", required=False)
@click.option("-e", "--environment", default="dev", show_default=True)
@click.option("--version", "version", default="latest", show_default=True)
@click.pass_context
def plan(ctx: click.Context, registry: str, service: str, environment: str, version: str):
    """Prints the pipelines derived for SERVICE (or every service)."""
    core = SeedpipeCore(_settings(ctx))
    try:
        pipelines = core.plan(registry, service, environment, version)
    except SeedpipeException as e:
        raise click.ClickException(e.description)

    for pipeline in pipelines:
        click.echo(summarize_pipeline(pipeline).description)
        for op in pipeline.operations:
            params = ", ".join(f"{k}={v}" for k, v in op.parameters().items())
            click.echo(f"  - {op.operation_type.value}({params})")


async def _run_pipeline(
    ctx: click.Context,
    kind: PipelineKind,
    registry: str,
    service: str,
    environment: str,
    version: str,
    source: str,
    verbose: bool,
    **overrides,
) -> RunResult:
    core = SeedpipeCore(_settings(ctx, **overrides))
    try:
        result: RunResult = await run_animation(
            core.run,
            kind,
            registry,
            service,
            environment,
            version,
            source,
            text=f"{kind.value} {service} ({environment})",
            enabled=sys.stdout.isatty() and not verbose,
        )
    except SeedpipeException as e:
        raise click.ClickException(e.description)

    _echo_logs(result.logs, result.warnings, verbose)
    if not result.succeeded:
        stage = result.failed_operation.value if result.failed_operation else "workspace"
        raise click.ClickException(f"{kind.value} of {service} failed at {stage}: {result.error_detail}")

    click.echo(f"{kind.value} of {service} succeeded: {result.context.image_reference}")
    return result


def _run_options(func):
    func = click.option("-v", "--verbose", is_flag=True)(func)
    func = click.option("--source", default=None, help="Use an existing checkout instead of cloning")(func)
    func = click.option("--registry-prefix", default=None, help="Image registry host")(func)
    func = click.option("--project", default=None, help="Project name used in image names")(func)
    func = click.option("--version", "version", default="latest", show_default=True)(func)
    func = click.option("-e", "--environment", required=True)(func)
    func = click.argument("service")(func)
    func = click.argument("registry")(func)
    return func


@main.command()
@_run_options
@click.option("--advisory-analysis", is_flag=True, help="Static analysis failures do not fail the build")
@click.pass_context
@async_click
async def build(ctx, registry, service, environment, version, project, registry_prefix, source, verbose, advisory_analysis):
    """Runs the build pipeline of SERVICE."""
    await _run_pipeline(
        ctx, PipelineKind.BUILD, registry, service, environment, version, source, verbose,
        project=project,
        registry_prefix=registry_prefix,
        analysis_fatal=False if advisory_analysis else None,
    )


@main.command()
@_run_options
@click.pass_context
@async_click
async def deploy(ctx, registry, service, environment, version, project, registry_prefix, source, verbose):
    """Runs the deploy pipeline of SERVICE."""
    await _run_pipeline(
        ctx, PipelineKind.DEPLOY, registry, service, environment, version, source, verbose,
        project=project,
        registry_prefix=registry_prefix,
    )


if __name__ == "__main__":
    main()
