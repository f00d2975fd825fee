"""CLI entry point for endpoint-extractor."""

import logging
from pathlib import Path

import click

from endpoint_extractor.config.loader import ConfigLoader
from endpoint_extractor.errors import ExtractorError
from endpoint_extractor.extractors.base import ExtractedEndpoints
from endpoint_extractor.extractors.detect import detect_framework
from endpoint_extractor.extractors.factory import get_extractor, get_extractor_for_project
from endpoint_extractor.generator.report import ReportGenerator
from endpoint_extractor.utils.logger import set_level


def _build_overrides(fmt: str | None, responses: bool, auth_middlewares: str | None) -> dict:
    """Translate CLI flags into a config mapping that outranks every config file."""
    overrides: dict = {}
    if fmt:
        overrides.setdefault("common", {})["outputFormat"] = fmt
    if responses:
        overrides.setdefault("common", {})["extractResponses"] = True
    if auth_middlewares:
        names = [name.strip() for name in auth_middlewares.split(",") if name.strip()]
        overrides["fastify"] = {"auth": {"middlewareNames": names}}
    return overrides


def _summary(result: ExtractedEndpoints) -> str:
    return (
        f"Found {len(result.endpoints)} endpoints "
        f"({result.auth_required_count} auth required, {result.public_count} public, "
        f"{result.unknown_count} unknown)."
    )


@click.group()
def main():
    """Endpoint Extractor: list the HTTP endpoints of a Fastify or NestJS project."""
    pass


@main.command()
@click.argument("project_root", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--framework", default=None, type=click.Choice(["fastify", "nestjs", "express"]), help="Framework (auto-detected when omitted).")
@click.option("--entry", default=None, help="Entry file relative to the project root.")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Explicit config file.")
@click.option("-o", "--output", default=None, type=click.Path(path_type=Path), help="Write the report here instead of stdout.")
@click.option("--format", "fmt", default=None, type=click.Choice(["yaml", "json"]), help="Report format.")
@click.option("--responses", is_flag=True, default=False, help="Also extract response shapes.")
@click.option("--auth-middlewares", default=None, help="Comma-separated auth middleware names (Fastify).")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log progress to stderr.")
def extract(
    project_root: Path,
    framework: str | None,
    entry: str | None,
    config_path: Path | None,
    output: Path | None,
    fmt: str | None,
    responses: bool,
    auth_middlewares: str | None,
    verbose: bool,
):
    """Extract endpoints from PROJECT_ROOT and print or save the report."""
    if verbose:
        set_level(logging.DEBUG)

    try:
        config = ConfigLoader().load(
            project_root,
            config_path=config_path,
            overrides=_build_overrides(fmt, responses, auth_middlewares),
        )
        extractor = get_extractor(framework) if framework else get_extractor_for_project(project_root)
        click.echo(f"Extracting {extractor.framework} endpoints from {project_root}...", err=True)
        result = extractor.extract(project_root, config=config, entry_file=entry)
    except ExtractorError as e:
        raise click.ClickException(str(e)) from e

    report = ReportGenerator(config.common.output_format).generate(result)
    if output is None:
        click.echo(report, nl=False)
    else:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(report, encoding="utf-8")
        click.echo(f"Report saved to {output}", err=True)
    click.echo(_summary(result), err=True)
    for skipped in result.skipped_files:
        click.echo(f"  Skipped {skipped}", err=True)


@main.command()
@click.argument("project_root", type=click.Path(exists=True, file_okay=False, path_type=Path))
def detect(project_root: Path):
    """Detect the web framework used by PROJECT_ROOT."""
    detection = detect_framework(project_root)
    if detection is None:
        raise click.ClickException(f"Could not detect a supported framework in {project_root}")
    click.echo(f"{detection.framework} (confidence: {detection.confidence:.2f})")
    click.echo(detection.reason)
