"""Command-line interface for SiteProbe."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
from rich.console import Console
from rich.table import Table

from siteprobe import __version__
from siteprobe.audit import PageAuditService
from siteprobe.config import Config, settings
from siteprobe.errors import SiteProbeError
from siteprobe.models import HealthSeverity, RouteHealthSample
from siteprobe.observability import configure_logging

console = Console()

SEVERITY_STYLES: Dict[HealthSeverity, str] = {
    HealthSeverity.GOOD: "green",
    HealthSeverity.WARN: "yellow",
    HealthSeverity.BAD: "red",
    HealthSeverity.NEUTRAL: "dim",
}

AUDITS = ("speed", "dom", "css", "assets", "crawl")


def _load_config(config_path: Optional[Path]) -> Config:
    if config_path is not None:
        return Config.from_yaml(config_path)
    return settings  # type: ignore[return-value]


def _styled(value: Any, severity: HealthSeverity) -> str:
    style = SEVERITY_STYLES[severity]
    return f"[{style}]{value}[/{style}]"


def _routes_table(samples: List[RouteHealthSample]) -> Table:
    table = Table(title="Route Health")
    table.add_column("Route", style="cyan")
    table.add_column("Status")
    table.add_column("TTFB (ms)", justify="right")
    table.add_column("Load avg (ms)", justify="right")
    table.add_column("Redirects", justify="right")
    table.add_column("Cache-Control")
    table.add_column("CORS")
    table.add_column("Content-Type")
    table.add_column("JSON")

    for sample in samples:
        table.add_row(
            sample.url,
            _styled(sample.status, sample.status_severity),
            _styled(sample.ttfb_ms, sample.ttfb_severity),
            _styled(sample.load_avg_ms, sample.load_severity),
            str(sample.redirects),
            _styled("yes" if sample.cache_control.present else "no", sample.cache_control.severity),
            _styled("yes" if sample.cors.present else "no", sample.cors.severity),
            _styled("yes" if sample.content_type.present else "no", sample.content_type.severity),
            _styled(sample.json_empty.name.lower(), sample.json_severity),
        )
    return table


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", type=click.Path(exists=True, path_type=Path), help="Configuration file path")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level (overrides the configuration)",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[Path], log_level: Optional[str]) -> None:
    """SiteProbe - page resource audits and route health checks."""
    ctx.ensure_object(dict)
    loaded = _load_config(config)
    monitoring = loaded.monitoring
    if log_level:
        monitoring = monitoring.model_copy(update={"log_level": log_level})
    configure_logging(monitoring)
    ctx.obj["config"] = loaded


@cli.command()
@click.option("--host", default=None, help="Host to bind to")
@click.option("--port", default=None, type=int, help="Port to bind to")
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int]) -> None:
    """Start the HTTP API."""
    from siteprobe.web import run_web_server

    web_ui = ctx.obj["config"].monitoring.web_ui
    host = host or web_ui.host
    port = port or web_ui.port
    console.print(f"[green]Starting SiteProbe API at http://{host}:{port}[/green]")
    run_web_server(host, port)


@cli.command()
@click.argument("kind", type=click.Choice(AUDITS))
@click.argument("url")
@click.pass_context
def audit(ctx: click.Context, kind: str, url: str) -> None:
    """Audit one page and print the report as JSON."""
    service = PageAuditService(ctx.obj["config"])

    async def run_audit() -> Dict[str, Any]:
        if kind == "speed":
            return await service.page_speed(url)
        if kind == "crawl":
            return await service.crawl(url)
        report = await getattr(service, kind)(url)
        return report.to_dict()

    try:
        result = asyncio.run(run_audit())
    except SiteProbeError as e:
        console.print(f"[red]{e.message}[/red]")
        sys.exit(1)

    click.echo(json.dumps(result, indent=2))


@cli.command()
@click.argument("urls", nargs=-1, required=True)
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON instead of a table")
@click.pass_context
def routes(ctx: click.Context, urls: tuple[str, ...], as_json: bool) -> None:
    """Grade latency, headers and payload shape of one or more routes."""
    service = PageAuditService(ctx.obj["config"])
    samples = asyncio.run(service.route_health(list(urls)))

    if as_json:
        click.echo(json.dumps({"results": [sample.to_dict() for sample in samples]}, indent=2))
    else:
        console.print(_routes_table(samples))

    if any(sample.degraded for sample in samples):
        sys.exit(1)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
