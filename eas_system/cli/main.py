"""Interactive CLI for the Emergency Alert System using Typer and Rich."""

import asyncio
import sys
from datetime import datetime, timezone
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from eas_system.config.settings import settings
from eas_system.config.logging import configure_logging, get_logger

# Initialize CLI app
app = typer.Typer(
    help="Emergency Alert System CLI - social post disaster detection and validation",
    add_completion=False,
)

# Initialize Rich console for output
console = Console()

# Initialize logger
logger = get_logger("cli")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL for this run"),
    log_format: Optional[str] = typer.Option(None, "--log-format", help="console or json"),
) -> None:
    """Emergency Alert System: detect disasters in social posts and validate them."""
    if log_level or log_format:
        configure_logging(level=log_level, fmt=log_format)


_SEVERITY_STYLES = {
    "low": "green",
    "medium": "yellow",
    "high": "red",
    "critical": "bold red",
}


def _configured(value: Optional[str]) -> str:
    return "✓ Configured" if value else "⚠ Not Configured"


@app.command()
def status() -> None:
    """
    Display system status and configuration.

    Shows LLM and source credentials, pipeline thresholds, and logging settings.
    """
    logger.info("Displaying system status")

    table = Table(title="EAS System Status", show_header=True, header_style="bold magenta")
    table.add_column("Component", style="cyan", width=20)
    table.add_column("Status", style="green", width=18)
    table.add_column("Details", style="yellow")

    python_version = f"Python {sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    table.add_row("Environment", "✓ Ready", python_version)

    api_details = f"{settings.gemini_model} (RPM: {settings.max_rpm}, TPM: {settings.max_tpm:,})"
    table.add_row("Gemini API", _configured(settings.gemini_api_key), api_details)
    table.add_row("Geocoding", "✓ Ready", "Google" if settings.google_maps_api_key else "Nominatim")
    table.add_row("OpenWeather", _configured(settings.openweather_api_key), "Current conditions")
    table.add_row("Seismic / NWS / FIRMS", "✓ Ready", "Public feeds, no key required")

    thresholds = (
        f"Pre-filter: {settings.prefilter_threshold}, "
        f"Gate: {settings.classification_gate}, "
        f"Confirm: {settings.confirmation_threshold:g}, "
        f"Alert: {settings.alert_threshold:g}"
    )
    table.add_row("Thresholds", "✓ Active", thresholds)

    store_details = settings.event_store_path or "memory only"
    table.add_row(
        "Event Store",
        "✓ Active",
        f"{store_details} (events {settings.event_ttl_days}d, alerts {settings.alert_ttl_days}d)",
    )

    log_details = f"Level: {settings.log_level}, Format: {settings.log_format}"
    table.add_row("Logging", "✓ Active", log_details)

    console.print(table)


@app.command()
def analyze(
    text: str = typer.Argument(..., help="Post text to analyze"),
    keywords_only: bool = typer.Option(False, "--keywords-only", help="Skip the classifier"),
) -> None:
    """
    Run the keyword pre-filter and classifier on a piece of text.

    Args:
        text: Post title and body
        keywords_only: Stop after the pre-filter
    """
    from eas_system.agents.sifters import DisasterClassifier, KeywordPreFilter
    from eas_system.data_management.schemas import RawPost

    prefilter = KeywordPreFilter()
    signal = prefilter.analyze(text)

    table = Table(title="Keyword Pre-Filter", show_header=True, header_style="bold magenta")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="yellow")
    table.add_row("Score", str(signal.score))
    table.add_row("Confidence", str(signal.confidence))
    table.add_row("Categories", ", ".join(signal.matched_categories) or "-")
    table.add_row("Keywords", ", ".join(signal.matched_keywords) or "-")
    table.add_row("Magnitudes", ", ".join(signal.magnitude_mentions) or "-")
    table.add_row("Location", signal.location or "-")
    table.add_row("Warrants classification", "yes" if signal.warrants_classification else "no")
    console.print(table)

    if keywords_only:
        return

    classifier = DisasterClassifier(prefilter=prefilter)
    post = RawPost(post_id="cli", body=text, platform="cli")
    result = asyncio.run(classifier.classify(post, signal))

    style = _SEVERITY_STYLES.get(result.severity.value, "white")
    lines = [
        f"[bold]Disaster:[/bold] {'yes' if result.is_disaster else 'no'}",
        f"[bold]Type:[/bold] {result.disaster_type.value}",
        f"[bold]Severity:[/bold] [{style}]{result.severity.value}[/{style}]",
        f"[bold]Confidence:[/bold] {result.confidence}",
        f"[bold]Location:[/bold] {result.location or '-'}",
        f"[bold]Urgency:[/bold] {result.urgency.value}",
        f"[bold]Summary:[/bold] {result.summary or '-'}",
    ]
    if result.used_fallback:
        lines.append("[dim]Keyword fallback used (model unavailable or unparsable)[/dim]")
    console.print(Panel("\n".join(lines), title="Classification", border_style="green"))


@app.command()
def validate(
    disaster_type: str = typer.Option(..., "--type", "-t", prompt="Disaster type"),
    location: str = typer.Option(..., "--location", "-l", prompt="Location"),
) -> None:
    """
    Validate a claimed disaster against seismic, weather and fire sources.

    Args:
        disaster_type: e.g. earthquake, flood, wildfire
        location: Free-text place name
    """
    from eas_system.agents.sifters.validation import ValidationAgent

    async def _run():
        async with ValidationAgent() as agent:
            return await agent.validate(disaster_type, location, datetime.now(timezone.utc))

    result = asyncio.run(_run())

    if not result.location_resolved:
        console.print(f"[red]✗[/red] Location not found: {location}")
        for rec in result.recommendations:
            console.print(f"  • {rec}")
        raise typer.Exit(1)

    table = Table(title="Validation Votes", show_header=True, header_style="bold magenta")
    table.add_column("Source", style="cyan")
    table.add_column("Confirmed", style="green")
    table.add_column("Confidence", justify="right")
    table.add_column("Details", style="dim")
    for vote in result.validation_sources:
        details = vote.data.get("error") or vote.data.get("place") or vote.data.get("alert_type") or ""
        table.add_row(vote.source, "✓" if vote.confirmed else "✗", f"{vote.confidence:.1f}", str(details))
    console.print(table)

    style = _SEVERITY_STYLES.get(result.severity.value, "white")
    verdict = "[green]CONFIRMED[/green]" if result.disaster_confirmed else "[yellow]NOT CONFIRMED[/yellow]"
    summary = [
        f"[bold]Verdict:[/bold] {verdict}",
        f"[bold]Confidence:[/bold] {result.confidence:.1f}",
        f"[bold]Severity:[/bold] [{style}]{result.severity.value}[/{style}]",
    ]
    if result.coordinates:
        summary.append(f"[bold]Coordinates:[/bold] {result.coordinates.lat:.4f}, {result.coordinates.lng:.4f}")
    if result.affected_area:
        summary.append(f"[bold]Affected radius:[/bold] {result.affected_area.radius_km:.1f} km")
    summary.extend(f"  • {rec}" for rec in result.recommendations)
    console.print(Panel("\n".join(summary), title=f"{result.disaster_type} @ {location}", border_style="cyan"))


@app.command()
def run(
    title: str = typer.Option(..., "--title", prompt="Post title"),
    body: str = typer.Option("", "--body", help="Post body"),
    community: str = typer.Option("", "--community", help="Originating community"),
) -> None:
    """
    Run one post through the full pipeline: pre-filter, classify, validate, alert.

    Args:
        title: Post title
        body: Post body
        community: Originating community or channel
    """
    from eas_system.data_management.schemas import RawPost
    from eas_system.pipeline import DisasterPipeline

    post = RawPost(
        post_id=f"cli_{int(datetime.now(timezone.utc).timestamp() * 1000)}",
        title=title,
        body=body,
        community=community,
        platform="cli",
    )

    async def _run():
        pipeline = DisasterPipeline()
        try:
            event = await pipeline.process_post(post)
            alert = await pipeline.store.get_alert(event.alert_id) if event.alert_id else None
            return event, alert
        finally:
            await pipeline.close()

    event, alert = asyncio.run(_run())

    style = _SEVERITY_STYLES.get(event.severity.value, "white")
    lines = [
        f"[bold]Event:[/bold] {event.event_id}",
        f"[bold]State:[/bold] {event.state.value}",
        f"[bold]Type:[/bold] {event.disaster_type.value}",
        f"[bold]Confidence:[/bold] {event.confidence:.1f}",
        f"[bold]Severity:[/bold] [{style}]{event.severity.value}[/{style}]",
        f"[bold]Confirmed:[/bold] {'yes' if event.is_confirmed else 'no'}",
    ]
    if event.coordinates:
        lines.append(f"[bold]Coordinates:[/bold] {event.coordinates.lat:.4f}, {event.coordinates.lng:.4f}")
    console.print(Panel("\n".join(lines), title="Disaster Event", border_style="green"))

    if alert is not None:
        console.print(Panel(
            "\n".join([f"Priority: {alert.priority.value}", *[f"• {r}" for r in alert.recommendations]]),
            title=f"ALERT {alert.alert_id}",
            border_style="red",
        ))


@app.command()
def version() -> None:
    """Display version information."""
    console.print("[bold]Emergency Alert System[/bold]")
    console.print("Version: 0.1.0")


if __name__ == "__main__":
    app()
