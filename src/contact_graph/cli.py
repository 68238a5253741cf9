"""CLI interface for contact-graph."""

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from contact_graph.config import ContactGraphConfig
from contact_graph.errors import ContactGraphError
from contact_graph.graph.models import ContactEntity

app = typer.Typer(
    name="contacts",
    help="Contact relationship graph with merge and enrichment",
    add_completion=True,
    rich_markup_mode="rich",
)

console = Console()


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging level."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )
    # Suppress noisy libraries
    logging.getLogger("litellm").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _load_config(store: str | None) -> ContactGraphConfig:
    config = ContactGraphConfig()
    if store:
        config.store_path = Path(store).expanduser().resolve()
    return config


def _oracle_for(config: ContactGraphConfig, model: str | None):
    """Build an oracle for the effective model, exiting if its key is missing."""
    from contact_graph.extract.llm_client import LLMClient
    from contact_graph.extract.oracle import ExtractionOracle

    effective_model = model or config.default_model
    try:
        config.validate_api_keys(effective_model)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None
    llm = LLMClient(model=effective_model, rpm=config.rpm, timeout=config.timeout)
    return ExtractionOracle(llm), effective_model


def _fail(error: Exception) -> None:
    console.print(f"[red]Error:[/red] {error}")
    raise typer.Exit(1)


def _print_contact(contact: ContactEntity) -> None:
    lines = [f"[bold]{contact.name}[/bold]  [dim]{contact.id}[/dim]"]
    if contact.title or contact.organization:
        lines.append(" @ ".join(p for p in (contact.title, contact.organization) if p))
    for label, value in (("Email", contact.email), ("Phone", contact.phone), ("Location", contact.location)):
        if value:
            lines.append(f"[cyan]{label}:[/cyan] {value}")
    if contact.tags:
        lines.append(f"[cyan]Tags:[/cyan] {', '.join(contact.tags)}")
    if contact.summary:
        lines.append(f"\n{contact.summary}")
    if contact.notes:
        lines.append(f"\n[cyan]Notes:[/cyan]\n{contact.notes}")
    if contact.related_people:
        lines.append("\n[cyan]Related:[/cyan]")
        for ref in contact.related_people:
            lines.append(f"  [green]→[/green] {ref.name} [dim]({ref.relationship or 'related'})[/dim]")
    console.print(Panel("\n".join(lines), expand=False))


# ============================================================================
# Contact Commands
# ============================================================================


@app.command()
def add(
    text: str | None = typer.Argument(None, help="Free text or a URL describing the person"),
    from_file: str | None = typer.Option(None, "--file", help="Read the input text from a file"),
    model: str | None = typer.Option(None, help="LLM model (e.g. gemini/gemini-2.5-flash)"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Save without confirmation"),
    store: str | None = typer.Option(None, "-s", "--store", help="Store file"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
) -> None:
    """Extract a contact from text or a URL and add it."""
    _setup_logging(verbose)
    config = _load_config(store)
    if from_file:
        text = Path(from_file).read_text()
    if not text or not text.strip():
        console.print("[yellow]Nothing to extract.[/yellow] Pass TEXT or --file.")
        raise typer.Exit(1)

    from contact_graph.errors import ExtractionParseError, OracleCallError
    from contact_graph.graph.entity_store import EntityStore

    oracle, effective_model = _oracle_for(config, model)
    console.print(f"[cyan]Model:[/cyan] {effective_model}")

    result = asyncio.run(oracle.extract_contact(text))
    if result.status == "call_error":
        _fail(OracleCallError(result.error))
    if not result.ok or result.patch is None:
        _fail(ExtractionParseError(f"Could not read a profile from the response: {result.error}"))

    preview = result.patch.provided()
    table = Table(title="Extracted profile", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for field, value in preview.items():
        if field == "related_people":
            value = ", ".join(f"{r.name} ({r.relationship})" for r in value)
        elif field == "tags":
            value = ", ".join(value)
        table.add_row(field, str(value))
    console.print(table)

    if not yes and not typer.confirm("Save this contact?", default=True):
        console.print("[dim]Discarded.[/dim]")
        raise typer.Exit(0)

    contact_store = EntityStore.load(config.store_path)
    try:
        contact = contact_store.create_from_patch(result.patch)
    except ContactGraphError as e:
        _fail(e)
    contact_store.save(config.store_path)
    console.print(f"[green]Saved[/green] {contact.name} [dim]({contact.id})[/dim]")


@app.command(name="list")
def list_cmd(
    query: str = typer.Option("", "-q", "--query", help="Filter by name, organization or tag"),
    store: str | None = typer.Option(None, "-s", "--store", help="Store file"),
) -> None:
    """List contacts."""
    config = _load_config(store)
    from contact_graph.graph.entity_store import EntityStore

    contacts = EntityStore.load(config.store_path).search(query)
    if not contacts:
        console.print("[yellow]No contacts found.[/yellow]")
        raise typer.Exit(0)

    table = Table(title=f"{len(contacts)} contact{'s' if len(contacts) != 1 else ''}")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Title")
    table.add_column("Organization")
    table.add_column("Tags")
    for contact in contacts:
        table.add_row(contact.id, contact.name, contact.title, contact.organization, ", ".join(contact.tags))
    console.print(table)


@app.command()
def show(
    contact_id: str = typer.Argument(..., help="Contact id"),
    store: str | None = typer.Option(None, "-s", "--store", help="Store file"),
) -> None:
    """Show one contact."""
    config = _load_config(store)
    from contact_graph.graph.entity_store import EntityStore

    try:
        contact = EntityStore.load(config.store_path).require(contact_id)
    except ContactGraphError as e:
        _fail(e)
    _print_contact(contact)


@app.command()
def delete(
    contact_id: str = typer.Argument(..., help="Contact id"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Delete without confirmation"),
    store: str | None = typer.Option(None, "-s", "--store", help="Store file"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
) -> None:
    """Delete a contact."""
    _setup_logging(verbose)
    config = _load_config(store)
    from contact_graph.pipeline import run_delete

    if not yes and not typer.confirm(f"Delete {contact_id}? This cannot be undone.", default=False):
        raise typer.Exit(0)
    try:
        removed = run_delete(contact_id, config.store_path)
    except ContactGraphError as e:
        _fail(e)
    console.print(f"[green]Deleted[/green] {removed.name}")


@app.command()
def link(
    source_id: str = typer.Argument(..., help="First contact id"),
    target_id: str = typer.Argument(..., help="Second contact id"),
    relationship: str = typer.Argument(..., help="Relationship label, e.g. Colleague, Advisor"),
    store: str | None = typer.Option(None, "-s", "--store", help="Store file"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
) -> None:
    """Relate two contacts (both directions)."""
    _setup_logging(verbose)
    config = _load_config(store)
    from contact_graph.pipeline import run_link

    try:
        changed = run_link(source_id, target_id, relationship, config.store_path)
    except ContactGraphError as e:
        _fail(e)
    if any(changed):
        console.print(f"[green]Linked[/green] {source_id} ↔ {target_id} as {relationship}")
    else:
        console.print("[dim]Already related; nothing changed.[/dim]")


# ============================================================================
# Consolidation Commands
# ============================================================================


@app.command()
def merge(
    contact_ids: list[str] = typer.Argument(..., help="Ids of contacts that are the same person"),
    survivor: str | None = typer.Option(None, help="Id to keep (default: the first one)"),
    model: str | None = typer.Option(None, help="LLM model for merging"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Apply without confirmation"),
    store: str | None = typer.Option(None, "-s", "--store", help="Store file"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
) -> None:
    """Merge duplicate contacts into one profile."""
    _setup_logging(verbose)
    config = _load_config(store)
    if len(contact_ids) < 2:
        console.print("[yellow]Select at least two contacts to merge.[/yellow]")
        raise typer.Exit(1)

    from contact_graph.graph.entity_store import EntityStore
    from contact_graph.pipeline import run_merge

    oracle, _ = _oracle_for(config, model)
    try:
        outcome = run_merge(
            contact_ids, config.store_path, model or config.default_model,
            survivor_id=survivor, apply=False, oracle=oracle,
        )
    except ContactGraphError as e:
        _fail(e)

    if not outcome.applied:
        console.print(f"[red]Merge not applied:[/red] {outcome.error}")
        console.print("[dim]No contacts were changed.[/dim]")
        raise typer.Exit(1)

    _print_contact(outcome.profile)
    if not yes and not typer.confirm(f"Replace {len(contact_ids)} contacts with this profile?", default=True):
        console.print("[dim]Merge discarded.[/dim]")
        raise typer.Exit(0)

    contact_store = EntityStore.load(config.store_path)
    contact_store.apply_merge(outcome, contact_ids)
    contact_store.save(config.store_path)
    console.print(f"[green]Merged![/green] {outcome.profile.name} [dim]({outcome.profile.id})[/dim]")


def _print_sources(sources) -> None:
    table = Table(title="Sources")
    table.add_column("#", style="dim")
    table.add_column("Title")
    table.add_column("Site", style="cyan")
    table.add_column("URL", style="dim")
    for i, source in enumerate(sources, 1):
        table.add_row(str(i), source.title, source.source, source.url or "")
    console.print(table)


@app.command()
def research(
    contact_id: str = typer.Argument(..., help="Contact id"),
    model: str | None = typer.Option(None, help="LLM model with web search"),
    store: str | None = typer.Option(None, "-s", "--store", help="Store file"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
) -> None:
    """Search the web for a contact (read-only)."""
    _setup_logging(verbose)
    config = _load_config(store)
    from contact_graph.pipeline import run_research

    oracle, _ = _oracle_for(config, model)
    try:
        results = run_research(contact_id, config.store_path, model or config.default_model, oracle=oracle)
    except ContactGraphError as e:
        _fail(e)

    console.print(Panel(results.summary or "[dim]No summary returned[/dim]", title="Research"))
    if results.sources:
        _print_sources(results.sources)
    console.print()
    console.print(f"Next: [cyan]contacts enrich {contact_id} --web[/cyan] to fold this into the profile")


@app.command()
def enrich(
    contact_id: str = typer.Argument(..., help="Contact id"),
    web: bool = typer.Option(False, "--web", help="Research the contact on the web first"),
    ignore: list[str] = typer.Option([], "--ignore", help="Source URL to exclude (repeatable)"),
    pick: bool = typer.Option(False, "--pick", help="Choose sources to exclude interactively"),
    text: str | None = typer.Option(None, "--text", help="Notes, resume text or URLs"),
    text_file: str | None = typer.Option(None, "--text-file", help="Read notes from a file"),
    image: list[str] = typer.Option([], "--image", help="Image evidence, e.g. a resume screenshot (repeatable)"),
    model: str | None = typer.Option(None, help="LLM model"),
    store: str | None = typer.Option(None, "-s", "--store", help="Store file"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
) -> None:
    """Enrich a contact from web research and/or your own evidence."""
    _setup_logging(verbose)
    config = _load_config(store)
    if text_file:
        text = Path(text_file).read_text()
    if (ignore or pick) and not web:
        console.print("[red]Error:[/red] --ignore and --pick filter web sources; add --web.")
        raise typer.Exit(1)
    if not web and not (text and text.strip()) and not image:
        console.print("[yellow]No evidence given.[/yellow] Use --web, --text, --text-file or --image.")
        raise typer.Exit(1)

    from contact_graph.pipeline import run_enrich, run_research

    oracle, effective_model = _oracle_for(config, model)
    ignored = set(ignore)
    search = None
    try:
        if web:
            search = run_research(contact_id, config.store_path, effective_model, oracle=oracle)
            if search.sources:
                _print_sources(search.sources)
                if pick:
                    answer = typer.prompt("Sources to ignore (numbers, comma-separated)", default="")
                    for part in answer.split(","):
                        if part.strip().isdigit() and 0 < int(part) <= len(search.sources):
                            url = search.sources[int(part) - 1].url
                            if url:
                                ignored.add(url)

        outcome = run_enrich(
            contact_id,
            config.store_path,
            effective_model,
            search=search,
            ignored_urls=ignored,
            manual_text=text,
            image_paths=[Path(p) for p in image],
            org_keywords=config.org_keywords,
            discovery_tag=config.discovery_tag,
            oracle=oracle,
        )
    except ContactGraphError as e:
        console.print("[dim]No contacts were changed.[/dim]")
        _fail(e)

    _print_contact(outcome.updated_entity)
    if outcome.newly_discovered:
        console.print(f"[green]Discovered {len(outcome.newly_discovered)} new contacts:[/green]")
        for stub in outcome.newly_discovered:
            console.print(f"  [bold]{stub.name}[/bold] [dim]({stub.id})[/dim] {stub.title}")
    else:
        console.print("[green]Profile updated.[/green]")


# ============================================================================
# Graph Commands
# ============================================================================


@app.command()
def edges(
    contact_id: str | None = typer.Option(None, "--contact", help="Only edges touching this contact"),
    store: str | None = typer.Option(None, "-s", "--store", help="Store file"),
) -> None:
    """Show the derived relationship graph."""
    config = _load_config(store)
    from contact_graph.pipeline import run_edges

    contact_store, derived = run_edges(config.store_path)
    if contact_id:
        derived = [e for e in derived if contact_id in (e.source, e.target)]
    if not derived:
        console.print("[yellow]No relationships found.[/yellow]")
        raise typer.Exit(0)

    names = {c.id: c.name for c in contact_store}
    table = Table(title=f"{len(derived)} edges")
    table.add_column("From")
    table.add_column("To")
    table.add_column("Label", style="cyan")
    table.add_column("Kind", style="dim")
    table.add_column("Weight", justify="right")
    for edge in derived:
        table.add_row(names[edge.source], names[edge.target], edge.label, edge.kind, str(edge.weight))
    console.print(table)


@app.command()
def view(
    out: str = typer.Option("contact_graph.html", "--out", help="HTML file to write"),
    width: float = typer.Option(1200, help="Canvas width in pixels"),
    height: float = typer.Option(800, help="Canvas height in pixels"),
    open_browser: bool = typer.Option(True, "--open/--no-open", help="Open in a browser"),
    store: str | None = typer.Option(None, "-s", "--store", help="Store file"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
) -> None:
    """Render the contact graph as interactive HTML."""
    _setup_logging(verbose)
    config = _load_config(store)
    from contact_graph.pipeline import run_view

    path = run_view(
        config.store_path, Path(out), open_browser=open_browser,
        width=width, height=height, discovery_tag=config.discovery_tag,
    )
    console.print(f"[green]View written:[/green] {path}")


@app.command()
def export(
    fmt: str = typer.Argument("graphml", help="Export format: json, graphml, gexf, csv"),
    export_path: str | None = typer.Option(None, "--to", help="Export file/directory path"),
    store: str | None = typer.Option(None, "-s", "--store", help="Store file"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
) -> None:
    """Export contacts and derived edges."""
    _setup_logging(verbose)
    config = _load_config(store)
    from contact_graph.export import SUPPORTED_FORMATS
    from contact_graph.pipeline import run_export

    if fmt.lower() not in SUPPORTED_FORMATS:
        console.print(f"[red]Error:[/red] Unsupported format {fmt!r}. Choose from: {', '.join(SUPPORTED_FORMATS)}")
        raise typer.Exit(1)

    default_name = "contacts_export" if fmt.lower() == "csv" else f"contacts.{fmt.lower()}"
    target = Path(export_path) if export_path else config.store_path.parent / default_name
    path = run_export(config.store_path, fmt, target)
    console.print(f"[green]Exported:[/green] {path}")
