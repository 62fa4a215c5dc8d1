"""cardsmith CLI."""

import json
from pathlib import Path

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

console = Console()


def _load_json(path: str):
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise click.ClickException(f"Could not read {path}: {e}")


@click.group()
def main():
    """cardsmith - compose documentation cards for blueprint nodes."""
    from .utils.logging import setup_logging

    setup_logging()


@main.command()
def version():
    """Show version."""
    from . import __version__
    console.print(f"cardsmith v{__version__}")


@main.command()
def templates():
    """List card templates."""
    from .templates.catalog import list_card_templates

    table = Table()
    table.add_column("ID", style="cyan")
    table.add_column("Label")
    table.add_column("Type", style="dim")
    table.add_column("Sections")

    for template in list_card_templates():
        sections = ", ".join(s.title for s in template.sections)
        if not sections and template.default_checklist:
            sections = f"[dim]{len(template.default_checklist)} checklist items[/dim]"
        table.add_row(template.id, template.label, template.card_type, sections)

    console.print(table)


@main.command()
@click.option("--type", "node_type", required=True, help="Node type (root, frontend, backend, requirement, doc)")
@click.option("--domain", "-d", default=None, help="Node domain")
def recommend(node_type: str, domain: str):
    """Recommend card templates for a node type and domain."""
    from .templates.catalog import recommend_cards

    recommendations = recommend_cards(node_type, domain)
    if not recommendations:
        console.print(f"[yellow]No templates recommended for {node_type}/{domain or '-'}[/yellow]")
        return

    table = Table()
    table.add_column("ID", style="cyan")
    table.add_column("Label")
    table.add_column("Reason", style="dim")
    for entry in recommendations:
        template = entry["template"]
        table.add_row(template.id, template.label, entry["reason"] or "")
    console.print(table)


@main.command()
@click.argument("node_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--template", "-t", "template_id", default=None, help="Card template id")
@click.option("--card", "card_file", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Card JSON (sections, checklist) to continue from")
@click.option("--kb", "kb_root", type=click.Path(exists=True, file_okay=False), default=None,
              help="Knowledge base directory (overrides CARDSMITH_KB_ROOT)")
@click.option("--db", "db_path", type=click.Path(dir_okay=False), default=None,
              help="Reference store database (overrides CARDSMITH_DB)")
@click.option("--offline", is_flag=True, help="Skip the generative service")
@click.option("--json", "as_json", is_flag=True, help="Print the raw result as JSON")
def compose(node_file, template_id, card_file, kb_root, db_path, offline, as_json):
    """Compose a card for the node described in NODE_FILE."""
    from .composer import CardComposer
    from .config import ComposerConfig
    from .schemas import CardPayload, NodePayload, ValidationError, parse_payload

    card_data = _load_json(card_file) if card_file else {}
    if template_id:
        card_data["template_id"] = template_id

    try:
        node = parse_payload(NodePayload, _load_json(node_file)).to_model()
        card = parse_payload(CardPayload, card_data).to_model()
    except ValidationError as e:
        raise click.ClickException(str(e))

    config = ComposerConfig.from_env()
    if kb_root:
        config.kb_root = Path(kb_root)
    if db_path:
        config.db_path = Path(db_path)
    if offline:
        config.provider = "none"

    composer = CardComposer.from_config(config)
    try:
        result = composer.compose(node, card)
    finally:
        composer.close()

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    accuracy = result.accuracy
    score_style = "green" if accuracy.score >= 80 else "yellow" if accuracy.score >= 60 else "red"
    console.print(f"\n[bold]{card.title or (result.template.label if result.template else node.label)}[/bold]")
    console.print(
        f"Accuracy: [{score_style}]{accuracy.score}[/{score_style}] ({accuracy.status.value})"
        + ("  [red]needs review[/red]" if accuracy.needs_review else "")
    )
    console.print(f"Retrieval: {result.provenance.match_stage}\n")

    for section in result.sections:
        console.print(f"[bold cyan]## {section.title}[/bold cyan]")
        console.print(Markdown(section.body))
        console.print()

    if result.checklist:
        console.print("[bold]Checklist[/bold]")
        for item in result.checklist:
            console.print(f"  [ ] {item}")
        console.print()

    if result.warnings:
        console.print("[bold yellow]Warnings[/bold yellow]")
        for warning in result.warnings:
            console.print(f"  - {warning}")

    console.print("[dim]" + "\n".join(f"  {factor}" for factor in accuracy.factors) + "[/dim]")


@main.command("kb-validate")
@click.argument("root", type=click.Path(exists=True, file_okay=False))
def kb_validate(root: str):
    """Check that a knowledge base directory is loadable."""
    from .kb.file_store import FileKnowledgeBase

    report = FileKnowledgeBase(Path(root)).validate()
    console.print(f"Documents: {report['documents']}  Fragments: {report['fragments']}")
    if report["ok"]:
        console.print("[green]Knowledge base OK[/green]")
        return

    for problem in report["problems"]:
        console.print(f"[red]- {problem}[/red]")
    raise SystemExit(1)


@main.command("refs-import")
@click.argument("documents_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--db", "db_path", type=click.Path(dir_okay=False), required=True,
              help="Reference store database")
def refs_import(documents_file: str, db_path: str):
    """Load reference documents from a JSON list into the reference store."""
    from .kb.reference_store import DatabaseError, ReferenceStore
    from .models import ReferenceDocument

    data = _load_json(documents_file)
    if isinstance(data, dict):
        data = data.get("documents") or [data]

    store = ReferenceStore(Path(db_path))
    try:
        store.ensure_schema()
        imported = 0
        for entry in data:
            document = ReferenceDocument.from_dict(entry)
            if not document.id:
                console.print(f"[yellow]Skipping document without id: {document.name or '?'}[/yellow]")
                continue
            store.upsert(document)
            imported += 1
        total = store.count()
    except DatabaseError as e:
        raise click.ClickException(str(e))

    console.print(f"[green]Imported {imported} document(s); store holds {total}[/green]")


if __name__ == "__main__":
    main()
