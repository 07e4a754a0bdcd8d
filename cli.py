import asyncio
import logging
import typer
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table
import json
from pydantic import ConfigDict, TypeAdapter, ValidationError

from docgraph.core.config import settings
from docgraph.core.exceptions import GraphException
from docgraph.db.driver import MongoDriver, get_graph_service
from docgraph.models.graph import FindByVertex, ObjectIdField

cli_app = typer.Typer()
console = Console()

_object_id = TypeAdapter(ObjectIdField, config=ConfigDict(arbitrary_types_allowed=True))
_find_by_vertex = TypeAdapter(FindByVertex)

def _run(category: str, action):
    """Runs `action(service)` for the category, reporting graph errors and always closing the client."""
    async def main():
        try:
            return await action(get_graph_service(category))
        finally:
            await MongoDriver.close_client()

    try:
        return asyncio.run(main())
    except GraphException as e:
        console.print(f"[bold red]Error:[/bold red] {escape(e.message)}")
        raise typer.Exit(code=1)

def _parse_id(value: str):
    try:
        return _object_id.validate_python(value)
    except ValidationError:
        console.print(f"[bold red]Error:[/bold red] '{value}' is not a valid vertex ID.")
        raise typer.Exit(code=1)

@cli_app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level.")):
    logging.basicConfig(level=logging.DEBUG if verbose else settings.LOG_LEVEL)

@cli_app.command()
def init_indexes(
    category: str = typer.Option(settings.GRAPH_CATEGORY, "--category", "-c", help="Graph category."),
):
    """
    Creates the edge indexes every traversal joins on.
    """
    _run(category, lambda service: service.ensure_indexes())
    console.print(f"[green]Indexes ready for category '{category}'.[/green]")

@cli_app.command()
def truncate(
    category: str = typer.Option(settings.GRAPH_CATEGORY, "--category", "-c", help="Graph category."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
):
    """
    Deletes every vertex and edge of a category.
    """
    if not yes:
        typer.confirm(f"Delete all vertexes and edges of '{category}'?", abort=True)
    _run(category, lambda service: service.truncate())
    console.print(f"[yellow]Category '{category}' truncated.[/yellow]")

@cli_app.command()
def neighbors(
    vertex_id: str = typer.Option(..., "--vertex-id", "-n", help="The ObjectId of the vertex."),
    orientation: str = typer.Option("bidirectional", "--orientation", "-o", help="source, target or bidirectional."),
    category: str = typer.Option(settings.GRAPH_CATEGORY, "--category", "-c", help="Graph category."),
):
    """
    Lists the edges attached to a vertex.
    """
    try:
        request = _find_by_vertex.validate_python({"orientation": orientation, "vertex_id": vertex_id})
    except ValidationError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1)

    edges = _run(category, lambda service: service.get_edges_by_vertex(request))

    table = Table(title=f"{orientation} edges of {vertex_id}")
    for column in ("id", "source", "target", "weight", "label"):
        table.add_column(column)
    for edge in edges:
        table.add_row(str(edge.id), str(edge.source), str(edge.target), str(edge.weight), edge.label or "")
    console.print(table)
    console.print(f"[cyan]Found {len(edges)} edges.[/cyan]")

@cli_app.command()
def show_graph(
    vertex_id: str = typer.Option(..., "--vertex-id", "-n", help="The ObjectId of the start vertex."),
    label: str | None = typer.Option(None, "--label", "-l", help="Only follow edges with this label."),
    depth: int | None = typer.Option(None, "--depth", "-d", help="Levels to follow past the start vertex's own out-edges."),
    category: str = typer.Option(settings.GRAPH_CATEGORY, "--category", "-c", help="Graph category."),
):
    """
    Prints the edges reachable from a vertex and the vertexes they point at.
    """
    start_id = _parse_id(vertex_id)
    graph = _run(
        category, lambda service: service.get_graph_from_vertex_by_label(start_id, label, depth)
    )

    console.print(f"[cyan]Found {len(graph.edges)} edges and {len(graph.vertexes)} target vertexes.[/cyan]")
    graph_json = json.dumps(graph.model_dump(mode="json", by_alias=True), indent=2)
    console.print(Syntax(graph_json, "json", theme="solarized-dark"))


if __name__ == "__main__":
    cli_app()
