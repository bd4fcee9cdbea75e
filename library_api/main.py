import logging
import subprocess
import sys
import uuid
from typing import Optional

import typer
from rich.console import Console

from library_api import database
from library_api.author import Author
from library_api.config import settings
from library_api.library import Library
from library_api.models import AuthorDto, author_to_dto, book_to_dto
from library_api.resource_parameters import AuthorsResourceParameters
from library_api.services.data_shaper import shape_data, shape_item
from library_api.services.property_mapping import property_mapping_service
from library_api.ui_helpers import print_author_details, print_author_list, set_output_mode

logger = logging.getLogger(__name__)

APP_NAME = "Library CLI"

console = Console()

# --- Typer CLI application ---
app = typer.Typer(help=APP_NAME)

@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    )
):
    """Global CLI options (e.g. output mode)."""
    logging.basicConfig(level=settings.log_level)
    if output:
        set_output_mode(output)
    database.initialize_database()

def _parse_id(raw: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(raw)
    except ValueError:
        print(f"'{raw}' is not a valid author id.")
        return None

@app.command("list")
def cli_list(
    genre: Optional[str] = typer.Option(None, "--genre", "-g", help="Exact genre to filter on"),
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Search name and genre"),
    order_by: str = typer.Option("Name", "--order-by", help="e.g. 'name desc,genre'"),
    page: int = typer.Option(1, "--page", "-p", help="Page number"),
    page_size: int = typer.Option(settings.default_page_size, "--page-size", help="Authors per page"),
):
    """List authors through the same paging, filtering and sorting as the API."""
    if not property_mapping_service.valid_mapping_exists_for(AuthorDto, Author, order_by):
        print(f"Cannot order authors by '{order_by}'.")
        raise typer.Exit(code=1)

    parameters = AuthorsResourceParameters(
        genre=genre, search_query=search, order_by=order_by, page_number=page, page_size=page_size,
    )
    authors = Library().get_authors_page(parameters)
    shaped = shape_data([author_to_dto(a) for a in authors])
    print_author_list(shaped, authors.total_count, authors.total_pages, authors.current_page)

@app.command("find")
def cli_find(author_id: str):
    """Find an author by id and show their books."""
    parsed = _parse_id(author_id)
    if parsed is None:
        return
    lib = Library()
    author = lib.get_author(parsed)
    if author is None:
        print(f"Author with id {author_id} not found.")
        return
    books = shape_data([book_to_dto(b) for b in lib.get_books_for_author(parsed)])
    print_author_details(shape_item(author_to_dto(author)), books)

@app.command("remove")
def cli_remove(author_id: str):
    """Remove an author (and their books) by id."""
    parsed = _parse_id(author_id)
    if parsed is None:
        return
    lib = Library()
    author = lib.get_author(parsed)
    if author is None:
        print(f"Author with id {author_id} not found.")
        return
    lib.delete_author(author)
    if lib.save():
        print(f"Author {author.name} has been removed.")
    else:
        print(f"Could not remove author {author.name}.")
        raise typer.Exit(code=1)

@app.command("seed")
def cli_seed():
    """Fill an empty database with sample authors and books."""
    inserted = database.seed_database()
    if inserted:
        print(f"Seeded {inserted} authors.")
    else:
        print("Database already contains authors; nothing seeded.")

@app.command("serve")
def cli_serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes"),
):
    """Start the API with uvicorn."""
    host = host or settings.api_host
    port = int(port or settings.api_port)
    url = f"http://{host}:{port}/docs"
    console.print(f"[green]Starting API on [link={url}]{url}[/link][/]")

    args = [
        sys.executable,
        "-m", "uvicorn",
        "library_api.api:app",
        "--host", host,
        "--port", str(port),
    ]
    if reload:
        args.append("--reload")
    try:
        subprocess.run(args)
    except FileNotFoundError:
        console.print("[bold red]Error:[/] `uvicorn` could not be started. Make sure it is installed.")


if __name__ == "__main__":
    app()
