import os
import json
from typing import Any, Dict, List
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()

def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode

def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()

def print_author_list(authors: List[Dict[str, Any]], total_count: int = 0, total_pages: int = 0,
                      current_page: int = 1) -> None:
    """Print shaped authors in the current output mode.
    - plain: 'id - name (genre, age)' lines, or 'No authors in library.'
    - json: JSON object with the items and paging metadata
    - rich: Rich table with a page caption
    """
    mode = get_output_mode()

    if not authors:
        print("No authors in library.")
        return

    if mode == "json":
        payload = {
            "items": authors,
            "totalCount": total_count,
            "totalPages": total_pages,
            "currentPage": current_page,
        }
        print(json.dumps(payload, ensure_ascii=False, default=str))
    elif mode == "rich":
        table = Table(title="Authors", show_lines=True, header_style="bold cyan",
                      caption=f"Page {current_page} of {total_pages} ({total_count} authors)")
        table.add_column("Id", style="magenta", no_wrap=True)
        table.add_column("Name", style="white")
        table.add_column("Genre", style="white")
        table.add_column("Age", justify="right")
        for a in authors:
            table.add_row(str(a.get("id", "")), a.get("name", ""), a.get("genre", ""), str(a.get("age", "")))
        _console.print(table)
    else:
        for a in authors:
            print(f"{a.get('id', '')} - {a.get('name', '')} ({a.get('genre', '')}, {a.get('age', '')})")
        print(f"Page {current_page} of {total_pages} ({total_count} authors)")

def print_author_details(author: Dict[str, Any], books: List[Dict[str, Any]]) -> None:
    """Print one author and their book titles in the current output mode."""
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps({**author, "books": books}, ensure_ascii=False, default=str))
    elif mode == "rich":
        titles = "\n".join(f"  - {b.get('title', '')}" for b in books) or "  (no books)"
        content = (
            f"[bold]Name:[/] {author.get('name', '')}\n"
            f"[bold]Genre:[/] {author.get('genre', '')}\n"
            f"[bold]Age:[/] {author.get('age', '')}\n"
            f"[bold]Books:[/]\n{titles}"
        )
        _console.print(Panel.fit(content, title="Author Found", border_style="green"))
    else:
        print("Author Found")
        print(f"Name: {author.get('name', '')}")
        print(f"Genre: {author.get('genre', '')}")
        print(f"Age: {author.get('age', '')}")
        for b in books:
            print(f"Book: {b.get('title', '')}")
