"""Command-line entry points: run the API and bootstrap the database."""

import logging
from pathlib import Path
from typing import List, Optional

import typer
from pymongo.errors import DuplicateKeyError
from rich import print as rprint
from rich.logging import RichHandler

from . import store
from .auth import hash_password, new_user_document
from .config import get_settings
from .models import UserType
from .pdf import render_pdf

app = typer.Typer(help="Operate the newsletter curation service.")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )


def _open_db():
    """Separated so tests can point the CLI at an in-memory database."""
    return store.connect(get_settings())


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", "--host", help="Interface to bind."),
    port: int = typer.Option(8000, "--port", "-p", help="Port to listen on."),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes (development)."),
):
    """Start the HTTP API under uvicorn."""
    from .server import run

    settings = get_settings()
    _configure_logging(settings.log_level)
    rprint(f"[cyan]Serving on http://{host}:{port} (db: {settings.mongodb_db})[/cyan]")
    run(settings, host=host, port=port, reload=reload)


@app.command("init-db")
def init_db():
    """Create the unique and lookup indexes every collection relies on."""
    db = _open_db()
    store.ensure_indexes(db)
    rprint(f"[green]Indexes ready on {db.name}[/green]")


@app.command("create-superadmin")
def create_superadmin(
    name: str = typer.Option(..., "--name", help="Display name."),
    email: str = typer.Option(..., "--email", help="Login email (must be unused)."),
    password: str = typer.Option(
        ..., "--password", prompt=True, hide_input=True, help="Initial password."
    ),
    categories: Optional[List[str]] = typer.Option(
        None, "--category", "-c", help="Category to manage; repeat for several."
    ),
):
    """Insert the first superadmin account."""
    if len(password) < 8:
        raise typer.BadParameter("password must be at least 8 characters.")
    db = _open_db()
    store.ensure_indexes(db)
    doc = new_user_document(
        name=name,
        email=email,
        password_hash=hash_password(password),
        user_type=UserType.SUPERADMIN,
        categories=categories or [],
    )
    try:
        user_id = db[store.USERS].insert_one(doc).inserted_id
    except DuplicateKeyError:
        rprint(f"[red]An account with email {email} already exists.[/red]")
        raise typer.Exit(code=1)
    rprint(f"[green]Created superadmin {email} ({user_id})[/green]")


@app.command("render-pdf")
def render_pdf_command(
    html_path: Path = typer.Argument(..., help="HTML file to render."),
    out: Path = typer.Option(..., "--out", "-o", help="Destination PDF path."),
    page_size: str = typer.Option("A4", "--page-size", help="wkhtmltopdf page size."),
):
    """Render an HTML file with the same settings used for generated newsletters."""
    settings = get_settings()
    html = html_path.read_text(encoding="utf-8")
    pdf = render_pdf(html, page_size=page_size, wkhtmltopdf_path=settings.wkhtmltopdf_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(pdf)
    rprint(f"[cyan]Wrote {len(pdf)} bytes to {out}[/cyan]")


if __name__ == "__main__":
    app()
