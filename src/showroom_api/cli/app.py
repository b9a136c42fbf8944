"""Typer CLI root application with serve command."""

import typer

from showroom_api.core.config import get_settings
from showroom_api.core.logging import setup_logging

app = typer.Typer(name="showroom-api", help="Showroom uploads and audit log CLI")


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all CLI commands."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir)


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
    host: str = typer.Option("0.0.0.0", "--host", help="Bind host"),  # noqa: S104
    port: int = typer.Option(8000, "--port", help="Bind port"),
) -> None:
    """Start the API server."""
    import uvicorn

    uvicorn.run(
        "showroom_api.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


def _register_subcommands() -> None:
    """Register all CLI subcommand groups."""
    from showroom_api.cli.audit_cmd import audit_app
    from showroom_api.cli.uploads_cmd import uploads_app

    app.add_typer(audit_app, name="audit", help="Audit log query and maintenance commands")
    app.add_typer(uploads_app, name="uploads", help="Uploaded file checks and maintenance")


_register_subcommands()
