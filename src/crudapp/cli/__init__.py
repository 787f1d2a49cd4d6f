"""CLI commands for crudapp.

Usage:
    crudapp --help
    crudapp serve --port 8080
"""

import typer

from crudapp.cli.serve import app as serve_app

app = typer.Typer(
    name="crudapp",
    help="crudapp: posts CRUD service",
    no_args_is_help=True,
)

app.add_typer(serve_app, name="serve")


@app.callback()
def callback() -> None:
    """crudapp: posts CRUD service."""


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
