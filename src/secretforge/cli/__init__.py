"""CLI commands for secretforge.

Provides command-line interface using Typer:
- secretforge serve: Run the API server
- secretforge generate: Generate secrets locally without storing them

Usage:
    secretforge --help
    secretforge serve --port 5000
    secretforge generate --length 20 --symbols --count 3
"""

import typer

from secretforge.cli.generate_cmd import app as generate_app
from secretforge.cli.serve import app as serve_app

# Main CLI application
app = typer.Typer(
    name="secretforge",
    help="secretforge: secret generation service",
    no_args_is_help=True,
)

app.add_typer(serve_app, name="serve")
app.add_typer(generate_app, name="generate")


@app.callback()
def callback() -> None:
    """secretforge: secret generation service."""
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
