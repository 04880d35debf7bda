"""CLI command for generating secrets locally.

Nothing is stored and no cache is touched.

Usage:
    secretforge generate
    secretforge generate --length 24 --symbols
    secretforge generate --no-upper --count 5 --format json
"""

from __future__ import annotations

import typer

from secretforge.core.generator import (
    DEFAULT_LENGTH,
    SecretValidationError,
    build_pool,
    entropy_bits,
    generate,
    validate,
)
from secretforge.core.models import OptionSet

app = typer.Typer(help="Generate secrets locally without storing them")


@app.callback(invoke_without_command=True)
def generate_secrets(
    length: int = typer.Option(
        DEFAULT_LENGTH,
        "--length",
        "-n",
        help="Secret length (4-64)",
    ),
    upper: bool = typer.Option(True, "--upper/--no-upper", help="Include uppercase letters"),
    lower: bool = typer.Option(True, "--lower/--no-lower", help="Include lowercase letters"),
    numbers: bool = typer.Option(True, "--numbers/--no-numbers", help="Include digits"),
    symbols: bool = typer.Option(False, "--symbols/--no-symbols", help="Include symbols"),
    count: int = typer.Option(
        1,
        "--count",
        "-c",
        min=1,
        help="Number of secrets to generate",
    ),
    output_format: str = typer.Option(
        "text",
        "--format",
        "-f",
        help="Output format: text, json",
    ),
) -> None:
    """Generate secrets and print them with their strength."""
    import orjson
    from rich.console import Console
    from rich.table import Table

    console = Console()
    options = OptionSet(upper=upper, lower=lower, numbers=numbers, symbols=symbols)

    try:
        validate(length, options)
    except SecretValidationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    bits = entropy_bits(length, len(build_pool(options)))
    generated = [generate(length, options) for _ in range(count)]

    if output_format == "json":
        results = [
            {
                "value": secret.value,
                "strength": secret.strength.value,
                "entropyBits": round(bits, 2),
                "latencyMs": secret.latency_ms,
            }
            for secret in generated
        ]
        typer.echo(orjson.dumps(results, option=orjson.OPT_INDENT_2).decode())
        return

    table = Table(title=f"{count} secret(s), {bits:.1f} bits of entropy")
    table.add_column("Secret", style="cyan", no_wrap=True)
    table.add_column("Strength")
    table.add_column("Latency", justify="right")

    for secret in generated:
        table.add_row(secret.value, secret.strength.value, f"{secret.latency_ms:.2f}ms")

    console.print(table)
