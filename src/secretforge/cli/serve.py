"""`secretforge serve`: run the API under uvicorn."""

from __future__ import annotations

import typer

from secretforge.config import settings

app = typer.Typer(help="Run the secretforge API server")


@app.callback(invoke_without_command=True)
def serve(
    host: str = typer.Option(settings.host, "--host", help="Host to bind to"),
    port: int = typer.Option(settings.port, "--port", "-p", help="Port to listen on"),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes"),
) -> None:
    """Run the secretforge API server."""
    import uvicorn

    # The app lifespan installs the secretforge log formatters
    uvicorn.run(
        "secretforge.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_config=None,
    )
