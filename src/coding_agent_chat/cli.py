import typer
import uvicorn

from coding_agent_chat.config import get_settings

app = typer.Typer()


@app.callback()
def callback():
    """
    Coding Agent Chat
    """


@app.command()
def serve(
    host: str | None = typer.Option(None, help="Bind address (default from HOST)"),
    port: int | None = typer.Option(None, help="Bind port (default from PORT)"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):
    """Run the chat server."""
    settings = get_settings()
    uvicorn.run(
        "coding_agent_chat.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_config=None,
    )
