from __future__ import annotations

import logging

import typer

from formsaas.config import Settings

cli = typer.Typer(add_completion=False)


def run_server(host: str | None, port: int | None) -> None:
    import uvicorn

    from formsaas.app import create_app

    settings = Settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    resolved_host = host or settings.host
    resolved_port = port if port is not None else settings.port
    uvicorn.run(
        create_app(settings),
        host=resolved_host,
        port=resolved_port,
        log_level=settings.log_level.lower(),
    )


@cli.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    host: str | None = typer.Option(None, help="Address to bind"),
    port: int | None = typer.Option(None, help="Port to bind"),
) -> None:
    ctx.obj = {"host": host, "port": port}
    if ctx.invoked_subcommand is None:
        run_server(host, port)


@cli.command()
def run(
    ctx: typer.Context,
    host: str | None = typer.Option(None, help="Address to bind"),
    port: int | None = typer.Option(None, help="Port to bind"),
) -> None:
    base = ctx.obj or {}
    resolved_host = host or base.get("host")
    resolved_port = port if port is not None else base.get("port")
    run_server(resolved_host, resolved_port)


if __name__ == "__main__":
    cli()
