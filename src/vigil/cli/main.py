"""vigil CLI entry point."""

import typer

app = typer.Typer(
    name="vigil",
    help="vigil — wait for pixels, images and text on screen",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    if value:
        from vigil import __version__

        typer.echo(f"vigil {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """vigil — wait for pixels, images and text on screen."""


# -- Register commands --------------------------------------------------------

from vigil.cli.commands.config_cmd import config_app  # noqa: E402
from vigil.cli.commands.wait_cmd import wait_app  # noqa: E402

app.add_typer(config_app, name="config")
app.add_typer(wait_app, name="wait")
