"""Config commands.

Creates and displays the settings file.
"""

import json
from typing import Annotated

import tomli_w
import typer

from gravekeeper.cli.shared import get_config_path, get_settings
from gravekeeper.core.config import Settings, save_settings
from gravekeeper.core.errors import ConfigError
from gravekeeper.core.paths import get_settings_path
from gravekeeper.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Manage gravekeeper settings.",
    no_args_is_help=True,
)


@app.command()
def init(
    ctx: typer.Context,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite an existing settings file.",
        ),
    ] = False,
) -> None:
    """Write a settings file with the default values."""
    path = get_config_path(ctx) or get_settings_path()
    if path.exists() and not force:
        print_info(f"Settings file already exists: {path} (use --force to overwrite)")
        return

    try:
        saved = save_settings(Settings(), path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from None
    print_success(f"Settings written to {saved}")


@app.command()
def show(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show the effective settings, defaults included."""
    settings = get_settings(ctx)
    data = settings.model_dump(mode="json")
    data["graveyard_dir"] = str(settings.effective_graveyard_dir)
    data["state_dir"] = str(settings.effective_state_dir)

    if json_output:
        console.print_json(json.dumps(data))
        return

    path = get_config_path(ctx) or get_settings_path()
    console.print(f"[muted]# {path}{'' if path.exists() else ' (not found, defaults)'}[/]")
    toml_data = {key: value for key, value in data.items() if value is not None}
    console.print(tomli_w.dumps(toml_data), markup=False, highlight=False)
