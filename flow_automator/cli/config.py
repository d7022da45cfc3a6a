"""Flow Automator config command - Configuration management."""

from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from flow_automator.cli.error_handler import handle_errors
from flow_automator.cli.exit_codes import ExitCode

app = typer.Typer(help="Manage Flow Automator configuration.")
console = Console()


@app.command("show")
@handle_errors
def show_config(
    section: Optional[str] = typer.Argument(
        None,
        help="Configuration section to show (queue, executor, logging, paths).",
    ),
    format: str = typer.Option(
        "table",
        "--format",
        "-f",
        help="Output format (table, yaml, json).",
    ),
) -> None:
    """Show current configuration.

    Example:
        flow-automator config show
        flow-automator config show queue
        flow-automator config show --format yaml
    """
    from flow_automator.config import _config_to_dict, export_config_json, export_config_yaml, load_config

    config = load_config()

    if format == "yaml":
        console.print(Syntax(export_config_yaml(config), "yaml", theme="monokai"))
        return
    elif format == "json":
        console.print(Syntax(export_config_json(config), "json", theme="monokai"))
        return
    elif format != "table":
        console.print(f"[red]Unknown format: {format}[/red] (choose table, yaml or json)")
        raise typer.Exit(code=ExitCode.INVALID_ARGUMENT)

    data = _config_to_dict(config)
    sections = {
        "queue": data["queue"],
        "executor": data["executor"],
        "logging": data["logging"],
        "paths": {"config_dir": data["config_dir"], "data_dir": data["data_dir"]},
    }

    if section and section not in sections:
        console.print(f"[red]Unknown section: {section}[/red]")
        raise typer.Exit(code=ExitCode.INVALID_ARGUMENT)

    for name in [section] if section else sections:
        table = Table(title=name.capitalize())
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")
        for key, value in sections[name].items():
            table.add_row(key, "" if value is None else str(value))
        console.print(table)
        console.print()


@app.command("set")
@handle_errors
def set_config(
    key: str = typer.Argument(
        ...,
        help="Configuration key (format: section.key, e.g., queue.delay_min_ms).",
    ),
    value: str = typer.Argument(
        ...,
        help="Value to set.",
    ),
) -> None:
    """Set a configuration value.

    Example:
        flow-automator config set queue.delay_min_ms 8000
        flow-automator config set queue.cooldown_after 10
        flow-automator config set executor.kind http
    """
    from flow_automator.config import get_config_path, set_config_value

    if "." not in key:
        console.print("[red]Key must be in format: section.key[/red]")
        raise typer.Exit(code=ExitCode.INVALID_ARGUMENT)

    section, config_key = key.split(".", 1)

    set_config_value(section, config_key, value, get_config_path())
    console.print(f"[green]✓[/green] Set {section}.{config_key} = {value}")


@app.command("init")
@handle_errors
def init_config(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing configuration.",
    ),
) -> None:
    """Write a configuration file with the default settings.

    Example:
        flow-automator config init
        flow-automator config init --force
    """
    from flow_automator.config import ensure_directories, get_config_path, load_env_config, save_config

    config_path = get_config_path()

    if config_path.exists() and not force:
        console.print(f"[yellow]Configuration already exists at {config_path}[/yellow]")
        console.print("Use --force to overwrite")
        raise typer.Exit(code=ExitCode.GENERAL_ERROR)

    # Defaults plus environment overrides (such as FLOW_DATA_DIR)
    config = load_env_config()
    config.config_dir = config_path.parent

    ensure_directories(config)
    save_config(config, config_path)

    console.print(f"[green]✓[/green] Configuration initialized at {config_path}")


@app.command("path")
@handle_errors
def config_path() -> None:
    """Show configuration file path.

    Example:
        flow-automator config path
    """
    from flow_automator.config import get_config_path, load_config

    config_file_path = get_config_path()
    config = load_config()
    console.print(f"[bold]Config directory:[/bold] {config_file_path.parent}")
    console.print(f"[bold]Config file:[/bold] {config_file_path}")
    console.print(f"[bold]Exists:[/bold] {config_file_path.exists()}")
    console.print(f"[bold]Queue file:[/bold] {config.queue_file}")
    console.print(f"[bold]Characters file:[/bold] {config.characters_file}")


@app.command("validate")
@handle_errors
def validate_config() -> None:
    """Validate current configuration.

    Example:
        flow-automator config validate
    """
    from flow_automator.config import get_config_path, load_config, validate_config as do_validate

    config_path = get_config_path()
    config = load_config(config_path)

    console.print("[bold]Validating configuration...[/bold]")
    console.print()

    status = "[green]✓[/green]" if config_path.exists() else "[yellow]![/yellow]"
    note = "" if config_path.exists() else " [dim](using defaults)[/dim]"
    console.print(f"  {status} Config file exists{note}")

    all_passed = True
    errors = do_validate(config)

    if errors:
        console.print()
        console.print("[bold yellow]Validation Results:[/bold yellow]")
        for error in errors:
            if error.severity == "error":
                status = "[red]✗[/red]"
                all_passed = False
            else:
                status = "[yellow]![/yellow]"
            console.print(f"  {status} {escape(str(error))}")

    console.print()
    if all_passed:
        console.print("[green]Configuration is valid[/green]")
    else:
        console.print("[red]Configuration has errors[/red]")
        raise typer.Exit(code=ExitCode.CONFIGURATION_ERROR)
