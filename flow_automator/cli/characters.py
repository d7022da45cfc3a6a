"""Flow Automator characters command - Manage saved characters."""

from pathlib import Path
from typing import List

import typer
from rich.console import Console

from flow_automator.cli.error_handler import handle_errors

app = typer.Typer(help="Manage saved characters for character videos.")
console = Console()


def _library():
    from flow_automator.characters import CharacterLibrary
    from flow_automator.config import load_config

    return CharacterLibrary(load_config().characters_file)


@app.command("add")
@handle_errors
def add_character(
    name: str = typer.Argument(..., help="Name used to mention the character in prompts."),
    images: List[Path] = typer.Argument(
        ...,
        help="One to three reference images.",
        exists=True,
        dir_okay=False,
        resolve_path=True,
    ),
) -> None:
    """Save a character with 1-3 reference images.

    Saving a name that already exists replaces that character.

    Example:
        flow-automator characters add Mia mia_front.png mia_side.png
    """
    from flow_automator.cli.output import print_result

    character = _library().add(name, [str(image) for image in images])
    print_result(
        True,
        f"Saved character: {character.name}",
        {"images": len(character.images)},
    )


@app.command("list")
@handle_errors
def list_characters() -> None:
    """List saved characters.

    Example:
        flow-automator characters list
    """
    from flow_automator.cli.output import print_json, print_table
    from flow_automator.main import is_json

    characters = _library().list()

    if is_json():
        print_json([c.to_dict() for c in characters])
        return

    if not characters:
        console.print("[dim]No characters saved.[/dim]")
        return

    rows = [
        {
            "name": c.name,
            "images": len(c.images),
            "primary_image": c.primary_image,
        }
        for c in characters
    ]
    print_table(
        rows,
        ["name", "images", "primary_image"],
        title="Characters",
        column_styles={"name": "cyan"},
    )


@app.command("remove")
@handle_errors
def remove_character(
    name: str = typer.Argument(..., help="Character to remove."),
) -> None:
    """Remove a saved character.

    Example:
        flow-automator characters remove Mia
    """
    from flow_automator.cli.output import print_result
    from flow_automator.exceptions import NotFoundError

    if not _library().remove(name):
        raise NotFoundError(f"Character not found: {name}")
    print_result(True, f"Removed character: {name}")
