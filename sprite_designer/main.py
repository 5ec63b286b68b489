#!/usr/bin/env python3
"""
Sprite Designer - Command Line Interface

Works with project snapshots exported by the generation backend: renders seed
grids, shows which history node an edit or a new generation would start from,
prepares backend requests, and previews, splits and exports sprite sheets.

Every option can also be set through an environment variable named
SPRITE_DESIGNER_<COMMAND>_<OPTION>, e.g. SPRITE_DESIGNER_GRID_RESOLUTION=2K.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
from pathlib import Path

import click
import cv2
import matplotlib.pyplot as plt

from sprite_designer.drafts import EditDraft, prepare_edit_request, prepare_generate_request
from sprite_designer.errors import ExportError, ImageDecodeError, ProjectFormatError, error_message
from sprite_designer.export import export_image_to_path, save_frames
from sprite_designer.grid_synthesis import grid_dimensions, synthesize_grid
from sprite_designer.image_io import decode_image, parse_data_url
from sprite_designer.lineage import latest_child, latest_generate_child, lineage_chain
from sprite_designer.models import Child, Project, Resolution, load_project
from sprite_designer.player import SpriteSheetPlayer, split_frames
from sprite_designer.selection import NEW_ITEM, Selection

RESOLUTION_CHOICE = click.Choice([r.value for r in Resolution], case_sensitive=False)


def _load_project_or_exit(project_path: str) -> Project:
    try:
        return load_project(project_path)
    except (OSError, ProjectFormatError) as e:
        click.echo(f"Error: Could not load project from {project_path}: {error_message(e)}", err=True)
        raise SystemExit(1)


def _selection(project: Project, child_id: str | None, new: bool = False) -> Selection:
    if new:
        return Selection(project=project, child_id=NEW_ITEM)
    if child_id is not None and project.find_child(child_id) is None:
        click.echo(f"Error: Project {project.id} has no child {child_id}", err=True)
        raise SystemExit(1)
    return Selection(project=project, child_id=child_id)


def _describe(child: Child | None) -> str:
    if child is None:
        return "-"
    rows, cols = child.grid
    grid = f" {rows}x{cols}" if child.is_sprite_sheet else ""
    return f"{child.id} ({child.type.value}, {child.mode.value}{grid}) {child.name}".rstrip()


@click.group(context_settings=dict(show_default=True, auto_envvar_prefix="SPRITE_DESIGNER"))
@click.option('--verbose', '-v', is_flag=True, help='Log debug information to stderr')
def cli(verbose: bool) -> None:
    """Seed grids, history resolution and sprite-sheet playback for generated sprites."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument('rows', type=int)
@click.argument('cols', type=int)
@click.argument('output_path', type=click.Path(dir_okay=False))
@click.option('--resolution', '-r', type=RESOLUTION_CHOICE, default="1K", help='Resolution tier of the seed image')
def grid(rows: int, cols: int, output_path: str, resolution: str) -> None:
    """Render the seed grid for a ROWS x COLS sprite sheet to OUTPUT_PATH (PNG).

    Rows and columns below 1 are treated as 1.
    """
    data_url = synthesize_grid(rows, cols, resolution)
    if not data_url:
        click.echo("Error: Could not render the seed grid", err=True)
        raise SystemExit(1)

    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(parse_data_url(data_url).data)

    width, height = grid_dimensions(rows, cols, resolution)
    click.echo(f"Saved {width}x{height} seed grid to {output}")


@cli.command(name="inspect")
@click.argument('project_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--child', '-c', 'child_id', help='Child to treat as selected (default: the project itself)')
def inspect_project(project_path: str, child_id: str | None) -> None:
    """Show the history of the project in PROJECT_PATH and how it resolves."""
    project = _load_project_or_exit(project_path)
    selection = _selection(project, child_id)

    click.echo(f"Project {project.id}: {project.name} ({len(project.children)} children)")
    for child in project.children:
        marker = "*" if child.id == child_id else " "
        base = f" <- {child.inputs.base_child_id}" if child.inputs.base_child_id else ""
        click.echo(f" {marker} {_describe(child)}{base}")

    click.echo(f"Latest child:          {_describe(latest_child(project.children))}")
    click.echo(f"Latest generate child: {_describe(latest_generate_child(project.children))}")
    click.echo(f"Base for edit:         {_describe(selection.base_child_for_edit)}")

    chain = lineage_chain(selection.preview_child, project)
    if len(chain) > 1:
        click.echo("Lineage:               " + " <- ".join(child.id for child in chain))

    click.echo(f"Current image:         {selection.preview_image_path or '-'}")
    if selection.preview_is_sprite_sheet:
        rows, cols = selection.preview_grid
        click.echo(f"Sprite sheet:          {rows}x{cols} ({rows * cols} frames)")


@cli.command()
@click.argument('project_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--child', '-c', 'child_id', help='Child to base the draft on (default: the project itself)')
@click.option('--new', '-n', 'new', is_flag=True, help='Draft a new project instead of appending to this one')
@click.option('--edit-prompt', '-e', help='Prepare an edit request with this prompt instead of a generate request')
@click.option('--include-seed', is_flag=True, help='Include the seed image data URL in the output')
def draft(project_path: str, child_id: str | None, new: bool, edit_prompt: str | None, include_seed: bool) -> None:
    """Print the backend request the current form state of PROJECT_PATH would submit.

    Without --edit-prompt a generate request is prepared from the reconciled
    generate form. With it, an edit request against the resolved base child.
    """
    project = _load_project_or_exit(project_path)
    selection = _selection(project, child_id, new)
    generate_draft = selection.generate_draft()

    if edit_prompt is not None:
        edit_draft = EditDraft(edit_prompt=edit_prompt)
        request, problem = prepare_edit_request(project, selection.base_child_for_edit, generate_draft, edit_draft)
    else:
        request, problem = prepare_generate_request(generate_draft, None if new else project.id)

    if problem:
        click.echo(f"Error: {problem}", err=True)
        raise SystemExit(1)

    payload = request.to_dict()
    if not include_seed and "imagePriorDataUrl" in payload:
        payload["imagePriorDataUrl"] = f"<{len(payload['imagePriorDataUrl'])} character data URL>"
    click.echo(json.dumps(payload, indent=2))


def _show_frames(frames: list, title: str) -> None:
    cols = min(len(frames), 8)
    rows = math.ceil(len(frames) / cols)
    fig, axes = plt.subplots(rows, cols, figsize=(2 * cols, 2 * rows), squeeze=False)
    for ax in axes.flat:
        ax.axis("off")
    for i, (ax, frame) in enumerate(zip(axes.flat, frames)):
        ax.imshow(cv2.cvtColor(frame, cv2.COLOR_BGRA2RGBA), interpolation="nearest")
        ax.set_title(f"Frame {i + 1}", fontsize=8)
    fig.suptitle(title)
    plt.show()


@cli.command()
@click.argument('sheet_path', type=click.Path(exists=True, dir_okay=False))
@click.argument('output_path', type=click.Path())
@click.option('--rows', '-r', type=int, default=1, help='Sprite rows in the sheet')
@click.option('--cols', '-c', type=int, default=1, help='Sprite columns in the sheet')
@click.option('--show', '-s', is_flag=True, help='Display the frames in a window')
def frames(sheet_path: str, output_path: str, rows: int, cols: int, show: bool) -> None:
    """Split the sprite sheet SHEET_PATH into frames saved next to OUTPUT_PATH."""
    try:
        sheet = decode_image(sheet_path)
    except ImageDecodeError as e:
        click.echo(f"Error: Could not load image from {sheet_path}: {e}", err=True)
        raise SystemExit(1)
    click.echo(f"Loaded image with shape {sheet.shape}")

    sheet_frames = split_frames(sheet, rows, cols)
    try:
        written = save_frames(sheet_frames, output_path)
    except ExportError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    click.echo(f"Saved {len(written)} frame(s) to {Path(output_path).parent}")

    if show:
        _show_frames(sheet_frames, Path(sheet_path).name)


async def _play(sheet_path: str, rows: int, cols: int, delay: int, duration: float, window: bool) -> str | None:
    def on_frame(player: SpriteSheetPlayer) -> None:
        if window:
            cv2.imshow(sheet_path, player.surface.pixels)
            cv2.waitKey(1)
        else:
            click.echo(player.frame_label)

    with SpriteSheetPlayer(frame_delay_ms=delay, on_frame=on_frame) as player:
        player.set_source(sheet_path, rows, cols)
        await player.load_task
        if player.error:
            return player.error
        await asyncio.sleep(duration)
    return None


@cli.command()
@click.argument('sheet_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--rows', '-r', type=int, default=1, help='Sprite rows in the sheet')
@click.option('--cols', '-c', type=int, default=1, help='Sprite columns in the sheet')
@click.option('--delay', '-d', type=int, default=120, help='Milliseconds between frames (minimum 16)')
@click.option('--duration', '-t', type=float, default=2.0, help='Seconds to play')
@click.option('--window', '-w', is_flag=True, help='Play in a window instead of printing frame numbers')
def play(sheet_path: str, rows: int, cols: int, delay: int, duration: float, window: bool) -> None:
    """Play the sprite sheet SHEET_PATH as a looping animation."""
    problem = asyncio.run(_play(sheet_path, rows, cols, delay, duration, window))
    if window:
        cv2.destroyAllWindows()
    if problem:
        click.echo(f"Error: {problem}", err=True)
        raise SystemExit(1)


@cli.command()
@click.argument('project_path', type=click.Path(exists=True, dir_okay=False))
@click.argument('destination', type=click.Path())
@click.option('--child', '-c', 'child_id', help='Child to export (default: the latest child)')
@click.option('--remove-chromakey', '-k', is_flag=True, help='Make a green-screen background transparent')
def export(project_path: str, destination: str, child_id: str | None, remove_chromakey: bool) -> None:
    """Export the current image of a child in PROJECT_PATH to DESTINATION.

    If DESTINATION is a directory, the file is named after the child.
    """
    project = _load_project_or_exit(project_path)
    selection = _selection(project, child_id)

    source = selection.preview_image_path
    if not source:
        click.echo("Error: No output image available to export.", err=True)
        raise SystemExit(1)

    target = Path(destination)
    if target.is_dir():
        target = target / selection.export_file_name

    sprite_grid = selection.preview_grid if selection.preview_is_sprite_sheet else None
    try:
        final_path = export_image_to_path(source, target, remove_chromakey, sprite_grid)
    except ExportError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    click.echo(f"Saved to {final_path}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
