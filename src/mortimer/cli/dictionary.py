"""CLI command for inspecting a saved dictionary."""

import sys

import click
from pydantic import ValidationError

from mortimer.pipeline import load_dictionary


@click.command('dict')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--top', type=int, default=5, show_default=True, help='Most frequent STRING values shown per name')
@click.option('--json', 'json_output', is_flag=True, help='Output in JSON format')
def dict_command(path: str, top: int, json_output: bool):
    """Summarize a dictionary written by `mortimer process --dict-path`.

    \b
    Examples:
        mortimer dict dict.json
        mortimer dict dict.json --top 0
        mortimer dict dict.json --json
    """
    try:
        snapshot = load_dictionary(path)
    except ValidationError as e:
        click.echo(f'Error: {path} is not a dictionary file: {e}', err=True)
        sys.exit(1)

    if json_output:
        click.echo(snapshot.to_json())
    else:
        colorize = sys.stdout.isatty()
        click.echo(snapshot.to_cli(top=top, colorize=colorize))
