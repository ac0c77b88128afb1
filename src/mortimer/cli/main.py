"""Main CLI entry point with command groups"""

import click

from mortimer.__version__ import __version__
from mortimer.cli.dictionary import dict_command
from mortimer.cli.metas import metas_command
from mortimer.cli.process import process_command


class DefaultCommandGroup(click.Group):
    """Custom Click Group that allows a default command"""

    def parse_args(self, ctx, args):
        # During shell completion, don't redirect to default command
        if ctx.resilient_parsing:
            return super().parse_args(ctx, args)

        # If --help or --version is requested, show group help/version
        if not args or args[0] in ('--help', '-h', '--version'):
            return super().parse_args(ctx, args)

        # Check if first arg is a known command
        if args[0] in self.commands:
            return super().parse_args(ctx, args)

        # Otherwise, treat as process command (default)
        return super().parse_args(ctx, ['process'] + args)


@click.group(cls=DefaultCommandGroup, invoke_without_command=True)
@click.version_option(version=__version__, prog_name='Mortimer')
@click.pass_context
def cli(ctx):
    """
    Mortimer - extract name=value fields and statistics from log bundles.

    \b
    Commands:
      mortimer <dir> [dir ...]     Process log directories (default command)
      mortimer dict <path>         Summarize a saved dictionary
      mortimer metas               List known log file types

    \b
    Examples:
      mortimer bundle/node1 bundle/node2 --dict-path dict.json
      mortimer bundle/node1 --out-dir out --no-stdout
      mortimer bundle/node1 --emit-parts NAME,MIDS --emit-types INT,STRING
      mortimer dict dict.json --top 10
    """
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)


cli.add_command(process_command, name='process')
cli.add_command(dict_command, name='dict')
cli.add_command(metas_command, name='metas')


def main():
    """Entry point for the CLI"""
    cli()


if __name__ == '__main__':
    main()
