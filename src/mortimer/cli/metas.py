"""CLI command listing the known log file types."""

import click

from mortimer.meta import FILE_METAS


@click.command('metas')
def metas_command():
    """List the log file names Mortimer knows how to parse."""
    for fname, fmeta in sorted(FILE_METAS.items()):
        if fmeta.skip:
            status = 'skip'
        else:
            status = fmeta.prefix_re.pattern if fmeta.prefix_re is not None else '-'
        click.echo(f'{fname:40} header={fmeta.header_size} {status}')
