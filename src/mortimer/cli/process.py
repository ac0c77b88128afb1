"""CLI command for processing log directories."""

import logging
import sys

import click

from mortimer import prometheus as prom
from mortimer.emit import out_dir_emitters, parse_parts, parse_types, stdout_emitter
from mortimer.histogram import HistogramConfigError
from mortimer.pipeline import Pipeline, RunConfig
from mortimer.utils import setup_logging


logger = logging.getLogger(__name__)


def _parse_option(parser, value: str, param_hint: str):
    try:
        return parser(value)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint=param_hint)


@click.command('process')
@click.argument('dirs', nargs=-1, required=True, type=click.Path(exists=True, file_okay=False))
@click.option('--dict-path', type=click.Path(dir_okay=False), default=None, help='Write the JSON dictionary here')
@click.option('--graph-path', type=click.Path(dir_okay=False), default=None, help='Write INT graph data JSON here')
@click.option(
    '--out-dir',
    type=click.Path(file_okay=False),
    default=None,
    help='Also write full.log (FULL parts) and ints.log (INT name=value pairs) into this directory',
)
@click.option(
    '--emit-parts',
    default='NAME',
    show_default=True,
    help='Comma-separated parts to print: FULL, NAME, MIDS (text between pairs), ENDS (trailing text)',
)
@click.option('--emit-types', default='INT', show_default=True, help='Comma-separated value types to print')
@click.option(
    '--value-types',
    default='INT,STRING',
    show_default=True,
    help='Comma-separated token types treated as values',
)
@click.option('--no-stdout', is_flag=True, help='Do not print fields to stdout')
@click.option('--workers', type=int, default=0, help='Parallel workers (default: MORTIMER_WORKERS or CPU count)')
@click.option('--metrics-path', type=click.Path(dir_okay=False), default=None, help='Write Prometheus metrics here')
@click.option('--verbose', '-v', count=True, help='More verbose stderr logging')
def process_command(
    dirs: tuple[str, ...],
    dict_path: str | None,
    graph_path: str | None,
    out_dir: str | None,
    emit_parts: str,
    emit_types: str,
    value_types: str,
    no_stdout: bool,
    workers: int,
    metrics_path: str | None,
    verbose: int,
):
    """Process the log files of one or more bundle directories.

    Every known log file is split into entries, each entry into name=value
    fields, which are printed to stdout and summarized into a dictionary.

    \b
    Examples:
        mortimer process bundle/node1 --dict-path dict.json
        mortimer process bundle/node1 bundle/node2 --workers 4
        mortimer process bundle/node1 --emit-parts FULL,NAME --emit-types INT,STRING
    """
    setup_logging(verbose)

    parts = _parse_option(parse_parts, emit_parts, '--emit-parts')
    types = _parse_option(parse_types, emit_types, '--emit-types')
    values = _parse_option(parse_types, value_types, '--value-types')

    config = RunConfig(
        dirs=list(dirs),
        workers=workers,
        value_types=values,
        dict_path=dict_path,
        graph_path=graph_path,
    )

    sinks = []
    try:
        if not no_stdout:
            sinks.append(stdout_emitter(parts, types))
        if out_dir:
            sinks.extend(out_dir_emitters(out_dir))

        pipeline = Pipeline(config, sinks)
        state = pipeline.run()
    except (OSError, HistogramConfigError) as e:
        logger.error(f'Processing failed: {e}')
        click.echo(f'Error: {e}', err=True)
        sys.exit(1)
    finally:
        for sink in sinks:
            sink.close()

    if metrics_path:
        prom.write_metrics(metrics_path)

    click.echo(
        f'processed {state.files_processed} files, skipped {len(state.files_skipped)}, '
        f'{state.emit_progress} fields, {len(state.dictionary)} names',
        err=True,
    )
