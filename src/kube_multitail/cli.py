"""Main CLI entry point"""

import sys
from pathlib import Path

import click
import colorama

from . import __version__
from .config import ConfigManager, DEFAULT_CONFIG_PATH, DEFAULT_OUTPUT_FILE
from .exceptions import MissingAppsError
from .log import logger
from .logging_config import setup_logging
from .runner import RunOptions, run_tail
from .sources import KubectlClient
from .utils import error_handler, parse_since


# Value of a bare -o; argv can never contain NUL, so no file name collides with it
BARE_OUTPUT = "\0"


EPILOG = """\b
Without --since, logs are followed until Ctrl+C; with --since, historical
logs are collected and the command exits.

\b
Give -o after the app names (or as --output=FILE) so its optional value
is not mistaken for an app.

\b
Example: kube-multitail -n production -s 5m -g ERROR agent-service tez-api
"""


@click.command(epilog=EPILOG, context_settings={'help_option_names': ['-h', '--help']})
@click.argument('apps', nargs=-1)
@click.option('--namespace', '-n', help='Kubernetes namespace (default: current)')
@click.option('--since', '-s', help='Show logs since a relative time (e.g. 10m, 1h, 1d) and exit')
@click.option('--grep', '-g', multiple=True,
              help='Keep lines matching the pattern (case-insensitive, repeatable)')
@click.option('--errors', '-e', is_flag=True,
              help='Keep error-related lines (ERROR, WARN, Exception, failed, error)')
@click.option('--output', '-o', is_flag=False, flag_value=BARE_OUTPUT, default=None, metavar='[FILE]',
              help=f'Save logs to FILE (default: {DEFAULT_OUTPUT_FILE}) and enable quiet mode')
@click.option('--no-save', is_flag=True, help='Do not save logs to a file')
@click.option('--context', help='kubeconfig context to use')
@click.option('--kubectl', help='kubectl executable')
@click.option('--config', '-c', type=click.Path(dir_okay=False),
              default=str(DEFAULT_CONFIG_PATH), show_default=True, help='Config file location')
@click.option('--no-color', is_flag=True, help='Disable colored prefixes')
@click.option('--verbose', '-v', is_flag=True, help='Debug logging and a per-stream report')
@click.version_option(__version__, prog_name='kube-multitail')
@click.pass_context
@error_handler
def cli(ctx, apps, namespace, since, grep, errors, output, no_save, context,
        kubectl, config, no_color, verbose):
    """Tail logs from every pod and container of one or more apps."""
    setup_logging(verbose)

    if not apps:
        click.echo(ctx.get_help())
        raise MissingAppsError()

    cfg = ConfigManager(config).load().merged(
        namespace=namespace,
        context=context,
        kubectl=kubectl,
        color=False if no_color else None
    )
    logger.debug(f"Effective config: {cfg.to_dict()}")

    if output is not None:
        # A bare -o uses the configured file name
        output_file = Path(cfg.output_file if output == BARE_OUTPUT else output)
        console = False
    elif no_save:
        output_file = None
        console = True
    else:
        output_file = Path(cfg.output_file)
        console = True

    options = RunOptions(
        apps=tuple(apps),
        namespace=cfg.namespace,
        since=parse_since(since),
        grep=tuple(grep),
        errors=errors,
        output_file=output_file.resolve() if output_file else None,
        console=console,
        color=None if cfg.color else False,
        verbose=verbose,
        concurrency_limit=cfg.concurrency_limit,
        grace_period=cfg.grace_period,
        spinner_interval=cfg.spinner_interval
    )
    client = KubectlClient(cfg.kubectl, context=cfg.context, grace_period=cfg.grace_period)

    exit_code = run_tail(options, client)
    if exit_code:
        ctx.exit(exit_code)


def main(argv=None):
    """Console script entry point; usage errors exit with 1."""
    colorama.just_fix_windows_console()
    try:
        rv = cli.main(args=argv, prog_name='kube-multitail', standalone_mode=False)
    except click.UsageError as e:
        e.show()
        sys.exit(1)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except click.Abort:
        sys.exit(0)
    sys.exit(rv if isinstance(rv, int) else 0)


if __name__ == '__main__':
    main()
