import sys
from pathlib import Path
from typing import Optional

import rich_click as click
from click.core import Context

from .compile import run_compile
from .console import console


def excepthook(debug: bool, type, value, traceback):
    from rich.console import Console
    from rich.traceback import Traceback

    traceback_console = Console(stderr=True)
    traceback_console.print(
        Traceback.from_exception(
            type,
            value,
            traceback,
            suppress=[click],
            show_locals=debug,
        )
    )


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--debug",
    "-d",
    is_flag=True,
    default=False,
    help="Set logging level to debug.",
)
@click.option(
    "--config",
    required=False,
    type=click.Path(exists=False, dir_okay=False),
    envvar="SOLBUILD_CONFIG",
    help="Path to the local config file.",
)
@click.version_option(message="%(version)s", package_name="solbuild")
@click.pass_context
def main(ctx: Context, debug: bool, config: Optional[str]) -> None:
    from solbuild.core import configure_logging, set_debug

    configure_logging(console)
    sys.excepthook = lambda type, value, traceback: excepthook(
        debug, type, value, traceback
    )

    if debug:
        set_debug(True)

    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["local_config_path"] = (
        Path(config).resolve() if config is not None else None
    )


main.add_command(run_compile)


@main.command(name="config")
@click.pass_context
def config(ctx: Context) -> None:
    """Print loaded config options in JSON format."""
    from solbuild.config import SolbuildConfig

    config = SolbuildConfig(local_config_path=ctx.obj.get("local_config_path", None))
    config.load_configs()
    console.print_json(str(config))


if __name__ == "__main__":
    main()
