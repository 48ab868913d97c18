from __future__ import annotations

import asyncio
import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Tuple

import rich_click as click
from click.core import Context

from solbuild.core.enums import EvmVersionEnum

if TYPE_CHECKING:
    from solbuild.config import SolbuildConfig


def collect_sol_files(config: SolbuildConfig, paths: Tuple[str, ...]) -> List[Path]:
    from solbuild.compiler import list_project_sources

    from ..utils.file_utils import is_relative_to

    if len(paths) == 0:
        return list_project_sources(config)

    sol_files = set()
    for p in paths:
        path = Path(p)
        if path.is_file():
            if not path.match("*.sol"):
                raise click.BadParameter(f"Argument `{p}` is not a Solidity file.")
            sol_files.add(path.resolve())
        elif path.is_dir():
            for file in path.rglob("*.sol"):
                if (
                    not any(
                        is_relative_to(file.resolve(), e)
                        for e in config.compiler.solc.exclude_paths
                    )
                    and file.is_file()
                ):
                    sol_files.add(file.resolve())
        else:
            raise click.BadParameter(f"Argument `{p}` is not a file or directory.")
    return sorted(sol_files)


async def compile(
    config: SolbuildConfig,
    paths: Tuple[str, ...],
    no_warnings: bool,
    force: bool,
) -> None:
    from solbuild.compiler import (
        BuildError,
        CompilationDiagnosticFailure,
        ProjectCompiler,
    )

    from .console import console

    start = time.perf_counter()
    with console.status("[bold green]Searching for *.sol files...[/]"):
        sol_files = collect_sol_files(config, paths)
    end = time.perf_counter()
    console.log(
        f"[green]Found {len(sol_files)} *.sol files in [bold green]{end - start:.2f} s[/bold green][/]"
    )

    compiler = ProjectCompiler(config)
    try:
        result = await compiler.compile(
            sol_files, force=force, console=console, no_warnings=no_warnings
        )
    except CompilationDiagnosticFailure as e:
        console.print(str(e), style="red", markup=False)
        sys.exit(2)
    except BuildError as e:
        console.print(str(e), style="red", markup=False)
        sys.exit(1)

    if not result.skipped:
        console.log(
            f"[green]Build finished with {len(result.warnings)} warning(s)[/green]"
        )


@click.command(name="compile")
@click.argument("paths", nargs=-1, type=click.Path(exists=True))
@click.option(
    "--no-warnings",
    is_flag=True,
    default=False,
    help="Do not print compilation warnings.",
)
@click.option(
    "--force",
    "-f",
    is_flag=True,
    default=False,
    help="Force recompile the project even if the previous build is up to date.",
)
@click.option(
    "--evm-version",
    type=click.Choice(
        ["auto"] + [v.value for v in EvmVersionEnum], case_sensitive=False
    ),
    help="Version of the EVM to compile for. Use 'auto' to let the solc decide.",
    envvar="SOLBUILD_COMPILE_EVM_VERSION",
    show_envvar=True,
)
@click.option(
    "--optimizer-enabled/--no-optimizer-enabled",
    is_flag=True,
    required=False,
    default=None,
    help="Enforce optimizer enabled or disabled.",
    envvar="SOLBUILD_COMPILE_OPTIMIZER_ENABLED",
    show_envvar=True,
)
@click.option(
    "--optimizer-runs",
    type=int,
    help="Number of optimizer runs.",
    envvar="SOLBUILD_COMPILE_OPTIMIZER_RUNS",
    show_envvar=True,
)
@click.option(
    "--remapping",
    "remappings",
    multiple=True,
    type=str,
    help="Remappings for solc.",
    envvar="SOLBUILD_COMPILE_REMAPPINGS",
    show_envvar=True,
)
@click.option(
    "--solc-path",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to the solc executable.",
    envvar="SOLBUILD_COMPILE_SOLC_PATH",
    show_envvar=True,
)
@click.pass_context
def run_compile(
    ctx: Context,
    paths: Tuple[str, ...],
    no_warnings: bool,
    force: bool,
    evm_version: Optional[str],
    optimizer_enabled: Optional[bool],
    optimizer_runs: Optional[int],
    remappings: Tuple[str, ...],
    solc_path: Optional[str],
) -> None:
    """Compile the project."""
    from solbuild.config import SolbuildConfig

    config = SolbuildConfig(
        local_config_path=ctx.obj.get("local_config_path", None)
    )
    config.load_configs()

    new_options = {}
    deleted_options = []

    if evm_version is not None:
        if evm_version == "auto":
            deleted_options.append(("compiler", "solc", "evm_version"))
        else:
            new_options["evm_version"] = evm_version
    if optimizer_enabled is not None:
        if "optimizer" not in new_options:
            new_options["optimizer"] = {}
        new_options["optimizer"]["enabled"] = optimizer_enabled
    if optimizer_runs is not None:
        if "optimizer" not in new_options:
            new_options["optimizer"] = {}
        new_options["optimizer"]["runs"] = optimizer_runs
    if remappings:
        new_options["remappings"] = remappings
    if solc_path is not None:
        new_options["path"] = str(Path(solc_path).resolve())

    config.update({"compiler": {"solc": new_options}}, deleted_options)

    asyncio.run(compile(config, paths, no_warnings, force))
