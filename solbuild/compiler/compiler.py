import asyncio
import logging
import threading
import time
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Set, Tuple, Union

import rich.console
from pydantic import ValidationError

from solbuild.config import SolbuildConfig
from solbuild.core import get_logger
from solbuild.utils import get_package_version
from solbuild.utils.file_utils import is_relative_to

from .artifacts import Artifact, ArtifactWriter, read_artifact
from .build_data_model import BuildInfo, CacheFingerprint, SourceUnitInfo
from .cache_gate import CacheGate
from .compiler_driver import CompilerDriver
from .dependency_graph import DependencyGraph
from .diagnostics import DiagnosticReporter, print_diagnostics
from .exceptions import BuildInProgressError, CompilationDiagnosticFailure
from .solc_frontend import CompilerAbc, SolcInput, SolcOutput, SolcOutputError
from .source_resolver import SourceResolver

logger = get_logger(__name__)

_in_flight: Set[Path] = set()
_in_flight_lock = threading.Lock()


@contextmanager
def _exclusive_build(artifacts_path: Path):
    key = artifacts_path.resolve()
    with _in_flight_lock:
        if key in _in_flight:
            raise BuildInProgressError(
                f"Another build is already writing artifacts into {key}"
            )
        _in_flight.add(key)
    try:
        yield
    finally:
        with _in_flight_lock:
            _in_flight.discard(key)


def list_project_sources(config: SolbuildConfig) -> List[Path]:
    """
    Returns:
        All `*.sol` files under the sources directory that are not in any of the excluded paths, sorted.
    """
    sources_path = config.paths.sources
    if not sources_path.is_dir():
        return []

    return sorted(
        file
        for file in sources_path.rglob("*.sol")
        if file.is_file()
        and not any(
            is_relative_to(file, p) for p in config.compiler.solc.exclude_paths
        )
    )


@dataclass
class BuildContext:
    """
    Collaborators of a single build invocation. A new context is created for every build,
    so no resolved source unit outlives the build it was read for.
    """

    config: SolbuildConfig
    resolver: SourceResolver
    driver: CompilerDriver
    reporter: DiagnosticReporter
    writer: ArtifactWriter
    console: Optional[rich.console.Console] = None


@dataclass(frozen=True)
class BuildResult:
    """
    Attributes:
        skipped: True if the compiler was not invoked because the previous build is still valid.
        artifacts: Artifacts of the build, read back from disk if the build was skipped.
        warnings: Non-fatal diagnostics reported by the compiler.
        diagnostics: All diagnostics in the order the compiler emitted them.
        fingerprint: Fingerprint of the build, `None` if the project has no source files.
    """

    skipped: bool
    artifacts: Tuple[Artifact, ...] = ()
    warnings: Tuple[SolcOutputError, ...] = ()
    diagnostics: Tuple[SolcOutputError, ...] = ()
    fingerprint: Optional[CacheFingerprint] = None


class ProjectCompiler:
    """
    Runs the build pipeline: source listing, resolution, dependency graph, cache check, compilation,
    diagnostics classification and artifact writing. Any stage may be replaced by passing a custom
    implementation to the constructor.
    """

    __config: SolbuildConfig
    __frontend: Optional[CompilerAbc]
    __reporter: DiagnosticReporter
    __writer: ArtifactWriter
    __source_lister: Callable[[SolbuildConfig], List[Path]]

    def __init__(
        self,
        config: SolbuildConfig,
        *,
        frontend: Optional[CompilerAbc] = None,
        reporter: Optional[DiagnosticReporter] = None,
        writer: Optional[ArtifactWriter] = None,
        source_lister: Optional[Callable[[SolbuildConfig], List[Path]]] = None,
    ):
        self.__config = config
        self.__frontend = frontend
        self.__reporter = reporter if reporter is not None else DiagnosticReporter()
        self.__writer = writer if writer is not None else ArtifactWriter()
        self.__source_lister = (
            source_lister if source_lister is not None else list_project_sources
        )

    def create_context(
        self, console: Optional[rich.console.Console] = None
    ) -> BuildContext:
        return BuildContext(
            config=self.__config,
            resolver=SourceResolver(self.__config),
            driver=CompilerDriver(self.__config, self.__frontend),
            reporter=self.__reporter,
            writer=self.__writer,
            console=console,
        )

    async def compile(
        self,
        files: Optional[Iterable[Union[str, Path]]] = None,
        *,
        force: bool = False,
        console: Optional[rich.console.Console] = None,
        no_warnings: bool = False,
    ) -> BuildResult:
        """
        Build the project. If `files` is not given, all project source files are compiled.

        Cancelling the returned coroutine while the compiler is running waits for the compiler to finish,
        discards its output and re-raises the cancellation. Artifacts are never left half-written.

        Raises:
            BuildInProgressError: Another build writing into the same artifacts directory is running.
            SourceResolutionError: A source file or an import cannot be resolved.
            CycleReportedError: Import cycles were found and `compiler.forbid_import_cycles` is set.
            CompilerInvocationError: The compiler could not be run.
            CompilationDiagnosticFailure: The compiler reported errors.
            ArtifactNameCollisionError: Two contracts with the same name were compiled.
        """
        with _exclusive_build(self.__config.paths.artifacts):
            ctx = self.create_context(console)
            if files is None:
                paths = self.__source_lister(self.__config)
            else:
                paths = [Path(f) for f in files]
            return await self._build(ctx, paths, force=force, no_warnings=no_warnings)

    async def _build(
        self,
        ctx: BuildContext,
        paths: List[Path],
        *,
        force: bool,
        no_warnings: bool,
    ) -> BuildResult:
        console = ctx.console
        artifacts_path = ctx.config.paths.artifacts

        if len(paths) == 0:
            logger.info("No Solidity source files to compile")
            if console is not None:
                console.log("[yellow]No Solidity source files to compile[/]")
            return BuildResult(skipped=True)

        graph = self._resolve(ctx, paths)

        if not graph.is_acyclic():
            if ctx.config.compiler.forbid_import_cycles:
                graph.check_acyclic()
            # enumerating all cycles may be expensive
            if logger.isEnabledFor(logging.DEBUG):
                for cycle in graph.detect_cycles():
                    logger.debug(f"Import cycle: {' -> '.join([*cycle, cycle[0]])}")

        settings = ctx.driver.create_build_settings()
        compiler_version = await ctx.driver.get_compiler_version()
        fingerprint = CacheGate.compute_fingerprint(
            graph, ctx.config, settings, compiler_version
        )
        previous = CacheGate.load_build_info(artifacts_path)

        if not force:
            cached = self._load_cached(fingerprint, previous, artifacts_path)
            if cached is not None:
                if console is not None:
                    console.log(
                        f"[green]Build is up to date, {len(cached)} artifacts unchanged[/]"
                    )
                return BuildResult(
                    skipped=True, artifacts=cached, fingerprint=fingerprint
                )
        else:
            logger.debug("Forced rebuild, skipping cache check")

        standard_input = ctx.driver.build_input(graph, settings)
        output = await self._run_compiler(ctx, standard_input, len(graph))

        classification = ctx.reporter.classify(output)
        if console is not None:
            print_diagnostics(
                console, classification.diagnostics, no_warnings=no_warnings
            )
        if classification.fatal:
            raise CompilationDiagnosticFailure(
                classification.diagnostics,
                classification.errors,
                classification.warnings,
                classification.contracts_missing,
            )
        assert output.contracts is not None

        # no await from here on, artifacts and the build info are written as one batch
        ctx_manager = (
            console.status("[bold green]Writing build artifacts...[/]")
            if console
            else nullcontext()
        )
        start = time.perf_counter()
        with ctx_manager:
            artifacts = ctx.writer.create_artifacts(output.contracts)
            CacheGate.invalidate(artifacts_path)
            ctx.writer.write_artifacts(
                artifacts,
                artifacts_path,
                previous.artifacts if previous is not None else (),
            )
            CacheGate.store_build_info(
                BuildInfo(
                    fingerprint=fingerprint,
                    artifacts=[a.contract_name for a in artifacts],
                    source_units_info={
                        unit.global_name: SourceUnitInfo(
                            fs_path=unit.path, blake2b_hash=unit.content_hash
                        )
                        for unit in graph.flatten()
                    },
                    solbuild_version=get_package_version("solbuild"),
                    compiler_version=compiler_version,
                ),
                artifacts_path,
            )
        end = time.perf_counter()
        if console is not None:
            console.log(
                f"[green]Wrote {len(artifacts)} artifacts in [bold green]{end - start:.2f} s[/bold green][/]"
            )

        return BuildResult(
            skipped=False,
            artifacts=tuple(artifacts),
            warnings=classification.warnings,
            diagnostics=classification.diagnostics,
            fingerprint=fingerprint,
        )

    def _resolve(self, ctx: BuildContext, paths: List[Path]) -> DependencyGraph:
        console = ctx.console
        max_workers = ctx.config.compiler.max_workers

        ctx_manager = (
            console.status(f"[bold green]Resolving {len(paths)} source files...[/]")
            if console
            else nullcontext()
        )
        start = time.perf_counter()
        with ctx_manager:
            seeds = ctx.resolver.resolve_many(paths, max_workers=max_workers)
            graph = DependencyGraph.build_from_seeds(
                seeds, ctx.resolver, max_workers=max_workers
            )
        end = time.perf_counter()

        if console is not None:
            console.log(
                f"[green]Resolved {len(graph)} source units in [bold green]{end - start:.2f} s[/bold green][/]"
            )
        return graph

    def _load_cached(
        self,
        fingerprint: CacheFingerprint,
        build_info: Optional[BuildInfo],
        artifacts_path: Path,
    ) -> Optional[Tuple[Artifact, ...]]:
        if not CacheGate.is_valid(fingerprint, build_info, artifacts_path):
            logger.debug("Cache miss")
            return None
        assert build_info is not None

        try:
            artifacts = tuple(
                read_artifact(artifacts_path, name) for name in build_info.artifacts
            )
        except (OSError, ValidationError) as e:
            logger.debug(f"Cache miss, failed to read previous artifacts: {e}")
            return None

        logger.debug("Cache hit")
        return artifacts

    async def _run_compiler(
        self, ctx: BuildContext, standard_input: SolcInput, units_count: int
    ) -> SolcOutput:
        console = ctx.console
        ctx_manager = (
            console.status(f"[bold green]Compiling {units_count} files...[/]")
            if console
            else nullcontext()
        )
        start = time.perf_counter()

        with ctx_manager:
            task = asyncio.ensure_future(ctx.driver.compile(standard_input))
            try:
                output = await asyncio.shield(task)
            except asyncio.CancelledError:
                logger.debug("Build cancelled, waiting for the compiler to finish")
                await asyncio.wait([task])
                if not task.cancelled() and task.exception() is not None:
                    logger.debug(
                        f"Compiler failed after cancellation: {task.exception()}"
                    )
                raise

        end = time.perf_counter()
        if console is not None:
            console.log(
                f"[green]Compiled {units_count} files in [bold green]{end - start:.2f} s[/bold green][/]"
            )
        return output
