from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List, Sequence, Tuple

if TYPE_CHECKING:
    from .solc_frontend import SolcOutputError


class BuildError(Exception):
    """
    Base class for all errors aborting a build.
    """


class SourceResolutionError(BuildError):
    """
    A source file cannot be turned into a resolved source unit.
    """


class UnresolvedImportError(SourceResolutionError):
    """
    An import directive cannot be mapped to an existing file.
    """

    def __init__(self, importing_unit: str, import_str: str, reason: str):
        super().__init__(
            f"Unable to resolve import `{import_str}` in `{importing_unit}`: {reason}"
        )
        self.importing_unit = importing_unit
        self.import_str = import_str


class CycleReportedError(BuildError):
    """
    The import graph contains cycles and the project is configured to forbid them.
    """

    def __init__(self, cycles: Sequence[Sequence[str]]):
        message = "Found cyclic imports:"
        for no, cycle in enumerate(cycles):
            message += f"\nCycle {no}: " + " -> ".join([*cycle, cycle[0]])
        super().__init__(message)
        self.cycles: List[List[str]] = [list(c) for c in cycles]


class CompilerInvocationError(BuildError):
    """
    The compiler process could not be launched or its output does not follow the standard JSON schema.
    """


class CompilationDiagnosticFailure(BuildError):
    """
    The compiler reported error-severity diagnostics or did not produce any contracts.
    Carries all diagnostics in the order the compiler emitted them.
    """

    def __init__(
        self,
        diagnostics: Iterable[SolcOutputError],
        errors: Iterable[SolcOutputError],
        warnings: Iterable[SolcOutputError],
        contracts_missing: bool,
    ):
        self.diagnostics: Tuple[SolcOutputError, ...] = tuple(diagnostics)
        self.errors: Tuple[SolcOutputError, ...] = tuple(errors)
        self.warnings: Tuple[SolcOutputError, ...] = tuple(warnings)
        self.contracts_missing = contracts_missing

        if len(self.errors) > 0:
            message = f"Compilation failed with {len(self.errors)} error(s)"
        else:
            message = "Compilation failed"
        if contracts_missing:
            message += ", the compiler did not produce any contracts"
        super().__init__(message)


class ArtifactNameCollisionError(BuildError):
    """
    Two contracts with the same name are defined in different source files.
    """

    def __init__(self, contract_name: str, source_paths: Iterable[str]):
        self.contract_name = contract_name
        self.source_paths: Tuple[str, ...] = tuple(source_paths)
        super().__init__(
            f"Contract name `{contract_name}` is defined in multiple source files:\n"
            + "\n".join(self.source_paths)
        )


class BuildInProgressError(BuildError):
    """
    Another build writing into the same artifacts directory is already running.
    """
