from typing import Iterable, List, NamedTuple, Tuple

import rich.console
import rich.panel

from solbuild.core import get_logger

from .solc_frontend import SolcOutput, SolcOutputError, SolcOutputErrorSeverityEnum

logger = get_logger(__name__)

NON_FATAL_SEVERITIES = {
    SolcOutputErrorSeverityEnum.WARNING.value,
    SolcOutputErrorSeverityEnum.INFO.value,
}


class DiagnosticClassification(NamedTuple):
    fatal: bool
    errors: Tuple[SolcOutputError, ...]
    warnings: Tuple[SolcOutputError, ...]
    diagnostics: Tuple[SolcOutputError, ...]
    """All diagnostics in the order the compiler emitted them."""
    contracts_missing: bool


class DiagnosticReporter:
    """
    Splits compiler diagnostics into errors and warnings. Performs no I/O, the orchestrator decides
    what to do with the classification.
    """

    @staticmethod
    def is_error(diagnostic: SolcOutputError) -> bool:
        # unknown severities are treated as errors
        return diagnostic.severity not in NON_FATAL_SEVERITIES

    def classify(self, output: SolcOutput) -> DiagnosticClassification:
        errors: List[SolcOutputError] = []
        warnings: List[SolcOutputError] = []

        for diagnostic in output.errors:
            if self.is_error(diagnostic):
                if diagnostic.severity != SolcOutputErrorSeverityEnum.ERROR.value:
                    logger.warning(
                        f"Unknown diagnostic severity `{diagnostic.severity}` treated as error"
                    )
                errors.append(diagnostic)
            else:
                warnings.append(diagnostic)

        contracts_missing = output.contracts is None
        return DiagnosticClassification(
            fatal=len(errors) > 0 or contracts_missing,
            errors=tuple(errors),
            warnings=tuple(warnings),
            diagnostics=tuple(output.errors),
            contracts_missing=contracts_missing,
        )


def print_diagnostics(
    console: rich.console.Console,
    diagnostics: Iterable[SolcOutputError],
    *,
    no_warnings: bool = False,
) -> None:
    for diagnostic in diagnostics:
        error = DiagnosticReporter.is_error(diagnostic)
        if not error and no_warnings:
            continue
        console.print(
            rich.panel.Panel(
                diagnostic.text,
                highlight=True,
                border_style="red" if error else "yellow",
            )
        )
