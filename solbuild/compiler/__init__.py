from .artifacts import Artifact, ArtifactWriter, list_artifacts, read_artifact
from .build_data_model import BuildInfo, CacheFingerprint
from .cache_gate import CacheGate
from .compiler import BuildContext, BuildResult, ProjectCompiler, list_project_sources
from .compiler_driver import CompilerDriver
from .dependency_graph import DependencyGraph
from .diagnostics import DiagnosticClassification, DiagnosticReporter
from .exceptions import (
    ArtifactNameCollisionError,
    BuildError,
    BuildInProgressError,
    CompilationDiagnosticFailure,
    CompilerInvocationError,
    CycleReportedError,
    SourceResolutionError,
    UnresolvedImportError,
)
from .source_resolver import ImportSpecifier, ResolvedSourceUnit, SourceResolver
