import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from solbuild.config import SolbuildConfig
from solbuild.core import get_logger
from solbuild.regex_parser import SoliditySourceParser

from .exceptions import SourceResolutionError, UnresolvedImportError
from .source_path_resolver import SourcePathResolver
from .source_unit_name_resolver import SourceUnitNameResolver

logger = get_logger(__name__)


@dataclass(frozen=True)
class ImportSpecifier:
    """
    Attributes:
        raw: Import string exactly as written in the import directive.
        source_unit_name: Source unit name the import string resolves to (after remappings).
        target_path: System path of the imported file, `None` if it could not be found.
    """

    raw: str
    source_unit_name: str
    target_path: Optional[Path] = None


@dataclass(frozen=True, eq=False)
class ResolvedSourceUnit:
    """
    Source file after path and content resolution. Identity is the source unit name (`global_name`),
    two units with the same name and content hash are equal.

    Attributes:
        path: System path of the source file.
        content: Raw file contents.
        content_hash: Hex-encoded 256-bit BLAKE2b hash of the file contents.
        global_name: Source unit name, stable across relative and absolute path variants.
        imports: Import directives declared in the file, in declaration order.
    """

    path: Path
    content: bytes = field(repr=False)
    content_hash: str
    global_name: str
    imports: Tuple[ImportSpecifier, ...] = ()

    def __members(self) -> Tuple:
        return self.global_name, self.content_hash

    def __eq__(self, other):
        if isinstance(other, self.__class__):
            return self.__members() == other.__members()
        return NotImplemented

    def __hash__(self):
        return hash(self.__members())


class SourceResolver:
    """
    Reads source files, hashes them and scans their import directives. Resolved units are cached by
    source unit name, so a file reached through several import edges is resolved only once.
    The cache is guarded by a lock; `resolve` and `resolve_import` may be called from multiple threads.
    """

    __source_unit_name_resolver: SourceUnitNameResolver
    __source_path_resolver: SourcePathResolver

    _units: Dict[str, ResolvedSourceUnit]
    _lock: threading.Lock

    def __init__(self, config: SolbuildConfig):
        self.__source_unit_name_resolver = SourceUnitNameResolver(config)
        self.__source_path_resolver = SourcePathResolver(config)
        self._units = {}
        self._lock = threading.Lock()

    @property
    def units(self) -> Mapping[str, ResolvedSourceUnit]:
        with self._lock:
            return MappingProxyType(dict(self._units))

    def _load(self, global_name: str, path: Path) -> ResolvedSourceUnit:
        try:
            imports, h, content = SoliditySourceParser.parse(path)
        except OSError as e:
            raise SourceResolutionError(f"Unable to read {path}: {e}") from e
        except ValueError as e:
            raise SourceResolutionError(f"Unable to parse {path}: {e}") from e

        specifiers: List[ImportSpecifier] = []
        for import_str in imports:
            import_unit_name = self.__source_unit_name_resolver.resolve_import(
                global_name, import_str
            )
            try:
                target_path = self.__source_path_resolver.resolve(
                    import_unit_name, global_name
                )
            except UnresolvedImportError:
                logger.debug(f"Import `{import_str}` in `{global_name}` not found")
                target_path = None
            specifiers.append(ImportSpecifier(import_str, import_unit_name, target_path))

        return ResolvedSourceUnit(path, content, h.hex(), global_name, tuple(specifiers))

    def _resolve_unit(self, global_name: str, path: Path) -> ResolvedSourceUnit:
        with self._lock:
            unit = self._units.get(global_name)

        if unit is None:
            # read outside of the lock, a concurrent duplicate read is discarded below
            loaded = self._load(global_name, path)
            with self._lock:
                unit = self._units.setdefault(global_name, loaded)

        if unit.path != path:
            raise SourceResolutionError(
                f"Same source unit name `{global_name}` for multiple source files:\n{unit.path}\n{path}"
            )
        return unit

    def resolve(self, path: Union[str, Path]) -> ResolvedSourceUnit:
        """
        Resolve a project source file given by its system path.
        """
        try:
            path = Path(path).resolve(strict=True)
        except FileNotFoundError as e:
            raise SourceResolutionError(f"File {path} does not exist.") from e
        if not path.is_file():
            raise SourceResolutionError(f"{path} is not a file.")

        global_name = self.__source_unit_name_resolver.resolve_cmdline_arg(str(path))
        return self._resolve_unit(global_name, path)

    def resolve_import(
        self, from_unit: ResolvedSourceUnit, specifier: ImportSpecifier
    ) -> ResolvedSourceUnit:
        """
        Resolve the unit imported by `from_unit` through `specifier`.

        Raises:
            UnresolvedImportError: The import cannot be mapped to an existing file.
        """
        target_path = specifier.target_path
        if target_path is None:
            # repeat the lookup so that the error explains why the import is unresolved
            target_path = self.__source_path_resolver.resolve(
                specifier.source_unit_name, from_unit.global_name
            )
        return self._resolve_unit(specifier.source_unit_name, target_path)

    def resolve_many(
        self, paths: Iterable[Union[str, Path]], max_workers: Optional[int] = None
    ) -> List[ResolvedSourceUnit]:
        """
        Resolve multiple project source files, reading them on a thread pool. Units are returned in the order
        of `paths`, duplicates included.
        """
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            return list(executor.map(self.resolve, paths))
