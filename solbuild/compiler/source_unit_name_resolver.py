import itertools
from pathlib import Path
from typing import List, Optional

from solbuild.config import SolbuildConfig
from solbuild.config.data_model import SolcRemapping

from .exceptions import SourceResolutionError


def _strip_trailing_empty(parts: List[str]) -> None:
    while len(parts) > 0 and parts[-1] == "":
        parts.pop()


class SourceUnitNameResolver:
    """
    Converts import strings into source unit names (global names of source files) following
    https://docs.soliditylang.org/en/latest/path-resolution.html.
    """

    __config: SolbuildConfig

    def __init__(self, config: SolbuildConfig):
        self.__config = config

    def apply_remapping(self, parent_source_unit: str, source_unit_name: str) -> str:
        """
        Apply at most one remapping to the source unit name. The remapping with the longest context wins,
        then the one with the longest prefix. Among equal candidates, the one specified last wins.
        """
        selected: Optional[SolcRemapping] = None
        for remapping in self.__config.compiler.solc.remappings:
            context, prefix, _ = remapping
            if context is not None and not parent_source_unit.startswith(context):
                continue
            if not source_unit_name.startswith(prefix):
                continue

            if selected is None or (len(context or ""), len(prefix)) >= (
                len(selected.context or ""),
                len(selected.prefix),
            ):
                selected = remapping

        if selected is None:
            return source_unit_name
        return (selected.target or "") + source_unit_name[len(selected.prefix) :]

    @staticmethod
    def _join_relative(parent_source_unit: str, import_str: str) -> str:
        import_parts: List[str] = []
        for part in import_str.split("/"):
            if part in {"", "."}:
                continue
            if part == ".." and len(import_parts) > 0 and import_parts[-1] != "..":
                import_parts.pop()
            else:
                import_parts.append(part)

        # directory of the importing unit, `..` segments of the parent name are kept as they are
        parent_parts = parent_source_unit.split("/")
        _strip_trailing_empty(parent_parts)
        if len(parent_parts) > 0:
            parent_parts.pop()
        _strip_trailing_empty(parent_parts)

        while len(import_parts) > 0 and import_parts[0] == "..":
            import_parts.pop(0)
            _strip_trailing_empty(parent_parts)
            if len(parent_parts) > 0:
                parent_parts.pop()

        return "/".join(parent_parts + import_parts)

    @staticmethod
    def is_relative_import(import_str: str) -> bool:
        return import_str.startswith(("./", "../")) or import_str in {".", ".."}

    def resolve_import(self, parent_source_unit: str, import_str: str) -> str:
        """
        Resolve a source unit name of an import in the file with given source unit name.
        """
        if self.is_relative_import(import_str):
            source_unit_name = self._join_relative(parent_source_unit, import_str)
        else:
            source_unit_name = import_str
        return self.apply_remapping(parent_source_unit, source_unit_name)

    def resolve_cmdline_arg(self, arg: str) -> str:
        """
        Return a source unit name of a project source file given by its system path.
        """
        path = Path(arg).resolve()
        for include_path in itertools.chain(
            [self.__config.project_root_path],
            sorted(self.__config.compiler.solc.include_paths),
        ):
            try:
                return path.relative_to(include_path).as_posix()
            except ValueError:
                pass

        raise SourceResolutionError(
            f"File {arg} is not in the project root dir or include paths."
        )
