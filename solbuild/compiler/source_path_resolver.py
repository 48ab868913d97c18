import itertools
from pathlib import Path
from typing import Iterator

from solbuild.config import SolbuildConfig

from .exceptions import UnresolvedImportError


class SourcePathResolver:
    __config: SolbuildConfig

    def __init__(self, config: SolbuildConfig):
        self.__config = config

    def _search_paths(self) -> Iterator[Path]:
        return itertools.chain(
            [self.__config.project_root_path],
            sorted(self.__config.compiler.solc.include_paths),
        )

    def resolve(self, source_unit_name: str, parent_source_unit: str) -> Path:
        """
        Return a system path for the given source unit name. The name is looked up in the project root dir
        and in every directory listed in the `include_paths` config option.
        Exactly one of them must contain the file.
        """
        matching_paths = []
        for include_path in self._search_paths():
            path = include_path / source_unit_name
            if path.is_file():
                path = path.resolve()
                if path not in matching_paths:
                    matching_paths.append(path)

        if len(matching_paths) == 0:
            raise UnresolvedImportError(
                parent_source_unit,
                source_unit_name,
                "file not found in the project root dir or include paths",
            )

        if len(matching_paths) > 1:
            raise UnresolvedImportError(
                parent_source_unit,
                source_unit_name,
                "ambiguous source unit name, it matches:\n"
                + "\n".join(str(p) for p in matching_paths),
            )
        return matching_paths[0]
