import os
import platform
import reprlib
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, Optional, Set, Tuple, Union

import networkx as nx
import tomli

from solbuild.core import get_logger
from solbuild.utils import change_cwd

from .data_model import CompilerConfig, PathsConfig, TopLevelConfig

logger = get_logger(__name__)


class UnsupportedPlatformError(Exception):
    """
    The current platform is not supported. Supported platforms are: Linux, macOS, Windows.
    """


class SolbuildConfig:
    """
    Solbuild configuration class. This class is responsible for loading, storing and merging all config options.
    The build pipeline only ever reads from it.
    """

    __local_config_path: Path
    __project_root_path: Path
    __global_config_path: Path
    __loaded_files: Set[Path]
    __config_raw: Dict[str, Any]
    __config: TopLevelConfig

    def __init__(
        self,
        *_,
        local_config_path: Optional[Union[str, Path]] = None,
        project_root_path: Optional[Union[str, Path]] = None,
    ):
        """
        Initialize the `SolbuildConfig` class. If `project_root_path` is not provided, the current working directory is used.
        If `local_config_path` is not provided, the `solbuild.toml` file in the project root directory is used.
        """
        system = platform.system()

        try:
            self.__global_config_path = (
                Path(os.environ["XDG_CONFIG_HOME"]) / "solbuild" / "config.toml"
            )
        except KeyError:
            if system in {"Linux", "Darwin"}:
                self.__global_config_path = (
                    Path.home() / ".config" / "solbuild" / "config.toml"
                )
            elif system == "Windows":
                self.__global_config_path = (
                    Path(os.environ["LOCALAPPDATA"]) / "solbuild" / "config.toml"
                )
            else:
                raise UnsupportedPlatformError(f"Platform `{system}` is not supported.")

        if project_root_path is None:
            self.__project_root_path = Path.cwd().resolve()
        else:
            self.__project_root_path = Path(project_root_path).resolve()

        if local_config_path is None:
            self.__local_config_path = self.__project_root_path / "solbuild.toml"
        else:
            self.__local_config_path = Path(local_config_path).resolve()

        if not self.__project_root_path.is_dir():
            raise ValueError(
                f"Project root path '{self.__project_root_path}' is not a directory."
            )

        self.__loaded_files = set()
        with change_cwd(self.__project_root_path):
            self.__config = TopLevelConfig()
        self.__config_raw = self.__config.model_dump(by_alias=True)

    def __str__(self) -> str:
        """
        Returns:
            JSON representation of the config.
        """
        return self.__config.model_dump_json(by_alias=True, exclude_unset=True)

    def __repr__(self) -> str:
        config_dict = reprlib.repr(self.__config_raw)
        return f"{self.__class__.__name__}.fromdict({config_dict}, project_root_path={repr(self.__project_root_path)})"

    def __merge_dicts(self, old: Dict[str, Any], new: Dict[str, Any]) -> None:
        for k, v in new.items():
            if k not in old.keys():
                old[k] = v
            else:
                if isinstance(v, dict) and isinstance(old[k], dict):
                    self.__merge_dicts(old[k], new[k])
                else:
                    old[k] = v

    def __load_file(
        self,
        parent: Optional[Path],
        path: Path,
        new_config: Dict[str, Any],
        graph: nx.DiGraph,
    ) -> None:
        if not path.is_file():
            if parent is None:
                logger.info(f"Config file '{path}' does not exist.")
            else:
                logger.warning(
                    f"Config file '{path}' loaded from '{parent}' does not exist."
                )
            return

        # relative paths in a config file are relative to the file itself
        with change_cwd(path.parent):
            with path.open("rb") as f:
                loaded_config = tomli.load(f)

            graph.add_node(path)
            if parent is not None:
                graph.add_edge(parent, path)

            if not nx.is_directed_acyclic_graph(graph):
                cycles = list(nx.simple_cycles(graph))
                error = "Found cyclic config subconfigs:"
                for no, cycle in enumerate(cycles):
                    error += f"\nCycle {no}:\n"
                    error += "\n".join(str(p) for p in cycle)
                raise ValueError(error)

            parsed_config = TopLevelConfig.model_validate(loaded_config)

            # dump back so that all stored paths are absolute
            loaded_config = parsed_config.model_dump(by_alias=True, exclude_unset=True)
            self.__merge_dicts(new_config, loaded_config)

            for subconfig_path in parsed_config.subconfigs:
                self.__load_file(path, subconfig_path, new_config, graph)

    @classmethod
    def fromdict(
        cls,
        config_dict: Dict[str, Any],
        *,
        project_root_path: Optional[Union[str, Path]] = None,
    ) -> "SolbuildConfig":
        """
        Args:
            config_dict: Dictionary containing the config options.
            project_root_path: Path to the project root directory.

        Returns:
            Instance of the `SolbuildConfig` class with the provided config options.
        """
        instance = cls(project_root_path=project_root_path)
        with change_cwd(instance.project_root_path):
            parsed_config = TopLevelConfig.model_validate(config_dict)
        instance.__config_raw = parsed_config.model_dump(
            by_alias=True, exclude_unset=True
        )
        instance.__config = parsed_config
        return instance

    def todict(self) -> Dict[str, Any]:
        return self.__config_raw

    def update(
        self,
        config_dict: Dict[str, Any],
        deleted_options: Iterable[Tuple[str, ...]] = (),
    ) -> None:
        """
        Update the config with a new dictionary.

        Args:
            config_dict: Dictionary containing the new config options.
            deleted_options: Config option paths (tuples of keys) that should be reset to their default values.
        """
        with change_cwd(self.project_root_path):
            parsed_config = TopLevelConfig.model_validate(config_dict)
        parsed_config_raw = parsed_config.model_dump(by_alias=True, exclude_unset=True)

        config_raw = deepcopy(self.__config_raw)
        self.__merge_dicts(config_raw, parsed_config_raw)

        for deleted_option in deleted_options:
            conf = config_raw
            for segment in deleted_option[:-1]:
                conf = conf.get(segment, {})
            conf.pop(deleted_option[-1], None)

        with change_cwd(self.project_root_path):
            self.__config = TopLevelConfig.model_validate(config_raw)
        self.__config_raw = config_raw

    def load_configs(self) -> None:
        """
        Clear any previous config options and load both the global config file `config.toml`
        and the project specific local config file.
        """
        self.__loaded_files = set()
        with change_cwd(self.__project_root_path):
            self.__config = TopLevelConfig()
        self.__config_raw = self.__config.model_dump(by_alias=True)

        self.load(self.global_config_path)
        self.load(self.local_config_path)

    def load(self, path: Path) -> None:
        """
        Load config from the provided file path. Any already loaded config options are overridden by the options loaded
        from this file.
        """
        subconfigs_graph = nx.DiGraph()
        config_raw_copy = deepcopy(self.__config_raw)

        self.__load_file(None, path.resolve(), config_raw_copy, subconfigs_graph)

        with change_cwd(self.__project_root_path):
            config = TopLevelConfig.model_validate(config_raw_copy)
        self.__config_raw = config_raw_copy
        self.__config = config
        self.__loaded_files.update(subconfigs_graph.nodes)

    @property
    def loaded_files(self) -> FrozenSet[Path]:
        """
        Returns:
            All loaded config files, including files that were loaded using the `subconfigs` config key.
        """
        return frozenset(self.__loaded_files)

    @property
    def local_config_path(self) -> Path:
        return self.__local_config_path

    @property
    def global_config_path(self) -> Path:
        return self.__global_config_path

    @property
    def project_root_path(self) -> Path:
        return self.__project_root_path

    @property
    def compiler(self) -> CompilerConfig:
        """
        Returns:
            Compiler config options.
        """
        return self.__config.compiler

    @property
    def paths(self) -> PathsConfig:
        """
        Returns:
            Sources and artifacts directories.
        """
        return self.__config.paths
