from typing import Optional

from solbuild.config import SolbuildConfig
from solbuild.core import get_logger

from .dependency_graph import DependencyGraph
from .exceptions import SourceResolutionError
from .solc_frontend import (
    CompilerAbc,
    SolcFrontend,
    SolcInput,
    SolcInputLanguageEnum,
    SolcInputOptimizerSettings,
    SolcInputSettings,
    SolcInputSource,
    SolcOutput,
    SolcOutputSelectionEnum,
)

logger = get_logger(__name__)

ARTIFACT_OUTPUT_SELECTION = [
    SolcOutputSelectionEnum.ABI,
    SolcOutputSelectionEnum.METADATA,
    SolcOutputSelectionEnum.EVM_BYTECODE,
    SolcOutputSelectionEnum.EVM_DEPLOYED_BYTECODE,
]


class CompilerDriver:
    __config: SolbuildConfig
    __frontend: CompilerAbc

    def __init__(
        self, config: SolbuildConfig, frontend: Optional[CompilerAbc] = None
    ):
        self.__config = config
        self.__frontend = frontend if frontend is not None else SolcFrontend(config)

    def create_build_settings(self) -> SolcInputSettings:
        solc_config = self.__config.compiler.solc
        return SolcInputSettings(
            remappings=[str(remapping) for remapping in solc_config.remappings],
            optimizer=SolcInputOptimizerSettings(
                enabled=solc_config.optimizer.enabled,
                runs=solc_config.optimizer.runs,
            ),
            evm_version=solc_config.evm_version,
            via_IR=solc_config.via_IR,
            output_selection={"*": {"*": list(ARTIFACT_OUTPUT_SELECTION)}},
        )

    @staticmethod
    def build_input(graph: DependencyGraph, settings: SolcInputSettings) -> SolcInput:
        """
        Serialize every unit of the graph into the standard JSON input. Sources are inserted in the
        `flatten` order so that the serialized input is reproducible.
        """
        sources = {}
        for unit in graph.flatten():
            try:
                content = unit.content.decode("utf-8")
            except UnicodeDecodeError as e:
                raise SourceResolutionError(
                    f"Source file {unit.path} is not valid UTF-8"
                ) from e
            sources[unit.global_name] = SolcInputSource(content=content)

        return SolcInput(
            language=SolcInputLanguageEnum.SOLIDITY,
            sources=sources,
            settings=settings,
        )

    async def get_compiler_version(self) -> Optional[str]:
        return await self.__frontend.get_version()

    async def compile(self, standard_input: SolcInput) -> SolcOutput:
        logger.debug(f"Compiling {len(standard_input.sources)} source units")
        return await self.__frontend.compile(standard_input)
