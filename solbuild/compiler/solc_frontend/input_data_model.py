from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from solbuild.core.enums import EvmVersionEnum
from solbuild.utils import StrEnum

__doc__ = """Solc standard JSON input data model as described by https://docs.soliditylang.org/en/latest/using-the-compiler.html#input-description"""


def _to_camel(s: str) -> str:
    split = s.split("_")
    return split[0].lower() + "".join([w.capitalize() for w in split[1:]])


class SolcInputModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=_to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class SolcInputLanguageEnum(StrEnum):
    SOLIDITY = "Solidity"
    YUL = "Yul"


class SolcOutputSelectionEnum(StrEnum):
    ABI = "abi"
    METADATA = "metadata"
    DEVDOC = "devdoc"
    USERDOC = "userdoc"
    STORAGE_LAYOUT = "storageLayout"
    EVM_BYTECODE = "evm.bytecode"
    EVM_DEPLOYED_BYTECODE = "evm.deployedBytecode"
    EVM_METHOD_IDENTIFIERS = "evm.methodIdentifiers"


class SolcInputSource(SolcInputModel):
    content: str
    """Literal contents of the source file."""


class SolcInputOptimizerSettings(SolcInputModel):
    enabled: bool = False
    runs: int = 200


class SolcInputSettings(SolcInputModel):
    remappings: List[str] = []
    optimizer: SolcInputOptimizerSettings = Field(
        default_factory=SolcInputOptimizerSettings
    )
    evm_version: Optional[EvmVersionEnum] = None
    via_IR: Optional[bool] = Field(default=None, alias="viaIR")
    output_selection: Dict[str, Dict[str, List[SolcOutputSelectionEnum]]] = {}
    """source unit name -> (contract name -> output selection), `*` matches everything"""


class SolcInput(SolcInputModel):
    language: SolcInputLanguageEnum = SolcInputLanguageEnum.SOLIDITY
    sources: Dict[str, SolcInputSource] = {}
    """source unit name -> source"""
    settings: SolcInputSettings = Field(default_factory=SolcInputSettings)
