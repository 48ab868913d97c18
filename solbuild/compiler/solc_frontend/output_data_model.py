from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from solbuild.utils import StrEnum

__doc__ = """Solc standard JSON output data model as described by https://docs.soliditylang.org/en/latest/using-the-compiler.html#output-description
Only the parts needed to classify diagnostics and persist artifacts are modelled, other keys are kept as extra fields."""


def _to_camel(s: str) -> str:
    split = s.split("_")
    return split[0].lower() + "".join([w.capitalize() for w in split[1:]])


class SolcOutputModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=_to_camel,
        populate_by_name=True,
        extra="allow",
        frozen=True,
    )


class SolcOutputErrorSeverityEnum(StrEnum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class SolcOutputErrorSourceLocation(SolcOutputModel):
    file: str
    start: int
    end: int


class SolcOutputError(SolcOutputModel):
    """
    Single diagnostic emitted by the compiler. `severity` is kept as a plain string, unknown severities
    are classified by the diagnostic reporter.
    """

    severity: str
    message: str = ""
    formatted_message: Optional[str] = None
    type: Optional[str] = None
    component: Optional[str] = None
    error_code: Optional[str] = None
    source_location: Optional[SolcOutputErrorSourceLocation] = None

    @property
    def text(self) -> str:
        return self.formatted_message if self.formatted_message is not None else self.message


class SolcOutputEvmBytecodeLinkReferencesInfo(SolcOutputModel):
    start: int
    length: int


class SolcOutputEvmBytecodeData(SolcOutputModel):
    object: str = ""
    """Hex-encoded bytecode without the `0x` prefix."""
    opcodes: Optional[str] = None
    source_map: Optional[str] = None
    link_references: Dict[
        str, Dict[str, List[SolcOutputEvmBytecodeLinkReferencesInfo]]
    ] = {}


class SolcOutputEvmData(SolcOutputModel):
    bytecode: Optional[SolcOutputEvmBytecodeData] = None
    deployed_bytecode: Optional[SolcOutputEvmBytecodeData] = None
    method_identifiers: Optional[Dict[str, str]] = None


class SolcOutputContractInfo(SolcOutputModel):
    abi: List[Dict[str, Any]] = []
    """The Ethereum Contract ABI. See https://docs.soliditylang.org/en/latest/abi-spec.html."""
    metadata: Optional[str] = None
    """Serialized JSON metadata string, opaque to solbuild."""
    evm: Optional[SolcOutputEvmData] = None


class SolcOutputSourceInfo(SolcOutputModel):
    id: int


class SolcOutput(SolcOutputModel):
    errors: List[SolcOutputError] = []
    sources: Dict[str, SolcOutputSourceInfo] = {}
    contracts: Optional[Dict[str, Dict[str, SolcOutputContractInfo]]] = None
    """source unit name -> (contract name -> info), missing when compilation failed fatally"""
