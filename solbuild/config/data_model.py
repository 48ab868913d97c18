import re
from dataclasses import astuple
from pathlib import Path
from typing import FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator
from pydantic.dataclasses import dataclass
from pydantic.functional_validators import BeforeValidator
from typing_extensions import Annotated

from solbuild.core.enums import EvmVersionEnum

ResolvedPath = Annotated[Path, BeforeValidator(lambda p: Path(p).resolve())]


class SolbuildConfigModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
    )


@dataclass
class SolcRemapping:
    context: Optional[str]
    prefix: str
    target: Optional[str]

    def __iter__(self):
        return iter(astuple(self))

    def __str__(self):
        if self.context is None:
            return f"{self.prefix}={self.target or ''}"
        else:
            return f"{self.context}:{self.prefix}={self.target or ''}"


def convert_remapping(v):
    if isinstance(v, SolcRemapping):
        return v
    elif isinstance(v, dict):
        return SolcRemapping(**v)

    remapping_re = re.compile(
        r"(?:(?P<context>[^:\s]+)?:)?(?P<prefix>[^\s=]+)=(?P<target>[^\s]+)?"
    )
    match = remapping_re.match(v)
    assert match, f"`{v}` is not a valid solc remapping."

    groupdict = match.groupdict()
    return SolcRemapping(
        context=groupdict["context"],
        prefix=groupdict["prefix"],
        target=groupdict["target"],
    )


class SolcOptimizerConfig(SolbuildConfigModel):
    enabled: bool = False
    runs: int = 200


class SolcConfig(SolbuildConfigModel):
    version: Optional[str] = None
    """
    Version of solc the project is built with. Part of the build fingerprint, so changing it invalidates the cache.
    """
    path: Optional[ResolvedPath] = None
    """
    Path to the solc executable. Leave unset to use `solc` found in `PATH`.
    """
    evm_version: Optional[EvmVersionEnum] = None
    """Version of the EVM to compile for. Leave unset to let the solc decide."""
    exclude_paths: FrozenSet[ResolvedPath] = Field(
        default_factory=lambda: frozenset(
            [
                Path.cwd() / "node_modules",
                Path.cwd() / "venv",
                Path.cwd() / ".venv",
            ]
        )
    )
    """
    Solidity files in these paths are not compiled unless imported from a non-excluded file.
    """
    include_paths: FrozenSet[ResolvedPath] = Field(
        default_factory=lambda: frozenset([Path.cwd() / "node_modules"])
    )
    """
    Paths where to search for Solidity files imported using direct (non-relative) import paths.
    """
    optimizer: SolcOptimizerConfig = Field(default_factory=SolcOptimizerConfig)
    remappings: List[
        Annotated[
            SolcRemapping,
            BeforeValidator(convert_remapping),
            PlainSerializer(lambda r: str(r), when_used="json"),
        ]
    ] = []
    """
    Remappings to apply during import resolution and compilation.
    """
    via_IR: Optional[bool] = None

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and re.fullmatch(r"\d+\.\d+\.\d+", v) is None:
            raise ValueError(f"`{v}` is not a valid solc version.")
        return v


class CompilerConfig(SolbuildConfigModel):
    solc: SolcConfig = Field(default_factory=SolcConfig)
    forbid_import_cycles: bool = False
    """
    Fail the build when source files import each other in a cycle.
    """
    max_workers: Optional[int] = None
    """
    Number of threads reading and scanning source files. Leave unset for the `concurrent.futures` default.
    """


class PathsConfig(SolbuildConfigModel):
    sources: ResolvedPath = Field(default_factory=lambda: Path.cwd() / "contracts")
    artifacts: ResolvedPath = Field(default_factory=lambda: Path.cwd() / "artifacts")


class TopLevelConfig(SolbuildConfigModel):
    subconfigs: List[ResolvedPath] = []
    paths: PathsConfig = Field(default_factory=PathsConfig)
    compiler: CompilerConfig = Field(default_factory=CompilerConfig)
