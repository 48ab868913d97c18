import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, DefaultDict, Dict, Iterable, List, Mapping

from collections import defaultdict

from pathvalidate import sanitize_filename  # type: ignore
from pydantic import BaseModel, ConfigDict

from solbuild.core import get_logger

from .exceptions import ArtifactNameCollisionError
from .solc_frontend import SolcOutputContractInfo, SolcOutputEvmBytecodeData

logger = get_logger(__name__)

LinkReferences = Dict[str, Dict[str, List[Dict[str, int]]]]


def _to_camel(s: str) -> str:
    split = s.split("_")
    return split[0].lower() + "".join([w.capitalize() for w in split[1:]])


class Artifact(BaseModel):
    """
    Persisted build output of a single contract, sufficient to deploy and interact with the contract
    without access to its source.

    Attributes:
        contract_name: Name of the contract.
        source_path: Source unit name of the file defining the contract.
        abi: Contract ABI as emitted by the compiler.
        bytecode: Hex-encoded creation bytecode as emitted by the compiler.
        deployed_bytecode: Hex-encoded runtime bytecode as emitted by the compiler.
        link_references: Library placeholders in the creation bytecode.
        deployed_link_references: Library placeholders in the runtime bytecode.
    """

    model_config = ConfigDict(
        alias_generator=_to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )

    contract_name: str
    source_path: str
    abi: List[Dict[str, Any]]
    bytecode: str
    deployed_bytecode: str = ""
    link_references: LinkReferences = {}
    deployed_link_references: LinkReferences = {}


def artifact_path(destination: Path, contract_name: str) -> Path:
    return destination / f"{sanitize_filename(contract_name)}.json"


def list_artifacts(destination: Path) -> List[str]:
    """
    Returns:
        Sorted contract names of all artifacts stored in `destination`.
    """
    if not destination.is_dir():
        return []
    return sorted(
        p.stem
        for p in destination.glob("*.json")
        if not p.name.startswith(".") and p.is_file()
    )


def read_artifact(destination: Path, contract_name: str) -> Artifact:
    return Artifact.model_validate_json(
        artifact_path(destination, contract_name).read_bytes()
    )


def _bytecode_fields(data: SolcOutputEvmBytecodeData):
    return data.object, {
        file: {
            library: [ref.model_dump() for ref in refs]
            for library, refs in libraries.items()
        }
        for file, libraries in data.link_references.items()
    }


class ArtifactWriter:
    """
    Converts compiler contract outputs into artifacts and replaces all previously written artifacts with them.
    """

    @staticmethod
    def create_artifacts(
        contracts: Mapping[str, Mapping[str, SolcOutputContractInfo]]
    ) -> List[Artifact]:
        """
        Returns:
            One artifact per contract, ordered by source unit name and contract name.

        Raises:
            ArtifactNameCollisionError: The same contract name is defined in more than one source file.
        """
        sources_by_name: DefaultDict[str, List[str]] = defaultdict(list)
        for source_unit_name in sorted(contracts.keys()):
            for contract_name in contracts[source_unit_name].keys():
                sources_by_name[contract_name].append(source_unit_name)

        for contract_name in sorted(sources_by_name.keys()):
            if len(sources_by_name[contract_name]) > 1:
                raise ArtifactNameCollisionError(
                    contract_name, sources_by_name[contract_name]
                )

        artifacts = []
        for source_unit_name in sorted(contracts.keys()):
            for contract_name in sorted(contracts[source_unit_name].keys()):
                info = contracts[source_unit_name][contract_name]
                bytecode, link_references = "", {}
                deployed_bytecode, deployed_link_references = "", {}
                if info.evm is not None and info.evm.bytecode is not None:
                    bytecode, link_references = _bytecode_fields(info.evm.bytecode)
                if info.evm is not None and info.evm.deployed_bytecode is not None:
                    deployed_bytecode, deployed_link_references = _bytecode_fields(
                        info.evm.deployed_bytecode
                    )

                artifacts.append(
                    Artifact(
                        contract_name=contract_name,
                        source_path=source_unit_name,
                        abi=info.abi,
                        bytecode=bytecode,
                        deployed_bytecode=deployed_bytecode,
                        link_references=link_references,
                        deployed_link_references=deployed_link_references,
                    )
                )
        return artifacts

    def write(
        self,
        contracts: Mapping[str, Mapping[str, SolcOutputContractInfo]],
        destination: Path,
        previous: Iterable[str] = (),
    ) -> List[Artifact]:
        """
        Convert `contracts` into artifacts and write them, see `write_artifacts`.

        Returns:
            Written artifacts, ordered by source unit name and contract name.
        """
        artifacts = self.create_artifacts(contracts)
        self.write_artifacts(artifacts, destination, previous)
        return artifacts

    def write_artifacts(
        self,
        artifacts: List[Artifact],
        destination: Path,
        previous: Iterable[str] = (),
    ) -> None:
        """
        Write `artifacts` into `destination` and remove artifacts of contracts listed in `previous`
        that are no longer built. Other files in `destination` are never touched.
        All artifacts are first written into a staging directory and only then moved into place.
        """
        existing = set(list_artifacts(destination))

        destination.mkdir(parents=True, exist_ok=True)
        staging_path = Path(tempfile.mkdtemp(prefix=".staging-", dir=destination))
        try:
            for artifact in artifacts:
                staged = artifact_path(staging_path, artifact.contract_name)
                with staged.open("wb") as f:
                    f.write(
                        artifact.model_dump_json(by_alias=True, indent=2).encode(
                            "utf-8"
                        )
                    )
                    f.flush()
                    os.fsync(f.fileno())

            new_names = {artifact.contract_name for artifact in artifacts}
            for stale in sorted(set(previous) & existing):
                if stale not in new_names:
                    logger.debug(f"Removing stale artifact {stale}")
                    artifact_path(destination, stale).unlink()

            for artifact in artifacts:
                os.replace(
                    artifact_path(staging_path, artifact.contract_name),
                    artifact_path(destination, artifact.contract_name),
                )
        finally:
            shutil.rmtree(staging_path, ignore_errors=True)

        logger.debug(f"Wrote {len(artifacts)} artifacts to {destination}")
