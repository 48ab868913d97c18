from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class BuildInfoModel(BaseModel):
    model_config = ConfigDict(
        extra="allow",
        frozen=True,
    )


class CacheFingerprint(BuildInfoModel):
    """
    Attributes:
        source_digest: Hex-encoded order-independent digest of all source units included in the build.
        config_digest: Hex-encoded digest of all build-affecting configuration options.
    """

    source_digest: str
    config_digest: str


class SourceUnitInfo(BuildInfoModel):
    """
    Attributes:
        fs_path: Path to the source unit.
        blake2b_hash: Hex-encoded 256-bit BLAKE2b hash of the source unit contents.
    """

    fs_path: Path
    blake2b_hash: str


class BuildInfo(BuildInfoModel):
    """
    Record stored next to the artifacts after a successful build.

    Attributes:
        fingerprint: Fingerprint of the build that produced the artifacts.
        artifacts: Names of the contracts whose artifacts were written.
        source_units_info: Mapping of source unit names to source unit info.
        solbuild_version: `solbuild` version used during compilation.
        compiler_version: Version reported by the compiler executable, if known.
    """

    fingerprint: CacheFingerprint
    artifacts: List[str]
    source_units_info: Dict[str, SourceUnitInfo]
    solbuild_version: str
    compiler_version: Optional[str] = None
