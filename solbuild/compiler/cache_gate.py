import json
from json import JSONDecodeError
from pathlib import Path
from typing import Optional

from Crypto.Hash import BLAKE2b
from pydantic import ValidationError

from solbuild.config import SolbuildConfig
from solbuild.core import get_logger
from solbuild.utils import get_package_version
from solbuild.utils.file_utils import atomic_write_bytes

from .artifacts import list_artifacts
from .build_data_model import BuildInfo, CacheFingerprint
from .dependency_graph import DependencyGraph
from .solc_frontend import SolcInputSettings

logger = get_logger(__name__)

BUILD_INFO_FILENAME = ".build-info.json"


class CacheGate:
    """
    Decides whether the artifacts of the previous build are still valid. The decision is coarse-grained:
    any change in any included source file or in the compiler configuration invalidates the whole build.
    """

    @staticmethod
    def compute_fingerprint(
        graph: DependencyGraph,
        config: SolbuildConfig,
        settings: SolcInputSettings,
        compiler_version: Optional[str] = None,
    ) -> CacheFingerprint:
        """
        Args:
            compiler_version: Version reported by the compiler executable, if known.
        """
        source_digest = bytes([0] * 32)
        for name, unit in graph.nodes.items():
            # name bound to content, swapping contents of two files changes the digest
            unit_hash = BLAKE2b.new(
                data=name.encode("utf-8") + b"\0" + bytes.fromhex(unit.content_hash),
                digest_bits=256,
            ).digest()
            source_digest = bytes(a ^ b for a, b in zip(source_digest, unit_hash))

        solc_config = config.compiler.solc
        build_config = {
            "compiler_version": solc_config.version,
            "reported_compiler_version": compiler_version,
            "compiler_path": str(solc_config.path) if solc_config.path else None,
            "settings": settings.model_dump(mode="json", by_alias=True),
            "solbuild_version": get_package_version("solbuild"),
        }
        config_digest = BLAKE2b.new(
            data=json.dumps(build_config, sort_keys=True).encode("utf-8"),
            digest_bits=256,
        ).hexdigest()

        return CacheFingerprint(
            source_digest=source_digest.hex(), config_digest=config_digest
        )

    @staticmethod
    def is_valid(
        current: CacheFingerprint, stored: Optional[BuildInfo], artifacts_path: Path
    ) -> bool:
        """
        Returns:
            True if the fingerprints are equal and every artifact recorded by the previous build is still present.
        """
        if stored is None:
            return False
        if current != stored.fingerprint:
            logger.debug("Build fingerprint changed")
            return False

        if len(stored.artifacts) == 0:
            logger.debug("Previous build produced no artifacts")
            return False
        present = set(list_artifacts(artifacts_path))
        missing = set(stored.artifacts) - present
        if missing:
            logger.debug(f"Missing artifacts: {', '.join(sorted(missing))}")
            return False
        return True

    @staticmethod
    def load_build_info(artifacts_path: Path) -> Optional[BuildInfo]:
        path = artifacts_path / BUILD_INFO_FILENAME
        try:
            return BuildInfo.model_validate_json(path.read_bytes())
        except FileNotFoundError:
            return None
        except (ValidationError, JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to load build info from {path}: {e}")
            return None

    @staticmethod
    def store_build_info(build_info: BuildInfo, artifacts_path: Path) -> None:
        artifacts_path.mkdir(parents=True, exist_ok=True)
        atomic_write_bytes(
            artifacts_path / BUILD_INFO_FILENAME,
            build_info.model_dump_json(by_alias=True, indent=2).encode("utf-8"),
        )

    @staticmethod
    def invalidate(artifacts_path: Path) -> None:
        """
        Remove the build info record, so that no fingerprint matches until a new build completes.
        """
        try:
            (artifacts_path / BUILD_INFO_FILENAME).unlink()
        except FileNotFoundError:
            pass
