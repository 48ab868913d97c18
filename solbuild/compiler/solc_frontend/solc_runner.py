import asyncio
import re
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from solbuild.config import SolbuildConfig
from solbuild.core import get_logger

from ..exceptions import CompilerInvocationError
from .input_data_model import SolcInput
from .output_data_model import SolcOutput

logger = get_logger(__name__)

SOLC_VERSION_RE = re.compile(r"Version: (?P<version>\d+\.\d+\.\d+)")


class CompilerAbc(ABC):
    """
    Narrow boundary of the external compiler: standard JSON input in, standard JSON output out.
    """

    @abstractmethod
    async def compile(self, standard_input: SolcInput) -> SolcOutput:
        """
        Run the compiler with the given standard JSON input.

        Raises:
            CompilerInvocationError: The compiler could not be launched or its output could not be parsed.
        """

    async def get_version(self) -> Optional[str]:
        """
        Returns:
            Version of the compiler that [compile][solbuild.compiler.solc_frontend.CompilerAbc.compile] runs,
            `None` if it cannot be determined without compiling.
        """
        return None


class SolcFrontend(CompilerAbc):
    __config: SolbuildConfig
    __version: Optional[str]

    def __init__(self, config: SolbuildConfig):
        self.__config = config
        self.__version = None

    def _get_executable(self) -> Path:
        path = self.__config.compiler.solc.path
        if path is not None:
            return path

        found = shutil.which("solc")
        if found is None:
            raise CompilerInvocationError(
                "solc executable not found in PATH, set `compiler.solc.path` in the config."
            )
        return Path(found)

    async def get_version(self) -> str:
        """
        Run `solc --version` once and check the reported version against `compiler.solc.version`.

        Raises:
            CompilerInvocationError: The executable cannot be run, its version cannot be parsed
                or it does not match the configured version.
        """
        if self.__version is not None:
            return self.__version

        executable = self._get_executable()
        try:
            proc = await asyncio.create_subprocess_exec(
                str(executable),
                "--version",
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise CompilerInvocationError(f"Unable to launch solc: {e}") from e

        out, _ = await proc.communicate()
        match = SOLC_VERSION_RE.search(out.decode("utf-8", errors="replace"))
        if proc.returncode != 0 or match is None:
            raise CompilerInvocationError(
                f"Unable to determine the version of {executable}"
            )
        version = match.group("version")

        expected = self.__config.compiler.solc.version
        if expected is not None and version != expected:
            raise CompilerInvocationError(
                f"{executable} is solc {version}, but version {expected} is configured"
            )

        logger.debug(f"Using solc {version} at {executable}")
        self.__version = version
        return version

    async def compile(self, standard_input: SolcInput) -> SolcOutput:
        await self.get_version()
        args: List[str] = [str(self._get_executable()), "--standard-json"]
        logger.debug(f"Running solc: {' '.join(args)}")

        try:
            # the first argument in this call cannot be `Path` because of https://bugs.python.org/issue35246
            proc = await asyncio.create_subprocess_exec(
                *args,
                cwd=self.__config.project_root_path,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise CompilerInvocationError(f"Unable to launch solc: {e}") from e

        standard_input_json = standard_input.model_dump_json(
            by_alias=True, exclude_none=True
        )
        out, err = await proc.communicate(standard_input_json.encode("utf-8"))
        if proc.returncode != 0:
            raise CompilerInvocationError(
                f"solc exited with code {proc.returncode}:\n{err.decode('utf-8', errors='replace')}"
            )

        try:
            return SolcOutput.model_validate_json(out)
        except ValidationError as e:
            raise CompilerInvocationError(
                f"Unable to parse solc standard JSON output:\n{e}"
            ) from e
