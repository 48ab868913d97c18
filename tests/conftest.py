import re
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from solbuild.compiler.solc_frontend import CompilerAbc, SolcInput, SolcOutput
from solbuild.config import SolbuildConfig

CONTRACT_RE = re.compile(r"\bcontract\s+(?P<name>[_a-zA-Z$][_a-zA-Z0-9$]*)")


def fake_output(standard_input: SolcInput) -> SolcOutput:
    """
    Emit one contract per `contract X` declaration. The bytecode is the hex-encoded source content,
    so any change of a source file changes the bytecode of its contracts.
    """
    contracts = {}
    for i, (source_unit_name, source) in enumerate(standard_input.sources.items()):
        names = CONTRACT_RE.findall(source.content)
        if len(names) == 0:
            continue
        contracts[source_unit_name] = {
            name: {
                "abi": [{"type": "function", "name": "f", "inputs": [], "outputs": []}],
                "metadata": "{}",
                "evm": {
                    "bytecode": {"object": source.content.encode("utf-8").hex()},
                    "deployedBytecode": {"object": f"{i:02x}"},
                },
            }
            for name in names
        }
    return SolcOutput.model_validate(
        {
            "errors": [],
            "sources": {
                name: {"id": i} for i, name in enumerate(standard_input.sources)
            },
            "contracts": contracts,
        }
    )


class FakeCompiler(CompilerAbc):
    """
    In-process compiler frontend recording every standard JSON input it receives.
    """

    def __init__(
        self,
        produce: Optional[Callable[[SolcInput], SolcOutput]] = None,
        version: Optional[str] = None,
    ) -> None:
        self.inputs: List[SolcInput] = []
        self.produce = produce if produce is not None else fake_output
        self.version = version

    @property
    def invocations(self) -> int:
        return len(self.inputs)

    async def get_version(self) -> Optional[str]:
        return self.version

    async def compile(self, standard_input: SolcInput) -> SolcOutput:
        self.inputs.append(standard_input)
        return self.produce(standard_input)


def write_sources(root: Path, files: Dict[str, str]) -> None:
    for name, content in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


@pytest.fixture
def project_path(tmp_path: Path, monkeypatch) -> Path:
    # isolate from any global config of the user running the tests
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    root = tmp_path / "project"
    (root / "contracts").mkdir(parents=True)
    return root.resolve()


@pytest.fixture
def make_config(project_path: Path) -> Callable[..., SolbuildConfig]:
    def factory(config_dict: Optional[dict] = None) -> SolbuildConfig:
        return SolbuildConfig.fromdict(
            config_dict or {}, project_root_path=project_path
        )

    return factory
