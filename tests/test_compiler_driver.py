import asyncio
import json

import pytest

from conftest import FakeCompiler, write_sources
from solbuild.compiler.compiler_driver import CompilerDriver
from solbuild.compiler.dependency_graph import DependencyGraph
from solbuild.compiler.exceptions import SourceResolutionError
from solbuild.compiler.solc_frontend import SolcOutputSelectionEnum
from solbuild.compiler.source_resolver import SourceResolver
from solbuild.core.enums import EvmVersionEnum


def test_build_settings(make_config):
    config = make_config(
        {
            "compiler": {
                "solc": {
                    "evm_version": "paris",
                    "via_IR": True,
                    "optimizer": {"enabled": True, "runs": 1000},
                    "remappings": ["@oz/=node_modules/@openzeppelin/"],
                }
            }
        }
    )
    settings = CompilerDriver(config).create_build_settings()

    assert settings.evm_version == EvmVersionEnum.PARIS
    assert settings.via_IR is True
    assert settings.optimizer.enabled
    assert settings.optimizer.runs == 1000
    assert settings.remappings == ["@oz/=node_modules/@openzeppelin/"]
    assert settings.output_selection == {
        "*": {
            "*": [
                SolcOutputSelectionEnum.ABI,
                SolcOutputSelectionEnum.METADATA,
                SolcOutputSelectionEnum.EVM_BYTECODE,
                SolcOutputSelectionEnum.EVM_DEPLOYED_BYTECODE,
            ]
        }
    }

    dumped = json.loads(settings.model_dump_json(by_alias=True, exclude_none=True))
    assert dumped["viaIR"] is True
    assert dumped["evmVersion"] == "paris"
    assert dumped["outputSelection"]["*"]["*"][2] == "evm.bytecode"


def test_default_build_settings(make_config):
    settings = CompilerDriver(make_config()).create_build_settings()

    assert settings.evm_version is None
    assert settings.via_IR is None
    assert not settings.optimizer.enabled
    assert settings.optimizer.runs == 200
    assert settings.remappings == []


def test_build_input(make_config, project_path):
    write_sources(
        project_path,
        {
            "contracts/z.sol": 'import "./a.sol";\ncontract Z {}\n',
            "contracts/a.sol": "contract A { string s = \"é\"; }\n",
        },
    )
    config = make_config()
    resolver = SourceResolver(config)
    graph = DependencyGraph.build_from_seeds(
        [resolver.resolve(project_path / "contracts" / "z.sol")], resolver
    )
    driver = CompilerDriver(config)
    settings = driver.create_build_settings()

    standard_input = driver.build_input(graph, settings)

    assert list(standard_input.sources.keys()) == ["contracts/a.sol", "contracts/z.sol"]
    assert (
        standard_input.sources["contracts/a.sol"].content
        == "contract A { string s = \"é\"; }\n"
    )
    assert standard_input.settings == settings

    dumped = json.loads(standard_input.model_dump_json(by_alias=True, exclude_none=True))
    assert dumped["language"] == "Solidity"
    assert set(dumped["sources"].keys()) == {"contracts/a.sol", "contracts/z.sol"}


def test_build_input_invalid_utf8(make_config, project_path):
    (project_path / "contracts" / "a.sol").write_bytes(b"contract A {}\xff\xfe")
    config = make_config()
    resolver = SourceResolver(config)
    graph = DependencyGraph.build_from_seeds(
        [resolver.resolve(project_path / "contracts" / "a.sol")], resolver
    )
    driver = CompilerDriver(config)

    with pytest.raises(SourceResolutionError):
        driver.build_input(graph, driver.create_build_settings())


def test_compile_delegates_to_frontend(make_config, project_path):
    write_sources(project_path, {"contracts/a.sol": "contract A {}"})
    config = make_config()
    resolver = SourceResolver(config)
    graph = DependencyGraph.build_from_seeds(
        [resolver.resolve(project_path / "contracts" / "a.sol")], resolver
    )
    frontend = FakeCompiler()
    driver = CompilerDriver(config, frontend)
    standard_input = driver.build_input(graph, driver.create_build_settings())

    output = asyncio.run(driver.compile(standard_input))

    assert frontend.inputs == [standard_input]
    assert output.contracts is not None
    assert list(output.contracts["contracts/a.sol"].keys()) == ["A"]
