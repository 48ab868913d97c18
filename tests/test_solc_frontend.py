import asyncio
import json
import platform
from pathlib import Path

import pytest

from solbuild.compiler.exceptions import CompilerInvocationError
from solbuild.compiler.solc_frontend import SolcFrontend, SolcInput, SolcInputSource

pytestmark = pytest.mark.skipif(
    platform.system() == "Windows", reason="fake solc is a POSIX shell script"
)

SOLC_OUTPUT = {
    "errors": [
        {
            "severity": "warning",
            "type": "Warning",
            "component": "general",
            "errorCode": "2072",
            "message": "Unused local variable.",
            "formattedMessage": "Warning: Unused local variable.",
            "sourceLocation": {"file": "contracts/a.sol", "start": 10, "end": 20},
        }
    ],
    "sources": {"contracts/a.sol": {"id": 0, "ast": {}}},
    "contracts": {
        "contracts/a.sol": {
            "A": {
                "abi": [],
                "metadata": "{}",
                "evm": {
                    "bytecode": {
                        "object": "6080",
                        "opcodes": "PUSH1 0x80",
                        "sourceMap": "",
                        "linkReferences": {},
                    },
                    "deployedBytecode": {"object": "6001"},
                },
            }
        }
    },
}


def fake_solc(
    path: Path, stdout: str, exit_code: int = 0, version: str = "0.8.19"
) -> Path:
    script = path / "solc"
    log = path / "version-calls.txt"
    script.write_text(
        "#!/bin/sh\n"
        'if [ "$1" = "--version" ]; then\n'
        f'  echo called >> "{log}"\n'
        "  echo 'solc, the solidity compiler commandline interface'\n"
        f"  echo 'Version: {version}+commit.7dd6d404.Linux.g++'\n"
        "  exit 0\n"
        "fi\n"
        'printf "%s\\n" "$@" > args.txt\n'
        "cat > input.json\n"
        "cat <<'EOF'\n"
        f"{stdout}\n"
        "EOF\n"
        f"exit {exit_code}\n"
    )
    script.chmod(0o755)
    return script


def standard_input() -> SolcInput:
    return SolcInput(
        sources={"contracts/a.sol": SolcInputSource(content="contract A {}")}
    )


def test_compile(make_config, project_path, tmp_path):
    solc = fake_solc(tmp_path, json.dumps(SOLC_OUTPUT))
    config = make_config({"compiler": {"solc": {"path": str(solc)}}})

    output = asyncio.run(SolcFrontend(config).compile(standard_input()))

    assert (project_path / "args.txt").read_text().split() == ["--standard-json"]
    sent = json.loads((project_path / "input.json").read_text())
    assert sent["language"] == "Solidity"
    assert sent["sources"] == {"contracts/a.sol": {"content": "contract A {}"}}

    assert len(output.errors) == 1
    assert output.errors[0].severity == "warning"
    assert output.errors[0].error_code == "2072"
    assert output.errors[0].text == "Warning: Unused local variable."
    assert output.contracts is not None
    evm = output.contracts["contracts/a.sol"]["A"].evm
    assert evm is not None and evm.bytecode is not None
    assert evm.bytecode.object == "6080"


def test_compile_without_contracts(make_config, tmp_path):
    solc = fake_solc(
        tmp_path,
        json.dumps({"errors": [{"severity": "error", "message": "Parser error"}]}),
    )
    config = make_config({"compiler": {"solc": {"path": str(solc)}}})

    output = asyncio.run(SolcFrontend(config).compile(standard_input()))
    assert output.contracts is None
    assert output.errors[0].text == "Parser error"


def test_non_zero_exit_code(make_config, tmp_path):
    solc = fake_solc(tmp_path, "{}", exit_code=1)
    config = make_config({"compiler": {"solc": {"path": str(solc)}}})

    with pytest.raises(CompilerInvocationError, match="exited with code 1"):
        asyncio.run(SolcFrontend(config).compile(standard_input()))


def test_invalid_output(make_config, tmp_path):
    solc = fake_solc(tmp_path, "this is not json")
    config = make_config({"compiler": {"solc": {"path": str(solc)}}})

    with pytest.raises(CompilerInvocationError):
        asyncio.run(SolcFrontend(config).compile(standard_input()))

    solc = fake_solc(tmp_path, json.dumps({"errors": [{"message": "no severity"}]}))
    with pytest.raises(CompilerInvocationError):
        asyncio.run(SolcFrontend(config).compile(standard_input()))


def test_missing_executable(make_config, tmp_path, monkeypatch):
    config = make_config({"compiler": {"solc": {"path": str(tmp_path / "nope")}}})
    with pytest.raises(CompilerInvocationError):
        asyncio.run(SolcFrontend(config).compile(standard_input()))

    monkeypatch.setenv("PATH", str(tmp_path / "empty"))
    with pytest.raises(CompilerInvocationError, match="not found"):
        asyncio.run(SolcFrontend(make_config()).compile(standard_input()))


def test_get_version(make_config, tmp_path):
    solc = fake_solc(tmp_path, json.dumps(SOLC_OUTPUT), version="0.8.19")
    config = make_config(
        {"compiler": {"solc": {"path": str(solc), "version": "0.8.19"}}}
    )
    frontend = SolcFrontend(config)

    async def run():
        assert await frontend.get_version() == "0.8.19"
        await frontend.compile(standard_input())
        await frontend.compile(standard_input())

    asyncio.run(run())
    # the executable is asked for its version only once
    assert (tmp_path / "version-calls.txt").read_text().split() == ["called"]


def test_version_mismatch(make_config, project_path, tmp_path):
    solc = fake_solc(tmp_path, json.dumps(SOLC_OUTPUT), version="0.8.20")
    config = make_config(
        {"compiler": {"solc": {"path": str(solc), "version": "0.8.19"}}}
    )

    with pytest.raises(CompilerInvocationError, match="0.8.20"):
        asyncio.run(SolcFrontend(config).compile(standard_input()))
    assert not (project_path / "input.json").exists()


def test_unparsable_version(make_config, tmp_path):
    solc = fake_solc(tmp_path, json.dumps(SOLC_OUTPUT), version="unknown")
    config = make_config({"compiler": {"solc": {"path": str(solc)}}})

    with pytest.raises(CompilerInvocationError, match="Unable to determine"):
        asyncio.run(SolcFrontend(config).get_version())
