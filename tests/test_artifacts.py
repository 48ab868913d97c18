import json

import pytest

from solbuild.compiler.artifacts import (
    Artifact,
    ArtifactWriter,
    artifact_path,
    list_artifacts,
    read_artifact,
)
from solbuild.compiler.exceptions import ArtifactNameCollisionError
from solbuild.compiler.solc_frontend import SolcOutputContractInfo


def contract(bytecode: str = "6080", link: bool = False) -> SolcOutputContractInfo:
    link_references = (
        {"contracts/lib.sol": {"Lib": [{"start": 1, "length": 20}]}} if link else {}
    )
    return SolcOutputContractInfo.model_validate(
        {
            "abi": [{"type": "constructor", "inputs": []}],
            "metadata": "{}",
            "evm": {
                "bytecode": {"object": bytecode, "linkReferences": link_references},
                "deployedBytecode": {"object": bytecode[2:]},
            },
        }
    )


def test_create_artifacts():
    artifacts = ArtifactWriter.create_artifacts(
        {
            "contracts/b.sol": {"B": contract("60aa"), "A2": contract("60bb")},
            "contracts/a.sol": {"A": contract(link=True)},
        }
    )

    assert [(a.source_path, a.contract_name) for a in artifacts] == [
        ("contracts/a.sol", "A"),
        ("contracts/b.sol", "A2"),
        ("contracts/b.sol", "B"),
    ]
    a = artifacts[0]
    assert a.bytecode == "6080"
    assert a.deployed_bytecode == "80"
    assert a.abi == [{"type": "constructor", "inputs": []}]
    assert a.link_references == {
        "contracts/lib.sol": {"Lib": [{"start": 1, "length": 20}]}
    }
    assert a.deployed_link_references == {}


def test_contract_without_evm_output():
    artifacts = ArtifactWriter.create_artifacts(
        {"contracts/i.sol": {"I": SolcOutputContractInfo.model_validate({"abi": []})}}
    )
    assert artifacts[0].bytecode == ""
    assert artifacts[0].deployed_bytecode == ""


def test_name_collision(tmp_path):
    destination = tmp_path / "artifacts"
    contracts = {
        "contracts/a.sol": {"Foo": contract(), "Bar": contract()},
        "contracts/b.sol": {"Foo": contract()},
    }

    with pytest.raises(ArtifactNameCollisionError) as e:
        ArtifactWriter().write(contracts, destination)

    assert e.value.contract_name == "Foo"
    assert e.value.source_paths == ("contracts/a.sol", "contracts/b.sol")
    assert list_artifacts(destination) == []


def test_write(tmp_path):
    destination = tmp_path / "artifacts"
    writer = ArtifactWriter()

    written = writer.write(
        {"contracts/a.sol": {"A": contract(), "Old": contract()}}, destination
    )
    assert [a.contract_name for a in written] == ["A", "Old"]
    assert list_artifacts(destination) == ["A", "Old"]

    data = json.loads(artifact_path(destination, "A").read_text())
    assert data["contractName"] == "A"
    assert data["sourcePath"] == "contracts/a.sol"
    assert data["deployedBytecode"] == "80"
    assert "linkReferences" in data

    # stale artifacts of removed contracts are deleted, unrelated files are kept
    (destination / ".build-info.json").write_text("{}")
    (destination / "notes.txt").write_text("keep")
    (destination / "deployments.json").write_text("{}")
    written = writer.write(
        {"contracts/a.sol": {"A": contract("60ff")}},
        destination,
        previous=["A", "Old", "Missing"],
    )

    assert list_artifacts(destination) == ["A", "deployments"]
    assert read_artifact(destination, "A") == written[0]
    assert read_artifact(destination, "A").bytecode == "60ff"
    assert (destination / ".build-info.json").is_file()
    assert (destination / "notes.txt").is_file()
    # no staging directory left behind
    assert sorted(p.name for p in destination.iterdir()) == [
        ".build-info.json",
        "A.json",
        "deployments.json",
        "notes.txt",
    ]


def test_artifact_round_trip(tmp_path):
    artifact = Artifact(
        contract_name="Token",
        source_path="contracts/token/Token.sol",
        abi=[{"type": "function", "name": "transfer", "inputs": [], "outputs": []}],
        bytecode="608060405234801561001057600080fd5b50",
        deployed_bytecode="6080604052",
        link_references={"contracts/lib.sol": {"Lib": [{"start": 3, "length": 20}]}},
    )
    path = artifact_path(tmp_path, "Token")
    path.write_text(artifact.model_dump_json(by_alias=True))

    assert read_artifact(tmp_path, "Token") == artifact


def test_list_artifacts_missing_dir(tmp_path):
    assert list_artifacts(tmp_path / "missing") == []


def test_write_without_previous_keeps_existing(tmp_path):
    destination = tmp_path / "artifacts"
    writer = ArtifactWriter()

    writer.write({"contracts/a.sol": {"A": contract()}}, destination)
    writer.write({"contracts/b.sol": {"B": contract()}}, destination)

    # nothing was listed as previously built, so A is not considered stale
    assert list_artifacts(destination) == ["A", "B"]
