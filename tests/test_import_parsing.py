import pytest
from Crypto.Hash import BLAKE2b

from solbuild.regex_parser import SolidityImportExpr, SoliditySourceParser


def test_import_simple():
    assert SolidityImportExpr("'filename'").filename == "filename"
    assert SolidityImportExpr("*as symbolName from'filename'").filename == "filename"
    assert SolidityImportExpr("'filename'as symbolName").filename == "filename"
    assert (
        SolidityImportExpr("{symbol1 as alias,symbol2}from'filename'").filename
        == "filename"
    )


def test_import_whitespace():
    assert SolidityImportExpr("\r' \t filename'").filename == " \t filename"
    assert (
        SolidityImportExpr("\n*\ras\tsymbolName\r\n from '  f\tilename'").filename
        == "  f\tilename"
    )
    assert SolidityImportExpr("'filename\t'\tas\nsymbolName").filename == "filename\t"
    assert (
        SolidityImportExpr(
            "{\r\nsymbol1\ras   alias  \r,\t  \r\nsymbol2\n}\r\n \tfrom\n\r' filename '"
        ).filename
        == " filename "
    )


def test_import_escape():
    filename1 = r"""'\'filename\"'"""
    filename2 = r'''"\"filename\'"'''
    assert (
        SolidityImportExpr("{filename}".format(filename=filename1)).filename
        == "'filename\""
    )
    assert (
        SolidityImportExpr(
            "*as symbolName from {filename}".format(filename=filename2)
        ).filename
        == "\"filename'"
    )
    assert (
        SolidityImportExpr(
            "{{symbol1 as alias,symbol2}}from{filename}".format(filename=filename2)
        ).filename
        == "\"filename'"
    )


def test_import_invalid():
    with pytest.raises(ValueError):
        SolidityImportExpr("'file\nname'")
    with pytest.raises(ValueError):
        SolidityImportExpr("*as symbolName from'f\nilename'")
    with pytest.raises(ValueError):
        SolidityImportExpr("* from 'abc.sol'")


def test_comment_stripping():
    source = bytearray(b"abc // ikejfurgdi")
    SoliditySourceParser.strip_comments(source)
    assert source == b"abc "

    source = bytearray(b"xy/*1234*/z")
    SoliditySourceParser.strip_comments(source)
    assert source == b"xyz"

    source = bytearray(
        b"""
    import "abc.sol"; // test
    import "..//x/y.sol";
    import "/*abc.sol";
    import "de*/f.sol";// /* */ *//*//
    import /* "xyz";
    // */ "helper.sol";
    """
    )
    stripped = b"\n".join(
        [
            b"",
            b'    import "abc.sol"; ',
            b'    import "..//x/y.sol";',
            b'    import "/*abc.sol";',
            b'    import "de*/f.sol";',
            b'    import  "helper.sol";',
            b"    ",
        ]
    )
    SoliditySourceParser.strip_comments(source)
    assert source == stripped


def test_unterminated_comment():
    source = bytearray(b"contract A {}\n/* import 'b.sol';")
    SoliditySourceParser.strip_comments(source)
    assert source == b"contract A {}\n"


def test_parse_imports_in_order():
    source = b"""
    pragma solidity ^0.8.0;
    import "./b.sol";
    import {X as Y} from "@lib/x.sol";
    import * as A from './a.sol';
    import "./b.sol" as B;
    // import "commented.sol";
    contract C { string s = "import 'in_string.sol';"; }
    """
    imports, h = SoliditySourceParser.parse_source(source)

    assert imports == ["./b.sol", "@lib/x.sol", "./a.sol"]
    assert h == BLAKE2b.new(data=source, digest_bits=256).digest()


def test_parse_identifier_containing_import():
    imports, _ = SoliditySourceParser.parse_source(
        b"contract C { function reimport() external {} }"
    )
    assert imports == []


def test_parse_invalid_import():
    source = b'import * from "a.sol";\nimport "b.sol";'
    with pytest.raises(ValueError):
        SoliditySourceParser.parse_source(source)

    imports, _ = SoliditySourceParser.parse_source(source, ignore_errors=True)
    assert imports == ["b.sol"]


def test_parse_file(tmp_path):
    path = tmp_path / "a.sol"
    content = b'import "./b.sol";\ncontract A {}\n'
    path.write_bytes(content)

    imports, h, raw = SoliditySourceParser.parse(path)
    assert imports == ["./b.sol"]
    assert raw == content
    assert h == BLAKE2b.new(data=content, digest_bits=256).digest()
