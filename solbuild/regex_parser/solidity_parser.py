import re
from pathlib import Path
from typing import List, Tuple, Union

from Crypto.Hash import BLAKE2b

from .solidity_import import SolidityImportExpr


class SoliditySourceParser:
    """
    Lightweight scanner of Solidity sources. It does not parse the language, it only strips comments
    and extracts `import` directives so that the import graph can be built before running solc.
    """

    IMPORT_RE = re.compile(rb"""(?<![\w$])import\s*(?P<import>[\s"'*{][^;]+)\s*;""")
    MULTILINE_COMMENT_END_RE = re.compile(rb"\*/")
    ONELINE_COMMENT_OR_MULTILINE_COMMENT_START_RE = re.compile(
        rb"(//.*$|/\*)", re.MULTILINE
    )

    @staticmethod
    def _string_closed(line: Union[str, bytes]) -> bool:
        opening_char = None
        for i in range(len(line)):
            if opening_char is None:
                if line[i] in {'"', "'", ord('"'), ord("'")}:
                    opening_char = line[i]
            else:
                if line[i] == opening_char:
                    if i > 0 and line[i - 1] in {"\\", b"\\"[0]}:
                        continue
                    else:
                        opening_char = None
        return opening_char is None

    @classmethod
    def _inside_string(cls, source_code: Union[bytes, bytearray], offset: int) -> bool:
        last_line_index = source_code.rfind(b"\n", 0, offset)
        if last_line_index == -1:
            last_line_index = 0
        else:
            last_line_index += 1

        if last_line_index < offset:
            return not cls._string_closed(source_code[last_line_index:offset])
        return False

    @classmethod
    def strip_comments(cls, source_code: bytearray) -> None:
        """
        Remove all comments from `source_code` in place. Comment markers inside string literals are kept.
        """
        search_start = 0

        while len(source_code) > search_start:
            match = cls.ONELINE_COMMENT_OR_MULTILINE_COMMENT_START_RE.search(
                source_code, search_start
            )
            if match is None:
                break

            # ignore `//` and `/*` in Solidity strings
            if cls._inside_string(source_code, match.start()):
                search_start = match.end()
                continue

            if source_code[match.start() : match.end()] == b"/*":
                end_match = cls.MULTILINE_COMMENT_END_RE.search(
                    source_code, match.end()
                )
                if end_match is None:
                    source_code[match.start() :] = b""
                    break
                source_code[match.start() : end_match.end()] = b""
            else:
                source_code[match.start() : match.end()] = b""

            search_start = match.start()

    @classmethod
    def _parse_import(
        cls, source_code: Union[bytes, bytearray], ignore_errors: bool
    ) -> List[str]:
        imports: List[str] = []
        for match in cls.IMPORT_RE.finditer(source_code):
            if cls._inside_string(source_code, match.start()):
                continue

            import_str = match.groupdict()["import"]
            try:
                import_expr = SolidityImportExpr(import_str.decode("utf-8"))
            except ValueError:
                if ignore_errors:
                    continue
                raise
            # the same file may be imported multiple times (e.g. with different aliases)
            if import_expr.filename not in imports:
                imports.append(import_expr.filename)
        return imports

    @classmethod
    def parse(cls, path: Path, ignore_errors: bool = False) -> Tuple[List[str], bytes, bytes]:
        """
        Return a tuple of import strings declared in the file (in declaration order), 256-bit BLAKE2b hash
        of the file contents and the raw file contents.
        """
        raw_content = path.read_bytes()
        imports, h = cls.parse_source(raw_content, ignore_errors)
        return imports, h, raw_content

    @classmethod
    def parse_source(
        cls, source_code: bytes, ignore_errors: bool = False
    ) -> Tuple[List[str], bytes]:
        """
        Return a tuple of import strings declared in the source code and 256-bit BLAKE2b hash of the source code.
        """
        h = BLAKE2b.new(data=source_code, digest_bits=256)

        stripped_source_code = bytearray(source_code)
        cls.strip_comments(stripped_source_code)

        return cls._parse_import(stripped_source_code, ignore_errors), h.digest()
