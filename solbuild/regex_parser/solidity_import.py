import re
from typing import Pattern, Tuple

_STRING = r"""'(?:[^'\\\n]|\\.)*'|"(?:[^"\\\n]|\\.)*\""""
_IDENTIFIER = r"[_a-zA-Z$][_a-zA-Z0-9$]*"
_SYMBOL = r"{ident}(?:\s+as\s+{ident})?".format(ident=_IDENTIFIER)
_QUOTE_ESCAPE_RE = re.compile(r"""\\(['"])""")


def _compile(pattern: str) -> Pattern[str]:
    return re.compile(
        pattern.format(
            path=r"(?P<path>{})".format(_STRING), ident=_IDENTIFIER, symbol=_SYMBOL
        )
    )


class SolidityImportExpr:
    """
    Body of a single `import ...;` directive (without the `import` keyword and the semicolon).
    The whole directive is validated, but only the imported path is kept. The path may be any
    Solidity string literal, it is not checked any further here.
    """

    PATTERNS: Tuple[Pattern[str], ...] = (
        # import "path";
        _compile(r"\s*{path}\s*"),
        # import "path" as alias;
        _compile(r"\s*{path}\s*as\s+{ident}\s*"),
        # import * as alias from "path";
        _compile(r"\s*\*\s*as\s+{ident}\s+from\s*{path}\s*"),
        # import {a as b, c} from "path";
        _compile(r"\s*\{{\s*{symbol}\s*(?:,\s*{symbol}\s*)*\}}\s*from\s*{path}\s*"),
    )

    __filename: str

    def __init__(self, expr: str):
        for pattern in self.PATTERNS:
            match = pattern.fullmatch(expr)
            if match is not None:
                break
        else:
            raise ValueError(f"Invalid import expression: `{expr}`")

        literal = match.group("path")
        self.__filename = _QUOTE_ESCAPE_RE.sub(r"\1", literal[1:-1])

    @property
    def filename(self) -> str:
        return self.__filename
