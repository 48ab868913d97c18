from .solidity_import import SolidityImportExpr
from .solidity_parser import SoliditySourceParser
