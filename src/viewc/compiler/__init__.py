"""viewc compiler - transforms {{ }} / {% %} templates into Python-embedded text."""

from viewc.compiler.control import ControlStructureCompiler
from viewc.compiler.dot_syntax import DotSyntaxTransformer
from viewc.compiler.expression import ExpressionCompiler, ExpressionParser
from viewc.compiler.filters import FilterTransformer
from viewc.compiler.helpers import Helper
from viewc.compiler.keywords import KeywordTable
from viewc.compiler.placeholders import PlaceholderManager
from viewc.compiler.policy import ErrorPolicy
from viewc.compiler.spec import Diagnostic, FilterApplication, Region, RegionKind
from viewc.compiler.strings import StringProtector
from viewc.compiler.variables import VariableProtector, VariableTransformer

__all__ = [
    "ControlStructureCompiler",
    "Diagnostic",
    "DotSyntaxTransformer",
    "ErrorPolicy",
    "ExpressionCompiler",
    "ExpressionParser",
    "FilterApplication",
    "FilterTransformer",
    "Helper",
    "KeywordTable",
    "PlaceholderManager",
    "Region",
    "RegionKind",
    "StringProtector",
    "VariableProtector",
    "VariableTransformer",
]
