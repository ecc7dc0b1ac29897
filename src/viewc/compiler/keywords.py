"""Keyword table - identifiers that are never promoted to variables."""

KEYWORDS = frozenset(
    {
        # literals, in both template and Python spelling
        "true",
        "false",
        "null",
        "none",
        # rendering context and variable namespace
        "self",
        "ctx",
        # expression keywords
        "and",
        "or",
        "not",
        "in",
        "is",
        "if",
        "else",
        "for",
        "lambda",
        # builtins available to compiled code
        "abs",
        "all",
        "any",
        "bool",
        "dict",
        "enumerate",
        "float",
        "format",
        "getattr",
        "hasattr",
        "int",
        "isinstance",
        "len",
        "list",
        "max",
        "min",
        "range",
        "repr",
        "reversed",
        "round",
        "set",
        "sorted",
        "str",
        "sum",
        "tuple",
        "zip",
    }
)


class KeywordTable:
    """Case-insensitive membership test against KEYWORDS."""

    def __init__(self, extra: frozenset[str] = frozenset()):
        self._keywords = KEYWORDS | {name.lower() for name in extra}

    def is_keyword(self, identifier: str) -> bool:
        return identifier.lower() in self._keywords

    @property
    def keywords(self) -> frozenset[str]:
        return self._keywords
