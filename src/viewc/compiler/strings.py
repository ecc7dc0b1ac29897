"""String protector - masks quoted literals before rewrite passes run."""

from viewc.compiler.placeholders import PlaceholderManager
from viewc.compiler.scanner import next_quote, string_end


class StringProtector:
    """Replaces every quoted literal with a STRING placeholder.

    After `protect_strings` no unescaped quote remains outside a token, so
    later passes can treat `.`, `|` and identifiers without caring about
    literal contents.
    """

    def __init__(self, placeholders: PlaceholderManager, tag: str = "STRING"):
        self.placeholders = placeholders
        self.tag = tag

    def protect_strings(self, expression: str) -> str:
        offset = 0
        while offset < len(expression):
            pos = next_quote(expression, offset)
            if pos == -1:
                break

            end = string_end(expression, pos)
            if end is None:
                # Unterminated literal: everything up to the end is opaque
                end = len(expression)

            token = self.placeholders.mint(expression[pos:end], self.tag)
            expression = expression[:pos] + token + expression[end:]
            offset = pos + len(token)

        return expression
