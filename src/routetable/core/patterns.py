"""Path segment pattern compiler.

Turns one route segment template containing ``{name}`` placeholders into a
regular expression with named groups:

- Plain placeholder: ``{id}`` matches any non-empty run of non-slash characters
- Typed placeholder: ``{id:int}`` narrows the match using a converter pattern
- Mixed segment: ``v{ver}`` keeps the literal text around the placeholder
"""

import re

from routetable.core.errors import PatternError

# Converter name -> regex used for the placeholder
CONVERTERS: dict[str, str] = {
    "str": r"[^/]+",
    "int": r"\d+",
    "float": r"\d+(?:\.\d+)?",
}

_PLACEHOLDER = re.compile(r"\{([^{}]*)\}")


def has_placeholder(template: str) -> bool:
    """Return True if the template contains at least one ``{...}`` placeholder."""
    return _PLACEHOLDER.search(template) is not None


class PatternCompiler:
    """Compiles segment templates into matchable regex patterns.

    ``get_regex()`` and ``get_vars()`` form a stateful pair: ``get_vars()``
    reports the variables bound by the most recent ``get_regex()`` call.
    """

    def __init__(self) -> None:
        self._vars: list[str] = []

    def compile(self, template: str) -> tuple[str, list[str]]:
        """Compile a segment template into a regex.

        Args:
            template: Segment template such as ``{id}`` or ``v{ver:int}``

        Returns:
            Tuple of (regex source string, ordered list of variable names)

        Raises:
            PatternError: If the template has no placeholder, a bad variable name
                or an unknown converter
        """
        variables: list[str] = []
        regex_parts: list[str] = []
        position = 0

        for placeholder in _PLACEHOLDER.finditer(template):
            # Literal text before the placeholder
            regex_parts.append(re.escape(template[position : placeholder.start()]))
            position = placeholder.end()

            name, _, converter = placeholder.group(1).partition(":")
            converter = converter or "str"
            if not name.isidentifier():
                raise PatternError(f"Invalid variable name {name!r} in segment {template!r}")
            if converter not in CONVERTERS:
                raise PatternError(f"Unknown converter {converter!r} in segment {template!r}")
            if name in variables:
                raise PatternError(f"Variable {name!r} bound twice in segment {template!r}")

            variables.append(name)
            regex_parts.append(f"(?P<{name}>{CONVERTERS[converter]})")

        if not variables:
            raise PatternError(f"Segment {template!r} has no placeholder")

        regex_parts.append(re.escape(template[position:]))
        return "^" + "".join(regex_parts) + "$", variables

    def get_regex(self, template: str) -> str:
        """Compile a template and remember its variables for ``get_vars()``."""
        regex, self._vars = self.compile(template)
        return regex

    def get_vars(self) -> list[str]:
        """Variables bound by the most recent ``get_regex()`` call."""
        return list(self._vars)
