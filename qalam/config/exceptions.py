"""Configuration errors."""

from typing import Iterable, List, Optional


class ConfigurationError(Exception):
    """Raised when configuration cannot be loaded or fails validation.

    Collects every problem found in one pass so the operator can fix them all
    at once, plus optional hints printed beneath them.
    """

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        self.message = message
        self.errors = list(errors or [])
        self.suggestions = list(suggestions or [])
        super().__init__(self.render())

    def render(self) -> str:
        """Multi-line message: headline, numbered errors, then hints."""
        lines = [self.message]
        if self.errors:
            lines.append("\nProblems:")
            lines.extend(f"  {n}. {err}" for n, err in enumerate(self.errors, 1))
        if self.suggestions:
            lines.append("\nTry:")
            lines.extend(f"  - {hint}" for hint in self.suggestions)
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.render()

    @classmethod
    def from_pydantic(cls, message: str, errors: Iterable[dict], suggestions=None):
        """Build from ``ValidationError.errors()`` output."""
        formatted = []
        for error in errors:
            location = " -> ".join(str(part) for part in error.get("loc", ())) or "<root>"
            if error.get("type") == "missing":
                formatted.append(f"Missing required field: {location}")
            else:
                formatted.append(f"{location}: {error.get('msg')}")
        return cls(message, errors=formatted, suggestions=suggestions)
