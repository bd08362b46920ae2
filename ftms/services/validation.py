"""Result type shared by the rule-set validators."""

from dataclasses import dataclass, field


@dataclass
class ValidationResult:
    """
    Outcome of a validation pass.

    errors block the operation; warnings are informational and never
    make a result invalid on their own.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def extend(self, other: "ValidationResult") -> "ValidationResult":
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        return self
