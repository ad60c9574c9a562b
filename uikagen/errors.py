"""Compiler exceptions"""


class CodegenError(Exception):
    """Base class for binding compiler failures"""


class SchemaError(CodegenError):
    """Reflection schema could not be read"""


class ConfigError(CodegenError):
    """Build configuration could not be read or is invalid"""


class StrictModeError(CodegenError):
    """Strict mode rejected a run that skipped schema members"""

    def __init__(self, skipped: list):
        self.skipped = skipped
        preview = ", ".join(f"{s.owner}.{s.member}" for s in skipped[:5])
        more = f" (+{len(skipped) - 5} more)" if len(skipped) > 5 else ""
        super().__init__(f"strict mode: {len(skipped)} members skipped: {preview}{more}")


class VerificationError(CodegenError):
    """Generated output failed its integrity checks"""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("verification failed:\n" + "\n".join(f"  - {p}" for p in problems))
