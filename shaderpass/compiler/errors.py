"""
The exceptions raised by the compilation pipeline.

Preprocessor and validation failures pre-empt compilation and carry the
offending pass plus a list of ``PreprocessorError`` objects. Compile failures
carry diagnostics that are already mapped to the original passes and lines.
"""

from ..utils.enums import PassName, Severity
from .diagnostics import Diagnostic, group_by_pass


class ShaderpassError(Exception):
    """Base class for errors raised by shaderpass."""


class PreprocessorFailure(ShaderpassError):
    """Raised when preprocessing a pass fails (malformed directives, macro cycles)."""

    def __init__(self, pass_name, errors):
        self.pass_name = PassName.from_value(pass_name)
        self.errors = list(errors)
        if self.errors:
            first = self.errors[0]
            msg = f"{self.pass_name}: line {first.line}: {first.message}"
            if len(self.errors) > 1:
                msg += f" (and {len(self.errors) - 1} more)"
        else:
            msg = f"Preprocessing failed for {self.pass_name}"
        super().__init__(msg)

    def to_diagnostics(self):
        """Get the errors as a list of Diagnostic objects."""
        return [
            Diagnostic(err.line, self.pass_name, Severity.error, err.message, err.line)
            for err in self.errors
        ]


class ValidationFailure(PreprocessorFailure):
    """Raised when the entry point of a pass is missing or malformed."""


class ShaderCompileError(ShaderpassError):
    """Raised by a compile oracle when it rejects the assembled source.

    The ``log`` is the raw info log of the compiler, with lines like
    ``ERROR: 0:12: 'foo' : undeclared identifier``.
    """

    def __init__(self, log):
        self.log = log
        lines = log.strip().splitlines()
        super().__init__(lines[0] if lines else "Compilation failed")


class CompileFailure(ShaderpassError):
    """Raised when one or more passes failed to compile.

    The ``diagnostics`` are mapped to the original passes and lines.
    """

    def __init__(self, diagnostics, failed_passes=()):
        self.diagnostics = list(diagnostics)
        self.failed_passes = tuple(PassName.from_value(p) for p in failed_passes)
        n = len(self.failed_passes)
        if n:
            msg = f"Shader compilation failed in {n} pass{'es' if n > 1 else ''}"
        else:
            msg = "Shader compilation failed"
        super().__init__(msg)

    @property
    def pass_errors(self):
        """A dict mapping PassName to the list of diagnostics for that pass."""
        return group_by_pass(self.diagnostics)
