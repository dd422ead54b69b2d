"""
Compilation of a complete (multipass) shader.

A single compile attempt goes through these stages, per pass::

    preprocessing -> assembled -> validating -> compiling -> succeeded

A preprocessor or validation failure stops the whole attempt immediately.
Compile failures of the individual passes are collected, so that the user
sees the errors of all passes at once. There is no retry: the caller simply
compiles again when the code changes.
"""

import logging
from collections.abc import Mapping

from ..utils.enums import PassName, Severity, PASS_ORDER
from .assemble import assemble
from .diagnostics import Diagnostic, map_diagnostics
from .errors import ShaderCompileError, CompileFailure, ValidationFailure
from .preprocess import PreprocessorError
from .validate import validate_unit


logger = logging.getLogger("shaderpass")


class PassSource:
    """The source code of one pass, as edited by the user."""

    __slots__ = ["name", "code"]

    def __init__(self, name, code):
        self.name = PassName.from_value(name)
        self.code = code or ""

    def __repr__(self):
        return f"<PassSource {self.name} ({len(self.code)} chars)>"


class CompileResult:
    """The result of a successful compile.

    The ``programs`` map pass names to the handles returned by the compile
    function, in render order. The ``diagnostics`` contain the warnings, if any.
    """

    def __init__(self, programs, units, diagnostics):
        self.programs = programs
        self.units = units
        self.diagnostics = diagnostics

    @property
    def has_warnings(self):
        return bool(self.diagnostics)


def normalize_passes(passes):
    """Get a dict mapping PassName to code from a mapping or iterable of PassSource.

    Raises ValueError if a pass is given twice or if the Image pass is missing.
    """
    if isinstance(passes, Mapping):
        passes = [PassSource(name, code) for name, code in passes.items()]
    result = {}
    for source in passes:
        if not isinstance(source, PassSource):
            raise TypeError(f"Expected PassSource objects, got {source!r}")
        if source.name in result:
            raise ValueError(f"Duplicate pass: {source.name}")
        result[source.name] = source.code
    if PassName.image not in result:
        raise ValueError("The Image pass is required.")
    return result


def compile_passes(passes, compile_program):
    """Compile all passes of a shader.

    Parameters
    ----------
    passes : Mapping | iterable of PassSource
        The sources of the passes. The Image pass is mandatory.
    compile_program : callable
        The compiler: ``compile_program(source, pass_name)`` must return a tuple
        ``(handle, info_log)``, or raise ``ShaderCompileError`` with the log.

    Returns a CompileResult. Raises PreprocessorFailure or ValidationFailure
    for the first pass that fails these checks, and CompileFailure with the
    diagnostics of all passes if any pass fails to compile.
    """
    sources = normalize_passes(passes)
    common = sources.get(PassName.common, "")

    programs = {}
    units = {}
    diagnostics = []
    failed_passes = []

    for pass_name in PASS_ORDER:
        if pass_name not in sources:
            continue

        if not sources[pass_name].strip():
            error = PreprocessorError(0, "Shader code is empty")
            raise ValidationFailure(pass_name, [error])

        unit = assemble(common, sources[pass_name], pass_name)
        validate_unit(unit)
        units[pass_name] = unit

        try:
            handle, info_log = compile_program(unit.final_source, pass_name)
        except ShaderCompileError as err:
            logger.debug(f"Compiling {pass_name} failed:\n{err.log}")
            failed_passes.append(pass_name)
            pass_diagnostics = map_diagnostics(err.log, pass_name, unit)
            if not any(d.is_error for d in pass_diagnostics):
                msg = f"Shader compilation failed in {pass_name}"
                pass_diagnostics.append(Diagnostic(0, pass_name, Severity.error, msg))
            _extend_unique(diagnostics, pass_diagnostics)
        else:
            programs[pass_name] = handle
            if info_log and info_log.strip():
                _extend_unique(diagnostics, map_diagnostics(info_log, pass_name, unit))

    if failed_passes:
        raise CompileFailure(diagnostics, failed_passes)

    return CompileResult(programs, units, diagnostics)


def _extend_unique(diagnostics, new_diagnostics):
    # A problem in Common surfaces once for each pass; report it once.
    for diagnostic in new_diagnostics:
        if diagnostic not in diagnostics:
            diagnostics.append(diagnostic)
