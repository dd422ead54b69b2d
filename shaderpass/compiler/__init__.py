"""
This subpackage turns the user's shader passes into compilable fragment
shaders, and turns the compiler's complaints back into something the user
can act on.

## A note about line numbers

The hard part of compiling user shaders is not producing the code, but
reporting errors at the right place. The compiler sees one big source per
pass: the scaffold (uniforms and a ``main()``), the Common code, and the code
of the pass itself, after macro expansion. The user sees separate tabs, with
unexpanded code.

We solve this by keeping three pieces of bookkeeping:

* The preprocessor keeps the line count intact where it can (directives and
  untaken branches become empty lines) and produces a line map for the rest.
* The assembler records how many scaffold lines precede the user code, and
  how many lines the (expanded) Common code occupies.
* The diagnostic mapper uses both to attribute each message to the Common tab
  or the tab of the pass, at the original line.
"""

from .preprocess import (  # noqa: F401
    preprocess,
    extract_macro_names,
    PreprocessResult,
    PreprocessorError,
    LineMap,
    MAX_EXPANSION_DEPTH,
)
from .assemble import assemble, AssembledUnit, ENTRY_POINT  # noqa: F401
from .validate import validate, validate_unit, ENTRY_POINT_SIGNATURE  # noqa: F401
from .diagnostics import (  # noqa: F401
    Diagnostic,
    map_diagnostics,
    normalize_message,
    group_by_pass,
)
from .multipass import PassSource, CompileResult, compile_passes  # noqa: F401
from .templating import register_glsl_loader  # noqa: F401
from .errors import (  # noqa: F401
    ShaderpassError,
    PreprocessorFailure,
    ValidationFailure,
    ShaderCompileError,
    CompileFailure,
)
