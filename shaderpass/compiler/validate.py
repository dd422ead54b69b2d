"""
Validation of the entry point of a pass. This runs on preprocessed code, so
that a signature produced by a macro is checked in its expanded form.
"""

import re

from ..utils.enums import PassName
from .assemble import ENTRY_POINT
from .errors import ValidationFailure
from .preprocess import PreprocessorError


ENTRY_POINT_SIGNATURE = f"void {ENTRY_POINT}(out vec4 fragColor, in vec2 fragCoord)"

re_comment = re.compile(r"//[^\n]*|/\*.*?\*/", re.DOTALL)
re_name = re.compile(rf"\b{ENTRY_POINT}\b")
re_declaration = re.compile(
    rf"\b([A-Za-z_]\w*)\s+{ENTRY_POINT}\s*\(([^)]*)\)\s*(?=[{{;])"
)
re_params = re.compile(
    r"^\s*out\s+vec4\s+[A-Za-z_]\w*\s*,\s*(?:in\s+)?vec2\s+[A-Za-z_]\w*\s*$"
)

_not_a_type = {"return", "else", "case"}


def strip_comments(code):
    """Remove comments, keeping the newlines so that line numbers do not change."""
    return re_comment.sub(lambda m: "\n" * m.group(0).count("\n"), code)


def validate(code, pass_name):
    """Check that the code declares a conforming entry point.

    Raises ValidationFailure with the line (relative to the given code) of
    the problem, or line 0 if the entry point is missing altogether.
    """
    pass_name = PassName.from_value(pass_name)
    code = strip_comments(code)

    if not code.strip():
        raise ValidationFailure(
            pass_name, [PreprocessorError(0, "Shader code is empty")]
        )

    declarations = [
        m for m in re_declaration.finditer(code) if m.group(1) not in _not_a_type
    ]
    if not declarations:
        msg = f"Missing entry point: expected {ENTRY_POINT_SIGNATURE}"
        raise ValidationFailure(pass_name, [PreprocessorError(0, msg)])

    for match in declarations:
        if match.group(1) == "void" and re_params.match(match.group(2)):
            return

    first = re_name.search(code)
    line = code.count("\n", 0, first.start()) + 1
    msg = f"Incorrect {ENTRY_POINT} signature: expected {ENTRY_POINT_SIGNATURE}"
    raise ValidationFailure(pass_name, [PreprocessorError(line, msg)])


def validate_unit(unit):
    """Validate an AssembledUnit.

    The line of a failure is mapped to the pass (Common or the unit's pass)
    and the original line in that pass.
    """
    try:
        validate(unit.code, unit.pass_name)
    except ValidationFailure as err:
        pass_name = unit.pass_name
        errors = []
        for error in err.errors:
            line = error.line
            if line > 0:
                pass_name, line = unit.locate(line)
                line = max(1, line)
            errors.append(PreprocessorError(line, error.message))
        raise ValidationFailure(pass_name, errors) from None
