"""
Assembly of the final fragment shader source for one pass.

The Common code (if any) is prepended to the code of the pass, the result is
preprocessed, and then inserted into the scaffold template, which declares
the uniforms and provides the ``main()`` that calls the entry point. The
assembled unit keeps the offsets needed to map compiler messages back to the
lines of the original passes.
"""

import re
import logging

from ..utils import count_lines
from ..utils.enums import PassName, PASS_ORDER
from .errors import PreprocessorFailure
from .preprocess import preprocess, LineMap, PreprocessorError
from .templating import render_template


logger = logging.getLogger("shaderpass")

SCAFFOLD_TEMPLATE = "shaderpass.scaffold.glsl"
DEFAULT_VERSION = "#version 300 es"
DEFAULT_FLOAT_PRECISION = "precision highp float;"
ENTRY_POINT = "mainImage"
OUTPUT_NAME = "shaderOutput"

_PLACEHOLDER = "__SHADERPASS_USER_CODE__"

re_version = re.compile(r"^\s*#\s*version\b.*$")
re_float_precision = re.compile(r"\bprecision\s+(lowp|mediump|highp)\s+float\s*;")


class AssembledUnit:
    """The result of assembling a pass.

    Attributes
    ----------
    final_source : str
        The complete fragment shader, ready for the compiler.
    code : str
        The preprocessed Common + pass code, as inserted into the scaffold.
    user_code_start_line : int
        The number of scaffold lines before the inserted code.
    common_line_count : int
        The number of lines the expanded Common code (plus its separator line)
        occupies at the start of ``code``. Zero if there is no Common code.
    line_map : LineMap
        Maps lines of the pass part of ``code`` (1-based, relative to the
        start of the pass code) to lines of the original pass source.
    common_line_map : LineMap
        Maps lines of the Common part of ``code`` to lines of the Common source.
    pass_name : PassName
        The pass this unit was assembled for.
    """

    def __init__(
        self,
        final_source,
        code,
        user_code_start_line,
        common_line_count,
        line_map,
        common_line_map,
        pass_name,
    ):
        self.final_source = final_source
        self.code = code
        self.user_code_start_line = user_code_start_line
        self.common_line_count = common_line_count
        self.line_map = line_map
        self.common_line_map = common_line_map
        self.pass_name = pass_name

    def __repr__(self):
        return (
            f"<AssembledUnit {self.pass_name} start={self.user_code_start_line} "
            f"common={self.common_line_count}>"
        )

    def locate(self, line, pass_name=None):
        """Get (pass_name, original_line) for the given line of ``code``.

        Lines in the Common part are attributed to the Common pass, others
        to the given pass (default the unit's pass). The returned line is
        not clamped.
        """
        if pass_name is None:
            pass_name = self.pass_name
        else:
            pass_name = PassName.from_value(pass_name)
        has_common = pass_name != PassName.common and self.common_line_count > 0
        if has_common and line <= self.common_line_count:
            return PassName.common, self.common_line_map.resolve(line)
        if has_common:
            line -= self.common_line_count
        return pass_name, self.line_map.resolve(line)


def assemble(common, user_code, pass_name, *, template=SCAFFOLD_TEMPLATE):
    """Assemble the fragment shader for the given pass.

    Raises PreprocessorFailure if preprocessing fails, attributed to the
    Common pass if the error is in the Common code.
    """
    pass_name = PassName.from_value(pass_name)
    common = common or ""

    # Combine, with a blank line in between
    has_common = bool(common.strip())
    if has_common:
        raw_common_lines = count_lines(common)
        combined = common + "\n\n" + user_code
    else:
        raw_common_lines = 0
        combined = user_code

    result = preprocess(combined)
    if result.errors:
        _raise_preprocessor_failure(result.errors, raw_common_lines, pass_name)

    # Relocate #version and precision into the header
    lines = result.code.split("\n")
    version, float_precision = _extract_header_statements(lines)

    scaffold = render_template(
        template,
        version=version,
        float_precision=float_precision,
        channels=[p.sampler_name for p in PASS_ORDER if p.is_buffer],
        output_name=OUTPUT_NAME,
        entry_point=ENTRY_POINT,
        user_code=_PLACEHOLDER,
    )
    scaffold_lines = scaffold.split("\n")
    for index, line in enumerate(scaffold_lines):
        if _PLACEHOLDER in line:
            break
    else:
        raise ValueError(
            f"Shader template {template!r} has no user_code placeholder."
        )

    final_lines = scaffold_lines[:index] + lines + scaffold_lines[index + 1 :]
    final_source = "\n".join(final_lines)

    # The Common part is measured on the Common code alone, because
    # macro expansion can make it differ from the raw line count.
    if has_common:
        common_line_count = count_lines(preprocess(common).code) + 1
        common_line_map = result.line_map.rebased(
            0, 0, out_range=(1, common_line_count), in_range=(1, raw_common_lines)
        )
        line_map = result.line_map.rebased(
            common_line_count,
            raw_common_lines + 1,
            out_range=(common_line_count + 1, len(lines)),
            in_range=(raw_common_lines + 2, count_lines(combined)),
        )
    else:
        common_line_count = 0
        common_line_map = LineMap()
        line_map = result.line_map

    logger.debug(
        f"Assembled {pass_name}: {len(lines)} lines of code at line {index + 1}, "
        f"{common_line_count} lines of Common code."
    )

    return AssembledUnit(
        final_source,
        "\n".join(lines),
        index,
        common_line_count,
        line_map,
        common_line_map,
        pass_name,
    )


def _raise_preprocessor_failure(errors, raw_common_lines, pass_name):
    common_errors = [err for err in errors if err.line <= raw_common_lines]
    if common_errors:
        raise PreprocessorFailure(PassName.common, common_errors)
    offset = raw_common_lines + 1 if raw_common_lines else 0
    raise PreprocessorFailure(
        pass_name,
        [PreprocessorError(err.line - offset, err.message) for err in errors],
    )


def _extract_header_statements(lines):
    """Remove ``#version`` lines and float precision statements from the
    given lines (in-place) and return the first of each, or the defaults.
    The removed lines are left empty so that line numbers do not change.
    """
    version = None
    float_precision = None
    for i, line in enumerate(lines):
        if re_version.match(line):
            if version is None:
                version = line.strip()
            lines[i] = ""
        elif "precision" in line:
            matches = list(re_float_precision.finditer(line))
            if not matches:
                continue
            if float_precision is None:
                float_precision = f"precision {matches[0].group(1)} float;"
            for match in reversed(matches):
                line = line[: match.start()] + line[match.end() :]
            lines[i] = line if line.strip() else ""
    return version or DEFAULT_VERSION, float_precision or DEFAULT_FLOAT_PRECISION
