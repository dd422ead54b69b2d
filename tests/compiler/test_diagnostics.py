from pytest import raises

from shaderpass import PassName, Severity
from shaderpass.compiler.assemble import assemble, AssembledUnit
from shaderpass.compiler.diagnostics import (
    Diagnostic,
    map_diagnostics,
    normalize_message,
    clean_message,
    group_by_pass,
)
from shaderpass.compiler.preprocess import LineMap


IMAGE_CODE = """void mainImage(out vec4 fragColor, in vec2 fragCoord) {
    vec2 uv = fragCoord / iResolution.xy;
    fragColor = vec4(uv, 0.0, 1.0);
}"""


def bare_unit(pass_name=PassName.image):
    return AssembledUnit("", "", 0, 0, LineMap(), LineMap(), pass_name)


def test_map_undeclared_identifier():
    raw_log = "ERROR: 0:2: 'foo' : undeclared identifier"
    diagnostics = map_diagnostics(raw_log, PassName.image, bare_unit())

    assert len(diagnostics) == 1
    d = diagnostics[0]
    assert d.original_line == 2
    assert d.pass_name == PassName.image
    assert d.severity == Severity.error
    assert d.is_error
    assert "Undeclared identifier" in d.message
    assert "foo" in d.message
    assert "'" not in d.message and '"' not in d.message
    assert d.raw_line == 2


def test_map_warning():
    raw_log = "WARNING: 0:3: 'x' : variable is unused"
    diagnostics = map_diagnostics(raw_log, PassName.image, bare_unit())
    assert len(diagnostics) == 1
    assert diagnostics[0].severity == Severity.warning
    assert not diagnostics[0].is_error
    assert diagnostics[0].message == "X : variable is unused"


def test_map_to_pass_lines():
    unit = assemble("", IMAGE_CODE, PassName.image)
    start = unit.user_code_start_line
    raw_log = f"ERROR: 0:{start + 3}: 'fragColor' : l-value required"

    diagnostics = map_diagnostics(raw_log, PassName.image, unit)
    assert len(diagnostics) == 1
    assert diagnostics[0].pass_name == PassName.image
    assert diagnostics[0].original_line == 3
    assert diagnostics[0].raw_line == start + 3
    assert diagnostics[0].message == "Cannot assign to this expression"


def test_map_to_common():
    common = "#define SCALE 2.0\nfloat scaled(float x) {\n    return x * SCALE;\n}"
    unit = assemble(common, IMAGE_CODE, PassName.buffer_a)
    start = unit.user_code_start_line
    assert unit.common_line_count == 5

    # Any line inside the Common part is attributed to Common
    for line in range(start + 1, start + unit.common_line_count + 1):
        raw_log = f"ERROR: 0:{line}: '' : syntax error"
        diagnostics = map_diagnostics(raw_log, PassName.buffer_a, unit)
        assert diagnostics[0].pass_name == PassName.common
        assert diagnostics[0].original_line >= 1

    raw_log = f"ERROR: 0:{start + 3}: 'SCALE' : undeclared identifier"
    d = map_diagnostics(raw_log, PassName.buffer_a, unit)[0]
    assert d.pass_name == PassName.common
    assert d.original_line == 3

    # Right after Common, the pass starts
    raw_log = f"ERROR: 0:{start + 5 + 2}: 'uv' : undeclared identifier"
    d = map_diagnostics(raw_log, PassName.buffer_a, unit)[0]
    assert d.pass_name == PassName.buffer_a
    assert d.original_line == 2


def test_map_never_reattributes_without_common():
    unit = assemble("", IMAGE_CODE, PassName.buffer_d)
    start = unit.user_code_start_line
    for line in range(start + 1, start + 5):
        raw_log = f"ERROR: 0:{line}: 'x' : syntax error"
        d = map_diagnostics(raw_log, PassName.buffer_d, unit)[0]
        assert d.pass_name == PassName.buffer_d
        assert d.original_line == line - start


def test_map_clamps_lines():
    unit = assemble("float k = 1.0;", IMAGE_CODE, PassName.image)
    for line in (0, 1, unit.user_code_start_line):
        raw_log = f"ERROR: 0:{line}: 'x' : syntax error"
        d = map_diagnostics(raw_log, PassName.image, unit)[0]
        assert d.original_line == 1

    log = "ERROR: 0:5: 'x' : syntax error"
    d = map_diagnostics(log, PassName.image, bare_unit())[0]
    assert d.original_line == 5


def test_map_with_macro_expansion():
    code = "#define ADD(a, b) (a + b)\nvoid mainImage(out vec4 c, vec2 p) {\n    float v = ADD(1.0,\n        2.0);\n    c = vec4(v, bad);\n}"
    unit = assemble("", code, PassName.image)
    start = unit.user_code_start_line

    # The padding line of the invocation maps to the line of the invocation
    d = map_diagnostics(f"ERROR: 0:{start + 4}: 'x' : syntax error", "Image", unit)[0]
    assert d.original_line == 3
    log = f"ERROR: 0:{start + 5}: 'bad' : undeclared identifier"
    d = map_diagnostics(log, "Image", unit)[0]
    assert d.original_line == 5


def test_map_lines_without_line_number():
    raw_log = """
    ERROR: 0:4: 'a' : undeclared identifier
    Link failed because of missing main
    ERROR: 2 compilation errors.  No code generated.
    Some informational remark
    """
    diagnostics = map_diagnostics(raw_log, PassName.image, bare_unit())
    assert len(diagnostics) == 3
    assert diagnostics[0].original_line == 4
    assert diagnostics[1].original_line == 0
    assert diagnostics[1].severity == Severity.error
    assert diagnostics[1].message == "Link failed because of missing main"
    assert diagnostics[2].original_line == 0
    assert diagnostics[2].message == "2 compilation errors. No code generated."


def test_map_deduplicates():
    raw_log = "ERROR: 0:4: 'a' : undeclared identifier\n" * 3
    diagnostics = map_diagnostics(raw_log, PassName.image, bare_unit())
    assert len(diagnostics) == 1


def test_normalize_message():
    cases = [
        ("'foo' : undeclared identifier", "Undeclared identifier foo"),
        (
            "'=' : cannot convert from 'const float' to 'highp vec3'",
            "Type mismatch: cannot convert from const float to highp vec3",
        ),
        ("'+' : dimension mismatch", "Type mismatch: dimension mismatch in +"),
        (
            "'texture' : no matching overloaded function found",
            "No matching overload for function texture",
        ),
        (
            "'assign' : l-value required \"uv\" (can't modify a const)",
            "Cannot assign to this expression",
        ),
        (
            "'xyzw' : vector field selection out of range",
            "Invalid vector component xyzw",
        ),
        ("'[]' : index out of range '4'", "Index out of range 4"),
        ("'' : unexpected end of file", "Unexpected end of file, missing }"),
        ("'' : syntax error", "Syntax error"),
        ("'}' : syntax error", "Syntax error near }"),
        ("'foo' : function already has a body", "Redefinition of foo"),
        ("'foo' : redefinition", "Redefinition of foo"),
        ("ERROR:   something    odd", "Something odd"),
    ]
    for raw, expected in cases:
        assert normalize_message(raw) == expected, raw


def test_clean_message():
    assert clean_message("WARNING: 0:  'a'   was  here") == "A was here"
    assert clean_message("error: bad") == "Bad"


def test_diagnostic_equality():
    a = Diagnostic(3, "Image", "error", "Oops", 10)
    b = Diagnostic(3, PassName.image, Severity.error, "Oops", 10)
    c = Diagnostic(3, PassName.image, Severity.warning, "Oops", 10)
    assert a == b
    assert hash(a) == hash(b)
    assert a != c
    assert len({a, b, c}) == 2

    with raises(ValueError):
        Diagnostic(3, "Sound", "error", "Oops")
    with raises(ValueError):
        Diagnostic(3, "Image", "fatal", "Oops")


def test_group_by_pass():
    diagnostics = [
        Diagnostic(5, "Image", "error", "b"),
        Diagnostic(2, "Common", "error", "c"),
        Diagnostic(1, "Image", "warning", "a"),
    ]
    groups = group_by_pass(diagnostics)
    assert set(groups) == {PassName.image, PassName.common}
    assert [d.message for d in groups[PassName.image]] == ["a", "b"]
    assert [d.message for d in groups[PassName.common]] == ["c"]
