"""
Mapping of raw compiler messages to diagnostics for the editor.

The compiler (e.g. the GPU driver) reports problems against the lines of the
final assembled source, in a log like::

    ERROR: 0:25: 'foo' : undeclared identifier
    ERROR: 0:31: '' : syntax error
    WARNING: 0:12: 'x' : unused variable

Each message is attributed to the pass (and line in that pass) the user
wrote, and the message text is rewritten into a short, readable sentence.
"""

import re

from ..utils.enums import PassName, Severity


re_log_line = re.compile(r"^\s*(ERROR|WARNING)\s*:\s*[^:\n]*:\s*(\d+)\s*:\s*(.*)$")
re_severity_prefix = re.compile(r"^\s*(ERROR|WARNING|INFO)\s*:\s*(\d+\s*:\s*)?", re.I)
re_quotes = re.compile(r"""['"`]([^'"`]*)['"`]""")
re_whitespace = re.compile(r"\s+")
re_empty_subject = re.compile(r"^\s*:\s*")


class Diagnostic:
    """A compiler message, attributed to an original pass and line.

    An ``original_line`` of zero means that the message could not be
    attributed to a line.
    """

    __slots__ = ["original_line", "pass_name", "severity", "message", "raw_line"]

    def __init__(self, original_line, pass_name, severity, message, raw_line=0):
        self.original_line = int(original_line)
        self.pass_name = PassName.from_value(pass_name)
        self.severity = Severity(severity)
        self.message = message
        self.raw_line = int(raw_line)

    def _key(self):
        return (
            self.original_line,
            self.pass_name,
            self.severity,
            self.message,
            self.raw_line,
        )

    def __eq__(self, other):
        if not isinstance(other, Diagnostic):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    def __repr__(self):
        return (
            f"<Diagnostic {self.severity} {self.pass_name}:{self.original_line} "
            f"{self.message!r}>"
        )

    @property
    def is_error(self):
        return self.severity == Severity.error


# Rewrites for known compiler phrasings, applied to the message after the
# quotes have been stripped. The first match wins. The messages are of the
# form "<subject> : <description>", where the subject may be empty.
message_rewrites = [
    (
        re.compile(r"^(\w+)\s*:\s*undeclared identifier", re.I),
        r"Undeclared identifier \1",
    ),
    (
        re.compile(r"undeclared identifier\s*:?\s*(\w*)", re.I),
        r"Undeclared identifier \1",
    ),
    (
        re.compile(r"cannot convert from\s+(.+?)\s+to\s+(.+?)\s*$", re.I),
        r"Type mismatch: cannot convert from \1 to \2",
    ),
    (
        re.compile(r"^(.*?)\s*:\s*dimension mismatch", re.I),
        r"Type mismatch: dimension mismatch in \1",
    ),
    (
        re.compile(r"^(\w+)\s*:\s*no matching overloaded function found", re.I),
        r"No matching overload for function \1",
    ),
    (
        re.compile(r"no matching overloaded function found", re.I),
        r"No matching overload for function call",
    ),
    (
        re.compile(r"l-value required", re.I),
        r"Cannot assign to this expression",
    ),
    (
        re.compile(r"cannot assign to\s*(.*)$", re.I),
        r"Cannot assign to \1",
    ),
    (
        re.compile(r"^(\w+)\s*:\s*(?:vector )?field selection out of range", re.I),
        r"Invalid vector component \1",
    ),
    (re.compile(r"index out of range\s*(.*)$", re.I), r"Index out of range \1"),
    (re.compile(r"unexpected end of file", re.I), r"Unexpected end of file, missing }"),
    (
        re.compile(r"^(.*?)\s*:\s*syntax error.*?expecting\s+(.+)$", re.I),
        r"Syntax error near \1, expected \2",
    ),
    (re.compile(r"missing\s+(.+?)\s*$", re.I), r"Missing \1"),
    (re.compile(r"^;\s*:\s*syntax error", re.I), r"Syntax error, missing ;"),
    (re.compile(r"^(\S.*?)\s*:\s*syntax error", re.I), r"Syntax error near \1"),
    (re.compile(r"syntax error", re.I), r"Syntax error"),
    (
        re.compile(
            r"^(\w+)\s*:\s*(?:function|variable)? ?(?:already has a body|redefinition)",
            re.I,
        ),
        r"Redefinition of \1",
    ),
    (
        re.compile(r"^(\w+)\s*:\s*(.*\bqualifier\b.*)$", re.I),
        r"Invalid use of qualifier \1: \2",
    ),
]


def _capitalize(message):
    return message[:1].upper() + message[1:]


def clean_message(message):
    """Strip severity prefixes and quotes, collapse whitespace, and capitalize."""
    message = re_severity_prefix.sub("", message)
    message = re_quotes.sub(r"\1", message)
    message = re_empty_subject.sub("", message)
    message = re_whitespace.sub(" ", message).strip()
    return _capitalize(message)


def normalize_message(message):
    """Turn a raw compiler message into a short, readable sentence."""
    stripped = re_severity_prefix.sub("", message)
    stripped = re_quotes.sub(r"\1", stripped)
    stripped = re_whitespace.sub(" ", stripped).strip()
    for regexp, replacement in message_rewrites:
        match = regexp.search(stripped)
        if match:
            result = match.expand(replacement)
            return _capitalize(re_whitespace.sub(" ", result).strip())
    return clean_message(stripped)


def map_diagnostics(raw_log, pass_name, unit):
    """Map the raw compiler log for an assembled unit to a list of Diagnostic objects.

    Parameters
    ----------
    raw_log : str
        The log of the compiler.
    pass_name : PassName
        The pass that was compiled.
    unit : AssembledUnit
        The assembled unit that was compiled, providing the offsets and
        line maps.
    """
    pass_name = PassName.from_value(pass_name)
    diagnostics = []
    for log_line in raw_log.splitlines():
        if not log_line.strip():
            continue
        match = re_log_line.match(log_line)
        if match:
            severity = Severity.error if match.group(1) == "ERROR" else Severity.warning
            raw_line = int(match.group(2))
            target_pass, line = unit.locate(
                raw_line - unit.user_code_start_line, pass_name
            )
            diagnostic = Diagnostic(
                max(1, line),
                target_pass,
                severity,
                normalize_message(match.group(3)),
                raw_line,
            )
        elif "error" in log_line.lower() or "failed" in log_line.lower():
            diagnostic = Diagnostic(
                0, pass_name, Severity.error, clean_message(log_line), 0
            )
        else:
            continue
        if diagnostic not in diagnostics:
            diagnostics.append(diagnostic)
    return diagnostics


def group_by_pass(diagnostics):
    """Group diagnostics by pass, for per-tab display.

    Returns a dict mapping PassName to a list of diagnostics, sorted by line.
    """
    groups = {}
    for diagnostic in diagnostics:
        groups.setdefault(diagnostic.pass_name, []).append(diagnostic)
    for items in groups.values():
        items.sort(key=lambda d: d.original_line)
    return groups
