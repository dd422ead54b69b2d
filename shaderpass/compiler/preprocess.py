"""
A preprocessor for the C-like directive language of GLSL.

The preprocessor runs in three phases:

* Line splicing: lines ending in a backslash are joined with the next line.
* Directive processing: ``#define``, ``#undef``, ``#ifdef``, ``#ifndef``,
  ``#if``, ``#elif``, ``#else`` and ``#endif`` are consumed. Other directives
  (like ``#version`` and ``#extension``) pass through.
* Macro expansion of the remaining code, using the macro table as it is at
  each line.

Directive lines and lines in untaken branches are replaced with empty lines,
so that the line count of the output normally matches that of the input.

Along the way a line map is produced that maps each output line to the input
line it came from. Lines that do not originate from exactly one input line
(e.g. the placeholders of removed directives) are not in the map. Use
``LineMap.resolve()`` to look up a line with a fallback to the nearest
preceding mapped line. This means that the mapping is approximate for
macro-heavy code, which is good enough for pointing users at their errors.
"""

import re
import logging

from .expressions import evaluate_condition, replace_defined


logger = logging.getLogger("shaderpass")

# Maximum nesting of macro expansions, protecting against circular definitions.
MAX_EXPANSION_DEPTH = 32

re_directive = re.compile(r"^\s*#\s*([A-Za-z_]\w*)?\s*(.*)$")
re_identifier = re.compile(r"\b[A-Za-z_]\w*\b")
re_open_paren = re.compile(r"[ \t]*\(")
re_func_define = re.compile(r"^([A-Za-z_]\w*)\(([^)]*)\)\s*(.*)$")
re_object_define = re.compile(r"^([A-Za-z_]\w*)(?:\s+(.*))?$")
re_line_comment = re.compile(r"//.*$")
re_block_comment = re.compile(r"/\*.*?\*/")
re_paste = re.compile(r"\s*##\s*")
re_whitespace_newline = re.compile(r"\s*\n\s*")


class PreprocessorError:
    """An error found while preprocessing, at a 1-based line of the input."""

    __slots__ = ["line", "message"]

    def __init__(self, line, message):
        self.line = int(line)
        self.message = str(message)

    def __repr__(self):
        return f"<PreprocessorError line {self.line}: {self.message}>"

    def __eq__(self, other):
        if not isinstance(other, PreprocessorError):
            return NotImplemented
        return self.line == other.line and self.message == other.message

    def __hash__(self):
        return hash((self.line, self.message))


class LineMap(dict):
    """A partial map from (1-based) output lines to input lines."""

    def resolve(self, line):
        """Get the input line for the given output line.

        If the line itself is not mapped, the nearest preceding mapped line
        is used. If there is no such line, the line is returned as-is.
        """
        try:
            return self[line]
        except KeyError:
            pass
        preceding = [key for key in self if key < line]
        if preceding:
            return self[max(preceding)]
        return line

    def rebased(self, out_offset, in_offset, out_range=None, in_range=None):
        """Get a new LineMap with ``out_offset`` subtracted from the keys and
        ``in_offset`` subtracted from the values. Entries outside the given
        (inclusive) ranges of the original keys and values are dropped.
        """
        result = LineMap()
        for key, value in self.items():
            if out_range and not (out_range[0] <= key <= out_range[1]):
                continue
            if in_range and not (in_range[0] <= value <= in_range[1]):
                continue
            result[key - out_offset] = value - in_offset
        return result


class PreprocessResult:
    """The result of preprocessing: the code, the errors, and the line map."""

    def __init__(self, code, errors, line_map):
        self.code = code
        self.errors = errors
        self.line_map = line_map

    @property
    def ok(self):
        """Whether preprocessing succeeded. If not, the code must not be compiled."""
        return not self.errors

    def __repr__(self):
        return f"<PreprocessResult with {len(self.errors)} errors>"


class Macro:
    """A macro definition. Function-like macros have a tuple of params."""

    __slots__ = ["name", "params", "body", "line"]

    def __init__(self, name, params, body, line):
        self.name = name
        self.params = params
        self.body = body
        self.line = line

    def substitute(self, args):
        """Get the body with the params replaced by the given args."""
        lookup = dict(zip(self.params, args))

        def repl(match):
            word = match.group(0)
            return lookup.get(word, word)

        body = re_identifier.sub(repl, self.body)
        if "##" in body:
            body = re_paste.sub("", body)
        return body


# Internal exceptions to bail out of an expansion


class _ExpansionError(Exception):
    def __init__(self, macro, message):
        super().__init__(message)
        self.macro = macro
        self.message = message


class _Unterminated(_ExpansionError):
    pass


class _TooDeep(_ExpansionError):
    pass


class _Conditional:
    __slots__ = ["active", "matched", "line", "seen_else"]

    def __init__(self, active, matched, line):
        self.active = active  # whether the current branch is taken
        self.matched = matched  # whether any branch so far was taken
        self.line = line
        self.seen_else = False


def preprocess(source):
    """Preprocess the given source, returning a PreprocessResult."""
    return Preprocessor().process(source)


def splice_lines(source):
    """Join lines ending in a backslash with the next line.

    Returns a list of (text, input_line) tuples. The consumed continuation
    lines are replaced by ``("", None)``, so the line count does not change.
    """
    lines = source.split("\n")
    result = []
    i = 0
    while i < len(lines):
        text = lines[i]
        first = i + 1
        consumed = 0
        while text.rstrip().endswith("\\") and i + 1 < len(lines):
            i += 1
            consumed += 1
            text = text.rstrip()[:-1] + lines[i]
        result.append((text, first))
        result.extend([("", None)] * consumed)
        i += 1
    return result


def strip_directive_comments(text):
    text = re_block_comment.sub(" ", text)
    return re_line_comment.sub("", text).strip()


def extract_macro_names(source):
    """Get the names of the macros defined in the source (e.g. for autocompletion)."""
    names = []
    for text, _ in splice_lines(source):
        match = re_directive.match(text)
        if match and match.group(1) == "define":
            name_match = re.match(r"[A-Za-z_]\w*", match.group(2))
            if name_match:
                names.append(name_match.group(0))
    return names


class Preprocessor:
    """Object that preprocesses a single source. Use ``preprocess()`` instead."""

    def __init__(self):
        self.macros = {}
        self.errors = []
        self._stack = []
        self._lines = []
        self._line_map = LineMap()
        # A macro invocation spanning multiple lines: list of (text, input_line)
        self._pending = []

    # %% Output

    def _emit(self, text, input_line):
        self._lines.append(text)
        if input_line is not None:
            self._line_map[len(self._lines)] = input_line

    def _error(self, line, message):
        logger.debug(f"Preprocessor error at line {line}: {message}")
        self.errors.append(PreprocessorError(line, message))

    # %% Main loop

    def process(self, source):
        for text, input_line in splice_lines(source):
            if input_line is None:
                self._emit_or_defer("", None)
                continue
            match = re_directive.match(text)
            if match:
                self._flush_pending_unterminated()
                self._process_directive(match, text, input_line)
            elif self.is_active():
                self._expand_line(text, input_line)
            else:
                self._emit("", None)

        self._flush_pending_unterminated()

        for cond in self._stack:
            self._error(
                cond.line, "Unterminated conditional directive (missing #endif)"
            )

        return PreprocessResult("\n".join(self._lines), self.errors, self._line_map)

    def is_active(self):
        """Whether code at the current position is included."""
        return all(cond.active for cond in self._stack)

    def _emit_or_defer(self, text, input_line):
        # Spliced-away lines that fall inside a pending invocation stay pending
        if self._pending:
            self._pending.append((text, input_line))
        else:
            self._emit(text, input_line)

    # %% Directives

    def _process_directive(self, match, text, line):
        name = match.group(1) or ""
        arg = strip_directive_comments(match.group(2))
        active = self.is_active()

        if name == "define":
            if active:
                self._define(arg, line)
        elif name == "undef":
            if active:
                if re.fullmatch(r"[A-Za-z_]\w*", arg):
                    self.macros.pop(arg, None)
                else:
                    self._error(line, f"Invalid #undef syntax: {arg}")
        elif name in ("ifdef", "ifndef"):
            if not re.fullmatch(r"[A-Za-z_]\w*", arg):
                self._error(line, f"Invalid #{name} syntax: {arg}")
                value = False
            else:
                value = (arg in self.macros) == (name == "ifdef")
            self._stack.append(_Conditional(active and value, value, line))
        elif name == "if":
            value = self._evaluate(arg, line) if active else False
            self._stack.append(_Conditional(active and value, value, line))
        elif name == "elif":
            if not self._stack:
                self._error(line, "#elif without matching #if, #ifdef or #ifndef")
            else:
                cond = self._stack[-1]
                if cond.seen_else:
                    self._error(line, "#elif after #else")
                parent_active = all(c.active for c in self._stack[:-1])
                if cond.matched or not parent_active:
                    cond.active = False
                else:
                    value = self._evaluate(arg, line)
                    cond.active = value
                    cond.matched = value
        elif name == "else":
            if not self._stack:
                self._error(line, "#else without matching #if, #ifdef or #ifndef")
            else:
                cond = self._stack[-1]
                if cond.seen_else:
                    self._error(line, "#else after #else")
                parent_active = all(c.active for c in self._stack[:-1])
                cond.active = parent_active and not cond.matched
                cond.matched = True
                cond.seen_else = True
        elif name == "endif":
            if not self._stack:
                self._error(line, "#endif without matching #if, #ifdef or #ifndef")
            else:
                self._stack.pop()
        else:
            # Directives for the compiler (#version, #extension, #pragma, ...)
            self._emit(text if active else "", line if active else None)
            return

        self._emit("", None)

    def _define(self, arg, line):
        match = re_func_define.match(arg)
        if match:
            name, params_str, body = match.groups()
            params = tuple(p.strip() for p in params_str.split(",") if p.strip())
            if not all(re.fullmatch(r"[A-Za-z_]\w*", p) for p in params):
                self._error(line, f"Invalid #define syntax: {arg}")
                return
            self.macros[name] = Macro(name, params, body.strip(), line)
            return
        match = re_object_define.match(arg)
        if match:
            name, body = match.groups()
            body = "1" if body is None or not body.strip() else body.strip()
            self.macros[name] = Macro(name, None, body, line)
            return
        self._error(line, f"Invalid #define syntax: {arg}")

    def _evaluate(self, expr, line):
        if not expr:
            self._error(line, "Missing expression in conditional directive")
            return False
        expr = replace_defined(expr, lambda name: name in self.macros)
        try:
            expr = self.expand(expr)
            return evaluate_condition(expr)
        except _ExpansionError as err:
            if isinstance(err, _TooDeep):
                self._error(err.macro.line, err.message)
            else:
                self._error(line, err.message)
        except ValueError as err:
            self._error(line, f"Invalid expression in conditional directive: {err}")
        return False

    # %% Macro expansion

    def _expand_line(self, text, line):
        if self._pending:
            self._pending.append((text, line))
            text = "\n".join(t for t, _ in self._pending)
            line = self._pending[0][1]
        try:
            expanded = self.expand(text)
        except _Unterminated:
            if not self._pending:
                self._pending.append((text, line))
            return
        except _ExpansionError as err:
            if isinstance(err, _TooDeep):
                self._error(err.macro.line, err.message)
            else:
                self._error(line, err.message)
            expanded = None

        chunk = self._pending or [(text, line)]
        self._pending = []
        if expanded is None:
            for t, ln in chunk:
                self._emit(t, ln)
            return
        # The expansion of a multi-line invocation lands on its first line,
        # and the consumed lines become empty so that line numbers stay put.
        expanded_lines = expanded.split("\n")
        self._emit(expanded_lines[0], line)
        for t in expanded_lines[1:]:
            self._emit(t, None)
        for _ in range(len(chunk) - len(expanded_lines)):
            self._emit("", None)

    def _flush_pending_unterminated(self):
        if not self._pending:
            return
        text = "\n".join(t for t, _ in self._pending)
        name = "?"
        try:
            self.expand(text)
        except _ExpansionError as err:
            name = err.macro.name
        self._error(
            self._pending[0][1], f"Unterminated invocation of macro {name}"
        )
        for t, ln in self._pending:
            self._emit(t, ln)
        self._pending = []

    def expand(self, text, depth=0):
        """Expand the macros in the given text.

        Raises an internal _ExpansionError when expansion fails.
        """
        parts = []
        pos = 0
        while True:
            match = re_identifier.search(text, pos)
            if match is None:
                parts.append(text[pos:])
                break
            name = match.group(0)
            macro = self.macros.get(name)
            if macro is None:
                parts.append(text[pos : match.end()])
                pos = match.end()
                continue

            if macro.params is None:
                replacement = macro.body
                end = match.end()
            else:
                paren = re_open_paren.match(text, match.end())
                if not paren:
                    # A function-like macro name without arguments is left alone
                    parts.append(text[pos : match.end()])
                    pos = match.end()
                    continue
                args, end = self._extract_args(macro, text, paren.end())
                if len(args) != len(macro.params):
                    raise _ExpansionError(
                        macro,
                        f"Macro {macro.name} expects {len(macro.params)} arguments,"
                        f" got {len(args)}",
                    )
                replacement = macro.substitute(args)

            if depth >= MAX_EXPANSION_DEPTH:
                raise _TooDeep(
                    macro,
                    f"Macro {macro.name} expands too deeply (circular definition?)",
                )
            try:
                replacement = self.expand(replacement, depth + 1)
            except _TooDeep as err:
                if depth == 0:
                    # Report the cycle at the macro that was invoked in the code
                    err.macro = macro
                    err.message = (
                        f"Macro {macro.name} expands too deeply (circular definition?)"
                    )
                raise

            parts.append(text[pos : match.start()])
            parts.append(replacement)
            pos = end
        return "".join(parts)

    def _extract_args(self, macro, text, start):
        """Extract the arguments of an invocation, starting after the open paren.

        Returns (args, end), with end the index after the closing paren.
        """
        args = []
        current = []
        level = 1
        i = start
        while i < len(text):
            c = text[i]
            if c == "(":
                level += 1
            elif c == ")":
                level -= 1
                if level == 0:
                    break
            elif c == "," and level == 1:
                args.append("".join(current))
                current = []
                i += 1
                continue
            current.append(c)
            i += 1
        else:
            raise _Unterminated(
                macro, f"Unmatched parentheses in invocation of macro {macro.name}"
            )
        args.append("".join(current))
        args = [re_whitespace_newline.sub(" ", arg).strip() for arg in args]
        if args == [""]:
            args = []
        return args, i + 1
