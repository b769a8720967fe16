"""Parsing of go.mod files for modlist.

The file is read line by line. Each line holds one directive, or opens or
closes a parenthesized block of directives sharing a verb:

    module example.com/m

    go 1.21

    require (
        example.com/a/v2 v2.0.0
        example.com/b v1.0.0 // indirect
    )

Syntax errors stop the parse at once. Errors in individual directives are
collected and reported together in a single ParseError.
"""

import re
from dataclasses import dataclass, field

import modpath
import versions
from logging_setup import get_logger

GO_VERSION_RE = re.compile(
    r"([1-9][0-9]*)\.(0|[1-9][0-9]*)(\.(0|[1-9][0-9]*))?([a-z]+(0|[1-9][0-9]*))?"
)
TOOLCHAIN_RE = re.compile(r"default\Z|go1(\Z|\.)")
DEPRECATED_RE = re.compile(r"(?:^|\n\n)Deprecated: *(.*?)(?:$|\n\n)", re.DOTALL)

BLOCK_VERBS = ("module", "godebug", "require", "exclude", "replace", "retract", "tool", "ignore")

_PUNCTUATION = "()[]{},"
_ESCAPES = {
    "a": "\a", "b": "\b", "f": "\f", "n": "\n", "r": "\r",
    "t": "\t", "v": "\v", "\\": "\\", '"': '"',
}

logger = get_logger("modfile")


@dataclass
class Requirement:
    path: str
    version: str
    indirect: bool = False


@dataclass
class ModuleVersion:
    path: str
    version: str = ""


@dataclass
class Replacement:
    old: ModuleVersion
    new: ModuleVersion


@dataclass
class Retraction:
    low: str
    high: str
    rationale: str = ""


@dataclass
class Manifest:
    module: str = ""
    deprecated: str = ""
    go_version: str = ""
    toolchain: str = ""
    godebug: dict[str, str] = field(default_factory=dict)
    require: list[Requirement] = field(default_factory=list)
    exclude: list[ModuleVersion] = field(default_factory=list)
    replace: list[Replacement] = field(default_factory=list)
    retract: list[Retraction] = field(default_factory=list)
    tool: list[str] = field(default_factory=list)
    ignore: list[str] = field(default_factory=list)


class ModFileError(Exception):
    """A single problem at a position in a mod file."""

    def __init__(
        self,
        filename: str,
        line: int,
        message: str,
        column: int = 0,
        verb: str = "",
        mod_path: str = "",
    ) -> None:
        self.filename = filename
        self.line = line
        self.column = column
        self.verb = verb
        self.mod_path = mod_path
        self.message = message
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.column > 1:
            pos = f"{self.filename}:{self.line}:{self.column}: "
        elif self.line > 0:
            pos = f"{self.filename}:{self.line}: "
        elif self.filename:
            pos = f"{self.filename}: "
        else:
            pos = ""

        if self.mod_path:
            directive = f"{self.verb} {self.mod_path}: "
        elif self.verb:
            directive = f"{self.verb}: "
        else:
            directive = ""
        return pos + directive + self.message


class ParseError(Exception):
    """One or more ModFileErrors, one per line of the message."""

    def __init__(self, errors: list[ModFileError]) -> None:
        self.errors = errors
        super().__init__("\n".join(str(e) for e in errors))


@dataclass
class _Line:
    tokens: list[str]
    lineno: int
    column: int
    before: list[str] = field(default_factory=list)
    suffix: list[str] = field(default_factory=list)


@dataclass
class _Block:
    tokens: list[str]
    lineno: int
    column: int
    before: list[str] = field(default_factory=list)
    suffix: list[str] = field(default_factory=list)
    lines: list[_Line] = field(default_factory=list)


def _tokenize(text: str, filename: str, lineno: int) -> tuple[list[tuple[str, int]], str | None]:
    """Split one physical line into (token, column) pairs and a trailing comment.

    Quoted strings are kept with their quotes so that ``"("`` never reads
    as punctuation.
    """
    tokens: list[tuple[str, int]] = []
    i = 0
    n = len(text)
    while i < n:
        c = text[i]
        if c in " \t\r":
            i += 1
            continue
        if text.startswith("//", i):
            return tokens, text[i + 2 :].strip()
        if text.startswith("/*", i):
            raise ModFileError(
                filename, lineno, "mod files must use // comments, not /* comments", column=i + 1
            )
        if c in _PUNCTUATION:
            tokens.append((c, i + 1))
            i += 1
            continue
        if c in "\"`":
            end = i + 1
            while end < n and text[end] != c:
                if c == '"' and text[end] == "\\":
                    end += 1
                end += 1
            if end >= n:
                raise ModFileError(filename, lineno, "unexpected newline in string", column=i + 1)
            tokens.append((text[i : end + 1], i + 1))
            i = end + 1
            continue
        start = i
        while (
            i < n
            and text[i] not in " \t\r" + _PUNCTUATION + "\"`"
            and not text.startswith("//", i)
            and not text.startswith("/*", i)
        ):
            i += 1
        tokens.append((text[start:i], start + 1))
    return tokens, None


def _read_statements(filename: str, text: str) -> list[_Line | _Block]:
    statements: list[_Line | _Block] = []
    pending: list[str] = []
    block: _Block | None = None

    for lineno, raw in enumerate(text.split("\n"), start=1):
        positioned, comment = _tokenize(raw, filename, lineno)
        tokens = [t for t, _ in positioned]
        suffix = [comment] if comment is not None else []

        if not tokens:
            if comment is None:
                # A blank line detaches comments from the next directive.
                pending = []
            else:
                pending.append(comment)
            continue

        if block is not None:
            if tokens == [")"]:
                statements.append(block)
                block = None
                pending = []
                continue
            for tok, col in positioned:
                if tok in ("(", ")"):
                    raise ModFileError(filename, lineno, f"unexpected {tok!r} in block", column=col)
            block.lines.append(_Line(tokens, lineno, positioned[0][1], pending, suffix))
            pending = []
            continue

        if len(tokens) > 1 and tokens[-1] == "(" and "(" not in tokens[:-1] and ")" not in tokens:
            block = _Block(tokens[:-1], lineno, positioned[0][1], pending, suffix)
            pending = []
            continue

        for tok, col in positioned:
            if tok in ("(", ")"):
                raise ModFileError(filename, lineno, f"unexpected {tok!r}", column=col)
        statements.append(_Line(tokens, lineno, positioned[0][1], pending, suffix))
        pending = []

    if block is not None:
        raise ModFileError(filename, block.lineno, f"unterminated {' '.join(block.tokens)} block")
    return statements


def _unquote(token: str) -> str:
    """Decode a double-quoted string using Go escape rules."""
    body = token[1:-1]
    out: list[str] = []
    i = 0
    while i < len(body):
        c = body[i]
        if c != "\\":
            out.append(c)
            i += 1
            continue
        if i + 1 >= len(body):
            raise ValueError("trailing backslash")
        e = body[i + 1]
        if e in _ESCAPES:
            out.append(_ESCAPES[e])
            i += 2
        elif e in "xuU":
            width = {"x": 2, "u": 4, "U": 8}[e]
            digits = body[i + 2 : i + 2 + width]
            if len(digits) != width or not all(d in "0123456789abcdefABCDEF" for d in digits):
                raise ValueError(f"invalid escape \\{e}{digits}")
            code = int(digits, 16)
            if 0xD800 <= code <= 0xDFFF or code > 0x10FFFF:
                raise ValueError(f"invalid escape \\{e}{digits}")
            out.append(chr(code))
            i += 2 + width
        elif e in "01234567":
            digits = body[i + 1 : i + 4]
            if len(digits) != 3 or not all(d in "01234567" for d in digits) or int(digits, 8) > 0o377:
                raise ValueError(f"invalid escape \\{digits}")
            out.append(chr(int(digits, 8)))
            i += 4
        else:
            raise ValueError(f"invalid escape \\{e}")
    return "".join(out)


def _parse_string(token: str) -> str:
    """Return a token's value; only double-quoted tokens are unquoted."""
    if token.startswith('"'):
        return _unquote(token)
    if any(q in token for q in "\"'`"):
        raise ValueError("unquoted string cannot contain quote")
    return token


def _directive_comment(block: _Block | None, line: _Line) -> str:
    before, suffix = line.before, line.suffix
    if block is not None and not before and not suffix:
        before, suffix = block.before, block.suffix
    return "\n".join(before + suffix)


def _is_indirect(line: _Line) -> bool:
    if not line.suffix:
        return False
    text = line.suffix[0].strip()
    return text == "indirect" or text.startswith("indirect;")


def is_directory_path(path: str) -> bool:
    """Report whether a replacement path points at a local directory."""
    return (
        path in (".", "..")
        or path.startswith(("./", ".\\", "../", "..\\", "/", "\\"))
        or (len(path) >= 2 and path[0].isascii() and path[0].isalpha() and path[1] == ":")
    )


class _Parser:
    def __init__(self, filename: str) -> None:
        self.filename = filename
        self.manifest = Manifest()
        self.errors: list[ModFileError] = []
        self.seen: set[str] = set()

    def error(self, line: _Line, message: str, verb: str = "", mod_path: str = "") -> None:
        self.errors.append(
            ModFileError(self.filename, line.lineno, message, column=line.column, verb=verb, mod_path=mod_path)
        )

    def version(self, line: _Line, verb: str, path: str, token: str) -> str | None:
        try:
            raw = _parse_string(token)
        except ValueError as e:
            self.error(line, f"invalid quoted string: {e}")
            return None
        canonical = versions.canonical(raw)
        if not canonical:
            self.error(line, f'version "{raw}" invalid: must be of the form v1.2.3', verb, path)
            return None
        return canonical

    def path_major(self, line: _Line, verb: str, path: str) -> str | None:
        _, path_major, ok = modpath.split_path_version(path)
        if not ok:
            self.error(line, f'malformed module path "{path}": invalid version', verb, path)
            return None
        return path_major

    def string(self, line: _Line, token: str) -> str | None:
        try:
            return _parse_string(token)
        except ValueError as e:
            self.error(line, f"invalid quoted string: {e}")
            return None

    def add(self, block: _Block | None, line: _Line, verb: str, args: list[str]) -> None:
        handler = getattr(self, f"add_{verb}", None)
        if handler is None:
            self.error(line, f"unknown directive: {verb}")
            return
        handler(block, line, args)

    def add_module(self, block: _Block | None, line: _Line, args: list[str]) -> None:
        if "module" in self.seen:
            self.error(line, "repeated module statement")
            return
        self.seen.add("module")
        m = DEPRECATED_RE.search(_directive_comment(block, line))
        self.manifest.deprecated = m.group(1) if m else ""
        if len(args) != 1:
            self.error(line, "usage: module module/path")
            return
        path = self.string(line, args[0])
        if path is not None:
            self.manifest.module = path

    def add_go(self, block: _Block | None, line: _Line, args: list[str]) -> None:
        if "go" in self.seen:
            self.error(line, "repeated go statement")
            return
        if len(args) != 1:
            self.error(line, "go directive expects exactly one argument")
            return
        if not GO_VERSION_RE.fullmatch(args[0]):
            self.error(line, f"invalid go version '{args[0]}': must match format 1.23.0")
            return
        self.seen.add("go")
        self.manifest.go_version = args[0]

    def add_toolchain(self, block: _Block | None, line: _Line, args: list[str]) -> None:
        if "toolchain" in self.seen:
            self.error(line, "repeated toolchain statement")
            return
        if len(args) != 1:
            self.error(line, "toolchain directive expects exactly one argument")
            return
        if not TOOLCHAIN_RE.match(args[0]):
            self.error(line, f"invalid toolchain version '{args[0]}': must match format go1.23.0 or default")
            return
        self.seen.add("toolchain")
        self.manifest.toolchain = args[0]

    def add_godebug(self, block: _Block | None, line: _Line, args: list[str]) -> None:
        if len(args) != 1 or any(c in args[0] for c in "\"`',"):
            self.error(line, "usage: godebug key=value")
            return
        key, sep, value = args[0].partition("=")
        if not sep:
            self.error(line, "usage: godebug key=value")
            return
        self.manifest.godebug[key] = value

    def _module_version(self, line: _Line, verb: str, args: list[str]) -> ModuleVersion | None:
        if len(args) != 2:
            self.error(line, f"usage: {verb} module/path v1.2.3")
            return None
        path = self.string(line, args[0])
        if path is None:
            return None
        version = self.version(line, verb, path, args[1])
        if version is None:
            return None
        path_major = self.path_major(line, verb, path)
        if path_major is None:
            return None
        try:
            modpath.check_path_major(version, path_major)
        except modpath.InvalidVersionError as e:
            self.error(line, str(e), verb, path)
            return None
        return ModuleVersion(path, version)

    def add_require(self, block: _Block | None, line: _Line, args: list[str]) -> None:
        mv = self._module_version(line, "require", args)
        if mv is not None:
            self.manifest.require.append(Requirement(mv.path, mv.version, _is_indirect(line)))

    def add_exclude(self, block: _Block | None, line: _Line, args: list[str]) -> None:
        mv = self._module_version(line, "exclude", args)
        if mv is not None:
            self.manifest.exclude.append(mv)

    def add_replace(self, block: _Block | None, line: _Line, args: list[str]) -> None:
        verb = "replace"
        arrow = 1 if len(args) >= 2 and args[1] == "=>" else 2
        if len(args) < arrow + 2 or len(args) > arrow + 3 or args[arrow] != "=>":
            self.error(
                line,
                f"usage: {verb} module/path [v1.2.3] => other/module v1.4\n"
                f"\t or {verb} module/path [v1.2.3] => ../local/directory",
            )
            return

        old_path = self.string(line, args[0])
        if old_path is None:
            return
        path_major = self.path_major(line, verb, old_path)
        if path_major is None:
            return
        old_version = ""
        if arrow == 2:
            old_version = self.version(line, verb, old_path, args[1])
            if old_version is None:
                return
            try:
                modpath.check_path_major(old_version, path_major)
            except modpath.InvalidVersionError as e:
                self.error(line, str(e), verb, old_path)
                return

        new_path = self.string(line, args[arrow + 1])
        if new_path is None:
            return
        new_version = ""
        if len(args) == arrow + 2:
            if not is_directory_path(new_path):
                if "@" in new_path:
                    self.error(line, "replacement module must match format 'path version', not 'path@version'")
                else:
                    self.error(
                        line,
                        "replacement module without version must be directory path (rooted or starting with . or ..)",
                    )
                return
        else:
            new_version = self.version(line, verb, new_path, args[arrow + 2])
            if new_version is None:
                return
            if is_directory_path(new_path):
                self.error(line, f'replacement module directory path "{new_path}" cannot have version')
                return

        self.manifest.replace.append(
            Replacement(ModuleVersion(old_path, old_version), ModuleVersion(new_path, new_version))
        )

    def add_retract(self, block: _Block | None, line: _Line, args: list[str]) -> None:
        verb = "retract"
        rationale = _directive_comment(block, line)
        if not args or args[0] == "(":
            self.error(line, "expected '[' or version", verb)
            return

        if args[0] != "[":
            low = high = self.version(line, verb, "", args[0])
            if low is None:
                return
            rest = args[1:]
        else:
            toks = args[1:]
            if not toks:
                self.error(line, "expected version after '['", verb)
                return
            low = self.version(line, verb, "", toks[0])
            if low is None:
                return
            toks = toks[1:]
            if not toks or toks[0] != ",":
                self.error(line, "expected ',' after version", verb)
                return
            toks = toks[1:]
            if not toks:
                self.error(line, "expected version after ','", verb)
                return
            high = self.version(line, verb, "", toks[0])
            if high is None:
                return
            toks = toks[1:]
            if not toks or toks[0] != "]":
                self.error(line, "expected ']' after version", verb)
                return
            rest = toks[1:]

        if rest:
            self.error(line, f'unexpected token after version: "{rest[0]}"')
            return
        self.manifest.retract.append(Retraction(low, high, rationale))

    def add_tool(self, block: _Block | None, line: _Line, args: list[str]) -> None:
        if len(args) != 1:
            self.error(line, "tool directive expects exactly one argument")
            return
        path = self.string(line, args[0])
        if path is not None:
            self.manifest.tool.append(path)

    def add_ignore(self, block: _Block | None, line: _Line, args: list[str]) -> None:
        if len(args) != 1:
            self.error(line, "ignore directive expects exactly one argument")
            return
        path = self.string(line, args[0])
        if path is not None:
            self.manifest.ignore.append(path)


def parse(filename: str, data: bytes) -> Manifest:
    """Parse the contents of a go.mod file.

    Args:
        filename: name used in error positions, usually "go.mod"
        data: raw file content

    Returns:
        The parsed Manifest

    Raises:
        ParseError: the content is not a valid mod file
    """
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        raise ParseError([ModFileError(filename, 0, "invalid UTF-8 encoding")]) from None

    try:
        statements = _read_statements(filename, text)
    except ModFileError as e:
        raise ParseError([e]) from None

    parser = _Parser(filename)
    for stmt in statements:
        if isinstance(stmt, _Line):
            parser.add(None, stmt, stmt.tokens[0], stmt.tokens[1:])
            continue
        if len(stmt.tokens) > 1 or stmt.tokens[0] not in BLOCK_VERBS:
            parser.errors.append(
                ModFileError(
                    filename,
                    stmt.lineno,
                    f"unknown block type: {' '.join(stmt.tokens)}",
                    column=stmt.column,
                )
            )
            continue
        for line in stmt.lines:
            parser.add(stmt, line, stmt.tokens[0], line.tokens)

    if parser.errors:
        raise ParseError(parser.errors)

    manifest = parser.manifest
    logger.debug(
        "Parsed %s: module %r, go %r, %d requirements",
        filename,
        manifest.module,
        manifest.go_version,
        len(manifest.require),
    )
    return manifest
