"""Decoder for human-authored device tree source text.

Decoding is best-effort: a malformed property or child-node statement is
logged, recorded as a tree diagnostic, and skipped.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Iterable, Iterator

from dtepack.config import DecoderConfig
from dtepack.core.models import Diagnostic, Node, Property, Tree, Value
from dtepack.core.types import CELL32_MAX, ROOT_NAME
from dtepack.decode.exceptions import DepthLimitError, SourceSyntaxError

logger = logging.getLogger(__name__)

VERSION_HEADER = "/dts-v1/;"

_LABEL_PREFIX_RE = re.compile(r"^(?:[A-Za-z_][A-Za-z0-9_]*:\s*)+")
_NODE_NAME_RE = re.compile(r"^[A-Za-z0-9,._+@#?-]+$")
_PROPERTY_NAME_RE = re.compile(r"^[A-Za-z0-9,._+#?-]+$")
_HEX_DIGITS_RE = re.compile(r"[0-9A-Fa-f]+")


@dataclass(frozen=True, slots=True)
class _Statement:
    text: str
    line: int
    terminated: bool = True


def decode_source(
    data: str | bytes,
    *,
    source_identifier: str = "",
    config: DecoderConfig | None = None,
) -> Tree:
    """Decode source text into a tree.

    The first node opened at top level becomes the root, named `/`. Decoding
    stops when that node is closed.
    """
    cfg = config or DecoderConfig()
    if isinstance(data, (bytes, bytearray)):
        try:
            text = bytes(data).decode("utf-8")
        except UnicodeDecodeError as error:
            raise SourceSyntaxError(f"source is not valid UTF-8 text: {error}") from error
    else:
        text = data

    diagnostics: list[Diagnostic] = []
    root: Node | None = None
    stack: list[Node] = []

    def _skip(code: str, message: str, statement: _Statement) -> None:
        logger.warning("%s:%d: %s", source_identifier or "<source>", statement.line, message)
        diagnostics.append(Diagnostic(code=code, message=message, line=statement.line))

    for statement in _iter_statements(text.splitlines()):
        body = statement.text.strip()
        if not body:
            continue

        if root is None:
            if body.endswith("{"):
                root = Node(name=ROOT_NAME)
                stack = [root]
            continue

        if body.startswith("}"):
            if len(stack) > 1:
                stack.pop()
                continue
            stack.pop()
            break

        if body.endswith("{"):
            name = _node_name(body[:-1])
            if name is None:
                _skip("SkippedNode", f"malformed node statement: {body!r}", statement)
                # Detached so its body and closing brace are consumed without effect.
                stack.append(Node(name="<discarded>"))
            else:
                stack.append(stack[-1].add_child(Node(name=name)))
            if len(stack) > cfg.max_depth:
                raise DepthLimitError(
                    f"line {statement.line}: node nesting exceeds max depth {cfg.max_depth}"
                )
            continue

        try:
            prop = _parse_property_statement(statement)
        except SourceSyntaxError as error:
            _skip("SkippedProperty", str(error), statement)
            continue
        stack[-1].set_property(prop)

    if root is None:
        raise SourceSyntaxError("no root node found in source")

    if stack:
        message = f"{len(stack)} node(s) left open at end of input"
        logger.warning("%s: %s", source_identifier or "<source>", message)
        diagnostics.append(Diagnostic(code="UnterminatedNode", message=message))

    return Tree(
        root=root,
        source_identifier=source_identifier,
        format="source",
        diagnostics=diagnostics,
    )


class SourceDecoder:
    """Source format adapter used by decoder selection."""

    name = "source"
    extensions: tuple[str, ...] = (".dts", ".dtsi")

    def sniff(self, data: bytes) -> bool:
        if b"\0" in data:
            return False
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError:
            return False
        return "{" in text

    def decode(
        self,
        data: bytes,
        *,
        source_identifier: str = "",
        config: DecoderConfig | None = None,
    ) -> Tree:
        return decode_source(data, source_identifier=source_identifier, config=config)


def parse_source_value(raw: str) -> Value:
    """Type the raw text to the right of `=` (without the trailing `;`)."""
    text = raw.strip()
    if not text:
        return Value.string("")
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        return Value.string(text[1:-1])
    if text[0] == "<" and text[-1] == ">":
        return Value.cells(_parse_cell(token) for token in text[1:-1].split())
    if text[0] == "[" and text[-1] == "]":
        data = bytearray()
        for token in text[1:-1].split():
            data.extend(_parse_byte_token(token))
        return Value.raw(data)
    return Value.string(text)


def _parse_property_statement(statement: _Statement) -> Property:
    body = statement.text.strip()
    if not statement.terminated:
        raise SourceSyntaxError(f"unterminated property statement: {body!r}")
    body = body[:-1].rstrip() if body.endswith(";") else body

    name, separator, raw_value = body.partition("=")
    name = name.strip()
    if not separator:
        if not _PROPERTY_NAME_RE.match(name):
            raise SourceSyntaxError(f"unrecognized statement: {body!r}")
        return Property(name=name, value=Value.string(""))
    if not name:
        raise SourceSyntaxError("empty property name")
    return Property(name=name, value=parse_source_value(raw_value))


def _parse_cell(token: str) -> int:
    digits = token[2:] if token[:2].lower() == "0x" else token
    if not _HEX_DIGITS_RE.fullmatch(digits):
        raise SourceSyntaxError(f"invalid cell value: {token}")
    cell = int(digits, 16)
    if cell < 0 or cell > CELL32_MAX:
        raise SourceSyntaxError(f"cell value out of 32-bit range: {token}")
    return cell


def _parse_byte_token(token: str) -> bytes:
    digits = token[2:] if token[:2].lower() == "0x" else token
    if not _HEX_DIGITS_RE.fullmatch(digits) or (len(digits) > 2 and len(digits) % 2):
        raise SourceSyntaxError(f"invalid byte value: {token}")
    if len(digits) <= 2:
        return bytes((int(digits, 16),))
    return bytes.fromhex(digits)


def _node_name(text: str) -> str | None:
    name = _LABEL_PREFIX_RE.sub("", text.strip()).strip()
    if not name or not _NODE_NAME_RE.match(name):
        return None
    return name


def _iter_statements(lines: Iterable[str]) -> Iterator[_Statement]:
    """Split lines into statements ending at `{` or `;`.

    Separators inside quotes or `<>`/`[]` groups do not split. Comments are
    dropped. A property left open at end of line continues on the next line,
    with any trailing `\\` removed.
    """
    pending = ""
    pending_line = 0
    in_block_comment = False

    for line_no, line in enumerate(lines, start=1):
        stripped = line.strip()
        if not in_block_comment and not pending:
            if stripped.startswith("*") or stripped.startswith("//"):
                continue
            if stripped == VERSION_HEADER:
                continue

        buf = pending
        start_line = pending_line if pending else line_no
        in_quote = False
        escaped = False
        depth = 0
        idx = 0
        while idx < len(line):
            ch = line[idx]
            nxt = line[idx + 1] if idx + 1 < len(line) else ""
            if in_block_comment:
                if ch == "*" and nxt == "/":
                    in_block_comment = False
                    idx += 2
                    continue
                idx += 1
                continue
            if in_quote:
                buf += ch
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_quote = False
                idx += 1
                continue
            if ch == "/" and nxt == "/":
                break
            if ch == "/" and nxt == "*":
                in_block_comment = True
                idx += 2
                continue
            buf += ch
            if ch == '"':
                in_quote = True
            elif ch in "<[":
                depth += 1
            elif ch in ">]" and depth > 0:
                depth -= 1
            elif ch in "{;" and depth == 0:
                yield _Statement(text=buf, line=start_line)
                buf = ""
                start_line = line_no
            idx += 1

        remainder = buf.rstrip()
        if remainder.endswith("\\"):
            remainder = remainder[:-1].rstrip()
        if remainder.strip() and "=" in remainder:
            pending = remainder + " "
            pending_line = start_line
        else:
            pending = ""
            if remainder.strip():
                yield _Statement(text=remainder, line=start_line, terminated=False)

    if pending.strip():
        yield _Statement(text=pending, line=pending_line, terminated=False)
