"""
Idempotent text edits on generated TypeScript sources.

Every edit first checks whether its result is already present, so applying
the same edit twice leaves the source unchanged. Edits that need an anchor
(a decorator, a property) report whether the anchor was found instead of
raising; callers turn a missing anchor into a structural warning.
"""

import re
from typing import Iterable, List, Optional, Tuple

_QUOTES = "'\"`"
_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = ")]}"

_IMPORT_STATEMENT = re.compile(
    r"^import\s[^;]*?from\s*['\"][^'\"]+['\"]\s*;?[ \t]*$|^import\s*['\"][^'\"]+['\"]\s*;?[ \t]*$",
    re.MULTILINE,
)


def _skip_string(text: str, i: int) -> int:
    quote = text[i]
    i += 1
    while i < len(text):
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == quote:
            return i + 1
        i += 1
    return len(text)


def _skip_comment(text: str, i: int) -> int:
    if text.startswith("//", i):
        end = text.find("\n", i)
        return len(text) if end < 0 else end
    end = text.find("*/", i + 2)
    return len(text) if end < 0 else end + 2


def _is_comment(text: str, i: int) -> bool:
    return text.startswith("//", i) or text.startswith("/*", i)


def strip_comments(text: str) -> str:
    out = []
    i = 0
    while i < len(text):
        if text[i] in _QUOTES:
            end = _skip_string(text, i)
            out.append(text[i:end])
            i = end
        elif _is_comment(text, i):
            i = _skip_comment(text, i)
        else:
            out.append(text[i])
            i += 1
    return "".join(out)


def match_bracket(text: str, open_index: int) -> int:
    """Index of the bracket closing the one at ``open_index``, or -1."""
    stack: List[str] = []
    i = open_index
    while i < len(text):
        c = text[i]
        if c in _QUOTES:
            i = _skip_string(text, i)
            continue
        if _is_comment(text, i):
            i = _skip_comment(text, i)
            continue
        if c in _OPENERS:
            stack.append(_OPENERS[c])
        elif c in _CLOSERS:
            if not stack or stack.pop() != c:
                return -1
            if not stack:
                return i
        i += 1
    return -1


def split_top_level(text: str) -> List[str]:
    """Split on commas that are not nested in brackets, strings or comments."""
    parts = []
    depth = 0
    start = 0
    i = 0
    while i < len(text):
        c = text[i]
        if c in _QUOTES:
            i = _skip_string(text, i)
            continue
        if _is_comment(text, i):
            i = _skip_comment(text, i)
            continue
        if c in _OPENERS:
            depth += 1
        elif c in _CLOSERS:
            depth -= 1
        elif c == "," and depth == 0:
            parts.append(text[start:i])
            start = i + 1
        i += 1
    parts.append(text[start:])
    return [part for part in parts if strip_comments(part).strip()]


def _skip_whitespace(text: str, i: int) -> int:
    while i < len(text) and text[i] in " \t\r\n":
        i += 1
    return i


def _line_indent(text: str, index: int) -> str:
    line_start = text.rfind("\n", 0, index) + 1
    match = re.match(r"[ \t]*", text[line_start:])
    return match.group(0) if match else ""


# Imports

def imported_names(source: str, module: str) -> List[str]:
    pattern = re.compile(r"import\s*\{([^}]*)\}\s*from\s*['\"]" + re.escape(module) + r"['\"]")
    names = []
    for match in pattern.finditer(source):
        names.extend(name.strip() for name in strip_comments(match.group(1)).split(",") if name.strip())
    return names


def is_imported(source: str, symbol: str) -> bool:
    pattern = re.compile(r"import\s*\{[^}]*\b" + re.escape(symbol) + r"\b[^}]*\}\s*from")
    return bool(pattern.search(source))


def ensure_named_import(source: str, symbol: str, module: str) -> str:
    """
    Make ``symbol`` importable from ``module``.

    Merges into an existing ``import { ... } from 'module'`` when there is one,
    otherwise adds a statement after the last import. A symbol imported from
    any module already is left alone.
    """
    if is_imported(source, symbol):
        return source

    pattern = re.compile(r"import\s*\{([^}]*)\}\s*from\s*(['\"])" + re.escape(module) + r"\2")
    match = pattern.search(source)
    if match:
        names = [name.strip() for name in match.group(1).split(",") if name.strip()]
        names.append(symbol)
        replacement = "import { " + ", ".join(names) + " } from " + match.group(2) + module + match.group(2)
        return source[:match.start()] + replacement + source[match.end():]

    statement = f"import {{ {symbol} }} from '{module}';"
    last = None
    for last in _IMPORT_STATEMENT.finditer(source):
        pass
    if last is None:
        return statement + "\n" + source
    return source[:last.end()] + "\n" + statement + source[last.end():]


def ensure_named_imports(source: str, imports: Iterable[Tuple[str, str]]) -> str:
    for symbol, module in imports:
        source = ensure_named_import(source, symbol, module)
    return source


def exports_symbol(source: str, symbol: str) -> bool:
    escaped = re.escape(symbol)
    return bool(
        re.search(r"export\s+(?:default\s+)?(?:abstract\s+)?class\s+" + escaped + r"\b", source)
        or re.search(r"export\s*\{[^}]*\b" + escaped + r"\b[^}]*\}", source)
    )


# Decorator option bags

def decorator_object_span(source: str, decorator: str) -> Optional[Tuple[int, int]]:
    """Indexes of the ``{`` and ``}`` delimiting ``@decorator({...})``."""
    match = re.search(r"@" + re.escape(decorator) + r"\s*\(\s*\{", source)
    if match is None:
        return None
    open_index = match.end() - 1
    close_index = match_bracket(source, open_index)
    if close_index < 0:
        return None
    return open_index, close_index


def _find_property(source: str, span: Tuple[int, int], name: str) -> Optional[Tuple[int, int]]:
    """(start of property name, end of ``name:``) for a property at the top of ``span``."""
    pattern = re.compile(r"\b" + re.escape(name) + r"\s*:")
    open_index, close_index = span
    depth = 0
    i = open_index
    while i < close_index:
        c = source[i]
        if c in _QUOTES:
            i = _skip_string(source, i)
            continue
        if _is_comment(source, i):
            i = _skip_comment(source, i)
            continue
        if c in _OPENERS:
            depth += 1
        elif c in _CLOSERS:
            depth -= 1
        elif depth == 1:
            match = pattern.match(source, i)
            if match:
                return match.start(), match.end()
        i += 1
    return None


def _property_value_end(source: str, value_start: int, close_index: int) -> int:
    """Index just past a property value (before its separating comma)."""
    i = value_start
    while i < close_index:
        c = source[i]
        if c in _QUOTES:
            i = _skip_string(source, i)
            continue
        if _is_comment(source, i):
            i = _skip_comment(source, i)
            continue
        if c in _OPENERS:
            end = match_bracket(source, i)
            if end < 0:
                return close_index
            i = end + 1
            continue
        if c == ",":
            return i
        i += 1
    return close_index


def has_decorator(source: str, decorator: str) -> bool:
    return decorator_object_span(source, decorator) is not None


def array_entries(source: str, decorator: str, name: str) -> Optional[List[str]]:
    span = decorator_object_span(source, decorator)
    if span is None:
        return None
    found = _find_property(source, span, name)
    if found is None:
        return None
    value_start = _skip_whitespace(source, found[1])
    if not source.startswith("[", value_start):
        return None
    close = match_bracket(source, value_start)
    if close < 0:
        return None
    return [strip_comments(entry).strip() for entry in split_top_level(source[value_start + 1:close])]


def ensure_array_entries(
    source: str,
    decorator: str,
    name: str,
    entries: Iterable[str],
    create: bool = True,
) -> Tuple[str, bool]:
    """
    Add ``entries`` to the ``name: [...]`` list of a decorator's option bag.

    Existing entries are kept and never duplicated. When the property is
    missing it is created if ``create`` is set.

    Returns:
        (new source, whether the anchor was found or created)
    """
    span = decorator_object_span(source, decorator)
    if span is None:
        return source, False

    found = _find_property(source, span, name)
    if found is None:
        if not create:
            return source, False
        wanted = list(dict.fromkeys(entries))
        indent = _line_indent(source, span[0]) + "  "
        insertion = f"\n{indent}{name}: [{', '.join(wanted)}],"
        return source[:span[0] + 1] + insertion + source[span[0] + 1:], True

    name_start, colon_end = found
    value_start = _skip_whitespace(source, colon_end)
    if not source.startswith("[", value_start):
        return source, False
    close = match_bracket(source, value_start)
    if close < 0:
        return source, False

    items = [strip_comments(entry).strip() for entry in split_top_level(source[value_start + 1:close])]
    missing = [entry for entry in dict.fromkeys(entries) if entry not in items]
    if not missing:
        return source, True

    items.extend(missing)
    indent = _line_indent(source, name_start)
    body = "[\n" + ",\n".join(f"{indent}  {item}" for item in items) + f"\n{indent}]"
    return source[:value_start] + body + source[close + 1:], True


def set_decorator_flag(source: str, decorator: str, name: str, value: str) -> Tuple[str, bool]:
    """Set ``name: value`` on a decorator's option bag, adding the property if needed."""
    span = decorator_object_span(source, decorator)
    if span is None:
        return source, False

    found = _find_property(source, span, name)
    if found is None:
        indent = _line_indent(source, span[0]) + "  "
        insertion = f"\n{indent}{name}: {value},"
        return source[:span[0] + 1] + insertion + source[span[0] + 1:], True

    _, colon_end = found
    value_end = _property_value_end(source, colon_end, span[1])
    value_end = colon_end + len(source[colon_end:value_end].rstrip())
    if source[colon_end:value_end].strip() == value:
        return source, True
    return source[:colon_end] + " " + value + source[value_end:], True


def remove_decorator_property(source: str, decorator: str, name: str) -> Tuple[str, bool]:
    """
    Drop ``name: ...`` from a decorator's option bag.

    Returns:
        (new source, whether the decorator was found)
    """
    span = decorator_object_span(source, decorator)
    if span is None:
        return source, False

    found = _find_property(source, span, name)
    if found is None:
        return source, True

    name_start, colon_end = found
    end = _property_value_end(source, colon_end, span[1])
    if end < span[1] and source[end] == ",":
        end += 1
    while end < span[1] and source[end] in " \t":
        end += 1

    start = name_start
    line_start = source.rfind("\n", 0, name_start) + 1
    if not source[line_start:name_start].strip():
        start = line_start
        if end < len(source) and source[end] == "\n":
            end += 1
    return source[:start] + source[end:], True
