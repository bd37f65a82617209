from __future__ import annotations

import re
from dataclasses import dataclass

from sheetwatch.exceptions import ConfigError

_SEPARATORS = r"/\\"


@dataclass(frozen=True)
class PathMatcher:
    pattern: str
    regex: re.Pattern

    def matches(self, basename: str) -> bool:
        return bool(self.regex.match(basename))

    __call__ = matches


def compile_pattern(glob: str) -> PathMatcher:
    """
    Compile a glob such as ``cxv*.xlsx`` into a case-insensitive basename matcher.
    ``*`` and ``?`` never cross a path separator; ``**`` does.
    """
    if glob is None or not str(glob).strip():
        raise ConfigError("File pattern must not be empty")
    glob = str(glob).strip()
    try:
        regex = re.compile(f"^{_translate(glob)}$", re.IGNORECASE)
    except re.error as exc:
        raise ConfigError(f"Invalid file pattern {glob!r}: {exc}") from exc
    return PathMatcher(pattern=glob, regex=regex)


def _translate(glob: str) -> str:
    parts: list[str] = []
    i, n = 0, len(glob)
    while i < n:
        ch = glob[i]
        if ch == "*":
            if i + 1 < n and glob[i + 1] == "*":
                parts.append(".*")
                i += 2
                continue
            parts.append(f"[^{_SEPARATORS}]*")
        elif ch == "?":
            parts.append(f"[^{_SEPARATORS}]")
        elif ch == "[":
            end = glob.find("]", i + 2)
            if end == -1:
                raise ConfigError(f"Unterminated character class in pattern {glob!r}")
            body = glob[i + 1 : end]
            if body.startswith("!"):
                body = "^" + body[1:]
            parts.append("[" + body.replace("\\", "\\\\") + "]")
            i = end + 1
            continue
        else:
            parts.append(re.escape(ch))
        i += 1
    return "".join(parts)
