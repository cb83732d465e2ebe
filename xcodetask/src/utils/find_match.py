from pathlib import Path
from typing import List, Union

_GLOB_CHARS = set("*?[")


def has_pattern(value: str) -> bool:
    return any(c in _GLOB_CHARS for c in value)


def _split_root(pattern: str) -> tuple[Path, str]:
    """Split a pattern into the literal directory prefix and the glob remainder"""
    parts = Path(pattern).parts
    root_parts = []
    for index, part in enumerate(parts):
        if has_pattern(part):
            return Path(*root_parts) if root_parts else Path("."), str(
                Path(*parts[index:])
            )
        root_parts.append(part)
    # No wildcard at all
    return Path(*parts[:-1]) if len(parts) > 1 else Path("."), parts[-1]


def find_match(base: Union[str, Path], pattern: str) -> List[Path]:
    """Resolve a glob pattern against a base directory.

    Absolute patterns ignore ``base``. ``**`` matches any number of
    directories; symbolic links to directories are not descended into.
    Results are sorted so the first match is deterministic.
    """
    if not pattern or not pattern.strip():
        return []

    pattern = pattern.strip()
    full = Path(pattern) if Path(pattern).is_absolute() else Path(base) / pattern
    root, remainder = _split_root(str(full))

    if not root.is_dir():
        return []

    if not has_pattern(remainder):
        candidate = root / remainder
        return [candidate] if candidate.exists() else []

    return sorted(p for p in root.glob(remainder) if p.exists())
