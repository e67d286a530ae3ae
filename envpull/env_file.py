"""
Reading and writing of .env files.

The format is line oriented: ``KEY=value`` pairs, ``#`` comments and blank
lines. Values may be wrapped in one pair of single or double quotes. There is
no escape processing and no variable interpolation.
"""

import os
from typing import Dict, Union

# Characters that force a value to be written in double quotes
_QUOTE_TRIGGERS = (' ', '\t', '"', "'", '\\', '\n')


def _unquote(value: str) -> str:
    """Strip exactly one matching pair of outer quotes, if present."""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def parse_env(data: Union[bytes, str]) -> Dict[str, str]:
    """
    Parse .env content into a mapping.

    Never fails: lines that are not ``KEY=value`` pairs are skipped and later
    duplicate keys overwrite earlier ones.

    Args:
        data: Raw file content, bytes are decoded as UTF-8

    Returns:
        Dict of variable names to values
    """
    if isinstance(data, bytes):
        data = data.decode('utf-8', errors='replace')

    result = {}
    for raw_line in data.split('\n'):
        line = raw_line.strip()
        if not line or line.startswith('#'):
            continue

        key, sep, value = line.partition('=')
        if not sep:
            continue

        key = key.strip()
        if not key:
            continue
        result[key] = _unquote(value.strip())

    return result


def needs_quoting(value: str) -> bool:
    """Check whether a value has to be quoted to survive a round trip."""
    return any(c in value for c in _QUOTE_TRIGGERS)


def format_env(env_vars: Dict[str, str]) -> str:
    """
    Format variables as .env text with keys in sorted order.

    Args:
        env_vars: Mapping of variable names to values

    Returns:
        The file content, one ``KEY=value`` line per variable
    """
    lines = []
    for key in sorted(env_vars):
        value = env_vars[key]
        if needs_quoting(value):
            # Newlines are the one thing a single line cannot hold verbatim
            value = '"' + value.replace('\n', '\\n') + '"'
        lines.append(f"{key}={value}")

    if not lines:
        return ""
    return "\n".join(lines) + "\n"


def serialize_env(env_vars: Dict[str, str]) -> bytes:
    """Format variables as UTF-8 encoded .env content."""
    return format_env(env_vars).encode('utf-8')


def file_exists(path: str) -> bool:
    """Check whether an env file exists at the given path."""
    return os.path.isfile(path)


def read_env_bytes(path: str) -> bytes:
    """Read the raw content of an env file."""
    with open(path, 'rb') as f:
        return f.read()


def write_env_bytes(path: str, data: bytes) -> None:
    """Write raw content to an env file, replacing it."""
    with open(path, 'wb') as f:
        f.write(data)


def read_env_file(path: str) -> Dict[str, str]:
    """Read and parse an env file."""
    return parse_env(read_env_bytes(path))


def write_env_file(path: str, env_vars: Dict[str, str]) -> None:
    """Serialize variables and write them to an env file."""
    write_env_bytes(path, serialize_env(env_vars))
