"""
Comparison of local and remote env snapshots.

A diff splits the union of both key sets into four disjoint partitions:
added (remote only), removed (local only), modified and same. Naming follows
what a pull would do to the local file.
"""

from dataclasses import dataclass, field
from typing import Dict, List

MAX_VALUE_LENGTH = 50

NO_DIFFERENCES = "No differences found."


@dataclass(frozen=True)
class Change:
    """A value present on both sides with different content."""

    local: str
    remote: str


@dataclass
class DiffResult:
    """Key partitions produced by compare_envs."""

    added: Dict[str, str] = field(default_factory=dict)
    removed: Dict[str, str] = field(default_factory=dict)
    modified: Dict[str, Change] = field(default_factory=dict)
    same: Dict[str, str] = field(default_factory=dict)

    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.modified)


def compare_envs(local: Dict[str, str], remote: Dict[str, str]) -> DiffResult:
    """
    Compare a local snapshot against a remote one.

    Values are compared with exact string equality.

    Args:
        local: Variables from the local file
        remote: Variables from the remote object

    Returns:
        DiffResult with every key of either side in exactly one partition
    """
    result = DiffResult()

    for key, local_value in local.items():
        if key not in remote:
            result.removed[key] = local_value
        elif remote[key] == local_value:
            result.same[key] = local_value
        else:
            result.modified[key] = Change(local=local_value, remote=remote[key])

    for key, remote_value in remote.items():
        if key not in local:
            result.added[key] = remote_value

    return result


def truncate_value(value: str, max_length: int = MAX_VALUE_LENGTH) -> str:
    if len(value) > max_length:
        return value[:max_length] + "..."
    return value


def format_diff(diff: DiffResult) -> str:
    """
    Render a diff as a human readable report.

    Sections appear in the order added, removed, modified and are left out
    when empty. Keys are sorted within each section.

    Args:
        diff: The result of compare_envs

    Returns:
        The report, or NO_DIFFERENCES when nothing changed
    """
    if not diff.has_changes():
        return NO_DIFFERENCES

    sections: List[str] = []

    if diff.added:
        lines = ["+ Added (in remote, not in local):"]
        for key in sorted(diff.added):
            lines.append(f"  + {key}={truncate_value(diff.added[key])}")
        sections.append("\n".join(lines))

    if diff.removed:
        lines = ["- Removed (in local, not in remote):"]
        for key in sorted(diff.removed):
            lines.append(f"  - {key}={truncate_value(diff.removed[key])}")
        sections.append("\n".join(lines))

    if diff.modified:
        lines = ["~ Modified:"]
        for key in sorted(diff.modified):
            change = diff.modified[key]
            lines.append(f"  ~ {key}:")
            lines.append(f"    - {truncate_value(change.local)}")
            lines.append(f"    + {truncate_value(change.remote)}")
        sections.append("\n".join(lines))

    return "\n\n".join(sections)


def diff_counts(diff: DiffResult) -> Dict[str, int]:
    """Count the keys in each partition of a diff."""
    return {
        'added': len(diff.added),
        'removed': len(diff.removed),
        'modified': len(diff.modified),
        'unchanged': len(diff.same),
    }


def calculate_total_changes(diff: DiffResult) -> int:
    """Total number of keys a pull would add, remove or change."""
    return len(diff.added) + len(diff.removed) + len(diff.modified)


def format_diff_summary(diff: DiffResult) -> str:
    """
    Format a one-line summary of a diff.

    Args:
        diff: The result of compare_envs

    Returns:
        Summary string, empty when there are no changes
    """
    total_changes = calculate_total_changes(diff)
    if total_changes == 0:
        return ""

    counts = diff_counts(diff)
    return (f"{total_changes} changes "
            f"({counts['added']} added, "
            f"{counts['removed']} removed, "
            f"{counts['modified']} modified, "
            f"{counts['unchanged']} unchanged)")
