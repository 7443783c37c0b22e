"""
Git Pickers - Files, history, branches, status and stashes of a repository.

All git pickers run in the ``cwd`` option. Outside a repository git exits
with code 128 and the picker fails with git's own message.
"""

import os
from typing import Any, Mapping, Optional

from livepick.search.stream import ResultItem
from livepick.pickers.files import file_entry
from livepick.tasks.spec import ProducerKind, TaskSpec


def git_files_command(options, query: str = "") -> list[str]:
    cmd = ["git", "ls-files", "--exclude-standard", "--cached"]
    if options.get("show_untracked", False):
        cmd.append("--others")
    elif options.get("recurse_submodules", False):
        # git refuses --recurse-submodules together with --others
        cmd.append("--recurse-submodules")
    return cmd


def git_commits_command(options, query: str = "") -> list[str]:
    return ["git", "log", "--pretty=oneline", "--abbrev-commit", "--", "."]


def git_bcommits_command(options, query: str = "") -> list[str]:
    return ["git", "log", "--pretty=oneline", "--abbrev-commit", "--follow",
            "--", str(options.get("current_file"))]


def git_branches_command(options, query: str = "") -> list[str]:
    return ["git", "for-each-ref", "--format=%(HEAD) %(refname:short)",
            "refs/heads", "refs/remotes"]


def git_status_command(options, query: str = "") -> list[str]:
    cmd = ["git", "status", "--porcelain=v1", "--", "."]
    if options.get("show_untracked", True) is False:
        cmd.insert(3, "--untracked-files=no")
    return cmd


def git_stash_command(options, query: str = "") -> list[str]:
    return ["git", "--no-pager", "stash", "list"]


def commit_entry(line: str, options: Mapping[str, Any]) -> Optional[ResultItem]:
    """'<sha> <subject>' → item whose value is the abbreviated sha."""
    if not line.strip():
        return None
    sha, _, _subject = line.partition(" ")
    return ResultItem(text=line, value=sha)


def branch_entry(line: str, options: Mapping[str, Any]) -> Optional[ResultItem]:
    if len(line) < 3:
        return None
    current = line[0] == "*"
    name = line[2:]
    if name.endswith("/HEAD"):
        return None
    return ResultItem(text=name, value={"name": name, "current": current})


def status_entry(line: str, options: Mapping[str, Any]) -> Optional[ResultItem]:
    """Porcelain v1 'XY path' (renames as 'XY old -> new')."""
    if len(line) < 4:
        return None
    status = line[:2]
    path = line[3:]
    if " -> " in path:
        path = path.split(" -> ", 1)[1]
    cwd = options.get("cwd") or os.getcwd()
    return ResultItem(
        text=f"{status.strip() or '?'} {path}",
        value=status,
        path=os.path.join(cwd, path),
    )


def stash_entry(line: str, options: Mapping[str, Any]) -> Optional[ResultItem]:
    """'stash@{0}: WIP on main: ...' → value is the stash ref."""
    if not line:
        return None
    ref, _, _rest = line.partition(":")
    return ResultItem(text=line, value=ref)


SPECS = [
    TaskSpec(
        name="git_files",
        kind=ProducerKind.PROCESS,
        source=git_files_command,
        entry_maker=file_entry,
        defaults={"show_untracked": False, "recurse_submodules": False},
        description="Fuzzy search for files tracked by Git",
    ),
    TaskSpec(
        name="git_commits",
        kind=ProducerKind.PROCESS,
        source=git_commits_command,
        entry_maker=commit_entry,
        description="Lists commits for the current directory",
    ),
    TaskSpec(
        name="git_bcommits",
        kind=ProducerKind.PROCESS,
        source=git_bcommits_command,
        entry_maker=commit_entry,
        required_options=("current_file",),
        description="Lists commits that touched one file",
    ),
    TaskSpec(
        name="git_branches",
        kind=ProducerKind.PROCESS,
        source=git_branches_command,
        entry_maker=branch_entry,
        description="Lists local and remote branches",
    ),
    TaskSpec(
        name="git_status",
        kind=ProducerKind.PROCESS,
        source=git_status_command,
        entry_maker=status_entry,
        description="Lists changed files with their git status",
    ),
    TaskSpec(
        name="git_stash",
        kind=ProducerKind.PROCESS,
        source=git_stash_command,
        entry_maker=stash_entry,
        description="Lists stash entries",
    ),
]
