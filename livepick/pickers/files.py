"""
File Pickers - find_files, live_grep and grep_string.

find_files lists files with the first available of rg, fd, fdfind or find.
The grep pickers run ripgrep in vimgrep format and parse each
"path:line:column:text" line into an item with path and position.

Options:
  find_files   → hidden, no_ignore, follow, search_dirs, find_command
  live_grep    → search_dirs, additional_args, disable_coordinates
  grep_string  → search (required), use_regex, word_match, search_dirs,
                 additional_args, disable_coordinates
"""

import os
import re
from typing import Any, Callable, Mapping, Optional

from livepick.search.stream import ResultItem
from livepick.tasks.spec import ProducerKind, TaskSpec
from livepick.utils.helpers import display_path, first_executable

FIND_TOOLS = ["rg", "fd", "fdfind", "find"]

VIMGREP_ARGS = [
    "rg",
    "--color=never",
    "--no-heading",
    "--with-filename",
    "--line-number",
    "--column",
    "--smart-case",
]

_VIMGREP_LINE = re.compile(r"^(?P<path>.+?):(?P<lnum>\d+):(?P<col>\d+):(?P<text>.*)$")


def _search_dirs(options) -> list[str]:
    dirs = options.get("search_dirs") or []
    if isinstance(dirs, str):
        dirs = [dirs]
    return [os.path.expanduser(str(d)) for d in dirs]


def _additional_args(options) -> list[str]:
    extra = options.get("additional_args")
    if extra is None:
        return []
    if callable(extra):
        extra = extra(options)
    return [str(arg) for arg in extra]


def find_command(options, query: str = "") -> list[str]:
    """Build the file listing command for the current options."""
    custom = options.get("find_command")
    if custom:
        if callable(custom):
            custom = custom(options)
        return [str(arg) for arg in custom]

    hidden = options.get("hidden", False)
    no_ignore = options.get("no_ignore", False)
    follow = options.get("follow", False)
    search_dirs = _search_dirs(options)

    # Fall through to rg so a missing tool surfaces as "command not found: rg"
    tool = first_executable(FIND_TOOLS) or "rg"

    if tool == "rg":
        cmd = ["rg", "--files", "--color", "never"]
        if hidden:
            cmd.append("--hidden")
        if no_ignore:
            cmd.append("--no-ignore")
        if follow:
            cmd.append("-L")
        return cmd + search_dirs

    if tool in ("fd", "fdfind"):
        cmd = [tool, "--type", "f", "--color", "never"]
        if hidden:
            cmd.append("--hidden")
        if no_ignore:
            cmd.append("--no-ignore")
        if follow:
            cmd.append("--follow")
        if search_dirs:
            cmd += ["--", "."] + search_dirs
        return cmd

    cmd = ["find"]
    if follow:
        cmd.append("-L")
    cmd += search_dirs or ["."]
    cmd += ["-type", "f"]
    if not hidden:
        cmd += ["-not", "-path", "*/.*"]
    return cmd


def file_entry(line: str, options: Mapping[str, Any]) -> Optional[ResultItem]:
    """One path per line; leading ./ dropped for display."""
    if not line:
        return None
    relative = line[2:] if line.startswith("./") else line
    cwd = options.get("cwd") or os.getcwd()
    absolute = relative if os.path.isabs(relative) else os.path.join(cwd, relative)
    return ResultItem(
        text=display_path(relative, cwd),
        value=relative,
        path=absolute,
    )


def parse_vimgrep(line: str) -> Optional[dict]:
    """Split a "path:line:column:text" line. Returns None for other lines."""
    match = _VIMGREP_LINE.match(line)
    if match is None:
        return None
    return {
        "path": match.group("path"),
        "lnum": int(match.group("lnum")),
        "col": int(match.group("col")),
        "text": match.group("text"),
    }


def vimgrep_entry(line: str, options: Mapping[str, Any]) -> Optional[ResultItem]:
    parsed = parse_vimgrep(line)
    if parsed is None:
        return None
    cwd = options.get("cwd") or os.getcwd()
    path = parsed["path"]
    absolute = path if os.path.isabs(path) else os.path.join(cwd, path)
    shown = display_path(path, cwd)
    if options.get("disable_coordinates"):
        text = f"{shown}:{parsed['text']}"
    else:
        text = f"{shown}:{parsed['lnum']}:{parsed['col']}:{parsed['text']}"
    return ResultItem(
        text=text,
        value=parsed["text"],
        path=absolute,
        lnum=parsed["lnum"],
        col=parsed["col"],
    )


def live_grep_command(options, query: str) -> Optional[list[str]]:
    """Grep for the live query text; an empty query produces nothing."""
    if not query:
        return None
    return VIMGREP_ARGS + _additional_args(options) + ["--", query] + _search_dirs(options)


def grep_string_command(options, query: str = "") -> list[str]:
    """Grep for the fixed ``search`` option; the live query only ranks the hits."""
    search = options.get("search")
    args = list(VIMGREP_ARGS) + _additional_args(options)
    if options.get("word_match") == "-w":
        args.append("-w")
    if not options.get("use_regex", False):
        args.append("--fixed-strings")
    return args + ["--", str(search)] + _search_dirs(options)


def _spec(name: str, source: Callable, description: str, **kwargs) -> TaskSpec:
    return TaskSpec(
        name=name,
        kind=ProducerKind.PROCESS,
        source=source,
        description=description,
        **kwargs,
    )


FIND_FILES = _spec(
    "find_files",
    find_command,
    "Search for files (respecting .gitignore)",
    entry_maker=file_entry,
    defaults={"hidden": False, "no_ignore": False, "follow": False},
)

LIVE_GREP = _spec(
    "live_grep",
    live_grep_command,
    "Search for a string and get results live as you type",
    entry_maker=vimgrep_entry,
    ok_exit_codes=(0, 1),  # rg exits 1 when nothing matched
    dynamic=True,
)

GREP_STRING = _spec(
    "grep_string",
    grep_string_command,
    "Search for a fixed string in the current directory",
    entry_maker=vimgrep_entry,
    ok_exit_codes=(0, 1),
    required_options=("search",),
    defaults={"use_regex": False},
)

SPECS = [FIND_FILES, LIVE_GREP, GREP_STRING]
