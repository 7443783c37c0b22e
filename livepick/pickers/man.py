"""
Man Pages Picker - Manual page entries listed by apropos.

Each apropos line looks like "ls (1) - list directory contents"; BSD
apropos prints "gzip, gunzip(1) - ..." instead. Only entries in the
``sections`` option are kept (default ["1"]; ["ALL"] keeps everything).

Options:
  man_pages → sections, man_cmd
"""

import re
import sys
from typing import Any, Mapping, Optional

from livepick.search.stream import ResultItem
from livepick.tasks.spec import ProducerKind, TaskSpec

_APROPOS_LINE = re.compile(
    r"^(?P<names>.+?)\s*\((?P<section>[^)]+)\)\s+-+\s*(?P<description>.*)$"
)


def man_command(options, query: str = "") -> list[str]:
    custom = options.get("man_cmd")
    if custom:
        if callable(custom):
            custom = custom(options)
        return [str(arg) for arg in custom]
    # macOS apropos rejects an empty keyword
    keyword = " " if sys.platform == "darwin" else ""
    return ["apropos", keyword]


def _sections(options) -> set[str]:
    sections = options.get("sections") or ["1"]
    if isinstance(sections, str):
        sections = [sections]
    return {str(s) for s in sections}


def parse_apropos(line: str) -> Optional[dict]:
    match = _APROPOS_LINE.match(line.strip())
    if match is None:
        return None
    return {
        "name": match.group("names").split(",")[0].strip(),
        "section": match.group("section").strip(),
        "description": match.group("description").strip(),
    }


def man_entry(line: str, options: Mapping[str, Any]) -> Optional[ResultItem]:
    parsed = parse_apropos(line)
    if parsed is None:
        return None
    sections = _sections(options)
    if "ALL" not in sections and parsed["section"] not in sections:
        return None
    return ResultItem(
        text=f"{parsed['name']}({parsed['section']}) {parsed['description']}",
        value={"name": parsed["name"], "section": parsed["section"]},
    )


MAN_PAGES = TaskSpec(
    name="man_pages",
    kind=ProducerKind.PROCESS,
    source=man_command,
    entry_maker=man_entry,
    defaults={"sections": ["1"]},
    ok_exit_codes=(0, 16),  # man-db apropos exits 16 when nothing matched
    description="Lists manpage entries",
)

SPECS = [MAN_PAGES]
