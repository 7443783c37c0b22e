"""
Tests for the builtin pickers: command building, line parsing, and runs
against real temporary trees and git repositories.
"""

import shutil
import sys

import pytest

from livepick import create_dispatcher
from livepick.config import PickerOptions
from livepick.errors import OptionError, ProducerFailure
from livepick.pickers import files, git, man
from livepick.tasks.task import TaskStatus
from livepick.utils.helpers import first_executable

HAS_RG = shutil.which("rg") is not None
HAS_FIND_TOOL = first_executable(files.FIND_TOOLS) is not None


def _opts(**extra):
    return PickerOptions(extra=extra)


def _texts(instance):
    return instance.stream.snapshot().texts()


class TestFindCommand:
    """find_files command selection and flags."""

    def test_custom_find_command(self):
        assert files.find_command(_opts(find_command=["ls", "-1"])) == ["ls", "-1"]

    def test_custom_find_command_callable(self):
        cmd = files.find_command(_opts(find_command=lambda o: ["echo", o.get("x")], x="hi"))
        assert cmd == ["echo", "hi"]

    def test_rg_flags(self, monkeypatch):
        monkeypatch.setattr(files, "first_executable", lambda names: "rg")
        cmd = files.find_command(_opts(hidden=True, no_ignore=True, follow=True,
                                       search_dirs=["src"]))
        assert cmd == ["rg", "--files", "--color", "never", "--hidden", "--no-ignore",
                       "-L", "src"]

    def test_fd_flags(self, monkeypatch):
        monkeypatch.setattr(files, "first_executable", lambda names: "fdfind")
        cmd = files.find_command(_opts(hidden=True, search_dirs="src"))
        assert cmd == ["fdfind", "--type", "f", "--color", "never", "--hidden",
                       "--", ".", "src"]

    def test_find_fallback(self, monkeypatch):
        monkeypatch.setattr(files, "first_executable", lambda names: "find")
        cmd = files.find_command(_opts(follow=True))
        assert cmd == ["find", "-L", ".", "-type", "f", "-not", "-path", "*/.*"]

    def test_no_tool_reports_rg(self, monkeypatch):
        monkeypatch.setattr(files, "first_executable", lambda names: None)
        assert files.find_command(_opts())[0] == "rg"


class TestGrepCommands:
    """live_grep and grep_string argument building."""

    def test_live_grep_empty_query_runs_nothing(self):
        assert files.live_grep_command(_opts(), "") is None

    def test_live_grep_query_after_separator(self):
        cmd = files.live_grep_command(_opts(search_dirs=["docs"]), "-v")
        assert cmd[-3:] == ["--", "-v", "docs"]

    def test_live_grep_additional_args(self):
        cmd = files.live_grep_command(_opts(additional_args=lambda o: ["--hidden"]), "x")
        assert "--hidden" in cmd
        assert cmd.index("--hidden") < cmd.index("--")

    def test_grep_string_fixed_by_default(self):
        cmd = files.grep_string_command(_opts(search="a.b"))
        assert "--fixed-strings" in cmd
        assert cmd[-2:] == ["--", "a.b"]

    def test_grep_string_regex_and_word(self):
        cmd = files.grep_string_command(_opts(search="a.b", use_regex=True, word_match="-w"))
        assert "--fixed-strings" not in cmd
        assert "-w" in cmd


class TestEntryMakers:
    """Parsing producer lines into items."""

    def test_parse_vimgrep(self):
        parsed = files.parse_vimgrep("src/a.py:12:5:  x = 1")
        assert parsed == {"path": "src/a.py", "lnum": 12, "col": 5, "text": "  x = 1"}

    def test_parse_vimgrep_rejects_other_lines(self):
        assert files.parse_vimgrep("no coordinates here") is None

    def test_vimgrep_entry(self, tmp_path):
        item = files.vimgrep_entry("src/a.py:3:1:TODO", PickerOptions(cwd=str(tmp_path)))
        assert item.text == "src/a.py:3:1:TODO"
        assert item.path == str(tmp_path / "src" / "a.py")
        assert (item.lnum, item.col) == (3, 1)

    def test_vimgrep_entry_without_coordinates(self, tmp_path):
        options = PickerOptions(cwd=str(tmp_path), extra={"disable_coordinates": True})
        assert files.vimgrep_entry("a.py:3:1:TODO", options).text == "a.py:TODO"

    def test_file_entry_strips_dot_slash(self, tmp_path):
        item = files.file_entry("./src/a.py", PickerOptions(cwd=str(tmp_path)))
        assert item.text == "src/a.py"
        assert item.path == str(tmp_path / "src" / "a.py")
        assert files.file_entry("", PickerOptions()) is None

    def test_branch_entry(self):
        item = git.branch_entry("* main", PickerOptions())
        assert item.text == "main"
        assert item.value == {"name": "main", "current": True}
        assert git.branch_entry("  origin/HEAD", PickerOptions()) is None

    def test_status_entry_rename(self, tmp_path):
        item = git.status_entry("R  old.py -> new.py", PickerOptions(cwd=str(tmp_path)))
        assert item.text == "R new.py"
        assert item.path == str(tmp_path / "new.py")

    def test_stash_and_commit_entries(self):
        assert git.stash_entry("stash@{0}: WIP on main: abc", PickerOptions()).value == "stash@{0}"
        assert git.commit_entry("abc1234 Fix it", PickerOptions()).value == "abc1234"


class TestFilePickers:
    """find_files and grep pickers against a real tree."""

    @pytest.mark.skipif(not HAS_FIND_TOOL, reason="no rg, fd or find installed")
    def test_find_files(self, file_tree):
        instance = create_dispatcher().run("find_files", {"cwd": str(file_tree)}, timeout=10)
        texts = sorted(_texts(instance))
        assert texts == ["docs/readme.md", "src/main.py", "src/util.py"]

    def test_find_files_custom_command(self, file_tree):
        command = [sys.executable, "-c", "print('./a.txt'); print('b.txt')"]
        instance = create_dispatcher().run(
            "fd", {"cwd": str(file_tree), "find_command": command}, timeout=10
        )
        assert _texts(instance) == ["a.txt", "b.txt"]
        assert instance.stream.snapshot()[0].path == str(file_tree / "a.txt")

    @pytest.mark.skipif(not HAS_RG, reason="rg not installed")
    def test_grep_string(self, file_tree):
        instance = create_dispatcher().run(
            "grep_string", {"cwd": str(file_tree), "search": "TODO"}, timeout=10
        )
        found = {(item.text.split(":")[0], item.lnum) for item in instance.stream.snapshot()}
        assert found == {("src/util.py", 1), ("docs/readme.md", 2)}

    def test_grep_string_requires_search(self, file_tree):
        with pytest.raises(OptionError):
            create_dispatcher().dispatch("grep_string", cwd=str(file_tree))

    @pytest.mark.skipif(not HAS_RG, reason="rg not installed")
    def test_live_grep_follows_query(self, file_tree):
        dispatcher = create_dispatcher()
        instance = dispatcher.dispatch("live_grep", cwd=str(file_tree), default_text="world")
        instance.wait(timeout=10)
        assert [item.lnum for item in instance.ranked()] == [2]

        instance.set_query("Hello")
        instance.wait(timeout=10)
        assert [item.text.split(":")[0] for item in instance.ranked()] == ["docs/readme.md"]

    @pytest.mark.skipif(not HAS_RG, reason="rg not installed")
    def test_live_grep_no_match_is_not_failure(self, file_tree):
        instance = create_dispatcher().run(
            "live_grep", {"cwd": str(file_tree), "default_text": "zzzqqq"}, timeout=10
        )
        assert instance.status == TaskStatus.COMPLETED
        assert len(instance.stream) == 0


class TestGitPickers:
    """git pickers against a real repository."""

    def test_git_files(self, git_repo):
        instance = create_dispatcher().run("git_files", {"cwd": str(git_repo)}, timeout=10)
        assert _texts(instance) == ["docs/readme.md", "src/main.py", "src/util.py"]

    def test_git_files_untracked(self, git_repo):
        instance = create_dispatcher().run(
            "git_files", {"cwd": str(git_repo), "show_untracked": True}, timeout=10
        )
        assert ".hidden" in _texts(instance)

    def test_git_commits(self, git_repo):
        instance = create_dispatcher().run("git_commits", {"cwd": str(git_repo)}, timeout=10)
        texts = _texts(instance)
        assert len(texts) == 2
        assert texts[0].endswith("Add docs")
        assert texts[1].endswith("Add sources")

    def test_git_bcommits(self, git_repo):
        dispatcher = create_dispatcher()
        with pytest.raises(OptionError):
            dispatcher.dispatch("git_bcommits", cwd=str(git_repo))
        instance = dispatcher.run(
            "git_bcommits", {"cwd": str(git_repo), "current_file": "src/main.py"}, timeout=10
        )
        assert [t.split(" ", 1)[1] for t in _texts(instance)] == ["Add sources"]

    def test_git_branches(self, git_repo):
        instance = create_dispatcher().run("git_branches", {"cwd": str(git_repo)}, timeout=10)
        items = list(instance.stream.snapshot())
        assert [item.text for item in items] == ["main"]
        assert items[0].value["current"] is True

    def test_git_status(self, git_repo):
        (git_repo / "src" / "main.py").write_text("changed\n")
        instance = create_dispatcher().run("git_status", {"cwd": str(git_repo)}, timeout=10)
        texts = _texts(instance)
        assert "M src/main.py" in texts
        assert "?? .hidden" in texts

    def test_git_stash_empty(self, git_repo):
        instance = create_dispatcher().run("git_stash", {"cwd": str(git_repo)}, timeout=10)
        assert instance.status == TaskStatus.COMPLETED
        assert len(instance.stream) == 0

    def test_outside_repository_fails(self, tmp_path, monkeypatch):
        if shutil.which("git") is None:
            pytest.skip("git not installed")
        plain = tmp_path / "plain"
        plain.mkdir()
        monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))
        with pytest.raises(ProducerFailure) as excinfo:
            create_dispatcher().run("git_files", {"cwd": str(plain)}, timeout=10)
        assert excinfo.value.picker == "git_files"
        assert "128" in excinfo.value.reason


class TestInternalPickers:
    """builtin and pickers list the registry itself."""

    def test_builtin_lists_every_picker(self):
        dispatcher = create_dispatcher()
        instance = dispatcher.run("builtin", timeout=5)
        assert sorted(item.value for item in instance.stream.snapshot()) == dispatcher.registry.names()

    def test_pickers_lists_cache_without_joining_it(self):
        dispatcher = create_dispatcher()
        dispatcher.run("builtin", {"default_text": "git"}, timeout=5)
        instance = dispatcher.run("pickers", timeout=5)
        assert _texts(instance)[0].startswith("0: builtin [git]")
        assert [inst.name for inst in dispatcher.registry.list_cached()] == ["builtin"]


class TestManPages:
    """apropos parsing and section filtering."""

    APROPOS = (
        "ls (1)               - list directory contents\n"
        "printf (3)           - formatted output conversion\n"
        "gzip, gunzip(1) - compression/decompression tool\n"
        "not an apropos line\n"
    )

    def test_parse_linux_line(self):
        assert man.parse_apropos("ls (1)               - list directory contents") == {
            "name": "ls", "section": "1", "description": "list directory contents",
        }

    def test_parse_bsd_line_keeps_first_name(self):
        parsed = man.parse_apropos("gzip, gunzip(1) - compression/decompression tool")
        assert parsed["name"] == "gzip"
        assert parsed["section"] == "1"

    def test_entry_filters_sections(self):
        line = "printf (3)           - formatted output conversion"
        assert man.man_entry(line, _opts(sections=["1"])) is None
        item = man.man_entry(line, _opts(sections=["ALL"]))
        assert item.value == {"name": "printf", "section": "3"}
        assert item.text == "printf(3) formatted output conversion"

    def test_default_command_is_apropos(self):
        assert man.man_command(_opts())[0] == "apropos"

    def test_man_pages_picker(self):
        command = [sys.executable, "-c", f"import sys; sys.stdout.write({self.APROPOS!r})"]
        instance = create_dispatcher().run("man_pages", {"man_cmd": command}, timeout=10)
        assert _texts(instance) == [
            "ls(1) list directory contents",
            "gzip(1) compression/decompression tool",
        ]

    def test_man_pages_all_sections(self):
        command = [sys.executable, "-c", f"import sys; sys.stdout.write({self.APROPOS!r})"]
        instance = create_dispatcher().run(
            "man_pages", {"man_cmd": command, "sections": ["ALL"]}, timeout=10
        )
        assert [item.value["name"] for item in instance.stream.snapshot()] == [
            "ls", "printf", "gzip",
        ]
