"""
Builtin pickers - File search, grep, git, man pages and internal lists.

Each module exposes TaskSpecs; register_builtins() adds them all to a
Registry, including the ``fd`` alias for find_files.
"""

from . import files, git, internal, man


def register_builtins(registry) -> None:
    """Register every builtin picker spec."""
    for spec in files.SPECS + git.SPECS + man.SPECS + internal.build_specs(registry):
        registry.register(spec)
    registry.register(files.FIND_FILES.renamed("fd"))


__all__ = ["files", "git", "internal", "man", "register_builtins"]
