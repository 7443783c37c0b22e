# livepick utilities package
"""
Shared utility functions used by the config layer and builtin pickers.
"""

from .helpers import deep_merge, merge_layers, first_executable, display_path

__all__ = ["deep_merge", "merge_layers", "first_executable", "display_path"]
