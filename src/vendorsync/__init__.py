"""
vendorsync - file-granular vendoring from git repositories

Copies selected files, directories and line ranges out of remote git
repositories into a project tree, pinned to exact revisions.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
