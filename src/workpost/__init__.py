"""workpost: a plan/task/trouble workflow layer on top of chat posts."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("workpost")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from workpost.core import Post, WorkpostDB

__all__ = ["Post", "WorkpostDB", "__version__"]
