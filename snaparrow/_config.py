"""Configuration and system-info helpers (top-level module)."""

import platform
import re
import sys
from functools import partial
from importlib.metadata import requires, version
from typing import IO, Callable, Optional

import psutil

# Packages reported even when package metadata is unavailable
_CORE_DEPENDENCIES = ("numpy", "pyarrow", "pillow", "psutil")


def default_max_workers() -> int:
    """Return a sensible thread count for chunk-parallel preparation.

    Uses the number of physical cores, falling back to the logical count
    and finally to 1 when neither is known.
    """
    return psutil.cpu_count(False) or psutil.cpu_count(True) or 1


def sys_info(fid: Optional[IO] = None, developer: bool = False):
    """Print the system information for debugging.

    Parameters
    ----------
    fid : file-like, default=None
        The file to write to, passed to :func:`print`.
        Can be None to use :data:`sys.stdout`.
    developer : bool, default=False
        If True, display information about optional dependencies.
    """
    ljust = 26
    out = partial(print, end="", file=fid)
    package = __package__.split(".")[0]

    out("Platform:".ljust(ljust) + platform.platform() + "\n")
    out("Python:".ljust(ljust) + sys.version.replace("\n", " ") + "\n")
    out("Executable:".ljust(ljust) + sys.executable + "\n")
    out("CPU:".ljust(ljust) + platform.processor() + "\n")
    out("Physical cores:".ljust(ljust) + str(psutil.cpu_count(False)) + "\n")
    out("Logical cores:".ljust(ljust) + str(psutil.cpu_count(True)) + "\n")
    out("Default max_workers:".ljust(ljust) + str(default_max_workers()) + "\n")
    out("RAM:".ljust(ljust))
    out(f"{psutil.virtual_memory().total / float(2 ** 30):0.1f} GB\n")

    out("\nDependencies info\n")
    # package metadata is missing when running from the source tree
    try:
        pkg_version = version(package)
    except Exception:
        pkg_version = "Not installed."
    out(f"{package}:".ljust(ljust) + pkg_version + "\n")

    try:
        raw_requires = requires(package) or []
    except Exception:
        raw_requires = []

    dependencies = [elt.split(";")[0].rstrip() for elt in raw_requires if "extra" not in elt]
    if not dependencies:
        dependencies = list(_CORE_DEPENDENCIES)
    _list_dependencies_info(out, ljust, dependencies)

    if developer:
        extras = [elt.split(";")[0].rstrip() for elt in raw_requires if "extra" in elt]
        if extras:
            out("\nOptional 'test' info\n")
            _list_dependencies_info(out, ljust, extras)


def _list_dependencies_info(out: Callable, ljust: int, dependencies: list):
    """List dependencies names and versions.

    Parameters
    ----------
    out : Callable
        output function
    ljust : int
         length of returned string
    dependencies : List[str]
        list of dependencies

    """
    for dep in dependencies:
        # handle dependencies with version specifiers
        specifiers_pattern = r"(~=|==|!=|<=|>=|<|>|===)"
        specifiers = re.findall(specifiers_pattern, dep)
        if len(specifiers) != 0:
            dep, _ = dep.split(specifiers[0], 1)
            dep = dep.strip()
        # handle dependencies provided with a [key], e.g. pydocstyle[toml]
        if "[" in dep:
            dep = dep.split("[")[0]
        try:
            version_ = version(dep)
        except Exception:
            version_ = "Not found."
        out(f"{dep}:".ljust(ljust) + version_ + "\n")
