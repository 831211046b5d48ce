"""agent-context - interactive CLI that builds a scoped workspace of symlinks.

Pick a target directory (or let one be generated under ~/agent-context),
pick project folders in a terminal directory browser, and get a directory
of links pointing at them for an editor or agent to open.

Package entry point. Exports the version string only; all functional
modules are imported lazily by main.py to keep startup fast.
"""

__version__ = "0.1.0"
