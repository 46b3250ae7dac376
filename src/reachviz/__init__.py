"""reachviz: reachability graphs of a suspended interpreter's memory."""

__version__ = "0.1.0"
