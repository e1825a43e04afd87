"""Rigidity Toolbox: host application and calculation tools."""

__version__ = "0.1.0"
