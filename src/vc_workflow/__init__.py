"""
Top-level package for vc_workflow.

This package exposes the ``vcflow`` command line interface via the
``vc_workflow.cli`` module.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
