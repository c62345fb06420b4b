#!/usr/bin/env python
"""
Thin wrapper script to invoke the vc_workflow CLI.

Running ``python vcflow.py`` is equivalent to running the ``vcflow``
console script installed via ``pyproject.toml``.
"""

from vc_workflow.cli import main


if __name__ == "__main__":
    main(prog_name="vcflow")
