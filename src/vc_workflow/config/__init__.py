"""
Configuration loading for vc_workflow.

See :mod:`vc_workflow.config.loader` for the settings file format.
"""

from .loader import ConfigError, WorkflowConfig, load_config  # noqa: F401
