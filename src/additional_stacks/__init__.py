"""
Additional Stacks - deploy CloudFormation stacks that live next to a primary service stack.
"""

__version__ = "1.0.0"

from .config import StackDefinition, StacksConfig, StackSet, load_config, resolve

__all__ = ["StackDefinition", "StacksConfig", "StackSet", "load_config", "resolve"]
