"""
Render additional stack definitions into CloudFormation request bodies.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..config import TEMPLATE_SECTIONS, StackDefinition

TEMPLATE_FORMAT_VERSION = "2010-09-09"
TEMPLATE_FILE_PATTERN = "cloudformation-template-{name}.json"


@dataclass(frozen=True)
class CompiledTemplate:
    """A rendered template body for one additional stack."""
    name: str
    body: Dict[str, Any]

    @property
    def has_transform(self) -> bool:
        return "Transform" in self.body

    def to_json(self) -> str:
        return json.dumps(self.body, indent=2)


def default_description(name: str) -> str:
    return f"Additional stack {name}"


def compile_template(definition: StackDefinition) -> CompiledTemplate:
    """Build the template body with a fixed section order."""
    body: Dict[str, Any] = {
        "AWSTemplateFormatVersion": TEMPLATE_FORMAT_VERSION,
        "Description": definition.description or default_description(definition.name),
    }
    for section in TEMPLATE_SECTIONS:
        if section in definition.sections:
            body[section] = definition.sections[section]
    return CompiledTemplate(name=definition.name, body=body)


def build_tags(
    definition: StackDefinition,
    stage: str,
    default_tags: Optional[Dict[str, str]] = None,
) -> List[Dict[str, str]]:
    """
    Build the CloudFormation tag list for a stack.

    STAGE is always set. Stack-specific tags are merged over it; only when a
    stack has no tags of its own are the provider-wide defaults used.
    """
    tags: Dict[str, str] = {"STAGE": stage}
    if definition.tags is not None:
        tags.update(definition.tags)
    elif default_tags:
        tags.update(default_tags)
    return [{"Key": key, "Value": str(value)} for key, value in tags.items()]


def resolve_stack_name(definition: StackDefinition, prefix: str) -> str:
    """Full CloudFormation stack name for a definition."""
    return definition.stack_name or f"{prefix}-{definition.name}"


def template_path(directory: Union[str, Path], name: str) -> Path:
    return Path(directory) / TEMPLATE_FILE_PATTERN.format(name=name)


def write_template(compiled: CompiledTemplate, directory: Union[str, Path]) -> Path:
    """Write the compiled template to the artifact directory."""
    path = template_path(directory, compiled.name)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        f.write(compiled.to_json())
    return path
