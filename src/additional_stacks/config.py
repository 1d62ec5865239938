"""
Configuration loading and stack set resolution.

The configuration document follows the layout of a serverless.yml file::

    service: my-service
    provider:
      stage: dev
      region: us-east-1
      stackTags:
        Owner: owner@example.org
    custom:
      additionalStacks:
        permanent:
          Deploy: Before
          Resources:
            Bucket:
              Type: AWS::S3::Bucket

Each entry under ``custom.additionalStacks`` is either a mapping or an ordered
list of partial mappings that are deep-merged left to right.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import jsonschema
import yaml

from .errors import ConfigurationError, StackNotFound

logger = logging.getLogger(__name__)

DEFAULT_STAGE = "dev"
DEFAULT_REGION = "us-east-1"
DEFAULT_ARTIFACT_DIRECTORY = ".serverless"
DEFAULT_POLL_INTERVAL = 5.0

DEPLOY_BEFORE = "before"
DEPLOY_AFTER = "after"

# Template sections copied into the compiled body
TEMPLATE_SECTIONS = (
    "Metadata",
    "Parameters",
    "Mappings",
    "Conditions",
    "Transform",
    "Resources",
    "Outputs",
)

STACK_DEFINITION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "Description": {"type": "string"},
        "StackName": {"type": "string", "minLength": 1},
        "Deploy": {"type": "string", "pattern": "(?i)^(before|after)$"},
        "Tags": {
            "type": "object",
            "additionalProperties": {"type": ["string", "number", "boolean"]},
        },
        "StackParameters": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["ParameterKey"],
                "properties": {
                    "ParameterKey": {"type": "string"},
                    "ParameterValue": {"type": ["string", "number", "boolean"]},
                    "UsePreviousValue": {"type": "boolean"},
                    "ResolvedValue": {"type": "string"},
                },
                "additionalProperties": False,
            },
        },
        "Metadata": {"type": "object"},
        "Parameters": {"type": "object"},
        "Mappings": {"type": "object"},
        "Conditions": {"type": "object"},
        "Transform": {"type": ["string", "array", "object"]},
        "Resources": {"type": "object"},
        "Outputs": {"type": "object"},
    },
    "additionalProperties": False,
}


class CloudFormationYAMLLoader(yaml.SafeLoader):
    """YAML loader that understands CloudFormation intrinsic function tags."""
    pass


def cfn_tag_constructor(loader, tag_suffix, node):
    """Build the JSON form of a CloudFormation short-form intrinsic function."""
    if isinstance(node, yaml.ScalarNode):
        value = loader.construct_scalar(node)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    elif isinstance(node, yaml.MappingNode):
        value = loader.construct_mapping(node, deep=True)
    else:
        raise yaml.constructor.ConstructorError(
            None, None,
            f"could not determine a constructor for the tag '!{tag_suffix}'",
            node.start_mark)

    if tag_suffix in ("Ref", "Condition"):
        return {tag_suffix: value}
    if tag_suffix == "GetAtt" and isinstance(value, str):
        return {"Fn::GetAtt": value.split(".", 1)}
    return {f"Fn::{tag_suffix}": value}


cfn_tags = [
    'Ref', 'GetAtt', 'GetAZs', 'ImportValue', 'Join', 'Select',
    'Split', 'Sub', 'Transform', 'Base64', 'Cidr', 'FindInMap',
    'Condition', 'Equals', 'If', 'Not', 'And', 'Or'
]

for tag in cfn_tags:
    CloudFormationYAMLLoader.add_constructor(
        f'!{tag}',
        lambda loader, node, tag=tag: cfn_tag_constructor(loader, tag, node)
    )


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``override`` into a copy of ``base``; nested mappings merge recursively."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def merge_fragments(stack_name: str, fragments: List[Any]) -> Dict[str, Any]:
    """Deep-merge an ordered list of definition fragments."""
    merged: Dict[str, Any] = {}
    for index, fragment in enumerate(fragments):
        if not isinstance(fragment, dict):
            raise ConfigurationError(
                f"Additional stack {stack_name} fragment {index} is not an object",
                stack_name=stack_name,
            )
        merged = deep_merge(merged, fragment)
    return merged


def parameter_to_request(parameter: Dict[str, Any]) -> Dict[str, Any]:
    """Stringify a deploy parameter value; YAML reads ``8080`` or ``true`` as non-strings."""
    parameter = dict(parameter)
    value = parameter.get("ParameterValue")
    if isinstance(value, bool):
        parameter["ParameterValue"] = str(value).lower()
    elif value is not None:
        parameter["ParameterValue"] = str(value)
    return parameter


@dataclass(frozen=True)
class StackDefinition:
    """A named, declarative additional stack."""
    name: str
    description: Optional[str] = None
    stack_name: Optional[str] = None
    deploy: Optional[str] = None
    tags: Optional[Dict[str, str]] = None
    stack_parameters: Optional[List[Dict[str, Any]]] = None
    sections: Dict[str, Any] = field(default_factory=dict)

    @property
    def deploy_timing(self) -> str:
        """Deployment timing relative to the primary stack, lower-cased."""
        return (self.deploy or DEPLOY_BEFORE).lower()

    @property
    def has_transform(self) -> bool:
        return "Transform" in self.sections

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "StackDefinition":
        """Validate a definition mapping and build a StackDefinition."""
        try:
            jsonschema.validate(data, STACK_DEFINITION_SCHEMA)
        except jsonschema.ValidationError as e:
            path = " -> ".join(str(x) for x in e.absolute_path) or "(root)"
            raise ConfigurationError(
                f"Invalid additional stack {name} at {path}: {e.message}",
                stack_name=name,
            ) from e

        tags = data.get("Tags")
        parameters = data.get("StackParameters")
        return cls(
            name=name,
            description=data.get("Description"),
            stack_name=data.get("StackName"),
            deploy=data.get("Deploy"),
            tags={k: str(v) for k, v in tags.items()} if tags is not None else None,
            stack_parameters=(
                [parameter_to_request(p) for p in parameters]
                if parameters is not None else None
            ),
            sections={
                key: data[key] for key in TEMPLATE_SECTIONS if key in data
            },
        )


class StackSet:
    """An ordered, read-only mapping of logical stack names to definitions."""

    def __init__(self, definitions: Optional[Dict[str, StackDefinition]] = None):
        self._definitions: Dict[str, StackDefinition] = dict(definitions or {})

    def __iter__(self) -> Iterator[str]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __repr__(self) -> str:
        return f"StackSet({list(self._definitions)!r})"

    def names(self) -> List[str]:
        return list(self._definitions)

    def items(self) -> List[Tuple[str, StackDefinition]]:
        return list(self._definitions.items())

    def get(self, name: str) -> Optional[StackDefinition]:
        """Look up a stack by logical name, returning None if it is not defined."""
        return self._definitions.get(name)

    def require(self, name: str) -> StackDefinition:
        """Look up a stack by logical name, raising StackNotFound if missing."""
        definition = self.get(name)
        if definition is None:
            raise StackNotFound(name)
        return definition

    def all(self) -> "StackSet":
        return StackSet(self._definitions)

    def before(self) -> "StackSet":
        """Stacks deployed before the primary stack (the default)."""
        return StackSet({
            name: definition for name, definition in self._definitions.items()
            if definition.deploy_timing == DEPLOY_BEFORE
        })

    def after(self) -> "StackSet":
        """Stacks deployed after the primary stack."""
        return StackSet({
            name: definition for name, definition in self._definitions.items()
            if definition.deploy_timing == DEPLOY_AFTER
        })

    def only(self, name: str) -> "StackSet":
        """A single-stack set for an explicitly named stack."""
        return StackSet({name: self.require(name)})

    def reversed(self) -> "StackSet":
        return StackSet(dict(reversed(list(self._definitions.items()))))


def resolve(raw: Optional[Dict[str, Any]]) -> StackSet:
    """Build the stack set from the raw ``custom.additionalStacks`` mapping."""
    if raw is None:
        return StackSet()
    if not isinstance(raw, dict):
        raise ConfigurationError("custom.additionalStacks must be an object")

    definitions: Dict[str, StackDefinition] = {}
    for name, value in raw.items():
        if isinstance(value, list):
            value = merge_fragments(name, value)
        elif not isinstance(value, dict):
            raise ConfigurationError(
                f"Additional stack {name} must be an object or a list of objects",
                stack_name=name,
            )
        definitions[name] = StackDefinition.from_dict(name, value)

    logger.debug(f"Resolved additional stacks: {', '.join(definitions) or 'none'}")
    return StackSet(definitions)


@dataclass
class StacksConfig:
    """Settings for one orchestration run."""

    service: str
    stage: str = DEFAULT_STAGE
    region: str = DEFAULT_REGION
    profile: Optional[str] = None
    prefix: Optional[str] = None
    stack_tags: Dict[str, str] = field(default_factory=dict)
    artifact_directory: str = DEFAULT_ARTIFACT_DIRECTORY
    poll_interval: float = DEFAULT_POLL_INTERVAL
    timeout: Optional[float] = None
    stacks: StackSet = field(default_factory=StackSet)

    @property
    def stack_prefix(self) -> str:
        """Prefix for stack names without a StackName override."""
        return self.prefix or f"{self.service}-{self.stage}"

    @classmethod
    def from_dict(
        cls,
        document: Dict[str, Any],
        stage: Optional[str] = None,
        region: Optional[str] = None,
        profile: Optional[str] = None,
    ) -> "StacksConfig":
        """Create config from a parsed configuration document."""
        if not isinstance(document, dict):
            raise ConfigurationError("Configuration document must be an object")
        if not document.get("service"):
            raise ConfigurationError("Configuration is missing 'service'")

        provider = _section(document, "provider")
        custom = _section(document, "custom")
        settings = _section(custom, "additionalStacksSettings", "custom.")

        stack_tags = provider.get("stackTags") or {}
        if not isinstance(stack_tags, dict):
            raise ConfigurationError("provider.stackTags must be an object")

        timeout = settings.get("timeout")
        return cls(
            service=str(document["service"]),
            stage=stage or provider.get("stage") or DEFAULT_STAGE,
            region=region or provider.get("region") or DEFAULT_REGION,
            profile=profile or provider.get("profile"),
            prefix=settings.get("prefix"),
            stack_tags={k: str(v) for k, v in stack_tags.items()},
            artifact_directory=settings.get(
                "artifactDirectory", DEFAULT_ARTIFACT_DIRECTORY
            ),
            poll_interval=_seconds(
                settings.get("pollInterval", DEFAULT_POLL_INTERVAL), "pollInterval"
            ),
            timeout=_seconds(timeout, "timeout") if timeout is not None else None,
            stacks=resolve(custom.get("additionalStacks")),
        )


def _section(parent: Dict[str, Any], key: str, path: str = "") -> Dict[str, Any]:
    value = parent.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"{path}{key} must be an object")
    return value


def _seconds(value: Any, key: str) -> float:
    """Read a non-negative number of seconds from additionalStacksSettings."""
    message = f"custom.additionalStacksSettings.{key} must be a number, got {value!r}"
    if isinstance(value, bool):
        raise ConfigurationError(message)
    try:
        seconds = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(message) from e
    if seconds < 0:
        raise ConfigurationError(
            f"custom.additionalStacksSettings.{key} must not be negative"
        )
    return seconds


def load_document(config_path: Union[str, Path]) -> Dict[str, Any]:
    """Load the configuration document from YAML."""
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration: {config_path}")
    with open(config_path, "r") as f:
        try:
            document = yaml.load(f, Loader=CloudFormationYAMLLoader)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e
    return document or {}


def load_config(config_path: Union[str, Path], **overrides: Any) -> StacksConfig:
    """Load and resolve the configuration file."""
    return StacksConfig.from_dict(load_document(config_path), **overrides)
