"""
Prompt Template Registry
One template per generation task, loaded from YAML once at import
"""

import re
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping

import yaml

from .errors import AIConfigurationError
from .types import GenerationTask, PromptTemplate

TEMPLATES_DIR = Path(__file__).parent / "templates"

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")


def extract_placeholders(text: str) -> List[str]:
    """Placeholder names in order of first appearance"""
    seen: Dict[str, None] = {}
    for match in PLACEHOLDER_PATTERN.finditer(text):
        seen.setdefault(match.group(1), None)
    return list(seen)


def _load_template(task: GenerationTask, templates_dir: Path) -> PromptTemplate:
    path = templates_dir / f"{task.value}.yaml"
    if not path.exists():
        raise AIConfigurationError(f"No prompt template defined for task '{task.value}'")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    try:
        template = PromptTemplate(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            system_message=data["system"],
            user_prompt_template=data["template"],
            variables=tuple(data["variables"]),
            max_tokens=int(data["max_tokens"]),
            temperature=float(data["temperature"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise AIConfigurationError(f"Malformed prompt template {path.name}: {e}") from e

    if template.id != task.value:
        raise AIConfigurationError(
            f"Prompt template {path.name} declares id '{template.id}', expected '{task.value}'"
        )

    found = set(extract_placeholders(template.user_prompt_template))
    if found != set(template.variables):
        raise AIConfigurationError(
            f"Prompt template '{template.id}' declares variables {sorted(template.variables)} "
            f"but uses {sorted(found)}"
        )

    return template


def load_prompt_templates(templates_dir: Path = TEMPLATES_DIR) -> Mapping[GenerationTask, PromptTemplate]:
    """
    Load and validate the template for every generation task.

    Raises:
        AIConfigurationError: If a task has no template, or a template's declared
            variables differ from the placeholders in its body
    """
    templates = {task: _load_template(task, templates_dir) for task in GenerationTask}
    return MappingProxyType(templates)


PROMPT_TEMPLATES = load_prompt_templates()


def get_prompt_template(task: GenerationTask) -> PromptTemplate:
    """Get the template for a generation task"""
    try:
        return PROMPT_TEMPLATES[GenerationTask(task)]
    except (KeyError, ValueError) as e:
        raise AIConfigurationError(f"No prompt template defined for task '{task}'") from e


def render_prompt(template: PromptTemplate, variables: Mapping[str, str]) -> str:
    """
    Substitute ``{{name}}`` placeholders in the user template.

    Every occurrence of a provided variable is replaced. Placeholders without a
    value are left verbatim, and variables the template does not reference are
    ignored. Substituted values are not rescanned for placeholders.
    """
    def substitute(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name in variables:
            return str(variables[name])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(substitute, template.user_prompt_template)


def find_unrendered_placeholders(text: str) -> List[str]:
    """Names of placeholders still present after rendering"""
    return extract_placeholders(text)
