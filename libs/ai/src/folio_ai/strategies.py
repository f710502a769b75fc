"""
Generation strategies.

A strategy tells the orchestration service which documents to pull as
context, what to search for, which prompts to send, and what kind of
document the generated items become. There are two variants: a strategy
built from a project type's workflow edge and its AI template, and the
built-in software-deliverables strategy.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field

from folio_core.models import INTAKE_TYPE, AiTemplate, Project, WorkflowEdge

_ALL_OF_TYPE = re.compile(r"\{\{all:([a-zA-Z0-9_-]+)\}\}")
_PLACEHOLDER = re.compile(r"\{\{(input|project|description|all:[a-zA-Z0-9_-]+)\}\}")

DEFAULT_USER_TEMPLATE = (
    "Project: {{project}}\n"
    "Description: {{description}}\n\n"
    "Source material:\n{{input}}"
)

SOFTWARE_SYSTEM_PROMPT = """\
You are an experienced Agile product owner.
Read the raw meeting notes and intake material provided and extract discrete user stories.

For every story provide:
- title: a short name for the story
- story: "As a [persona], I want to [action] so that [value]."
- criteria: three to five acceptance criteria describing what done looks like

Cover functional needs only. Skip small talk and administrative remarks."""


@dataclass(frozen=True)
class WorkflowStrategy:
    """Turns documents of ``source_type`` into ``output_type`` via an AI template."""

    template: AiTemplate
    source_type: str
    output_type: str
    body_key: str = "content"
    requires_context: bool = False

    @classmethod
    def from_edge(cls, edge: WorkflowEdge, template: AiTemplate) -> "WorkflowStrategy":
        if edge.ai_template_id != template.id:
            raise ValueError(
                f"Template {template.id} does not belong to edge {edge.from_key}->{edge.to_key}"
            )
        return cls(template=template, source_type=edge.from_key, output_type=edge.to_key)

    @property
    def name(self) -> str:
        return f"workflow:{self.source_type}->{self.output_type}"

    @property
    def required_types(self) -> list[str]:
        return [self.source_type]

    @property
    def system_prompt(self) -> str:
        return self.template.system_prompt

    @property
    def user_prompt_template(self) -> str:
        return self.template.user_prompt

    def search_query(self, project: Project) -> str:
        return (
            f"Relevant information for {self.output_type} based on {self.source_type} "
            f"for project {project.name}"
        )


@dataclass(frozen=True)
class SoftwareStrategy:
    """Extracts user stories from a software project's intake notes."""

    output_type: str = "user_story"
    body_key: str = "story"
    requires_context: bool = True
    required_types: list[str] = field(default_factory=lambda: [INTAKE_TYPE])
    system_prompt: str = SOFTWARE_SYSTEM_PROMPT
    user_prompt_template: str = DEFAULT_USER_TEMPLATE

    @property
    def name(self) -> str:
        return "software"

    def search_query(self, project: Project) -> str:
        query = (
            "User requirements, feature requests, and project goals from meeting notes for: "
            f"{project.name}"
        )
        if project.description:
            query = f"{query}. {project.description}"
        return query


GenerationStrategy = WorkflowStrategy | SoftwareStrategy

BUILTIN_STRATEGIES: dict[str, type[SoftwareStrategy]] = {
    "software": SoftwareStrategy,
}


def builtin_strategy(name: str) -> SoftwareStrategy:
    """
    Look up a built-in strategy by name.

    Raises:
        KeyError: if no built-in strategy has that name
    """
    try:
        return BUILTIN_STRATEGIES[name]()
    except KeyError:
        raise KeyError(f"Unknown generation strategy: {name}") from None


def referenced_types(template: str) -> list[str]:
    """Document types referenced by ``{{all:<type>}}`` placeholders, in order."""
    seen: list[str] = []
    for document_type in _ALL_OF_TYPE.findall(template):
        if document_type not in seen:
            seen.append(document_type)
    return seen


def render_prompt(
    template: str,
    *,
    project: Project,
    context: str,
    documents_by_type: Mapping[str, list[str]] | None = None,
) -> str:
    """
    Substitute prompt variables.

    ``{{input}}`` becomes the context block, ``{{project}}`` and
    ``{{description}}`` the project's name and description, and
    ``{{all:<type>}}`` every document of that type joined by blank lines.
    When the template has no ``{{input}}`` the context is appended.
    """
    documents_by_type = documents_by_type or {}
    values = {
        "input": context,
        "project": project.name,
        "description": project.description or "",
    }

    def substitute(match: re.Match) -> str:
        name = match.group(1)
        if name.startswith("all:"):
            return "\n\n".join(documents_by_type.get(name[4:], []))
        return values[name]

    # Single pass, so placeholders inside substituted text stay literal
    rendered = _PLACEHOLDER.sub(substitute, template)
    if "{{input}}" not in template and context:
        rendered = f"{rendered.rstrip()}\n\nContext:\n{context}"
    return rendered
