# cardsmith/compose/fragments.py
"""Render typed content fragments into markdown.

Each fragment type has its own payload shape; the renderer for a type turns
that payload into markdown and names the canonical section it belongs to.
Unknown types fall back to a generic renderer so new fragment kinds still
produce readable text.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from cardsmith.models import ContentFragment

logger = logging.getLogger(__name__)

# Canonical section each fragment type leans towards.
FRAGMENT_CANONICAL_HINTS = {
    "kpi_set": "kpis",
    "risk_mitigation": "risks",
    "interface_pattern": "interfaces",
    "guideline": "governance",
    "decision_matrix": "architecture",
    "ux_states": "architecture",
    "onboarding_flow": "tutorials",
    "ordered_steps": "tutorials",
}

# Title used when a fragment opens a section of its own.
FRAGMENT_TITLES = {
    "kpi_set": "Success Metrics",
    "risk_mitigation": "Risks & Mitigations",
    "interface_pattern": "Interface Patterns",
    "guideline": "Guidelines",
    "decision_matrix": "Decision Matrix",
    "ux_states": "UX States",
    "onboarding_flow": "Onboarding Flow",
    "ordered_steps": "Steps",
    "template_skeleton": "Outline",
}

CHECKLIST_TYPES = frozenset({"acceptance_criteria"})

_LIST_KEYS = ("items", "criteria", "kpis", "risks", "patterns", "options", "steps", "states")


@dataclass(frozen=True)
class RenderedFragment:
    """Markdown produced from one fragment."""

    fragment: ContentFragment
    body: str = ""
    checklist: tuple[str, ...] = ()

    @property
    def canonical_hint(self) -> Optional[str]:
        return FRAGMENT_CANONICAL_HINTS.get(self.fragment.type)

    @property
    def title(self) -> str:
        return FRAGMENT_TITLES.get(self.fragment.type) or _label(self.fragment.type)


def _label(key: str) -> str:
    return " ".join(part.capitalize() for part in str(key).replace("-", "_").split("_") if part)


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(_text(v) for v in value if _text(v))
    if isinstance(value, dict):
        return "; ".join(f"{_label(k)}: {_text(v)}" for k, v in value.items() if _text(v))
    return str(value).strip()


def _items(content: Any) -> list:
    """Unwrap the list a payload carries, whether bare or under a container key."""
    if isinstance(content, list):
        return content
    if isinstance(content, dict):
        for key in _LIST_KEYS:
            value = content.get(key)
            if isinstance(value, list):
                return value
        return [content]
    if content is None or content == "":
        return []
    return [content]


def _bullets(values: list) -> str:
    return "\n".join(f"- {_text(v)}" for v in values if _text(v))


def acceptance_criteria_items(content: Any) -> tuple[str, ...]:
    items = [_text(v) for v in _items(content)]
    return tuple(item for item in items if item)


def render_kpi_set(content: Any) -> str:
    lines = []
    for item in _items(content):
        if isinstance(item, dict):
            name = _text(item.get("name") or item.get("metric") or item.get("kpi"))
            target = _text(item.get("target"))
            detail = _text(item.get("description") or item.get("why"))
            line = f"- **{name}:** {target}" if target else f"- **{name}**"
            if detail:
                line += f" ({detail})"
            lines.append(line)
        elif _text(item):
            lines.append(f"- {_text(item)}")
    return "\n".join(lines)


def render_risk_mitigation(content: Any) -> str:
    blocks = []
    for item in _items(content):
        if not isinstance(item, dict):
            if _text(item):
                blocks.append(f"**Risk:** {_text(item)}")
            continue
        lines = [f"**Risk:** {_text(item.get('risk') or item.get('name'))}"]
        for key in ("impact", "likelihood", "owner"):
            if _text(item.get(key)):
                lines.append(f"**{_label(key)}:** {_text(item.get(key))}")
        mitigations = item.get("mitigations") or item.get("mitigation")
        if isinstance(mitigations, str):
            mitigations = [mitigations]
        if mitigations:
            lines.append("**Mitigations**")
            lines.append(_bullets(list(mitigations)))
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def render_interface_pattern(content: Any) -> str:
    blocks = []
    for item in _items(content):
        if not isinstance(item, dict):
            if _text(item):
                blocks.append(f"- {_text(item)}")
            continue
        lines = []
        name = _text(item.get("name") or item.get("pattern"))
        if name:
            lines.append(f"**Pattern:** {name}")
        if _text(item.get("description")):
            lines.append(_text(item.get("description")))
        operations = item.get("endpoints") or item.get("operations")
        if operations:
            lines.append("**Operations**")
            lines.append(_bullets(list(operations) if isinstance(operations, (list, tuple)) else [operations]))
        for key in ("request", "response", "errors", "auth"):
            if key in item and _text(item[key]) and not isinstance(item[key], dict):
                lines.append(f"**{_label(key)}:** {_text(item[key])}")
        schema = item.get("schema")
        if isinstance(schema, (dict, list)):
            lines.append("**Schema:**")
            lines.append("```json\n" + json.dumps(schema, indent=2) + "\n```")
        blocks.append("\n".join(lines))
    return "\n\n".join(block for block in blocks if block)


def render_guideline(content: Any) -> str:
    if isinstance(content, dict):
        blocks = []
        for key, value in content.items():
            if isinstance(value, (list, tuple)):
                blocks.append(f"**{_label(key)}:**\n{_bullets(list(value))}")
            elif _text(value):
                blocks.append(f"**{_label(key)}:** {_text(value)}")
        return "\n\n".join(blocks)
    return _bullets(_items(content))


def render_decision_matrix(content: Any) -> str:
    blocks = []
    for item in _items(content):
        if not isinstance(item, dict):
            if _text(item):
                blocks.append(f"- {_text(item)}")
            continue
        lines = [f"**Option:** {_text(item.get('option') or item.get('name'))}"]
        for key in ("pros", "cons", "when", "choose_when", "cost"):
            if _text(item.get(key)):
                lines.append(f"- {_label(key)}: {_text(item.get(key))}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def render_ordered_steps(content: Any) -> str:
    lines = []
    for index, item in enumerate(_items(content), start=1):
        if isinstance(item, dict):
            title = _text(item.get("title") or item.get("step") or item.get("name"))
            detail = _text(item.get("description") or item.get("detail"))
            lines.append(f"{index}. **{title}**: {detail}" if detail else f"{index}. {title}")
        elif _text(item):
            lines.append(f"{index}. {_text(item)}")
    return "\n".join(lines)


def render_ux_states(content: Any) -> str:
    if isinstance(content, dict) and not any(isinstance(content.get(k), list) for k in _LIST_KEYS):
        return "\n".join(
            f"- **{_label(state)}:** {_text(detail)}" for state, detail in content.items() if _text(detail)
        )
    lines = []
    for item in _items(content):
        if isinstance(item, dict):
            lines.append(f"- **{_label(_text(item.get('state') or item.get('name')))}:** "
                         f"{_text(item.get('description') or item.get('behavior'))}")
        elif _text(item):
            lines.append(f"- {_text(item)}")
    return "\n".join(lines)


def render_template_skeleton(content: Any) -> str:
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, dict):
        sections = content.get("sections") or content.get("headings")
        if isinstance(sections, list):
            return _bullets(sections)
    return render_generic(content)


def render_generic(content: Any) -> str:
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, dict):
        return render_guideline(content)
    if isinstance(content, (list, tuple)):
        return _bullets(list(content))
    return _text(content)


_RENDERERS: dict[str, Callable[[Any], str]] = {
    "kpi_set": render_kpi_set,
    "risk_mitigation": render_risk_mitigation,
    "interface_pattern": render_interface_pattern,
    "guideline": render_guideline,
    "decision_matrix": render_decision_matrix,
    "onboarding_flow": render_ordered_steps,
    "ordered_steps": render_ordered_steps,
    "ux_states": render_ux_states,
    "template_skeleton": render_template_skeleton,
}


def render_fragment(fragment: ContentFragment) -> RenderedFragment:
    """Dispatch a fragment to the renderer for its type."""
    if fragment.type in CHECKLIST_TYPES:
        return RenderedFragment(fragment=fragment, checklist=acceptance_criteria_items(fragment.content))

    renderer = _RENDERERS.get(fragment.type, render_generic)
    try:
        body = renderer(fragment.content)
    except (TypeError, ValueError, AttributeError) as e:
        logger.warning(f"Fragment {fragment.id} ({fragment.type}) could not be rendered: {e}")
        body = ""
    return RenderedFragment(fragment=fragment, body=body.strip())
