# cardsmith/drafting/client.py
"""Generative Drafting Client - turn aggregated drafts into polished sections.

Flow:
1. Build the deterministic draft first (it is needed on every failure path
   and to fill holes in generated output)
2. Ask the configured provider for a JSON object of sections, bounded by
   the generation timeout
3. Parse, validate and map the returned sections onto the requested titles
4. On any failure return the deterministic draft with success=False
"""

import logging
import os
from typing import Iterable, Optional

import anthropic
import openai

from cardsmith.compose.text import truncate
from cardsmith.config import ComposerConfig
from cardsmith.drafting.parsing import parse_json_object
from cardsmith.drafting.prompts import load_prompt
from cardsmith.drafting.providers import (
    AnthropicProvider,
    LLMProvider,
    OpenAIProvider,
    ProviderNotConfiguredError,
)
from cardsmith.drafting.scaffold import synthesize_sections
from cardsmith.models import DraftResult, NodeContext, ReferenceDocument, RenderedSection, SectionSpec

logger = logging.getLogger(__name__)

_TIMEOUT_ERRORS = (TimeoutError, openai.APITimeoutError, anthropic.APITimeoutError)

# Fallback reasons
REASON_NOT_CONFIGURED = "generation service not configured"
REASON_TIMEOUT = "generation timed out"
REASON_PROVIDER_ERROR = "generation request failed"
REASON_UNPARSEABLE = "response was not a JSON object"
REASON_NO_SECTIONS = "response has no sections array"
REASON_EMPTY = "all generated sections were empty"


def select_provider(config: ComposerConfig) -> Optional[LLMProvider]:
    """
    Choose a provider from configuration.

    ``auto`` prefers OpenAI, then Anthropic, by which API key is set.

    Raises:
        ProviderNotConfiguredError: If an explicitly named provider has no key
    """
    choice = (config.provider or "auto").lower()
    if choice == "none":
        return None
    if choice == "openai" or (choice == "auto" and os.environ.get("OPENAI_API_KEY")):
        return OpenAIProvider(
            model=config.openai_model,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )
    if choice == "anthropic" or (choice == "auto" and os.environ.get("ANTHROPIC_API_KEY")):
        return AnthropicProvider(
            model=config.anthropic_model,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )
    if choice != "auto":
        raise ProviderNotConfiguredError(f"Unknown provider: {config.provider}")
    return None


def _bullets(lines: Iterable[str], empty: str = "(none)") -> str:
    lines = [line for line in lines if line]
    return "\n".join(lines) if lines else empty


class DraftingClient:
    """
    Drafts card sections with a generative provider and a deterministic fallback.

    The provider is resolved lazily so a client can be built without
    credentials; in that case every draft is the deterministic one.
    """

    def __init__(self, config: Optional[ComposerConfig] = None, provider: Optional[LLMProvider] = None):
        self.config = config or ComposerConfig()
        self._provider = provider
        self._provider_initialized = provider is not None

    def _get_provider(self) -> Optional[LLMProvider]:
        """Get or initialize the provider; None when none is configured."""
        if not self._provider_initialized:
            try:
                self._provider = select_provider(self.config)
            except ProviderNotConfiguredError as e:
                logger.warning(f"Drafting provider unavailable: {e}")
                self._provider = None
            self._provider_initialized = True
        return self._provider

    # ─────────────────────────────────────────────────────────────
    # Prompt
    # ─────────────────────────────────────────────────────────────

    def build_user_message(
        self,
        node: NodeContext,
        card_sections: list[SectionSpec],
        checklist: Iterable[str],
        reference_context: list[ReferenceDocument],
        existing_sections: dict,
        card_title: Optional[str] = None,
    ) -> str:
        node_lines = [f"Label: {node.label}", f"Type: {node.type}"]
        if node.domain:
            node_lines.append(f"Domain: {node.domain}")
        if node.tags:
            node_lines.append(f"Tags: {', '.join(node.tags)}")
        if node.summary:
            node_lines.append(f"Summary: {node.summary}")
        if node.intent is not None:
            for field_name, value in node.intent.to_dict().items():
                if value:
                    node_lines.append(f"Intent {field_name.replace('_', ' ')}: {value}")

        related = []
        for r in node.related_nodes:
            line = f"- {r.label} ({r.type})"
            if r.relation:
                line += f" [{r.relation}]"
            if r.summary:
                line += f": {r.summary}"
            related.append(line)

        sections = [
            f"- {s.title}: {s.description}" if s.description else f"- {s.title}"
            for s in card_sections
        ]

        drafts = [
            f"### {title}\n{body}" for title, body in existing_sections.items() if body and body.strip()
        ]

        references = []
        for document in reference_context:
            for section in document.sections:
                if section.content.strip():
                    excerpt = truncate(section.content, self.config.excerpt_chars)
                    references.append(f"- {document.name} / {section.title}: {excerpt}")

        return load_prompt("card_user").format(
            card_title=card_title or "documentation",
            node_block="\n".join(node_lines),
            related_block=_bullets(related),
            sections_block=_bullets(sections),
            drafts_block="\n\n".join(drafts) if drafts else "(none)",
            references_block=_bullets(references),
            checklist_block=_bullets(f"- {item}" for item in checklist),
        )

    # ─────────────────────────────────────────────────────────────
    # Draft
    # ─────────────────────────────────────────────────────────────

    def _fallback(
        self,
        node: NodeContext,
        deterministic: list[RenderedSection],
        checklist: tuple[str, ...],
        reason: str,
        raw_output: Optional[str] = None,
        token_usage: Optional[dict] = None,
    ) -> DraftResult:
        logger.warning(f"Using deterministic draft for {node.id}: {reason}")
        return DraftResult(
            success=False,
            sections=tuple(deterministic),
            checklist=checklist,
            used_fallback=True,
            token_usage=token_usage,
            raw_output=raw_output,
            fallback_reason=reason,
        )

    def draft(
        self,
        node: NodeContext,
        card_sections: Iterable[SectionSpec],
        checklist: Iterable[str] = (),
        reference_context: Iterable[ReferenceDocument] = (),
        existing_sections: Optional[dict] = None,
        card_title: Optional[str] = None,
    ) -> DraftResult:
        """
        Draft every requested section.

        Args:
            node: Node the card belongs to
            card_sections: Section slots, in output order
            checklist: Items the content should satisfy
            reference_context: Reference documents used for excerpts and fallback matching
            existing_sections: Title -> body drafted so far
            card_title: Card label for the prompt

        Returns:
            DraftResult; never raises for provider or parsing failures
        """
        card_sections = list(card_sections)
        checklist = tuple(checklist)
        reference_context = list(reference_context)
        existing_sections = dict(existing_sections or {})

        deterministic = synthesize_sections(node, card_sections, reference_context, existing_sections)

        provider = self._get_provider()
        if provider is None:
            return self._fallback(node, deterministic, checklist, REASON_NOT_CONFIGURED)

        system = load_prompt("card_system")
        user = self.build_user_message(
            node, card_sections, checklist, reference_context, existing_sections, card_title
        )

        try:
            completion = provider.complete(system, user, timeout=self.config.generation_timeout)
        except _TIMEOUT_ERRORS as e:
            logger.error(f"{provider.name} timed out after {self.config.generation_timeout}s: {e}")
            return self._fallback(node, deterministic, checklist, REASON_TIMEOUT)
        except Exception as e:
            logger.error(f"{provider.name} drafting failed: {e}")
            return self._fallback(node, deterministic, checklist, f"{REASON_PROVIDER_ERROR}: {type(e).__name__}")

        data = parse_json_object(completion.text)
        if data is None:
            return self._fallback(
                node, deterministic, checklist, REASON_UNPARSEABLE, completion.text, completion.usage
            )

        raw_sections = data.get("sections")
        if not isinstance(raw_sections, list):
            return self._fallback(
                node, deterministic, checklist, REASON_NO_SECTIONS, completion.text, completion.usage
            )

        generated: dict[str, str] = {}
        for entry in raw_sections:
            if not isinstance(entry, dict):
                continue
            title = entry.get("title")
            body = entry.get("body")
            if isinstance(title, str) and isinstance(body, str) and body.strip():
                generated.setdefault(title.lower().strip(), body.strip())

        if not any(generated.values()):
            return self._fallback(
                node, deterministic, checklist, REASON_EMPTY, completion.text, completion.usage
            )

        sections = []
        warnings = []
        for spec, fallback_section in zip(card_sections, deterministic):
            body = generated.get(spec.title.lower().strip())
            if not body:
                warnings.append(f"Section '{spec.title}' was missing from generated output; used deterministic draft")
                body = fallback_section.body
            sections.append(RenderedSection(title=spec.title, body=body, description=spec.description))

        logger.info(f"{provider.name} drafted {len(sections)} sections for {node.id}")

        return DraftResult(
            success=True,
            sections=tuple(sections),
            checklist=checklist,
            used_fallback=False,
            warnings=tuple(warnings),
            token_usage=completion.usage,
            raw_output=completion.text,
        )
