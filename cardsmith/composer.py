"""
Card Composer - the compose pipeline.

Flow:
1. Resolve the card template and the effective section slots
2. Retrieve reference documents and fragments (bounded by a timeout)
3. Resolve the template's linked reference document from the store
4. Aggregate everything into per-section markdown and a checklist
5. Draft polished sections, falling back to the deterministic draft
6. Score the result and return it with provenance

Nothing here raises for missing or failing collaborators; the worst case is
scaffolded content with a low accuracy score.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional

from cardsmith.accuracy import evaluate_accuracy
from cardsmith.compose.aggregator import BLEND_SEPARATOR, SectionAggregator
from cardsmith.config import ComposerConfig
from cardsmith.drafting.client import DraftingClient
from cardsmith.kb.base import KBFilters, RetrievalClient
from cardsmith.kb.reference_store import DatabaseError, ReferenceStore
from cardsmith.models import (
    CardRequest,
    CardTemplate,
    ComposeResult,
    NodeContext,
    Provenance,
    ReferenceDocument,
    RenderedSection,
    RetrievalResult,
    SectionSpec,
)
from cardsmith.templates.catalog import get_card_template
from cardsmith.utils.logging import ComposeLogger

logger = logging.getLogger(__name__)

STAGE_UNAVAILABLE = "unavailable"
STAGE_DISABLED = "disabled"


def effective_sections(card: CardRequest, template: Optional[CardTemplate]) -> list[SectionSpec]:
    """The card's own sections, else the template's, else one section named after the card."""
    if card.sections:
        return list(card.sections)
    if template is not None and template.sections:
        return list(template.sections)
    title = card.title or (template.label if template else "") or "Overview"
    return [SectionSpec(title=title, description=template.description if template else None)]


def preserve_author_drafts(sections, author_drafts: dict) -> tuple[RenderedSection, ...]:
    """Put an author's existing body back in front of generated text that dropped it."""
    preserved = []
    for section in sections:
        existing = author_drafts.get(section.title)
        body = section.body
        if existing and existing not in body:
            body = f"{existing}{BLEND_SEPARATOR}{body}" if body.strip() else existing
        preserved.append(RenderedSection(title=section.title, body=body, description=section.description))
    return tuple(preserved)


class CardComposer:
    """
    Composes card content for a node.

    Collaborators are optional: without a retrieval client the card is
    composed from the node alone, and without a reference store no template
    document is linked.
    """

    def __init__(
        self,
        config: Optional[ComposerConfig] = None,
        retrieval: Optional[RetrievalClient] = None,
        drafting: Optional[DraftingClient] = None,
        reference_store: Optional[ReferenceStore] = None,
    ):
        self.config = config or ComposerConfig()
        self.retrieval = retrieval
        self.drafting = drafting or DraftingClient(self.config)
        self.reference_store = reference_store
        self.events = ComposeLogger()
        self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="cardsmith-retrieval")

    @classmethod
    def from_config(cls, config: Optional[ComposerConfig] = None) -> "CardComposer":
        """Wire the file knowledge base and reference store named in configuration."""
        from cardsmith.embeddings import EmbeddingService
        from cardsmith.kb.file_store import FileKnowledgeBase

        config = config or ComposerConfig.from_env()
        retrieval = None
        if config.kb_root is not None:
            retrieval = FileKnowledgeBase(config.kb_root, embedder=EmbeddingService.from_config(config))
        store = ReferenceStore(config.db_path) if config.db_path is not None else None
        return cls(config=config, retrieval=retrieval, reference_store=store)

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _retrieve(self, node: NodeContext) -> RetrievalResult:
        """Run retrieval in a worker thread; empty result on timeout or error."""
        if self.retrieval is None:
            return RetrievalResult.empty(STAGE_DISABLED)

        filters = KBFilters.for_node(node, limit=self.config.kb_limit)
        future = self._executor.submit(self.retrieval.compose, filters)
        try:
            return future.result(timeout=self.config.retrieval_timeout)
        except FutureTimeoutError:
            future.cancel()
            logger.warning(
                f"Retrieval from {self.retrieval.name} timed out after {self.config.retrieval_timeout}s"
            )
            self.events.error(node.id, "RetrievalTimeout", "retrieval timed out")
        except Exception as e:
            logger.error(f"Retrieval from {self.retrieval.name} failed: {e}")
            self.events.error(node.id, type(e).__name__, str(e))
        return RetrievalResult.empty(STAGE_UNAVAILABLE)

    def _linked_reference(self, template: Optional[CardTemplate]) -> Optional[ReferenceDocument]:
        if self.reference_store is None or template is None:
            return None
        try:
            return self.reference_store.resolve_first(template.suggested_reference_documents)
        except DatabaseError as e:
            logger.warning(f"Reference store unavailable: {e}")
            return None

    def compose(self, node: NodeContext, card: CardRequest) -> ComposeResult:
        """
        Compose content for one card.

        Args:
            node: Node the card is attached to
            card: Card as currently held by the editor

        Returns:
            ComposeResult with sections, checklist, accuracy and provenance
        """
        started = time.perf_counter()
        template = get_card_template(card.template_id)
        sections = effective_sections(card, template)
        self.events.compose_started(node.id, card.template_id, len(sections))

        retrieval = self._retrieve(node)
        self.events.retrieval_complete(
            node.id, retrieval.match_stage, len(retrieval.prds), len(retrieval.fragments)
        )

        linked = self._linked_reference(template)
        documents = list(retrieval.prds)
        if linked is not None:
            documents = [linked] + [doc for doc in documents if doc.id != linked.id]
        top_documents = documents[: self.config.top_reference_documents]

        aggregator = SectionAggregator(
            node, template_id=card.template_id, top_documents=self.config.top_reference_documents
        )
        outcome = aggregator.aggregate(
            sections,
            RetrievalResult(
                prds=tuple(documents),
                fragments=retrieval.fragments,
                match_stage=retrieval.match_stage,
                provenance=retrieval.provenance,
                candidates=retrieval.candidates,
            ),
            template_checklist=template.default_checklist if template else (),
            drafted_checklist=card.checklist,
        )

        draft = self.drafting.draft(
            node,
            [SectionSpec(title=s.title, description=s.description) for s in outcome.sections],
            checklist=outcome.checklist,
            reference_context=top_documents,
            existing_sections={s.title: s.body for s in outcome.sections if s.body},
            card_title=card.title or (template.label if template else None),
        )
        if draft.used_fallback:
            self.events.generation_fallback(node.id, draft.fallback_reason or "unknown")

        final_sections = draft.sections
        if draft.success:
            final_sections = preserve_author_drafts(draft.sections, outcome.author_drafts)

        accuracy = evaluate_accuracy(
            node,
            draft,
            template=template,
            linked_reference_document=linked.id if linked else None,
            coverage=outcome.coverage,
        )

        provenance = Provenance(
            match_stage=retrieval.match_stage,
            kb_prds=outcome.kb_prds,
            fragments=outcome.fragments,
            coverage=outcome.coverage,
            candidates=retrieval.candidates,
            linked_reference_document=linked.id if linked else None,
        )

        self.events.compose_complete(
            node.id, accuracy.score, accuracy.status.value, time.perf_counter() - started
        )

        return ComposeResult(
            sections=final_sections,
            checklist=outcome.checklist,
            used_fallback=draft.used_fallback,
            warnings=draft.warnings,
            accuracy=accuracy,
            provenance=provenance,
            template=template,
        )


def compose_card_content(node: dict, card: dict, composer: Optional[CardComposer] = None) -> dict:
    """Compose from plain payload dicts and return a plain dict."""
    if composer is not None:
        return composer.compose(NodeContext.from_dict(node), CardRequest.from_dict(card)).to_dict()

    owned = CardComposer.from_config()
    try:
        return owned.compose(NodeContext.from_dict(node), CardRequest.from_dict(card)).to_dict()
    finally:
        owned.close()
