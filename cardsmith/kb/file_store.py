# cardsmith/kb/file_store.py
"""File-backed knowledge base.

Layout under the root directory:

    catalog.json                  {"kb_version": ..., "items": [...]}
    <item.path>                   one JSON reference document per catalogue item
    fragments/<category>/*.json   typed content fragments

Catalogue items carry the match metadata (node_types, domains, tags and the
optional stack_keywords / risk_profile / kpi_examples lists); the document file
carries the sections.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from cardsmith.embeddings import EmbeddingError, EmbeddingService
from cardsmith.kb.base import KBFilters, RetrievalClient, clamp_limit
from cardsmith.models import ContentFragment, ReferenceDocument, RetrievalResult
from cardsmith.similarity import find_top_k

logger = logging.getLogger(__name__)

FRAGMENT_PRIORITY = {
    "decision_matrix": 10,
    "interface_pattern": 9,
    "onboarding_flow": 8,
    "acceptance_criteria": 7,
    "kpi_set": 6,
    "ux_states": 5,
    "risk_mitigation": 4,
}

# Relaxation order when fewer filters match
STAGE_STRICT = "strict"
STAGE_DROP_TAGS = "dropTags"
STAGE_ANY = "any"


class KnowledgeBaseError(Exception):
    """The knowledge base files are missing or unreadable."""
    pass


def _lower_set(values) -> set[str]:
    return {str(v).lower().strip() for v in values or () if str(v).strip()}


def _read_json(path: Path):
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise KnowledgeBaseError(f"Missing knowledge base file: {path}") from e
    except (OSError, json.JSONDecodeError) as e:
        raise KnowledgeBaseError(f"Unreadable knowledge base file {path}: {e}") from e


def score_item(item: dict, filters: KBFilters) -> int:
    """Node type +2, domain +2, tag +1 (case-insensitive overlap)."""
    score = 0
    if filters.node_types and _lower_set(item.get("node_types")) & _lower_set(filters.node_types):
        score += 2
    if filters.domains and _lower_set(item.get("domains")) & _lower_set(filters.domains):
        score += 2
    if filters.tags and _lower_set(item.get("tags")) & _lower_set(filters.tags):
        score += 1
    return score


def matches(item: dict, filters: KBFilters, use_tags: bool = True) -> bool:
    """Every given filter dimension must overlap the item's metadata."""
    def ok(field: str, wanted) -> bool:
        return not wanted or bool(_lower_set(item.get(field)) & _lower_set(wanted))

    return (
        ok("node_types", filters.node_types)
        and ok("domains", filters.domains)
        and (not use_tags or ok("tags", filters.tags))
    )


def pick_fragments(fragments: list[dict], filters: KBFilters) -> list[dict]:
    """Fragments scoped to any requested node type or domain, by priority then id."""
    scopes = _lower_set(filters.node_types) | _lower_set(filters.domains)
    seen: set[str] = set()
    selected = []
    for fragment in fragments:
        fragment_id = str(fragment.get("id", ""))
        if not fragment_id or fragment_id in seen:
            continue
        if not _lower_set(fragment.get("for")) & scopes:
            continue
        seen.add(fragment_id)
        selected.append(fragment)
    selected.sort(key=lambda f: (-FRAGMENT_PRIORITY.get(str(f.get("type", "")).lower(), 0), str(f["id"])))
    return selected


class FileKnowledgeBase(RetrievalClient):
    """Retrieval client reading a directory of JSON files."""

    def __init__(self, root: Path, embedder: Optional[EmbeddingService] = None):
        self.root = Path(root)
        self.embedder = embedder

    @property
    def name(self) -> str:
        return "file"

    @property
    def catalog_path(self) -> Path:
        return self.root / "catalog.json"

    @property
    def fragment_root(self) -> Path:
        return self.root / "fragments"

    def load_catalog(self) -> list[dict]:
        data = _read_json(self.catalog_path)
        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise KnowledgeBaseError(f"{self.catalog_path} has no 'items' list")
        return [item for item in items if isinstance(item, dict) and item.get("id")]

    def load_document(self, item: dict) -> ReferenceDocument:
        """Merge a catalogue item with its document file (file wins)."""
        data = _read_json(self.root / item["path"])
        return ReferenceDocument.from_dict({**item, **data})

    def list_fragments(self) -> list[dict]:
        if not self.fragment_root.is_dir():
            return []
        fragments = []
        for category in sorted(p for p in self.fragment_root.iterdir() if p.is_dir()):
            for path in sorted(category.glob("*.json")):
                data = _read_json(path)
                if isinstance(data, dict):
                    fragments.append(data)
                elif isinstance(data, list):
                    fragments.extend(f for f in data if isinstance(f, dict))
        return fragments

    def _select(self, items: list[dict], filters: KBFilters) -> tuple[list[tuple[dict, int]], str]:
        """Apply staged relaxation: strict, then without tags, then anything."""
        for stage, use_tags in ((STAGE_STRICT, True), (STAGE_DROP_TAGS, False)):
            scored = [
                (item, score_item(item, filters))
                for item in items
                if matches(item, filters, use_tags=use_tags)
            ]
            scored = [(item, score) for item, score in scored if score > 0]
            if scored:
                scored.sort(key=lambda pair: (-pair[1], str(pair[0]["id"])))
                return scored, stage
        return [(item, 0) for item in items], STAGE_ANY

    def _rerank(self, documents: list[ReferenceDocument], query: str) -> Optional[list[tuple[int, float]]]:
        """Semantic order of documents against the query; None when unavailable."""
        if self.embedder is None or not self.embedder.is_available() or len(documents) < 2:
            return None
        try:
            query_vec = self.embedder.embed(query)
            texts = [
                " ".join([doc.name, doc.description, " ".join(doc.tags)]).strip() or doc.id
                for doc in documents
            ]
            matrix = self.embedder.embed_batch(texts)
            return find_top_k(query_vec, matrix, k=len(documents), min_similarity=-1.0)
        except (EmbeddingError, ValueError) as e:
            logger.warning(f"Semantic ranking skipped: {e}")
            return None

    def compose(self, filters: KBFilters) -> RetrievalResult:
        limit = clamp_limit(filters.limit)
        items = self.load_catalog()
        scored, stage = self._select(items, filters)

        documents: list[ReferenceDocument] = []
        candidates: list[dict] = []
        for item, score in scored[:limit]:
            try:
                documents.append(self.load_document(item))
            except KnowledgeBaseError as e:
                logger.warning(f"Skipping catalogue item {item['id']}: {e}")
                continue
            candidates.append({"id": str(item["id"]), "name": item.get("name", ""), "score": score})

        semantic = False
        if filters.query:
            ranking = self._rerank(documents, filters.query)
            if ranking is not None:
                semantic = True
                documents = [documents[i] for i, _ in ranking]
                candidates = [
                    {**candidates[i], "similarity": round(similarity, 4)} for i, similarity in ranking
                ]

        fragments = [ContentFragment.from_dict(f) for f in pick_fragments(self.list_fragments(), filters)]

        logger.debug(
            f"KB compose: stage={stage}, {len(documents)} documents, {len(fragments)} fragments"
        )

        return RetrievalResult(
            prds=tuple(documents),
            fragments=tuple(fragments),
            match_stage=stage,
            provenance={
                "catalog": str(self.catalog_path),
                "fragment_root": str(self.fragment_root),
                "match_stage": stage,
                "semantic": semantic,
                "input": filters.to_dict(),
            },
            candidates=tuple(candidates),
        )

    def validate(self) -> dict:
        """Check that every catalogue item and fragment file is loadable."""
        problems: list[str] = []
        try:
            items = self.load_catalog()
        except KnowledgeBaseError as e:
            return {"ok": False, "documents": 0, "fragments": 0, "problems": [str(e)]}

        documents = 0
        for item in items:
            if not item.get("path"):
                problems.append(f"Catalogue item {item['id']} has no path")
                continue
            try:
                document = self.load_document(item)
            except KnowledgeBaseError as e:
                problems.append(str(e))
                continue
            if not document.sections:
                problems.append(f"Document {item['id']} has no sections")
            documents += 1

        try:
            fragments = self.list_fragments()
        except KnowledgeBaseError as e:
            problems.append(str(e))
            fragments = []
        for fragment in fragments:
            if not fragment.get("id") or not fragment.get("type"):
                problems.append(f"Fragment missing id or type: {json.dumps(fragment)[:80]}")

        return {
            "ok": not problems,
            "documents": documents,
            "fragments": len(fragments),
            "problems": problems,
        }
