"""Card template catalogue."""

from cardsmith.templates.catalog import (
    CARD_TEMPLATES,
    generate_card_drafts,
    get_card_template,
    list_card_templates,
    recommend_cards,
)

__all__ = [
    "CARD_TEMPLATES",
    "generate_card_drafts",
    "get_card_template",
    "list_card_templates",
    "recommend_cards",
]
