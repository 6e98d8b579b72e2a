"""
AI enrichment of draft records.

Sends the open drafts and the category list to Claude and applies the
returned suggestions (name, description, category, unit). Records that
receive a suggestion move to 'suggested' and must be validated again
before they can be published.
"""

import json
import re
from typing import Any, Optional
import structlog

import anthropic

from config import settings
from models.draft import DraftRecord, DraftStatus
from models.product import CategoryResponse
from services.category_service import CategoryService
from services.validation_service import transition
from exceptions import EnrichmentError

logger = structlog.get_logger(__name__)

ENRICHABLE_STATUSES = frozenset({DraftStatus.PENDING, DraftStatus.ERROR})
SUGGESTION_FIELDS = ("name", "description", "category_id", "unit")


class EnrichmentService:
    """
    Suggest cleaner product data with Claude.

    Raises EnrichmentError when no API key is configured or the model
    response cannot be used.
    """

    SYSTEM_PROMPT = """You clean up product rows imported from supplier price lists for a grocery catalog.

IMPORTANT: Return ONLY valid JSON, no markdown, no explanation, no code blocks.

Input: a list of products (row_index, name, description, unit, category_hint) and the catalog categories (id, name).

For each product you can improve, return:
{
  "suggestions": [
    {
      "row_index": 3,
      "name": "Leche Dos Pinos 1L",
      "description": "Dos Pinos",
      "category_id": "<one of the given category ids>",
      "unit": "1l"
    }
  ]
}

Rules:
- Only use category ids from the given list
- Keep names in their original language; fix casing and obvious typos only
- Units are lowercase: "500g", "1l", "2 pack" or "each"
- Omit products you cannot improve"""

    def __init__(self, client: Optional[Any] = None):
        self.categories = CategoryService()
        if client is not None:
            self.client = client
        elif settings.enrichment_configured:
            self.client = anthropic.Anthropic(api_key=settings.anthropic_api_key)
        else:
            self.client = None

    def enrich(self, records: list[DraftRecord]) -> int:
        """
        Ask for suggestions on pending/error records and apply them.

        Returns:
            Number of records moved to 'suggested'

        Raises:
            EnrichmentError: If unavailable or the API call fails
        """
        if self.client is None:
            raise EnrichmentError("Enrichment not available. Set ANTHROPIC_API_KEY.")

        candidates = [r for r in records if r.status in ENRICHABLE_STATUSES]
        if not candidates:
            return 0

        categories = self.categories.list_active()
        logger.info("enrichment_started", records=len(candidates))

        try:
            response = self.client.messages.create(
                model=settings.enrichment_model,
                max_tokens=settings.enrichment_max_tokens,
                system=self.SYSTEM_PROMPT,
                messages=[{
                    "role": "user",
                    "content": self._build_prompt(candidates, categories),
                }]
            )
            response_text = response.content[0].text
        except anthropic.APIError as e:
            logger.error("enrichment_api_error", error=str(e))
            raise EnrichmentError(f"Claude API error: {e}")

        suggestions = self._parse_response(response_text)
        applied = self.apply_suggestions(candidates, suggestions, categories)

        logger.info("enrichment_completed", suggestions=len(suggestions), applied=applied)
        return applied

    def apply_suggestions(
        self,
        records: list[DraftRecord],
        suggestions: list[dict],
        categories: list[CategoryResponse],
    ) -> int:
        """Apply suggestions by row_index; unknown rows and category ids are ignored."""
        by_row = {r.row_index: r for r in records if r.status in ENRICHABLE_STATUSES}
        category_ids = {c.id for c in categories}
        applied = 0

        for suggestion in suggestions:
            record = by_row.get(suggestion.get("row_index"))
            if record is None:
                continue

            changed = False
            for field in SUGGESTION_FIELDS:
                value = suggestion.get(field)
                if not isinstance(value, str) or not value.strip():
                    continue
                if field == "category_id" and value not in category_ids:
                    continue
                setattr(record, field, value.strip())
                changed = True

            if changed:
                transition(record, DraftStatus.SUGGESTED)
                applied += 1

        return applied

    @staticmethod
    def _build_prompt(records: list[DraftRecord], categories: list[CategoryResponse]) -> str:
        payload = {
            "products": [
                {
                    "row_index": r.row_index,
                    "name": r.name,
                    "description": r.description,
                    "unit": r.unit,
                    "category_hint": r.category_hint,
                }
                for r in records
            ],
            "categories": [{"id": c.id, "name": c.name} for c in categories],
        }
        return json.dumps(payload, ensure_ascii=False)

    @staticmethod
    def _parse_response(response_text: str) -> list[dict]:
        """Extract the suggestions list from Claude's JSON reply."""
        cleaned = response_text.strip()
        if cleaned.startswith("```"):
            cleaned = re.sub(r'^```(?:json)?\s*', '', cleaned)
            cleaned = re.sub(r'\s*```$', '', cleaned)

        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as e:
            logger.error("enrichment_json_parse_failed", response_preview=response_text[:500], error=str(e))
            raise EnrichmentError("Enrichment response was not valid JSON")

        suggestions = data.get("suggestions", []) if isinstance(data, dict) else data
        if not isinstance(suggestions, list):
            raise EnrichmentError("Enrichment response has no suggestions list")
        return [s for s in suggestions if isinstance(s, dict)]


_enrichment_service: Optional[EnrichmentService] = None

def get_enrichment_service() -> EnrichmentService:
    """Get or create EnrichmentService instance."""
    global _enrichment_service
    if _enrichment_service is None:
        _enrichment_service = EnrichmentService()
    return _enrichment_service
