"""
Unit tests for DraftRecord assembly.

Run: pytest tests/unit/test_draft_builder.py -v
"""

from decimal import Decimal

from models.draft import DraftStatus
from models.image_mapping import ImageRowMapping, MappingMethod
from parsers.carry_forward import reconstruct_rows
from parsers.draft_builder import build_draft, build_drafts

HEADER = ["Name", "Brand", "Price CRC", "Price USD", "Image URL"]


def only_candidate(row):
    return reconstruct_rows([HEADER, row])[0]


class TestBuildDraft:

    def test_secondary_price_wins_over_primary(self):
        candidate = only_candidate(["Milk 1L", "Dos Pinos", "₡1,000", "$9.99", None])
        record = build_draft(candidate, None, 500)
        assert record.price == Decimal("2.00")
        assert record.status == DraftStatus.PENDING
        assert record.errors == []

    def test_primary_price_used_when_secondary_empty(self):
        record = build_draft(only_candidate(["Milk 1L", "Dos Pinos", None, "$1.75"]), None, 500)
        assert record.price == Decimal("1.75")

    def test_fields_are_derived(self):
        record = build_draft(only_candidate(["Rice 25 lbs", "Tio Pelon", None, "$20"]), None, 500)
        assert record.row_index == 2
        assert record.name == "Rice 25 lbs"
        assert record.description == "Tio Pelon"
        assert record.unit == "25lb"
        assert record.original_data[:4] == ["Rice 25 lbs", "Tio Pelon", None, "$20"]

    def test_unparseable_price_is_error_with_zero_sentinel(self):
        record = build_draft(only_candidate(["Milk 1L", "Dos Pinos", None, "$abc"]), None, 500)
        assert record.status == DraftStatus.ERROR
        assert record.price == Decimal("0")
        assert record.errors == ["Invalid price format: '$abc'"]

    def test_missing_price_is_error(self):
        record = build_draft(only_candidate(["Yogurt 150g", None, None, None]), None, 500)
        assert record.status == DraftStatus.ERROR
        assert record.errors == ["Price is required"]

    def test_missing_name_is_error(self):
        record = build_draft(only_candidate([None, "Generic", None, "$1.00"]), None, 500)
        assert record.status == DraftStatus.ERROR
        assert "Name is required" in record.errors

    def test_embedded_image_beats_column_e(self):
        candidate = only_candidate(["Milk 1L", "Dos Pinos", None, "$1.50", "https://x.test/url.jpg"])
        image = ImageRowMapping(
            excel_row=2,
            image_url="https://storage.test/embedded.png",
            file_name="image1.png",
            mapping_method=MappingMethod.DRAWING_XML,
        )
        record = build_draft(candidate, image, 500)
        assert record.image_url == "https://storage.test/embedded.png"
        assert record.has_embedded_image is True

    def test_column_e_used_without_embedded_image(self):
        candidate = only_candidate(["Milk 1L", "Dos Pinos", None, "$1.50", "https://x.test/url.jpg"])
        record = build_draft(candidate, None, 500)
        assert record.image_url == "https://x.test/url.jpg"
        assert record.has_embedded_image is False

    def test_category_hint_copied(self):
        candidates = reconstruct_rows([HEADER, ["Dairy"], ["Milk 1L", "Dos Pinos", None, "$1.50"]])
        records = build_drafts(candidates, [None], 500)
        assert records[0].category_hint == "Dairy"
        assert records[0].category_id is None
