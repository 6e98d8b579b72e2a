"""
End-to-end tests for the upload pipeline and session actions.

A small supplier sheet goes through upload -> validate -> correct ->
publish against the mock database and storage bucket.

Run: pytest tests/unit/test_import_session_service.py -v
"""

from decimal import Decimal

import pytest

from models.draft import DraftRecordUpdate, DraftStatus
from models.duplicate import SkipResolution
from models.image_mapping import MappingMethod
from services.import_session_service import (
    ImportSessionService,
    compute_file_hash,
    parse_exchange_rate,
)
from exceptions import (
    DatabaseError,
    DraftRecordNotFoundError,
    DuplicateUploadError,
    ImportSessionNotFoundError,
    InvalidExchangeRateError,
    InvalidStatusTransitionError,
    WorkbookReadError,
)

from tests.factories import ProductFactory, build_archive_with_images, build_workbook

SHEET = [
    ["Dairy"],                                               # row 2
    ["Milk 1L", "Dos Pinos", "₡1,000", None],                # row 3
    ["Cheese 500g", "Monteverde", None, "$4.50"],            # row 4
    ["Yogurt 150g", "Yoplait", None, None],                  # row 5
]


@pytest.fixture
def workbook() -> bytes:
    return build_workbook(SHEET)


@pytest.fixture
def service(seeded_db) -> ImportSessionService:
    return ImportSessionService()


def _statuses(session):
    return {r.row_index: r.status for r in session.records}


class TestHelpers:

    def test_file_hash_is_sha256(self):
        assert compute_file_hash(b"abc") == (
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )

    def test_default_exchange_rate(self):
        assert parse_exchange_rate(None) == Decimal("500")

    @pytest.mark.parametrize("value", [0, -1, "abc", "nan"])
    def test_invalid_exchange_rate(self, value):
        with pytest.raises(InvalidExchangeRateError):
            parse_exchange_rate(value)


class TestUpload:

    def test_upload_builds_drafts(self, service, workbook, seeded_db):
        session = service.start_upload(workbook, "supplier.xlsx", exchange_rate=500)

        assert [r.row_index for r in session.records] == [3, 4, 5]
        milk, cheese, yogurt = session.records
        assert milk.price == Decimal("2.00")
        assert milk.category_hint == "Dairy"
        assert milk.unit == "1l"
        assert cheese.price == Decimal("4.50")
        assert yogurt.status == DraftStatus.ERROR
        assert yogurt.errors == ["Price is required"]

        jobs = seeded_db.get_table_data("import_jobs")
        assert len(jobs) == 1
        assert jobs[0]["stats_valid_rows"] == 2
        assert jobs[0]["stats_error_rows"] == 1
        assert len(seeded_db.get_table_data("import_items")) == 3

    def test_same_file_is_rejected_unless_forced(self, service, workbook, seeded_db):
        first = service.start_upload(workbook, "supplier.xlsx")

        with pytest.raises(DuplicateUploadError) as exc_info:
            service.start_upload(workbook, "renamed.xlsx")
        assert exc_info.value.details["existing_job_id"] == first.job_id

        service.start_upload(workbook, "renamed.xlsx", force=True)
        assert len(seeded_db.get_table_data("import_jobs")) == 2

    def test_same_filename_is_rejected(self, service, workbook):
        service.start_upload(workbook, "supplier.xlsx")
        other = build_workbook([["Bread", "Bimbo", None, "$2.00"]])
        with pytest.raises(DuplicateUploadError):
            service.start_upload(other, "supplier.xlsx")

    def test_invalid_rate_rejected_before_processing(self, service, workbook, seeded_db):
        with pytest.raises(InvalidExchangeRateError):
            service.start_upload(workbook, "supplier.xlsx", exchange_rate=0)
        assert seeded_db.get_table_data("import_jobs") == []

    def test_unreadable_file(self, service):
        with pytest.raises(WorkbookReadError):
            service.start_upload(b"definitely not excel", "notes.xlsx")

    def test_failed_item_write_does_not_block_reupload(self, service, workbook, seeded_db):
        seeded_db.set_error("import_items", "insert", "items insert refused")
        with pytest.raises(DatabaseError):
            service.start_upload(workbook, "supplier.xlsx")
        assert seeded_db.get_table_data("import_jobs") == []

        seeded_db.clear_error("import_items", "insert")
        session = service.start_upload(workbook, "supplier.xlsx")
        assert len(session.records) == 3
        assert len(seeded_db.get_table_data("import_items")) == 3

    def test_embedded_image_uploaded_and_bound(self, service, workbook, product_bucket):
        data = build_archive_with_images(["image1.png"], anchors={"image1.png": 3}, base=workbook)
        session = service.start_upload(data, "with-images.xlsx")

        milk = session.records[0]
        assert milk.has_embedded_image is True
        assert milk.image_url.startswith("https://storage.test/product-images/bulk-upload/")
        assert session.records[1].image_url is None
        assert session.images.mapping_method == MappingMethod.DRAWING_XML
        assert len(product_bucket.objects) == 1

    def test_failed_image_upload_does_not_fail_import(self, service, workbook, product_bucket):
        product_bucket.fail_uploads_containing.add("image1")
        data = build_archive_with_images(["image1.png"], anchors={"image1.png": 3}, base=workbook)
        session = service.start_upload(data, "with-images.xlsx")

        assert len(session.records) == 3
        assert session.images.total_images == 1
        assert session.images.uploaded_images == 0
        assert session.records[0].image_url is None


class TestSessionWorkflow:

    def test_validate_correct_and_publish(self, service, workbook, seeded_db):
        session = service.start_upload(workbook, "supplier.xlsx")

        summary = service.validate_all(session.session_id)
        assert summary.validated_count == 2
        assert summary.error_count == 1
        assert summary.auto_published is None
        assert session.records[0].category_id == "cat-dairy"

        result = service.publish(session.session_id)
        assert result.published_count == 2
        assert service.jobs.get_job(session.job_id).status == "partially_published"

        service.update_record(session.session_id, 5, DraftRecordUpdate(price=Decimal("1.25")))
        summary = service.validate_all(session.session_id)
        assert summary.all_validated is True
        assert summary.auto_published.published_count == 1

        assert set(_statuses(session).values()) == {DraftStatus.PUBLISHED}
        assert service.jobs.get_job(session.job_id).status == "published"
        assert len(seeded_db.get_table_data("products")) == 3

    def test_validate_all_auto_publishes_clean_upload(self, service, seeded_db):
        data = build_workbook([["Dairy"], ["Milk 1L", "Dos Pinos", None, "$1.50"]])
        session = service.start_upload(data, "clean.xlsx")

        summary = service.validate_all(session.session_id)
        assert summary.auto_published.published_count == 1
        assert session.records[0].status == DraftStatus.PUBLISHED

    def test_item_rows_follow_session(self, service, workbook, seeded_db):
        session = service.start_upload(workbook, "supplier.xlsx")
        service.validate_all(session.session_id)

        items = {i["row_index"]: i for i in seeded_db.get_table_data("import_items")}
        assert items[3]["status"] == "validated"
        assert items[3]["category_id"] == "cat-dairy"
        assert items[5]["status"] == "error"

    def test_rename_rederives_unit(self, service, workbook):
        session = service.start_upload(workbook, "supplier.xlsx")
        record = service.update_record(session.session_id, 3, DraftRecordUpdate(name="Milk 2L"))
        assert record.unit == "2l"

    def test_explicit_unit_is_kept_on_rename(self, service, workbook):
        session = service.start_upload(workbook, "supplier.xlsx")
        record = service.update_record(
            session.session_id, 3, DraftRecordUpdate(name="Milk 2L", unit="2 pack")
        )
        assert record.unit == "2 pack"

    def test_update_unknown_row(self, service, workbook):
        session = service.start_upload(workbook, "supplier.xlsx")
        with pytest.raises(DraftRecordNotFoundError):
            service.update_record(session.session_id, 99, DraftRecordUpdate(name="X"))

    def test_published_record_cannot_be_edited(self, service, workbook):
        session = service.start_upload(workbook, "supplier.xlsx")
        service.validate_all(session.session_id)
        service.publish(session.session_id)
        with pytest.raises(InvalidStatusTransitionError):
            service.update_record(session.session_id, 3, DraftRecordUpdate(name="Milk 2L"))

    def test_assign_category_to_all(self, service, workbook):
        session = service.start_upload(workbook, "supplier.xlsx")
        service.assign_category_to_all(session.session_id, "cat-pantry")
        assert {r.category_id for r in session.records} == {"cat-pantry"}

    def test_duplicates_detected_and_skipped(self, service, workbook, seeded_db):
        seeded_db.set_table_data("products", [
            ProductFactory.create(id="p-milk", name="Milk 1L", category_id="cat-dairy"),
        ])
        session = service.start_upload(workbook, "supplier.xlsx")
        service.validate_all(session.session_id)

        matches = service.detect_duplicates(session.session_id)
        assert [m.row_index for m in matches] == [3]

        outcomes = service.resolve_duplicates(session.session_id, [SkipResolution(row_index=3)])
        assert outcomes[0].status == "duplicate"
        items = {i["row_index"]: i for i in seeded_db.get_table_data("import_items")}
        assert items[3]["status"] == "duplicate"

    def test_unknown_session(self, service):
        with pytest.raises(ImportSessionNotFoundError):
            service.get_session("missing")


class TestLoadJobSession:

    def test_rebuilds_session_from_items(self, service, workbook):
        original = service.start_upload(workbook, "supplier.xlsx")
        service.validate_all(original.session_id)

        loaded = service.load_job_session(original.job_id)

        assert loaded.session_id != original.session_id
        assert loaded.job_id == original.job_id
        assert loaded.exchange_rate == Decimal("500")
        assert [r.row_index for r in loaded.records] == [3, 4, 5]
        assert loaded.records[0].status == DraftStatus.VALIDATED
        assert loaded.records[2].status == DraftStatus.ERROR
        assert service.get_session(loaded.session_id) is loaded
