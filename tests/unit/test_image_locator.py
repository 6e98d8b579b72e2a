"""
Unit tests for embedded image extraction and row binding.

Run: pytest tests/unit/test_image_locator.py -v
"""

from models.image_mapping import ImageRowMapping, MappingMethod
from parsers.carry_forward import reconstruct_rows
from parsers.image_binder import BINDING_ROW_NUMBER, BINDING_SEQUENCE, bind_images
from parsers.image_locator import first_sheet_drawings, list_media, locate_images

from tests.factories import build_archive_with_images, build_workbook


class RecordingUploader:
    """Uploader stub that returns fake URLs and can fail selected files."""

    def __init__(self, fail: tuple = ()):
        self.fail = set(fail)
        self.uploaded = []

    def __call__(self, file_name, data, content_type):
        if file_name in self.fail:
            raise RuntimeError("storage unavailable")
        self.uploaded.append((file_name, content_type, len(data)))
        return f"https://img.test/{file_name}"


class TestLocateImages:

    def test_workbook_without_media_returns_none(self):
        mappings, summary = locate_images(build_workbook([["Milk", None, None, "$1"]]), RecordingUploader())
        assert mappings == []
        assert summary.mapping_method == MappingMethod.NONE
        assert summary.total_images == 0

    def test_non_zip_bytes_return_none(self):
        mappings, summary = locate_images(b"not a workbook", RecordingUploader())
        assert mappings == []
        assert summary.mapping_method == MappingMethod.NONE

    def test_media_sorted_by_numeric_suffix(self):
        import zipfile
        from io import BytesIO

        data = build_archive_with_images(["image10.png", "image2.png", "image1.png"])
        with zipfile.ZipFile(BytesIO(data)) as archive:
            names = [e.file_name for e in list_media(archive)]
        assert names == ["image1.png", "image2.png", "image10.png"]

    def test_sequential_fallback_starts_at_row_three(self):
        data = build_archive_with_images(["image1.png", "image2.png"])
        mappings, summary = locate_images(data, RecordingUploader())
        assert [(m.excel_row, m.file_name) for m in mappings] == [(3, "image1.png"), (4, "image2.png")]
        assert all(m.mapping_method == MappingMethod.SEQUENTIAL for m in mappings)
        assert summary.mapping_method == MappingMethod.SEQUENTIAL

    def test_drawing_anchors_are_authoritative(self):
        data = build_archive_with_images(
            ["image1.png", "image2.png"],
            anchors={"image1.png": 7, "image2.png": 2},
        )
        mappings, summary = locate_images(data, RecordingUploader())
        rows = {m.file_name: m.excel_row for m in mappings}
        assert rows == {"image1.png": 7, "image2.png": 2}
        assert summary.mapping_method == MappingMethod.DRAWING_XML

    def test_image_not_in_drawing_falls_back_to_sequence(self):
        data = build_archive_with_images(
            ["image1.png", "image2.png", "image3.png"],
            anchors={"image1.png": 9},
        )
        mappings, summary = locate_images(data, RecordingUploader())
        by_name = {m.file_name: m for m in mappings}
        assert by_name["image1.png"].excel_row == 9
        assert by_name["image1.png"].mapping_method == MappingMethod.DRAWING_XML
        assert by_name["image3.png"].excel_row == 5
        assert by_name["image3.png"].mapping_method == MappingMethod.SEQUENTIAL
        assert summary.mapping_method == MappingMethod.SEQUENTIAL

    def test_anchor_on_another_sheet_is_ignored(self):
        base = build_workbook([["Milk 1L", None, None, "$1"]], extra_sheets=["Notes"])
        data = build_archive_with_images(["image1.png"], anchors={"image1.png": 2}, base=base, sheet=2)

        mappings, summary = locate_images(data, RecordingUploader())

        assert [(m.excel_row, m.mapping_method) for m in mappings] == [(3, MappingMethod.SEQUENTIAL)]
        assert summary.mapping_method == MappingMethod.SEQUENTIAL

    def test_only_first_sheet_drawing_is_read(self):
        import zipfile
        from io import BytesIO

        base = build_workbook([], extra_sheets=["Notes"])
        data = build_archive_with_images(["image1.png"], anchors={"image1.png": 6}, base=base)
        data = build_archive_with_images([], anchors={"image1.png": 2}, base=data, sheet=2)

        with zipfile.ZipFile(BytesIO(data)) as archive:
            assert first_sheet_drawings(archive) == ["xl/drawings/drawing1.xml"]
        mappings, _ = locate_images(data, RecordingUploader())
        assert [(m.excel_row, m.mapping_method) for m in mappings] == [(6, MappingMethod.DRAWING_XML)]

    def test_malformed_drawing_xml_falls_back_to_sequence(self):
        data = build_archive_with_images(["image1.png"], drawing_xml="<xdr:wsDr><broken")
        mappings, summary = locate_images(data, RecordingUploader())
        assert mappings[0].excel_row == 3
        assert summary.mapping_method == MappingMethod.SEQUENTIAL

    def test_failed_upload_is_skipped_not_fatal(self):
        data = build_archive_with_images(["image1.png", "image2.png", "image3.png"])
        uploader = RecordingUploader(fail=("image2.png",))
        mappings, summary = locate_images(data, uploader)
        assert [m.file_name for m in mappings] == ["image1.png", "image3.png"]
        assert summary.total_images == 3
        assert summary.uploaded_images == 2

    def test_uploader_receives_content_type(self):
        uploader = RecordingUploader()
        locate_images(build_archive_with_images(["image1.png"]), uploader)
        assert uploader.uploaded[0][1] == "image/png"


def _mapping(row, name=None):
    return ImageRowMapping(
        excel_row=row,
        image_url=f"https://img.test/{name or row}.png",
        file_name=name or f"image{row}.png",
        mapping_method=MappingMethod.DRAWING_XML,
    )


class TestBindImages:

    GRID = [
        ["Name", "Brand", "CRC", "USD"],
        ["Milk 1L", "Dos Pinos", None, "$1.50"],   # row 2, n=0
        [None, None, None, None],                  # row 3 blank
        ["Cheese", "Monteverde", None, "$4.00"],   # row 4, n=1
        ["Bread", "Bimbo", None, "$2.00"],         # row 5, n=2
    ]

    def test_sequence_mode_binds_by_position(self):
        candidates = reconstruct_rows(self.GRID)
        bound = bind_images(candidates, [_mapping(3), _mapping(4), _mapping(5)], BINDING_SEQUENCE)
        assert [m.excel_row if m else None for m in bound] == [3, 4, 5]

    def test_row_number_mode_prefers_own_row(self):
        candidates = reconstruct_rows(self.GRID)
        bound = bind_images(candidates, [_mapping(2), _mapping(4), _mapping(5)], BINDING_ROW_NUMBER)
        assert [m.excel_row if m else None for m in bound] == [2, 4, 5]

    def test_row_number_mode_falls_back_to_sequence(self):
        candidates = reconstruct_rows(self.GRID)
        # Only row 3 exists: no candidate sits there, so the first one gets it by sequence
        bound = bind_images(candidates, [_mapping(3)], BINDING_ROW_NUMBER)
        assert [m.excel_row if m else None for m in bound] == [3, None, None]

    def test_image_is_never_bound_twice(self):
        grid = [
            ["Name", "Brand", "CRC", "USD"],
            ["Milk 1L", "Dos Pinos", None, "$1.50"],   # row 2, n=0
            ["Cheese", "Monteverde", None, "$4.00"],   # row 3, n=1
            [None, None, None, None],                  # row 4 blank
            ["Bread", "Bimbo", None, "$2.00"],         # row 5, n=2
        ]
        candidates = reconstruct_rows(grid)
        # Row 3 is Cheese's own row; Milk's sequence slot (0 + 3) must not reuse it
        bound = bind_images(candidates, [_mapping(3)], BINDING_ROW_NUMBER)
        assert [m.excel_row if m else None for m in bound] == [None, 3, None]

    def test_no_images_is_not_an_error(self):
        candidates = reconstruct_rows(self.GRID)
        assert bind_images(candidates, []) == [None, None, None]
