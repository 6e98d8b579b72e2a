"""
Embedded image extraction from OOXML workbooks.

A .xlsx file is a zip archive. Pictures live under xl/media/, and the
drawing part of each worksheet (xl/drawings/drawingN.xml, reached through
the sheet relationships) says which cell each picture is anchored to. Only
the first worksheet is imported, so only its drawing is read. When drawing metadata is missing or unreadable, images are
assigned to rows by their numeric file order instead.

Row resolution strategies implement ImageSource so the drawing-metadata
strategy and the sequential fallback can be swapped independently.
"""

import mimetypes
import posixpath
import re
import xml.etree.ElementTree as ET
import zipfile
from collections import Counter
from dataclasses import dataclass
from io import BytesIO
from typing import Callable, Optional

import structlog

from models.image_mapping import ImageLocatorSummary, ImageRowMapping, MappingMethod

logger = structlog.get_logger(__name__)

MEDIA_DIR = "xl/media/"
WORKBOOK_PART = "xl/workbook.xml"
RASTER_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp", ".tif", ".tiff"}

# First product row when positions are guessed: row 1 header, row 2 reserved
SEQUENTIAL_ROW_OFFSET = 3

NS = {
    "xdr": "http://schemas.openxmlformats.org/drawingml/2006/spreadsheetDrawing",
    "a": "http://schemas.openxmlformats.org/drawingml/2006/main",
    "rel": "http://schemas.openxmlformats.org/package/2006/relationships",
    "main": "http://schemas.openxmlformats.org/spreadsheetml/2006/main",
}
R_EMBED = "{http://schemas.openxmlformats.org/officeDocument/2006/relationships}embed"
R_ID = "{http://schemas.openxmlformats.org/officeDocument/2006/relationships}id"

_SUFFIX_RE = re.compile(r"(\d+)(?=\.[^.]+$)")

# (file_name, data, content_type) -> public URL
Uploader = Callable[[str, bytes, str], str]


@dataclass(frozen=True)
class ImageEntry:
    """One raster file inside the archive."""
    path: str        # xl/media/image3.png
    file_name: str   # image3.png

    @property
    def content_type(self) -> str:
        guessed, _ = mimetypes.guess_type(self.file_name)
        return guessed or "application/octet-stream"


def _numeric_suffix(name: str) -> int:
    match = _SUFFIX_RE.search(name)
    return int(match.group(1)) if match else 10**9


def list_media(archive: zipfile.ZipFile) -> list[ImageEntry]:
    """Raster entries under xl/media/, ordered by their numeric suffix."""
    entries = []
    for path in archive.namelist():
        if not path.startswith(MEDIA_DIR) or path.endswith("/"):
            continue
        ext = posixpath.splitext(path)[1].lower()
        if ext in RASTER_EXTENSIONS:
            entries.append(ImageEntry(path=path, file_name=posixpath.basename(path)))
    entries.sort(key=lambda e: (_numeric_suffix(e.file_name), e.file_name))
    return entries


def _resolve_zip_path(base_path: str, target: Optional[str]) -> Optional[str]:
    if not target:
        return None
    clean_target = target.replace("\\", "/")
    if clean_target.startswith("/"):
        return clean_target.lstrip("/")
    base_dir = posixpath.dirname(base_path)
    return posixpath.normpath(posixpath.join(base_dir, clean_target))


def _rels_path(part_path: str) -> str:
    return "{0}/_rels/{1}.rels".format(
        posixpath.dirname(part_path),
        posixpath.basename(part_path),
    )


def _read_relationships(
    archive: zipfile.ZipFile,
    rels_path: str,
    rel_type: Optional[str] = None,
) -> dict[str, str]:
    """Relationship Id -> Target, optionally only those whose Type ends in /rel_type."""
    rels = {}
    if rels_path not in archive.namelist():
        return rels
    root = ET.fromstring(archive.read(rels_path))
    for rel in root.findall("rel:Relationship", NS):
        rel_id = rel.attrib.get("Id")
        target = rel.attrib.get("Target")
        if rel_type and not rel.attrib.get("Type", "").endswith("/" + rel_type):
            continue
        if rel_id and target:
            rels[rel_id] = target
    return rels


def first_sheet_drawings(archive: zipfile.ZipFile) -> list[str]:
    """
    Drawing parts attached to the first worksheet.

    Follows xl/workbook.xml -> xl/_rels/workbook.xml.rels -> the sheet's
    own .rels file. Drawings of other sheets are never returned.
    """
    names = set(archive.namelist())
    if WORKBOOK_PART not in names:
        return []

    workbook = ET.fromstring(archive.read(WORKBOOK_PART))
    sheet = workbook.find("main:sheets/main:sheet", NS)
    if sheet is None:
        return []

    sheet_targets = _read_relationships(archive, _rels_path(WORKBOOK_PART))
    sheet_path = _resolve_zip_path(WORKBOOK_PART, sheet_targets.get(sheet.attrib.get(R_ID)))
    if sheet_path is None:
        return []

    drawings = _read_relationships(archive, _rels_path(sheet_path), rel_type="drawing")
    paths = [_resolve_zip_path(sheet_path, target) for target in drawings.values()]
    return sorted(p for p in paths if p in names)


# ===================
# ROW RESOLUTION STRATEGIES
# ===================

class ImageSource:
    """Strategy that decides which worksheet row each image belongs to."""

    method: MappingMethod = MappingMethod.NONE

    def list_images(self, archive: zipfile.ZipFile) -> list[ImageEntry]:
        return list_media(archive)

    def resolve_row_mapping(
        self,
        archive: zipfile.ZipFile,
        entries: list[ImageEntry],
    ) -> dict[str, int]:
        """Map image path -> 1-based worksheet row."""
        raise NotImplementedError


class DrawingXmlImageSource(ImageSource):
    """Rows taken from the picture anchors in the first worksheet's drawing."""

    method = MappingMethod.DRAWING_XML

    def resolve_row_mapping(self, archive, entries):
        wanted = {e.path for e in entries}
        mapping: dict[str, int] = {}

        for drawing_path in first_sheet_drawings(archive):
            root = ET.fromstring(archive.read(drawing_path))
            rels = _read_relationships(archive, _rels_path(drawing_path))

            anchors = root.findall("xdr:twoCellAnchor", NS) + root.findall("xdr:oneCellAnchor", NS)
            for anchor in anchors:
                row_node = anchor.find("xdr:from/xdr:row", NS)
                blip = anchor.find(".//a:blip", NS)
                if row_node is None or blip is None or not (row_node.text or "").strip():
                    continue

                media_path = _resolve_zip_path(drawing_path, rels.get(blip.attrib.get(R_EMBED)))
                if media_path not in wanted or media_path in mapping:
                    continue

                # Anchor rows are 0-based
                mapping[media_path] = int(row_node.text.strip()) + 1

        return mapping


class SequentialImageSource(ImageSource):
    """Rows guessed from file order: first image on the first product row."""

    method = MappingMethod.SEQUENTIAL

    def resolve_row_mapping(self, archive, entries):
        return {
            entry.path: index + SEQUENTIAL_ROW_OFFSET
            for index, entry in enumerate(entries)
        }


# ===================
# LOCATOR
# ===================

def locate_images(
    file_bytes: bytes,
    uploader: Uploader,
    primary: Optional[ImageSource] = None,
    fallback: Optional[ImageSource] = None,
) -> tuple[list[ImageRowMapping], ImageLocatorSummary]:
    """
    Extract embedded images, resolve their rows and upload them.

    Args:
        file_bytes: Workbook content
        uploader: Stores one image and returns its public URL
        primary: Authoritative strategy (drawing metadata by default)
        fallback: Strategy for images the primary one does not cover

    Returns:
        (mappings in image order, summary). A failed image is logged and
        left out; it never aborts the others.
    """
    primary = primary or DrawingXmlImageSource()
    fallback = fallback or SequentialImageSource()

    try:
        archive = zipfile.ZipFile(BytesIO(file_bytes))
    except zipfile.BadZipFile as e:
        logger.warning("workbook_not_a_zip_archive", error=str(e))
        return [], ImageLocatorSummary()

    with archive:
        entries = primary.list_images(archive)
        if not entries:
            logger.info("no_embedded_images")
            return [], ImageLocatorSummary()

        try:
            primary_rows = primary.resolve_row_mapping(archive, entries)
        except (ET.ParseError, KeyError, ValueError) as e:
            logger.warning("drawing_metadata_unreadable", error=str(e))
            primary_rows = {}
        fallback_rows = fallback.resolve_row_mapping(archive, entries)

        logger.info(
            "embedded_images_found",
            total_images=len(entries),
            anchored=len(primary_rows),
        )

        mappings: list[ImageRowMapping] = []
        for entry in entries:
            if entry.path in primary_rows:
                row, method = primary_rows[entry.path], primary.method
            else:
                row, method = fallback_rows[entry.path], fallback.method

            try:
                data = archive.read(entry.path)
                url = uploader(entry.file_name, data, entry.content_type)
            except Exception as e:
                logger.warning(
                    "image_upload_failed",
                    file_name=entry.file_name,
                    excel_row=row,
                    error=str(e),
                )
                continue

            mappings.append(ImageRowMapping(
                excel_row=row,
                image_url=url,
                file_name=entry.file_name,
                mapping_method=method,
            ))

    summary = ImageLocatorSummary(
        total_images=len(entries),
        uploaded_images=len(mappings),
        mapping_method=_dominant_method(mappings),
    )
    logger.info(
        "embedded_images_located",
        total_images=summary.total_images,
        uploaded_images=summary.uploaded_images,
        mapping_method=summary.mapping_method.value,
    )
    return mappings, summary


def _dominant_method(mappings: list[ImageRowMapping]) -> MappingMethod:
    if not mappings:
        return MappingMethod.NONE
    counts = Counter(m.mapping_method for m in mappings)
    # Ties go to drawing metadata
    return max(
        counts,
        key=lambda m: (counts[m], m == MappingMethod.DRAWING_XML),
    )
