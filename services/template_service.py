"""
Template service - downloadable workbook for bulk product uploads.

Products sheet in the A-E layout the importer expects, a Categories
reference sheet and an Instructions sheet.
"""

from io import BytesIO
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment
import structlog

from models.product import CategoryResponse
from services.category_service import CategoryService

logger = structlog.get_logger(__name__)

PRODUCT_HEADERS = [
    "Name",
    "Brand / Description",
    "Price (secondary currency)",
    "Price (primary currency)",
    "Image URL",
]

SAMPLE_ROWS = [
    ["Leche Dos Pinos 1L", "Dos Pinos", "₡1250", "", ""],
    ["Arroz Tio Pelon 2kg", "Tio Pelon", "", "$3.80", "https://example.com/arroz.jpg"],
]

INSTRUCTIONS = [
    "How to fill in the Products sheet",
    "",
    "Column A: product name. Leave empty on a row that only adds a price for the product above.",
    "Column B: brand or short description.",
    "Column C: price in the secondary currency; converted with the exchange rate you enter on upload.",
    "Column D: price in the primary currency; used only when column C is empty.",
    "Column E: image URL; ignored when a picture is embedded on the same row.",
    "",
    "A row with only a name in column A is read as a category heading for the rows below it.",
    "Quantities in the name (500g, 1L, 6 pk) are used as the unit.",
    "Row 1 is the header and is not imported.",
    "See the Categories sheet for valid category names.",
]


class TemplateService:
    """Builds the bulk upload template."""

    def __init__(self):
        self.categories = CategoryService()

    def generate_template(self, categories: Optional[list[CategoryResponse]] = None) -> BytesIO:
        """
        Generate the upload template.

        Args:
            categories: Categories to list (defaults to active categories)

        Returns:
            BytesIO containing the .xlsx file
        """
        if categories is None:
            categories = self.categories.list_active()

        logger.info("generating_import_template", category_count=len(categories))

        wb = Workbook()
        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="2F5597", end_color="2F5597", fill_type="solid")

        # Products
        ws = wb.active
        ws.title = "Products"
        ws.append(PRODUCT_HEADERS)
        for row in SAMPLE_ROWS:
            ws.append(row)
        for cell in ws[1]:
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = Alignment(horizontal="center")
        for column, width in zip("ABCDE", (35, 25, 24, 24, 40)):
            ws.column_dimensions[column].width = width
        ws.freeze_panes = "A2"

        # Categories
        ws_categories = wb.create_sheet("Categories")
        ws_categories.append(["id", "name", "icon"])
        for category in categories:
            ws_categories.append([category.id, category.name, category.icon or ""])
        for cell in ws_categories[1]:
            cell.font = header_font
            cell.fill = header_fill
        ws_categories.column_dimensions["A"].width = 40
        ws_categories.column_dimensions["B"].width = 25

        # Instructions
        ws_help = wb.create_sheet("Instructions")
        for line in INSTRUCTIONS:
            ws_help.append([line])
        ws_help["A1"].font = Font(bold=True, size=14)
        ws_help.column_dimensions["A"].width = 100

        output = BytesIO()
        wb.save(output)
        output.seek(0)
        return output


_template_service: Optional[TemplateService] = None

def get_template_service() -> TemplateService:
    """Get or create TemplateService instance."""
    global _template_service
    if _template_service is None:
        _template_service = TemplateService()
    return _template_service
