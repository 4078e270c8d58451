"""Output generation for resolved schedules (HTML, PDF, XLSX)."""

from clinicsched.output.formatting import (
    DEFAULT_MAIN_COLOR,
    DEFAULT_OTHER_COLOR,
    DEFAULT_SIDE_COLOR,
    contrast_text_color,
    export_filename,
    iso_week,
    to_argb,
)
from clinicsched.output.html_generator import HTMLGenerator
from clinicsched.output.pdf_generator import PDFGenerator
from clinicsched.output.xlsx_generator import XLSXGenerator

__all__ = [
    "HTMLGenerator",
    "PDFGenerator",
    "XLSXGenerator",
    "contrast_text_color",
    "export_filename",
    "iso_week",
    "to_argb",
    "DEFAULT_MAIN_COLOR",
    "DEFAULT_SIDE_COLOR",
    "DEFAULT_OTHER_COLOR",
]
