"""
Pytest configuration for local imports and sample input files.
"""

# Standard Library
import datetime
import io
import os
import sys

# PIP3 modules
import openpyxl
import PIL.Image
import pytest
import reportlab.pdfgen.canvas
import xlwt

#============================================


def _ensure_repo_on_path() -> None:
	"""
	Ensure the repository root is on sys.path.
	"""
	repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
	if repo_root not in sys.path:
		sys.path.insert(0, repo_root)


_ensure_repo_on_path()

import receipt_sheet_converter.validate  # noqa: E402

InputFile = receipt_sheet_converter.validate.InputFile
XLSX_MIME = receipt_sheet_converter.validate.XLSX_MIME
XLS_MIME = receipt_sheet_converter.validate.XLS_MIME


#============================================
def build_pdf_bytes(page_sizes: list[tuple[float, float]]) -> bytes:
	"""
	Draw a PDF with one filled page per requested size.

	Args:
		page_sizes: (width, height) per page in points.

	Returns:
		PDF bytes.
	"""
	buffer = io.BytesIO()
	pdf = reportlab.pdfgen.canvas.Canvas(buffer)
	for index, (width, height) in enumerate(page_sizes, start=1):
		pdf.setPageSize((width, height))
		pdf.setFillGray(0.2)
		pdf.rect(0, 0, width, height, stroke=0, fill=1)
		pdf.setFillGray(1.0)
		pdf.drawString(10, 10, f"page {index}")
		pdf.showPage()
	pdf.save()
	return buffer.getvalue()


#============================================
def build_image_bytes(width: int, height: int, image_format: str = "PNG") -> bytes:
	"""
	Encode a solid image.
	"""
	image = PIL.Image.new("RGB", (width, height), (40, 40, 40))
	buffer = io.BytesIO()
	image.save(buffer, format=image_format)
	return buffer.getvalue()


#============================================
def build_xlsx_bytes(rows: list[list[object]]) -> bytes:
	"""
	Build a one-sheet workbook from rows.
	"""
	workbook = openpyxl.Workbook()
	sheet = workbook.active
	sheet.title = "Expenses"
	for row in rows:
		sheet.append(row)
	buffer = io.BytesIO()
	workbook.save(buffer)
	return buffer.getvalue()


#============================================
def build_xls_bytes(rows: list[list[object]]) -> bytes:
	"""
	Build a one-sheet legacy .xls workbook from rows.

	Dates are written with a date number format so readers see date cells.
	"""
	workbook = xlwt.Workbook()
	sheet = workbook.add_sheet("Expenses")
	date_style = xlwt.easyxf(num_format_str="YYYY-MM-DD")
	for row_index, row in enumerate(rows):
		for col_index, value in enumerate(row):
			if isinstance(value, datetime.date):
				sheet.write(row_index, col_index, value, date_style)
			else:
				sheet.write(row_index, col_index, value)
	buffer = io.BytesIO()
	workbook.save(buffer)
	return buffer.getvalue()


@pytest.fixture
def pdf_file() -> InputFile:
	return InputFile(
		name="invoice.pdf",
		mime_type="application/pdf",
		data=build_pdf_bytes([(400.0, 200.0), (400.0, 200.0)]),
	)


@pytest.fixture
def png_file() -> InputFile:
	return InputFile(
		name="receipt.png",
		mime_type="image/png",
		data=build_image_bytes(1000, 2000),
	)


@pytest.fixture
def jpeg_file() -> InputFile:
	return InputFile(
		name="ticket.jpg",
		mime_type="image/jpeg",
		data=build_image_bytes(300, 200, "JPEG"),
	)


@pytest.fixture
def xlsx_file() -> InputFile:
	rows = [
		["Date", "Item", "Amount"],
		["2024-03-01", "Taxi", 23.5],
		["2024-03-02", "Hotel, two nights with breakfast", 210],
		["2024-03-03", "Train", 48.0],
	]
	return InputFile(
		name="expenses.xlsx",
		mime_type=XLSX_MIME,
		data=build_xlsx_bytes(rows),
	)


@pytest.fixture
def make_pdf_file():
	def _make(page_sizes: list[tuple[float, float]], name: str = "document.pdf") -> InputFile:
		return InputFile(name=name, mime_type="application/pdf", data=build_pdf_bytes(page_sizes))
	return _make


@pytest.fixture
def make_png_file():
	def _make(width: int, height: int, name: str = "image.png") -> InputFile:
		return InputFile(name=name, mime_type="image/png", data=build_image_bytes(width, height))
	return _make


@pytest.fixture
def make_xlsx_file():
	def _make(rows: list[list[object]], name: str = "sheet.xlsx") -> InputFile:
		return InputFile(name=name, mime_type=XLSX_MIME, data=build_xlsx_bytes(rows))
	return _make


@pytest.fixture
def xls_file() -> InputFile:
	rows = [
		["Date", "Item", "Amount"],
		[datetime.date(2024, 3, 1), "Taxi", 23.5],
		[datetime.date(2024, 3, 2), "Hotel", 210],
	]
	return InputFile(
		name="expenses.xls",
		mime_type=XLS_MIME,
		data=build_xls_bytes(rows),
	)
