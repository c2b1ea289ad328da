"""
Spreadsheet reading and rasterization.

The first worksheet is laid out as a bordered table with reportlab, the
resulting single page is rasterized with PyMuPDF and the bitmap is turned
90 degrees clockwise so wide tables read along the long side of the crop.
"""

# Standard Library
import contextlib
import datetime
import io
import xml.sax.saxutils

# PIP3 modules
import fitz
import openpyxl
import PIL.Image
import reportlab.lib.colors
import reportlab.lib.styles
import reportlab.pdfgen.canvas
import reportlab.platypus
import xlrd

# local repo modules
import receipt_sheet_converter as rsc
import receipt_sheet_converter.config
import receipt_sheet_converter.errors


ErrorKind = rsc.errors.ErrorKind
ProcessingError = rsc.errors.ProcessingError

SPREADSHEET_PAGE_WIDTH = rsc.config.SPREADSHEET_PAGE_WIDTH
SPREADSHEET_PADDING = rsc.config.SPREADSHEET_PADDING
SPREADSHEET_MAX_COLUMNS = rsc.config.SPREADSHEET_MAX_COLUMNS
MAX_IMAGE_PIXELS = rsc.config.MAX_IMAGE_PIXELS
SPREADSHEET_FONT_SIZE = rsc.config.SPREADSHEET_FONT_SIZE
SPREADSHEET_RENDER_DPI = rsc.config.SPREADSHEET_RENDER_DPI
DEFAULT_FONT_REGULAR = rsc.config.DEFAULT_FONT_REGULAR

HEADER_FONT = "Helvetica-Bold"
HEADER_BACKGROUND = "#E6E6E6"
GRID_LINE_WIDTH = 0.5
CELL_PADDING = 4


#============================================
def format_cell(value: object) -> str:
	"""
	Format a cell value the way a spreadsheet would display it.

	Args:
		value: Raw cell value.

	Returns:
		Display string.
	"""
	if value is None:
		return ""
	if isinstance(value, bool):
		return "TRUE" if value else "FALSE"
	if isinstance(value, float):
		if value.is_integer():
			return str(int(value))
		return f"{value:.10g}"
	if isinstance(value, datetime.datetime):
		if value.time() == datetime.time(0, 0):
			return value.date().isoformat()
		return value.isoformat(sep=" ")
	if isinstance(value, (datetime.date, datetime.time)):
		return value.isoformat()
	return str(value).strip()


#============================================
@contextlib.contextmanager
def open_xlsx(data: bytes):
	"""
	Open an .xlsx workbook read-only and close it on exit.
	"""
	workbook = openpyxl.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
	try:
		yield workbook
	finally:
		workbook.close()


#============================================
@contextlib.contextmanager
def open_xls(data: bytes):
	"""
	Open a legacy .xls workbook and release it on exit.
	"""
	book = xlrd.open_workbook(file_contents=data, on_demand=True)
	try:
		yield book
	finally:
		book.release_resources()


#============================================
def read_xlsx_rows(data: bytes, source_name: str) -> list[list[str]]:
	"""
	Read the first worksheet of an .xlsx workbook.

	Args:
		data: Workbook bytes.
		source_name: File name for error attribution.

	Returns:
		Rows of display strings.
	"""
	rows: list[list[str]] = []
	with open_xlsx(data) as workbook:
		if not workbook.sheetnames:
			raise ProcessingError(ErrorKind.EXCEL_NO_SHEETS, source_name)
		sheet = workbook[workbook.sheetnames[0]]
		if not hasattr(sheet, "iter_rows"):
			raise ProcessingError(
				ErrorKind.EXCEL_PARSE_FAILED,
				source_name,
				message="The first sheet is a chart, not a worksheet",
			)
		for row in sheet.iter_rows(values_only=True):
			rows.append([format_cell(value) for value in row])
	return rows


#============================================
def read_xls_rows(data: bytes, source_name: str) -> list[list[str]]:
	"""
	Read the first worksheet of a legacy .xls workbook.

	Args:
		data: Workbook bytes.
		source_name: File name for error attribution.

	Returns:
		Rows of display strings.
	"""
	rows: list[list[str]] = []
	with open_xls(data) as book:
		if book.nsheets == 0:
			raise ProcessingError(ErrorKind.EXCEL_NO_SHEETS, source_name)
		sheet = book.sheet_by_index(0)
		for index in range(sheet.nrows):
			values = []
			for cell in sheet.row(index):
				if cell.ctype == xlrd.XL_CELL_DATE:
					value = xlrd.xldate.xldate_as_datetime(cell.value, book.datemode)
				elif cell.ctype == xlrd.XL_CELL_BOOLEAN:
					value = bool(cell.value)
				else:
					value = cell.value
				values.append(format_cell(value))
			rows.append(values)
	return rows


#============================================
def trim_rows(rows: list[list[str]]) -> list[list[str]]:
	"""
	Drop trailing blank rows and columns and apply the column cap.

	Args:
		rows: Rows of display strings.

	Returns:
		Rectangular rows, possibly empty.
	"""
	last_row = -1
	last_col = -1
	for row_index, row in enumerate(rows):
		for col_index, text in enumerate(row):
			if text:
				last_row = max(last_row, row_index)
				last_col = max(last_col, col_index)
	if last_row < 0:
		return []
	columns = min(last_col + 1, SPREADSHEET_MAX_COLUMNS)
	trimmed = []
	for row in rows[:last_row + 1]:
		padded = list(row[:columns]) + [""] * max(0, columns - len(row))
		trimmed.append(padded)
	return trimmed


#============================================
def build_table(rows: list[list[str]], available_width: float) -> reportlab.platypus.Table:
	"""
	Build a bordered table with wrapped cells and a shaded header row.

	Args:
		rows: Rectangular rows of display strings.
		available_width: Table width in points.

	Returns:
		reportlab Table flowable.
	"""
	sample = reportlab.lib.styles.getSampleStyleSheet()
	cell_style = reportlab.lib.styles.ParagraphStyle(
		"cell",
		parent=sample["Normal"],
		fontName=DEFAULT_FONT_REGULAR,
		fontSize=SPREADSHEET_FONT_SIZE,
		leading=SPREADSHEET_FONT_SIZE * 1.25,
		wordWrap="CJK",
	)
	header_style = reportlab.lib.styles.ParagraphStyle(
		"header",
		parent=cell_style,
		fontName=HEADER_FONT,
	)
	data = []
	for row_index, row in enumerate(rows):
		style = header_style if row_index == 0 else cell_style
		cells = []
		for text in row:
			markup = xml.sax.saxutils.escape(text).replace("\n", "<br/>")
			cells.append(reportlab.platypus.Paragraph(markup, style))
		data.append(cells)

	columns = len(rows[0])
	col_width = available_width / columns
	table = reportlab.platypus.Table(data, colWidths=[col_width] * columns)
	table.setStyle(
		reportlab.platypus.TableStyle(
			[
				("GRID", (0, 0), (-1, -1), GRID_LINE_WIDTH, reportlab.lib.colors.black),
				("BACKGROUND", (0, 0), (-1, 0), reportlab.lib.colors.HexColor(HEADER_BACKGROUND)),
				("VALIGN", (0, 0), (-1, -1), "TOP"),
				("LEFTPADDING", (0, 0), (-1, -1), CELL_PADDING),
				("RIGHTPADDING", (0, 0), (-1, -1), CELL_PADDING),
				("TOPPADDING", (0, 0), (-1, -1), CELL_PADDING / 2.0),
				("BOTTOMPADDING", (0, 0), (-1, -1), CELL_PADDING / 2.0),
			]
		)
	)
	return table


#============================================
def render_table_pdf(rows: list[list[str]]) -> bytes:
	"""
	Lay the table out on a single page sized to fit it.

	Args:
		rows: Rectangular rows of display strings.

	Returns:
		PDF bytes with one page.
	"""
	available_width = SPREADSHEET_PAGE_WIDTH - 2.0 * SPREADSHEET_PADDING
	table = build_table(rows, available_width)
	_table_width, table_height = table.wrap(available_width, 1.0e6)
	page_height = table_height + 2.0 * SPREADSHEET_PADDING
	with io.BytesIO() as buffer:
		pdf = reportlab.pdfgen.canvas.Canvas(buffer, pagesize=(SPREADSHEET_PAGE_WIDTH, page_height))
		table.drawOn(pdf, SPREADSHEET_PADDING, SPREADSHEET_PADDING)
		pdf.showPage()
		pdf.save()
		return buffer.getvalue()


#============================================
@contextlib.contextmanager
def open_rendered_pdf(pdf_bytes: bytes):
	"""
	Open an in-memory PDF with PyMuPDF and close it on exit.
	"""
	document = fitz.open(stream=pdf_bytes, filetype="pdf")
	try:
		yield document
	finally:
		document.close()


#============================================
def rasterize_rotated(pdf_bytes: bytes, source_name: str) -> PIL.Image.Image:
	"""
	Rasterize the first page and rotate it 90 degrees clockwise.

	Args:
		pdf_bytes: PDF bytes.
		source_name: File name for error attribution.

	Returns:
		Rotated RGB image.

	Raises:
		ProcessingError: MEMORY_INSUFFICIENT when the bitmap would exceed
			the pixel limit.
	"""
	scale = SPREADSHEET_RENDER_DPI / 72.0
	with open_rendered_pdf(pdf_bytes) as document:
		page = document[0]
		pixel_width = int(round(page.rect.width * scale))
		pixel_height = int(round(page.rect.height * scale))
		if pixel_width * pixel_height > MAX_IMAGE_PIXELS:
			raise ProcessingError(
				ErrorKind.MEMORY_INSUFFICIENT,
				source_name,
				message=(
					f"The rendered table is {pixel_width}x{pixel_height} pixels, "
					f"above the {MAX_IMAGE_PIXELS} pixel limit"
				),
				suggestion="Split the worksheet into smaller workbooks.",
			)
		pixmap = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
		image = PIL.Image.frombytes("RGB", [pixmap.width, pixmap.height], pixmap.samples)
	return image.transpose(PIL.Image.Transpose.ROTATE_270)


#============================================
def render_first_sheet(data: bytes, workbook_format: str | None, source_name: str) -> tuple[bytes, int, int]:
	"""
	Render the first worksheet of a workbook as a rotated PNG.

	Args:
		data: Workbook bytes.
		workbook_format: "xlsx" or "xls".
		source_name: File name for error attribution.

	Returns:
		Tuple of (png_bytes, width, height) of the rotated bitmap.
	"""
	try:
		if workbook_format == "xls":
			rows = read_xls_rows(data, source_name)
		elif workbook_format == "xlsx":
			rows = read_xlsx_rows(data, source_name)
		else:
			raise ProcessingError(ErrorKind.EXCEL_FORMAT_UNSUPPORTED, source_name)
		rows = trim_rows(rows)
		if not rows:
			raise ProcessingError(
				ErrorKind.EXCEL_PARSE_FAILED,
				source_name,
				message="The first sheet has no data",
			)
		pdf_bytes = render_table_pdf(rows)
		image = rasterize_rotated(pdf_bytes, source_name)
		with io.BytesIO() as buffer:
			image.save(buffer, format="PNG")
			png_bytes = buffer.getvalue()
	except ProcessingError:
		raise
	except MemoryError as error:
		raise ProcessingError(ErrorKind.MEMORY_INSUFFICIENT, source_name) from error
	except Exception as error:
		raise ProcessingError(ErrorKind.EXCEL_PARSE_FAILED, source_name) from error
	return (png_bytes, image.width, image.height)
