"""
Sheet composition, PDF output and the layout manifest.
"""

# Standard Library
import io
import json
import pathlib

# PIP3 modules
import pypdf
import reportlab.lib.utils
import reportlab.pdfbase.pdfmetrics
import reportlab.pdfbase.ttfonts
import reportlab.pdfgen.canvas

# local repo modules
import receipt_sheet_converter as rsc
import receipt_sheet_converter.config
import receipt_sheet_converter.errors
import receipt_sheet_converter.layout


ErrorKind = rsc.errors.ErrorKind
ProcessingError = rsc.errors.ProcessingError
LayoutConfig = rsc.config.LayoutConfig
TargetFootprint = rsc.config.TargetFootprint
Sheet = rsc.layout.Sheet
Placement = rsc.layout.Placement
PlacedItem = rsc.layout.PlacedItem

DEFAULT_FONT_REGULAR = rsc.config.DEFAULT_FONT_REGULAR
ANNOTATION_FONT_SIZE = rsc.config.ANNOTATION_FONT_SIZE
ANNOTATION_OFFSET = rsc.config.ANNOTATION_OFFSET
ANNOTATION_GRAY = rsc.config.ANNOTATION_GRAY
CROP_LINE_GRAY = rsc.config.CROP_LINE_GRAY
CROP_LINE_WIDTH = rsc.config.CROP_LINE_WIDTH
CROP_LINE_DASH = rsc.config.CROP_LINE_DASH
CORNER_MARK_GRAY = rsc.config.CORNER_MARK_GRAY
CORNER_MARK_WIDTH = rsc.config.CORNER_MARK_WIDTH
CORNER_MARK_LENGTH = rsc.config.CORNER_MARK_LENGTH


#============================================
def annotation_text(footprint: TargetFootprint) -> str:
	"""
	Build the sheet header line.
	"""
	return f"Target Size: {footprint.label} - Cut along dashed lines"


#============================================
def register_annotation_font(font_path: str | None) -> str:
	"""
	Register a TrueType font for the annotation, if one is configured.

	Args:
		font_path: Path to a .ttf file or None.

	Returns:
		ReportLab font name to draw with.
	"""
	if not font_path:
		return DEFAULT_FONT_REGULAR
	font_name = pathlib.Path(font_path).stem
	if font_name not in reportlab.pdfbase.pdfmetrics.getRegisteredFontNames():
		reportlab.pdfbase.pdfmetrics.registerFont(
			reportlab.pdfbase.ttfonts.TTFont(font_name, font_path)
		)
	return font_name


#============================================
def to_pdf_y(sheet_height: float, placement: Placement) -> float:
	"""
	Convert a top-down placement to the PDF y of the box bottom edge.

	Args:
		sheet_height: Sheet height in points.
		placement: Placement in top-down coordinates.

	Returns:
		Bottom edge y in PDF coordinates.
	"""
	return sheet_height - placement.y - placement.box_height


#============================================
def draw_corner_marks(
	pdf: reportlab.pdfgen.canvas.Canvas,
	x: float,
	y: float,
	width: float,
	height: float,
) -> None:
	"""
	Draw a small cross on each corner of a box.

	Args:
		pdf: ReportLab canvas.
		x: Box left edge.
		y: Box bottom edge.
		width: Box width.
		height: Box height.
	"""
	half = CORNER_MARK_LENGTH / 2.0
	pdf.setStrokeGray(CORNER_MARK_GRAY)
	pdf.setLineWidth(CORNER_MARK_WIDTH)
	corners = [
		(x, y),
		(x + width, y),
		(x, y + height),
		(x + width, y + height),
	]
	for corner_x, corner_y in corners:
		pdf.line(corner_x - half, corner_y, corner_x + half, corner_y)
		pdf.line(corner_x, corner_y - half, corner_x, corner_y + half)


#============================================
def draw_crop_box(
	pdf: reportlab.pdfgen.canvas.Canvas,
	x: float,
	y: float,
	width: float,
	height: float,
) -> None:
	"""
	Draw the dashed cut line and the corner marks around one item.

	Args:
		pdf: ReportLab canvas.
		x: Box left edge.
		y: Box bottom edge.
		width: Box width.
		height: Box height.
	"""
	pdf.saveState()
	pdf.setStrokeGray(CROP_LINE_GRAY)
	pdf.setLineWidth(CROP_LINE_WIDTH)
	pdf.setDash(*CROP_LINE_DASH)
	pdf.rect(x, y, width, height, stroke=1, fill=0)
	pdf.restoreState()
	pdf.saveState()
	draw_corner_marks(pdf, x, y, width, height)
	pdf.restoreState()


#============================================
def draw_annotation(
	pdf: reportlab.pdfgen.canvas.Canvas,
	sheet: Sheet,
	text: str,
	font_name: str,
	margin: float,
) -> None:
	"""
	Draw the size and cut instruction line at the top of a sheet.
	"""
	pdf.saveState()
	pdf.setFillGray(ANNOTATION_GRAY)
	pdf.setFont(font_name, ANNOTATION_FONT_SIZE)
	pdf.drawString(margin, sheet.height - ANNOTATION_OFFSET, text)
	pdf.restoreState()


#============================================
def draw_raster_item(
	pdf: reportlab.pdfgen.canvas.Canvas,
	png_bytes: bytes,
	x: float,
	y: float,
	width: float,
	height: float,
) -> None:
	"""
	Draw a raster payload stretched to its scaled size.
	"""
	image_reader = reportlab.lib.utils.ImageReader(io.BytesIO(png_bytes))
	pdf.drawImage(
		image_reader,
		x,
		y,
		width=width,
		height=height,
		mask="auto",
		preserveAspectRatio=False,
		anchor="sw",
	)


#============================================
def build_overlay_pdf(
	sheets: list[Sheet],
	footprint: TargetFootprint,
	layout: LayoutConfig,
) -> bytes:
	"""
	Draw annotations, raster payloads and crop boxes, one page per sheet.

	Vector payloads are not drawn here; they are merged underneath by
	compose_sheets.

	Args:
		sheets: Packed sheets.
		footprint: Target footprint for the annotation.
		layout: Sheet layout.

	Returns:
		PDF bytes with one page per sheet.
	"""
	font_name = register_annotation_font(layout.font_path)
	text = annotation_text(footprint)
	padding = layout.crop_padding / 2.0
	buffer = io.BytesIO()
	pdf = reportlab.pdfgen.canvas.Canvas(buffer, pagesize=(layout.sheet_width, layout.sheet_height))
	for sheet in sheets:
		draw_annotation(pdf, sheet, text, font_name, layout.margin)
		for placed in sheet.placed:
			placement = placed.placement
			box_y = to_pdf_y(sheet.height, placement)
			if placed.item.is_raster:
				draw_raster_item(
					pdf,
					placed.item.payload,
					placement.x + padding,
					box_y + padding,
					placed.item.scaled_width,
					placed.item.scaled_height,
				)
			draw_crop_box(pdf, placement.x, box_y, placement.box_width, placement.box_height)
		pdf.showPage()
	pdf.save()
	return buffer.getvalue()


#============================================
def vector_transform(placed: PlacedItem, sheet_height: float, padding: float) -> pypdf.Transformation:
	"""
	Build the transform that maps a source page into its crop box.

	Args:
		placed: Placed vector item.
		sheet_height: Sheet height in points.
		padding: Offset of the content inside the crop box.

	Returns:
		pypdf Transformation.
	"""
	item = placed.item
	placement = placed.placement
	mediabox = item.payload.mediabox
	scale = item.scaled_width / item.original_width
	target_x = placement.x + padding
	target_y = to_pdf_y(sheet_height, placement) + padding
	return (
		pypdf.Transformation()
		.translate(-float(mediabox.left), -float(mediabox.bottom))
		.scale(scale, scale)
		.translate(target_x, target_y)
	)


#============================================
def compose_sheets(
	sheets: list[Sheet],
	footprint: TargetFootprint,
	layout: LayoutConfig,
) -> pypdf.PdfWriter:
	"""
	Compose every sheet into an output document.

	Args:
		sheets: Packed sheets.
		footprint: Target footprint.
		layout: Sheet layout.

	Returns:
		PdfWriter holding one page per sheet.

	Raises:
		ProcessingError: CANVAS_ERROR when drawing fails.
	"""
	try:
		overlay_bytes = build_overlay_pdf(sheets, footprint, layout)
		overlay_reader = pypdf.PdfReader(io.BytesIO(overlay_bytes))
		writer = pypdf.PdfWriter()
		padding = layout.crop_padding / 2.0
		for sheet in sheets:
			blank = pypdf.PageObject.create_blank_page(width=sheet.width, height=sheet.height)
			writer.add_page(blank)
			page = writer.pages[-1]
			for placed in sheet.placed:
				if placed.item.is_raster:
					continue
				transform = vector_transform(placed, sheet.height, padding)
				page.merge_transformed_page(placed.item.payload, transform)
			page.merge_page(overlay_reader.pages[sheet.index])
	except ProcessingError:
		raise
	except MemoryError as error:
		raise ProcessingError(ErrorKind.MEMORY_INSUFFICIENT) from error
	except Exception as error:
		raise ProcessingError(ErrorKind.CANVAS_ERROR) from error
	return writer


#============================================
def assemble_document(writer: pypdf.PdfWriter) -> bytes:
	"""
	Serialize the composed document.

	Args:
		writer: Composed PdfWriter.

	Returns:
		PDF bytes.

	Raises:
		ProcessingError: PROCESSING_FAILED or MEMORY_INSUFFICIENT.
	"""
	buffer = io.BytesIO()
	try:
		writer.write(buffer)
	except MemoryError as error:
		raise ProcessingError(ErrorKind.MEMORY_INSUFFICIENT) from error
	except Exception as error:
		raise ProcessingError(ErrorKind.PROCESSING_FAILED) from error
	return buffer.getvalue()


#============================================
def write_manifest(
	manifest_path: pathlib.Path,
	input_names: list[str],
	sheets: list[Sheet],
	footprint: TargetFootprint,
	layout: LayoutConfig,
) -> None:
	"""
	Write a manifest JSON file describing every placement.

	Args:
		manifest_path: Output path.
		input_names: Input file names in submission order.
		sheets: Packed sheets.
		footprint: Target footprint.
		layout: Sheet layout.
	"""
	placements = []
	for sheet in sheets:
		for placed in sheet.placed:
			placements.append(
				{
					"source": placed.item.source_name,
					"sequence": placed.item.sequence_number,
					"raster": placed.item.is_raster,
					"original_size": [placed.item.original_width, placed.item.original_height],
					"scaled_size": [placed.item.scaled_width, placed.item.scaled_height],
					"sheet": placed.placement.sheet_index + 1,
					"x": placed.placement.x,
					"y": placed.placement.y,
				}
			)
	data = {
		"inputs": input_names,
		"sheets": len(sheets),
		"items": len(placements),
		"target": {
			"label": footprint.label,
			"width": footprint.width,
			"height": footprint.height,
		},
		"layout": {
			"sheet_width": layout.sheet_width,
			"sheet_height": layout.sheet_height,
			"margin": layout.margin,
			"gap": layout.gap,
			"footer_reserve": layout.footer_reserve,
			"crop_padding": layout.crop_padding,
		},
		"placements": placements,
	}
	with manifest_path.open("w", encoding="utf-8") as handle:
		json.dump(data, handle, indent=2, sort_keys=True)
