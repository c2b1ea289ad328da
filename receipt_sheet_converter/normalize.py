"""
Turn validated input files into page items.
"""

# Standard Library
import concurrent.futures
import dataclasses
import io
import threading

# PIP3 modules
import PIL.Image
import PIL.ImageOps
import pypdf
import pypdf.errors

# local repo modules
import receipt_sheet_converter as rsc
import receipt_sheet_converter.config
import receipt_sheet_converter.errors
import receipt_sheet_converter.spreadsheet
import receipt_sheet_converter.validate


ErrorKind = rsc.errors.ErrorKind
ProcessingError = rsc.errors.ProcessingError
InputFile = rsc.validate.InputFile

MAX_IMAGE_PIXELS = rsc.config.MAX_IMAGE_PIXELS
IMAGE_DECODE_TIMEOUT = rsc.config.IMAGE_DECODE_TIMEOUT


@dataclasses.dataclass
class PageItem:
	source_name: str
	sequence_number: int
	original_width: float
	original_height: float
	# pypdf.PageObject when is_raster is False, PNG bytes otherwise
	payload: object
	is_raster: bool
	scaled_width: float = 0.0
	scaled_height: float = 0.0

	@property
	def label(self) -> str:
		if self.is_raster:
			return self.source_name
		return f"{self.source_name} p{self.sequence_number}"


#============================================
def open_pdf_reader(input_file: InputFile) -> pypdf.PdfReader:
	"""
	Open a PDF and unlock documents that only carry an owner password.

	Args:
		input_file: PDF input file.

	Returns:
		PdfReader ready for page access.
	"""
	try:
		reader = pypdf.PdfReader(io.BytesIO(input_file.data))
	except pypdf.errors.FileNotDecryptedError as error:
		raise ProcessingError(ErrorKind.FILE_ENCRYPTED, input_file.name) from error
	except Exception as error:
		raise ProcessingError(ErrorKind.PDF_PARSE_FAILED, input_file.name) from error

	if reader.is_encrypted:
		try:
			result = reader.decrypt("")
		except Exception as error:
			raise ProcessingError(ErrorKind.FILE_ENCRYPTED, input_file.name) from error
		if result == pypdf.PasswordType.NOT_DECRYPTED:
			raise ProcessingError(ErrorKind.FILE_ENCRYPTED, input_file.name)
	return reader


#============================================
def normalize_pdf(input_file: InputFile) -> list[PageItem]:
	"""
	Build one vector page item per PDF page.

	Args:
		input_file: Validated PDF input file.

	Returns:
		Page items in page order.
	"""
	reader = open_pdf_reader(input_file)
	try:
		pages = list(reader.pages)
	except Exception as error:
		raise ProcessingError(ErrorKind.PDF_PARSE_FAILED, input_file.name) from error
	if not pages:
		raise ProcessingError(ErrorKind.PDF_NO_PAGES, input_file.name)

	items: list[PageItem] = []
	for page_number, page in enumerate(pages, start=1):
		try:
			if page.rotation % 360 != 0:
				page.transfer_rotation_to_content()
			width = float(page.mediabox.width)
			height = float(page.mediabox.height)
		except Exception as error:
			raise ProcessingError(ErrorKind.PDF_PARSE_FAILED, input_file.name) from error
		if width <= 0.0 or height <= 0.0:
			raise ProcessingError(
				ErrorKind.PDF_PARSE_FAILED,
				input_file.name,
				message=f"Page {page_number} has an empty page box",
			)
		items.append(
			PageItem(
				source_name=input_file.name,
				sequence_number=page_number,
				original_width=width,
				original_height=height,
				payload=page,
				is_raster=False,
			)
		)
	return items


#============================================
def decode_image(data: bytes, source_name: str) -> tuple[bytes, int, int]:
	"""
	Decode an image and re-encode it as PNG.

	Args:
		data: Encoded image bytes.
		source_name: File name for error attribution.

	Returns:
		Tuple of (png_bytes, width, height).
	"""
	try:
		image = PIL.Image.open(io.BytesIO(data))
	except PIL.Image.DecompressionBombError as error:
		raise ProcessingError(ErrorKind.MEMORY_INSUFFICIENT, source_name) from error
	except Exception as error:
		raise ProcessingError(ErrorKind.IMAGE_LOAD_FAILED, source_name) from error

	with image:
		width, height = image.size
		if width <= 0 or height <= 0:
			raise ProcessingError(ErrorKind.IMAGE_LOAD_FAILED, source_name)
		if width * height > MAX_IMAGE_PIXELS:
			raise ProcessingError(
				ErrorKind.MEMORY_INSUFFICIENT,
				source_name,
				message=f"Image is {width}x{height} pixels, above the {MAX_IMAGE_PIXELS} pixel limit",
			)
		try:
			image.load()
			upright = PIL.ImageOps.exif_transpose(image)
			if upright.mode not in ("RGB", "RGBA", "L", "LA"):
				if "transparency" in upright.info or upright.mode in ("PA", "P"):
					upright = upright.convert("RGBA")
				else:
					upright = upright.convert("RGB")
			buffer = io.BytesIO()
			upright.save(buffer, format="PNG")
		except MemoryError as error:
			raise ProcessingError(ErrorKind.MEMORY_INSUFFICIENT, source_name) from error
		except Exception as error:
			raise ProcessingError(ErrorKind.IMAGE_LOAD_FAILED, source_name) from error
		return (buffer.getvalue(), upright.width, upright.height)


#============================================
def normalize_image(input_file: InputFile) -> list[PageItem]:
	"""
	Build a single raster page item from an image file.

	Decoding runs on a worker thread so a stuck decoder turns into an
	IMAGE_LOAD_FAILED error instead of a hang. Pillow cannot be interrupted,
	so a timed out decode keeps running in the background; the worker is a
	daemon thread and does not hold up interpreter exit.

	Args:
		input_file: Validated image input file.

	Returns:
		List with one page item.
	"""
	future: concurrent.futures.Future = concurrent.futures.Future()

	def _decode() -> None:
		try:
			future.set_result(decode_image(input_file.data, input_file.name))
		except Exception as error:
			future.set_exception(error)

	worker = threading.Thread(
		target=_decode,
		name=f"decode-{input_file.name}",
		daemon=True,
	)
	worker.start()
	try:
		png_bytes, width, height = future.result(timeout=IMAGE_DECODE_TIMEOUT)
	except concurrent.futures.TimeoutError as error:
		raise ProcessingError(
			ErrorKind.IMAGE_LOAD_FAILED,
			input_file.name,
			message=f"Image decoding took longer than {IMAGE_DECODE_TIMEOUT:g} seconds",
		) from error

	item = PageItem(
		source_name=input_file.name,
		sequence_number=1,
		original_width=float(width),
		original_height=float(height),
		payload=png_bytes,
		is_raster=True,
	)
	return [item]


#============================================
def normalize_spreadsheet(input_file: InputFile) -> list[PageItem]:
	"""
	Build a single raster page item from the first worksheet.

	Args:
		input_file: Validated spreadsheet input file.

	Returns:
		List with one page item.
	"""
	workbook_format = rsc.validate.spreadsheet_format(input_file)
	png_bytes, width, height = rsc.spreadsheet.render_first_sheet(
		input_file.data,
		workbook_format,
		input_file.name,
	)
	item = PageItem(
		source_name=input_file.name,
		sequence_number=1,
		original_width=float(width),
		original_height=float(height),
		payload=png_bytes,
		is_raster=True,
	)
	return [item]


#============================================
def normalize_file(input_file: InputFile, kind: str) -> list[PageItem]:
	"""
	Dispatch a validated file to the matching normalizer.

	Args:
		input_file: Validated input file.
		kind: File kind from rsc.validate.validate_file.

	Returns:
		Page items for the file, never empty.
	"""
	try:
		if kind == rsc.validate.KIND_PDF:
			return normalize_pdf(input_file)
		if kind == rsc.validate.KIND_IMAGE:
			return normalize_image(input_file)
		if kind == rsc.validate.KIND_SPREADSHEET:
			return normalize_spreadsheet(input_file)
	except ProcessingError:
		raise
	except MemoryError as error:
		raise ProcessingError(ErrorKind.MEMORY_INSUFFICIENT, input_file.name) from error
	except Exception as error:
		raise ProcessingError(ErrorKind.PROCESSING_FAILED, input_file.name) from error
	raise ValueError(f"unknown file kind: {kind}")
