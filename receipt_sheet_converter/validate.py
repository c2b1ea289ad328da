"""
Input files and header/size checks run before any parsing.
"""

# Standard Library
import dataclasses
import mimetypes
import pathlib

# local repo modules
import receipt_sheet_converter as rsc
import receipt_sheet_converter.config
import receipt_sheet_converter.errors


ErrorKind = rsc.errors.ErrorKind
ProcessingError = rsc.errors.ProcessingError

MAX_PDF_BYTES = rsc.config.MAX_PDF_BYTES
MAX_SPREADSHEET_BYTES = rsc.config.MAX_SPREADSHEET_BYTES
MAX_IMAGE_BYTES = rsc.config.MAX_IMAGE_BYTES
PDF_SIGNATURE = rsc.config.PDF_SIGNATURE
PDF_HEADER_BYTES = rsc.config.PDF_HEADER_BYTES
ENCRYPTION_SCAN_BYTES = rsc.config.ENCRYPTION_SCAN_BYTES
SUPPORTED_IMAGE_TYPES = rsc.config.SUPPORTED_IMAGE_TYPES

KIND_PDF = "pdf"
KIND_IMAGE = "image"
KIND_SPREADSHEET = "spreadsheet"
KIND_UNSUPPORTED = "unsupported"

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".gif", ".bmp", ".tif", ".tiff", ".heic"}
SPREADSHEET_EXTENSIONS = {".xlsx", ".xls", ".xlsm", ".xlsb", ".ods", ".csv"}
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
XLS_MIME = "application/vnd.ms-excel"
SPREADSHEET_MIME_MARKERS = ("spreadsheet", "excel", "text/csv")
# mimetypes tables differ between platforms for these
EXTENSION_TYPES = {
	".pdf": "application/pdf",
	".png": "image/png",
	".jpg": "image/jpeg",
	".jpeg": "image/jpeg",
	".webp": "image/webp",
	".xlsx": XLSX_MIME,
	".xls": XLS_MIME,
}

SIZE_LIMITS = {
	KIND_PDF: MAX_PDF_BYTES,
	KIND_IMAGE: MAX_IMAGE_BYTES,
	KIND_SPREADSHEET: MAX_SPREADSHEET_BYTES,
}


@dataclasses.dataclass(frozen=True)
class InputFile:
	name: str
	mime_type: str
	data: bytes

	@property
	def size(self) -> int:
		return len(self.data)

	@property
	def extension(self) -> str:
		return pathlib.PurePath(self.name).suffix.lower()

	@classmethod
	def from_path(cls, path: pathlib.Path) -> "InputFile":
		"""
		Read an input file from disk.

		Args:
			path: File path.

		Returns:
			InputFile with a MIME type guessed from the extension.
		"""
		mime_type = EXTENSION_TYPES.get(path.suffix.lower())
		if mime_type is None:
			mime_type, _encoding = mimetypes.guess_type(path.name)
		return cls(
			name=path.name,
			mime_type=mime_type or "application/octet-stream",
			data=path.read_bytes(),
		)


#============================================
def classify_file(input_file: InputFile) -> str:
	"""
	Classify an input file by declared MIME type and extension.

	Args:
		input_file: Input file.

	Returns:
		One of KIND_PDF, KIND_IMAGE, KIND_SPREADSHEET, KIND_UNSUPPORTED.
	"""
	mime_type = (input_file.mime_type or "").strip().lower()
	extension = input_file.extension
	if mime_type == "application/pdf" or extension == ".pdf":
		return KIND_PDF
	if mime_type.startswith("image/") or extension in IMAGE_EXTENSIONS:
		return KIND_IMAGE
	if any(marker in mime_type for marker in SPREADSHEET_MIME_MARKERS):
		return KIND_SPREADSHEET
	if extension in SPREADSHEET_EXTENSIONS:
		return KIND_SPREADSHEET
	return KIND_UNSUPPORTED


#============================================
def spreadsheet_format(input_file: InputFile) -> str | None:
	"""
	Work out which supported workbook format a file declares.

	Args:
		input_file: Input file.

	Returns:
		"xlsx", "xls", or None when neither matches.
	"""
	mime_type = (input_file.mime_type or "").strip().lower()
	if input_file.extension == ".xlsx" or mime_type == XLSX_MIME:
		return "xlsx"
	if input_file.extension == ".xls" or mime_type == XLS_MIME:
		return "xls"
	return None


#============================================
def check_pdf_header(input_file: InputFile) -> None:
	"""
	Check the PDF signature and scan the header for an encryption marker.

	Args:
		input_file: PDF input file.
	"""
	header = input_file.data[:PDF_HEADER_BYTES]
	if not header.startswith(PDF_SIGNATURE):
		raise ProcessingError(ErrorKind.FILE_INVALID, input_file.name)
	# best effort, a trailer-only /Encrypt is caught by the parser later
	head_text = input_file.data[:ENCRYPTION_SCAN_BYTES].decode("latin-1")
	if "/Encrypt" in head_text and "/V 0" not in head_text:
		raise ProcessingError(ErrorKind.FILE_ENCRYPTED, input_file.name)


#============================================
def validate_file(input_file: InputFile) -> str:
	"""
	Run the header, type and size checks for one input file.

	Args:
		input_file: Input file.

	Returns:
		File kind from classify_file.

	Raises:
		ProcessingError: first failed check, attributed to the file.
	"""
	try:
		if input_file.size == 0:
			raise ProcessingError(ErrorKind.FILE_EMPTY, input_file.name)
		kind = classify_file(input_file)
		if kind == KIND_UNSUPPORTED:
			raise ProcessingError(ErrorKind.FILE_INVALID, input_file.name)
		limit = SIZE_LIMITS[kind]
		if input_file.size > limit:
			raise ProcessingError(
				ErrorKind.FILE_TOO_LARGE,
				input_file.name,
				suggestion=f"Compress the file below {limit // (1024 * 1024)}MB or process it in smaller batches.",
			)
		if kind == KIND_PDF:
			check_pdf_header(input_file)
		elif kind == KIND_IMAGE:
			mime_type = (input_file.mime_type or "").strip().lower()
			if mime_type not in SUPPORTED_IMAGE_TYPES:
				raise ProcessingError(ErrorKind.IMAGE_FORMAT_UNSUPPORTED, input_file.name)
		elif spreadsheet_format(input_file) is None:
			raise ProcessingError(ErrorKind.EXCEL_FORMAT_UNSUPPORTED, input_file.name)
	except ProcessingError:
		raise
	except Exception as error:
		raise ProcessingError(ErrorKind.FILE_CORRUPTED, input_file.name) from error
	return kind
