"""
Processing error kinds and the user-facing message table.
"""

# Standard Library
import enum


class ErrorKind(enum.Enum):
	FILE_INVALID = "FILE_INVALID"
	FILE_CORRUPTED = "FILE_CORRUPTED"
	FILE_ENCRYPTED = "FILE_ENCRYPTED"
	FILE_TOO_LARGE = "FILE_TOO_LARGE"
	FILE_EMPTY = "FILE_EMPTY"
	IMAGE_LOAD_FAILED = "IMAGE_LOAD_FAILED"
	IMAGE_FORMAT_UNSUPPORTED = "IMAGE_FORMAT_UNSUPPORTED"
	PDF_PARSE_FAILED = "PDF_PARSE_FAILED"
	PDF_NO_PAGES = "PDF_NO_PAGES"
	EXCEL_PARSE_FAILED = "EXCEL_PARSE_FAILED"
	EXCEL_NO_SHEETS = "EXCEL_NO_SHEETS"
	EXCEL_FORMAT_UNSUPPORTED = "EXCEL_FORMAT_UNSUPPORTED"
	SIZE_INVALID = "SIZE_INVALID"
	MEMORY_INSUFFICIENT = "MEMORY_INSUFFICIENT"
	PROCESSING_FAILED = "PROCESSING_FAILED"
	CANVAS_ERROR = "CANVAS_ERROR"
	NETWORK_ERROR = "NETWORK_ERROR"
	NO_INPUT_FILES = "NO_INPUT_FILES"


# (message, suggestion) per kind
ERROR_MESSAGES = {
	ErrorKind.FILE_INVALID: (
		"Unsupported file format",
		"Upload a PDF, a PNG/JPG/WebP image or an Excel spreadsheet.",
	),
	ErrorKind.FILE_CORRUPTED: (
		"The file is damaged or not in the expected format",
		"Download the original file again or try another version of it.",
	),
	ErrorKind.FILE_ENCRYPTED: (
		"The PDF is encrypted",
		"Remove the password protection or save the PDF as a new file.",
	),
	ErrorKind.FILE_TOO_LARGE: (
		"The file is too large",
		"Compress the file below the size limit or process it in smaller batches.",
	),
	ErrorKind.FILE_EMPTY: (
		"The file is empty or has no usable content",
		"Check the file and fetch the original again if needed.",
	),
	ErrorKind.IMAGE_LOAD_FAILED: (
		"The image could not be loaded",
		"Make sure the image is complete and not damaged, then save it again.",
	),
	ErrorKind.IMAGE_FORMAT_UNSUPPORTED: (
		"Unsupported image format",
		"Convert the image to PNG, JPG or WebP.",
	),
	ErrorKind.PDF_PARSE_FAILED: (
		"The PDF could not be parsed",
		"Check the PDF opens normally, or re-save it with a PDF reader.",
	),
	ErrorKind.PDF_NO_PAGES: (
		"The PDF has no pages",
		"Check that the PDF has actual content.",
	),
	ErrorKind.EXCEL_PARSE_FAILED: (
		"The spreadsheet could not be read",
		"Check the workbook opens in Excel and that its first sheet has data.",
	),
	ErrorKind.EXCEL_NO_SHEETS: (
		"The spreadsheet has no sheets",
		"Add at least one worksheet with data to the workbook.",
	),
	ErrorKind.EXCEL_FORMAT_UNSUPPORTED: (
		"Unsupported spreadsheet format",
		"Save the spreadsheet as .xlsx or .xls.",
	),
	ErrorKind.SIZE_INVALID: (
		"The target size is invalid",
		"Enter a width and height greater than zero.",
	),
	ErrorKind.MEMORY_INSUFFICIENT: (
		"Not enough memory to process the file",
		"Use a smaller image or process fewer files at once.",
	),
	ErrorKind.PROCESSING_FAILED: (
		"Processing the files failed",
		"Try again, or try with smaller files.",
	),
	ErrorKind.CANVAS_ERROR: (
		"Drawing the output sheet failed",
		"Try again with fewer files or a smaller target size.",
	),
	ErrorKind.NETWORK_ERROR: (
		"A network error occurred",
		"Check the connection and try again.",
	),
	ErrorKind.NO_INPUT_FILES: (
		"No files were provided",
		"Add at least one PDF, image or spreadsheet.",
	),
}


class ProcessingError(Exception):
	"""
	A job failure with a user-facing message and a remediation hint.

	The original exception, when there is one, is kept as __cause__ by
	raising with `from`.
	"""

	def __init__(
		self,
		kind: ErrorKind,
		source_name: str | None = None,
		message: str | None = None,
		suggestion: str | None = None,
	) -> None:
		default_message, default_suggestion = ERROR_MESSAGES[kind]
		self.kind = kind
		self.message = message or default_message
		self.suggestion = suggestion or default_suggestion
		self.source_name = source_name
		super().__init__(self.message)

	def __str__(self) -> str:
		if self.source_name:
			return f"{self.kind.value}: {self.message} ({self.source_name})"
		return f"{self.kind.value}: {self.message}"

	def to_dict(self) -> dict:
		"""
		Serialize the error for JSON output.

		Returns:
			Dict with kind, message, suggestion, source and cause.
		"""
		cause = None
		if self.__cause__ is not None:
			cause = repr(self.__cause__)
		return {
			"kind": self.kind.value,
			"message": self.message,
			"suggestion": self.suggestion,
			"source": self.source_name,
			"cause": cause,
		}
