import pytest

import receipt_sheet_converter.config
import receipt_sheet_converter.errors
import receipt_sheet_converter.validate


ErrorKind = receipt_sheet_converter.errors.ErrorKind
ProcessingError = receipt_sheet_converter.errors.ProcessingError
InputFile = receipt_sheet_converter.validate.InputFile
validate_file = receipt_sheet_converter.validate.validate_file
XLSX_MIME = receipt_sheet_converter.validate.XLSX_MIME


#============================================
def _expect_kind(input_file: InputFile, kind: ErrorKind) -> ProcessingError:
	"""
	Validate a file and check the raised error kind.

	Args:
		input_file: File to validate.
		kind: Expected error kind.

	Returns:
		The raised error.
	"""
	with pytest.raises(ProcessingError) as info:
		validate_file(input_file)
	assert info.value.kind == kind
	assert info.value.source_name == input_file.name
	return info.value


#============================================
@pytest.mark.parametrize(
	"name,mime_type",
	[
		("a.pdf", "application/pdf"),
		("a.png", "image/png"),
		("a.xlsx", XLSX_MIME),
		("a.bin", "application/octet-stream"),
	],
)
def test_empty_file_of_any_type(name: str, mime_type: str) -> None:
	"""
	Zero-byte files fail with FILE_EMPTY regardless of type.
	"""
	_expect_kind(InputFile(name=name, mime_type=mime_type, data=b""), ErrorKind.FILE_EMPTY)


#============================================
def test_size_ceilings_per_type() -> None:
	"""
	Each type has its own byte ceiling.
	"""
	config = receipt_sheet_converter.config
	pdf_data = b"%PDF-1.7\n" + b"0" * config.MAX_PDF_BYTES
	_expect_kind(InputFile("big.pdf", "application/pdf", pdf_data), ErrorKind.FILE_TOO_LARGE)

	image_data = b"\x89PNG" + b"0" * config.MAX_IMAGE_BYTES
	_expect_kind(InputFile("big.png", "image/png", image_data), ErrorKind.FILE_TOO_LARGE)

	sheet_data = b"PK" + b"0" * config.MAX_SPREADSHEET_BYTES
	_expect_kind(InputFile("big.xlsx", XLSX_MIME, sheet_data), ErrorKind.FILE_TOO_LARGE)


#============================================
def test_image_at_exact_ceiling_passes() -> None:
	"""
	A file exactly at its ceiling is accepted.
	"""
	data = b"0" * receipt_sheet_converter.config.MAX_IMAGE_BYTES
	kind = validate_file(InputFile("edge.png", "image/png", data))
	assert kind == receipt_sheet_converter.validate.KIND_IMAGE


#============================================
def test_pdf_signature_required() -> None:
	"""
	A PDF without the %PDF signature is invalid.
	"""
	_expect_kind(
		InputFile("fake.pdf", "application/pdf", b"<html>not a pdf</html>"),
		ErrorKind.FILE_INVALID,
	)


#============================================
def test_pdf_encryption_marker() -> None:
	"""
	An /Encrypt marker in the header area flags the PDF as encrypted.
	"""
	data = b"%PDF-1.4\n1 0 obj << /Filter /Standard /V 2 >> endobj\ntrailer << /Encrypt 1 0 R >>"
	_expect_kind(InputFile("locked.pdf", "application/pdf", data), ErrorKind.FILE_ENCRYPTED)


#============================================
def test_pdf_encryption_marker_version_zero_passes() -> None:
	"""
	The /V 0 variant is not treated as encrypted.
	"""
	data = b"%PDF-1.4\n1 0 obj << /Filter /Standard /V 0 >> endobj\ntrailer << /Encrypt 1 0 R >>"
	kind = validate_file(InputFile("open.pdf", "application/pdf", data))
	assert kind == receipt_sheet_converter.validate.KIND_PDF


#============================================
def test_valid_pdf_passes(pdf_file: InputFile) -> None:
	"""
	A generated PDF passes the header checks.
	"""
	assert validate_file(pdf_file) == receipt_sheet_converter.validate.KIND_PDF


#============================================
@pytest.mark.parametrize("mime_type", ["image/gif", "image/bmp", "image/tiff"])
def test_unsupported_image_types(mime_type: str) -> None:
	"""
	Only PNG, JPEG and WebP images are accepted.
	"""
	_expect_kind(
		InputFile("photo.img", mime_type, b"GIF89a..."),
		ErrorKind.IMAGE_FORMAT_UNSUPPORTED,
	)


#============================================
@pytest.mark.parametrize("mime_type", ["image/png", "image/jpeg", "image/jpg", "image/webp"])
def test_supported_image_types(mime_type: str) -> None:
	"""
	Supported image MIME types pass without decoding.
	"""
	kind = validate_file(InputFile("photo", mime_type, b"\x00\x01"))
	assert kind == receipt_sheet_converter.validate.KIND_IMAGE


#============================================
@pytest.mark.parametrize(
	"name,mime_type",
	[
		("table.csv", "text/csv"),
		("table.ods", "application/vnd.oasis.opendocument.spreadsheet"),
		("table.xlsm", "application/octet-stream"),
	],
)
def test_unsupported_spreadsheet_types(name: str, mime_type: str) -> None:
	"""
	Spreadsheets other than .xlsx and .xls are rejected.
	"""
	_expect_kind(InputFile(name, mime_type, b"a,b\n1,2\n"), ErrorKind.EXCEL_FORMAT_UNSUPPORTED)


#============================================
@pytest.mark.parametrize(
	"name,mime_type",
	[
		("table.xlsx", XLSX_MIME),
		("table.xls", "application/vnd.ms-excel"),
		("table.xlsx", "application/octet-stream"),
	],
)
def test_supported_spreadsheet_types(name: str, mime_type: str) -> None:
	"""
	.xlsx and .xls are accepted by MIME type or extension.
	"""
	kind = validate_file(InputFile(name, mime_type, b"PK\x03\x04"))
	assert kind == receipt_sheet_converter.validate.KIND_SPREADSHEET


#============================================
def test_unknown_type_is_invalid() -> None:
	"""
	Files that are none of the supported kinds are invalid.
	"""
	_expect_kind(InputFile("notes.txt", "text/plain", b"hello"), ErrorKind.FILE_INVALID)


#============================================
def test_unexpected_inspection_error_is_corrupted() -> None:
	"""
	Unexpected exceptions while inspecting bytes become FILE_CORRUPTED.
	"""

	class BrokenBytes(bytes):
		def __getitem__(self, key):
			raise RuntimeError("read failed")

	error = _expect_kind(
		InputFile("broken.pdf", "application/pdf", BrokenBytes(b"%PDF-1.4")),
		ErrorKind.FILE_CORRUPTED,
	)
	assert isinstance(error.__cause__, RuntimeError)


#============================================
def test_from_path_guesses_types(tmp_path) -> None:
	"""
	Files read from disk get a MIME type from their extension.
	"""
	path = tmp_path / "scan.webp"
	path.write_bytes(b"RIFF0000WEBP")
	input_file = InputFile.from_path(path)
	assert input_file.mime_type == "image/webp"
	assert input_file.size == 12
	assert input_file.name == "scan.webp"
