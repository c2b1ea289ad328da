"""
Shared configuration and constants.
"""

# Standard Library
import dataclasses
import math

# PIP3 modules
import reportlab.lib.pagesizes

# local repo modules
import receipt_sheet_converter as rsc
import receipt_sheet_converter.errors


ErrorKind = rsc.errors.ErrorKind
ProcessingError = rsc.errors.ProcessingError

POINTS_PER_CM = 28.346

SHEET_WIDTH, SHEET_HEIGHT = 595.28, 841.89
SHEET_SIZES = {
	"a4": (SHEET_WIDTH, SHEET_HEIGHT),
	"letter": reportlab.lib.pagesizes.letter,
}
SHEET_MARGIN = 20.0
ITEM_GAP = 15.0
FOOTER_RESERVE = 80.0
CROP_PADDING = 10.0
CORNER_MARK_LENGTH = 8.0

DEFAULT_FONT_REGULAR = "Helvetica"
ANNOTATION_FONT_SIZE = 10
ANNOTATION_OFFSET = 12.0
ANNOTATION_GRAY = 0.5
CROP_LINE_GRAY = 0.7
CROP_LINE_WIDTH = 1.0
CROP_LINE_DASH = (5, 5)
CORNER_MARK_GRAY = 0.5
CORNER_MARK_WIDTH = 1.0

MEGABYTE = 1024 * 1024
MAX_PDF_BYTES = 50 * MEGABYTE
MAX_SPREADSHEET_BYTES = 30 * MEGABYTE
MAX_IMAGE_BYTES = 20 * MEGABYTE
PDF_SIGNATURE = b"%PDF"
PDF_HEADER_BYTES = 8
ENCRYPTION_SCAN_BYTES = 2048

SUPPORTED_IMAGE_TYPES = ("image/png", "image/jpeg", "image/jpg", "image/webp")
MAX_IMAGE_PIXELS = 50_000_000
IMAGE_DECODE_TIMEOUT = 30.0

SPREADSHEET_PAGE_WIDTH = 800.0
SPREADSHEET_PADDING = 10.0
SPREADSHEET_MAX_COLUMNS = 12
SPREADSHEET_FONT_SIZE = 9
SPREADSHEET_RENDER_DPI = 144

PROGRESS_BAR_WIDTH = 20


@dataclasses.dataclass(frozen=True)
class SizePreset:
	name: str
	label: str
	width: float
	height: float


SIZE_PRESETS = {
	"small": SizePreset("small", "5.5x8cm", 155.91, 226.77),
	"medium": SizePreset("medium", "8x12cm", 226.77, 340.16),
	"standard": SizePreset("standard", "10x15cm", 283.46, 425.20),
	"large": SizePreset("large", "15x20cm", 425.20, 566.93),
	"extra-large": SizePreset("extra-large", "21x11cm", 595.28, 311.81),
}
DEFAULT_PRESET = "small"


@dataclasses.dataclass
class JobConfig:
	use_custom_size: bool = False
	custom_width_cm: float = 0.0
	custom_height_cm: float = 0.0
	preset_width_pt: float = SIZE_PRESETS[DEFAULT_PRESET].width
	preset_height_pt: float = SIZE_PRESETS[DEFAULT_PRESET].height


@dataclasses.dataclass
class LayoutConfig:
	sheet_width: float = SHEET_WIDTH
	sheet_height: float = SHEET_HEIGHT
	margin: float = SHEET_MARGIN
	gap: float = ITEM_GAP
	footer_reserve: float = FOOTER_RESERVE
	crop_padding: float = CROP_PADDING
	font_path: str | None = None


@dataclasses.dataclass(frozen=True)
class TargetFootprint:
	width: float
	height: float
	label: str


#============================================
def cm_to_points(value: float) -> float:
	"""
	Convert centimetres to points.

	Args:
		value: Centimetre value.

	Returns:
		Points value.
	"""
	return value * POINTS_PER_CM


#============================================
def points_to_cm(value: float) -> float:
	"""
	Convert points to centimetres.
	"""
	return value / POINTS_PER_CM


#============================================
def format_cm(value: float) -> str:
	"""
	Format a centimetre value without trailing zeros.

	Args:
		value: Centimetre value.

	Returns:
		Short string such as "10" or "5.5".
	"""
	return f"{value:.2f}".rstrip("0").rstrip(".")


#============================================
def preset_config(name: str) -> JobConfig:
	"""
	Build a job config for a named size preset.

	Args:
		name: Preset key from SIZE_PRESETS.

	Returns:
		JobConfig using the preset size.
	"""
	preset = SIZE_PRESETS[name]
	return JobConfig(
		use_custom_size=False,
		preset_width_pt=preset.width,
		preset_height_pt=preset.height,
	)


#============================================
def custom_config(width_cm: float, height_cm: float) -> JobConfig:
	"""
	Build a job config for a custom size in centimetres.
	"""
	return JobConfig(
		use_custom_size=True,
		custom_width_cm=width_cm,
		custom_height_cm=height_cm,
	)


#============================================
def resolve_footprint(config: JobConfig) -> TargetFootprint:
	"""
	Resolve the target footprint for a job.

	Args:
		config: Job configuration.

	Returns:
		TargetFootprint in points.

	Raises:
		ProcessingError: SIZE_INVALID for non-positive or non-finite sizes.
	"""
	try:
		if config.use_custom_size:
			width = cm_to_points(float(config.custom_width_cm))
			height = cm_to_points(float(config.custom_height_cm))
			label = f"{format_cm(float(config.custom_width_cm))}x{format_cm(float(config.custom_height_cm))}cm"
		else:
			width = float(config.preset_width_pt)
			height = float(config.preset_height_pt)
			label = f"{points_to_cm(width):.1f}x{points_to_cm(height):.1f}cm"
	except (TypeError, ValueError) as error:
		raise ProcessingError(ErrorKind.SIZE_INVALID) from error

	if not math.isfinite(width) or not math.isfinite(height):
		raise ProcessingError(ErrorKind.SIZE_INVALID)
	if width <= 0.0 or height <= 0.0:
		raise ProcessingError(ErrorKind.SIZE_INVALID)
	return TargetFootprint(width=width, height=height, label=label)


#============================================
def printable_footprint(footprint: TargetFootprint, layout: LayoutConfig) -> TargetFootprint:
	"""
	Clamp a footprint so one crop box always fits on a sheet.

	Args:
		footprint: Requested footprint.
		layout: Sheet layout.

	Returns:
		The footprint itself when it fits, otherwise a smaller footprint
		whose label states the size actually used.
	"""
	max_width = layout.sheet_width - 2.0 * layout.margin - layout.crop_padding
	max_height = (
		layout.sheet_height - 2.0 * layout.margin - layout.footer_reserve - layout.crop_padding
	)
	if max_width <= 0.0 or max_height <= 0.0:
		raise ValueError("sheet is too small for the configured margins")
	if footprint.width <= max_width and footprint.height <= max_height:
		return footprint
	width = min(footprint.width, max_width)
	height = min(footprint.height, max_height)
	label = f"{points_to_cm(width):.1f}x{points_to_cm(height):.1f}cm"
	return TargetFootprint(width=width, height=height, label=label)
