"""
CLI entry point for laying out receipts on printable sheets.
"""

# Standard Library
import argparse
import pathlib
import sys
import time

# local repo modules
import receipt_sheet_converter as rsc
import receipt_sheet_converter.config
import receipt_sheet_converter.errors
import receipt_sheet_converter.pipeline
import receipt_sheet_converter.render
import receipt_sheet_converter.validate


JobConfig = rsc.config.JobConfig
LayoutConfig = rsc.config.LayoutConfig
ProcessingError = rsc.errors.ProcessingError
ProgressEvent = rsc.pipeline.ProgressEvent
InputFile = rsc.validate.InputFile

SIZE_PRESETS = rsc.config.SIZE_PRESETS
SHEET_SIZES = rsc.config.SHEET_SIZES
DEFAULT_PRESET = rsc.config.DEFAULT_PRESET
PROGRESS_BAR_WIDTH = rsc.config.PROGRESS_BAR_WIDTH


#============================================
def print_progress(event: ProgressEvent) -> None:
	"""
	Print a simple progress bar.

	Args:
		event: Progress event from the job.
	"""
	percent = int(round(event.percent))
	filled = int(round(PROGRESS_BAR_WIDTH * percent / 100.0))
	bar = "#" * filled + "-" * (PROGRESS_BAR_WIDTH - filled)
	print(f"[{bar}] {percent:3d}% {event.message}".ljust(79), end="\r")
	if percent >= 100:
		print()


#============================================
def build_job_config(args: argparse.Namespace) -> JobConfig:
	"""
	Build the target size config from CLI args.

	Args:
		args: Parsed argparse namespace.

	Returns:
		JobConfig.
	"""
	if args.width_cm is not None or args.height_cm is not None:
		return rsc.config.custom_config(args.width_cm or 0.0, args.height_cm or 0.0)
	return rsc.config.preset_config(args.preset)


#============================================
def build_layout_config(args: argparse.Namespace) -> LayoutConfig:
	"""
	Build the sheet layout from CLI args.

	Args:
		args: Parsed argparse namespace.

	Returns:
		LayoutConfig.
	"""
	sheet_width, sheet_height = SHEET_SIZES[args.sheet]
	return LayoutConfig(
		sheet_width=sheet_width,
		sheet_height=sheet_height,
		font_path=args.font_path,
	)


#============================================
def gather_input_files(inputs: list[str]) -> list[InputFile]:
	"""
	Read input files in the order given on the command line.

	Args:
		inputs: File paths.

	Returns:
		InputFile list.
	"""
	files = []
	for entry in inputs:
		path = pathlib.Path(entry).expanduser()
		if not path.is_file():
			raise FileNotFoundError(f"Input file not found: {path}")
		files.append(InputFile.from_path(path))
	return files


#============================================
def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	"""
	Parse command line arguments.

	Returns:
		Parsed argparse namespace.
	"""
	parser = argparse.ArgumentParser(
		description="Lay out PDFs, images and spreadsheets at a fixed size on printable sheets with crop marks.",
	)
	parser.add_argument("inputs", nargs="+", help="PDF, PNG/JPEG/WebP or XLSX/XLS files, in layout order.")

	output_group = parser.add_argument_group("Output")
	output_group.add_argument("-o", "--output", dest="output_path", required=True, help="Output PDF path.")
	output_group.add_argument("-m", "--manifest", dest="manifest_path", default=None, help="Output manifest JSON path.")

	size_group = parser.add_argument_group("Target size")
	size_group.add_argument(
		"-s", "--preset", dest="preset", choices=sorted(SIZE_PRESETS), default=DEFAULT_PRESET,
		help="Size preset for each document.",
	)
	size_group.add_argument("-W", "--width-cm", dest="width_cm", type=float, default=None, help="Custom width in cm.")
	size_group.add_argument("-H", "--height-cm", dest="height_cm", type=float, default=None, help="Custom height in cm.")

	sheet_group = parser.add_argument_group("Sheet")
	sheet_group.add_argument("--sheet", dest="sheet", choices=sorted(SHEET_SIZES), default="a4", help="Output sheet size.")
	sheet_group.add_argument("-f", "--font", dest="font_path", default=None, help="TrueType font for the sheet header.")

	behavior_group = parser.add_argument_group("Behavior")
	behavior_group.add_argument("-v", "--verbose", dest="verbose", action="store_true", help="Print phase details.")
	behavior_group.add_argument("-q", "--quiet", dest="quiet", action="store_true", help="Do not print progress.")

	args = parser.parse_args(argv)
	return args


#============================================
def run_pipeline(args: argparse.Namespace) -> int:
	"""
	Run a job from CLI args and write the output files.

	Args:
		args: Parsed argparse namespace.

	Returns:
		Process exit status.
	"""
	job_config = build_job_config(args)
	layout = build_layout_config(args)
	print("Receipt sheet layout")
	print(f"Output PDF: {args.output_path}")
	if job_config.use_custom_size:
		print(f"Target size: {job_config.custom_width_cm}x{job_config.custom_height_cm}cm")
	else:
		print(f"Target size: {SIZE_PRESETS[args.preset].label} ({args.preset})")
	print(f"Sheet: {args.sheet}")

	files = gather_input_files(args.inputs)
	print(f"Input files: {len(files)}")

	progress = None if args.quiet else print_progress
	start_time = time.perf_counter()
	try:
		result = rsc.pipeline.run_job(
			files,
			job_config,
			layout=layout,
			progress=progress,
			verbose=args.verbose,
		)
	except ProcessingError as error:
		print()
		print(f"Error: {error.message}")
		if error.source_name:
			print(f"File: {error.source_name}")
		print(f"Suggestion: {error.suggestion}")
		if args.verbose and error.__cause__ is not None:
			print(f"Cause: {error.__cause__!r}")
		return 1
	job_end = time.perf_counter()

	if result.requested_footprint is not None and result.footprint != result.requested_footprint:
		print(f"Target size clamped to the printable area: {result.footprint.label}")
	output_path = pathlib.Path(args.output_path)
	output_path.write_bytes(result.pdf_bytes)
	print(f"Items placed: {result.item_count}")
	print(f"Sheets written: {result.sheet_count}")

	if args.manifest_path:
		rsc.render.write_manifest(
			pathlib.Path(args.manifest_path),
			result.input_names,
			result.sheets,
			result.footprint,
			layout,
		)
		print(f"Manifest written: {args.manifest_path}")

	print(f"Timing: total={job_end - start_time:.2f}s")
	return 0


#============================================
def main() -> None:
	"""
	Main entry point.
	"""
	args = parse_args()
	sys.exit(run_pipeline(args))
