"""
Job orchestration from input files to the finished sheet PDF.
"""

# Standard Library
import dataclasses
import enum
import typing

# local repo modules
import receipt_sheet_converter as rsc
import receipt_sheet_converter.config
import receipt_sheet_converter.errors
import receipt_sheet_converter.layout
import receipt_sheet_converter.normalize
import receipt_sheet_converter.render
import receipt_sheet_converter.validate


ErrorKind = rsc.errors.ErrorKind
ProcessingError = rsc.errors.ProcessingError
InputFile = rsc.validate.InputFile
JobConfig = rsc.config.JobConfig
LayoutConfig = rsc.config.LayoutConfig
TargetFootprint = rsc.config.TargetFootprint
PageItem = rsc.normalize.PageItem
Sheet = rsc.layout.Sheet


class JobPhase(enum.Enum):
	IDLE = "idle"
	VALIDATING = "validating"
	NORMALIZING = "normalizing"
	PACKING = "packing"
	COMPOSING = "composing"
	DONE = "done"
	FAILED = "failed"


@dataclasses.dataclass(frozen=True)
class ProgressEvent:
	message: str
	percent: float
	phase: str = "progress"


ProgressCallback = typing.Callable[[ProgressEvent], None]


@dataclasses.dataclass
class JobResult:
	pdf_bytes: bytes
	sheets: list[Sheet]
	footprint: TargetFootprint
	input_names: list[str]
	# what the caller asked for, before clamping to the sheet
	requested_footprint: TargetFootprint | None = None

	@property
	def sheet_count(self) -> int:
		return len(self.sheets)

	@property
	def item_count(self) -> int:
		return sum(len(sheet.placed) for sheet in self.sheets)


class ImpositionJob:
	"""
	One run over a batch of files.

	A job moves IDLE -> VALIDATING -> NORMALIZING -> PACKING -> COMPOSING ->
	DONE, or to FAILED from any of those. The first failing file stops the
	job and nothing is produced. A job object runs once.
	"""

	def __init__(
		self,
		files: list[InputFile],
		config: JobConfig,
		layout: LayoutConfig | None = None,
		progress: ProgressCallback | None = None,
		verbose: bool = False,
	) -> None:
		self.files = list(files)
		self.config = config
		self.layout = layout or LayoutConfig()
		self.progress = progress
		self.verbose = verbose
		self.phase = JobPhase.IDLE
		self.error: ProcessingError | None = None

	def _enter(self, phase: JobPhase) -> None:
		self.phase = phase
		if self.verbose:
			print(f"Phase: {phase.value}")

	def _notify(self, message: str, percent: float) -> None:
		if self.progress is not None:
			self.progress(ProgressEvent(message=message, percent=percent))

	def run(self) -> JobResult:
		"""
		Run the job.

		Returns:
			JobResult with the PDF bytes and the packed sheets.

		Raises:
			ProcessingError: on the first failure.
			RuntimeError: when the job already ran.
		"""
		if self.phase != JobPhase.IDLE:
			raise RuntimeError(f"job already ran (phase {self.phase.value})")
		try:
			result = self._run_stages()
		except ProcessingError as error:
			self._fail(error)
			raise
		except MemoryError as error:
			wrapped = ProcessingError(ErrorKind.MEMORY_INSUFFICIENT)
			self._fail(wrapped)
			raise wrapped from error
		except Exception as error:
			wrapped = ProcessingError(ErrorKind.PROCESSING_FAILED)
			self._fail(wrapped)
			raise wrapped from error
		self._enter(JobPhase.DONE)
		self._notify("Done", 100.0)
		return result

	def _fail(self, error: ProcessingError) -> None:
		self.error = error
		self._enter(JobPhase.FAILED)
		if self.verbose:
			print(f"Job failed: {error}")

	def _run_stages(self) -> JobResult:
		self._enter(JobPhase.VALIDATING)
		if not self.files:
			raise ProcessingError(ErrorKind.NO_INPUT_FILES)
		footprint = rsc.config.resolve_footprint(self.config)
		try:
			fit_footprint = rsc.config.printable_footprint(footprint, self.layout)
		except ValueError as error:
			raise ProcessingError(ErrorKind.SIZE_INVALID, message=str(error)) from error
		if self.verbose and fit_footprint != footprint:
			print(f"Target {footprint.label} clamped to printable area {fit_footprint.label}")
		# every file passes validation before any file is decoded
		kinds = [rsc.validate.validate_file(input_file) for input_file in self.files]

		self._enter(JobPhase.NORMALIZING)
		self._notify("Starting", 0.0)
		items: list[PageItem] = []
		total = len(self.files)
		for index, (input_file, kind) in enumerate(zip(self.files, kinds)):
			self._notify(
				f"Processing file {index + 1}/{total}: {input_file.name}",
				index / total * 100.0,
			)
			file_items = rsc.normalize.normalize_file(input_file, kind)
			if self.verbose:
				print(f"{input_file.name}: {len(file_items)} item(s) ({kind})")
			items.extend(file_items)

		self._enter(JobPhase.PACKING)
		scaled = [rsc.layout.scale_item(item, fit_footprint) for item in items]
		sheets = rsc.layout.pack_items(scaled, self.layout)

		self._enter(JobPhase.COMPOSING)
		writer = rsc.render.compose_sheets(sheets, fit_footprint, self.layout)
		pdf_bytes = rsc.render.assemble_document(writer)
		return JobResult(
			pdf_bytes=pdf_bytes,
			sheets=sheets,
			footprint=fit_footprint,
			input_names=[input_file.name for input_file in self.files],
			requested_footprint=footprint,
		)


#============================================
def run_job(
	files: list[InputFile],
	config: JobConfig,
	layout: LayoutConfig | None = None,
	progress: ProgressCallback | None = None,
	verbose: bool = False,
) -> JobResult:
	"""
	Run one imposition job.

	Args:
		files: Input files in submission order.
		config: Target size configuration.
		layout: Optional sheet layout, A4 by default.
		progress: Optional progress callback.
		verbose: Print phase and per-file details.

	Returns:
		JobResult.

	Raises:
		ProcessingError: on the first failure.
	"""
	job = ImpositionJob(files, config, layout=layout, progress=progress, verbose=verbose)
	return job.run()
