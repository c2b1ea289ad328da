"""
Scale-to-fit math and shelf packing onto fixed-size sheets.

All placement coordinates are top-down: x grows to the right from the left
sheet edge and y grows downward from the top sheet edge. The compositor
flips them into PDF space.
"""

# Standard Library
import dataclasses

# local repo modules
import receipt_sheet_converter as rsc
import receipt_sheet_converter.config
import receipt_sheet_converter.normalize


PageItem = rsc.normalize.PageItem
LayoutConfig = rsc.config.LayoutConfig
TargetFootprint = rsc.config.TargetFootprint


@dataclasses.dataclass(frozen=True)
class PackerState:
	sheet_count: int
	cursor_x: float
	cursor_y: float
	row_height: float


@dataclasses.dataclass(frozen=True)
class Placement:
	sheet_index: int
	x: float
	y: float
	box_width: float
	box_height: float


@dataclasses.dataclass
class PlacedItem:
	item: PageItem
	placement: Placement


@dataclasses.dataclass
class Sheet:
	index: int
	width: float
	height: float
	placed: list[PlacedItem] = dataclasses.field(default_factory=list)


#============================================
def compute_scale(
	original_width: float,
	original_height: float,
	target_width: float,
	target_height: float,
) -> float:
	"""
	Compute the largest uniform scale that fits inside the target.

	Args:
		original_width: Item width.
		original_height: Item height.
		target_width: Footprint width.
		target_height: Footprint height.

	Returns:
		Scale factor.
	"""
	if original_width <= 0.0 or original_height <= 0.0:
		raise ValueError(f"item size must be positive, got {original_width}x{original_height}")
	if target_width <= 0.0 or target_height <= 0.0:
		raise ValueError(f"target size must be positive, got {target_width}x{target_height}")
	return min(target_width / original_width, target_height / original_height)


#============================================
def scale_item(item: PageItem, footprint: TargetFootprint) -> PageItem:
	"""
	Return a copy of the item with its scaled size filled in.

	Args:
		item: Page item.
		footprint: Target footprint.

	Returns:
		Scaled page item.
	"""
	scale = compute_scale(
		item.original_width,
		item.original_height,
		footprint.width,
		footprint.height,
	)
	return dataclasses.replace(
		item,
		scaled_width=item.original_width * scale,
		scaled_height=item.original_height * scale,
	)


#============================================
def initial_state(layout: LayoutConfig) -> PackerState:
	"""
	Packer state before the first item: no sheets, cursor at the margin.
	"""
	return PackerState(
		sheet_count=0,
		cursor_x=layout.margin,
		cursor_y=layout.margin,
		row_height=0.0,
	)


#============================================
def place_item(
	state: PackerState,
	scaled_width: float,
	scaled_height: float,
	layout: LayoutConfig,
) -> tuple[PackerState, Placement]:
	"""
	Place one item with the shelf rule and advance the cursor.

	Args:
		state: Packer state before the item.
		scaled_width: Scaled item width.
		scaled_height: Scaled item height.
		layout: Sheet layout.

	Returns:
		Tuple of (next_state, placement).
	"""
	box_width = scaled_width + layout.crop_padding
	box_height = scaled_height + layout.crop_padding
	sheet_count = state.sheet_count
	cursor_x = state.cursor_x
	cursor_y = state.cursor_y
	row_height = state.row_height

	if cursor_x + box_width > layout.sheet_width - layout.margin:
		cursor_x = layout.margin
		cursor_y += row_height + layout.gap
		row_height = 0.0

	bottom_limit = layout.sheet_height - layout.margin - layout.footer_reserve
	if sheet_count == 0 or cursor_y + box_height > bottom_limit:
		sheet_count += 1
		cursor_x = layout.margin
		cursor_y = layout.margin
		row_height = 0.0

	placement = Placement(
		sheet_index=sheet_count - 1,
		x=cursor_x,
		y=cursor_y,
		box_width=box_width,
		box_height=box_height,
	)
	next_state = PackerState(
		sheet_count=sheet_count,
		cursor_x=cursor_x + box_width + layout.gap,
		cursor_y=cursor_y,
		row_height=max(row_height, box_height),
	)
	return (next_state, placement)


#============================================
def pack_items(items: list[PageItem], layout: LayoutConfig) -> list[Sheet]:
	"""
	Pack scaled items onto sheets in input order.

	Args:
		items: Scaled page items.
		layout: Sheet layout.

	Returns:
		Sheets holding their placed items, in order.
	"""
	sheets: list[Sheet] = []
	state = initial_state(layout)
	for item in items:
		state, placement = place_item(state, item.scaled_width, item.scaled_height, layout)
		while len(sheets) < state.sheet_count:
			sheets.append(Sheet(index=len(sheets), width=layout.sheet_width, height=layout.sheet_height))
		sheets[placement.sheet_index].placed.append(PlacedItem(item=item, placement=placement))
	return sheets
