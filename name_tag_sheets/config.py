"""
Shared configuration, constants and data types.
"""

import dataclasses


POINTS_PER_INCH = 72.0
LABELS_PER_PAGE = 10
COLUMNS = 2
ROWS = 5

PAGE_WIDTH_INCHES = 8.5
PAGE_HEIGHT_INCHES = 11.0
DEFAULT_LABEL_WIDTH = 4.0
DEFAULT_LABEL_HEIGHT = 2.0
DEFAULT_TOP_MARGIN = 0.5
DEFAULT_LEFT_MARGIN = 0.25
DEFAULT_LABEL_PADDING = 0.25

DEFAULT_FONT_REGULAR = "Helvetica"
DEFAULT_FONT_BOLD = "Helvetica-Bold"
LINE1_FONT_SIZE = 32.0
LINE2_FONT_SIZE = 18.0
LINE3_FONT_SIZE = 18.0
DEFAULT_TEXT_MIN_SIZE = 8.0
LINE_SPACING = 0.1
LINE_LEADING = 1.2
ELLIPSIS = "..."

DELIMITER = ","
QUOTE = '"'
PREVIEW_ROWS = 5

DEFAULT_OUTPUT_STEM = "name-tags"
DEFAULT_PAGE_FORMAT = "Letter"
DEFAULT_PDF_TIMEOUT = 60.0
OUTPUT_FORMATS = ("html", "pdf")
CONTENT_TYPES = {
	"html": "text/html; charset=utf-8",
	"pdf": "application/pdf",
}


@dataclasses.dataclass
class ColumnMapping:
	line1: int | None = 0
	line2: int | None = 1
	line3: int | None = 2

	#============================================
	@classmethod
	def for_column_count(cls, column_count: int) -> "ColumnMapping":
		"""
		Build the starting mapping offered for a dataset.

		Args:
			column_count: Number of columns in the dataset.

		Returns:
			ColumnMapping using the first columns that exist.
		"""
		return cls(
			line1=0,
			line2=1 if column_count > 1 else None,
			line3=2 if column_count > 2 else None,
		)

	#============================================
	@classmethod
	def from_dict(cls, data: dict | None) -> "ColumnMapping":
		"""
		Build a mapping from a JSON-style dict.

		Missing keys leave that line empty.

		Args:
			data: Dict with optional line1, line2, line3 keys.

		Returns:
			ColumnMapping.
		"""
		if data is None:
			return cls()
		values = {}
		for key in ("line1", "line2", "line3"):
			value = data.get(key)
			values[key] = None if value is None else int(value)
		return cls(**values)

	def to_dict(self) -> dict:
		return dataclasses.asdict(self)

	def indices(self) -> tuple[int | None, int | None, int | None]:
		return (self.line1, self.line2, self.line3)


@dataclasses.dataclass(frozen=True)
class TagRecord:
	line1: str = ""
	line2: str = ""
	line3: str = ""

	@property
	def is_empty(self) -> bool:
		return not (self.line1 or self.line2 or self.line3)

	def lines(self) -> tuple[str, str, str]:
		return (self.line1, self.line2, self.line3)


EMPTY_SLOT = TagRecord()


@dataclasses.dataclass
class LogicalPage:
	tags: list[TagRecord] = dataclasses.field(default_factory=list)


@dataclasses.dataclass
class PhysicalPage:
	slots: list[TagRecord]
	filled: int


@dataclasses.dataclass
class Dataset:
	rows: list[list[str]]
	headers: list[str] | None
	column_count: int
	row_count: int
	preview: list[list[str]]

	#============================================
	def to_dict(self) -> dict:
		"""
		Build the JSON payload used by the web service.

		Returns:
			Dict with camelCase keys; headers omitted when absent.
		"""
		data = {
			"columns": self.rows,
			"columnCount": self.column_count,
			"rowCount": self.row_count,
			"preview": self.preview,
		}
		if self.headers is not None:
			data["headers"] = self.headers
		return data


@dataclasses.dataclass
class SheetConfig:
	page_width: float
	page_height: float
	label_width: float
	label_height: float
	columns: int
	rows: int
	top_margin: float
	left_margin: float
	padding: float
	font_sizes: tuple[float, float, float]
	draw_outlines: bool

	@property
	def labels_per_page(self) -> int:
		return self.columns * self.rows


@dataclasses.dataclass
class PdfOptions:
	page_format: str = DEFAULT_PAGE_FORMAT
	timeout: float = DEFAULT_PDF_TIMEOUT


@dataclasses.dataclass
class PaginationSummary:
	logical_pages: int
	physical_pages: int
	tags: int
	empty_slots: int
	labels_per_page: int


#============================================
def inches_to_points(value: float) -> float:
	"""
	Convert inches to points.

	Args:
		value: Inches value.

	Returns:
		Points value.
	"""
	return value * POINTS_PER_INCH


#============================================
def build_sheet_config(draw_outlines: bool = False) -> SheetConfig:
	"""
	Build the TownStix US-10 sheet layout in inches.

	Args:
		draw_outlines: Whether PDF output gets label outlines.

	Returns:
		SheetConfig.
	"""
	return SheetConfig(
		page_width=PAGE_WIDTH_INCHES,
		page_height=PAGE_HEIGHT_INCHES,
		label_width=DEFAULT_LABEL_WIDTH,
		label_height=DEFAULT_LABEL_HEIGHT,
		columns=COLUMNS,
		rows=ROWS,
		top_margin=DEFAULT_TOP_MARGIN,
		left_margin=DEFAULT_LEFT_MARGIN,
		padding=DEFAULT_LABEL_PADDING,
		font_sizes=(LINE1_FONT_SIZE, LINE2_FONT_SIZE, LINE3_FONT_SIZE),
		draw_outlines=draw_outlines,
	)
