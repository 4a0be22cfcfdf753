"""
Column mapping from raw rows to tag records.
"""

# Standard Library
from collections.abc import Iterator

# local repo modules
import name_tag_sheets as nts
import name_tag_sheets.config
import name_tag_sheets.paginate
import name_tag_sheets.parser


ColumnMapping = nts.config.ColumnMapping
TagRecord = nts.config.TagRecord
LogicalPage = nts.config.LogicalPage

PAGE_BREAK = nts.paginate.PAGE_BREAK
LINE_NAMES = ("line1", "line2", "line3")


def default_mapping() -> ColumnMapping:
	return ColumnMapping(line1=0, line2=1, line3=2)


#============================================
def _cell(cells: list[str], index: int | None) -> str:
	"""
	Look up one cell, treating missing columns as empty.

	Args:
		cells: Parsed row cells.
		index: Column index or None.

	Returns:
		Cell text or an empty string.
	"""
	if index is None or index < 0 or index >= len(cells):
		return ""
	return cells[index]


#============================================
def map_row(cells: list[str], mapping: ColumnMapping) -> TagRecord:
	"""
	Build a tag record from one parsed row.

	Args:
		cells: Parsed row cells.
		mapping: Column mapping.

	Returns:
		TagRecord, possibly empty.
	"""
	return TagRecord(
		line1=_cell(cells, mapping.line1),
		line2=_cell(cells, mapping.line2),
		line3=_cell(cells, mapping.line3),
	)


#============================================
def iter_mapped_rows(
	text: str,
	mapping: ColumnMapping,
	has_headers: bool = False,
) -> Iterator[TagRecord | object]:
	"""
	Yield tag records and page-break markers in input order.

	Args:
		text: Raw delimited text.
		mapping: Column mapping.
		has_headers: Whether to skip the header line.

	Yields:
		TagRecord for each non-empty mapped row, PAGE_BREAK for blank rows.
	"""
	lines = nts.parser.split_lines(text)
	_headers, data_lines = nts.parser.split_header(lines, has_headers)
	for line in data_lines:
		cells = nts.parser.parse_line(line)
		if nts.parser.is_blank_row(cells):
			yield PAGE_BREAK
			continue
		record = map_row(cells, mapping)
		# rows whose mapped columns are all empty are dropped
		if record.is_empty:
			continue
		yield record


#============================================
def apply_mapping(
	text: str,
	mapping: ColumnMapping | None = None,
	has_headers: bool = False,
) -> list[LogicalPage]:
	"""
	Map raw text to logical pages of tag records.

	Args:
		text: Raw delimited text.
		mapping: Column mapping, identity mapping when None.
		has_headers: Whether the first non-blank line is a header row.

	Returns:
		List of LogicalPage entries.
	"""
	if mapping is None:
		mapping = default_mapping()
	entries = iter_mapped_rows(text, mapping, has_headers)
	return nts.paginate.segment_pages(entries)


#============================================
def mapping_problems(mapping: ColumnMapping, column_count: int | None = None) -> list[str]:
	"""
	List reasons a mapping would confuse the user.

	This is guidance for interactive callers; apply_mapping accepts any
	mapping.

	Args:
		mapping: Column mapping to check.
		column_count: Known dataset width, if any.

	Returns:
		List of problem descriptions, empty when the mapping looks fine.
	"""
	problems = []
	assigned = [
		(name, index)
		for name, index in zip(LINE_NAMES, mapping.indices())
		if index is not None
	]
	if not assigned:
		problems.append("Map at least one line to a column.")

	seen: dict[int, str] = {}
	for name, index in assigned:
		label = nts.parser.column_label(index) if index >= 0 else str(index)
		if index in seen:
			problems.append(f"Column {label} is used by both {seen[index]} and {name}.")
		else:
			seen[index] = name
		if index < 0 or (column_count is not None and index >= column_count):
			problems.append(f"Column {label} for {name} is outside the data.")
	return problems


def is_valid_mapping(mapping: ColumnMapping, column_count: int | None = None) -> bool:
	return not mapping_problems(mapping, column_count)
