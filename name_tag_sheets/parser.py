"""
Delimited text parsing and dataset normalization.
"""

# Standard Library
from collections.abc import Iterable

# local repo modules
import name_tag_sheets as nts
import name_tag_sheets.config


Dataset = nts.config.Dataset

DELIMITER = nts.config.DELIMITER
QUOTE = nts.config.QUOTE
PREVIEW_ROWS = nts.config.PREVIEW_ROWS


#============================================
def parse_line(line: str) -> list[str]:
	"""
	Split one line on unquoted delimiters.

	Every quote character toggles quoting and is dropped. There is no
	escape syntax, so an unterminated quote runs to the end of the line.

	Args:
		line: One line of delimited text.

	Returns:
		Trimmed field values, always at least one.
	"""
	fields: list[str] = []
	current: list[str] = []
	in_quotes = False
	for char in line:
		if char == QUOTE:
			in_quotes = not in_quotes
		elif char == DELIMITER and not in_quotes:
			fields.append("".join(current))
			current = []
		else:
			current.append(char)
	fields.append("".join(current))
	return [field.strip() for field in fields]


#============================================
def is_blank_row(cells: Iterable[str]) -> bool:
	"""
	Check whether every cell is empty or whitespace.

	Args:
		cells: Parsed cell values.

	Returns:
		True for a blank row.
	"""
	return all(not cell or not cell.strip() for cell in cells)


def split_lines(text: str) -> list[str]:
	return text.split("\n")


#============================================
def split_header(lines: list[str], has_headers: bool) -> tuple[list[str] | None, list[str]]:
	"""
	Separate the header line from the data lines.

	The header is the first non-blank line, so blank lines above it never
	shift which row is treated as the header.

	Args:
		lines: Raw text lines.
		has_headers: Whether the data carries a header row.

	Returns:
		Tuple of (header cells or None, remaining lines).
	"""
	if not has_headers:
		return None, lines
	for index, line in enumerate(lines):
		cells = parse_line(line)
		if not is_blank_row(cells):
			return cells, lines[index + 1:]
	return None, []


#============================================
def parse_raw_data(text: str, has_headers: bool = False) -> Dataset:
	"""
	Parse raw delimited text into a rectangular dataset.

	Args:
		text: Raw delimited text.
		has_headers: Whether the first non-blank line is a header row.

	Returns:
		Dataset with padded rows and a preview.
	"""
	lines = [line for line in split_lines(text) if line.strip()]
	headers, data_lines = split_header(lines, has_headers)

	rows: list[list[str]] = []
	for line in data_lines:
		cells = parse_line(line)
		if is_blank_row(cells):
			continue
		rows.append(cells)

	widths = [len(row) for row in rows]
	if headers is not None:
		widths.append(len(headers))
	column_count = max(widths, default=0)

	for row in rows:
		row.extend([""] * (column_count - len(row)))

	return Dataset(
		rows=rows,
		headers=headers,
		column_count=column_count,
		row_count=len(rows),
		preview=[list(row) for row in rows[:PREVIEW_ROWS]],
	)


#============================================
def column_label(index: int) -> str:
	"""
	Convert a zero-based column index to a spreadsheet label.

	Args:
		index: Zero-based column index.

	Returns:
		Label such as A, Z, AA or AB.
	"""
	if index < 0:
		raise ValueError(f"column index must be non-negative: {index}")
	label = ""
	value = index + 1
	while value > 0:
		value, remainder = divmod(value - 1, 26)
		label = chr(ord("A") + remainder) + label
	return label


#============================================
def column_choices(dataset: Dataset) -> list[tuple[int, str]]:
	"""
	Build display names for every column of a dataset.

	Args:
		dataset: Parsed dataset.

	Returns:
		List of (index, display name) pairs.
	"""
	choices = []
	for index in range(dataset.column_count):
		name = column_label(index)
		if dataset.headers is not None and index < len(dataset.headers):
			header = dataset.headers[index]
			if header:
				name = f"{name}: {header}"
		choices.append((index, name))
	return choices
