"""
Logical page segmentation and physical sheet pagination.
"""

# Standard Library
from collections.abc import Iterable

# local repo modules
import name_tag_sheets as nts
import name_tag_sheets.config


TagRecord = nts.config.TagRecord
LogicalPage = nts.config.LogicalPage
PhysicalPage = nts.config.PhysicalPage
PaginationSummary = nts.config.PaginationSummary

EMPTY_SLOT = nts.config.EMPTY_SLOT
LABELS_PER_PAGE = nts.config.LABELS_PER_PAGE


class _PageBreak:
	def __repr__(self) -> str:
		return "PAGE_BREAK"


PAGE_BREAK = _PageBreak()


#============================================
def segment_pages(entries: Iterable[TagRecord | _PageBreak]) -> list[LogicalPage]:
	"""
	Group a record stream into logical pages on page-break markers.

	Consecutive breaks never produce an empty page.

	Args:
		entries: TagRecord entries mixed with PAGE_BREAK markers.

	Returns:
		List of non-empty LogicalPage entries.
	"""
	pages: list[LogicalPage] = []
	current: list[TagRecord] = []
	for entry in entries:
		if entry is PAGE_BREAK:
			if current:
				pages.append(LogicalPage(tags=current))
				current = []
			continue
		current.append(entry)
	if current:
		pages.append(LogicalPage(tags=current))
	return pages


#============================================
def to_physical_pages(page: LogicalPage, capacity: int = LABELS_PER_PAGE) -> list[PhysicalPage]:
	"""
	Split a logical page into fixed-capacity sheets.

	Args:
		page: Logical page.
		capacity: Label slots per sheet.

	Returns:
		List of PhysicalPage entries; the last one padded with empty slots.
	"""
	if capacity < 1:
		raise ValueError(f"capacity must be at least 1: {capacity}")
	sheets: list[PhysicalPage] = []
	for start in range(0, len(page.tags), capacity):
		chunk = list(page.tags[start:start + capacity])
		filled = len(chunk)
		chunk.extend([EMPTY_SLOT] * (capacity - filled))
		sheets.append(PhysicalPage(slots=chunk, filled=filled))
	return sheets


#============================================
def paginate_all(pages: list[LogicalPage], capacity: int = LABELS_PER_PAGE) -> list[PhysicalPage]:
	"""
	Paginate every logical page in order.

	Args:
		pages: Logical pages.
		capacity: Label slots per sheet.

	Returns:
		Flat list of PhysicalPage entries.
	"""
	sheets: list[PhysicalPage] = []
	for page in pages:
		sheets.extend(to_physical_pages(page, capacity))
	return sheets


def summarize(pages: list[LogicalPage], capacity: int = LABELS_PER_PAGE) -> PaginationSummary:
	sheets = paginate_all(pages, capacity)
	tags = sum(sheet.filled for sheet in sheets)
	return PaginationSummary(
		logical_pages=len(pages),
		physical_pages=len(sheets),
		tags=tags,
		empty_slots=len(sheets) * capacity - tags,
		labels_per_page=capacity,
	)
