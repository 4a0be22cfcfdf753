"""
Artifact emission: HTML bytes and PDF engines.
"""

# Standard Library
import dataclasses
import io
import logging
import math
import os
import pathlib
import shutil
import subprocess
import tempfile
from typing import Protocol

# PIP3 modules
import pypdf
import reportlab.lib.pagesizes
import reportlab.pdfbase.pdfmetrics
import reportlab.pdfbase.ttfonts
import reportlab.pdfgen.canvas

# local repo modules
import name_tag_sheets as nts
import name_tag_sheets.config
import name_tag_sheets.errors
import name_tag_sheets.mapper
import name_tag_sheets.paginate
import name_tag_sheets.render


ColumnMapping = nts.config.ColumnMapping
TagRecord = nts.config.TagRecord
PhysicalPage = nts.config.PhysicalPage
SheetConfig = nts.config.SheetConfig
PdfOptions = nts.config.PdfOptions
PaginationSummary = nts.config.PaginationSummary
RenderEngineError = nts.errors.RenderEngineError

DEFAULT_FONT_REGULAR = nts.config.DEFAULT_FONT_REGULAR
DEFAULT_FONT_BOLD = nts.config.DEFAULT_FONT_BOLD
DEFAULT_TEXT_MIN_SIZE = nts.config.DEFAULT_TEXT_MIN_SIZE
LINE_SPACING = nts.config.LINE_SPACING
LINE_LEADING = nts.config.LINE_LEADING
ELLIPSIS = nts.config.ELLIPSIS
DEFAULT_PAGE_FORMAT = nts.config.DEFAULT_PAGE_FORMAT
CONTENT_TYPES = nts.config.CONTENT_TYPES
DEFAULT_OUTPUT_STEM = nts.config.DEFAULT_OUTPUT_STEM

FONT_ENV_VAR = "NAME_TAG_FONT"
FONT_BOLD_ENV_VAR = "NAME_TAG_FONT_BOLD"
TTF_FONT_REGULAR = "NameTagSans"
TTF_FONT_BOLD = "NameTagSans-Bold"
# built-in Type 1 fonts use WinAnsiEncoding
STANDARD_FONT_ENCODING = "cp1252"

CHROMIUM_ENV_VAR = "NAME_TAG_CHROMIUM"
CSS_PAGE_SIZES = {
	"letter": "letter",
	"legal": "legal",
	"ledger": "ledger",
	"a3": "A3",
	"a4": "A4",
	"a5": "A5",
	"b4": "B4",
	"b5": "B5",
}
CHROMIUM_CANDIDATES = (
	"chromium",
	"chromium-browser",
	"google-chrome",
	"google-chrome-stable",
	"chrome",
)

logger = logging.getLogger(__name__)


class PdfEngine(Protocol):
	def render(self, sheets: list[PhysicalPage], markup: str, options: PdfOptions) -> bytes:
		...


@dataclasses.dataclass
class Artifact:
	payload: bytes
	content_type: str
	filename: str
	summary: PaginationSummary


def emit_html(markup: str) -> bytes:
	return markup.encode("utf-8")


#============================================
def fit_font_size(text: str, font_name: str, font_size: float, max_width: float) -> float:
	"""
	Shrink a font size until the text fits the available width.

	Args:
		text: Line text.
		font_name: ReportLab font name.
		font_size: Preferred size in points.
		max_width: Available width in points.

	Returns:
		Font size in points, never below DEFAULT_TEXT_MIN_SIZE.
	"""
	width = reportlab.pdfbase.pdfmetrics.stringWidth(text, font_name, font_size)
	if width <= max_width or width <= 0:
		return font_size
	# round down to 0.01pt so the shrunk line never measures wider than max_width
	fitted = math.floor(font_size * max_width / width * 100.0) / 100.0
	return max(DEFAULT_TEXT_MIN_SIZE, fitted)


#============================================
def split_long_word(word: str, font_name: str, font_size: float, max_width: float) -> list[str]:
	"""
	Break a word wider than the available width into character runs.

	Args:
		word: Single word without spaces.
		font_name: Font name for width calculation.
		font_size: Font size for width calculation.
		max_width: Maximum line width in points.

	Returns:
		List of pieces, each no wider than max_width.
	"""
	pieces: list[str] = []
	current = ""
	for char in word:
		candidate = current + char
		width = reportlab.pdfbase.pdfmetrics.stringWidth(candidate, font_name, font_size)
		if current and width > max_width:
			pieces.append(current)
			current = char
			continue
		current = candidate
	if current:
		pieces.append(current)
	return pieces


#============================================
def wrap_text_to_width(text: str, font_name: str, font_size: float, max_width: float) -> list[str]:
	"""
	Wrap text on spaces to fit within a max width.

	Args:
		text: Input text.
		font_name: Font name for width calculation.
		font_size: Font size for width calculation.
		max_width: Maximum line width in points.

	Returns:
		Wrapped lines.
	"""
	words = text.split()
	if not words:
		return [text]
	lines: list[str] = []
	current = ""
	for word in words:
		pieces = split_long_word(word, font_name, font_size, max_width)
		if len(pieces) > 1:
			if current:
				lines.append(current)
			lines.extend(pieces[:-1])
			current = pieces[-1]
			continue
		candidate = word if not current else f"{current} {word}"
		width = reportlab.pdfbase.pdfmetrics.stringWidth(candidate, font_name, font_size)
		if width <= max_width or not current:
			current = candidate
			continue
		lines.append(current)
		current = word
	if current:
		lines.append(current)
	return lines


#============================================
def ellipsize(text: str, font_name: str, font_size: float, max_width: float) -> str:
	"""
	Mark a line as cut off, trimming characters until the marker fits.

	Args:
		text: Line text.
		font_name: Font name for width calculation.
		font_size: Font size for width calculation.
		max_width: Maximum line width in points.

	Returns:
		Text ending in ELLIPSIS.
	"""
	stem = text.rstrip()
	while stem:
		candidate = stem + ELLIPSIS
		if reportlab.pdfbase.pdfmetrics.stringWidth(candidate, font_name, font_size) <= max_width:
			return candidate
		stem = stem[:-1].rstrip()
	return ELLIPSIS


#============================================
def register_fonts(regular_path: str | None = None, bold_path: str | None = None) -> tuple[str, str]:
	"""
	Pick the regular and bold fonts for ReportLab drawing.

	A TrueType font from NAME_TAG_FONT (and optionally NAME_TAG_FONT_BOLD)
	replaces the built-in Helvetica pair.

	Args:
		regular_path: TrueType file, read from the environment when None.
		bold_path: TrueType file for line 1, regular_path when unset.

	Returns:
		Tuple of (regular font name, bold font name).
	"""
	if regular_path is None:
		regular_path = os.environ.get(FONT_ENV_VAR)
	if not regular_path:
		return (DEFAULT_FONT_REGULAR, DEFAULT_FONT_BOLD)
	if bold_path is None:
		bold_path = os.environ.get(FONT_BOLD_ENV_VAR) or regular_path
	try:
		regular = reportlab.pdfbase.ttfonts.TTFont(TTF_FONT_REGULAR, regular_path)
		bold = reportlab.pdfbase.ttfonts.TTFont(TTF_FONT_BOLD, bold_path)
	except (OSError, reportlab.pdfbase.ttfonts.TTFError) as error:
		raise RenderEngineError(f"Cannot load TrueType font: {error}") from error
	reportlab.pdfbase.pdfmetrics.registerFont(regular)
	reportlab.pdfbase.pdfmetrics.registerFont(bold)
	logger.info("Using TrueType fonts %s and %s", regular_path, bold_path)
	return (TTF_FONT_REGULAR, TTF_FONT_BOLD)


#============================================
def missing_glyphs(text: str, font_name: str) -> str:
	"""
	Find the characters a font cannot draw.

	Built-in fonts draw WinAnsi (cp1252) text only; TrueType fonts draw
	what their character map covers.

	Args:
		text: Line text.
		font_name: Registered ReportLab font name.

	Returns:
		Unique missing characters in order of appearance.
	"""
	font = reportlab.pdfbase.pdfmetrics.getFont(font_name)
	missing = []
	for char in text:
		if isinstance(font, reportlab.pdfbase.ttfonts.TTFont):
			covered = ord(char) in font.face.charToGlyph
		else:
			try:
				char.encode(STANDARD_FONT_ENCODING)
				covered = True
			except UnicodeEncodeError:
				covered = False
		if not covered:
			missing.append(char)
	return "".join(dict.fromkeys(missing))


@dataclasses.dataclass
class TextRun:
	text: str
	font_name: str
	font_size: float
	gap_before: float = 0.0

	@property
	def leading(self) -> float:
		return self.font_size * LINE_LEADING


#============================================
def layout_tag(
	tag: TagRecord,
	sheet: SheetConfig,
	fonts: tuple[str, str] = (DEFAULT_FONT_REGULAR, DEFAULT_FONT_BOLD),
) -> list[TextRun]:
	"""
	Lay out the lines of one tag inside the padded label area.

	A line first shrinks toward DEFAULT_TEXT_MIN_SIZE; if it is still too
	wide it wraps at that size. Wrapped lines that would run below the
	label are dropped and the last kept line ends in ELLIPSIS.

	Args:
		tag: Tag record.
		sheet: Sheet layout in inches.
		fonts: Tuple of (regular font name, bold font name).

	Returns:
		Text runs from top to bottom, each no wider than the padded label.
	"""
	regular_font, bold_font = fonts
	padding = nts.config.inches_to_points(sheet.padding)
	max_width = nts.config.inches_to_points(sheet.label_width) - 2.0 * padding
	max_height = nts.config.inches_to_points(sheet.label_height) - 2.0 * padding
	spacing = nts.config.inches_to_points(LINE_SPACING)

	runs: list[TextRun] = []
	for index, text in enumerate(tag.lines()):
		if not text:
			continue
		font_name = bold_font if index == 0 else regular_font
		missing = missing_glyphs(text, font_name)
		if missing:
			raise RenderEngineError(
				f"Font {font_name} cannot draw {missing!r}; set {FONT_ENV_VAR} to a TrueType "
				"font that covers them, or use HTML or the chromium engine"
			)
		font_size = fit_font_size(text, font_name, sheet.font_sizes[index], max_width)
		gap = spacing if runs else 0.0
		for piece in wrap_text_to_width(text, font_name, font_size, max_width):
			runs.append(TextRun(piece, font_name, font_size, gap))
			gap = 0.0

	kept: list[TextRun] = []
	used = 0.0
	for run in runs:
		if kept and used + run.gap_before + run.leading > max_height:
			last = kept[-1]
			last.text = ellipsize(last.text, last.font_name, last.font_size, max_width)
			break
		kept.append(run)
		used += run.gap_before + run.leading
	return kept


#============================================
def compute_cell_origin(sheet: SheetConfig, slot: int) -> tuple[float, float]:
	"""
	Compute the lower-left corner of a label slot in points.

	Slots fill row by row, matching the HTML grid.

	Args:
		sheet: Sheet layout in inches.
		slot: Zero-based slot index on the page.

	Returns:
		Tuple of (x, y) in points.
	"""
	row = slot // sheet.columns
	col = slot % sheet.columns
	label_width = nts.config.inches_to_points(sheet.label_width)
	label_height = nts.config.inches_to_points(sheet.label_height)
	page_height = nts.config.inches_to_points(sheet.page_height)
	cell_x = nts.config.inches_to_points(sheet.left_margin) + col * label_width
	cell_y = page_height - nts.config.inches_to_points(sheet.top_margin) - label_height - row * label_height
	return (cell_x, cell_y)


#============================================
def draw_tag(
	pdf: reportlab.pdfgen.canvas.Canvas,
	tag: TagRecord,
	cell_x: float,
	cell_y: float,
	sheet: SheetConfig,
	fonts: tuple[str, str] = (DEFAULT_FONT_REGULAR, DEFAULT_FONT_BOLD),
) -> None:
	"""
	Draw one tag centered in its label cell.

	Args:
		pdf: ReportLab canvas.
		tag: Tag record.
		cell_x: Cell left edge in points.
		cell_y: Cell bottom edge in points.
		sheet: Sheet layout in inches.
		fonts: Tuple of (regular font name, bold font name).
	"""
	runs = layout_tag(tag, sheet, fonts)
	if not runs:
		return
	label_width = nts.config.inches_to_points(sheet.label_width)
	label_height = nts.config.inches_to_points(sheet.label_height)
	block_height = sum(run.gap_before + run.leading for run in runs)
	top = cell_y + (label_height + block_height) / 2.0
	center_x = cell_x + label_width / 2.0
	for run in runs:
		top -= run.gap_before
		ascent = reportlab.pdfbase.pdfmetrics.getAscent(run.font_name) * run.font_size / 1000.0
		baseline = top - (run.leading - run.font_size) / 2.0 - ascent
		pdf.setFont(run.font_name, run.font_size)
		pdf.drawCentredString(center_x, baseline, run.text)
		top -= run.leading


#============================================
def draw_label_outlines(pdf: reportlab.pdfgen.canvas.Canvas, sheet: SheetConfig) -> None:
	"""
	Draw dashed label outlines on the current page.

	Args:
		pdf: ReportLab canvas.
		sheet: Sheet layout in inches.
	"""
	pdf.setLineWidth(0.5)
	pdf.setStrokeColorRGB(0.8, 0.8, 0.8)
	pdf.setDash(3, 3)
	label_width = nts.config.inches_to_points(sheet.label_width)
	label_height = nts.config.inches_to_points(sheet.label_height)
	for slot in range(sheet.labels_per_page):
		cell_x, cell_y = compute_cell_origin(sheet, slot)
		pdf.rect(cell_x, cell_y, label_width, label_height, stroke=1, fill=0)


#============================================
def build_outline_overlay(sheet: SheetConfig) -> pypdf.PageObject:
	"""
	Build a PDF overlay page with label outlines.

	Args:
		sheet: Sheet layout in inches.

	Returns:
		PDF page object.
	"""
	buffer = io.BytesIO()
	pdf = reportlab.pdfgen.canvas.Canvas(buffer, pagesize=sheet_page_size(sheet))
	draw_label_outlines(pdf, sheet)
	pdf.save()
	buffer.seek(0)
	reader = pypdf.PdfReader(buffer)
	return reader.pages[0]


#============================================
def merge_outlines(pdf_bytes: bytes, sheet: SheetConfig) -> bytes:
	"""
	Stamp label outlines onto every page of a PDF.

	Args:
		pdf_bytes: Source PDF.
		sheet: Sheet layout in inches.

	Returns:
		PDF bytes with outlines.
	"""
	overlay = build_outline_overlay(sheet)
	reader = pypdf.PdfReader(io.BytesIO(pdf_bytes))
	writer = pypdf.PdfWriter()
	for page in reader.pages:
		page.merge_page(overlay)
		writer.add_page(page)
	buffer = io.BytesIO()
	writer.write(buffer)
	return buffer.getvalue()


#============================================
def lookup_page_size(page_format: str) -> tuple[float, float]:
	"""
	Look up a named paper size in reportlab.lib.pagesizes.

	Args:
		page_format: Paper name such as "Letter", "Legal" or "A4".

	Returns:
		Tuple of (width, height) in points.
	"""
	size = getattr(reportlab.lib.pagesizes, page_format.upper(), None)
	if not isinstance(size, tuple):
		raise RenderEngineError(f"Unknown page format: {page_format}")
	return size


#============================================
def sheet_page_size(sheet: SheetConfig) -> tuple[float, float]:
	"""
	Page size of a sheet layout in points.

	Args:
		sheet: Sheet layout in inches.

	Returns:
		Tuple of (width, height) in points.
	"""
	return (
		nts.config.inches_to_points(sheet.page_width),
		nts.config.inches_to_points(sheet.page_height),
	)


class ReportlabEngine:
	"""
	Draws sheets directly with ReportLab using the fixed label geometry.
	"""

	def __init__(self, sheet: SheetConfig | None = None, fonts: tuple[str, str] | None = None) -> None:
		if sheet is None:
			sheet = nts.config.build_sheet_config()
		self.sheet = sheet
		self.fonts = fonts

	#============================================
	def page_sheet(self, options: PdfOptions) -> SheetConfig:
		"""
		Place the label grid on the paper named by the options.

		Labels keep their margins from the top-left corner of the page.

		Args:
			options: PDF options.

		Returns:
			SheetConfig sized to the requested paper.
		"""
		width, height = lookup_page_size(options.page_format)
		sheet = dataclasses.replace(
			self.sheet,
			page_width=width / nts.config.POINTS_PER_INCH,
			page_height=height / nts.config.POINTS_PER_INCH,
		)
		grid_width = sheet.left_margin + sheet.columns * sheet.label_width
		grid_height = sheet.top_margin + sheet.rows * sheet.label_height
		if grid_width > sheet.page_width or grid_height > sheet.page_height:
			raise RenderEngineError(
				f"Page format {options.page_format} is too small for the {sheet.columns}x{sheet.rows} label grid"
			)
		return sheet

	#============================================
	def render(self, sheets: list[PhysicalPage], markup: str, options: PdfOptions) -> bytes:
		"""
		Render physical pages to PDF bytes.

		The markup is not read; the drawing follows the same template.

		Args:
			sheets: Physical pages.
			markup: Rendered HTML document.
			options: PDF options; page_format picks the paper size.

		Returns:
			PDF bytes, one page per sheet.
		"""
		sheet = self.page_sheet(options)
		fonts = self.fonts
		if fonts is None:
			fonts = register_fonts()
		buffer = io.BytesIO()
		pdf = reportlab.pdfgen.canvas.Canvas(buffer, pagesize=sheet_page_size(sheet))
		pdf.setTitle(nts.render.DOCUMENT_TITLE)
		for physical in sheets:
			for slot, tag in enumerate(physical.slots):
				if tag.is_empty:
					continue
				cell_x, cell_y = compute_cell_origin(sheet, slot)
				draw_tag(pdf, tag, cell_x, cell_y, sheet, fonts)
			pdf.showPage()
		if not sheets:
			# a PDF needs at least one page
			pdf.showPage()
		pdf.save()
		pdf_bytes = buffer.getvalue()
		if sheet.draw_outlines:
			pdf_bytes = merge_outlines(pdf_bytes, sheet)
		return pdf_bytes


#============================================
def apply_page_format(markup: str, page_format: str) -> str:
	"""
	Override the document's @page size for Chromium printing.

	Args:
		markup: Rendered HTML document.
		page_format: CSS paper name such as "Letter" or "A4".

	Returns:
		Markup with a trailing @page rule, unchanged for Letter.
	"""
	size = page_format.lower()
	if size not in CSS_PAGE_SIZES:
		raise RenderEngineError(f"Unknown page format: {page_format}")
	if size == DEFAULT_PAGE_FORMAT.lower():
		return markup
	override = f"<style>@page {{ size: {CSS_PAGE_SIZES[size]}; }}</style>\n</head>"
	return markup.replace("</head>", override, 1)


#============================================
def find_chromium() -> str | None:
	"""
	Locate a headless Chromium executable.

	Returns:
		Executable path, or None when nothing is installed.
	"""
	configured = os.environ.get(CHROMIUM_ENV_VAR)
	if configured:
		return configured
	for name in CHROMIUM_CANDIDATES:
		path = shutil.which(name)
		if path:
			return path
	return None


class ChromiumEngine:
	"""
	Prints the HTML markup to PDF with an external headless Chromium.
	"""

	def __init__(self, binary: str | None = None) -> None:
		self.binary = binary

	#============================================
	def build_command(self, binary: str, html_path: pathlib.Path, pdf_path: pathlib.Path) -> list[str]:
		"""
		Build the Chromium command line.

		Page size and margins come from the document's @page rule.

		Args:
			binary: Chromium executable.
			html_path: Input HTML file.
			pdf_path: Output PDF file.

		Returns:
			Argument list.
		"""
		return [
			binary,
			"--headless",
			"--disable-gpu",
			"--no-sandbox",
			"--disable-setuid-sandbox",
			"--no-pdf-header-footer",
			f"--print-to-pdf={pdf_path}",
			html_path.as_uri(),
		]

	#============================================
	def render(self, sheets: list[PhysicalPage], markup: str, options: PdfOptions) -> bytes:
		"""
		Render markup to PDF bytes in a temporary working directory.

		Args:
			sheets: Physical pages, unused by this engine.
			markup: Rendered HTML document.
			options: PDF options; page_format sets the @page size and timeout
				bounds the Chromium run.

		Returns:
			PDF bytes.
		"""
		binary = self.binary or find_chromium()
		if binary is None:
			raise RenderEngineError(
				f"No headless Chromium found; install one or set {CHROMIUM_ENV_VAR}"
			)
		with tempfile.TemporaryDirectory(prefix="name-tags-") as work_dir:
			html_path = pathlib.Path(work_dir) / f"{DEFAULT_OUTPUT_STEM}.html"
			pdf_path = pathlib.Path(work_dir) / f"{DEFAULT_OUTPUT_STEM}.pdf"
			html_path.write_text(apply_page_format(markup, options.page_format), encoding="utf-8")
			command = self.build_command(binary, html_path, pdf_path)
			logger.info("Running %s", " ".join(command))
			try:
				result = subprocess.run(
					command,
					capture_output=True,
					text=True,
					timeout=options.timeout,
					check=False,
				)
			except OSError as error:
				raise RenderEngineError(f"Failed to start {binary}: {error}") from error
			except subprocess.TimeoutExpired as error:
				raise RenderEngineError(f"{binary} timed out after {options.timeout:g}s") from error
			if result.returncode != 0:
				message = result.stderr.strip() or f"exit code {result.returncode}"
				raise RenderEngineError(f"{binary} failed: {message}")
			if not pdf_path.exists():
				raise RenderEngineError(f"{binary} did not write {pdf_path.name}")
			return pdf_path.read_bytes()


PDF_ENGINES = {
	"reportlab": ReportlabEngine,
	"chromium": ChromiumEngine,
}


#============================================
def build_engine(name: str = "reportlab", draw_outlines: bool = False) -> PdfEngine:
	"""
	Build a PDF engine by name.

	Args:
		name: Engine name from PDF_ENGINES.
		draw_outlines: Whether ReportLab output gets label outlines.

	Returns:
		PdfEngine instance.
	"""
	if name not in PDF_ENGINES:
		raise ValueError(f"Unknown PDF engine: {name}")
	if name == "reportlab":
		return ReportlabEngine(nts.config.build_sheet_config(draw_outlines=draw_outlines))
	return PDF_ENGINES[name]()


#============================================
def emit_pdf(
	sheets: list[PhysicalPage],
	markup: str,
	engine: PdfEngine | None = None,
	options: PdfOptions | None = None,
) -> bytes:
	"""
	Produce PDF bytes through an engine.

	Args:
		sheets: Physical pages.
		markup: Rendered HTML document.
		engine: PDF engine, ReportLab when None.
		options: PDF options.

	Returns:
		PDF bytes.
	"""
	if engine is None:
		engine = ReportlabEngine()
	if options is None:
		options = PdfOptions()
	try:
		return engine.render(sheets, markup, options)
	except RenderEngineError:
		raise
	except Exception as error:
		raise RenderEngineError(f"PDF generation failed: {error}") from error


#============================================
def build_artifact(
	text: str,
	mapping: ColumnMapping | None = None,
	has_headers: bool = False,
	output_format: str = "html",
	engine: PdfEngine | None = None,
	options: PdfOptions | None = None,
) -> Artifact:
	"""
	Run the full pipeline from raw text to a downloadable artifact.

	Args:
		text: Raw delimited text.
		mapping: Column mapping, identity when None.
		has_headers: Whether the first non-blank line is a header row.
		output_format: "html" or "pdf".
		engine: PDF engine for pdf output.
		options: PDF options for pdf output.

	Returns:
		Artifact.
	"""
	if output_format not in CONTENT_TYPES:
		raise ValueError(f"Unknown output format: {output_format}")
	sheet = nts.config.build_sheet_config()
	pages = nts.mapper.apply_mapping(text, mapping, has_headers)
	markup = nts.render.render_html(pages, sheet)
	summary = nts.paginate.summarize(pages, sheet.labels_per_page)
	if output_format == "pdf":
		sheets = nts.paginate.paginate_all(pages, sheet.labels_per_page)
		payload = emit_pdf(sheets, markup, engine, options)
	else:
		payload = emit_html(markup)
	return Artifact(
		payload=payload,
		content_type=CONTENT_TYPES[output_format],
		filename=f"{DEFAULT_OUTPUT_STEM}.{output_format}",
		summary=summary,
	)


#============================================
def write_artifact(path: pathlib.Path, artifact: Artifact) -> None:
	"""
	Write an artifact payload to disk.

	Args:
		path: Output path.
		artifact: Artifact to write.
	"""
	path.parent.mkdir(parents=True, exist_ok=True)
	with path.open("wb") as handle:
		handle.write(artifact.payload)
