import io
import pathlib
import subprocess

import pypdf
import pytest
import reportlab
import reportlab.pdfbase.pdfmetrics

import name_tag_sheets.config
import name_tag_sheets.emit
import name_tag_sheets.errors
import name_tag_sheets.mapper
import name_tag_sheets.paginate
import name_tag_sheets.render


TagRecord = name_tag_sheets.config.TagRecord
LogicalPage = name_tag_sheets.config.LogicalPage
PdfOptions = name_tag_sheets.config.PdfOptions
RenderEngineError = name_tag_sheets.errors.RenderEngineError

CHOIR_TEXT = "Alice,Smith,Soprano\nBob,Jones,Tenor\n\nCarol,Lee,Alto"


#============================================
def _read_pdf(payload: bytes) -> pypdf.PdfReader:
	"""
	Open PDF bytes with pypdf.

	Args:
		payload: PDF bytes.

	Returns:
		PdfReader.
	"""
	assert payload.startswith(b"%PDF")
	return pypdf.PdfReader(io.BytesIO(payload))


#============================================
def test_build_artifact_html() -> None:
	"""
	HTML artifacts carry the markup and pagination summary.
	"""
	artifact = name_tag_sheets.emit.build_artifact(CHOIR_TEXT)
	assert artifact.content_type.startswith("text/html")
	assert artifact.filename == "name-tags.html"
	assert b'<div class="line1">Alice</div>' in artifact.payload
	assert artifact.summary.logical_pages == 2
	assert artifact.summary.physical_pages == 2
	assert artifact.summary.tags == 3
	assert artifact.summary.empty_slots == 17


#============================================
def test_build_artifact_pdf_reportlab() -> None:
	"""
	The ReportLab engine writes one Letter page per sheet.
	"""
	artifact = name_tag_sheets.emit.build_artifact(CHOIR_TEXT, output_format="pdf")
	assert artifact.content_type == "application/pdf"
	reader = _read_pdf(artifact.payload)
	assert len(reader.pages) == 2
	box = reader.pages[0].mediabox
	assert float(box.width) == pytest.approx(612.0)
	assert float(box.height) == pytest.approx(792.0)
	first_text = reader.pages[0].extract_text()
	assert "Alice" in first_text
	assert "Bob" in first_text
	assert "Carol" in reader.pages[1].extract_text()


#============================================
def test_reportlab_engine_outlines() -> None:
	"""
	Outlines are merged onto every page without adding pages.
	"""
	pages = name_tag_sheets.mapper.apply_mapping(CHOIR_TEXT)
	sheets = name_tag_sheets.paginate.paginate_all(pages)
	engine = name_tag_sheets.emit.build_engine("reportlab", draw_outlines=True)
	payload = name_tag_sheets.emit.emit_pdf(sheets, "", engine)
	reader = _read_pdf(payload)
	assert len(reader.pages) == 2


#============================================
def test_reportlab_engine_empty_input() -> None:
	"""
	No sheets still produces a readable single blank page.
	"""
	payload = name_tag_sheets.emit.emit_pdf([], "")
	reader = _read_pdf(payload)
	assert len(reader.pages) == 1


#============================================
def test_fit_font_size_shrinks_long_text() -> None:
	"""
	Long text shrinks but never below the minimum size.
	"""
	fit = name_tag_sheets.emit.fit_font_size
	assert fit("Al", "Helvetica-Bold", 32.0, 252.0) == 32.0
	shrunk = fit("Bartholomew Maximilian", "Helvetica-Bold", 32.0, 252.0)
	assert name_tag_sheets.config.DEFAULT_TEXT_MIN_SIZE <= shrunk < 32.0
	tiny = fit("x" * 500, "Helvetica", 18.0, 252.0)
	assert tiny == name_tag_sheets.config.DEFAULT_TEXT_MIN_SIZE


#============================================
def test_compute_cell_origin_grid() -> None:
	"""
	Slots fill row by row inside the Letter page.
	"""
	sheet = name_tag_sheets.config.build_sheet_config()
	origin = name_tag_sheets.emit.compute_cell_origin
	x0, y0 = origin(sheet, 0)
	x1, y1 = origin(sheet, 1)
	x2, y2 = origin(sheet, 2)
	assert x0 == pytest.approx(18.0)
	assert y0 == pytest.approx(792.0 - 36.0 - 144.0)
	assert x1 == pytest.approx(18.0 + 288.0)
	assert y1 == pytest.approx(y0)
	assert x2 == pytest.approx(x0)
	assert y2 == pytest.approx(y0 - 144.0)
	for slot in range(sheet.labels_per_page):
		x, y = origin(sheet, slot)
		assert 0.0 <= x and x + 288.0 <= 612.0
		assert 0.0 <= y and y + 144.0 <= 792.0


class _BrokenEngine:
	def render(self, sheets, markup, options) -> bytes:
		raise RuntimeError("engine crashed")


#============================================
def test_emit_pdf_wraps_engine_errors() -> None:
	"""
	Unexpected engine failures surface as RenderEngineError.
	"""
	with pytest.raises(RenderEngineError, match="engine crashed"):
		name_tag_sheets.emit.emit_pdf([], "", _BrokenEngine())


#============================================
def test_chromium_engine_missing_binary(monkeypatch: pytest.MonkeyPatch) -> None:
	"""
	Without a Chromium executable the engine reports a generation failure.
	"""
	monkeypatch.delenv(name_tag_sheets.emit.CHROMIUM_ENV_VAR, raising=False)
	monkeypatch.setattr(name_tag_sheets.emit.shutil, "which", lambda name: None)
	engine = name_tag_sheets.emit.ChromiumEngine()
	with pytest.raises(RenderEngineError):
		engine.render([], "<html></html>", PdfOptions())


#============================================
def test_chromium_engine_success_cleans_up(monkeypatch: pytest.MonkeyPatch) -> None:
	"""
	The engine returns the printed PDF and removes its work directory.
	"""
	seen = {}

	def fake_run(command, **kwargs):
		pdf_arg = [arg for arg in command if arg.startswith("--print-to-pdf=")][0]
		pdf_path = pathlib.Path(pdf_arg.split("=", 1)[1])
		seen["work_dir"] = pdf_path.parent
		seen["html"] = (pdf_path.parent / "name-tags.html").read_text(encoding="utf-8")
		pdf_path.write_bytes(b"%PDF-1.4 fake")
		return subprocess.CompletedProcess(command, 0, stdout="", stderr="")

	monkeypatch.setattr(name_tag_sheets.emit.subprocess, "run", fake_run)
	engine = name_tag_sheets.emit.ChromiumEngine(binary="chromium")
	payload = engine.render([], "<html>tags</html>", PdfOptions())
	assert payload == b"%PDF-1.4 fake"
	assert seen["html"] == "<html>tags</html>"
	assert not seen["work_dir"].exists()


#============================================
def test_chromium_engine_failure_cleans_up(monkeypatch: pytest.MonkeyPatch) -> None:
	"""
	A failed run raises and still removes the work directory.
	"""
	seen = {}

	def fake_run(command, **kwargs):
		seen["work_dir"] = pathlib.Path(command[-1].replace("file://", "")).parent
		return subprocess.CompletedProcess(command, 1, stdout="", stderr="crash")

	monkeypatch.setattr(name_tag_sheets.emit.subprocess, "run", fake_run)
	engine = name_tag_sheets.emit.ChromiumEngine(binary="chromium")
	with pytest.raises(RenderEngineError, match="crash"):
		engine.render([], "<html></html>", PdfOptions())
	assert not seen["work_dir"].exists()


#============================================
def test_chromium_engine_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
	"""
	A timeout becomes a generation failure.
	"""
	def fake_run(command, **kwargs):
		raise subprocess.TimeoutExpired(command, kwargs.get("timeout"))

	monkeypatch.setattr(name_tag_sheets.emit.subprocess, "run", fake_run)
	engine = name_tag_sheets.emit.ChromiumEngine(binary="chromium")
	with pytest.raises(RenderEngineError, match="timed out"):
		engine.render([], "<html></html>", PdfOptions(timeout=1.0))


#============================================
def test_build_engine_unknown() -> None:
	"""
	Unknown engine names are rejected.
	"""
	with pytest.raises(ValueError):
		name_tag_sheets.emit.build_engine("wkhtmltopdf")


#============================================
def test_write_artifact(tmp_path: pathlib.Path) -> None:
	"""
	Artifacts are written byte for byte.
	"""
	artifact = name_tag_sheets.emit.build_artifact("Alice")
	output_path = tmp_path / "out" / "tags.html"
	name_tag_sheets.emit.write_artifact(output_path, artifact)
	assert output_path.read_bytes() == artifact.payload


LONG_NAME = (
	"Bartholomew Maximilian Fitzgerald-Worthington the Third of Greater Upper Middlesex"
)
VERA_FONT = pathlib.Path(reportlab.__file__).parent / "fonts" / "Vera.ttf"
VERA_BOLD_FONT = pathlib.Path(reportlab.__file__).parent / "fonts" / "VeraBd.ttf"


#============================================
def _label_box(sheet: name_tag_sheets.config.SheetConfig) -> tuple[float, float]:
	"""
	Padded text area of one label in points.

	Args:
		sheet: Sheet layout in inches.

	Returns:
		Tuple of (max width, max height).
	"""
	padding = name_tag_sheets.config.inches_to_points(sheet.padding)
	width = name_tag_sheets.config.inches_to_points(sheet.label_width) - 2.0 * padding
	height = name_tag_sheets.config.inches_to_points(sheet.label_height) - 2.0 * padding
	return (width, height)


#============================================
def test_layout_tag_wraps_long_lines() -> None:
	"""
	Lines too wide at the minimum size wrap, and every run fits the label.
	"""
	sheet = name_tag_sheets.config.build_sheet_config()
	max_width, max_height = _label_box(sheet)
	tag = TagRecord(LONG_NAME, "x" * 120, "Soprano")
	runs = name_tag_sheets.emit.layout_tag(tag, sheet)
	assert len(runs) > 3
	for run in runs:
		width = reportlab.pdfbase.pdfmetrics.stringWidth(run.text, run.font_name, run.font_size)
		assert width <= max_width
		assert width <= name_tag_sheets.config.inches_to_points(sheet.label_width)
	assert sum(run.gap_before + run.leading for run in runs) <= max_height
	joined = " ".join(run.text for run in runs if run.font_name == "Helvetica-Bold")
	assert joined == LONG_NAME
	assert "".join(run.text for run in runs if run.text.startswith("x")) == "x" * 120
	assert runs[-1].text == "Soprano"


#============================================
def test_layout_tag_short_lines_untouched() -> None:
	"""
	Short lines stay on one run each at their tier sizes.
	"""
	sheet = name_tag_sheets.config.build_sheet_config()
	runs = name_tag_sheets.emit.layout_tag(TagRecord("Alice", "", "Alto"), sheet)
	assert [(run.text, run.font_size) for run in runs] == [("Alice", 32.0), ("Alto", 18.0)]
	assert runs[0].gap_before == 0.0
	assert runs[1].gap_before > 0.0


#============================================
def test_layout_tag_cuts_overflow() -> None:
	"""
	Text taller than the label is cut and the last kept run is marked.
	"""
	sheet = name_tag_sheets.config.build_sheet_config()
	max_width, max_height = _label_box(sheet)
	tag = TagRecord(" ".join(["Wolfeschlegelsteinhausen"] * 60))
	runs = name_tag_sheets.emit.layout_tag(tag, sheet)
	assert runs[-1].text.endswith(name_tag_sheets.config.ELLIPSIS)
	assert sum(run.gap_before + run.leading for run in runs) <= max_height
	for run in runs:
		width = reportlab.pdfbase.pdfmetrics.stringWidth(run.text, run.font_name, run.font_size)
		assert width <= max_width


#============================================
def test_pdf_keeps_long_names() -> None:
	"""
	A wrapped name still reaches the PDF text layer.
	"""
	artifact = name_tag_sheets.emit.build_artifact(f"{LONG_NAME},Tenor", output_format="pdf")
	text = _read_pdf(artifact.payload).pages[0].extract_text()
	assert "Bartholomew" in text
	assert "Middlesex" in text
	assert "Tenor" in text


#============================================
def test_pdf_latin_text_extracted() -> None:
	"""
	Accented Latin text survives the built-in fonts.
	"""
	artifact = name_tag_sheets.emit.build_artifact("Zoë,Ünïcode", output_format="pdf")
	text = _read_pdf(artifact.payload).pages[0].extract_text()
	assert "Zoë" in text
	assert "Ünïcode" in text


#============================================
def test_pdf_rejects_text_outside_builtin_fonts(monkeypatch: pytest.MonkeyPatch) -> None:
	"""
	Characters Helvetica cannot draw fail loudly instead of printing boxes.
	"""
	monkeypatch.delenv(name_tag_sheets.emit.FONT_ENV_VAR, raising=False)
	with pytest.raises(RenderEngineError, match="李"):
		name_tag_sheets.emit.build_artifact("Zoë 李雷,Ünïcode,✓", output_format="pdf")


#============================================
def test_missing_glyphs_builtin_font() -> None:
	"""
	Built-in fonts cover WinAnsi text only.
	"""
	missing = name_tag_sheets.emit.missing_glyphs
	assert missing("Zoë Ünïcode", "Helvetica") == ""
	assert missing("李雷 ✓ 李", "Helvetica") == "李雷✓"


#============================================
def test_truetype_font_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
	"""
	A TrueType font set in the environment is embedded and extractable.
	"""
	if not VERA_FONT.is_file() or not VERA_BOLD_FONT.is_file():
		pytest.skip("reportlab was installed without its bundled fonts")
	monkeypatch.setenv(name_tag_sheets.emit.FONT_ENV_VAR, str(VERA_FONT))
	monkeypatch.setenv(name_tag_sheets.emit.FONT_BOLD_ENV_VAR, str(VERA_BOLD_FONT))
	artifact = name_tag_sheets.emit.build_artifact("Zoë,Ünïcode", output_format="pdf")
	reader = _read_pdf(artifact.payload)
	text = reader.pages[0].extract_text()
	assert "Zoë" in text
	assert "Ünïcode" in text
	fonts = reader.pages[0]["/Resources"]["/Font"]
	subtypes = [str(fonts[key].get_object()["/Subtype"]) for key in fonts]
	assert "/TrueType" in subtypes
	# Vera has no CJK glyphs
	with pytest.raises(RenderEngineError, match="李"):
		name_tag_sheets.emit.build_artifact("李雷", output_format="pdf")


#============================================
def test_register_fonts_bad_path(tmp_path: pathlib.Path) -> None:
	"""
	An unreadable font file is a generation failure.
	"""
	with pytest.raises(RenderEngineError, match="TrueType"):
		name_tag_sheets.emit.register_fonts(str(tmp_path / "missing.ttf"))


#============================================
def test_register_fonts_default(monkeypatch: pytest.MonkeyPatch) -> None:
	"""
	Without a configured font the Helvetica pair is used.
	"""
	monkeypatch.delenv(name_tag_sheets.emit.FONT_ENV_VAR, raising=False)
	assert name_tag_sheets.emit.register_fonts() == ("Helvetica", "Helvetica-Bold")


#============================================
def test_reportlab_page_format() -> None:
	"""
	The page format picks the ReportLab paper size.
	"""
	options = PdfOptions(page_format="A4")
	artifact = name_tag_sheets.emit.build_artifact(CHOIR_TEXT, output_format="pdf", options=options)
	box = _read_pdf(artifact.payload).pages[0].mediabox
	assert float(box.width) == pytest.approx(595.2756, abs=0.01)
	assert float(box.height) == pytest.approx(841.8898, abs=0.01)
	legal = name_tag_sheets.emit.build_artifact(
		CHOIR_TEXT, output_format="pdf", options=PdfOptions(page_format="legal")
	)
	assert float(_read_pdf(legal.payload).pages[0].mediabox.height) == pytest.approx(1008.0)


#============================================
@pytest.mark.parametrize("page_format", ["Postcard", "A5"])
def test_reportlab_page_format_rejected(page_format: str) -> None:
	"""
	Unknown paper names and paper too small for the grid are rejected.
	"""
	with pytest.raises(RenderEngineError):
		name_tag_sheets.emit.emit_pdf([], "", options=PdfOptions(page_format=page_format))


#============================================
def test_apply_page_format() -> None:
	"""
	Chromium output gets an @page override for non-Letter paper.
	"""
	markup = name_tag_sheets.render.render_html([LogicalPage([TagRecord("Alice")])])
	assert name_tag_sheets.emit.apply_page_format(markup, "Letter") == markup
	a4_markup = name_tag_sheets.emit.apply_page_format(markup, "A4")
	assert "<style>@page { size: A4; }</style>\n</head>" in a4_markup
	with pytest.raises(RenderEngineError):
		name_tag_sheets.emit.apply_page_format(markup, "Postcard")


#============================================
def test_chromium_engine_page_format(monkeypatch: pytest.MonkeyPatch) -> None:
	"""
	The page format reaches the document Chromium prints.
	"""
	seen = {}

	def fake_run(command, **kwargs):
		pdf_arg = [arg for arg in command if arg.startswith("--print-to-pdf=")][0]
		pdf_path = pathlib.Path(pdf_arg.split("=", 1)[1])
		seen["html"] = (pdf_path.parent / "name-tags.html").read_text(encoding="utf-8")
		seen["timeout"] = kwargs["timeout"]
		pdf_path.write_bytes(b"%PDF-1.4 fake")
		return subprocess.CompletedProcess(command, 0, stdout="", stderr="")

	monkeypatch.setattr(name_tag_sheets.emit.subprocess, "run", fake_run)
	engine = name_tag_sheets.emit.ChromiumEngine(binary="chromium")
	options = PdfOptions(page_format="Legal", timeout=5.0)
	engine.render([], "<html><head></head></html>", options)
	assert "size: legal;" in seen["html"]
	assert seen["timeout"] == 5.0
