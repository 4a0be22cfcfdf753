"""
CLI entry points for CSV to name tag sheet conversion.
"""

# Standard Library
import argparse
import pathlib
import sys
import time

# local repo modules
import name_tag_sheets as nts
import name_tag_sheets.config
import name_tag_sheets.emit
import name_tag_sheets.errors
import name_tag_sheets.fetch


ColumnMapping = nts.config.ColumnMapping
NameTagError = nts.errors.NameTagError

OUTPUT_FORMATS = nts.config.OUTPUT_FORMATS
DEFAULT_OUTPUT_STEM = nts.config.DEFAULT_OUTPUT_STEM


#============================================
def build_mapping(args: argparse.Namespace) -> ColumnMapping:
	"""
	Build the column mapping from CLI args.

	Without any column flag the identity mapping is used. Once any column
	flag is given, lines without a flag stay empty.

	Args:
		args: Parsed argparse namespace.

	Returns:
		ColumnMapping.
	"""
	columns = (args.line1_col, args.line2_col, args.line3_col)
	if all(value is None for value in columns):
		return ColumnMapping()
	return ColumnMapping(line1=columns[0], line2=columns[1], line3=columns[2])


#============================================
def read_source(args: argparse.Namespace) -> str:
	"""
	Read delimited text from a file, stdin or a Google Sheet.

	Args:
		args: Parsed argparse namespace.

	Returns:
		Raw text.
	"""
	if args.sheet_id:
		reference = nts.fetch.SheetReference(spreadsheet_id=args.sheet_id, gid=args.gid)
		return nts.fetch.fetch_sheet_csv(reference)
	source = args.source
	if not source:
		raise nts.errors.MissingInputError("No data source given")
	if source == "-":
		return sys.stdin.read()
	if source.startswith(("http://", "https://")):
		return nts.fetch.fetch_sheet_csv(source)
	path = pathlib.Path(source)
	if not path.is_file():
		raise nts.errors.MissingInputError(f"Input file not found: {source}")
	return path.read_text(encoding="utf-8-sig")


#============================================
def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	"""
	Parse command line arguments.

	Args:
		argv: Argument list, sys.argv when None.

	Returns:
		Parsed argparse namespace.
	"""
	parser = argparse.ArgumentParser(
		description="Convert CSV data or a published Google Sheet to TownStix US-10 name tag sheets."
	)
	parser.add_argument(
		"source",
		nargs="?",
		default=None,
		help="CSV file path, '-' for stdin, or a Google Sheets URL.",
	)

	sheet_group = parser.add_argument_group("Google Sheets")
	sheet_group.add_argument("-s", "--sheet-id", dest="sheet_id", default=None, help="Spreadsheet ID.")
	sheet_group.add_argument("-g", "--gid", dest="gid", default=nts.fetch.DEFAULT_GID, help="Sheet tab gid.")

	output_group = parser.add_argument_group("Output")
	output_group.add_argument("-o", "--output", dest="output_path", default=None, help="Output file path.")
	output_group.add_argument(
		"-f", "--format", dest="output_format", choices=OUTPUT_FORMATS, help="Output format."
	)
	output_group.add_argument(
		"-e", "--pdf-engine", dest="pdf_engine", choices=sorted(nts.emit.PDF_ENGINES), help="PDF engine."
	)
	output_group.add_argument("-p", "--page-format", dest="page_format", help="PDF paper size, such as Letter or A4.")
	output_group.add_argument("-t", "--timeout", dest="timeout", type=float, help="Chromium timeout in seconds.")
	output_group.add_argument("-d", "--draw-outlines", dest="draw_outlines", action="store_true", help="Draw label outlines in PDF output.")
	output_group.add_argument("-D", "--no-draw-outlines", dest="draw_outlines", action="store_false", help="Disable label outlines.")

	mapping_group = parser.add_argument_group("Mapping")
	mapping_group.add_argument("--line1-col", dest="line1_col", type=int, default=None, help="Column index (0-based) for line 1.")
	mapping_group.add_argument("--line2-col", dest="line2_col", type=int, default=None, help="Column index (0-based) for line 2.")
	mapping_group.add_argument("--line3-col", dest="line3_col", type=int, default=None, help="Column index (0-based) for line 3.")
	mapping_group.add_argument("-H", "--has-headers", dest="has_headers", action="store_true", help="First row contains headers.")
	mapping_group.add_argument("-N", "--no-has-headers", dest="has_headers", action="store_false", help="First row is data.")

	parser.set_defaults(
		output_format="html",
		pdf_engine="reportlab",
		page_format=nts.config.DEFAULT_PAGE_FORMAT,
		timeout=nts.config.DEFAULT_PDF_TIMEOUT,
		draw_outlines=False,
		has_headers=False,
	)

	args = parser.parse_args(argv)
	if args.source is None and args.sheet_id is None:
		parser.error("a source or --sheet-id is required")
	return args


#============================================
def run_pipeline(args: argparse.Namespace) -> pathlib.Path:
	"""
	Run the full pipeline from input to output file.

	Args:
		args: Parsed argparse namespace.

	Returns:
		Output path written.
	"""
	output_path = args.output_path
	if output_path is None:
		output_path = f"./{DEFAULT_OUTPUT_STEM}.{args.output_format}"
	output_path = pathlib.Path(output_path)
	mapping = build_mapping(args)

	print("CSV to name tag sheets pipeline")
	print(f"Output: {output_path}")
	print(f"Format: {args.output_format}")
	print(f"Has headers: {args.has_headers}")
	print(f"Mapping: line1={mapping.line1} line2={mapping.line2} line3={mapping.line3}")
	if args.output_format == "pdf":
		print(f"PDF engine: {args.pdf_engine}")
		print(f"Page format: {args.page_format}")

	start_time = time.perf_counter()
	text = read_source(args)
	read_end = time.perf_counter()

	engine = None
	options = nts.config.PdfOptions(page_format=args.page_format, timeout=args.timeout)
	if args.output_format == "pdf":
		engine = nts.emit.build_engine(args.pdf_engine, args.draw_outlines)
	artifact = nts.emit.build_artifact(
		text,
		mapping,
		args.has_headers,
		args.output_format,
		engine,
		options,
	)
	build_end = time.perf_counter()

	summary = artifact.summary
	print(f"Logical pages: {summary.logical_pages}")
	print(f"Physical pages: {summary.physical_pages}")
	print(f"Name tags: {summary.tags}")
	print(f"Empty slots: {summary.empty_slots}")

	nts.emit.write_artifact(output_path, artifact)
	total_time = time.perf_counter() - start_time
	print(
		"Timing: read={:.2f}s build={:.2f}s total={:.2f}s".format(
			read_end - start_time,
			build_end - read_end,
			total_time,
		)
	)
	print(f"Written: {output_path}")
	if args.output_format == "html":
		print("Print settings: US Letter, margins 0.5in, no headers/footers")
	return output_path


#============================================
def main(argv: list[str] | None = None) -> int:
	"""
	Main entry point.

	Args:
		argv: Argument list, sys.argv when None.

	Returns:
		Process exit code.
	"""
	args = parse_args(argv)
	try:
		run_pipeline(args)
	except NameTagError as error:
		context = nts.errors.describe_error(error)
		print(f"Error: {error}", file=sys.stderr)
		print(context.solution, file=sys.stderr)
		return 1
	except OSError as error:
		print(f"Error: {error}", file=sys.stderr)
		return 1
	return 0
