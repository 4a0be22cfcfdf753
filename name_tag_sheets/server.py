"""
FastAPI service for interactive parsing and sheet generation.
"""

# Standard Library
import logging
import os
from typing import Optional

# PIP3 modules
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response

# local repo modules
import name_tag_sheets as nts
import name_tag_sheets.config
import name_tag_sheets.emit
import name_tag_sheets.errors
import name_tag_sheets.fetch
import name_tag_sheets.parser


NameTagError = nts.errors.NameTagError

MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "5"))
PDF_ENGINE = os.getenv("NAME_TAG_PDF_ENGINE", "reportlab")

ERROR_STATUS = {
	"INPUT_MISSING": 400,
	"FILE_TOO_LARGE": 413,
	"GOOGLE_SHEETS_INVALID_URL": 400,
	"GOOGLE_SHEETS_PRIVATE": 403,
	"GOOGLE_SHEETS_FAILED": 502,
	"PDF_GENERATION_FAILED": 500,
}

logger = logging.getLogger(__name__)

app = FastAPI(
	title="Name Tag Sheets",
	description="CSV and Google Sheets to printable TownStix US-10 name tag sheets",
	version="1.0.0",
)


#============================================
def error_response(error: NameTagError) -> HTTPException:
	"""
	Convert a pipeline error into an HTTP error with remedy details.

	Args:
		error: Error raised by the pipeline or fetcher.

	Returns:
		HTTPException to raise.
	"""
	context = nts.errors.describe_error(error)
	detail = {"code": error.code, "error": str(error)}
	detail.update(context.to_dict())
	status_code = ERROR_STATUS.get(error.code, 500)
	logger.warning("Request failed with %s: %s", error.code, error)
	return HTTPException(status_code=status_code, detail=detail)


#============================================
def decode_upload(data: bytes) -> str:
	"""
	Decode an uploaded file, enforcing the size limit.

	Args:
		data: Raw upload bytes.

	Returns:
		Decoded text; invalid UTF-8 sequences are replaced.
	"""
	if len(data) > MAX_UPLOAD_MB * 1024 * 1024:
		raise nts.errors.InputTooLargeError(f"File too large. Maximum size is {MAX_UPLOAD_MB}MB")
	return data.decode("utf-8", errors="replace")


@app.get("/health")
async def health_check():
	"""Health check endpoint"""
	return {"status": "healthy", "service": "name-tag-sheets"}


@app.post("/api/parse")
async def parse_data(request: Request):
	"""Parse an uploaded CSV file or a published Google Sheet into a dataset"""
	content_type = request.headers.get("content-type", "")
	try:
		if "multipart/form-data" in content_type:
			form = await request.form()
			upload = form.get("file")
			if upload is None or isinstance(upload, str):
				raise nts.errors.MissingInputError("No file provided")
			text = decode_upload(await upload.read())
			has_headers = str(form.get("hasHeaders", "")).lower() == "true"
		else:
			body = await read_json(request)
			sheets_url = body.get("sheetsUrl")
			if not sheets_url:
				raise nts.errors.MissingInputError("No sheetsUrl provided")
			if not isinstance(sheets_url, str) or not nts.fetch.is_valid_sheets_url(sheets_url):
				raise nts.errors.InvalidSheetUrlError(f"Invalid Google Sheets URL: {sheets_url}")
			text = await nts.fetch.fetch_sheet_csv_async(sheets_url)
			has_headers = bool(body.get("hasHeaders", False))
	except NameTagError as error:
		raise error_response(error) from error

	dataset = nts.parser.parse_raw_data(text, has_headers)
	return dataset.to_dict()


@app.post("/api/generate")
async def generate(request: Request):
	"""Generate name tag sheets as HTML or PDF"""
	body = await read_json(request)
	csv_content: Optional[str] = body.get("csvContent")
	output_format = body.get("format", "html")
	if output_format not in nts.config.OUTPUT_FORMATS:
		raise HTTPException(status_code=400, detail=f"Unsupported format: {output_format}")
	try:
		mapping = nts.config.ColumnMapping.from_dict(body.get("mapping"))
	except (TypeError, ValueError, AttributeError) as error:
		raise HTTPException(status_code=400, detail=f"Invalid mapping: {error}") from error

	try:
		if not csv_content:
			raise nts.errors.MissingInputError("No csvContent provided")
		engine = None
		options = nts.config.PdfOptions(
			page_format=str(body.get("pageFormat") or nts.config.DEFAULT_PAGE_FORMAT),
		)
		if output_format == "pdf":
			engine = nts.emit.build_engine(PDF_ENGINE)
		artifact = nts.emit.build_artifact(
			csv_content,
			mapping,
			bool(body.get("hasHeaders", False)),
			output_format,
			engine,
			options,
		)
	except NameTagError as error:
		raise error_response(error) from error

	summary = artifact.summary
	headers = {
		"X-Logical-Pages": str(summary.logical_pages),
		"X-Physical-Pages": str(summary.physical_pages),
		"X-Name-Tags": str(summary.tags),
	}
	if output_format == "pdf":
		headers["Content-Disposition"] = f'attachment; filename="{artifact.filename}"'
		return Response(
			content=artifact.payload,
			media_type="application/pdf",
			headers=headers,
		)
	return JSONResponse(
		content={"html": artifact.payload.decode("utf-8")},
		headers=headers,
	)


async def read_json(request: Request) -> dict:
	"""Read a JSON object body, treating an empty body as {}"""
	raw = await request.body()
	if not raw.strip():
		return {}
	try:
		body = await request.json()
	except ValueError as error:
		raise HTTPException(status_code=400, detail=f"Invalid JSON body: {error}") from error
	if not isinstance(body, dict):
		raise HTTPException(status_code=400, detail="JSON body must be an object")
	return body
