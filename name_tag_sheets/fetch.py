"""
Google Sheets CSV fetching.
"""

# Standard Library
import dataclasses
import logging
import re

# PIP3 modules
import httpx

# local repo modules
import name_tag_sheets as nts
import name_tag_sheets.errors


SheetFetchError = nts.errors.SheetFetchError
InvalidSheetUrlError = nts.errors.InvalidSheetUrlError
SheetAccessDeniedError = nts.errors.SheetAccessDeniedError

EXPORT_URL = "https://docs.google.com/spreadsheets/d/{spreadsheet_id}/export?format=csv&gid={gid}"
SIGN_IN_HOST = "accounts.google.com"
DEFAULT_GID = "0"
DEFAULT_TIMEOUT = 30.0

SHEETS_URL_PATTERN = re.compile(r"^https://docs\.google\.com/spreadsheets/d/[a-zA-Z0-9_-]+")
SPREADSHEET_ID_PATTERN = re.compile(r"/spreadsheets/d/([a-zA-Z0-9_-]+)")
GID_HASH_PATTERN = re.compile(r"#gid=(\d+)")
GID_QUERY_PATTERN = re.compile(r"[?&]gid=(\d+)")

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class SheetReference:
	spreadsheet_id: str
	gid: str = DEFAULT_GID

	@property
	def export_url(self) -> str:
		return EXPORT_URL.format(spreadsheet_id=self.spreadsheet_id, gid=self.gid)


def is_valid_sheets_url(url: str) -> bool:
	return SHEETS_URL_PATTERN.match(url.strip()) is not None


#============================================
def parse_sheets_url(url: str) -> SheetReference:
	"""
	Extract the spreadsheet id and tab gid from a Google Sheets URL.

	Accepts .../d/ID, .../d/ID/edit#gid=N and .../d/ID/edit?gid=N.

	Args:
		url: Google Sheets URL.

	Returns:
		SheetReference; gid defaults to "0".
	"""
	match = SPREADSHEET_ID_PATTERN.search(url)
	if match is None or not is_valid_sheets_url(url):
		raise InvalidSheetUrlError(f"Invalid Google Sheets URL: {url}")
	gid = DEFAULT_GID
	gid_match = GID_HASH_PATTERN.search(url) or GID_QUERY_PATTERN.search(url)
	if gid_match is not None:
		gid = gid_match.group(1)
	return SheetReference(spreadsheet_id=match.group(1), gid=gid)


#============================================
def resolve_reference(source: str | SheetReference) -> SheetReference:
	"""
	Accept either a URL or an existing reference.

	Args:
		source: Google Sheets URL or SheetReference.

	Returns:
		SheetReference.
	"""
	if isinstance(source, SheetReference):
		return source
	return parse_sheets_url(source)


#============================================
def check_response(response: httpx.Response, reference: SheetReference) -> str:
	"""
	Turn an export response into CSV text or a typed error.

	Args:
		response: HTTP response after redirects.
		reference: Sheet that was requested.

	Returns:
		CSV text.
	"""
	if response.status_code in (401, 403):
		raise SheetAccessDeniedError(
			f"Google Sheet {reference.spreadsheet_id} is private ({response.status_code})"
		)
	# unpublished sheets redirect to the sign-in page
	if response.url.host == SIGN_IN_HOST:
		raise SheetAccessDeniedError(
			f"Google Sheet {reference.spreadsheet_id} is private (sign-in required)"
		)
	if response.status_code != 200:
		raise SheetFetchError(
			f"Failed to fetch Google Sheet: {response.status_code} {response.reason_phrase}"
		)
	return response.text


#============================================
def fetch_sheet_csv(
	source: str | SheetReference,
	client: httpx.Client | None = None,
	timeout: float = DEFAULT_TIMEOUT,
) -> str:
	"""
	Download a published Google Sheet tab as CSV text.

	Args:
		source: Google Sheets URL or SheetReference.
		client: Optional httpx client to reuse.
		timeout: Request timeout in seconds.

	Returns:
		CSV text.
	"""
	reference = resolve_reference(source)
	logger.info("Fetching %s", reference.export_url)
	owns_client = client is None
	if client is None:
		client = httpx.Client(timeout=timeout, follow_redirects=True)
	try:
		response = client.get(reference.export_url)
	except httpx.RequestError as error:
		raise SheetFetchError(f"Failed to fetch Google Sheet: {error}") from error
	finally:
		if owns_client:
			client.close()
	return check_response(response, reference)


#============================================
async def fetch_sheet_csv_async(
	source: str | SheetReference,
	client: httpx.AsyncClient | None = None,
	timeout: float = DEFAULT_TIMEOUT,
) -> str:
	"""
	Async variant of fetch_sheet_csv for the web service.

	Args:
		source: Google Sheets URL or SheetReference.
		client: Optional httpx async client to reuse.
		timeout: Request timeout in seconds.

	Returns:
		CSV text.
	"""
	reference = resolve_reference(source)
	logger.info("Fetching %s", reference.export_url)
	owns_client = client is None
	if client is None:
		client = httpx.AsyncClient(timeout=timeout, follow_redirects=True)
	try:
		response = await client.get(reference.export_url)
	except httpx.RequestError as error:
		raise SheetFetchError(f"Failed to fetch Google Sheet: {error}") from error
	finally:
		if owns_client:
			await client.aclose()
	return check_response(response, reference)
