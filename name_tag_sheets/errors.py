"""
Error types and user guidance for failures.
"""

import dataclasses


SHEETS_HELP_LINK = "https://support.google.com/docs/answer/183965"


class NameTagError(Exception):
	code = "UNKNOWN"


class MissingInputError(NameTagError):
	code = "INPUT_MISSING"


class InputTooLargeError(NameTagError):
	code = "FILE_TOO_LARGE"


class SheetFetchError(NameTagError):
	code = "GOOGLE_SHEETS_FAILED"


class InvalidSheetUrlError(SheetFetchError):
	code = "GOOGLE_SHEETS_INVALID_URL"


class SheetAccessDeniedError(SheetFetchError):
	code = "GOOGLE_SHEETS_PRIVATE"


class RenderEngineError(NameTagError):
	code = "PDF_GENERATION_FAILED"


@dataclasses.dataclass
class ErrorContext:
	message: str
	solution: str
	help_link: str | None = None

	def to_dict(self) -> dict:
		return {
			"message": self.message,
			"solution": self.solution,
			"helpLink": self.help_link,
		}


REMEDIES = {
	"INPUT_MISSING": ErrorContext(
		message="No data provided",
		solution="Upload a CSV file or paste a published Google Sheets URL.",
	),
	"FILE_TOO_LARGE": ErrorContext(
		message="File is too large",
		solution=(
			"Maximum file size is 5MB. Try:\n"
			"- Removing unnecessary columns\n"
			"- Splitting data into multiple files"
		),
	),
	"GOOGLE_SHEETS_FAILED": ErrorContext(
		message="Unable to access Google Sheet",
		solution=(
			"Make sure your sheet is published:\n"
			"1. Open your sheet\n"
			"2. Click File > Share > Publish to web\n"
			"3. Click \"Publish\" and copy the URL"
		),
		help_link=SHEETS_HELP_LINK,
	),
	"GOOGLE_SHEETS_INVALID_URL": ErrorContext(
		message="Invalid Google Sheets URL",
		solution="URL should look like:\nhttps://docs.google.com/spreadsheets/d/SHEET_ID/edit",
		help_link=SHEETS_HELP_LINK,
	),
	"GOOGLE_SHEETS_PRIVATE": ErrorContext(
		message="Google Sheet is private",
		solution="The sheet must be publicly accessible. Click \"Share\" and set to \"Anyone with the link\".",
	),
	"PDF_GENERATION_FAILED": ErrorContext(
		message="PDF generation failed",
		solution="Download the HTML version and print it from a browser instead.",
	),
}


#============================================
def describe_error(error: BaseException) -> ErrorContext:
	"""
	Map an exception to a message and a suggested remedy.

	Args:
		error: Any exception reaching a boundary.

	Returns:
		ErrorContext from REMEDIES, or one built from the exception text.
	"""
	code = getattr(error, "code", None)
	if code in REMEDIES:
		return REMEDIES[code]
	return ErrorContext(message="An error occurred", solution=str(error))
