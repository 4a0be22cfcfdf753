"""
HTML rendering of name tag sheets.
"""

# Standard Library
import html

# local repo modules
import name_tag_sheets as nts
import name_tag_sheets.config
import name_tag_sheets.paginate


TagRecord = nts.config.TagRecord
LogicalPage = nts.config.LogicalPage
PhysicalPage = nts.config.PhysicalPage
SheetConfig = nts.config.SheetConfig

DOCUMENT_TITLE = "Name Tags - TownStix US-10"
LINE_CLASSES = ("line1", "line2", "line3")


def escape_text(text: str) -> str:
	return html.escape(text, quote=True)


#============================================
def render_tag(tag: TagRecord) -> str:
	"""
	Render one label slot.

	Args:
		tag: Tag record, possibly an empty slot.

	Returns:
		HTML for the label div.
	"""
	parts = ['      <div class="name-tag">']
	for css_class, text in zip(LINE_CLASSES, tag.lines()):
		if not text:
			continue
		parts.append(f'        <div class="{css_class}">{escape_text(text)}</div>')
	parts.append("      </div>")
	return "\n".join(parts)


#============================================
def render_sheet(sheet: PhysicalPage) -> str:
	"""
	Render one physical page as a label grid.

	Args:
		sheet: Physical page with a full set of slots.

	Returns:
		HTML for the page div.
	"""
	tags = "\n".join(render_tag(tag) for tag in sheet.slots)
	return (
		'  <div class="page">\n'
		'    <div class="label-grid">\n'
		f"{tags}\n"
		"    </div>\n"
		"  </div>"
	)


#============================================
def build_stylesheet(sheet: SheetConfig) -> str:
	"""
	Build the inline stylesheet for the label template.

	Args:
		sheet: Sheet layout in inches.

	Returns:
		CSS text.
	"""
	grid_width = sheet.columns * sheet.label_width
	line1_size, line2_size, line3_size = sheet.font_sizes
	return f"""    @page {{
      size: letter;
      margin: {sheet.top_margin}in {sheet.left_margin}in;
    }}

    * {{
      margin: 0;
      padding: 0;
      box-sizing: border-box;
    }}

    body {{
      font-family: Arial, Helvetica, sans-serif;
      -webkit-print-color-adjust: exact;
      print-color-adjust: exact;
    }}

    .page {{
      page-break-after: always;
      width: {grid_width}in;
      margin: 0 auto;
    }}

    .page:last-child {{
      page-break-after: auto;
    }}

    /* {sheet.columns} columns x {sheet.rows} rows, {sheet.label_width}in x {sheet.label_height}in labels */
    .label-grid {{
      display: grid;
      grid-template-columns: repeat({sheet.columns}, {sheet.label_width}in);
      grid-template-rows: repeat({sheet.rows}, {sheet.label_height}in);
      gap: 0;
      width: {grid_width}in;
    }}

    .name-tag {{
      width: {sheet.label_width}in;
      height: {sheet.label_height}in;
      border: 1px dashed #ccc;
      display: flex;
      flex-direction: column;
      justify-content: center;
      align-items: center;
      text-align: center;
      padding: {sheet.padding}in;
      overflow: hidden;
    }}

    .line1 {{
      font-size: {line1_size:g}pt;
      font-weight: bold;
      line-height: 1.2;
      margin-bottom: 0.1in;
      max-width: 100%;
      word-wrap: break-word;
    }}

    .line2 {{
      font-size: {line2_size:g}pt;
      line-height: 1.3;
      margin-bottom: 0.05in;
      max-width: 100%;
      word-wrap: break-word;
    }}

    .line3 {{
      font-size: {line3_size:g}pt;
      line-height: 1.3;
      max-width: 100%;
      word-wrap: break-word;
    }}

    @media print {{
      .name-tag {{
        border: none;
      }}

      body {{
        margin: 0;
        padding: 0;
      }}
    }}"""


#============================================
def render_html(pages: list[LogicalPage], sheet: SheetConfig | None = None) -> str:
	"""
	Render logical pages into a complete printable HTML document.

	Every logical page starts on a new sheet.

	Args:
		pages: Logical pages of tag records.
		sheet: Sheet layout, TownStix US-10 when None.

	Returns:
		Self-contained HTML document.
	"""
	if sheet is None:
		sheet = nts.config.build_sheet_config()
	sheets = nts.paginate.paginate_all(pages, sheet.labels_per_page)
	body = "\n".join(render_sheet(physical) for physical in sheets)
	return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{DOCUMENT_TITLE}</title>
  <style>
{build_stylesheet(sheet)}
  </style>
</head>
<body>
{body}
</body>
</html>
"""
