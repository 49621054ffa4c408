"""
HTML document template for rendering.

Wraps an HTML fragment in a complete, self-contained document with the
embedded visual theme and the optional page-break safety rules used
when printing to PDF.
"""

from .models import RenderOptions, StyledDocument


GOOGLE_FONTS_URL = (
    "https://fonts.googleapis.com/css2"
    "?family=Inter:wght@400;500;600;700"
    "&family=Fira+Code:wght@400;500"
    "&display=swap"
)

# Marks the conditional block so its presence can be checked
PREVENT_IMAGE_SPLIT_MARKER = "/* prevent-image-split */"

BASE_CSS = f"""
  @import url('{GOOGLE_FONTS_URL}');

  :root {{
    --text: #1a1a2e;
    --text-secondary: #4a4a6a;
    --bg: #ffffff;
    --accent: #4361ee;
    --border: #e2e8f0;
    --code-bg: #f8fafc;
    --blockquote-border: #4361ee;
    --blockquote-bg: #f0f4ff;
  }}

  * {{ margin: 0; padding: 0; box-sizing: border-box; }}

  body {{
    font-family: 'Inter', -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
    color: var(--text);
    background: var(--bg);
    line-height: 1.75;
    font-size: 15px;
    padding: 60px 72px;
    max-width: 900px;
    margin: 0 auto;
  }}

  h1, h2, h3, h4, h5, h6 {{
    color: var(--text);
    font-weight: 700;
    line-height: 1.3;
    margin-top: 2em;
    margin-bottom: 0.75em;
  }}

  h1 {{
    font-size: 2.25em;
    border-bottom: 3px solid var(--accent);
    padding-bottom: 0.4em;
    margin-top: 0;
  }}

  h2 {{
    font-size: 1.65em;
    border-bottom: 1px solid var(--border);
    padding-bottom: 0.3em;
  }}

  h3 {{ font-size: 1.35em; }}
  h4 {{ font-size: 1.15em; }}

  p {{ margin-bottom: 1em; }}

  a {{
    color: var(--accent);
    text-decoration: none;
    border-bottom: 1px solid transparent;
  }}

  strong {{ font-weight: 600; }}

  blockquote {{
    border-left: 4px solid var(--blockquote-border);
    background: var(--blockquote-bg);
    padding: 1em 1.5em;
    margin: 1.5em 0;
    border-radius: 0 8px 8px 0;
    color: var(--text-secondary);
  }}
  blockquote p:last-child {{ margin-bottom: 0; }}

  code {{
    font-family: 'Fira Code', 'Cascadia Code', 'JetBrains Mono', monospace;
    font-size: 0.88em;
    background: var(--code-bg);
    padding: 0.2em 0.45em;
    border-radius: 4px;
    border: 1px solid var(--border);
  }}

  pre {{
    background: #1e293b;
    color: #e2e8f0;
    border-radius: 10px;
    padding: 1.25em 1.5em;
    margin: 1.5em 0;
    overflow-x: auto;
    line-height: 1.6;
    box-shadow: 0 4px 6px -1px rgba(0,0,0,0.1);
  }}

  pre code {{
    background: none;
    border: none;
    padding: 0;
    color: inherit;
    font-size: 0.85em;
  }}

  /* One Dark-ish theme over Pygments token classes */
  .hljs .k, .hljs .kd, .hljs .kn, .hljs .kp, .hljs .kr, .hljs .ow {{ color: #c678dd; }}
  .hljs .s, .hljs .s1, .hljs .s2, .hljs .sa, .hljs .sb, .hljs .sc, .hljs .sd,
  .hljs .se, .hljs .sh, .hljs .si, .hljs .sr, .hljs .ss, .hljs .sx, .hljs .dl {{ color: #98c379; }}
  .hljs .m, .hljs .mb, .hljs .mf, .hljs .mh, .hljs .mi, .hljs .mo, .hljs .il, .hljs .kc {{ color: #d19a66; }}
  .hljs .c, .hljs .c1, .hljs .ch, .hljs .cm, .hljs .cs, .hljs .cpf {{ color: #5c6370; font-style: italic; }}
  .hljs .nf, .hljs .fm {{ color: #61afef; }}
  .hljs .nb, .hljs .bp {{ color: #e5c07b; }}
  .hljs .na {{ color: #d19a66; }}
  .hljs .kt, .hljs .nc {{ color: #e5c07b; }}
  .hljs .cp, .hljs .nd {{ color: #61afef; }}
  .hljs .nv, .hljs .vc, .hljs .vg, .hljs .vi, .hljs .nx {{ color: #abb2bf; }}
  .hljs .nt, .hljs .nl {{ color: #e06c75; }}

  ul, ol {{
    margin: 1em 0;
    padding-left: 2em;
  }}

  li {{ margin-bottom: 0.4em; }}
  li > ul, li > ol {{ margin: 0.3em 0; }}

  table {{
    width: 100%;
    border-collapse: collapse;
    margin: 1.5em 0;
    font-size: 0.93em;
  }}

  th {{
    background: #f1f5f9;
    font-weight: 600;
    text-align: left;
    padding: 0.75em 1em;
    border-bottom: 2px solid var(--border);
  }}

  td {{
    padding: 0.65em 1em;
    border-bottom: 1px solid var(--border);
  }}

  img {{
    max-width: 100%;
    width: 100%;
    height: auto;
    border-radius: 8px;
    margin: 1em 0;
    display: block;
  }}

  svg {{
    max-width: 100%;
    height: auto;
    display: block;
  }}

  figure {{
    max-width: 100%;
    margin: 1em 0;
  }}
"""

# 200mm fits inside the 257mm printable height of an A4 page with 20mm margins
PREVENT_IMAGE_SPLIT_CSS = f"""
  {PREVENT_IMAGE_SPLIT_MARKER}
  img {{
    max-height: 200mm;
    page-break-inside: avoid;
    break-inside: avoid;
    page-break-before: auto;
    page-break-after: auto;
  }}

  /* Images are rendered inside <p>, so the paragraph must not split either */
  p:has(> img) {{
    page-break-inside: avoid;
    break-inside: avoid;
  }}

  figure img,
  svg {{
    max-height: 200mm;
  }}

  figure,
  svg,
  pre,
  table,
  blockquote {{
    page-break-inside: avoid;
    break-inside: avoid;
  }}
"""

TRAILING_CSS = """
  h1, h2, h3, h4, h5, h6 {
    page-break-after: avoid;
    break-after: avoid;
  }

  hr {
    border: none;
    border-top: 2px solid var(--border);
    margin: 2.5em 0;
  }

  /* Task lists */
  ul:has(> li > input[type="checkbox"]) {
    list-style: none;
    padding-left: 0.5em;
  }
"""


def build_styled_document(content_html: str, options: RenderOptions) -> StyledDocument:
    """
    Build complete HTML document for rendering with embedded styles.

    Includes:
    - Google Fonts import for Inter / Fira Code
    - Fixed theme (typography, code blocks, tables, blockquotes)
    - Page-break safety rules when options.prevent_image_split is set
    - Content HTML verbatim inside <body>

    The output depends only on the arguments, so identical input always
    produces an identical document.

    Args:
        content_html: HTML fragment produced from markdown (may be empty)
        options: Resolved render options

    Returns:
        StyledDocument wrapping the complete HTML string
    """
    css = BASE_CSS
    if options.prevent_image_split:
        css += PREVENT_IMAGE_SPLIT_CSS
    css += TRAILING_CSS

    html = f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<style>{css}</style>
</head>
<body>{content_html}</body>
</html>"""

    return StyledDocument(html)
