"""
HTML report rendering.

Turns a PipelineResult into one self-contained HTML document with the
transcript followed by the extracted slides.
"""

from datetime import datetime
from html import escape
from typing import Optional

from .models import PipelineResult
from .pipeline.util import format_timecode

DEFAULT_TITLE = "Video Transcription Report"
REPORT_FILENAME = "transcription.html"

_STYLE = '''
    body {
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Oxygen, Ubuntu, Cantarell, sans-serif;
      line-height: 1.6;
      max-width: 1200px;
      margin: 0 auto;
      padding: 40px 20px;
      background: #f9fafb;
    }
    .container {
      background: white;
      border-radius: 8px;
      box-shadow: 0 2px 4px rgba(0,0,0,0.1);
      padding: 40px;
    }
    h1 {
      color: #1f2937;
      border-bottom: 3px solid #4f46e5;
      padding-bottom: 10px;
      margin-bottom: 30px;
    }
    h2 { color: #374151; margin-top: 40px; margin-bottom: 20px; }
    .generated { color: #6b7280; font-size: 14px; }
    .transcription {
      background: #f3f4f6;
      padding: 20px;
      border-radius: 8px;
      border-left: 4px solid #4f46e5;
      white-space: pre-wrap;
      line-height: 1.8;
    }
    .slides {
      display: grid;
      grid-template-columns: repeat(auto-fill, minmax(400px, 1fr));
      gap: 30px;
      margin-top: 30px;
    }
    .slide {
      border: 1px solid #e5e7eb;
      border-radius: 8px;
      overflow: hidden;
      background: white;
      box-shadow: 0 1px 3px rgba(0,0,0,0.1);
    }
    .slide img { width: 100%; height: auto; display: block; }
    .slide-info { padding: 15px; background: #f9fafb; font-size: 14px; color: #6b7280; }
    .timestamp { font-weight: 600; color: #4f46e5; }
    .empty { color: #6b7280; }
    @media print {
      body { background: white; }
      .slide { page-break-inside: avoid; }
    }
'''


def render_report_html(
    result: PipelineResult,
    generated_at: Optional[datetime] = None,
    title: str = DEFAULT_TITLE
) -> str:
    """Render the transcript and slides of one run as an HTML document"""
    generated_at = generated_at or datetime.now()
    title = escape(title or DEFAULT_TITLE)

    html_parts = [f'''<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
  <style>{_STYLE}  </style>
</head>
<body>
  <div class="container">
    <h1>{title}</h1>
    <p class="generated">Generated on {generated_at.strftime("%Y-%m-%d %H:%M:%S")}</p>

    <h2>Transcription</h2>
    <div class="transcription">{escape(result.transcript)}</div>
''']

    if result.slides:
        html_parts.append(f'''
    <h2>Extracted Slides ({len(result.slides)})</h2>
    <div class="slides">
''')
        for idx, slide in enumerate(result.slides, 1):
            html_parts.append(f'''      <div class="slide">
        <img src="{escape(slide.image, quote=True)}" alt="Slide {idx}" />
        <div class="slide-info">
          <strong>Slide {idx}</strong> -
          <span class="timestamp">Timestamp: {slide.timestamp:g}s ({format_timecode(slide.timestamp)})</span>
        </div>
      </div>
''')
        html_parts.append('    </div>\n')
    else:
        html_parts.append('    <p class="empty">No slides detected in this video.</p>\n')

    html_parts.append('''  </div>
</body>
</html>
''')

    return ''.join(html_parts)
