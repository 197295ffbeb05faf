"""
Static HTML report.

One self-contained page: a sortable table of report rows with status
colouring, a rating cell with a review tooltip and a search link on each
game name.
"""

from __future__ import annotations

import datetime
import logging
import os
import tempfile
from html import escape
from pathlib import Path
from typing import Iterable
from urllib.parse import quote

from .report import ReportRow
from .status import UP_TO_DATE, UPDATE_AVAILABLE

logger = logging.getLogger(__name__)

DEFAULT_REPORT_FILE = "index.html"
SEARCH_URL = "https://www.skidrowreloaded.com/?s={query}"
TITLE = "Steam Backup Report"

STATUS_CLASSES = {
    UP_TO_DATE: "status-up-to-date",
    UPDATE_AVAILABLE: "status-update",
}

_STYLE = """\
body { font-family: Arial, sans-serif; padding: 20px; }
h1 { color: #333; }
.table-wrap { overflow-x: auto; }
table { border-collapse: collapse; width: 100%; }
th, td { border: 1px solid #ccc; padding: 8px; text-align: left; }
th { background-color: #eee; }
.status-up-to-date { background-color: #c6efce; }
.status-update { background-color: #ffc7ce; }
.subtle { color: #666; font-size: 0.9em; }
.name-link { color: inherit; text-decoration: none; }
.ref-link { text-decoration: none; margin-left: 4px; }
th.sortable { cursor: pointer; user-select: none; }
th.sortable[data-dir="asc"]::after { content: " \\25B2"; }
th.sortable[data-dir="desc"]::after { content: " \\25BC"; }
td.num { font-variant-numeric: tabular-nums; }
td.status-cell, td.rating-cell { white-space: nowrap; }
@media (max-width: 600px) {
  body { padding: 12px; }
  th, td { padding: 6px; }
}
"""

_SCRIPT = """\
function sortValue(cell) {
  if (!cell) return '';
  const attr = cell.getAttribute('data-sort');
  return attr != null ? attr : (cell.textContent || '').trim();
}
function compare(a, b, type, dir) {
  const mult = dir === 'desc' ? -1 : 1;
  if (type === 'num') {
    const na = a === '' ? NaN : Number(a);
    const nb = b === '' ? NaN : Number(b);
    if (isNaN(na) && isNaN(nb)) return 0;
    if (isNaN(na)) return 1;
    if (isNaN(nb)) return -1;
    return na === nb ? 0 : (na < nb ? -mult : mult);
  }
  const sa = String(a).toLowerCase();
  const sb = String(b).toLowerCase();
  return sa === sb ? 0 : (sa < sb ? -mult : mult);
}
document.addEventListener('DOMContentLoaded', function () {
  const table = document.getElementById('reportTable');
  if (!table) return;
  const headers = Array.from(table.querySelectorAll('th.sortable'));
  headers.forEach(function (th) {
    th.addEventListener('click', function () {
      const key = th.getAttribute('data-sort-key');
      const type = th.getAttribute('data-sort-type') || 'str';
      const dir = th.getAttribute('data-dir') === 'asc' ? 'desc' : 'asc';
      headers.forEach(function (h) { h.removeAttribute('data-dir'); });
      th.setAttribute('data-dir', dir);
      const tbody = table.querySelector('tbody');
      const rows = Array.from(tbody.querySelectorAll('tr')).map(function (row, idx) {
        return { row: row, idx: idx, value: sortValue(row.querySelector('[data-key="' + key + '"]')) };
      });
      rows.sort(function (a, b) { return compare(a.value, b.value, type, dir) || a.idx - b.idx; });
      rows.forEach(function (item) { tbody.appendChild(item.row); });
    });
  });
});
"""

_COLUMNS = (
    ("name", "str", "Name"),
    ("appid", "num", "AppID"),
    ("installed", "num", "Installed Build"),
    ("latest", "num", "Latest Build"),
    ("updated", "str", "Latest Build Updated"),
    ("rating", "num", "Rating"),
    ("status", "str", "Status"),
)


def search_url(name: str) -> str:
    """Search link for a game name; dotted names become ``+``-joined terms."""
    parts = [quote(part.lower(), safe="") for part in name.split(".") if part]
    return SEARCH_URL.format(query="+".join(parts))


def format_count_short(count: int | None) -> str:
    """``1234`` -> ``"1k"``; counts under 1000 unchanged."""
    if count is None:
        return ""
    if count >= 1000:
        return f"{round(count / 1000)}k"
    return str(count)


def _opt(value: object) -> str:
    return "" if value is None else str(value)


def _cell(key: str, content: str, sort: str, css: str = "", title: str = "") -> str:
    attrs = f' class="{css}"' if css else ""
    attrs += f' data-key="{key}" data-sort="{escape(sort)}"'
    if title:
        attrs += f' title="{escape(title)}"'
    return f"<td{attrs}>{content}</td>"


def _rating_cell(row: ReportRow) -> str:
    rating = row.rating
    if rating is None or rating.percent is None:
        return _cell("rating", "", "", css="num rating-cell")

    pct_text = f"{rating.percent:.2f}%"
    tooltip = []
    if rating.description:
        tooltip.append(rating.description)
    tooltip.append(pct_text)
    if rating.total is not None:
        tooltip.append(f"{rating.total} total reviews")
    if rating.positive is not None:
        tooltip.append(f"{rating.positive} positive")
    if rating.negative is not None:
        tooltip.append(f"{rating.negative} negative")

    text = pct_text
    short = format_count_short(rating.total)
    if short:
        text += f" ({short} reviews)"
    return _cell("rating", escape(text), str(rating.percent), css="num rating-cell", title="\n".join(tooltip))


def render_row(row: ReportRow) -> str:
    """One ``<tr>`` for a report row."""
    name = f'<a class="name-link" href="{escape(search_url(row.name))}">{escape(row.name)}</a>'
    if row.external_ref:
        name += f' <a class="ref-link" href="{escape(row.external_ref)}" title="Release">&#128279;</a>'

    label = row.label
    icon = label.split(" ")[0] if label else ""
    cells = [
        _cell("name", name, row.name),
        _cell("appid", str(row.app_id), str(row.app_id), css="num"),
        _cell("installed", _opt(row.installed_version), _opt(row.installed_version), css="num"),
        _cell("latest", _opt(row.latest_version), _opt(row.latest_version), css="num"),
        _cell("updated", row.observed_date, row.observed_date),
        _rating_cell(row),
        _cell("status", escape(icon), label, css="status-cell", title=label),
    ]
    css = STATUS_CLASSES.get(row.status, "")
    return f'<tr class="{css}">' + "".join(cells) + "</tr>"


def render_html(rows: Iterable[ReportRow], generated_at: datetime.datetime, run_mode: str) -> str:
    """Render the full report page.

    Args:
        rows: Report rows, already in display order
        generated_at: Report timestamp
        run_mode: Run mode label shown in the footer

    Returns:
        HTML document
    """
    header = "\n".join(
        f'  <th class="sortable" data-sort-key="{key}" data-sort-type="{kind}">{label}</th>'
        for key, kind, label in _COLUMNS
    )
    body = "\n".join(render_row(row) for row in rows)
    stamp = generated_at.astimezone(datetime.timezone.utc).strftime("%Y-%m-%d %H:%M UTC")

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{TITLE}</title>
<style>
{_STYLE}</style>
<script>
{_SCRIPT}</script>
</head>
<body>
<h1>{TITLE}</h1>
<div class="table-wrap">
<table id="reportTable">
<thead>
<tr>
{header}
</tr>
</thead>
<tbody>
{body}
</tbody>
</table>
</div>
<p class="subtle">Report generated on {escape(stamp)} ({escape(run_mode)})</p>
</body>
</html>
"""


def write_html_report(
    path: str | Path,
    rows: Iterable[ReportRow],
    generated_at: datetime.datetime,
    run_mode: str,
) -> Path:
    """Render and atomically write the report page.

    Raises:
        OSError: If the file cannot be written
    """
    path = Path(path)
    document = render_html(rows, generated_at, run_mode)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".report_", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(document)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise

    logger.info(f"HTML report written: {path}")
    return path
