"""Human- and machine-readable renderings of analysis results."""

from __future__ import annotations

import json
from enum import StrEnum
from html import escape

from change_review.core.analyzer import Results
from change_review.models.diff import DiffSet
from change_review.models.finding import RiskLevel
from change_review.models.report import AnalysisReport

RISK_MARKERS: dict[RiskLevel, str] = {
    RiskLevel.CRITICAL: "!!",
    RiskLevel.HIGH: "! ",
    RiskLevel.MEDIUM: "* ",
    RiskLevel.LOW: "- ",
    RiskLevel.INFO: "  ",
}


class ReportFormat(StrEnum):
    TEXT = "text"
    JSON = "json"
    MARKDOWN = "markdown"
    HTML = "html"


def render_text(diff_set: DiffSet, results: Results) -> str:
    files, added, deleted = diff_set.stats()
    out = [
        f"{files} file(s) changed, +{added} -{deleted}",
        f"Analysis: {results.summary()}",
        "",
    ]

    if not results.findings:
        out.append("No issues found.")
        return "\n".join(out) + "\n"

    for file, findings in results.by_file().items():
        out.append(f"  {file}")
        for finding in findings:
            out.append(
                f"    {RISK_MARKERS[finding.risk]} [{finding.pass_name}] "
                f"{finding.location}: {finding.message}"
            )
        out.append("")

    return "\n".join(out)


def _escape_cell(text: str) -> str:
    return text.replace("|", "\\|")


def render_markdown(diff_set: DiffSet, results: Results) -> str:
    files, added, deleted = diff_set.stats()
    out = [
        "## Analysis Report",
        "",
        f"**{files} file(s)** changed, **+{added}** insertions, **-{deleted}** deletions",
        "",
        f"**Risk:** {results.max_risk()} | **Findings:** {len(results)}",
        "",
    ]

    if not results.findings:
        out.append("No issues found.")
        return "\n".join(out) + "\n"

    out.append("| Risk | Pass | File | Message |")
    out.append("|------|------|------|---------|")
    for finding in results.findings:
        out.append(
            f"| {finding.risk} | {finding.pass_name} | `{finding.location}` "
            f"| {_escape_cell(finding.message)} |"
        )
    return "\n".join(out) + "\n"


def render_json(diff_set: DiffSet, results: Results) -> str:
    report = AnalysisReport.from_results(results, diff_set)
    return json.dumps(report.to_wire(), indent=2, ensure_ascii=False) + "\n"


HTML_STYLE = """\
  body { font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; max-width: 900px;
         margin: 40px auto; padding: 0 20px; }
  .summary { padding: 16px; border-radius: 8px; margin-bottom: 24px; background: #f4f4f6; }
  .summary span { margin-right: 24px; }
  .risk-critical, .risk-high { color: #c62828; font-weight: bold; }
  .risk-medium { color: #b26a00; }
  .risk-low { color: #1565c0; }
  .risk-info { color: #757575; }
  table { width: 100%; border-collapse: collapse; }
  th { text-align: left; padding: 8px 12px; background: #e8e8ec; }
  td { padding: 8px 12px; border-bottom: 1px solid #e8e8ec; }
  .clean { color: #2e7d32; font-size: 1.2em; }
"""


def render_html(diff_set: DiffSet, results: Results) -> str:
    """Standalone HTML page with the summary and one table row per finding."""
    files, added, deleted = diff_set.stats()
    max_risk = results.max_risk()
    out = [
        "<!DOCTYPE html>",
        '<html lang="en">',
        "<head>",
        '<meta charset="utf-8">',
        "<title>change-review Analysis Report</title>",
        f"<style>\n{HTML_STYLE}</style>",
        "</head>",
        "<body>",
        "<h1>Analysis Report</h1>",
        '<div class="summary">',
        f"  <span><strong>{files}</strong> file(s) changed</span>",
        f"  <span>+{added}</span>",
        f"  <span>-{deleted}</span>",
        f'  <span>Risk: <span class="risk-{max_risk}">{max_risk}</span></span>',
        f"  <span>Findings: <strong>{len(results)}</strong></span>",
        "</div>",
    ]

    if not results.findings:
        out.append('<p class="clean">No issues found.</p>')
    else:
        out.append("<table>")
        out.append(
            "<thead><tr><th>Risk</th><th>Pass</th><th>File</th><th>Message</th></tr></thead>"
        )
        out.append("<tbody>")
        for finding in results.findings:
            out.append(
                f'<tr><td class="risk-{finding.risk}">{finding.risk}</td>'
                f"<td>{escape(finding.pass_name)}</td>"
                f"<td><code>{escape(finding.location)}</code></td>"
                f"<td>{escape(finding.message)}</td></tr>"
            )
        out.append("</tbody></table>")

    out.append("</body>")
    out.append("</html>")
    return "\n".join(out) + "\n"


RENDERERS = {
    ReportFormat.TEXT: render_text,
    ReportFormat.JSON: render_json,
    ReportFormat.MARKDOWN: render_markdown,
    ReportFormat.HTML: render_html,
}


def render_report(diff_set: DiffSet, results: Results, fmt: ReportFormat | str) -> str:
    """Render results in the requested format."""
    return RENDERERS[ReportFormat(fmt)](diff_set, results)


def render_stat(diff_set: DiffSet) -> str:
    """``git diff --stat`` style listing of files with +/- counts."""
    lines = []
    for file in diff_set.files:
        if file.is_binary and not file.fragments:
            lines.append(f"  {file.name()} | Bin")
            continue
        marker = ""
        if file.is_new:
            marker = " (new)"
        elif file.is_deleted:
            marker = " (deleted)"
        lines.append(f"  {file.name()}{marker} | +{file.added_lines} -{file.deleted_lines}")

    files, added, deleted = diff_set.stats()
    lines.append(f"{files} file(s) changed, +{added} -{deleted}")
    return "\n".join(lines) + "\n"
