"""
HTML rendering for the web application's pages.

Report details are assembled as Markdown and converted with the `markdown`
library, the job possibility split is drawn as a Plotly doughnut chart, and
the remaining pages are small HTML templates. Every user- or model-supplied
string is HTML-escaped before it is placed on a page.
"""

import logging
import os
import re
from datetime import datetime
from html import escape
from typing import Iterable, List, Optional

import markdown
import plotly.graph_objects as go

from .. import constants
from ..career_analysis.models import CareerReport, JobPossibility, RoadmapPhase
from ..career_analysis.utils.constants import EDUCATION_LEVELS, LOCATIONS
from .session import User

logger = logging.getLogger(__name__)

STYLE_SHEET_PATH = os.path.join(
    constants.PROJECT_ROOT, constants.ASSETS_DIR, "styles.css"
)
MARKDOWN_EXTENSIONS = ["tables", "sane_lists", "nl2br"]

CHART_LABELS = ["Bangladesh", "International", "No Possibility"]
CHART_COLORS = ["rgba(59, 130, 246, 0.8)", "rgba(34, 197, 94, 0.8)", "rgba(239, 68, 68, 0.8)"]

NOTICES = {
    "not-found": "Report not found.",
    "load-failed": "Failed to load report.",
}


# =============================================================================
# PAGE SHELL
# =============================================================================
def _get_html_styles() -> str:
    """Loads the project's stylesheet and wraps it in a <style> tag."""
    try:
        with open(STYLE_SHEET_PATH, "r", encoding="utf-8") as f:
            css_content = f.read()
    except FileNotFoundError:
        logger.error(f"CSS file not found at {STYLE_SHEET_PATH}. Using empty styles.")
        css_content = ""
    return f"<style>{css_content}</style>"


def _render_header(user: Optional[User]) -> str:
    if user is None:
        links = '<a href="/login">Sign in</a>'
    else:
        links = (
            '<a href="/">New Analysis</a> <a href="/dashboard">My Reports</a> '
            f'<span class="user">{escape(user.email or user.uid)}</span> '
            '<form method="post" action="/logout" class="inline">'
            '<button type="submit">Sign out</button></form>'
        )
    return f'<header><a class="brand" href="/">CareerGap</a><nav>{links}</nav></header>'


def render_page(title: str, body: str, user: Optional[User] = None) -> str:
    """Wraps page content in the shared HTML document."""
    return f"""<!DOCTYPE html><html lang="en"><head><meta charset="UTF-8">
<title>{escape(title)}</title>{_get_html_styles()}</head>
<body>{_render_header(user)}<main class="content-wrapper">{body}</main></body></html>"""


def _render_message(message: Optional[str], css_class: str = "error") -> str:
    return f'<p class="{css_class}">{escape(message)}</p>' if message else ""


# =============================================================================
# FORM AND LOGIN PAGES
# =============================================================================
def render_form_page(
    user: Optional[User],
    error: Optional[str] = None,
    notice: Optional[str] = None,
    values: Optional[dict] = None,
) -> str:
    """
    Renders the profile intake form.

    Args:
        user: The signed-in user, if any.
        error: A validation or generation failure message.
        notice: A key of `NOTICES` passed by a redirect.
        values: Previously submitted raw form values to refill the form with.
    """
    values = values or {}
    selected_locations = values.get("location") or []
    location_inputs = "".join(
        f'<label><input type="checkbox" name="location" value="{loc}"'
        f'{" checked" if loc in selected_locations else ""}> {loc}</label>'
        for loc in LOCATIONS
    )
    education_options = "".join(
        f'<option value="{level}"{" selected" if values.get("education") == level else ""}>{level}</option>'
        for level in EDUCATION_LEVELS
    )
    login_hint = (
        "" if user else '<p class="hint">You need to sign in to generate a career analysis.</p>'
    )
    body = f"""
<h1>Discover Your Career Path</h1>
<p>AI-powered career analysis to help you navigate your professional journey.</p>
{_render_message(NOTICES.get(notice or ""), "notice")}
{_render_message(error)}
<form method="post" action="/" class="profile-form">
  <label>Target Job
    <input type="text" name="target_job" value="{escape(values.get("target_job") or "")}"
           placeholder="e.g., Web Developer, Nurse, Data Scientist" required></label>
  <fieldset><legend>Location Preference</legend>{location_inputs}</fieldset>
  <label>Current Education Level
    <select name="education" required>
      <option value="">Select your education level</option>{education_options}
    </select></label>
  <label>Current Skills
    <textarea name="skills" rows="4" required
      placeholder="e.g., JavaScript, React, Node.js, Communication">{escape(values.get("skills") or "")}</textarea></label>
  <label>Years of Experience
    <input type="number" name="experience" min="0" placeholder="0"
           value="{escape(values.get("experience") or "")}"></label>
  <button type="submit">Generate My Career Analysis</button>
  {login_hint}
</form>"""
    return render_page("CareerGap", body, user)


def render_login_page(error: Optional[str] = None, id_token: bool = False) -> str:
    """Renders the sign-in form, asking for an ID token or a user id."""
    if id_token:
        fields = """
  <label>Firebase ID token <textarea name="id_token" rows="4" required></textarea></label>"""
    else:
        fields = """
  <p class="notice">Development sign-in: no password is checked.</p>
  <label>User ID <input type="text" name="uid" required></label>
  <label>Email <input type="email" name="email"></label>"""
    body = f"""
<h1>Sign in</h1>
{_render_message(error)}
<form method="post" action="/login" class="login-form">{fields}
  <button type="submit">Sign in</button>
</form>"""
    return render_page("Sign in", body)


# =============================================================================
# DASHBOARD
# =============================================================================
def format_date(created_at: Optional[datetime]) -> str:
    """Formats a report timestamp like 'Oct 19, 2026'."""
    if created_at is None:
        return "N/A"
    return f"{created_at.strftime('%b')} {created_at.day}, {created_at.year}"


def _render_report_card(report: CareerReport) -> str:
    details = [
        f"📚 {escape(report.education)}",
        f"📍 {escape(report.location_text)}",
    ]
    if report.experience:
        details.append(f"💼 {report.experience} years")
    details.append(f"📅 {format_date(report.created_at)}")

    possibility = report.job_possibility
    badges = []
    if possibility.bangladesh > 0:
        badges.append(f'<span class="badge bd">Bangladesh {possibility.bangladesh}%</span>')
    if possibility.international > 0:
        badges.append(
            f'<span class="badge intl">International {possibility.international}%</span>'
        )
    level = report.risk_forecast.level
    badges.append(f'<span class="badge risk-{level.lower()}">Risk: {level}</span>')

    return f"""
<a class="report-card" href="/result/{escape(report.id)}">
  <h3>{escape(report.target_job)}</h3>
  <p class="details">{" ".join(f"<span>{d}</span>" for d in details)}</p>
  <p class="badges">{"".join(badges)}</p>
</a>"""


def render_dashboard_page(
    user: User, reports: List[CareerReport], error: Optional[str] = None
) -> str:
    """Renders the list of a user's reports, newest first."""
    if error:
        content = _render_message(error)
    elif not reports:
        content = (
            '<div class="empty-state"><p>Generate your first career analysis to see it here.</p>'
            '<a class="button" href="/">Generate Career Analysis</a></div>'
        )
    else:
        content = (
            '<div class="report-list">'
            + "".join(_render_report_card(r) for r in reports)
            + '</div><a class="button" href="/">Generate New Analysis</a>'
        )
    return render_page("My Career Reports", f"<h1>My Career Reports</h1>{content}", user)


# =============================================================================
# REPORT DETAIL
# =============================================================================
def build_job_possibility_chart(job_possibility: JobPossibility) -> str:
    """Returns an embeddable Plotly doughnut chart of the job possibility split."""
    fig = go.Figure(
        go.Pie(
            labels=CHART_LABELS,
            values=[
                job_possibility.bangladesh,
                job_possibility.international,
                job_possibility.none,
            ],
            hole=0.5,
            marker=dict(colors=CHART_COLORS),
            hovertemplate="%{label}: %{value}%<extra></extra>",
            sort=False,
        )
    )
    fig.update_layout(
        title_text="Job Possibility Analysis",
        template="plotly_dark",
        legend=dict(orientation="h", y=-0.1),
        margin=dict(t=60, b=40, l=20, r=20),
        height=400,
    )
    return fig.to_html(full_html=False, include_plotlyjs="cdn")


# Inline Markdown syntax, plus block markers at the start of a line.
_MD_INLINE_RE = re.compile(r"([\\`*_\[\]|])")
_MD_BLOCK_MARKER_RE = re.compile(r"^(\s*)([#+-])", re.MULTILINE)
_MD_ORDERED_MARKER_RE = re.compile(r"^(\s*\d+)\.", re.MULTILINE)


def _md_text(value: str) -> str:
    """Escapes a value for safe use in Markdown rendered to HTML."""
    text = _MD_INLINE_RE.sub(r"\\\1", escape(value))
    text = _MD_BLOCK_MARKER_RE.sub(r"\1\\\2", text)
    return _MD_ORDERED_MARKER_RE.sub(r"\1\\.", text)


def _md_list(items: Iterable[str], ordered: bool = False) -> str:
    lines = [
        f"{i}. {_md_text(item)}" if ordered else f"- {_md_text(item)}"
        for i, item in enumerate(items, start=1)
    ]
    return "\n".join(lines)


def _md_phase(title: str, phase: RoadmapPhase) -> str:
    return f"### {title} ({_md_text(phase.duration)})\n\n{_md_list(phase.tasks)}\n"


def build_report_markdown(report: CareerReport) -> str:
    """
    Assembles the Markdown body of a report's detail page.

    Args:
        report: The report to render.

    Returns:
        The Markdown text, with all report values escaped.
    """
    parts = [
        "# Career Analysis Report",
        f"**{_md_text(report.target_job)}** · 📚 {_md_text(report.education)}"
        f" · 📍 {_md_text(report.location_text)}"
        + (f" · 💼 {report.experience} years" if report.experience else ""),
    ]

    gap = report.education_gap
    parts.append("## 🎓 Education Gap Analysis")
    parts.append(
        f"**Required:** {_md_text(gap.required)}\n"
        f"**You Have:** {_md_text(gap.user_has)}\n"
        f"**Gap:** {_md_text(gap.gap)}"
    )
    if gap.steps:
        parts.append("**Steps to close the gap:**\n\n" + _md_list(gap.steps, ordered=True))

    skills = report.skills_gap
    parts.append("## 💡 Skills Gap Analysis")
    if skills.missing:
        rows = "\n".join(
            f"| {_md_text(s.skill)} | {s.difficulty} | {_md_text(s.time_to_learn)} |"
            for s in skills.missing
        )
        parts.append(
            "| Skill | Difficulty | Time to Learn |\n|---|---|---|\n" + rows
        )
    if skills.certifications:
        parts.append("**Recommended certifications:**\n\n" + _md_list(skills.certifications))

    guide = report.migration_guide
    if guide is not None:
        parts.append("## ✈️ International Migration Guide")
        if guide.language_requirements:
            parts.append(f"**Language Requirements:** {_md_text(guide.language_requirements)}")
        if guide.visa_requirements:
            parts.append(f"**Visa Requirements:** {_md_text(guide.visa_requirements)}")
        if guide.certifications:
            parts.append("**International certifications:**\n\n" + _md_list(guide.certifications))

    roadmap = report.roadmap
    parts.append("## 🗺️ Career Roadmap")
    parts.append(_md_phase("Short Term", roadmap.short_term))
    parts.append(_md_phase("Mid Term", roadmap.mid_term))
    parts.append(_md_phase("Long Term", roadmap.long_term))

    if report.current_opportunities:
        parts.append("## 🎯 Current Opportunities\n\n" + _md_list(report.current_opportunities))
    if report.future_opportunities:
        parts.append("## 🚀 Future Opportunities\n\n" + _md_list(report.future_opportunities))

    risk = report.risk_forecast
    parts.append(
        f"## ⚠️ Automation Risk Forecast\n\n**Risk Level:** {risk.level}\n\n"
        f"{_md_text(risk.explanation)}"
    )
    return "\n\n".join(parts) + "\n"


def render_report_page(user: User, report: CareerReport) -> str:
    """Renders the full detail page of one report."""
    report_md = build_report_markdown(report)
    # Split after the title block so the chart sits above the sections.
    head, _, sections = report_md.partition("\n\n## ")
    body = (
        markdown.markdown(head, extensions=MARKDOWN_EXTENSIONS)
        + f'<div class="chart-card">{build_job_possibility_chart(report.job_possibility)}</div>'
        + markdown.markdown("## " + sections, extensions=MARKDOWN_EXTENSIONS)
    )
    return render_page("Career Analysis Report", body, user)
