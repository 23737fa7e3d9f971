from __future__ import annotations

from app.reports.schemas import ReportFile, ReportRequest

PROMPT_PREAMBLE = (
    "You are a medical documentation expert. Using the following information, produce a "
    "concise, professional, and insurance-ready clinical report."
)
NO_CONTEXT_SENTENCE = "No additional context was provided."


def _render_files_section(files: tuple[ReportFile, ...]) -> str:
    lines = ["Attached clinical notes:\n"]
    for f in files:
        # File content is free-text clinical material: decode lossily instead of rejecting.
        content = f.content.decode("utf-8", errors="replace").strip()
        lines.append(f"--- {f.filename} ---\n{content}\n")
    return "".join(lines)


def build_prompt(report_request: ReportRequest) -> str:
    """
    Render the user prompt for report generation.

    Only non-empty sections are included, in a fixed order (report type, denial
    details, attached notes). The output depends on nothing but the request, so
    the same submission always produces the same prompt.
    """

    sections: list[str] = []

    report_type = report_request.report_type.strip()
    if report_type:
        sections.append(f"Report type: {report_type}")

    denial_text = report_request.denial_text.strip()
    if denial_text:
        sections.append(f"Denial details provided by payer: {denial_text}")

    if report_request.files:
        sections.append(_render_files_section(report_request.files))

    if not sections:
        sections.append(NO_CONTEXT_SENTENCE)

    return f"{PROMPT_PREAMBLE}\n\n" + "\n\n".join(sections)
