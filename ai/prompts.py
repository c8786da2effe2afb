from typing import Optional

from core.models import COMPETENCE_DOMAINS, GenerationOptions, GenerationRequest

SYSTEM_PROMPT = """You are an experienced Vietnamese teacher-trainer who integrates digital competence (năng lực số, NLS) into lesson plans. Follow these guidelines strictly:

GOAL:
- Take the teacher's existing lesson plan and weave digital competence objectives and activities into it
- Keep the original structure, objectives and timing of the lesson
- Only add what fits the subject, the grade level and the equipment a Vietnamese school realistically has

COMPETENCE FRAMEWORK:
{domains}

CONTENT RULES:
- Every added activity names the competence domain it develops
- Activities must be age-appropriate for the stated grade
- Never invent curriculum content that is not in the lesson plan or the distribution plan
- Keep safety and privacy in mind whenever students use devices or online services

FORMAT:
- Respond entirely in Vietnamese
- Use the same section headings as the original lesson plan
- Mark added or rewritten passages clearly so the teacher can review them"""


MODE_ANALYZE_ONLY = """MODE: ANALYSIS ONLY
- Do not rewrite the lesson plan
- For each activity, list which competence domains could be integrated and how"""

MODE_REWRITE = """MODE: INTEGRATE
- Return the full lesson plan with the digital competence integration applied"""

MODE_DETAILED_REPORT = """DETAILED REPORT:
- After the main answer, add a section "BÁO CÁO CHI TIẾT" with a table: activity | competence domain | expected evidence of learning"""

MODE_COMPARISON_EXPORT = """COMPARISON MARKUP:
- Wrap every inserted passage in [[THÊM]]...[[/THÊM]] and every replaced passage in [[SỬA]]...[[/SỬA]] so the changes can be exported side by side"""


def build_system_prompt(options: GenerationOptions) -> str:
    domains = "\n".join(f"- {d}" for d in COMPETENCE_DOMAINS)
    parts = [SYSTEM_PROMPT.format(domains=domains)]

    parts.append(MODE_ANALYZE_ONLY if options.analyze_only else MODE_REWRITE)
    if options.detailed_report:
        parts.append(MODE_DETAILED_REPORT)
    # markup only makes sense when the plan is actually rewritten
    if options.comparison_export and not options.analyze_only:
        parts.append(MODE_COMPARISON_EXPORT)

    return "\n\n".join(parts)


def build_lesson_plan_messages(request: GenerationRequest) -> list:
    user_content = f"""Môn học: {request.subject.value}
Khối lớp: {request.grade}

=== GIÁO ÁN GỐC ===
{request.content.strip()}

{format_distribution(request.distribution_content)}

Please integrate digital competence into the lesson plan above following the instructions."""

    return [
        {"role": "system", "content": build_system_prompt(request.options)},
        {"role": "user", "content": user_content},
    ]


def format_distribution(distribution_content: Optional[str]) -> str:
    if not distribution_content or not distribution_content.strip():
        return "No distribution plan (PPCT) provided; use the national framework defaults."
    return f"=== PHÂN PHỐI CHƯƠNG TRÌNH (PPCT) ===\n{distribution_content.strip()}"
