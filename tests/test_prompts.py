from ai.prompts import (
    MODE_ANALYZE_ONLY,
    MODE_COMPARISON_EXPORT,
    MODE_DETAILED_REPORT,
    MODE_REWRITE,
    build_lesson_plan_messages,
    build_system_prompt,
)
from core.models import COMPETENCE_DOMAINS, GenerationOptions, GenerationRequest, Subject


def test_messages_carry_subject_grade_and_content():
    request = GenerationRequest(
        subject=Subject.NGU_VAN,
        grade=9,
        content="  Bài 3: Truyện Kiều  ",
        distribution_content="Tiết 12-13",
    )
    messages = build_lesson_plan_messages(request)

    assert [m["role"] for m in messages] == ["system", "user"]
    user = messages[1]["content"]
    assert "Ngữ văn" in user
    assert "Khối lớp: 9" in user
    assert "Bài 3: Truyện Kiều" in user
    assert "Tiết 12-13" in user


def test_missing_distribution_is_stated():
    request = GenerationRequest(content="Bài 1", distribution_content="   ")
    user = build_lesson_plan_messages(request)[1]["content"]
    assert "PPCT" in user
    assert "No distribution plan" in user


def test_system_prompt_lists_every_domain():
    prompt = build_system_prompt(GenerationOptions())
    for domain in COMPETENCE_DOMAINS:
        assert domain in prompt
    assert MODE_REWRITE in prompt
    assert MODE_DETAILED_REPORT not in prompt


def test_option_modes():
    prompt = build_system_prompt(GenerationOptions(analyze_only=True, detailed_report=True, comparison_export=True))
    assert MODE_ANALYZE_ONLY in prompt
    assert MODE_DETAILED_REPORT in prompt
    # nothing is rewritten in analysis mode, so no change markup
    assert MODE_COMPARISON_EXPORT not in prompt

    prompt = build_system_prompt(GenerationOptions(comparison_export=True))
    assert MODE_COMPARISON_EXPORT in prompt
