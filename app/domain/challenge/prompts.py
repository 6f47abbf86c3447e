import re

from app.domain.challenge.schemas import Difficulty

CHALLENGE_TIME_LIMIT_MINUTES = 90
RESUME_WEIGHT_PERCENT = 40
JOB_DESCRIPTION_WEIGHT_PERCENT = 60

CHALLENGE_SECTIONS = (
    "# Coding Challenge",
    "## Problem Description",
    "## Requirements",
    "## Technical Specifications",
    "## Evaluation Criteria",
    "## Submission Instructions",
)

# 입력 문서 안의 섹션 제목 마커, 연속된 "#"과 공백 묶음 전체를 대상으로 한다
SECTION_MARKER_PATTERN = re.compile(
    r"(?:#+[ \t]*)+(?=(?:"
    + "|".join(re.escape(section.lstrip("# ")) for section in CHALLENGE_SECTIONS)
    + "))"
)

CHALLENGE_GENERATOR_PROMPT = """You are an expert technical interviewer. Based on the resume below and the job description, generate a coding challenge that tests relevant skills.
The challenge should be appropriate for a(n) {difficulty} level candidate.
Take {resume_weight}% of the user's resume and {job_description_weight}% of the job description when creating this challenge.
Add several starter code files for the user to work with. Make sure to add some bugs in these starter files.
Do not call out in the files where the bugs are located. Keep this a secret.
This coding challenge needs to be in text format, styled for a GitHub readme.

Resume:
{resume_text}

Job Description:
{job_description_text}

Generate a coding challenge with the following structure:
{sections}

Rules:
- Do not stop until you are done creating the challenge.
- You must generate sample code files to use in the challenge.
- Use each section heading above exactly once and in the given order.
- The challenge should be able to be completed in {time_limit} minutes.{personalization}"""

FIRST_NAME_RULE = "\n- Address the candidate by name ({first_name}) in the Problem Description."
JOB_TITLE_RULE = "\n- Mention the {job_title} role in the introduction."


def neutralize_sections(text: str) -> str:
    """입력 문서의 섹션 제목 마커 제거

    "## Requirements" 같은 줄이 프롬프트의 출력 구조와 겹치지 않도록 제목 글자만 남긴다.
    """
    return SECTION_MARKER_PATTERN.sub("", text.strip())


def build_challenge_prompt(
    resume_text: str,
    job_description_text: str,
    difficulty: Difficulty = Difficulty.INTERMEDIATE,
    first_name: str | None = None,
    job_title: str | None = None,
) -> str:
    """이력서와 채용 공고로 챌린지 생성 프롬프트 구성

    Args:
        resume_text: 이력서 텍스트
        job_description_text: 채용 공고 텍스트
        difficulty: 챌린지 난이도
        first_name: 지원자 이름, 있으면 Problem Description에 포함
        job_title: 직무명, 있으면 도입부에 포함

    Returns:
        LLM에 전달할 프롬프트

    Raises:
        ValueError: 이력서나 채용 공고가 비어 있는 경우
    """
    if not resume_text.strip() or not job_description_text.strip():
        raise ValueError("이력서와 채용 공고 텍스트가 비어 있습니다")

    personalization = ""
    if first_name and first_name.strip():
        personalization += FIRST_NAME_RULE.format(first_name=neutralize_sections(first_name))
    if job_title and job_title.strip():
        personalization += JOB_TITLE_RULE.format(job_title=neutralize_sections(job_title))

    return CHALLENGE_GENERATOR_PROMPT.format(
        difficulty=Difficulty(difficulty).value,
        resume_weight=RESUME_WEIGHT_PERCENT,
        job_description_weight=JOB_DESCRIPTION_WEIGHT_PERCENT,
        resume_text=neutralize_sections(resume_text),
        job_description_text=neutralize_sections(job_description_text),
        sections="\n".join(CHALLENGE_SECTIONS),
        time_limit=CHALLENGE_TIME_LIMIT_MINUTES,
        personalization=personalization,
    )
