"""Prompt builders for answer analysis and candidate questions."""
from __future__ import annotations

from textwrap import dedent
from typing import List

from interview_script.models import JobDescription, ScriptNode

ANALYZER_SYSTEM_PROMPT = "You are a data extraction assistant."
ANSWER_SYSTEM_PROMPT = "You are an AI assistant for a technical recruiter."

ROLE_NODES = ("role-preference", "suggest-roles")
WORK_ARRANGEMENT = "Hybrid (2 days in office)"
TECH_STACK = "Python, Django, AWS, React, TypeScript, Next.js"


def _json_bool(value: bool) -> str:
    return "true" if value else "false"


def _extracted_fields(node_id: str, has_no_experience: bool, should_move_on: bool) -> List[str]:
    fields: List[str] = []
    if node_id == "name":
        fields.append('"name": "extracted name",')
    if node_id in ROLE_NODES:
        fields.append(
            '"position": "extracted position", "isUnsure": true/false, '
            '"isDisinterested": true/false, "isVague": true/false,'
        )
    if node_id == "salary":
        fields.append('"salary": number (in USD),')
    fields.extend(
        [
            '"isYes": true/false (if this is a yes/no question),',
            f'"hasNoExperience": {_json_bool(has_no_experience)},',
            '"shouldSkipCategory": false,',
            '"skipToCategory": null,',
            '"needsFollowUp": false,',
            '"isDisinterested": true/false (if the user wants to end the conversation),',
            f'"shouldMoveOn": {_json_bool(should_move_on)} (if we should move on after multiple attempts)',
        ]
    )
    return fields


def build_analysis_prompt(
    node: ScriptNode,
    user_text: str,
    node_id: str,
    attempt_count: int,
    *,
    has_no_experience: bool,
) -> str:
    should_move_on = attempt_count >= 1 and has_no_experience
    fields = "\n".join("    " + line for line in _extracted_fields(node_id, has_no_experience, should_move_on))
    header = dedent(
        """
        You are analyzing a candidate's response during a software engineering interview.

        Current question: "{question}"
        Candidate's response: "{answer}"
        Current node ID: "{node_id}"
        Current node category: "{category}"
        Example attempts for this question: {attempts}

        Based on the response, please extract the following information in JSON format:
        """
    ).strip().format(
        question=node.message,
        answer=user_text,
        node_id=node_id,
        category=node.category or "general",
        attempts=attempt_count,
    )
    instructions = dedent(
        f"""
        IMPORTANT INSTRUCTIONS:
        1. If the candidate clearly indicates they have no knowledge or experience with a specific technology (like React or Python), set "shouldSkipCategory" to true and "skipToCategory" to the next logical category.
        2. If the candidate expresses frustration or asks to skip a topic, set "shouldSkipCategory" to true.
        3. If the candidate gives a very low rating (1-3) for a technology, consider setting "shouldSkipCategory" to true.
        4. For React-specific questions, if the candidate indicates no React experience, set "skipToCategory" to "debugging".
        5. For Python-specific questions, if the candidate indicates no Python experience, set "skipToCategory" to "react".
        6. If the candidate expresses disinterest or a desire to end the conversation at ANY point (e.g., "not interested anymore", "want to stop", "end this interview"), set "isDisinterested" to true.
        7. For role selection questions, if the response is vague (e.g., just "developer" without specifying backend/frontend/full stack), set "isVague" to true.
        8. If the candidate has repeatedly indicated they have no idea or experience ({attempt_count} previous attempts), set "shouldMoveOn" to true.

        IMPORTANT: Return ONLY the raw JSON object without any markdown formatting, code blocks, or additional text.
        Do not include ```json or ``` in your response.
        """
    ).strip()
    body = "\n".join(
        [
            "{",
            '"relevance": 0-10 (how relevant the response is to the question),',
            '"clarity": 0-10 (how clear and specific the response is),',
            '"extractedInfo": {',
            fields,
            "}",
            "}",
        ]
    )
    return f"{header}\n{body}\n\n{instructions}"


def build_question_prompt(question: str, job: JobDescription) -> str:
    return dedent(
        """
        The candidate is asking the following question during a software engineering interview:
        "{question}"

        Please provide a concise, professional answer based on the following job information:

        Company: {company}
        Position: {position}
        Location: {location}
        Salary range: {salary}
        Work arrangement: {arrangement}
        Tech stack: {stack}
        Benefits: {benefits}

        If you don't have specific information to answer the question, say so politely without making up details.
        Keep your answer concise and professional.
        """
    ).strip().format(
        question=question,
        company=job.company,
        position=job.position,
        location=job.location,
        salary=job.about.salary,
        arrangement=WORK_ARRANGEMENT,
        stack=TECH_STACK,
        benefits=", ".join(job.benefits),
    )


__all__ = [
    "ANALYZER_SYSTEM_PROMPT",
    "ANSWER_SYSTEM_PROMPT",
    "ROLE_NODES",
    "build_analysis_prompt",
    "build_question_prompt",
]
