from typing import Optional

# Focus areas the interviewer should cover for each interview type
TYPE_FOCUS = {
    "technical": "coding ability, system design, debugging approach, and depth of technical knowledge",
    "behavioral": "past experiences told through the STAR method, teamwork, conflict resolution, and ownership",
    "mixed": "a balance of technical depth and behavioral examples, alternating between the two",
    "screening": "motivation, role fit, communication, and a light check of core skills",
}

DIFFICULTY_GUIDANCE = {
    "easy": "Keep questions approachable and offer gentle hints when the candidate stalls.",
    "medium": "Ask standard interview questions with one follow-up per answer.",
    "hard": "Ask challenging questions, probe trade-offs, and push back on vague answers.",
}

SYSTEM_MESSAGE = (
    "You design realistic mock interviews. You write the private briefing a video AI "
    "interviewer reads before the call, and the first sentence it says. Respond with JSON only."
)


def generate_interviewer_prompt(
    interview_type: str,
    role: str,
    company: Optional[str],
    experience_level: Optional[str],
    difficulty_level: Optional[str],
    user_name: str,
    duration_minutes: int,
) -> str:
    """
    Builds the request asking the LLM for the interviewer's conversational
    context and custom greeting for one scheduled interview.
    """
    focus = TYPE_FOCUS.get(interview_type, TYPE_FOCUS["mixed"])
    difficulty_note = DIFFICULTY_GUIDANCE.get(difficulty_level or "", DIFFICULTY_GUIDANCE["medium"])
    company_text = company or "a company the candidate is applying to"
    experience_text = experience_level or "unspecified"

    prompt = f"""## Interview
- **Candidate:** {user_name}
- **Role:** {role}
- **Company:** {company_text}
- **Interview type:** {interview_type} (focus on {focus})
- **Experience level:** {experience_text}
- **Difficulty:** {difficulty_level or "medium"}
- **Length:** about {duration_minutes} minutes

## What to write
1. **conversational_context**: the interviewer's briefing, written in the second person ("You are...").
   - Introduce the interviewer as a hiring manager at {company_text} interviewing for {role}.
   - List 5-8 questions that fit the interview type and experience level, in the order to ask them.
   - {difficulty_note}
   - Tell the interviewer to ask one question at a time, keep answers short, and wrap up
     politely when the time is nearly over.
   - Never reveal that the interview is a simulation or that it is scored.
2. **custom_greeting**: one or two friendly sentences that greet {user_name} by name and
   say what the interview will cover. No questions yet.

## Output format (JSON)
{{
    "conversational_context": "You are ...",
    "custom_greeting": "Hi {user_name}, ..."
}}
"""
    return prompt
