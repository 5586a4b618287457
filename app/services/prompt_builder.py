"""
Prompt construction for every LLM call an interview makes.

The model keeps no memory between calls, so ``build_prompt`` re-serializes
the whole question/answer/feedback history each time. All functions here are
pure: they take interview data and return text.

The labels in the response templates (``Feedback:``, ``Score:``,
``Code Feedback:``, ``Code Score:``, ``Next Question:``, ``Overall Feedback:``)
are what ``response_parser`` looks for; change them together.
"""
from typing import Optional, Sequence

from app.schemas.interview import CODING_PROBLEM_MARKER, CodingQuestion, InterviewRole, Question

SYSTEM_INSTRUCTION = (
    "You are an AI interviewer conducting a job interview. Ask one question at a time. "
    "The interview should consist of exactly {max_questions} questions. After the user provides an answer, "
    "provide constructive feedback on their answer, give a score out of 10 for that answer, and then ask "
    "the next question. You can sometimes ask a coding problem for technical roles. If you ask a coding "
    f"problem, start the question text with {CODING_PROBLEM_MARKER}.\n\n"
)

FIRST_QUESTION_INSTRUCTION = (
    "Start the interview by asking the first question for the selected role. The interview should consist "
    "of exactly {max_questions} questions in total. If the first question is a coding problem, start its text "
    f"with {CODING_PROBLEM_MARKER}. Respond using the exact format: "
    "Feedback: [Initial feedback or greeting]\nScore: [N/A]\nNext Question: [Your first question here]"
)

CODING_TURN_INSTRUCTION = (
    "\nBased on the above history, specifically the last coding question and code answer, provide constructive "
    "feedback on the code, give a score out of 10 for the code, and then ask the next question. If the next "
    f"question is also a coding problem, start its text with {CODING_PROBLEM_MARKER}. Format your response "
    "strictly as follows: Feedback: [Feedback on conceptual understanding of the problem]\n"
    "Score: [Score out of 10 for conceptual understanding]\nCode Feedback: [Feedback on the submitted code]\n"
    "Code Score: [Score out of 10 for the code]\nNext Question: [Your next question here]"
)

TEXT_TURN_INSTRUCTION = (
    "\nBased on the above history, specifically the last question and answer, provide constructive feedback "
    "on their answer, give a score out of 10 for that answer, and then ask the next question. If the next "
    f"question is a coding problem, start its text with {CODING_PROBLEM_MARKER}. Format your response strictly "
    "as follows: Feedback: [Your feedback here]\nScore: [Score out of 10]\nNext Question: [Your next question here]"
)

EVALUATION_FORMAT = (
    "Please provide:\n1. Detailed feedback\n2. A score out of 10\n3. Areas for improvement\n\n"
    "Format your response as:\n"
    "Feedback: [your feedback]\n"
    "Score: [score out of 10]\n"
    "Areas for Improvement: [specific areas to improve]"
)


def _role_context(role: InterviewRole | str, programming_language: Optional[str]) -> str:
    label = role.label if isinstance(role, InterviewRole) else str(role).replace("-", " ")
    context = f"The candidate is interviewing for a {label} position."
    if programming_language:
        context += f" The preferred programming language is {programming_language}."
    return context


def _code_block(code: str, language: Optional[str]) -> str:
    lang = language or ""
    return f"Your Code Answer (in {lang or 'unspecified language'}):\n```{lang}\n{code}\n```\n"


def display_text(question: Question) -> str:
    """Question text as the model originally wrote it, marker included."""
    if isinstance(question, CodingQuestion):
        return f"{CODING_PROBLEM_MARKER} {question.question_text}"
    return question.question_text


def _awaiting_feedback(question: Question) -> bool:
    if isinstance(question, CodingQuestion):
        return bool(question.code_answer) and not question.code_feedback
    return bool(question.answer_text) and not question.feedback


def _history(questions: Sequence[Question]) -> str:
    lines = []
    for number, q in enumerate(questions, start=1):
        lines.append(f"Question {number}: {display_text(q)}\n")
        if q.answer_text:
            lines.append(f"Your Answer: {q.answer_text}\n")
        if q.audio_answer and not q.answer_text:
            lines.append("Your Answer: [given as an audio recording; content not available]\n")
        if q.video_answer and not q.answer_text:
            lines.append("Your Answer: [given as a video recording; content not available]\n")
        if isinstance(q, CodingQuestion) and q.code_answer:
            lines.append(_code_block(q.code_answer, q.code_programming_language))
        if q.feedback:
            lines.append(f"Feedback on Answer {number}: {q.feedback}\n")
        if q.score is not None:
            lines.append(f"Score on Answer {number}: {q.score}/10\n")
        if isinstance(q, CodingQuestion):
            if q.code_feedback:
                lines.append(f"Code Feedback on Answer {number}: {q.code_feedback}\n")
            if q.code_score is not None:
                lines.append(f"Code Score on Answer {number}: {q.code_score}/10\n")
    return "".join(lines)


def build_prompt(
    role: InterviewRole | str,
    questions: Sequence[Question],
    programming_language: Optional[str] = None,
    max_questions: int = 5,
) -> str:
    """Conversation prompt: the first question when ``questions`` is empty, otherwise the next turn."""
    prompt = SYSTEM_INSTRUCTION.format(max_questions=max_questions)
    prompt += _role_context(role, programming_language) + "\n\n"

    if not questions:
        return prompt + FIRST_QUESTION_INSTRUCTION.format(max_questions=max_questions)

    prompt += _history(questions)

    last = questions[-1]
    if _awaiting_feedback(last):
        # Repeat the pending answer right before the instruction
        if last.answer_text:
            prompt += f"Your Answer: {last.answer_text}\n"
        if isinstance(last, CodingQuestion) and last.code_answer:
            prompt += _code_block(last.code_answer, last.code_programming_language)

    if isinstance(last, CodingQuestion):
        prompt += CODING_TURN_INSTRUCTION
    else:
        prompt += TEXT_TURN_INSTRUCTION
    return prompt


def build_text_evaluation_prompt(role: InterviewRole | str, question: Question, answer_text: str) -> str:
    return (
        "You are an expert interviewer. Please evaluate this answer and provide feedback and a score out of 10. "
        "Focus on clarity, technical accuracy, and communication skills.\n\n"
        f"{_role_context(role, None)}\n\n"
        f"Question: {question.question_text}\n"
        f"Answer: {answer_text}\n\n"
        f"{EVALUATION_FORMAT}"
    )


def build_recording_evaluation_prompt(role: InterviewRole | str, question: Question, medium: str) -> str:
    """
    Best-effort evaluation of an audio or video answer.

    The recording itself is not sent to the model, so it can only judge what a
    reasonable answer to the question would need. The prompt says so.
    """
    return (
        f"You are an expert interviewer. The candidate answered the following question with a {medium} recording. "
        "The recording content is not available to you, so evaluate based on the context of the question only: "
        "describe what a strong answer must cover and give a provisional score out of 10. Focus on clarity, "
        "technical accuracy (based on the question), and communication skills.\n\n"
        f"{_role_context(role, None)}\n\n"
        f"Question: {question.question_text}\n\n"
        f"{EVALUATION_FORMAT}"
    )


def build_coding_concept_prompt(role: InterviewRole | str, question: CodingQuestion) -> str:
    return (
        "You are an expert interviewer. Please evaluate the candidate's conceptual understanding of the "
        "following coding problem, as shown by their solution, and provide feedback and a score out of 10. "
        "Focus on problem decomposition, choice of approach, and handling of edge cases.\n\n"
        f"{_role_context(role, None)}\n\n"
        f"Question: {question.question_text}\n"
        f"{_code_block(question.code_answer or '', question.code_programming_language)}\n"
        f"{EVALUATION_FORMAT}"
    )


def build_code_review_prompt(question: CodingQuestion) -> str:
    return (
        "You are an expert programmer. Please evaluate this code answer and provide feedback and a score out of 10. "
        "Focus on code quality, efficiency, and best practices.\n\n"
        f"Question: {question.question_text}\n"
        f"Programming Language: {question.code_programming_language}\n"
        f"Code Answer: {question.code_answer}\n\n"
        f"{EVALUATION_FORMAT}"
    )


def build_overall_feedback_prompt(
    role: InterviewRole | str,
    questions: Sequence[Question],
    overall_score: int,
    programming_language: Optional[str] = None,
) -> str:
    summary = []
    for number, q in enumerate(questions, start=1):
        if isinstance(q, CodingQuestion):
            score, feedback = q.code_score, q.code_feedback
        else:
            score, feedback = q.score, q.feedback
        summary.append(
            f"Question {number}: {q.question_text}\n"
            f"Score: {score if score is not None else 'N/A'}/10\n"
            f"Feedback: {feedback or 'N/A'}\n"
        )

    return (
        "You are an expert interviewer. Please provide overall feedback for this interview based on the "
        "following scores and feedback:\n\n"
        f"{_role_context(role, programming_language)}\n\n"
        + "\n".join(summary)
        + f"\nOverall Score: {overall_score}/10\n\n"
        "Please provide comprehensive feedback focusing on:\n"
        "1. Overall performance\n2. Key strengths\n3. Areas for improvement\n"
        "4. Recommendations for future interviews\n\n"
        "Format your response as:\nOverall Feedback: [your feedback]"
    )
