"""OpenAI LLM service for exam question generation."""
import json
from typing import Any, Dict, List, Optional
from openai import OpenAI
from app.core.config import settings
from app.core.exceptions import QuestionGenerationError


class OpenAIService:
    """Service for interacting with OpenAI API."""

    def __init__(self, client: Optional[Any] = None):
        """Initialize OpenAI client with API key from settings."""
        self.client = client or OpenAI(api_key=settings.OPENAI_API_KEY)
        self.model = getattr(settings, 'OPENAI_MODEL', 'gpt-4o-mini')

    def generate_exam_questions(
        self,
        exam: str,
        subject: str,
        question_type: str = "MCQ",
        question_pattern: str = "THEORETICAL",
        mode: str = "practice",
        count: int = 10,
        topic: Optional[str] = None,
    ) -> List[Dict]:
        """
        Generate exam questions using OpenAI.

        Args:
            exam: Exam name, e.g. GATE
            subject: Subject within the exam
            question_type: MCQ or NUMERICAL
            question_pattern: THEORETICAL or NUMERICAL
            mode: "practice" allows any difficulty, "test" only MEDIUM/HARD
            count: Number of questions to generate
            topic: Optional topic within the subject the questions must cover

        Returns:
            List of validated question dictionaries with structure:
            {
                "text": str,
                "type": "MCQ" | "NUMERICAL",
                "pattern": "THEORETICAL" | "NUMERICAL",
                "options": ["A) ...", "B) ...", "C) ...", "D) ..."] or None,
                "correctAnswer": str,
                "explanation": str,
                "difficulty": "EASY" | "MEDIUM" | "HARD"
            }

        Raises:
            QuestionGenerationError: API failure or a response that fails validation
        """
        system_prompt = self._build_system_prompt(exam, question_type, mode)
        user_prompt = self._build_user_prompt(exam, subject, question_type, question_pattern, mode, count, topic)

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt}
                ],
                temperature=0.7,
                response_format={"type": "json_object"}
            )
            content = response.choices[0].message.content
        except Exception as e:
            raise QuestionGenerationError(f"Error generating questions from OpenAI: {str(e)}")

        if not content:
            raise QuestionGenerationError("No response received from OpenAI")

        try:
            result = json.loads(content)
        except json.JSONDecodeError as e:
            raise QuestionGenerationError(f"Invalid response format: {e.msg}")

        return validate_generated_questions(result, count, mode)

    def _build_system_prompt(self, exam: str, question_type: str, mode: str) -> str:
        """Build the system prompt for question generation."""
        if question_type == "MCQ":
            options_line = '"options": ["A) First option", "B) Second option", "C) Third option", "D) Fourth option"],'
            answer_line = '"correctAnswer": "A) First option",'
        else:
            options_line = ""
            answer_line = '"correctAnswer": "numerical_value",'
        difficulty = '"MEDIUM" or "HARD"' if mode == "test" else '"EASY", "MEDIUM", or "HARD"'

        return f"""You are an expert exam question generator for {exam} exams.
Follow the required JSON format exactly - no deviations are allowed.

Output format:
{{
  "questions": [
    {{
      "text": "Clear question text",
      "type": "{question_type}",
      "pattern": "THEORETICAL or NUMERICAL",
      {options_line}
      {answer_line}
      "explanation": "Clear step-by-step solution",
      "difficulty": {difficulty}
    }}
  ]
}}"""

    def _build_user_prompt(
        self,
        exam: str,
        subject: str,
        question_type: str,
        question_pattern: str,
        mode: str,
        count: int,
        topic: Optional[str] = None,
    ) -> str:
        """Build the user prompt with the generation requirements."""
        challenge = "challenging (MEDIUM or HARD difficulty) " if mode == "test" else ""
        difficulty_rule = (
            "ONLY use MEDIUM or HARD difficulty levels" if mode == "test"
            else "Use appropriate difficulty levels (EASY, MEDIUM, HARD)"
        )
        focus = f", topic: {topic.strip()}" if topic and topic.strip() else ""
        return f"""Generate {count} {challenge}{question_type} questions for {exam} exam, subject: {subject}{focus}.

REQUIREMENTS:
1. Questions must be {question_pattern} in nature
2. {difficulty_rule}
3. Explanations must include step-by-step solutions
4. For MCQ questions:
   - Options must start with A), B), C), D)
   - The correct answer must match one of the options exactly
   - All options must be unique
5. For numerical questions:
   - Provide the exact numerical answer
   - Include units if applicable
6. Each question must be complete and self-contained

Return ONLY the JSON object with the questions array."""


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip()


def validate_generated_questions(result: Any, count: int, mode: str = "practice") -> List[Dict]:
    """Normalize and check a generation response; raises on the first bad question."""
    if not isinstance(result, dict):
        raise QuestionGenerationError("Invalid response: not an object")
    questions = result.get("questions")
    if not isinstance(questions, list):
        raise QuestionGenerationError("Invalid response: questions property must be an array")
    if len(questions) != count:
        raise QuestionGenerationError(
            f"Invalid response: expected {count} questions, got {len(questions)}"
        )

    valid_difficulties = ["MEDIUM", "HARD"] if mode == "test" else ["EASY", "MEDIUM", "HARD"]
    normalized = []
    for index, q in enumerate(questions, 1):
        if not isinstance(q, dict):
            raise QuestionGenerationError(f"Question {index} is not an object")
        q_type = (_clean(q.get("type")) or "").upper()
        options = q.get("options")
        item = {
            "text": _clean(q.get("text")),
            "type": q_type,
            "pattern": (_clean(q.get("pattern")) or "").upper(),
            "options": [str(o).strip() for o in options] if q_type == "MCQ" and isinstance(options, list) else None,
            "correctAnswer": _clean(q.get("correctAnswer")),
            "explanation": _clean(q.get("explanation")) or "No explanation provided",
            "difficulty": (_clean(q.get("difficulty")) or "").upper(),
        }

        missing = [
            field for field in ("text", "type", "pattern", "correctAnswer", "difficulty")
            if not item[field]
        ]
        if missing:
            raise QuestionGenerationError(
                f"Question {index} is missing required fields: {', '.join(missing)}"
            )

        if q_type == "MCQ":
            if not item["options"] or len(item["options"]) != 4:
                raise QuestionGenerationError(f"Question {index} must have exactly 4 options")
            for opt_index, option in enumerate(item["options"]):
                prefix = f"{chr(65 + opt_index)}) "
                if not option.startswith(prefix):
                    raise QuestionGenerationError(
                        f'Question {index}, option {opt_index + 1} must start with "{prefix}"'
                    )
            if item["correctAnswer"] not in item["options"]:
                raise QuestionGenerationError(
                    f"Question {index} has correct answer that doesn't match any option"
                )

        if item["difficulty"] not in valid_difficulties:
            raise QuestionGenerationError(
                f"Question {index} has invalid difficulty level: {item['difficulty']}"
            )

        normalized.append(item)

    return normalized
